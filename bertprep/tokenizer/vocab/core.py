# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Vocabulary: the immutable token-to-id dictionary every request shares.

A BERT vocab.txt is one token per line and the line number is the id, so
ids are dense and follow file order. The vocabulary is validated once, at
construction: if [CLS], [SEP] or [UNK] is missing we refuse to build
it, rather than discovering the problem halfway through a request.

After construction nothing mutates it, so any number of threads can call
get_id concurrently without coordination.
"""

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from bertprep.config.exceptions import ConfigurationError, VocabularyLoadError
from bertprep.logging.logger import get_logger

logger: logging.Logger = get_logger(__name__)

CLS_TOKEN = "[CLS]"
SEP_TOKEN = "[SEP]"
UNK_TOKEN = "[UNK]"
MASK_TOKEN = "[MASK]"

# Entries a vocabulary must have. [MASK] is a special word for splitting
# purposes but inference never emits it, so it is optional.
REQUIRED_SPECIAL_TOKENS: tuple[str, ...] = (CLS_TOKEN, SEP_TOKEN, UNK_TOKEN)
SPECIAL_WORDS: tuple[str, ...] = (CLS_TOKEN, SEP_TOKEN, UNK_TOKEN, MASK_TOKEN)

NOT_FOUND: int = -1


class Vocabulary:
    """
    Read-only mapping from token text to integer id.

    Args:
        tokens: Token strings in id order. The i-th token gets id i.
        required: Entries that must be present. Defaults to [CLS], [SEP]
            and [UNK].

    Raises:
        ConfigurationError: If any required entry is absent.
        ValueError: If a token appears twice.
    """

    __slots__ = ("_ids", "_tokens")

    def __init__(
        self,
        tokens: Iterable[str],
        required: Iterable[str] = REQUIRED_SPECIAL_TOKENS,
    ) -> None:
        token_list = tuple(tokens)
        ids: dict[str, int] = {}
        for index, token in enumerate(token_list):
            if token in ids:
                raise ValueError(
                    f"Duplicate vocabulary entry {token!r} at ids {ids[token]} and {index}"
                )
            ids[token] = index

        missing = tuple(token for token in required if token not in ids)
        if missing:
            raise ConfigurationError(
                f"Vocabulary is missing required special tokens: {', '.join(missing)}",
                missing=missing,
            )

        self._tokens = token_list
        self._ids = MappingProxyType(ids)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, int],
        required: Iterable[str] = REQUIRED_SPECIAL_TOKENS,
    ) -> "Vocabulary":
        """
        Build a vocabulary from an explicit token -> id mapping.

        The ids must be exactly 0..len-1; anything sparse is rejected since
        reverse lookup and the dense-id contract both depend on it.
        """
        ordered = sorted(mapping.items(), key=lambda item: item[1])
        for expected, (token, token_id) in enumerate(ordered):
            if token_id != expected:
                raise ValueError(
                    f"Vocabulary ids must be dense from 0; {token!r} has id {token_id}, "
                    f"expected {expected}"
                )
        return cls((token for token, _ in ordered), required=required)

    def get_id(self, text: str) -> int:
        """Return the id of `text`, or NOT_FOUND (-1) if it isn't in the vocabulary."""
        return self._ids.get(text, NOT_FOUND)

    def get_token(self, token_id: int) -> str:
        """Reverse lookup. Raises IndexError for ids outside the vocabulary."""
        if token_id < 0:
            raise IndexError(f"Token id {token_id} is negative")
        return self._tokens[token_id]

    @property
    def cls_id(self) -> int:
        return self._ids[CLS_TOKEN]

    @property
    def sep_id(self) -> int:
        return self._ids[SEP_TOKEN]

    @property
    def unk_id(self) -> int:
        return self._ids[UNK_TOKEN]

    def __contains__(self, text: object) -> bool:
        return text in self._ids

    def __len__(self) -> int:
        return len(self._tokens)

    def __repr__(self) -> str:
        return f"Vocabulary(size={len(self._tokens)})"


def load_vocabulary(
    vocab_path: Path,
    required: Iterable[str] = REQUIRED_SPECIAL_TOKENS,
) -> Vocabulary:
    """
    Load a line-indexed vocab.txt into a validated Vocabulary.

    Each line is one token; only the line terminator is stripped, so tokens
    with meaningful surrounding characters survive. A single empty line at
    the very end of the file (the usual trailing newline artefact) is
    ignored; any other empty line is an error.

    Raises:
        VocabularyLoadError: Missing, unreadable, undecodable, or malformed file.
        ConfigurationError: The file loads but lacks a required special token.
    """
    if not vocab_path.is_file():
        raise VocabularyLoadError(f"Vocabulary file not found: {vocab_path}")

    try:
        raw_text = vocab_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise VocabularyLoadError(f"Cannot read vocabulary file {vocab_path}: {err}") from err

    # Only "\n" ends a line. str.splitlines would also break on characters
    # such as U+2028 inside a token and shift every later id.
    lines = [line[:-1] if line.endswith("\r") else line for line in raw_text.split("\n")]
    while lines and lines[-1] == "":
        lines.pop()

    if not lines:
        raise VocabularyLoadError(f"Vocabulary file is empty: {vocab_path}")

    for line_number, token in enumerate(lines, start=1):
        if token == "":
            raise VocabularyLoadError(f"Empty token on line {line_number} of {vocab_path}")

    try:
        vocabulary = Vocabulary(lines, required=required)
    except ValueError as err:
        raise VocabularyLoadError(f"Malformed vocabulary {vocab_path}: {err}") from err

    logger.info(
        "Vocabulary loaded",
        extra={"path": str(vocab_path), "size": len(vocabulary)},
    )
    return vocabulary
