# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Base tokenizer: the first of the two tokenization stages.

Splits raw text into words, punctuation marks and (in Chinese mode) single
CJK ideographs, and records where each piece came from as a half-open
codepoint range [start, end) into the original text. The WordPiece stage
builds on those offsets, so every token that leaves this pipeline can be
traced back to the exact slice of input it covers.

Two modes:
  - Latin: split on whitespace (dropped), then split each word on
    punctuation (kept as one-character tokens).
  - Chinese: split on whitespace or CJK ideographs (ideographs kept), then
    accent-strip and lower-case each unit before the punctuation pass.

Special words such as "[CLS]" are passed through the punctuation pass
untouched, otherwise the brackets would be split off.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from bertprep.tokenizer.chars.core import (
    is_chinese,
    is_punctuation,
    is_whitespace,
    is_whitespace_or_chinese,
    normalize_with_origins,
)
from bertprep.tokenizer.vocab.core import SPECIAL_WORDS


@dataclass(frozen=True)
class Token:
    """A piece of text plus its [start, end) codepoint span in the original input."""

    text: str
    start: int
    end: int

    def shifted(self, delta: int) -> "Token":
        """Same text, offsets moved by `delta` (parent-unit start)."""
        return Token(self.text, self.start + delta, self.end + delta)


def split_on(
    text: str,
    should_split: Callable[[str], bool],
    include_delimiter: bool,
    keep_chinese: bool = False,
) -> list[Token]:
    """
    Scan `text` one codepoint at a time and cut it wherever `should_split` fires.

    The accumulated run before a delimiter is emitted as one token. The
    delimiter itself is emitted as a single-codepoint token when
    `include_delimiter` is set, or when `keep_chinese` is set and the
    delimiter is a CJK ideograph. Offsets are local to `text`.
    """
    tokens: list[Token] = []
    buffer: list[str] = []

    for offset, char in enumerate(text):
        if not should_split(char):
            buffer.append(char)
            continue

        if buffer:
            tokens.append(Token("".join(buffer), offset - len(buffer), offset))
            buffer = []
        if include_delimiter or (keep_chinese and is_chinese(char)):
            tokens.append(Token(char, offset, offset + 1))

    if buffer:
        end = len(text)
        tokens.append(Token("".join(buffer), end - len(buffer), end))

    return tokens


class BaseTokenizer:
    """
    Whitespace/punctuation splitter with offset tracking.

    Args:
        special_words: Words that skip the punctuation pass. Defaults to
            the four BERT special tokens.
    """

    def __init__(self, special_words: Iterable[str] = SPECIAL_WORDS) -> None:
        self._special_words = frozenset(special_words)

    @property
    def special_words(self) -> frozenset[str]:
        return self._special_words

    def tokenize(self, text: str) -> list[Token]:
        """Latin mode: whitespace split, then punctuation split per word."""
        split_tokens: list[Token] = []
        for word in split_on(text, is_whitespace, include_delimiter=False):
            if word.text in self._special_words:
                split_tokens.append(word)
                continue
            for piece in split_on(word.text, is_punctuation, include_delimiter=True):
                split_tokens.append(piece.shifted(word.start))
        return split_tokens

    def tokenize_chinese(self, text: str) -> list[Token]:
        """
        Chinese mode: every CJK ideograph becomes its own token.

        Units are accent-stripped and lower-cased before the punctuation
        pass, so token texts may differ from the original slice. Offsets are
        mapped back through the normalization, so they always index the
        original text.
        """
        split_tokens: list[Token] = []
        units = split_on(text, is_whitespace_or_chinese, include_delimiter=False, keep_chinese=True)
        for unit in units:
            if unit.text in self._special_words:
                split_tokens.append(unit)
                continue
            normalized, origins = normalize_with_origins(unit.text)
            for piece in split_on(normalized, is_punctuation, include_delimiter=True, keep_chinese=True):
                # Codepoints dropped by normalization belong to the piece before them.
                local_end = origins[piece.end] if piece.end < len(origins) else len(unit.text)
                local_end = max(local_end, origins[piece.end - 1] + 1)
                split_tokens.append(
                    Token(piece.text, unit.start + origins[piece.start], unit.start + local_end)
                )
        return split_tokens
