# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
WordPiece tokenizer: the second tokenization stage.

Each base token is broken into the longest vocabulary pieces available,
left to right. Pieces after the first carry the "##" continuation prefix,
which is how the vocabulary distinguishes "##ing" (inside a word) from
"ing" (a word of its own). See Wu et al. 2016, section 4.1.

    "unaffable" -> "un", "##aff", "##able"

Two cases collapse a base token into a single [UNK] spanning its full
offsets: the token is longer than max_word_chars, or some position has no
vocabulary piece at all. Partial decompositions are never emitted.

Matching is O(L^2) vocabulary lookups per token in the worst case. The
max_word_chars cutoff bounds that for pathological inputs.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from bertprep.config.exceptions import ConfigurationError
from bertprep.tokenizer.base.core import BaseTokenizer, Token
from bertprep.tokenizer.vocab.core import (
    NOT_FOUND,
    SPECIAL_WORDS,
    UNK_TOKEN,
    Vocabulary,
)

CONTINUATION_PREFIX = "##"
DEFAULT_MAX_WORD_CHARS = 200


class WordPieceTokenizer:
    """
    Greedy longest-match-first sub-word tokenizer over a fixed vocabulary.

    Args:
        vocabulary: The shared, validated vocabulary.
        max_word_chars: Base tokens longer than this become [UNK].
        never_split: Words the base tokenizer must not split on punctuation.
        base_tokenizer: Override for the first stage. Built from
            `never_split` when omitted.

    Raises:
        ConfigurationError: If the vocabulary has no [UNK] entry.
        ValueError: If max_word_chars is not positive.
    """

    def __init__(
        self,
        vocabulary: Vocabulary,
        max_word_chars: int = DEFAULT_MAX_WORD_CHARS,
        never_split: Iterable[str] = SPECIAL_WORDS,
        base_tokenizer: BaseTokenizer | None = None,
    ) -> None:
        if vocabulary.get_id(UNK_TOKEN) == NOT_FOUND:
            raise ConfigurationError(
                f"Vocabulary has no {UNK_TOKEN} entry; WordPiece cannot mark unknown words",
                missing=(UNK_TOKEN,),
            )
        if max_word_chars < 1:
            raise ValueError(f"max_word_chars must be positive, got {max_word_chars}")

        self.vocabulary = vocabulary
        self.max_word_chars = max_word_chars
        self.unk_token = UNK_TOKEN
        self.split_prefix = CONTINUATION_PREFIX
        self.base_tokenizer = base_tokenizer or BaseTokenizer(never_split)

    def tokenize(self, text: str) -> list[Token]:
        return self.wordpiece_tokenize(self.base_tokenizer.tokenize(text))

    def tokenize_chinese(self, text: str) -> list[Token]:
        return self.wordpiece_tokenize(self.base_tokenizer.tokenize_chinese(text))

    def wordpiece_tokenize(self, tokens: Iterable[Token]) -> list[Token]:
        """Split every base token into vocabulary pieces, keeping original-text offsets."""
        output: list[Token] = []
        for token in tokens:
            pieces = self._split_word(token)
            if pieces is None:
                output.append(Token(self.unk_token, token.start, token.end))
            else:
                output.extend(pieces)
        return output

    def _split_word(self, token: Token) -> list[Token] | None:
        """Return the pieces of one base token, or None when it must become [UNK]."""
        chars = token.text
        length = len(chars)
        if length > self.max_word_chars:
            return None

        pieces: list[Token] = []
        start = 0
        while start < length:
            end = length
            match: str | None = None
            while start < end:
                candidate = chars[start:end]
                if start > 0:
                    candidate = self.split_prefix + candidate
                if self.vocabulary.get_id(candidate) != NOT_FOUND:
                    match = candidate
                    break
                end -= 1

            if match is None:
                return None

            pieces.append(Token(match, token.start + start, token.start + end))
            start = end

        return pieces


def get_strings(tokens: Iterable[Token]) -> list[str]:
    return [token.text for token in tokens]


def get_offsets(tokens: Iterable[Token]) -> list[tuple[int, int]]:
    return [(token.start, token.end) for token in tokens]


def is_default_special(word: str) -> bool:
    """True for [CLS], [SEP], [UNK] and [MASK]."""
    return word in SPECIAL_WORDS


@dataclass(frozen=True)
class TokensRange:
    """Inclusive [start, end] index range of the pieces that form one word."""

    start: int
    end: int


def group_pieces(tokens: Iterable[Token]) -> list[TokensRange]:
    """
    Group "##" continuation pieces with the piece that starts their word.

        ["un", "##aff", "##able", "!"] -> [TokensRange(0, 2), TokensRange(3, 3)]

    A continuation piece with nothing before it opens its own group.
    """
    groups: list[TokensRange] = []
    for index, token in enumerate(tokens):
        if token.text.startswith(CONTINUATION_PREFIX) and groups:
            groups[-1] = TokensRange(groups[-1].start, index)
        else:
            groups.append(TokensRange(index, index))
    return groups


def merge_groups(text: str, tokens: list[Token], groups: Iterable[TokensRange]) -> list[Token]:
    """
    Rebuild whole words from grouped pieces by re-slicing the original text.

    The returned token text is the original slice, not the concatenated
    pieces, so casing and the "##" markers do not leak into the result.
    """
    words: list[Token] = []
    for group in groups:
        start = tokens[group.start].start
        end = tokens[group.end].end
        words.append(Token(text[start:end], start, end))
    return words
