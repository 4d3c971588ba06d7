# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Character classes used by the base tokenizer.

These follow the conventions of the reference BERT tokenizer: ASCII
symbols such as "$" and "^" count as punctuation even though Unicode files
them under S*, and "CJK character" means the CJK Unified Ideograph blocks
only. Hiragana, Katakana and Hangul are deliberately left out; they are
split on whitespace like any other script.
"""

import unicodedata

from tokenizers import normalizers

_CJK_RANGES: tuple[tuple[int, int], ...] = (
    (0x4E00, 0x9FFF),
    (0x3400, 0x4DBF),
    (0x20000, 0x2A6DF),
    (0x2A700, 0x2B73F),
    (0x2B740, 0x2B81F),
    (0x2B820, 0x2CEAF),
    (0xF900, 0xFAFF),
    (0x2F800, 0x2FA1F),
)

# NFC at the end recomposes scripts such as Hangul, whose NFD form is not
# made of combining marks, so the normalized text keeps its codepoint count.
_ACCENT_STRIPPER = normalizers.Sequence(
    [
        normalizers.NFD(),
        normalizers.StripAccents(),
        normalizers.NFC(),
        normalizers.Lowercase(),
    ]
)


def is_whitespace(char: str) -> bool:
    if char in (" ", "\t", "\n", "\r"):
        return True
    return unicodedata.category(char) == "Zs"


def is_punctuation(char: str) -> bool:
    cp = ord(char)
    if 33 <= cp <= 47 or 58 <= cp <= 64 or 91 <= cp <= 96 or 123 <= cp <= 126:
        return True
    return unicodedata.category(char).startswith("P")


def is_chinese(char: str) -> bool:
    cp = ord(char)
    return any(low <= cp <= high for low, high in _CJK_RANGES)


def is_whitespace_or_chinese(char: str) -> bool:
    return is_whitespace(char) or is_chinese(char)


def strip_accents_and_lower(text: str) -> str:
    """
    Remove combining accents and lower-case the text.

    "Héllo" becomes "hello". Runs through the `tokenizers` normalizer
    pipeline so the result matches what a HuggingFace BERT normalizer
    with strip_accents=True would produce.
    """
    if not text:
        return text
    return _ACCENT_STRIPPER.normalize_str(text)


def lower_per_char(text: str) -> str:
    """
    Lower-case `text` one codepoint at a time, keeping the codepoint count.

    A character whose lowercase form is longer than one codepoint (such as
    "İ", which lowers to "i" plus a combining dot) is left unchanged, so
    offsets computed on the result still index the original text.
    """
    chars: list[str] = []
    for char in text:
        lowered = char.lower()
        chars.append(lowered if len(lowered) == 1 else char)
    return "".join(chars)


def normalize_with_origins(text: str) -> tuple[str, list[int]]:
    """
    Accent-strip and lower-case `text`, tracking where each output char came from.

    Normalization can drop codepoints (a standalone combining accent) or
    produce several from one, so the second element maps every index of the
    normalized string back to the index of its source codepoint in `text`.
    """
    chars: list[str] = []
    origins: list[int] = []
    for index, char in enumerate(text):
        for normalized in strip_accents_and_lower(char):
            chars.append(normalized)
            origins.append(index)
    return "".join(chars), origins
