# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Feature builder: turns one text into the fixed-length arrays BERT consumes.

For max_seq_length = 8 and the text "hello world":

    tokens     [CLS] hello world [SEP]  ""  ""  ""  ""
    token_ids    101  7592  2088   102   0   0   0   0
    mask           1     1     1     1   0   0   0   0
    type_ids       0     0     0     0   0   0   0   0

Content is truncated to max_seq_length - 2 tokens so [CLS] and [SEP]
always fit. Segment ids are always zero; sentence pairs are not supported,
and the " ||| " pair separator is removed from the input before tokenizing
(unless the text opens with it).
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from bertprep.logging.logger import get_logger
from bertprep.tokenizer.base.core import Token
from bertprep.tokenizer.chars.core import lower_per_char
from bertprep.tokenizer.vocab.core import CLS_TOKEN, NOT_FOUND, SEP_TOKEN, Vocabulary
from bertprep.tokenizer.wordpiece.core import WordPieceTokenizer, get_offsets

logger: logging.Logger = get_logger(__name__)

PAIR_SEPARATOR = " ||| "
MIN_SEQ_LENGTH = 2
PAD_ID = 0
PAD_TOKEN = ""


@dataclass(frozen=True)
class InputFeature:
    """
    Four parallel arrays of length max_seq_length.

    type_ids, token_ids and mask map onto the model inputs segment_ids,
    input_ids and input_mask respectively.
    """

    tokens: list[str]
    token_ids: list[int]
    mask: list[int]
    type_ids: list[int]

    @property
    def length(self) -> int:
        return len(self.token_ids)

    @property
    def occupied(self) -> int:
        """Number of real positions, [CLS] and [SEP] included."""
        return sum(self.mask)


@dataclass(frozen=True)
class InputObject:
    """Per-item metadata returned alongside the payload."""

    input: str
    tokens: list[str]
    offsets: Optional[list[tuple[int, int]]] = field(default=None)


class FeatureBuilder:
    """
    Runs the tokenizer and packs the result into an InputFeature.

    Args:
        vocabulary: Shared vocabulary used for id lookup.
        tokenizer: WordPiece tokenizer built over the same vocabulary.
        max_seq_length: Output array length, [CLS] and [SEP] included.
        chinese: Lower-case the text and use Chinese-mode segmentation.
        return_offsets: Attach content-token offsets to the InputObject.

    Raises:
        ValueError: If max_seq_length is below 2.
    """

    def __init__(
        self,
        vocabulary: Vocabulary,
        tokenizer: WordPieceTokenizer,
        max_seq_length: int,
        chinese: bool = False,
        return_offsets: bool = False,
    ) -> None:
        if max_seq_length < MIN_SEQ_LENGTH:
            raise ValueError(
                f"max_seq_length must be at least {MIN_SEQ_LENGTH} to hold [CLS] and [SEP], "
                f"got {max_seq_length}"
            )
        self.vocabulary = vocabulary
        self.tokenizer = tokenizer
        self.max_seq_length = max_seq_length
        self.chinese = chinese
        self.return_offsets = return_offsets

    @staticmethod
    def strip_pair_separator(text: str) -> str:
        """
        Remove every " ||| " separator, unless the text starts with one.

        A leading separator has no first sentence before it, so the text is
        left as it is.
        """
        if text.find(PAIR_SEPARATOR) > 0:
            return text.replace(PAIR_SEPARATOR, "")
        return text

    def tokenize(self, text: str) -> list[Token]:
        """Run the configured tokenizer mode over `text` (pair separator removed)."""
        return self._segment(self.strip_pair_separator(text))

    def _segment(self, text: str) -> list[Token]:
        if self.chinese:
            return self.tokenizer.tokenize_chinese(lower_per_char(text))
        return self.tokenizer.tokenize(text)

    def build(self, text: str) -> tuple[InputFeature, InputObject]:
        """Build the fixed-length feature and its metadata for a single text."""
        text = self.strip_pair_separator(text)
        content = self._segment(text)[: self.max_seq_length - 2]

        size = self.max_seq_length
        tokens = [PAD_TOKEN] * size
        token_ids = [PAD_ID] * size
        mask = [0] * size
        type_ids = [0] * size

        tokens[0] = CLS_TOKEN
        token_ids[0] = self.vocabulary.cls_id
        for position, token in enumerate(content, start=1):
            tokens[position] = token.text
            token_ids[position] = self._lookup(token.text)
        sep_position = len(content) + 1
        tokens[sep_position] = SEP_TOKEN
        token_ids[sep_position] = self.vocabulary.sep_id
        for position in range(sep_position + 1):
            mask[position] = 1

        feature = InputFeature(tokens=tokens, token_ids=token_ids, mask=mask, type_ids=type_ids)
        input_object = InputObject(
            input=text,
            tokens=list(tokens),
            offsets=get_offsets(content) if self.return_offsets else None,
        )
        return feature, input_object

    def build_batch(self, texts: Iterable[str]) -> tuple[list[InputFeature], list[InputObject]]:
        """Build every item in caller order."""
        features: list[InputFeature] = []
        objects: list[InputObject] = []
        for text in texts:
            feature, input_object = self.build(text)
            features.append(feature)
            objects.append(input_object)
        logger.debug(
            "Built batch features",
            extra={"batch_size": len(features), "max_seq_length": self.max_seq_length},
        )
        return features, objects

    def _lookup(self, text: str) -> int:
        # Configured never-split words bypass WordPiece and may be absent
        # from the vocabulary.
        token_id = self.vocabulary.get_id(text)
        if token_id == NOT_FOUND:
            return self.vocabulary.unk_id
        return token_id
