# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Tests for the pydantic config models themselves."""

import pytest
from pydantic import ValidationError

from bertprep.config.schema import GlobalConfig, ServiceConfig, TokenizerConfig


class TestServiceConfig:
    def test_defaults(self) -> None:
        cfg = ServiceConfig()
        assert cfg.max_seq_length == 48
        assert cfg.input_datatype == "INT32"
        assert cfg.output_names == ["logits"]
        assert cfg.served_model_name == "bert"

    def test_prefix_joins_model_name(self) -> None:
        cfg = ServiceConfig(model_name="ner", model_prefix="prod")
        assert cfg.served_model_name == "prod-ner"

    def test_rejects_unknown_transport(self) -> None:
        with pytest.raises(ValidationError):
            ServiceConfig(transport="websocket")

    def test_rejects_unknown_datatype(self) -> None:
        with pytest.raises(ValidationError):
            ServiceConfig(input_datatype="FP32")

    def test_rejects_empty_output_names(self) -> None:
        with pytest.raises(ValidationError):
            ServiceConfig(output_names=[])

    def test_minimum_sequence_length_is_two(self) -> None:
        assert ServiceConfig(max_seq_length=2).max_seq_length == 2
        with pytest.raises(ValidationError):
            ServiceConfig(max_seq_length=1)


class TestTokenizerConfig:
    def test_default_never_split_words(self) -> None:
        cfg = TokenizerConfig()
        assert cfg.never_split == ["[CLS]", "[SEP]", "[UNK]", "[MASK]"]

    def test_max_word_chars_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            TokenizerConfig(max_word_chars=0)


class TestGlobalConfig:
    def test_requires_version(self) -> None:
        with pytest.raises(ValidationError):
            GlobalConfig()  # type: ignore[call-arg]
