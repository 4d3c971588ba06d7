# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for bertprep.

Each config section is a frozen pydantic model. Once built it cannot be
mutated, which is what lets a single service object be shared by every
request thread: the Chinese-mode switch, the transport choice and the
offset flag are all fixed at construction.

All models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SPECIAL_TOKENS: tuple[str, ...] = ("[CLS]", "[SEP]", "[UNK]", "[MASK]")


class GlobalConfig(BaseModel):
    """Cross-cutting settings: project identity and logging."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        description="Schema version for compatibility tracking, e.g. '1.0.0'"
    )
    project_name: str = Field(
        default="bertprep", description="Human-readable project identifier"
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output",
    )


class TokenizerConfig(BaseModel):
    """Vocabulary location and the knobs of the two-stage tokenizer."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    vocab_path: str = Field(
        default="vocab.txt",
        description="Line-indexed vocabulary file; line number is the token id",
    )
    chinese: bool = Field(
        default=False,
        description="Split every CJK ideograph into its own token and strip accents",
    )
    max_word_chars: int = Field(
        default=200,
        ge=1,
        description="Words longer than this (in codepoints) become [UNK]",
    )
    never_split: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SPECIAL_TOKENS),
        description="Whitespace-delimited words passed through without punctuation splitting",
    )


class ServiceConfig(BaseModel):
    """
    Request shaping for one deployed BERT model.

    The input/output builder names select strategies from
    bertprep.serving.builders.core, so a new model layout is a new
    registered builder plus a config change.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    model_name: str = Field(default="bert", description="Model name as deployed on the server")
    model_prefix: str = Field(
        default="",
        description="Optional prefix; the served name becomes '<prefix>-<model_name>'",
    )
    transport: Literal["http", "grpc"] = Field(
        default="http",
        description="'http' builds a JSON body, 'grpc' builds raw little-endian buffers",
    )
    max_seq_length: int = Field(
        default=48,
        ge=2,
        description="Fixed sequence length including [CLS] and [SEP]",
    )
    return_offsets: bool = Field(
        default=False,
        description="Attach per-token codepoint offsets to the returned item metadata",
    )
    max_input_chars: int = Field(
        default=10_000,
        ge=1,
        description="Longest accepted input text in codepoints",
    )
    input_datatype: Literal["INT32", "INT64"] = Field(
        default="INT32",
        description="Declared datatype of every input tensor",
    )
    input_builder: str = Field(default="bert", description="Registered input spec builder")
    output_builder: str = Field(default="logits", description="Registered output spec builder")
    output_names: list[str] = Field(
        default_factory=lambda: ["logits"],
        description="Output tensors requested from the server",
    )
    binary_output: bool = Field(
        default=False,
        description="Ask the server to return outputs as binary data",
    )
    classification_top_k: int = Field(
        default=0,
        ge=0,
        description="Top-k classes for the 'classification' output builder",
    )

    @field_validator("output_names")
    @classmethod
    def _output_names_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("output_names must list at least one tensor")
        return value

    @property
    def served_model_name(self) -> str:
        if self.model_prefix:
            return f"{self.model_prefix}-{self.model_name}"
        return self.model_name


class BertPrepConfig(BaseModel):
    """
    Top-level config container.

    Only `global` is mandatory. Commands that need the tokenizer or the
    service sections fill in defaults when those are absent.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global")
    tokenizer: TokenizerConfig = Field(default_factory=TokenizerConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
