# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
BertModelService: the request-preparation facade for one deployed model.

This ties the pipeline together:

    texts -> FeatureBuilder -> encode_http_body | encode_binary -> request

and hands the result to whatever transport the caller plugs in. The
service never opens a connection itself. A transport is anything that
implements the InferenceTransport protocol; readiness checks, retries and
response decoding are the transport's business.

Everything the service needs is fixed at construction from frozen config,
so one instance can be shared by any number of request threads. There are
no setters: a different mode (Chinese tokenization, gRPC, offsets) is a
different config and a different service.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol, Union

from bertprep.config.exceptions import ConfigValidationError
from bertprep.config.schema import BertPrepConfig, ServiceConfig, TokenizerConfig
from bertprep.features.builder.core import FeatureBuilder, InputObject
from bertprep.logging.logger import get_logger
from bertprep.serving.api.schema import (
    BinaryBuffers,
    GRPCRequest,
    HTTPRequest,
    InferInputTensor,
    InferRequestedOutput,
)
from bertprep.serving.builders.core import get_input_builder, get_output_builder
from bertprep.serving.encoding.core import encode_binary, encode_http_body
from bertprep.serving.exceptions import EncodingError
from bertprep.tokenizer.base.core import Token
from bertprep.tokenizer.vocab.core import Vocabulary, load_vocabulary
from bertprep.tokenizer.wordpiece.core import WordPieceTokenizer

logger: logging.Logger = get_logger(__name__)


class InferenceTransport(Protocol):
    """The network side of inference, implemented outside this package."""

    def http_infer(
        self,
        body: bytes,
        model_name: str,
        model_version: str,
        items: list[InputObject],
    ) -> Any: ...

    def grpc_infer(
        self,
        inputs: list[InferInputTensor],
        outputs: list[InferRequestedOutput],
        raw_inputs: BinaryBuffers,
        model_name: str,
        model_version: str,
        items: list[InputObject],
    ) -> Any: ...


class BertModelService:
    """
    Prepares inference requests for a BERT model behind a Triton-style server.

    Args:
        vocabulary: Validated vocabulary shared by all requests.
        tokenizer_config: Tokenizer mode and limits.
        service_config: Sequence length, transport, tensor layout.

    Raises:
        ConfigurationError: Vocabulary unusable for WordPiece.
        ConfigValidationError: Unknown builder names or inconsistent
            output settings.
    """

    def __init__(
        self,
        vocabulary: Vocabulary,
        tokenizer_config: TokenizerConfig | None = None,
        service_config: ServiceConfig | None = None,
    ) -> None:
        self.tokenizer_config = tokenizer_config or TokenizerConfig()
        self.config = service_config or ServiceConfig()
        self.vocabulary = vocabulary

        self.tokenizer = WordPieceTokenizer(
            vocabulary,
            max_word_chars=self.tokenizer_config.max_word_chars,
            never_split=self.tokenizer_config.never_split,
        )
        self.feature_builder = FeatureBuilder(
            vocabulary,
            self.tokenizer,
            max_seq_length=self.config.max_seq_length,
            chinese=self.tokenizer_config.chinese,
            return_offsets=self.config.return_offsets,
        )

        try:
            self._input_builder = get_input_builder(self.config.input_builder)
            output_builder = get_output_builder(self.config.output_builder)
            self._outputs = tuple(
                output_builder.build(
                    self.config.output_names,
                    self.config.binary_output,
                    self.config.classification_top_k,
                )
            )
        except (KeyError, ValueError) as err:
            raise ConfigValidationError(f"Invalid service configuration: {err}") from err

        logger.info(
            "BERT service ready",
            extra={
                "model": self.model_name,
                "transport": self.config.transport,
                "max_seq_length": self.config.max_seq_length,
                "chinese": self.tokenizer_config.chinese,
                "vocab_size": len(vocabulary),
            },
        )

    @classmethod
    def from_config(cls, config: BertPrepConfig) -> "BertModelService":
        """Load the vocabulary named in `config` and build the service."""
        vocabulary = load_vocabulary(Path(config.tokenizer.vocab_path))
        return cls(vocabulary, config.tokenizer, config.service)

    @property
    def model_name(self) -> str:
        return self.config.served_model_name

    @property
    def is_grpc(self) -> bool:
        return self.config.transport == "grpc"

    def input_tensors(self, batch_size: int) -> list[InferInputTensor]:
        return self._input_builder.build(
            batch_size, self.config.max_seq_length, self.config.input_datatype
        )

    def output_tensors(self) -> list[InferRequestedOutput]:
        return list(self._outputs)

    def _check_batch(self, texts: Sequence[str]) -> None:
        if not texts:
            raise EncodingError("Cannot prepare a request for an empty batch")
        limit = self.config.max_input_chars
        for index, text in enumerate(texts):
            if len(text) > limit:
                raise EncodingError(
                    f"Batch item {index} is {len(text)} characters long, limit is {limit}"
                )

    def tokenize(self, texts: Sequence[str]) -> list[list[Token]]:
        """Run the configured tokenizer over the batch without building features."""
        self._check_batch(texts)
        return [self.feature_builder.tokenize(text) for text in texts]

    def prepare_http(self, texts: Sequence[str]) -> HTTPRequest:
        """Tokenize the batch and build the JSON request body."""
        self._check_batch(texts)
        features, items = self.feature_builder.build_batch(texts)
        body = encode_http_body(features, self.input_tensors(len(texts)), self._outputs)
        return HTTPRequest(body=body, items=items)

    def prepare_grpc(self, texts: Sequence[str]) -> GRPCRequest:
        """Tokenize the batch and pack the raw little-endian input buffers."""
        self._check_batch(texts)
        features, items = self.feature_builder.build_batch(texts)
        inputs = self.input_tensors(len(texts))
        raw_inputs = encode_binary(features, inputs)
        return GRPCRequest(
            inputs=inputs,
            outputs=self.output_tensors(),
            raw_inputs=raw_inputs,
            items=items,
        )

    def prepare(self, texts: Sequence[str]) -> Union[HTTPRequest, GRPCRequest]:
        """Build whichever request the configured transport expects."""
        if self.is_grpc:
            return self.prepare_grpc(texts)
        return self.prepare_http(texts)

    def infer(
        self,
        texts: Sequence[str],
        transport: InferenceTransport,
        model_version: str = "",
    ) -> Any:
        """
        Prepare the request and pass it to `transport`.

        Whatever the transport returns (decoded results, a future, ...) is
        returned unchanged. Transport errors propagate to the caller.
        """
        request = self.prepare(texts)
        if isinstance(request, GRPCRequest):
            return transport.grpc_infer(
                request.inputs,
                request.outputs,
                request.raw_inputs,
                self.model_name,
                model_version,
                request.items,
            )
        return transport.http_infer(request.body, self.model_name, model_version, request.items)
