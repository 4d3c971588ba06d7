# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for BertModelService.

A recording transport stands in for the inference server, so these tests
check exactly what the service would put on the wire.
"""

import json
import struct
from pathlib import Path
from typing import Any

import pytest

from bertprep.config.exceptions import ConfigValidationError, ConfigurationError
from bertprep.config.loader import load_config
from bertprep.config.schema import ServiceConfig, TokenizerConfig
from bertprep.serving.api.schema import GRPCRequest, HTTPRequest
from bertprep.serving.exceptions import EncodingError
from bertprep.serving.service.core import BertModelService
from bertprep.tokenizer.vocab.core import Vocabulary


class RecordingTransport:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def http_infer(self, body, model_name, model_version, items):
        self.calls.append(
            ("http", {"body": body, "model": model_name, "version": model_version, "items": items})
        )
        return "http-result"

    def grpc_infer(self, inputs, outputs, raw_inputs, model_name, model_version, items):
        self.calls.append(
            (
                "grpc",
                {
                    "inputs": inputs,
                    "outputs": outputs,
                    "raw": raw_inputs,
                    "model": model_name,
                    "version": model_version,
                    "items": items,
                },
            )
        )
        return "grpc-result"


def _service(vocab: Vocabulary, **service_kwargs: Any) -> BertModelService:
    service_kwargs.setdefault("max_seq_length", 6)
    return BertModelService(vocab, TokenizerConfig(), ServiceConfig(**service_kwargs))


class TestConstruction:
    def test_from_config(self, tmp_config_file: Path) -> None:
        service = BertModelService.from_config(load_config(tmp_config_file))
        assert service.model_name == "test-bert"
        assert service.config.max_seq_length == 8
        assert len(service.vocabulary) == 22

    def test_unknown_input_builder(self, vocab: Vocabulary) -> None:
        with pytest.raises(ConfigValidationError):
            _service(vocab, input_builder="roberta")

    def test_classification_without_top_k(self, vocab: Vocabulary) -> None:
        with pytest.raises(ConfigValidationError):
            _service(vocab, output_builder="classification", classification_top_k=0)

    def test_vocabulary_without_unk(self) -> None:
        vocab = Vocabulary(["[CLS]", "[SEP]", "hello"], required=())
        with pytest.raises(ConfigurationError):
            BertModelService(vocab)

    def test_defaults(self, vocab: Vocabulary) -> None:
        service = BertModelService(vocab)
        assert service.model_name == "bert"
        assert not service.is_grpc
        assert [t.shape for t in service.input_tensors(2)] == [[2, 48]] * 3


class TestTokenize:
    def test_returns_tokens_per_text(self, vocab: Vocabulary) -> None:
        tokens = _service(vocab).tokenize(["unaffable", "hello world"])
        assert [[t.text for t in item] for item in tokens] == [
            ["un", "##aff", "##able"],
            ["hello", "world"],
        ]

    def test_applies_the_input_ceiling(self, vocab: Vocabulary) -> None:
        with pytest.raises(EncodingError, match="item 0"):
            _service(vocab, max_input_chars=3).tokenize(["hello"])

    def test_empty_batch(self, vocab: Vocabulary) -> None:
        with pytest.raises(EncodingError):
            _service(vocab).tokenize([])


class TestPrepareHTTP:
    def test_body(self, vocab: Vocabulary) -> None:
        request = _service(vocab).prepare(["hello world", "你"])
        assert isinstance(request, HTTPRequest)
        body = json.loads(request.body)
        input_ids = body["inputs"][1]
        assert input_ids["name"] == "input_ids"
        assert input_ids["shape"] == [2, 6]
        assert input_ids["data"] == [[2, 5, 6, 3, 0, 0], [2, 15, 3, 0, 0, 0]]
        assert body["outputs"] == [{"name": "logits", "parameters": {"binary_data": False}}]
        assert [item.input for item in request.items] == ["hello world", "你"]

    def test_offsets_on_items(self, vocab: Vocabulary) -> None:
        request = _service(vocab, return_offsets=True).prepare_http(["hello world"])
        assert request.items[0].offsets == [(0, 5), (6, 11)]

    def test_empty_batch(self, vocab: Vocabulary) -> None:
        with pytest.raises(EncodingError):
            _service(vocab).prepare([])

    def test_input_too_long(self, vocab: Vocabulary) -> None:
        with pytest.raises(EncodingError, match="item 1"):
            _service(vocab, max_input_chars=10).prepare(["hello", "hello world!"])


class TestPrepareGRPC:
    def test_buffers(self, vocab: Vocabulary) -> None:
        request = _service(vocab, transport="grpc").prepare(["hello", "world"])
        assert isinstance(request, GRPCRequest)
        assert struct.unpack("<12i", request.raw_inputs.input_ids) == (
            2, 5, 3, 0, 0, 0,
            2, 6, 3, 0, 0, 0,
        )
        assert len(request.raw_inputs.input_mask) == 2 * 6 * 4
        assert [t.name for t in request.inputs] == ["segment_ids", "input_ids", "input_mask"]

    def test_int64(self, vocab: Vocabulary) -> None:
        request = _service(vocab, transport="grpc", input_datatype="INT64").prepare_grpc(["hello"])
        assert len(request.raw_inputs.segment_ids) == 6 * 8


class TestInfer:
    def test_http_transport(self, vocab: Vocabulary) -> None:
        transport = RecordingTransport()
        service = _service(vocab, model_prefix="prod")
        assert service.infer(["hello"], transport, model_version="2") == "http-result"
        kind, call = transport.calls[0]
        assert kind == "http"
        assert call["model"] == "prod-bert"
        assert call["version"] == "2"
        assert json.loads(call["body"])["inputs"][0]["name"] == "segment_ids"

    def test_grpc_transport(self, vocab: Vocabulary) -> None:
        transport = RecordingTransport()
        service = _service(vocab, transport="grpc", binary_output=True)
        assert service.infer(["hello"], transport) == "grpc-result"
        kind, call = transport.calls[0]
        assert kind == "grpc"
        assert call["outputs"][0].parameters.binary_data is True
        assert len(call["raw"].input_ids) == 6 * 4

    def test_transport_errors_propagate(self, vocab: Vocabulary) -> None:
        class Broken(RecordingTransport):
            def http_infer(self, body, model_name, model_version, items):
                raise ConnectionError("server down")

        with pytest.raises(ConnectionError):
            _service(vocab).infer(["hello"], Broken())

    def test_nothing_sent_for_bad_batch(self, vocab: Vocabulary) -> None:
        transport = RecordingTransport()
        with pytest.raises(EncodingError):
            _service(vocab).infer([], transport)
        assert transport.calls == []
