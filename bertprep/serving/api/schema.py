# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Wire-level data structures for the inference server protocol.

Plain dataclasses, no pydantic: these are per-request runtime values, not
configuration. Field names follow the KServe v2 / Triton JSON protocol, so
`to_dict()` output can be serialized straight into a request body:

    {"inputs":  [{"name": ..., "shape": [...], "datatype": "INT32", "data": [[...]]}],
     "outputs": [{"name": ..., "parameters": {"binary_data": false}}]}
"""

from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional

from bertprep.features.builder.core import InputObject

INT32 = "INT32"
INT64 = "INT64"

SEGMENT_IDS = "segment_ids"
INPUT_IDS = "input_ids"
INPUT_MASK = "input_mask"


@dataclass(frozen=True)
class InferInputTensor:
    """Declared input tensor: what the server's model config expects."""

    name: str
    datatype: str
    shape: list[int]


@dataclass(frozen=True)
class OutputParameters:
    """Optional per-output knobs; unset values are left out of the body."""

    binary_data: Optional[bool] = None
    classification: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.binary_data is not None:
            params["binary_data"] = self.binary_data
        if self.classification is not None:
            params["classification"] = self.classification
        return params


@dataclass(frozen=True)
class InferRequestedOutput:
    """An output tensor the caller wants back."""

    name: str
    parameters: OutputParameters = field(default_factory=OutputParameters)


@dataclass(frozen=True)
class HTTPBatchInput:
    """One input tensor of the JSON body; `data` is [batch][sequence]."""

    name: str
    shape: list[int]
    datatype: str
    data: list[list[int]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "shape": list(self.shape),
            "datatype": self.datatype,
            "data": self.data,
        }


@dataclass(frozen=True)
class HTTPOutput:
    name: str
    parameters: OutputParameters

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "parameters": self.parameters.to_dict()}


@dataclass(frozen=True)
class HTTPRequestBody:
    inputs: list[HTTPBatchInput]
    outputs: list[HTTPOutput]

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputs": [tensor.to_dict() for tensor in self.inputs],
            "outputs": [output.to_dict() for output in self.outputs],
        }


class BinaryBuffers(NamedTuple):
    """Raw little-endian tensor contents, one buffer per BERT input."""

    segment_ids: bytes
    input_ids: bytes
    input_mask: bytes


@dataclass(frozen=True)
class HTTPRequest:
    """A JSON request ready for the transport, plus per-item metadata."""

    body: bytes
    items: list[InputObject]


@dataclass(frozen=True)
class GRPCRequest:
    """Tensor descriptors and raw buffers ready for the transport, plus metadata."""

    inputs: list[InferInputTensor]
    outputs: list[InferRequestedOutput]
    raw_inputs: BinaryBuffers
    items: list[InputObject]
