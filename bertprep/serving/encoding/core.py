# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tensor encoding: the two wire formats for a batch of InputFeatures.

JSON (HTTP path)
    Features come out of the builder as [batch][kind][sequence], with the
    kinds ordered (type_ids, token_ids, mask). The JSON body wants one
    entry per tensor, so the batch is transposed to [kind][batch][sequence]
    and the i-th declared input tensor receives the i-th kind.

Binary (gRPC path)
    Each declared tensor name selects one feature array:

        segment_ids -> type_ids
        input_ids   -> token_ids
        input_mask  -> mask

    and is packed as little-endian INT32 or INT64, max_seq_length values per
    item, items concatenated in the order the caller supplied them. A
    buffer for N items is N * max_seq_length * width bytes.

Both encoders refuse to produce an empty or partial payload; they raise
EncodingError instead of handing the transport something it can't send.
"""

import json
import logging
import struct
from collections.abc import Sequence

import torch

from bertprep.features.builder.core import InputFeature
from bertprep.logging.logger import get_logger
from bertprep.serving.api.schema import (
    INPUT_IDS,
    INPUT_MASK,
    INT32,
    INT64,
    SEGMENT_IDS,
    BinaryBuffers,
    HTTPBatchInput,
    HTTPOutput,
    HTTPRequestBody,
    InferInputTensor,
    InferRequestedOutput,
)
from bertprep.serving.exceptions import EncodingError, UnsupportedDatatypeError

logger: logging.Logger = get_logger(__name__)

# struct format character and byte width per wire datatype.
_STRUCT_FORMATS: dict[str, tuple[str, int]] = {
    INT32: ("i", 4),
    INT64: ("q", 8),
}

_TORCH_DTYPES: dict[str, torch.dtype] = {
    INT32: torch.int32,
    INT64: torch.int64,
}

# Position of each kind in feature_kinds() output; also the binary tensor names.
FEATURE_KIND_NAMES: tuple[str, ...] = (SEGMENT_IDS, INPUT_IDS, INPUT_MASK)


def datatype_width(datatype: str) -> int:
    """Bytes per element for a wire datatype."""
    if datatype not in _STRUCT_FORMATS:
        raise UnsupportedDatatypeError(datatype)
    return _STRUCT_FORMATS[datatype][1]


def pack_little_endian(
    values: Sequence[int],
    datatype: str,
    length: int | None = None,
    tensor_name: str = "",
) -> bytes:
    """
    Pack the first `length` values as little-endian integers.

    Raises:
        UnsupportedDatatypeError: For anything but INT32 / INT64.
        EncodingError: If fewer than `length` values are available.
    """
    if datatype not in _STRUCT_FORMATS:
        raise UnsupportedDatatypeError(datatype, tensor_name)
    fmt, _ = _STRUCT_FORMATS[datatype]

    count = len(values) if length is None else length
    if count > len(values):
        raise EncodingError(
            f"Cannot pack {count} values for '{tensor_name}', only {len(values)} available"
        )
    return struct.pack(f"<{count}{fmt}", *values[:count])


def feature_kinds(feature: InputFeature) -> list[list[int]]:
    """The per-item [type_ids, token_ids, mask] triple."""
    return [feature.type_ids, feature.token_ids, feature.mask]


def transpose_batch(items: Sequence[Sequence[Sequence[int]]]) -> list[list[list[int]]]:
    """
    Reorder [batch][kind][sequence] into [kind][batch][sequence].

    Every item must carry the same number of kinds. Sequences are copied,
    not shared, so mutating the result leaves the features untouched.
    """
    if not items:
        return []
    kind_count = len(items[0])
    for index, item in enumerate(items):
        if len(item) != kind_count:
            raise EncodingError(
                f"Batch item {index} has {len(item)} tensors, expected {kind_count}"
            )
    return [[list(item[kind]) for item in items] for kind in range(kind_count)]


def _require_batch(features: Sequence[InputFeature]) -> None:
    if not features:
        raise EncodingError("Cannot encode an empty batch")


def encode_http_inputs(
    features: Sequence[InputFeature],
    inputs: Sequence[InferInputTensor],
) -> list[HTTPBatchInput]:
    """
    Build the "inputs" section of the JSON body.

    Descriptors are matched to feature kinds by position, mirroring the
    order the model's config.pbtxt declares its inputs in.
    """
    _require_batch(features)
    if not inputs:
        raise EncodingError("No input tensor descriptors supplied")
    if len(inputs) > len(FEATURE_KIND_NAMES):
        raise EncodingError(
            f"{len(inputs)} input tensors declared but only "
            f"{len(FEATURE_KIND_NAMES)} feature arrays exist"
        )

    transposed = transpose_batch([feature_kinds(feature) for feature in features])
    return [
        HTTPBatchInput(
            name=tensor.name,
            shape=list(tensor.shape),
            datatype=tensor.datatype,
            data=transposed[index],
        )
        for index, tensor in enumerate(inputs)
    ]


def encode_http_outputs(outputs: Sequence[InferRequestedOutput]) -> list[HTTPOutput]:
    """The "outputs" section: names and parameters, passed through unchanged."""
    return [HTTPOutput(name=output.name, parameters=output.parameters) for output in outputs]


def encode_http_body(
    features: Sequence[InputFeature],
    inputs: Sequence[InferInputTensor],
    outputs: Sequence[InferRequestedOutput],
) -> bytes:
    """Serialize the full JSON request body."""
    body = HTTPRequestBody(
        inputs=encode_http_inputs(features, inputs),
        outputs=encode_http_outputs(outputs),
    )
    payload = json.dumps(body.to_dict(), separators=(",", ":")).encode("utf-8")
    logger.debug(
        "Encoded HTTP body",
        extra={"batch_size": len(features), "tensors": len(inputs), "bytes": len(payload)},
    )
    return payload


def _select_array(feature: InputFeature, tensor_name: str) -> list[int]:
    if tensor_name == SEGMENT_IDS:
        return feature.type_ids
    if tensor_name == INPUT_IDS:
        return feature.token_ids
    return feature.mask


def encode_binary(
    features: Sequence[InputFeature],
    inputs: Sequence[InferInputTensor],
) -> BinaryBuffers:
    """
    Pack the batch into the three raw input buffers.

    Items are appended in caller order, so item 0 occupies the first
    max_seq_length elements of every buffer. Descriptors whose name is not
    one of the three BERT inputs are skipped.

    Raises:
        EncodingError: Empty batch, no descriptors, or a BERT input missing.
        UnsupportedDatatypeError: A BERT input declared something other
            than INT32 / INT64.
    """
    _require_batch(features)
    if not inputs:
        raise EncodingError("No input tensor descriptors supplied")

    buffers: dict[str, bytearray] = {}
    for tensor in inputs:
        if tensor.name not in FEATURE_KIND_NAMES:
            logger.debug("Skipping unknown input tensor", extra={"tensor": tensor.name})
            continue
        if tensor.datatype not in _STRUCT_FORMATS:
            raise UnsupportedDatatypeError(tensor.datatype, tensor.name)

        buffer = bytearray()
        for feature in features:
            buffer += pack_little_endian(
                _select_array(feature, tensor.name),
                tensor.datatype,
                length=feature.length,
                tensor_name=tensor.name,
            )
        buffers[tensor.name] = buffer

    missing = [name for name in FEATURE_KIND_NAMES if name not in buffers]
    if missing:
        raise EncodingError(f"Missing input tensor descriptors: {', '.join(missing)}")

    logger.debug(
        "Encoded binary buffers",
        extra={"batch_size": len(features), "bytes": {name: len(buf) for name, buf in buffers.items()}},
    )
    return BinaryBuffers(
        segment_ids=bytes(buffers[SEGMENT_IDS]),
        input_ids=bytes(buffers[INPUT_IDS]),
        input_mask=bytes(buffers[INPUT_MASK]),
    )


def features_to_tensors(
    features: Sequence[InputFeature],
    datatype: str = INT64,
) -> dict[str, torch.Tensor]:
    """
    Stack the batch into [batch, max_seq_length] torch tensors keyed by input name.

    Handy when the model runs in-process instead of behind a server.
    """
    _require_batch(features)
    if datatype not in _TORCH_DTYPES:
        raise UnsupportedDatatypeError(datatype)
    dtype = _TORCH_DTYPES[datatype]
    return {
        name: torch.tensor([_select_array(feature, name) for feature in features], dtype=dtype)
        for name in FEATURE_KIND_NAMES
    }
