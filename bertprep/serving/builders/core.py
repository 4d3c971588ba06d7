# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Request-shape strategies and their registry.

Different deployments of "a BERT model" disagree on details: the output
tensor names, whether outputs come back as binary, whether the server
should run top-k classification. Those choices live in small strategy
classes registered under a name, and the service config picks one by
that name:

    service:
      input_builder: bert
      output_builder: classification

Adding a new layout means subclassing InputSpecBuilder or
OutputSpecBuilder and calling register_*_builder once at import time.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from bertprep.serving.api.schema import (
    INPUT_IDS,
    INPUT_MASK,
    SEGMENT_IDS,
    InferInputTensor,
    InferRequestedOutput,
    OutputParameters,
)

logger = logging.getLogger(__name__)


class InputSpecBuilder(ABC):
    """Produces the input tensor descriptors for one request."""

    @abstractmethod
    def build(self, batch_size: int, max_seq_length: int, datatype: str) -> list[InferInputTensor]:
        """Return descriptors in the order the model declares its inputs."""


class OutputSpecBuilder(ABC):
    """Produces the requested-output descriptors for one request."""

    @abstractmethod
    def build(
        self,
        output_names: Sequence[str],
        binary_data: bool,
        top_k: int,
    ) -> list[InferRequestedOutput]:
        """Return one descriptor per requested output tensor."""


class BertInputSpecBuilder(InputSpecBuilder):
    """segment_ids, input_ids, input_mask: each [batch, max_seq_length]."""

    def build(self, batch_size: int, max_seq_length: int, datatype: str) -> list[InferInputTensor]:
        shape = [batch_size, max_seq_length]
        return [
            InferInputTensor(name=name, datatype=datatype, shape=list(shape))
            for name in (SEGMENT_IDS, INPUT_IDS, INPUT_MASK)
        ]


class LogitsOutputSpecBuilder(OutputSpecBuilder):
    """Raw output tensors; only the binary_data flag is set."""

    def build(
        self,
        output_names: Sequence[str],
        binary_data: bool,
        top_k: int,
    ) -> list[InferRequestedOutput]:
        return [
            InferRequestedOutput(name=name, parameters=OutputParameters(binary_data=binary_data))
            for name in output_names
        ]


class ClassificationOutputSpecBuilder(OutputSpecBuilder):
    """Asks the server for its top-k class labels instead of raw scores."""

    def build(
        self,
        output_names: Sequence[str],
        binary_data: bool,
        top_k: int,
    ) -> list[InferRequestedOutput]:
        if top_k < 1:
            raise ValueError(f"classification output needs top_k >= 1, got {top_k}")
        return [
            InferRequestedOutput(
                name=name,
                parameters=OutputParameters(binary_data=binary_data, classification=top_k),
            )
            for name in output_names
        ]


# ── Input Registry ──────────────────────────────────────────────────────────

_INPUT_REGISTRY: dict[str, type[InputSpecBuilder]] = {}


def register_input_builder(name: str, cls: type[InputSpecBuilder]) -> None:
    """
    Register an input spec builder under a unique name.

    Raises:
        ValueError: If `name` is already registered.
    """
    if name in _INPUT_REGISTRY:
        raise ValueError(
            f"Input builder '{name}' is already registered to {_INPUT_REGISTRY[name].__name__}"
        )
    _INPUT_REGISTRY[name] = cls
    logger.debug("registered_input_builder", extra={"name": name, "cls": cls.__name__})


def get_input_builder(name: str) -> InputSpecBuilder:
    """
    Instantiate the input builder registered as `name`.

    Raises:
        KeyError: If `name` is not registered.
    """
    if name not in _INPUT_REGISTRY:
        available = sorted(_INPUT_REGISTRY.keys())
        raise KeyError(f"Unknown input builder '{name}'. Available: {available}")
    return _INPUT_REGISTRY[name]()


def list_input_builders() -> list[str]:
    return sorted(_INPUT_REGISTRY.keys())


# ── Output Registry ─────────────────────────────────────────────────────────

_OUTPUT_REGISTRY: dict[str, type[OutputSpecBuilder]] = {}


def register_output_builder(name: str, cls: type[OutputSpecBuilder]) -> None:
    """
    Register an output spec builder under a unique name.

    Raises:
        ValueError: If `name` is already registered.
    """
    if name in _OUTPUT_REGISTRY:
        raise ValueError(
            f"Output builder '{name}' is already registered to {_OUTPUT_REGISTRY[name].__name__}"
        )
    _OUTPUT_REGISTRY[name] = cls
    logger.debug("registered_output_builder", extra={"name": name, "cls": cls.__name__})


def get_output_builder(name: str) -> OutputSpecBuilder:
    """
    Instantiate the output builder registered as `name`.

    Raises:
        KeyError: If `name` is not registered.
    """
    if name not in _OUTPUT_REGISTRY:
        available = sorted(_OUTPUT_REGISTRY.keys())
        raise KeyError(f"Unknown output builder '{name}'. Available: {available}")
    return _OUTPUT_REGISTRY[name]()


def list_output_builders() -> list[str]:
    return sorted(_OUTPUT_REGISTRY.keys())


# ── Builtin Registration ───────────────────────────────────────────────────

register_input_builder("bert", BertInputSpecBuilder)
register_output_builder("logits", LogitsOutputSpecBuilder)
register_output_builder("classification", ClassificationOutputSpecBuilder)
