# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Errors raised while turning a batch of texts into a request payload.

These are per-request problems: the caller can fix the input (shorter
text, correct tensor descriptors) and try again. Nothing here is fatal to
the process.
"""


class EncodingError(Exception):
    """
    The batch cannot be encoded into a usable payload: empty batch, no
    tensor descriptors, descriptors that don't match the feature arrays,
    or an input text over the configured length ceiling.
    """


class UnsupportedDatatypeError(EncodingError):
    """A tensor declared a datatype other than INT32 or INT64."""

    def __init__(self, datatype: str, tensor_name: str = "") -> None:
        target = f" for tensor '{tensor_name}'" if tensor_name else ""
        super().__init__(
            f"Unsupported tensor datatype '{datatype}'{target}; expected INT32 or INT64"
        )
        self.datatype = datatype
        self.tensor_name = tensor_name
