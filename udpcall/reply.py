"""Reply and error messages sent back to the caller of a method.

A reply carries the same header as the call it answers: class, method
and version. The returned parameters follow it. An error message
carries the header and then a counted description of what went wrong.
"""

from __future__ import annotations

from typing import Any, Iterable

from udpcall.message import (
    MessageType,
    ParameterLike,
    SignatureItem,
    decode_method_header,
    decode_parameters,
    encode_parameters,
)
from udpcall.xdr import CodecError, XdrDecoder, XdrEncoder


def _wire_length(text: str | bytes) -> int:
    raw = text.encode("utf-8", "surrogateescape") if isinstance(text, str) else bytes(text)
    nul = raw.find(b"\0")
    return len(raw) if nul < 0 else nul


def _start(message_type: MessageType, class_name: str, method: str, version: int) -> XdrEncoder:
    encoder = XdrEncoder()
    encoder.pack_char(int(message_type))
    encoder.pack_string(class_name)
    encoder.pack_string(method)
    encoder.pack_int(version)
    return encoder


def _body(data: bytes, expected: MessageType) -> XdrDecoder:
    header = decode_method_header(data)
    if header.message_type is not expected:
        raise CodecError(
            f"expected a {expected.name} message, got {header.message_type.name}"
        )
    return XdrDecoder(bytes(data)[header.size:])


def encode_reply(
    class_name: str, method: str, version: int, params: Iterable[ParameterLike]
) -> bytes:
    """Build the reply to a method call, carrying its output parameters."""
    encoder = _start(MessageType.REPLY, class_name, method, version)
    encode_parameters(encoder, params)
    return encoder.getvalue()


def decode_reply(data: bytes, signature: Iterable[SignatureItem]) -> list[Any]:
    """Return the parameters of a reply, read as ``signature`` describes."""
    return decode_parameters(_body(data, MessageType.REPLY), signature)


def encode_error(class_name: str, method: str, version: int, error: str | bytes) -> bytes:
    """Build an error message answering a method call.

    The header's version word holds the length of the error text, which
    is how peers lay this message out; ``version`` must still be an int.
    """
    if not isinstance(version, int):
        raise CodecError(f"version must be an int: {version!r}")
    length = _wire_length(error)
    encoder = _start(MessageType.ERROR, class_name, method, length)
    encoder.pack_int(length)
    encoder.pack_string(error)
    return encoder.getvalue()


def decode_error(data: bytes) -> str:
    """Return the error text carried by an error message."""
    decoder = _body(data, MessageType.ERROR)
    decoder.unpack_int()
    return decoder.unpack_string()