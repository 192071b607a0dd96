"""Method-call messages and the header carried by every fragment.

A method message starts with its type and a header naming the class,
the method and the version, followed by the parameters. Each parameter
is described by a one-letter kind:

``c`` char, ``i`` int, ``l`` long, ``f`` float, ``d`` double,
``s`` string, ``C``/``I``/``L``/``F``/``D`` arrays of those, and ``S``,
which occupies no space on the wire.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Union

from udpcall.xdr import CodecError, XdrDecoder, XdrEncoder

FRAGMENT_HEADER_SIZE = 8
"""Bytes taken by a fragment's identifier and number."""

_ARRAY_ELEMENTS = {"C": "c", "I": "i", "L": "l", "F": "f", "D": "d"}
_SCALAR_KINDS = frozenset("cilfd")
KINDS = frozenset(_SCALAR_KINDS | {"s", "S"} | set(_ARRAY_ELEMENTS))

_SCALAR_PACKERS: dict[str, Callable[[XdrEncoder, Any], None]] = {
    "c": XdrEncoder.pack_char,
    "i": XdrEncoder.pack_int,
    "l": XdrEncoder.pack_long,
    "f": XdrEncoder.pack_float,
    "d": XdrEncoder.pack_double,
}

_SCALAR_UNPACKERS: dict[str, Callable[[XdrDecoder], Any]] = {
    "c": XdrDecoder.unpack_char,
    "i": XdrDecoder.unpack_int,
    "l": XdrDecoder.unpack_long,
    "f": XdrDecoder.unpack_float,
    "d": XdrDecoder.unpack_double,
}


class MessageType(enum.IntEnum):
    """Kind of message that travels between peers."""

    METHOD = 1
    REPLY = 2
    ERROR = 3


@dataclass(frozen=True)
class Parameter:
    """One typed parameter of a method call or reply."""

    kind: str
    value: Any = None

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise CodecError(f"unknown parameter kind: {self.kind!r}")


@dataclass(frozen=True)
class MethodHeader:
    """Decoded header of a method, reply or error message.

    ``size`` is the number of bytes the header took, type word included.
    """

    message_type: MessageType
    class_name: str
    method: str
    version: int
    size: int


ParameterLike = Union[Parameter, "tuple[str, Any]"]
SignatureItem = Union[str, "tuple[str, int]"]


def _wire_bytes(value: str | bytes) -> bytes:
    raw = value.encode("utf-8", "surrogateescape") if isinstance(value, str) else bytes(value)
    nul = raw.find(b"\0")
    return raw if nul < 0 else raw[:nul]


def _as_parameter(item: ParameterLike) -> Parameter:
    if isinstance(item, Parameter):
        return item
    try:
        kind, value = item
    except (TypeError, ValueError):
        raise CodecError(f"not a parameter: {item!r}") from None
    return Parameter(kind, value)


def _name_size(length: int) -> int:
    # Space the sender reserves for a counted name, count included.
    return 4 + (length + (4 - length % 4) + 4 if length >= 4 else 4)


def encoded_size(class_name: str, method: str, params: Iterable[ParameterLike]) -> int:
    """Upper bound on the bytes a method message takes, as the sender reserves it."""
    size = 4
    size += _name_size(len(_wire_bytes(class_name)))
    size += _name_size(len(_wire_bytes(method)))
    size += 4
    for item in params:
        param = _as_parameter(item)
        kind = param.kind
        if kind in ("c", "i", "l", "f"):
            size += 4
        elif kind == "d":
            size += 8
        elif kind == "s":
            length = len(_wire_bytes(param.value))
            size += 4 + (length + (4 - length % 4) + 4 if length >= 4 else 8)
        elif kind == "D":
            size += 4 + 8 * len(param.value)
        elif kind in _ARRAY_ELEMENTS:
            size += 4 + 4 * len(param.value)
    return size


def encode_parameters(encoder: XdrEncoder, params: Iterable[ParameterLike]) -> None:
    """Append the given parameters to ``encoder`` in order."""
    for item in params:
        param = _as_parameter(item)
        kind = param.kind
        if kind == "S":
            continue
        if kind == "s":
            raw = _wire_bytes(param.value)
            encoder.pack_int(len(raw))
            encoder.pack_string(raw)
        elif kind in _ARRAY_ELEMENTS:
            encoder.pack_array(_ARRAY_ELEMENTS[kind], param.value)
        else:
            _SCALAR_PACKERS[kind](encoder, param.value)


def _signature_entry(item: SignatureItem) -> tuple[str, int | None]:
    if isinstance(item, str):
        kind, length = item, None
    else:
        try:
            kind, length = item
        except (TypeError, ValueError):
            raise CodecError(f"not a signature entry: {item!r}") from None
        if not isinstance(length, int) or length < 0:
            raise CodecError(f"array length must be a non-negative int: {length!r}")
    if kind not in KINDS:
        raise CodecError(f"unknown parameter kind: {kind!r}")
    return kind, length


def decode_parameters(decoder: XdrDecoder, signature: Iterable[SignatureItem]) -> list[Any]:
    """Read parameters from ``decoder`` as described by ``signature``.

    Each entry is a kind letter, or for arrays a ``(kind, length)`` pair;
    an array then may hold at most ``length + 1`` elements. ``S`` entries
    read nothing and yield ``None``.
    """
    values: list[Any] = []
    for item in signature:
        kind, length = _signature_entry(item)
        if kind == "S":
            values.append(None)
        elif kind == "s":
            decoder.unpack_int()
            values.append(decoder.unpack_string())
        elif kind in _ARRAY_ELEMENTS:
            limit = None if length is None else length + 1
            values.append(decoder.unpack_array(_ARRAY_ELEMENTS[kind], limit))
        else:
            values.append(_SCALAR_UNPACKERS[kind](decoder))
    return values


def _header_encoder(
    message_type: MessageType, class_name: str, method: str, version: int
) -> XdrEncoder:
    encoder = XdrEncoder()
    encoder.pack_char(int(message_type))
    encoder.pack_string(class_name)
    encoder.pack_string(method)
    encoder.pack_int(version)
    return encoder


def _to_message_type(code: int) -> MessageType:
    try:
        return MessageType(code & 0xFF)
    except ValueError:
        raise CodecError(f"unknown message type: {code}") from None


def _read_header(decoder: XdrDecoder) -> MethodHeader:
    message_type = _to_message_type(decoder.unpack_int())
    class_name = decoder.unpack_string()
    method = decoder.unpack_string()
    version = decoder.unpack_int()
    return MethodHeader(message_type, class_name, method, version, decoder.position)


def encode_method(
    class_name: str, method: str, version: int, params: Iterable[ParameterLike]
) -> bytes:
    """Build a method-call message."""
    encoder = _header_encoder(MessageType.METHOD, class_name, method, version)
    encode_parameters(encoder, params)
    return encoder.getvalue()


def decode_message_type(data: bytes) -> MessageType:
    """Return the type of the message in ``data``."""
    return _to_message_type(XdrDecoder(data).unpack_int())


def decode_method_header(data: bytes) -> MethodHeader:
    """Decode the type and header at the start of ``data``."""
    return _read_header(XdrDecoder(data))


def encode_fragment(identifier: int, number: int, payload: bytes) -> bytes:
    """Prefix ``payload`` with the message identifier and fragment number."""
    encoder = XdrEncoder()
    encoder.pack_long(identifier)
    encoder.pack_long(number)
    return encoder.getvalue() + bytes(payload)


def decode_fragment(data: bytes) -> tuple[int, int, bytes]:
    """Split a fragment into its identifier, number and payload."""
    if len(data) < FRAGMENT_HEADER_SIZE:
        raise CodecError(f"fragment of {len(data)} bytes is shorter than its header")
    decoder = XdrDecoder(data[:FRAGMENT_HEADER_SIZE])
    identifier = decoder.unpack_long()
    number = decoder.unpack_long()
    return identifier, number, bytes(data[FRAGMENT_HEADER_SIZE:])