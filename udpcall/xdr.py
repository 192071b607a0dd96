"""External Data Representation (XDR) primitives.

Values are written big-endian in 4-byte units. Characters travel as a
full 4-byte integer. ``long`` values take 4 bytes on the wire. Strings
and variable-length arrays carry a 4-byte count in front of them.
"""

from __future__ import annotations

import struct
from typing import Any, Callable, Iterable

_UNIT = 4
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_UINT32_MAX = 2**32 - 1

ARRAY_KINDS = frozenset("cilfd")


class CodecError(ValueError):
    """Raised when a value cannot be encoded or a buffer cannot be decoded."""


def _padding(length: int) -> int:
    return (-length) % _UNIT


def _char_code(value: Any) -> int:
    if isinstance(value, str):
        if len(value) != 1:
            raise CodecError(f"a char must be one character, got {value!r}")
        code = ord(value)
    elif isinstance(value, (bytes, bytearray)):
        if len(value) != 1:
            raise CodecError(f"a char must be one byte, got {value!r}")
        code = value[0]
    elif isinstance(value, int):
        code = value
    else:
        raise CodecError(f"cannot encode {value!r} as a char")
    if not -128 <= code <= 255:
        raise CodecError(f"char value out of range: {value!r}")
    # Chars are signed: bytes above 127 travel as negative integers.
    code &= 0xFF
    return code - 256 if code > 127 else code


def _string_bytes(value: str | bytes) -> bytes:
    raw = value.encode("utf-8", "surrogateescape") if isinstance(value, str) else bytes(value)
    # A C string ends at its first NUL; anything after it is never sent.
    nul = raw.find(b"\0")
    return raw if nul < 0 else raw[:nul]


class XdrEncoder:
    """Accumulates XDR-encoded values into a byte buffer."""

    def __init__(self) -> None:
        self._parts: list[bytes] = []

    def _pack(self, fmt: str, value: Any) -> None:
        try:
            self._parts.append(struct.pack(fmt, value))
        except (struct.error, OverflowError) as exc:
            raise CodecError(f"cannot encode {value!r}: {exc}") from exc

    def pack_char(self, value: Any) -> None:
        """Encode one character as a 4-byte signed integer."""
        self._pack(">i", _char_code(value))

    def pack_int(self, value: int) -> None:
        """Encode a 32-bit signed integer."""
        if not isinstance(value, int) or not _INT32_MIN <= value <= _INT32_MAX:
            raise CodecError(f"int out of 32-bit range: {value!r}")
        self._pack(">i", value)

    def pack_long(self, value: int) -> None:
        """Encode a long, which XDR carries in 32 bits."""
        if not isinstance(value, int) or not _INT32_MIN <= value <= _INT32_MAX:
            raise CodecError(f"long does not fit in 32 bits: {value!r}")
        self._pack(">i", value)

    def pack_float(self, value: float) -> None:
        """Encode a single-precision IEEE float."""
        self._pack(">f", float(value))

    def pack_double(self, value: float) -> None:
        """Encode a double-precision IEEE float."""
        self._pack(">d", float(value))

    def pack_string(self, value: str | bytes) -> None:
        """Encode a counted string padded to a 4-byte boundary."""
        raw = _string_bytes(value)
        self._pack(">I", len(raw))
        self._parts.append(raw + b"\0" * _padding(len(raw)))

    def pack_array(self, kind: str, values: Iterable[Any]) -> None:
        """Encode a counted array whose elements are of the given kind.

        ``kind`` is one of ``c`` (char), ``i`` (int), ``l`` (long),
        ``f`` (float) or ``d`` (double).
        """
        packer = self._element_packer(kind)
        items = list(values)
        if len(items) > _UINT32_MAX:
            raise CodecError("array too long")
        self._pack(">I", len(items))
        for item in items:
            packer(item)

    def _element_packer(self, kind: str) -> Callable[[Any], None]:
        packers = {
            "c": self.pack_char,
            "i": self.pack_int,
            "l": self.pack_long,
            "f": self.pack_float,
            "d": self.pack_double,
        }
        try:
            return packers[kind]
        except KeyError:
            raise CodecError(f"unknown array element kind: {kind!r}") from None

    def getvalue(self) -> bytes:
        """Return everything encoded so far."""
        return b"".join(self._parts)

    def __len__(self) -> int:
        return sum(len(part) for part in self._parts)


class XdrDecoder:
    """Reads XDR-encoded values from a byte buffer in order."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def _take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise CodecError(
                f"buffer exhausted: need {count} bytes, {self.remaining()} left"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _unpack(self, fmt: str) -> Any:
        return struct.unpack(fmt, self._take(struct.calcsize(fmt)))[0]

    def unpack_char(self) -> str:
        """Decode one character; only the low byte of the integer is kept."""
        return chr(self._unpack(">i") & 0xFF)

    def unpack_int(self) -> int:
        """Decode a 32-bit signed integer."""
        return self._unpack(">i")

    def unpack_long(self) -> int:
        """Decode a long carried in 32 bits."""
        return self._unpack(">i")

    def unpack_float(self) -> float:
        """Decode a single-precision IEEE float."""
        return self._unpack(">f")

    def unpack_double(self) -> float:
        """Decode a double-precision IEEE float."""
        return self._unpack(">d")

    def unpack_string(self) -> str:
        """Decode a counted, padded string."""
        length = self._unpack(">I")
        raw = self._take(length)
        self._take(_padding(length))
        return raw.decode("utf-8", "surrogateescape")

    def unpack_array(self, kind: str, max_length: int | None = None) -> list[Any] | str:
        """Decode a counted array of the given element kind.

        Char arrays come back as a string, other kinds as a list. A count
        above ``max_length`` is an error.
        """
        unpackers = {
            "c": self.unpack_char,
            "i": self.unpack_int,
            "l": self.unpack_long,
            "f": self.unpack_float,
            "d": self.unpack_double,
        }
        try:
            unpacker = unpackers[kind]
        except KeyError:
            raise CodecError(f"unknown array element kind: {kind!r}") from None
        count = self._unpack(">I")
        if max_length is not None and count > max_length:
            raise CodecError(f"array of {count} elements exceeds limit {max_length}")
        items = [unpacker() for _ in range(count)]
        return "".join(items) if kind == "c" else items

    def remaining(self) -> int:
        """Number of bytes not yet read."""
        return len(self._data) - self._pos

    @property
    def position(self) -> int:
        """Number of bytes read so far."""
        return self._pos