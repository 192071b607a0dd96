"""Splitting messages into datagram-sized fragments.

Every fragment carries the message identifier and its own number,
counted from 1. All fragments but the last fill a datagram exactly, so
a datagram of any other size marks the end of a message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from udpcall.message import FRAGMENT_HEADER_SIZE, decode_fragment, encode_fragment

MAX_DATAGRAM = 512
"""Size of a full fragment on the wire."""

FRAGMENT_PAYLOAD = MAX_DATAGRAM - FRAGMENT_HEADER_SIZE
"""Message bytes carried by a full fragment."""


@dataclass(frozen=True)
class Fragment:
    """One numbered piece of a message."""

    identifier: int
    number: int
    payload: bytes

    @property
    def size(self) -> int:
        """Bytes the fragment takes as a datagram."""
        return FRAGMENT_HEADER_SIZE + len(self.payload)

    def encode(self) -> bytes:
        """Return the datagram for this fragment."""
        return encode_fragment(self.identifier, self.number, self.payload)

    @classmethod
    def decode(cls, data: bytes) -> "Fragment":
        """Read a fragment from a datagram."""
        identifier, number, payload = decode_fragment(data)
        return cls(identifier, number, payload)


def split_message(identifier: int, data: bytes) -> Iterator[Fragment]:
    """Yield the fragments that carry ``data``.

    Full fragments come first; a final, shorter fragment always follows,
    even when it carries no bytes.
    """
    data = bytes(data)
    number = 1
    sent = 0
    while len(data) - sent >= FRAGMENT_PAYLOAD:
        yield Fragment(identifier, number, data[sent:sent + FRAGMENT_PAYLOAD])
        sent += FRAGMENT_PAYLOAD
        number += 1
    yield Fragment(identifier, number, data[sent:])


def is_last_fragment(size: int) -> bool:
    """Tell whether a datagram of ``size`` bytes ends a message."""
    return 0 < size != MAX_DATAGRAM