"""Logical addresses (host plus service) and their socket counterparts.

A logical address names a host and a service, the way an application
thinks of a peer. A socket address is the ``(ip, port)`` pair the
network layer uses. This module converts between the two and remembers
the address of the request currently being served.
"""

from __future__ import annotations

import re
import socket
from dataclasses import dataclass

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_UNSET_ADDRESS = ("0.0.0.0", 0)


class AddressError(OSError):
    """Raised when an address cannot be resolved or is malformed."""


@dataclass(frozen=True)
class LogicalAddress:
    """A host and a service, optionally on a multicast group."""

    host: str
    service: str
    multicast: bool = False


def _numeric_port(service: str) -> int:
    # Leading digits count, anything else reads as zero; the port keeps 16 bits.
    match = _LEADING_INT.match(service)
    value = int(match.group(1)) if match else 0
    return value % 65536


def _service_port(service: str) -> int:
    try:
        return socket.getservbyname(service, "udp")
    except (OSError, TypeError):
        return _numeric_port(service)


def _dotted(host: str) -> str | None:
    try:
        return socket.inet_ntoa(socket.inet_aton(host))
    except (OSError, ValueError, TypeError):
        return None


def to_socket_address(address: LogicalAddress) -> tuple[str, int]:
    """Resolve a logical address to an ``(ip, port)`` pair."""
    port = _service_port(address.service)
    ip = _dotted(address.host)
    if ip is None:
        try:
            ip = socket.gethostbyname(address.host)
        except (OSError, UnicodeError) as exc:
            raise AddressError(f"cannot resolve host {address.host!r}") from exc
    return ip, port


def to_logical_address(socket_address: tuple[str, int]) -> LogicalAddress:
    """Describe an ``(ip, port)`` pair by host name and service name.

    Where no name is known the dotted address or the port number is used.
    """
    ip, port = socket_address[0], socket_address[1]
    try:
        host = socket.gethostbyaddr(ip)[0]
    except (OSError, UnicodeError):
        host = ip
    try:
        service = socket.getservbyport(port, "udp")
    except (OSError, OverflowError, TypeError):
        service = str(port)
    return LogicalAddress(host, service, False)


def make_address(host: str | None, service: str, multicast: bool | int = False) -> LogicalAddress:
    """Build a logical address, checking that the host can be resolved.

    An empty or missing host stands for the local machine.
    """
    is_multicast = multicast == 1
    if not host:
        try:
            local_name = socket.gethostbyname_ex("localhost")[0]
        except OSError as exc:
            raise AddressError("cannot resolve the local host") from exc
        return LogicalAddress(local_name, service, is_multicast)
    if _dotted(host) is None:
        try:
            socket.gethostbyname(host)
        except (OSError, UnicodeError) as exc:
            raise AddressError(f"malformed or unknown host {host!r}") from exc
    return LogicalAddress(host, service, is_multicast)


class _RequestState:
    """Holds the address of the request being served."""

    def __init__(self) -> None:
        self.address: tuple[str, int] = _UNSET_ADDRESS


_request = _RequestState()


def set_request_address(socket_address: tuple[str, int]) -> None:
    """Record the address the current request came from."""
    _request.address = (socket_address[0], socket_address[1])


def get_request_address() -> tuple[str, int]:
    """Return the address the current request came from."""
    return _request.address