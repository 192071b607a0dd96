"""A post office of UDP mailboxes.

Each mailbox is a datagram socket. Messages are posted as numbered
fragments and put back together on arrival; a message is handed over
once its last, shorter fragment has come in.
"""

from __future__ import annotations

import contextlib
import select
import socket
import time
from typing import Any

from udpcall.address import LogicalAddress, to_socket_address
from udpcall.fragments import MAX_DATAGRAM, Fragment, is_last_fragment, split_message
from udpcall.xdr import CodecError

MAX_MAILBOXES = 30
"""Number of mailboxes one post office can hold."""

DEFAULT_BUFFER = 5000
"""Default size of the socket send and receive buffers."""

_MAX_IDENTIFIER = 2**31 - 1
_PAUSE_EVERY = 100


class PostOfficeError(OSError):
    """Raised when a mailbox cannot be created, used or read."""


class PostOffice:
    """Sends and receives fragmented messages through UDP mailboxes.

    Mailboxes are addressed in two ways, as the underlying calls need:
    ``deposit`` and ``collect`` take the mailbox index, the other
    methods take the socket's file descriptor.
    """

    def __init__(self, send_buffer: int = DEFAULT_BUFFER, receive_buffer: int = DEFAULT_BUFFER) -> None:
        self.send_buffer = send_buffer
        self.receive_buffer = receive_buffer
        self._mailboxes: list[socket.socket | None] = []
        self._default = 0
        self._identifier = 0
        self._pending: dict[tuple[int, Any, int], list[bytes]] = {}

    # -- mailbox management -------------------------------------------------

    def _check_room(self) -> None:
        if len(self._mailboxes) >= MAX_MAILBOXES:
            raise PostOfficeError(f"no room for more than {MAX_MAILBOXES} mailboxes")

    def create(self, address: LogicalAddress) -> int:
        """Open a mailbox listening on the address's service; return its descriptor."""
        self._check_room()
        port = to_socket_address(LogicalAddress("0.0.0.0", address.service))[1]
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            if address.multicast:
                try:
                    group = socket.inet_aton(address.host)
                except (OSError, TypeError) as exc:
                    raise PostOfficeError(f"bad multicast address {address.host!r}") from exc
                membership = group + socket.inet_aton("0.0.0.0")
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
                # What we send ourselves is of no interest.
                with contextlib.suppress(OSError):
                    sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 0)
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, self.send_buffer)
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, self.receive_buffer)
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                with contextlib.suppress(OSError):
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.bind(("", port))
        except PostOfficeError:
            sock.close()
            raise
        except OSError as exc:
            sock.close()
            raise PostOfficeError(f"cannot open mailbox on service {address.service!r}") from exc
        self._mailboxes.append(sock)
        return sock.fileno()

    def assign(self, sock: socket.socket) -> int:
        """Adopt an already open datagram socket as a mailbox; return its index."""
        self._check_room()
        self._mailboxes.append(sock)
        return len(self._mailboxes) - 1

    def close(self) -> None:
        """Close every mailbox."""
        for index, sock in enumerate(self._mailboxes):
            if sock is not None:
                sock.close()
                self._mailboxes[index] = None
        self._pending.clear()

    def close_mailbox(self, fileno: int) -> None:
        """Close the mailbox whose socket has the given descriptor."""
        for index, sock in enumerate(self._mailboxes):
            if sock is not None and sock.fileno() == fileno:
                sock.close()
                self._mailboxes[index] = None
                self._pending = {k: v for k, v in self._pending.items() if k[0] != index}

    def set_default(self, fileno: int | None) -> None:
        """Choose the mailbox used for sending; ``None`` or negative picks the first."""
        if fileno is None or fileno < 0:
            self._default = 0
            return
        self._default = self.index_of(fileno)

    def index_of(self, fileno: int) -> int:
        """Return the index of the open mailbox with the given descriptor."""
        for index, sock in enumerate(self._mailboxes):
            if sock is not None and sock.fileno() == fileno:
                return index
        raise PostOfficeError(f"no mailbox with descriptor {fileno}")

    def _socket_at(self, index: int) -> socket.socket:
        if not 0 <= index < len(self._mailboxes) or self._mailboxes[index] is None:
            raise PostOfficeError(f"no open mailbox at index {index}")
        return self._mailboxes[index]  # type: ignore[return-value]

    # -- sending ------------------------------------------------------------

    def _next_identifier(self) -> int:
        self._identifier = self._identifier % _MAX_IDENTIFIER + 1
        return self._identifier

    def deposit(self, destination: tuple[str, int], data: bytes, mailbox: int | None = None) -> None:
        """Send ``data`` to ``destination`` as numbered fragments.

        ``mailbox`` is the index of the mailbox to send from; ``None`` or a
        negative value means the default one.
        """
        index = self._default if mailbox is None or mailbox < 0 else mailbox
        sock = self._socket_at(index)
        identifier = self._next_identifier()
        for fragment in split_message(identifier, data):
            if fragment.number % _PAUSE_EVERY == 0:
                time.sleep(1)
            datagram = fragment.encode()
            try:
                sent = sock.sendto(datagram, destination)
            except OSError as exc:
                raise PostOfficeError(f"cannot send to {destination!r}") from exc
            if sent != len(datagram):
                raise PostOfficeError(f"sent {sent} of {len(datagram)} bytes to {destination!r}")

    # -- receiving ----------------------------------------------------------

    def collect(
        self, mailbox: int | None = None, timeout: float | None = None
    ) -> tuple[int, tuple[str, int], bytes] | None:
        """Read one fragment and return a message if it completes one.

        Waits on the mailbox at index ``mailbox``, or on all of them when it
        is ``None`` or negative, for at most ``timeout`` seconds (forever if
        ``None``). Returns ``(mailbox index, sender, data)`` once a message is
        complete, ``None`` on timeout or while a message is still partial.
        """
        if mailbox is None or mailbox < 0:
            watched = [(i, s) for i, s in enumerate(self._mailboxes) if s is not None]
        else:
            watched = [(mailbox, self._socket_at(mailbox))]
        if not watched:
            raise PostOfficeError("no open mailbox to collect from")
        try:
            ready, _, _ = select.select([s for _, s in watched], [], [], timeout)
        except (OSError, ValueError) as exc:
            raise PostOfficeError("waiting for mail failed") from exc
        for index, sock in watched:
            if sock in ready:
                try:
                    datagram, sender = sock.recvfrom(MAX_DATAGRAM)
                except OSError as exc:
                    raise PostOfficeError("cannot read from mailbox") from exc
                return self._file(index, sender, datagram)
        return None

    def _file(
        self, index: int, sender: tuple[str, int], datagram: bytes
    ) -> tuple[int, tuple[str, int], bytes] | None:
        try:
            fragment = Fragment.decode(datagram)
        except CodecError as exc:
            raise PostOfficeError(f"malformed fragment from {sender!r}") from exc
        key = (index, sender, fragment.identifier)
        if fragment.number == 1:
            parts: list[bytes] = []
        else:
            pending = self._pending.get(key)
            if pending is None or len(pending) + 1 != fragment.number:
                self._pending.pop(key, None)
                raise PostOfficeError(
                    f"fragment {fragment.number} of message {fragment.identifier} out of sequence"
                )
            parts = pending
        parts.append(fragment.payload)
        if is_last_fragment(len(datagram)):
            self._pending.pop(key, None)
            return index, sender, b"".join(parts)
        self._pending[key] = parts
        return None

    @staticmethod
    def _peek(sock: socket.socket) -> bool:
        previous = sock.gettimeout()
        try:
            sock.setblocking(False)
            data = sock.recv(MAX_DATAGRAM, socket.MSG_PEEK)
        except OSError:
            return False
        finally:
            with contextlib.suppress(OSError):
                sock.settimeout(previous)
        return len(data) > 0

    def has_mail(self) -> bool:
        """Tell whether any mailbox has a datagram waiting, without reading it."""
        return any(self._peek(sock) for sock in self._mailboxes if sock is not None)

    def has_mail_in(self, fileno: int) -> bool:
        """Tell whether the mailbox with the given descriptor has a datagram waiting."""
        return self._peek(self._socket_at(self.index_of(fileno)))

    # -- context management -------------------------------------------------

    def __enter__(self) -> "PostOffice":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()