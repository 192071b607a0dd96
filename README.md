# udpcall

Building blocks for remote method calls over plain UDP sockets. A call
is a message that carries a class name, a method name, a version and
typed parameters, all encoded in XDR. A message is cut into numbered
fragments of at most 512 bytes, and each fragment is sent as its own
datagram. The receiving side joins the fragments back into the message.

## Install

```
pip install udpcall
```

## Modules

### `udpcall.xdr`

`XdrEncoder` has the methods `pack_char`, `pack_int`, `pack_long`,
`pack_float`, `pack_double`, `pack_string` and `pack_array(kind, values)`.
It collects the encoded values, and `getvalue()` returns them as bytes.
`XdrDecoder(data)` reads the same values back with the matching `unpack_*`
methods and `remaining()`. Values are big-endian in 4-byte units. A char
takes a full 4-byte word and a long takes 32 bits. Strings and arrays
carry a count in front of them. Strings are cut at the first NUL byte.
A char array is decoded as a `str`, and other arrays as a `list`. When
a value does not fit or the data is too short, these classes raise
`CodecError`, which is a subclass of `ValueError`.

### `udpcall.message`

A parameter is described by a one-letter kind:

- `c` is a char, `i` an int, `l` a long, `f` a float, `d` a double and `s` a string.
- `C`, `I`, `L`, `F` and `D` are arrays of those kinds.
- `S` takes no space on the wire.

The module provides:

- `MessageType`: `METHOD`, `REPLY` or `ERROR`.
- `Parameter(kind, value)`: one typed parameter. A plain `(kind, value)`
  tuple is accepted wherever a parameter is expected.
- `encode_method(class_name, method, version, params)`: builds a call message.
- `decode_message_type(data)`: returns the type of a message.
- `decode_method_header(data)`: returns a `MethodHeader` with
  `message_type`, `class_name`, `method`, `version` and `size`. `size` is
  the number of bytes the header took.
- `encode_parameters(encoder, params)` and
  `decode_parameters(decoder, signature)`: write and read typed parameters.
  A signature entry is either a kind letter or, for an array, a
  `(kind, length)` pair. Such an array may hold at most `length + 1`
  elements.
- `encoded_size(class_name, method, params)`: the buffer size a sender
  reserves for a call. It is an upper bound.
- `encode_fragment(identifier, number, payload)` and `decode_fragment(data)`:
  write and read the 8-byte fragment header.

### `udpcall.reply`

`encode_reply` and `decode_reply(data, signature)` carry the output
parameters of a call back to the caller. `encode_error` and
`decode_error` carry an error text instead. In an error message the
header's version word holds the length of the error text. If the message
type is not the one expected, the decoders raise `CodecError`.

### `udpcall.address`

`LogicalAddress(host, service, multicast)` is a host and a service.

- `make_address(host, service, multicast)` checks that the host resolves.
  An empty host stands for the local machine.
- `to_socket_address` turns a logical address into an `(ip, port)` pair.
  The service can be a service name or a number.
- `to_logical_address` goes the other way. It falls back to the dotted
  address and the port number when no name is known.
- `set_request_address` and `get_request_address` record and return where
  the request being served came from.
- Resolution failures raise `AddressError`.

### `udpcall.fragments`

`split_message(identifier, data)` yields `Fragment`s numbered from 1. All
of them fill a 512-byte datagram except the last, which is always present
and may be empty. `is_last_fragment(size)` tells whether a datagram of
that size ends a message. `Fragment.encode()` and `Fragment.decode()`
convert a fragment to and from a datagram.

### `udpcall.postoffice`

`PostOffice(send_buffer, receive_buffer)` holds up to 30 UDP mailboxes.

- `create(address)` binds a new mailbox on the address's service and
  joins the multicast group when the address asks for one. It returns the
  socket's descriptor.
- `assign(sock)` adopts a socket that is already open.
- `deposit(destination, data, mailbox)` sends a message as fragments.
  It pauses one second before every 100th fragment.
- `collect(mailbox, timeout)` reads one datagram. It returns
  `(mailbox index, sender, data)` when that datagram completes a message,
  and `None` on timeout or while the message is still partial.
- `has_mail()` and `has_mail_in(fileno)` look for a waiting datagram
  without reading it.
- `set_default`, `index_of`, `close_mailbox` and `close` manage the
  mailboxes.

`deposit` and `collect` take a mailbox index. The other methods take a
socket descriptor. The post office is a context manager that closes every
mailbox on exit. Failures raise `PostOfficeError`.

## Example

```python
from udpcall.address import make_address, to_socket_address
from udpcall.message import Parameter, encode_method
from udpcall.postoffice import PostOffice

with PostOffice() as office:
    office.create(make_address("", "0", False))
    server = to_socket_address(make_address("127.0.0.1", "3490", False))
    call = encode_method("EX3", "EX3_Count", 1, [Parameter("s", "EX1_SimpleMetodoIn")])
    office.deposit(server, call)
```

## What it does not do

The package encodes messages and moves them between mailboxes. It does
not include:

- a server loop that dispatches incoming calls to Python functions;
- a generator of client stubs;
- a wait for the reply to a call, or a timeout on that wait;
- acknowledgement or retransmission of lost fragments.

Those layers are up to the application that uses the package.

## Tests

```
pip install -e .[test]
pytest
```