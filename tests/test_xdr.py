import math

import pytest

from udpcall.xdr import CodecError, XdrDecoder, XdrEncoder


def encode(method, *args):
    enc = XdrEncoder()
    getattr(enc, method)(*args)
    return enc.getvalue()


def test_int_wire_bytes():
    assert encode("pack_int", 1) == b"\x00\x00\x00\x01"


def test_string_wire_bytes_are_padded():
    assert encode("pack_string", "abc") == b"\x00\x00\x00\x03abc\x00"


def test_char_takes_four_bytes():
    data = encode("pack_char", "a")
    assert len(data) == 4
    assert XdrDecoder(data).unpack_char() == "a"


def test_high_char_round_trip():
    data = encode("pack_char", "\xe9")
    assert XdrDecoder(data).unpack_int() < 0
    assert XdrDecoder(data).unpack_char() == "\xe9"


@pytest.mark.parametrize("value", [0, -1, 2**31 - 1, -(2**31)])
def test_int_round_trip(value):
    dec = XdrDecoder(encode("pack_int", value))
    assert dec.unpack_int() == value
    assert dec.remaining() == 0


@pytest.mark.parametrize("value", [2**31, -(2**31) - 1])
def test_int_out_of_range(value):
    with pytest.raises(CodecError):
        XdrEncoder().pack_int(value)


def test_long_limited_to_32_bits():
    assert XdrDecoder(encode("pack_long", 2**31 - 1)).unpack_long() == 2**31 - 1
    with pytest.raises(CodecError):
        XdrEncoder().pack_long(2**63 - 1)


def test_float_round_trip_and_size():
    data = encode("pack_float", 1.5)
    assert len(data) == 4
    assert XdrDecoder(data).unpack_float() == 1.5


def test_float_overflow():
    with pytest.raises(CodecError):
        XdrEncoder().pack_float(1e300)


def test_double_round_trip_and_size():
    data = encode("pack_double", 4294967295.3333)
    assert len(data) == 8
    assert XdrDecoder(data).unpack_double() == 4294967295.3333


@pytest.mark.parametrize("text", ["", "a", "abcd", "HELLO", "EX1_SimpleMetodoIn"])
def test_string_round_trip_is_aligned(text):
    data = encode("pack_string", text)
    assert len(data) % 4 == 0
    dec = XdrDecoder(data)
    assert dec.unpack_string() == text
    assert dec.remaining() == 0


def test_string_stops_at_nul():
    assert XdrDecoder(encode("pack_string", b"ab\0cd")).unpack_string() == "ab"


def test_sequence_of_values():
    enc = XdrEncoder()
    enc.pack_char("c")
    enc.pack_string("Clase")
    enc.pack_int(7)
    enc.pack_double(1.1)
    dec = XdrDecoder(enc.getvalue())
    assert dec.unpack_char() == "c"
    assert dec.unpack_string() == "Clase"
    assert dec.unpack_int() == 7
    assert dec.unpack_double() == 1.1
    assert dec.remaining() == 0


@pytest.mark.parametrize(
    "kind, values",
    [
        ("i", [1, 2, 3, 4, 5, 6, 7, 8, 9, 0]),
        ("l", [1, 2, 3, 4, 5, 6, 7, 8, 9, 0]),
        ("d", [1.1, 2.2, 3.3, 4.4, 5.5, 6.6, 7.7, 8.8, 9.9, 0.0]),
        ("i", []),
    ],
)
def test_array_round_trip(kind, values):
    data = encode("pack_array", kind, values)
    assert XdrDecoder(data).unpack_array(kind, len(values) + 1) == values


def test_float_array_round_trip_is_approximate():
    values = [1.1, 2.2, 3.3]
    result = XdrDecoder(encode("pack_array", "f", values)).unpack_array("f", 4)
    assert all(math.isclose(a, b, rel_tol=1e-6) for a, b in zip(result, values))
    assert len(result) == 3


def test_char_array_round_trip():
    data = encode("pack_array", "c", "123456789")
    assert len(data) == 4 + 4 * 9
    assert XdrDecoder(data).unpack_array("c", 10) == "123456789"


def test_array_over_limit():
    data = encode("pack_array", "i", [1, 2, 3])
    with pytest.raises(CodecError):
        XdrDecoder(data).unpack_array("i", 2)


def test_unknown_array_kind():
    with pytest.raises(CodecError):
        XdrEncoder().pack_array("x", [1])
    with pytest.raises(CodecError):
        XdrDecoder(b"\x00" * 4).unpack_array("x")


def test_truncated_buffer():
    data = encode("pack_string", "HELLO")
    with pytest.raises(CodecError):
        XdrDecoder(data[:-3]).unpack_string()
    with pytest.raises(CodecError):
        XdrDecoder(b"\x00\x00").unpack_int()


def test_remaining_tracks_reads():
    dec = XdrDecoder(encode("pack_double", 2.0) + encode("pack_int", 3))
    assert dec.remaining() == 12
    dec.unpack_double()
    assert dec.remaining() == 4


def test_bad_char():
    with pytest.raises(CodecError):
        XdrEncoder().pack_char("ab")
    with pytest.raises(CodecError):
        XdrEncoder().pack_char(300)