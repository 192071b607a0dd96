import pytest

from udpcall.message import MessageType, Parameter, decode_method_header, encode_method
from udpcall.reply import decode_error, decode_reply, encode_error, encode_reply
from udpcall.xdr import CodecError


def test_reply_round_trip_scalars():
    params = [("c", "a"), ("i", 2147483647), ("l", -5), ("f", 1.5), ("d", 4294967295.3333)]
    data = encode_reply("EX2", "EX2_SimpleMetodoOut", 1, params)
    values = decode_reply(data, ["c", "i", "l", "f", "d"])
    assert values == ["a", 2147483647, -5, 1.5, 4294967295.3333]


def test_reply_round_trip_string_and_arrays():
    params = [
        Parameter("s", "SUCCESS"),
        Parameter("C", "123456789"),
        Parameter("I", [1, 2, 3]),
        Parameter("D", [1.25, 2.5]),
    ]
    data = encode_reply("EX2", "EX2_ArrayMetodoOut", 1, params)
    values = decode_reply(data, ["s", ("C", 9), ("I", 3), ("D", 2)])
    assert values == ["SUCCESS", "123456789", [1, 2, 3], [1.25, 2.5]]


def test_reply_header_is_kept():
    data = encode_reply("EX3", "EX3_Count", 4, [("i", 3)])
    header = decode_method_header(data)
    assert header.message_type is MessageType.REPLY
    assert (header.class_name, header.method, header.version) == ("EX3", "EX3_Count", 4)


def test_reply_wire_bytes():
    data = encode_reply("A", "m", 1, [("i", 3)])
    assert data == bytes.fromhex(
        "00000002" "00000001" "41000000" "00000001" "6d000000" "00000001" "00000003"
    )


def test_decode_reply_rejects_method_message():
    data = encode_method("EX3", "EX3_Count", 1, [("i", 3)])
    with pytest.raises(CodecError):
        decode_reply(data, ["i"])


def test_decode_reply_array_over_limit():
    data = encode_reply("A", "m", 1, [("I", [1, 2, 3, 4])])
    with pytest.raises(CodecError):
        decode_reply(data, [("I", 2)])


def test_decode_reply_truncated():
    data = encode_reply("A", "m", 1, [("d", 2.5)])
    with pytest.raises(CodecError):
        decode_reply(data[:-3], ["d"])


def test_error_round_trip():
    data = encode_error("EX1", "EX1_SimpleMetodoIn", 1, "method not found")
    assert decode_error(data) == "method not found"


def test_error_wire_bytes_version_holds_length():
    data = encode_error("A", "m", 7, "x")
    assert data == bytes.fromhex(
        "00000003" "00000001" "41000000" "00000001" "6d000000"
        "00000001" "00000001" "00000001" "78000000"
    )
    assert decode_method_header(data).version == len("x")


def test_decode_error_rejects_reply():
    data = encode_reply("A", "m", 1, [("s", "oops")])
    with pytest.raises(CodecError):
        decode_error(data)


def test_encode_error_requires_int_version():
    with pytest.raises(CodecError):
        encode_error("A", "m", "1", "bad")


def test_empty_error_round_trip():
    data = encode_error("A", "m", 1, "")
    assert decode_error(data) == ""
    assert decode_method_header(data).message_type is MessageType.ERROR