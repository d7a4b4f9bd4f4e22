import pytest

from mptrie.rlp import (
    RlpError,
    decode_bytes,
    decode_raw,
    encode_bytes,
    encode_list,
    encode_list_header,
    keccak256,
    split_list,
)


def test_keccak256_empty():
    assert keccak256(b"").hex() == (
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )


def test_keccak256_length_and_determinism():
    digest = keccak256(b"abc")
    assert len(digest) == 32
    assert keccak256(b"abc") == digest
    assert keccak256(b"abd") != digest


def test_encode_empty_string():
    assert encode_bytes(b"") == b"\x80"


def test_encode_single_small_byte_is_itself():
    assert encode_bytes(b"\x05") == b"\x05"


@pytest.mark.parametrize("length", [0, 1, 2, 31, 32, 55, 56, 57, 255, 256, 1000])
def test_bytes_round_trip(length):
    data = bytes((i * 7 + 3) % 256 for i in range(length))
    encoded = encode_bytes(data)
    assert decode_bytes(encoded) == data
    assert decode_raw(encoded) == (False, data)


@pytest.mark.parametrize("value", range(256))
def test_single_byte_round_trip(value):
    assert decode_bytes(encode_bytes(bytes([value]))) == bytes([value])


def test_short_string_header_length():
    assert len(encode_bytes(b"x" * 55)) == 56
    assert len(encode_bytes(b"x" * 56)) == 58


@pytest.mark.parametrize("count", [0, 1, 3, 17, 40])
def test_list_round_trip(count):
    items = [encode_bytes(bytes([i]) * (i % 60)) for i in range(count)]
    encoded = encode_list(items)
    is_list, payload = decode_raw(encoded)
    assert is_list
    assert split_list(payload) == items


def test_list_header_matches_decode():
    for length in (0, 3, 55, 56, 300):
        payload = encode_bytes(b"\x00" * max(length - 1, 0)) if length else b""
        payload = payload[:length] if len(payload) >= length else payload
        header = encode_list_header(len(payload))
        assert decode_raw(header + payload) == (True, payload)


def test_nested_list():
    inner = encode_list([encode_bytes(b"a"), encode_bytes(b"bc")])
    outer = encode_list([inner, encode_bytes(b"")])
    is_list, payload = decode_raw(outer)
    assert is_list
    first, second = split_list(payload)
    assert first == inner
    assert decode_bytes(second) == b""


def test_decode_bytes_rejects_list():
    with pytest.raises(RlpError):
        decode_bytes(encode_list([encode_bytes(b"a")]))


def test_trailing_data_rejected():
    with pytest.raises(RlpError):
        decode_raw(encode_bytes(b"abc") + b"\x00")


def test_truncated_input_rejected():
    encoded = encode_bytes(b"hello world")
    with pytest.raises(RlpError):
        decode_raw(encoded[:-1])


def test_empty_input_rejected():
    with pytest.raises(RlpError):
        decode_raw(b"")


def test_non_canonical_single_byte_rejected():
    with pytest.raises(RlpError):
        decode_bytes(b"\x81\x05")


def test_non_canonical_long_size_rejected():
    with pytest.raises(RlpError):
        decode_bytes(b"\xb8\x01a")


def test_leading_zero_length_rejected():
    with pytest.raises(RlpError):
        decode_bytes(b"\xb9\x00\x40" + b"a" * 64)


def test_split_list_rejects_truncated_item():
    with pytest.raises(RlpError):
        split_list(b"\x83ab")


def test_rlp_error_is_value_error():
    with pytest.raises(ValueError):
        decode_raw(b"\xc5\x01")