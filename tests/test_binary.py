# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""Tests for request encoding and response decoding."""

import struct

import pytest

from pykafka07.binary import (
    RESPONSE_HEADER_SIZE,
    FetchRequest,
    OffsetsRequest,
    ProduceRequest,
    decode_offsets_response,
    decode_response_header,
    encode_fetch_request,
    encode_offsets_request,
    encode_produce_request,
    encode_request_header,
    strip_response,
)
from pykafka07.message import decode_messages, new_compressed_message, new_message
from pykafka07.protocol import EARLIEST_TIME, LATEST_TIME, RequestType

TEST_HEADER = bytes([
    0x00, 0x00, 0x00, 0x00,
    0x00, 0x00,
    0x00, 0x04,
    0x74, 0x65, 0x73, 0x74,
    0x00, 0x00, 0x00, 0x00,
])

TESTING_V1 = bytes.fromhex("0000000d0100e8f35a0674657374696e67")


class TestRequestHeader:
    """Tests for the shared request header."""

    def test_produce_header(self) -> None:
        """Test the header for topic "test", partition 0."""
        assert encode_request_header("test", 0, RequestType.PRODUCE) == TEST_HEADER

    def test_header_fields(self) -> None:
        """Test each header field lands where the broker expects it."""
        buf = encode_request_header("my-topic", 7, RequestType.FETCH)
        assert buf[:4] == b"\x00\x00\x00\x00"
        assert struct.unpack(">h", buf[4:6])[0] == RequestType.FETCH
        assert struct.unpack(">h", buf[6:8])[0] == 8
        assert buf[8:16] == b"my-topic"
        assert struct.unpack(">i", buf[16:20])[0] == 7
        assert len(buf) == 20

    def test_utf8_topic(self) -> None:
        """Test topic length counts encoded bytes."""
        buf = encode_request_header("thé", 0, RequestType.PRODUCE)
        assert struct.unpack(">h", buf[6:8])[0] == 4
        assert buf[8:12] == "thé".encode("utf-8")

    def test_empty_topic(self) -> None:
        """Test an empty topic is rejected."""
        with pytest.raises(ValueError, match="empty"):
            encode_request_header("", 0, RequestType.PRODUCE)

    def test_topic_too_long(self) -> None:
        """Test a topic that does not fit the length field."""
        with pytest.raises(ValueError, match="too long"):
            encode_request_header("t" * 0x8000, 0, RequestType.PRODUCE)

    def test_negative_partition(self) -> None:
        """Test a negative partition is rejected."""
        with pytest.raises(ValueError, match="Partition"):
            encode_request_header("test", -1, RequestType.PRODUCE)

    def test_partition_above_int32(self) -> None:
        """Test a partition that does not fit the 4-byte field."""
        with pytest.raises(ValueError, match="Partition"):
            encode_request_header("test", 2**31, RequestType.PRODUCE)
        assert len(encode_request_header("test", 2**31 - 1, RequestType.PRODUCE)) == 16


class TestProduceRequest:
    """Tests for produce requests."""

    def test_publish_one_message(self) -> None:
        """Test the full produce request for one "testing" message."""
        expected = (
            bytes.fromhex("00000021")
            + TEST_HEADER[4:]
            + bytes.fromhex("00000011")
            + TESTING_V1
        )
        req = ProduceRequest(topic="test", partition=0, messages=[new_message(b"testing")])
        assert encode_produce_request(req) == expected

    def test_length_field_counts_rest(self) -> None:
        """Test the outer length equals the request size minus four."""
        msgs = [new_message(b"a"), new_compressed_message(b"b" * 300), new_message(b"")]
        data = encode_produce_request(ProduceRequest("events", 3, msgs))
        assert struct.unpack(">i", data[:4])[0] == len(data) - 4

    def test_message_set_round_trip(self) -> None:
        """Test the embedded message set decodes to the input messages."""
        msgs = [new_message(b"one"), new_message(b"two")]
        data = encode_produce_request(ProduceRequest("test", 0, msgs))
        set_start = 16
        set_len = struct.unpack(">i", data[set_start - 4:set_start])[0]
        assert set_start + set_len == len(data)
        consumed, decoded = decode_messages(data[set_start:])
        assert consumed == set_len
        assert decoded == msgs

    def test_empty_message_list(self) -> None:
        """Test producing nothing is rejected."""
        with pytest.raises(ValueError, match="at least one message"):
            encode_produce_request(ProduceRequest("test", 0, []))


class TestFetchRequest:
    """Tests for fetch requests."""

    def test_fetch_from_start(self) -> None:
        """Test the full fetch request for offset 0 and a 1 MiB limit."""
        expected = (
            bytes.fromhex("00000018")
            + bytes.fromhex("0001")
            + TEST_HEADER[6:]
            + bytes.fromhex("0000000000000000")
            + bytes.fromhex("00100000")
        )
        assert encode_fetch_request(FetchRequest("test", 0, 0, 1048576)) == expected

    def test_default_max_size(self) -> None:
        """Test the default fetch size is 1 MiB."""
        data = encode_fetch_request(FetchRequest("test", 0, 0))
        assert struct.unpack(">i", data[-4:])[0] == 1048576

    def test_large_offset(self) -> None:
        """Test offsets use the full 8 bytes."""
        data = encode_fetch_request(FetchRequest("test", 2, 2**40 + 5, 512))
        offset, max_size = struct.unpack(">qi", data[-12:])
        assert offset == 2**40 + 5
        assert max_size == 512

    def test_negative_offset(self) -> None:
        """Test a negative offset is rejected."""
        with pytest.raises(ValueError, match="Offset"):
            encode_fetch_request(FetchRequest("test", 0, -1))

    def test_offset_above_int64(self) -> None:
        """Test an offset that does not fit the 8-byte field."""
        with pytest.raises(ValueError, match="Offset"):
            encode_fetch_request(FetchRequest("test", 0, 2**63))
        data = encode_fetch_request(FetchRequest("test", 0, 2**63 - 1))
        assert struct.unpack(">q", data[-12:-4])[0] == 2**63 - 1

    @pytest.mark.parametrize("max_size", [0, -1, 2**31])
    def test_bad_max_size(self, max_size: int) -> None:
        """Test a fetch size must be positive."""
        with pytest.raises(ValueError, match="Fetch size"):
            encode_fetch_request(FetchRequest("test", 0, 0, max_size))


class TestOffsetsRequest:
    """Tests for offsets requests and responses."""

    def test_encode_latest(self) -> None:
        """Test the default offsets request asks for the latest offset."""
        data = encode_offsets_request(OffsetsRequest("test", 0))
        assert struct.unpack(">i", data[:4])[0] == len(data) - 4
        assert struct.unpack(">h", data[4:6])[0] == RequestType.OFFSETS
        assert struct.unpack(">qi", data[-12:]) == (LATEST_TIME, 1)

    def test_encode_earliest(self) -> None:
        """Test asking for the earliest offset."""
        data = encode_offsets_request(OffsetsRequest("test", 0, EARLIEST_TIME, 5))
        assert struct.unpack(">qi", data[-12:]) == (-2, 5)

    def test_bad_max_offsets(self) -> None:
        """Test max_offsets must be positive."""
        with pytest.raises(ValueError, match="max_offsets"):
            encode_offsets_request(OffsetsRequest("test", 0, max_offsets=0))
        with pytest.raises(ValueError, match="max_offsets"):
            encode_offsets_request(OffsetsRequest("test", 0, max_offsets=2**31))

    @pytest.mark.parametrize("when", [2**63, -(2**63) - 1])
    def test_time_out_of_range(self, when: int) -> None:
        """Test a time that does not fit the 8-byte field."""
        with pytest.raises(ValueError, match="Time"):
            encode_offsets_request(OffsetsRequest("test", 0, when))

    def test_decode_offsets(self) -> None:
        """Test decoding a list of offsets."""
        body = struct.pack(">i3q", 3, 1024, 512, 0)
        assert decode_offsets_response(body) == [1024, 512, 0]

    def test_decode_no_offsets(self) -> None:
        """Test decoding an empty offsets list."""
        assert decode_offsets_response(struct.pack(">i", 0)) == []

    @pytest.mark.parametrize(
        "body",
        [b"", b"\x00\x00", struct.pack(">iq", 2, 10), struct.pack(">i", -1)],
    )
    def test_decode_short_offsets(self, body: bytes) -> None:
        """Test truncated offsets bodies are rejected."""
        with pytest.raises(ValueError):
            decode_offsets_response(body)


class TestResponses:
    """Tests for response framing."""

    def test_decode_header(self) -> None:
        """Test reading length and error code."""
        assert decode_response_header(struct.pack(">ih", 2, 0)) == (2, 0)
        assert decode_response_header(struct.pack(">ih", 30, 1) + b"x" * 28) == (30, 1)

    def test_header_size(self) -> None:
        """Test the response header is six bytes."""
        assert RESPONSE_HEADER_SIZE == 6

    def test_header_too_short(self) -> None:
        """Test a buffer shorter than the header."""
        with pytest.raises(ValueError, match="too small"):
            decode_response_header(b"\x00\x00\x00")

    def test_impossible_length(self) -> None:
        """Test a length too small to hold the error code."""
        with pytest.raises(ValueError, match="Invalid response length"):
            decode_response_header(struct.pack(">ih", 1, 0))

    def test_strip_fetch_response(self) -> None:
        """Test stripping a fetch response leaves the message set."""
        body = TESTING_V1 + new_compressed_message(b"zipped").encode()
        response = struct.pack(">ih", len(body) + 2, 0) + body
        error_code, message_set = strip_response(response)
        assert error_code == 0
        assert message_set == body
        _, msgs = decode_messages(message_set)
        assert [m.payload for m in msgs] == [b"testing", b"zipped"]

    def test_strip_error_response(self) -> None:
        """Test an error response with an empty body."""
        assert strip_response(struct.pack(">ih", 2, 1)) == (1, b"")

    def test_strip_ignores_extra_bytes(self) -> None:
        """Test bytes after the frame are not part of the body."""
        response = struct.pack(">ih", 4, 0) + b"ab" + b"next"
        assert strip_response(response) == (0, b"ab")

    def test_strip_incomplete(self) -> None:
        """Test a response shorter than its length field."""
        with pytest.raises(ValueError, match="Incomplete response"):
            strip_response(struct.pack(">ih", 10, 0) + b"abc")
