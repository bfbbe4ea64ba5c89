# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Broker Request Encoding and Response Decoding.

Binary Format Conventions:
- All multi-byte integers are big-endian
- Every request starts with [4B length] counting the bytes after it
- Topics are length-prefixed: [2B len][N bytes UTF-8]

Request header (shared by every request):
    [4B length][2B request_type][2B topic_len][topic][4B partition]

Responses:
    [4B length][2B error_code][body]
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Sequence
from dataclasses import dataclass

from .message import Message, encode_message_set
from .protocol import (
    DEFAULT_FETCH_SIZE,
    LATEST_TIME,
    LENGTH_SIZE,
    MAX_TOPIC_LENGTH,
    RequestType,
)

logger = logging.getLogger(__name__)

RESPONSE_HEADER_SIZE: int = LENGTH_SIZE + 2

INT32_MAX: int = 2**31 - 1
INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1


# =============================================================================
# Request header
# =============================================================================


def encode_request_header(topic: str, partition: int, request_type: RequestType) -> bytearray:
    """
    Encode the common request header.

    The returned buffer starts with a zero length placeholder; request
    encoders append their body and then call ``_finish_request`` to fill it.

    Format: [4B length=0][2B request_type][2B topic_len][topic][4B partition]
    """
    topic_bytes = topic.encode("utf-8")
    if not topic_bytes:
        raise ValueError("Topic must not be empty")
    if len(topic_bytes) > MAX_TOPIC_LENGTH:
        raise ValueError(f"Topic too long: {len(topic_bytes)} bytes, maximum is {MAX_TOPIC_LENGTH}")
    if not 0 <= partition <= INT32_MAX:
        raise ValueError(f"Partition must be in [0, {INT32_MAX}], got {partition}")

    buf = bytearray(LENGTH_SIZE)
    buf += struct.pack(">hh", request_type, len(topic_bytes))
    buf += topic_bytes
    buf += struct.pack(">i", partition)
    return buf


def _finish_request(buf: bytearray) -> bytes:
    struct.pack_into(">i", buf, 0, len(buf) - LENGTH_SIZE)
    return bytes(buf)


# =============================================================================
# Produce Request
# =============================================================================


@dataclass
class ProduceRequest:
    """Produce request for one topic partition."""
    topic: str
    partition: int
    messages: Sequence[Message]


def encode_produce_request(req: ProduceRequest) -> bytes:
    """
    Encode produce request to binary.

    Format: [header][4B message_set_len][message_set]
    """
    if not req.messages:
        raise ValueError("Produce request needs at least one message")

    message_set = encode_message_set(req.messages)
    buf = encode_request_header(req.topic, req.partition, RequestType.PRODUCE)
    buf += struct.pack(">i", len(message_set))
    buf += message_set

    logger.debug(
        "PRODUCE %s/%d: %d messages, %d bytes",
        req.topic, req.partition, len(req.messages), len(message_set),
    )
    return _finish_request(buf)


# =============================================================================
# Fetch Request
# =============================================================================


@dataclass
class FetchRequest:
    """Fetch request for one topic partition."""
    topic: str
    partition: int
    offset: int
    max_size: int = DEFAULT_FETCH_SIZE


def encode_fetch_request(req: FetchRequest) -> bytes:
    """
    Encode fetch request to binary.

    Format: [header][8B offset][4B max_size]
    """
    if not 0 <= req.offset <= INT64_MAX:
        raise ValueError(f"Offset must be in [0, {INT64_MAX}], got {req.offset}")
    if not 0 < req.max_size <= INT32_MAX:
        raise ValueError(f"Fetch size must be in [1, {INT32_MAX}], got {req.max_size}")

    buf = encode_request_header(req.topic, req.partition, RequestType.FETCH)
    buf += struct.pack(">qi", req.offset, req.max_size)
    return _finish_request(buf)


# =============================================================================
# Offsets Request/Response
# =============================================================================


@dataclass
class OffsetsRequest:
    """Request for the log segment offsets of a partition before a time."""
    topic: str
    partition: int
    time: int = LATEST_TIME  # -1 = latest, -2 = earliest, else ms since epoch
    max_offsets: int = 1


def encode_offsets_request(req: OffsetsRequest) -> bytes:
    """
    Encode offsets request to binary.

    Format: [header][8B time][4B max_offsets]
    """
    if not INT64_MIN <= req.time <= INT64_MAX:
        raise ValueError(f"Time must fit in 64 bits, got {req.time}")
    if not 0 < req.max_offsets <= INT32_MAX:
        raise ValueError(f"max_offsets must be in [1, {INT32_MAX}], got {req.max_offsets}")

    buf = encode_request_header(req.topic, req.partition, RequestType.OFFSETS)
    buf += struct.pack(">qi", req.time, req.max_offsets)
    return _finish_request(buf)


def decode_offsets_response(data: bytes) -> list[int]:
    """
    Decode the body of an offsets response.

    Format: [4B count][8B offset]*count
    """
    if len(data) < 4:
        raise ValueError(f"Buffer too small: {len(data)} < 4")

    count = struct.unpack(">i", data[:4])[0]
    if count < 0 or len(data) < 4 + count * 8:
        raise ValueError(f"Buffer too small for {count} offsets")

    return list(struct.unpack(f">{count}q", data[4:4 + count * 8]))


# =============================================================================
# Responses
# =============================================================================


def decode_response_header(data: bytes) -> tuple[int, int]:
    """
    Decode the fixed response header.

    Format: [4B length][2B error_code]

    Returns:
        Tuple of (length, error_code); length counts the bytes after it,
        error code included.
    """
    if len(data) < RESPONSE_HEADER_SIZE:
        raise ValueError(f"Buffer too small: {len(data)} < {RESPONSE_HEADER_SIZE}")

    length, error_code = struct.unpack(">ih", data[:RESPONSE_HEADER_SIZE])
    if length < 2:
        raise ValueError(f"Invalid response length: {length}")
    return length, error_code


def strip_response(data: bytes) -> tuple[int, bytes]:
    """
    Split a complete response frame into its error code and body.

    Returns:
        Tuple of (error_code, body). For a fetch response the body is a
        message set, ready for ``decode_messages``.
    """
    length, error_code = decode_response_header(data)
    end = LENGTH_SIZE + length
    if len(data) < end:
        raise ValueError(f"Incomplete response: got {len(data)} bytes, expected {end}")
    return error_code, bytes(data[RESPONSE_HEADER_SIZE:end])
