# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Kafka 0.7 Wire Protocol Constants.

Message Format (magic 1):
    +-------+-------+-------+-------+-------+-------+
    | Length (4 bytes, big-endian)  | Magic | Comp  |
    +-------+-------+-------+-------+-------+-------+
    | Checksum (CRC-32, 4 bytes)    | Payload ...   |
    +-------+-------+-------+-------+---------------+

Message Format (magic 0):
    | Length (4) | Magic (1) | Checksum (4) | Payload |

Request Format:
    | Length (4) | RequestType (2) | TopicLen (2) | Topic | Partition (4) | Body |

Response Format:
    | Length (4) | ErrorCode (2) | Body |

All integers are big-endian. Length fields count the bytes that follow them.
"""

from __future__ import annotations

import struct
import zlib
from enum import IntEnum

# Message header versions
MAGIC_V0: int = 0
MAGIC_V1: int = 1

# Compression attribute values carried by magic 1 messages
NO_COMPRESSION_ID: int = 0
GZIP_COMPRESSION_ID: int = 1

LENGTH_SIZE: int = 4
CHECKSUM_SIZE: int = 4

# Smallest legal value of a message's length field, per header version
MIN_MESSAGE_LENGTH: dict[int, int] = {
    MAGIC_V0: 1 + CHECKSUM_SIZE,
    MAGIC_V1: 2 + CHECKSUM_SIZE,
}

MAX_MESSAGE_SIZE: int = 32 * 1024 * 1024  # 32MB
MAX_TOPIC_LENGTH: int = 0x7FFF

# Special times for an OFFSETS request
LATEST_TIME: int = -1
EARLIEST_TIME: int = -2

DEFAULT_FETCH_SIZE: int = 1024 * 1024


class RequestType(IntEnum):
    """Request type codes accepted by a 0.7 broker."""

    PRODUCE = 0
    FETCH = 1
    MULTIFETCH = 2
    MULTIPRODUCE = 3
    OFFSETS = 4


class ErrorCode(IntEnum):
    """Error codes returned in the broker's response header."""

    UNKNOWN = -1
    NO_ERROR = 0
    OFFSET_OUT_OF_RANGE = 1
    INVALID_MESSAGE = 2
    WRONG_PARTITION = 3
    INVALID_FETCH_SIZE = 4


def checksum(data: bytes) -> bytes:
    """
    Compute the 4-byte checksum stored in a message header.

    This is the IEEE CRC-32 of ``data`` serialized big-endian.

    Example:
        >>> checksum(b"testing").hex()
        'e8f35a06'
    """
    return struct.pack(">I", zlib.crc32(data) & 0xFFFFFFFF)
