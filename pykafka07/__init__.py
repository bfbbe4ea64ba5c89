# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
pykafka07 - Python client for the Kafka 0.7 wire protocol.

Features:
- Byte-exact encoding of magic 0 and magic 1 messages
- CRC-32 checksum stamping and verification
- Gzip-compressed message batches, decoded transparently at any depth
- Produce, fetch and offsets request encoding
- Incremental decoding of partial fetch buffers

Codec only:
    >>> from pykafka07 import new_message, decode_messages
    >>>
    >>> frame = new_message(b"testing").encode()
    >>> frame.hex()
    '0000000d0100e8f35a0674657374696e67'
    >>> consumed, messages = decode_messages(frame)
    >>> messages[0].payload
    b'testing'

Publishing:
    >>> from pykafka07 import BrokerConnection, Publisher
    >>>
    >>> with BrokerConnection("my-topic", 0, "localhost:9092") as conn:
    ...     Publisher(conn).publish(b"Hello!", b"World!")

Consuming:
    >>> from pykafka07 import BrokerConnection, Consumer
    >>>
    >>> with BrokerConnection("my-topic", 0, "localhost:9092") as conn:
    ...     for msg in Consumer(conn, offset=0):
    ...         print(msg.decode())
"""

from .binary import (
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
from .client import BrokerConnection
from .compression import (
    DEFAULT_CODECS,
    CodecRegistry,
    CompressionCodec,
    GzipCodec,
    NoCompressionCodec,
)
from .consumer import Consumer
from .exceptions import (
    BrokerResponseError,
    ChecksumMismatchError,
    ConnectionClosedError,
    ConnectionError,
    ConnectionTimeoutError,
    ConsumerError,
    DecompressionError,
    InvalidFetchSizeError,
    InvalidMagicError,
    InvalidMessageError,
    KafkaError,
    MalformedLengthError,
    MessageTooLargeError,
    NoAvailableBrokerError,
    OffsetOutOfRangeError,
    ProtocolError,
    UnknownCodecError,
    WrongPartitionError,
)
from .message import (
    Message,
    decode_message_frames,
    decode_messages,
    encode_message,
    encode_message_set,
    new_compressed_message,
    new_compressed_messages,
    new_message,
    new_message_with_codec,
)
from .models import (
    BrokerTarget,
    ClientConfig,
    CompressionType,
    ConsumedMessage,
    ConsumerConfig,
    FetchResult,
    OffsetReset,
    ProducerConfig,
)
from .producer import Publisher
from .protocol import (
    EARLIEST_TIME,
    GZIP_COMPRESSION_ID,
    LATEST_TIME,
    NO_COMPRESSION_ID,
    ErrorCode,
    RequestType,
    checksum,
)

__version__ = "0.7.2"
__license__ = "Apache-2.0"

__all__ = [
    # Connection
    "BrokerConnection",
    "Publisher",
    "Consumer",
    # Messages
    "Message",
    "new_message",
    "new_message_with_codec",
    "new_compressed_message",
    "new_compressed_messages",
    "encode_message",
    "encode_message_set",
    "decode_messages",
    "decode_message_frames",
    "checksum",
    # Compression
    "CompressionCodec",
    "GzipCodec",
    "NoCompressionCodec",
    "CodecRegistry",
    "DEFAULT_CODECS",
    "NO_COMPRESSION_ID",
    "GZIP_COMPRESSION_ID",
    # Requests
    "RequestType",
    "ErrorCode",
    "ProduceRequest",
    "FetchRequest",
    "OffsetsRequest",
    "encode_request_header",
    "encode_produce_request",
    "encode_fetch_request",
    "encode_offsets_request",
    "decode_offsets_response",
    "decode_response_header",
    "strip_response",
    "LATEST_TIME",
    "EARLIEST_TIME",
    # Configuration
    "BrokerTarget",
    "ClientConfig",
    "ProducerConfig",
    "ConsumerConfig",
    "CompressionType",
    "OffsetReset",
    # Results
    "ConsumedMessage",
    "FetchResult",
    # Exceptions
    "KafkaError",
    "ProtocolError",
    "ChecksumMismatchError",
    "UnknownCodecError",
    "MalformedLengthError",
    "InvalidMagicError",
    "DecompressionError",
    "ConnectionError",
    "ConnectionClosedError",
    "ConnectionTimeoutError",
    "NoAvailableBrokerError",
    "BrokerResponseError",
    "OffsetOutOfRangeError",
    "InvalidMessageError",
    "WrongPartitionError",
    "InvalidFetchSizeError",
    "ConsumerError",
    "MessageTooLargeError",
]
