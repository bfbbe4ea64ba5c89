# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Message encoding and decoding.

A message set is a run of length-prefixed messages with no count field:

    [4B length][1B magic][1B compression, magic 1 only][4B checksum][payload]
    [4B length][1B magic]...

A compressed message's payload is itself a message set. Decoding expands
such messages in place, so callers only ever see the innermost payloads.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .compression import DEFAULT_CODECS, CodecRegistry, CompressionCodec
from .exceptions import ChecksumMismatchError, InvalidMagicError, MalformedLengthError
from .protocol import (
    CHECKSUM_SIZE,
    GZIP_COMPRESSION_ID,
    LENGTH_SIZE,
    MAGIC_V0,
    MAGIC_V1,
    MAX_MESSAGE_SIZE,
    MIN_MESSAGE_LENGTH,
    NO_COMPRESSION_ID,
    checksum,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    """
    A single message as it appears on the wire.

    Attributes:
        magic: Header version, 0 or 1. Version 0 has no compression byte.
        compression: Compression id (always 0 for magic 0).
        checksum: CRC-32 of ``payload``, 4 bytes big-endian.
        payload: Stored bytes. A compressed message set when compression != 0.
    """

    magic: int
    compression: int
    checksum: bytes
    payload: bytes

    @classmethod
    def create(
        cls,
        payload: bytes,
        *,
        magic: int = MAGIC_V1,
        compression: int = NO_COMPRESSION_ID,
        codecs: CodecRegistry = DEFAULT_CODECS,
    ) -> Message:
        """
        Build a message, compressing the payload first if asked to.

        The checksum always covers the stored bytes, so for a compressed
        message it is the checksum of the compressed payload.

        Raises:
            ValueError: If compression is requested with magic 0.
            InvalidMagicError: If magic is not 0 or 1.
            UnknownCodecError: If the compression id is not registered.
        """
        if magic not in MIN_MESSAGE_LENGTH:
            raise InvalidMagicError(magic)
        if magic == MAGIC_V0 and compression != NO_COMPRESSION_ID:
            raise ValueError("Magic 0 messages cannot carry a compression attribute")

        stored = bytes(payload)
        if compression != NO_COMPRESSION_ID:
            stored = codecs.get_codec(compression).compress(stored)
        return cls(magic=magic, compression=compression, checksum=checksum(stored), payload=stored)

    @property
    def is_compressed(self) -> bool:
        return self.compression != NO_COMPRESSION_ID

    def verify(self) -> None:
        """Raise ChecksumMismatchError unless the checksum matches the payload."""
        actual = checksum(self.payload)
        if actual != self.checksum:
            raise ChecksumMismatchError(self.checksum, actual)

    def encode(self) -> bytes:
        """Serialize to the length-prefixed wire frame."""
        if self.magic == MAGIC_V0:
            header = struct.pack(">B", MAGIC_V0)
        else:
            header = struct.pack(">BB", self.magic, self.compression)
        length = len(header) + CHECKSUM_SIZE + len(self.payload)
        return b"".join([struct.pack(">i", length), header, self.checksum, self.payload])

    def __len__(self) -> int:
        """Size of the encoded frame in bytes."""
        header = 1 if self.magic == MAGIC_V0 else 2
        return LENGTH_SIZE + header + CHECKSUM_SIZE + len(self.payload)


def new_message(payload: bytes) -> Message:
    """Create an uncompressed magic 1 message."""
    return Message.create(payload)


def new_message_with_codec(payload: bytes, codec: CompressionCodec) -> Message:
    """
    Create a magic 1 message whose payload is compressed with ``codec``.

    ``payload`` is compressed as given; to batch messages, pass an encoded
    message set.
    """
    if codec.id == NO_COMPRESSION_ID:
        return new_message(payload)
    stored = codec.compress(bytes(payload))
    return Message(magic=MAGIC_V1, compression=codec.id, checksum=checksum(stored), payload=stored)


def new_compressed_message(payload: bytes, codecs: CodecRegistry = DEFAULT_CODECS) -> Message:
    """Wrap ``payload`` in a plain message and gzip it inside an outer message."""
    return new_compressed_messages(new_message(payload), codecs=codecs)


def new_compressed_messages(*messages: Message, codecs: CodecRegistry = DEFAULT_CODECS) -> Message:
    """Batch ``messages`` into one gzip-compressed envelope message."""
    inner = encode_message_set(messages)
    return new_message_with_codec(inner, codecs.get_codec(GZIP_COMPRESSION_ID))


def encode_message(
    payload: bytes,
    *,
    magic: int = MAGIC_V1,
    compression: int = NO_COMPRESSION_ID,
    codecs: CodecRegistry = DEFAULT_CODECS,
) -> bytes:
    """Build a message for ``payload`` and return its wire frame."""
    return Message.create(payload, magic=magic, compression=compression, codecs=codecs).encode()


def encode_message_set(messages: Iterable[Message]) -> bytes:
    """Concatenate the wire frames of ``messages``."""
    return b"".join(message.encode() for message in messages)


def _iter_frames(data: bytes, max_size: int) -> Iterator[tuple[int, int, Message]]:
    """
    Yield (start, end, message) for each complete frame in ``data``.

    Stops silently at an incomplete trailing frame. Checksums are verified
    before a frame is yielded.
    """
    pos = 0
    total = len(data)
    while total - pos >= LENGTH_SIZE:
        (length,) = struct.unpack_from(">i", data, pos)
        if length < MIN_MESSAGE_LENGTH[MAGIC_V0]:
            raise MalformedLengthError(length, "shorter than a message header")
        if length > max_size:
            raise MalformedLengthError(length, f"exceeds maximum message size {max_size}")

        end = pos + LENGTH_SIZE + length
        if end > total:
            break

        offset = pos + LENGTH_SIZE
        magic = data[offset]
        offset += 1
        if magic == MAGIC_V1:
            if length < MIN_MESSAGE_LENGTH[MAGIC_V1]:
                raise MalformedLengthError(length, "shorter than a magic 1 message header")
            compression = data[offset]
            offset += 1
        elif magic == MAGIC_V0:
            compression = NO_COMPRESSION_ID
        else:
            raise InvalidMagicError(magic)

        message = Message(
            magic=magic,
            compression=compression,
            checksum=bytes(data[offset:offset + CHECKSUM_SIZE]),
            payload=bytes(data[offset + CHECKSUM_SIZE:end]),
        )
        message.verify()

        yield pos, end, message
        pos = end


def decode_message_frames(
    data: bytes,
    codecs: CodecRegistry = DEFAULT_CODECS,
    *,
    max_size: int = MAX_MESSAGE_SIZE,
) -> tuple[int, list[tuple[int, int, Message]]]:
    """
    Decode a message set, keeping track of where each message came from.

    Compressed messages are replaced by the messages they contain. Every
    message is reported with the (start, end) byte range of the top-level
    frame that carried it, so all messages from one compressed envelope
    share a range.

    Nesting is unwound with an explicit stack rather than recursion.

    Args:
        data: Buffer holding zero or more frames, possibly ending mid-frame.
        codecs: Registry used to decompress compressed messages.
        max_size: Largest accepted value of a length field, and largest
            accepted size of a decompressed message set.

    Returns:
        Tuple of (bytes consumed, [(start, end, message), ...]). Bytes after
        the last complete top-level frame are not consumed.

    Raises:
        ChecksumMismatchError: If any frame fails its checksum.
        UnknownCodecError: If a compression id is not in ``codecs``.
        MalformedLengthError: If a length field is impossible, or a
            decompressed message set ends mid-frame.
        InvalidMagicError: If a header version is not 0 or 1.
        DecompressionError: If a compressed payload is damaged, or inflates
            past ``max_size`` bytes.
    """
    consumed = 0
    results: list[tuple[int, int, Message]] = []

    for start, end, message in _iter_frames(data, max_size):
        consumed = end
        if not message.is_compressed:
            results.append((start, end, message))
            continue

        stack = [_expand(message, codecs, max_size)]
        while stack:
            inner = next(stack[-1], None)
            if inner is None:
                stack.pop()
            elif inner.is_compressed:
                stack.append(_expand(inner, codecs, max_size))
            else:
                results.append((start, end, inner))

    logger.debug("Decoded %d messages from %d of %d bytes", len(results), consumed, len(data))
    return consumed, results


def _expand(message: Message, codecs: CodecRegistry, max_size: int) -> Iterator[Message]:
    """Decompress a compressed message and iterate over the frames inside it."""
    codec = codecs.get_codec(message.compression)
    inner = codec.decompress(message.payload, max_length=max_size)
    return _iter_complete_set(inner, max_size)


def _iter_complete_set(data: bytes, max_size: int) -> Iterator[Message]:
    consumed = 0
    for _, end, message in _iter_frames(data, max_size):
        consumed = end
        yield message
    if consumed != len(data):
        raise MalformedLengthError(
            len(data), f"compressed message set has {len(data) - consumed} trailing bytes"
        )


def decode_messages(
    data: bytes,
    codecs: CodecRegistry = DEFAULT_CODECS,
    *,
    max_size: int = MAX_MESSAGE_SIZE,
) -> tuple[int, list[Message]]:
    """
    Decode as many complete messages as ``data`` holds.

    A buffer that ends mid-frame is not an error: the partial frame is left
    unconsumed so the caller can append more bytes and call again.

    Example:
        >>> consumed, messages = decode_messages(new_message(b"testing").encode())
        >>> consumed, messages[0].payload
        (17, b'testing')

    Returns:
        Tuple of (bytes consumed, messages in order).
    """
    consumed, frames = decode_message_frames(data, codecs, max_size=max_size)
    return consumed, [message for _, _, message in frames]
