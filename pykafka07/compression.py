# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Compression codecs for message payloads.

A magic 1 message carries a compression attribute byte. When it is non-zero
the payload is a compressed message set, and the codec that undoes it is
looked up by id in a CodecRegistry.

Registries are immutable. Build one at startup and pass it to the decoder:

    >>> registry = DEFAULT_CODECS.with_codec(MyCodec())
    >>> consumed, messages = decode_messages(data, registry)
"""

from __future__ import annotations

import gzip
import logging
import zlib
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping

from .exceptions import DecompressionError, UnknownCodecError
from .protocol import GZIP_COMPRESSION_ID, NO_COMPRESSION_ID

logger = logging.getLogger(__name__)

# zlib window bits selecting the gzip header and trailer
_GZIP_WBITS: int = 16 + zlib.MAX_WBITS


class CompressionCodec(ABC):
    """A compress/decompress pair identified by the attribute byte it handles."""

    id: int

    @abstractmethod
    def compress(self, data: bytes) -> bytes:
        pass

    @abstractmethod
    def decompress(self, data: bytes, max_length: int | None = None) -> bytes:
        """Undo ``compress``. Output longer than ``max_length`` raises DecompressionError."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


class NoCompressionCodec(CompressionCodec):
    """Identity codec. Never registered: compression 0 stores the raw payload."""

    id = NO_COMPRESSION_ID

    def compress(self, data: bytes) -> bytes:
        return data

    def decompress(self, data: bytes, max_length: int | None = None) -> bytes:
        if max_length is not None and len(data) > max_length:
            raise DecompressionError(f"Payload of {len(data)} bytes exceeds {max_length} bytes")
        return data


class GzipCodec(CompressionCodec):
    """
    Gzip codec (compression id 1).

    Output is a standard gzip member with mtime 0, so compressing the same
    bytes twice gives the same frame.
    """

    id = GZIP_COMPRESSION_ID

    def __init__(self, compresslevel: int = 6) -> None:
        self._compresslevel = compresslevel

    def compress(self, data: bytes) -> bytes:
        return gzip.compress(data, compresslevel=self._compresslevel, mtime=0)

    def decompress(self, data: bytes, max_length: int | None = None) -> bytes:
        """
        Decompress gzip data.

        Output is collected in a growable buffer and is exactly what the
        stream produced. Concatenated gzip members are all decompressed.

        A stream that stops before its end-of-stream marker yields the bytes
        decoded so far; the message set decoder rejects any frame it cuts.

        Args:
            data: Gzip stream.
            max_length: Largest accepted output. Inflation stops as soon as
                one byte more has been produced.

        Raises:
            DecompressionError: If the data is not gzip, is cut off before
                producing any output, or inflates past ``max_length``.
        """
        out = bytearray()
        remaining = bytes(data)
        while remaining:
            decompressor = zlib.decompressobj(_GZIP_WBITS)
            # 0 means unlimited; one spare byte detects overflow
            limit = 0 if max_length is None else max_length - len(out) + 1
            try:
                out += decompressor.decompress(remaining, limit)
                if max_length is None or len(out) <= max_length:
                    out += decompressor.flush()
            except zlib.error as e:
                raise DecompressionError(f"Invalid gzip payload: {e}") from e

            if max_length is not None and len(out) > max_length:
                raise DecompressionError(
                    f"Gzip payload inflates past {max_length} bytes",
                    hint="Raise max_message_size if such batches are expected",
                )

            if not decompressor.eof:
                if not out:
                    raise DecompressionError("Gzip payload ended before any data")
                logger.warning(
                    "Gzip payload has no end-of-stream marker, using %d decoded bytes", len(out)
                )
                break
            # Members may be followed by zero padding
            remaining = decompressor.unused_data.lstrip(b"\x00")

        logger.debug("gzip: %d compressed bytes -> %d bytes", len(data), len(out))
        return bytes(out)


class CodecRegistry(Mapping[int, CompressionCodec]):
    """
    Read-only mapping from compression id to codec.

    Adding a codec produces a new registry; an existing registry never
    changes, so one instance can be shared by every thread.
    """

    def __init__(self, codecs: Iterable[CompressionCodec] = ()) -> None:
        self._codecs: dict[int, CompressionCodec] = {}
        for codec in codecs:
            if codec.id < 0:
                raise ValueError(f"Codec id must be non-negative, got {codec.id}")
            self._codecs[codec.id] = codec

    def __getitem__(self, codec_id: int) -> CompressionCodec:
        return self._codecs[codec_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._codecs)

    def __len__(self) -> int:
        return len(self._codecs)

    def __repr__(self) -> str:
        return f"CodecRegistry({list(self._codecs.values())!r})"

    def get_codec(self, codec_id: int) -> CompressionCodec:
        """
        Look up a codec by id.

        Raises:
            UnknownCodecError: If no codec is registered under ``codec_id``.
        """
        try:
            return self._codecs[codec_id]
        except KeyError:
            raise UnknownCodecError(codec_id) from None

    def with_codec(self, codec: CompressionCodec) -> CodecRegistry:
        """Return a new registry that also contains ``codec``."""
        return CodecRegistry([*self._codecs.values(), codec])


DEFAULT_CODECS: CodecRegistry = CodecRegistry([GzipCodec()])
