# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""Tests for compression codecs and the codec registry."""

import gzip
import logging

import pytest

from pykafka07.compression import (
    DEFAULT_CODECS,
    CodecRegistry,
    CompressionCodec,
    GzipCodec,
    NoCompressionCodec,
)
from pykafka07.exceptions import DecompressionError, UnknownCodecError


class XorCodec(CompressionCodec):
    """Toy codec for registry tests."""

    id = 9

    def compress(self, data: bytes) -> bytes:
        return bytes(b ^ 0x5A for b in data)

    def decompress(self, data: bytes, max_length: int | None = None) -> bytes:
        return bytes(b ^ 0x5A for b in data)


class TestNoCompressionCodec:
    """Tests for the identity codec."""

    def test_identity(self) -> None:
        """Test compress and decompress return the input."""
        codec = NoCompressionCodec()
        assert codec.id == 0
        assert codec.compress(b"testing") == b"testing"
        assert codec.decompress(b"testing") == b"testing"


class TestGzipCodec:
    """Tests for the gzip codec."""

    def test_id(self) -> None:
        """Test gzip uses compression id 1."""
        assert GzipCodec().id == 1

    @pytest.mark.parametrize("size", [0, 1, 100, 200, 1 << 16, 1 << 20])
    def test_round_trip(self, size: int) -> None:
        """Test decompress undoes compress for assorted sizes."""
        data = bytes(i % 251 for i in range(size))
        codec = GzipCodec()
        assert codec.decompress(codec.compress(data)) == data

    def test_output_is_standard_gzip(self) -> None:
        """Test other gzip readers accept the output."""
        assert gzip.decompress(GzipCodec().compress(b"testing")) == b"testing"

    def test_deterministic(self) -> None:
        """Test compressing twice gives identical bytes."""
        codec = GzipCodec()
        assert codec.compress(b"testing") == codec.compress(b"testing")

    def test_compresslevel(self) -> None:
        """Test the compression level is honored."""
        data = b"testing123 " * 1000
        fast = GzipCodec(compresslevel=0).compress(data)
        best = GzipCodec(compresslevel=9).compress(data)
        assert len(best) < len(fast)
        assert GzipCodec().decompress(fast) == data

    def test_decompresses_foreign_gzip(self) -> None:
        """Test data compressed elsewhere is accepted."""
        data = b"multiple messages " * 50
        assert GzipCodec().decompress(gzip.compress(data, compresslevel=9)) == data

    def test_concatenated_members(self) -> None:
        """Test every member of a multi-member stream is decompressed."""
        data = gzip.compress(b"first ") + gzip.compress(b"second")
        assert GzipCodec().decompress(data) == b"first second"

    def test_zero_padding_after_member(self) -> None:
        """Test zero padding after a member is ignored."""
        data = gzip.compress(b"padded") + b"\x00" * 8
        assert GzipCodec().decompress(data) == b"padded"

    def test_missing_trailer(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a stream without its trailer yields what was decoded."""
        data = gzip.compress(b"testing123 " * 15)[:-8]
        with caplog.at_level(logging.WARNING, logger="pykafka07.compression"):
            assert GzipCodec().decompress(data) == b"testing123 " * 15
        assert "end-of-stream" in caplog.text

    def test_cut_before_output(self) -> None:
        """Test a stream cut inside its header fails."""
        with pytest.raises(DecompressionError):
            GzipCodec().decompress(gzip.compress(b"testing")[:5])

    def test_not_gzip(self) -> None:
        """Test non-gzip input fails."""
        with pytest.raises(DecompressionError, match="Invalid gzip payload"):
            GzipCodec().decompress(b"plain text, not gzip")

    def test_max_length_allows_exact_size(self) -> None:
        """Test output of exactly max_length bytes is accepted."""
        data = gzip.compress(b"a" * 1000)
        assert GzipCodec().decompress(data, max_length=1000) == b"a" * 1000

    def test_max_length_exceeded(self) -> None:
        """Test output one byte over max_length is refused."""
        with pytest.raises(DecompressionError, match="inflates past 999 bytes"):
            GzipCodec().decompress(gzip.compress(b"a" * 1000), max_length=999)

    def test_max_length_spans_members(self) -> None:
        """Test the limit covers all members together."""
        data = gzip.compress(b"a" * 600) + gzip.compress(b"b" * 600)
        with pytest.raises(DecompressionError):
            GzipCodec().decompress(data, max_length=1000)
        assert len(GzipCodec().decompress(data, max_length=1200)) == 1200

    def test_identity_max_length(self) -> None:
        """Test the identity codec honors max_length."""
        assert NoCompressionCodec().decompress(b"abc", max_length=3) == b"abc"
        with pytest.raises(DecompressionError):
            NoCompressionCodec().decompress(b"abcd", max_length=3)

    def test_accepts_memoryview(self) -> None:
        """Test decompressing from a memoryview."""
        data = gzip.compress(b"testing")
        assert GzipCodec().decompress(memoryview(data)) == b"testing"


class TestCodecRegistry:
    """Tests for CodecRegistry."""

    def test_default_registry(self) -> None:
        """Test the default registry holds gzip only."""
        assert list(DEFAULT_CODECS) == [1]
        assert isinstance(DEFAULT_CODECS.get_codec(1), GzipCodec)
        assert 0 not in DEFAULT_CODECS

    def test_get_unknown_codec(self) -> None:
        """Test looking up an unregistered id."""
        with pytest.raises(UnknownCodecError) as exc_info:
            DEFAULT_CODECS.get_codec(2)
        assert exc_info.value.codec_id == 2
        assert "Unknown compression codec: 2" in str(exc_info.value)

    def test_mapping_interface(self) -> None:
        """Test the registry behaves as a read-only mapping."""
        registry = CodecRegistry([GzipCodec(), XorCodec()])
        assert len(registry) == 2
        assert set(registry) == {1, 9}
        assert registry[9].id == 9
        assert registry.get(3) is None
        with pytest.raises(KeyError):
            registry[3]
        with pytest.raises(TypeError):
            registry[3] = XorCodec()  # type: ignore[index]

    def test_with_codec_returns_new_registry(self) -> None:
        """Test adding a codec leaves the original untouched."""
        extended = DEFAULT_CODECS.with_codec(XorCodec())
        assert 9 in extended
        assert 1 in extended
        assert 9 not in DEFAULT_CODECS
        assert extended is not DEFAULT_CODECS

    def test_with_codec_replaces_same_id(self) -> None:
        """Test a later codec wins for a repeated id."""
        replacement = GzipCodec(compresslevel=9)
        registry = DEFAULT_CODECS.with_codec(replacement)
        assert registry.get_codec(1) is replacement
        assert len(registry) == 1

    def test_negative_id_rejected(self) -> None:
        """Test codecs with negative ids cannot be registered."""
        codec = XorCodec()
        codec.id = -1
        with pytest.raises(ValueError, match="non-negative"):
            CodecRegistry([codec])

    def test_empty_registry(self) -> None:
        """Test an empty registry knows no codecs."""
        registry = CodecRegistry()
        assert len(registry) == 0
        with pytest.raises(UnknownCodecError):
            registry.get_codec(1)

    def test_repr(self) -> None:
        """Test registry repr lists codecs."""
        assert repr(DEFAULT_CODECS) == "CodecRegistry([GzipCodec(id=1)])"
