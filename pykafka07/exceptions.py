# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Exceptions raised by pykafka07.

All exceptions inherit from KafkaError, so a single except clause catches
every error raised by the library:

    try:
        consumer.poll()
    except KafkaError as e:
        print(f"Kafka error: {e}")

Decoding errors derive from ProtocolError. An incomplete trailing frame is
never an exception: decoders report it as zero additional bytes consumed.
"""

from __future__ import annotations

from .protocol import ErrorCode


class KafkaError(Exception):
    """
    Base exception for all pykafka07 errors.

    An optional hint is appended to the message on its own line.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        self.hint = hint
        if hint:
            message = f"{message}\n\n  Hint: {hint}"
        super().__init__(message)


# =============================================================================
# Codec errors
# =============================================================================


class ProtocolError(KafkaError):
    """Base exception for malformed or corrupt wire data."""


class ChecksumMismatchError(ProtocolError):
    """Raised when a message's stored checksum disagrees with its payload."""

    def __init__(self, expected: bytes, actual: bytes) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch: header has {expected.hex()}, payload hashes to {actual.hex()}",
            hint="The message set is corrupt; refetch it from the broker",
        )


class UnknownCodecError(ProtocolError):
    """Raised when a message names a compression codec that is not registered."""

    def __init__(self, codec_id: int) -> None:
        self.codec_id = codec_id
        super().__init__(
            f"Unknown compression codec: {codec_id}",
            hint="Register the codec with CodecRegistry.with_codec() and pass the registry in",
        )


class MalformedLengthError(ProtocolError):
    """
    Raised when a length field cannot be right.

    Covers negative lengths, lengths shorter than the header they describe,
    lengths above the configured maximum, and compressed message sets that
    do not decode to whole frames.
    """

    def __init__(self, length: int, reason: str) -> None:
        self.length = length
        super().__init__(f"Malformed length {length}: {reason}")


class InvalidMagicError(ProtocolError):
    """Raised when a message header version is neither 0 nor 1."""

    def __init__(self, magic: int) -> None:
        self.magic = magic
        super().__init__(f"Unsupported message magic byte: {magic}")


class DecompressionError(ProtocolError):
    """Raised when a compressed payload cannot be decompressed."""


# =============================================================================
# Connection errors
# =============================================================================


class ConnectionError(KafkaError):
    """
    Raised when the connection to a broker fails.

    Common causes:
    - Broker is not running
    - Wrong host or port
    - Network issues
    """

    def __init__(
        self,
        message: str,
        host: str | None = None,
        port: int | None = None,
        *,
        hint: str | None = None,
    ) -> None:
        self.host = host
        self.port = port
        if hint is None and host:
            hint = f"Check that a broker is listening on {host}:{port}"
        super().__init__(message, hint=hint)


class ConnectionClosedError(ConnectionError):
    """Raised when the broker closes the connection mid-response."""

    def __init__(self, message: str = "Connection closed by broker") -> None:
        super().__init__(message, hint="The broker may have been restarted. Try reconnecting.")


class ConnectionTimeoutError(ConnectionError):
    """Raised when connecting or waiting for a response times out."""

    def __init__(self, message: str, host: str | None = None, port: int | None = None) -> None:
        super().__init__(
            message,
            host,
            port,
            hint="Try increasing connect_timeout_ms or request_timeout_ms",
        )


class NoAvailableBrokerError(KafkaError):
    """Raised when none of the configured brokers accepts a connection."""

    def __init__(self, brokers: list[str], errors: list[str] | None = None) -> None:
        self.brokers = brokers
        self.errors = errors or []
        super().__init__(
            f"No available brokers from: {', '.join(brokers)}",
            hint="Check that at least one broker is running and accessible",
        )


# =============================================================================
# Broker response errors
# =============================================================================


class BrokerResponseError(KafkaError):
    """Raised when a broker response carries a non-zero error code."""

    error_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str | None = None, *, error_code: int | None = None) -> None:
        if error_code is not None:
            self.error_code = error_code
        super().__init__(message or f"Broker returned error code {self.error_code}")


class OffsetOutOfRangeError(BrokerResponseError):
    """Raised when a fetch offset is outside the partition's log."""

    error_code = ErrorCode.OFFSET_OUT_OF_RANGE


class InvalidMessageError(BrokerResponseError):
    """Raised when the broker rejects a produced message as corrupt."""

    error_code = ErrorCode.INVALID_MESSAGE


class WrongPartitionError(BrokerResponseError):
    """Raised when the partition does not exist on this broker."""

    error_code = ErrorCode.WRONG_PARTITION


class InvalidFetchSizeError(BrokerResponseError):
    """Raised when the broker refuses the requested fetch size."""

    error_code = ErrorCode.INVALID_FETCH_SIZE


_BROKER_ERRORS: dict[int, type[BrokerResponseError]] = {
    ErrorCode.OFFSET_OUT_OF_RANGE: OffsetOutOfRangeError,
    ErrorCode.INVALID_MESSAGE: InvalidMessageError,
    ErrorCode.WRONG_PARTITION: WrongPartitionError,
    ErrorCode.INVALID_FETCH_SIZE: InvalidFetchSizeError,
}


def raise_for_error_code(error_code: int) -> None:
    """Raise the BrokerResponseError matching ``error_code``, if any."""
    if error_code == ErrorCode.NO_ERROR:
        return
    exc_class = _BROKER_ERRORS.get(error_code)
    if exc_class is None:
        raise BrokerResponseError(error_code=error_code)
    raise exc_class()


# =============================================================================
# Consumer errors
# =============================================================================


class ConsumerError(KafkaError):
    """Base exception for consumer errors."""


class MessageTooLargeError(ConsumerError):
    """
    Raised when a fetch returned data but not one complete message.

    The next message is larger than the configured fetch size.
    """

    def __init__(self, offset: int, max_fetch_size: int) -> None:
        self.offset = offset
        self.max_fetch_size = max_fetch_size
        super().__init__(
            f"Message at offset {offset} is larger than the fetch size of {max_fetch_size} bytes",
            hint="Increase ConsumerConfig.max_fetch_size",
        )
