# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Pydantic models for pykafka07.

Provides validated configuration and result models for the connection,
publisher and consumer.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .protocol import (
    DEFAULT_FETCH_SIZE,
    EARLIEST_TIME,
    GZIP_COMPRESSION_ID,
    LATEST_TIME,
    MAX_MESSAGE_SIZE,
    NO_COMPRESSION_ID,
)


class CompressionType(str, Enum):
    """Producer compression settings."""
    NONE = "none"
    GZIP = "gzip"

    @property
    def codec_id(self) -> int:
        return GZIP_COMPRESSION_ID if self is CompressionType.GZIP else NO_COMPRESSION_ID


class OffsetReset(str, Enum):
    """Where a consumer starts when no offset is given."""
    EARLIEST = "earliest"
    LATEST = "latest"

    @property
    def time(self) -> int:
        return EARLIEST_TIME if self is OffsetReset.EARLIEST else LATEST_TIME


# ============================================================================
# Configuration Models
# ============================================================================


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"Broker address must be host:port, got {address!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in broker address {address!r}") from None
    if not 0 < port_num < 65536:
        raise ValueError(f"Port out of range in broker address {address!r}")
    return host.strip("[]"), port_num


class BrokerTarget(BaseModel):
    """The broker address, topic and partition a request is built for."""

    model_config = ConfigDict(frozen=True)

    address: str = "localhost:9092"
    topic: str = Field(min_length=1, max_length=0x7FFF)
    partition: int = Field(default=0, ge=0)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        _split_address(v)
        return v

    @property
    def host(self) -> str:
        return _split_address(self.address)[0]

    @property
    def port(self) -> int:
        return _split_address(self.address)[1]


class ClientConfig(BaseModel):
    """Configuration for a broker connection."""

    model_config = ConfigDict(validate_assignment=True)

    brokers: str | list[str] = Field(
        default="localhost:9092",
        description="Comma-separated list of host:port addresses or list of strings",
    )
    connect_timeout_ms: int = Field(default=10000, ge=100, le=300000)
    request_timeout_ms: int = Field(default=30000, ge=100, le=300000)
    max_retries: int = Field(default=3, ge=1, le=100)
    retry_delay_ms: int = Field(default=1000, ge=0, le=60000)
    max_message_size: int = Field(default=MAX_MESSAGE_SIZE, ge=1024)

    @field_validator("brokers")
    @classmethod
    def validate_brokers(cls, v: str | list[str]) -> str | list[str]:
        addresses = _parse_brokers(v)
        if not addresses:
            raise ValueError("At least one broker address is required")
        for address in addresses:
            _split_address(address)
        return v

    def get_brokers(self) -> list[str]:
        """Get list of broker addresses."""
        return _parse_brokers(self.brokers)


def _parse_brokers(brokers: str | list[str]) -> list[str]:
    if isinstance(brokers, str):
        return [s.strip() for s in brokers.split(",") if s.strip()]
    return [s.strip() for s in brokers if s.strip()]


class ProducerConfig(BaseModel):
    """Configuration for a publisher."""

    model_config = ConfigDict(validate_assignment=True)

    compression: CompressionType = CompressionType.NONE
    batch_size: int = Field(default=200, ge=1, description="Messages per produce request")


class ConsumerConfig(BaseModel):
    """Configuration for a consumer."""

    model_config = ConfigDict(validate_assignment=True)

    max_fetch_size: int = Field(default=DEFAULT_FETCH_SIZE, ge=1, le=2**31 - 1)
    auto_offset_reset: OffsetReset = OffsetReset.EARLIEST
    poll_interval_ms: int = Field(default=1000, ge=0)


# ============================================================================
# Result Models
# ============================================================================


class ConsumedMessage(BaseModel):
    """A message read from a topic partition."""

    model_config = ConfigDict(frozen=True)

    topic: str
    partition: int
    offset: int = Field(description="Byte offset of the frame that carried this message")
    next_offset: int = Field(description="Offset to fetch from after this message")
    payload: bytes

    @property
    def value(self) -> bytes:
        """Alias for payload."""
        return self.payload

    def decode(self, encoding: str = "utf-8") -> str:
        """Decode message payload as string."""
        return self.payload.decode(encoding)


class FetchResult(BaseModel):
    """Result of one fetch."""

    model_config = ConfigDict(frozen=True)

    messages: list[ConsumedMessage]
    next_offset: int
    bytes_consumed: int = 0
