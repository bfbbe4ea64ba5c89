# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Broker connection for pykafka07.

A BrokerConnection owns one socket to one broker and is bound to a single
topic partition. It writes encoded requests and reads whole response frames;
all encoding and decoding is done by the codec modules.

Usage Patterns:

    # Context manager (recommended)
    from pykafka07 import BrokerConnection, new_message
    with BrokerConnection("my-topic", 0, "localhost:9092") as conn:
        conn.produce([new_message(b"Hello!")])

    # Explicit lifecycle management
    conn = BrokerConnection("my-topic", 0, ["broker1:9092", "broker2:9092"])
    try:
        body = conn.fetch(0)
    finally:
        conn.close()
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Sequence
from typing import Any

from .binary import (
    RESPONSE_HEADER_SIZE,
    FetchRequest,
    OffsetsRequest,
    ProduceRequest,
    decode_offsets_response,
    decode_response_header,
    encode_fetch_request,
    encode_offsets_request,
    encode_produce_request,
)
from .exceptions import (
    ConnectionClosedError,
    ConnectionError,
    ConnectionTimeoutError,
    NoAvailableBrokerError,
    raise_for_error_code,
)
from .message import Message
from .models import BrokerTarget, ClientConfig
from .protocol import DEFAULT_FETCH_SIZE, LATEST_TIME, LENGTH_SIZE

logger = logging.getLogger(__name__)


class BrokerConnection:
    """
    Connection to a broker for one topic partition.

    The connection handles:
    - Failover across several broker addresses on connect
    - Reading complete length-prefixed responses from the socket
    - Mapping broker error codes to exceptions
    - Thread-safe request/response exchange

    Example:
        >>> conn = BrokerConnection("test", 0, "localhost:9092")
        >>> conn.produce([new_message(b"testing")])
        >>> body = conn.fetch(0)
        >>> conn.close()
    """

    def __init__(
        self,
        topic: str,
        partition: int = 0,
        brokers: str | list[str] | None = None,
        *,
        config: ClientConfig | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize and connect.

        Args:
            topic: Topic every request is addressed to.
            partition: Partition every request is addressed to.
            brokers: Comma-separated addresses or list of addresses. Defaults to
                the config's brokers, or localhost:9092 without a config.
            config: Optional ClientConfig object.
            **kwargs: Override config options (connect_timeout_ms, max_retries, etc.)
        """
        if config is None:
            config = ClientConfig(brokers=brokers or "localhost:9092", **kwargs)
        else:
            config = config.model_copy()
            if brokers is not None:
                config.brokers = brokers
            for key, value in kwargs.items():
                if hasattr(config, key):
                    setattr(config, key, value)

        self._config = config
        self._brokers = config.get_brokers()
        self._current_broker_idx = 0
        self._target = BrokerTarget(address=self._brokers[0], topic=topic, partition=partition)
        self._sock: socket.socket | None = None
        self._lock = threading.RLock()
        self._closed = False

        self._connect()

    @property
    def target(self) -> BrokerTarget:
        """The address, topic and partition of this connection."""
        return self._target

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def _connect(self) -> None:
        """Connect to a broker with failover."""
        errors: list[str] = []

        for attempt in range(self._config.max_retries):
            for i in range(len(self._brokers)):
                broker_idx = (self._current_broker_idx + i) % len(self._brokers)
                broker = self._brokers[broker_idx]

                candidate = self._target.model_copy(update={"address": broker})
                try:
                    self._connect_to_server(candidate)
                except ConnectionError as e:
                    logger.warning("Connection to %s failed: %s", broker, e)
                    errors.append(f"{broker}: {e}")
                    continue

                self._current_broker_idx = broker_idx
                self._target = candidate
                logger.info(
                    "Connected to %s for %s/%d",
                    broker, self._target.topic, self._target.partition,
                )
                return

            if attempt < self._config.max_retries - 1:
                time.sleep(self._config.retry_delay_ms / 1000.0)

        raise NoAvailableBrokerError(self._brokers, errors)

    def _connect_to_server(self, target: BrokerTarget) -> None:
        """Connect to a specific broker, trying all of its addresses."""
        broker, host, port = target.address, target.host, target.port

        try:
            addrs = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
        except socket.gaierror as e:
            raise ConnectionError(f"Failed to resolve {host}: {e}", host, port) from e

        last_error: ConnectionError | None = None
        for family, socktype, proto, _canonname, sockaddr in addrs:
            sock = socket.socket(family, socktype, proto)
            try:
                sock.settimeout(self._config.connect_timeout_ms / 1000.0)
                sock.connect(sockaddr)
                sock.settimeout(self._config.request_timeout_ms / 1000.0)
            except socket.timeout:
                sock.close()
                last_error = ConnectionTimeoutError(f"Connection to {broker} timed out", host, port)
                continue
            except OSError as e:
                sock.close()
                last_error = ConnectionError(f"Failed to connect to {broker}: {e}", host, port)
                continue

            self._sock = sock
            return

        if last_error:
            raise last_error
        raise ConnectionError(f"No addresses found for {broker}", host, port)

    def _ensure_connected(self) -> socket.socket:
        """Ensure we have an active connection."""
        if self._closed:
            raise ConnectionClosedError("Connection is closed")
        if self._sock is None:
            self._connect()
        return self._sock

    def _drop(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                logger.debug("Error closing socket", exc_info=True)
            self._sock = None

    def _recv_exactly(self, sock: socket.socket, size: int) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            chunk = sock.recv(min(size - len(buf), 65536))
            if not chunk:
                raise ConnectionClosedError(
                    f"Connection closed after {len(buf)} of {size} bytes"
                )
            buf += chunk
        return bytes(buf)

    def send(self, request: bytes) -> None:
        """
        Write an encoded request without waiting for a response.

        Produce requests get no response from a 0.7 broker.

        Raises:
            ConnectionError: If the write fails. The socket is dropped and
                the next call reconnects.
        """
        with self._lock:
            sock = self._ensure_connected()
            try:
                sock.sendall(request)
            except socket.timeout as e:
                self._drop()
                raise ConnectionTimeoutError(f"Write to {self._target.address} timed out") from e
            except OSError as e:
                self._drop()
                raise ConnectionError(str(e)) from e

    def request(self, request: bytes, *, max_size: int | None = None) -> tuple[int, bytes]:
        """
        Send an encoded request and read the whole response.

        Args:
            request: Encoded request, length prefix included.
            max_size: Largest accepted response body. Defaults to
                ``max_message_size``; a fetch passes its own fetch size.

        Returns:
            Tuple of (error_code, body).

        Raises:
            ConnectionError: If the exchange fails or the response is malformed.
        """
        limit = self._config.max_message_size if max_size is None else max_size
        with self._lock:
            self.send(request)
            sock = self._ensure_connected()
            address = self._target.address
            try:
                try:
                    length, error_code = decode_response_header(
                        self._recv_exactly(sock, RESPONSE_HEADER_SIZE)
                    )
                except ValueError as e:
                    raise ConnectionError(f"Invalid response from {address}: {e}") from e
                body_size = length - (RESPONSE_HEADER_SIZE - LENGTH_SIZE)
                if body_size > limit:
                    raise ConnectionError(
                        f"Response body of {body_size} bytes from {address} exceeds {limit} bytes"
                    )
                body = self._recv_exactly(sock, body_size)
            except ConnectionError:
                self._drop()
                raise
            except socket.timeout as e:
                self._drop()
                raise ConnectionTimeoutError(f"Read from {self._target.address} timed out") from e
            except OSError as e:
                self._drop()
                raise ConnectionError(str(e)) from e

        logger.debug("Response from %s: %d bytes, error %d", address, length, error_code)
        return error_code, body

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            self._closed = True
            self._drop()
        logger.info("Closed connection to %s", self._target.address)

    def __enter__(self) -> BrokerConnection:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

    # =========================================================================
    # Operations
    # =========================================================================

    def produce(self, messages: Sequence[Message]) -> int:
        """
        Publish messages to this connection's topic partition.

        Returns:
            Number of request bytes written.
        """
        request = encode_produce_request(
            ProduceRequest(topic=self._target.topic, partition=self._target.partition, messages=messages)
        )
        self.send(request)
        return len(request)

    def fetch(self, offset: int, max_size: int = DEFAULT_FETCH_SIZE) -> bytes:
        """
        Fetch the raw message set starting at a byte offset.

        Returns:
            Message set bytes, possibly ending mid-message.

        Raises:
            BrokerResponseError: If the broker reports an error.
        """
        request = encode_fetch_request(
            FetchRequest(
                topic=self._target.topic,
                partition=self._target.partition,
                offset=offset,
                max_size=max_size,
            )
        )
        error_code, body = self.request(request, max_size=max_size)
        raise_for_error_code(error_code)
        return body

    def offsets(self, before: int = LATEST_TIME, max_offsets: int = 1) -> list[int]:
        """
        Get offsets of log segments that start before a time.

        Args:
            before: -1 for the latest offset, -2 for the earliest, otherwise
                milliseconds since the epoch.
            max_offsets: Maximum number of offsets to return.

        Returns:
            Offsets, newest first.
        """
        request = encode_offsets_request(
            OffsetsRequest(
                topic=self._target.topic,
                partition=self._target.partition,
                time=before,
                max_offsets=max_offsets,
            )
        )
        error_code, body = self.request(request)
        raise_for_error_code(error_code)
        return decode_offsets_response(body)
