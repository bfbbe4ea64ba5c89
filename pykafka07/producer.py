# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Publisher for pykafka07.

Turns payloads into messages and hands produce requests to a
BrokerConnection. With gzip compression each batch travels as one
compressed envelope message.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from .compression import DEFAULT_CODECS, CodecRegistry
from .message import Message, encode_message_set, new_message, new_message_with_codec
from .models import ProducerConfig
from .protocol import NO_COMPRESSION_ID

if TYPE_CHECKING:
    from .client import BrokerConnection

logger = logging.getLogger(__name__)


class Publisher:
    """
    Publisher for one topic partition.

    ``publish`` sends right away; ``send`` buffers until ``batch_size``
    payloads are queued or ``flush`` is called.

    Example:
        >>> publisher = Publisher(conn, config=ProducerConfig(compression="gzip"))
        >>> publisher.publish(b"first", b"second")
        2
    """

    def __init__(
        self,
        connection: BrokerConnection,
        *,
        config: ProducerConfig | None = None,
        codecs: CodecRegistry = DEFAULT_CODECS,
    ) -> None:
        """
        Initialize publisher.

        Args:
            connection: Broker connection bound to the target partition.
            config: Publisher configuration.
            codecs: Registry the compression codec is taken from.
        """
        self._connection = connection
        self._config = config or ProducerConfig()
        self._codecs = codecs
        self._closed = False
        self._lock = threading.Lock()
        self._pending: list[bytes] = []

    @property
    def config(self) -> ProducerConfig:
        return self._config

    def build_messages(self, payloads: Iterable[bytes]) -> list[Message]:
        """Wrap payloads as messages, compressed into one envelope if configured."""
        messages = [new_message(payload) for payload in payloads]
        codec_id = self._config.compression.codec_id
        if codec_id != NO_COMPRESSION_ID and messages:
            codec = self._codecs.get_codec(codec_id)
            return [new_message_with_codec(encode_message_set(messages), codec)]
        return messages

    def publish(self, *payloads: bytes | str) -> int:
        """
        Publish payloads immediately.

        Payloads are split into produce requests of at most ``batch_size``
        messages.

        Returns:
            Number of payloads published.
        """
        if self._closed:
            raise RuntimeError("Publisher is closed")

        data = [_to_bytes(p) for p in payloads]
        batch_size = self._config.batch_size
        for i in range(0, len(data), batch_size):
            batch = data[i:i + batch_size]
            written = self._connection.produce(self.build_messages(batch))
            logger.debug("Published %d payloads in %d bytes", len(batch), written)
        return len(data)

    def send(self, payload: bytes | str) -> None:
        """Queue a payload, publishing the queue once it reaches batch_size."""
        if self._closed:
            raise RuntimeError("Publisher is closed")

        with self._lock:
            self._pending.append(_to_bytes(payload))
            if len(self._pending) >= self._config.batch_size:
                self._flush_pending()

    def _flush_pending(self) -> int:
        if not self._pending:
            return 0
        pending, self._pending = self._pending, []
        return self.publish(*pending)

    def flush(self) -> int:
        """
        Publish everything queued by ``send``.

        Returns:
            Number of payloads published.
        """
        with self._lock:
            return self._flush_pending()

    def close(self) -> None:
        """Flush queued payloads and close the publisher."""
        if self._closed:
            return
        self.flush()
        self._closed = True

    def __enter__(self) -> Publisher:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()


def _to_bytes(payload: bytes | str) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)
