# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""
Consumer for pykafka07.

Offsets in the 0.7 protocol are byte positions in the partition log. The
consumer fetches a window starting at its offset, decodes the complete
messages in it and moves forward by the bytes consumed. A message cut off
at the end of the window is fetched again on the next poll.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from .compression import DEFAULT_CODECS, CodecRegistry
from .exceptions import ConsumerError, MessageTooLargeError
from .message import decode_message_frames
from .models import ConsumedMessage, ConsumerConfig, FetchResult

if TYPE_CHECKING:
    from .client import BrokerConnection

logger = logging.getLogger(__name__)


class Consumer:
    """
    Consumer for one topic partition.

    Example:
        >>> consumer = Consumer(conn, offset=0)
        >>> for message in consumer:
        ...     print(message.decode())
    """

    def __init__(
        self,
        connection: BrokerConnection,
        *,
        offset: int | None = None,
        config: ConsumerConfig | None = None,
        codecs: CodecRegistry = DEFAULT_CODECS,
    ) -> None:
        """
        Initialize consumer.

        Args:
            connection: Broker connection bound to the source partition.
            offset: Byte offset to start from. When None, the start is
                looked up with an offsets request per ``auto_offset_reset``.
            config: Consumer configuration.
            codecs: Registry used to decompress compressed messages.
        """
        self._connection = connection
        self._config = config or ConsumerConfig()
        self._codecs = codecs
        self._closed = False
        self._lock = threading.Lock()

        if offset is None:
            offsets = connection.offsets(self._config.auto_offset_reset.time, 1)
            offset = offsets[0] if offsets else 0
            logger.info(
                "Starting %s/%d at %s offset %d",
                connection.target.topic, connection.target.partition,
                self._config.auto_offset_reset.value, offset,
            )
        self._offset = offset

    @property
    def offset(self) -> int:
        """Get the byte offset of the next fetch."""
        return self._offset

    def seek(self, offset: int) -> None:
        """
        Seek to a byte offset.

        The offset must be a message boundary, such as ``next_offset`` of a
        consumed message or a value returned by an offsets request.
        """
        if offset < 0:
            raise ValueError(f"Offset must be non-negative, got {offset}")
        with self._lock:
            self._offset = offset

    def poll(self) -> FetchResult:
        """
        Fetch and decode the messages at the current offset.

        Returns:
            FetchResult with the decoded messages and the new offset.

        Raises:
            ConsumerError: If the consumer is closed.
            MessageTooLargeError: If the next message does not fit in
                ``max_fetch_size``.
            ProtocolError: If the fetched data is corrupt.
        """
        if self._closed:
            raise ConsumerError("Consumer is closed")

        target = self._connection.target
        with self._lock:
            base = self._offset
            body = self._connection.fetch(base, self._config.max_fetch_size)
            consumed, frames = decode_message_frames(
                body,
                self._codecs,
                max_size=self._connection.config.max_message_size,
            )
            if consumed == 0 and body:
                raise MessageTooLargeError(base, self._config.max_fetch_size)

            messages = [
                ConsumedMessage(
                    topic=target.topic,
                    partition=target.partition,
                    offset=base + start,
                    next_offset=base + end,
                    payload=message.payload,
                )
                for start, end, message in frames
            ]
            self._offset = base + consumed

        logger.debug("Fetched %d messages, offset %d -> %d", len(messages), base, self._offset)
        return FetchResult(messages=messages, next_offset=self._offset, bytes_consumed=consumed)

    def close(self) -> None:
        """Close the consumer."""
        self._closed = True

    def __iter__(self) -> Iterator[ConsumedMessage]:
        """Iterate over messages, waiting ``poll_interval_ms`` when caught up."""
        while not self._closed:
            result = self.poll()
            if not result.messages:
                time.sleep(self._config.poll_interval_ms / 1000.0)
                continue
            yield from result.messages

    def __enter__(self) -> Consumer:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
