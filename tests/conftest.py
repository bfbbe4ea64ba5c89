# Copyright (c) 2026 Firefly Software Solutions Inc.
# Licensed under the Apache License, Version 2.0

"""Shared fixtures: an in-process broker stand-in."""

from __future__ import annotations

import socket
import struct
import threading
from collections.abc import Callable, Iterator

import pytest

# Called with each request (length prefix stripped); returns the response
# frame to write back, or None to send nothing.
Handler = Callable[[bytes], "bytes | None"]


def response(error_code: int, body: bytes = b"") -> bytes:
    """Build a response frame."""
    return struct.pack(">ih", len(body) + 2, error_code) + body


class FakeBroker:
    """Single-connection TCP server that records requests."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.requests: list[bytes] = []
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self._server.settimeout(5)
        self.address = f"127.0.0.1:{self._server.getsockname()[1]}"
        self._received = threading.Condition()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            conn, _ = self._server.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(5)
            while True:
                header = self._read(conn, 4)
                if header is None:
                    return
                (length,) = struct.unpack(">i", header)
                body = self._read(conn, length)
                if body is None:
                    return
                with self._received:
                    self.requests.append(body)
                    self._received.notify_all()
                reply = self.handler(body)
                if reply is not None:
                    conn.sendall(reply)

    @staticmethod
    def _read(conn: socket.socket, size: int) -> bytes | None:
        buf = b""
        while len(buf) < size:
            try:
                chunk = conn.recv(size - len(buf))
            except OSError:
                return None
            if not chunk:
                return None
            buf += chunk
        return buf

    def wait_for_requests(self, count: int, timeout: float = 5.0) -> list[bytes]:
        """Block until ``count`` requests have arrived."""
        with self._received:
            self._received.wait_for(lambda: len(self.requests) >= count, timeout)
            return list(self.requests)

    def close(self) -> None:
        self._server.close()


@pytest.fixture
def fake_broker() -> Iterator[Callable[[Handler], FakeBroker]]:
    """Factory for FakeBroker instances, closed after the test."""
    brokers: list[FakeBroker] = []

    def start(handler: Handler = lambda request: None) -> FakeBroker:
        broker = FakeBroker(handler)
        brokers.append(broker)
        return broker

    yield start
    for broker in brokers:
        broker.close()


def unused_address() -> str:
    """Return an address nothing is listening on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"127.0.0.1:{port}"
