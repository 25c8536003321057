"""
Socket Mode transport session — one WebSocket per process.

open(): apps.connections.open -> WebSocket connect -> wait for `hello`.
receive_next() blocks for the next envelope; close() unblocks it.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from slack_gate.errors import AcknowledgeError, ConnectionError, DisconnectedError, EnvelopeDecodeError
from slack_gate.models.envelope import Envelope, EnvelopeKind
from slack_gate.transport.envelope import build_ack, parse_frame


class ControlPlane(Protocol):
    async def open_connection(self) -> str: ...


Connector = Callable[[str], Awaitable[Any]]


class SocketModeSession:
    def __init__(
        self,
        control_plane: ControlPlane,
        connector: Optional[Connector] = None,
        hello_timeout: float = 15.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._control_plane = control_plane
        self._connect = connector or websockets.connect
        self._hello_timeout = hello_timeout
        self._log = logger or logging.getLogger(__name__)
        self._ws: Optional[Any] = None
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        """Connect and wait for the `hello` handshake. Raises ConnectionError."""
        self._log.info("Opening Socket Mode connection...")
        url = await self._control_plane.open_connection()

        try:
            self._ws = await self._connect(url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise ConnectionError(f"WebSocket connection failed: {e}")

        try:
            raw = await asyncio.wait_for(self._ws.recv(), timeout=self._hello_timeout)
            envelope = parse_frame(raw)
        except asyncio.TimeoutError:
            await self.close()
            raise ConnectionError(f"Timed out waiting for 'hello' after {self._hello_timeout}s")
        except (ConnectionClosed, EnvelopeDecodeError) as e:
            await self.close()
            raise ConnectionError(f"Socket Mode handshake failed: {e}")

        if envelope.kind != EnvelopeKind.HELLO:
            await self.close()
            raise ConnectionError(f"Expected hello but got: {envelope.reason or envelope.kind.value}")
        self._log.info("Socket Mode connection established")

    async def receive_next(self) -> Envelope:
        """Block until the next envelope arrives. Raises DisconnectedError once closed.

        Malformed frames, and unknown frames carrying no envelope_id, are skipped.
        """
        while True:
            if self._ws is None or self._closed:
                raise DisconnectedError()
            try:
                raw = await self._ws.recv()
            except ConnectionClosed as e:
                raise DisconnectedError(f"Socket Mode connection closed: {e}")

            try:
                envelope = parse_frame(raw)
            except EnvelopeDecodeError as e:
                self._log.warning("Skipping undecodable frame: %s", e)
                continue

            if envelope.kind == EnvelopeKind.OTHER and envelope.correlation_token is None:
                self._log.debug("Skipping unrecognised frame type: %s", envelope.reason)
                continue
            self._log.debug("Received envelope kind=%s id=%s", envelope.kind.value, envelope.correlation_token)
            return envelope

    async def acknowledge(self, envelope_id: str) -> None:
        if self._ws is None or self._closed:
            raise AcknowledgeError(envelope_id, "Socket Mode connection is closed")
        try:
            await self._ws.send(build_ack(envelope_id))
        except (ConnectionClosed, OSError) as e:
            raise AcknowledgeError(envelope_id, f"Failed to send acknowledgment: {e}")
        self._log.debug("Sent acknowledgment for envelope: %s", envelope_id)

    async def close(self) -> None:
        """Close the socket. Idempotent; a pending receive_next() raises DisconnectedError."""
        if self._closed:
            return
        self._closed = True
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        self._log.info("Socket Mode connection closed")
