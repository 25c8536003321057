"""Shared fakes: an in-memory envelope source and a recording Slack gateway."""

import asyncio
import itertools
from typing import Any, Optional

import pytest

from slack_gate.errors import DisconnectedError
from slack_gate.models.envelope import (
    ActionRef,
    Envelope,
    EnvelopeKind,
    InteractiveAction,
    MessageEvent,
)

_ids = itertools.count(1)


def action_envelope(action_id: str, message_id: str, user_id: str = "U1", value: Optional[str] = None) -> Envelope:
    return Envelope(
        kind=EnvelopeKind.INTERACTIVE,
        correlation_token=f"env-{next(_ids)}",
        interactive=InteractiveAction(
            actions=[ActionRef(action_id=action_id, value=value, origin_message_id=message_id)],
            user_id=user_id,
            message_id=message_id,
        ),
    )


def reply_envelope(thread_root_id: str, ts: str, text: str, user_id: str = "U1", bot: bool = False) -> Envelope:
    return Envelope(
        kind=EnvelopeKind.MESSAGE,
        correlation_token=f"env-{next(_ids)}",
        message=MessageEvent(thread_root_id=thread_root_id, ts=ts, author_is_bot=bot, text=text, user_id=user_id),
    )


def disconnect_envelope(reason: str = "refresh_requested") -> Envelope:
    return Envelope(kind=EnvelopeKind.DISCONNECT, correlation_token=f"env-{next(_ids)}", reason=reason)


class FakeSession:
    """Envelope source fed from a queue. receive_next() blocks when empty, like a socket."""

    def __init__(self, envelopes: Optional[list[Envelope]] = None):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.acks: list[str] = []
        self.close_calls = 0
        self.closed = False
        self.opened = False
        for env in envelopes or []:
            self.queue.put_nowait(env)

    def push(self, envelope: Envelope) -> None:
        self.queue.put_nowait(envelope)

    async def open(self) -> None:
        self.opened = True

    async def receive_next(self) -> Envelope:
        if self.closed:
            raise DisconnectedError()
        item = await self.queue.get()
        if item is None:
            raise DisconnectedError()
        return item

    async def acknowledge(self, envelope_id: str) -> None:
        self.acks.append(envelope_id)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.close_calls += 1
        self.queue.put_nowait(None)


class FakeGateway:
    """Records chat.postMessage / chat.update calls and hands out increasing ts values."""

    def __init__(self, on_post=None):
        self.posts: list[dict[str, Any]] = []
        self.updates: list[dict[str, Any]] = []
        self.on_post = on_post
        self._ts = itertools.count(1)
        self.closed = False

    async def post_message(self, channel, blocks, text, thread_ts=None, reply_broadcast=False) -> str:
        ts = f"1700000000.{next(self._ts):06d}"
        self.posts.append({"channel": channel, "blocks": blocks, "text": text, "thread_ts": thread_ts,
                           "reply_broadcast": reply_broadcast, "ts": ts})
        if self.on_post is not None:
            self.on_post(ts, thread_ts)
        return ts

    async def update_message(self, channel, ts, blocks, text) -> None:
        self.updates.append({"channel": channel, "ts": ts, "blocks": blocks, "text": text})

    async def open_connection(self) -> str:
        return "wss://example.invalid/link"

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
