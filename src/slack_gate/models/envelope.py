"""
Socket Mode envelopes — raw wire frames and the decoded, tagged envelope.

Wire models mirror the JSON Slack pushes over the socket; `Envelope` is the
decoded form the matcher works with.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# Wire frames

class SlackAction(BaseModel):
    action_id: str
    block_id: Optional[str] = None
    value: Optional[str] = None
    type: Optional[str] = None


class SlackUser(BaseModel):
    id: str
    username: Optional[str] = None
    name: Optional[str] = None


class SlackMessageRef(BaseModel):
    ts: Optional[str] = None
    text: Optional[str] = None
    thread_ts: Optional[str] = None


class SlackContainer(BaseModel):
    type: Optional[str] = None
    message_ts: Optional[str] = None
    channel_id: Optional[str] = None
    thread_ts: Optional[str] = None


class SlackEvent(BaseModel):
    """Events API event; only `message` events are interpreted."""
    type: str
    subtype: Optional[str] = None
    channel: Optional[str] = None
    user: Optional[str] = None
    bot_id: Optional[str] = None
    text: Optional[str] = None
    ts: Optional[str] = None
    thread_ts: Optional[str] = None


class SocketPayload(BaseModel):
    type: Optional[str] = None  # "block_actions" | "event_callback" | ...
    actions: list[SlackAction] = Field(default_factory=list)
    user: Optional[SlackUser] = None
    message: Optional[SlackMessageRef] = None
    container: Optional[SlackContainer] = None
    event: Optional[SlackEvent] = None


class SocketModeFrame(BaseModel):
    envelope_id: Optional[str] = None  # absent on hello
    type: str  # "hello" | "interactive" | "events_api" | "disconnect" | ...
    payload: Optional[SocketPayload] = None
    reason: Optional[str] = None
    num_connections: Optional[int] = None


class SocketModeAck(BaseModel):
    envelope_id: str


# Decoded envelope

class EnvelopeKind(str, Enum):
    HELLO = "hello"
    INTERACTIVE = "interactive"
    MESSAGE = "message"
    DISCONNECT = "disconnect"
    OTHER = "other"


class ActionRef(BaseModel):
    action_id: str
    value: Optional[str] = None
    origin_message_id: Optional[str] = None


class InteractiveAction(BaseModel):
    actions: list[ActionRef] = Field(default_factory=list)
    user_id: str = "unknown"
    message_id: Optional[str] = None


class MessageEvent(BaseModel):
    thread_root_id: Optional[str] = None
    ts: str
    author_is_bot: bool = False
    text: str = ""
    user_id: Optional[str] = None


class Envelope(BaseModel):
    kind: EnvelopeKind
    correlation_token: Optional[str] = None
    interactive: Optional[InteractiveAction] = None
    message: Optional[MessageEvent] = None
    reason: Optional[str] = None  # disconnect reason, or the raw type for OTHER
