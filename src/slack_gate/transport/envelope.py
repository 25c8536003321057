"""
Envelope codec — decode Socket Mode frames, encode acknowledgments.
"""

import json
from typing import Union

from pydantic import ValidationError

from slack_gate.errors import EnvelopeDecodeError
from slack_gate.models.envelope import (
    ActionRef,
    Envelope,
    EnvelopeKind,
    InteractiveAction,
    MessageEvent,
    SocketModeAck,
    SocketModeFrame,
)

# Message subtypes that still represent a person (or bot) posting text.
REPLY_SUBTYPES = {None, "thread_broadcast", "file_share", "bot_message"}


def parse_frame(raw: Union[str, bytes]) -> Envelope:
    """Decode one WebSocket frame. Raises EnvelopeDecodeError on malformed input."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EnvelopeDecodeError(f"Frame is not valid UTF-8: {e}")
    try:
        frame = SocketModeFrame.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise EnvelopeDecodeError(f"Malformed Socket Mode frame: {e}")
    return _classify(frame)


def _classify(frame: SocketModeFrame) -> Envelope:
    token = frame.envelope_id
    payload = frame.payload

    if frame.type == "hello":
        return Envelope(kind=EnvelopeKind.HELLO, correlation_token=token)

    if frame.type == "disconnect":
        return Envelope(kind=EnvelopeKind.DISCONNECT, correlation_token=token, reason=frame.reason)

    if frame.type == "interactive" and payload is not None and payload.type == "block_actions":
        message_id = None
        if payload.container and payload.container.message_ts:
            message_id = payload.container.message_ts
        elif payload.message and payload.message.ts:
            message_id = payload.message.ts
        return Envelope(
            kind=EnvelopeKind.INTERACTIVE,
            correlation_token=token,
            interactive=InteractiveAction(
                actions=[
                    ActionRef(action_id=a.action_id, value=a.value, origin_message_id=message_id)
                    for a in payload.actions
                ],
                user_id=payload.user.id if payload.user else "unknown",
                message_id=message_id,
            ),
        )

    if frame.type == "events_api" and payload is not None and payload.event is not None:
        event = payload.event
        if event.type == "message" and event.subtype in REPLY_SUBTYPES and event.ts:
            return Envelope(
                kind=EnvelopeKind.MESSAGE,
                correlation_token=token,
                message=MessageEvent(
                    thread_root_id=event.thread_ts,
                    ts=event.ts,
                    author_is_bot=bool(event.bot_id) or event.subtype == "bot_message",
                    text=event.text or "",
                    user_id=event.user,
                ),
            )

    return Envelope(kind=EnvelopeKind.OTHER, correlation_token=token, reason=frame.type)


def build_ack(envelope_id: str) -> str:
    """Serialize the acknowledgment frame for an envelope."""
    return SocketModeAck(envelope_id=envelope_id).model_dump_json()
