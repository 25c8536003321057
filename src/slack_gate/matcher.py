"""
Correlation matcher — consume envelopes until one satisfies the live expectation.

Every envelope read is acknowledged before it is evaluated, so Slack never
redelivers it, matched or not.
"""

import logging
from typing import Optional, Protocol

from slack_gate.errors import AcknowledgeError, DisconnectedError
from slack_gate.models.envelope import ActionRef, Envelope, EnvelopeKind, MessageEvent


class EnvelopeSource(Protocol):
    async def receive_next(self) -> Envelope: ...

    async def acknowledge(self, envelope_id: str) -> None: ...


class Expectation:
    """Which envelope a pending wait accepts.

    Buttons: one of `action_ids`, attached to `origin_message_id` when set.
    Replies: a non-bot message in `thread_root_id` newer than `not_before_ts`.
    Timestamps compare as strings.
    """

    __slots__ = ("action_ids", "origin_message_id", "thread_root_id", "not_before_ts")

    def __init__(
        self,
        action_ids: frozenset[str] = frozenset(),
        origin_message_id: Optional[str] = None,
        thread_root_id: Optional[str] = None,
        not_before_ts: Optional[str] = None,
    ):
        self.action_ids = frozenset(action_ids)
        self.origin_message_id = origin_message_id
        self.thread_root_id = thread_root_id
        self.not_before_ts = not_before_ts

    def match_action(self, envelope: Envelope) -> Optional[ActionRef]:
        payload = envelope.interactive
        if payload is None:
            return None
        if self.origin_message_id is not None and payload.message_id != self.origin_message_id:
            return None
        for action in payload.actions:
            if action.action_id in self.action_ids:
                return action
        return None

    def match_reply(self, envelope: Envelope) -> Optional[MessageEvent]:
        event = envelope.message
        if event is None or self.thread_root_id is None:
            return None
        if event.author_is_bot or event.thread_root_id != self.thread_root_id:
            return None
        if self.not_before_ts is not None and not event.ts > self.not_before_ts:
            return None
        return event

    def __repr__(self) -> str:
        return (f"Expectation(action_ids={sorted(self.action_ids)!r}, origin={self.origin_message_id!r}, "
                f"thread={self.thread_root_id!r}, not_before={self.not_before_ts!r})")


class Match:
    """A satisfied expectation: either a button action or a thread reply."""

    __slots__ = ("action", "reply", "user_id")

    def __init__(self, user_id: str, action: Optional[ActionRef] = None, reply: Optional[MessageEvent] = None):
        self.user_id = user_id
        self.action = action
        self.reply = reply

    def __repr__(self) -> str:
        what = f"action={self.action.action_id!r}" if self.action else f"reply={self.reply.text[:40]!r}" if self.reply else ""
        return f"Match({what}, user_id={self.user_id!r})"


class CorrelationMatcher:
    def __init__(self, source: EnvelopeSource, logger: Optional[logging.Logger] = None):
        self._source = source
        self._log = logger or logging.getLogger(__name__)

    async def await_match(self, expectation: Expectation) -> Match:
        """Loop until an envelope satisfies `expectation`. Raises DisconnectedError.

        No internal timeout; callers bound the wait with race_with_deadline().
        """
        self._log.info("Waiting for response: %r", expectation)
        while True:
            envelope = await self._source.receive_next()

            if envelope.correlation_token is not None:
                try:
                    await self._source.acknowledge(envelope.correlation_token)
                except AcknowledgeError as e:
                    self._log.warning("%s", e)

            if envelope.kind == EnvelopeKind.DISCONNECT:
                self._log.warning("Received disconnect envelope (reason=%s)", envelope.reason)
                raise DisconnectedError(f"Slack requested disconnect: {envelope.reason or 'unknown'}")

            if envelope.kind == EnvelopeKind.INTERACTIVE:
                action = expectation.match_action(envelope)
                if action is not None:
                    user_id = envelope.interactive.user_id  # type: ignore[union-attr]
                    self._log.info("Received action %s from user %s", action.action_id, user_id)
                    return Match(user_id, action=action)
                self._log.debug("Ignoring action on message %s",
                                envelope.interactive.message_id)  # type: ignore[union-attr]
                continue

            if envelope.kind == EnvelopeKind.MESSAGE:
                reply = expectation.match_reply(envelope)
                if reply is not None:
                    self._log.info("Received thread reply from user %s", reply.user_id)
                    return Match(reply.user_id or "unknown", reply=reply)
                continue

            self._log.debug("Skipping envelope kind=%s", envelope.kind.value)
