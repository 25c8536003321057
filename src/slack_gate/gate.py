"""
SlackGate — wires transport, matcher and flows for one hook invocation.
"""

import logging
from typing import Optional

from slack_gate.config import Settings
from slack_gate.deadline import TimedOut, race_with_deadline
from slack_gate.errors import ConnectionError, DisconnectedError, RequestDecodeError, SlackAPIError, SlackGateError
from slack_gate.interaction import InteractionFlowController
from slack_gate.matcher import CorrelationMatcher
from slack_gate.models.request import PermissionRequest, read_request
from slack_gate.models.response import PermissionResponse
from slack_gate.transport.http import SlackWebClient
from slack_gate.transport.socket import SocketModeSession


class HookResult:
    """What the process should do: print `response` (when set), then exit with `exit_code`."""

    __slots__ = ("exit_code", "response")

    def __init__(self, exit_code: int, response: Optional[PermissionResponse] = None):
        self.exit_code = exit_code
        self.response = response

    def __repr__(self) -> str:
        return f"HookResult(exit_code={self.exit_code}, response={self.response!r})"


class SlackGate:
    def __init__(
        self,
        settings: Settings,
        logger: Optional[logging.Logger] = None,
        web: Optional[SlackWebClient] = None,
        session: Optional[SocketModeSession] = None,
    ):
        self._settings = settings
        self._log = logger or logging.getLogger("slack_gate")
        self.web = web or SlackWebClient(
            bot_token=settings.bot_token,
            app_token=settings.app_token,
            base_url=settings.api_base_url,
            logger=self._log.getChild("http"),
        )
        self.session = session or SocketModeSession(self.web, logger=self._log.getChild("transport"))
        self.matcher = CorrelationMatcher(self.session, logger=self._log.getChild("matcher"))
        self.flows = InteractionFlowController(
            self.web, self.matcher, settings.channel_id, logger=self._log.getChild("interaction"),
        )

    async def run(self, request: PermissionRequest) -> HookResult:
        """Handle one request end to end. SlackGateErrors other than the ones below propagate."""
        try:
            await self.session.open()
        except ConnectionError as e:
            # Nothing posted yet: leave the decision to the terminal prompt.
            self._log.warning("Slack unavailable, deferring to terminal: %s", e)
            await self.web.close()
            return HookResult(0)

        try:
            outcome = await race_with_deadline(
                self._settings.timeout_seconds,
                self.flows.handle(request),
                self.session.close,
                logger=self._log.getChild("deadline"),
            )
            if isinstance(outcome, TimedOut):
                await self._report_timeout()
                return HookResult(0)
            return HookResult(0, outcome.result)
        except DisconnectedError as e:
            self._log.error("Connection lost while waiting: %s", e)
            return HookResult(0, PermissionResponse.deny(f"Slack connection lost before a response arrived: {e}"))
        finally:
            await self.session.close()
            await self.web.close()

    async def _report_timeout(self) -> None:
        self._log.warning("No response within %.0fs; deferring to terminal", self._settings.timeout_seconds)
        try:
            await self.flows.mark_timed_out()
        except SlackAPIError as e:
            self._log.error("Failed to mark message as timed out: %s", e)

    async def check(self) -> None:
        """Open and close a Socket Mode connection. Raises ConnectionError."""
        try:
            await self.session.open()
        finally:
            await self.session.close()
            await self.web.close()


async def run_hook(stdin_text: str, settings: Settings, logger: Optional[logging.Logger] = None) -> HookResult:
    """Decode the hook payload and run one interaction, mapping failures to exit codes."""
    log = logger or logging.getLogger("slack_gate")
    try:
        request = read_request(stdin_text)
    except RequestDecodeError as e:
        log.error("Failed to read permission request: %s", e)
        return HookResult(1, PermissionResponse.deny(f"Internal error: {e}"))

    log.info("Received permission request for tool: %s, session_id: %s",
             request.tool_name, request.session_id or "unknown")

    gate = SlackGate(settings, logger=log)
    try:
        return await gate.run(request)
    except SlackGateError as e:
        log.error("Fatal error: %s", e)
        return HookResult(1, PermissionResponse.deny(f"Internal error: {e}"))
