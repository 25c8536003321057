"""
Slack Web API client — control plane (apps.connections.open) and the
messaging gateway (chat.postMessage / chat.update).
"""

import logging
from typing import Any, Optional

import httpx

from slack_gate.errors import ConnectionError, SlackAPIError

DEFAULT_BASE_URL = "https://slack.com/api"


class SlackWebClient:
    def __init__(
        self,
        bot_token: str,
        app_token: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._bot_token = bot_token
        self._app_token = app_token
        self._log = logger or logging.getLogger(__name__)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"User-Agent": "slack-gate/0.1.0", "Accept": "application/json"},
            timeout=30.0,
            transport=transport,
        )

    @staticmethod
    def _auth_headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _call(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON body with the bot token and unwrap Slack's {ok, error} envelope."""
        try:
            resp = await self._client.post(f"/{method}", json=body, headers=self._auth_headers(self._bot_token))
        except httpx.HTTPError as e:
            raise SlackAPIError(method, f"request failed: {e}")
        self._log.debug("%s response status: %s", method, resp.status_code)
        if resp.status_code >= 400:
            raise SlackAPIError(method, f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError:
            raise SlackAPIError(method, f"non-JSON response (HTTP {resp.status_code})")
        if not isinstance(data, dict):
            raise SlackAPIError(method, f"unexpected response body (HTTP {resp.status_code})")
        if not data.get("ok"):
            raise SlackAPIError(method, data.get("error") or "unknown_error")
        return data

    async def open_connection(self) -> str:
        """Request a fresh Socket Mode WebSocket URL with the app-level token."""
        if not self._app_token:
            raise ConnectionError("App-level token required to open a Socket Mode connection")
        try:
            resp = await self._client.post(
                "/apps.connections.open",
                headers={
                    **self._auth_headers(self._app_token),
                    "Content-Type": "application/x-www-form-urlencoded",
                },
            )
        except httpx.HTTPError as e:
            raise ConnectionError(f"apps.connections.open failed: {e}")
        self._log.debug("apps.connections.open response status: %s", resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            raise ConnectionError(f"apps.connections.open returned HTTP {resp.status_code}")
        if not isinstance(data, dict):
            raise ConnectionError("apps.connections.open returned an unexpected body")
        if not data.get("ok") or not data.get("url"):
            raise ConnectionError(f"Failed to open Socket Mode connection: {data.get('error') or 'no url returned'}")
        return data["url"]

    async def post_message(
        self,
        channel: str,
        blocks: list[dict[str, Any]],
        text: str,
        thread_ts: Optional[str] = None,
        reply_broadcast: bool = False,
    ) -> str:
        """Post a message and return its ts (the message identifier)."""
        body: dict[str, Any] = {"channel": channel, "text": text, "blocks": blocks}
        if thread_ts:
            body["thread_ts"] = thread_ts
            if reply_broadcast:
                body["reply_broadcast"] = True
        data = await self._call("chat.postMessage", body)
        ts = data.get("ts")
        if not ts:
            raise SlackAPIError("chat.postMessage", "missing ts in response")
        self._log.info("Message posted: ts=%s", ts)
        return ts

    async def update_message(self, channel: str, ts: str, blocks: list[dict[str, Any]], text: str) -> None:
        await self._call("chat.update", {"channel": channel, "ts": ts, "text": text, "blocks": blocks})
        self._log.debug("Message updated: ts=%s", ts)

    async def close(self) -> None:
        await self._client.aclose()
