"""
slack-gate error types — one class per failure category of the hook.
"""

from typing import Any, Optional


class SlackGateError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConfigurationError(SlackGateError):
    def __init__(self, message: str, code: str = "configuration_error"):
        super().__init__(code, message)


class RequestDecodeError(SlackGateError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("request_decode_error", message, details)


class ConnectionError(SlackGateError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)


class DisconnectedError(SlackGateError):
    def __init__(self, message: str = "Socket Mode connection closed"):
        super().__init__("disconnected", message)


class EnvelopeDecodeError(SlackGateError):
    def __init__(self, message: str):
        super().__init__("envelope_decode_error", message)


class AcknowledgeError(SlackGateError):
    def __init__(self, envelope_id: str, message: str):
        super().__init__("acknowledge_error", message, {"envelope_id": envelope_id})


class SlackAPIError(SlackGateError):
    def __init__(self, method: str, error: str):
        super().__init__("slack_api_error", f"Slack API error ({method}): {error}", {"method": method})
        self.method = method
        self.error = error
