"""
slack-gate — answer Claude Code permission prompts from Slack.

One hook invocation: post an interactive message, wait on a Socket Mode
connection for a button click or thread reply, print the decision.
"""

from slack_gate.config import Settings, load_settings
from slack_gate.deadline import Completed, TimedOut, race_with_deadline
from slack_gate.errors import (
    AcknowledgeError,
    ConfigurationError,
    ConnectionError,
    DisconnectedError,
    EnvelopeDecodeError,
    RequestDecodeError,
    SlackAPIError,
    SlackGateError,
)
from slack_gate.gate import HookResult, SlackGate, run_hook
from slack_gate.interaction import InteractionFlowController
from slack_gate.matcher import CorrelationMatcher, Expectation, Match
from slack_gate.models.request import PermissionRequest, read_request
from slack_gate.models.response import PermissionResponse

__version__ = "0.1.0"
__all__ = [
    "SlackGate",
    "HookResult",
    "run_hook",
    "Settings",
    "load_settings",
    "CorrelationMatcher",
    "Expectation",
    "Match",
    "InteractionFlowController",
    "race_with_deadline",
    "Completed",
    "TimedOut",
    "PermissionRequest",
    "PermissionResponse",
    "read_request",
    "SlackGateError",
    "ConfigurationError",
    "RequestDecodeError",
    "ConnectionError",
    "DisconnectedError",
    "EnvelopeDecodeError",
    "AcknowledgeError",
    "SlackAPIError",
]
