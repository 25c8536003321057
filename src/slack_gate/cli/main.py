"""
slack-gate CLI — `slack-gate` command.

Commands:
  slack-gate run      Read a PermissionRequest on stdin, ask Slack, print the decision
  slack-gate check    Validate configuration and test the Socket Mode connection
"""

import asyncio
import logging
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from slack_gate import __version__
from slack_gate.config import Settings, load_settings
from slack_gate.errors import ConfigurationError, ConnectionError
from slack_gate.gate import SlackGate, run_hook

# stdout carries the decision; everything human-facing goes to stderr.
console = Console(stderr=True)


def _settings_or_exit(**overrides) -> Settings:
    try:
        return load_settings(overrides=overrides)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise SystemExit(1)


def _configure_logging(level: str) -> logging.Logger:
    logger = logging.getLogger("slack_gate")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=console, show_path=False, rich_tracebacks=True))
    logger.setLevel(level)
    logger.propagate = False
    return logger


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
def main():
    """slack-gate — approve Claude Code tool calls from Slack."""


@main.command("run")
@click.option("--channel", "channel_id", default=None, help="Slack channel ID (overrides SLACK_CHANNEL_ID)")
@click.option("--timeout", "timeout_seconds", type=float, default=None, help="Seconds to wait for a response")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
def run_cmd(channel_id: Optional[str], timeout_seconds: Optional[float], log_level: Optional[str]):
    """Handle one PermissionRequest from stdin."""
    settings = _settings_or_exit(channel_id=channel_id, timeout_seconds=timeout_seconds, log_level=log_level)
    logger = _configure_logging(settings.log_level)

    stdin_text = click.get_text_stream("stdin").read()
    result = _run(run_hook(stdin_text, settings, logger))
    if result.response is not None:
        click.echo(result.response.to_json())
    raise SystemExit(result.exit_code)


@main.command("check")
def check_cmd():
    """Validate configuration and open a Socket Mode connection."""
    settings = _settings_or_exit()
    logger = _configure_logging(settings.log_level)

    async def _check():
        with console.status("Opening Socket Mode connection..."):
            await SlackGate(settings, logger=logger).check()

    try:
        _run(_check())
    except ConnectionError as e:
        console.print(f"[red]Connection failed:[/red] {e}")
        raise SystemExit(1)
    console.print(f"[green]Connected.[/green] Posting to channel {settings.channel_id}, "
                  f"timeout {settings.timeout_seconds:.0f}s")


if __name__ == "__main__":
    main()
