"""
Block Kit message builders for every message the hook posts or updates.

Blocks are plain dicts, ready for chat.postMessage / chat.update.
"""

import json
import re
from typing import Any, Optional

from slack_gate.models.request import BashInput, FileInput, PermissionRequest, Question

APPROVE_ACTION_ID = "approve_permission"
DENY_ACTION_ID = "deny_permission"
APPROVE_PLAN_ACTION_ID = "approve_plan"
REVISE_PLAN_ACTION_ID = "revise_plan"
QUESTION_OPTION_PREFIX = "question_option_"
QUESTION_SUBMIT_PREFIX = "question_submit_"

NO_SELECTION = "(no selection)"

# Slack limits: section text 3000 chars, button text 75 chars.
SECTION_TEXT_LIMIT = 2900
BUTTON_TEXT_LIMIT = 75

_OPTION_ID_RE = re.compile(rf"^{QUESTION_OPTION_PREFIX}(\d+)_(\d+)$")
_SUBMIT_ID_RE = re.compile(rf"^{QUESTION_SUBMIT_PREFIX}(\d+)$")

Block = dict[str, Any]


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def _section(text: str) -> Block:
    return {"type": "section", "text": {"type": "mrkdwn", "text": truncate(text, SECTION_TEXT_LIMIT)}}


def _divider() -> Block:
    return {"type": "divider"}


def _context(text: str) -> Block:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def _button(text: str, action_id: str, value: Optional[str] = None, style: Optional[str] = None) -> Block:
    button: Block = {
        "type": "button",
        "text": {"type": "plain_text", "text": truncate(text, BUTTON_TEXT_LIMIT - 3), "emoji": True},
        "action_id": action_id,
    }
    if value is not None:
        button["value"] = value
    if style:
        button["style"] = style
    return button


def _actions(block_id: str, elements: list[Block]) -> Block:
    return {"type": "actions", "block_id": block_id, "elements": elements}


# Permission request

def _tool_info_text(request: PermissionRequest) -> str:
    text = f"*Tool:* `{request.tool_name}`"
    tool_input = request.tool_input
    if isinstance(tool_input, FileInput):
        text += f"\n*File:* `{tool_input.file_path}`"
    if isinstance(tool_input, BashInput):
        text += f"\n*Command:* `{truncate(tool_input.command, 200)}`"
    return text


def _input_detail_text(request: PermissionRequest) -> str:
    details: list[str] = []
    tool_input = request.tool_input
    if isinstance(tool_input, FileInput) and tool_input.content:
        details.append(f"*Content Preview:*\n```\n{truncate(tool_input.content, 800)}\n```")

    other = tool_input.other_params({"file_path", "command", "content"})
    if other:
        lines = ["*Other Parameters:*"]
        for key in sorted(other):
            value = json.dumps(other[key], ensure_ascii=False)
            lines.append(f"• `{key}`: {truncate(value, 200)}")
        details.append("\n".join(lines))
    return "\n".join(details)


def permission_blocks(request: PermissionRequest) -> list[Block]:
    blocks = [
        _section("*Permission Request*\n\nClaude Code is requesting permission to use a tool."),
        _divider(),
        _section(_tool_info_text(request)),
    ]
    detail = _input_detail_text(request)
    if detail:
        blocks.append(_section(detail))
    blocks.append(_divider())
    blocks.append(_actions(f"permission_actions_{request.request_id}", [
        _button("Approve", APPROVE_ACTION_ID, request.request_id, "primary"),
        _button("Deny", DENY_ACTION_ID, request.request_id, "danger"),
    ]))
    return blocks


def permission_result_blocks(request: PermissionRequest, approved: bool, user_id: str) -> list[Block]:
    emoji, status = (":white_check_mark:", "Approved") if approved else (":x:", "Denied")
    return [
        _section(f"*Permission Request* - {emoji} *{status}*"),
        _divider(),
        _section(_tool_info_text(request)),
        _context(f"{status} by <@{user_id}>"),
    ]


def permission_fallback_text(request: PermissionRequest) -> str:
    return f"Permission request: {request.tool_name}"


def permission_result_text(request: PermissionRequest, approved: bool) -> str:
    return f"Permission {'Approved' if approved else 'Denied'}: {request.tool_name}"


# Plan review

def plan_blocks(request: PermissionRequest, plan: str) -> list[Block]:
    return [
        _section("*:clipboard: Plan Review*\n\nClaude Code has finished planning and wants to start implementing."),
        _divider(),
        _section(plan or "_(empty plan)_"),
        _divider(),
        _actions(f"plan_actions_{request.request_id}", [
            _button("Approve", APPROVE_PLAN_ACTION_ID, request.request_id, "primary"),
            _button("Request changes", REVISE_PLAN_ACTION_ID, request.request_id, "danger"),
        ]),
        _context("Reply in this thread to send revision feedback."),
    ]


def plan_result_blocks(plan: str, approved: bool, user_id: str, feedback: Optional[str] = None) -> list[Block]:
    emoji, status = (":white_check_mark:", "Approved") if approved else (":memo:", "Changes requested")
    blocks = [
        _section(f"*:clipboard: Plan Review* - {emoji} *{status}*"),
        _divider(),
        _section(truncate(plan, 1500) or "_(empty plan)_"),
    ]
    if feedback:
        blocks.append(_section(f"*Feedback:*\n>{truncate(feedback, 1000)}"))
    blocks.append(_context(f"{status} by <@{user_id}>"))
    return blocks


def plan_fallback_text() -> str:
    return "Plan review requested"


def plan_result_text(approved: bool) -> str:
    return "Plan approved" if approved else "Plan changes requested"


# AskUserQuestion

def question_option_action_id(question_index: int, option_index: int) -> str:
    return f"{QUESTION_OPTION_PREFIX}{question_index}_{option_index}"


def question_submit_action_id(question_index: int) -> str:
    return f"{QUESTION_SUBMIT_PREFIX}{question_index}"


def parse_question_option_action_id(action_id: str) -> Optional[tuple[int, int]]:
    m = _OPTION_ID_RE.match(action_id)
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2))


def parse_question_submit_action_id(action_id: str) -> Optional[int]:
    m = _SUBMIT_ID_RE.match(action_id)
    return int(m.group(1)) if m else None


def question_header_blocks(question_count: int) -> list[Block]:
    return [_section(
        f"*:question: AskUserQuestion*\n\nClaude Code is asking you {question_count} question(s). "
        "Please answer in the thread below."
    )]


def question_header_completed_blocks(question_count: int, user_id: str) -> list[Block]:
    return [
        _section(f"*:question: AskUserQuestion* - :white_check_mark: *Answered*\n\n"
                 f"All {question_count} question(s) answered."),
        _context(f"Answered by <@{user_id}>"),
    ]


def question_header_fallback_text(question_count: int) -> str:
    return f"AskUserQuestion: {question_count} question(s)"


def question_blocks(
    question: Question,
    question_index: int,
    request_id: str,
    selected: Optional[set[int]] = None,
    answer: Optional[str] = None,
) -> list[Block]:
    """Render one question: pending (buttons) or answered (`answer` set)."""
    title = f"*Q{question_index + 1}. {question.header}*\n{question.question}"
    if answer is not None:
        return [_section(f"{title}\n\n:white_check_mark: *{answer}*")]

    descriptions = [f"• *{o.label}*: {o.description}" for o in question.options if o.description]
    text = title + ("\n\n" + "\n".join(descriptions) if descriptions else "")
    selected = selected or set()

    elements = []
    for option_index, option in enumerate(question.options):
        chosen = question.multi_select and option_index in selected
        elements.append(_button(
            f"✓ {option.label}" if chosen else option.label,
            question_option_action_id(question_index, option_index),
            option.label,
            "primary" if chosen else None,
        ))
    if question.multi_select:
        elements.append(_button("Confirm", question_submit_action_id(question_index), "submit", "primary"))

    hint = "Select any options, then press *Confirm*." if question.multi_select else "Pick an option."
    return [
        _section(text),
        _actions(f"question_actions_{request_id}_{question_index}", elements),
        _context(f"{hint} Or reply in this thread to answer in your own words."),
    ]


def question_fallback_text(question: Question, question_index: int) -> str:
    return f"Q{question_index + 1}. {question.header or question.question}"


# Timeout

def timeout_blocks(title: str) -> list[Block]:
    return [
        _section(f"*{title}* - :hourglass: *Timed out*"),
        _context("No response arrived in time. You can still respond in the terminal."),
    ]


def timeout_text(title: str) -> str:
    return f"{title}: timed out"
