"""
PermissionRequest — the hook payload read from stdin.

`tool_input` is decoded once, by tool name, into one of the typed variants
below; anything unrecognised lands in `GenericInput`.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from slack_gate.errors import RequestDecodeError

ASK_USER_QUESTION_TOOL = "AskUserQuestion"
EXIT_PLAN_MODE_TOOL = "ExitPlanMode"


class QuestionOption(BaseModel):
    label: str
    description: str = ""


class Question(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    header: str = ""
    options: list[QuestionOption] = Field(default_factory=list)
    multi_select: bool = Field(default=False, alias="multiSelect")


class _ToolInput(BaseModel):
    raw: dict[str, Any] = Field(default_factory=dict)

    def other_params(self, exclude: set[str]) -> dict[str, Any]:
        return {k: v for k, v in self.raw.items() if k not in exclude}


class AskUserQuestionInput(_ToolInput):
    kind: Literal["ask_user_question"] = "ask_user_question"
    questions: list[Question] = Field(min_length=1)


class ExitPlanModeInput(_ToolInput):
    kind: Literal["exit_plan_mode"] = "exit_plan_mode"
    plan: str = ""


class BashInput(_ToolInput):
    kind: Literal["bash"] = "bash"
    command: str
    description: Optional[str] = None


class FileInput(_ToolInput):
    kind: Literal["file"] = "file"
    file_path: str
    content: Optional[str] = None


class GenericInput(_ToolInput):
    kind: Literal["generic"] = "generic"


ToolInput = Annotated[
    Union[AskUserQuestionInput, ExitPlanModeInput, BashInput, FileInput, GenericInput],
    Field(discriminator="kind"),
]


def _tool_input_kind(tool_name: str, raw: dict[str, Any]) -> str:
    if tool_name == ASK_USER_QUESTION_TOOL:
        return "ask_user_question"
    if tool_name == EXIT_PLAN_MODE_TOOL:
        return "exit_plan_mode"
    if isinstance(raw.get("command"), str):
        return "bash"
    if isinstance(raw.get("file_path"), str):
        return "file"
    return "generic"


class PermissionRequest(BaseModel):
    session_id: Optional[str] = None
    transcript_path: Optional[str] = None
    cwd: Optional[str] = None
    permission_mode: Optional[str] = None
    hook_event_name: Optional[str] = None
    tool_name: str
    tool_input: ToolInput
    tool_use_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _tag_tool_input(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw = data.get("tool_input", {})
        if raw is None:
            raw = {}
        if not isinstance(raw, dict) or "tool_name" not in data:
            return data
        kind = _tool_input_kind(str(data["tool_name"]), raw)
        return {**data, "tool_input": {**raw, "kind": kind, "raw": raw}}

    @property
    def request_id(self) -> str:
        return self.tool_use_id or self.session_id or "unknown"


def read_request(text: str) -> PermissionRequest:
    """Decode the stdin payload. Raises RequestDecodeError on empty or malformed input."""
    if not text.strip():
        raise RequestDecodeError("No permission request on stdin")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RequestDecodeError(f"Request is not valid JSON: {e}")
    try:
        return PermissionRequest.model_validate(data)
    except ValidationError as e:
        raise RequestDecodeError(f"Invalid permission request: {e.error_count()} error(s)",
                                 details={"errors": e.errors(include_url=False)})
