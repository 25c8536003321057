"""
PermissionResponse — the decision printed on stdout for the hook.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Decision(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    behavior: Literal["allow", "deny"]
    message: Optional[str] = None
    updated_input: Optional[dict[str, Any]] = Field(default=None, alias="updatedInput")


class HookSpecificOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hook_event_name: str = Field(default="PermissionRequest", alias="hookEventName")
    decision: Decision


class PermissionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hook_specific_output: HookSpecificOutput = Field(alias="hookSpecificOutput")

    @classmethod
    def allow(cls, updated_input: Optional[dict[str, Any]] = None) -> "PermissionResponse":
        return cls._wrap(Decision(behavior="allow", updated_input=updated_input))

    @classmethod
    def deny(cls, message: Optional[str] = None) -> "PermissionResponse":
        return cls._wrap(Decision(behavior="deny", message=message))

    @classmethod
    def _wrap(cls, decision: Decision) -> "PermissionResponse":
        return cls(hook_specific_output=HookSpecificOutput(decision=decision))

    @property
    def decision(self) -> Decision:
        return self.hook_specific_output.decision

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
