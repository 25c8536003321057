"""
Interaction flows — turn one PermissionRequest into Slack messages and waits.

Three variants share one matcher:
- binary approve/deny for ordinary tool calls
- plan review (ExitPlanMode): buttons, or a thread reply as revision feedback
- sequential questions (AskUserQuestion): one question at a time in a thread,
  single-select, multi-select toggling, or a free-text thread reply
"""

import logging
from typing import Any, Optional, Protocol

from slack_gate import messages
from slack_gate.matcher import CorrelationMatcher, Expectation, Match
from slack_gate.models.request import (
    AskUserQuestionInput,
    ExitPlanModeInput,
    PermissionRequest,
    Question,
    QuestionOption,
)
from slack_gate.models.response import PermissionResponse

DENIED_MESSAGE = "Denied by user via Slack"
REVISION_BUTTON_MESSAGE = (
    "The user requested changes to the plan via Slack. "
    "Ask them what should change before continuing."
)
REVISION_REPLY_PREFIX = "The user requested changes to the plan via Slack:\n\n"


class MessageGateway(Protocol):
    async def post_message(
        self,
        channel: str,
        blocks: list[dict[str, Any]],
        text: str,
        thread_ts: Optional[str] = None,
        reply_broadcast: bool = False,
    ) -> str: ...

    async def update_message(self, channel: str, ts: str, blocks: list[dict[str, Any]], text: str) -> None: ...


class MultiSelection:
    """Toggled option indices for one multi-select question."""

    def __init__(self, options: list[QuestionOption]):
        self._options = options
        self._selected: set[int] = set()

    @property
    def selected(self) -> set[int]:
        return set(self._selected)

    def toggle(self, index: int) -> None:
        if not 0 <= index < len(self._options):
            return
        self._selected ^= {index}

    def answer(self) -> str:
        labels = [self._options[i].label for i in sorted(self._selected)]
        return ", ".join(labels) if labels else messages.NO_SELECTION


class InteractionFlowController:
    def __init__(
        self,
        gateway: MessageGateway,
        matcher: CorrelationMatcher,
        channel_id: str,
        logger: Optional[logging.Logger] = None,
    ):
        self._gateway = gateway
        self._matcher = matcher
        self._channel = channel_id
        self._log = logger or logging.getLogger(__name__)
        # (ts, title) of the top-level message to mark if the deadline expires
        self._active: Optional[tuple[str, str]] = None
        # (ts, title) of the thread question still awaiting an answer
        self._open_question: Optional[tuple[str, str]] = None

    async def handle(self, request: PermissionRequest) -> PermissionResponse:
        tool_input = request.tool_input
        if isinstance(tool_input, AskUserQuestionInput):
            return await self.ask_questions(request, tool_input)
        if isinstance(tool_input, ExitPlanModeInput):
            return await self.review_plan(request, tool_input.plan)
        return await self.request_permission(request)

    async def request_permission(self, request: PermissionRequest) -> PermissionResponse:
        ts = await self._gateway.post_message(
            self._channel, messages.permission_blocks(request), messages.permission_fallback_text(request),
        )
        self._active = (ts, "Permission Request")

        match = await self._matcher.await_match(Expectation(
            frozenset({messages.APPROVE_ACTION_ID, messages.DENY_ACTION_ID}),
            origin_message_id=ts,
        ))
        approved = match.action is not None and match.action.action_id == messages.APPROVE_ACTION_ID

        await self._gateway.update_message(
            self._channel, ts,
            messages.permission_result_blocks(request, approved, match.user_id),
            messages.permission_result_text(request, approved),
        )
        self._active = None

        if approved:
            self._log.info("Permission approved by user: %s", match.user_id)
            return PermissionResponse.allow()
        self._log.info("Permission denied by user: %s", match.user_id)
        return PermissionResponse.deny(DENIED_MESSAGE)

    async def review_plan(self, request: PermissionRequest, plan: str) -> PermissionResponse:
        ts = await self._gateway.post_message(
            self._channel, messages.plan_blocks(request, plan), messages.plan_fallback_text(),
        )
        self._active = (ts, "Plan Review")

        match = await self._matcher.await_match(Expectation(
            frozenset({messages.APPROVE_PLAN_ACTION_ID, messages.REVISE_PLAN_ACTION_ID}),
            origin_message_id=ts,
            thread_root_id=ts,
            not_before_ts=ts,
        ))
        approved = match.action is not None and match.action.action_id == messages.APPROVE_PLAN_ACTION_ID
        feedback = match.reply.text.strip() if match.reply is not None else None

        await self._gateway.update_message(
            self._channel, ts,
            messages.plan_result_blocks(plan, approved, match.user_id, feedback),
            messages.plan_result_text(approved),
        )
        self._active = None

        if approved:
            self._log.info("Plan approved by user: %s", match.user_id)
            return PermissionResponse.allow()
        self._log.info("Plan changes requested by user: %s", match.user_id)
        if feedback:
            return PermissionResponse.deny(REVISION_REPLY_PREFIX + feedback)
        return PermissionResponse.deny(REVISION_BUTTON_MESSAGE)

    async def ask_questions(self, request: PermissionRequest, tool_input: AskUserQuestionInput) -> PermissionResponse:
        questions = tool_input.questions
        self._log.info("Handling AskUserQuestion with %d question(s)", len(questions))

        header_ts = await self._gateway.post_message(
            self._channel,
            messages.question_header_blocks(len(questions)),
            messages.question_header_fallback_text(len(questions)),
        )
        self._active = (header_ts, "AskUserQuestion")

        answers: dict[str, str] = {}
        last_user = "unknown"
        for index, question in enumerate(questions):
            answer, last_user = await self._answer_question(request, question, index, header_ts)
            answers[question.question] = answer

        await self._gateway.update_message(
            self._channel, header_ts,
            messages.question_header_completed_blocks(len(questions), last_user),
            "AskUserQuestion: Answered",
        )
        self._active = None

        self._log.info("AskUserQuestion completed with %d answer(s)", len(answers))
        return PermissionResponse.allow(updated_input={**tool_input.raw, "answers": answers})

    async def _answer_question(
        self, request: PermissionRequest, question: Question, index: int, header_ts: str,
    ) -> tuple[str, str]:
        """Post one question in the header thread and wait until it is answered."""
        request_id = request.request_id
        fallback = messages.question_fallback_text(question, index)
        question_ts = await self._gateway.post_message(
            self._channel, messages.question_blocks(question, index, request_id), fallback,
            thread_ts=header_ts, reply_broadcast=True,
        )
        self._open_question = (question_ts, fallback)
        self._log.debug("Posted question %d in thread: ts=%s", index, question_ts)

        action_ids = {messages.question_option_action_id(index, i) for i in range(len(question.options))}
        selection: Optional[MultiSelection] = None
        if question.multi_select:
            selection = MultiSelection(question.options)
            action_ids.add(messages.question_submit_action_id(index))
        expectation = Expectation(
            frozenset(action_ids),
            origin_message_id=question_ts,
            thread_root_id=header_ts,
            not_before_ts=question_ts,
        )

        while True:
            match = await self._matcher.await_match(expectation)
            answer = await self._apply(match, question, index, request_id, question_ts, selection)
            if answer is not None:
                break

        await self._gateway.update_message(
            self._channel, question_ts,
            messages.question_blocks(question, index, request_id, answer=answer), fallback,
        )
        self._open_question = None
        self._log.info("Question %d answered: %s by user: %s", index, answer, match.user_id)
        return answer, match.user_id

    async def _apply(
        self,
        match: Match,
        question: Question,
        index: int,
        request_id: str,
        question_ts: str,
        selection: Optional[MultiSelection],
    ) -> Optional[str]:
        """Fold one match into the question's answer state; return the answer once confirmed."""
        if match.reply is not None:
            text = match.reply.text.strip()
            return text or None

        action_id = match.action.action_id  # type: ignore[union-attr]
        if messages.parse_question_submit_action_id(action_id) == index and selection is not None:
            return selection.answer()

        parsed = messages.parse_question_option_action_id(action_id)
        if parsed is None:
            self._log.warning("Could not parse action id: %s", action_id)
            return None
        option_index = parsed[1]
        if option_index >= len(question.options):
            return None

        if selection is None:
            return match.action.value or question.options[option_index].label  # type: ignore[union-attr]

        selection.toggle(option_index)
        self._log.debug("Question %d: selection now %s", index, sorted(selection.selected))
        await self._gateway.update_message(
            self._channel, question_ts,
            messages.question_blocks(question, index, request_id, selected=selection.selected),
            messages.question_fallback_text(question, index),
        )
        return None

    async def mark_timed_out(self) -> None:
        """Update the live top-level message and any unanswered question to their timed-out state."""
        for live in (self._open_question, self._active):
            if live is None:
                continue
            ts, title = live
            await self._gateway.update_message(
                self._channel, ts, messages.timeout_blocks(title), messages.timeout_text(title),
            )
        self._open_question = None
        self._active = None
