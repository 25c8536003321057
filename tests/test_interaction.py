"""Interaction flows end to end against fake Slack: binary, plan review, questions."""

import json

import pytest

from conftest import FakeGateway, FakeSession, action_envelope, reply_envelope
from slack_gate import messages
from slack_gate.interaction import InteractionFlowController, MultiSelection
from slack_gate.matcher import CorrelationMatcher
from slack_gate.models.request import QuestionOption, read_request

CHANNEL = "C123"


def _request(tool_name, tool_input):
    return read_request(json.dumps({"session_id": "s-1", "tool_use_id": "toolu_1",
                                    "tool_name": tool_name, "tool_input": tool_input}))


def _controller(session, gateway):
    return InteractionFlowController(gateway, CorrelationMatcher(session), CHANNEL)


def _later(ts: str, offset: int) -> str:
    secs, frac = ts.split(".")
    return f"{secs}.{int(frac) + offset:06d}"


@pytest.mark.asyncio
async def test_binary_approve():
    session = FakeSession()
    gateway = FakeGateway(on_post=lambda ts, thread: session.push(
        action_envelope(messages.APPROVE_ACTION_ID, ts, user_id="U42")))

    response = await _controller(session, gateway).handle(_request("Bash", {"command": "make test"}))

    assert response.decision.behavior == "allow"
    assert response.decision.message is None
    assert len(gateway.posts) == 1
    assert gateway.updates[0]["ts"] == gateway.posts[0]["ts"]
    assert gateway.updates[0]["text"] == "Permission Approved: Bash"
    assert "<@U42>" in json.dumps(gateway.updates[0]["blocks"])
    assert len(session.acks) == 1


@pytest.mark.asyncio
async def test_binary_ignores_stale_button_then_denies():
    session = FakeSession()

    def on_post(ts, thread):
        session.push(action_envelope(messages.APPROVE_ACTION_ID, "1600000000.000001"))
        session.push(action_envelope(messages.DENY_ACTION_ID, ts))

    gateway = FakeGateway(on_post=on_post)
    response = await _controller(session, gateway).handle(_request("Write", {"file_path": "/etc/hosts"}))

    assert response.decision.behavior == "deny"
    assert response.decision.message == "Denied by user via Slack"
    assert len(session.acks) == 2


@pytest.mark.asyncio
async def test_plan_thread_reply_requests_revision():
    session = FakeSession()

    def on_post(ts, thread):
        session.push(reply_envelope(ts, _later(ts, 1), "bot echo", bot=True))
        session.push(reply_envelope(ts, _later(ts, 5), "please add tests", user_id="U5"))
        session.push(action_envelope(messages.APPROVE_PLAN_ACTION_ID, ts))

    gateway = FakeGateway(on_post=on_post)
    response = await _controller(session, gateway).handle(_request("ExitPlanMode", {"plan": "1. refactor"}))

    assert response.decision.behavior == "deny"
    assert response.decision.message.endswith("please add tests")
    assert gateway.updates[0]["text"] == "Plan changes requested"
    assert session.queue.qsize() == 1


@pytest.mark.asyncio
async def test_plan_buttons():
    for action_id, behavior in ((messages.APPROVE_PLAN_ACTION_ID, "allow"), (messages.REVISE_PLAN_ACTION_ID, "deny")):
        session = FakeSession()
        gateway = FakeGateway(on_post=lambda ts, thread, a=action_id: session.push(action_envelope(a, ts)))
        response = await _controller(session, gateway).handle(_request("ExitPlanMode", {"plan": "p"}))
        assert response.decision.behavior == behavior


QUESTIONS = {"questions": [
    {"question": "Which cache?", "header": "Cache", "multiSelect": False,
     "options": [{"label": "Memcached"}, {"label": "Redis"}]},
    {"question": "Which database?", "header": "DB", "multiSelect": False,
     "options": [{"label": "Postgres"}, {"label": "MySQL"}]},
]}


@pytest.mark.asyncio
async def test_sequential_questions_button_then_reply():
    session = FakeSession()
    posted = []

    def on_post(ts, thread):
        posted.append(ts)
        if thread is None:
            return
        header = thread
        if len(posted) == 2:
            session.push(action_envelope(messages.question_option_action_id(0, 1), ts, value="Redis"))
        else:
            session.push(reply_envelope(header, ts, "same instant, ignored"))
            session.push(reply_envelope(header, _later(ts, 10), "SQLite please", user_id="U8"))

    gateway = FakeGateway(on_post=on_post)
    response = await _controller(session, gateway).handle(_request("AskUserQuestion", QUESTIONS))

    decision = response.decision
    assert decision.behavior == "allow"
    assert decision.updated_input["answers"] == {"Which cache?": "Redis", "Which database?": "SQLite please"}
    assert decision.updated_input["questions"] == QUESTIONS["questions"]

    header_ts = gateway.posts[0]["ts"]
    assert [p["thread_ts"] for p in gateway.posts] == [None, header_ts, header_ts]
    assert [p["reply_broadcast"] for p in gateway.posts] == [False, True, True]
    assert gateway.updates[-1]["ts"] == header_ts
    assert "<@U8>" in json.dumps(gateway.updates[-1]["blocks"])
    assert len(session.acks) == 3


@pytest.mark.asyncio
async def test_reply_for_previous_question_never_answers_next():
    session = FakeSession()
    questions = {"questions": [QUESTIONS["questions"][0], QUESTIONS["questions"][1]]}
    q_posts = []

    def on_post(ts, thread):
        if thread is None:
            return
        q_posts.append(ts)
        if len(q_posts) == 1:
            session.push(reply_envelope(thread, _later(ts, 1), "Memcached"))
        else:
            # Delivered late but written before question 2 was posted.
            session.push(reply_envelope(thread, q_posts[0], "Memcached again"))
            session.push(action_envelope(messages.question_option_action_id(1, 0), ts, value="Postgres"))

    gateway = FakeGateway(on_post=on_post)
    response = await _controller(session, gateway).handle(_request("AskUserQuestion", questions))
    assert response.decision.updated_input["answers"] == {"Which cache?": "Memcached", "Which database?": "Postgres"}


MULTI = {"questions": [{"question": "Which features?", "header": "Features", "multiSelect": True,
                        "options": [{"label": "Auth"}, {"label": "Search"}, {"label": "Billing"}]}]}


@pytest.mark.asyncio
async def test_multi_select_toggles_then_confirms():
    session = FakeSession()

    def on_post(ts, thread):
        if thread is None:
            return
        for option in (0, 2, 0, 1):
            session.push(action_envelope(messages.question_option_action_id(0, option), ts))
        session.push(action_envelope(messages.question_submit_action_id(0), ts))

    gateway = FakeGateway(on_post=on_post)
    response = await _controller(session, gateway).handle(_request("AskUserQuestion", MULTI))

    assert response.decision.updated_input["answers"] == {"Which features?": "Search, Billing"}
    question_ts = gateway.posts[1]["ts"]
    toggles = [u for u in gateway.updates if u["ts"] == question_ts]
    assert len(toggles) == 5  # four toggles, then the answered state
    assert "✓ Auth" in json.dumps(toggles[0]["blocks"], ensure_ascii=False)
    assert "✓ Auth" not in json.dumps(toggles[2]["blocks"], ensure_ascii=False)


@pytest.mark.asyncio
async def test_multi_select_empty_confirm():
    session = FakeSession()
    gateway = FakeGateway(on_post=lambda ts, thread: thread and session.push(
        action_envelope(messages.question_submit_action_id(0), ts)))
    response = await _controller(session, gateway).handle(_request("AskUserQuestion", MULTI))
    assert response.decision.updated_input["answers"] == {"Which features?": messages.NO_SELECTION}


def test_multi_selection_toggle_twice_restores():
    selection = MultiSelection([QuestionOption(label="A"), QuestionOption(label="B")])
    selection.toggle(1)
    before = selection.selected
    selection.toggle(0)
    selection.toggle(0)
    assert selection.selected == before
    selection.toggle(7)
    assert selection.selected == before
    assert selection.answer() == "B"
    selection.toggle(1)
    assert selection.answer() == messages.NO_SELECTION != ""


@pytest.mark.asyncio
async def test_mark_timed_out_updates_live_message():
    session = FakeSession()
    gateway = FakeGateway()
    controller = _controller(session, gateway)
    await controller.mark_timed_out()
    assert gateway.updates == []

    ts = await gateway.post_message(CHANNEL, [], "x")
    controller._active = (ts, "Permission Request")
    await controller.mark_timed_out()
    assert gateway.updates[0]["ts"] == ts
    assert gateway.updates[0]["text"] == "Permission Request: timed out"
