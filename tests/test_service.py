"""Orchestration tests for AgentService with in-process fakes."""

import copy

import pytest

from flowforge.clients.context import IdentityLink
from flowforge.contracts import CreatedWorkflow, ExecutionStarted, RecurringTrigger
from flowforge.errors import (
    BackendCallError,
    ExecutionNotConfigured,
    MissingIdentityLink,
    NoPlanToExecute,
    PlanHasMissingInputs,
)
from flowforge.planner.models import MissingInput, Plan, Step
from flowforge.service import AgentService, ExecuteRequest, PlanRequest, patch_connection_ids
from flowforge.sessions import InMemorySessionStore, Session, session_key


def _plan(*steps, missing=()):
    return Plan(
        workflow_name="Test",
        description="Test workflow",
        steps=list(steps) or [Step(block_id="mail", purpose="Send report")],
        missing_inputs=[MissingInput(field=f, question=f"What is {f}?") for f in missing],
    )


def _alert_plan():
    return _plan(
        Step(
            block_id="time-block",
            purpose="Check every 5 minutes for a day",
            config_hints={"intervalSeconds": "300", "durationSeconds": "86400"},
        ),
        Step(block_id="chainlink", purpose="Read ETH/USD", config_hints={"feed": "ETH/USD"}),
        Step(block_id="if", purpose="Below 1750", config_hints={"condition": "ETH/USD < 1750"}),
        Step(block_id="telegram", purpose="ETH dropped below 1750"),
    )


def _telegram_plan():
    return _plan(
        Step(block_id="chainlink", purpose="Read ETH/USD", config_hints={"feed": "ETH/USD"}),
        Step(block_id="telegram", purpose="Send price"),
    )


class FakePlanner:
    def __init__(self, *plans):
        self.plans = list(plans)
        self.calls = []

    async def generate_plan(self, prompt, user_id, context=None):
        self.calls.append((prompt, user_id, dict(context or {})))
        return self.plans.pop(0) if len(self.plans) > 1 else self.plans[0]


class FakeContext:
    def __init__(self, contexts=None, link=None):
        self.contexts = list(contexts or [{}])
        self.link = link
        self.requests = []
        self.link_requests = []

    async def fetch_context(self, user_id, chat_id, prompt, requested_fields=(), telegram_user_id=None):
        self.requests.append(
            {"user_id": user_id, "chat_id": chat_id, "fields": list(requested_fields), "telegram_user_id": telegram_user_id}
        )
        return self.contexts.pop(0) if len(self.contexts) > 1 else self.contexts[0]

    async def fetch_identity_link(self, user_id, chat_id):
        self.link_requests.append((user_id, chat_id))
        return self.link


class FakeWorkflows:
    configured = True

    def __init__(self, create_errors=()):
        self.create_errors = list(create_errors)
        self.created = []
        self.executed = []
        self.triggers = []

    async def create_workflow(self, user_id, payload):
        self.created.append((user_id, copy.deepcopy(payload)))
        if self.create_errors:
            raise self.create_errors.pop(0)
        return CreatedWorkflow(id="wf-1")

    async def execute_workflow(self, user_id, workflow_id, initial_input=None):
        self.executed.append((user_id, workflow_id))
        return ExecutionStarted(execution_id="exec-1")

    async def create_recurring_trigger(self, user_id, workflow_id, schedule, now=None):
        self.triggers.append((user_id, workflow_id, schedule))
        return RecurringTrigger(id="tb-1")


class FakeTracker:
    def __init__(self):
        self.executions = []
        self.schedules = []

    def spawn_execution(self, user_id, destination, execution_id):
        self.executions.append((user_id, destination, execution_id))

    def spawn_schedule(self, user_id, destination, workflow_id, trigger_id, duration_seconds):
        self.schedules.append((user_id, destination, workflow_id, trigger_id, duration_seconds))


def _connection_error(index=2):
    return BackendCallError(
        "create workflow",
        status_code=400,
        message="Validation failed",
        details=[{"field": f"nodes.{index}.config.connectionId", "message": "Required"}],
    )


# ----------------------------------------------------------------------
# plan


@pytest.mark.asyncio
async def test_plan_stores_session_and_keeps_other_fields():
    sessions = InMemorySessionStore()
    key = session_key("a2a", "chat-1", "user-1")
    await sessions.set(key, Session(user_id="user-1", last_workflow_id="wf-old"))
    planner = FakePlanner(_plan())
    context = FakeContext([{"userAddress": "0xabc"}])
    service = AgentService(planner, context, FakeWorkflows(), sessions)

    plan = await service.plan(PlanRequest(prompt="Send a report", user_id="user-1", channel_id="chat-1"))

    stored = await sessions.get(key)
    assert stored.last_plan == plan
    assert stored.last_workflow_id == "wf-old"
    prompt, user_id, sent_context = planner.calls[0]
    assert sent_context == {"userAddress": "0xabc", "telegramChatId": "chat-1"}
    assert context.requests[0]["telegram_user_id"] is None


@pytest.mark.asyncio
async def test_plan_refines_missing_inputs_with_context():
    planner = FakePlanner(_plan(missing=["userAddress"]), _plan())
    context = FakeContext([{}, {"userAddress": "0xabc"}])
    service = AgentService(planner, context, None, InMemorySessionStore())

    plan = await service.plan(PlanRequest(prompt="Swap", user_id="user-1"))

    assert plan.is_complete
    assert len(planner.calls) == 2
    assert context.requests[1]["fields"] == ["userAddress"]
    assert planner.calls[1][2]["userAddress"] == "0xabc"


@pytest.mark.asyncio
async def test_plan_without_refinement_context_keeps_first_plan():
    planner = FakePlanner(_plan(missing=["amount"]))
    service = AgentService(planner, FakeContext(), None, InMemorySessionStore())

    plan = await service.plan(PlanRequest(prompt="Swap", user_id="user-1"))

    assert plan.missing_fields() == ["amount"]
    assert len(planner.calls) == 1


@pytest.mark.asyncio
async def test_telegram_plan_strips_user_prefix():
    context = FakeContext()
    service = AgentService(FakePlanner(_plan()), context, None, InMemorySessionStore())

    await service.plan(
        PlanRequest(prompt="hi", user_id="telegram-user-777", channel_id="777", channel="telegram")
    )

    assert context.requests[0]["telegram_user_id"] == "777"


# ----------------------------------------------------------------------
# execute: preconditions


@pytest.mark.asyncio
async def test_execute_requires_backend():
    service = AgentService(FakePlanner(_plan()), FakeContext(), None, InMemorySessionStore())

    with pytest.raises(ExecutionNotConfigured):
        await service.execute(ExecuteRequest(user_id="user-1", plan=_plan()))


@pytest.mark.asyncio
async def test_execute_without_any_plan():
    service = AgentService(FakePlanner(_plan()), FakeContext(), FakeWorkflows(), InMemorySessionStore())

    with pytest.raises(NoPlanToExecute):
        await service.execute(ExecuteRequest(user_id="user-1", prompt="   "))


@pytest.mark.asyncio
async def test_execute_refuses_missing_inputs():
    workflows = FakeWorkflows()
    service = AgentService(FakePlanner(_plan()), FakeContext(), workflows, InMemorySessionStore())

    with pytest.raises(PlanHasMissingInputs) as exc_info:
        await service.execute(ExecuteRequest(user_id="user-1", plan=_plan(missing=["amount", "token"])))

    assert exc_info.value.fields == ["amount", "token"]
    assert workflows.created == []


# ----------------------------------------------------------------------
# execute: plan selection


@pytest.mark.asyncio
async def test_explicit_plan_wins_over_prompt_and_session():
    sessions = InMemorySessionStore()
    await sessions.set("a2a:user-1", Session(user_id="user-1", last_plan=_plan(Step(block_id="slack", purpose="old"))))
    planner = FakePlanner(_plan(Step(block_id="slack", purpose="fresh")))
    workflows = FakeWorkflows()
    service = AgentService(planner, FakeContext(), workflows, sessions)

    await service.execute(ExecuteRequest(user_id="user-1", prompt="ignored", plan=_plan()))

    assert planner.calls == []
    assert workflows.created[0][1]["nodes"][1]["type"] == "EMAIL"


@pytest.mark.asyncio
async def test_prompt_wins_over_session():
    sessions = InMemorySessionStore()
    await sessions.set("a2a:user-1", Session(user_id="user-1", last_plan=_plan()))
    planner = FakePlanner(_plan(Step(block_id="slack", purpose="fresh")))
    workflows = FakeWorkflows()
    service = AgentService(planner, FakeContext(), workflows, sessions)

    await service.execute(ExecuteRequest(user_id="user-1", prompt="  post to slack "))

    assert planner.calls[0][0] == "post to slack"
    assert workflows.created[0][1]["nodes"][1]["type"] == "SLACK"


@pytest.mark.asyncio
async def test_session_plan_is_used_last():
    sessions = InMemorySessionStore()
    await sessions.set("a2a:chat-1", Session(user_id="owner-1", last_plan=_plan()))
    workflows = FakeWorkflows()
    tracker = FakeTracker()
    service = AgentService(FakePlanner(_plan()), FakeContext(), workflows, sessions, tracker)

    result = await service.execute(ExecuteRequest(user_id="someone", channel_id="chat-1"))

    assert result.execution_id == "exec-1"
    assert result.execution_user_id == "owner-1"
    assert workflows.executed == [("owner-1", "wf-1")]
    assert tracker.executions == [("owner-1", "chat-1", "exec-1")]
    stored = await sessions.get("a2a:chat-1")
    assert stored.last_workflow_id == "wf-1"
    assert stored.last_execution_id == "exec-1"


@pytest.mark.asyncio
async def test_no_tracking_without_channel():
    tracker = FakeTracker()
    service = AgentService(FakePlanner(_plan()), FakeContext(), FakeWorkflows(), InMemorySessionStore(), tracker)

    await service.execute(ExecuteRequest(user_id="user-1", plan=_plan()))

    assert tracker.executions == []


# ----------------------------------------------------------------------
# execute: identity links


@pytest.mark.asyncio
async def test_identity_link_required_outside_telegram():
    context = FakeContext(link=IdentityLink(connection_id="conn-1", user_id="owner-1"))
    service = AgentService(FakePlanner(_plan()), context, FakeWorkflows(), InMemorySessionStore())

    with pytest.raises(MissingIdentityLink) as exc_info:
        await service.execute(ExecuteRequest(user_id="user-1", plan=_telegram_plan()))

    assert "Telegram interface" in str(exc_info.value)
    assert context.link_requests == []


@pytest.mark.asyncio
async def test_unlinked_telegram_chat_is_rejected():
    workflows = FakeWorkflows()
    service = AgentService(FakePlanner(_plan()), FakeContext(), workflows, InMemorySessionStore())

    with pytest.raises(MissingIdentityLink):
        await service.execute(
            ExecuteRequest(user_id="user-1", channel="telegram", channel_id="chat-1", plan=_telegram_plan())
        )
    assert workflows.created == []


@pytest.mark.asyncio
async def test_identity_link_sets_connection_and_acting_user():
    context = FakeContext(link=IdentityLink(connection_id="conn-1", user_id="owner-1"))
    workflows = FakeWorkflows()
    service = AgentService(FakePlanner(_plan()), context, workflows, InMemorySessionStore())

    result = await service.execute(
        ExecuteRequest(user_id="telegram-user-5", channel="telegram", channel_id="chat-1", plan=_telegram_plan())
    )

    user_id, payload = workflows.created[0]
    assert user_id == "owner-1"
    assert result.execution_user_id == "owner-1"
    assert payload["nodes"][2]["config"]["connectionId"] == "conn-1"
    assert payload["nodes"][2]["config"]["chatId"] == "chat-1"
    assert context.link_requests == [("telegram-user-5", "chat-1")]


# ----------------------------------------------------------------------
# execute: create-workflow recovery


@pytest.mark.asyncio
async def test_connection_id_error_is_patched_and_retried_once():
    context = FakeContext(link=IdentityLink(connection_id="conn-1", user_id="owner-1"))
    workflows = FakeWorkflows(create_errors=[_connection_error()])
    service = AgentService(FakePlanner(_plan()), context, workflows, InMemorySessionStore())

    result = await service.execute(
        ExecuteRequest(user_id="user-1", channel="telegram", channel_id="chat-1", plan=_telegram_plan())
    )

    assert result.workflow_id == "wf-1"
    assert len(workflows.created) == 2
    assert workflows.created[1][1]["nodes"][2]["config"]["connectionId"] == "conn-1"


@pytest.mark.asyncio
async def test_second_connection_id_error_propagates():
    context = FakeContext(link=IdentityLink(connection_id="conn-1", user_id="owner-1"))
    workflows = FakeWorkflows(create_errors=[_connection_error(), _connection_error()])
    service = AgentService(FakePlanner(_plan()), context, workflows, InMemorySessionStore())

    with pytest.raises(BackendCallError):
        await service.execute(
            ExecuteRequest(user_id="user-1", channel="telegram", channel_id="chat-1", plan=_telegram_plan())
        )
    assert len(workflows.created) == 2


@pytest.mark.asyncio
async def test_other_create_errors_are_not_retried():
    error = BackendCallError("create workflow", status_code=400, details=[{"field": "name"}])
    workflows = FakeWorkflows(create_errors=[error])
    service = AgentService(FakePlanner(_plan()), FakeContext(), workflows, InMemorySessionStore())

    with pytest.raises(BackendCallError):
        await service.execute(ExecuteRequest(user_id="user-1", plan=_plan()))
    assert len(workflows.created) == 1


def test_patch_connection_ids_targets_indexed_and_telegram_nodes():
    payload = {
        "nodes": [
            {"type": "START", "config": {}},
            {"type": "SLACK", "config": {}},
            {"type": "TELEGRAM", "config": {}},
        ]
    }

    assert patch_connection_ids(_connection_error(index=1), payload, "conn-9")
    assert payload["nodes"][1]["config"]["connectionId"] == "conn-9"
    assert payload["nodes"][2]["config"]["connectionId"] == "conn-9"
    assert "connectionId" not in payload["nodes"][0]["config"]


def test_patch_connection_ids_requires_validation_error():
    payload = {"nodes": [{"type": "TELEGRAM", "config": {}}]}
    server_error = BackendCallError(
        "create workflow", status_code=500, details=[{"field": "nodes.0.config.connectionId"}]
    )

    assert not patch_connection_ids(server_error, payload, "conn-9")
    assert not patch_connection_ids(_connection_error(index=0), payload, None)
    assert payload["nodes"][0]["config"] == {}


# ----------------------------------------------------------------------
# end to end


@pytest.mark.asyncio
async def test_scheduled_price_alert_end_to_end():
    sessions = InMemorySessionStore()
    context = FakeContext(link=IdentityLink(connection_id="conn-1", user_id="owner-1"))
    planner = FakePlanner(_alert_plan())
    workflows = FakeWorkflows()
    tracker = FakeTracker()
    service = AgentService(planner, context, workflows, sessions, tracker)

    result = await service.execute(
        ExecuteRequest(
            user_id="telegram-user-5",
            channel="telegram",
            channel_id="chat-1",
            prompt="Alert me on Telegram when ETH drops below 1750",
        )
    )

    _, payload = workflows.created[0]
    assert len(payload["nodes"]) == 4
    assert len(payload["edges"]) == 3
    assert [node["type"] for node in payload["nodes"]] == [
        "TIME_BLOCK",
        "CHAINLINK_PRICE_ORACLE",
        "IF",
        "TELEGRAM",
    ]
    assert payload["nodes"][2]["config"]["condition"] == {
        "leftPath": "formattedAnswer",
        "operator": "LESS_THAN",
        "rightValue": "1750",
    }
    assert result.schedule.interval_seconds == 300
    assert result.time_block_id == "tb-1"
    assert result.execution_id is None
    assert workflows.executed == []
    assert workflows.triggers[0][:2] == ("owner-1", "wf-1")
    assert tracker.schedules == [("owner-1", "chat-1", "wf-1", "tb-1", 86400)]

    stored = await sessions.get("telegram:chat-1")
    assert stored.last_time_block_id == "tb-1"
    assert stored.last_workflow_id == "wf-1"
