"""Orchestration of plan and execute requests per conversation."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from .clients.context import DEFAULT_CONTEXT_FIELDS, ContextClient
from .clients.planner import PlannerClient
from .clients.workflows import WorkflowClient
from .compiler import CompileContext, Schedule, compile_plan
from .contracts import CamelModel
from .errors import (
    BackendCallError,
    ExecutionNotConfigured,
    MissingIdentityLink,
    NoPlanToExecute,
    PlanHasMissingInputs,
)
from .planner.catalog import TELEGRAM_TYPE, requires_identity_link
from .planner.models import Plan
from .sessions import Channel, Session, SessionStore, session_key
from .tracking import ExecutionTracker

logger = logging.getLogger(__name__)

CONNECTION_ID_FIELD = re.compile(r"^nodes\.(\d+)\.config\.connectionId$")
_TELEGRAM_USER_PREFIX = re.compile(r"^telegram-(user|chat)-")


class PlanRequest(BaseModel):
    prompt: str
    user_id: str
    channel_id: Optional[str] = None
    channel: Channel = "a2a"


class ExecuteRequest(BaseModel):
    prompt: Optional[str] = None
    plan: Optional[Plan] = None
    user_id: str
    channel_id: Optional[str] = None
    channel: Channel = "a2a"


class ExecuteResult(CamelModel):
    workflow_id: str
    execution_id: Optional[str] = None
    time_block_id: Optional[str] = None
    schedule: Optional[Schedule] = None
    execution_user_id: str
    warnings: List[str] = Field(default_factory=list)


def patch_connection_ids(
    error: BackendCallError, payload: Dict[str, Any], connection_id: Optional[str]
) -> bool:
    """Fill in ``connectionId`` on the nodes a validation error points at.

    Only a 400 whose details name ``nodes.<i>.config.connectionId`` qualifies.
    Returns whether the payload was patched.
    """
    if not connection_id or error.status_code != 400:
        return False
    indexes = [
        int(match.group(1))
        for match in (CONNECTION_ID_FIELD.match(field) for field in error.detail_fields())
        if match
    ]
    if not indexes:
        return False

    nodes = payload.get("nodes") or []
    for index in indexes:
        if 0 <= index < len(nodes):
            nodes[index].setdefault("config", {})["connectionId"] = connection_id
    for node in nodes:
        if node.get("type") == TELEGRAM_TYPE:
            node.setdefault("config", {})["connectionId"] = connection_id
    return True


class AgentService:
    """Sequences planner, compiler, workflow backend and tracker per request."""

    def __init__(
        self,
        planner: PlannerClient,
        context: ContextClient,
        workflows: Optional[WorkflowClient],
        sessions: SessionStore,
        tracker: Optional[ExecutionTracker] = None,
    ) -> None:
        self._planner = planner
        self._context = context
        self._workflows = workflows
        self._sessions = sessions
        self._tracker = tracker

    # ------------------------------------------------------------------
    async def plan(self, request: PlanRequest) -> Plan:
        """Generate a plan and remember it for the conversation."""
        key = session_key(request.channel, request.channel_id, request.user_id)
        chat_id = request.channel_id or request.user_id
        telegram_user_id = None
        if request.channel == "telegram":
            telegram_user_id = _TELEGRAM_USER_PREFIX.sub("", request.user_id)

        context = await self._context.fetch_context(
            request.user_id,
            chat_id,
            request.prompt,
            DEFAULT_CONTEXT_FIELDS,
            telegram_user_id=telegram_user_id,
        )
        if context:
            logger.info(f"Using backend context keys {sorted(context)} for {key}")
        user_context: Dict[str, Any] = {**context, "telegramChatId": chat_id}

        plan = await self._planner.generate_plan(request.prompt, request.user_id, user_context)

        if plan.missing_inputs:
            refinement = await self._context.fetch_context(
                request.user_id,
                chat_id,
                request.prompt,
                plan.missing_fields(),
                telegram_user_id=telegram_user_id,
            )
            if refinement:
                logger.info(f"Refining plan for {key} with context keys {sorted(refinement)}")
                plan = await self._planner.generate_plan(
                    request.prompt, request.user_id, {**user_context, **refinement}
                )

        existing = await self._sessions.get(key)
        if existing is None:
            session = Session(user_id=request.user_id, last_plan=plan)
        else:
            session = existing.model_copy(update={"user_id": request.user_id, "last_plan": plan})
        await self._sessions.set(key, session)

        logger.info(
            f"Planned '{plan.workflow_name}' for {key}: {len(plan.steps)} steps, "
            f"{len(plan.missing_inputs)} missing inputs"
        )
        return plan

    # ------------------------------------------------------------------
    async def execute(self, request: ExecuteRequest) -> ExecuteResult:
        """Compile, create and start (or schedule) a workflow."""
        workflows = self._workflows
        if workflows is None or not workflows.configured:
            raise ExecutionNotConfigured()

        key = session_key(request.channel, request.channel_id, request.user_id)
        chat_id = request.channel_id or request.user_id
        plan, execution_user_id = await self._resolve_plan(request, key)

        if plan is None:
            raise NoPlanToExecute()
        if plan.missing_inputs:
            raise PlanHasMissingInputs(plan.missing_fields())

        connection_id, execution_user_id = await self._resolve_identity_link(
            plan, request.channel, chat_id, execution_user_id
        )

        compiled = compile_plan(
            plan,
            CompileContext(conversation_id=chat_id, provider_connection_id=connection_id),
        )
        for warning in compiled.warnings:
            logger.warning(f"Compile warning for {key}: {warning}")
        payload = compiled.workflow.to_payload()

        try:
            created = await workflows.create_workflow(execution_user_id, payload)
        except BackendCallError as exc:
            if not patch_connection_ids(exc, payload, connection_id):
                raise
            logger.warning(f"Retrying workflow create for {key} after patching connectionId")
            created = await workflows.create_workflow(execution_user_id, payload)

        existing = await self._sessions.get(key)
        base = existing or Session(user_id=execution_user_id)
        session = base.model_copy(update={"last_plan": plan, "last_workflow_id": created.id})
        await self._sessions.set(key, session)

        schedule = compiled.schedule
        if schedule is not None:
            trigger = await workflows.create_recurring_trigger(execution_user_id, created.id, schedule)
            await self._sessions.set(
                key, session.model_copy(update={"last_time_block_id": trigger.id})
            )
            if self._tracker is not None and request.channel_id:
                self._tracker.spawn_schedule(
                    execution_user_id,
                    request.channel_id,
                    created.id,
                    trigger.id,
                    schedule.duration_seconds,
                )
            return ExecuteResult(
                workflow_id=created.id,
                time_block_id=trigger.id,
                schedule=schedule,
                execution_user_id=execution_user_id,
                warnings=compiled.warnings,
            )

        started = await workflows.execute_workflow(execution_user_id, created.id)
        await self._sessions.set(
            key, session.model_copy(update={"last_execution_id": started.execution_id})
        )
        if self._tracker is not None and request.channel_id:
            self._tracker.spawn_execution(
                execution_user_id, request.channel_id, started.execution_id
            )
        return ExecuteResult(
            workflow_id=created.id,
            execution_id=started.execution_id,
            execution_user_id=execution_user_id,
            warnings=compiled.warnings,
        )

    async def _resolve_plan(
        self, request: ExecuteRequest, key: str
    ) -> Tuple[Optional[Plan], str]:
        """Pick the plan to run: explicit plan, then fresh prompt, then session."""
        if request.plan is not None:
            return request.plan, request.user_id

        if request.prompt and request.prompt.strip():
            plan = await self.plan(
                PlanRequest(
                    prompt=request.prompt.strip(),
                    user_id=request.user_id,
                    channel_id=request.channel_id,
                    channel=request.channel,
                )
            )
            session = await self._sessions.get(key)
            return plan, session.user_id if session else request.user_id

        session = await self._sessions.get(key)
        if session is None:
            return None, request.user_id
        return session.last_plan, session.user_id

    async def _resolve_identity_link(
        self, plan: Plan, channel: str, chat_id: str, user_id: str
    ) -> Tuple[Optional[str], str]:
        """Return ``(connection_id, acting_user_id)`` for plans that need a link."""
        if not any(requires_identity_link(step.block_id) for step in plan.steps):
            return None, user_id
        if channel != "telegram":
            raise MissingIdentityLink(
                channel,
                "This workflow requires a Telegram connection. "
                "Use the Telegram interface to execute it.",
            )
        link = await self._context.fetch_identity_link(user_id, chat_id)
        if link is None:
            raise MissingIdentityLink(channel)
        return link.connection_id, link.user_id
