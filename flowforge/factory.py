"""Wire a fully configured :class:`AgentService` from configuration."""

from __future__ import annotations

from typing import NamedTuple, Optional

from .clients import ContextClient, PlannerClient, WorkflowClient
from .config import FlowForgeConfig, load_config
from .notify import BaseNotifier, get_notifier
from .service import AgentService
from .sessions import SessionStore, get_session_store
from .tracking import ExecutionTracker


class AgentComponents(NamedTuple):
    service: AgentService
    planner: PlannerClient
    context: ContextClient
    workflows: Optional[WorkflowClient]
    tracker: Optional[ExecutionTracker]
    notifier: BaseNotifier
    sessions: SessionStore


def build_agent(
    config: Optional[FlowForgeConfig] = None,
    *,
    notifier: Optional[BaseNotifier] = None,
    sessions: Optional[SessionStore] = None,
) -> AgentComponents:
    """Build the service and its collaborators.

    Without a backend base URL there is no workflow client and no tracker;
    ``execute`` then fails with ``ExecutionNotConfigured``.
    """
    config = config or load_config()
    notifier = notifier or get_notifier(config=config)
    sessions = sessions or get_session_store(config=config)

    planner = PlannerClient(config.planner)
    context = ContextClient(config.backend)
    workflows = WorkflowClient(config.backend) if config.backend.base_url else None
    tracker = None
    if workflows is not None:
        tracker = ExecutionTracker(
            workflows,
            notifier,
            signing_base_url=config.tracking.signing_base_url,
            poll_interval=config.tracking.poll_interval_seconds,
            scheduled_poll_interval=config.tracking.scheduled_poll_interval_seconds,
        )

    service = AgentService(planner, context, workflows, sessions, tracker)
    return AgentComponents(service, planner, context, workflows, tracker, notifier, sessions)


def build_agent_service(config: Optional[FlowForgeConfig] = None) -> AgentService:
    return build_agent(config).service


async def close_agent(components: AgentComponents) -> None:
    """Stop trackers and close HTTP clients."""
    if components.tracker is not None:
        await components.tracker.aclose()
    await components.planner.aclose()
    await components.context.aclose()
    if components.workflows is not None:
        await components.workflows.aclose()
    await components.notifier.aclose()
