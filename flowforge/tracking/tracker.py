"""Polling state machine that follows executions to a terminal status."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Coroutine, Optional, Set

from ..clients.workflows import WorkflowClient
from ..constants import (
    ACTION_DURATION_HEURISTIC_SECONDS,
    DEFAULT_SIGNING_BASE_URL,
    SCHEDULED_POLL_SECONDS,
    SINGLE_EXECUTION_POLL_SECONDS,
)
from ..contracts import ExecutionState, ExecutionStatus
from ..errors import BackendCallError
from ..notify import BaseNotifier
from ..planner.catalog import LENDING_TYPE, SWAP_TYPE
from .messages import (
    failure_message,
    goal_achieved_message,
    scheduled_run_failed_message,
    signing_message,
    success_message,
    timeout_message,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

# Node types whose success means the scheduled goal actually happened.
ACTION_NODE_TYPES = frozenset({SWAP_TYPE, LENDING_TYPE})


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def did_action_execute(
    status: ExecutionStatus, min_duration: float = ACTION_DURATION_HEURISTIC_SECONDS
) -> bool:
    """Best guess whether a successful run performed its real action.

    A successful swap or lending node is conclusive. Otherwise a run that
    took longer than ``min_duration`` is assumed to have gone past its
    condition check.
    """
    for node in status.node_executions:
        if node.node_type in ACTION_NODE_TYPES and node.status == ExecutionState.SUCCESS.value:
            return True
    started = _parse_timestamp(status.started_at)
    finished = _parse_timestamp(status.finished_at)
    if started is None or finished is None:
        return False
    try:
        return (finished - started).total_seconds() > min_duration
    except TypeError:
        # naive vs aware timestamps
        return False


class ExecutionTracker:
    """Follows executions and scheduled workflows, reporting via a notifier.

    Tracking runs as detached asyncio tasks started with :meth:`spawn_execution`
    and :meth:`spawn_schedule`; results only surface as notifications.
    """

    def __init__(
        self,
        client: WorkflowClient,
        notifier: BaseNotifier,
        *,
        signing_base_url: str = DEFAULT_SIGNING_BASE_URL,
        poll_interval: float = SINGLE_EXECUTION_POLL_SECONDS,
        scheduled_poll_interval: float = SCHEDULED_POLL_SECONDS,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._notifier = notifier
        self._signing_base_url = signing_base_url
        self._poll_interval = poll_interval
        self._scheduled_poll_interval = scheduled_poll_interval
        self._clock = clock
        self._sleep = sleep
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active_tasks(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    async def track_execution(
        self,
        user_id: str,
        destination: str,
        execution_id: str,
        *,
        signing_sent: bool = False,
        announce_success: bool = True,
        deadline: Optional[float] = None,
    ) -> Optional[ExecutionStatus]:
        """Poll ``execution_id`` until it succeeds or fails.

        With a ``deadline`` (on the tracker clock) polling gives up once it
        passes and ``None`` is returned.
        """
        logger.info(f"Tracking execution {execution_id} for {destination}")
        while True:
            try:
                status = await self._client.get_execution_status(user_id, execution_id)
            except BackendCallError as exc:
                logger.warning(f"Poll of execution {execution_id} failed: {exc}")
            else:
                state = status.status
                if state == ExecutionState.WAITING_FOR_SIGNATURE.value and not signing_sent:
                    signing_sent = True
                    await self._notify(
                        destination, signing_message(self._signing_base_url, execution_id)
                    )
                if state == ExecutionState.SUCCESS.value:
                    if announce_success:
                        await self._notify(destination, success_message(status))
                    logger.info(f"Execution {execution_id} succeeded")
                    return status
                if state == ExecutionState.FAILED.value:
                    await self._notify(destination, failure_message(status))
                    logger.info(f"Execution {execution_id} failed: {status.error_message}")
                    return status
            delay = self._poll_interval
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    logger.info(f"Stopped waiting for execution {execution_id}: window ended")
                    return None
                delay = min(delay, remaining)
            await self._sleep(delay)

    async def track_schedule(
        self,
        user_id: str,
        destination: str,
        workflow_id: str,
        trigger_id: str,
        duration_seconds: float,
    ) -> bool:
        """Watch runs of a scheduled workflow for at most ``duration_seconds``.

        Returns ``True`` once a run achieves the workflow's goal (the recurring
        trigger is then cancelled), ``False`` when the window expires.
        """
        deadline = self._clock() + duration_seconds
        processed: Set[str] = set()
        logger.info(
            f"Tracking scheduled workflow {workflow_id} (trigger {trigger_id}) "
            f"for {duration_seconds}s"
        )

        while self._clock() < deadline:
            try:
                executions = await self._client.list_executions(user_id, workflow_id)
            except BackendCallError as exc:
                logger.warning(f"Poll of scheduled workflow {workflow_id} failed: {exc}")
                executions = []

            for execution in executions:
                if execution.id in processed:
                    continue
                if execution.status not in (
                    ExecutionState.WAITING_FOR_SIGNATURE.value,
                    ExecutionState.SUCCESS.value,
                    ExecutionState.FAILED.value,
                ):
                    # still running; look again on the next poll
                    continue
                processed.add(execution.id)
                if await self._handle_scheduled_run(
                    user_id, destination, trigger_id, execution, deadline
                ):
                    logger.info(f"Scheduled workflow {workflow_id} achieved its goal")
                    return True

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(self._scheduled_poll_interval, remaining))

        await self._notify(destination, timeout_message(duration_seconds))
        logger.info(f"Monitoring window for workflow {workflow_id} ended")
        return False

    async def _handle_scheduled_run(
        self,
        user_id: str,
        destination: str,
        trigger_id: str,
        execution: ExecutionStatus,
        deadline: float,
    ) -> bool:
        state = execution.status
        if state == ExecutionState.WAITING_FOR_SIGNATURE.value:
            await self._notify(
                destination, signing_message(self._signing_base_url, execution.id)
            )
            final = await self.track_execution(
                user_id,
                destination,
                execution.id,
                signing_sent=True,
                announce_success=False,
                deadline=deadline,
            )
            if final is None or final.status != ExecutionState.SUCCESS.value:
                return False
            await self._cancel_trigger(user_id, trigger_id)
            await self._notify(destination, goal_achieved_message(final))
            return True

        if state == ExecutionState.SUCCESS.value:
            details = await self._details(user_id, execution.id)
            if not did_action_execute(details or execution):
                return False
            await self._cancel_trigger(user_id, trigger_id)
            await self._notify(destination, goal_achieved_message(details))
            return True

        details = await self._details(user_id, execution.id)
        error = (details.error_message if details else None) or execution.error_message
        await self._notify(destination, scheduled_run_failed_message(error))
        return False

    # ------------------------------------------------------------------
    async def _details(self, user_id: str, execution_id: str) -> Optional[ExecutionStatus]:
        try:
            return await self._client.get_execution_status(user_id, execution_id)
        except BackendCallError as exc:
            logger.warning(f"Failed to fetch details of execution {execution_id}: {exc}")
            return None

    async def _cancel_trigger(self, user_id: str, trigger_id: str) -> None:
        try:
            await self._client.cancel_recurring_trigger(user_id, trigger_id)
        except BackendCallError as exc:
            logger.warning(f"Failed to cancel recurring trigger {trigger_id}: {exc}")

    async def _notify(self, destination: str, text: str) -> None:
        try:
            await self._notifier.send(destination, text)
        except Exception as exc:
            logger.warning(f"Failed to notify {destination}: {exc}")

    # ------------------------------------------------------------------
    def spawn_execution(self, user_id: str, destination: str, execution_id: str) -> asyncio.Task:
        return self._spawn(
            self.track_execution(user_id, destination, execution_id),
            name=f"track-execution-{execution_id}",
        )

    def spawn_schedule(
        self,
        user_id: str,
        destination: str,
        workflow_id: str,
        trigger_id: str,
        duration_seconds: float,
    ) -> asyncio.Task:
        return self._spawn(
            self.track_schedule(user_id, destination, workflow_id, trigger_id, duration_seconds),
            name=f"track-schedule-{workflow_id}",
        )

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Tracker task {task.get_name()} crashed", exc_info=exc)

    async def aclose(self) -> None:
        """Cancel every running tracker task."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
