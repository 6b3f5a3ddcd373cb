"""Client for the workflow backend: create, execute, inspect and schedule."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..compiler.models import Schedule
from ..config import BackendConfig
from ..contracts import CreatedWorkflow, ExecutionStarted, ExecutionStatus, RecurringTrigger
from ..errors import BackendCallError
from .base import BaseHttpClient

logger = logging.getLogger(__name__)


def _isoformat(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_recurring_trigger_body(
    workflow_id: str, schedule: Schedule, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Request body registering ``schedule`` for ``workflow_id`` starting ``now``."""
    now = now or datetime.now(timezone.utc)
    until = now + timedelta(seconds=schedule.duration_seconds)
    if schedule.cron_expression:
        recurrence: Dict[str, Any] = {"type": "CRON", "cronExpression": schedule.cron_expression}
    else:
        recurrence = {"type": "INTERVAL", "intervalSeconds": schedule.interval_seconds}
    recurrence["untilAt"] = _isoformat(until)
    return {"workflowId": workflow_id, "runAt": _isoformat(now), "recurrence": recurrence}


class WorkflowClient(BaseHttpClient):
    """Workflow backend calls made on behalf of an acting user."""

    def __init__(
        self,
        config: BackendConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(
            config.base_url,
            timeout=config.timeout_seconds,
            max_attempts=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            http_client=http_client,
        )
        self.config = config

    def _headers(self, user_id: str) -> Dict[str, str]:
        if not self.config.service_key:
            return {}
        return {"x-service-key": self.config.service_key, "x-on-behalf-of": user_id}

    def _parse(self, operation: str, model, data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise BackendCallError(
                operation, reason="invalid_response", message=f"unexpected payload: {exc.error_count()} errors"
            ) from exc

    async def create_workflow(self, user_id: str, payload: Dict[str, Any]) -> CreatedWorkflow:
        operation = "create workflow"
        data = await self.request_data(
            operation,
            "POST",
            self.config.workflows_path,
            headers=self._headers(user_id),
            json_body=payload,
        )
        created = self._parse(operation, CreatedWorkflow, data)
        logger.info(f"Created workflow {created.id} for {user_id}")
        return created

    async def execute_workflow(
        self, user_id: str, workflow_id: str, initial_input: Optional[Dict[str, Any]] = None
    ) -> ExecutionStarted:
        operation = "execute workflow"
        data = await self.request_data(
            operation,
            "POST",
            f"{self.config.workflows_path}/{workflow_id}/execute",
            headers=self._headers(user_id),
            json_body={"initialInput": initial_input or {}},
        )
        started = self._parse(operation, ExecutionStarted, data)
        logger.info(f"Started execution {started.execution_id} of workflow {workflow_id}")
        return started

    async def get_execution_status(self, user_id: str, execution_id: str) -> ExecutionStatus:
        # Pollers retry on their next tick.
        operation = "get execution status"
        data = await self.request_data(
            operation,
            "GET",
            f"{self.config.workflows_path}/executions/{execution_id}",
            headers=self._headers(user_id),
            retry=False,
        )
        return self._parse(operation, ExecutionStatus, data)

    async def list_executions(self, user_id: str, workflow_id: str) -> List[ExecutionStatus]:
        operation = "list executions"
        data = await self.request_data(
            operation,
            "GET",
            f"{self.config.workflows_path}/{workflow_id}/executions",
            headers=self._headers(user_id),
            retry=False,
        )
        if isinstance(data, dict):
            data = data.get("executions", [])
        if not isinstance(data, list):
            raise BackendCallError(operation, reason="invalid_response", message="expected a list")
        return [self._parse(operation, ExecutionStatus, item) for item in data]

    async def create_recurring_trigger(
        self,
        user_id: str,
        workflow_id: str,
        schedule: Schedule,
        now: Optional[datetime] = None,
    ) -> RecurringTrigger:
        operation = "create recurring trigger"
        data = await self.request_data(
            operation,
            "POST",
            self.config.time_blocks_path,
            headers=self._headers(user_id),
            json_body=build_recurring_trigger_body(workflow_id, schedule, now),
        )
        trigger = self._parse(operation, RecurringTrigger, data)
        logger.info(f"Registered recurring trigger {trigger.id} for workflow {workflow_id}")
        return trigger

    async def cancel_recurring_trigger(self, user_id: str, trigger_id: str) -> None:
        await self.request_data(
            "cancel recurring trigger",
            "POST",
            f"{self.config.time_blocks_path}/{trigger_id}/cancel",
            headers=self._headers(user_id),
        )
        logger.info(f"Cancelled recurring trigger {trigger_id}")
