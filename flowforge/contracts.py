"""Wire contracts shared with the workflow backend."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Dump with camelCase keys, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ExecutionState(str, Enum):
    """Statuses reported by the backend for a workflow execution."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    WAITING_FOR_SIGNATURE = "WAITING_FOR_SIGNATURE"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ExecutionError(BaseModel):
    message: Optional[str] = None


class NodeExecution(BaseModel):
    """Per-node execution record embedded in an execution status."""

    model_config = ConfigDict(extra="ignore")

    node_type: str = Field(
        default="", validation_alias=AliasChoices("nodeType", "node_type")
    )
    status: str = ""
    output_data: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("outputData", "output_data")
    )


class ExecutionStatus(BaseModel):
    """Snapshot of one workflow execution. Owned by the backend; read-only here."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    started_at: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("startedAt", "started_at")
    )
    finished_at: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("finishedAt", "finished_at")
    )
    error: Optional[ExecutionError] = None
    node_executions: List[NodeExecution] = Field(
        default_factory=list,
        validation_alias=AliasChoices("nodeExecutions", "node_executions"),
    )

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


class CreatedWorkflow(BaseModel):
    id: str


class ExecutionStarted(CamelModel):
    execution_id: str
    status: str = ExecutionState.PENDING.value
    message: str = ""


class RecurringTrigger(BaseModel):
    id: str
