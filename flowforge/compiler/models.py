from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..contracts import CamelModel


class NodePosition(BaseModel):
    """Layout hint for editors; never used for execution order."""

    x: int = 0
    y: int = 0


class CompiledNode(CamelModel):
    id: str
    type: str
    name: str
    description: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    position: NodePosition = Field(default_factory=NodePosition)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CompiledEdge(CamelModel):
    id: str
    source_node_id: str
    target_node_id: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    condition: Dict[str, Any] = Field(default_factory=dict)
    data_mapping: Dict[str, Any] = Field(default_factory=dict)


class CompiledWorkflow(CamelModel):
    name: str
    description: str
    nodes: List[CompiledNode] = Field(default_factory=list)
    edges: List[CompiledEdge] = Field(default_factory=list)
    trigger_node_id: str
    category: str
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False

    def to_payload(self) -> Dict[str, Any]:
        """Body for the backend's create-workflow call.

        Nullable edge handles are sent explicitly as ``null``.
        """
        return self.model_dump(by_alias=True)


class Schedule(CamelModel):
    interval_seconds: int
    duration_seconds: int
    cron_expression: Optional[str] = None


class CompileContext(BaseModel):
    """Per-request values the compiler may inject into node configs."""

    conversation_id: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    provider_connection_id: Optional[str] = None


class CompileResult(BaseModel):
    workflow: CompiledWorkflow
    warnings: List[str] = Field(default_factory=list)
    schedule: Optional[Schedule] = None
