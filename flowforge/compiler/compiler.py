"""Compile a sanitized :class:`Plan` into a linear backend workflow graph."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from ..constants import (
    DEFAULT_CATEGORY,
    DEFAULT_CRON_EXPRESSION,
    DEFAULT_DURATION_SECONDS,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_WORKFLOW_NAME,
    NODE_BASE_X,
    NODE_SPACING_X,
)
from ..errors import EmptyPlan, InvalidWorkflowGraph, NoActionableSteps, UnknownBlock
from ..planner.catalog import (
    SCHEDULE_BLOCK_ID,
    START_TYPE,
    TIME_BLOCK_TYPE,
    TRIGGER_TYPES,
    get_block,
)
from ..planner.models import Plan, Step
from .models import (
    CompileContext,
    CompiledEdge,
    CompiledNode,
    CompiledWorkflow,
    CompileResult,
    NodePosition,
    Schedule,
)
from .normalizers import link_oracle_outputs, normalize_config

logger = logging.getLogger(__name__)


def compile_plan(plan: Plan, context: Optional[CompileContext] = None) -> CompileResult:
    """Compile ``plan`` into a workflow with one trigger and a linear chain.

    Raises:
        EmptyPlan: the plan has no steps.
        NoActionableSteps: the only step is the schedule trigger.
        UnknownBlock: a step names a block outside the catalog.
        InvalidWorkflowGraph: the compiled graph breaks a structural invariant.
    """
    context = context or CompileContext()
    if not plan.steps:
        raise EmptyPlan()

    warnings: List[str] = []
    first = plan.steps[0]
    scheduled = first.block_id == SCHEDULE_BLOCK_ID
    steps = plan.steps[1:] if scheduled else plan.steps
    if not steps:
        raise NoActionableSteps()

    schedule: Optional[Schedule] = None
    if scheduled:
        trigger, schedule = _build_schedule_trigger(first, warnings)
    else:
        trigger = _build_manual_trigger()

    step_nodes = [
        _compile_step(step, index, context, warnings) for index, step in enumerate(steps)
    ]
    link_oracle_outputs(step_nodes)

    edges: List[CompiledEdge] = []
    previous_id = trigger.id
    for node in step_nodes:
        edges.append(
            CompiledEdge(
                id=f"{previous_id}->{node.id}",
                source_node_id=previous_id,
                target_node_id=node.id,
            )
        )
        previous_id = node.id

    workflow = CompiledWorkflow(
        name=plan.workflow_name or DEFAULT_WORKFLOW_NAME,
        description=plan.description or "Generated from natural language request.",
        nodes=[trigger, *step_nodes],
        edges=edges,
        trigger_node_id=trigger.id,
        category=context.category or DEFAULT_CATEGORY,
        tags=list(context.tags or []),
        is_public=False,
    )
    validate_workflow(workflow)

    logger.info(
        f"Compiled workflow '{workflow.name}' with {len(workflow.nodes)} nodes "
        f"({len(warnings)} warnings)"
    )
    return CompileResult(workflow=workflow, warnings=warnings, schedule=schedule)


def _build_manual_trigger() -> CompiledNode:
    return CompiledNode(
        id=str(uuid4()),
        type=START_TYPE,
        name="Start",
        description="Manual trigger for this workflow.",
        config={"triggerType": "MANUAL"},
    )


def _build_schedule_trigger(
    step: Step, warnings: List[str]
) -> Tuple[CompiledNode, Schedule]:
    hints = step.config_hints
    interval = _positive_int(
        hints.get("intervalSeconds"), DEFAULT_INTERVAL_SECONDS, "time-block intervalSeconds", warnings
    )
    duration = _positive_int(
        hints.get("durationSeconds"), DEFAULT_DURATION_SECONDS, "time-block durationSeconds", warnings
    )

    cron = (hints.get("cronExpression") or "").strip() or None
    if cron or hints.get("recurrenceType", "").strip().upper() == "CRON":
        cron = cron or DEFAULT_CRON_EXPRESSION
        recurrence: Dict[str, Any] = {"type": "CRON", "cronExpression": cron}
    else:
        recurrence = {"type": "INTERVAL", "intervalSeconds": interval}

    block = get_block(SCHEDULE_BLOCK_ID)
    node = CompiledNode(
        id=str(uuid4()),
        type=TIME_BLOCK_TYPE,
        name="Time Block",
        description=step.purpose or "Scheduled trigger for this workflow.",
        config={
            "recurrence": recurrence,
            "stopConditions": {"durationSeconds": duration},
        },
        metadata={"blockId": step.block_id, "plannerLabel": block.label if block else "Scheduled Trigger"},
    )
    schedule = Schedule(
        interval_seconds=interval, duration_seconds=duration, cron_expression=cron
    )
    return node, schedule


def _positive_int(raw: Optional[str], default: int, field: str, warnings: List[str]) -> int:
    if raw is None or not str(raw).strip():
        warnings.append(f"Missing {field}, using default {default}.")
        return default
    text = str(raw).strip()
    if re.fullmatch(r"[0-9]+", text) and int(text) > 0:
        return int(text)
    warnings.append(f'Invalid {field} "{raw}", using default {default}.')
    return default


def _compile_step(
    step: Step, index: int, context: CompileContext, warnings: List[str]
) -> CompiledNode:
    block = get_block(step.block_id)
    if block is None:
        raise UnknownBlock(step.block_id, index)
    if block.backend_type in TRIGGER_TYPES:
        # A trigger block anywhere but first cannot be placed in a linear chain.
        raise InvalidWorkflowGraph(
            f'Trigger block "{step.block_id}" is only allowed as the first step (step {index + 1}).'
        )

    config = normalize_config(block, step.purpose, step.config_hints, context, warnings)
    return CompiledNode(
        id=str(uuid4()),
        type=block.backend_type,
        name=block.label,
        description=step.purpose,
        config=config,
        position=NodePosition(x=NODE_BASE_X + index * NODE_SPACING_X, y=0),
        metadata={"blockId": step.block_id, "plannerLabel": block.label},
    )


def validate_workflow(workflow: CompiledWorkflow) -> None:
    """Re-check structural invariants of a compiled graph."""
    if not workflow.nodes:
        raise InvalidWorkflowGraph("Compiled workflow has no nodes.")

    triggers = [node for node in workflow.nodes if node.type in TRIGGER_TYPES]
    if len(triggers) != 1:
        raise InvalidWorkflowGraph(
            "Compiled workflow must contain exactly one trigger node "
            f"(START or TIME_BLOCK), found {len(triggers)}."
        )
    if triggers[0].id != workflow.trigger_node_id:
        raise InvalidWorkflowGraph("Compiled workflow is missing a valid triggerNodeId.")

    actions = [node for node in workflow.nodes if node.type not in TRIGGER_TYPES]
    if not actions:
        raise InvalidWorkflowGraph("Compiled workflow must contain at least one non-trigger node.")
    if len(workflow.edges) < len(actions):
        raise InvalidWorkflowGraph("Compiled workflow edges do not connect all nodes linearly.")

    node_ids = {node.id for node in workflow.nodes}
    targets = {edge.target_node_id for edge in workflow.edges}
    for edge in workflow.edges:
        if edge.source_node_id not in node_ids or edge.target_node_id not in node_ids:
            raise InvalidWorkflowGraph(f"Edge {edge.id} references an unknown node.")
    missing = [node.id for node in actions if node.id not in targets]
    if missing:
        raise InvalidWorkflowGraph(f"Nodes without an incoming edge: {', '.join(missing)}.")
