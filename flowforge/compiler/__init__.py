"""Plan-to-workflow compilation."""

from .compiler import compile_plan, validate_workflow
from .conditions import Condition, parse_condition
from .models import (
    CompileContext,
    CompiledEdge,
    CompiledNode,
    CompiledWorkflow,
    CompileResult,
    Schedule,
)

__all__ = [
    "CompileContext",
    "CompileResult",
    "CompiledEdge",
    "CompiledNode",
    "CompiledWorkflow",
    "Condition",
    "Schedule",
    "compile_plan",
    "parse_condition",
    "validate_workflow",
]
