"""FlowForge: turn chat requests into tracked on-chain automation workflows."""

from .compiler import CompileContext, CompileResult, compile_plan
from .errors import FlowForgeError, describe_error
from .factory import build_agent, build_agent_service
from .notify import get_notifier
from .planner import Plan, Step, recover_plan, sanitize
from .service import AgentService, ExecuteRequest, ExecuteResult, PlanRequest
from .sessions import get_session_store
from .tracking import ExecutionTracker

__version__ = "0.1.0"
__all__ = [
    "AgentService",
    "CompileContext",
    "CompileResult",
    "ExecuteRequest",
    "ExecuteResult",
    "ExecutionTracker",
    "FlowForgeError",
    "Plan",
    "PlanRequest",
    "Step",
    "build_agent",
    "build_agent_service",
    "compile_plan",
    "describe_error",
    "get_notifier",
    "get_session_store",
    "recover_plan",
    "sanitize",
]
