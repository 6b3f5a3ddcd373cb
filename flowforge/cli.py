"""Command line interface for planning, compiling and running workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer

from .compiler import CompileContext, CompileResult, compile_plan
from .config import FlowForgeConfig, load_config
from .errors import ExecutionNotConfigured, FlowForgeError, describe_error
from .factory import build_agent, close_agent
from .planner.sanitizer import sanitize
from .planner.templates import (
    ORACLE_TEMPLATE_TOKENS,
    build_oracle_plan,
    build_oracle_prompt,
    find_template_token,
)
from .service import ExecuteRequest, PlanRequest

app = typer.Typer(help="CLI for FlowForge workflow planning and execution")

CLI_DESTINATION = "cli"


def _config(ctx: typer.Context) -> FlowForgeConfig:
    return ctx.obj if isinstance(ctx.obj, FlowForgeConfig) else load_config()


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2))


def _fail(exc: BaseException) -> None:
    typer.secho(describe_error(exc), fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _echo_compiled(result: CompileResult) -> None:
    _echo_json(
        {
            "workflow": result.workflow.to_payload(),
            "schedule": result.schedule.to_wire() if result.schedule else None,
            "warnings": result.warnings,
        }
    )


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, help="Path to a YAML config file"),
    log_level: Optional[str] = typer.Option(None, help="Override the configured log level"),
) -> None:
    """FlowForge CLI entry point."""
    loaded = load_config(str(config) if config else None)
    logging.basicConfig(
        level=(log_level or loaded.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = loaded


@app.command("plan")
def plan_command(
    ctx: typer.Context,
    prompt: str,
    user_id: str = typer.Option("cli-user", help="Acting user id"),
    chat_id: Optional[str] = typer.Option(None, help="Conversation/chat id"),
) -> None:
    """
    Ask the planner for a workflow plan and print it as JSON.

    Example:
        flowforge plan "Alert me when ETH drops below 1750"
    """
    components = build_agent(_config(ctx))

    async def run():
        try:
            return await components.service.plan(
                PlanRequest(prompt=prompt, user_id=user_id, channel_id=chat_id)
            )
        finally:
            await close_agent(components)

    try:
        plan = asyncio.run(run())
    except FlowForgeError as exc:
        _fail(exc)
    _echo_json(plan.to_wire())


@app.command("compile")
def compile_command(
    plan_file: Path,
    chat_id: Optional[str] = typer.Option(None, help="Chat id injected into notification nodes"),
    connection_id: Optional[str] = typer.Option(None, help="Provider connection id"),
) -> None:
    """
    Compile a plan JSON file offline and print the workflow payload.

    The file may hold planner output in any accepted shape; it is sanitized
    before compilation.
    """
    if not plan_file.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    try:
        raw = json.loads(plan_file.read_text())
    except ValueError as exc:
        typer.secho(f"Invalid JSON in {plan_file}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        result = compile_plan(
            sanitize(raw),
            CompileContext(conversation_id=chat_id, provider_connection_id=connection_id),
        )
    except FlowForgeError as exc:
        _fail(exc)
    _echo_compiled(result)


@app.command("template")
def template_command(
    symbol: str,
    chat_id: Optional[str] = typer.Option(None, help="Chat id injected into the Telegram node"),
    prompt_only: bool = typer.Option(False, "--prompt", help="Print the constrained planner prompt instead"),
) -> None:
    """Compile a curated price-feed template (ETH, BTC, LINK or ARB)."""
    token = find_template_token(symbol)
    if token is None:
        choices = ", ".join(t.symbol for t in ORACLE_TEMPLATE_TOKENS)
        typer.secho(f"Unknown template token {symbol}. Choose one of: {choices}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if prompt_only:
        typer.echo(build_oracle_prompt(token))
        return
    _echo_compiled(compile_plan(build_oracle_plan(token), CompileContext(conversation_id=chat_id)))


@app.command("execute")
def execute_command(
    ctx: typer.Context,
    prompt: str,
    user_id: str = typer.Option("cli-user", help="Acting user id"),
    chat_id: Optional[str] = typer.Option(None, help="Conversation/chat id"),
    follow: bool = typer.Option(False, help="Track the execution until it finishes"),
) -> None:
    """
    Plan, compile and run a workflow.

    With --follow the command keeps polling and logs status messages until
    the execution (or scheduled window) ends.
    """
    components = build_agent(_config(ctx))

    async def run():
        try:
            result = await components.service.execute(
                ExecuteRequest(prompt=prompt, user_id=user_id, channel_id=chat_id)
            )
            _echo_json(result.to_wire())
            tracker = components.tracker
            if follow and tracker is not None:
                destination = chat_id or CLI_DESTINATION
                if result.execution_id:
                    await tracker.track_execution(
                        result.execution_user_id, destination, result.execution_id
                    )
                elif result.time_block_id and result.schedule:
                    await tracker.track_schedule(
                        result.execution_user_id,
                        destination,
                        result.workflow_id,
                        result.time_block_id,
                        result.schedule.duration_seconds,
                    )
        finally:
            await close_agent(components)

    try:
        asyncio.run(run())
    except FlowForgeError as exc:
        _fail(exc)


@app.command("track")
def track_command(
    ctx: typer.Context,
    execution_id: str,
    user_id: str = typer.Option("cli-user", help="Acting user id"),
) -> None:
    """Poll an existing execution until it succeeds or fails."""
    components = build_agent(_config(ctx))
    if components.tracker is None:
        _fail(ExecutionNotConfigured())

    async def run():
        try:
            return await components.tracker.track_execution(user_id, CLI_DESTINATION, execution_id)
        finally:
            await close_agent(components)

    status = asyncio.run(run())
    typer.echo(f"Execution {execution_id}: {status.status}")


if __name__ == "__main__":
    app()
