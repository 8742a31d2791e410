"""Command line interface for convoflow."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

import typer

from convoflow import ResponseEvent, SessionStateMachine, WorkflowCatalog
from convoflow.config import load_config
from convoflow.errors import ConfigurationError
from convoflow.events import EventType
from convoflow.orchestrator import create_orchestrator
from convoflow.tools import get_tools

app = typer.Typer(help="CLI for convoflow conversations")

# Command groups
workflow_app = typer.Typer(help="Inspect the workflow catalog")
tool_app = typer.Typer(help="Inspect tool bindings")

app.add_typer(workflow_app, name="workflows")
app.add_typer(tool_app, name="tools")

QUIT_COMMANDS = {"/quit", "/exit"}
RESET_COMMAND = "/reset"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """convoflow CLI entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def format_event(event: ResponseEvent) -> str:
    label = event.type.value
    if event.progress is not None and event.type is EventType.STEP_PROGRESS:
        label = f"{label} {event.progress}%"
    text = f"[{label}] {event.message}"
    if event.retry_available:
        text += " (send 'execute' to retry)"
    return text


async def _chat_loop(machine: SessionStateMachine, session_id: str) -> None:
    machine.store.start_sweeper()

    async def show(event: ResponseEvent) -> None:
        typer.echo(format_event(event))

    try:
        await show(await machine.welcome(session_id))
        while True:
            try:
                text = await asyncio.to_thread(
                    typer.prompt, "you", default="", show_default=False
                )
            except (typer.Abort, EOFError):
                break
            text = text.strip()
            if not text:
                continue
            if text in QUIT_COMMANDS:
                break
            if text == RESET_COMMAND:
                await machine.reset(session_id)
                typer.echo("Conversation reset.")
                continue
            await machine.handle_message(session_id, text, show)
    finally:
        await machine.aclose()


@app.command("chat")
def chat(
    session_id: Optional[str] = typer.Option(None, "--session", help="Session id to use"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
    lenient: bool = typer.Option(
        False, "--lenient", help="Start even if some step tools are unbound"
    ),
) -> None:
    """
    Start an interactive conversation.

    Type '/reset' to abandon the current workflow and '/quit' to leave.

    Example:
        convoflow chat
        convoflow chat --session demo --config ./config.yaml
    """
    settings = load_config(str(config) if config else None)
    try:
        machine = create_orchestrator(settings, strict=False if lenient else None)
    except ConfigurationError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    asyncio.run(_chat_loop(machine, session_id or uuid.uuid4().hex))


@workflow_app.command("list")
def workflow_list() -> None:
    """List the available workflows with their synonyms."""
    for workflow in WorkflowCatalog():
        aliases = ", ".join(workflow.synonyms)
        typer.echo(f"{workflow.key}\t{workflow.name}\t{aliases}")


@workflow_app.command("show")
def workflow_show(workflow_type: str) -> None:
    """Show the steps and parameters of a workflow."""
    workflow = WorkflowCatalog().lookup(workflow_type)
    if workflow is None:
        typer.secho(f"Unknown workflow: {workflow_type}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"{workflow.name} ({workflow.key})")
    typer.echo(workflow.description)
    for position, step in enumerate(workflow.steps, start=1):
        typer.echo(f"{position}. {step.name} [{step.id}] -> {step.tool}")
        typer.echo(f"   required: {', '.join(step.required_params) or '-'}")
        typer.echo(f"   optional: {', '.join(step.optional_params) or '-'}")


@tool_app.command("check")
def tool_check(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.yaml"),
) -> None:
    """Verify every tool referenced by a workflow step has an endpoint."""
    settings = load_config(str(config) if config else None)
    registry = get_tools(settings)
    for key in sorted(WorkflowCatalog().tool_keys()):
        if key in registry:
            typer.echo(f"{key}\t{settings.tools[key].endpoint}")
        else:
            typer.echo(f"{key}\tUNBOUND")
    unbound = registry.unbound(WorkflowCatalog().tool_keys())
    if unbound:
        typer.secho(f"Unbound tools: {', '.join(unbound)}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
