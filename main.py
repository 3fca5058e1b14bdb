"""
FormFlow - Main Entry Point

CLI for inspecting, linting, trying out and serving chat-style forms.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from formflow.actions.dispatcher import ActionDispatcher, ActionOutbox
from formflow.actions.email import EmailEngine
from formflow.actions.webhook import WebhookClient
from formflow.authoring.linter import lint_form
from formflow.config.loader import list_available_forms, load_all_forms, load_app_config, load_form
from formflow.config.schema import AppConfig
from formflow.engine.interpolation import format_display_value
from formflow.engine.navigation import display_step_for
from formflow.exceptions import FormConfigurationError
from formflow.flow_service import FlowService
from formflow.models import Form, InputType, Step
from formflow.observability.logging_config import configure_logging
from formflow.store.memory import InMemoryStore

# Load environment (override=True to ensure .env values take precedence)
root_env = Path(__file__).parent / ".env"
if root_env.exists():
    load_dotenv(root_env, override=True)
else:
    load_dotenv(override=True)

app = typer.Typer(
    name="formflow",
    help="FormFlow - chat-style branching forms",
)
console = Console()
logger = logging.getLogger("formflow")


def _get_form(public_url: str, forms_dir: str) -> Form:
    """Load a form, with a friendly error on failure."""
    try:
        return load_form(public_url, forms_dir=forms_dir)
    except FormConfigurationError as e:
        available = list_available_forms(forms_dir)
        available_list = ", ".join(available) if available else "none found"
        console.print(Panel(
            f"[red]{e}[/]\n\n"
            f"Available forms: [cyan]{available_list}[/]",
            title="⚠ Configuration Error",
            border_style="red",
        ))
        raise typer.Exit(code=1)


def _build_dispatcher(config: AppConfig) -> ActionDispatcher:
    return ActionDispatcher(
        email_engine=EmailEngine(
            provider=config.email.provider.value,
            api_key_env=config.email.api_key_env,
            from_address=config.email.from_address,
        ),
        webhook_client=WebhookClient(timeout=config.actions.timeout_seconds),
        timeout_seconds=config.actions.timeout_seconds,
        email_delay_seconds=config.actions.email_delay_seconds,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    configure_logging(level=logging.DEBUG if verbose else logging.WARNING)


# =========================================================================
# Commands
# =========================================================================


@app.command()
def info(
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to config.yaml"),
):
    """Show available forms."""
    config = load_app_config(config_path)
    forms = list_available_forms(config.forms_dir)

    if not forms:
        console.print(f"[yellow]No forms found. Create one in {config.forms_dir}/[/]")
        return

    table = Table(title="FormFlow - Available Forms")
    table.add_column("Public URL", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Status", style="green")
    table.add_column("Steps", style="yellow")
    table.add_column("Actions", style="blue")

    for public_url in forms:
        try:
            form = load_form(public_url, forms_dir=config.forms_dir)
            table.add_row(
                form.public_url,
                form.name,
                form.status.value,
                str(len(form.steps)),
                str(len(form.actions)),
            )
        except FormConfigurationError as e:
            table.add_row(public_url, f"[red]Error: {e}[/]", "", "", "")

    console.print(table)


@app.command()
def lint(
    form_url: str = typer.Argument(..., help="Form public URL (e.g., 'feedback')"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to config.yaml"),
):
    """Check a form for broken references and incomplete steps."""
    config = load_app_config(config_path)
    form = _get_form(form_url, config.forms_dir)
    report = lint_form(form.steps)

    if report.is_valid:
        console.print(Panel(
            f"[green]Form is valid![/]\n\n"
            f"Name: {form.name}\n"
            f"Steps: {len(form.steps)}\n"
            f"Actions: {len(form.actions)}",
            title=f"Lint: {form_url}",
        ))
        return

    table = Table(title=f"Lint: {form_url} ({len(report.errors)} problems)")
    table.add_column("#", style="dim")
    table.add_column("Problem", style="red")
    for i, error in enumerate(report.errors, 1):
        table.add_row(str(i), error)
    console.print(table)
    raise typer.Exit(code=1)


def _ask(step: Step) -> Any:
    """Prompt for one answer; choice steps accept a number or a label."""
    if step.input and step.input.type == InputType.CHOICE and step.input.choices:
        for i, choice in enumerate(step.input.choices, 1):
            console.print(f"  [cyan]{i}.[/] {choice.label}")
        reply = Prompt.ask("[bold]>[/]")
        if reply.isdigit() and 1 <= int(reply) <= len(step.input.choices):
            choice = step.input.choices[int(reply) - 1]
            return choice.value if choice.value is not None else choice.label
        for choice in step.input.choices:
            if choice.label.lower() == reply.strip().lower():
                return choice.value if choice.value is not None else choice.label
        return reply
    if step.input and step.input.type == InputType.TEXT:
        return Prompt.ask("[bold]>[/]")
    Prompt.ask("[dim]press enter[/]", default="", show_default=False)
    return ""


@app.command()
def chat(
    form_url: str = typer.Argument(..., help="Form public URL"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to config.yaml"),
):
    """Walk through a form in the terminal."""
    config = load_app_config(config_path)
    form = _get_form(form_url, config.forms_dir)
    service = FlowService(InMemoryStore([form]))

    state = service.start_or_resume(form.public_url)
    step = state.first_visible_step
    messages = state.rendered_messages
    data = state.collected_data

    while step is not None:
        for message in messages:
            console.print(f"[green]bot:[/] {message.text}")

        answer_step = display_step_for(step, form.steps)
        replay_step_id = step.id if answer_step.id != step.id else None

        outcome = service.submit_answer(
            form.public_url,
            state.session_id,
            answer_step.id,
            _ask(answer_step),
            replay_step_id=replay_step_id,
        )
        if not outcome.accepted:
            console.print(f"[red]{outcome.validation_error}[/]")
            messages = []
            continue

        data = outcome.collected_data
        step = outcome.next_step
        messages = outcome.rendered_messages

    for message in messages:
        console.print(f"[green]bot:[/] {message.text}")

    table = Table(title="Collected Data")
    table.add_column("Variable", style="cyan")
    table.add_column("Value", style="white")
    for key, value in data.items():
        table.add_row(key, format_display_value(value))
    console.print(table)

    pending = service.outbox.pending()
    if pending:
        console.print(f"[dim]{len(pending[0].actions)} action(s) queued (not sent in chat mode)[/]")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind host"),
    port: Optional[int] = typer.Option(None, help="Bind port"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to config.yaml"),
):
    """Run the HTTP API over every form in the forms directory."""
    import uvicorn

    from formflow.api.server import create_api_app

    config = load_app_config(config_path)
    configure_logging(env=config.environment)

    forms = load_all_forms(config.forms_dir)
    outbox = ActionOutbox()
    service = FlowService(InMemoryStore(forms), outbox)
    api = create_api_app(
        service,
        _build_dispatcher(config),
        outbox,
        cors_origins=config.api.cors_origins,
    )

    console.print(Panel(
        f"[cyan]Serving {len(forms)} form(s)[/]\n"
        f"http://{host or config.api.host}:{port or config.api.port}/api/docs",
        title="FormFlow API",
    ))
    uvicorn.run(api, host=host or config.api.host, port=port or config.api.port)


if __name__ == "__main__":
    app()
