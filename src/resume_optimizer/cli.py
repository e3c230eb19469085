"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from resume_optimizer.clients.analysis_api import AnalysisAPIClient
from resume_optimizer.clients.llm_client import LLMClient
from resume_optimizer.config import AppConfig, load_config
from resume_optimizer.errors import ResumeOptimizerError
from resume_optimizer.logging.usage_store import UsageStore
from resume_optimizer.models.sections import SectionSnapshot
from resume_optimizer.models.wizard import View
from resume_optimizer.parsers.text_loader import load_text_file, normalize_text
from resume_optimizer.pipeline.feedback_writer import FeedbackWriter
from resume_optimizer.pipeline.session import WizardSession
from resume_optimizer.storage.state_store import StateStore
from resume_optimizer.storage.subscriber_store import SubscriberStore

app = typer.Typer(
    name="resume-optimizer",
    help="AI resume feedback wizard",
    no_args_is_help=True,
)
console = Console()

VIEW_TITLES: dict[View, str] = {
    View.INPUT: "Your details",
    View.SUMMARY: "Overall Summary",
    View.DETAILS: "Section-by-Section Breakdown",
    View.REFINED: "Refined Resume Copy",
    View.COVER_LETTER: "Cover Letter Draft",
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _api_client(config: AppConfig) -> AnalysisAPIClient:
    return AnalysisAPIClient(
        config.api.base_url,
        analyze_path=config.api.analyze_path,
        verify_payment_path=config.api.verify_payment_path,
        timeout=config.api.timeout,
    )


def _load_session(config: AppConfig) -> WizardSession:
    """Session for navigation and unlock only; it cannot generate."""
    return WizardSession(StateStore(config.storage.resolved_state_db_path))


def _open_session(config: AppConfig, remote: bool = False) -> WizardSession:
    store = StateStore(config.storage.resolved_state_db_path)
    usage = UsageStore(config.storage.resolved_usage_db_path)
    if remote:
        return WizardSession(
            store,
            _api_client(config).stream_feedback,
            usage_store=usage,
            source_name="remote",
        )
    llm = LLMClient(timeout=config.llm.timeout, max_retries=config.llm.max_retries)
    writer = FeedbackWriter(
        llm,
        model=config.llm.model,
        temperature=config.llm.temperature,
        max_tokens=config.llm.max_tokens,
    )
    return WizardSession(
        store,
        writer.stream,
        llm=llm,
        usage_store=usage,
        source_name="anthropic",
        model=config.llm.model,
    )


def _read_input(text: str | None, file: Path | None, label: str) -> str:
    if file is not None:
        if not file.exists():
            console.print(f"[red]{label} file not found: {file}[/red]")
            raise typer.Exit(1)
        try:
            return load_text_file(file)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
    return normalize_text(text or "")


def _render(session: WizardSession, view: View | None = None) -> None:
    view = view or session.view()
    sections = session.displayed_sections()
    step_label = f"step: {session.state.step.value}"
    lock_label = "[green]unlocked[/green]" if session.state.is_unlocked else "[yellow]locked[/yellow]"

    if view is View.UNLOCK_PROMPT:
        console.print(Panel(
            "The refined resume and cover letter are available after payment.\n"
            "Run [bold]resume-optimizer unlock --session-id <id>[/bold] once checkout completes.",
            title="Unlock full analysis",
            subtitle=f"{step_label} | {lock_label}",
        ))
        return
    if view is View.INPUT:
        console.print("[dim]No feedback yet. Run [bold]resume-optimizer analyze[/bold] first.[/dim]")
        return

    body = {
        View.SUMMARY: sections.summary,
        View.DETAILS: sections.details,
        View.REFINED: sections.refined_copy,
        View.COVER_LETTER: sections.cover_letter,
    }[view]
    console.print(Panel(Markdown(body), title=VIEW_TITLES[view], subtitle=f"{step_label} | {lock_label}"))


def _progress_panel(snapshot: SectionSnapshot, status: str) -> Panel:
    lines = [
        f"{name}: {len(getattr(snapshot, field))} chars"
        for field, name in (
            ("summary", "Summary"),
            ("details", "Breakdown"),
            ("refined_copy", "Refined copy"),
            ("cover_letter", "Cover letter"),
        )
    ]
    return Panel("\n".join(lines), title="Generating feedback", subtitle=status)


def _fail(error: ResumeOptimizerError) -> None:
    console.print(f"[red]{error.user_message}[/red]")
    logging.getLogger(__name__).debug("Detail: %s", error.detail)
    raise typer.Exit(1)


@app.command()
def analyze(
    resume: Path = typer.Option(None, "--resume", "-r", help="Resume file (.txt/.md)"),
    resume_text: str = typer.Option(None, "--resume-text", help="Resume as inline text"),
    goals: str = typer.Option(None, "--goals", "-g", help="Career goals"),
    goals_file: Path = typer.Option(None, "--goals-file", help="Career goals file"),
    requirements: str = typer.Option("", "--requirements", help="Target position requirements"),
    requirements_file: Path = typer.Option(None, "--requirements-file", help="Job description file"),
    remote: bool = typer.Option(False, "--remote", help="Generate through the web backend"),
) -> None:
    """Generate feedback for a resume and open the summary step."""
    config = load_config()
    resume_body = _read_input(resume_text, resume, "Resume")
    goals_body = _read_input(goals, goals_file, "Goals")
    requirements_body = _read_input(requirements, requirements_file, "Requirements")

    session = _open_session(config, remote=remote)
    status = {"text": "Requesting feedback"}

    with Live(_progress_panel(SectionSnapshot(), status["text"]), console=console) as live:

        def on_phase(phase: str, detail: str) -> None:
            status["text"] = detail
            live.update(_progress_panel(session.slots, detail))

        def on_update(snapshot: SectionSnapshot) -> None:
            live.update(_progress_panel(snapshot, status["text"]))

        try:
            result = asyncio.run(
                session.start_generation(
                    resume_body,
                    goals_body,
                    requirements_body,
                    on_phase=on_phase,
                    on_update=on_update,
                )
            )
        except ResumeOptimizerError as e:
            live.stop()
            _fail(e)

    if result.missing_sections:
        console.print(f"[yellow]Not generated: {', '.join(result.missing_sections)}[/yellow]")
    console.print(f"[dim]{result.chunk_count} chunks, {result.elapsed_seconds:.1f}s[/dim]")
    _render(session)


@app.command()
def show() -> None:
    """Show the current wizard step."""
    session = _load_session(load_config())
    _render(session)


@app.command("next")
def next_step() -> None:
    """Advance to the next step (gated steps need an unlock)."""
    session = _load_session(load_config())
    try:
        view = session.next()
    except ResumeOptimizerError as e:
        _fail(e)
    _render(session, view)


@app.command()
def back() -> None:
    """Go back one step."""
    session = _load_session(load_config())
    try:
        session.back()
    except ResumeOptimizerError as e:
        _fail(e)
    _render(session)


@app.command()
def unlock(
    session_id: str = typer.Option(None, "--session-id", help="Stripe checkout session id"),
    payment_intent: str = typer.Option(None, "--payment-intent", help="Stripe PaymentIntent id"),
    client_secret: str = typer.Option(None, "--client-secret", help="PaymentIntent client secret"),
) -> None:
    """Verify a payment with the backend and unlock the full analysis."""
    if not session_id and not payment_intent:
        console.print("[red]Pass --session-id or --payment-intent.[/red]")
        raise typer.Exit(1)
    if payment_intent and not client_secret:
        console.print("[red]--payment-intent needs --client-secret.[/red]")
        raise typer.Exit(1)

    config = load_config()
    session = _load_session(config)
    with console.status("Verifying payment..."):
        try:
            state = asyncio.run(
                session.verify_and_unlock(
                    _api_client(config),
                    session_id=session_id,
                    payment_intent_id=payment_intent,
                    client_secret=client_secret,
                )
            )
        except ResumeOptimizerError as e:
            _fail(e)

    email = f" ({state.customer_email})" if state.customer_email else ""
    console.print(f"[green]Payment verified{email}. Full analysis unlocked.[/green]")
    _render(session)


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear saved feedback, inputs and unlock status."""
    if not yes:
        typer.confirm("Discard the saved session?", abort=True)
    session = _load_session(load_config())
    try:
        session.reset()
    except ResumeOptimizerError as e:
        _fail(e)
    console.print("[green]Session cleared.[/green]")


@app.command()
def status() -> None:
    """Show the saved session at a glance."""
    session = _load_session(load_config())
    state = session.state
    table = Table(show_header=False, box=None)
    table.add_row("Step", state.step.value)
    table.add_row("Unlocked", "yes" if state.is_unlocked else "no")
    if state.payment_timestamp:
        table.add_row("Paid at", state.payment_timestamp)
    if state.customer_email:
        table.add_row("Email", state.customer_email)
    table.add_row("Resume", f"{len(state.resume)} chars")
    table.add_row("Goals", f"{len(state.goals)} chars")
    table.add_row("Requirements", f"{len(state.requirements)} chars" if state.requirements else "-")
    for field, label in (
        ("summary", "Summary"),
        ("details", "Breakdown"),
        ("refined_copy", "Refined copy"),
        ("cover_letter", "Cover letter"),
    ):
        table.add_row(label, f"{len(getattr(state, field))} chars")
    console.print(Panel(table, title="Session"))


@app.command()
def subscribe(
    email: str = typer.Argument(help="Email address"),
    source: str = typer.Option("landing_page", "--source", help="Signup source"),
) -> None:
    """Add an email to the subscriber list."""
    store = SubscriberStore(load_config().storage.resolved_subscribers_db_path)
    try:
        result = store.subscribe(email, source=source)
    except ResumeOptimizerError as e:
        _fail(e)
    color = "yellow" if result.already_subscribed else "green"
    console.print(f"[{color}]{result.message}[/{color}]")


@app.command()
def subscribers(
    limit: int = typer.Option(None, "--limit", "-n", help="Only the most recent N"),
    fmt: str = typer.Option("table", "--format", "-f", help="table | csv"),
    output: Path = typer.Option(None, "--output", "-o", help="Write CSV to this file"),
) -> None:
    """List email subscribers."""
    store = SubscriberStore(load_config().storage.resolved_subscribers_db_path)
    rows = store.recent(limit) if limit else store.all()

    if fmt == "csv":
        csv_text = SubscriberStore.to_csv(rows)
        if output:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(csv_text, encoding="utf-8")
            console.print(f"[green]Saved {len(rows)} rows: {output}[/green]")
        else:
            typer.echo(csv_text, nl=False)
        return
    if fmt != "table":
        console.print(f"[red]Unknown format: {fmt}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Subscribers ({store.count()} total)")
    table.add_column("ID", justify="right")
    table.add_column("Email")
    table.add_column("Source")
    table.add_column("Created At")
    for s in rows:
        table.add_row(str(s.id), s.email, s.source, s.created_at.strftime("%Y-%m-%d %H:%M"))
    console.print(table)


@app.command()
def usage(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of recent runs"),
) -> None:
    """Show generation usage and estimated cost."""
    store = UsageStore(load_config().storage.resolved_usage_db_path)
    stats = store.get_monthly_stats()
    avg = stats["avg_elapsed_seconds"]
    console.print(Panel(
        f"Runs: {stats['total_runs']} | success: {stats['success_rate']:.0f}% | "
        f"partial: {stats['partial_runs']}\n"
        f"Tokens: {stats['total_input_tokens']:,} in / {stats['total_output_tokens']:,} out\n"
        f"Cost: ${stats['total_cost_usd']:.4f} (all time ${store.get_total_cost():.4f})"
        + (f"\nAvg time: {avg}s" if avg is not None else ""),
        title=f"Usage {stats['month']}",
    ))

    logs = store.get_logs(limit=limit)
    if not logs:
        return
    table = Table()
    table.add_column("When")
    table.add_column("Source")
    table.add_column("Chars", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Result")
    for log in logs:
        result = "[green]ok[/green]" if log.success else f"[red]{log.error_message or 'failed'}[/red]"
        if log.success and log.missing_sections:
            result = f"[yellow]missing {', '.join(log.missing_sections)}[/yellow]"
        table.add_row(
            log.timestamp.strftime("%m-%d %H:%M"),
            log.source,
            str(log.output_chars),
            f"{log.elapsed_seconds:.1f}s",
            f"${log.estimated_cost_usd:.4f}",
            result,
        )
    console.print(table)


if __name__ == "__main__":
    app()
