"""
Command Line Interface for Compliance Queue.
"""

from contextlib import contextmanager
from typing import Iterator, NoReturn, Optional

import typer
import uvicorn
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.lifecycle import ArtifactLifecycle
from ..core.pipeline import PipelineRunner, reconcile_stale_claims
from ..db.base import get_session_local, init_database
from ..db.services import ArtifactService
from ..errors import ComplianceQueueError, ScrapeError
from ..logging_config import configure_logging
from ..schemas.artifact import ArtifactRead, ArtifactStatus
from ..schemas.pipeline import PipelineReport
from ..scrape.client import ScrapeClient, ScrapeRequest

app = typer.Typer(help="Compliance Queue - review queue and webscrap pipeline")
console = Console()

STATUS_STYLES = {
    "pending": "yellow",
    "approved": "green",
    "in_progress": "cyan",
}


@app.callback()
def main(
    log_format: Optional[str] = typer.Option(None, help="Override LOG_FORMAT (json/console)"),
) -> None:
    settings = get_settings()
    if log_format:
        settings = settings.model_copy(update={"log_format": log_format})
    configure_logging(settings)


@contextmanager
def _session() -> Iterator[Session]:
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()


def _fail(exc: ComplianceQueueError) -> NoReturn:
    console.print(f"[bold red]✗ {exc.code}[/]: {escape(exc.message)}")
    raise typer.Exit(code=1)


def _print_artifact(action: str, artifact: ArtifactRead) -> None:
    style = STATUS_STYLES.get(artifact.status.value, "white")
    console.print(
        f"✅ {action} [bold]{escape(artifact.compliance_name_origin)}[/] "
        f"({artifact.compliance_id}) status=[{style}]{artifact.status.value}[/]"
    )


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Start the Compliance Queue API server."""
    settings = get_settings()
    rprint(Panel.fit("📋 Starting Compliance Queue", style="bold blue"))
    uvicorn.run(
        "compliance_queue.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
    )


@app.command("init-db")
def init_db():
    """Create database tables that do not exist yet."""
    init_database()
    console.print("✅ Database initialized")


@app.command("list")
def list_artifacts(
    status: Optional[ArtifactStatus] = typer.Option(None, help="Filter by status"),
    limit: int = typer.Option(100, help="Maximum rows to show"),
):
    """Show queued compliance artifacts, newest first."""
    try:
        with _session() as db:
            artifacts = [a.to_dict() for a in ArtifactService(db).list(status=status, limit=limit)]
    except ComplianceQueueError as e:
        _fail(e)

    table = Table(title="Compliance Queue", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Translated")
    table.add_column("URL")
    table.add_column("Status")
    table.add_column("Created")

    for a in artifacts:
        style = STATUS_STYLES.get(a["status"], "white")
        table.add_row(
            a["compliance_id"],
            escape(a["compliance_name_origin"]),
            escape(a["compliance_name_translated"] or ""),
            escape(a["url"] or ""),
            f"[{style}]{a['status']}[/]",
            a["created_at"] or "",
        )

    console.print(table)
    console.print(f"{len(artifacts)} artifact(s)")


@app.command()
def approve(artifact_id: str = typer.Argument(..., help="Artifact ID")):
    """Approve an artifact for the next pipeline run."""
    try:
        with _session() as db:
            _print_artifact("Approved", ArtifactLifecycle(db, actor_id="cli").approve(artifact_id))
    except ComplianceQueueError as e:
        _fail(e)


@app.command()
def disapprove(
    artifact_id: str = typer.Argument(..., help="Artifact ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Disapprove an artifact. This deletes it permanently."""
    if not yes:
        typer.confirm(f"Permanently delete artifact {artifact_id}?", abort=True)
    try:
        with _session() as db:
            artifact = ArtifactLifecycle(db, actor_id="cli").disapprove(artifact_id)
        console.print(
            f"🗑️  Disapproved and removed [bold]{escape(artifact.compliance_name_origin)}[/] "
            f"({artifact.compliance_id})"
        )
    except ComplianceQueueError as e:
        _fail(e)


@app.command()
def revert(artifact_id: str = typer.Argument(..., help="Artifact ID")):
    """Send an artifact back to pending."""
    try:
        with _session() as db:
            _print_artifact("Reverted", ArtifactLifecycle(db, actor_id="cli").revert(artifact_id))
    except ComplianceQueueError as e:
        _fail(e)


@app.command("set-url")
def set_url(
    artifact_id: str = typer.Argument(..., help="Artifact ID"),
    url: str = typer.Argument(..., help="Source URL ('' clears it)"),
):
    """Change the source URL used when scraping."""
    try:
        with _session() as db:
            _print_artifact(
                "Updated URL of", ArtifactLifecycle(db, actor_id="cli").update_url(artifact_id, url)
            )
    except ComplianceQueueError as e:
        _fail(e)


@app.command("set-name")
def set_name(
    artifact_id: str = typer.Argument(..., help="Artifact ID"),
    name: str = typer.Argument(..., help="Translated name ('' clears it)"),
):
    """Change the translated display name."""
    try:
        with _session() as db:
            _print_artifact(
                "Renamed", ArtifactLifecycle(db, actor_id="cli").update_name(artifact_id, name)
            )
    except ComplianceQueueError as e:
        _fail(e)


def _print_report(report: PipelineReport) -> None:
    table = Table(title=f"Pipeline run {report.run_id}", show_header=True, header_style="bold magenta")
    table.add_column("Result")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Details")

    for item in report.successes:
        table.add_row("✅ success", item.id, escape(item.name), "")
    for item in report.failures:
        table.add_row("❌ failed", item.id, escape(item.name), escape(item.error))
    for item in report.skipped:
        table.add_row("⏭️  skipped", item.id, escape(item.name), item.reason.value)

    console.print(table)
    console.print(report.message)


@app.command("run-pipeline")
def run_pipeline(
    workers: Optional[int] = typer.Option(None, min=1, help="Items processed at once"),
    deadline: Optional[float] = typer.Option(None, min=0, help="Run deadline in seconds"),
):
    """Scrape every approved artifact now."""
    settings = get_settings()
    try:
        with ScrapeClient.from_settings(settings) as client:
            runner = PipelineRunner(
                get_session_local(),
                client,
                settings,
                max_workers=workers,
                run_deadline_seconds=deadline,
            )
            report = runner.run_pipeline()
    except ComplianceQueueError as e:
        _fail(e)

    _print_report(report)
    if report.failed:
        raise typer.Exit(code=2)


@app.command()
def reconcile(
    older_than: Optional[int] = typer.Option(None, min=1, help="Seconds a claim must be stale"),
):
    """Return artifacts stranded in_progress to approved."""
    settings = get_settings()
    try:
        with _session() as db:
            released = reconcile_stale_claims(db, settings, older_than)
    except ComplianceQueueError as e:
        _fail(e)

    for artifact_id in released:
        console.print(f"↩️  {artifact_id} -> approved")
    console.print(f"Released {len(released)} stale claim(s)")


@app.command()
def scrape(
    name: str = typer.Argument(..., help="Certification name"),
    domain: Optional[str] = typer.Option(None, help="Source domain/URL"),
    limit: Optional[int] = typer.Option(None, min=1, help="Result limit"),
    save: bool = typer.Option(True, help="Save results to the knowledge base"),
):
    """Call the scrape service once without touching the queue."""
    settings = get_settings()
    request = ScrapeRequest.for_artifact(
        name=name,
        url=domain,
        result_limit=limit or settings.scrape_result_limit,
        persist=save,
    )
    with ScrapeClient.from_settings(settings) as client:
        result = client.scrape(request)

    try:
        payload = result.raise_for_outcome()
    except ScrapeError as e:
        _fail(e)

    console.print_json(data=payload)


if __name__ == "__main__":
    app()
