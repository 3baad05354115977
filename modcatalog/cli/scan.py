import click
from PySide6.QtCore import QCoreApplication

from modcatalog.cli.common import CliContext, pass_cli_context, reported_errors
from modcatalog.controllers.scan_controller import start_scan
from modcatalog.models.structures import ScanProgress
from modcatalog.utils.event_bus import EventBus


@click.command("scan")
@click.option("--quiet", is_flag=True, help="Suppress progress output.")
@pass_cli_context
def scan(ctx: CliContext, quiet: bool) -> None:
    """Scan the managed mods folder and catalog new mods.

    The scan runs on a worker thread; this command waits for it to finish.
    """
    app = QCoreApplication.instance() or QCoreApplication([])
    event_bus = EventBus()

    def on_progress(progress: ScanProgress) -> None:
        if not quiet:
            click.echo(
                f"[{progress.processed_count}/{progress.total_count}] {progress.message}",
                err=True,
            )

    event_bus.scan_progress.connect(on_progress)
    try:
        with reported_errors():
            worker = start_scan(ctx.catalog)
        worker.wait()
        # Deliver notifications queued for this thread
        app.processEvents()
    finally:
        event_bus.scan_progress.disconnect(on_progress)

    if worker.summary is None:
        click.secho(
            f"Error: {worker.error_message or 'Scan failed'}", fg="red", err=True
        )
        raise SystemExit(1)

    summary = worker.summary
    click.echo(
        f"processed={summary.processed} added={summary.added} errors={summary.errors}"
    )
