"""Orchestration of one public folder → archive export run."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from public_folder_migration.config.settings import AppSettings, ExchangeSettings
from public_folder_migration.exchange.source import connect_account, resolve_public_folder
from public_folder_migration.models.types import ExportSummary, TransferRecord
from public_folder_migration.pipeline.errors import FolderCreateError
from public_folder_migration.pipeline.protocols import FolderNode
from public_folder_migration.pipeline.transfer import ArchiveItemTransport
from public_folder_migration.pipeline.walker import MirrorWalker, TransferReport, mirror_children
from public_folder_migration.storage.archive_db import ArchiveDb
from public_folder_migration.storage.report_csv import default_report_path, write_report_csv

logger = logging.getLogger(__name__)

SourceResolver = Callable[[ExchangeSettings, str], FolderNode]


def resolve_exchange_source(settings: ExchangeSettings, start_path: str) -> FolderNode:
    """Connect to Exchange and resolve the start folder of the export."""
    account = connect_account(settings)
    return resolve_public_folder(account, start_path)


class ExportOrchestrator:
    """Coordinates archive setup, the mirror walk, and report output."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        source_resolver: SourceResolver = resolve_exchange_source,
        console: Console | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Application settings.
            source_resolver: Returns the start folder for a start path.
            console: Rich console for status output.
        """
        self._s = settings
        self._resolve_source = source_resolver
        self._console = console or Console()

    def run(self, *, dry_run: bool, start_path: str | None = None) -> ExportSummary:
        """Run one export.

        The CSV report and JSON summary are written even when the walk aborts on
        a folder error; the error is re-raised afterwards.

        Args:
            dry_run: Traverse and report without writing to the archive.
            start_path: Source path to export from; defaults to the configured one.

        Returns:
            Summary of the run.

        Raises:
            ValueError: If Exchange settings are missing.
            FolderCreateError: If configured to abort on folder errors and one occurred.
        """
        settings = self._s
        if settings.exchange is None:
            raise ValueError(
                "Exchange settings are missing. Set PFM_EXCHANGE__PRIMARY_SMTP_ADDRESS, "
                "PFM_EXCHANGE__USERNAME and PFM_EXCHANGE__PASSWORD.",
            )
        path = start_path or settings.exchange.start_path
        console = self._console
        created_at = datetime.now(tz=UTC)

        console.print(
            f"[bold blue]Export starting[/bold blue] (dry_run={dry_run}, start_path={path})",
        )
        console.print(f"  [dim]Archive:[/dim] {settings.archive.archive_path}")

        settings.archive.reports_dir.mkdir(parents=True, exist_ok=True)

        archive = self._open_archive(dry_run=dry_run)
        try:
            with console.status("[bold green]Connecting to Exchange...[/bold green]"):
                start = self._resolve_source(settings.exchange, path)
            console.print(f"[green]✔[/green] Resolved start folder {path}")

            report = TransferReport()
            aborted: FolderCreateError | None = None
            progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=console,
                transient=True,
            )
            with progress:
                task = progress.add_task("[cyan]Exporting folders...", total=None)

                def _on_record(record: TransferRecord) -> None:
                    """Advance progress for each finished folder."""
                    progress.update(
                        task,
                        advance=1,
                        description=f"[cyan]{record.folder_path}",
                    )

                walker = MirrorWalker(
                    archive=archive,
                    transport=ArchiveItemTransport(archive=archive),
                    report=report,
                    abort_on_folder_error=settings.export.abort_on_folder_error,
                    on_record=_on_record,
                )
                try:
                    mirror_children(
                        walker,
                        start,
                        archive.root_folder(),
                        path,
                        dry_run=dry_run,
                    )
                except FolderCreateError as exc:
                    aborted = exc

            summary = self._write_outputs(
                report=report,
                archive=archive,
                created_at=created_at,
                start_path=path,
                dry_run=dry_run,
                aborted=aborted is not None,
            )
        finally:
            archive.close()

        self._print_summary(summary)
        if aborted is not None:
            raise aborted
        return summary

    def _open_archive(self, *, dry_run: bool) -> ArchiveDb:
        """Open the archive for a run.

        A dry run never writes to the archive file: an initialized archive is
        opened read-only, anything else is replaced by an empty in-memory one.
        """
        archive_settings = self._s.archive
        archive_path = archive_settings.archive_path
        root_folder_name = archive_settings.root_folder_name

        if not dry_run:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            archive = ArchiveDb(archive_path=archive_path, root_folder_name=root_folder_name)
            archive.init_schema()
            return archive

        if archive_path.exists():
            archive = ArchiveDb(
                archive_path=archive_path,
                root_folder_name=root_folder_name,
                read_only=True,
            )
            if archive.is_initialized():
                return archive
            archive.close()
            logger.info("Archive %s is not initialized; dry run uses an empty one", archive_path)

        archive = ArchiveDb(archive_path=Path(":memory:"), root_folder_name=root_folder_name)
        archive.init_schema()
        return archive

    def _write_outputs(
        self,
        *,
        report: TransferReport,
        archive: ArchiveDb,
        created_at: datetime,
        start_path: str,
        dry_run: bool,
        aborted: bool,
    ) -> ExportSummary:
        """Write the CSV report and JSON summary for a finished walk."""
        report_path = default_report_path(self._s.archive.reports_dir, created_at=created_at)
        rows = write_report_csv(report, report_path)
        logger.info("Wrote %d report rows to %s", rows, report_path)

        totals = report.totals()
        summary = ExportSummary(
            created_at=created_at,
            archive_path=str(archive.archive_path),
            report_path=str(report_path),
            start_path=start_path,
            dry_run=dry_run,
            aborted=aborted,
            folders=totals.folders,
            source_items=totals.source_items,
            exported_items=totals.exported_items,
            failed_items=totals.failed_items,
            unknown_count_folders=totals.unknown_count_folders,
            orphaned_items=archive.count_orphaned_items(),
        )
        summary_path = report_path.with_suffix(".json")
        summary_path.write_text(summary.model_dump_json(indent=2), encoding="utf-8")
        return summary

    def _print_summary(self, summary: ExportSummary) -> None:
        console = self._console
        if summary.aborted:
            console.print("\n[bold red]Export aborted on a folder error.[/bold red]")
        else:
            console.print("\n[bold green]Export finished![/bold green]")
        console.print(f"  [dim]folders:[/dim] [bold]{summary.folders}[/bold]")
        console.print(f"  [dim]source items:[/dim] [bold]{summary.source_items}[/bold]")
        console.print(f"  [dim]exported:[/dim] [bold]{summary.exported_items}[/bold]")
        console.print(f"  [dim]failed:[/dim] [bold]{summary.failed_items}[/bold]")
        if summary.unknown_count_folders:
            console.print(
                f"  [yellow]⚠[/yellow] {summary.unknown_count_folders} folder(s) "
                "could not be counted",
            )
        if summary.orphaned_items:
            console.print(
                f"  [yellow]⚠[/yellow] {summary.orphaned_items} staged duplicate(s) "
                "were never relocated",
            )
        console.print(f"  [dim]report:[/dim] {summary.report_path}")
