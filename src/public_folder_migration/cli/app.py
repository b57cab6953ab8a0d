"""Typer CLI for the public folder → archive export tool."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from exchangelib.errors import EWSError

from public_folder_migration.config.settings import AppSettings, load_settings
from public_folder_migration.pipeline.errors import FolderCreateError, FolderNotFoundError
from public_folder_migration.pipeline.orchestrator import ExportOrchestrator
from public_folder_migration.storage.archive_db import ArchiveDb
from public_folder_migration.utils.logging import configure_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Export an Exchange public folder hierarchy into a local archive file.",
)


def load_app_settings(*, env_file: Path | None) -> AppSettings:
    """Load application settings from the environment and optional .env file.

    Args:
        env_file: Optional path to a .env file to load in addition to environment variables.

    Returns:
        Validated application settings.
    """
    return load_settings(env_file=env_file)


@app.command("export")
def export_cmd(
    *,
    env_file: Path | None = typer.Option(
        default=None,
        exists=True,
        dir_okay=False,
        help="Optional path to a .env file (in addition to environment variables).",
    ),
    dry_run: bool = typer.Option(
        default=False,
        help="Walk and report the source hierarchy without writing to the archive.",
    ),
    start_path: str | None = typer.Option(
        default=None,
        help=r"Public folder path to export from, e.g. '\Sales\Archive' (default: configured).",
    ),
) -> None:
    """Export public folders into the archive and write a CSV report.

    Args:
        env_file: Optional path to a .env file to load configuration from.
        dry_run: Whether to leave the archive untouched.
        start_path: Override of the configured start path.
    """
    settings = load_app_settings(env_file=env_file)
    configure_logging(settings=settings.logging)

    if settings.exchange is None:
        typer.echo(
            "Missing Exchange settings. Set PFM_EXCHANGE__PRIMARY_SMTP_ADDRESS, "
            "PFM_EXCHANGE__USERNAME and PFM_EXCHANGE__PASSWORD.",
            err=True,
        )
        raise typer.Exit(code=2)

    orchestrator = ExportOrchestrator(settings=settings)
    try:
        orchestrator.run(dry_run=dry_run, start_path=start_path)
    except FolderNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from None
    except FolderCreateError as exc:
        logger.error("Export aborted: %s", exc)
        raise typer.Exit(code=1) from None
    except EWSError as exc:
        logger.exception("Exchange request failed")
        typer.echo(f"Exchange request failed: {exc}", err=True)
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        raise typer.Exit(code=130) from None


@app.command("inspect")
def inspect_cmd(
    *,
    env_file: Path | None = typer.Option(
        default=None,
        exists=True,
        dir_okay=False,
        help="Optional path to a .env file (in addition to environment variables).",
    ),
) -> None:
    """Print the archive folder tree with folder kinds and item counts.

    Args:
        env_file: Optional path to a .env file to load configuration from.
    """
    settings = load_app_settings(env_file=env_file)
    archive_path = settings.archive.archive_path
    if not archive_path.exists():
        typer.echo(f"Archive not found: {archive_path}", err=True)
        raise typer.Exit(code=2)

    archive = ArchiveDb(
        archive_path=archive_path,
        root_folder_name=settings.archive.root_folder_name,
    )
    try:
        archive.init_schema()
        root = archive.root_folder()
        typer.echo(f"{root.name} ({archive.count_items(folder_id=root.id)} items)")
        for entry in archive.iter_folders():
            folder = entry.folder
            indent = "  " * entry.depth
            count = archive.count_items(folder_id=folder.id)
            typer.echo(f"{indent}{folder.name} [{folder.kind.value}] ({count} items)")
        orphaned = archive.count_orphaned_items()
    finally:
        archive.close()

    if orphaned:
        typer.echo(f"Orphaned staged items: {orphaned}")
