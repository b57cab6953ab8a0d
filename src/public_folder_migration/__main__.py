"""Console entrypoint for `public-folder-migration`."""

from __future__ import annotations

from public_folder_migration.cli.app import app


def main() -> int:
    """Run the Typer CLI application.

    Returns:
        Process exit code.
    """
    app()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
