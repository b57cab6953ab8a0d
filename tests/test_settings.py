"""Tests for settings validation and path resolution."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from public_folder_migration.config.settings import ArchiveSettings, ExchangeSettings


def _exchange(**kwargs: object) -> ExchangeSettings:
    values: dict[str, object] = {
        "primary_smtp_address": "pf-admin@example.com",
        "username": "EXAMPLE\\pf-admin",
        "password": "secret",
    }
    values.update(kwargs)
    return ExchangeSettings(**values)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("\\", "\\"),
        ("", "\\"),
        ("Sales/Archive/", "\\Sales\\Archive"),
        ("\\\\Sales\\ Archive \\", "\\Sales\\Archive"),
    ],
)
def test_start_path_normalized(raw: str, expected: str) -> None:
    """Start paths are normalized to a single leading backslash."""
    assert _exchange(start_path=raw).start_path == expected


def test_blank_server_means_autodiscover() -> None:
    """A blank server is treated as unset."""
    assert _exchange(server="  ").server is None
    assert _exchange(server="mail.example.com").server == "mail.example.com"


def test_password_hidden_and_address_validated() -> None:
    """Passwords stay out of repr; malformed addresses are rejected."""
    assert "secret" not in repr(_exchange())
    with pytest.raises(ValidationError):
        _exchange(primary_smtp_address="not-an-address")


def test_archive_paths_resolve_under_root(tmp_path: Path) -> None:
    """Archive and reports paths default beneath root_dir."""
    settings = ArchiveSettings(root_dir=tmp_path)
    assert settings.archive_path == (tmp_path / "archive.sqlite3").resolve()
    assert settings.reports_dir == (tmp_path / "reports").resolve()

    override = ArchiveSettings(root_dir=tmp_path, archive_path_override=tmp_path / "x.db")
    assert override.archive_path == (tmp_path / "x.db").resolve()
