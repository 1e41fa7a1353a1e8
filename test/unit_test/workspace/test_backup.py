from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from strata_agent.workspace.backup import backup_name, create_backup

_NOW = datetime(2026, 1, 2, 3, 4, 5, 678_000, tzinfo=timezone.utc)


def test_backup_name_is_filesystem_safe() -> None:
    assert backup_name(_NOW) == "2026-01-02T03-04-05-678Z"
    assert backup_name(_NOW, "before-upgrade") == "2026-01-02T03-04-05-678Z_before-upgrade"


class TestCreateBackup:
    def test_copies_top_level_entries_except_excluded(self, workspace: Path) -> None:
        (workspace / "src").mkdir()
        (workspace / "src" / "a.ts").write_text("a", encoding="utf-8")
        (workspace / "package.json").write_text("{}", encoding="utf-8")
        for excluded in ("node_modules", ".git", "dist"):
            (workspace / excluded).mkdir()

        result = create_backup(workspace, "pre", clock=lambda: _NOW)

        assert result.item_count == 2
        assert result.path == workspace / ".strata" / "backups" / "2026-01-02T03-04-05-678Z_pre"
        assert (result.path / "src" / "a.ts").read_text(encoding="utf-8") == "a"
        assert (result.path / "package.json").exists()
        assert not (result.path / "node_modules").exists()
        assert result.summary == "Snapshot created at .strata/backups/2026-01-02T03-04-05-678Z_pre (2 items)"

    def test_backup_never_copies_itself(self, workspace: Path) -> None:
        (workspace / "a.txt").write_text("1", encoding="utf-8")
        create_backup(workspace, clock=lambda: _NOW)

        second = create_backup(workspace, "again", clock=lambda: _NOW)

        assert second.item_count == 1
        assert not (second.path / ".strata").exists()
