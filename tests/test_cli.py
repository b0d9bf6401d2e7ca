"""Smoke tests for the command line entry point."""

from pathlib import Path

import pytest

from topicsnap.__main__ import main
from topicsnap.store import SnapshotStore

DEFINITIONS = """
topic:
  topics_id: 1
  name: cli
  start_date: 2020-01-01
  end_date: 2020-02-01
"""


class TestMain:
    def test_load_snapshot_export(self, tmp_path: Path, capsys) -> None:
        db = tmp_path / "cli.sqlite3"
        defs = tmp_path / "topic.yaml"
        defs.write_text(DEFINITIONS)

        main(["--db", str(db), "load-definitions", str(defs)])
        main(["--db", str(db), "snapshot", "--topic-id", "1", "--period", "overall"])

        store = SnapshotStore(db_path=db)
        assert store.require_snapshot(1).state == "completed"

        main(["--db", str(db), "export-media", "--timespan-id", "1", "--out", "-"])
        assert capsys.readouterr().out.startswith("name,url,media_id")

    def test_errors_exit_non_zero(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["--db", str(tmp_path / "cli.sqlite3"), "snapshot", "--topic-id", "9"])
        assert excinfo.value.code == 1

    def test_no_command(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit):
            main(["--db", str(tmp_path / "cli.sqlite3")])
