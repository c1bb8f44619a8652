"""Tests for the CLI query interface for the audit trail."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from bidding.audit.cli import (
    build_parser,
    format_json,
    format_table,
    main,
    parse_last_duration,
)
from bidding.audit.logger import AuditLogger
from bidding.audit.store import close_audit_db, init_audit_db


class TestBuildParser:
    """Tests for argument parser construction."""

    def test_accepts_all_arguments(self) -> None:
        parser = build_parser()
        args = parser.parse_args([
            "--run",
            "run-1",
            "--target",
            "site-rome",
            "--keyword",
            "rome food tour",
            "--from-date",
            "2026-01-01",
            "--to-date",
            "2026-02-01",
            "--event-type",
            "group_emitted",
            "--last",
            "7d",
            "--format",
            "json",
            "--limit",
            "100",
            "--db",
            "/tmp/test.db",
        ])
        assert args.run_id == "run-1"
        assert args.target == "site-rome"
        assert args.keyword == "rome food tour"
        assert args.event_type == "group_emitted"
        assert args.output_format == "json"
        assert args.limit == 100
        assert args.db == "/tmp/test.db"

    def test_default_values(self) -> None:
        args = build_parser().parse_args([])
        assert args.run_id is None
        assert args.target is None
        assert args.output_format == "table"
        assert args.limit == 50

    def test_rejects_unknown_event_type(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--event-type", "email_sent"])


class TestParseLastDuration:
    """Tests for parse_last_duration conversion."""

    NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=UTC)

    @pytest.mark.parametrize(
        ("last", "expected"),
        [
            ("7d", "2026-03-03T12:00:00Z"),
            ("24h", "2026-03-09T12:00:00Z"),
            ("30d", "2026-02-08T12:00:00Z"),
        ],
        ids=["7d", "24h", "30d"],
    )
    def test_converts_duration(self, last: str, expected: str) -> None:
        assert parse_last_duration(last, now=self.NOW) == expected

    @pytest.mark.parametrize("last", ["7x", "", "d", "abcd"], ids=["unit", "empty", "short", "nan"])
    def test_raises_on_invalid_format(self, last: str) -> None:
        with pytest.raises(ValueError, match="Unrecognized duration format"):
            parse_last_duration(last)


class TestFormatters:
    """Tests for table and JSON output formatting."""

    def test_table_has_header_and_rows(self) -> None:
        results = [
            {
                "timestamp": "2026-02-19T10:00:00Z",
                "event_type": "keyword_archived",
                "target_id": None,
                "keyword": "free walking tour london",
                "platform": None,
                "reason": "low_intent_term",
            },
        ]
        output = format_table(results)
        assert "Timestamp" in output
        assert "free walking tour london" in output
        assert "low_intent_term" in output
        assert len(output.strip().split("\n")) == 3

    def test_table_truncates_long_fields(self) -> None:
        output = format_table([{"keyword": "k" * 80}])
        assert "k" * 27 + "..." in output
        assert "k" * 31 not in output

    def test_empty_results(self) -> None:
        assert format_table([]) == "No results found."

    def test_json(self) -> None:
        parsed = json.loads(format_json([{"event_type": "run_started", "run_id": "run-1"}]))
        assert parsed == [{"event_type": "run_started", "run_id": "run-1"}]


class TestMain:
    """Tests for the main() entry point."""

    def test_main_filters_by_run(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        db_path = tmp_path / "audit.db"
        conn = init_audit_db(db_path)
        AuditLogger(conn, run_id="run-1").log_run_started("full", "1200")
        AuditLogger(conn, run_id="run-2").log_run_started("dry_run", "800")
        close_audit_db(conn)

        main(["--db", str(db_path), "--run", "run-2", "--format", "json"])

        parsed = json.loads(capsys.readouterr().out)
        assert len(parsed) == 1
        assert parsed[0]["amount"] == "800"

    def test_main_creates_missing_db(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        db_path = tmp_path / "nested" / "audit.db"

        main(["--db", str(db_path), "--last", "1d"])

        assert db_path.exists()
        assert "No results found." in capsys.readouterr().out

    def test_main_summary_for_latest_run(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        db_path = tmp_path / "audit.db"
        conn = init_audit_db(db_path)
        AuditLogger(conn, run_id="run-1").log_run_started("full", "1200")
        second = AuditLogger(conn, run_id="run-2")
        second.log_run_started("dry_run", "800")
        second.log_keyword_archived("free tour", "low_intent_term")
        second.log_keyword_archived("gratis tour", "low_intent_term")
        close_audit_db(conn)

        code = main(["--db", str(db_path), "--run", "latest", "--summary", "--format", "json"])

        assert code == 0
        parsed = json.loads(capsys.readouterr().out)
        assert parsed == {
            "run_id": "run-2",
            "events": {"run_started": 1, "keyword_archived": 2},
        }

    def test_main_summary_table(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        db_path = tmp_path / "audit.db"
        conn = init_audit_db(db_path)
        AuditLogger(conn, run_id="run-1").log_run_started("full", "1200")
        close_audit_db(conn)

        main(["--db", str(db_path), "--run", "run-1", "--summary"])

        out = capsys.readouterr().out
        assert out.startswith("Run run-1")
        assert "run_started  1" in out

    def test_main_summary_needs_run(self, tmp_path: Path) -> None:
        assert main(["--db", str(tmp_path / "audit.db"), "--summary"]) == 2

    def test_main_latest_with_no_runs(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["--db", str(tmp_path / "audit.db"), "--run", "latest"]) == 0
        assert "No runs recorded." in capsys.readouterr().out

    def test_main_rejects_bad_duration(self, tmp_path: Path) -> None:
        assert main(["--db", str(tmp_path / "audit.db"), "--last", "7w"]) == 2
