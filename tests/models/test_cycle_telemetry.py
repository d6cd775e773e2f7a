"""Tests for telemetry models, ErrorEntry and JSONL I/O."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from civicsim.models.enums import RunMode
from civicsim.models.telemetry import (
    STACK_EXCERPT_CHARS,
    CycleTelemetry,
    ErrorEntry,
    PhaseResult,
    append_telemetry,
    load_telemetry,
)

if TYPE_CHECKING:
    from pathlib import Path


class TestErrorEntry:
    def test_create_defaults(self) -> None:
        entry = ErrorEntry(phase="civic-initiatives")
        assert entry.phase == "civic-initiatives"
        assert entry.cycle is None
        assert entry.error_type == ""
        assert entry.message == ""
        assert entry.traceback == ""
        assert entry.timestamp is not None

    def test_from_exception(self) -> None:
        try:
            raise ValueError("bad vote requirement")
        except ValueError as exc:
            entry = ErrorEntry.from_exception("civic-initiatives", exc, cycle=81)

        assert entry.phase == "civic-initiatives"
        assert entry.cycle == 81
        assert entry.error_type == "ValueError"
        assert entry.message == "bad vote requirement"
        assert "ValueError: bad vote requirement" in entry.traceback

    def test_to_row_truncates_stack(self) -> None:
        entry = ErrorEntry(phase="initiative-ripples", cycle=5, error_type="KeyError", traceback="x" * 2000)
        row = entry.to_row()
        assert row[1:5] == [5, "initiative-ripples", "KeyError", ""]
        assert len(row[5]) == STACK_EXCERPT_CHARS

    def test_to_row_without_cycle(self) -> None:
        assert ErrorEntry(phase="p").to_row()[1] == ""


class TestTelemetryJsonl:
    def test_append_and_load(self, tmp_path: Path) -> None:
        path = tmp_path / "telemetry.jsonl"
        append_telemetry(path, CycleTelemetry(cycle=1, seed=10))
        append_telemetry(
            path,
            CycleTelemetry(
                cycle=2,
                mode=RunMode.NORMAL,
                initiatives_resolved=2,
                phases=[PhaseResult(phase="civic-initiatives", duration_seconds=0.1)],
            ),
        )

        loaded = load_telemetry(path)
        assert [t.cycle for t in loaded] == [1, 2]
        assert loaded[0].seed == 10
        assert loaded[1].initiatives_resolved == 2
        assert loaded[1].phases[0].phase == "civic-initiatives"

    def test_load_last_n(self, tmp_path: Path) -> None:
        path = tmp_path / "telemetry.jsonl"
        for cycle in range(5):
            append_telemetry(path, CycleTelemetry(cycle=cycle))
        assert [t.cycle for t in load_telemetry(path, last_n=2)] == [3, 4]

    def test_load_missing_file(self, tmp_path: Path) -> None:
        assert load_telemetry(tmp_path / "absent.jsonl") == []

    def test_old_entries_pruned(self, tmp_path: Path) -> None:
        path = tmp_path / "telemetry.jsonl"
        old = CycleTelemetry(cycle=1, started_at=datetime.now(UTC) - timedelta(days=60))
        path.write_text(old.model_dump_json() + "\n")

        append_telemetry(path, CycleTelemetry(cycle=2))

        lines = path.read_text().strip().splitlines()
        assert [json.loads(line)["cycle"] for line in lines] == [2]

    def test_unreadable_lines_kept_but_skipped_on_load(self, tmp_path: Path) -> None:
        path = tmp_path / "telemetry.jsonl"
        path.write_text("not json\n")

        append_telemetry(path, CycleTelemetry(cycle=3))

        assert path.read_text().splitlines()[0] == "not json"
        assert [t.cycle for t in load_telemetry(path)] == [3]
