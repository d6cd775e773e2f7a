"""Tests for the ledger storage backends."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from civicsim.errors import LedgerError
from civicsim.ledger.backends import InMemoryBackend, JsonDirectoryBackend
from civicsim.models.ledger import StoreSnapshot

if TYPE_CHECKING:
    from pathlib import Path


class TestJsonDirectoryBackend:
    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(LedgerError, match="not found"):
            JsonDirectoryBackend(tmp_path / "absent")

    def test_create_makes_directory(self, tmp_path: Path) -> None:
        backend = JsonDirectoryBackend(tmp_path / "ledger", create=True)
        assert backend.root.is_dir()

    def test_round_trip(self, tmp_path: Path) -> None:
        backend = JsonDirectoryBackend(tmp_path)
        backend.create("Store", ["A", "B", "C"])
        backend.append_rows("Store", [["x", 1]])
        backend.write_cells("Store", [(0, "C", "z")])

        snapshot = backend.read("Store")
        assert snapshot.exists
        assert snapshot.header == ["A", "B", "C"]
        assert snapshot.rows == [["x", 1, "z"]]
        on_disk = json.loads((tmp_path / "Store.json").read_text())
        assert on_disk["rows"] == [["x", 1, "z"]]
        assert not (tmp_path / "Store.json.tmp").exists()

    def test_create_existing_is_noop(self, tmp_path: Path) -> None:
        backend = JsonDirectoryBackend(tmp_path)
        backend.create("Store", ["A"])
        backend.append_rows("Store", [["kept"]])
        backend.create("Store", ["Other"])
        assert backend.read("Store").rows == [["kept"]]

    def test_missing_store_reads_as_absent(self, tmp_path: Path) -> None:
        assert not JsonDirectoryBackend(tmp_path).read("Store").exists

    def test_corrupt_store_raises(self, tmp_path: Path) -> None:
        (tmp_path / "Store.json").write_text("{not json")
        with pytest.raises(LedgerError, match="cannot read"):
            JsonDirectoryBackend(tmp_path).read("Store")

    def test_write_to_missing_row_raises(self, tmp_path: Path) -> None:
        backend = JsonDirectoryBackend(tmp_path)
        backend.create("Store", ["A"])
        with pytest.raises(LedgerError, match="no row"):
            backend.write_cells("Store", [(3, "A", 1)])


class TestInMemoryBackend:
    def test_from_snapshots_skips_absent_stores(self) -> None:
        backend = InMemoryBackend.from_snapshots([
            StoreSnapshot(store="Present", header=["A"], rows=[[1]]),
            StoreSnapshot(store="Absent", exists=False),
        ])
        assert backend.store_names() == ["Present"]
        assert not backend.read("Absent").exists

    def test_reads_are_copies(self) -> None:
        backend = InMemoryBackend({"Store": (["A"], [[1]])})
        backend.read("Store").rows[0][0] = 99
        assert backend.read("Store").rows == [[1]]

    def test_append_pads_to_header(self) -> None:
        backend = InMemoryBackend({"Store": (["A", "B"], [])})
        backend.append_rows("Store", [["x"]])
        assert backend.read("Store").rows == [["x", ""]]

    def test_append_to_missing_store_raises(self) -> None:
        with pytest.raises(LedgerError, match="does not exist"):
            InMemoryBackend().append_rows("Store", [["x"]])
