"""Ledger backends: where named tabular stores actually live."""

from __future__ import annotations

import copy
import json
import logging
import os
from typing import TYPE_CHECKING, Any, Protocol

from civicsim.errors import LedgerError
from civicsim.models.ledger import StoreSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

log = logging.getLogger(__name__)


class LedgerBackend(Protocol):
    """Storage contract the adapter commits to. Rows are 0-based, header excluded."""

    def read(self, store: str) -> StoreSnapshot: ...

    def create(self, store: str, header: list[str]) -> None: ...

    def write_cells(self, store: str, cells: list[tuple[int, str, Any]]) -> None: ...

    def append_rows(self, store: str, rows: list[list[Any]]) -> None: ...


class _TableBackend:
    """Shared table logic; subclasses only load and save whole tables."""

    def __init__(self) -> None:
        self.reads = 0

    def _load(self, store: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def _save(self, store: str, table: dict[str, Any]) -> None:
        raise NotImplementedError

    def _require(self, store: str) -> dict[str, Any]:
        table = self._load(store)
        if table is None:
            raise LedgerError(f"store {store!r} does not exist")
        return table

    def read(self, store: str) -> StoreSnapshot:
        self.reads += 1
        table = self._load(store)
        if table is None:
            return StoreSnapshot(store=store, exists=False)
        return StoreSnapshot(store=store, header=list(table["header"]), rows=copy.deepcopy(table["rows"]))

    def create(self, store: str, header: list[str]) -> None:
        if self._load(store) is not None:
            log.debug("Store %s already exists; create skipped", store)
            return
        self._save(store, {"header": list(header), "rows": []})

    def write_cells(self, store: str, cells: list[tuple[int, str, Any]]) -> None:
        table = self._require(store)
        header: list[str] = table["header"]
        rows: list[list[Any]] = table["rows"]
        for row, column, value in cells:
            if column not in header:
                raise LedgerError(f"store {store!r} has no column {column!r}")
            if not 0 <= row < len(rows):
                raise LedgerError(f"store {store!r} has no row {row}")
            col = header.index(column)
            target = rows[row]
            if len(target) <= col:
                target.extend([""] * (col + 1 - len(target)))
            target[col] = value
        self._save(store, table)

    def append_rows(self, store: str, rows: list[list[Any]]) -> None:
        table = self._require(store)
        width = len(table["header"])
        for values in rows:
            padded = list(values) + [""] * max(0, width - len(values))
            table["rows"].append(padded)
        self._save(store, table)


class InMemoryBackend(_TableBackend):
    """Dict-backed stores. Used by tests and to replay archived cycle inputs."""

    def __init__(self, stores: dict[str, tuple[list[str], list[list[Any]]]] | None = None) -> None:
        super().__init__()
        self._tables: dict[str, dict[str, Any]] = {}
        for name, (header, rows) in (stores or {}).items():
            self._tables[name] = {"header": list(header), "rows": [list(r) for r in rows]}

    @classmethod
    def from_snapshots(cls, snapshots: Iterable[StoreSnapshot]) -> InMemoryBackend:
        return cls({s.store: (s.header, s.rows) for s in snapshots if s.exists})

    def _load(self, store: str) -> dict[str, Any] | None:
        return self._tables.get(store)

    def _save(self, store: str, table: dict[str, Any]) -> None:
        self._tables[store] = table

    def store_names(self) -> list[str]:
        return sorted(self._tables)


class JsonDirectoryBackend(_TableBackend):
    """One ``<Store>.json`` file per store: ``{"header": [...], "rows": [[...], ...]}``."""

    def __init__(self, root: Path, *, create: bool = False) -> None:
        super().__init__()
        if create:
            root.mkdir(parents=True, exist_ok=True)
        if not root.is_dir():
            raise LedgerError(f"ledger directory not found: {root}")
        self.root = root

    def _path(self, store: str) -> Path:
        return self.root / f"{store}.json"

    def _load(self, store: str) -> dict[str, Any] | None:
        path = self._path(store)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                table = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise LedgerError(f"cannot read store {store!r}: {exc}") from exc
        if not isinstance(table, dict) or "header" not in table:
            raise LedgerError(f"store {store!r} is not a ledger table")
        table.setdefault("rows", [])
        return table

    def _save(self, store: str, table: dict[str, Any]) -> None:
        path = self._path(store)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w") as f:
            json.dump(table, f, indent=1, ensure_ascii=False)
        os.replace(tmp, path)
