"""Ledger adapter: cached reads, queued writes, one flush per cycle.

Phases never touch a backend directly. Reads are fetched once per cycle and
served from a cache that also reflects writes queued earlier in the cycle.
Writes are recorded as intents and committed together by ``flush``; in
dry-run the intents are kept for inspection and nothing is committed.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import Counter
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from civicsim.ledger.schema import VOLATILE_STORES
from civicsim.models.enums import IntentKind
from civicsim.models.ledger import FlushStats, IntentSummary, StoreSnapshot, WriteIntent

if TYPE_CHECKING:
    from civicsim.ledger.backends import LedgerBackend

log = logging.getLogger(__name__)


def _cell_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class LedgerAdapter:
    def __init__(self, backend: LedgerBackend, *, dry_run: bool = False) -> None:
        self.backend = backend
        self.dry_run = dry_run
        self.intents: list[WriteIntent] = []
        self._pending: list[WriteIntent] = []
        self._cache: dict[str, StoreSnapshot] = {}
        self._originals: dict[str, StoreSnapshot] = {}

    # -- reads --------------------------------------------------------------

    def get_all_rows(self, store: str) -> StoreSnapshot:
        """Snapshot of *store*; fetched on first use, then served from the cycle cache."""
        if store not in self._cache:
            snapshot = self.backend.read(store)
            self._originals[store] = snapshot.model_copy(deep=True)
            self._cache[store] = snapshot
        return self._cache[store]

    def read_snapshots(self) -> list[StoreSnapshot]:
        """Every store read this cycle, as it was before any queued write."""
        return [s.model_copy(deep=True) for s in self._originals.values()]

    # -- queued writes ------------------------------------------------------

    def _queue(self, intent: WriteIntent) -> None:
        self.intents.append(intent)
        self._pending.append(intent)

    def queue_create_store(self, store: str, header: list[str]) -> None:
        snapshot = self.get_all_rows(store)
        if snapshot.exists:
            return
        self._queue(WriteIntent(store=store, kind=IntentKind.CREATE, values=list(header)))
        self._cache[store] = StoreSnapshot(store=store, exists=True, header=list(header), rows=[])

    def queue_cell_write(self, store: str, row: int, column: str, value: Any) -> None:
        value = _cell_value(value)
        self._queue(WriteIntent(store=store, kind=IntentKind.CELL, row=row, column=column, value=value))
        cached = self._cache.get(store)
        if cached is None:
            return
        col = cached.column(column)
        if col >= 0 and 0 <= row < len(cached.rows):
            target = cached.rows[row]
            if len(target) <= col:
                target.extend([""] * (col + 1 - len(target)))
            target[col] = value

    def queue_append_row(self, store: str, values: list[Any], *, header: list[str] | None = None) -> int | None:
        """Queue a row append. With *header*, a missing store is created first.

        Returns the row index the new row will occupy, when the store is cached.
        """
        if header is not None:
            self.queue_create_store(store, header)
        values = [_cell_value(v) for v in values]
        self._queue(WriteIntent(store=store, kind=IntentKind.APPEND, values=values))
        cached = self._cache.get(store)
        if cached is None or not cached.exists:
            return None
        cached.rows.append(list(values))
        return len(cached.rows) - 1

    @property
    def pending(self) -> int:
        return len(self._pending)

    # -- flush ----------------------------------------------------------------

    def flush(self) -> FlushStats:
        """Commit queued writes in order. Never raises; failures are collected in ``errors``."""
        pending, self._pending = self._pending, []
        stats = FlushStats()
        if self.dry_run:
            stats.discarded = len(pending)
            log.info("Dry-run flush: %d intent(s) recorded, nothing committed", len(pending))
            return stats

        for store, kind, batch in _batches(pending):
            try:
                if kind == IntentKind.CREATE:
                    self.backend.create(store, list(batch[0].values or []))
                    stats.creates += 1
                elif kind == IntentKind.CELL:
                    self.backend.write_cells(store, [(i.row, i.column, i.value) for i in batch])
                    stats.writes += len(batch)
                else:
                    self.backend.append_rows(store, [list(i.values or []) for i in batch])
                    stats.appends += len(batch)
            except Exception as exc:
                log.exception("Flush failed for %s (%s x%d)", store, kind, len(batch))
                stats.errors.append(f"{store} {kind}: {exc}")

        log.info(
            "Flush complete: %d cell write(s), %d append(s), %d error(s)",
            stats.writes, stats.appends, len(stats.errors),
        )
        return stats

    # -- introspection --------------------------------------------------------

    def intent_summary(self) -> IntentSummary:
        by_kind = Counter(str(i.kind) for i in self.intents)
        by_store = Counter(i.store for i in self.intents)
        return IntentSummary(
            total=len(self.intents),
            by_kind=dict(sorted(by_kind.items())),
            by_store=dict(sorted(by_store.items())),
            stores=sorted(by_store),
        )

    def fingerprint(self) -> str:
        """sha256 over the canonical form of every simulation intent, in queue order."""
        canonical = [
            i.model_dump(mode="json")
            for i in self.intents
            if i.store not in VOLATILE_STORES
        ]
        blob = json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(blob.encode()).hexdigest()


def _batches(intents: list[WriteIntent]) -> list[tuple[str, IntentKind, list[WriteIntent]]]:
    """Group consecutive intents sharing a store and kind, preserving order."""
    batches: list[tuple[str, IntentKind, list[WriteIntent]]] = []
    for intent in intents:
        if batches and batches[-1][0] == intent.store and batches[-1][1] == intent.kind and intent.kind != IntentKind.CREATE:
            batches[-1][2].append(intent)
        else:
            batches.append((intent.store, intent.kind, [intent]))
    return batches
