"""Records exchanged with the ledger adapter."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from civicsim.models.enums import IntentKind


class StoreSnapshot(BaseModel):
    """All rows of one named store, as returned by ``get_all_rows``."""

    store: str
    exists: bool = True
    header: list[str] = Field(default_factory=list)
    rows: list[list[Any]] = Field(default_factory=list)

    def column(self, name: str) -> int:
        """Index of *name* in the header, or -1."""
        try:
            return self.header.index(name)
        except ValueError:
            return -1

    def records(self) -> list[dict[str, Any]]:
        return [dict(zip(self.header, row, strict=False)) for row in self.rows]


class WriteIntent(BaseModel):
    """One queued write. In dry-run and replay these are all that is produced."""

    store: str
    kind: IntentKind
    row: int | None = Field(default=None, description="0-based data row for cell writes")
    column: str | None = None
    value: Any = None
    values: list[Any] | None = Field(default=None, description="Row values for appends, header for creates")

    model_config = ConfigDict(frozen=True)


class FlushStats(BaseModel):
    """Result of committing the queued writes. Flush never raises; failures land in ``errors``."""

    writes: int = 0
    appends: int = 0
    creates: int = 0
    discarded: int = Field(default=0, description="Intents dropped because the adapter is in dry-run")
    errors: list[str] = Field(default_factory=list)


class IntentSummary(BaseModel):
    total: int = 0
    by_kind: dict[str, int] = Field(default_factory=dict)
    by_store: dict[str, int] = Field(default_factory=dict)
    stores: list[str] = Field(default_factory=list)
