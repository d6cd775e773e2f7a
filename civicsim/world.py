"""Load world state into the cycle context, and queue it back at the end."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from civicsim.errors import KernelError
from civicsim.ledger import schema
from civicsim.models.world import WorldState

if TYPE_CHECKING:
    from civicsim.context import CycleContext
    from civicsim.ledger.adapter import LedgerAdapter

log = logging.getLogger(__name__)

_PRECISION = 6


def read_cycle_count(ledger: LedgerAdapter) -> int:
    values = schema.key_value_rows(ledger.get_all_rows(schema.WORLD_CONFIG))
    raw = values.get(schema.CYCLE_COUNT_KEY, (0, "0"))[1]
    try:
        return int(float(raw))
    except ValueError:
        log.warning("World_Config %s is not a number: %r", schema.CYCLE_COUNT_KEY, raw)
        return 0


def load_world_state(ctx: CycleContext) -> dict[str, Any]:
    """Populate ``ctx.world`` from the dynamics, demographics and ripple stores."""
    ledger = ctx.ledger
    ctx.world = WorldState(
        city=schema.load_city_scalars(ledger.get_all_rows(schema.CITY_DYNAMICS)),
        neighborhoods=schema.load_neighborhood_scalars(ledger.get_all_rows(schema.NEIGHBORHOOD_DYNAMICS)),
        demographics=schema.load_demographics(ledger.get_all_rows(schema.NEIGHBORHOOD_DEMOGRAPHICS)),
        ripples=schema.load_active_ripples(ledger.get_all_rows(schema.INITIATIVE_RIPPLES)),
        cycle_count=read_cycle_count(ledger),
        loaded=True,
    )
    log.info(
        "World state loaded: sentiment %.3f, %d neighborhood(s), %d active ripple(s)",
        ctx.world.sentiment, len(ctx.world.demographics), len(ctx.world.ripples),
    )
    return {
        "neighborhoods": len(ctx.world.demographics),
        "active_ripples": len(ctx.world.ripples),
        "cycle_count": ctx.world.cycle_count,
    }


def _differs(raw: Any, value: float) -> bool:
    try:
        return round(float(raw), _PRECISION) != round(value, _PRECISION)
    except (TypeError, ValueError):
        return True


def _upsert_key_values(ledger: LedgerAdapter, store: str, values: dict[str, Any]) -> int:
    snapshot = ledger.get_all_rows(store)
    existing = schema.key_value_rows(snapshot) if snapshot.exists else {}
    written = 0
    for key, value in values.items():
        if key in existing:
            row, raw = existing[key]
            if isinstance(value, float) and not _differs(raw, value):
                continue
            if not isinstance(value, float) and str(raw) == str(value):
                continue
            ledger.queue_cell_write(store, row, "Value", value)
        else:
            ledger.queue_append_row(store, [key, value], header=schema.KEY_VALUE_HEADER)
        written += 1
    return written


def persist_world_state(ctx: CycleContext) -> dict[str, Any]:
    """Queue changed city and neighborhood scalars, and advance the cycle counter.

    Raises ``KernelError`` when the world was never loaded this cycle, so
    defaults are not written over the stored values.
    """
    if not ctx.world.loaded:
        raise KernelError(f"World state for cycle {ctx.cycle} was never loaded; nothing persisted")
    ledger = ctx.ledger
    city_values: dict[str, Any] = {
        column: round(ctx.world.city.get(key, 0.0), _PRECISION)
        for key, column in schema.SCALAR_COLUMNS.items()
    }
    city_written = _upsert_key_values(ledger, schema.CITY_DYNAMICS, city_values)

    hood_written = 0
    snapshot = ledger.get_all_rows(schema.NEIGHBORHOOD_DYNAMICS)
    records = snapshot.records() if snapshot.exists else []
    rows_by_name = {str(rec.get("Neighborhood", "")).strip(): i for i, rec in enumerate(records)}
    for name in sorted(ctx.world.neighborhoods):
        scalars = ctx.world.neighborhoods[name]
        if name in rows_by_name:
            row = rows_by_name[name]
            current = records[row]
            for key, column in schema.SCALAR_COLUMNS.items():
                value = round(scalars.get(key, 0.0), _PRECISION)
                if _differs(current.get(column), value):
                    ledger.queue_cell_write(schema.NEIGHBORHOOD_DYNAMICS, row, column, value)
                    hood_written += 1
        else:
            values = [name, *(round(scalars.get(k, 0.0), _PRECISION) for k in schema.SCALAR_COLUMNS)]
            ledger.queue_append_row(schema.NEIGHBORHOOD_DYNAMICS, values, header=schema.NEIGHBORHOOD_DYNAMICS_HEADER)
            hood_written += 1

    config_written = 0
    if ctx.cycle > ctx.world.cycle_count:
        config_written = _upsert_key_values(ledger, schema.WORLD_CONFIG, {schema.CYCLE_COUNT_KEY: ctx.cycle})
        ctx.world.cycle_count = ctx.cycle

    return {"city": city_written, "neighborhoods": hood_written, "config": config_written}
