"""Starter ledger: council offices, demographics and the initial initiative slate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from civicsim.ledger import schema

if TYPE_CHECKING:
    from civicsim.ledger.backends import LedgerBackend

log = logging.getLogger(__name__)

SEED_INITIATIVES: list[list[Any]] = [
    ["INIT-001", "West Oakland Stabilization Fund", "vote", "active", "$28M", "6-3", 78,
     "5-4 OPP — needs 1 swing", "OPP", "CRC", "Ramon Vega", "Leonard Tran", "lean-yes",
     "", "", "West Oakland", "", ""],
    ["INIT-002", "Oakland Alternative Response Initiative", "vote", "proposed", "$12.5M", "5-4", 82,
     "Uncertain — true toss-up", "OPP", "CRC", "Ramon Vega", "Leonard Tran", "toss-up",
     "", "", "", "", ""],
    ["INIT-003", "Fruitvale Transit Hub Phase II — Visioning", "visioning", "proposed", "$230M", "", 86,
     "Input phase — no vote", "OPP", "", "", "", "",
     "", "", "Fruitvale", "", ""],
    ["INIT-004", "Port of Oakland Green Modernization — Federal Grant", "grant", "proposed", "$320M", "", 89,
     "Competitive — external decision", "", "", "", "", "",
     "", "", "Jack London, West Oakland", "", ""],
    ["INIT-005", "Temescal Community Health Center", "vote", "proposed", "$45M", "5-4", 80,
     "Likely passes", "OPP", "CRC", "", "Marcus Tran", "lean-yes",
     "", "", "Temescal", "", ""],
    ["INIT-006", "Baylight District — Final Council Vote", "vote", "active", "$2.1B", "5-4", 83,
     "Likely passes with conditions", "OPP", "CRC", "Ramon Vega", "Leonard Tran", "lean-yes",
     "", "", "", "", ""],
]

SEED_OFFICES: list[list[Any]] = [
    ["MAYOR-01", "Mayor", "elected", "Citywide", "Avery Santana", "POP-00001", "active", "", "no"],
    ["COUNCIL-D1", "Councilmember District 1", "elected", "D1", "Denise Carter", "POP-00101", "active", "OPP", "yes"],
    ["COUNCIL-D2", "Councilmember District 2", "elected", "D2", "Leonard Tran", "POP-00102", "active", "IND", "yes"],
    ["COUNCIL-D3", "Council President", "elected", "D3", "Janae Rivers", "POP-00103", "active", "OPP", "yes"],
    ["COUNCIL-D4", "Councilmember District 4", "elected", "D4", "Ramon Vega", "POP-00104", "active", "IND", "yes"],
    ["COUNCIL-D5", "Councilmember District 5", "elected", "D5", "Rose Delgado", "POP-00105", "active", "OPP", "yes"],
    ["COUNCIL-D6", "Councilmember District 6", "elected", "D6", "Elliott Crane", "POP-00106", "injured", "CRC", "yes"],
    ["COUNCIL-D7", "Councilmember District 7", "elected", "D7", "Warren Ashford", "POP-00107", "active", "CRC", "yes"],
    ["COUNCIL-D8", "Councilmember District 8", "elected", "D8", "Nina Chen", "POP-00108", "active", "CRC", "yes"],
    ["COUNCIL-D9", "Councilmember At-Large", "elected", "At-Large", "Terrence Mobley", "POP-00109", "active", "OPP", "yes"],
]

SEED_DEMOGRAPHICS: list[list[Any]] = [
    ["West Oakland", 1800, 7400, 1900, 1500, 700, ""],
    ["Fruitvale", 3100, 9800, 1700, 1600, 900, ""],
    ["Temescal", 1500, 6200, 2900, 500, 1100, ""],
    ["Jack London", 900, 5200, 800, 400, 300, ""],
    ["Downtown", 1200, 8800, 1300, 900, 600, ""],
]

SEED_WORLD_CONFIG: list[list[Any]] = [[schema.CYCLE_COUNT_KEY, 77]]


def seed_ledger(backend: LedgerBackend) -> list[str]:
    """Create and fill every starter store that does not exist yet. Returns the stores created."""
    stores = [
        (schema.INITIATIVE_TRACKER, schema.INITIATIVE_HEADER, SEED_INITIATIVES),
        (schema.CIVIC_OFFICE_LEDGER, schema.OFFICE_HEADER, SEED_OFFICES),
        (schema.NEIGHBORHOOD_DEMOGRAPHICS, schema.DEMOGRAPHICS_HEADER, SEED_DEMOGRAPHICS),
        (schema.WORLD_CONFIG, schema.KEY_VALUE_HEADER, SEED_WORLD_CONFIG),
    ]
    created: list[str] = []
    for store, header, rows in stores:
        if backend.read(store).exists:
            log.info("Store %s already exists; not seeding", store)
            continue
        backend.create(store, header)
        backend.append_rows(store, rows)
        created.append(store)
        log.info("Seeded %s with %d row(s)", store, len(rows))
    return created
