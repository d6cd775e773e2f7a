"""Store names, canonical headers and row <-> record mapping.

Ledger rows are loosely typed lists. They are turned into typed records
here, once, so the engines never index into raw rows.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from civicsim.errors import SchemaError
from civicsim.models.council import CouncilSeat, CouncilState
from civicsim.models.enums import (
    Faction,
    InitiativeStatus,
    InitiativeType,
    RippleCategory,
    RippleDirection,
    RippleStatus,
    SeatStatus,
)
from civicsim.models.initiative import Initiative
from civicsim.models.ripple import Ripple
from civicsim.models.world import SCALAR_DEFAULTS, NeighborhoodDemographics

if TYPE_CHECKING:
    from civicsim.models.ledger import StoreSnapshot

log = logging.getLogger(__name__)

INITIATIVE_TRACKER = "Initiative_Tracker"
CIVIC_OFFICE_LEDGER = "Civic_Office_Ledger"
NEIGHBORHOOD_DEMOGRAPHICS = "Neighborhood_Demographics"
NEIGHBORHOOD_DYNAMICS = "Neighborhood_Dynamics"
CITY_DYNAMICS = "City_Dynamics"
WORLD_CONFIG = "World_Config"
INITIATIVE_RIPPLES = "Initiative_Ripples"
ENGINE_ERRORS = "Engine_Errors"
CYCLE_SEEDS = "Cycle_Seeds"

# Stores whose contents depend on wall-clock time or run bookkeeping, not on
# the simulation. They never take part in the replay fingerprint.
VOLATILE_STORES = frozenset({ENGINE_ERRORS, CYCLE_SEEDS})

INITIATIVE_HEADER = [
    "InitiativeID", "Name", "Type", "Status", "Budget", "VoteRequirement", "VoteCycle",
    "Projection", "LeadFaction", "OppositionFaction", "SwingVoter", "SwingVoter2",
    "SwingVoter2Lean", "Outcome", "Consequences", "AffectedNeighborhoods", "Notes", "LastUpdated",
]
INITIATIVE_REQUIRED = [
    "InitiativeID", "Name", "Type", "Status", "VoteCycle", "VoteRequirement", "Projection",
    "LeadFaction", "OppositionFaction", "SwingVoter", "Outcome", "Consequences", "LastUpdated",
]
OFFICE_HEADER = ["OfficeId", "Title", "Type", "District", "Holder", "HolderId", "Status", "Faction", "VotingPower"]
DEMOGRAPHICS_HEADER = ["Neighborhood", "Students", "Adults", "Seniors", "Unemployed", "Sick", "LastUpdated"]
KEY_VALUE_HEADER = ["Key", "Value"]

# World-state scalar -> column name in the dynamics stores
SCALAR_COLUMNS: dict[str, str] = {
    "sentiment": "Sentiment",
    "community": "CommunityEngagement",
    "retail": "RetailActivity",
    "traffic": "Traffic",
    "nightlife": "Nightlife",
    "sickness": "SicknessRate",
    "unemployment": "UnemploymentRate",
}
NEIGHBORHOOD_DYNAMICS_HEADER = ["Neighborhood", *SCALAR_COLUMNS.values()]

RIPPLE_HEADER = [
    "RippleID", "InitiativeID", "InitiativeName", "Category", "Direction", "Strength", "Effects",
    "AffectedNeighborhoods", "StartCycle", "Duration", "EndCycle", "Status", "DecayFactor",
]
ERROR_HEADER = ["Timestamp", "Cycle", "Phase", "ErrorType", "Message", "Stack"]
CYCLE_SEED_HEADER = ["CycleID", "Seed", "Timestamp", "Mode", "Fingerprint", "Outcomes", "IntentCounts", "Errors"]

# World_Config keys
CYCLE_COUNT_KEY = "cycleCount"


def missing_columns(header: list[str], required: list[str]) -> list[str]:
    present = set(header)
    return [c for c in required if c not in present]


def require_columns(snapshot: StoreSnapshot, required: list[str]) -> None:
    """Raise SchemaError when *snapshot* lacks any of *required*."""
    missing = missing_columns(snapshot.header, required)
    if missing:
        raise SchemaError(snapshot.store, missing)


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def split_list(value: Any) -> list[str]:
    return [part.strip() for part in _text(value).split(",") if part.strip()]


def _faction(value: Any, default: Faction | None) -> Faction | None:
    try:
        return Faction(_text(value).upper())
    except ValueError:
        return default


def _json_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    text = _text(value)
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        log.warning("Ignoring unparseable JSON cell: %r", text[:80])
        return {}
    return parsed if isinstance(parsed, dict) else {}


# ---------------------------------------------------------------------------
# Initiatives
# ---------------------------------------------------------------------------


def initiative_from_record(row: int, rec: dict[str, Any]) -> Initiative:
    raw_status = _text(rec.get("Status")).lower()
    try:
        status = InitiativeStatus(raw_status)
    except ValueError:
        log.warning("Initiative %s has unknown status %r; treating as proposed", rec.get("InitiativeID"), raw_status)
        status = InitiativeStatus.PROPOSED
    return Initiative(
        row=row,
        initiative_id=_text(rec.get("InitiativeID")),
        name=_text(rec.get("Name")),
        initiative_type=InitiativeType.parse(_text(rec.get("Type")) or "vote"),
        status=status,
        budget=_text(rec.get("Budget")),
        vote_requirement=_text(rec.get("VoteRequirement")) or "5-4",
        vote_cycle=_int(rec.get("VoteCycle")),
        projection=_text(rec.get("Projection")),
        lead_faction=_faction(rec.get("LeadFaction"), Faction.OPP),
        opposition_faction=_faction(rec.get("OppositionFaction"), Faction.CRC),
        swing_voter=_text(rec.get("SwingVoter")),
        swing_voter_2=_text(rec.get("SwingVoter2")),
        swing_voter_2_lean=_text(rec.get("SwingVoter2Lean")),
        outcome=_text(rec.get("Outcome")),
        consequences=_text(rec.get("Consequences")),
        affected_neighborhoods=split_list(rec.get("AffectedNeighborhoods")),
        notes=_text(rec.get("Notes")),
        last_updated=_text(rec.get("LastUpdated")),
    )


def load_initiatives(snapshot: StoreSnapshot) -> list[Initiative]:
    """Typed initiatives from the tracker. Raises SchemaError on missing required columns."""
    require_columns(snapshot, INITIATIVE_REQUIRED)
    return [
        initiative_from_record(i, rec)
        for i, rec in enumerate(snapshot.records())
        if _text(rec.get("InitiativeID"))
    ]


# ---------------------------------------------------------------------------
# Council
# ---------------------------------------------------------------------------


def seat_from_record(rec: dict[str, Any]) -> CouncilSeat | None:
    office_id = _text(rec.get("OfficeId"))
    raw_status = _text(rec.get("Status")).lower() or SeatStatus.ACTIVE.value
    voting_power = _text(rec.get("VotingPower")).lower()
    if voting_power == "vacant":
        raw_status = SeatStatus.VACANT.value
    try:
        status = SeatStatus(raw_status)
    except ValueError:
        log.warning("Office %s has unknown status %r; seat not counted", office_id, raw_status)
        return None
    return CouncilSeat(
        office_id=office_id,
        title=_text(rec.get("Title")),
        seat_type=_text(rec.get("Type")).lower() or "elected",
        district=_text(rec.get("District")),
        holder=_text(rec.get("Holder")),
        holder_id=_text(rec.get("HolderId")),
        status=status,
        faction=_faction(rec.get("Faction"), None),
        voting_power=voting_power not in ("no", "false", "0", "none", "vacant"),
    )


def load_council(snapshot: StoreSnapshot) -> CouncilState:
    """Council seats (COUNCIL-* offices) and the executive (MAYOR-* office)."""
    seats: list[CouncilSeat] = []
    executive: CouncilSeat | None = None
    for rec in snapshot.records():
        office_id = _text(rec.get("OfficeId")).upper()
        if office_id.startswith("MAYOR"):
            seat = seat_from_record(rec)
            if seat is not None:
                executive = seat.model_copy(update={"voting_power": False})
        elif office_id.startswith("COUNCIL"):
            seat = seat_from_record(rec)
            if seat is not None:
                seats.append(seat)
    return CouncilState(seats=seats, executive=executive)


# ---------------------------------------------------------------------------
# Demographics and dynamics
# ---------------------------------------------------------------------------


def load_demographics(snapshot: StoreSnapshot) -> dict[str, NeighborhoodDemographics]:
    result: dict[str, NeighborhoodDemographics] = {}
    for rec in snapshot.records():
        name = _text(rec.get("Neighborhood"))
        if not name:
            continue
        result[name] = NeighborhoodDemographics(
            neighborhood=name,
            students=_int(rec.get("Students")),
            adults=_int(rec.get("Adults")),
            seniors=_int(rec.get("Seniors")),
            unemployed=_int(rec.get("Unemployed")),
            sick=_int(rec.get("Sick")),
        )
    return result


def key_value_rows(snapshot: StoreSnapshot) -> dict[str, tuple[int, str]]:
    """Key -> (row, raw value) for a Key/Value store."""
    rows: dict[str, tuple[int, str]] = {}
    for i, rec in enumerate(snapshot.records()):
        key = _text(rec.get("Key"))
        if key:
            rows[key] = (i, _text(rec.get("Value")))
    return rows


def load_city_scalars(snapshot: StoreSnapshot) -> dict[str, float]:
    scalars = dict(SCALAR_DEFAULTS)
    values = key_value_rows(snapshot)
    for key, column in SCALAR_COLUMNS.items():
        if column in values:
            scalars[key] = _float(values[column][1], SCALAR_DEFAULTS[key])
    return scalars


def load_neighborhood_scalars(snapshot: StoreSnapshot) -> dict[str, dict[str, float]]:
    result: dict[str, dict[str, float]] = {}
    for rec in snapshot.records():
        name = _text(rec.get("Neighborhood"))
        if not name:
            continue
        result[name] = {
            key: _float(rec.get(column), SCALAR_DEFAULTS[key])
            for key, column in SCALAR_COLUMNS.items()
        }
    return result


# ---------------------------------------------------------------------------
# Ripples
# ---------------------------------------------------------------------------


def ripple_from_record(row: int, rec: dict[str, Any]) -> Ripple:
    start = _int(rec.get("StartCycle"))
    duration = _int(rec.get("Duration"))
    return Ripple(
        ripple_id=_text(rec.get("RippleID")),
        initiative_id=_text(rec.get("InitiativeID")),
        initiative_name=_text(rec.get("InitiativeName")),
        category=RippleCategory(_text(rec.get("Category")).lower() or "general"),
        direction=RippleDirection(_text(rec.get("Direction")).lower() or "positive"),
        strength=_float(rec.get("Strength"), 1.0),
        effects={k: _float(v) for k, v in _json_dict(rec.get("Effects")).items()},
        affected_neighborhoods=split_list(rec.get("AffectedNeighborhoods")),
        start_cycle=start,
        duration=duration,
        end_cycle=_int(rec.get("EndCycle"), start + duration),
        status=RippleStatus(_text(rec.get("Status")).lower() or "active"),
        decay_factor=_float(rec.get("DecayFactor"), 1.0),
        row=row,
    )


def load_active_ripples(snapshot: StoreSnapshot) -> list[Ripple]:
    """Active ripples; a row that does not parse is skipped with a warning."""
    ripples: list[Ripple] = []
    for i, rec in enumerate(snapshot.records()):
        try:
            ripple = ripple_from_record(i, rec)
        except ValueError as exc:
            log.warning("Ripple row %d (%s) unreadable; skipped: %s", i, _text(rec.get("RippleID")), exc)
            continue
        if ripple.status == RippleStatus.ACTIVE:
            ripples.append(ripple)
    return ripples


def ripple_to_row(ripple: Ripple) -> list[Any]:
    return [
        ripple.ripple_id,
        ripple.initiative_id,
        ripple.initiative_name,
        ripple.category.value,
        ripple.direction.value,
        ripple.strength,
        json.dumps(ripple.effects, sort_keys=True),
        ", ".join(ripple.affected_neighborhoods),
        ripple.start_cycle,
        ripple.duration,
        ripple.end_cycle,
        ripple.status.value,
        round(ripple.decay_factor, 6),
    ]
