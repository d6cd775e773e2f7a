"""Tests for council seat availability."""

from __future__ import annotations

from civicsim.models.council import CouncilSeat, CouncilState
from civicsim.models.enums import Faction, SeatStatus


def _seat(holder: str, faction: Faction | None, status: SeatStatus = SeatStatus.ACTIVE, **kw) -> CouncilSeat:
    return CouncilSeat(office_id=f"COUNCIL-{holder[:3]}", holder=holder, faction=faction, status=status, **kw)


class TestCouncilSeat:
    def test_active_seat_available(self) -> None:
        assert _seat("Denise Carter", Faction.OPP).is_available

    def test_tbd_holder_is_vacant(self) -> None:
        seat = _seat("TBD", Faction.OPP)
        assert seat.is_vacant
        assert not seat.is_available

    def test_empty_holder_is_vacant(self) -> None:
        assert _seat("", Faction.CRC).is_vacant

    def test_injured_not_available(self) -> None:
        seat = _seat("Elliott Crane", Faction.CRC, SeatStatus.INJURED)
        assert not seat.is_vacant
        assert not seat.is_available

    def test_no_voting_power(self) -> None:
        assert not _seat("Avery Santana", None, voting_power=False).is_available


class TestCouncilState:
    def _state(self) -> CouncilState:
        return CouncilState(
            seats=[
                _seat("Denise Carter", Faction.OPP, title="Council President"),
                _seat("Rose Delgado", Faction.OPP),
                _seat("Warren Ashford", Faction.CRC),
                _seat("Elliott Crane", Faction.CRC, SeatStatus.HOSPITALIZED),
                _seat("Ramon Vega", Faction.IND),
                _seat("TBD", None, SeatStatus.VACANT),
            ]
        )

    def test_counts(self) -> None:
        state = self._state()
        assert state.filled == 5
        assert state.vacant == 4
        assert state.available_votes == 4
        assert state.available_in(Faction.OPP) == 2
        assert state.available_in(Faction.CRC) == 1

    def test_unaffiliated_seat_not_counted(self) -> None:
        state = CouncilState(seats=[_seat("Denise Carter", Faction.OPP), _seat("Pat Lee", None)])
        assert state.filled == 2
        assert state.available_votes == 1

    def test_independents_list_is_fresh(self) -> None:
        state = self._state()
        names = state.available_independents
        names.clear()
        assert state.available_independents == ["Ramon Vega"]

    def test_absent_members(self) -> None:
        absent = self._state().absent_members
        assert [(m.name, m.reason) for m in absent] == [("Elliott Crane", SeatStatus.HOSPITALIZED)]

    def test_president(self) -> None:
        assert self._state().president == "Denise Carter"
