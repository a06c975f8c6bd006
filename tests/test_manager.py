"""
Tests for the dispenser lifecycle manager.

Covers creation, the open/close state machine and spending reports.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from beer_tap_tracker.core.errors import (
    DISPENSER_ALREADY_IN_DESIRED_STATE,
    DispenserNotFound,
    InvalidDateFormat,
    InvalidDateOrder,
    InvalidFlowVolume,
    InvalidStatus
)
from beer_tap_tracker.core.manager import DispenserManager, StatusChangeResult, parse_state
from beer_tap_tracker.core.pricing import PRICE_PER_LITRE, calculate_total_spent
from beer_tap_tracker.storage.ledger import UsageLedger
from beer_tap_tracker.storage.models import DispenserState

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock for manager tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def manager(clock):
    return DispenserManager(clock=clock)


class TestCreateDispenser:
    """Test dispenser creation through the manager."""

    def test_create_dispenser(self, manager, clock):
        """Verify a new dispenser is closed and stamped with the clock."""
        dispenser = manager.create_dispenser(1)

        assert dispenser.state == DispenserState.CLOSE
        assert dispenser.flow_volume == 1
        assert dispenser.updated_at == clock.now
        assert manager.repository.find_by_id(dispenser.id) is dispenser

    @pytest.mark.parametrize("flow_volume", [-1, 0, "abc"])
    def test_invalid_flow_volume(self, manager, flow_volume):
        """Verify invalid flows propagate InvalidFlowVolume."""
        with pytest.raises(InvalidFlowVolume, match="Flow volume should be a positive number."):
            manager.create_dispenser(flow_volume)

    def test_managers_are_isolated(self):
        """Verify two managers never share dispensers."""
        first = DispenserManager()
        second = DispenserManager()
        dispenser = first.create_dispenser(1.0)
        with pytest.raises(DispenserNotFound):
            second.get_spending(dispenser.id)


class TestChangeStatus:
    """Test the open/close state machine."""

    def test_unknown_dispenser(self, manager):
        """Verify unknown ids fail before anything else is checked."""
        with pytest.raises(DispenserNotFound):
            manager.change_status("non-existent-id", "INVALID", "invalid_date")

    def test_invalid_status(self, manager):
        """Verify unknown statuses are rejected."""
        dispenser = manager.create_dispenser(1.0)
        with pytest.raises(InvalidStatus, match="open"):
            manager.change_status(dispenser.id, "INVALID", iso(T0))

    def test_invalid_date_format(self, manager):
        """Verify unparseable timestamps are rejected."""
        dispenser = manager.create_dispenser(1.0)
        with pytest.raises(InvalidDateFormat):
            manager.change_status(dispenser.id, "open", "invalid_date")
        assert dispenser.state == DispenserState.CLOSE

    def test_already_in_state(self, manager):
        """Verify a same-state request is reported, not raised."""
        dispenser = manager.create_dispenser(1.0)
        result = manager.change_status(dispenser.id, "close", iso(T0))

        assert result == StatusChangeResult(success=False, message=DISPENSER_ALREADY_IN_DESIRED_STATE)
        assert manager.ledger.periods(dispenser.id) == []

    def test_open_twice_does_not_touch_ledger(self, manager):
        """Verify a repeated open leaves the ledger alone."""
        dispenser = manager.create_dispenser(1.0)
        manager.change_status(dispenser.id, "open", iso(T0))
        result = manager.change_status(dispenser.id, "open", iso(T0 + timedelta(seconds=5)))

        assert not result.success
        periods = manager.ledger.periods(dispenser.id)
        assert len(periods) == 1
        assert periods[0].opened_at == T0
        assert dispenser.updated_at == T0

    def test_open(self, manager):
        """Verify opening updates the dispenser and the ledger."""
        dispenser = manager.create_dispenser(1.0)
        result = manager.change_status(dispenser.id, "open", iso(T0))

        assert result.success
        assert result.dispenser is dispenser
        assert dispenser.state == DispenserState.OPEN
        assert dispenser.updated_at == T0
        assert manager.ledger.periods(dispenser.id)[0].is_open

    def test_close_computes_total_spent(self, manager):
        """Verify closing after 60s at 0.5 l/s charges 60 * 0.5 * price."""
        dispenser = manager.create_dispenser(0.5)
        manager.change_status(dispenser.id, "open", iso(T0))
        result = manager.change_status(dispenser.id, DispenserState.CLOSE, T0 + timedelta(seconds=60))

        assert result.success
        assert dispenser.state == DispenserState.CLOSE
        period = manager.ledger.periods(dispenser.id)[0]
        assert period.total_spent == pytest.approx(60 * 0.5 * float(PRICE_PER_LITRE), abs=0.01)

    def test_huge_flow_volume_closes_and_reopens(self, manager):
        """Verify a very large flow goes through a full open/close/open cycle."""
        dispenser = manager.create_dispenser(1e30)
        manager.change_status(dispenser.id, "open", iso(T0))
        result = manager.change_status(dispenser.id, "close", iso(T0 + timedelta(seconds=60)))

        assert result.success
        assert dispenser.state == DispenserState.CLOSE
        report = manager.get_spending(dispenser.id)
        assert report.usages[0].total_spent == pytest.approx(7.35e32)

        assert manager.change_status(dispenser.id, "open", iso(T0 + timedelta(seconds=120))).success
        assert dispenser.state == DispenserState.OPEN

    def test_close_before_open_rejected_without_state_change(self, manager):
        """Verify a backwards close fails and leaves the dispenser open."""
        dispenser = manager.create_dispenser(1.0)
        manager.change_status(dispenser.id, "open", iso(T0))

        with pytest.raises(InvalidDateOrder):
            manager.change_status(dispenser.id, "close", iso(T0 - timedelta(seconds=1)))

        assert dispenser.state == DispenserState.OPEN
        assert dispenser.updated_at == T0

    def test_reopen_before_close_rejected_without_state_change(self, manager):
        """Verify a backwards reopen fails and leaves the dispenser closed."""
        dispenser = manager.create_dispenser(1.0)
        manager.change_status(dispenser.id, "open", iso(T0))
        closed_at = T0 + timedelta(seconds=10)
        manager.change_status(dispenser.id, "close", iso(closed_at))

        with pytest.raises(InvalidDateOrder):
            manager.change_status(dispenser.id, "open", iso(closed_at))

        assert dispenser.state == DispenserState.CLOSE
        assert dispenser.updated_at == closed_at
        assert len(manager.ledger.periods(dispenser.id)) == 1

    def test_rejected_transition_is_logged(self, manager, caplog):
        """Verify out-of-order changes are logged as warnings."""
        dispenser = manager.create_dispenser(1.0)
        manager.change_status(dispenser.id, "open", iso(T0))

        with caplog.at_level(logging.WARNING, logger="beer_tap_tracker.core.manager"):
            with pytest.raises(InvalidDateOrder):
                manager.change_status(dispenser.id, "close", iso(T0))

        assert "out of order" in caplog.text

    def test_parse_state(self):
        """Verify status parsing."""
        assert parse_state("open") == DispenserState.OPEN
        assert parse_state(DispenserState.CLOSE) == DispenserState.CLOSE
        with pytest.raises(InvalidStatus):
            parse_state("OPEN")
        with pytest.raises(InvalidStatus):
            parse_state(None)


class TestGetSpending:
    """Test spending reports through the manager."""

    def test_unknown_dispenser(self, manager):
        """Verify unknown ids raise DispenserNotFound."""
        with pytest.raises(DispenserNotFound):
            manager.get_spending("non-existent-id")

    def test_never_opened(self, manager):
        """Verify a new dispenser has spent nothing."""
        dispenser = manager.create_dispenser(2.5)
        report = manager.get_spending(dispenser.id)
        assert report.to_dict() == {"amount": 0, "usages": []}

    def test_round_trip(self, manager):
        """Verify open, close and report agree with the calculator."""
        dispenser = manager.create_dispenser(0.5)
        t1 = T0 + timedelta(seconds=60)
        manager.change_status(dispenser.id, "open", iso(T0))
        manager.change_status(dispenser.id, "close", iso(t1))

        report = manager.get_spending(dispenser.id)

        assert len(report.usages) == 1
        assert report.usages[0].closed_at == t1
        assert report.usages[0].total_spent == calculate_total_spent(T0, t1, 0.5)
        assert report.amount == pytest.approx(60 * 0.5 * float(PRICE_PER_LITRE), abs=0.01)

    def test_open_dispenser_estimate_grows(self, manager, clock):
        """Verify an open dispenser's estimate grows and it stays open."""
        dispenser = manager.create_dispenser(2.5)
        manager.change_status(dispenser.id, "open", iso(T0))

        clock.advance(5)
        first = manager.get_spending(dispenser.id)
        clock.advance(5)
        second = manager.get_spending(dispenser.id)

        assert first.usages[0].total_spent == pytest.approx(5 * 2.5 * 12.25, abs=0.01)
        assert second.amount >= first.amount
        assert second.usages[0].closed_at is None
        assert dispenser.state == DispenserState.OPEN

    def test_multiple_periods(self, manager):
        """Verify every period is listed in order and summed."""
        dispenser = manager.create_dispenser(1.0)
        for start in (0, 100, 200):
            manager.change_status(dispenser.id, "open", iso(T0 + timedelta(seconds=start)))
            manager.change_status(dispenser.id, "close", iso(T0 + timedelta(seconds=start + 10)))

        report = manager.get_spending(dispenser.id)

        assert [u.opened_at for u in report.usages] == [
            T0, T0 + timedelta(seconds=100), T0 + timedelta(seconds=200)
        ]
        assert report.amount == pytest.approx(3 * 10 * 12.25)

    def test_price_from_ledger(self, clock):
        """Verify the manager prices with its ledger's price."""
        manager = DispenserManager(ledger=UsageLedger(price_per_litre="1"), clock=clock)
        dispenser = manager.create_dispenser(1.0)
        manager.change_status(dispenser.id, "open", iso(T0))
        manager.change_status(dispenser.id, "close", iso(T0 + timedelta(seconds=30)))
        assert manager.get_spending(dispenser.id).amount == 30.0
