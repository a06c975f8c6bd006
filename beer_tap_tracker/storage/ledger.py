"""
Usage ledger for dispensers.

Keeps, per dispenser, the ordered list of open/close periods and the
running total of closed periods.
"""

import dataclasses
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

from ..core.errors import InvalidDateOrder
from ..core.pricing import PRICE_PER_LITRE, calculate_total_spent
from ..core.timestamps import utc_now
from .models import SpendingReport, UsagePeriod


class UsageLedger:
    """Per-dispenser record of usage periods.

    Periods are strictly time-ordered: each opened_at is after the previous
    closed_at, and only the last period may still be open.
    """

    def __init__(self, price_per_litre: Union[Decimal, float, str] = PRICE_PER_LITRE):
        self.price_per_litre = Decimal(str(price_per_litre))
        self._periods: Dict[str, List[UsagePeriod]] = {}
        self._totals: Dict[str, Decimal] = {}

    def _last_period(self, dispenser_id: str) -> Optional[UsagePeriod]:
        periods = self._periods.get(dispenser_id)
        return periods[-1] if periods else None

    def periods(self, dispenser_id: str) -> List[UsagePeriod]:
        """Stored periods for a dispenser, oldest first."""
        return list(self._periods.get(dispenser_id, []))

    def running_total(self, dispenser_id: str) -> float:
        """Sum of total_spent over the closed periods of a dispenser."""
        return float(self._totals.get(dispenser_id, Decimal("0")))

    def validate_open(self, dispenser_id: str, timestamp: datetime) -> None:
        """Check that a period may be opened at ``timestamp``.

        Raises:
            InvalidDateOrder: If timestamp is not after the last closed_at
        """
        last = self._last_period(dispenser_id)
        if last is None:
            return
        if last.closed_at is None or timestamp <= last.closed_at:
            raise InvalidDateOrder()

    def validate_close(self, dispenser_id: str, timestamp: datetime) -> None:
        """Check that the current period may be closed at ``timestamp``.

        Raises:
            InvalidDateOrder: If there is no open period or timestamp is
                not after its opened_at
        """
        last = self._last_period(dispenser_id)
        if last is None or not last.is_open or timestamp <= last.opened_at:
            raise InvalidDateOrder()

    def record_open(self, dispenser_id: str, timestamp: datetime, flow_volume: float) -> UsagePeriod:
        """Append a new open period.

        Args:
            dispenser_id: Dispenser being opened
            timestamp: Opening time
            flow_volume: Flow rate snapshot for the period

        Returns:
            The new period

        Raises:
            InvalidDateOrder: If timestamp is not after the previous closed_at
        """
        self.validate_open(dispenser_id, timestamp)

        period = UsagePeriod(opened_at=timestamp, flow_volume=flow_volume)
        self._periods.setdefault(dispenser_id, []).append(period)
        return period

    def record_close(self, dispenser_id: str, timestamp: datetime) -> UsagePeriod:
        """Close the current period and add its cost to the running total.

        Args:
            dispenser_id: Dispenser being closed
            timestamp: Closing time

        Returns:
            The closed period

        Raises:
            InvalidDateOrder: If no period is open or timestamp is not after
                its opened_at
        """
        self.validate_close(dispenser_id, timestamp)

        period = self._periods[dispenser_id][-1]
        # Priced first so a failure leaves the period open
        total_spent = calculate_total_spent(
            period.opened_at, timestamp, period.flow_volume, self.price_per_litre
        )
        period.closed_at = timestamp
        period.total_spent = total_spent

        total = self._totals.get(dispenser_id, Decimal("0"))
        self._totals[dispenser_id] = total + Decimal(str(period.total_spent))
        return period

    def snapshot(self, dispenser_id: str, now: Optional[datetime] = None) -> SpendingReport:
        """Build a spending report for a dispenser.

        An open last period is priced as of ``now`` in the report only: it
        stays open in the ledger and the running total is unchanged.

        Args:
            dispenser_id: Dispenser to report on
            now: Reference time for the open period (defaults to now, UTC)

        Returns:
            SpendingReport with copies of every period, oldest first
        """
        periods = self._periods.get(dispenser_id)
        if not periods:
            return SpendingReport(amount=0, usages=[])

        usages = [dataclasses.replace(period) for period in periods]
        amount = self._totals.get(dispenser_id, Decimal("0"))

        current = usages[-1]
        if current.is_open:
            reference = now or utc_now()
            # Clock may sit behind a client-supplied opened_at
            if reference < current.opened_at:
                reference = current.opened_at
            current.total_spent = calculate_total_spent(
                current.opened_at, reference, current.flow_volume, self.price_per_litre
            )
            amount += Decimal(str(current.total_spent))

        return SpendingReport(amount=float(amount), usages=usages)
