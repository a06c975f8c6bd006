"""
Dispenser lifecycle management.

Orchestrates dispenser creation, open/close transitions and spending
reports across the dispenser repository and the usage ledger.

Status change order:
1. Dispenser lookup - unknown ids fail first
2. Status and timestamp validation
3. Same-state requests - reported, never applied
4. Ledger ordering check - before any dispenser field is touched
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from .errors import DISPENSER_ALREADY_IN_DESIRED_STATE, InvalidDateOrder, InvalidStatus
from .timestamps import parse_timestamp, utc_now
from ..storage.ledger import UsageLedger
from ..storage.models import Dispenser, DispenserState, SpendingReport
from ..storage.repository import DispenserRepository

logger = logging.getLogger(__name__)


@dataclass
class StatusChangeResult:
    """Outcome of a status change request.

    ``success`` is False only when the dispenser was already in the
    requested state; real failures are raised instead.
    """
    success: bool
    dispenser: Optional[Dispenser] = None
    message: Optional[str] = None


def parse_state(state: Union[str, DispenserState]) -> DispenserState:
    """Convert a requested status into a DispenserState.

    Raises:
        InvalidStatus: If the value is not "open" or "close"
    """
    if isinstance(state, DispenserState):
        return state
    try:
        return DispenserState(state)
    except ValueError:
        raise InvalidStatus()


class DispenserManager:
    """Entry point for every dispenser operation.

    All operations hold a single lock, so the manager may be shared by
    request handlers running on different threads.
    """

    def __init__(
        self,
        repository: Optional[DispenserRepository] = None,
        ledger: Optional[UsageLedger] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.repository = repository if repository is not None else DispenserRepository()
        self.ledger = ledger if ledger is not None else UsageLedger()
        self.clock = clock
        self._lock = threading.Lock()

    def create_dispenser(self, flow_volume: float) -> Dispenser:
        """Create a new dispenser in the closed state.

        Raises:
            InvalidFlowVolume: If flow_volume is not a positive number
        """
        with self._lock:
            dispenser = self.repository.create(flow_volume, created_at=self.clock())
        logger.info("Created dispenser %s with flow volume %s", dispenser.id, dispenser.flow_volume)
        return dispenser

    def change_status(
        self,
        dispenser_id: str,
        state: Union[str, DispenserState],
        updated_at: Union[str, datetime]
    ) -> StatusChangeResult:
        """Open or close a dispenser at the given time.

        Args:
            dispenser_id: Dispenser to change
            state: "open" or "close"
            updated_at: ISO-8601 timestamp (or datetime) of the change

        Returns:
            StatusChangeResult - success=False if already in the requested state

        Raises:
            DispenserNotFound: If the dispenser does not exist
            InvalidStatus: If state is not "open" or "close"
            InvalidDateFormat: If updated_at cannot be parsed
            InvalidDateOrder: If updated_at breaks the period ordering
        """
        with self._lock:
            dispenser = self.repository.find_by_id(dispenser_id)
            new_state = parse_state(state)
            timestamp = parse_timestamp(updated_at)

            if dispenser.state == new_state:
                logger.info("Dispenser %s already %s", dispenser_id, new_state.value)
                return StatusChangeResult(success=False, message=DISPENSER_ALREADY_IN_DESIRED_STATE)

            try:
                if new_state == DispenserState.OPEN:
                    self.ledger.validate_open(dispenser_id, timestamp)
                else:
                    self.ledger.validate_close(dispenser_id, timestamp)
            except InvalidDateOrder:
                logger.warning(
                    "Rejected %s of dispenser %s at %s: out of order",
                    new_state.value, dispenser_id, timestamp.isoformat()
                )
                raise

            if new_state == DispenserState.OPEN:
                self.ledger.record_open(dispenser_id, timestamp, dispenser.flow_volume)
            else:
                period = self.ledger.record_close(dispenser_id, timestamp)
                logger.info("Dispenser %s usage cost %.2f", dispenser_id, period.total_spent)

            dispenser.state = new_state
            dispenser.updated_at = timestamp

        logger.info("Dispenser %s is now %s", dispenser_id, new_state.value)
        return StatusChangeResult(success=True, dispenser=dispenser)

    def get_spending(self, dispenser_id: str) -> SpendingReport:
        """Report the total spent on a dispenser and its usage periods.

        An open dispenser is priced up to the current time without being
        closed.

        Raises:
            DispenserNotFound: If the dispenser does not exist
        """
        with self._lock:
            self.repository.find_by_id(dispenser_id)
            return self.ledger.snapshot(dispenser_id, now=self.clock())
