"""
Repository pattern for dispenser records.

Keeps dispensers in memory, keyed by id, in insertion order.
"""

import math
import uuid
from datetime import datetime
from numbers import Real
from typing import Dict, List, Optional

from ..core.errors import DispenserNotFound, InvalidFlowVolume
from ..core.timestamps import utc_now
from .models import Dispenser, DispenserState


def is_finite_number(value) -> bool:
    """True for finite real numbers; bools are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


def is_valid_flow_volume(flow_volume) -> bool:
    """True for positive finite real numbers."""
    return is_finite_number(flow_volume) and flow_volume > 0


class DispenserRepository:
    """In-memory store of dispensers.

    Each repository instance owns its own collection, so independent
    instances never share state.
    """

    def __init__(self):
        self._dispensers: Dict[str, Dispenser] = {}

    def __len__(self) -> int:
        return len(self._dispensers)

    def create(self, flow_volume: float, created_at: Optional[datetime] = None) -> Dispenser:
        """Create and store a new closed dispenser.

        Args:
            flow_volume: Litres per second, must be a positive number
            created_at: Creation time (defaults to now, UTC)

        Returns:
            The stored dispenser

        Raises:
            InvalidFlowVolume: If flow_volume is not a positive number
        """
        if not is_valid_flow_volume(flow_volume):
            raise InvalidFlowVolume()

        dispenser = Dispenser(
            id=str(uuid.uuid4()),
            flow_volume=float(flow_volume),
            state=DispenserState.CLOSE,
            updated_at=created_at or utc_now()
        )
        self._dispensers[dispenser.id] = dispenser
        return dispenser

    def find_by_id(self, dispenser_id: str) -> Dispenser:
        """Look up a dispenser by id.

        Raises:
            DispenserNotFound: If no dispenser has this id
        """
        dispenser = self._dispensers.get(dispenser_id)
        if dispenser is None:
            raise DispenserNotFound()
        return dispenser

    def list_all(self) -> List[Dispenser]:
        """All dispensers in creation order."""
        return list(self._dispensers.values())
