"""
Data models for storage layer.

Defines dispensers, their usage periods, and spending reports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.timestamps import format_timestamp


class DispenserState(Enum):
    """Possible states of a dispenser tap."""
    OPEN = "open"
    CLOSE = "close"


@dataclass
class Dispenser:
    """A beer tap with a fixed flow rate.

    Only the lifecycle manager changes ``state`` and ``updated_at``.
    """
    id: str
    flow_volume: float
    state: DispenserState
    updated_at: datetime


@dataclass
class UsagePeriod:
    """One open-to-close interval of a dispenser.

    ``closed_at`` is None while the dispenser is still open. ``total_spent``
    is None until the period is closed or estimated for a report.
    """
    opened_at: datetime
    flow_volume: float
    closed_at: Optional[datetime] = None
    total_spent: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "opened_at": format_timestamp(self.opened_at),
            "closed_at": format_timestamp(self.closed_at) if self.closed_at else None,
            "flow_volume": self.flow_volume,
            "total_spent": self.total_spent,
        }


@dataclass
class SpendingReport:
    """Total amount spent on a dispenser plus every usage period."""
    amount: float = 0.0
    usages: List[UsagePeriod] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "usages": [usage.to_dict() for usage in self.usages],
        }
