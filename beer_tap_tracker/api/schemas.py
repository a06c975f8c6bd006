from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel


# ---------------- DISPENSERS ----------------

class DispenserCreateRequest(BaseModel):
    """
    flow_volume is checked by the route so each failure gets its own message.
    """
    flow_volume: Any = None


class DispenserOut(BaseModel):
    id: str
    flow_volume: float


class StatusChangeRequest(BaseModel):
    status: Any = None
    updated_at: Any = None


# ---------------- SPENDING ----------------

class UsageOut(BaseModel):
    opened_at: str
    closed_at: Optional[str] = None
    flow_volume: float
    total_spent: Optional[float] = None


class SpendingOut(BaseModel):
    amount: float
    usages: List[UsageOut]


class MessageOut(BaseModel):
    message: str


class ErrorOut(BaseModel):
    error: str
