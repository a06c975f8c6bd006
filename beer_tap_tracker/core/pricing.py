"""
Spend calculations for dispenser usage.

Converts an open/close interval and a flow rate into a monetary amount.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Union

# Fixed price per litre - overridable through settings
PRICE_PER_LITRE = Decimal("12.25")


def elapsed_seconds(opened_at: datetime, closed_at: datetime) -> Decimal:
    """Seconds between two timestamps, at microsecond precision."""
    delta = closed_at - opened_at
    return Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal("1000000")


def calculate_total_spent(
    opened_at: datetime,
    closed_at: datetime,
    flow_volume: float,
    price_per_litre: Union[Decimal, float, str] = PRICE_PER_LITRE
) -> float:
    """Calculate the amount spent while a dispenser was open.

    Args:
        opened_at: When the dispenser was opened
        closed_at: When the dispenser was closed (or "now" for a live estimate)
        flow_volume: Litres per second
        price_per_litre: Price of one litre

    Returns:
        seconds * flow_volume * price_per_litre, rounded half-up to 2 decimal places
    """
    seconds = elapsed_seconds(opened_at, closed_at)

    with localcontext() as ctx:
        # Enough digits for an exact product of the three factors
        ctx.prec = 100
        # Decimal(str(...)) keeps the float's shortest repr rather than its binary expansion
        total = seconds * Decimal(str(flow_volume)) * Decimal(str(price_per_litre))
        # quantize needs every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, total.adjusted() + 3)
        rounded = total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return float(rounded)
