"""
Revenue Calculator

Agency revenue for a placement = fixed CTC x client fee % / 100,
rounded half-up to 2 decimals (lakhs, as shown on dashboards).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]

CURRENCY_QUANTUM = Decimal("0.01")


def _to_decimal(value: Number, name: str) -> Decimal:
    if value is None:
        raise TypeError(f"{name} is required")
    # str() first so 8.33 stays 8.33 and not its binary float expansion
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compute_revenue(fixed_ctc: Number, fee_percentage: Number) -> Decimal:
    """
    >>> compute_revenue(10, "8.33")
    Decimal('0.83')
    >>> compute_revenue(12, "8.33")
    Decimal('1.00')
    """
    ctc = _to_decimal(fixed_ctc, "fixed_ctc")
    fee = _to_decimal(fee_percentage, "fee_percentage")
    if ctc < 0 or fee < 0:
        raise ValueError("fixed_ctc and fee_percentage must be non-negative")
    return (ctc * fee / Decimal(100)).quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)
