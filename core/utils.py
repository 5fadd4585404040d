"""
Core utility functions used across domains
"""
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, TypeVar

T = TypeVar("T")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    """Clamp value into [lower, upper]"""
    return max(lower, min(upper, value))


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round the way reports expect (2.5 -> 3), not banker's rounding"""
    quantum = Decimal("1") if decimals == 0 else Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def chunk_list(lst: List[T], chunk_size: int) -> List[List[T]]:
    """Split list into chunks of specified size"""
    return [lst[i : i + chunk_size] for i in range(0, len(lst), chunk_size)]

