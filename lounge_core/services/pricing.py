"""Session pricing.

Pure functions, no I/O. Rates are per minute. Everything is computed in
``Decimal``; values are quantized to cents only by ``to_money``, which callers
apply before anything is persisted.
"""

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Mapping, Optional, Tuple, Union

from lounge_shared.db.models import DiscountType

from lounge_core.core.exceptions import ValidationException
from lounge_core.core.utils import ensure_utc

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0")
ONE = Decimal("1")
SECONDS_PER_MINUTE = Decimal("60")


def _as_decimal(value: Number, name: str) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationException(f"{name} is not a number: {value!r}") from e
    if not result.is_finite():
        raise ValidationException(f"{name} is not a finite number: {value!r}")
    return result


def _as_rate(value: Number, name: str) -> Decimal:
    rate = _as_decimal(value, name)
    if rate < ZERO:
        raise ValidationException(f"{name} must not be negative, got {value}")
    return rate


def to_money(value: Number) -> Decimal:
    return _as_decimal(value, "amount").quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_rate(rate: Number) -> Decimal:
    return min(ONE, max(ZERO, _as_decimal(rate, "discount_rate")))


def compute_base_price(
    game_rate: Optional[Number], controller_rates: Iterable[Number]
) -> Decimal:
    total = ZERO if game_rate is None else _as_rate(game_rate, "game price_per_minute")
    for index, rate in enumerate(controller_rates):
        total += _as_rate(rate, f"controller[{index}] price_per_minute")
    return total


def discount_rate_for(
    membership_type: str,
    discount_config: Mapping[Tuple[str, str], Number],
    discount_type: str = DiscountType.DEVICES,
) -> Decimal:
    """Configured rate for (membership_type, discount_type); 0 when unconfigured."""
    rate = discount_config.get((membership_type, discount_type))
    if rate is None:
        return ZERO
    return clamp_rate(rate)


def compute_final_price(base_price: Number, discount_rate: Number) -> Decimal:
    base = _as_rate(base_price, "base_price")
    return base * (ONE - clamp_rate(discount_rate))


def elapsed_seconds(start_time: datetime, as_of: datetime) -> int:
    delta = ensure_utc(as_of) - ensure_utc(start_time)
    return max(0, math.floor(delta.total_seconds()))


def elapsed_minutes(start_time: datetime, as_of: datetime) -> Decimal:
    """Fractional minutes from whole elapsed seconds, for live display."""
    return Decimal(elapsed_seconds(start_time, as_of)) / SECONDS_PER_MINUTE


def whole_minutes(start_time: datetime, end_time: datetime) -> int:
    """Billable minutes at close; a started minute is never charged."""
    return elapsed_seconds(start_time, end_time) // 60


def compute_elapsed_cost(
    start_time: datetime, as_of: datetime, final_price_per_minute: Number
) -> Decimal:
    price = _as_rate(final_price_per_minute, "final_price")
    return elapsed_minutes(start_time, as_of) * price


def compute_total_amount(
    start_time: datetime, end_time: datetime, final_price_per_minute: Number
) -> Decimal:
    price = _as_rate(final_price_per_minute, "final_price")
    return to_money(whole_minutes(start_time, end_time) * price)
