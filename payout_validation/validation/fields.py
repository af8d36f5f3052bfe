"""Generic field, type and date helpers shared by the validation rules.

Batches arrive as untrusted plain data. Every rule reads values through
these helpers so that a malformed field degrades to "absent" instead of
raising, which lets later rules keep running on partial data.
"""

import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any

from thefuzz import fuzz, process

ZERO = Decimal("0")


def is_missing(value: Any) -> bool:
    """True for values a JSON payload would express as absent or null."""
    return value is None


def is_number(value: Any) -> bool:
    """True for finite int/float/Decimal values (bools are not numbers)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, float):
        return math.isfinite(value)
    return False


def to_decimal(value: Any) -> Decimal | None:
    """Convert a numeric value to Decimal, or None if it is not a number.

    Floats go through ``str`` so 0.1 stays 0.1 instead of its binary
    expansion; tolerance comparisons depend on that.
    """
    if not is_number(value):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def amount(data: Any, field: str) -> Decimal | None:
    """Read a numeric field from a mapping as Decimal."""
    if not isinstance(data, Mapping):
        return None
    return to_decimal(data.get(field))


def amount_or_zero(data: Any, field: str) -> Decimal:
    value = amount(data, field)
    return ZERO if value is None else value


def is_multiple_of(value: Decimal, multiple: Decimal) -> bool:
    """True when ``value`` is a whole multiple of ``multiple``, at any magnitude.

    The remainder is taken with enough precision for the integer quotient,
    so amounts far beyond the default 28 digits do not raise.
    """
    if not value.is_finite() or not multiple:
        return False
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() - multiple.adjusted() + 2)
        return value % multiple == ZERO


def decimal_places(value: Any) -> int:
    """Number of digits after the decimal point of a numeric value."""
    number = to_decimal(value)
    if number is None:
        return 0
    exponent = number.as_tuple().exponent
    if not isinstance(exponent, int) or exponent >= 0:
        return 0
    return -exponent


def parse_datetime(value: Any) -> datetime | None:
    """Parse a date/datetime/ISO-8601 string into a naive UTC datetime.

    Returns None for anything unparseable. Aware values are converted to
    UTC so naive and aware inputs can be compared.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def line_items(batch: Mapping[str, Any]) -> list[tuple[int, Mapping[str, Any]]]:
    """Return (index, item) pairs for the well-formed entries of ``payouts``.

    A non-list ``payouts`` yields nothing; non-mapping entries are skipped
    (the structural validator reports them).
    """
    payouts = batch.get("payouts")
    if not isinstance(payouts, list):
        return []
    return [(i, p) for i, p in enumerate(payouts) if isinstance(p, Mapping)]


def payout_count(batch: Mapping[str, Any]) -> int:
    payouts = batch.get("payouts")
    return len(payouts) if isinstance(payouts, list) else 0


def text(data: Mapping[str, Any], field: str) -> str | None:
    """Read a non-empty string field, or None."""
    value = data.get(field)
    if isinstance(value, str) and value.strip():
        return value
    return None


def item_currency(item: Mapping[str, Any], default: str | None) -> str | None:
    """Line-item currency, falling back to the batch currency when unset."""
    return text(item, "currency") or default


def suggest(value: Any, choices: list[str], threshold: int) -> str | None:
    """Closest recognized choice for a mistyped enumerated value."""
    if not isinstance(value, str) or not value.strip() or not choices:
        return None
    match = process.extractOne(
        value.strip().lower(),
        choices,
        scorer=fuzz.ratio,
        score_cutoff=threshold,
    )
    return match[0] if match else None


def did_you_mean(value: Any, choices: list[str], threshold: int) -> str:
    """Message suffix naming the closest recognized value, if any."""
    candidate = suggest(value, choices, threshold)
    return f" (did you mean '{candidate}'?)" if candidate else ""


def money(value: Decimal | None) -> str:
    """Format an amount for messages, e.g. ``$1,250.00``."""
    if value is None:
        return "$0.00"
    return f"${value:,.2f}"
