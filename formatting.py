"""Display strings for token counts, costs and timestamps."""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

_ONE_DP = Decimal("0.1")
_TWO_DP = Decimal("0.01")


def _round_half_up(value: Decimal, places: Decimal) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


def format_token_count(n: int) -> str:
    """Compact token count: ``999``, ``1.2K``, ``1.5M``.

    Values just under a million stay in thousands (``999_999`` -> ``1000.0K``).
    """
    if n >= 1_000_000:
        return f"{_round_half_up(Decimal(n) / 1_000_000, _ONE_DP)}M"
    if n >= 1_000:
        return f"{_round_half_up(Decimal(n) / 1_000, _ONE_DP)}K"
    return str(n)


def format_currency(amount: float) -> str:
    if 0 < amount < 0.01:
        return "<$0.01"
    return f"${_round_half_up(Decimal(str(amount)), _TWO_DP)}"


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_relative_time(timestamp: str | datetime, now: datetime | None = None) -> str:
    """Elapsed time since ``timestamp`` in the largest whole unit.

    Future timestamps (clock skew) read as ``just now``.
    """
    now = _parse_timestamp(now or datetime.now(timezone.utc))
    seconds = (now - _parse_timestamp(timestamp)).total_seconds()
    minutes = int(seconds // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"
