"""
Small shared helpers for amounts and timestamps.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so everything stays naive."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_iso() -> str:
    return date.today().isoformat()


def parse_amount(value: Any) -> float:
    """Parse a numeric string (or number); anything unparsable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(str(value).strip())
    except ValueError:
        return 0.0
    if amount != amount or amount in (float("inf"), float("-inf")):
        return 0.0
    return amount


def format_amount(value: float) -> str:
    return f"{value:.2f}"


def parse_date(value: Any) -> datetime | None:
    """Best-effort parse of an ISO date/datetime string or datetime object."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def amount_str(value: float | None) -> str | None:
    """Render a model-extracted number as a plain numeric string (10.0 -> "10")."""
    if value is None:
        return None
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text
