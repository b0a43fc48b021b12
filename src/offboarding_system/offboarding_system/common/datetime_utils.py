from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")
    v = value.strip()
    return parse_iso_date(v) if v else None


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so services can take it as an injectable clock.
    """
    return datetime.now()


def format_date(value: Optional[date]) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else None
