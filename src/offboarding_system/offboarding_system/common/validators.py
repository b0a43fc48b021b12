from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValidationError("Text fields must be strings")
    return (value or "").strip() or None


def require_unique_ids(values: Optional[Sequence[int]], field_name: str) -> list[int]:
    if values is not None and not isinstance(values, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list")
    if not values:
        raise ValidationError(f"{field_name} are required")
    # bool is an int subclass
    if any(isinstance(v, bool) or not isinstance(v, int) for v in values):
        raise ValidationError(f"{field_name} must be integers")
    ids = list(values)
    if len(set(ids)) != len(ids):
        raise ValidationError(f"{field_name} must not contain duplicates")
    return ids


def normalize_paging(page: int, limit: int) -> tuple[int, int]:
    try:
        page = int(page)
        limit = int(limit)
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        limit = DEFAULT_PAGE_SIZE
    return page, min(limit, MAX_PAGE_SIZE)


def optional_int(value: Optional[str], field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
