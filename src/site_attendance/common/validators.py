from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def normalize_username(value: Optional[str]) -> str:
    """Usernames are case-insensitive keys; store and look up in lowercase."""
    return require_non_empty(value, "Username").lower()


def normalize_company_id(value: Optional[str]) -> str:
    return (value or "").strip().upper()


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def is_email(contact: str) -> bool:
    return "@" in contact
