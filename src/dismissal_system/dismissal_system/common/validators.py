from __future__ import annotations

from enum import Enum
from typing import Type, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: str | None, field_name: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(f"{field_name} is required")
    return text


def require_enum(value: str | None, enum_cls: Type[E], field_name: str) -> E:
    raw = require_non_empty(value, field_name)
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")
