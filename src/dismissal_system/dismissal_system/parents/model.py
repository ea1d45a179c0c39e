from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Parent:
    parent_id: str
    parent_name: str
    phone: Optional[str] = None
    alternate_name: Optional[str] = None
    alternate_phone: Optional[str] = None
