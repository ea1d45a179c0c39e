"""Parser for the line-oriented ``Key: value`` QR credential text.

Parent credential::

    Name: Amina Yusuf
    Phone: (555) 123-4567
    Parent ID: p0001
    Date: 12/1/2024

Alternate credential::

    Parent: Amina Yusuf
    Alternate Pickup by: Omar Yusuf
    Phone: (555) 987-6543
    Parent ID: p0001
    Date: 12/1/2024
"""

from __future__ import annotations

from typing import Dict

from ..core.exceptions import UnrecognizedFormat
from .model import AlternateContact, ContactDescriptor, ParentContact

KNOWN_KEYS = {
    "name": "name",
    "phone": "phone",
    "parent id": "parent_id",
    "date": "date",
    "parent": "parent",
    "alternate pickup by": "alternate",
}


def _fields(raw: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        key, sep, value = line.partition(":")
        if not sep:
            raise UnrecognizedFormat(f"Line without 'key: value' form: {line!r}")
        name = KNOWN_KEYS.get(key.strip().lower())
        if name is None:
            continue
        value = value.strip()
        if value:
            fields[name] = value
    return fields


def parse_contact(raw: str | None) -> ContactDescriptor:
    """Turn decoded QR text into a Parent or Alternate contact.

    Raises ``UnrecognizedFormat`` for any other shape or a missing phone.
    """
    if not raw or not raw.strip():
        raise UnrecognizedFormat("Empty credential")

    fields = _fields(raw)
    phone = fields.get("phone")
    if not phone:
        raise UnrecognizedFormat("Credential has no Phone line")

    has_parent = "parent" in fields
    has_alternate = "alternate" in fields
    if has_parent and has_alternate:
        return AlternateContact(
            parent_name=fields["parent"],
            alternate_name=fields["alternate"],
            phone=phone,
            parent_id=fields.get("parent_id"),
            date=fields.get("date"),
        )
    if has_parent or has_alternate:
        raise UnrecognizedFormat("Alternate credential needs both Parent and Alternate Pickup by")
    if "name" in fields:
        return ParentContact(
            name=fields["name"],
            phone=phone,
            parent_id=fields.get("parent_id"),
            date=fields.get("date"),
        )
    raise UnrecognizedFormat("Credential has neither Name nor Parent/Alternate Pickup by")
