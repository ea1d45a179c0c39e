from __future__ import annotations

from datetime import date

import pytest

from src.dismissal_system.dismissal_system.admission.credentials import CredentialService
from src.dismissal_system.dismissal_system.admission.parser import parse_contact
from src.dismissal_system.dismissal_system.core.enums import ContactKind
from src.dismissal_system.dismissal_system.core.exceptions import NotFoundError, ValidationError
from src.dismissal_system.dismissal_system.parents.model import Parent

from tests.fakes import InMemoryParents

DAY = date(2024, 12, 2)


def _service():
    return CredentialService(
        InMemoryParents(
            {
                "p0001": Parent("p0001", "Amina Yusuf", "555-0101", "Omar Yusuf", "555-0199"),
                "p0002": Parent("p0002", "No Phone"),
            }
        )
    )


def test_parent_credential_text():
    text = _service().credential_text("p0001", day=DAY)
    assert text == "Name: Amina Yusuf\nPhone: 555-0101\nParent ID: p0001\nDate: 12/2/2024"


def test_alternate_credential_uses_alternate_phone():
    contact = parse_contact(_service().credential_text("p0001", day=DAY, alternate_name="Omar Yusuf"))
    assert contact.contact_kind == ContactKind.ALTERNATE
    assert contact.phone == "555-0199"
    assert contact.parent_id == "p0001"


def test_other_alternate_falls_back_to_parent_phone():
    contact = parse_contact(_service().credential_text("p0001", day=DAY, alternate_name="Grandma"))
    assert contact.display_name == "Grandma"
    assert contact.phone == "555-0101"


def test_unknown_parent_and_missing_phone():
    with pytest.raises(NotFoundError):
        _service().credential_text("p9999", day=DAY)
    with pytest.raises(ValidationError):
        _service().credential_text("p0002", day=DAY)


def test_png_rendering():
    png = _service().credential_png("p0001", day=DAY)
    assert png.startswith(b"\x89PNG\r\n\x1a\n")
