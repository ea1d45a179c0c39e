from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..core.enums import ContactKind


@dataclass(frozen=True)
class ParentContact:
    """Credential shown by the parent in person."""

    name: str
    phone: str
    parent_id: Optional[str] = None
    date: Optional[str] = None

    contact_kind = ContactKind.PARENT

    @property
    def display_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class AlternateContact:
    """Credential carried by someone picking up on a parent's behalf."""

    parent_name: str
    alternate_name: str
    phone: str
    parent_id: Optional[str] = None
    date: Optional[str] = None

    contact_kind = ContactKind.ALTERNATE

    @property
    def display_name(self) -> str:
        return self.alternate_name


ContactDescriptor = Union[ParentContact, AlternateContact]


@dataclass(frozen=True)
class AdmissionResult:
    """Per-student tally of one credential's admission."""

    parent_id: str
    contact_kind: ContactKind
    contact_display_name: str
    admitted_student_ids: List[str] = field(default_factory=list)
    already_in_queue_ids: List[str] = field(default_factory=list)
    failed_student_ids: List[str] = field(default_factory=list)
    failures: dict = field(default_factory=dict)

    @property
    def admitted_count(self) -> int:
        # Repeats of an earlier scan count as admitted.
        return len(self.admitted_student_ids) + len(self.already_in_queue_ids)

    def to_dict(self) -> dict:
        return {
            "admittedCount": self.admitted_count,
            "failedStudentIds": list(self.failed_student_ids),
            "admittedStudentIds": list(self.admitted_student_ids),
            "alreadyInQueueIds": list(self.already_in_queue_ids),
            "failures": dict(self.failures),
            "parentId": self.parent_id,
            "contactKind": self.contact_kind.value,
            "contactDisplayName": self.contact_display_name,
        }
