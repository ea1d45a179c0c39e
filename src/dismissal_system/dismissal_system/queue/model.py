from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ActionKind, AdmissionMethod, ContactKind, DismissalStatus, QueueStatus


@dataclass(frozen=True)
class Queue:
    """Domain entity: the single daily pickup queue."""

    queue_id: str
    status: QueueStatus
    started_at: datetime
    started_by: str
    last_updated_at: datetime
    closed_at: Optional[datetime] = None
    closed_by: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == QueueStatus.OPEN

    def to_dict(self) -> dict:
        return {
            "queueId": self.queue_id,
            "status": self.status.value,
            "startedAt": _iso(self.started_at),
            "startedBy": self.started_by,
            "closedAt": _iso(self.closed_at),
            "closedBy": self.closed_by,
            "lastUpdatedAt": _iso(self.last_updated_at),
        }


@dataclass(frozen=True)
class NewDismissalRecord:
    """Row produced by auto-populate; always starts in Standby."""

    student_id: str
    student_name: str
    grade: str
    class_building: str
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class DismissalRecord:
    """Domain entity: one student's pickup progress within a queue."""

    queue_id: str
    student_id: str
    student_name: str
    grade: str
    class_building: str
    status: DismissalStatus
    status_changed_at: datetime
    status_changed_by: str
    parent_id: Optional[str] = None
    admission_method: Optional[AdmissionMethod] = None
    contact_id: Optional[str] = None
    contact_display_name: Optional[str] = None
    contact_kind: Optional[ContactKind] = None
    scanned_at: Optional[datetime] = None
    scanned_at_building: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "queueId": self.queue_id,
            "studentId": self.student_id,
            "studentName": self.student_name,
            "grade": self.grade,
            "classBuilding": self.class_building,
            "parentId": self.parent_id,
            "status": self.status.value,
            "admissionMethod": self.admission_method.value if self.admission_method else None,
            "contactId": self.contact_id,
            "contactDisplayName": self.contact_display_name,
            "contactKind": self.contact_kind.value if self.contact_kind else None,
            "scannedAt": _iso(self.scanned_at),
            "scannedAtBuilding": self.scanned_at_building,
            "statusChangedAt": _iso(self.status_changed_at),
            "statusChangedBy": self.status_changed_by,
        }


@dataclass(frozen=True)
class RecordFilter:
    """Predicate over a queue's records; unset fields match everything."""

    grade: Optional[str] = None
    status: Optional[DismissalStatus] = None
    parent_id: Optional[str] = None

    def matches(self, record: DismissalRecord) -> bool:
        if self.parent_id is not None and record.parent_id != self.parent_id:
            return False
        if self.grade is not None and record.grade != self.grade:
            return False
        if self.status is not None and record.status != self.status:
            return False
        return True


@dataclass(frozen=True)
class TransitionMeta:
    """Who/when/how of a status write; carried into the record and the log."""

    actor: str
    at: datetime
    action: ActionKind
    method: Optional[AdmissionMethod] = None
    contact_id: Optional[str] = None
    contact_display_name: Optional[str] = None
    contact_kind: Optional[ContactKind] = None
    scanned_at_building: Optional[str] = None

    @property
    def is_scan(self) -> bool:
        return self.method == AdmissionMethod.QR_SCAN


@dataclass(frozen=True)
class StatusChange:
    """Read-model: one row of the transition log."""

    queue_id: str
    student_id: str
    old_status: Optional[DismissalStatus]
    new_status: DismissalStatus
    action: ActionKind
    method: Optional[AdmissionMethod]
    actor: str
    changed_at: datetime

    def to_dict(self) -> dict:
        return {
            "queueId": self.queue_id,
            "studentId": self.student_id,
            "oldStatus": self.old_status.value if self.old_status else None,
            "newStatus": self.new_status.value,
            "action": self.action.value,
            "method": self.method.value if self.method else None,
            "actor": self.actor,
            "changedAt": _iso(self.changed_at),
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
