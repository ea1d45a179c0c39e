from __future__ import annotations

from enum import Enum


class QueueStatus(str, Enum):
    """Status of the single daily queue."""

    OPEN = "Open"
    CLOSED = "Closed"


class DismissalStatus(str, Enum):
    """Per-student pickup status persisted in the database."""

    STANDBY = "Standby"
    IN_QUEUE = "InQueue"
    RELEASED = "Released"
    COLLECTED = "Collected"
    UNKNOWN = "Unknown"
    NO_SHOW = "NoShow"
    EARLY_DISMISSAL = "EarlyDismissal"
    DIRECT_PICKUP = "DirectPickup"
    LATE_PICKUP = "LatePickup"
    AFTER_CARE = "AfterCare"


class AdmissionMethod(str, Enum):
    """How the last non-initial transition was triggered."""

    QR_SCAN = "QRScan"
    MANUAL = "Manual"
    BULK_GRADE = "BulkGrade"

    @property
    def is_automatic(self) -> bool:
        return self is AdmissionMethod.QR_SCAN


class ContactKind(str, Enum):
    PARENT = "Parent"
    ALTERNATE = "Alternate"


class ActionKind(str, Enum):
    """Actions accepted by the status state machine."""

    ADMIT = "admit"
    RELEASE = "release"
    COLLECT = "collect"
    QUEUE_CLOSED = "queueClosed"
    MANUAL_OVERRIDE = "manualOverride"


class EnrollmentStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
