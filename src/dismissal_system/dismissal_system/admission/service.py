from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_SCAN_ACTOR, DEFAULT_SCAN_BUILDING
from ..core.enums import AdmissionMethod
from ..core.exceptions import CaptureError, DomainError, MissingParentId, NoOpenQueue, NoStudentsForParent, QrNotFound
from ..queue.repository import QueueRepository
from ..queue.state_machine import Action
from ..queue.status_service import ContactInfo, DismissalStatusService
from ..students.repository import StudentDirectory
from .capture import ContinuousScanner
from .model import AdmissionResult, ContactDescriptor
from .parser import parse_contact

logger = logging.getLogger(__name__)


class AdmissionService:
    """QR credential -> contact -> parent's students -> admit each one.

    Stages are separate methods so each can be driven on its own; every
    validation failure is raised before the first write.
    """

    def __init__(
        self,
        queues: QueueRepository,
        students: StudentDirectory,
        status_service: DismissalStatusService,
        *,
        image_decoder: Callable[[bytes], Optional[str]] | None = None,
        scanner: ContinuousScanner | None = None,
        scan_building: str = DEFAULT_SCAN_BUILDING,
    ):
        self._queues = queues
        self._students = students
        self._status = status_service
        self._image_decoder = image_decoder
        self._scanner = scanner
        self._scan_building = scan_building

    # ----- stages -----

    def decode_image(self, data: bytes) -> str:
        if not data:
            raise QrNotFound("Empty image upload")
        if self._image_decoder is None:
            raise QrNotFound("No image decoder configured")
        text = self._image_decoder(data)
        if not text:
            raise QrNotFound("No QR code detected in the image")
        return text

    def resolve(self, contact: ContactDescriptor):
        """Parent id and that parent's students; no fuzzy matching on name or phone."""
        if not contact.parent_id:
            raise MissingParentId("Credential has no Parent ID; admit this pickup manually")
        students = list(self._students.students_by_parent(contact.parent_id))
        if not students:
            raise NoStudentsForParent(f"No students found for parent {contact.parent_id}")
        return contact.parent_id, students

    def admit_contact(
        self,
        contact: ContactDescriptor,
        *,
        actor: str = DEFAULT_SCAN_ACTOR,
        building: str | None = None,
        now: datetime | None = None,
    ) -> AdmissionResult:
        actor = require_non_empty(actor, "actor")
        parent_id, students = self.resolve(contact)

        queue = self._queues.get_open_queue()
        if not queue:
            raise NoOpenQueue("No open queue; start today's queue before scanning")

        result = AdmissionResult(
            parent_id=parent_id,
            contact_kind=contact.contact_kind,
            contact_display_name=contact.display_name,
        )
        info = ContactInfo(contact_id=parent_id, display_name=contact.display_name, kind=contact.contact_kind)
        for student in students:
            try:
                outcome = self._status.apply(
                    queue_id=queue.queue_id,
                    student_id=student.student_id,
                    action=Action.admit(),
                    actor=actor,
                    method=AdmissionMethod.QR_SCAN,
                    contact=info,
                    scanned_at_building=building or self._scan_building,
                    now=now,
                )
            except DomainError as e:
                logger.warning(
                    "admit failed for student %s (parent %s, queue %s): %s",
                    student.student_id,
                    parent_id,
                    queue.queue_id,
                    e,
                )
                result.failed_student_ids.append(student.student_id)
                result.failures[student.student_id] = e.code
                continue

            if outcome.changed:
                result.admitted_student_ids.append(student.student_id)
            else:
                result.already_in_queue_ids.append(student.student_id)

        logger.info(
            "credential for parent %s (%s %s): admitted=%d failed=%d",
            parent_id,
            contact.contact_kind.value,
            contact.display_name,
            result.admitted_count,
            len(result.failed_student_ids),
        )
        return result

    # ----- entry points -----

    def admit_raw_text(
        self,
        raw: str,
        *,
        actor: str = DEFAULT_SCAN_ACTOR,
        building: str | None = None,
        now: datetime | None = None,
    ) -> AdmissionResult:
        return self.admit_contact(parse_contact(raw), actor=actor, building=building, now=now)

    def admit_image(
        self,
        data: bytes,
        *,
        actor: str = DEFAULT_SCAN_ACTOR,
        building: str | None = None,
        now: datetime | None = None,
    ) -> AdmissionResult:
        return self.admit_raw_text(self.decode_image(data), actor=actor, building=building, now=now)

    def scan_from_camera(
        self,
        *,
        actor: str = DEFAULT_SCAN_ACTOR,
        cancel: threading.Event | None = None,
        building: str | None = None,
    ) -> Optional[AdmissionResult]:
        """Scan frames until a credential decodes, then admit it. None if cancelled."""
        if self._scanner is None:
            raise CaptureError("No capture device configured")
        raw = self._scanner.scan(cancel, accept=parse_contact)
        if raw is None:
            return None
        return self.admit_raw_text(raw, actor=actor, building=building)
