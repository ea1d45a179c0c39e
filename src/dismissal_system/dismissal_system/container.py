from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .admission.capture import ContinuousScanner, parse_camera_source
from .admission.credentials import CredentialService
from .admission.decoder import decode_qr, decode_qr_bytes
from .admission.service import AdmissionService
from .aggregation.service import AggregationService
from .core.constants import (
    DEFAULT_CAPTURE_MAX_FAILED_READS,
    DEFAULT_COUNTS_POLL_SECONDS,
    DEFAULT_SCAN_BUILDING,
    DEFAULT_SCHOOL_TIMEZONE,
)
from .database.connection import DBConfig, DatabaseConnection
from .parents.mysql_parent_repository import MySQLParentRepository
from .parents.repository import ParentDirectory
from .queue.mysql_queue_repository import MySQLQueueRepository
from .queue.repository import QueueRepository
from .queue.service import QueueLifecycleService
from .queue.status_service import DismissalStatusService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentDirectory


@dataclass(frozen=True)
class AppSettings:
    school_timezone: str = DEFAULT_SCHOOL_TIMEZONE
    scan_building: str = DEFAULT_SCAN_BUILDING
    counts_poll_seconds: float = DEFAULT_COUNTS_POLL_SECONDS
    camera_source: Optional[str] = None
    capture_max_failed_reads: int = DEFAULT_CAPTURE_MAX_FAILED_READS


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    settings: AppSettings

    students_repo: StudentDirectory
    parents_repo: ParentDirectory
    queues_repo: QueueRepository

    queue_service: QueueLifecycleService
    status_service: DismissalStatusService
    admission_service: AdmissionService
    credential_service: CredentialService
    aggregation_service: AggregationService


def wire_services(
    *,
    students_repo: StudentDirectory,
    parents_repo: ParentDirectory,
    queues_repo: QueueRepository,
    settings: AppSettings | None = None,
    conn: DatabaseConnection | None = None,
    scanner: ContinuousScanner | None = None,
) -> Container:
    """Build the services on top of the given repositories (MySQL or in-memory)."""
    settings = settings or AppSettings()
    tz_name = settings.school_timezone

    queue_service = QueueLifecycleService(queues_repo, students_repo, tz_name=tz_name)
    status_service = DismissalStatusService(queues_repo, tz_name=tz_name)
    admission_service = AdmissionService(
        queues_repo,
        students_repo,
        status_service,
        image_decoder=decode_qr_bytes,
        scanner=scanner,
        scan_building=settings.scan_building,
    )
    credential_service = CredentialService(parents_repo)
    aggregation_service = AggregationService(queues_repo)

    return Container(
        conn=conn,
        settings=settings,
        students_repo=students_repo,
        parents_repo=parents_repo,
        queues_repo=queues_repo,
        queue_service=queue_service,
        status_service=status_service,
        admission_service=admission_service,
        credential_service=credential_service,
        aggregation_service=aggregation_service,
    )


def build_container(*, db_config: dict, settings: AppSettings | None = None) -> Container:
    settings = settings or AppSettings()
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    scanner = None
    if settings.camera_source is not None:
        scanner = ContinuousScanner(
            decode_qr,
            source=parse_camera_source(settings.camera_source),
            max_failed_reads=settings.capture_max_failed_reads,
        )

    return wire_services(
        students_repo=MySQLStudentRepository(conn),
        parents_repo=MySQLParentRepository(conn),
        queues_repo=MySQLQueueRepository(conn),
        settings=settings,
        conn=conn,
        scanner=scanner,
    )
