from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import DismissalStatus
from .model import DismissalRecord, NewDismissalRecord, Queue, RecordFilter, StatusChange, TransitionMeta


class QueueRepository(Protocol):
    """Queue Store access contract.

    Every multi-row write (``upsert_dismissal_records``,
    ``bulk_update_dismissal_status`` and the cascade inside ``close_queue``)
    is atomic: all targeted rows change or none do.
    """

    def get_open_queue(self) -> Optional[Queue]:
        raise NotImplementedError

    def get_queue(self, queue_id: str) -> Optional[Queue]:
        raise NotImplementedError

    def create_queue(self, queue_id: str, started_by: str, *, now: datetime) -> Queue:
        """Raises ``AlreadyExists`` or ``ConflictOpenQueue``."""

        raise NotImplementedError

    def close_queue(
        self,
        queue_id: str,
        closed_by: str,
        *,
        cascade_from: DismissalStatus,
        cascade_to: DismissalStatus,
        cascade_meta: TransitionMeta,
    ) -> Tuple[Queue, int]:
        """Move every ``cascade_from`` record to ``cascade_to`` and close the queue, as one unit.

        Returns the closed queue and the number of cascaded records.
        Raises ``QueueNotFound`` or ``NotOpen``.
        """

        raise NotImplementedError

    def delete_queue(self, queue_id: str) -> None:
        """Removes the queue and all its records. Raises ``QueueNotFound``."""

        raise NotImplementedError

    def list_queues(self) -> Sequence[Queue]:
        """Most-recent-first."""

        raise NotImplementedError

    def upsert_dismissal_records(
        self, queue_id: str, records: Sequence[NewDismissalRecord], *, actor: str, now: datetime
    ) -> int:
        """Insert missing (queue_id, student_id) rows as Standby; returns how many were new."""

        raise NotImplementedError

    def get_dismissal_record(self, queue_id: str, student_id: str) -> Optional[DismissalRecord]:
        raise NotImplementedError

    def get_dismissal_records(self, queue_id: str, record_filter: RecordFilter | None = None) -> Sequence[DismissalRecord]:
        raise NotImplementedError

    def update_dismissal_status(
        self,
        queue_id: str,
        student_id: str,
        new_status: DismissalStatus,
        meta: TransitionMeta,
        *,
        expected_status: DismissalStatus | None = None,
    ) -> Optional[DismissalRecord]:
        """Write one record's status.

        With ``expected_status`` the write is a compare-and-set and returns None
        when the stored status differs. Raises ``RecordNotFound``.
        """

        raise NotImplementedError

    def bulk_update_dismissal_status(
        self,
        queue_id: str,
        record_filter: RecordFilter,
        new_status: DismissalStatus,
        meta: TransitionMeta,
    ) -> int:
        """Raises ``QueueNotFound`` or ``NotOpen``; serialized with ``close_queue`` per queue."""

        raise NotImplementedError

    def get_status_history(self, queue_id: str, student_id: str, *, limit: int) -> Sequence[StatusChange]:
        raise NotImplementedError
