from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence, Tuple

from mysql.connector.errors import IntegrityError

from ..core.enums import ActionKind, AdmissionMethod, ContactKind, DismissalStatus, QueueStatus
from ..core.exceptions import AlreadyExists, ConflictOpenQueue, NotOpen, QueueNotFound, RecordNotFound
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, is_duplicate_key
from .model import DismissalRecord, NewDismissalRecord, Queue, RecordFilter, StatusChange, TransitionMeta
from .repository import QueueRepository

_QUEUE_COLUMNS = "queue_id, status, started_at, started_by, closed_at, closed_by, last_updated_at"
_RECORD_COLUMNS = (
    "queue_id, student_id, student_name, grade, class_building, parent_id, status, admission_method, "
    "contact_id, contact_display_name, contact_kind, scanned_at, scanned_at_building, "
    "status_changed_at, status_changed_by"
)


def _to_queue(r: dict) -> Queue:
    return Queue(
        queue_id=str(r["queue_id"]),
        status=QueueStatus(r["status"]),
        started_at=r["started_at"],
        started_by=r["started_by"],
        closed_at=r.get("closed_at"),
        closed_by=r.get("closed_by"),
        last_updated_at=r["last_updated_at"],
    )


def _to_record(r: dict) -> DismissalRecord:
    return DismissalRecord(
        queue_id=str(r["queue_id"]),
        student_id=str(r["student_id"]),
        student_name=r.get("student_name") or "",
        grade=str(r["grade"]),
        class_building=r.get("class_building") or "",
        parent_id=r.get("parent_id"),
        status=DismissalStatus(r["status"]),
        admission_method=AdmissionMethod(r["admission_method"]) if r.get("admission_method") else None,
        contact_id=r.get("contact_id"),
        contact_display_name=r.get("contact_display_name"),
        contact_kind=ContactKind(r["contact_kind"]) if r.get("contact_kind") else None,
        scanned_at=r.get("scanned_at"),
        scanned_at_building=r.get("scanned_at_building"),
        status_changed_at=r["status_changed_at"],
        status_changed_by=r["status_changed_by"],
    )


def _filter_sql(record_filter: RecordFilter | None) -> Tuple[str, list]:
    clauses: list[str] = []
    params: list[object] = []
    if record_filter is not None:
        if record_filter.grade is not None:
            clauses.append("grade=%s")
            params.append(record_filter.grade)
        if record_filter.status is not None:
            clauses.append("status=%s")
            params.append(record_filter.status.value)
        if record_filter.parent_id is not None:
            clauses.append("parent_id=%s")
            params.append(record_filter.parent_id)
    return "".join(f" AND {c}" for c in clauses), params


class MySQLQueueRepository(QueueRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # ----- queues -----

    def get_open_queue(self) -> Optional[Queue]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_QUEUE_COLUMNS} FROM queues WHERE status=%s", (QueueStatus.OPEN.value,))
            r = fetchone(cur)
            return _to_queue(r) if r else None

    def get_queue(self, queue_id: str) -> Optional[Queue]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_QUEUE_COLUMNS} FROM queues WHERE queue_id=%s", (queue_id,))
            r = fetchone(cur)
            return _to_queue(r) if r else None

    def create_queue(self, queue_id: str, started_by: str, *, now: datetime) -> Queue:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT queue_id, status FROM queues WHERE queue_id=%s FOR UPDATE", (queue_id,))
            if fetchone(cur):
                raise AlreadyExists(f"Queue {queue_id} already exists")
            try:
                cur.execute(
                    """
                    INSERT INTO queues(queue_id, status, started_at, started_by, last_updated_at)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (queue_id, QueueStatus.OPEN.value, now, started_by, now),
                )
            except IntegrityError as e:
                if is_duplicate_key(e, index_name="uq_queues_single_open"):
                    raise ConflictOpenQueue("Another queue is already open") from e
                if is_duplicate_key(e):
                    raise AlreadyExists(f"Queue {queue_id} already exists") from e
                raise
            cur.execute(f"SELECT {_QUEUE_COLUMNS} FROM queues WHERE queue_id=%s", (queue_id,))
            return _to_queue(fetchone(cur))

    def _lock_queue(self, cur, queue_id: str, *, require_open: bool) -> dict:
        cur.execute(f"SELECT {_QUEUE_COLUMNS} FROM queues WHERE queue_id=%s FOR UPDATE", (queue_id,))
        row = fetchone(cur)
        if not row:
            raise QueueNotFound(f"Queue {queue_id} not found")
        if require_open and row["status"] != QueueStatus.OPEN.value:
            raise NotOpen(f"Queue {queue_id} is not open (status: {row['status']})")
        return row

    def close_queue(
        self,
        queue_id: str,
        closed_by: str,
        *,
        cascade_from: DismissalStatus,
        cascade_to: DismissalStatus,
        cascade_meta: TransitionMeta,
    ) -> Tuple[Queue, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            self._lock_queue(cur, queue_id, require_open=True)
            cascaded = self._bulk_update(
                cur,
                queue_id,
                RecordFilter(status=cascade_from),
                cascade_to,
                cascade_meta,
            )
            cur.execute(
                """
                UPDATE queues
                SET status=%s, closed_at=%s, closed_by=%s, last_updated_at=%s
                WHERE queue_id=%s
                """,
                (QueueStatus.CLOSED.value, cascade_meta.at, closed_by, cascade_meta.at, queue_id),
            )
            cur.execute(f"SELECT {_QUEUE_COLUMNS} FROM queues WHERE queue_id=%s", (queue_id,))
            return _to_queue(fetchone(cur)), cascaded

    def delete_queue(self, queue_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            # Records and log rows go with the queue (ON DELETE CASCADE).
            cur.execute("DELETE FROM queues WHERE queue_id=%s", (queue_id,))
            if cur.rowcount == 0:
                raise QueueNotFound(f"Queue {queue_id} not found")

    def list_queues(self) -> Sequence[Queue]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_QUEUE_COLUMNS} FROM queues ORDER BY queue_id DESC")
            return [_to_queue(r) for r in fetchall(cur)]

    # ----- records -----

    def upsert_dismissal_records(
        self, queue_id: str, records: Sequence[NewDismissalRecord], *, actor: str, now: datetime
    ) -> int:
        if not records:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            self._lock_queue(cur, queue_id, require_open=False)
            ids = [r.student_id for r in records]
            cur.execute(
                f"SELECT student_id FROM dismissal_records WHERE queue_id=%s AND student_id IN ({in_clause(ids)})",
                (queue_id, *ids),
            )
            existing = {str(r["student_id"]) for r in fetchall(cur)}

            # Existing rows keep their status; only directory fields are refreshed.
            cur.executemany(
                """
                INSERT INTO dismissal_records(
                    queue_id, student_id, student_name, grade, class_building, parent_id,
                    status, status_changed_at, status_changed_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    student_name=VALUES(student_name),
                    grade=VALUES(grade),
                    class_building=VALUES(class_building),
                    parent_id=VALUES(parent_id)
                """,
                [
                    (
                        queue_id,
                        r.student_id,
                        r.student_name,
                        r.grade,
                        r.class_building,
                        r.parent_id,
                        DismissalStatus.STANDBY.value,
                        now,
                        actor,
                    )
                    for r in records
                ],
            )
            return len(set(ids) - existing)

    def get_dismissal_record(self, queue_id: str, student_id: str) -> Optional[DismissalRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM dismissal_records WHERE queue_id=%s AND student_id=%s",
                (queue_id, student_id),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_dismissal_records(self, queue_id: str, record_filter: RecordFilter | None = None) -> Sequence[DismissalRecord]:
        where, params = _filter_sql(record_filter)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM dismissal_records
                WHERE queue_id=%s{where}
                ORDER BY grade, student_name, student_id
                """,
                (queue_id, *params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def update_dismissal_status(
        self,
        queue_id: str,
        student_id: str,
        new_status: DismissalStatus,
        meta: TransitionMeta,
        *,
        expected_status: DismissalStatus | None = None,
    ) -> Optional[DismissalRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT status FROM dismissal_records WHERE queue_id=%s AND student_id=%s FOR UPDATE",
                (queue_id, student_id),
            )
            row = fetchone(cur)
            if not row:
                raise RecordNotFound(f"No dismissal record for student {student_id} in queue {queue_id}")
            old_status = DismissalStatus(row["status"])
            if expected_status is not None and old_status != expected_status:
                return None

            sets = ["status=%s", "status_changed_at=%s", "status_changed_by=%s"]
            params: list[object] = [new_status.value, meta.at, meta.actor]
            if meta.method is not None:
                sets.append("admission_method=%s")
                params.append(meta.method.value)
            if meta.contact_id is not None:
                sets += ["contact_id=%s", "contact_display_name=%s", "contact_kind=%s"]
                params += [
                    meta.contact_id,
                    meta.contact_display_name,
                    meta.contact_kind.value if meta.contact_kind else None,
                ]
            if meta.is_scan:
                sets += ["scanned_at=%s", "scanned_at_building=%s"]
                params += [meta.at, meta.scanned_at_building]

            cur.execute(
                f"UPDATE dismissal_records SET {', '.join(sets)} WHERE queue_id=%s AND student_id=%s",
                (*params, queue_id, student_id),
            )
            self._log(cur, queue_id, student_id, old_status, new_status, meta)

            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM dismissal_records WHERE queue_id=%s AND student_id=%s",
                (queue_id, student_id),
            )
            return _to_record(fetchone(cur))

    def bulk_update_dismissal_status(
        self,
        queue_id: str,
        record_filter: RecordFilter,
        new_status: DismissalStatus,
        meta: TransitionMeta,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            self._lock_queue(cur, queue_id, require_open=True)
            return self._bulk_update(cur, queue_id, record_filter, new_status, meta)

    def _bulk_update(
        self,
        cur,
        queue_id: str,
        record_filter: RecordFilter,
        new_status: DismissalStatus,
        meta: TransitionMeta,
    ) -> int:
        where, params = _filter_sql(record_filter)
        cur.execute(
            f"SELECT student_id, status FROM dismissal_records WHERE queue_id=%s{where} FOR UPDATE",
            (queue_id, *params),
        )
        targets = [(str(r["student_id"]), DismissalStatus(r["status"])) for r in fetchall(cur)]
        if not targets:
            return 0

        sets = ["status=%s", "status_changed_at=%s", "status_changed_by=%s"]
        set_params: list[object] = [new_status.value, meta.at, meta.actor]
        if meta.method is not None:
            sets.append("admission_method=%s")
            set_params.append(meta.method.value)

        ids = [student_id for student_id, _ in targets]
        cur.execute(
            f"""
            UPDATE dismissal_records
            SET {', '.join(sets)}
            WHERE queue_id=%s AND student_id IN ({in_clause(ids)})
            """,
            (*set_params, queue_id, *ids),
        )
        for student_id, old_status in targets:
            self._log(cur, queue_id, student_id, old_status, new_status, meta)
        return len(targets)

    @staticmethod
    def _log(
        cur,
        queue_id: str,
        student_id: str,
        old_status: Optional[DismissalStatus],
        new_status: DismissalStatus,
        meta: TransitionMeta,
    ) -> None:
        cur.execute(
            """
            INSERT INTO dismissal_status_log(queue_id, student_id, old_status, new_status, action, method, actor, changed_at)
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                queue_id,
                student_id,
                old_status.value if old_status else None,
                new_status.value,
                meta.action.value,
                meta.method.value if meta.method else None,
                meta.actor,
                meta.at,
            ),
        )

    def get_status_history(self, queue_id: str, student_id: str, *, limit: int) -> Sequence[StatusChange]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT queue_id, student_id, old_status, new_status, action, method, actor, changed_at
                FROM dismissal_status_log
                WHERE queue_id=%s AND student_id=%s
                ORDER BY changed_at DESC, log_id DESC
                LIMIT %s
                """,
                (queue_id, student_id, int(limit)),
            )
            return [
                StatusChange(
                    queue_id=str(r["queue_id"]),
                    student_id=str(r["student_id"]),
                    old_status=DismissalStatus(r["old_status"]) if r.get("old_status") else None,
                    new_status=DismissalStatus(r["new_status"]),
                    action=ActionKind(r["action"]),
                    method=AdmissionMethod(r["method"]) if r.get("method") else None,
                    actor=r["actor"],
                    changed_at=r["changed_at"],
                )
                for r in fetchall(cur)
            ]
