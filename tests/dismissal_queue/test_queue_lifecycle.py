from __future__ import annotations

from datetime import timedelta

import pytest

from src.dismissal_system.dismissal_system.core.enums import ActionKind, DismissalStatus, QueueStatus
from src.dismissal_system.dismissal_system.core.exceptions import (
    ConflictOpenQueue,
    DuplicateForToday,
    NoOpenQueue,
    QueueNotFound,
    ValidationError,
)
from src.dismissal_system.dismissal_system.queue.model import TransitionMeta
from src.dismissal_system.dismissal_system.queue.service import QueueLifecycleService

from tests.fakes import NOW, InMemoryQueues, InMemoryStudents, student


def _service(students=None):
    queues = InMemoryQueues()
    directory = InMemoryStudents(
        students
        if students is not None
        else [
            student("s1", grade="3"),
            student("s2", grade="3"),
            student("s3", grade="4"),
            student("s4", grade="4", active=False),
        ]
    )
    return QueueLifecycleService(queues, directory), queues


def test_start_populates_only_active_and_present_students():
    svc, queues = _service()
    queue = svc.start_daily_queue("office", now=NOW)

    assert queue.queue_id == "20241202"
    assert queue.status == QueueStatus.OPEN
    records = queues.get_dismissal_records(queue.queue_id)
    assert [r.student_id for r in records] == ["s1", "s2", "s3"]
    assert {r.status for r in records} == {DismissalStatus.STANDBY}


def test_absent_students_are_left_out():
    svc, queues = _service([student("s1"), student("s2", present=False)])
    queue = svc.start_daily_queue("office", now=NOW)
    assert [r.student_id for r in queues.get_dismissal_records(queue.queue_id)] == ["s1"]


def test_start_refused_while_another_queue_is_open():
    svc, queues = _service()
    svc.start_daily_queue("office", now=NOW - timedelta(days=1))

    with pytest.raises(ConflictOpenQueue):
        svc.start_daily_queue("office", now=NOW)
    assert len(queues.list_queues()) == 1


def test_start_refused_when_todays_queue_already_exists_closed():
    svc, queues = _service()
    svc.start_daily_queue("office", now=NOW)
    svc.close_open_queue("office", now=NOW)
    before = queues.get_queue("20241202")

    with pytest.raises(DuplicateForToday):
        svc.start_daily_queue("office", now=NOW)
    assert queues.get_queue("20241202") == before
    assert len(queues.list_queues()) == 1


def test_delete_then_restart_same_day():
    svc, queues = _service()
    svc.start_daily_queue("office", now=NOW)
    svc.close_open_queue("office", now=NOW)
    svc.delete_queue("20241202", "office")

    assert queues.get_dismissal_records("20241202") == []
    queue = svc.start_daily_queue("office", now=NOW)
    assert queue.is_open


def test_delete_unknown_queue():
    svc, _ = _service()
    with pytest.raises(QueueNotFound):
        svc.delete_queue("20200101", "office")


def test_auto_populate_is_idempotent():
    svc, queues = _service()
    svc.start_daily_queue("office", now=NOW)
    assert svc.auto_populate("20241202", "office", now=NOW) == 0
    assert len(queues.get_dismissal_records("20241202")) == 3


def test_close_cascades_standby_to_unknown_only():
    svc, queues = _service()
    svc.start_daily_queue("office", now=NOW)
    meta = TransitionMeta(actor="t", at=NOW, action=ActionKind.ADMIT)
    queues.update_dismissal_status("20241202", "s1", DismissalStatus.IN_QUEUE, meta)
    queues.update_dismissal_status("20241202", "s2", DismissalStatus.NO_SHOW, meta)

    closed = svc.close_open_queue("office", now=NOW)

    assert closed.status == QueueStatus.CLOSED
    assert closed.closed_by == "office"
    statuses = {r.student_id: r.status for r in queues.get_dismissal_records("20241202")}
    assert statuses == {
        "s1": DismissalStatus.IN_QUEUE,
        "s2": DismissalStatus.NO_SHOW,
        "s3": DismissalStatus.UNKNOWN,
    }
    assert svc.get_current_queue() is None


def test_close_without_open_queue():
    svc, _ = _service()
    with pytest.raises(NoOpenQueue):
        svc.close_open_queue("office", now=NOW)


def test_actor_is_required():
    svc, _ = _service()
    with pytest.raises(ValidationError):
        svc.start_daily_queue("  ", now=NOW)


def test_at_most_one_open_queue_across_operations():
    svc, queues = _service()
    days = [NOW + timedelta(days=i) for i in range(4)]
    for day in days:
        for op in ("start", "start", "close", "close"):
            try:
                if op == "start":
                    svc.start_daily_queue("office", now=day)
                else:
                    svc.close_open_queue("office", now=day)
            except (ConflictOpenQueue, DuplicateForToday, NoOpenQueue):
                pass
            assert sum(1 for q in queues.list_queues() if q.is_open) <= 1
    assert [q.queue_id for q in svc.list_queues()] == ["20241205", "20241204", "20241203", "20241202"]


def test_records_of_closed_queue_by_id():
    svc, _ = _service()
    svc.start_daily_queue("office", now=NOW)
    svc.close_open_queue("office", now=NOW)

    queue_id, records = svc.get_records(grade="4", queue_id="20241202")
    assert queue_id == "20241202"
    assert [r.student_id for r in records] == ["s3"]

    with pytest.raises(NoOpenQueue):
        svc.get_records(grade="4")


def test_populate_recovers_queue_left_empty_by_failed_start():
    svc, queues = _service()
    queues.create_queue("20241202", "office", now=NOW)
    assert queues.get_dismissal_records("20241202") == []

    queue, added = svc.populate_open_queue("office", now=NOW)
    assert (queue.queue_id, added) == ("20241202", 3)
    assert svc.populate_open_queue("office", now=NOW)[1] == 0
    assert len(queues.get_dismissal_records("20241202")) == 3


def test_populate_needs_open_queue():
    svc, _ = _service()
    with pytest.raises(NoOpenQueue):
        svc.populate_open_queue("office", now=NOW)


def test_parent_records_only_that_parents_students():
    svc, _ = _service([student("s1", parent_id="p1"), student("s2", parent_id="p2"), student("s3", parent_id="p1")])
    svc.start_daily_queue("office", now=NOW)

    queue_id, records = svc.get_parent_records("p1")
    assert queue_id == "20241202"
    assert [r.student_id for r in records] == ["s1", "s3"]


def test_malformed_queue_id_is_not_found():
    svc, _ = _service()
    with pytest.raises(QueueNotFound):
        svc.delete_queue("not-a-day", "office")
    with pytest.raises(QueueNotFound):
        svc.get_records(grade="3", queue_id="2024-12-02")
