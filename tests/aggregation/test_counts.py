from __future__ import annotations

import pytest

from src.dismissal_system.dismissal_system.aggregation.service import AggregationService
from src.dismissal_system.dismissal_system.core.enums import DismissalStatus
from src.dismissal_system.dismissal_system.core.exceptions import ValidationError
from src.dismissal_system.dismissal_system.queue.service import QueueLifecycleService
from src.dismissal_system.dismissal_system.queue.state_machine import Action
from src.dismissal_system.dismissal_system.queue.status_service import DismissalStatusService

from tests.fakes import NOW, InMemoryQueues, InMemoryStudents, student


def _world():
    queues = InMemoryQueues()
    students = InMemoryStudents(
        [student("s1", grade="3"), student("s2", grade="3"), student("s3", grade="3"), student("s4", grade="5")]
    )
    QueueLifecycleService(queues, students).start_daily_queue("office", now=NOW)
    statuses = DismissalStatusService(queues)
    statuses.apply(queue_id="20241202", student_id="s1", action=Action.admit(), actor="t", now=NOW)
    return AggregationService(queues), queues


def test_grade_counts_are_zero_filled():
    svc, _ = _world()
    counts = svc.counts_by_grade("3")

    assert counts.queue_id == "20241202"
    assert counts.get(DismissalStatus.IN_QUEUE) == 1
    assert counts.get(DismissalStatus.STANDBY) == 2
    assert counts.get(DismissalStatus.COLLECTED) == 0
    assert counts.total == 3
    body = counts.to_dict()
    assert set(body["countsByStatus"]) == {s.value for s in DismissalStatus}


def test_school_wide_counts():
    svc, _ = _world()
    counts = svc.counts_school_wide()
    assert counts.total == 4
    assert counts.grade is None


def test_no_open_queue_gives_empty_counts():
    svc = AggregationService(InMemoryQueues())
    counts = svc.counts_by_grade("3")
    assert counts.queue_id is None
    assert counts.total == 0


def test_grade_is_required():
    svc, _ = _world()
    with pytest.raises(ValidationError):
        svc.counts_by_grade(" ")
