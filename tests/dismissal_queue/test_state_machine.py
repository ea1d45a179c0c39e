from __future__ import annotations

import pytest

from src.dismissal_system.dismissal_system.core.enums import ActionKind, DismissalStatus
from src.dismissal_system.dismissal_system.core.exceptions import InvalidTransition, ValidationError
from src.dismissal_system.dismissal_system.queue.state_machine import (
    AUTOMATIC_EDGES,
    Action,
    action_for_target,
    apply_transition,
    is_repeat,
)

AUTOMATIC = [Action.admit(), Action.release(), Action.collect(), Action.queue_closed()]


def test_listed_edges_reach_their_target():
    assert apply_transition(DismissalStatus.STANDBY, Action.admit()) == DismissalStatus.IN_QUEUE
    assert apply_transition(DismissalStatus.STANDBY, Action.queue_closed()) == DismissalStatus.UNKNOWN
    assert apply_transition(DismissalStatus.IN_QUEUE, Action.release()) == DismissalStatus.RELEASED
    assert apply_transition(DismissalStatus.RELEASED, Action.collect()) == DismissalStatus.COLLECTED


@pytest.mark.parametrize("current", list(DismissalStatus))
@pytest.mark.parametrize("action", AUTOMATIC, ids=lambda a: a.kind.value)
def test_every_unlisted_automatic_pair_is_invalid(current, action):
    expected = AUTOMATIC_EDGES.get((current, action.kind))
    if expected is None:
        with pytest.raises(InvalidTransition):
            apply_transition(current, action)
    else:
        assert apply_transition(current, action) == expected


@pytest.mark.parametrize("current", list(DismissalStatus))
def test_manual_override_reaches_any_status(current):
    for target in DismissalStatus:
        assert apply_transition(current, Action.manual_override(target)) == target


def test_manual_override_requires_target():
    with pytest.raises(ValidationError):
        Action(ActionKind.MANUAL_OVERRIDE)
    with pytest.raises(ValidationError):
        Action(ActionKind.ADMIT, DismissalStatus.IN_QUEUE)


def test_repeat_detection_only_for_automatic_actions():
    assert is_repeat(DismissalStatus.IN_QUEUE, Action.admit())
    assert is_repeat(DismissalStatus.COLLECTED, Action.collect())
    assert not is_repeat(DismissalStatus.STANDBY, Action.admit())
    assert not is_repeat(DismissalStatus.IN_QUEUE, Action.manual_override(DismissalStatus.IN_QUEUE))


def test_action_for_target():
    assert action_for_target(DismissalStatus.IN_QUEUE).kind == ActionKind.ADMIT
    assert action_for_target(DismissalStatus.RELEASED).kind == ActionKind.RELEASE
    with pytest.raises(InvalidTransition):
        action_for_target(DismissalStatus.NO_SHOW)
