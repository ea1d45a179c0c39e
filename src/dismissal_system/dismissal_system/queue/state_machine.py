"""Dismissal status state machine.

Automatic actions (admit, release, collect, queueClosed) may only follow the
edges in ``AUTOMATIC_EDGES``. A manual override moves any status to any other
status; it goes through the same ``apply_transition`` entry point but never
consults the edge table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..core.enums import ActionKind, DismissalStatus
from ..core.exceptions import InvalidTransition, ValidationError

AUTOMATIC_EDGES: Dict[Tuple[DismissalStatus, ActionKind], DismissalStatus] = {
    (DismissalStatus.STANDBY, ActionKind.ADMIT): DismissalStatus.IN_QUEUE,
    (DismissalStatus.STANDBY, ActionKind.QUEUE_CLOSED): DismissalStatus.UNKNOWN,
    (DismissalStatus.IN_QUEUE, ActionKind.RELEASE): DismissalStatus.RELEASED,
    (DismissalStatus.RELEASED, ActionKind.COLLECT): DismissalStatus.COLLECTED,
}

_TARGET_OF: Dict[ActionKind, DismissalStatus] = {kind: to for (_, kind), to in AUTOMATIC_EDGES.items()}

# Automatic action a scan-style status request maps to.
_ACTION_FOR_TARGET: Dict[DismissalStatus, ActionKind] = {
    DismissalStatus.IN_QUEUE: ActionKind.ADMIT,
    DismissalStatus.RELEASED: ActionKind.RELEASE,
    DismissalStatus.COLLECTED: ActionKind.COLLECT,
}


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    target: Optional[DismissalStatus] = None

    def __post_init__(self):
        if self.kind == ActionKind.MANUAL_OVERRIDE and self.target is None:
            raise ValidationError("manualOverride needs a target status")
        if self.kind != ActionKind.MANUAL_OVERRIDE and self.target is not None:
            raise ValidationError(f"{self.kind.value} does not take a target status")

    @property
    def is_manual(self) -> bool:
        return self.kind == ActionKind.MANUAL_OVERRIDE

    @classmethod
    def admit(cls) -> "Action":
        return cls(ActionKind.ADMIT)

    @classmethod
    def release(cls) -> "Action":
        return cls(ActionKind.RELEASE)

    @classmethod
    def collect(cls) -> "Action":
        return cls(ActionKind.COLLECT)

    @classmethod
    def queue_closed(cls) -> "Action":
        return cls(ActionKind.QUEUE_CLOSED)

    @classmethod
    def manual_override(cls, target: DismissalStatus) -> "Action":
        return cls(ActionKind.MANUAL_OVERRIDE, target)


def apply_transition(current: DismissalStatus, action: Action) -> DismissalStatus:
    """Return the status ``action`` leads to from ``current``.

    Raises ``InvalidTransition`` for an automatic action outside the edge table.
    """
    if action.is_manual:
        return action.target

    target = AUTOMATIC_EDGES.get((current, action.kind))
    if target is None:
        raise InvalidTransition(f"Cannot {action.kind.value} a student in status {current.value}")
    return target


def is_repeat(current: DismissalStatus, action: Action) -> bool:
    """True when an automatic action already took effect (e.g. a duplicate scan).

    Callers treat this as a no-op success instead of an ``InvalidTransition``.
    """
    if action.is_manual:
        return False
    return _TARGET_OF.get(action.kind) == current


def action_for_target(target: DismissalStatus) -> Action:
    """Automatic action that reaches ``target``; only InQueue, Released and Collected have one."""
    kind = _ACTION_FOR_TARGET.get(target)
    if kind is None:
        raise InvalidTransition(f"No automatic transition leads to {target.value}")
    return Action(kind)
