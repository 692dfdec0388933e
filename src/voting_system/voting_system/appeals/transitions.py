from __future__ import annotations

from typing import Dict, FrozenSet

from ..core.enums import AppealStatus
from ..core.exceptions import StateError

# Every AppealStatus must be a key; terminal states map to an empty set.
ALLOWED_TRANSITIONS: Dict[AppealStatus, FrozenSet[AppealStatus]] = {
    AppealStatus.PENDING: frozenset(
        {AppealStatus.UNDER_REVIEW, AppealStatus.APPROVED, AppealStatus.REJECTED, AppealStatus.WITHDRAWN}
    ),
    AppealStatus.UNDER_REVIEW: frozenset({AppealStatus.APPROVED, AppealStatus.REJECTED, AppealStatus.WITHDRAWN}),
    AppealStatus.APPROVED: frozenset(),
    AppealStatus.REJECTED: frozenset(),
    AppealStatus.WITHDRAWN: frozenset(),
}


def can_transition(current: AppealStatus, target: AppealStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def require_transition(current: AppealStatus, target: AppealStatus) -> None:
    if not can_transition(current, target):
        raise StateError(f"Cannot move appeal from {current.value} to {target.value}")


def is_terminal(status: AppealStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]
