from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple

from ..common.datetime_utils import hours_between
from ..core.enums import AppealOutcome, AppealPriority, AppealStatus, AppealType

ACTIVE_STATUSES = frozenset({AppealStatus.PENDING, AppealStatus.UNDER_REVIEW})


@dataclass(frozen=True)
class ProcessingTime:
    hours: float
    days: float


@dataclass(frozen=True)
class VoteAppeal:
    appeal_id: int
    campaign_id: int
    appellant_employee_id: int
    appeal_type: AppealType
    reason: str
    status: AppealStatus
    submitted_at: datetime
    appeal_deadline: datetime
    resolution_time_limit: datetime
    priority: AppealPriority = AppealPriority.MEDIUM
    target_employee_id: Optional[int] = None
    reviewer_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    outcome: Optional[AppealOutcome] = None
    evidence: Tuple[str, ...] = ()
    supporters: Tuple[int, ...] = ()

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_overdue(self, now: datetime) -> bool:
        return self.is_active and now > self.resolution_time_limit

    def processing_time(self) -> Optional[ProcessingTime]:
        if self.reviewed_at is None:
            return None
        hours = hours_between(self.submitted_at, self.reviewed_at)
        return ProcessingTime(hours=round(hours, 2), days=round(hours / 24, 2))


@dataclass(frozen=True)
class NewAppeal:
    campaign_id: int
    appellant_employee_id: int
    appeal_type: AppealType
    reason: str
    submitted_at: datetime
    appeal_deadline: datetime
    resolution_time_limit: datetime
    priority: AppealPriority = AppealPriority.MEDIUM
    target_employee_id: Optional[int] = None
    evidence: Tuple[str, ...] = ()
    supporters: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class AppealStatistics:
    total: int
    by_status: Dict[AppealStatus, int] = field(default_factory=dict)
    by_type: Dict[AppealType, int] = field(default_factory=dict)
    approval_rate: Decimal = Decimal("0.00")
    rejection_rate: Decimal = Decimal("0.00")
    mean_processing_hours: Optional[float] = None
    mean_processing_days: Optional[float] = None
