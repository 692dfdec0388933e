from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AppealOutcome, AppealStatus, AppealType


@dataclass(frozen=True)
class VoteCast:
    campaign_id: int
    candidate_id: int
    token_prefix: str
    voted_at: datetime


@dataclass(frozen=True)
class IntegrityFlagged:
    campaign_id: int
    duplicate_fingerprints: int
    temporal_anomalies: int
    checked_at: datetime


@dataclass(frozen=True)
class AppealSubmitted:
    appeal_id: int
    campaign_id: int
    appellant_employee_id: int
    appeal_type: AppealType
    submitted_at: datetime
    resolution_time_limit: datetime


@dataclass(frozen=True)
class AppealResolved:
    appeal_id: int
    campaign_id: int
    appellant_employee_id: int
    status: AppealStatus
    outcome: Optional[AppealOutcome]
    resolved_at: datetime
    target_employee_id: Optional[int] = None
