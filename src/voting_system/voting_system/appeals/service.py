from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from ..campaigns.model import Campaign
from ..campaigns.repository import CampaignRegistry
from ..common.datetime_utils import now_local
from ..common.validators import require_enum, require_max_length, require_non_empty, require_positive_id
from ..core.constants import (
    APPEAL_RATE_LIMIT,
    APPEAL_RATE_WINDOW_DAYS,
    APPEAL_WINDOW_DAYS,
    DEFAULT_RESOLUTION_DAYS,
    MAX_REASON_LENGTH,
    RESOLUTION_DAYS_BY_TYPE,
)
from ..core.enums import AppealOutcome, AppealPriority, AppealStatus, AppealType
from ..core.exceptions import (
    CampaignNotClosedError,
    CampaignStateError,
    EligibilityError,
    StateError,
    ValidationError,
)
from ..events.dispatcher import EventPublisher, NullDispatcher
from ..events.model import AppealResolved, AppealSubmitted
from ..integrity.model import IntegrityReport
from ..integrity.service import IntegrityAuditor
from .model import ACTIVE_STATUSES, AppealStatistics, Eligibility, NewAppeal, VoteAppeal
from .repository import AppealRepository
from .transitions import require_transition

logger = logging.getLogger(__name__)

REASON_NOT_CLOSED = "campaign not closed"
REASON_DEADLINE_PASSED = "deadline passed"
REASON_DUPLICATE_TYPE = "duplicate appeal type"
REASON_RATE_LIMIT = "rate limit exceeded"


def resolution_days(appeal_type: AppealType) -> int:
    return RESOLUTION_DAYS_BY_TYPE.get(appeal_type, DEFAULT_RESOLUTION_DAYS)


def decision_for(outcome: AppealOutcome) -> AppealStatus:
    """Keeping the result rejects the appeal; any remedy approves it."""
    if outcome == AppealOutcome.MAINTAIN_RESULT:
        return AppealStatus.REJECTED
    return AppealStatus.APPROVED


def _rate(count: int, total: int) -> Decimal:
    if total <= 0:
        return Decimal("0.00")
    return (Decimal(count) * 100 / Decimal(total)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class AppealService:
    """Appeal workflow: eligibility gate, review state machine, reporting.

    Every status change is a compare-and-swap on the status read before the
    decision; losing the race raises StateError instead of overwriting.
    """

    def __init__(
        self,
        appeals: AppealRepository,
        campaigns: CampaignRegistry,
        *,
        auditor: IntegrityAuditor | None = None,
        events: EventPublisher | None = None,
        window_days: int = APPEAL_WINDOW_DAYS,
        rate_limit: int = APPEAL_RATE_LIMIT,
        rate_window_days: int = APPEAL_RATE_WINDOW_DAYS,
    ):
        self._appeals = appeals
        self._campaigns = campaigns
        self._auditor = auditor
        self._events = events or NullDispatcher()
        self._window = timedelta(days=int(window_days))
        self._rate_limit = int(rate_limit)
        self._rate_window = timedelta(days=int(rate_window_days))

    def _get_campaign(self, campaign_id: int) -> Campaign:
        campaign = self._campaigns.get_campaign(int(campaign_id))
        if not campaign:
            raise CampaignStateError(f"Campaign {campaign_id} does not exist")
        return campaign

    def get_appeal(self, appeal_id: int) -> VoteAppeal:
        appeal = self._appeals.get(appeal_id=int(appeal_id))
        if not appeal:
            raise ValidationError(f"Appeal {appeal_id} does not exist")
        return appeal

    def appeal_deadline(self, campaign: Campaign) -> datetime:
        return campaign.end_date + self._window

    # -------- Eligibility --------
    def _failed_rule(
        self,
        campaign: Campaign,
        appellant_id: int,
        appeal_type: AppealType,
        now: datetime,
    ) -> Optional[str]:
        # Order matters: the first failing rule is the one reported.
        if not campaign.is_closed:
            return REASON_NOT_CLOSED
        if now > self.appeal_deadline(campaign):
            return REASON_DEADLINE_PASSED
        if self._appeals.exists_for_type(
            campaign_id=campaign.campaign_id,
            appellant_id=appellant_id,
            appeal_type=appeal_type,
        ):
            return REASON_DUPLICATE_TYPE
        recent = self._appeals.count_submitted_since(appellant_id=appellant_id, since=now - self._rate_window)
        if recent >= self._rate_limit:
            return REASON_RATE_LIMIT
        return None

    def check_eligibility(
        self,
        campaign_id: int,
        appellant_id: int,
        appeal_type: AppealType,
        *,
        now: datetime | None = None,
    ) -> Eligibility:
        now = now or now_local()
        campaign = self._get_campaign(campaign_id)
        appeal_type = require_enum(appeal_type, AppealType, "Appeal type")
        failed = self._failed_rule(campaign, int(appellant_id), appeal_type, now)
        return Eligibility(eligible=failed is None, reason=failed)

    # -------- Submission --------
    def submit_appeal(
        self,
        campaign_id: int,
        appellant_id: int,
        appeal_type: AppealType,
        reason: str,
        *,
        target_employee_id: Optional[int] = None,
        priority: AppealPriority = AppealPriority.MEDIUM,
        evidence: Iterable[str] = (),
        supporters: Iterable[int] = (),
        now: datetime | None = None,
    ) -> VoteAppeal:
        now = now or now_local()

        campaign_id = require_positive_id(campaign_id, "Campaign")
        appellant_id = require_positive_id(appellant_id, "Appellant")
        if target_employee_id is not None:
            target_employee_id = require_positive_id(target_employee_id, "Target employee")
        appeal_type = require_enum(appeal_type, AppealType, "Appeal type")
        priority = require_enum(priority, AppealPriority, "Priority")
        reason = require_max_length(require_non_empty(reason, "Reason"), "Reason", MAX_REASON_LENGTH)
        evidence_t = tuple(str(e).strip() for e in evidence if str(e).strip())
        supporters_t = tuple(require_positive_id(s, "Supporter") for s in supporters)

        campaign = self._get_campaign(campaign_id)
        failed = self._failed_rule(campaign, appellant_id, appeal_type, now)
        if failed == REASON_NOT_CLOSED:
            raise CampaignNotClosedError(failed)
        if failed:
            logger.warning("Appeal by employee %s on campaign %s refused: %s", appellant_id, campaign_id, failed)
            raise EligibilityError(failed)

        resolution_limit = now + timedelta(days=resolution_days(appeal_type))
        appeal_id = self._appeals.create(
            NewAppeal(
                campaign_id=campaign_id,
                appellant_employee_id=appellant_id,
                appeal_type=appeal_type,
                reason=reason,
                submitted_at=now,
                appeal_deadline=self.appeal_deadline(campaign),
                resolution_time_limit=resolution_limit,
                priority=priority,
                target_employee_id=target_employee_id,
                evidence=evidence_t,
                supporters=supporters_t,
            )
        )

        logger.info("Appeal %s submitted (%s) on campaign %s", appeal_id, appeal_type.value, campaign_id)
        self._events.publish(
            AppealSubmitted(
                appeal_id=appeal_id,
                campaign_id=campaign_id,
                appellant_employee_id=appellant_id,
                appeal_type=appeal_type,
                submitted_at=now,
                resolution_time_limit=resolution_limit,
            )
        )
        return self.get_appeal(appeal_id)

    # -------- Transitions --------
    def _swap(self, appeal: VoteAppeal, target: AppealStatus, **fields) -> VoteAppeal:
        require_transition(appeal.status, target)
        ok = self._appeals.transition(
            appeal_id=appeal.appeal_id,
            expected_status=appeal.status,
            new_status=target,
            **fields,
        )
        if not ok:
            logger.warning(
                "Appeal %s changed concurrently, %s -> %s refused",
                appeal.appeal_id,
                appeal.status.value,
                target.value,
            )
            raise StateError(f"Appeal {appeal.appeal_id} was changed concurrently")
        return self.get_appeal(appeal.appeal_id)

    def start_review(self, appeal_id: int, reviewer_id: int) -> VoteAppeal:
        reviewer_id = require_positive_id(reviewer_id, "Reviewer")
        appeal = self._swap(self.get_appeal(appeal_id), AppealStatus.UNDER_REVIEW, reviewer_id=reviewer_id)
        logger.info("Appeal %s under review by %s", appeal.appeal_id, reviewer_id)
        return appeal

    def review_appeal(
        self,
        appeal_id: int,
        reviewer_id: int,
        outcome: AppealOutcome,
        notes: Optional[str] = None,
        *,
        now: datetime | None = None,
    ) -> VoteAppeal:
        now = now or now_local()
        reviewer_id = require_positive_id(reviewer_id, "Reviewer")
        outcome = require_enum(outcome, AppealOutcome, "Outcome")
        notes = require_max_length((notes or "").strip() or None, "Notes", MAX_REASON_LENGTH)

        current = self.get_appeal(appeal_id)
        appeal = self._swap(
            current,
            decision_for(outcome),
            reviewer_id=reviewer_id,
            reviewed_at=now,
            review_notes=notes,
            outcome=outcome,
        )

        logger.info("Appeal %s %s with outcome %s", appeal.appeal_id, appeal.status.value, outcome.value)
        self._events.publish(
            AppealResolved(
                appeal_id=appeal.appeal_id,
                campaign_id=appeal.campaign_id,
                appellant_employee_id=appeal.appellant_employee_id,
                status=appeal.status,
                outcome=outcome,
                resolved_at=now,
                target_employee_id=appeal.target_employee_id,
            )
        )
        return appeal

    def withdraw_appeal(
        self,
        appeal_id: int,
        requester_id: int,
        *,
        reason: Optional[str] = None,
        now: datetime | None = None,
    ) -> VoteAppeal:
        now = now or now_local()
        current = self.get_appeal(appeal_id)
        if int(requester_id) != current.appellant_employee_id:
            raise StateError("Only the appellant may withdraw an appeal")

        note = f"Withdrawn by appellant. Reason: {(reason or '').strip() or 'none given'}"
        appeal = self._swap(current, AppealStatus.WITHDRAWN, review_notes=note)

        logger.info("Appeal %s withdrawn by appellant", appeal.appeal_id)
        self._events.publish(
            AppealResolved(
                appeal_id=appeal.appeal_id,
                campaign_id=appeal.campaign_id,
                appellant_employee_id=appeal.appellant_employee_id,
                status=appeal.status,
                outcome=None,
                resolved_at=now,
                target_employee_id=appeal.target_employee_id,
            )
        )
        return appeal

    # -------- Queries --------
    def is_overdue(self, appeal: VoteAppeal, *, now: datetime | None = None) -> bool:
        return appeal.is_overdue(now or now_local())

    def pending_queue(self) -> Sequence[VoteAppeal]:
        """Open appeals, most urgent first, then oldest first."""
        items = list(self._appeals.list_by_status(statuses=ACTIVE_STATUSES))
        items.sort(key=lambda a: (-a.priority.rank, a.submitted_at, a.appeal_id))
        return items

    def overdue_appeals(self, *, now: datetime | None = None) -> Sequence[VoteAppeal]:
        now = now or now_local()
        return [a for a in self.pending_queue() if a.is_overdue(now)]

    def appeals_for_employee(self, employee_id: int, *, include_completed: bool = False) -> Sequence[VoteAppeal]:
        statuses = None if include_completed else ACTIVE_STATUSES
        return self._appeals.list_for_appellant(appellant_id=int(employee_id), statuses=statuses)

    def appeal_statistics(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> AppealStatistics:
        if start and end and end < start:
            raise ValidationError("End of period must not be before its start")

        rows = self._appeals.list_submitted_between(start=start, end=end)
        by_status = {s: 0 for s in AppealStatus}
        by_type = {t: 0 for t in AppealType}
        hours: list[float] = []

        for a in rows:
            by_status[a.status] += 1
            by_type[a.appeal_type] += 1
            pt = a.processing_time()
            if pt is not None:
                hours.append(pt.hours)

        total = len(rows)
        mean_hours = round(sum(hours) / len(hours), 2) if hours else None
        return AppealStatistics(
            total=total,
            by_status=by_status,
            by_type=by_type,
            approval_rate=_rate(by_status[AppealStatus.APPROVED], total),
            rejection_rate=_rate(by_status[AppealStatus.REJECTED], total),
            mean_processing_hours=mean_hours,
            mean_processing_days=round(mean_hours / 24, 2) if mean_hours is not None else None,
        )

    def integrity_evidence(self, appeal_id: int, *, now: datetime | None = None) -> IntegrityReport:
        """Integrity findings for the appeal's campaign, for the reviewer."""
        if self._auditor is None:
            raise StateError("Integrity auditor is not configured")
        appeal = self.get_appeal(appeal_id)
        return self._auditor.validate_integrity(appeal.campaign_id, now=now)
