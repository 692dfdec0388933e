from __future__ import annotations

import threading
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from src.voting_system.voting_system.appeals.service import AppealService
from src.voting_system.voting_system.appeals.transitions import ALLOWED_TRANSITIONS, can_transition, is_terminal
from src.voting_system.voting_system.core.enums import (
    AppealOutcome,
    AppealPriority,
    AppealStatus,
    AppealType,
    CampaignStatus,
)
from src.voting_system.voting_system.core.exceptions import StateError, ValidationError
from src.voting_system.voting_system.events.model import AppealResolved
from src.voting_system.voting_system.integrity.service import IntegrityAuditor
from tests.fakes import FakeCampaigns, InMemoryAppeals, InMemoryVotes, RecordingEvents, make_campaign

SUBMITTED = datetime(2024, 1, 12, 9, 0, 0)


def _campaigns():
    return FakeCampaigns(
        campaigns={
            1: make_campaign(1, status=CampaignStatus.CLOSED),
            2: make_campaign(2, status=CampaignStatus.CLOSED),
            3: make_campaign(3, status=CampaignStatus.CLOSED),
        }
    )


@pytest.fixture
def events():
    return RecordingEvents()


@pytest.fixture
def service(events):
    return AppealService(InMemoryAppeals(), _campaigns(), events=events, rate_limit=10)


def _submit(service, appellant=42, appeal_type=AppealType.PROMOTION_RESULT, *, campaign_id=1, at=SUBMITTED, **kwargs):
    return service.submit_appeal(campaign_id, appellant, appeal_type, "Please review", now=at, **kwargs)


def test_transition_table_covers_every_status():
    assert set(ALLOWED_TRANSITIONS) == set(AppealStatus)
    for status in (AppealStatus.APPROVED, AppealStatus.REJECTED, AppealStatus.WITHDRAWN):
        assert is_terminal(status)
    assert can_transition(AppealStatus.PENDING, AppealStatus.UNDER_REVIEW)
    assert not can_transition(AppealStatus.UNDER_REVIEW, AppealStatus.PENDING)


def test_approved_appeal_cannot_be_withdrawn(service, events):
    appeal = _submit(service)

    reviewed = service.review_appeal(
        appeal.appeal_id, 9, AppealOutcome.REVOTE, "Count mismatch confirmed", now=SUBMITTED + timedelta(hours=30)
    )

    assert reviewed.status == AppealStatus.APPROVED
    assert reviewed.outcome == AppealOutcome.REVOTE
    assert reviewed.reviewer_id == 9
    assert reviewed.reviewed_at == SUBMITTED + timedelta(hours=30)
    [resolved] = events.of_type(AppealResolved)
    assert resolved.status == AppealStatus.APPROVED

    with pytest.raises(StateError):
        service.withdraw_appeal(appeal.appeal_id, 42, now=SUBMITTED + timedelta(days=2))

    assert service.get_appeal(appeal.appeal_id).status == AppealStatus.APPROVED


def test_maintain_result_rejects_appeal(service):
    appeal = _submit(service)

    reviewed = service.review_appeal(appeal.appeal_id, 9, AppealOutcome.MAINTAIN_RESULT, now=SUBMITTED)

    assert reviewed.status == AppealStatus.REJECTED


def test_review_flow_through_under_review(service):
    appeal = _submit(service)

    started = service.start_review(appeal.appeal_id, 9)
    assert started.status == AppealStatus.UNDER_REVIEW
    assert started.reviewer_id == 9

    with pytest.raises(StateError):
        service.start_review(appeal.appeal_id, 9)

    done = service.review_appeal(appeal.appeal_id, 9, AppealOutcome.POSITION_RESTORED, now=SUBMITTED)
    assert done.status == AppealStatus.APPROVED

    with pytest.raises(StateError):
        service.review_appeal(appeal.appeal_id, 9, AppealOutcome.REVOTE, now=SUBMITTED)


def test_withdraw_by_appellant_only(service, events):
    appeal = _submit(service)

    with pytest.raises(StateError):
        service.withdraw_appeal(appeal.appeal_id, 43)

    withdrawn = service.withdraw_appeal(appeal.appeal_id, 42, reason="resolved informally", now=SUBMITTED)
    assert withdrawn.status == AppealStatus.WITHDRAWN
    assert withdrawn.review_notes == "Withdrawn by appellant. Reason: resolved informally"
    [resolved] = events.of_type(AppealResolved)
    assert resolved.status == AppealStatus.WITHDRAWN
    assert resolved.outcome is None

    with pytest.raises(StateError):
        service.review_appeal(appeal.appeal_id, 9, AppealOutcome.REVOTE, now=SUBMITTED)


def test_withdraw_while_under_review(service):
    appeal = _submit(service)
    service.start_review(appeal.appeal_id, 9)

    assert service.withdraw_appeal(appeal.appeal_id, 42).status == AppealStatus.WITHDRAWN


def test_concurrent_reviewers_only_one_wins():
    barrier = threading.Barrier(2)

    class RacingAppeals(InMemoryAppeals):
        def __init__(self):
            super().__init__()
            self.gate_open = False
            self._gated = 0
            self._gate_lock = threading.Lock()

        def get(self, *, appeal_id):
            appeal = super().get(appeal_id=appeal_id)
            with self._gate_lock:
                wait = self.gate_open and self._gated < 2
                self._gated += 1
            if wait:
                # Both reviewers read 'pending' before either writes.
                barrier.wait(timeout=5)
            return appeal

    repo = RacingAppeals()
    service = AppealService(repo, _campaigns())
    appeal = _submit(service)
    repo.gate_open = True

    results: list[object] = []

    def review(reviewer_id, outcome):
        try:
            results.append(service.review_appeal(appeal.appeal_id, reviewer_id, outcome, now=SUBMITTED))
        except StateError as e:
            results.append(e)

    threads = [
        threading.Thread(target=review, args=(9, AppealOutcome.REVOTE)),
        threading.Thread(target=review, args=(10, AppealOutcome.MAINTAIN_RESULT)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    winners = [r for r in results if not isinstance(r, StateError)]
    assert len(results) == 2
    assert len(winners) == 1
    assert repo.get(appeal_id=appeal.appeal_id).status == winners[0].status


def test_overdue_only_while_active(service):
    appeal = _submit(service, appeal_type=AppealType.VOTE_MANIPULATION)
    limit = appeal.resolution_time_limit

    assert service.is_overdue(appeal, now=limit) is False
    assert service.is_overdue(appeal, now=limit + timedelta(seconds=1)) is True
    assert [a.appeal_id for a in service.overdue_appeals(now=limit + timedelta(hours=1))] == [appeal.appeal_id]

    service.review_appeal(appeal.appeal_id, 9, AppealOutcome.MAINTAIN_RESULT, now=limit + timedelta(hours=2))
    closed = service.get_appeal(appeal.appeal_id)
    assert service.is_overdue(closed, now=limit + timedelta(days=10)) is False


def test_pending_queue_orders_by_priority_then_age(service):
    low = _submit(service, 1, priority=AppealPriority.LOW, at=SUBMITTED)
    urgent = _submit(service, 2, priority=AppealPriority.URGENT, at=SUBMITTED + timedelta(hours=2))
    high_old = _submit(service, 3, priority=AppealPriority.HIGH, at=SUBMITTED)
    high_new = _submit(service, 4, priority=AppealPriority.HIGH, at=SUBMITTED + timedelta(hours=1))
    done = _submit(service, 5, priority=AppealPriority.URGENT, at=SUBMITTED)
    service.review_appeal(done.appeal_id, 9, AppealOutcome.REVOTE, now=SUBMITTED)

    queue = [a.appeal_id for a in service.pending_queue()]

    assert queue == [urgent.appeal_id, high_old.appeal_id, high_new.appeal_id, low.appeal_id]


def test_appeals_for_employee(service):
    first = _submit(service, 42, AppealType.PROMOTION_RESULT, at=SUBMITTED)
    second = _submit(service, 42, AppealType.UNFAIR_PROCESS, at=SUBMITTED + timedelta(hours=1))
    service.withdraw_appeal(first.appeal_id, 42)

    assert [a.appeal_id for a in service.appeals_for_employee(42)] == [second.appeal_id]
    assert [a.appeal_id for a in service.appeals_for_employee(42, include_completed=True)] == [
        second.appeal_id,
        first.appeal_id,
    ]


def test_appeal_statistics(service):
    a1 = _submit(service, 1, at=SUBMITTED)
    a2 = _submit(service, 2, AppealType.VOTE_MANIPULATION, at=SUBMITTED)
    a3 = _submit(service, 3, at=SUBMITTED)
    _submit(service, 4, at=SUBMITTED)
    service.review_appeal(a1.appeal_id, 9, AppealOutcome.REVOTE, now=SUBMITTED + timedelta(hours=12))
    service.review_appeal(a2.appeal_id, 9, AppealOutcome.MAINTAIN_RESULT, now=SUBMITTED + timedelta(hours=36))
    service.withdraw_appeal(a3.appeal_id, 3)

    stats = service.appeal_statistics()

    assert stats.total == 4
    assert stats.by_status[AppealStatus.APPROVED] == 1
    assert stats.by_status[AppealStatus.REJECTED] == 1
    assert stats.by_status[AppealStatus.WITHDRAWN] == 1
    assert stats.by_status[AppealStatus.PENDING] == 1
    assert stats.by_type[AppealType.PROMOTION_RESULT] == 3
    assert stats.approval_rate == Decimal("25.00")
    assert stats.rejection_rate == Decimal("25.00")
    assert stats.mean_processing_hours == 24.0
    assert stats.mean_processing_days == 1.0


def test_statistics_period_validation(service):
    with pytest.raises(ValidationError):
        service.appeal_statistics(start=datetime(2024, 2, 1), end=datetime(2024, 1, 1))

    empty = service.appeal_statistics(start=datetime(2024, 1, 1), end=datetime(2024, 1, 31))
    assert empty.total == 0
    assert empty.approval_rate == Decimal("0.00")
    assert empty.mean_processing_hours is None


def test_processing_time(service):
    appeal = _submit(service)
    assert appeal.processing_time() is None

    reviewed = service.review_appeal(appeal.appeal_id, 9, AppealOutcome.REVOTE, now=SUBMITTED + timedelta(hours=6))

    pt = reviewed.processing_time()
    assert pt.hours == 6.0
    assert pt.days == 0.25


def test_integrity_evidence_for_reviewer():
    campaigns = _campaigns()
    votes = InMemoryVotes()
    votes.add_raw(campaign_id=1, candidate_id=10, voter_fingerprint="dup", voted_at=datetime(2024, 1, 5))
    votes.add_raw(campaign_id=1, candidate_id=10, voter_fingerprint="dup", voted_at=datetime(2024, 1, 6))
    service = AppealService(InMemoryAppeals(), campaigns, auditor=IntegrityAuditor(votes, campaigns))
    appeal = _submit(service, appeal_type=AppealType.VOTE_MANIPULATION)

    report = service.integrity_evidence(appeal.appeal_id, now=SUBMITTED)

    assert report.campaign_id == 1
    assert report.duplicate_fingerprints == 1


def test_integrity_evidence_requires_auditor(service):
    appeal = _submit(service)

    with pytest.raises(StateError):
        service.integrity_evidence(appeal.appeal_id)


def test_missing_appeal(service):
    with pytest.raises(ValidationError):
        service.get_appeal(404)
