from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from src.voting_system.voting_system.core.enums import VoteDecision
from src.voting_system.voting_system.core.exceptions import (
    AmendmentError,
    CampaignStateError,
    StateError,
    ValidationError,
)
from src.voting_system.voting_system.votes.service import VoteLedger
from tests.fakes import FakeCampaigns, InMemoryVotes, make_campaign

CAST_AT = datetime(2024, 1, 3, 8, 0, 0)


@pytest.fixture
def ledger():
    campaigns = FakeCampaigns(campaigns={1: make_campaign(1)}, candidates={(1, 10), (1, 11)})
    ledger = VoteLedger(InMemoryVotes(), campaigns, campaigns, salt="s", max_modifications=3)
    ledger.cast_vote(1, 10, 42, decision=VoteDecision.AGREE, now=CAST_AT)
    return ledger


def test_amend_keeps_original_decision(ledger):
    vote = ledger.amend_vote(1, 42, VoteDecision.DISAGREE, reason="changed my mind", now=CAST_AT + timedelta(hours=1))

    assert vote.amendment.original_decision == VoteDecision.AGREE
    assert vote.amendment.current_decision == VoteDecision.DISAGREE
    assert vote.amendment.modification_count == 1
    assert vote.amendment.last_modified_at == CAST_AT + timedelta(hours=1)


def test_amend_can_move_vote_to_other_candidate(ledger):
    vote = ledger.amend_vote(1, 42, VoteDecision.AGREE, new_candidate_id=11, now=CAST_AT)

    assert vote.candidate_id == 11
    [entry] = ledger.modification_history(1, 42)
    assert entry.old_candidate_id == 10
    assert entry.new_candidate_id == 11


def test_amend_to_unknown_candidate_is_rejected(ledger):
    with pytest.raises(ValidationError):
        ledger.amend_vote(1, 42, VoteDecision.AGREE, new_candidate_id=99, now=CAST_AT)


def test_amendment_limit_is_enforced(ledger):
    decisions = [VoteDecision.DISAGREE, VoteDecision.ABSTAIN, VoteDecision.AGREE]
    for i, d in enumerate(decisions, start=1):
        ledger.amend_vote(1, 42, d, now=CAST_AT + timedelta(hours=i))

    status = ledger.modification_status(1, 42)
    assert status.current_modifications == 3
    assert status.remaining_modifications == 0
    assert status.can_modify is False

    with pytest.raises(AmendmentError):
        ledger.amend_vote(1, 42, VoteDecision.DISAGREE, now=CAST_AT + timedelta(hours=5))

    history = ledger.modification_history(1, 42)
    assert [m.modification_number for m in history] == [1, 2, 3]
    assert history[0].old_decision == VoteDecision.AGREE


def test_modification_status_without_vote(ledger):
    status = ledger.modification_status(1, 77)

    assert status.has_voted is False
    assert status.can_modify is False
    assert status.max_modifications == 3


def test_amend_without_vote_is_rejected(ledger):
    with pytest.raises(ValidationError):
        ledger.amend_vote(1, 77, VoteDecision.DISAGREE, now=CAST_AT)


def test_amend_after_campaign_end_is_rejected(ledger):
    with pytest.raises(CampaignStateError):
        ledger.amend_vote(1, 42, VoteDecision.DISAGREE, now=datetime(2024, 2, 1))


def test_stale_amendment_loses_compare_and_swap():
    class StaleVotes(InMemoryVotes):
        """Hands out the vote as it was before any amendment."""

        def __init__(self):
            super().__init__()
            self.snapshot = None

        def get_valid_by_fingerprint(self, **kwargs):
            current = super().get_valid_by_fingerprint(**kwargs)
            if self.snapshot is None:
                self.snapshot = current
            return self.snapshot

    votes = StaleVotes()
    campaigns = FakeCampaigns(campaigns={1: make_campaign(1)}, candidates={(1, 10)})
    ledger = VoteLedger(votes, campaigns, campaigns, salt="s")
    ledger.cast_vote(1, 10, 42, now=CAST_AT)

    ledger.amend_vote(1, 42, VoteDecision.DISAGREE, now=CAST_AT)
    with pytest.raises(StateError):
        ledger.amend_vote(1, 42, VoteDecision.ABSTAIN, now=CAST_AT)

    assert len(ledger.modification_history(1, 42)) == 1


def test_campaign_modification_stats(ledger):
    ledger.cast_vote(1, 11, 43, now=CAST_AT)
    ledger.cast_vote(1, 10, 44, now=CAST_AT)
    ledger.amend_vote(1, 42, VoteDecision.DISAGREE, now=CAST_AT + timedelta(hours=1))
    ledger.amend_vote(1, 42, VoteDecision.ABSTAIN, now=CAST_AT + timedelta(hours=2))
    ledger.amend_vote(1, 43, VoteDecision.DISAGREE, now=CAST_AT + timedelta(hours=3))

    stats = ledger.campaign_modification_stats(1)

    assert stats.total_modifications == 3
    assert stats.unique_modifiers == 2
    assert stats.by_modification_number == {1: 2, 2: 1}
    assert stats.average_per_voter == Decimal("1.50")


def test_campaign_modification_stats_without_amendments(ledger):
    stats = ledger.campaign_modification_stats(1)

    assert stats.total_modifications == 0
    assert stats.unique_modifiers == 0
    assert stats.by_modification_number == {}
    assert stats.average_per_voter == Decimal("0.00")
