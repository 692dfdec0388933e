from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from ..anonymizer.hashing import anonymize, fingerprint, hash_attribute
from ..campaigns.model import Campaign
from ..campaigns.repository import CampaignRegistry, CandidateRegistry
from ..common.datetime_utils import now_local
from ..common.validators import (
    require_decimal_in_range,
    require_enum,
    require_max_length,
    require_positive_id,
)
from ..core.constants import (
    DEFAULT_AUDIT_LIMIT,
    DEFAULT_VOTE_SALT,
    DEFAULT_VOTE_WEIGHT,
    MAX_REASON_LENGTH,
    MAX_VOTE_MODIFICATIONS,
    MAX_VOTE_WEIGHT,
)
from ..core.enums import VoteDecision
from ..core.exceptions import (
    AmendmentError,
    CampaignStateError,
    DuplicateVoteError,
    StateError,
    ValidationError,
)
from ..events.dispatcher import EventPublisher, NullDispatcher
from ..events.model import VoteCast
from .model import AnonymousVoteRow, ModificationStats, ModificationStatus, NewVote, Vote, VoteModification
from .repository import VoteRepository

logger = logging.getLogger(__name__)


class VoteLedger:
    """Casts, amends and lists anonymous votes.

    The ledger never stores an employee id: every lookup goes through the
    voter fingerprint, and the token is only handed back as a receipt.
    """

    def __init__(
        self,
        votes: VoteRepository,
        campaigns: CampaignRegistry,
        candidates: CandidateRegistry,
        *,
        events: EventPublisher | None = None,
        salt: str = DEFAULT_VOTE_SALT,
        max_modifications: int = MAX_VOTE_MODIFICATIONS,
    ):
        self._votes = votes
        self._campaigns = campaigns
        self._candidates = candidates
        self._events = events or NullDispatcher()
        self._salt = salt
        self._max_modifications = int(max_modifications)

    def _open_campaign(self, campaign_id: int, now: datetime) -> Campaign:
        campaign = self._campaigns.get_campaign(campaign_id)
        if not campaign:
            raise CampaignStateError(f"Campaign {campaign_id} does not exist")
        if not campaign.is_open(now):
            raise CampaignStateError(f"Campaign {campaign_id} is not open for voting")
        return campaign

    def _require_candidate(self, campaign_id: int, candidate_id: int) -> None:
        if not self._candidates.candidate_exists(campaign_id, candidate_id):
            raise ValidationError(f"Candidate {candidate_id} is not part of campaign {campaign_id}")

    def _voter_fingerprint(self, campaign_id, employee_id) -> tuple[int, str]:
        campaign_id = require_positive_id(campaign_id, "Campaign")
        employee_id = require_positive_id(employee_id, "Employee")
        return campaign_id, fingerprint(employee_id, campaign_id)

    def has_voted(self, campaign_id: int, employee_id: int) -> bool:
        campaign_id, fp = self._voter_fingerprint(campaign_id, employee_id)
        return self._votes.exists_valid(campaign_id=campaign_id, voter_fingerprint=fp)

    def cast_vote(
        self,
        campaign_id: int,
        candidate_id: int,
        employee_id: int,
        *,
        ranking: Optional[int] = None,
        weight=DEFAULT_VOTE_WEIGHT,
        reason: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        session_id: Optional[str] = None,
        decision: VoteDecision = VoteDecision.AGREE,
        now: datetime | None = None,
    ) -> Vote:
        now = now or now_local()

        campaign_id = require_positive_id(campaign_id, "Campaign")
        candidate_id = require_positive_id(candidate_id, "Candidate")
        employee_id = require_positive_id(employee_id, "Employee")
        if ranking is not None:
            ranking = require_positive_id(ranking, "Ranking")
        weight_d = require_decimal_in_range(weight, "Weight", upper=Decimal(MAX_VOTE_WEIGHT))
        reason = require_max_length((reason or "").strip() or None, "Reason", MAX_REASON_LENGTH)
        decision = require_enum(decision, VoteDecision, "Decision")

        self._open_campaign(campaign_id, now)
        self._require_candidate(campaign_id, candidate_id)

        identity = anonymize(employee_id, campaign_id, salt=self._salt, now=now)

        # Fast path only; the unique key on (campaign, fingerprint) decides races.
        if self._votes.exists_valid(campaign_id=campaign_id, voter_fingerprint=identity.fingerprint):
            logger.warning("Duplicate vote attempt rejected for campaign %s", campaign_id)
            raise DuplicateVoteError("A valid vote already exists for this voter in this campaign")

        try:
            vote = self._votes.insert(
                NewVote(
                    campaign_id=campaign_id,
                    candidate_id=candidate_id,
                    voter_token=identity.token,
                    voter_fingerprint=identity.fingerprint,
                    voted_at=now,
                    decision=decision,
                    ranking=ranking,
                    weight=weight_d,
                    reason=reason,
                    ip_hash=hash_attribute(ip),
                    ua_hash=hash_attribute(user_agent),
                    session_id=(session_id or "").strip() or None,
                )
            )
        except DuplicateVoteError:
            logger.warning("Concurrent duplicate vote rejected by storage for campaign %s", campaign_id)
            raise

        logger.info("Vote cast in campaign %s (token %s...)", campaign_id, identity.token[:8])
        self._events.publish(
            VoteCast(
                campaign_id=campaign_id,
                candidate_id=candidate_id,
                token_prefix=identity.token[:8],
                voted_at=now,
            )
        )
        return vote

    # -------- Amendments --------
    def modification_status(self, campaign_id: int, employee_id: int) -> ModificationStatus:
        campaign_id, fp = self._voter_fingerprint(campaign_id, employee_id)
        vote = self._votes.get_valid_by_fingerprint(campaign_id=campaign_id, voter_fingerprint=fp)
        if not vote:
            return ModificationStatus(
                has_voted=False,
                current_modifications=0,
                remaining_modifications=0,
                max_modifications=self._max_modifications,
            )

        count = vote.amendment.modification_count
        remaining = max(0, self._max_modifications - count) if vote.amendment.can_still_modify else 0
        return ModificationStatus(
            has_voted=True,
            current_modifications=count,
            remaining_modifications=remaining,
            max_modifications=self._max_modifications,
        )

    def amend_vote(
        self,
        campaign_id: int,
        employee_id: int,
        new_decision: VoteDecision,
        *,
        new_candidate_id: Optional[int] = None,
        reason: Optional[str] = None,
        now: datetime | None = None,
    ) -> Vote:
        """Change the decision (and optionally the candidate) of an existing vote.

        Allowed while the campaign is open, at most ``max_modifications``
        times per vote. The cast-time decision stays in
        ``amendment.original_decision``.
        """

        now = now or now_local()
        campaign_id = require_positive_id(campaign_id, "Campaign")
        employee_id = require_positive_id(employee_id, "Employee")
        new_decision = require_enum(new_decision, VoteDecision, "Decision")
        reason = require_max_length((reason or "").strip() or None, "Reason", MAX_REASON_LENGTH)

        self._open_campaign(campaign_id, now)

        fp = fingerprint(employee_id, campaign_id)
        vote = self._votes.get_valid_by_fingerprint(campaign_id=campaign_id, voter_fingerprint=fp)
        if not vote:
            raise ValidationError("No valid vote to amend")

        if not vote.amendment.can_still_modify or vote.amendment.modification_count >= self._max_modifications:
            raise AmendmentError(f"Vote may be amended at most {self._max_modifications} times")

        candidate_id = vote.candidate_id
        if new_candidate_id is not None:
            candidate_id = require_positive_id(new_candidate_id, "Candidate")
            if candidate_id != vote.candidate_id:
                self._require_candidate(campaign_id, candidate_id)

        ok = self._votes.apply_amendment(
            vote=vote,
            new_decision=new_decision,
            new_candidate_id=candidate_id,
            reason=reason,
            max_modifications=self._max_modifications,
            modified_at=now,
        )
        if not ok:
            logger.warning("Concurrent amendment of vote %s rejected", vote.vote_id)
            raise StateError("Vote was modified concurrently, reload and retry")

        updated = self._votes.get_by_id(vote_id=vote.vote_id)
        logger.info(
            "Vote %s amended (%d/%d)",
            vote.vote_id,
            vote.amendment.modification_count + 1,
            self._max_modifications,
        )
        return updated

    def modification_history(self, campaign_id: int, employee_id: int) -> Sequence[VoteModification]:
        campaign_id, fp = self._voter_fingerprint(campaign_id, employee_id)
        return self._votes.list_modifications(campaign_id=campaign_id, voter_fingerprint=fp)

    def campaign_modification_stats(self, campaign_id: int) -> ModificationStats:
        campaign_id = require_positive_id(campaign_id, "Campaign")
        breakdown = dict(sorted(self._votes.modification_breakdown(campaign_id=campaign_id).items()))
        total = sum(breakdown.values())
        modifiers = self._votes.count_modifiers(campaign_id=campaign_id)

        average = Decimal("0.00")
        if modifiers > 0:
            average = (Decimal(total) / Decimal(modifiers)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        return ModificationStats(
            campaign_id=campaign_id,
            total_modifications=total,
            unique_modifiers=modifiers,
            by_modification_number=breakdown,
            average_per_voter=average,
        )

    # -------- Audit --------
    def list_anonymous_votes(
        self,
        campaign_id: int,
        *,
        limit: int = DEFAULT_AUDIT_LIMIT,
        offset: int = 0,
        include_reasons: bool = False,
    ) -> Sequence[AnonymousVoteRow]:
        if int(limit) <= 0 or int(offset) < 0:
            raise ValidationError("Invalid paging parameters")
        return self._votes.list_anonymous(
            campaign_id=int(campaign_id),
            limit=int(limit),
            offset=int(offset),
            include_reasons=bool(include_reasons),
        )
