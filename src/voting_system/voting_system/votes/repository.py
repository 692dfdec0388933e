from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Protocol, Sequence

from ..core.enums import VoteDecision
from .model import AnonymousVoteRow, CandidateTally, NewVote, Vote, VoteModification


class VoteRepository(Protocol):
    # Ledger
    def exists_valid(self, *, campaign_id: int, voter_fingerprint: str) -> bool:
        raise NotImplementedError

    def insert(self, new_vote: NewVote) -> Vote:
        """Persist a vote.

        Must raise DuplicateVoteError when the (campaign, fingerprint) unique
        key among valid votes rejects the row.
        """

        raise NotImplementedError

    def get_by_id(self, *, vote_id: int) -> Optional[Vote]:
        raise NotImplementedError

    def get_valid_by_fingerprint(self, *, campaign_id: int, voter_fingerprint: str) -> Optional[Vote]:
        raise NotImplementedError

    # Amendments
    def apply_amendment(
        self,
        *,
        vote: Vote,
        new_decision: VoteDecision,
        new_candidate_id: int,
        reason: Optional[str],
        max_modifications: int,
        modified_at: datetime,
    ) -> bool:
        """Update the vote and append its history row in one transaction.

        The update only applies if the stored modification_count still equals
        ``vote.amendment.modification_count``; returns False otherwise.
        """

        raise NotImplementedError

    def list_modifications(self, *, campaign_id: int, voter_fingerprint: str) -> Sequence[VoteModification]:
        raise NotImplementedError

    def modification_breakdown(self, *, campaign_id: int) -> Dict[int, int]:
        """History rows per modification_number (1st, 2nd, ... amendment)."""

        raise NotImplementedError

    def count_modifiers(self, *, campaign_id: int) -> int:
        """Distinct fingerprints with at least one history row."""

        raise NotImplementedError

    # Audit / aggregation
    def list_anonymous(
        self,
        *,
        campaign_id: int,
        limit: int = 100,
        offset: int = 0,
        include_reasons: bool = False,
    ) -> Sequence[AnonymousVoteRow]:
        raise NotImplementedError

    def count_valid(self, *, campaign_id: int) -> int:
        raise NotImplementedError

    def count_distinct_fingerprints(self, *, campaign_id: int) -> int:
        raise NotImplementedError

    def candidate_tallies(self, *, campaign_id: int) -> Sequence[CandidateTally]:
        raise NotImplementedError

    # Integrity
    def duplicate_fingerprints(self, *, campaign_id: int) -> Sequence[str]:
        """Fingerprints held by more than one valid vote in the campaign."""

        raise NotImplementedError

    def valid_votes_for_fingerprint(self, *, campaign_id: int, voter_fingerprint: str) -> Sequence[Vote]:
        """Valid votes of one fingerprint, oldest first."""

        raise NotImplementedError

    def count_outside_window(self, *, campaign_id: int, start: datetime, end: datetime) -> int:
        raise NotImplementedError

    def invalidate(self, *, vote_id: int, notes: Optional[str]) -> bool:
        raise NotImplementedError
