from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from ..core.enums import VoteDecision


@dataclass(frozen=True)
class Amendment:
    original_decision: Optional[VoteDecision]
    current_decision: VoteDecision
    modification_count: int = 0
    can_still_modify: bool = True
    last_modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class Vote:
    vote_id: int
    campaign_id: int
    candidate_id: int
    voter_token: str
    voter_fingerprint: str
    voted_at: datetime
    amendment: Amendment
    ranking: Optional[int] = None
    weight: Decimal = Decimal("1.00")
    reason: Optional[str] = None
    ip_hash: Optional[str] = None
    ua_hash: Optional[str] = None
    session_id: Optional[str] = None
    is_valid: bool = True
    validation_notes: Optional[str] = None


@dataclass(frozen=True)
class NewVote:
    """Row to persist; built by the ledger from already-anonymized values."""

    campaign_id: int
    candidate_id: int
    voter_token: str
    voter_fingerprint: str
    voted_at: datetime
    decision: VoteDecision
    ranking: Optional[int] = None
    weight: Decimal = Decimal("1.00")
    reason: Optional[str] = None
    ip_hash: Optional[str] = None
    ua_hash: Optional[str] = None
    session_id: Optional[str] = None


@dataclass(frozen=True)
class VoteModification:
    modification_id: int
    vote_id: int
    campaign_id: int
    voter_fingerprint: str
    modification_number: int
    old_decision: Optional[VoteDecision]
    new_decision: VoteDecision
    old_candidate_id: Optional[int]
    new_candidate_id: int
    modified_at: datetime
    reason: Optional[str] = None


@dataclass(frozen=True)
class ModificationStatus:
    has_voted: bool
    current_modifications: int
    remaining_modifications: int
    max_modifications: int

    @property
    def can_modify(self) -> bool:
        return self.has_voted and self.remaining_modifications > 0


@dataclass(frozen=True)
class AnonymousVoteRow:
    """Audit view of a vote: no token, no fingerprint."""

    vote_id: int
    candidate_id: int
    ranking: Optional[int]
    weight: Decimal
    voted_at: datetime
    session_id: Optional[str]
    is_valid: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class CandidateTally:
    candidate_id: int
    vote_count: int
    avg_weight: Decimal


@dataclass(frozen=True)
class ModificationStats:
    """Campaign-wide amendment summary; voters are counted by fingerprint."""

    campaign_id: int
    total_modifications: int
    unique_modifiers: int
    by_modification_number: Dict[int, int] = field(default_factory=dict)
    average_per_voter: Decimal = Decimal("0.00")
