from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List


@dataclass(frozen=True)
class CandidateResult:
    candidate_id: int
    vote_count: int
    avg_weight: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class CampaignStats:
    campaign_id: int
    total_votes: int
    unique_voters: int
    per_candidate: List[CandidateResult] = field(default_factory=list)
