from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..votes.repository import VoteRepository
from .model import CampaignStats, CandidateResult

_TWO_PLACES = Decimal("0.01")


def percentage_of(count: int, total: int) -> Decimal:
    if total <= 0:
        return Decimal("0.00")
    return (Decimal(count) * 100 / Decimal(total)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


class VoteStatisticsService:
    def __init__(self, votes: VoteRepository):
        self._votes = votes

    def campaign_stats(self, campaign_id: int) -> CampaignStats:
        campaign_id = int(campaign_id)
        total = self._votes.count_valid(campaign_id=campaign_id)
        # Counted separately from total as a cross-check of the one-vote-per-voter rule.
        unique = self._votes.count_distinct_fingerprints(campaign_id=campaign_id)

        tallies = sorted(
            self._votes.candidate_tallies(campaign_id=campaign_id),
            key=lambda t: (-t.vote_count, t.candidate_id),
        )
        return CampaignStats(
            campaign_id=campaign_id,
            total_votes=total,
            unique_voters=unique,
            per_candidate=[
                CandidateResult(
                    candidate_id=t.candidate_id,
                    vote_count=t.vote_count,
                    avg_weight=t.avg_weight,
                    percentage=percentage_of(t.vote_count, total),
                )
                for t in tallies
            ],
        )
