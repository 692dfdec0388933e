from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..campaigns.repository import CampaignRegistry
from ..common.datetime_utils import now_local
from ..core.exceptions import CampaignStateError
from ..events.dispatcher import EventPublisher, NullDispatcher
from ..events.model import IntegrityFlagged
from ..votes.repository import VoteRepository
from .model import IntegrityReport

logger = logging.getLogger(__name__)

DUPLICATE_REMEDIATION_NOTE = "Invalidated: duplicate fingerprint, earliest vote kept"


class IntegrityAuditor:
    """Post-hoc checks over the vote ledger.

    Findings are reported, never enforced on the voting path. The only way a
    vote becomes invalid is through ``invalidate_vote`` / ``remediate_duplicates``.
    """

    def __init__(
        self,
        votes: VoteRepository,
        campaigns: CampaignRegistry,
        *,
        events: EventPublisher | None = None,
    ):
        self._votes = votes
        self._campaigns = campaigns
        self._events = events or NullDispatcher()

    def validate_integrity(self, campaign_id: int, *, now: datetime | None = None) -> IntegrityReport:
        now = now or now_local()
        campaign = self._campaigns.get_campaign(int(campaign_id))
        if not campaign:
            raise CampaignStateError(f"Campaign {campaign_id} does not exist")

        duplicates = len(self._votes.duplicate_fingerprints(campaign_id=campaign.campaign_id))
        anomalies = self._votes.count_outside_window(
            campaign_id=campaign.campaign_id,
            start=campaign.start_date,
            end=campaign.end_date,
        )
        report = IntegrityReport(
            campaign_id=campaign.campaign_id,
            duplicate_fingerprints=duplicates,
            temporal_anomalies=anomalies,
            checked_at=now,
        )

        if not report.is_clean:
            logger.warning(
                "Integrity findings for campaign %s: %d duplicate fingerprints, %d votes outside window",
                campaign.campaign_id,
                duplicates,
                anomalies,
            )
            self._events.publish(
                IntegrityFlagged(
                    campaign_id=campaign.campaign_id,
                    duplicate_fingerprints=duplicates,
                    temporal_anomalies=anomalies,
                    checked_at=now,
                )
            )
        return report

    def invalidate_vote(self, vote_id: int, notes: Optional[str] = None) -> bool:
        ok = self._votes.invalidate(vote_id=int(vote_id), notes=(notes or "").strip() or None)
        if ok:
            logger.info("Vote %s invalidated: %s", vote_id, notes or "-")
        return ok

    def remediate_duplicates(self, campaign_id: int, *, notes: str = DUPLICATE_REMEDIATION_NOTE) -> int:
        """Keep the earliest valid vote of each duplicated fingerprint, invalidate the rest."""
        invalidated = 0
        for fp in self._votes.duplicate_fingerprints(campaign_id=int(campaign_id)):
            votes = self._votes.valid_votes_for_fingerprint(campaign_id=int(campaign_id), voter_fingerprint=fp)
            for extra in votes[1:]:
                if self.invalidate_vote(extra.vote_id, notes):
                    invalidated += 1
        if invalidated:
            logger.info("Remediated campaign %s: %d duplicate votes invalidated", campaign_id, invalidated)
        return invalidated
