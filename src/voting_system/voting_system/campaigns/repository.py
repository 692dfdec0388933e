from __future__ import annotations

from typing import Optional, Protocol

from .model import Campaign


class CampaignRegistry(Protocol):
    """Read-only view of campaigns; this package never writes them."""

    def get_campaign(self, campaign_id: int) -> Optional[Campaign]:
        raise NotImplementedError


class CandidateRegistry(Protocol):
    def candidate_exists(self, campaign_id: int, candidate_id: int) -> bool:
        raise NotImplementedError
