from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.enums import CampaignStatus


@dataclass(frozen=True)
class Campaign:
    campaign_id: int
    start_date: datetime
    end_date: datetime
    status: CampaignStatus

    def is_open(self, now: datetime) -> bool:
        return self.status == CampaignStatus.ACTIVE and self.contains(now)

    @property
    def is_closed(self) -> bool:
        return self.status == CampaignStatus.CLOSED

    def contains(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date
