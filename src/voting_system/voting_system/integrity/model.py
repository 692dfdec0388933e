from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class IntegrityReport:
    """Advisory findings for one campaign; never blocks voting."""

    campaign_id: int
    duplicate_fingerprints: int
    temporal_anomalies: int
    checked_at: datetime

    @property
    def is_clean(self) -> bool:
        return self.duplicate_fingerprints == 0 and self.temporal_anomalies == 0
