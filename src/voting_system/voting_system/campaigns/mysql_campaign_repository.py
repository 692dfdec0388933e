from __future__ import annotations

from typing import Optional

from ..core.enums import CampaignStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Campaign
from .repository import CampaignRegistry, CandidateRegistry


class MySQLCampaignRegistry(CampaignRegistry, CandidateRegistry):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_campaign(self, campaign_id: int) -> Optional[Campaign]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT campaign_id, start_date, end_date, status
                FROM promotion_campaigns
                WHERE campaign_id=%s
                """,
                (int(campaign_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Campaign(
                campaign_id=int(r["campaign_id"]),
                start_date=r["start_date"],
                end_date=r["end_date"],
                status=CampaignStatus(r["status"]),
            )

    def candidate_exists(self, campaign_id: int, candidate_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM promotion_candidates WHERE candidate_id=%s AND campaign_id=%s",
                (int(candidate_id), int(campaign_id)),
            )
            return fetchone(cur) is not None
