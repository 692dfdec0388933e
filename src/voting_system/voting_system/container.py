from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Optional

from .appeals.mysql_appeal_repository import MySQLAppealRepository
from .appeals.service import AppealService
from .campaigns.mysql_campaign_repository import MySQLCampaignRegistry
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .events.dispatcher import EventDispatcher
from .integrity.service import IntegrityAuditor
from .stats.service import VoteStatisticsService
from .votes.mysql_vote_repository import MySQLVoteRepository
from .votes.service import VoteLedger


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    events: EventDispatcher

    campaigns_repo: MySQLCampaignRegistry
    votes_repo: MySQLVoteRepository
    appeals_repo: MySQLAppealRepository

    vote_ledger: VoteLedger
    statistics_service: VoteStatisticsService
    integrity_auditor: IntegrityAuditor
    appeal_service: AppealService


def build_container(*, db_config: dict, settings: Optional[ModuleType] = None) -> Container:
    def setting(name: str):
        return getattr(settings, name, getattr(constants, name, None))

    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    events = EventDispatcher()

    campaigns_repo = MySQLCampaignRegistry(conn)
    votes_repo = MySQLVoteRepository(conn)
    appeals_repo = MySQLAppealRepository(conn)

    vote_ledger = VoteLedger(
        votes_repo,
        campaigns_repo,
        campaigns_repo,
        events=events,
        salt=getattr(settings, "VOTE_SALT", constants.DEFAULT_VOTE_SALT),
        max_modifications=setting("MAX_VOTE_MODIFICATIONS"),
    )
    statistics_service = VoteStatisticsService(votes_repo)
    integrity_auditor = IntegrityAuditor(votes_repo, campaigns_repo, events=events)
    appeal_service = AppealService(
        appeals_repo,
        campaigns_repo,
        auditor=integrity_auditor,
        events=events,
        window_days=setting("APPEAL_WINDOW_DAYS"),
        rate_limit=setting("APPEAL_RATE_LIMIT"),
        rate_window_days=setting("APPEAL_RATE_WINDOW_DAYS"),
    )

    return Container(
        conn=conn,
        events=events,
        campaigns_repo=campaigns_repo,
        votes_repo=votes_repo,
        appeals_repo=appeals_repo,
        vote_ledger=vote_ledger,
        statistics_service=statistics_service,
        integrity_auditor=integrity_auditor,
        appeal_service=appeal_service,
    )
