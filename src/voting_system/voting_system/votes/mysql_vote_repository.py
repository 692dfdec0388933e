from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import VoteDecision
from ..core.exceptions import DuplicateVoteError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, to_decimal
from .model import Amendment, AnonymousVoteRow, CandidateTally, NewVote, Vote, VoteModification
from .repository import VoteRepository

_VOTE_COLUMNS = """
    vote_id, campaign_id, candidate_id, voter_token, voter_fingerprint,
    vote_ranking, vote_weight, vote_reason, ip_address_hash, user_agent_hash,
    session_id, voted_at, is_valid, validation_notes,
    original_decision, current_decision, modification_count, can_still_modify, last_modified_at
"""


def _row_to_vote(r: dict) -> Vote:
    return Vote(
        vote_id=int(r["vote_id"]),
        campaign_id=int(r["campaign_id"]),
        candidate_id=int(r["candidate_id"]),
        voter_token=r["voter_token"],
        voter_fingerprint=r["voter_fingerprint"],
        voted_at=r["voted_at"],
        amendment=Amendment(
            original_decision=VoteDecision(r["original_decision"]) if r.get("original_decision") else None,
            current_decision=VoteDecision(r["current_decision"]),
            modification_count=int(r["modification_count"]),
            can_still_modify=bool(r["can_still_modify"]),
            last_modified_at=r.get("last_modified_at"),
        ),
        ranking=int(r["vote_ranking"]) if r.get("vote_ranking") is not None else None,
        weight=to_decimal(r["vote_weight"]),
        reason=r.get("vote_reason"),
        ip_hash=r.get("ip_address_hash"),
        ua_hash=r.get("user_agent_hash"),
        session_id=r.get("session_id"),
        is_valid=bool(r["is_valid"]),
        validation_notes=r.get("validation_notes"),
    )


class MySQLVoteRepository(VoteRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Ledger --------
    def exists_valid(self, *, campaign_id: int, voter_fingerprint: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS found FROM promotion_votes
                WHERE campaign_id=%s AND voter_fingerprint=%s AND is_valid=1
                LIMIT 1
                """,
                (int(campaign_id), voter_fingerprint),
            )
            return fetchone(cur) is not None

    def insert(self, new_vote: NewVote) -> Vote:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO promotion_votes(
                        campaign_id, candidate_id, voter_token, voter_fingerprint,
                        vote_ranking, vote_weight, vote_reason, ip_address_hash, user_agent_hash,
                        session_id, voted_at, is_valid, original_decision, current_decision
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1,%s,%s)
                    """,
                    (
                        int(new_vote.campaign_id),
                        int(new_vote.candidate_id),
                        new_vote.voter_token,
                        new_vote.voter_fingerprint,
                        new_vote.ranking,
                        new_vote.weight,
                        new_vote.reason,
                        new_vote.ip_hash,
                        new_vote.ua_hash,
                        new_vote.session_id,
                        new_vote.voted_at,
                        new_vote.decision.value,
                        new_vote.decision.value,
                    ),
                )
                vote_id = int(cur.lastrowid)
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateVoteError("A valid vote already exists for this voter in this campaign") from e
            raise

        return Vote(
            vote_id=vote_id,
            campaign_id=new_vote.campaign_id,
            candidate_id=new_vote.candidate_id,
            voter_token=new_vote.voter_token,
            voter_fingerprint=new_vote.voter_fingerprint,
            voted_at=new_vote.voted_at,
            amendment=Amendment(original_decision=new_vote.decision, current_decision=new_vote.decision),
            ranking=new_vote.ranking,
            weight=new_vote.weight,
            reason=new_vote.reason,
            ip_hash=new_vote.ip_hash,
            ua_hash=new_vote.ua_hash,
            session_id=new_vote.session_id,
        )

    def get_by_id(self, *, vote_id: int) -> Optional[Vote]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_VOTE_COLUMNS} FROM promotion_votes WHERE vote_id=%s", (int(vote_id),))
            r = fetchone(cur)
            return _row_to_vote(r) if r else None

    def get_valid_by_fingerprint(self, *, campaign_id: int, voter_fingerprint: str) -> Optional[Vote]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_VOTE_COLUMNS} FROM promotion_votes
                WHERE campaign_id=%s AND voter_fingerprint=%s AND is_valid=1
                ORDER BY voted_at ASC, vote_id ASC
                LIMIT 1
                """,
                (int(campaign_id), voter_fingerprint),
            )
            r = fetchone(cur)
            return _row_to_vote(r) if r else None

    # -------- Amendments --------
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
        expected = int(vote.amendment.modification_count)
        number = expected + 1
        original = vote.amendment.original_decision or vote.amendment.current_decision

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE promotion_votes
                SET current_decision=%s, candidate_id=%s, original_decision=%s,
                    modification_count=%s, can_still_modify=%s, last_modified_at=%s
                WHERE vote_id=%s AND is_valid=1 AND can_still_modify=1 AND modification_count=%s
                """,
                (
                    new_decision.value,
                    int(new_candidate_id),
                    original.value,
                    number,
                    1 if number < int(max_modifications) else 0,
                    modified_at,
                    int(vote.vote_id),
                    expected,
                ),
            )
            if cur.rowcount <= 0:
                return False

            cur.execute(
                """
                INSERT INTO vote_modification_history(
                    vote_id, campaign_id, voter_fingerprint, modification_number,
                    old_decision, new_decision, old_candidate_id, new_candidate_id,
                    modification_reason, modified_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(vote.vote_id),
                    int(vote.campaign_id),
                    vote.voter_fingerprint,
                    number,
                    vote.amendment.current_decision.value,
                    new_decision.value,
                    int(vote.candidate_id),
                    int(new_candidate_id),
                    reason,
                    modified_at,
                ),
            )
            return True

    def list_modifications(self, *, campaign_id: int, voter_fingerprint: str) -> Sequence[VoteModification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT modification_id, vote_id, campaign_id, voter_fingerprint, modification_number,
                       old_decision, new_decision, old_candidate_id, new_candidate_id,
                       modification_reason, modified_at
                FROM vote_modification_history
                WHERE campaign_id=%s AND voter_fingerprint=%s
                ORDER BY modification_number ASC
                """,
                (int(campaign_id), voter_fingerprint),
            )
            return [
                VoteModification(
                    modification_id=int(r["modification_id"]),
                    vote_id=int(r["vote_id"]),
                    campaign_id=int(r["campaign_id"]),
                    voter_fingerprint=r["voter_fingerprint"],
                    modification_number=int(r["modification_number"]),
                    old_decision=VoteDecision(r["old_decision"]) if r.get("old_decision") else None,
                    new_decision=VoteDecision(r["new_decision"]),
                    old_candidate_id=r.get("old_candidate_id"),
                    new_candidate_id=int(r["new_candidate_id"]),
                    modified_at=r["modified_at"],
                    reason=r.get("modification_reason"),
                )
                for r in fetchall(cur)
            ]

    def modification_breakdown(self, *, campaign_id: int) -> Dict[int, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT modification_number, COUNT(*) AS n
                FROM vote_modification_history
                WHERE campaign_id=%s
                GROUP BY modification_number
                ORDER BY modification_number ASC
                """,
                (int(campaign_id),),
            )
            return {int(r["modification_number"]): int(r["n"]) for r in fetchall(cur)}

    def count_modifiers(self, *, campaign_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT voter_fingerprint) AS n
                FROM vote_modification_history
                WHERE campaign_id=%s
                """,
                (int(campaign_id),),
            )
            return int(fetchone(cur)["n"])

    # -------- Audit / aggregation --------
    def list_anonymous(
        self,
        *,
        campaign_id: int,
        limit: int = 100,
        offset: int = 0,
        include_reasons: bool = False,
    ) -> Sequence[AnonymousVoteRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT vote_id, candidate_id, vote_ranking, vote_weight, voted_at,
                       session_id, is_valid, vote_reason
                FROM promotion_votes
                WHERE campaign_id=%s AND is_valid=1
                ORDER BY voted_at ASC, vote_id ASC
                LIMIT %s OFFSET %s
                """,
                (int(campaign_id), int(limit), int(offset)),
            )
            return [
                AnonymousVoteRow(
                    vote_id=int(r["vote_id"]),
                    candidate_id=int(r["candidate_id"]),
                    ranking=r.get("vote_ranking"),
                    weight=to_decimal(r["vote_weight"]),
                    voted_at=r["voted_at"],
                    session_id=r.get("session_id"),
                    is_valid=bool(r["is_valid"]),
                    reason=r.get("vote_reason") if include_reasons else None,
                )
                for r in fetchall(cur)
            ]

    def count_valid(self, *, campaign_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM promotion_votes WHERE campaign_id=%s AND is_valid=1",
                (int(campaign_id),),
            )
            return int(fetchone(cur)["n"])

    def count_distinct_fingerprints(self, *, campaign_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT voter_fingerprint) AS n
                FROM promotion_votes
                WHERE campaign_id=%s AND is_valid=1
                """,
                (int(campaign_id),),
            )
            return int(fetchone(cur)["n"])

    def candidate_tallies(self, *, campaign_id: int) -> Sequence[CandidateTally]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT candidate_id, COUNT(*) AS vote_count, AVG(vote_weight) AS avg_weight
                FROM promotion_votes
                WHERE campaign_id=%s AND is_valid=1
                GROUP BY candidate_id
                """,
                (int(campaign_id),),
            )
            return [
                CandidateTally(
                    candidate_id=int(r["candidate_id"]),
                    vote_count=int(r["vote_count"]),
                    avg_weight=to_decimal(r["avg_weight"]),
                )
                for r in fetchall(cur)
            ]

    # -------- Integrity --------
    def duplicate_fingerprints(self, *, campaign_id: int) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT voter_fingerprint
                FROM promotion_votes
                WHERE campaign_id=%s AND is_valid=1
                GROUP BY voter_fingerprint
                HAVING COUNT(*) > 1
                """,
                (int(campaign_id),),
            )
            return [r["voter_fingerprint"] for r in fetchall(cur)]

    def valid_votes_for_fingerprint(self, *, campaign_id: int, voter_fingerprint: str) -> Sequence[Vote]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_VOTE_COLUMNS} FROM promotion_votes
                WHERE campaign_id=%s AND voter_fingerprint=%s AND is_valid=1
                ORDER BY voted_at ASC, vote_id ASC
                """,
                (int(campaign_id), voter_fingerprint),
            )
            return [_row_to_vote(r) for r in fetchall(cur)]

    def count_outside_window(self, *, campaign_id: int, start: datetime, end: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n FROM promotion_votes
                WHERE campaign_id=%s AND is_valid=1 AND (voted_at < %s OR voted_at > %s)
                """,
                (int(campaign_id), start, end),
            )
            return int(fetchone(cur)["n"])

    def invalidate(self, *, vote_id: int, notes: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE promotion_votes
                SET is_valid=0, can_still_modify=0, validation_notes=%s
                WHERE vote_id=%s AND is_valid=1
                """,
                (notes, int(vote_id)),
            )
            return cur.rowcount > 0
