from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AppealOutcome, AppealPriority, AppealStatus, AppealType
from ..core.exceptions import EligibilityError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import NewAppeal, VoteAppeal
from .repository import AppealRepository

_APPEAL_COLUMNS = """
    appeal_id, campaign_id, appellant_employee_id, target_employee_id,
    appeal_type, appeal_reason, status, submitted_at, appeal_deadline,
    resolution_time_limit, reviewed_by, reviewed_at, review_notes, outcome,
    priority, evidence_files, supporting_employees
"""


def _load_json_list(value: Any) -> list:
    # mysql-connector returns JSON columns as str or bytes depending on version.
    if value is None:
        return []
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else []
    return list(value or [])


def _row_to_appeal(r: dict) -> VoteAppeal:
    return VoteAppeal(
        appeal_id=int(r["appeal_id"]),
        campaign_id=int(r["campaign_id"]),
        appellant_employee_id=int(r["appellant_employee_id"]),
        appeal_type=AppealType(r["appeal_type"]),
        reason=r["appeal_reason"],
        status=AppealStatus(r["status"]),
        submitted_at=r["submitted_at"],
        appeal_deadline=r["appeal_deadline"],
        resolution_time_limit=r["resolution_time_limit"],
        priority=AppealPriority(r["priority"]),
        target_employee_id=r.get("target_employee_id"),
        reviewer_id=r.get("reviewed_by"),
        reviewed_at=r.get("reviewed_at"),
        review_notes=r.get("review_notes"),
        outcome=AppealOutcome(r["outcome"]) if r.get("outcome") else None,
        evidence=tuple(str(x) for x in _load_json_list(r.get("evidence_files"))),
        supporters=tuple(int(x) for x in _load_json_list(r.get("supporting_employees"))),
    )


def _status_placeholders(statuses: Iterable[AppealStatus]) -> tuple[str, list[object]]:
    values = [s.value for s in statuses]
    return ",".join(["%s"] * len(values)), list(values)


class MySQLAppealRepository(AppealRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, new_appeal: NewAppeal) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO vote_appeals(
                        campaign_id, appellant_employee_id, target_employee_id,
                        appeal_type, appeal_reason, status, submitted_at,
                        appeal_deadline, resolution_time_limit, priority,
                        evidence_files, supporting_employees
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(new_appeal.campaign_id),
                        int(new_appeal.appellant_employee_id),
                        new_appeal.target_employee_id,
                        new_appeal.appeal_type.value,
                        new_appeal.reason,
                        AppealStatus.PENDING.value,
                        new_appeal.submitted_at,
                        new_appeal.appeal_deadline,
                        new_appeal.resolution_time_limit,
                        new_appeal.priority.value,
                        json.dumps(list(new_appeal.evidence)),
                        json.dumps(list(new_appeal.supporters)),
                    ),
                )
                return int(cur.lastrowid)
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise EligibilityError("duplicate appeal type") from e
            raise

    def get(self, *, appeal_id: int) -> Optional[VoteAppeal]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_APPEAL_COLUMNS} FROM vote_appeals WHERE appeal_id=%s", (int(appeal_id),))
            r = fetchone(cur)
            return _row_to_appeal(r) if r else None

    def exists_for_type(self, *, campaign_id: int, appellant_id: int, appeal_type: AppealType) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS found FROM vote_appeals
                WHERE campaign_id=%s AND appellant_employee_id=%s AND appeal_type=%s
                LIMIT 1
                """,
                (int(campaign_id), int(appellant_id), appeal_type.value),
            )
            return fetchone(cur) is not None

    def count_submitted_since(self, *, appellant_id: int, since: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n FROM vote_appeals
                WHERE appellant_employee_id=%s AND submitted_at >= %s
                """,
                (int(appellant_id), since),
            )
            return int(fetchone(cur)["n"])

    def transition(
        self,
        *,
        appeal_id: int,
        expected_status: AppealStatus,
        new_status: AppealStatus,
        reviewer_id: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        review_notes: Optional[str] = None,
        outcome: Optional[AppealOutcome] = None,
    ) -> bool:
        sets = ["status=%s"]
        params: list[object] = [new_status.value]

        if reviewer_id is not None:
            sets.append("reviewed_by=%s")
            params.append(int(reviewer_id))
        if reviewed_at is not None:
            sets.append("reviewed_at=%s")
            params.append(reviewed_at)
        if review_notes is not None:
            sets.append("review_notes=%s")
            params.append(review_notes)
        if outcome is not None:
            sets.append("outcome=%s")
            params.append(outcome.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE vote_appeals
                SET {", ".join(sets)}
                WHERE appeal_id=%s AND status=%s
                """,
                tuple(params + [int(appeal_id), expected_status.value]),
            )
            return cur.rowcount > 0

    def list_by_status(self, *, statuses: Iterable[AppealStatus]) -> Sequence[VoteAppeal]:
        placeholders, params = _status_placeholders(statuses)
        if not params:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_APPEAL_COLUMNS} FROM vote_appeals
                WHERE status IN ({placeholders})
                ORDER BY submitted_at ASC, appeal_id ASC
                """,
                tuple(params),
            )
            return [_row_to_appeal(r) for r in fetchall(cur)]

    def list_for_appellant(
        self,
        *,
        appellant_id: int,
        statuses: Optional[Iterable[AppealStatus]] = None,
    ) -> Sequence[VoteAppeal]:
        clauses = ["appellant_employee_id=%s"]
        params: list[object] = [int(appellant_id)]

        if statuses is not None:
            placeholders, values = _status_placeholders(statuses)
            if not values:
                return []
            clauses.append(f"status IN ({placeholders})")
            params.extend(values)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_APPEAL_COLUMNS} FROM vote_appeals
                WHERE {where}
                ORDER BY submitted_at DESC, appeal_id DESC
                """,
                tuple(params),
            )
            return [_row_to_appeal(r) for r in fetchall(cur)]

    def list_submitted_between(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[VoteAppeal]:
        clauses = ["1=1"]
        params: list[object] = []

        if start is not None:
            clauses.append("submitted_at >= %s")
            params.append(start)
        if end is not None:
            clauses.append("submitted_at <= %s")
            params.append(end)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_APPEAL_COLUMNS} FROM vote_appeals
                WHERE {where}
                ORDER BY submitted_at ASC, appeal_id ASC
                """,
                tuple(params),
            )
            return [_row_to_appeal(r) for r in fetchall(cur)]
