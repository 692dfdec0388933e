from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import AppealOutcome, AppealStatus, AppealType
from .model import NewAppeal, VoteAppeal


class AppealRepository(Protocol):
    def create(self, new_appeal: NewAppeal) -> int:
        """Insert a pending appeal.

        Must raise EligibilityError("duplicate appeal type") when the
        (campaign, appellant, type) unique key rejects the row.
        """

        raise NotImplementedError

    def get(self, *, appeal_id: int) -> Optional[VoteAppeal]:
        raise NotImplementedError

    def exists_for_type(self, *, campaign_id: int, appellant_id: int, appeal_type: AppealType) -> bool:
        raise NotImplementedError

    def count_submitted_since(self, *, appellant_id: int, since: datetime) -> int:
        raise NotImplementedError

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
        """Compare-and-swap status update.

        Applies only if the stored status still equals ``expected_status``.
        Fields passed as None are left untouched.
        """

        raise NotImplementedError

    def list_by_status(self, *, statuses: Iterable[AppealStatus]) -> Sequence[VoteAppeal]:
        raise NotImplementedError

    def list_for_appellant(
        self,
        *,
        appellant_id: int,
        statuses: Optional[Iterable[AppealStatus]] = None,
    ) -> Sequence[VoteAppeal]:
        raise NotImplementedError

    def list_submitted_between(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[VoteAppeal]:
        raise NotImplementedError
