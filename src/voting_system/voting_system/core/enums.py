from __future__ import annotations

from enum import Enum


class CampaignStatus(str, Enum):
    """Trạng thái đợt bỏ phiếu (do hệ thống quản lý đợt bỏ phiếu cung cấp)."""

    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class VoteDecision(str, Enum):
    AGREE = "agree"
    DISAGREE = "disagree"
    ABSTAIN = "abstain"


class AppealType(str, Enum):
    """Loại khiếu nại kết quả bỏ phiếu."""

    PROMOTION_RESULT = "promotion_result"
    DEMOTION_RESULT = "demotion_result"
    VOTE_MANIPULATION = "vote_manipulation"
    UNFAIR_PROCESS = "unfair_process"


class AppealStatus(str, Enum):
    """Trạng thái luồng xử lý khiếu nại."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class AppealOutcome(str, Enum):
    MAINTAIN_RESULT = "maintain_result"
    REVOTE = "revote"
    DIRECT_OVERRIDE = "direct_override"
    POSITION_RESTORED = "position_restored"


class AppealPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        # Higher rank is served first in the review queue.
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    AppealPriority.URGENT: 3,
    AppealPriority.HIGH: 2,
    AppealPriority.MEDIUM: 1,
    AppealPriority.LOW: 0,
}
