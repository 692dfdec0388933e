class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class CampaignStateError(DomainError):
    """Raised when the campaign is missing or not in the state the operation needs."""


class DuplicateVoteError(DomainError):
    """Raised when a valid vote already exists for the voter fingerprint."""


class EligibilityError(DomainError):
    """Raised when an appeal fails one of the eligibility rules.

    ``reason`` carries the rule that failed, e.g. ``"deadline passed"``.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class CampaignNotClosedError(EligibilityError, CampaignStateError):
    """Raised when an appeal is filed while the campaign is still open."""


class StateError(DomainError):
    """Raised on an illegal state transition or a lost compare-and-swap."""


class AmendmentError(StateError):
    """Raised when a vote can no longer be amended."""
