"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import AppealType

DEFAULT_VOTE_SALT = "default_salt"
UNKNOWN_ATTRIBUTE = "unknown"

DEFAULT_VOTE_WEIGHT = "1.00"
MAX_VOTE_WEIGHT = "9.99"
MAX_REASON_LENGTH = 2000
MAX_VOTE_MODIFICATIONS = 3
DEFAULT_AUDIT_LIMIT = 100

APPEAL_WINDOW_DAYS = 7
APPEAL_RATE_LIMIT = 2
APPEAL_RATE_WINDOW_DAYS = 30
DEFAULT_RESOLUTION_DAYS = 3

# Days a reviewer has to resolve an appeal, by appeal type.
RESOLUTION_DAYS_BY_TYPE = {
    AppealType.VOTE_MANIPULATION: 1,
    AppealType.DEMOTION_RESULT: 2,
    AppealType.PROMOTION_RESULT: 3,
    AppealType.UNFAIR_PROCESS: 5,
}
