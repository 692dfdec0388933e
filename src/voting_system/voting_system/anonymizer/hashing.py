"""One-way hashing of voter identity.

Two different hashes are derived from the same (employee, campaign) pair and
they must never be used in place of each other:

- the *fingerprint* is deterministic and is the uniqueness key of a vote;
- the *token* mixes in a salt and the current time, so it is a receipt that
  cannot be recomputed to look a voter up.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import epoch_micros
from ..core.constants import UNKNOWN_ATTRIBUTE


def _sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def fingerprint(employee_id: int, campaign_id: int) -> str:
    return _sha256_hex(f"{int(employee_id)}_{int(campaign_id)}")


def token(employee_id: int, campaign_id: int, salt: str, now: datetime) -> str:
    return _sha256_hex(f"{int(employee_id)}_{int(campaign_id)}_{salt}_{epoch_micros(now)}")


def hash_attribute(value: Optional[str]) -> str:
    """Hash an optional audit attribute (IP address, user agent)."""
    v = (value or "").strip()
    return _sha256_hex(v or UNKNOWN_ATTRIBUTE)


@dataclass(frozen=True)
class VoterIdentity:
    fingerprint: str
    token: str

    @property
    def receipt(self) -> str:
        return self.token[:16]


def anonymize(employee_id: int, campaign_id: int, *, salt: str, now: datetime) -> VoterIdentity:
    return VoterIdentity(
        fingerprint=fingerprint(employee_id, campaign_id),
        token=token(employee_id, campaign_id, salt, now),
    )
