from __future__ import annotations

from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(exc: IntegrityError) -> bool:
    """True when the integrity failure is a unique-key collision (ER_DUP_ENTRY)."""
    return getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


def to_decimal(value: Any, places: str = "0.01") -> Decimal:
    """Normalize MySQL DECIMAL/AVG results across connector implementations.

    mysql-connector can return DECIMAL aggregates as Decimal, float or str.
    """

    if value is None:
        return Decimal("0").quantize(Decimal(places))
    return Decimal(str(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP)
