from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from src.voting_system.voting_system.core.enums import VoteDecision
from src.voting_system.voting_system.core.exceptions import DuplicateVoteError
from src.voting_system.voting_system.votes.model import NewVote
from src.voting_system.voting_system.votes.mysql_vote_repository import MySQLVoteRepository


class FakeCursor:
    def __init__(self, error):
        self._error = error
        self.closed = False

    def execute(self, sql, params=None):
        raise self._error

    def close(self):
        self.closed = True


class FakeConn:
    def __init__(self, error):
        self.cur = FakeCursor(error)
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=False):
        return self.cur

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeConnFactory:
    def __init__(self, error):
        self.conn = FakeConn(error)

    def connect(self):
        return self.conn


def _new_vote():
    return NewVote(
        campaign_id=1,
        candidate_id=10,
        voter_token="a" * 64,
        voter_fingerprint="b" * 64,
        voted_at=datetime(2024, 1, 5, 9, 0, 0),
        decision=VoteDecision.AGREE,
        weight=Decimal("1.00"),
    )


def test_unique_key_violation_becomes_duplicate_vote_error():
    factory = FakeConnFactory(IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY))
    repo = MySQLVoteRepository(factory)

    with pytest.raises(DuplicateVoteError):
        repo.insert(_new_vote())

    assert factory.conn.rolled_back is True
    assert factory.conn.committed is False
    assert factory.conn.closed is True


def test_other_integrity_errors_propagate():
    factory = FakeConnFactory(IntegrityError(msg="FK fails", errno=errorcode.ER_NO_REFERENCED_ROW_2))
    repo = MySQLVoteRepository(factory)

    with pytest.raises(IntegrityError):
        repo.insert(_new_vote())

    assert factory.conn.rolled_back is True


class ScriptedCursor:
    def __init__(self, rows):
        self._rows = rows
        self.executed = []

    def execute(self, sql, params=None):
        self.executed.append((" ".join(sql.split()), params))

    def fetchall(self):
        return self._rows

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def close(self):
        pass


class ScriptedConnFactory(FakeConnFactory):
    def __init__(self, rows):
        super().__init__(error=None)
        self.conn.cur = ScriptedCursor(rows)


def test_modification_breakdown_groups_history_by_modification_number():
    factory = ScriptedConnFactory([{"modification_number": 1, "n": 2}, {"modification_number": 2, "n": 1}])
    repo = MySQLVoteRepository(factory)

    assert repo.modification_breakdown(campaign_id=1) == {1: 2, 2: 1}
    [(sql, params)] = factory.conn.cur.executed
    assert "GROUP BY modification_number" in sql
    assert params == (1,)
    assert factory.conn.committed is True


def test_count_modifiers_counts_distinct_fingerprints():
    factory = ScriptedConnFactory([{"n": 2}])
    repo = MySQLVoteRepository(factory)

    assert repo.count_modifiers(campaign_id=1) == 2
    [(sql, _)] = factory.conn.cur.executed
    assert "COUNT(DISTINCT voter_fingerprint)" in sql
