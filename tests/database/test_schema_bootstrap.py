from __future__ import annotations

from pathlib import Path

from src.voting_system.voting_system.database.bootstrap import _exec_sql, _iter_sql_statements, _strip_create_db_and_use

SCHEMA = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


class RecordingCursor:
    def __init__(self):
        self.statements: list[str] = []

    def execute(self, sql, params=None):
        self.statements.append(sql)


def test_splitter_ignores_semicolons_in_quotes_and_comments():
    sql = """
    -- header; with a semicolon
    INSERT INTO t VALUES ('a;b', "c;d");
    INSERT INTO t VALUES ('it\\'s');
    SELECT 1
    """

    statements = list(_iter_sql_statements(sql))

    assert statements == [
        "INSERT INTO t VALUES ('a;b', \"c;d\")",
        "INSERT INTO t VALUES ('it\\'s')",
        "SELECT 1",
    ]


def test_create_database_and_use_are_stripped():
    sql = "CREATE DATABASE IF NOT EXISTS voting_db;\nUSE voting_db;\nCREATE TABLE x (id INT);\n"

    assert list(_iter_sql_statements(_strip_create_db_and_use(sql))) == ["CREATE TABLE x (id INT)"]


def test_schema_file_creates_voting_tables():
    cur = RecordingCursor()

    count = _exec_sql(cur, _strip_create_db_and_use(SCHEMA.read_text(encoding="utf-8")))

    assert count == len(cur.statements)
    created = [s for s in cur.statements if s.upper().startswith("CREATE TABLE")]
    names = {s.split()[5] for s in created}
    assert names == {
        "promotion_campaigns",
        "promotion_candidates",
        "promotion_votes",
        "vote_modification_history",
        "vote_appeals",
    }
    votes_ddl = next(s for s in created if s.split()[5] == "promotion_votes")
    assert "uq_vote_valid_voter" in votes_ddl


def test_event_timestamps_keep_microseconds():
    created = [
        s
        for s in _iter_sql_statements(_strip_create_db_and_use(SCHEMA.read_text(encoding="utf-8")))
        if s.upper().startswith("CREATE TABLE")
    ]
    ddl = {s.split()[5]: s for s in created}

    assert "voted_at DATETIME(6)" in ddl["promotion_votes"]
    assert "last_modified_at DATETIME(6)" in ddl["promotion_votes"]
    assert "modified_at DATETIME(6)" in ddl["vote_modification_history"]
    assert "submitted_at DATETIME(6)" in ddl["vote_appeals"]
    assert "reviewed_at DATETIME(6)" in ddl["vote_appeals"]
