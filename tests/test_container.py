from __future__ import annotations

from types import SimpleNamespace

from src.voting_system.voting_system.container import build_container


def test_container_shares_one_dispatcher_and_repository():
    settings = SimpleNamespace(VOTE_SALT="pepper", APPEAL_RATE_LIMIT=5)
    db_config = {"host": "localhost", "user": "root", "password": "", "database": "voting_test_db"}

    c = build_container(db_config=db_config, settings=settings)

    # No connection is opened until a repository runs a query.
    assert c.vote_ledger._events is c.events
    assert c.appeal_service._events is c.events
    assert c.integrity_auditor._votes is c.votes_repo
    assert c.vote_ledger._salt == "pepper"
    assert c.appeal_service._rate_limit == 5
    assert c.vote_ledger._max_modifications == 3
