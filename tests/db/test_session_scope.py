"""session_scope against the real test database."""

import pytest
from sqlalchemy import select

from warehouse_kernel.db.engine import get_engine, session_scope
from warehouse_kernel.models.sequence_counter import SequenceCounter


def _counter_value(factory, name):
    s = factory()
    try:
        return s.execute(
            select(SequenceCounter.current_value).where(SequenceCounter.name == name)
        ).scalar_one_or_none()
    finally:
        s.close()


class TestSessionScope:

    def test_commits_on_clean_exit(self, committed_session_factory):
        with session_scope() as session:
            session.add(SequenceCounter(name="scope_commit", current_value=7))

        assert _counter_value(committed_session_factory, "scope_commit") == 7

    def test_rolls_back_and_reraises(self, committed_session_factory):
        with pytest.raises(RuntimeError, match="boom"):
            with session_scope() as session:
                session.add(SequenceCounter(name="scope_rollback", current_value=1))
                session.flush()
                raise RuntimeError("boom")

        assert _counter_value(committed_session_factory, "scope_rollback") is None

    def test_engine_is_shared(self, db_engine):
        assert get_engine() is db_engine
