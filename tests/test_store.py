"""Tests for SQL store error translation (no database required)."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from pinboard.errors import StoreError, StoreUnavailable
from pinboard.store import DuplicateRecord, SqlRelationStore, _is_unique_violation


class _Orig(Exception):
    def __init__(self, sqlstate):
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


class _NestedTransaction:
    def __init__(self, exc=None):
        self.exc = exc

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        if self.exc is not None:
            raise self.exc
        return False


def _session(execute=None, nested_exc=None):
    session = MagicMock()
    session.execute = execute or AsyncMock()
    session.refresh = AsyncMock()
    session.begin_nested = MagicMock(return_value=_NestedTransaction(nested_exc))
    return session


class TestErrorTranslation:
    async def test_operational_error_is_transient(self):
        boom = OperationalError("SELECT 1", {}, Exception("connection refused"))
        store = SqlRelationStore(_session(execute=AsyncMock(side_effect=boom)))

        with pytest.raises(StoreUnavailable):
            await store.get_user(1)

    async def test_timeout_is_transient(self):
        store = SqlRelationStore(_session(execute=AsyncMock(side_effect=asyncio.TimeoutError())))

        with pytest.raises(StoreUnavailable):
            await store.list_posts(limit=10)

    async def test_other_driver_errors_are_internal(self):
        boom = ProgrammingError("SELECT nope", {}, Exception("syntax error"))
        store = SqlRelationStore(_session(execute=AsyncMock(side_effect=boom)))

        with pytest.raises(StoreError):
            await store.count_followers(1)

    async def test_unique_violation_is_duplicate(self):
        clash = IntegrityError("INSERT", {}, _Orig("23505"))
        store = SqlRelationStore(_session(nested_exc=clash))

        with pytest.raises(DuplicateRecord):
            await store.add_follow(1, 2)

    async def test_foreign_key_violation_is_internal(self):
        clash = IntegrityError("INSERT", {}, _Orig("23503"))
        store = SqlRelationStore(_session(nested_exc=clash))

        with pytest.raises(StoreError):
            await store.add_pin(1, 2)

    async def test_successful_insert_refreshes_row(self):
        session = _session()
        store = SqlRelationStore(session)

        follow = await store.add_follow(1, 2)

        session.add.assert_called_once_with(follow)
        session.refresh.assert_awaited_once_with(follow)
        assert (follow.follower_id, follow.followed_id) == (1, 2)


class TestUniqueViolationDetection:
    def test_sqlstate(self):
        assert _is_unique_violation(IntegrityError("x", {}, _Orig("23505")))
        assert not _is_unique_violation(IntegrityError("x", {}, _Orig("23514")))

    def test_missing_code_is_not_a_duplicate(self):
        assert not _is_unique_violation(IntegrityError("x", {}, Exception("not null")))

    async def test_uncoded_integrity_error_is_internal(self):
        clash = IntegrityError("INSERT", {}, Exception("null value in column"))
        store = SqlRelationStore(_session(nested_exc=clash))

        with pytest.raises(StoreError):
            await store.add_follow(1, 2)


class TestEmptyBatches:
    async def test_no_query_for_empty_id_sets(self):
        session = _session()
        store = SqlRelationStore(session)

        assert await store.get_users([]) == {}
        assert await store.get_posts([]) == {}
        assert await store.pinned_post_ids(1, []) == set()
        session.execute.assert_not_called()


class TestCommit:
    async def test_commit_delegates_to_session(self):
        session = _session()
        session.commit = AsyncMock()

        await SqlRelationStore(session).commit()

        session.commit.assert_awaited_once()

    async def test_lost_connection_on_commit_is_transient(self):
        session = _session()
        session.commit = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, Exception("connection lost"))
        )

        with pytest.raises(StoreUnavailable):
            await SqlRelationStore(session).commit()
