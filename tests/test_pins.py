"""Tests for the pin engine."""
import pytest

from pinboard.errors import PostNotFound, StoreError, UserNotFound
from pinboard.services import pins
from pinboard.store import DuplicateRecord


@pytest.fixture
def post(store, alice):
    return store.create_post(alice, caption="sunset over the bay")


class TestPin:
    async def test_pin_creates_record(self, store, bob, post):
        record, created = await pins.pin(store, bob.id, post.id)

        assert created is True
        assert record.user_id == bob.id
        assert record.post_id == post.id
        assert len(store.pins) == 1

    async def test_second_pin_is_a_noop(self, store, bob, post):
        first, _ = await pins.pin(store, bob.id, post.id)
        second, created = await pins.pin(store, bob.id, post.id)

        assert created is False
        assert second.id == first.id
        assert len(store.pins) == 1

    async def test_unknown_post(self, store, bob):
        with pytest.raises(PostNotFound):
            await pins.pin(store, bob.id, 404)
        assert store.pins == {}

    async def test_unknown_user(self, store, post):
        with pytest.raises(UserNotFound):
            await pins.pin(store, 9999, post.id)
        assert store.pins == {}

    async def test_concurrent_duplicate_resolves_to_existing(self, store, bob, post, monkeypatch):
        """Another request inserted the pin between our check and insert."""
        real_add = store.add_pin

        async def racing_add(user_id, post_id):
            await real_add(user_id, post_id)
            raise DuplicateRecord("add_pin")

        monkeypatch.setattr(store, "add_pin", racing_add)

        record, created = await pins.pin(store, bob.id, post.id)

        assert created is False
        assert record.post_id == post.id
        assert len(store.pins) == 1

    async def test_duplicate_that_vanished_is_internal(self, store, bob, post, monkeypatch):
        async def racing_add(user_id, post_id):
            raise DuplicateRecord("add_pin")

        monkeypatch.setattr(store, "add_pin", racing_add)

        with pytest.raises(StoreError):
            await pins.pin(store, bob.id, post.id)


class TestUnpin:
    async def test_unpin_without_pin_succeeds(self, store, bob, post):
        assert await pins.unpin(store, bob.id, post.id) is None

    async def test_unpin_removes_pin(self, store, bob, post):
        await pins.pin(store, bob.id, post.id)
        await pins.unpin(store, bob.id, post.id)

        assert await pins.has_pinned(store, bob.id, post.id) is False

    async def test_unpin_is_idempotent(self, store, bob, post):
        await pins.pin(store, bob.id, post.id)
        await pins.unpin(store, bob.id, post.id)
        await pins.unpin(store, bob.id, post.id)

        assert store.pins == {}


class TestHasPinned:
    async def test_anonymous_viewer_never_pinned(self, store, bob, post):
        await pins.pin(store, bob.id, post.id)

        assert await pins.has_pinned(store, None, post.id) is False

    async def test_viewer_relative(self, store, alice, bob, post):
        await pins.pin(store, bob.id, post.id)

        assert await pins.has_pinned(store, bob.id, post.id) is True
        assert await pins.has_pinned(store, alice.id, post.id) is False

    async def test_batch_returns_pinned_subset(self, store, alice, bob):
        posts = [store.create_post(alice, caption=f"post {i}") for i in range(4)]
        await pins.pin(store, bob.id, posts[0].id)
        await pins.pin(store, bob.id, posts[2].id)
        store.calls.clear()

        pinned = await pins.has_pinned_batch(store, bob.id, [p.id for p in posts])

        assert pinned == {posts[0].id, posts[2].id}
        assert store.calls == ["pinned_post_ids"]

    async def test_batch_short_circuits(self, store, bob, post):
        assert await pins.has_pinned_batch(store, None, [post.id]) == set()
        assert await pins.has_pinned_batch(store, bob.id, []) == set()
        assert store.calls == []
