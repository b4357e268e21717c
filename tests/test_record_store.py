"""
Tests for the in-memory record store.
"""

import asyncio

from gamebridge.services.record_store import (
    InMemoryRecordStore,
    subscription_collection,
)


class TestSubscriptionCollection:
    """Tests for the nested collection path."""

    def test_path(self):
        """Subscription receipts live under the user."""
        assert subscription_collection("u1") == "users/u1/subscription"


class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore."""

    async def test_missing_document(self):
        """Absent documents report exists=False with no fields."""
        store = InMemoryRecordStore()

        document = await store.get("users", "nobody")

        assert document.exists is False
        assert document.fields == {}
        assert document.get("gameData") is None

    async def test_set_replaces_document(self):
        """A plain set replaces every field."""
        store = InMemoryRecordStore()
        await store.set("users", "u1", {"a": 1, "b": 2})
        await store.set("users", "u1", {"c": 3})

        assert (await store.get("users", "u1")).fields == {"c": 3}

    async def test_merge_keeps_other_fields(self):
        """A merge set only touches the named fields."""
        store = InMemoryRecordStore()
        await store.set("users", "u1", {"a": 1, "b": 2})
        await store.set("users", "u1", {"b": 20, "c": 3}, merge=True)

        assert (await store.get("users", "u1")).fields == {"a": 1, "b": 20, "c": 3}

    async def test_merge_creates_missing_document(self):
        """Merging into an absent document creates it."""
        store = InMemoryRecordStore()
        await store.set("users", "u1", {"registered": True}, merge=True)

        assert (await store.get("users", "u1")).fields == {"registered": True}

    async def test_collections_are_separate(self):
        """The same id in two collections is two documents."""
        store = InMemoryRecordStore()
        await store.set("users", "x", {"kind": "user"})
        await store.set("purchases", "x", {"kind": "purchase"})

        assert (await store.get("users", "x")).get("kind") == "user"
        assert (await store.get("purchases", "x")).get("kind") == "purchase"
        assert len(store) == 2

    async def test_returned_fields_are_copies(self):
        """Mutating a snapshot or the written dict never changes the store."""
        store = InMemoryRecordStore()
        written = {"nested": {"value": 1}}
        await store.set("users", "u1", written)
        written["nested"]["value"] = 2

        snapshot = await store.get("users", "u1")
        snapshot.fields["nested"]["value"] = 3

        assert (await store.get("users", "u1")).fields == {"nested": {"value": 1}}

    async def test_create_only_once(self):
        """create writes only when the id is free."""
        store = InMemoryRecordStore()

        assert await store.create("purchases", "tok", {"userId": "u1"}) is True
        assert await store.create("purchases", "tok", {"userId": "u2"}) is False
        assert (await store.get("purchases", "tok")).get("userId") == "u1"

    async def test_concurrent_create_single_winner(self):
        """Concurrent creates of one id have exactly one winner."""
        store = InMemoryRecordStore()

        results = await asyncio.gather(
            *(store.create("purchases", "tok", {"n": i}) for i in range(10))
        )

        assert results.count(True) == 1
        assert len(store) == 1
