"""Tests for the tag registry rules — registry/service.py."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from unittest.mock import MagicMock, patch

import pytest

from server_wallet.bsv.keys import generate_private_key, identity_key_for
from server_wallet.errors import ConflictError, NotFoundError, StorageError, ValidationError
from server_wallet.registry.service import RegisterStatus, TagRegistryService
from server_wallet.registry.store import RegistryStore

if TYPE_CHECKING:
    from pathlib import Path

K1 = identity_key_for(generate_private_key())
K2 = identity_key_for(generate_private_key())


@pytest.fixture
def store(tmp_path: Path) -> RegistryStore:
    return RegistryStore(tmp_path / "registry.json")


@pytest.fixture
def service(store: RegistryStore) -> TagRegistryService:
    return TagRegistryService(store)


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------


class TestRegister:
    async def test_register_then_lookup(self, service: TagRegistryService) -> None:
        result = await service.register("Alice", K1)
        assert result.status is RegisterStatus.REGISTERED
        assert result.message == "Tag registered"
        assert result.tag == "Alice"

        _, results = await service.lookup("Alice")
        assert results == [{"tag": "Alice", "identityKey": K1}]

    async def test_tag_is_trimmed(self, service: TagRegistryService) -> None:
        result = await service.register("  alice  ", K1)
        assert result.tag == "alice"

    async def test_same_pair_is_idempotent(
        self, service: TagRegistryService, store: RegistryStore
    ) -> None:
        await service.register("alice", K1)
        again = await service.register("alice", K1)
        assert again.status is RegisterStatus.ALREADY_REGISTERED
        assert again.message == "Tag already registered"
        assert len(store.load()) == 1

    async def test_case_variant_of_own_tag_is_idempotent(
        self, service: TagRegistryService, store: RegistryStore
    ) -> None:
        await service.register("alice", K1)
        again = await service.register("ALICE", K1)
        assert again.status is RegisterStatus.ALREADY_REGISTERED
        assert [e.tag for e in store.load()] == ["alice"]

    @pytest.mark.parametrize(("first", "second"), [("alice", "ALICE"), ("Bob", "bob")])
    async def test_case_insensitive_conflict(
        self, service: TagRegistryService, store: RegistryStore, first: str, second: str
    ) -> None:
        await service.register(first, K1)
        with pytest.raises(ConflictError, match=f'Tag "{second}" is already registered'):
            await service.register(second, K2)
        assert [e.identity_key for e in store.load()] == [K1]

    async def test_uppercase_key_is_same_identity(
        self, service: TagRegistryService, store: RegistryStore
    ) -> None:
        await service.register("alice", K1)
        again = await service.register("alice", K1.upper())
        assert again.status is RegisterStatus.ALREADY_REGISTERED
        assert [e.identity_key for e in store.load()] == [K1]

        revoked = await service.revoke("alice", K1.upper())
        assert revoked.tag == "alice"
        assert store.load() == []

    async def test_identity_may_own_many_tags(self, service: TagRegistryService) -> None:
        await service.register("alice", K1)
        await service.register("alice-work", K1)
        tags = await service.list_for_identity(K1)
        assert [t["tag"] for t in tags] == ["alice", "alice-work"]

    @pytest.mark.parametrize(("tag", "key"), [(None, K1), ("alice", None), ("", K1), ("a", "")])
    async def test_missing_fields(self, service: TagRegistryService, tag, key) -> None:
        with pytest.raises(ValidationError, match="Missing required fields"):
            await service.register(tag, key)

    async def test_blank_tag(self, service: TagRegistryService) -> None:
        with pytest.raises(ValidationError, match="Tag cannot be empty"):
            await service.register("   ", K1)

    async def test_malformed_identity_key(self, service: TagRegistryService) -> None:
        with pytest.raises(ValidationError, match="identityKey"):
            await service.register("alice", "not-a-key")

    async def test_created_at_recorded(self, service: TagRegistryService) -> None:
        await service.register("alice", K1)
        [tag] = await service.list_for_identity(K1)
        assert tag["createdAt"].endswith("Z")

    async def test_storage_failure_surfaces(self, service: TagRegistryService) -> None:
        with (
            patch(
                "server_wallet.registry.store.write_json_atomic",
                side_effect=OSError("read-only filesystem"),
            ),
            pytest.raises(StorageError),
        ):
            await service.register("alice", K1)

    async def test_concurrent_registration_of_one_tag(
        self, service: TagRegistryService, store: RegistryStore
    ) -> None:
        """Two identities racing for one tag: exactly one wins."""
        results = await asyncio.gather(
            service.register("alice", K1),
            service.register("alice", K2),
            return_exceptions=True,
        )
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(conflicts) == 1
        assert len(store.load()) == 1

    async def test_concurrent_distinct_tags_all_persist(
        self, service: TagRegistryService, store: RegistryStore
    ) -> None:
        await asyncio.gather(*(service.register(f"tag-{i}", K1) for i in range(10)))
        assert sorted(e.tag for e in store.load()) == sorted(f"tag-{i}" for i in range(10))


# ---------------------------------------------------------------------------
# Revoke
# ---------------------------------------------------------------------------


class TestRevoke:
    async def test_revoke_removes_match(self, service: TagRegistryService) -> None:
        await service.register("alice", K1)
        result = await service.revoke("alice", K1)
        assert result.message == "Tag revoked"
        assert result.tag == "alice"
        _, results = await service.lookup("alice")
        assert results == []

    async def test_revoke_ignores_tag_case(self, service: TagRegistryService) -> None:
        await service.register("Alice", K1)
        await service.revoke("ALICE", K1)
        assert await service.list_for_identity(K1) == []

    async def test_revoke_keeps_other_tags(self, service: TagRegistryService) -> None:
        await service.register("alice", K1)
        await service.register("alice-work", K1)
        await service.revoke("alice", K1)
        assert [t["tag"] for t in await service.list_for_identity(K1)] == ["alice-work"]

    async def test_revoke_unknown_tag(
        self, service: TagRegistryService, store: RegistryStore
    ) -> None:
        await service.register("alice", K1)
        before = store.path.read_text()
        with pytest.raises(NotFoundError, match="Tag not found"):
            await service.revoke("bob", K1)
        assert store.path.read_text() == before

    async def test_revoke_other_identity_tag(self, service: TagRegistryService) -> None:
        await service.register("alice", K1)
        with pytest.raises(NotFoundError):
            await service.revoke("alice", K2)
        _, results = await service.lookup("alice")
        assert results == [{"tag": "alice", "identityKey": K1}]

    async def test_revoke_missing_fields(self, service: TagRegistryService) -> None:
        with pytest.raises(ValidationError):
            await service.revoke(None, K1)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    async def test_lookup_substring_case_insensitive(self, service: TagRegistryService) -> None:
        await service.register("Alice", K1)
        await service.register("malice", K2)
        await service.register("bob", K1)
        query, results = await service.lookup("  ALI ")
        assert query == "ali"
        assert [r["tag"] for r in results] == ["Alice", "malice"]

    @pytest.mark.parametrize("query", [None, "", "   "])
    async def test_lookup_empty_query(self, service: TagRegistryService, query) -> None:
        with pytest.raises(ValidationError, match="Missing query parameter"):
            await service.lookup(query)

    async def test_lookup_on_empty_registry(self, service: TagRegistryService) -> None:
        _, results = await service.lookup("anything")
        assert results == []

    async def test_list_exact_key_only(self, service: TagRegistryService) -> None:
        await service.register("alice", K1)
        await service.register("bob", K2)
        assert [t["tag"] for t in await service.list_for_identity(K2)] == ["bob"]

    async def test_list_ignores_key_case(self, service: TagRegistryService) -> None:
        await service.register("alice", K1.upper())
        tags = await service.list_for_identity(K1.upper())
        assert [t["tag"] for t in tags] == ["alice"]
        assert await service.list_for_identity(K1) == tags

    async def test_list_missing_key(self, service: TagRegistryService) -> None:
        with pytest.raises(ValidationError, match="Missing identityKey parameter"):
            await service.list_for_identity("")


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestMetrics:
    async def test_operations_recorded(self, store: RegistryStore) -> None:
        metrics = MagicMock()
        service = TagRegistryService(store, metrics=metrics)
        await service.register("alice", K1)
        with pytest.raises(ConflictError):
            await service.register("alice", K2)

        metrics.record_registry_operation.assert_any_call("register", "registered")
        metrics.record_registry_operation.assert_any_call("register", "conflict")
        metrics.set_registry_entry_count.assert_called_with(1)
