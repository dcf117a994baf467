"""Tag registry service — uniqueness and ownership rules over the store."""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from typing import TYPE_CHECKING, Any

from server_wallet.bsv.keys import is_identity_key
from server_wallet.errors.definitions import (
    ErrEmptyQuery,
    ErrInvalidIdentityKey,
    ErrMissingIdentityKey,
    ErrMissingTagFields,
    ErrTagEmpty,
    ErrTagNotFound,
)
from server_wallet.errors.wallet_errors import ConflictError
from server_wallet.registry.models import RegistryEntry, utc_timestamp

if TYPE_CHECKING:
    from server_wallet.metrics.collector import EngineMetrics
    from server_wallet.registry.store import RegistryStore

logger = logging.getLogger(__name__)


class RegisterStatus(enum.StrEnum):
    """Outcome of a successful register call."""

    REGISTERED = "registered"
    ALREADY_REGISTERED = "already_registered"


@dataclasses.dataclass(frozen=True)
class RegisterResult:
    status: RegisterStatus
    tag: str

    @property
    def message(self) -> str:
        if self.status is RegisterStatus.ALREADY_REGISTERED:
            return "Tag already registered"
        return "Tag registered"


@dataclasses.dataclass(frozen=True)
class RevokeResult:
    tag: str
    message: str = "Tag revoked"


class TagRegistryService:
    """Lookup, list, register and revoke over a :class:`RegistryStore`.

    Tags are globally unique ignoring case: one tag resolves to at most one
    identity key, while one identity key may own many tags.  Every mutation
    is a load-mutate-save cycle serialized by a single lock.
    """

    def __init__(self, store: RegistryStore, *, metrics: EngineMetrics | None = None) -> None:
        self._store = store
        self._metrics = metrics
        self._lock = asyncio.Lock()

    async def _load(self) -> list[RegistryEntry]:
        return await asyncio.to_thread(self._store.load)

    async def _save(self, entries: list[RegistryEntry]) -> None:
        await asyncio.to_thread(self._store.save, entries)
        if self._metrics is not None:
            self._metrics.set_registry_entry_count(len(entries))

    def _record(self, action: str, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_registry_operation(action, result)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def lookup(self, query: str | None) -> tuple[str, list[dict[str, Any]]]:
        """Find every tag containing *query*, ignoring case.

        Returns:
            The normalized query and ``[{tag, identityKey}]`` in registry order.

        Raises:
            ValidationError: If the query is empty after trimming.
        """
        normalized = (query or "").strip().lower()
        if not normalized:
            raise ErrEmptyQuery
        entries = await self._load()
        results = [
            {"tag": e.tag, "identityKey": e.identity_key}
            for e in entries
            if normalized in e.normalized_tag
        ]
        self._record("lookup", "ok")
        return normalized, results

    async def list_for_identity(self, identity_key: str | None) -> list[dict[str, Any]]:
        """List ``[{tag, createdAt}]`` owned by exactly *identity_key*."""
        if not identity_key:
            raise ErrMissingIdentityKey
        key = identity_key.strip().lower()
        entries = await self._load()
        self._record("list", "ok")
        return [{"tag": e.tag, "createdAt": e.created_at} for e in entries if e.identity_key == key]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize(tag: str | None, identity_key: str | None) -> tuple[str, str]:
        if not tag or not identity_key:
            raise ErrMissingTagFields
        normalized = tag.strip()
        if not normalized:
            raise ErrTagEmpty
        return normalized, identity_key.strip().lower()

    async def register(self, tag: str | None, identity_key: str | None) -> RegisterResult:
        """Bind *tag* to *identity_key*.

        Re-registering an existing pair is a successful no-op.

        Raises:
            ValidationError: Missing fields, blank tag or malformed key.
            ConflictError: The tag belongs to a different identity key.
            StorageError: The registry could not be written.
        """
        normalized, identity_key = self._normalize(tag, identity_key)
        if not is_identity_key(identity_key):
            raise ErrInvalidIdentityKey

        async with self._lock:
            entries = await self._load()
            existing = next(
                (e for e in entries if e.normalized_tag == normalized.lower()),
                None,
            )
            if existing is not None and existing.identity_key != identity_key:
                self._record("register", "conflict")
                msg = f'Tag "{normalized}" is already registered to another identity'
                raise ConflictError(msg)
            if existing is not None:
                self._record("register", "already_registered")
                return RegisterResult(RegisterStatus.ALREADY_REGISTERED, normalized)

            entries.append(
                RegistryEntry(tag=normalized, identity_key=identity_key, created_at=utc_timestamp())
            )
            await self._save(entries)

        logger.info("Registered tag %r for identity %s", normalized, identity_key)
        self._record("register", "registered")
        return RegisterResult(RegisterStatus.REGISTERED, normalized)

    async def revoke(self, tag: str | None, identity_key: str | None) -> RevokeResult:
        """Remove the entry binding *tag* to *identity_key*.

        Other tags of the same identity are untouched.

        Raises:
            ValidationError: Missing fields or blank tag.
            NotFoundError: No entry matches both tag and key.
            StorageError: The registry could not be written.
        """
        normalized, identity_key = self._normalize(tag, identity_key)

        async with self._lock:
            entries = await self._load()
            idx = next(
                (i for i, e in enumerate(entries) if e.matches(normalized, identity_key)),
                None,
            )
            if idx is None:
                self._record("revoke", "not_found")
                raise ErrTagNotFound
            del entries[idx]
            await self._save(entries)

        logger.info("Revoked tag %r for identity %s", normalized, identity_key)
        self._record("revoke", "revoked")
        return RevokeResult(normalized)
