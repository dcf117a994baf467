"""Registry entry model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and ``Z`` suffix."""
    now = datetime.now(tz=UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class RegistryEntry:
    """One tag bound to one identity key.

    Entries are immutable: registering appends, revoking removes.

    Attributes:
        tag: Human-readable handle as registered (trimmed, case preserved).
        identity_key: Hex-encoded 33-byte compressed public key.
        created_at: ISO-8601 creation timestamp.
    """

    tag: str
    identity_key: str
    created_at: str

    @property
    def normalized_tag(self) -> str:
        """Case-folded tag used for uniqueness checks."""
        return self.tag.lower()

    def matches(self, tag: str, identity_key: str) -> bool:
        """Check if this entry is the ``(tag, identity_key)`` pair."""
        return self.normalized_tag == tag.lower() and self.identity_key == identity_key

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryEntry:
        """Build from the persisted camelCase record.

        Raises:
            KeyError: If ``tag`` or ``identityKey`` is missing.
            TypeError: If they are not strings.
        """
        tag = data["tag"]
        identity_key = data["identityKey"]
        if not isinstance(tag, str) or not isinstance(identity_key, str):
            msg = "tag and identityKey must be strings"
            raise TypeError(msg)
        return cls(tag=tag, identity_key=identity_key, created_at=str(data.get("createdAt", "")))

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "identityKey": self.identity_key,
            "createdAt": self.created_at,
        }
