"""Identity tag registry — tag → identity key resolution."""

from __future__ import annotations

from server_wallet.registry.models import RegistryEntry
from server_wallet.registry.service import RegisterStatus, TagRegistryService
from server_wallet.registry.store import RegistryStore

__all__ = ["RegisterStatus", "RegistryEntry", "RegistryStore", "TagRegistryService"]
