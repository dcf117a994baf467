"""Registry store — whole-document JSON persistence of registry entries."""

from __future__ import annotations

import logging
from pathlib import Path

from server_wallet.errors.wallet_errors import StorageError
from server_wallet.registry.models import RegistryEntry
from server_wallet.utils.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


class RegistryStore:
    """Owns the ordered list of registry entries in one JSON file.

    Reads favour availability: a missing, unreadable or corrupt file loads as
    an empty registry.  Writes are strict: any failure raises
    :class:`StorageError`.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[RegistryEntry]:
        """Load all entries in registry order."""
        if not self._path.exists():
            return []
        try:
            data = read_json(self._path)
        except (OSError, ValueError) as exc:
            logger.warning("Registry file %s unreadable, treating as empty: %s", self._path, exc)
            return []
        if not isinstance(data, list):
            logger.warning("Registry file %s is not a JSON array, treating as empty", self._path)
            return []

        entries: list[RegistryEntry] = []
        for record in data:
            try:
                entries.append(RegistryEntry.from_dict(record))
            except (KeyError, TypeError):
                logger.warning("Skipping malformed registry record: %r", record)
        return entries

    def save(self, entries: list[RegistryEntry]) -> None:
        """Replace the persisted registry with *entries*.

        Raises:
            StorageError: If the file cannot be written.
        """
        try:
            write_json_atomic(self._path, [e.to_dict() for e in entries])
        except OSError as exc:
            msg = f"Failed to write registry: {exc}"
            raise StorageError(msg) from exc
