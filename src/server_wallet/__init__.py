"""py-server-wallet: identity tag registry and BRC-29 server wallet funding."""

from __future__ import annotations

__version__ = "0.1.0"
