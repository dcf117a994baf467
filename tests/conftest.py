"""Shared test fixtures for the server wallet test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from server_wallet.bsv.brc42 import brc29_invoice_number, derive_child_public_key
from server_wallet.bsv.keys import generate_private_key, identity_key_for
from server_wallet.bsv.script import p2pkh_lock_script_from_pubkey
from server_wallet.bsv.transaction import Transaction
from server_wallet.config.settings import (
    AppConfig,
    DatabaseConfig,
    DatabaseEngine,
    MetricsConfig,
    RegistryConfig,
    WalletConfig,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from pathlib import Path


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Provide a test AppConfig with file state under *tmp_path*."""
    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn="sqlite+aiosqlite:///:memory:",
        ),
        registry=RegistryConfig(path=str(tmp_path / ".identity-registry.json")),
        wallet=WalletConfig(
            state_path=str(tmp_path / ".server-wallet.json"),
            private_key="",
        ),
        metrics=MetricsConfig(enabled=True),
    )


@pytest.fixture
async def datastore(app_config: AppConfig) -> AsyncIterator:
    """An open in-memory datastore with the wallet tables created."""
    from server_wallet.datastore.client import Datastore
    from server_wallet.wallet.models import Base

    ds = Datastore(app_config.db)
    await ds.open(base=Base)
    yield ds
    await ds.close()


@pytest.fixture
def keystore(app_config: AppConfig):
    from server_wallet.wallet.keystore import WalletKeyStore

    return WalletKeyStore(app_config.wallet.state_path)


@pytest.fixture
def sessions(app_config: AppConfig, keystore):
    from server_wallet.wallet.session import WalletSessionManager

    return WalletSessionManager(app_config.wallet, keystore)


@pytest.fixture
def sender_key() -> bytes:
    """Private key of the party funding the server wallet."""
    return generate_private_key()


@pytest.fixture
def sender_identity_key(sender_key: bytes) -> str:
    return identity_key_for(sender_key)


@pytest.fixture
def build_funding_tx(sender_key: bytes) -> Callable[..., Transaction]:
    """Factory building a transaction that pays a BRC-29 derived key.

    The sender derives the recipient's one-time key from its own private
    key, the recipient identity key and the prefix/suffix, exactly as a
    client wallet would.
    """

    def _build(
        recipient_identity_key: str,
        prefix: str,
        suffix: str,
        satoshis: int = 1000,
        *,
        output_index: int = 0,
        extra_outputs: int = 0,
        seed: int = 0,
    ) -> Transaction:
        invoice = brc29_invoice_number(prefix, suffix)
        child = derive_child_public_key(bytes.fromhex(recipient_identity_key), sender_key, invoice)
        lock = p2pkh_lock_script_from_pubkey(child)

        tx = Transaction()
        tx.add_input(bytes([seed % 256]) * 32, 0, b"\x51")
        filler = p2pkh_lock_script_from_pubkey(identity_key_bytes(sender_key))
        for i in range(extra_outputs + 1):
            if i == output_index:
                tx.add_output(satoshis, lock)
            else:
                tx.add_output(546, filler)
        return tx

    return _build


def identity_key_bytes(private_key: bytes) -> bytes:
    return bytes.fromhex(identity_key_for(private_key))


@pytest.fixture
def client(app_config: AppConfig):
    """A TestClient with the app lifespan running against *app_config*."""
    from fastapi.testclient import TestClient

    from server_wallet.api.app import create_app

    with TestClient(create_app(config=app_config), raise_server_exceptions=False) as test_client:
        yield test_client
