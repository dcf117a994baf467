"""API request bodies.

These define the HTTP contract only.  Every field is optional so that a
missing value reaches the service layer, which owns the required-field
rules and their error messages.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TagRequest(BaseModel):
    """Body of ``register`` and ``revoke``."""

    model_config = ConfigDict(populate_by_name=True)

    tag: str | None = None
    identity_key: str | None = Field(None, alias="identityKey")


class ReceiveRequest(BaseModel):
    """Body of ``receive``.

    ``tx`` is either a hex string or an array of byte values.
    """

    model_config = ConfigDict(populate_by_name=True)

    tx: Any = None
    sender_identity_key: str | None = Field(None, alias="senderIdentityKey")
    derivation_prefix: str | None = Field(None, alias="derivationPrefix")
    derivation_suffix: str | None = Field(None, alias="derivationSuffix")
    output_index: int | None = Field(None, alias="outputIndex", ge=0)
    description: str | None = None
