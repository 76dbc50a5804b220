"""
Entity id minting.

Ids are a hash of the family prefix, the idempotency key and the command's
timestamp, so a replayed command mints the same id.
"""

import hashlib


def stable_id(*parts: str) -> str:
    """Hex SHA-256 of the parts joined with "|"."""
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def mint_entity_id(prefix: str, idempotency_key: str, now: int) -> str:
    """
    Id carried by an entity's genesis event: prefix, "_", then 24 hex chars.

        mint_entity_id("rec", "k-1", 1700000000000) -> "rec_3b9f0c..."
    """
    digest = stable_id(prefix, idempotency_key, str(now))
    return prefix + "_" + digest[:24]
