"""
Registry of known clients. Built once at startup; secrets are kept only as bcrypt hashes.
"""
import logging
from collections.abc import Mapping
from types import MappingProxyType

import bcrypt

logger = logging.getLogger(__name__)


def hash_secret(secret: str, rounds: int = 12) -> str:
    # Bcrypt has a 72-byte limit
    raw = secret.encode("utf-8")[:72]
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_secret(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))


class ClientRegistry:
    """Immutable client_id -> secret hash mapping."""

    def __init__(self, secret_hashes: Mapping[str, str]):
        self._hashes = MappingProxyType(dict(secret_hashes))

    @classmethod
    def from_plaintext(cls, clients: Mapping[str, str], rounds: int = 12) -> "ClientRegistry":
        registry = cls({client_id: hash_secret(secret, rounds) for client_id, secret in clients.items()})
        logger.info("Client registry loaded: %s", ", ".join(sorted(clients)) or "(empty)")
        return registry

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._hashes

    def __len__(self) -> int:
        return len(self._hashes)

    def verify(self, client_id: str | None, client_secret: str | None) -> bool:
        """True only if client_id is registered and client_secret matches."""
        if not client_id or client_secret is None:
            return False
        hashed = self._hashes.get(client_id)
        if hashed is None:
            return False
        return verify_secret(client_secret, hashed)
