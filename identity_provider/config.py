"""
Mock identity provider configuration. Read once from env into an immutable IssuerSettings
that the app factory hands to the issuer and client registry.
"""
import os
from dataclasses import dataclass, field

# Issuer identity for symmetric (HS256) tokens
ISSUER = os.environ.get("MOCK_IDP_ISSUER", "https://mock-idp.local").rstrip("/")

# Shared with the resource server's validator. Dev-only default.
SIGNING_SECRET = os.environ.get("MOCK_IDP_SIGNING_SECRET", "dev-only-super-secret-change-me-please")

# Access token lifetime (seconds): fixed 5 minute window
ACCESS_TOKEN_EXPIRES = 300

DEFAULT_SCOPE = "read:basic"

# Audit log storage (SQLite acceptable for the lab)
DATABASE_URL = os.environ.get("IDP_DATABASE_URL", "sqlite:///./identity_provider.db")

PORT = int(os.environ.get("IDP_PORT", "4001"))

_DEFAULT_CLIENTS = "svc-a:svc-a-secret,svc-b:svc-b-secret,svc-c:svc-c-secret"


def parse_clients(value: str) -> dict[str, str]:
    """Parse 'id:secret,id2:secret2' into a mapping. Entries without ':' are ignored."""
    clients: dict[str, str] = {}
    for entry in value.split(","):
        client_id, sep, secret = entry.strip().partition(":")
        if sep and client_id and secret:
            clients[client_id] = secret
    return clients


@dataclass(frozen=True)
class IssuerSettings:
    issuer: str = ISSUER
    signing_secret: str = SIGNING_SECRET
    token_ttl_seconds: int = ACCESS_TOKEN_EXPIRES
    default_scope: str = DEFAULT_SCOPE
    clients: dict[str, str] = field(default_factory=lambda: parse_clients(_DEFAULT_CLIENTS))
    # bcrypt cost for hashing registered client secrets at startup
    secret_hash_rounds: int = 12


def load_settings() -> IssuerSettings:
    return IssuerSettings(
        issuer=ISSUER,
        signing_secret=SIGNING_SECRET,
        clients=parse_clients(os.environ.get("IDP_CLIENTS", _DEFAULT_CLIENTS)),
        secret_hash_rounds=int(os.environ.get("IDP_SECRET_HASH_ROUNDS", "12")),
    )
