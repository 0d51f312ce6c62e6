"""
Resource server configuration. Issuer identities, audience and key sources are public
identifiers; the shared secret must match the mock identity provider's.
"""
import os
from dataclasses import dataclass


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


PORT = int(os.environ.get("RESOURCE_PORT", "4003"))


@dataclass(frozen=True)
class ResourceSettings:
    # This API's audience for locally issued tokens
    audience: str = "svc-b"
    # Symmetric (HS256) issuer and the secret shared with it
    symmetric_issuer: str = "https://mock-idp.local"
    shared_secret: str = "dev-only-super-secret-change-me-please"
    # Remote authorization servers, e.g. "example.oktapreview.com". Empty = remote tokens not accepted.
    remote_domain: str = ""
    # Expected audience for remote tokens; None skips the audience check
    remote_audience: str | None = None
    verify_remote_issuer: bool = True
    verify_tls: bool = True
    jwks_cache_seconds: int = 300
    policy_url: str = "http://127.0.0.1:4002"
    http_timeout: float = 10.0

    @property
    def remote_default_issuer(self) -> str:
        return f"https://{self.remote_domain}/oauth2/default"

    @property
    def remote_default_jwks_url(self) -> str:
        return f"https://{self.remote_domain}/oauth2/default/v1/keys"

    @property
    def remote_org_issuer(self) -> str:
        return f"https://{self.remote_domain}"

    @property
    def remote_org_jwks_url(self) -> str:
        return f"https://{self.remote_domain}/oauth2/v1/keys"


def load_settings() -> ResourceSettings:
    return ResourceSettings(
        audience=os.environ.get("RESOURCE_AUDIENCE", "svc-b"),
        symmetric_issuer=os.environ.get("MOCK_IDP_ISSUER", "https://mock-idp.local").rstrip("/"),
        shared_secret=os.environ.get("MOCK_IDP_SIGNING_SECRET", "dev-only-super-secret-change-me-please"),
        remote_domain=os.environ.get("REMOTE_IDP_DOMAIN", "").strip().rstrip("/"),
        remote_audience=os.environ.get("RESOURCE_REMOTE_AUDIENCE") or None,
        verify_remote_issuer=_env_flag("RESOURCE_VERIFY_REMOTE_ISSUER", True),
        verify_tls=_env_flag("RESOURCE_VERIFY_TLS", True),
        jwks_cache_seconds=int(os.environ.get("RESOURCE_JWKS_CACHE_SECONDS", "300")),
        policy_url=os.environ.get("POLICY_URL", "http://127.0.0.1:4002").rstrip("/"),
        http_timeout=float(os.environ.get("RESOURCE_HTTP_TIMEOUT", "10")),
    )
