"""
Caller (service A) configuration. Local identity provider credentials, downstream
resource server, and optional remote authorization server for the client-credentials
and token-exchange flows.
"""
import os
from dataclasses import dataclass


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


PORT = int(os.environ.get("CALLER_PORT", "4004"))


@dataclass(frozen=True)
class CallerSettings:
    idp_url: str = "http://127.0.0.1:4001"
    resource_url: str = "http://127.0.0.1:4003"
    client_id: str = "svc-a"
    client_secret: str = "svc-a-secret"
    # Audience of the resource server for locally issued tokens
    resource_audience: str = "svc-b"
    demo_user_id: str = "user-123"
    demo_resource_id: str = "abc"
    # Remote authorization server, e.g. "example.oktapreview.com". Empty = remote flows disabled.
    remote_domain: str = ""
    remote_client_id: str = ""
    remote_client_secret: str = ""
    remote_scope: str = ""
    remote_audience: str = "api://default"
    verify_tls: bool = True
    http_timeout: float = 10.0

    @property
    def remote_token_url(self) -> str | None:
        if not self.remote_domain:
            return None
        return f"https://{self.remote_domain}/oauth2/default/v1/token"


def load_settings() -> CallerSettings:
    return CallerSettings(
        idp_url=os.environ.get("IDP_URL", "http://127.0.0.1:4001").rstrip("/"),
        resource_url=os.environ.get("RESOURCE_URL", "http://127.0.0.1:4003").rstrip("/"),
        client_id=os.environ.get("CALLER_CLIENT_ID", "svc-a"),
        client_secret=os.environ.get("CALLER_CLIENT_SECRET", "svc-a-secret"),
        resource_audience=os.environ.get("RESOURCE_AUDIENCE", "svc-b"),
        remote_domain=os.environ.get("REMOTE_IDP_DOMAIN", "").strip().rstrip("/"),
        remote_client_id=os.environ.get("REMOTE_CLIENT_ID", ""),
        remote_client_secret=os.environ.get("REMOTE_CLIENT_SECRET", ""),
        remote_scope=os.environ.get("REMOTE_SCOPE", ""),
        remote_audience=os.environ.get("REMOTE_AUDIENCE", "api://default"),
        verify_tls=_env_flag("CALLER_VERIFY_TLS", True),
        http_timeout=float(os.environ.get("CALLER_HTTP_TIMEOUT", "10")),
    )
