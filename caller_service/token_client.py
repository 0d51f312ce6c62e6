"""
Outbound token flows for the caller: local token requests, client credentials and
on-behalf-of token exchange against the remote authorization server, bearer forwarding,
and the downstream resource call. Blocking httpx round trips, no retry.
"""
import logging

import httpx

from caller_service.config import CallerSettings
from shared.errors import MissingToken, NotConfigured, TokenExchangeFailed, TokenRequestFailed, UpstreamUnavailable
from shared.models import TokenRequest

logger = logging.getLogger(__name__)

GRANT_CLIENT_CREDENTIALS = "client_credentials"
GRANT_TOKEN_EXCHANGE = "urn:ietf:params:oauth:grant-type:token-exchange"
TOKEN_TYPE_ACCESS_TOKEN = "urn:ietf:params:oauth:token-type:access_token"


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Token from 'Bearer <token>'; None if header is missing, malformed, or empty."""
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header[len("Bearer "):].strip()
    return token or None


def forward_bearer(auth_header: str | None) -> str:
    """Caller-supplied token, unmodified, for presenting downstream."""
    token = extract_bearer_token(auth_header)
    if token is None:
        raise MissingToken("Authorization: Bearer <token> required")
    return token


def _access_token_from(resp: httpx.Response, error_cls: type[TokenRequestFailed] | type[TokenExchangeFailed]) -> str:
    if not resp.is_success:
        raise error_cls(resp.status_code, resp.text)
    try:
        return resp.json()["access_token"]
    except (ValueError, KeyError, TypeError) as e:
        raise error_cls(resp.status_code, "response carries no access_token") from e


class IdentityClient:
    """Talks to the local identity provider (http) and the remote authorization server (remote)."""

    def __init__(self, settings: CallerSettings, http: httpx.Client, remote: httpx.Client):
        self.settings = settings
        self.http = http
        self.remote = remote

    def request_token(self, request: TokenRequest) -> str:
        """POST /token on the local identity provider. TokenRequestFailed on non-2xx."""
        try:
            resp = self.http.post("/token", json=request.model_dump(exclude_none=True))
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Identity provider unreachable: {e}") from e
        return _access_token_from(resp, TokenRequestFailed)

    def _remote_token_url(self) -> str:
        url = self.settings.remote_token_url
        if url is None:
            raise NotConfigured("Remote authorization server is not configured (REMOTE_IDP_DOMAIN)")
        return url

    def request_client_credentials_token(self, client_id: str, client_secret: str, scope: str, audience: str) -> str:
        """Client credentials grant, client_secret_basic. TokenRequestFailed on non-2xx."""
        try:
            resp = self.remote.post(
                self._remote_token_url(),
                auth=(client_id, client_secret),
                headers={"Accept": "application/json"},
                data={"grant_type": GRANT_CLIENT_CREDENTIALS, "scope": scope, "audience": audience},
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Authorization server unreachable: {e}") from e
        return _access_token_from(resp, TokenRequestFailed)

    def exchange_token_on_behalf_of(self, user_access_token: str, scope: str, audience: str) -> str:
        """
        Trade the user's token for a new one scoped to audience (RFC 8693). The result keeps
        the user's subject; the original broadly-scoped token never goes downstream.
        TokenExchangeFailed on non-2xx.
        """
        try:
            resp = self.remote.post(
                self._remote_token_url(),
                auth=(self.settings.remote_client_id, self.settings.remote_client_secret),
                headers={"Accept": "application/json"},
                data={
                    "grant_type": GRANT_TOKEN_EXCHANGE,
                    "subject_token_type": TOKEN_TYPE_ACCESS_TOKEN,
                    "subject_token": user_access_token,
                    "audience": audience,
                    "scope": scope,
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Authorization server unreachable: {e}") from e
        token = _access_token_from(resp, TokenExchangeFailed)
        logger.info("Exchanged user token for audience=%s", audience)
        return token


class ResourceClient:
    def __init__(self, http: httpx.Client):
        self.http = http

    def call(self, token: str, path: str, method: str = "GET") -> tuple[int, dict]:
        """Call the resource server with the bearer token; returns (status, JSON body) as received."""
        try:
            resp = self.http.request(method, path, headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Resource server unreachable: {e}") from e
        try:
            data = resp.json()
        except ValueError:
            data = {"body": resp.text}
        if not isinstance(data, dict):
            data = {"body": data}
        return resp.status_code, data
