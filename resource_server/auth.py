"""
Access token validation for the resource server.

Two token families are accepted: HS256 tokens from the mock identity provider (shared
secret) and RS256 tokens from the remote authorization servers (keys from JWKS). The
token's unverified iss claim is used for one thing only: choosing the route (expected
issuer + key source) from a fixed table. Everything else is read after verification.
"""
import logging
import ssl
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from resource_server.config import ResourceSettings
from shared.claims import ClaimSet, normalize_claims
from shared.errors import (
    BadAudience,
    BadIssuer,
    JwksValidationFailed,
    MalformedToken,
    MissingBearer,
    SignatureInvalid,
    TokenExpired,
)

logger = logging.getLogger(__name__)

SYMMETRIC_ALGORITHM = "HS256"
REMOTE_ALGORITHM = "RS256"


@dataclass(frozen=True)
class SharedSecretRoute:
    issuer: str


@dataclass(frozen=True)
class RemoteJwksRoute:
    issuer: str
    jwks_url: str


IssuerRoute = SharedSecretRoute | RemoteJwksRoute


def build_issuer_routes(settings: ResourceSettings) -> dict[str, IssuerRoute]:
    """Fixed issuer -> route table. Remote routes only when a remote domain is configured."""
    routes: dict[str, IssuerRoute] = {
        settings.symmetric_issuer: SharedSecretRoute(settings.symmetric_issuer),
    }
    if settings.remote_domain:
        routes[settings.remote_default_issuer] = RemoteJwksRoute(
            settings.remote_default_issuer, settings.remote_default_jwks_url
        )
        routes[settings.remote_org_issuer] = RemoteJwksRoute(settings.remote_org_issuer, settings.remote_org_jwks_url)
    return routes


def build_ssl_context(verify_tls: bool) -> ssl.SSLContext | None:
    """None means the default (verifying) context."""
    if verify_tls:
        return None
    logger.warning("TLS certificate verification is DISABLED for JWKS fetches; do not use outside development")
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


class TokenValidator:
    """Verifies bearer tokens and returns the normalized ClaimSet."""

    def __init__(
        self,
        settings: ResourceSettings,
        jwks_client_factory: Callable[..., PyJWKClient] = PyJWKClient,
    ):
        self.settings = settings
        self.routes = build_issuer_routes(settings)
        self._fallback: IssuerRoute | None = None
        if settings.remote_domain and not settings.verify_remote_issuer:
            logger.warning(
                "Issuer verification is DISABLED for remote tokens; unknown issuers are routed to %s",
                settings.remote_default_issuer,
            )
            self._fallback = self.routes[settings.remote_default_issuer]
        self._jwks_client_factory = jwks_client_factory
        self._ssl_context = build_ssl_context(settings.verify_tls)
        # One cached client per key source; resolution is serialized per source so
        # concurrent validations share a single JWKS fetch.
        self._jwks_clients: dict[str, PyJWKClient] = {}
        self._jwks_locks: dict[str, threading.Lock] = {
            route.jwks_url: threading.Lock() for route in self.routes.values() if isinstance(route, RemoteJwksRoute)
        }
        self._clients_lock = threading.Lock()

    def route_for(self, token: str) -> IssuerRoute:
        """Pick the route from the unverified iss claim. Raises MalformedToken / BadIssuer."""
        try:
            unverified = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            raise MalformedToken(f"Token could not be decoded: {e}") from e
        iss = unverified.get("iss")
        if iss is not None and not isinstance(iss, str):
            raise MalformedToken("Token iss claim must be a string")
        route = self.routes.get(iss)
        if route is not None:
            return route
        if self._fallback is not None:
            return self._fallback
        raise BadIssuer("Token issuer is not trusted")

    def validate(self, token: str | None, expected_audience: str | None = None) -> ClaimSet:
        """
        Verify token and return its canonical claims.
        Shared-secret tokens must match expected_audience exactly; remote tokens skip
        the audience check when expected_audience is None.
        """
        if not token:
            raise MissingBearer("Authorization: Bearer <token> required")
        route = self.route_for(token)
        if isinstance(route, SharedSecretRoute):
            payload = self._verify_shared_secret(token, route, expected_audience)
        else:
            payload = self._verify_remote(token, route, expected_audience)
        return normalize_claims(payload)

    def _verify_shared_secret(self, token: str, route: SharedSecretRoute, expected_audience: str | None) -> dict:
        try:
            payload = jwt.decode(
                token,
                self.settings.shared_secret,
                algorithms=[SYMMETRIC_ALGORITHM],
                options={"verify_aud": False, "verify_iss": False, "require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired("Token expired") from e
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as e:
            raise SignatureInvalid("Token signature verification failed") from e
        except jwt.InvalidTokenError as e:
            logger.debug("Shared-secret token rejected: %s", e)
            raise MalformedToken(f"Token rejected: {e}") from e

        if payload.get("iss") != route.issuer:
            raise BadIssuer("Invalid issuer")
        # Exact equality: no list membership, no wildcard
        if expected_audience is None or payload.get("aud") != expected_audience:
            raise BadAudience("Invalid audience")
        return payload

    def _jwks_client(self, route: RemoteJwksRoute) -> PyJWKClient:
        with self._clients_lock:
            client = self._jwks_clients.get(route.jwks_url)
            if client is None:
                client = self._jwks_client_factory(
                    route.jwks_url,
                    cache_jwk_set=True,
                    lifespan=self.settings.jwks_cache_seconds,
                    timeout=self.settings.http_timeout,
                    ssl_context=self._ssl_context,
                )
                self._jwks_clients[route.jwks_url] = client
            return client

    def _verify_remote(self, token: str, route: RemoteJwksRoute, expected_audience: str | None) -> dict:
        verify_iss = self.settings.verify_remote_issuer
        try:
            client = self._jwks_client(route)
            with self._jwks_locks[route.jwks_url]:
                signing_key = client.get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=[REMOTE_ALGORITHM],
                audience=expected_audience,
                issuer=route.issuer if verify_iss else None,
                options={"verify_aud": expected_audience is not None, "verify_iss": verify_iss},
            )
        except (jwt.PyJWTError, OSError, ValueError) as e:
            logger.debug("Remote token rejected (jwks=%s): %s", route.jwks_url, e)
            raise JwksValidationFailed(f"jwks_validation_failed: {e}") from e


security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Extract Bearer token from Authorization header. MissingBearer if missing, malformed or empty."""
    if credentials is None or not credentials.credentials.strip():
        raise MissingBearer("Authorization: Bearer <token> required")
    return credentials.credentials.strip()


def get_validator(request: Request) -> TokenValidator:
    return request.app.state.validator


def get_claims(
    token: Annotated[str, Depends(get_bearer_token)],
    validator: Annotated[TokenValidator, Depends(get_validator)],
) -> ClaimSet:
    """Dependency: valid Bearer token for this API's audience -> claims."""
    return validator.validate(token, validator.settings.audience)


def get_remote_claims(
    token: Annotated[str, Depends(get_bearer_token)],
    validator: Annotated[TokenValidator, Depends(get_validator)],
) -> ClaimSet:
    """Dependency: valid Bearer token checked against the remote audience (if any) -> claims."""
    return validator.validate(token, validator.settings.remote_audience)
