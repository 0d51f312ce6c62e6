"""
Token issuance. Stateless: authenticates the client against the registry, builds the
claim set and signs it HS256 with the secret shared with the resource server.
"""
import hashlib
import json
import logging
import time
from collections.abc import Callable

import jwt

from identity_provider.clients import ClientRegistry
from identity_provider.config import IssuerSettings
from shared.errors import InvalidClient, MissingAudience
from shared.models import TokenRequest

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "HS256"
_JTI_LENGTH = 16


def jti_for(claims: dict, now_ms: int) -> str:
    """Short identifier over the serialized claims plus issuance time. Best-effort unique only."""
    digest = hashlib.sha256((json.dumps(claims) + str(now_ms)).encode("utf-8")).hexdigest()
    return digest[:_JTI_LENGTH]


class TokenIssuer:
    def __init__(self, settings: IssuerSettings, registry: ClientRegistry, clock: Callable[[], float] = time.time):
        self.settings = settings
        self.registry = registry
        self._clock = clock

    def build_claims(self, request: TokenRequest) -> dict:
        """Claim set for an authenticated request (no client check here)."""
        now = self._clock()
        iat = int(now)
        claims = {
            "iss": self.settings.issuer,
            "aud": request.audience,
            "azp": request.client_id,
            "scope": request.scope or self.settings.default_scope,
            "iat": iat,
        }
        # sub only with end-user context; its absence marks a service-to-service token
        if request.user_id:
            claims["sub"] = request.user_id
        claims["jti"] = jti_for(claims, int(now * 1000))
        claims["exp"] = iat + self.settings.token_ttl_seconds
        return claims

    def issue(self, request: TokenRequest) -> str:
        """
        Authenticate the client and mint a signed access token.
        Raises InvalidClient (unknown client / wrong secret) before MissingAudience.
        """
        if not self.registry.verify(request.client_id, request.client_secret):
            raise InvalidClient("Invalid client credentials")
        if not request.audience:
            raise MissingAudience("audience is required")

        claims = self.build_claims(request)
        token = jwt.encode(claims, self.settings.signing_secret, algorithm=SIGNING_ALGORITHM)
        logger.info(
            "Issued token jti=%s azp=%s aud=%s user_context=%s",
            claims["jti"],
            claims["azp"],
            claims["aud"],
            "sub" in claims,
        )
        return token
