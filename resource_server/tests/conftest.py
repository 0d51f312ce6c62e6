"""
Fixtures for resource server tests: RSA key + JWKS for remote tokens, a urlopen patch
serving that JWKS (PyJWKClient fetches with urllib), and a token minter for each family.
"""
import json
import time
from unittest.mock import patch

import jwt
import pytest
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.asymmetric.rsa import generate_private_key

from resource_server.config import ResourceSettings

REMOTE_DOMAIN = "idp.example.com"
SHARED_SECRET = "test-shared-secret-with-enough-length"
KID = "test-key"


def _int_to_b64url(value: int) -> str:
    """Encode a positive int as base64url (JWK n/e)."""
    length = (value.bit_length() + 7) // 8
    s = jwt.utils.base64url_encode(value.to_bytes(length, "big"))
    return s.decode("utf-8") if isinstance(s, bytes) else s


@pytest.fixture(scope="session")
def rsa_key():
    return generate_private_key(65537, 2048, default_backend())


@pytest.fixture(scope="session")
def jwks(rsa_key):
    pub = rsa_key.public_key().public_numbers()
    return {
        "keys": [
            {"kty": "RSA", "kid": KID, "alg": "RS256", "use": "sig", "n": _int_to_b64url(pub.n), "e": _int_to_b64url(pub.e)}
        ]
    }


@pytest.fixture
def settings():
    return ResourceSettings(
        audience="svc-b",
        symmetric_issuer="https://mock-idp.local",
        shared_secret=SHARED_SECRET,
        remote_domain=REMOTE_DOMAIN,
    )


class JwksServer:
    """Stand-in for urllib.request.urlopen that serves a JWKS and records fetched URLs."""

    def __init__(self, jwks: dict):
        self.jwks = jwks
        self.fetched: list[str] = []

    def urlopen(self, req, timeout=None, context=None):
        self.fetched.append(req.full_url)
        body = json.dumps(self.jwks).encode("utf-8")

        class MockResponse:
            def read(self):
                return body

            def __enter__(self):
                return self

            def __exit__(self, *args):
                pass

        return MockResponse()


@pytest.fixture
def jwks_server(jwks):
    server = JwksServer(jwks)
    with patch("urllib.request.urlopen", server.urlopen):
        yield server


@pytest.fixture
def make_remote_token(rsa_key):
    def _make(*, iss=f"https://{REMOTE_DOMAIN}/oauth2/default", aud="api://default", kid=KID, **claims):
        now = int(time.time())
        payload = {"iss": iss, "aud": aud, "iat": now, "exp": now + 300, **claims}
        return jwt.encode(payload, rsa_key, algorithm="RS256", headers={"kid": kid})

    return _make


@pytest.fixture
def make_local_token():
    def _make(*, secret=SHARED_SECRET, iss="https://mock-idp.local", aud="svc-b", azp="svc-a", exp_in=300, **claims):
        now = int(time.time())
        payload = {"iss": iss, "aud": aud, "azp": azp, "scope": "read", "iat": now, "exp": now + exp_in, **claims}
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def sign_raw_claims():
    """HS256 over an arbitrary payload; bypasses jwt.encode's claim type checks."""

    def _sign(payload: dict, secret=SHARED_SECRET) -> str:
        return jwt.api_jws.encode(json.dumps(payload).encode(), secret, algorithm="HS256")

    return _sign
