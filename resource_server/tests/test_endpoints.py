"""
Tests for resource server endpoints. The policy service is the real policy_engine app
behind a TestClient; tokens are minted with the shared secret.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from policy_engine.main import create_app as create_policy_app
from resource_server.main import create_app
from resource_server.policy_client import PolicyClient


@pytest.fixture
def policy_calls():
    return []


@pytest.fixture
def client(settings, policy_calls):
    policy_http = TestClient(create_policy_app())
    original_post = policy_http.post

    def recording_post(url, **kwargs):
        policy_calls.append(kwargs.get("json"))
        return original_post(url, **kwargs)

    policy_http.post = recording_post
    return TestClient(create_app(settings, policy_client=PolicyClient(policy_http)))


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_health_returns_200(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json().get("service") == "resource_server"


# --- GET /resource/{id} ---


def test_read_without_user_context_allowed(client, make_local_token, policy_calls):
    r = client.get("/resource/42", headers=_auth(make_local_token()))
    assert r.status_code == 200
    data = r.json()
    assert data["resourceId"] == "42"
    assert data["authorizedBy"] == "policy:actor-a-read"
    assert data["tokenClaimsUsed"] == {"azp": "svc-a", "sub": None}
    assert policy_calls == [{"actorService": "svc-a", "action": "resource:read", "resource": "resource:42"}]


def test_read_by_unknown_actor_denied(client, make_local_token):
    r = client.get("/resource/42", headers=_auth(make_local_token(azp="svc-z")))
    assert r.status_code == 403
    assert r.json() == {"error": "forbidden", "reason": "no_matching_policy"}


def test_restricted_actor_reads_public_only(client, make_local_token):
    token = make_local_token(azp="svc-c")
    assert client.get("/resource/public", headers=_auth(token)).json()["authorizedBy"] == "policy:actor-c-public-only"
    assert client.get("/resource/42", headers=_auth(token)).status_code == 403


# --- POST /resource/{id} ---


def test_write_without_user_context_denied(client, make_local_token):
    r = client.post("/resource/42", headers=_auth(make_local_token()))
    assert r.status_code == 403
    assert r.json() == {"error": "forbidden", "reason": "policy:requires-user-context"}


def test_write_with_user_context_allowed(client, make_local_token, policy_calls):
    r = client.post("/resource/42", headers=_auth(make_local_token(sub="u-1")))
    assert r.status_code == 200
    assert r.json() == {"updated": "42", "authorizedBy": "policy:actor-a-write-with-user"}
    assert policy_calls[-1]["userId"] == "u-1"


# --- authentication failures ---


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Basic c3ZjLWE6c2VjcmV0"}, {"Authorization": "Bearer "}, {"Authorization": "token"}],
)
def test_missing_or_malformed_header_returns_missing_bearer(client, headers):
    for method in ("get", "post"):
        r = getattr(client, method)("/resource/42", headers=headers)
        assert r.status_code == 401
        assert r.json()["error"] == "missing_bearer"
        assert r.headers.get("WWW-Authenticate") == "Bearer"


def test_invalid_token_returns_401(client):
    r = client.get("/resource/42", headers=_auth("invalid-token"))
    assert r.status_code == 401
    assert r.json()["error"] == "malformed_token"


@pytest.mark.parametrize("iss", [["x"], {"iss": "x"}])
def test_non_string_issuer_returns_401(client, sign_raw_claims, iss, policy_calls):
    token = sign_raw_claims({"iss": iss, "aud": "svc-b", "azp": "svc-a"})
    for method in ("get", "post"):
        r = getattr(client, method)("/resource/42", headers=_auth(token))
        assert r.status_code == 401
        assert r.json()["error"] == "malformed_token"
    assert client.get("/resource/remote", headers=_auth(token)).status_code == 401
    assert policy_calls == []


def test_wrong_audience_returns_401_bad_audience(client, make_local_token, policy_calls):
    r = client.get("/resource/42", headers=_auth(make_local_token(aud="svc-x")))
    assert r.status_code == 401
    assert r.json()["error"] == "bad_audience"
    assert policy_calls == []


def test_expired_token_returns_401(client, make_local_token):
    r = client.get("/resource/42", headers=_auth(make_local_token(exp_in=-5)))
    assert r.status_code == 401
    assert r.json()["error"] == "token_expired"


# --- policy service failures never default to allow ---


def test_policy_service_error_returns_502(settings, make_local_token):
    down = httpx.Client(base_url="http://policy", transport=httpx.MockTransport(lambda req: httpx.Response(503)))
    client = TestClient(create_app(settings, policy_client=PolicyClient(down)))
    r = client.get("/resource/42", headers=_auth(make_local_token()))
    assert r.status_code == 502
    assert r.json()["error"] == "policy_service_error"


def test_policy_service_unreachable_returns_502(settings, make_local_token):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    down = httpx.Client(base_url="http://policy", transport=httpx.MockTransport(refuse))
    client = TestClient(create_app(settings, policy_client=PolicyClient(down)))
    r = client.post("/resource/42", headers=_auth(make_local_token(sub="u-1")))
    assert r.status_code == 502


# --- GET /resource/remote ---


def test_remote_resource_with_remote_token(client, make_remote_token, jwks_server, policy_calls):
    token = make_remote_token(cid="0oa-svc", scp=["resource.read"], sub="user@example.com")
    r = client.get("/resource/remote", headers=_auth(token))
    assert r.status_code == 200
    used = r.json()["tokenClaimsUsed"]
    assert used["azp"] == "0oa-svc"
    assert used["cid"] == "0oa-svc"
    assert used["sub"] == "user@example.com"
    assert used["scope"] == "resource.read"
    assert policy_calls == []


def test_remote_resource_rejects_tampered_token(client, make_remote_token, jwks_server):
    token = make_remote_token(cid="0oa-svc")
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[:-4] + "AAAA"])
    r = client.get("/resource/remote", headers=_auth(tampered))
    assert r.status_code == 401
    assert r.json()["error"] == "jwks_validation_failed"
