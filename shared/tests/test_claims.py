"""Tests for claim normalization."""
import pytest

from shared.claims import normalize_claims
from shared.errors import TokenInvalidError

BASE = {"iss": "https://issuer", "aud": "svc-b", "iat": 1, "exp": 301}


def test_azp_kept_when_present():
    claims = normalize_claims({**BASE, "azp": "svc-a", "cid": "other", "scope": "read"})
    assert claims.azp == "svc-a"
    assert claims.scope == "read"


def test_cid_copied_to_azp():
    claims = normalize_claims({**BASE, "cid": "0oa123"})
    assert claims.azp == "0oa123"
    assert claims.raw["azp"] == "0oa123"
    assert claims.raw["cid"] == "0oa123"


def test_client_id_copied_to_azp_when_no_cid():
    assert normalize_claims({**BASE, "client_id": "svc-c"}).azp == "svc-c"


def test_scp_list_becomes_scope_string():
    claims = normalize_claims({**BASE, "cid": "c", "scp": ["a.read", "a.write"]})
    assert claims.scope == "a.read a.write"
    assert claims.scopes == {"a.read", "a.write"}


def test_missing_scope_is_empty_string():
    assert normalize_claims({**BASE, "azp": "svc-a"}).scope == ""


def test_sub_optional():
    assert normalize_claims({**BASE, "azp": "svc-a"}).sub is None
    claims = normalize_claims({**BASE, "azp": "svc-a", "sub": "u-1"})
    assert claims.sub == "u-1"
    assert claims.has_user_context


def test_no_client_identity_rejected():
    with pytest.raises(TokenInvalidError) as exc:
        normalize_claims({**BASE, "sub": "u-1"})
    assert exc.value.code == "missing_azp"
    assert exc.value.status_code == 401


def test_input_payload_not_mutated():
    payload = {**BASE, "cid": "c"}
    normalize_claims(payload)
    assert "azp" not in payload
