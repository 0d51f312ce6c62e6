"""
Canonical claim set. Tokens from the local issuer and from the remote authorization
servers encode client identity and scope differently; normalize_claims folds them
into one shape where azp is always populated.
"""
from dataclasses import dataclass, field
from typing import Any

from shared.errors import TokenInvalidError


@dataclass(frozen=True)
class ClaimSet:
    iss: str
    aud: str | list[str] | None
    azp: str
    scope: str
    iat: int | None
    exp: int | None
    jti: str | None = None
    sub: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def scopes(self) -> set[str]:
        return set(self.scope.split())

    @property
    def has_user_context(self) -> bool:
        return self.sub is not None


def _scope_from(payload: dict[str, Any]) -> str:
    scope = payload.get("scope")
    if isinstance(scope, str):
        return scope
    if isinstance(scope, list):
        return " ".join(str(s) for s in scope)
    scp = payload.get("scp")
    if isinstance(scp, list):
        return " ".join(str(s) for s in scp)
    if isinstance(scp, str):
        return scp
    return ""


def normalize_claims(payload: dict[str, Any]) -> ClaimSet:
    """
    Build a ClaimSet from a verified payload.
    azp falls back to cid, then client_id; scope falls back to the scp list.
    Raises TokenInvalidError(missing_azp) if no client identity is present.
    """
    claims = dict(payload)
    if claims.get("cid") and not claims.get("azp"):
        claims["azp"] = claims["cid"]
    elif claims.get("client_id") and not claims.get("azp"):
        claims["azp"] = claims["client_id"]

    azp = claims.get("azp")
    if not azp:
        raise TokenInvalidError("Token carries no client identity (azp/cid/client_id)", code="missing_azp")

    sub = claims.get("sub")
    return ClaimSet(
        iss=claims.get("iss", ""),
        aud=claims.get("aud"),
        azp=str(azp),
        sub=str(sub) if sub is not None else None,
        scope=_scope_from(claims),
        iat=claims.get("iat"),
        exp=claims.get("exp"),
        jti=claims.get("jti"),
        raw=claims,
    )
