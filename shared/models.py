"""
Wire models exchanged between the services (token requests, policy checks).
"""
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenRequest(BaseModel):
    # Everything optional so missing credentials/audience map to invalid_client / missing_audience
    client_id: str | None = None
    client_secret: str | None = None
    audience: str | None = None
    scope: str | None = None
    user_id: str | None = None


class TokenResponse(BaseModel):
    token_type: str = "Bearer"
    expires_in: int
    access_token: str


class PolicyCheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    actor_service: str = Field(alias="actorService")
    user_id: str | None = Field(default=None, alias="userId")
    action: str
    resource: str


class PolicyCheckResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: Literal["ALLOW", "DENY"]
    reason: str

    @property
    def allowed(self) -> bool:
        return self.decision == "ALLOW"
