"""
Resource server (protected API). Validates bearer tokens locally, then asks the policy
service for an allow/deny decision. Port 4003 by default.
"""
import logging

from fastapi import Depends, FastAPI, Request

from resource_server.auth import TokenValidator, get_claims, get_remote_claims
from resource_server.config import PORT, ResourceSettings, load_settings
from resource_server.policy_client import PolicyClient
from shared.claims import ClaimSet
from shared.errors import PolicyDenied, register_error_handlers
from shared.models import PolicyCheckRequest, PolicyCheckResponse

logger = logging.getLogger(__name__)

ACTION_READ = "resource:read"
ACTION_WRITE = "resource:write"


def resource_identifier(resource_id: str) -> str:
    return f"resource:{resource_id}"


def authorize(request: Request, claims: ClaimSet, action: str, resource_id: str) -> PolicyCheckResponse:
    """Ask the policy service; PolicyDenied unless the decision is ALLOW."""
    policy_client: PolicyClient = request.app.state.policy_client
    decision = policy_client.check(
        PolicyCheckRequest(
            actor_service=claims.azp,
            user_id=claims.sub,
            action=action,
            resource=resource_identifier(resource_id),
        )
    )
    if not decision.allowed:
        logger.info("Denied %s on %s for azp=%s: %s", action, resource_id, claims.azp, decision.reason)
        raise PolicyDenied(decision.reason)
    return decision


def create_app(
    settings: ResourceSettings | None = None,
    policy_client: PolicyClient | None = None,
    validator: TokenValidator | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Resource Server", version="0.1.0")
    app.state.validator = validator or TokenValidator(settings)
    app.state.policy_client = policy_client or PolicyClient.from_url(settings.policy_url, settings.http_timeout)
    register_error_handlers(app)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "resource_server"}

    # Must be registered before /resource/{resource_id}
    @app.get("/resource/remote")
    def remote_resource(claims: ClaimSet = Depends(get_remote_claims)):
        """Remote (JWKS-verified) tokens only. Not routed through the policy service."""
        return {
            "resourceId": "remote",
            "data": {"balance": 999.99},
            "tokenType": "remote-rs256",
            "tokenClaimsUsed": {
                "iss": claims.iss,
                "azp": claims.azp,
                "cid": claims.raw.get("cid"),
                "sub": claims.sub,
                "scope": claims.scope or None,
            },
        }

    @app.get("/resource/{resource_id}")
    def read_resource(resource_id: str, request: Request, claims: ClaimSet = Depends(get_claims)):
        decision = authorize(request, claims, ACTION_READ, resource_id)
        return {
            "resourceId": resource_id,
            "data": {"balance": 123.45},
            "authorizedBy": decision.reason,
            "tokenClaimsUsed": {"azp": claims.azp, "sub": claims.sub},
        }

    @app.post("/resource/{resource_id}")
    def write_resource(resource_id: str, request: Request, claims: ClaimSet = Depends(get_claims)):
        decision = authorize(request, claims, ACTION_WRITE, resource_id)
        return {"updated": resource_id, "authorizedBy": decision.reason}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "resource_server.main:app",
        host="127.0.0.1",
        port=PORT,
        reload=True,
    )
