"""
Caller (service A). Demo endpoints that obtain a token one way or another and call the
resource server with it: local tokens with/without user context, remote client
credentials (M2M), user token forwarding, and on-behalf-of token exchange.
Port 4004 by default.
"""
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from caller_service.config import PORT, CallerSettings, load_settings
from caller_service.token_client import IdentityClient, ResourceClient, forward_bearer
from shared.errors import register_error_handlers
from shared.models import TokenRequest

logger = logging.getLogger(__name__)

REMOTE_RESOURCE_PATH = "/resource/remote"


def create_app(
    settings: CallerSettings | None = None,
    idp_http: httpx.Client | None = None,
    resource_http: httpx.Client | None = None,
    remote_http: httpx.Client | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    timeout = settings.http_timeout
    identity = IdentityClient(
        settings,
        http=idp_http or httpx.Client(base_url=settings.idp_url, timeout=timeout),
        remote=remote_http or httpx.Client(timeout=timeout, verify=settings.verify_tls),
    )
    resource = ResourceClient(resource_http or httpx.Client(base_url=settings.resource_url, timeout=timeout))
    if not settings.verify_tls:
        logger.warning("TLS certificate verification is DISABLED for remote token requests; development only")

    app = FastAPI(title="Caller Service", version="0.1.0")
    app.state.identity = identity
    app.state.resource = resource
    register_error_handlers(app)

    resource_path = f"/resource/{settings.demo_resource_id}"

    def local_token(scope: str, user_id: str | None = None) -> str:
        return identity.request_token(
            TokenRequest(
                client_id=settings.client_id,
                client_secret=settings.client_secret,
                audience=settings.resource_audience,
                scope=scope,
                user_id=user_id,
            )
        )

    def respond(scenario: str, status: int, data: dict, **extra) -> JSONResponse:
        return JSONResponse(status_code=status, content={**data, **extra, "scenario": scenario})

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "caller_service"}

    @app.get("/demo/read-without-user-context")
    def read_without_user_context():
        """Service-to-service token (no sub) -> GET resource."""
        status, data = resource.call(local_token("resource:read"), resource_path)
        return respond("read-without-user-context", status, data)

    @app.get("/demo/read-with-user-context")
    def read_with_user_context():
        status, data = resource.call(local_token("resource:read resource:write", settings.demo_user_id), resource_path)
        return respond("read-with-user-context", status, data)

    @app.post("/demo/write-without-user-context")
    def write_without_user_context():
        """Expected to be denied: writes require end-user context."""
        status, data = resource.call(local_token("resource:write"), resource_path, "POST")
        return respond("write-without-user-context", status, data)

    @app.post("/demo/write-with-user-context")
    def write_with_user_context():
        status, data = resource.call(local_token("resource:write", settings.demo_user_id), resource_path, "POST")
        return respond("write-with-user-context", status, data)

    @app.get("/demo/remote/read-without-user-context")
    def remote_read_without_user_context():
        """Client credentials (M2M) token from the remote authorization server."""
        token = identity.request_client_credentials_token(
            settings.remote_client_id,
            settings.remote_client_secret,
            settings.remote_scope,
            settings.remote_audience,
        )
        status, data = resource.call(token, REMOTE_RESOURCE_PATH)
        return respond(
            "remote-read-without-user-context",
            status,
            data,
            message="Authenticated with the remote authorization server using client credentials (M2M)",
        )

    @app.get("/demo/remote/read-with-user-context")
    def remote_read_with_user_context(request: Request):
        """Forward the caller's user token unmodified."""
        token = forward_bearer(request.headers.get("Authorization"))
        status, data = resource.call(token, REMOTE_RESOURCE_PATH)
        return respond(
            "remote-read-with-user-context",
            status,
            data,
            message="Forwarded user access token to the resource server",
        )

    @app.get("/demo/remote/read-with-user-context-obo")
    def remote_read_with_user_context_obo(request: Request):
        """Exchange the caller's user token for a resource-scoped token, then call downstream."""
        user_token = forward_bearer(request.headers.get("Authorization"))
        exchanged = identity.exchange_token_on_behalf_of(user_token, settings.remote_scope, settings.remote_audience)
        status, data = resource.call(exchanged, REMOTE_RESOURCE_PATH)
        return JSONResponse(
            status_code=status,
            content={
                "scenario": "remote-read-with-user-context-obo",
                "message": "Used OAuth 2.0 Token Exchange (On-Behalf-Of)",
                "tokenExchange": {
                    "performed": True,
                    "method": "RFC 8693 Token Exchange",
                    "exchangedTokenAudience": settings.remote_audience,
                },
                "resourceResponse": data,
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "caller_service.main:app",
        host="127.0.0.1",
        port=PORT,
        reload=True,
    )
