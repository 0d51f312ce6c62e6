"""
Mock identity provider. Issues HS256 access tokens to registered clients via POST /token.
Port 4001 by default.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from identity_provider.audit import router as audit_router
from identity_provider.clients import ClientRegistry
from identity_provider.config import PORT, IssuerSettings, load_settings
from identity_provider.database import init_db
from identity_provider.token_endpoint import router as token_router
from identity_provider.tokens import TokenIssuer
from shared.errors import register_error_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create audit tables on startup."""
    init_db()
    yield


def create_app(settings: IssuerSettings | None = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Mock Identity Provider", version="0.1.0", lifespan=lifespan)
    registry = ClientRegistry.from_plaintext(settings.clients, rounds=settings.secret_hash_rounds)
    app.state.issuer = TokenIssuer(settings, registry)
    register_error_handlers(app)
    app.include_router(token_router, tags=["token"])
    app.include_router(audit_router)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "identity_provider"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "identity_provider.main:app",
        host="127.0.0.1",
        port=PORT,
        reload=True,
    )
