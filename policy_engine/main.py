"""
Policy decision service. POST /authorize evaluates the rule table and always answers 200;
the decision is carried in the body. Port 4002 by default.
"""
import logging

from fastapi import FastAPI, Request

from policy_engine.config import PORT, PolicySettings, load_settings
from policy_engine.policy import PolicyEvaluator
from shared.models import PolicyCheckRequest, PolicyCheckResponse

logger = logging.getLogger(__name__)


def create_app(settings: PolicySettings | None = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Policy Engine", version="0.1.0")
    app.state.evaluator = PolicyEvaluator.from_settings(settings)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "policy_engine"}

    @app.post("/authorize", response_model=PolicyCheckResponse)
    def authorize(body: PolicyCheckRequest, request: Request):
        """Decide whether actorService may perform action on resource."""
        decision = request.app.state.evaluator.evaluate(body)
        logger.info(
            "decision=%s reason=%s actor=%s user_context=%s action=%s resource=%s",
            decision.decision,
            decision.reason,
            body.actor_service,
            body.user_id is not None,
            body.action,
            body.resource,
        )
        return decision

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "policy_engine.main:app",
        host="127.0.0.1",
        port=PORT,
        reload=True,
    )
