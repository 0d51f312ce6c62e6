"""
Token endpoint (POST /token). JSON TokenRequest in, Bearer access token out.
Every call is recorded in the audit log, successful or not.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from identity_provider.audit import EVENT_TOKEN_DENIED, EVENT_TOKEN_ISSUED, OUTCOME_FAIL, log_audit
from identity_provider.database import get_db
from identity_provider.tokens import TokenIssuer
from shared.errors import AuthLabError
from shared.models import TokenRequest, TokenResponse

logger = logging.getLogger(__name__)
router = APIRouter()


def get_issuer(request: Request) -> TokenIssuer:
    return request.app.state.issuer


@router.post("/token", response_model=TokenResponse)
def token(
    body: TokenRequest,
    issuer: TokenIssuer = Depends(get_issuer),
    db: Session = Depends(get_db),
):
    """
    Issue a token for a registered client.
    401 invalid_client on bad credentials, 400 missing_audience when audience is absent.
    """
    try:
        access_token = issuer.issue(body)
    except AuthLabError as e:
        logger.info("Token request denied for client_id=%s: %s", body.client_id, e.code)
        log_audit(
            db,
            EVENT_TOKEN_DENIED,
            client_id=body.client_id,
            subject=body.user_id,
            audience=body.audience,
            outcome=OUTCOME_FAIL,
            reason=e.code,
        )
        raise

    log_audit(
        db,
        EVENT_TOKEN_ISSUED,
        client_id=body.client_id,
        subject=body.user_id,
        audience=body.audience,
    )
    return TokenResponse(
        token_type="Bearer",
        expires_in=issuer.settings.token_ttl_seconds,
        access_token=access_token,
    )
