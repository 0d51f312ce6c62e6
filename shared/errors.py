"""
Error taxonomy shared by all services. Each error carries a stable machine-readable
code (the only part callers may branch on) and an HTTP status used at the boundary.
"""
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AuthLabError(Exception):
    """Base error. Subclasses fix status_code and default code."""

    status_code = 500
    code = "server_error"

    def __init__(self, message: str | None = None, *, code: str | None = None, details: dict[str, Any] | None = None):
        if code is not None:
            self.code = code
        self.message = message or self.code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "error_description": self.message}
        body.update(self.details)
        return body


# --- issuance ---


class ClientAuthError(AuthLabError):
    status_code = 401
    code = "invalid_client"


class InvalidClient(ClientAuthError):
    pass


class RequestShapeError(AuthLabError):
    status_code = 400
    code = "invalid_request"


class MissingAudience(RequestShapeError):
    code = "missing_audience"


# --- validation ---


class TokenInvalidError(AuthLabError):
    status_code = 401
    code = "invalid_token"


class MissingBearer(TokenInvalidError):
    code = "missing_bearer"


class MalformedToken(TokenInvalidError):
    code = "malformed_token"


class BadIssuer(TokenInvalidError):
    code = "bad_issuer"


class BadAudience(TokenInvalidError):
    code = "bad_audience"


class SignatureInvalid(TokenInvalidError):
    code = "signature_invalid"


class TokenExpired(TokenInvalidError):
    code = "token_expired"


class RemoteVerificationError(TokenInvalidError):
    code = "remote_verification_failed"


class JwksValidationFailed(RemoteVerificationError):
    code = "jwks_validation_failed"


# --- authorization ---


class PolicyServiceError(AuthLabError):
    status_code = 502
    code = "policy_service_error"


class PolicyDenied(AuthLabError):
    """A negative decision. Not a fault; carries the reason tag of the rule that fired."""

    status_code = 403
    code = "forbidden"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "reason": self.reason}


# --- caller side ---


class MissingToken(AuthLabError):
    status_code = 401
    code = "missing_token"


class UpstreamCallFailed(AuthLabError):
    """Non-success response from an upstream token endpoint. Keeps the status and body for diagnosis."""

    status_code = 502

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"{self.code}_{status}: {body}", details={"status": status})


class TokenRequestFailed(UpstreamCallFailed):
    code = "token_request_failed"


class TokenExchangeFailed(UpstreamCallFailed):
    code = "token_exchange_failed"


class UpstreamUnavailable(AuthLabError):
    status_code = 502
    code = "upstream_unavailable"


class NotConfigured(AuthLabError):
    status_code = 503
    code = "not_configured"


async def _handle_auth_lab_error(request: Request, exc: AuthLabError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    """Map every AuthLabError raised in a route or dependency to its status and a top-level JSON body."""
    app.add_exception_handler(AuthLabError, _handle_auth_lab_error)
