"""
Client for the policy decision service. One blocking round trip per check, no retry:
any transport failure or non-2xx response fails the enclosing request.
"""
import logging

import httpx
from pydantic import ValidationError

from shared.errors import PolicyServiceError
from shared.models import PolicyCheckRequest, PolicyCheckResponse

logger = logging.getLogger(__name__)


class PolicyClient:
    def __init__(self, http: httpx.Client):
        self.http = http

    @classmethod
    def from_url(cls, base_url: str, timeout: float = 10.0) -> "PolicyClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout))

    def check(self, request: PolicyCheckRequest) -> PolicyCheckResponse:
        try:
            resp = self.http.post("/authorize", json=request.model_dump(by_alias=True, exclude_none=True))
        except httpx.HTTPError as e:
            logger.warning("Policy service unreachable: %s", e)
            raise PolicyServiceError(f"Policy service unreachable: {e}") from e
        if not resp.is_success:
            raise PolicyServiceError(f"authz_error_{resp.status_code}", details={"status": resp.status_code})
        try:
            return PolicyCheckResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise PolicyServiceError(f"Unreadable policy decision: {e}") from e
