"""
Attribute-based policy evaluation over a fixed, ordered rule table.

Every rule whose predicate matches assigns the decision; later matches overwrite
earlier ones (last write wins). Evaluation is pure: no I/O, no state.
"""
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from policy_engine.config import PolicySettings
from shared.models import PolicyCheckRequest, PolicyCheckResponse

ACTION_READ = "resource:read"
ACTION_WRITE = "resource:write"

REASON_NO_MATCH = "no_matching_policy"
REASON_ACTOR_A_READ = "policy:actor-a-read"
REASON_ACTOR_A_WRITE_WITH_USER = "policy:actor-a-write-with-user"
REASON_REQUIRES_USER_CONTEXT = "policy:requires-user-context"
REASON_ACTOR_C_PUBLIC_ONLY = "policy:actor-c-public-only"

Outcome = tuple[bool, str]


@dataclass(frozen=True)
class PolicyRule:
    name: str
    matches: Callable[[PolicyCheckRequest], bool]
    outcome: Callable[[PolicyCheckRequest], Outcome]


def build_rules(settings: PolicySettings) -> tuple[PolicyRule, ...]:
    """The rule table, in evaluation order."""
    actor_a, actor_c, public = settings.actor_a, settings.actor_c, settings.public_resource
    return (
        PolicyRule(
            name="actor-a-read",
            matches=lambda r: r.actor_service == actor_a and r.action == ACTION_READ,
            outcome=lambda r: (True, REASON_ACTOR_A_READ),
        ),
        # Write authority depends on end-user context, not just the caller's identity
        PolicyRule(
            name="actor-a-write",
            matches=lambda r: r.actor_service == actor_a and r.action == ACTION_WRITE,
            outcome=lambda r: (True, REASON_ACTOR_A_WRITE_WITH_USER) if r.user_id else (False, REASON_REQUIRES_USER_CONTEXT),
        ),
        PolicyRule(
            name="actor-c-public-read",
            matches=lambda r: r.actor_service == actor_c and r.action == ACTION_READ and r.resource == public,
            outcome=lambda r: (True, REASON_ACTOR_C_PUBLIC_ONLY),
        ),
    )


class PolicyEvaluator:
    def __init__(self, rules: Sequence[PolicyRule]):
        self.rules = tuple(rules)

    @classmethod
    def from_settings(cls, settings: PolicySettings) -> "PolicyEvaluator":
        return cls(build_rules(settings))

    def evaluate(self, request: PolicyCheckRequest) -> PolicyCheckResponse:
        allow, reason = False, REASON_NO_MATCH
        for rule in self.rules:
            if rule.matches(request):
                allow, reason = rule.outcome(request)
        return PolicyCheckResponse(decision="ALLOW" if allow else "DENY", reason=reason)
