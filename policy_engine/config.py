"""
Policy decision service configuration: which service identities the rule table names.
"""
import os
from dataclasses import dataclass

PORT = int(os.environ.get("POLICY_PORT", "4002"))


@dataclass(frozen=True)
class PolicySettings:
    # Trusted caller: may read anything, may write only with end-user context
    actor_a: str = "svc-a"
    # Restricted caller: may read only the public resource
    actor_c: str = "svc-c"
    public_resource: str = "resource:public"


def load_settings() -> PolicySettings:
    return PolicySettings(
        actor_a=os.environ.get("POLICY_ACTOR_A", "svc-a"),
        actor_c=os.environ.get("POLICY_ACTOR_C", "svc-c"),
        public_resource=os.environ.get("POLICY_PUBLIC_RESOURCE", "resource:public"),
    )
