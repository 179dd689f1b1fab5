"""
Role authorization engine.

``authorize`` decides allow/deny from a route's required policy, the
caller's identity snapshot and the scope ids resolved from the request. It
is pure: no I/O and no mutation. Deny reasons are for logs and tests; the
HTTP layer maps every denial to the same 403.

Evaluation for a ``RolePolicy``: the org roles are checked first against
the caller's role in the resolved organization, then the conference roles
against the resolved conference. The first match allows. When nothing
matches the reason reported is the most specific one seen:

1. ``INSUFFICIENT_ROLE`` if the caller holds some role in a named scope,
2. ``NOT_A_MEMBER`` if a named scope resolved but the caller has no role in it,
3. ``SCOPE_ID_MISSING`` if no named scope resolved at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union

from confhub_shared.schemas.common import ConferenceRole, OrgRole, TenantRole

from app.core.identity import IdentityClaims
from app.core.tenancy import ScopeIds


class DenyReason(str, Enum):
    UNAUTHENTICATED = "Unauthenticated"
    SCOPE_ID_MISSING = "ScopeIdMissing"
    NOT_A_MEMBER = "NotAMember"
    INSUFFICIENT_ROLE = "InsufficientRole"


def _role_set(roles: Iterable, expected: type) -> frozenset:
    result = frozenset(roles)
    for role in result:
        if not isinstance(role, expected):
            raise TypeError(f"{role!r} is not a {expected.__name__}")
    return result


@dataclass(frozen=True)
class RolePolicy:
    """Required roles for an organization/conference scoped route."""

    org: frozenset[OrgRole] = frozenset()
    conf: frozenset[ConferenceRole] = frozenset()

    def __init__(
        self,
        org: Iterable[OrgRole] = (),
        conf: Iterable[ConferenceRole] = (),
    ) -> None:
        object.__setattr__(self, "org", _role_set(org, OrgRole))
        object.__setattr__(self, "conf", _role_set(conf, ConferenceRole))


@dataclass(frozen=True)
class TenantPolicy:
    """Required roles for a flat tenant scoped route."""

    roles: frozenset[TenantRole] = frozenset()

    def __init__(self, roles: Iterable[TenantRole] = ()) -> None:
        object.__setattr__(self, "roles", _role_set(roles, TenantRole))


Policy = Union[RolePolicy, TenantPolicy]


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(False, reason)


def _check_scope(scope_id, held_role, required: frozenset) -> Optional[DenyReason]:
    """None when allowed, else why this one scope check failed."""
    if scope_id is None:
        return DenyReason.SCOPE_ID_MISSING
    if held_role is None:
        return DenyReason.NOT_A_MEMBER
    if held_role in required:
        return None
    return DenyReason.INSUFFICIENT_ROLE


_REASON_RANK = {
    DenyReason.SCOPE_ID_MISSING: 0,
    DenyReason.NOT_A_MEMBER: 1,
    DenyReason.INSUFFICIENT_ROLE: 2,
}


def authorize(
    policy: Optional[Policy],
    identity: Optional[IdentityClaims],
    scope: ScopeIds,
) -> Decision:
    """Decide whether ``identity`` satisfies ``policy`` in ``scope``."""
    if identity is None:
        return Decision.deny(DenyReason.UNAUTHENTICATED)
    if policy is None:
        return Decision.allow()

    failures: list[DenyReason] = []

    if isinstance(policy, TenantPolicy):
        if not policy.roles:
            return Decision.allow()
        failure = _check_scope(scope.tenant_id, identity.tenant_role(scope.tenant_id), policy.roles)
        if failure is None:
            return Decision.allow()
        return Decision.deny(failure)

    if not policy.org and not policy.conf:
        return Decision.allow()

    if policy.org:
        failure = _check_scope(scope.org_id, identity.org_role(scope.org_id), policy.org)
        if failure is None:
            return Decision.allow()
        failures.append(failure)

    if policy.conf:
        failure = _check_scope(scope.conf_id, identity.conference_role(scope.conf_id), policy.conf)
        if failure is None:
            return Decision.allow()
        failures.append(failure)

    return Decision.deny(max(failures, key=_REASON_RANK.__getitem__))
