"""
Tenant resolver: pulls organization, conference and tenant ids out of a request.

Each id is looked up in the path parameters first, then the query string,
then the JSON body. Values that are not valid UUIDs count as absent.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from starlette.requests import Request

# Accepted parameter names per scope kind, in lookup order
ORG_KEYS = ("orgId", "organizationId", "organization_id")
CONF_KEYS = ("confId", "conferenceId", "conference_id")
TENANT_KEYS = ("tenantId", "tenant_id")

BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


@dataclass(frozen=True)
class ScopeIds:
    org_id: Optional[uuid.UUID] = None
    conf_id: Optional[uuid.UUID] = None
    tenant_id: Optional[uuid.UUID] = None


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _lookup(keys: tuple[str, ...], sources: list[Mapping[str, Any]]) -> Optional[uuid.UUID]:
    for source in sources:
        for key in keys:
            if key in source:
                found = _as_uuid(source[key])
                if found is not None:
                    return found
    return None


def resolve_scope_ids(
    path_params: Mapping[str, Any],
    query_params: Mapping[str, Any],
    body: Optional[Mapping[str, Any]] = None,
) -> ScopeIds:
    """Resolve scope ids with path > query > body precedence."""
    sources: list[Mapping[str, Any]] = [path_params, query_params]
    if body:
        sources.append(body)
    return ScopeIds(
        org_id=_lookup(ORG_KEYS, sources),
        conf_id=_lookup(CONF_KEYS, sources),
        tenant_id=_lookup(TENANT_KEYS, sources),
    )


async def _json_body(request: Request) -> Optional[Mapping[str, Any]]:
    if request.method not in BODY_METHODS:
        return None
    if not request.headers.get("content-type", "").startswith("application/json"):
        return None
    try:
        payload = await request.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


async def get_scope_ids(request: Request) -> ScopeIds:
    """FastAPI dependency: scope ids for the current request."""
    body = await _json_body(request)
    return resolve_scope_ids(request.path_params, request.query_params, body)
