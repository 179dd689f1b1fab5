"""
API v1 Router

Organization and conference routes carry their scope ids in the path
(``{orgId}``, ``{confId}``); invites and tenants are mounted beside them.
"""

from fastapi import APIRouter
from . import conferences, invites, organizations, tenants

router = APIRouter()

router.include_router(organizations.router, prefix="/organizations", tags=["Organizations"])
router.include_router(
    conferences.router,
    prefix="/organizations/{orgId}/conferences",
    tags=["Conferences"],
)
router.include_router(invites.router, prefix="/invites", tags=["Invites"])
router.include_router(tenants.router, prefix="/tenants", tags=["Tenants"])


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/organizations",
            "/organizations/{orgId}/conferences",
            "/invites",
            "/tenants",
        ],
    }
