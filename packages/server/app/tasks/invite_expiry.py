"""
ARQ background task: purge invites whose expiry has passed.

Expired invites are already unusable (lookups filter on ``expires_at``);
this only keeps the table small. Runs at the top of every hour.
"""

from __future__ import annotations

import structlog
from arq import cron

from app.core.database import get_session_context
from app.core.redis import arq_redis_settings
from app.services.invites import purge_expired_invites as purge

log = structlog.get_logger()


async def purge_expired_invites(ctx: dict) -> int:
    """Delete expired invites. Returns the number removed."""
    async with get_session_context() as session:
        count = await purge(session)

    if count:
        log.info("invite_expiry.batch_purged", count=count)
    return count


# ARQ worker settings
class WorkerSettings:
    """ARQ worker configuration."""

    functions = [purge_expired_invites]
    cron_jobs = [cron(purge_expired_invites, minute=0)]
    redis_settings = arq_redis_settings()
