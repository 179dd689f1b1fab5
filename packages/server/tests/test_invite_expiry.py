"""
Tests for the invite expiry background task.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlmodel import select

from app.models.base import utcnow
from app.models.invite import Invite
from app.tasks.invite_expiry import WorkerSettings, purge_expired_invites


def test_worker_settings():
    assert purge_expired_invites in WorkerSettings.functions
    assert WorkerSettings.cron_jobs[0].coroutine is purge_expired_invites


@pytest.mark.asyncio
async def test_purge_task(session, make_user):
    inviter = await make_user("inviter")
    now = utcnow()
    session.add(Invite(token="a" * 64, email="old@example.com", invited_by=inviter.id,
                       expires_at=now - timedelta(hours=1)))
    session.add(Invite(token="b" * 64, email="new@example.com", invited_by=inviter.id,
                       expires_at=now + timedelta(days=1)))
    await session.commit()

    @asynccontextmanager
    async def _session_context():
        yield session
        await session.commit()

    with patch("app.tasks.invite_expiry.get_session_context", _session_context):
        assert await purge_expired_invites({}) == 1
        assert await purge_expired_invites({}) == 0

    remaining = (await session.execute(select(Invite.email))).scalars().all()
    assert remaining == ["new@example.com"]
