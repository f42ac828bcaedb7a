"""Fixtures for seeding tenant data in integration tests."""

import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.models import Interaction, ListMember, Organization, User, Voter, WalkList

VoterFactory = Callable[..., Awaitable[Voter]]


@pytest.fixture
def make_voter(async_session: AsyncSession, org: Organization) -> VoterFactory:
    """Factory inserting a voter (imported by default) into the test tenant."""

    async def _make(*, tenant_id: uuid.UUID | None = None, **fields: Any) -> Voter:
        values: dict[str, Any] = {
            "tenant_id": tenant_id or org.id,
            "source": "import",
            "first_name": "Test",
            "last_name": "Voter",
            "address": "1 Main St",
            "city": "New Orleans",
            "zip": "70112",
        }
        values.update(fields)
        if values["source"] == "import":
            values.setdefault("external_id", f"EXT-{uuid.uuid4().hex[:8]}")
        voter = Voter(**values)
        async_session.add(voter)
        await async_session.commit()
        await async_session.refresh(voter)
        return voter

    return _make


@pytest.fixture
def add_interaction(async_session: AsyncSession, org: Organization, canvasser: User):
    """Record a canvassing interaction against a voter."""

    async def _add(voter: Voter, result_code: str = "not_home") -> Interaction:
        interaction = Interaction(
            tenant_id=org.id,
            user_id=canvasser.id,
            voter_id=voter.id,
            occurred_at=datetime.now(UTC),
            channel="canvass",
            result_code=result_code,
            client_interaction_uuid=str(uuid.uuid4()),
        )
        async_session.add(interaction)
        await async_session.commit()
        return interaction

    return _add


@pytest.fixture
def make_list(async_session: AsyncSession, org: Organization, admin: User):
    """Create a walk list holding the given voters."""

    async def _make(name: str, *voters: Voter) -> WalkList:
        walk_list = WalkList(tenant_id=org.id, name=name, created_by_user_id=admin.id)
        async_session.add(walk_list)
        await async_session.flush()
        for voter in voters:
            async_session.add(ListMember(tenant_id=org.id, list_id=walk_list.id, voter_id=voter.id))
        await async_session.commit()
        return walk_list

    return _make
