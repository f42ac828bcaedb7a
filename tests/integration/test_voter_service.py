"""Integration tests for manual leads, admin edits and voter listing."""

import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.models import AuditLog, MergeAlert, Organization, User
from canvass_api.schemas.voter import VoterCreateRequest
from canvass_api.services.reconciliation_service import merge_voters
from canvass_api.services.voter_service import (
    DuplicateExternalIdError,
    create_manual_voter,
    get_voter,
    list_voters,
    update_voter,
)


class TestCreateManualVoter:
    """Tests for lead creation."""

    @pytest.mark.asyncio
    async def test_required_text_defaults_to_empty(self, async_session: AsyncSession, org: Organization) -> None:
        voter, opened = await create_manual_voter(
            async_session, tenant_id=org.id, data=VoterCreateRequest(firstName="Pat")
        )
        assert opened == 0
        assert voter.source == "manual"
        assert voter.first_name == "Pat"
        assert voter.last_name == ""
        assert voter.external_id is None
        assert voter.merged_into_voter_id is None

    @pytest.mark.asyncio
    async def test_taken_external_id_rejected(
        self, async_session: AsyncSession, org: Organization, make_voter
    ) -> None:
        org_id = org.id
        await make_voter(external_id="IMP-9")

        with pytest.raises(DuplicateExternalIdError, match="IMP-9"):
            await create_manual_voter(
                async_session, tenant_id=org_id, data=VoterCreateRequest(externalId="IMP-9", firstName="Dup")
            )

        voters, total = await list_voters(async_session, tenant_id=org_id)
        assert total == 1
        assert voters[0].source == "import"


class TestUpdateVoter:
    """Tests for admin edits."""

    @pytest.mark.asyncio
    async def test_taken_external_id_rejected(
        self, async_session: AsyncSession, org: Organization, admin: User, make_voter
    ) -> None:
        org_id, admin_id = org.id, admin.id
        await make_voter(external_id="IMP-9")
        lead = await make_voter(source="manual", external_id="LEAD-1")
        lead_id = lead.id

        with pytest.raises(DuplicateExternalIdError):
            await update_voter(
                async_session,
                tenant_id=org_id,
                actor_user_id=admin_id,
                voter_id=lead_id,
                changes={"external_id": "IMP-9"},
            )

        reloaded = await get_voter(async_session, tenant_id=org_id, voter_id=lead_id)
        assert reloaded is not None
        assert reloaded.external_id == "LEAD-1"
        audits = (await async_session.execute(select(AuditLog).where(AuditLog.action == "voter.update"))).all()
        assert audits == []

    @pytest.mark.asyncio
    async def test_external_id_ignored_on_imported_voter(
        self, async_session: AsyncSession, org: Organization, admin: User, make_voter
    ) -> None:
        voter = await make_voter(external_id="KEEP-1")
        updated = await update_voter(
            async_session,
            tenant_id=org.id,
            actor_user_id=admin.id,
            voter_id=voter.id,
            changes={"external_id": "CHANGED", "city": "Slidell"},
        )
        assert updated is not None
        assert updated.external_id == "KEEP-1"
        assert updated.city == "Slidell"

        audit = (await async_session.execute(select(AuditLog).where(AuditLog.action == "voter.update"))).scalar_one()
        assert audit.details["changes"] == {"city": "Slidell"}

    @pytest.mark.asyncio
    async def test_external_id_writable_on_manual_lead(
        self, async_session: AsyncSession, org: Organization, admin: User, make_voter
    ) -> None:
        lead = await make_voter(source="manual")
        updated = await update_voter(
            async_session, tenant_id=org.id, actor_user_id=admin.id, voter_id=lead.id, changes={"external_id": "NEW-1"}
        )
        assert updated is not None
        assert updated.external_id == "NEW-1"

    @pytest.mark.asyncio
    async def test_empty_string_clears_nullable_field(
        self, async_session: AsyncSession, org: Organization, admin: User, make_voter
    ) -> None:
        voter = await make_voter(party="DEM")
        updated = await update_voter(
            async_session, tenant_id=org.id, actor_user_id=admin.id, voter_id=voter.id, changes={"party": ""}
        )
        assert updated is not None
        assert updated.party is None

    @pytest.mark.asyncio
    async def test_null_required_field_rejected(
        self, async_session: AsyncSession, org: Organization, admin: User, make_voter
    ) -> None:
        voter = await make_voter()
        with pytest.raises(ValueError, match="first_name"):
            await update_voter(
                async_session, tenant_id=org.id, actor_user_id=admin.id, voter_id=voter.id, changes={"first_name": None}
            )

    @pytest.mark.asyncio
    async def test_phone_change_on_lead_runs_detection(
        self, async_session: AsyncSession, org: Organization, admin: User, make_voter
    ) -> None:
        imported = await make_voter(phone="985-555-0123")
        lead = await make_voter(source="manual")

        await update_voter(
            async_session,
            tenant_id=org.id,
            actor_user_id=admin.id,
            voter_id=lead.id,
            changes={"phone": "985-555-0123"},
        )

        alerts = (await async_session.execute(select(MergeAlert))).scalars().all()
        assert [(a.lead_voter_id, a.imported_voter_id) for a in alerts] == [(lead.id, imported.id)]

    @pytest.mark.asyncio
    async def test_phone_change_on_imported_voter_runs_no_detection(
        self, async_session: AsyncSession, org: Organization, admin: User, make_voter
    ) -> None:
        await make_voter(phone="985-555-0123")
        other = await make_voter()
        await update_voter(
            async_session,
            tenant_id=org.id,
            actor_user_id=admin.id,
            voter_id=other.id,
            changes={"phone": "985-555-0123"},
        )
        assert (await async_session.execute(select(MergeAlert))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_unknown_voter(self, async_session: AsyncSession, org: Organization, admin: User) -> None:
        assert (
            await update_voter(
                async_session, tenant_id=org.id, actor_user_id=admin.id, voter_id=uuid.uuid4(), changes={"city": "X"}
            )
            is None
        )


class TestListVoters:
    """Tests for search and filtering."""

    @pytest.mark.asyncio
    async def test_search_and_filters(
        self, async_session: AsyncSession, org: Organization, admin: User, make_voter
    ) -> None:
        target = await make_voter(first_name="Marie", last_name="Laveau")
        await make_voter(first_name="Louis", last_name="Armstrong", phone="504-555-1901")
        lead = await make_voter(source="manual", first_name="Marie", last_name="Lead")
        await merge_voters(
            async_session, tenant_id=org.id, actor_user_id=admin.id, lead_voter_id=lead.id, target_voter_id=target.id
        )

        _, total = await list_voters(async_session, tenant_id=org.id)
        assert total == 3

        by_name, _ = await list_voters(async_session, tenant_id=org.id, q="marie")
        assert {v.id for v in by_name} == {target.id, lead.id}

        by_phone, _ = await list_voters(async_session, tenant_id=org.id, q="555-1901")
        assert [v.last_name for v in by_phone] == ["Armstrong"]

        manual, _ = await list_voters(async_session, tenant_id=org.id, source="manual")
        assert [v.id for v in manual] == [lead.id]

        unmerged, unmerged_total = await list_voters(async_session, tenant_id=org.id, include_merged=False)
        assert unmerged_total == 2
        assert lead.id not in {v.id for v in unmerged}

    @pytest.mark.asyncio
    async def test_pagination(self, async_session: AsyncSession, org: Organization, make_voter) -> None:
        for name in ("Adams", "Baker", "Clark"):
            await make_voter(last_name=name)
        page, total = await list_voters(async_session, tenant_id=org.id, page=2, page_size=2)
        assert total == 3
        assert [v.last_name for v in page] == ["Clark"]

    @pytest.mark.asyncio
    async def test_get_voter(self, async_session: AsyncSession, org: Organization, make_voter) -> None:
        voter = await make_voter()
        assert (await get_voter(async_session, tenant_id=org.id, voter_id=voter.id)) is voter
