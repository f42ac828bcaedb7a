"""Integration tests for audit records and lifecycle events."""

import pytest

from canvass_api.services.audit_service import list_audit_logs, list_events, record_audit, record_event


class TestAuditLogs:
    """Tests for record_audit and list_audit_logs."""

    @pytest.mark.asyncio
    async def test_records_land_on_commit(self, async_session, org, admin) -> None:
        record_audit(async_session, tenant_id=org.id, actor_user_id=admin.id, action="voter.update", details={"a": 1})
        await async_session.commit()

        logs = await list_audit_logs(async_session, tenant_id=org.id)
        assert len(logs) == 1
        assert logs[0].action == "voter.update"
        assert logs[0].details == {"a": 1}

    @pytest.mark.asyncio
    async def test_filter_by_action(self, async_session, org, admin) -> None:
        record_audit(async_session, tenant_id=org.id, actor_user_id=admin.id, action="voter.update")
        record_audit(async_session, tenant_id=org.id, actor_user_id=admin.id, action="voter.merge")
        await async_session.commit()

        logs = await list_audit_logs(async_session, tenant_id=org.id, action="voter.merge")
        assert [log.action for log in logs] == ["voter.merge"]

    @pytest.mark.asyncio
    async def test_rollback_discards_record(self, async_session, org, admin) -> None:
        org_id = org.id
        record_audit(async_session, tenant_id=org_id, actor_user_id=admin.id, action="voter.update")
        await async_session.rollback()

        assert await list_audit_logs(async_session, tenant_id=org_id) == []

    @pytest.mark.asyncio
    async def test_scoped_to_tenant(self, async_session, org, admin, other_tenant) -> None:
        rival_org, rival_admin, _ = other_tenant
        record_audit(async_session, tenant_id=rival_org.id, actor_user_id=rival_admin.id, action="voter.update")
        await async_session.commit()

        assert await list_audit_logs(async_session, tenant_id=org.id) == []


class TestPlatformEvents:
    """Tests for record_event and list_events."""

    @pytest.mark.asyncio
    async def test_filter_by_event_type(self, async_session, org, admin) -> None:
        record_event(async_session, tenant_id=org.id, user_id=admin.id, event_type="import.started")
        record_event(
            async_session,
            tenant_id=org.id,
            user_id=admin.id,
            event_type="import.failed",
            metadata={"error": "boom"},
        )
        await async_session.commit()

        events = await list_events(async_session, tenant_id=org.id)
        assert sorted(e.event_type for e in events) == ["import.failed", "import.started"]

        failed = await list_events(async_session, tenant_id=org.id, event_type="import.failed")
        assert len(failed) == 1
        assert failed[0].event_metadata == {"error": "boom"}

    @pytest.mark.asyncio
    async def test_system_event_without_user(self, async_session, org) -> None:
        record_event(async_session, tenant_id=org.id, user_id=None, event_type="import.completed")
        await async_session.commit()

        events = await list_events(async_session, tenant_id=org.id)
        assert events[0].user_id is None
