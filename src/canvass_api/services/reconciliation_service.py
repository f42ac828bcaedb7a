"""Reconciliation service: duplicate detection between manual leads and imported voters.

Detection runs inline with manual voter writes and files ``open`` merge
alerts for admin review. A merge rewires a lead's canvassing history onto the
imported voter and marks the lead as merged, all in one transaction.
"""

import uuid
from dataclasses import dataclass

from loguru import logger
from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from canvass_api.models.interaction import Interaction
from canvass_api.models.merge_alert import (
    ALERT_DISMISSED,
    ALERT_OPEN,
    ALERT_RESOLVED,
    REASON_PHONE_MATCH,
    MergeAlert,
)
from canvass_api.models.voter import VOTER_SOURCE_IMPORT, VOTER_SOURCE_MANUAL, Voter
from canvass_api.models.walk_list import ListMember
from canvass_api.services.audit_service import record_audit

ALERT_LIST_LIMIT = 200


class MergeNotFoundError(ValueError):
    """The lead, target voter or alert does not exist in the tenant."""


class MergeIntegrityError(ValueError):
    """The requested merge or alert transition would violate reconciliation rules."""


@dataclass(frozen=True)
class MergeResult:
    """Outcome of a merge request."""

    merged: bool
    moved_interactions: int
    moved_list_members: int
    idempotent: bool


@dataclass(frozen=True)
class VoterSummary:
    """The identifying fields shown next to an alert."""

    id: uuid.UUID
    external_id: str | None
    first_name: str
    last_name: str
    phone: str | None
    address: str
    city: str
    state: str | None
    zip: str


@dataclass(frozen=True)
class AlertWithVoters:
    """A merge alert joined with both sides of the candidate pair."""

    alert: MergeAlert
    lead: VoterSummary
    imported: VoterSummary


def _dialect_insert(session: AsyncSession):  # noqa: ANN202
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


async def detect_phone_matches(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    lead_voter_id: uuid.UUID,
    phone: str | None,
) -> int:
    """Open a phone-match alert for every imported voter sharing the lead's phone.

    Phones are compared by exact equality after trimming the input. Existing
    alerts for a pair are left alone whatever their status, so re-detection
    never duplicates or reopens an alert. Alerts raised under an earlier
    phone value are not closed when the phone changes.

    Args:
        session: Database session (not committed here).
        tenant_id: The lead's organization.
        lead_voter_id: The manual lead.
        phone: The lead's phone as written.

    Returns:
        Number of alerts newly created.
    """
    needle = (phone or "").strip()
    if not needle:
        return 0

    matches = await session.execute(
        select(Voter.id).where(
            Voter.tenant_id == tenant_id,
            Voter.source == VOTER_SOURCE_IMPORT,
            Voter.phone == needle,
        )
    )
    imported_ids = list(matches.scalars().all())
    if not imported_ids:
        return 0

    stmt = _dialect_insert(session)(MergeAlert).values(
        [
            {
                "id": uuid.uuid4(),
                "tenant_id": tenant_id,
                "lead_voter_id": lead_voter_id,
                "imported_voter_id": imported_id,
                "reason": REASON_PHONE_MATCH,
                "status": ALERT_OPEN,
            }
            for imported_id in imported_ids
        ]
    )
    stmt = stmt.on_conflict_do_nothing(index_elements=["tenant_id", "lead_voter_id", "imported_voter_id"])
    result = await session.execute(stmt.returning(MergeAlert.id))
    created = len(result.all())
    if created:
        logger.info(f"Opened {created} phone-match alert(s) for lead {lead_voter_id}")
    return created


async def _get_voter(
    session: AsyncSession, tenant_id: uuid.UUID, voter_id: uuid.UUID, *, for_update: bool = False
) -> Voter | None:
    query = select(Voter).where(Voter.id == voter_id, Voter.tenant_id == tenant_id)
    if for_update:
        # Row lock held until commit; reload so a merge committed while waiting is seen
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def merge_voters(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    actor_user_id: uuid.UUID,
    lead_voter_id: uuid.UUID,
    target_voter_id: uuid.UUID,
) -> MergeResult:
    """Merge a manual lead into an imported voter.

    Interactions and list memberships move from the lead to the target; a
    membership the target already holds in the same list is dropped rather
    than duplicated. The lead's ``merged_into_voter_id`` is set, any open
    alert for the pair is resolved and a ``voter.merge`` audit record written.
    Everything commits together or not at all. Repeating a merge that already
    happened succeeds with ``idempotent=True`` and moves nothing.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        actor_user_id: Admin performing the merge.
        lead_voter_id: The manual lead to retire.
        target_voter_id: The imported voter that survives.

    Returns:
        A MergeResult with the moved record counts.

    Raises:
        MergeNotFoundError: If either voter is missing from the tenant.
        MergeIntegrityError: If the lead is not manual, the target is not
            imported, or the lead was already merged into another voter.
    """
    lead = await _get_voter(session, tenant_id, lead_voter_id, for_update=True)
    target = await _get_voter(session, tenant_id, target_voter_id)
    if lead is None or target is None:
        msg = "Voter not found"
        raise MergeNotFoundError(msg)
    if lead.source != VOTER_SOURCE_MANUAL:
        msg = "Lead voter must have source=manual"
        raise MergeIntegrityError(msg)
    if target.source != VOTER_SOURCE_IMPORT:
        msg = "Target voter must have source=import"
        raise MergeIntegrityError(msg)
    if lead.merged_into_voter_id == target.id:
        return MergeResult(merged=True, moved_interactions=0, moved_list_members=0, idempotent=True)
    if lead.merged_into_voter_id is not None:
        msg = f"Lead voter is already merged into {lead.merged_into_voter_id}"
        raise MergeIntegrityError(msg)

    try:
        claimed = (
            await session.execute(
                update(Voter)
                .where(Voter.id == lead.id, Voter.tenant_id == tenant_id, Voter.merged_into_voter_id.is_(None))
                .values(merged_into_voter_id=target.id)
                .execution_options(synchronize_session="fetch")
            )
        ).rowcount
        if claimed != 1:
            msg = "Lead voter was merged by a concurrent request"
            raise MergeIntegrityError(msg)

        moved_interactions = (
            await session.execute(
                update(Interaction)
                .where(Interaction.tenant_id == tenant_id, Interaction.voter_id == lead.id)
                .values(voter_id=target.id)
                .execution_options(synchronize_session=False)
            )
        ).rowcount

        target_lists = select(ListMember.list_id).where(
            ListMember.tenant_id == tenant_id, ListMember.voter_id == target.id
        )
        dropped_list_members = (
            await session.execute(
                delete(ListMember)
                .where(
                    ListMember.tenant_id == tenant_id,
                    ListMember.voter_id == lead.id,
                    ListMember.list_id.in_(target_lists),
                )
                .execution_options(synchronize_session=False)
            )
        ).rowcount
        moved_list_members = (
            await session.execute(
                update(ListMember)
                .where(ListMember.tenant_id == tenant_id, ListMember.voter_id == lead.id)
                .values(voter_id=target.id)
                .execution_options(synchronize_session=False)
            )
        ).rowcount

        await session.execute(
            update(MergeAlert)
            .where(
                MergeAlert.tenant_id == tenant_id,
                MergeAlert.lead_voter_id == lead.id,
                MergeAlert.imported_voter_id == target.id,
                MergeAlert.status == ALERT_OPEN,
            )
            .values(status=ALERT_RESOLVED, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )

        record_audit(
            session,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            action="voter.merge",
            details={
                "lead_voter_id": str(lead.id),
                "imported_voter_id": str(target.id),
                "moved_interactions": moved_interactions,
                "moved_list_members": moved_list_members,
                "dropped_list_members": dropped_list_members,
            },
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(
        f"Merged lead {lead_voter_id} into {target_voter_id}: "
        f"{moved_interactions} interactions, {moved_list_members} list members moved"
    )
    return MergeResult(
        merged=True,
        moved_interactions=moved_interactions,
        moved_list_members=moved_list_members,
        idempotent=False,
    )


def _summary(voter: Voter) -> VoterSummary:
    return VoterSummary(
        id=voter.id,
        external_id=voter.external_id,
        first_name=voter.first_name,
        last_name=voter.last_name,
        phone=voter.phone,
        address=voter.address,
        city=voter.city,
        state=voter.state,
        zip=voter.zip,
    )


async def list_alerts(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    status: str = ALERT_OPEN,
    limit: int = ALERT_LIST_LIMIT,
) -> list[AlertWithVoters]:
    """List a tenant's alerts in one status, newest first, with both voters attached.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        status: Alert status to list.
        limit: Maximum alerts returned.

    Returns:
        Alerts joined with their lead and imported voter summaries.
    """
    lead = aliased(Voter)
    imported = aliased(Voter)
    query = (
        select(MergeAlert, lead, imported)
        .join(lead, (lead.id == MergeAlert.lead_voter_id) & (lead.tenant_id == MergeAlert.tenant_id))
        .join(imported, (imported.id == MergeAlert.imported_voter_id) & (imported.tenant_id == MergeAlert.tenant_id))
        .where(MergeAlert.tenant_id == tenant_id, MergeAlert.status == status)
        .order_by(MergeAlert.created_at.desc())
        .limit(limit)
    )
    result = await session.execute(query)
    return [
        AlertWithVoters(alert=alert, lead=_summary(lead_voter), imported=_summary(imported_voter))
        for alert, lead_voter, imported_voter in result.all()
    ]


async def count_open_alerts(session: AsyncSession, *, tenant_id: uuid.UUID) -> int:
    """Count a tenant's open alerts."""
    result = await session.execute(
        select(func.count(MergeAlert.id)).where(MergeAlert.tenant_id == tenant_id, MergeAlert.status == ALERT_OPEN)
    )
    return result.scalar_one()


async def update_alert_status(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    actor_user_id: uuid.UUID,
    alert_id: uuid.UUID,
    status: str,
) -> MergeAlert:
    """Resolve or dismiss an alert by admin action.

    Only ``open -> resolved`` and ``open -> dismissed`` are allowed. Setting
    an alert to the status it already has is a no-op success.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        actor_user_id: Admin reviewing the alert.
        alert_id: The alert to update.
        status: ``resolved`` or ``dismissed``.

    Returns:
        The updated MergeAlert.

    Raises:
        MergeNotFoundError: If the alert is not in the tenant.
        MergeIntegrityError: If the transition is not allowed.
    """
    result = await session.execute(
        select(MergeAlert).where(MergeAlert.id == alert_id, MergeAlert.tenant_id == tenant_id)
    )
    alert = result.scalar_one_or_none()
    if alert is None:
        msg = "Merge alert not found"
        raise MergeNotFoundError(msg)

    if alert.status == status:
        return alert
    if alert.status != ALERT_OPEN or status not in (ALERT_RESOLVED, ALERT_DISMISSED):
        msg = f"Cannot move merge alert from {alert.status} to {status}"
        raise MergeIntegrityError(msg)

    alert.status = status
    record_audit(
        session,
        tenant_id=tenant_id,
        actor_user_id=actor_user_id,
        action="merge_alert.update",
        details={"alert_id": str(alert.id), "status": status},
    )
    await session.commit()
    await session.refresh(alert)
    return alert
