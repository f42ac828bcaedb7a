"""Voter service: manual lead writes, detail retrieval, and listing.

Manual writes are where duplicate detection is triggered: creating a lead
with a phone, or changing a lead's phone, opens merge alerts against imported
voters with the same number.
"""

import uuid
from typing import Any

from loguru import logger
from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.models.voter import VOTER_SOURCE_MANUAL, Voter
from canvass_api.schemas.voter import VoterCreateRequest
from canvass_api.services.audit_service import record_audit
from canvass_api.services.reconciliation_service import detect_phone_matches

# Columns an admin may change; source and merged_into_voter_id never are
UPDATABLE_FIELDS = (
    "external_id",
    "first_name",
    "middle_name",
    "last_name",
    "suffix",
    "age",
    "gender",
    "race",
    "party",
    "phone",
    "address",
    "unit",
    "city",
    "state",
    "zip",
    "geom_lat",
    "geom_lng",
)

# NOT NULL text columns keep an empty string instead of becoming NULL
_REQUIRED_TEXT_FIELDS = frozenset({"first_name", "last_name", "address", "city", "zip"})


class DuplicateExternalIdError(ValueError):
    """Another voter in the tenant already uses the external id."""


async def _flush_voter(session: AsyncSession, voter: Voter) -> None:
    external_id = voter.external_id
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        msg = f"A voter with external id '{external_id}' already exists"
        raise DuplicateExternalIdError(msg) from None


async def create_manual_voter(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    data: VoterCreateRequest,
) -> tuple[Voter, int]:
    """Create a manual lead and run phone-match detection for it.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        data: Lead fields from the request.

    Returns:
        Tuple of (created voter, number of merge alerts opened).

    Raises:
        DuplicateExternalIdError: If the external id is already taken in the tenant.
    """
    voter = Voter(
        tenant_id=tenant_id,
        external_id=data.external_id or None,
        source=VOTER_SOURCE_MANUAL,
        first_name=data.first_name or "",
        middle_name=data.middle_name or None,
        last_name=data.last_name or "",
        suffix=data.suffix or None,
        age=data.age,
        gender=data.gender or None,
        race=data.race or None,
        party=data.party or None,
        phone=data.phone or None,
        address=data.address or "",
        unit=data.unit or None,
        city=data.city or "",
        state=data.state or None,
        zip=data.zip or "",
        geom_lat=data.geom_lat,
        geom_lng=data.geom_lng,
    )
    session.add(voter)
    await _flush_voter(session, voter)

    alerts = await detect_phone_matches(session, tenant_id=tenant_id, lead_voter_id=voter.id, phone=data.phone)
    await session.commit()
    await session.refresh(voter)
    return voter, alerts


async def get_voter(session: AsyncSession, *, tenant_id: uuid.UUID, voter_id: uuid.UUID) -> Voter | None:
    """Get a single voter by ID within a tenant.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        voter_id: The voter UUID.

    Returns:
        The Voter or None if not found in this tenant.
    """
    result = await session.execute(select(Voter).where(Voter.id == voter_id, Voter.tenant_id == tenant_id))
    return result.scalar_one_or_none()


async def update_voter(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    actor_user_id: uuid.UUID,
    voter_id: uuid.UUID,
    changes: dict[str, Any],
) -> Voter | None:
    """Apply admin edits to a voter.

    Only ``UPDATABLE_FIELDS`` are written, and ``external_id`` only on manual
    leads. Empty strings clear nullable columns. A ``voter.update`` audit
    record lists the applied changes. When the phone of a manual lead is
    supplied, phone-match detection runs in the same transaction.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        actor_user_id: Admin making the change.
        voter_id: Voter to update.
        changes: Field values explicitly supplied by the caller.

    Returns:
        The updated Voter, or None if not found in this tenant.

    Raises:
        ValueError: If a required field is set to null.
        DuplicateExternalIdError: If the new external id is already taken in the tenant.
    """
    voter = await get_voter(session, tenant_id=tenant_id, voter_id=voter_id)
    if voter is None:
        return None

    is_manual = voter.source == VOTER_SOURCE_MANUAL
    applied: dict[str, Any] = {}
    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        if field == "external_id" and not is_manual:
            continue
        value = changes[field]
        if field in _REQUIRED_TEXT_FIELDS:
            if value is None:
                msg = f"{field} cannot be null"
                raise ValueError(msg)
        elif value == "":
            value = None
        setattr(voter, field, value)
        applied[field] = value

    if not applied:
        return voter

    await _flush_voter(session, voter)

    record_audit(
        session,
        tenant_id=tenant_id,
        actor_user_id=actor_user_id,
        action="voter.update",
        details={"voter_id": str(voter.id), "changes": applied},
    )
    if is_manual and "phone" in applied:
        await detect_phone_matches(session, tenant_id=tenant_id, lead_voter_id=voter.id, phone=applied["phone"])

    await session.commit()
    await session.refresh(voter)
    logger.info(f"Updated voter {voter.id}: {sorted(applied)}")
    return voter


def _build_voter_query(
    base: Select,
    *,
    tenant_id: uuid.UUID,
    q: str | None = None,
    source: str | None = None,
    include_merged: bool = True,
) -> Select:
    """Compose the shared voter filters onto a select."""
    query = base.where(Voter.tenant_id == tenant_id)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(
            or_(
                Voter.first_name.ilike(pattern),
                Voter.last_name.ilike(pattern),
                Voter.external_id.ilike(pattern),
                Voter.phone.ilike(pattern),
                Voter.address.ilike(pattern),
            )
        )
    if source:
        query = query.where(Voter.source == source)
    if not include_merged:
        query = query.where(Voter.merged_into_voter_id.is_(None))
    return query


async def list_voters(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    q: str | None = None,
    source: str | None = None,
    include_merged: bool = True,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Voter], int]:
    """List a tenant's voters with optional free-text search.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        q: Partial match on name, external id, phone or address.
        source: Restrict to ``import`` or ``manual`` voters.
        include_merged: When False, hide leads already merged away.
        page: Page number.
        page_size: Items per page.

    Returns:
        Tuple of (voters, total count).
    """
    filters = {"tenant_id": tenant_id, "q": q, "source": source, "include_merged": include_merged}
    total = (await session.execute(_build_voter_query(select(func.count(Voter.id)), **filters))).scalar_one()
    query = (
        _build_voter_query(select(Voter), **filters)
        .order_by(Voter.last_name, Voter.first_name, Voter.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await session.execute(query)
    return list(result.scalars().all()), total
