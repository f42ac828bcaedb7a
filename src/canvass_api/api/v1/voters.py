"""Voter API endpoints: manual leads, admin edits, listing and merge."""

import math
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.core.dependencies import CurrentUser, get_async_session, get_current_user, require_role
from canvass_api.schemas.common import PaginationMeta, PaginationParams
from canvass_api.schemas.merge_alert import MergeResultResponse
from canvass_api.schemas.voter import (
    PaginatedVoterResponse,
    VoterCreateRequest,
    VoterCreateResponse,
    VoterResponse,
    VoterUpdateRequest,
)
from canvass_api.services import reconciliation_service, voter_service

voters_router = APIRouter(prefix="/voters", tags=["voters"])


@voters_router.post("", response_model=VoterCreateResponse, status_code=201)
async def create_voter(
    body: VoterCreateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VoterCreateResponse:
    """Add a manual lead; a phone matching an imported voter opens a merge alert."""
    try:
        voter, alerts = await voter_service.create_manual_voter(session, tenant_id=current_user.tenant_id, data=body)
    except voter_service.DuplicateExternalIdError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    response = VoterCreateResponse.model_validate(voter)
    response.merge_alerts_opened = alerts
    return response


@voters_router.get("", response_model=PaginatedVoterResponse)
async def list_voters(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    q: Annotated[str | None, Query(max_length=100)] = None,
    source: Annotated[str | None, Query(pattern="^(import|manual)$")] = None,
    include_merged: bool = True,
) -> PaginatedVoterResponse:
    """List voters in the caller's organization."""
    voters, total = await voter_service.list_voters(
        session,
        tenant_id=current_user.tenant_id,
        q=q,
        source=source,
        include_merged=include_merged,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return PaginatedVoterResponse(
        items=[VoterResponse.model_validate(v) for v in voters],
        pagination=PaginationMeta(
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=max(1, math.ceil(total / pagination.page_size)),
        ),
    )


@voters_router.get("/{voter_id}", response_model=VoterResponse)
async def get_voter(
    voter_id: uuid.UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VoterResponse:
    """Get a voter by ID."""
    voter = await voter_service.get_voter(session, tenant_id=current_user.tenant_id, voter_id=voter_id)
    if voter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Voter not found")
    return VoterResponse.model_validate(voter)


@voters_router.patch("/{voter_id}", response_model=VoterResponse)
async def update_voter(
    voter_id: uuid.UUID,
    body: VoterUpdateRequest,
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> VoterResponse:
    """Edit a voter's fields (admin only)."""
    try:
        voter = await voter_service.update_voter(
            session,
            tenant_id=current_user.tenant_id,
            actor_user_id=current_user.id,
            voter_id=voter_id,
            changes=body.model_dump(exclude_unset=True),
        )
    except voter_service.DuplicateExternalIdError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    if voter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Voter not found")
    return VoterResponse.model_validate(voter)


@voters_router.post("/{lead_id}/merge-into/{target_id}", response_model=MergeResultResponse)
async def merge_voter(
    lead_id: uuid.UUID,
    target_id: uuid.UUID,
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> MergeResultResponse:
    """Merge a manual lead into an imported voter (admin only)."""
    try:
        result = await reconciliation_service.merge_voters(
            session,
            tenant_id=current_user.tenant_id,
            actor_user_id=current_user.id,
            lead_voter_id=lead_id,
            target_voter_id=target_id,
        )
    except reconciliation_service.MergeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except reconciliation_service.MergeIntegrityError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return MergeResultResponse.model_validate(result)
