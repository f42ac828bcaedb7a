"""Merge alert review endpoints (admin only)."""

import uuid
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.core.dependencies import CurrentUser, get_async_session, require_role
from canvass_api.schemas.merge_alert import (
    MergeAlertCountResponse,
    MergeAlertListResponse,
    MergeAlertResponse,
    MergeAlertUpdateRequest,
    VoterSummaryResponse,
)
from canvass_api.services import reconciliation_service

merge_alerts_router = APIRouter(prefix="/merge-alerts", tags=["merge-alerts"])


@merge_alerts_router.get("/count", response_model=MergeAlertCountResponse)
async def count_alerts(
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> MergeAlertCountResponse:
    """Number of open alerts awaiting review."""
    count = await reconciliation_service.count_open_alerts(session, tenant_id=current_user.tenant_id)
    return MergeAlertCountResponse(open_count=count)


@merge_alerts_router.get("", response_model=MergeAlertListResponse)
async def list_alerts(
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    alert_status: Annotated[Literal["open", "resolved", "dismissed"], Query(alias="status")] = "open",
) -> MergeAlertListResponse:
    """List alerts in one status with both candidate voters attached."""
    rows = await reconciliation_service.list_alerts(session, tenant_id=current_user.tenant_id, status=alert_status)
    alerts = []
    for row in rows:
        item = MergeAlertResponse.model_validate(row.alert)
        item.lead = VoterSummaryResponse.model_validate(row.lead)
        item.imported = VoterSummaryResponse.model_validate(row.imported)
        alerts.append(item)
    return MergeAlertListResponse(alerts=alerts)


@merge_alerts_router.patch("/{alert_id}", response_model=MergeAlertResponse)
async def update_alert(
    alert_id: uuid.UUID,
    body: MergeAlertUpdateRequest,
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> MergeAlertResponse:
    """Resolve or dismiss an open alert."""
    try:
        alert = await reconciliation_service.update_alert_status(
            session,
            tenant_id=current_user.tenant_id,
            actor_user_id=current_user.id,
            alert_id=alert_id,
            status=body.status,
        )
    except reconciliation_service.MergeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except reconciliation_service.MergeIntegrityError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return MergeAlertResponse.model_validate(alert)
