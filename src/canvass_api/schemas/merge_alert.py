"""Merge alert and merge operation Pydantic v2 schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class VoterSummaryResponse(BaseModel):
    """Identifying fields of one side of a candidate pair."""

    id: UUID
    external_id: str | None = None
    first_name: str
    last_name: str
    phone: str | None = None
    address: str
    city: str
    state: str | None = None
    zip: str

    model_config = {"from_attributes": True}


class MergeAlertResponse(BaseModel):
    """A merge alert with both voters attached."""

    id: UUID
    lead_voter_id: UUID
    imported_voter_id: UUID
    reason: str
    status: str
    created_at: datetime
    updated_at: datetime
    lead: VoterSummaryResponse | None = None
    imported: VoterSummaryResponse | None = None

    model_config = {"from_attributes": True}


class MergeAlertListResponse(BaseModel):
    """Alerts in one status, newest first."""

    alerts: list[MergeAlertResponse]


class MergeAlertCountResponse(BaseModel):
    """Number of open alerts awaiting review."""

    open_count: int


class MergeAlertUpdateRequest(BaseModel):
    """Admin review decision for an alert."""

    status: Literal["open", "resolved", "dismissed"]


class MergeResultResponse(BaseModel):
    """Outcome of merging a lead into an imported voter."""

    merged: bool
    moved_interactions: int
    moved_list_members: int
    idempotent: bool

    model_config = {"from_attributes": True}
