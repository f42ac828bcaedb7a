"""Voter Pydantic v2 request/response schemas.

Request bodies accept snake_case or camelCase keys.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from canvass_api.schemas.common import PaginationMeta


class _VoterFields(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    external_id: str | None = Field(default=None, max_length=100)
    first_name: str | None = Field(default=None, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    suffix: str | None = Field(default=None, max_length=20)
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = Field(default=None, max_length=20)
    race: str | None = Field(default=None, max_length=50)
    party: str | None = Field(default=None, max_length=50)
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None, max_length=255)
    unit: str | None = Field(default=None, max_length=50)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=50)
    zip: str | None = Field(default=None, max_length=20)
    geom_lat: float | None = Field(default=None, ge=-90, le=90)
    geom_lng: float | None = Field(default=None, ge=-180, le=180)


class VoterCreateRequest(_VoterFields):
    """A manually entered lead."""


class VoterUpdateRequest(_VoterFields):
    """Admin edits; only fields present in the body are applied."""


class VoterResponse(BaseModel):
    """Full voter record."""

    id: UUID
    external_id: str | None = None
    source: str
    merged_into_voter_id: UUID | None = None
    first_name: str
    middle_name: str | None = None
    last_name: str
    suffix: str | None = None
    age: int | None = None
    gender: str | None = None
    race: str | None = None
    party: str | None = None
    phone: str | None = None
    address: str
    unit: str | None = None
    city: str
    state: str | None = None
    zip: str
    geom_lat: float | None = None
    geom_lng: float | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VoterCreateResponse(VoterResponse):
    """Created lead plus how many merge alerts its phone opened."""

    merge_alerts_opened: int = 0


class PaginatedVoterResponse(BaseModel):
    """Paginated voter listing."""

    items: list[VoterResponse]
    pagination: PaginationMeta
