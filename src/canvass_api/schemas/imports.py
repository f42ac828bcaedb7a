"""Import job Pydantic v2 request/response schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from canvass_api.schemas.common import PaginationMeta


class ImportVotersRequest(BaseModel):
    """Inline voter rows to import; keys may be snake_case or camelCase."""

    voters: list[dict[str, Any]] = Field(min_length=1, description="Voter rows keyed by field name")


class ImportJobAccepted(BaseModel):
    """Acknowledgement returned when a job is queued; poll the job for progress."""

    id: UUID
    status: str
    duplicate_of_job_id: UUID | None = None


class ImportJobResponse(BaseModel):
    """Import job status, progress and outcome."""

    id: UUID
    type: str
    status: str
    file_key: str | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="job_metadata")
    result: dict[str, Any] | None = None
    error: str | None = None
    last_processed_offset: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaginatedImportJobResponse(BaseModel):
    """Paginated list of import jobs."""

    items: list[ImportJobResponse]
    pagination: PaginationMeta
