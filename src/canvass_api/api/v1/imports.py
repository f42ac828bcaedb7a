"""Import API endpoints.

POST /jobs/import-voters (inline rows), POST /imports/voters (file upload),
GET /jobs (list jobs), GET /jobs/{job_id} (status and progress).

The HTTP layer only creates the ``pending`` job and enqueues it; the queue
worker runs the import and clients poll the job record.
"""

import math
import uuid
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.core.background import JobQueue
from canvass_api.core.config import Settings, get_settings
from canvass_api.core.dependencies import (
    CurrentUser,
    get_async_session,
    get_current_user,
    get_job_queue,
    get_object_store,
    require_role,
)
from canvass_api.lib.storage import ObjectNotAccessibleError, ObjectStore
from canvass_api.schemas.common import PaginationMeta, PaginationParams
from canvass_api.schemas.imports import (
    ImportJobAccepted,
    ImportJobResponse,
    ImportVotersRequest,
    PaginatedImportJobResponse,
)
from canvass_api.services import import_service

jobs_router = APIRouter(prefix="/jobs", tags=["imports"])
imports_router = APIRouter(prefix="/imports", tags=["imports"])

_CONTENT_TYPES = {
    ".csv": "text/csv",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
_NO_FILE_DETAIL = "No file provided"


@jobs_router.post("/import-voters", response_model=ImportJobAccepted, status_code=202)
async def import_voter_rows(
    body: ImportVotersRequest,
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    queue: Annotated[JobQueue, Depends(get_job_queue)],
) -> ImportJobAccepted:
    """Queue an import of inline voter rows (admin only)."""
    job = await import_service.create_import_job(
        session,
        tenant_id=current_user.tenant_id,
        user_id=current_user.id,
        metadata={"count": len(body.voters)},
    )
    import_service.enqueue_import(
        queue,
        import_service.ImportJobPayload(
            job_id=job.id,
            tenant_id=current_user.tenant_id,
            user_id=current_user.id,
            voters=body.voters,
        ),
    )
    logger.info(f"Queued import job {job.id} with {len(body.voters)} inline rows")
    return ImportJobAccepted(id=job.id, status=job.status)


@imports_router.post("/voters", response_model=ImportJobAccepted, status_code=202)
async def import_voter_file(
    file: UploadFile,
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    queue: Annotated[JobQueue, Depends(get_job_queue)],
    storage: Annotated[ObjectStore | None, Depends(get_object_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ImportJobAccepted:
    """Upload a CSV or XLSX voter file and queue its import (admin only).

    The file is stored under ``imports/{tenant}/{job}{ext}``. Re-uploading a
    file whose content matches an earlier job is allowed; the earlier job is
    reported in ``duplicate_of_job_id``.
    """
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_NO_FILE_DETAIL)

    ext = Path(file.filename).suffix.lower()
    if ext not in _CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file format: {ext or file.filename}",
        )
    if storage is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="File storage is not configured",
        )

    content = await file.read()
    max_bytes = settings.max_import_file_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds maximum size of {settings.max_import_file_size_mb} MB",
        )

    file_hash = import_service.compute_file_hash(content)
    prior = await import_service.find_prior_job_by_hash(
        session, tenant_id=current_user.tenant_id, file_hash=file_hash
    )

    job_id = uuid.uuid4()
    key = f"imports/{current_user.tenant_id}/{job_id}{ext}"
    try:
        await storage.put(key, content, _CONTENT_TYPES[ext])
    except ObjectNotAccessibleError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    job = await import_service.create_import_job(
        session,
        job_id=job_id,
        tenant_id=current_user.tenant_id,
        user_id=current_user.id,
        file_key=key,
        metadata={
            "key": key,
            "filename": file.filename,
            "size": len(content),
            "file_hash": file_hash,
            **import_service.duplicate_metadata(prior),
        },
    )
    import_service.enqueue_import(
        queue,
        import_service.ImportJobPayload(
            job_id=job.id,
            tenant_id=current_user.tenant_id,
            user_id=current_user.id,
            file_key=key,
        ),
    )
    logger.info(f"Queued import job {job.id} for {file.filename} ({len(content)} bytes)")
    return ImportJobAccepted(id=job.id, status=job.status, duplicate_of_job_id=prior.id if prior else None)


@jobs_router.get("", response_model=PaginatedImportJobResponse)
async def list_jobs(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    job_status: Annotated[str | None, Query(alias="status")] = None,
) -> PaginatedImportJobResponse:
    """List the caller's organization's import jobs, newest first."""
    jobs, total = await import_service.list_import_jobs(
        session,
        tenant_id=current_user.tenant_id,
        status=job_status,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return PaginatedImportJobResponse(
        items=[ImportJobResponse.model_validate(j) for j in jobs],
        pagination=PaginationMeta(
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=max(1, math.ceil(total / pagination.page_size)),
        ),
    )


@jobs_router.get("/{job_id}", response_model=ImportJobResponse)
async def get_job(
    job_id: uuid.UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ImportJobResponse:
    """Get an import job's status, live progress and outcome."""
    job = await import_service.get_import_job(session, current_user.tenant_id, job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import job not found")
    return ImportJobResponse.model_validate(job)
