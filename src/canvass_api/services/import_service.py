"""Import service: drives a voter import job from source rows to a terminal state.

A job is created ``pending`` by the HTTP layer (or CLI), then handed to
``process_import_job`` through the job queue. The orchestrator resolves the
source rows (inline JSON or a stored CSV/XLSX file), upserts each row keyed on
``(tenant_id, external_id)``, and checkpoints progress every
``import_progress_interval`` rows so a redelivered job resumes instead of
starting over.
"""

import hashlib
import uuid
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.core.background import InProcessJobQueue, JobQueue
from canvass_api.core.config import Settings, get_settings
from canvass_api.core.database import get_session_factory
from canvass_api.core.logging import job_logger
from canvass_api.lib.importer import MappedVoterRow, decode_csv_bytes, is_xlsx_key, parse_csv_text, xlsx_to_csv
from canvass_api.lib.storage import ObjectStore, create_object_store
from canvass_api.models.import_job import (
    IMPORT_TYPE_VOTERS,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PENDING,
    JOB_PROCESSING,
    TERMINAL_STATUSES,
    ImportJob,
)
from canvass_api.models.voter import VOTER_SOURCE_IMPORT, Voter
from canvass_api.services.audit_service import record_audit, record_event

IMPORT_VOTERS_JOB = "import_voters"

PHASE_STARTING = "starting"
PHASE_READING_FILE = "reading_file"
PHASE_PARSING_ROWS = "parsing_rows"
PHASE_WRITING_VOTERS = "writing_voters"
PHASE_FINALIZING = "finalizing"

UNKNOWN = "Unknown"

# Never overwritten on conflict: conflict key, primary key, and provenance
_UPSERT_EXCLUDE_COLUMNS = frozenset({"id", "tenant_id", "external_id", "source", "created_at"})


class ImportJobNotFoundError(ValueError):
    """The job id does not exist within the payload's tenant."""


class ImportJobPayload(BaseModel):
    """Queue payload for one voter import.

    Accepts snake_case or camelCase keys. When ``file_key`` is set the rows
    come from the stored file and ``voters`` is ignored.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: uuid.UUID
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    voters: list[dict[str, Any]] | None = None
    file_key: str | None = None


async def create_import_job(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    file_key: str | None = None,
    metadata: dict | None = None,
    job_id: uuid.UUID | None = None,
) -> ImportJob:
    """Create a new ``pending`` import job record.

    Args:
        session: Database session.
        tenant_id: Owning organization.
        user_id: Submitting user.
        file_key: Object store key of the uploaded file, if file-sourced.
        metadata: Initial metadata (upload details, file hash, duplicate info).
        job_id: Pre-allocated id, when the file key already embeds it.

    Returns:
        The created ImportJob.
    """
    job = ImportJob(
        id=job_id or uuid.uuid4(),
        tenant_id=tenant_id,
        user_id=user_id,
        type=IMPORT_TYPE_VOTERS,
        status=JOB_PENDING,
        file_key=file_key,
        job_metadata=metadata,
    )
    session.add(job)
    await session.commit()
    await session.refresh(job)
    return job


def compute_file_hash(data: bytes) -> str:
    """Return the hex SHA-256 digest used for duplicate-file detection."""
    return hashlib.sha256(data).hexdigest()


async def find_prior_job_by_hash(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    file_hash: str,
    exclude_job_id: uuid.UUID | None = None,
) -> ImportJob | None:
    """Find the most recent voter import job in the tenant for the same file content.

    Args:
        session: Database session.
        tenant_id: Tenant to search.
        file_hash: SHA-256 hex digest of the file bytes.
        exclude_job_id: Job to leave out (normally the job being processed).

    Returns:
        The newest matching ImportJob, or None.
    """
    query = select(ImportJob).where(
        ImportJob.tenant_id == tenant_id,
        ImportJob.type == IMPORT_TYPE_VOTERS,
        ImportJob.job_metadata["file_hash"].as_string() == file_hash,
    )
    if exclude_job_id is not None:
        query = query.where(ImportJob.id != exclude_job_id)
    result = await session.execute(query.order_by(ImportJob.created_at.desc()).limit(1))
    return result.scalars().first()


def duplicate_metadata(prior: ImportJob | None) -> dict[str, Any]:
    """Describe a prior job with the same file hash for the new job's metadata."""
    if prior is None:
        return {"duplicate_of_job_id": None, "duplicate_of_created_at": None, "duplicate_of_status": None}
    return {
        "duplicate_of_job_id": str(prior.id),
        "duplicate_of_created_at": prior.created_at.isoformat() if prior.created_at else None,
        "duplicate_of_status": prior.status,
    }


async def _set_progress(
    session: AsyncSession,
    job: ImportJob,
    *,
    started_at: str,
    phase: str,
    processed_rows: int,
    total_rows: int | None,
    imported_count: int = 0,
    skipped_missing_external_id: int = 0,
    commit: bool = True,
) -> None:
    """Replace the job's progress snapshot and, by default, commit it.

    Committing here also commits every voter upsert executed since the last
    commit, so the checkpoint and the rows it covers land together.
    """
    progress = {
        "started_at": started_at,
        "phase": phase,
        "processed_rows": processed_rows,
        "total_rows": total_rows,
        "imported_count": imported_count,
        "skipped_missing_external_id": skipped_missing_external_id,
    }
    # Reassign rather than mutate so the JSON column is flagged dirty
    job.job_metadata = {**(job.job_metadata or {}), "progress": progress}
    if commit:
        await session.commit()


async def _record_file_hash(session: AsyncSession, job: ImportJob, data: bytes) -> None:
    """Stamp the file hash and any earlier job with the same content onto the job."""
    metadata = job.job_metadata or {}
    if metadata.get("file_hash"):
        return
    file_hash = compute_file_hash(data)
    prior = await find_prior_job_by_hash(session, tenant_id=job.tenant_id, file_hash=file_hash, exclude_job_id=job.id)
    if prior is not None:
        logger.info(f"Import job {job.id} file matches earlier job {prior.id} ({prior.status})")
    job.job_metadata = {**metadata, "file_hash": file_hash, **duplicate_metadata(prior)}


async def resolve_source_rows(
    session: AsyncSession,
    job: ImportJob,
    payload: ImportJobPayload,
    *,
    storage: ObjectStore | None,
    settings: Settings,
    started_at: str,
    counters: dict[str, int] | None = None,
) -> list[MappedVoterRow]:
    """Produce the job's rows from its inline payload or its stored file.

    File-sourced jobs move through the ``reading_file`` and ``parsing_rows``
    phases; each phase is committed before its work starts. ``counters``
    (``processed_rows``, ``imported_count``, ``skipped_missing_external_id``)
    are carried into those snapshots so a resumed job keeps its checkpoint.

    Raises:
        RuntimeError: If the job names a file but no object store is configured.
        ObjectNotAccessibleError: If the file cannot be fetched.
        XlsxConversionError: If an XLSX file cannot be converted.
    """
    if not payload.file_key:
        return [MappedVoterRow.from_mapping(v) for v in payload.voters or []]

    if storage is None:
        msg = f"Object storage is not configured; cannot read {payload.file_key}"
        raise RuntimeError(msg)

    counters = counters or {"processed_rows": 0}
    await _set_progress(session, job, started_at=started_at, phase=PHASE_READING_FILE, total_rows=None, **counters)
    data = await storage.get(payload.file_key)
    await _record_file_hash(session, job, data)

    if is_xlsx_key(payload.file_key):
        data = await xlsx_to_csv(data, timeout=settings.xlsx_convert_timeout)

    await _set_progress(session, job, started_at=started_at, phase=PHASE_PARSING_ROWS, total_rows=None, **counters)
    return parse_csv_text(decode_csv_bytes(data))


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value if value.strip() else None


def _parse_age(value: str | None) -> int | None:
    if not value or not value.strip():
        return None
    try:
        return int(float(value.strip()))
    except (ValueError, OverflowError):
        return None


def _parse_coordinate(value: str | None) -> float | None:
    if not value or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None


def placeholder_offsets(tenant_id: uuid.UUID, external_id: str, jitter: float) -> tuple[float, float]:
    """Return stable (lat, lng) offsets in ``[0, jitter)`` for one voter identity.

    Derived from a SHA-256 of the tenant and external id so re-importing the
    same row writes the same placeholder point.
    """
    digest = hashlib.sha256(f"{tenant_id}:{external_id}".encode()).digest()
    lat_fraction = int.from_bytes(digest[:8], "big") / 2**64
    lng_fraction = int.from_bytes(digest[8:16], "big") / 2**64
    return lat_fraction * jitter, lng_fraction * jitter


def build_voter_values(row: MappedVoterRow, tenant_id: uuid.UUID, settings: Settings) -> dict[str, Any] | None:
    """Turn a mapped row into voter column values ready for upsert.

    Rows without an external id cannot be upserted and return None (the
    caller counts them as skipped). Missing names, address and city default
    to ``Unknown``, a missing zip to ``""`` and a missing state to the
    configured default. The address is composed from the split residence
    components when no single address column is present. Rows with no
    geocoordinate get a placeholder point, jittered by a stable per-voter
    offset, until geocoding runs.

    Args:
        row: The mapped source row.
        tenant_id: Owning organization.
        settings: Provides the default state and placeholder point.

    Returns:
        Column values keyed by Voter attribute name, or None to skip the row.
    """
    external_id = (row.external_id or "").strip()
    if not external_id:
        return None

    lat = _parse_coordinate(row.geom_lat)
    lng = _parse_coordinate(row.geom_lng)
    if lat is None or lng is None:
        lat_offset, lng_offset = placeholder_offsets(tenant_id, external_id, settings.placeholder_jitter)
        if lat is None:
            lat = settings.placeholder_latitude + lat_offset
        if lng is None:
            lng = settings.placeholder_longitude + lng_offset

    return {
        "tenant_id": tenant_id,
        "external_id": external_id,
        "source": VOTER_SOURCE_IMPORT,
        "first_name": _blank_to_none(row.first_name) or UNKNOWN,
        "middle_name": _blank_to_none(row.middle_name),
        "last_name": _blank_to_none(row.last_name) or UNKNOWN,
        "suffix": _blank_to_none(row.suffix),
        "age": _parse_age(row.age),
        "gender": _blank_to_none(row.gender),
        "race": _blank_to_none(row.race),
        "party": _blank_to_none(row.party),
        "phone": _blank_to_none(row.phone),
        "address": (row.address or "").strip() or row.composed_address() or UNKNOWN,
        "unit": _blank_to_none(row.unit),
        "city": _blank_to_none(row.city) or UNKNOWN,
        "state": _blank_to_none(row.state) or settings.default_state,
        "zip": row.zip or "",
        "geom_lat": lat,
        "geom_lng": lng,
    }


def _dialect_insert(session: AsyncSession) -> Any:
    """Return the dialect-specific ``insert`` that supports ON CONFLICT."""
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


async def upsert_voter(session: AsyncSession, values: dict[str, Any]) -> None:
    """Insert a voter or overwrite the existing one with the same external id.

    Uses ``INSERT ... ON CONFLICT (tenant_id, external_id) DO UPDATE``. Every
    mapped column is replaced unconditionally (last write wins) and
    ``updated_at`` refreshed; ``source`` keeps its original value.

    Args:
        session: Database session (not committed here).
        values: Output of ``build_voter_values``.
    """
    stmt = _dialect_insert(session)(Voter).values(**values)
    set_ = {col: stmt.excluded[col] for col in values if col not in _UPSERT_EXCLUDE_COLUMNS}
    set_["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(index_elements=["tenant_id", "external_id"], set_=set_)
    await session.execute(stmt)


async def process_import_job(
    session: AsyncSession,
    payload: ImportJobPayload,
    *,
    storage: ObjectStore | None = None,
    settings: Settings | None = None,
) -> ImportJob:
    """Run one import job to a terminal state.

    This is the single entry point shared by the queue handler and the CLI.
    A job that is already ``completed`` or ``failed`` is returned untouched.
    A job redelivered while ``processing`` resumes after its last checkpoint
    with the counters stored alongside it.

    Rows are applied in source order. Every ``import_progress_interval``
    rows the pending upserts, the progress snapshot and
    ``last_processed_offset`` are committed together. On success the result
    summary, ``import.completed`` event and ``import.success`` audit record
    commit in one transaction. On any error the uncommitted work is rolled
    back, the job is marked ``failed`` with the error message, an
    ``import.failed`` event is written, and the exception is re-raised.

    Args:
        session: Database session owned by the caller.
        payload: Job identity and row source.
        storage: Object store used for file-sourced jobs.
        settings: Application settings (loaded from the environment if omitted).

    Returns:
        The ImportJob in its final state.

    Raises:
        ImportJobNotFoundError: If the job does not exist in the payload's tenant.
    """
    settings = settings or get_settings()
    log = job_logger(payload.job_id, payload.tenant_id)

    job = await get_import_job(session, payload.tenant_id, payload.job_id)
    if job is None:
        msg = f"Import job {payload.job_id} not found"
        raise ImportJobNotFoundError(msg)

    if job.status in TERMINAL_STATUSES:
        log.info(f"Import job {job.id} already {job.status}; nothing to do")
        return job

    checkpoint = (job.job_metadata or {}).get("progress") or {}
    resuming = job.status == JOB_PROCESSING and bool(job.last_processed_offset)
    started_at = checkpoint.get("started_at") if resuming else None
    started_at = started_at or datetime.now(UTC).isoformat()

    try:
        if resuming:
            log.info(f"Resuming import job {job.id} after row {job.last_processed_offset}")
        else:
            job.status = JOB_PROCESSING
            job.last_processed_offset = None
            record_event(
                session,
                tenant_id=job.tenant_id,
                user_id=job.user_id,
                event_type="import.started",
                metadata={"job_id": str(job.id)},
            )
            await _set_progress(
                session, job, started_at=started_at, phase=PHASE_STARTING, processed_rows=0, total_rows=None
            )
            log.info(f"Import job {job.id} started")

        start = (job.last_processed_offset or 0) if resuming else 0
        imported = int(checkpoint.get("imported_count", 0)) if resuming else 0
        skipped = int(checkpoint.get("skipped_missing_external_id", 0)) if resuming else 0

        rows = await resolve_source_rows(
            session,
            job,
            payload,
            storage=storage,
            settings=settings,
            started_at=started_at,
            counters={
                "processed_rows": start,
                "imported_count": imported,
                "skipped_missing_external_id": skipped,
            },
        )
        total_rows = len(rows)

        await _set_progress(
            session,
            job,
            started_at=started_at,
            phase=PHASE_WRITING_VOTERS,
            processed_rows=start,
            total_rows=total_rows,
            imported_count=imported,
            skipped_missing_external_id=skipped,
        )
        log.info(f"Import job {job.id} writing {total_rows - start} of {total_rows} rows")

        interval = settings.import_progress_interval
        for offset in range(start, total_rows):
            values = build_voter_values(rows[offset], job.tenant_id, settings)
            if values is None:
                skipped += 1
            else:
                await upsert_voter(session, values)
                imported += 1

            processed = offset + 1
            if processed % interval == 0:
                job.last_processed_offset = processed
                await _set_progress(
                    session,
                    job,
                    started_at=started_at,
                    phase=PHASE_WRITING_VOTERS,
                    processed_rows=processed,
                    total_rows=total_rows,
                    imported_count=imported,
                    skipped_missing_external_id=skipped,
                )
                log.debug(f"Import job {job.id} checkpoint at row {processed}/{total_rows}")

        await _set_progress(
            session,
            job,
            started_at=started_at,
            phase=PHASE_FINALIZING,
            processed_rows=total_rows,
            total_rows=total_rows,
            imported_count=imported,
            skipped_missing_external_id=skipped,
            commit=False,
        )
        job.status = JOB_COMPLETED
        job.last_processed_offset = total_rows
        job.result = {
            "imported_count": imported,
            "skipped_missing_external_id": skipped,
            "total_rows": total_rows,
        }
        record_event(
            session,
            tenant_id=job.tenant_id,
            user_id=job.user_id,
            event_type="import.completed",
            metadata={
                "job_id": str(job.id),
                "count": imported,
                "skipped_missing_external_id": skipped,
                "total_rows": total_rows,
            },
        )
        record_audit(
            session,
            tenant_id=job.tenant_id,
            actor_user_id=job.user_id,
            action="import.success",
            details={"job_id": str(job.id), "count": imported},
        )
        await session.commit()
        log.info(f"Import job {job.id} completed: {imported} imported, {skipped} skipped of {total_rows} rows")

    except Exception as exc:
        log.error(f"Import job {payload.job_id} failed: {exc}")
        await session.rollback()
        await session.refresh(job)
        job.status = JOB_FAILED
        job.error = str(exc)
        record_event(
            session,
            tenant_id=payload.tenant_id,
            user_id=payload.user_id,
            event_type="import.failed",
            metadata={"job_id": str(payload.job_id), "error": str(exc)},
        )
        await session.commit()
        raise

    return job


async def get_import_job(session: AsyncSession, tenant_id: uuid.UUID, job_id: uuid.UUID) -> ImportJob | None:
    """Get an import job by ID within a tenant.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        job_id: The import job ID.

    Returns:
        The ImportJob or None if not found in this tenant.
    """
    result = await session.execute(
        select(ImportJob).where(ImportJob.id == job_id, ImportJob.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()


async def list_import_jobs(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ImportJob], int]:
    """List a tenant's import jobs, newest first.

    Args:
        session: Database session.
        tenant_id: The caller's organization.
        status: Filter by status.
        page: Page number.
        page_size: Items per page.

    Returns:
        Tuple of (jobs, total count).
    """
    query = select(ImportJob).where(ImportJob.tenant_id == tenant_id)
    count_query = select(func.count(ImportJob.id)).where(ImportJob.tenant_id == tenant_id)
    if status:
        query = query.where(ImportJob.status == status)
        count_query = count_query.where(ImportJob.status == status)

    total = (await session.execute(count_query)).scalar_one()
    offset = (page - 1) * page_size
    query = query.order_by(ImportJob.created_at.desc()).offset(offset).limit(page_size)
    result = await session.execute(query)
    return list(result.scalars().all()), total


def enqueue_import(queue: JobQueue, payload: ImportJobPayload) -> str:
    """Hand a job to the queue; deliveries for the same job id never overlap.

    Returns:
        The queue's delivery handle.
    """
    return queue.enqueue(IMPORT_VOTERS_JOB, payload.model_dump(mode="json"), key=str(payload.job_id))


def register_import_handler(
    queue: InProcessJobQueue,
    *,
    settings: Settings | None = None,
    storage: ObjectStore | None = None,
) -> None:
    """Register the worker-side handler that runs queued import jobs.

    The handler opens its own session per delivery. Settings and the object
    store are resolved at delivery time unless given here.
    """

    async def _handle(raw: dict[str, Any]) -> None:
        payload = ImportJobPayload.model_validate(raw)
        job_settings = settings or get_settings()
        job_storage = storage if storage is not None else create_object_store(job_settings)
        factory = get_session_factory()
        async with factory() as session:
            await process_import_job(session, payload, storage=job_storage, settings=job_settings)

    queue.register(IMPORT_VOTERS_JOB, _handle)


async def start_import_worker(queue: InProcessJobQueue, settings: Settings) -> ObjectStore | None:
    """Verify the upload bucket, then register the import handler on ``queue``.

    Jobs that read uploaded files only run once the bucket is known to be
    reachable. Without storage settings the handler is registered as-is and
    file-sourced jobs fail when delivered.

    Returns:
        The object store the handler reads from, or None when not configured.

    Raises:
        ObjectNotAccessibleError: If the configured bucket cannot be reached.
    """
    storage = create_object_store(settings)
    if storage is None:
        logger.warning("Object storage not configured; file imports will fail until it is")
    else:
        await storage.ensure_bucket()
        logger.info(f"Upload bucket {storage.bucket} reachable")
    register_import_handler(queue, settings=settings, storage=storage)
    return storage
