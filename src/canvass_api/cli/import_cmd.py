"""Import CLI commands for voter files."""

import asyncio
import uuid
from pathlib import Path

import typer

import_app = typer.Typer()


@import_app.command("voters")
def import_voters(
    file: Path = typer.Argument(  # noqa: B008
        ..., help="Path to a voter CSV or XLSX file", exists=True, dir_okay=False
    ),
    tenant: uuid.UUID = typer.Option(..., "--tenant", help="Organization ID to import into"),  # noqa: B008
    user: uuid.UUID = typer.Option(..., "--user", help="User ID recorded as the submitter"),  # noqa: B008
) -> None:
    """Import a voter file from disk, running the import inline."""
    asyncio.run(_import_voters(file, tenant, user))


async def _import_voters(file_path: Path, tenant_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """Async implementation of voter import."""
    from canvass_api.core.config import get_settings
    from canvass_api.core.database import dispose_engine, get_session_factory, init_engine
    from canvass_api.lib.storage import LocalFileStore
    from canvass_api.services.import_service import ImportJobPayload, create_import_job, process_import_job

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    storage = LocalFileStore(file_path.parent)

    try:
        factory = get_session_factory()
        async with factory() as session:
            job = await create_import_job(
                session,
                tenant_id=tenant_id,
                user_id=user_id,
                file_key=file_path.name,
                metadata={"filename": file_path.name, "size": file_path.stat().st_size},
            )
            typer.echo(f"Import job created: {job.id}")
            typer.echo(f"Processing {file_path}...")

            payload = ImportJobPayload(job_id=job.id, tenant_id=tenant_id, user_id=user_id, file_key=file_path.name)
            try:
                job = await process_import_job(session, payload, storage=storage, settings=settings)
            except Exception as e:
                typer.echo(f"\nImport failed: {e}", err=True)
                raise typer.Exit(code=1) from e

            result = job.result or {}
            metadata = job.job_metadata or {}
            typer.echo("\nImport completed:")
            typer.echo(f"  Total rows:     {result.get('total_rows', 0)}")
            typer.echo(f"  Imported:       {result.get('imported_count', 0)}")
            typer.echo(f"  Skipped:        {result.get('skipped_missing_external_id', 0)}")
            if metadata.get("duplicate_of_job_id"):
                typer.echo(
                    f"  Note: same file as job {metadata['duplicate_of_job_id']} ({metadata['duplicate_of_status']})"
                )
    finally:
        await dispose_engine()
