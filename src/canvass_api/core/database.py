"""Engine and session lifecycle shared by the API, the import worker and the CLI.

PostgreSQL (asyncpg) in deployment, SQLite (aiosqlite) in tests. The API and
the in-process import worker draw sessions from one factory; each import
delivery holds a single pooled connection for its whole run.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the current async engine.

    Raises:
        RuntimeError: If ``init_engine`` has not run.
    """
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the factory request handlers and import deliveries open sessions from.

    Raises:
        RuntimeError: If neither ``init_engine`` nor ``set_session_factory`` has run.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


def _connection_options(database_url: str, schema: str | None, kwargs: dict[str, object]) -> dict[str, object]:
    if schema is not None:
        connect_args = kwargs.pop("connect_args", {})
        if not isinstance(connect_args, dict):
            msg = "connect_args must be a dict"
            raise TypeError(msg)
        # asyncpg takes session settings here rather than libpq "options"
        connect_args["server_settings"] = {"search_path": f"{schema},public"}
        kwargs["connect_args"] = connect_args
    if kwargs.get("poolclass") is StaticPool or database_url.startswith("sqlite"):
        return kwargs
    # Room for the API plus a handful of concurrent import deliveries
    kwargs.setdefault("pool_size", 10)
    kwargs.setdefault("max_overflow", 5)
    kwargs.setdefault("pool_pre_ping", True)
    return kwargs


def init_engine(database_url: str, *, schema: str | None = None, **kwargs: object) -> AsyncEngine:
    """Create the engine and the shared session factory.

    Sessions keep loaded attributes after commit; import progress snapshots
    and API responses read them after the transaction ends.

    Args:
        database_url: Async connection string (postgresql+asyncpg or sqlite+aiosqlite).
        schema: Optional PostgreSQL schema placed first on the search path.
        **kwargs: Additional arguments passed to create_async_engine.

    Returns:
        The created async engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(database_url, **_connection_options(database_url, schema, dict(kwargs)))
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


def set_session_factory(factory: async_sessionmaker[AsyncSession] | None) -> None:
    """Install an externally built session factory (used by tests and the CLI)."""
    global _session_factory  # noqa: PLW0603
    _session_factory = factory


async def ping(session: AsyncSession) -> None:
    """Round-trip a trivial query; raises whatever the driver raises when the database is down."""
    await session.execute(text("SELECT 1"))


async def dispose_engine() -> None:
    """Dispose of the async engine and release connections."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
