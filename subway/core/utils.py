"""Core utility functions."""

# Async driver -> sync driver used by Alembic migrations
_SYNC_DRIVERS = {
    "+asyncpg": "+psycopg",
    "+aiosqlite": "",
}


def convert_async_db_url_to_sync(database_url: str) -> str:
    """
    Convert an async database URL to a sync database URL.

    Only the scheme is rewritten, so SQLite paths with an empty host
    (``sqlite+aiosqlite:///subway.db``) keep their three slashes.

    Args:
        database_url: The async database URL (e.g., postgresql+asyncpg://...)

    Returns:
        The sync database URL (e.g., postgresql+psycopg://...)

    Examples:
        >>> convert_async_db_url_to_sync("postgresql+asyncpg://u:p@db/subway")
        'postgresql+psycopg://u:p@db/subway'
        >>> convert_async_db_url_to_sync("sqlite+aiosqlite:///subway.db")
        'sqlite:///subway.db'
    """
    scheme, separator, rest = database_url.partition("://")
    if not separator:
        return database_url
    for async_driver, sync_driver in _SYNC_DRIVERS.items():
        if async_driver in scheme:
            return f"{scheme.replace(async_driver, sync_driver)}://{rest}"
    return database_url
