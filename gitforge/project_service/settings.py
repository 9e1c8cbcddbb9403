"""Service configuration loaded from GITFORGE_* environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class GitforgeSettings(BaseSettings):
    """Gitforge Project Service settings.

    All fields are read from environment variables with the ``GITFORGE_``
    prefix.  For example, ``GITFORGE_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="GITFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit JSON lines instead of the human-readable format."""

    # -- Infrastructure --------------------------------------------------------
    database_url: str | None = None
    """PostgreSQL connection string (psycopg).  Required for full operation."""

    db_pool_size: int = 5
    db_max_overflow: int = 10

    # -- Repository manager ----------------------------------------------------
    repo_manager_url: str | None = None
    """Base URL of the remote repository manager.

    When unset, an in-process repository manager is used instead.  That mode
    keeps no state across restarts and is only meant for local development.
    """

    repo_manager_timeout: float | None = 30.0
    """Deadline in seconds for a single repository manager call.

    A call that exceeds it is reported as a transient provisioning failure.
    ``None`` disables the deadline.
    """

    # -- Reconciliation --------------------------------------------------------
    reconcile_on_startup: bool = False
    """Run a reconciliation sweep (with repairs) during app startup."""

    reconcile_stale_after: int = 900
    """Seconds after which a provisioning/deleting row is considered abandoned."""

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000


def get_settings() -> GitforgeSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``get_settings.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> GitforgeSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return GitforgeSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
