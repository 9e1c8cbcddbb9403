import click


@click.group()
def main() -> None:
    """Gitforge - project lifecycle service for hosted git repositories."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from GITFORGE_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from GITFORGE_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the Project Service API server."""
    import uvicorn

    from gitforge.project_service.settings import GitforgeSettings

    settings = GitforgeSettings()

    uvicorn.run(
        "gitforge.project_service.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def _run_with_db(func):  # noqa: ANN001, ANN202
    """Run ``func(db, settings)`` against a fresh engine, then dispose it."""
    import asyncio

    from gitforge.project_service.db.engine import create_engine, create_session_factory
    from gitforge.project_service.log import setup_logging
    from gitforge.project_service.settings import GitforgeSettings

    settings = GitforgeSettings()
    if not settings.database_url:
        raise click.UsageError("GITFORGE_DATABASE_URL is not set.")
    setup_logging(settings.log_level, json=settings.log_json)

    async def _main():  # noqa: ANN202
        engine = create_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
        try:
            async with create_session_factory(engine)() as db:
                return await func(db, settings)
        finally:
            await engine.dispose()

    return asyncio.run(_main())


@main.command(name="reconcile")
@click.option("--apply", is_flag=True, default=False, help="Repair divergences instead of only reporting them.")
@click.option("--stale-after", default=None, type=int, help="Grace period in seconds for transient rows.")
def reconcile_command(apply: bool, stale_after: int | None) -> None:
    """Compare project rows with the repository manager."""
    from datetime import timedelta

    from gitforge.project_service.app import create_repository_manager
    from gitforge.project_service.managers.reconcile import reconcile

    async def _reconcile(db, settings):  # noqa: ANN001, ANN202
        repositories = create_repository_manager(settings)
        try:
            return await reconcile(
                db,
                repositories,
                stale_after=timedelta(seconds=stale_after or settings.reconcile_stale_after),
                apply=apply,
            )
        finally:
            await repositories.aclose()

    report = _run_with_db(_reconcile)
    click.echo(report.model_dump_json(indent=2))
    if report.failed_paths or (not apply and not report.clean):
        raise SystemExit(1)


@main.group()
def user() -> None:
    """User directory commands."""


@user.command(name="add")
@click.argument("username")
@click.option("--admin", is_flag=True, default=False, help="Grant administrator rights.")
def add_user(username: str, admin: bool) -> None:
    """Register a user the project service can resolve."""
    from gitforge.project_service.managers.users import DuplicateUserError, create_user

    async def _add(db, _settings):  # noqa: ANN001, ANN202
        return await create_user(db, username, is_admin=admin)

    try:
        row = _run_with_db(_add)
    except DuplicateUserError:
        raise click.ClickException(f"User '{username}' already exists.") from None
    click.echo(f"User created: {row.user_id} ({username}{', admin' if admin else ''})")


# ---------------------------------------------------------------------------
# Database management
# ---------------------------------------------------------------------------


def _alembic_config():
    """Build an Alembic Config from the package's alembic.ini.

    Both alembic.ini and the alembic/ directory live inside the package,
    so this works whether running from source or from an installed package.
    """
    from pathlib import Path

    from alembic.config import Config

    ini_path = Path(__file__).parent / "project_service" / "alembic.ini"
    cfg = Config(str(ini_path))
    return cfg


@main.group()
def db() -> None:
    """Database migration and management commands."""


@db.command()
@click.option("--revision", default="head", help="Target revision (default: head).")
def upgrade(revision: str) -> None:
    """Run database migrations forward."""
    from alembic import command

    command.upgrade(_alembic_config(), revision)
    click.echo(f"Database upgraded to {revision}.")


@db.command()
@click.option("--revision", default="-1", help="Target revision (default: -1, one step back).")
def downgrade(revision: str) -> None:
    """Roll back database migrations."""
    from alembic import command

    command.downgrade(_alembic_config(), revision)
    click.echo(f"Database downgraded to {revision}.")


@db.command()
@click.argument("message")
def migrate(message: str) -> None:
    """Autogenerate a new migration from model changes."""
    from alembic import command

    command.revision(_alembic_config(), message=message, autogenerate=True)
    click.echo(f"Migration generated: {message}")


@db.command()
def current() -> None:
    """Show current database revision."""
    from alembic import command

    command.current(_alembic_config(), verbose=True)


@db.command()
def history() -> None:
    """Show migration history."""
    from alembic import command

    command.history(_alembic_config(), verbose=True)


if __name__ == "__main__":
    main()
