from click.testing import CliRunner
from fastapi.testclient import TestClient

from gitforge.cli import main
from gitforge.project_service.app import app
from gitforge.project_service.settings import GitforgeSettings

client = TestClient(app)


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_settings_read_prefixed_env(monkeypatch):
    monkeypatch.setenv("GITFORGE_REPO_MANAGER_URL", "http://repo-manager:9000")
    monkeypatch.setenv("GITFORGE_REPO_MANAGER_TIMEOUT", "2.5")
    monkeypatch.setenv("GITFORGE_RECONCILE_ON_STARTUP", "true")

    settings = GitforgeSettings(_env_file=None)

    assert settings.repo_manager_url == "http://repo-manager:9000"
    assert settings.repo_manager_timeout == 2.5
    assert settings.reconcile_on_startup is True
    assert settings.reconcile_stale_after == 900


def test_cli_help_lists_commands():
    result = CliRunner().invoke(main, ["--help"])
    assert result.exit_code == 0
    for command in ("serve", "reconcile", "user", "db"):
        assert command in result.output


def test_cli_reconcile_requires_database(monkeypatch, tmp_path):
    monkeypatch.delenv("GITFORGE_DATABASE_URL", raising=False)
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(main, ["reconcile"])

    assert result.exit_code == 2
    assert "GITFORGE_DATABASE_URL" in result.output


async def test_sqlite_engine_skips_pool_sizing(tmp_path):
    from sqlalchemy import text

    from gitforge.project_service.db.engine import create_engine

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'dev.db'}", pool_size=3)
    async with engine.connect() as conn:
        assert (await conn.execute(text("SELECT 1"))).scalar() == 1
    await engine.dispose()
