"""Tests for memory configuration."""

from pathlib import Path

import pytest

from memdesk.backends import BackendError, SQLiteBackend, SupabaseBackend, create_backend
from memdesk.config import DEFAULT_DB_PATH, MemoryConfig, config_from_env

ENV_VARS = [
    "MEMDESK_BACKEND",
    "MEMDESK_DB_PATH",
    "MEMDESK_LOG_DIR",
    "MEMDESK_REQUEST_TIMEOUT",
    "MEMDESK_RECENT_LIMIT",
    "MEMDESK_SEARCH_LIMIT",
    "MEMDESK_FALLBACK_LIMIT",
    "MEMDESK_PROMPT_HISTORY_LIMIT",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestMemoryConfig:
    def test_defaults(self):
        config = MemoryConfig()
        assert config.backend == "sqlite"
        assert config.db_path == DEFAULT_DB_PATH
        assert config.recent_limit == 10
        assert config.search_limit == 20
        assert config.fallback_limit == 5
        assert config.prompt_history_limit == 5

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            MemoryConfig(backend="mysql")

    def test_limits_must_be_positive(self):
        with pytest.raises(ValueError, match="fallback_limit"):
            MemoryConfig(fallback_limit=0)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError, match="request_timeout"):
            MemoryConfig(request_timeout=0)

    def test_supabase_requires_credentials(self):
        with pytest.raises(ValueError, match="SUPABASE_URL"):
            MemoryConfig(backend="supabase", supabase_url="https://x.supabase.co")


class TestConfigFromEnv:
    def test_defaults_without_env(self):
        config = config_from_env()
        assert config.backend == "sqlite"
        assert config.recent_limit == 10

    def test_reads_env(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("MEMDESK_BACKEND", "Supabase")
        monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "secret")
        monkeypatch.setenv("MEMDESK_SEARCH_LIMIT", "50")
        monkeypatch.setenv("MEMDESK_REQUEST_TIMEOUT", "2.5")
        monkeypatch.setenv("MEMDESK_LOG_DIR", str(tmp_path / "logs"))

        config = config_from_env()

        assert config.backend == "supabase"
        assert config.supabase_key == "secret"
        assert config.search_limit == 50
        assert config.request_timeout == 2.5
        assert config.log_dir == tmp_path / "logs"

    def test_invalid_number_uses_default(self, monkeypatch):
        monkeypatch.setenv("MEMDESK_RECENT_LIMIT", "lots")
        assert config_from_env().recent_limit == 10

    def test_db_path_expanded(self, monkeypatch):
        monkeypatch.setenv("MEMDESK_DB_PATH", "~/memdesk-test.db")
        assert config_from_env().db_path == Path.home() / "memdesk-test.db"


class TestCreateBackend:
    @pytest.mark.asyncio
    async def test_sqlite(self, tmp_path: Path):
        backend = create_backend(MemoryConfig(db_path=tmp_path / "m.db"))
        assert isinstance(backend, SQLiteBackend)
        assert (tmp_path / "m.db").exists()
        await backend.close()

    def test_sqlite_unusable_path(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        with pytest.raises(BackendError):
            create_backend(MemoryConfig(db_path=blocker / "m.db"))

    @pytest.mark.asyncio
    async def test_supabase(self):
        backend = create_backend(
            MemoryConfig(
                backend="supabase",
                supabase_url="https://x.supabase.co",
                supabase_key="secret",
            )
        )
        assert isinstance(backend, SupabaseBackend)
        await backend.close()
