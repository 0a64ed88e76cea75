"""Tests for the memdesk CLI."""

import json
from pathlib import Path

import pytest

from memdesk.cli import create_parser, run_cli
from memdesk.config import MemoryConfig
from memdesk.logging import get_logger

PHONE = "+15550001111"


@pytest.fixture
def config(tmp_path: Path) -> MemoryConfig:
    return MemoryConfig(db_path=tmp_path / "memory.db", log_dir=tmp_path / "logs")


def write_transcript(tmp_path: Path, messages: list[dict]) -> Path:
    path = tmp_path / "transcript.json"
    path.write_text(json.dumps(messages))
    return path


class TestParser:
    def test_no_command_prints_help(self, capsys):
        assert run_cli([]) == 0
        assert "usage: memdesk" in capsys.readouterr().out

    def test_source_choices(self):
        parser = create_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["observe", PHONE, "fact", "--source", "email"])

    def test_recall_query_optional(self):
        args = create_parser().parse_args(["recall", PHONE])
        assert args.query == ""
        assert args.json is False


class TestCommands:
    def test_init_db(self, config: MemoryConfig, capsys):
        assert run_cli(["init-db"], config) == 0
        assert config.db_path.exists()
        assert "Initialized database" in capsys.readouterr().out

    def test_init_db_rejects_supabase(self, capsys):
        config = MemoryConfig(
            backend="supabase", supabase_url="https://x.supabase.co", supabase_key="k"
        )
        assert run_cli(["init-db"], config) == 1

    def test_schema(self, config: MemoryConfig, capsys):
        assert run_cli(["schema"], config) == 0
        assert "CREATE TABLE IF NOT EXISTS customer_observations" in capsys.readouterr().out

    def test_profile_and_lookup(self, config: MemoryConfig, capsys):
        assert run_cli(["lookup", PHONE], config) == 1
        assert "not found" in capsys.readouterr().out

        assert run_cli(["profile", PHONE, "--name", "Ana"], config) == 0
        assert capsys.readouterr().out.strip() == PHONE

        assert run_cli(["lookup", PHONE], config) == 0
        assert capsys.readouterr().out.strip() == PHONE

    def test_observe_and_recall(self, config: MemoryConfig, capsys):
        run_cli(["profile", PHONE], config)
        assert run_cli(["observe", PHONE, "Prefers text messages", "-s", "sms"], config) == 0
        capsys.readouterr()

        assert run_cli(["recall", PHONE], config) == 0
        out = capsys.readouterr().out
        assert out.startswith("Customer History:")
        assert "- Prefers text messages (" in out

    def test_observe_unknown_profile_fails(self, config: MemoryConfig, capsys):
        assert run_cli(["observe", PHONE, "Orphan", "-s", "sms"], config) == 1
        assert "not stored" in capsys.readouterr().out

    def test_recall_empty(self, config: MemoryConfig, capsys):
        run_cli(["profile", PHONE], config)
        capsys.readouterr()

        assert run_cli(["recall", PHONE, "rates"], config) == 0
        assert "No memories" in capsys.readouterr().out

    def test_recall_json(self, config: MemoryConfig, capsys):
        run_cli(["profile", PHONE], config)
        run_cli(["observe", PHONE, "Customer inquired about interest rates", "-s", "voice"], config)
        capsys.readouterr()

        assert run_cli(["recall", PHONE, "rates", "--json"], config) == 0
        data = json.loads(capsys.readouterr().out)

        assert data["status"] == "ok"
        assert data["usedFallback"] is False
        assert data["observations"][0]["content"] == "Customer inquired about interest rates"
        assert data["observations"][0]["source"] == "voice"
        assert "occurredAt" in data["observations"][0]
        assert data["summaries"] == []

    def test_extract(self, config: MemoryConfig, tmp_path: Path, capsys):
        run_cli(["profile", PHONE], config)
        transcript = write_transcript(
            tmp_path,
            [
                {"role": "user", "content": "I need pre-approval and my budget is $350,000"},
                {"role": "assistant", "content": "Sure, let's look at documents."},
            ],
        )
        capsys.readouterr()

        assert run_cli(["extract", PHONE, str(transcript), "-s", "call"], config) == 0
        out = capsys.readouterr().out
        assert "Total: 2 fact(s)" in out

        run_cli(["recall", PHONE, "--json"], config)
        data = json.loads(capsys.readouterr().out)
        assert len(data["observations"]) == 2
        assert {o["source"] for o in data["observations"]} == {"voice"}

    def test_extract_bad_transcript(self, config: MemoryConfig, tmp_path: Path, capsys):
        path = tmp_path / "bad.json"
        path.write_text('{"role": "user"}')

        assert run_cli(["extract", PHONE, str(path), "-s", "sms"], config) == 1
        assert "cannot read transcript" in capsys.readouterr().out

    def test_extract_missing_file(self, config: MemoryConfig, tmp_path: Path, capsys):
        assert run_cli(["extract", PHONE, str(tmp_path / "nope.json"), "-s", "sms"], config) == 1

    def test_events_written_to_log_dir(self, config: MemoryConfig):
        run_cli(["profile", PHONE], config)
        assert (config.log_dir / "events.jsonl").exists()

    def test_invalid_env_config(self, monkeypatch, capsys):
        monkeypatch.setenv("MEMDESK_BACKEND", "mysql")
        assert run_cli(["lookup", PHONE]) == 1
        assert "invalid configuration" in capsys.readouterr().out

    def test_commands_write_to_global_event_log(self, config: MemoryConfig):
        run_cli(["profile", PHONE], config)

        event_log = get_logger()
        assert event_log.log_dir == config.log_dir
        entries = [json.loads(line) for line in event_log.log_path.read_text().splitlines()]
        assert entries[-1]["event"] == "profile_created"

    def test_unwritable_db_path_reports_error(self, tmp_path: Path, capsys):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        config = MemoryConfig(db_path=blocker / "memory.db", log_dir=tmp_path / "logs")

        assert run_cli(["lookup", PHONE], config) == 1
        assert "Error: Cannot initialize" in capsys.readouterr().out

        assert run_cli(["init-db"], config) == 1
        assert "Error: Cannot initialize" in capsys.readouterr().out
