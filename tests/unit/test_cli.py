"""Tests for the command-line interface."""

from pathlib import Path
from unittest.mock import patch

import pytest

from duologue.agents.summarizer import SessionSummarizer
from duologue.config.models import AppConfig
from duologue.engine import build_scheduler
from duologue.main import main, parse_arguments, run_session
from duologue.state.store import InMemorySessionStore
from tests.helpers.fake_llm import ErrorFakeLLM, ScriptedFakeLLM, make_resolver


def fake_scheduler_builder(llm_a, llm_b):
    def _build(config):
        return build_scheduler(
            config,
            store=InMemorySessionStore(),
            backend_resolver=make_resolver(llm_a, llm_b),
            summarizer=SessionSummarizer(),
        )

    return _build


@pytest.fixture
def quick_config() -> AppConfig:
    return AppConfig.model_validate(
        {"engine": {"turnDelaySeconds": 0, "chunkDelaySeconds": 0}}
    )


class TestParseArguments:
    def test_run_command(self):
        args = parse_arguments(
            ["--debug", "run", "Remote work", "--max-turns", "3", "--format", "debate"]
        )
        assert args.command == "run"
        assert args.topic == "Remote work"
        assert args.max_turns == 3
        assert args.format == "debate"
        assert args.debug == "DEBUG"

    def test_serve_command(self):
        args = parse_arguments(["--config", "custom.yml", "serve", "--port", "9000"])
        assert args.command == "serve"
        assert args.port == 9000
        assert args.config == Path("custom.yml")

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])


class TestRunSession:
    """Test running a session in the terminal."""

    @pytest.mark.asyncio
    async def test_completes_and_exports(self, quick_config, tmp_path):
        args = parse_arguments(
            ["run", "Remote work", "--max-turns", "2", "--export", str(tmp_path / "out")]
        )
        builder = fake_scheduler_builder(
            ScriptedFakeLLM(responses=["Commutes waste hours."]),
            ScriptedFakeLLM(responses=["Offices spark chance meetings."]),
        )
        with patch("duologue.main.build_scheduler", builder):
            exit_code = await run_session(args, quick_config)

        assert exit_code == 0
        exports = list((tmp_path / "out").glob("brainstorm-*.md"))
        assert len(exports) == 1
        report = exports[0].read_text(encoding="utf-8")
        assert "Commutes waste hours." in report
        assert "Offices spark chance meetings." in report
        assert "## Summary" in report

    @pytest.mark.asyncio
    async def test_failed_session_exit_code(self, quick_config):
        args = parse_arguments(["run", "Remote work", "--max-turns", "2"])
        builder = fake_scheduler_builder(ErrorFakeLLM(), ScriptedFakeLLM())
        with patch("duologue.main.build_scheduler", builder):
            exit_code = await run_session(args, quick_config)

        assert exit_code == 1


class TestMain:
    def test_missing_api_keys(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("GROK_API_KEY", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            main(["run", "Remote work"])
        assert exc_info.value.code == 2

    def test_missing_explicit_config(self, mock_env_vars, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "nope.yml"), "run", "Remote work"])
        assert exc_info.value.code == 2
