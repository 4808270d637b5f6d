"""Tests for the taskpilot command line."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
import yaml
from click.testing import CliRunner

from taskpilot.cli import cli
from taskpilot.core.config import clear_config_cache

BUILD_SKILL = """### Name
Build Project

### Description
Build a product variant from its repository.

### Steps
- Enter the repository
- Compile

### Execution
- cd {product.VARIANT.path}
- make all
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    skills_dir = tmp_path / "skills"
    skills_dir.mkdir()
    (skills_dir / "build-project.md").write_text(BUILD_SKILL)
    path = tmp_path / "taskpilotrc"
    path.write_text(yaml.safe_dump({"skills_dir": str(skills_dir)}))
    clear_config_cache()
    yield path
    clear_config_cache()


def _tool_response(name, arguments):
    call = SimpleNamespace(function=SimpleNamespace(name=name, arguments=json.dumps(arguments)))
    message = SimpleNamespace(tool_calls=[call], content=None)
    return SimpleNamespace(choices=[SimpleNamespace(finish_reason="tool_calls", message=message)])


class TestConfigCommands:

    def test_set_then_get(self, runner, config_file):
        result = runner.invoke(cli, ["-c", str(config_file), "config", "set", "env.debug_mode", "true"])
        assert result.exit_code == 0

        result = runner.invoke(cli, ["-c", str(config_file), "config", "get", "env.debug_mode"])

        assert result.exit_code == 0
        assert result.output.strip() == "true"
        assert yaml.safe_load(config_file.read_text())["env"] == {"debug_mode": True}

    def test_get_missing_key(self, runner, config_file):
        result = runner.invoke(cli, ["-c", str(config_file), "config", "get", "nope.nothing"])

        assert result.exit_code == 1


class TestSkillsCommands:

    def test_list(self, runner, config_file):
        result = runner.invoke(cli, ["-c", str(config_file), "skills", "list"])

        assert result.exit_code == 0
        assert "Build Project" in result.output

    def test_show_expands_commands(self, runner, config_file):
        result = runner.invoke(cli, ["-c", str(config_file), "skills", "show", "Build Project"])

        assert result.exit_code == 0
        assert "cd {product.VARIANT.path}" in result.output
        assert "product.VARIANT.path" in result.output

    def test_show_unknown(self, runner, config_file):
        result = runner.invoke(cli, ["-c", str(config_file), "skills", "show", "ghost"])

        assert result.exit_code == 1


class TestRunCommand:

    def test_answer_with_yes(self, runner, config_file):
        responses = {
            "schedule": _tool_response("schedule", {
                "message": "Answering",
                "tasks": [{"action": "What is taskpilot?", "type": "answer"}],
            }),
            "answer": _tool_response("answer", {
                "question": "What is taskpilot?",
                "answer": "A task runner.",
            }),
        }

        async def fake_completion(**kwargs):
            return responses[kwargs["tool_choice"]["function"]["name"]]

        with patch("taskpilot.llm.litellm_service.litellm.acompletion", AsyncMock(side_effect=fake_completion)):
            result = runner.invoke(cli, ["-c", str(config_file), "run", "--yes", "what", "is", "taskpilot?"])

        assert result.exit_code == 0
        assert "A task runner." in result.output

    def test_dry_run_executes_nothing(self, runner, config_file):
        config_file.write_text(yaml.safe_dump({
            **yaml.safe_load(config_file.read_text()),
            "product": {"alpha": {"path": "/src/alpha"}},
        }))
        clear_config_cache()
        responses = {
            "schedule": _tool_response("schedule", {
                "message": "Building",
                "tasks": [{"action": "Build alpha", "type": "execute",
                           "params": {"skill": "Build Project", "variant": "alpha"}}],
            }),
        }

        async def fake_completion(**kwargs):
            return responses[kwargs["tool_choice"]["function"]["name"]]

        with patch("taskpilot.llm.litellm_service.litellm.acompletion", AsyncMock(side_effect=fake_completion)), \
                patch("taskpilot.execution.executor.ShellExecutor.execute") as shell:
            result = runner.invoke(cli, ["-c", str(config_file), "run", "--yes", "--dry-run", "build", "alpha"])

        assert result.exit_code == 0
        assert "Dry run" in result.output
        assert "Enter the repository" in result.output
        shell.assert_not_called()

    def test_planning_failure_exits_1(self, runner, config_file):
        with patch(
            "taskpilot.llm.litellm_service.litellm.acompletion",
            AsyncMock(return_value=_tool_response("answer", {"question": "q", "answer": "a"})),
        ):
            result = runner.invoke(cli, ["-c", str(config_file), "run", "--yes", "hello"])

        assert result.exit_code == 1
