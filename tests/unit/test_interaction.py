"""Tests for prompters."""

from unittest.mock import patch

import click
import pytest

from taskpilot.interaction import ConsolePrompter, ScriptedPrompter


class TestScriptedPrompter:

    @pytest.mark.asyncio
    async def test_answers_in_order(self):
        prompter = ScriptedPrompter([True, "Beta", "value"])

        assert await prompter.confirm("Go?") is True
        assert await prompter.select("Pick", ["Alpha", "Beta"]) == 1
        assert await prompter.ask("Label") == "value"
        assert prompter.asked == ["Go?", "Pick", "Label"]

    @pytest.mark.asyncio
    async def test_none_aborts(self):
        prompter = ScriptedPrompter([None, None])

        assert await prompter.confirm("Go?") is None
        assert await prompter.ask("Label") is None

    @pytest.mark.asyncio
    async def test_default_confirm(self):
        prompter = ScriptedPrompter(default_confirm=True)

        assert await prompter.confirm("Go?") is True
        assert await prompter.confirm("Again?") is True

    @pytest.mark.asyncio
    async def test_runs_out_of_answers(self):
        with pytest.raises(LookupError, match="Label"):
            await ScriptedPrompter().ask("Label")


class TestConsolePrompter:

    @pytest.mark.asyncio
    async def test_abort_maps_to_none(self):
        with patch("taskpilot.interaction.click.prompt", side_effect=click.Abort()):
            assert await ConsolePrompter().ask("Label") is None

    @pytest.mark.asyncio
    async def test_select_is_zero_based(self):
        with patch("taskpilot.interaction.click.prompt", return_value=2):
            assert await ConsolePrompter().select("Pick", ["a", "b"]) == 1

    @pytest.mark.asyncio
    async def test_ask_offers_default(self):
        with patch("taskpilot.interaction.click.prompt", return_value="x") as prompt:
            await ConsolePrompter().ask("Label", default="old")

        prompt.assert_called_once_with("Label", default="old", show_default=True)
