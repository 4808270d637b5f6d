"""Tests for skill reference expansion and the skill library."""

import pytest

from taskpilot.core.task import Task, TaskType
from taskpilot.errors import CircularSkillReferenceError, SkillCompositionError, UnknownSkillError
from taskpilot.skills.expander import (
    collect_config_paths,
    expand_skill,
    expand_skill_references,
    expand_task,
    has_no_cycles,
    parse_skill_reference,
)
from taskpilot.skills.library import SkillLibrary
from taskpilot.skills.models import SkillDefinition


def _make_skill(name, execution, **overrides):
    defaults = {
        "key": name.lower().replace(" ", "-"),
        "name": name,
        "description": f"{name} skill used in expansion tests",
        "steps": [f"step {i}" for i in range(len(execution))],
        "execution": execution,
    }
    defaults.update(overrides)
    return SkillDefinition(**defaults)


def _library(*skills):
    return SkillLibrary(skills)


class TestParseReference:

    def test_reference_needs_inner_spaces(self):
        assert parse_skill_reference("[ Build ]") == "Build"
        assert parse_skill_reference("[Build]") is None
        assert parse_skill_reference("echo [ Build ]") is None


class TestExpandSkillReferences:

    def test_plain_commands_unchanged(self):
        library = _library()

        assert expand_skill_references(["ls", "pwd"], library) == ["ls", "pwd"]

    def test_reference_expands_in_place(self):
        library = _library(_make_skill("Setup", ["npm ci", "npm run build"]))

        result = expand_skill_references(["cd app", "[ Setup ]", "npm test"], library)

        assert result == ["cd app", "npm ci", "npm run build", "npm test"]

    def test_nested_references(self):
        library = _library(
            _make_skill("Inner", ["echo inner"]),
            _make_skill("Outer", ["echo outer", "[ Inner ]"]),
        )

        assert expand_skill_references(["[ Outer ]"], library) == ["echo outer", "echo inner"]

    def test_expansion_is_idempotent(self):
        library = _library(
            _make_skill("Inner", ["echo inner"]),
            _make_skill("Outer", ["[ Inner ]", "echo outer"]),
        )

        once = expand_skill_references(["[ Outer ]", "ls"], library)
        twice = expand_skill_references(once, library)

        assert once == twice

    def test_sibling_references_expand_twice(self):
        library = _library(
            _make_skill("Shared", ["echo shared"]),
            _make_skill("First", ["[ Shared ]"]),
            _make_skill("Second", ["[ Shared ]"]),
        )

        result = expand_skill_references(["[ First ]", "[ Second ]"], library)

        assert result == ["echo shared", "echo shared"]

    def test_self_reference_is_circular(self):
        library = _library(_make_skill("Loop", ["[ Loop ]"]))

        with pytest.raises(CircularSkillReferenceError) as exc_info:
            expand_skill(library.lookup("Loop"), library)

        assert exc_info.value.path == ["Loop", "Loop"]

    def test_two_skill_cycle_terminates_with_error(self):
        library = _library(
            _make_skill("A", ["echo a", "[ B ]"]),
            _make_skill("B", ["[ A ]"]),
        )

        with pytest.raises(CircularSkillReferenceError):
            expand_skill_references(["[ A ]"], library)
        assert not has_no_cycles(["[ A ]"], library)

    def test_unknown_reference(self):
        with pytest.raises(UnknownSkillError) as exc_info:
            expand_skill_references(["[ Missing ]"], _library())

        assert "Missing" in str(exc_info.value)


class TestExpandSkill:

    def test_collects_config_paths_once(self):
        library = _library(
            _make_skill("Deploy", ["cd {app.VARIANT.dir}", "deploy {env.name}", "notify {env.name}"])
        )

        expanded = expand_skill(library.lookup("Deploy"), library)

        assert expanded.config == ["app.VARIANT.dir", "env.name"]
        assert collect_config_paths(expanded.commands) == expanded.config

    def test_invalid_skill_cannot_be_expanded(self):
        skill = _make_skill("Broken", [], is_valid=False, validation_error="missing Execution")

        with pytest.raises(SkillCompositionError):
            expand_skill(skill, _library(skill))

    def test_expand_task_fills_config(self):
        library = _library(_make_skill("Deploy", ["deploy {env.name}"]))
        task = Task(action="Deploy", type=TaskType.EXECUTE, params={"skill": "Deploy"}, config=["extra.key"])

        commands, updated = expand_task(task, library)

        assert commands == ["deploy {env.name}"]
        assert updated.config == ["extra.key", "env.name"]

    def test_expand_task_without_skill(self):
        task = Task(action="List files", type=TaskType.EXECUTE)

        assert expand_task(task, _library()) == ([], task)


class TestSkillLibrary:

    def test_lookup_by_name_key_and_alias(self):
        skill = _make_skill("Deploy App", ["echo deploy"], aliases=["ship"])
        library = _library(skill)

        assert library.lookup("Deploy App") is skill
        assert library.lookup("deploy-app") is skill
        assert library.lookup("SHIP") is skill
        assert library.lookup("unknown") is None
        assert "Deploy App" in library

    def test_from_directory(self, tmp_path):
        (tmp_path / "greet.md").write_text(
            "### Description\nSays hello to the user politely.\n\n### Steps\n- Greet\n\n### Execution\n- echo hi\n"
        )
        (tmp_path / "notes.txt").write_text("ignored")

        library = SkillLibrary.from_directory(tmp_path)

        assert len(library) == 1
        assert library.lookup("Greet").execution == ["echo hi"]

    def test_missing_directory_is_empty(self, tmp_path):
        assert len(SkillLibrary.from_directory(tmp_path / "nope")) == 0

    def test_prompt_marks_incomplete_skills(self):
        library = _library(
            _make_skill("Tiny", ["echo"], description="short", is_incomplete=True,
                        source="### Name\nTiny\n\n### Description\nshort\n"),
        )

        prompt = library.format_for_prompt()

        assert "Tiny (INCOMPLETE)" in prompt

    def test_empty_library_has_no_prompt_section(self):
        assert _library().format_for_prompt() == ""
