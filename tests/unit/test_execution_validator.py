"""Tests for ExecutionValidator: malformed skills and missing configuration."""

import pytest

from taskpilot.core.task import Task, TaskType
from taskpilot.errors import UnknownSkillError
from taskpilot.skills.library import SkillLibrary
from taskpilot.skills.models import ConfigRequirement
from taskpilot.skills.parser import parse_skill_markdown
from taskpilot.skills.validator import ExecutionValidator

BUILD = """### Name
Build

### Description
Build a product variant from its repository.

### Config
product:
  VARIANT:
    path: string
    release: boolean

### Steps
- Enter repository
- Compile

### Execution
- cd {product.VARIANT.path}
- make all RELEASE={product.VARIANT.release}
"""

DEPLOY = """### Name
Deploy

### Description
Build, then deploy to the configured environment.

### Steps
- Build
- Upload

### Execution
- [ Build ]
- deploy --env {env.name}
"""

BROKEN = """### Name
Broken

### Description
Declares three steps but only two commands.

### Steps
- One
- Two
- Three

### Execution
- echo one
- echo two
"""


def _library():
    return SkillLibrary([
        parse_skill_markdown("build", BUILD),
        parse_skill_markdown("deploy", DEPLOY),
        parse_skill_markdown("broken", BROKEN),
    ])


def _task(skill=None, action="do it", **params):
    if skill:
        params["skill"] = skill
    return Task(action=action, type=TaskType.EXECUTE, params=params)


def _validator(config=None):
    return ExecutionValidator(_library(), lambda: config or {})


class TestMissingConfig:

    def test_variant_paths_resolved_with_task_variant(self):
        result = _validator().validate([_task("Build", variant="Alpha")])

        assert result.missing_config == [
            ConfigRequirement(path="product.alpha.path", type="string"),
            ConfigRequirement(path="product.alpha.release", type="boolean"),
        ]

    def test_configured_paths_are_not_reported(self):
        config = {"product": {"alpha": {"path": "/src/alpha", "release": False}}}

        result = _validator(config).validate([_task("Build", variant="alpha")])

        assert result.missing_config == []
        assert result.is_valid

    def test_variant_placeholders_skipped_without_variant(self):
        result = _validator().validate([_task("Build")])

        assert result.missing_config == []

    def test_referenced_skill_paths_and_types_included(self):
        result = _validator().validate([_task("Deploy", variant="beta")])

        assert [req.path for req in result.missing_config] == [
            "product.beta.path",
            "product.beta.release",
            "env.name",
        ]
        assert result.missing_config[1].type == "boolean"

    def test_no_duplicates_across_tasks(self):
        tasks = [
            _task("Build", variant="alpha"),
            _task("Deploy", variant="alpha"),
            Task(action="group", type=TaskType.GROUP, subtasks=[_task("Build", variant="alpha")]),
        ]

        result = _validator().validate(tasks)
        paths = [req.path for req in result.missing_config]

        assert len(paths) == len(set(paths))
        assert paths == ["product.alpha.path", "product.alpha.release", "env.name"]

    def test_placeholders_in_plain_task_action(self):
        result = _validator().validate([_task(action="ssh {server.host}")])

        assert result.missing_config == [ConfigRequirement(path="server.host", type="string")]

    def test_unknown_skill_on_task_is_ignored(self):
        result = _validator().validate([_task("Nope")])

        assert result.is_valid


class TestInvalidSkills:

    def test_step_mismatch_reported(self):
        result = _validator().validate([_task("Broken"), _task("Broken")])

        assert len(result.validation_errors) == 1
        error = result.validation_errors[0]
        assert error.skill == "Broken"
        assert error.issues == ["The skill has 3 steps but 2 execution lines"]
        assert result.missing_config == []

    def test_unknown_reference_raises(self):
        library = SkillLibrary([parse_skill_markdown("deploy", DEPLOY.replace("[ Build ]", "[ Ghost ]"))])
        validator = ExecutionValidator(library, dict)

        with pytest.raises(UnknownSkillError):
            validator.validate([_task("Deploy")])
