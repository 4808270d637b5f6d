"""Tests for the Task model."""

import pytest
from pydantic import ValidationError

from taskpilot.core.task import Task, TaskType, flatten_tasks, has_define_task


def _leaf(action, type=TaskType.EXECUTE, **params):
    return Task(action=action, type=type, params=params)


class TestTask:

    def test_only_groups_have_subtasks(self):
        with pytest.raises(ValidationError):
            Task(action="bad", type=TaskType.EXECUTE, subtasks=[_leaf("child")])

    def test_enum_values_are_stored(self):
        assert _leaf("x").type == "execute"

    def test_variant_prefers_explicit_param(self):
        assert _leaf("x", skill="Build", target="Beta", variant="Alpha").variant == "alpha"

    def test_variant_falls_back_to_first_string_param(self):
        assert _leaf("x", skill="Build", count=3, target="Beta").variant == "beta"
        assert _leaf("x", skill="Build").variant is None

    def test_group_effective_type(self):
        uniform = Task(action="g", type=TaskType.GROUP, subtasks=[_leaf("a"), _leaf("b")])
        mixed = Task(action="g", type=TaskType.GROUP, subtasks=[_leaf("a"), _leaf("b", TaskType.ANSWER)])
        assert uniform.effective_type == "execute"
        assert mixed.effective_type == "group"

    def test_group_needs_subtasks(self):
        with pytest.raises(ValidationError, match="has no subtasks"):
            Task(action="Deploy everything", type=TaskType.GROUP)

    def test_flatten_preserves_order(self):
        tasks = [
            _leaf("one"),
            Task(action="g", type=TaskType.GROUP, subtasks=[
                _leaf("two"),
                Task(action="inner", type=TaskType.GROUP, subtasks=[_leaf("three")]),
            ]),
            _leaf("four"),
        ]

        assert [t.action for t in flatten_tasks(tasks)] == ["one", "two", "three", "four"]

    def test_has_define_task(self):
        assert has_define_task([_leaf("a"), _leaf("pick", TaskType.DEFINE)])
        assert not has_define_task([_leaf("a")])
