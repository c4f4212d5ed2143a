"""Tests for the error taxonomy."""

import pytest
from proctree.errors import (
    BuildError,
    ChildBuildError,
    ChildRunError,
    DuplicateCompletionError,
    ErrorTree,
    FatalMediatorError,
    InvalidAddressError,
    ProcTreeError,
    ProgressError,
    RunPhaseError,
)


class TestErrorTree:
    def test_defaults(self):
        error = ErrorTree()

        assert error.description is None
        assert error.messages == []
        assert error.children == []

    def test_own_failure_summary(self):
        error = RunPhaseError("Install", ["no network", "retry later"], [])

        assert str(error) == "Install: no network; retry later"

    def test_child_failure_summary(self):
        error = ChildRunError(None, [], [RunPhaseError("A", ["x"], []), RunPhaseError("B", ["y"], [])])

        assert str(error) == "task: 2 failed child task(s)"

    def test_to_dict(self):
        error = ChildBuildError("Root", [], [BuildError("B", ["X"], [])])

        assert error.to_dict() == {
            "description": "Root",
            "messages": [],
            "children": [{"description": "B", "messages": ["X"], "children": []}],
        }

    def test_walk_is_depth_first(self):
        deep = RunPhaseError("C", ["deep"], [])
        error = ChildRunError(
            "Root",
            [],
            [ChildRunError("A", [], [deep]), RunPhaseError("B", ["b"], [])],
        )

        assert [e.description for e in error.walk()] == ["Root", "A", "C", "B"]

    def test_messages_are_copied(self):
        messages = ["x"]
        error = BuildError("A", messages, [])

        messages.append("y")

        assert error.messages == ["x"]

    @pytest.mark.parametrize("cls", [BuildError, ChildBuildError, RunPhaseError, ChildRunError])
    def test_subclasses_are_error_trees(self, cls):
        assert issubclass(cls, ErrorTree)
        assert issubclass(cls, ProcTreeError)


class TestOtherErrors:
    def test_fatal_keeps_original_value(self):
        payload = {"reason": "gone"}

        error = FatalMediatorError(payload)

        assert error.error is payload
        assert str(error) == "{'reason': 'gone'}"

    def test_progress_errors(self):
        assert issubclass(DuplicateCompletionError, ProgressError)
        assert issubclass(InvalidAddressError, ProgressError)
        assert issubclass(InvalidAddressError, LookupError)

    def test_fatal_is_not_an_error_tree(self):
        assert not issubclass(FatalMediatorError, ErrorTree)
