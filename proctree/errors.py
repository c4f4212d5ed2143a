"""Exceptions raised while building, running and tracking task trees."""

from typing import Any, Optional


class ProcTreeError(Exception):
    """Base class for all proctree errors."""


class ErrorTree(ProcTreeError):
    """Structured failure report shaped like the failing part of a task tree.

    A node either failed itself (``messages`` holds its own message and
    ``children`` is empty) or some of its children failed (``messages`` is
    empty and ``children`` holds one tree per failed child, in child order).

    Attributes:
        description: Description of the node that failed, if it had one.
        messages: Messages describing the node's own failure.
        children: Error trees of failed children.
    """

    def __init__(
        self,
        description: Optional[str] = None,
        messages: Optional[list[str]] = None,
        children: Optional[list["ErrorTree"]] = None,
    ):
        self.description = description
        self.messages = list(messages or [])
        self.children = list(children or [])
        super().__init__(self._summary())

    def _summary(self) -> str:
        label = self.description or "task"
        if self.messages:
            return f"{label}: {'; '.join(self.messages)}"
        return f"{label}: {len(self.children)} failed child task(s)"

    def to_dict(self) -> dict[str, Any]:
        """Convert the error tree to nested plain dictionaries."""
        return {
            "description": self.description,
            "messages": list(self.messages),
            "children": [child.to_dict() for child in self.children],
        }

    def walk(self):
        """Iterate over this error and all descendant errors, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


class BuildError(ErrorTree):
    """A node's own setup callback failed."""


class ChildBuildError(ErrorTree):
    """One or more children failed to build."""


class RunPhaseError(ErrorTree):
    """A node's run_before, run or run_after hook failed."""


class ChildRunError(ErrorTree):
    """One or more children failed to run."""


class FatalMediatorError(ProcTreeError):
    """The message pipeline between runner and consumer broke.

    Attributes:
        error: The value carried by the failure, which need not be an exception.
    """

    def __init__(self, error: Any):
        self.error = error
        super().__init__(str(error))


class ProgressError(ProcTreeError):
    """Base class for progress tree errors."""


class DuplicateCompletionError(ProgressError):
    """A completion was applied twice at the same address."""


class InvalidAddressError(ProgressError, LookupError):
    """An address does not name a node of the progress tree."""
