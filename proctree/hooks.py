"""Hook system for build and run events."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .core import Address, TaskNode
    from .errors import ErrorTree

_log = logging.getLogger("proctree.hooks")


class TaskHooks(Protocol):
    """Observer interface for build and run events.

    Implement any subset of these methods and pass the object to
    ``HookDispatcher.register``.

    Example:
        >>> class MyHooks:
        ...     def on_node_done(self, node: TaskNode) -> None:
        ...         print(f"Finished {node.description}")
        ...
        >>> hooks = HookDispatcher()
        >>> hooks.register(MyHooks())
    """

    def on_child_added(self, parent: "Address", child: "Address") -> None:
        """Called when a setup callback adds a child.

        Args:
            parent: Address of the node whose setup called add.
            child: Address assigned to the new child.
        """
        ...

    def on_build_failed(self, address: "Address", error: "ErrorTree") -> None:
        """Called when a node fails to build, before its parent aggregates."""
        ...

    def on_build_complete(self, node: "TaskNode") -> None:
        """Called when the root node and all of its descendants are built."""
        ...

    def on_tree_start(self, node: "TaskNode") -> None:
        """Called when the runner starts the root node."""
        ...

    def on_node_begin(self, node: "TaskNode") -> None:
        """Called right after a node emits its begin message."""
        ...

    def on_node_done(self, node: "TaskNode") -> None:
        """Called right after a node emits its done message."""
        ...

    def on_node_failed(self, node: "TaskNode", error: "ErrorTree") -> None:
        """Called when a node fails, either in its own hooks or through children."""
        ...

    def on_tree_complete(self, node: "TaskNode", error: Optional["ErrorTree"]) -> None:
        """Called when the root settles.

        Args:
            node: The root node.
            error: The root's error tree, or None on success.
        """
        ...


# A single event callback; receives the event's arguments
HookCallback = Callable[..., None]


@dataclass
class HookDispatcher:
    """Fans build and run events out to observers.

    Observers are either objects with ``on_*`` methods (see TaskHooks),
    added with ``register``, or plain callables bound to one event name with
    ``on``. An observer that raises is logged at DEBUG and skipped; building
    and running carry on regardless.

    Example:
        >>> hooks = HookDispatcher()
        >>> hooks.on("on_node_failed", lambda node, err: print(node.address, err))
        >>> runner = TaskTreeRunner(hooks=hooks)
    """

    _handlers: list[Any] = field(default_factory=list)
    _callbacks: dict[str, list[HookCallback]] = field(default_factory=dict)

    def register(self, handler: Any) -> "HookDispatcher":
        """Add an object whose ``on_*`` methods observe events. Returns self."""
        self._handlers.append(handler)
        return self

    def unregister(self, handler: Any) -> "HookDispatcher":
        """Remove a registered object, if present. Returns self."""
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def on(self, event: str, callback: HookCallback) -> "HookDispatcher":
        """Bind ``callback`` to ``event``, e.g. "on_node_done". Returns self."""
        self._callbacks.setdefault(event, []).append(callback)
        return self

    def off(self, event: str, callback: Optional[HookCallback] = None) -> "HookDispatcher":
        """Unbind ``callback`` from ``event``, or every callback if None. Returns self."""
        bound = self._callbacks.get(event)
        if not bound:
            return self
        if callback is None:
            bound.clear()
        elif callback in bound:
            bound.remove(callback)
        return self

    def _targets(self, event: str) -> Iterator[Callable[..., Any]]:
        for handler in self._handlers:
            method = getattr(handler, event, None)
            if callable(method):
                yield method
        yield from self._callbacks.get(event, ())

    def emit(self, event: str, *args: Any, **kwargs: Any) -> None:
        """Call every observer of ``event``: registered objects first, then callbacks."""
        for target in list(self._targets(event)):
            try:
                target(*args, **kwargs)
            except Exception:
                _log.debug("Observer %r of %s raised", target, event, exc_info=True)

    def has_handlers(self, event: str) -> bool:
        """Whether anything observes ``event``."""
        return next(self._targets(event), None) is not None

    def clear(self) -> "HookDispatcher":
        """Drop every observer. Returns self."""
        self._handlers.clear()
        self._callbacks.clear()
        return self
