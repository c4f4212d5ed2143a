"""Async runner for built task trees."""

from typing import Optional

import anyio

from .config import ProcTreeConfig
from .core import HookFunction, MessageSink, TaskNode, call_hook
from .errors import ChildRunError, ErrorTree, RunPhaseError
from .hooks import HookDispatcher
from .logging_integration import ProcTreeLogger


class TaskTreeRunner:
    """Executes a built task tree.

    Every node emits "begin", runs ``run_before`` then ``run``, runs all of
    its children concurrently, and once every child succeeded runs
    ``run_after`` and emits "done". Children are never cancelled because a
    sibling failed: the parent waits for all of them and reports every
    failure in child order.

    Example:
        >>> runner = TaskTreeRunner()
        >>> messages = []
        >>> await runner.run(root, messages.append)
        >>>
        >>> # With hooks
        >>> hooks = HookDispatcher()
        >>> hooks.on("on_node_failed", lambda node, err: print(node.address))
        >>> runner = TaskTreeRunner(hooks=hooks)
    """

    def __init__(
        self,
        config: Optional[ProcTreeConfig] = None,
        hooks: Optional[HookDispatcher] = None,
    ):
        """Initialize the runner.

        Args:
            config: Configuration settings.
            hooks: HookDispatcher for run events.
        """
        self.config = config or ProcTreeConfig()
        self.hooks = hooks or HookDispatcher()

        if self.config.enable_logging:
            self.hooks.register(
                ProcTreeLogger(
                    logger_name=self.config.logger_name, level=self.config.log_level
                )
            )

    async def run(self, node: TaskNode, sink: MessageSink) -> None:
        """Run a tree, emitting its messages to ``sink``.

        Args:
            node: Root of the tree to run.
            sink: Receives every message, in emission order.

        Raises:
            RunPhaseError: If one of the root's own hooks failed.
            ChildRunError: If some of the root's children failed.
            RuntimeError: If the tree has already been run. Build it again
                to run it again.
        """
        if node.channel.bound:
            raise RuntimeError(f"Task tree at {node.address} has already been run")
        self.hooks.emit("on_tree_start", node)
        try:
            await self._run_node(node, sink)
        except ErrorTree as error:
            self.hooks.emit("on_tree_complete", node, error)
            raise
        self.hooks.emit("on_tree_complete", node, None)

    async def _run_node(self, node: TaskNode, sink: MessageSink) -> None:
        """Run a single node and its children.

        Args:
            node: The node to run.
            sink: Receives the node's messages.
        """
        node.channel.bind(sink)
        self._emit(node, "begin")
        self.hooks.emit("on_node_begin", node)

        await self._run_phase(node, node.run_before)
        await self._run_phase(node, node.run)

        failures = await self._run_children(node, sink)
        if failures:
            error = ChildRunError(node.description, [], failures)
            self.hooks.emit("on_node_failed", node, error)
            raise error

        await self._run_phase(node, node.run_after)

        self._emit(node, "done")
        self.hooks.emit("on_node_done", node)

    def _emit(self, node: TaskNode, code: str) -> None:
        """Emit a node's begin or done message, treating a broken sink as a node failure."""
        try:
            node.log(code, node.description or "")
        except Exception as exc:
            error = RunPhaseError(node.description, [f"Could not emit {code}: {exc}"], [])
            self.hooks.emit("on_node_failed", node, error)
            raise error from exc

    async def _run_phase(self, node: TaskNode, hook: HookFunction) -> None:
        """Run one of the node's hooks, converting failure into an error tree."""
        try:
            await call_hook(hook, node)
        except Exception as exc:
            error = RunPhaseError(node.description, [str(exc)], [])
            self.hooks.emit("on_node_failed", node, error)
            raise error from exc

    async def _run_children(self, node: TaskNode, sink: MessageSink) -> list[ErrorTree]:
        """Run all children concurrently and wait for every one of them.

        Args:
            node: The parent node.
            sink: Receives the children's messages.

        Returns:
            Error trees of the failed children, in child order.
        """
        outcomes: list[Optional[ErrorTree]] = [None] * len(node.children)

        async def run_child(index: int, child: TaskNode) -> None:
            try:
                await self._run_node(child, sink)
            except ErrorTree as error:
                outcomes[index] = error
            except Exception as exc:
                # Never raise into the task group
                error = RunPhaseError(child.description, [str(exc)], [])
                error.__cause__ = exc
                outcomes[index] = error

        async with anyio.create_task_group() as tg:
            for index, child in enumerate(node.children):
                tg.start_soon(run_child, index, child)

        return [outcome for outcome in outcomes if outcome is not None]
