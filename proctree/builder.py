"""Builds task trees from nested setup callbacks."""

from typing import Any, Awaitable, Callable, Optional, Union

import anyio

from .config import ProcTreeConfig
from .core import Address, HookFunction, LogChannel, TaskNode, noop, call_hook
from .errors import BuildError, ChildBuildError, ErrorTree
from .hooks import HookDispatcher
from .logging_integration import ProcTreeLogger

# Type alias for setup callbacks
SetupFunction = Callable[["Payload"], Union[Any, Awaitable[Any]]]

_UNSET = object()


class Payload:
    """Build-time handle passed to a node's setup callback.

    The setup callback describes its node by filling in the payload:

        >>> async def setup(task):
        ...     task.description = "Check prerequisites"
        ...     task.run = check_prerequisites
        ...     task.add(setup_python)
        ...     task.add(setup_database)

    Attributes:
        address: Address the node will have in the built tree.
        run_before: Hook run first when the node runs.
        run: Hook run after run_before, before the children.
        run_after: Hook run once every child succeeded.
    """

    def __init__(
        self,
        address: Address,
        spawn_child: Callable[[SetupFunction], Address],
        channel: LogChannel,
    ):
        self.address = address
        self.run_before: HookFunction = noop
        self.run: HookFunction = noop
        self.run_after: HookFunction = noop
        self._description: Any = _UNSET
        self._spawn_child = spawn_child
        self._channel = channel
        self._sealed = False

    @property
    def description(self) -> Optional[str]:
        """Human-readable description of the node. Can only be set once."""
        return None if self._description is _UNSET else self._description

    @description.setter
    def description(self, value: Optional[str]) -> None:
        if self._description is not _UNSET:
            raise ValueError(f"Description of node {self.address} is already set")
        self._description = value

    def add(self, setup: SetupFunction) -> Address:
        """Add a child and start building it right away.

        Args:
            setup: Setup callback for the child.

        Returns:
            The address assigned to the child.

        Raises:
            RuntimeError: If this node's own setup has already finished.
        """
        if self._sealed:
            raise RuntimeError(
                f"Cannot add children to node {self.address} after its setup finished"
            )
        return self._spawn_child(setup)

    def log(self, code: str, text: str = "") -> None:
        """Emit a message addressed to this node once the tree runs.

        Args:
            code: One of begin, done, info, warn, error.
            text: Message text.
        """
        self._channel.log(code, text)

    def seal(self) -> None:
        """Stop accepting children."""
        self._sealed = True


class TaskTreeBuilder:
    """Builds an immutable task tree from a root setup callback.

    Each node's setup callback runs once. Children added through
    ``Payload.add`` start building immediately and concurrently with their
    parent's remaining setup and with their siblings. A node only settles
    once its own setup and every child build has settled; failures are never
    fail-fast.

    Example:
        >>> builder = TaskTreeBuilder()
        >>> try:
        ...     root = await builder.build(setup)
        ... except ErrorTree as error:
        ...     print(error.to_dict())
    """

    def __init__(
        self,
        config: Optional[ProcTreeConfig] = None,
        hooks: Optional[HookDispatcher] = None,
    ):
        """Initialize the builder.

        Args:
            config: Configuration settings.
            hooks: HookDispatcher for build events.
        """
        self.config = config or ProcTreeConfig()
        self.hooks = hooks or HookDispatcher()

        if self.config.enable_logging:
            self.hooks.register(
                ProcTreeLogger(
                    logger_name=self.config.logger_name, level=self.config.log_level
                )
            )

    async def build(self, setup: SetupFunction, address: Address = ()) -> TaskNode:
        """Build the tree rooted at ``address``.

        Args:
            setup: The root setup callback.
            address: Address of the root of the subtree being built.

        Returns:
            The built node.

        Raises:
            BuildError: If the node's own setup failed.
            ChildBuildError: If the setup succeeded but some children failed.
        """
        node = await self._build_node(tuple(address), setup)
        self.hooks.emit("on_build_complete", node)
        return node

    async def _build_node(self, address: Address, setup: SetupFunction) -> TaskNode:
        channel = LogChannel(address)
        outcomes: list[Union[TaskNode, ErrorTree, None]] = []
        setup_error: Optional[Exception] = None

        async with anyio.create_task_group() as tg:

            def spawn_child(child_setup: SetupFunction) -> Address:
                index = len(outcomes)
                outcomes.append(None)
                child_address = address + (index,)
                tg.start_soon(self._build_child, child_address, child_setup, outcomes, index)
                self.hooks.emit("on_child_added", address, child_address)
                return child_address

            payload = Payload(address, spawn_child, channel)
            try:
                await call_hook(setup, payload)
            except Exception as exc:
                setup_error = exc
            finally:
                payload.seal()

        if setup_error is not None:
            # Children of a node whose own setup failed are not reported on
            error = BuildError(payload.description, [str(setup_error)], [])
            self.hooks.emit("on_build_failed", address, error)
            raise error from setup_error

        failures = [outcome for outcome in outcomes if isinstance(outcome, ErrorTree)]
        if failures:
            error = ChildBuildError(payload.description, [], failures)
            self.hooks.emit("on_build_failed", address, error)
            raise error

        return TaskNode(
            address=address,
            description=payload.description,
            children=tuple(outcomes),
            run_before=payload.run_before,
            run=payload.run,
            run_after=payload.run_after,
            channel=channel,
        )

    async def _build_child(
        self,
        address: Address,
        setup: SetupFunction,
        outcomes: list[Union[TaskNode, ErrorTree, None]],
        index: int,
    ) -> None:
        """Build one child and store its outcome in its slot."""
        try:
            outcomes[index] = await self._build_node(address, setup)
        except ErrorTree as error:
            outcomes[index] = error
