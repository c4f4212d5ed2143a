"""Core data structures for ProcTree."""

import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, Optional, Union

# Position of a node within each ancestor's children, root = ()
Address = tuple[int, ...]

# Hooks take no argument or the TaskNode they belong to
HookFunction = Callable[..., Union[Any, Awaitable[Any]]]

# Receives every message emitted during a run
MessageSink = Callable[["Message"], None]

MESSAGE_CODES = frozenset({"valid", "begin", "done", "info", "warn", "error", "fatal"})

# Codes a node may emit through its own log
NODE_CODES = frozenset({"begin", "done", "info", "warn", "error"})

_log = logging.getLogger("proctree.core")


def now_millis() -> int:
    """Current wall clock time in milliseconds."""
    return int(time.time() * 1000)


def noop() -> None:
    return None


async def call_hook(hook: HookFunction, *args: Any) -> Any:
    """Call a sync or async callable and wait for its result.

    A synchronous raise and a raise from the awaited result surface the
    same way. The callable receives ``args`` only if its signature accepts
    them, so zero-argument hooks stay valid.
    """
    if args and not _accepts_arguments(hook, len(args)):
        args = ()
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _accepts_arguments(func: Callable[..., Any], count: int) -> bool:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    try:
        signature.bind(*([None] * count))
    except TypeError:
        return False
    return True


@dataclass(frozen=True)
class ShapeDescriptor:
    """Static view of a task tree without its executable hooks.

    Attributes:
        description: Optional node description.
        children: Child shapes in child order.
    """

    description: Optional[str] = None
    children: tuple["ShapeDescriptor", ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to the compact wire form ``{"d": ..., "c": [...]}``."""
        result: dict[str, Any] = {}
        if self.description:
            result["d"] = self.description
        result["c"] = [child.to_dict() for child in self.children]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShapeDescriptor":
        """Parse the compact wire form. Missing keys mean no description and no children."""
        return cls(
            description=data.get("d"),
            children=tuple(cls.from_dict(child) for child in data.get("c", [])),
        )

    def count(self) -> int:
        """Number of nodes in this shape, itself included."""
        return 1 + sum(child.count() for child in self.children)


@dataclass(frozen=True)
class Message:
    """A single entry in the run's message stream.

    Attributes:
        timestamp: Emission time in milliseconds.
        code: One of MESSAGE_CODES.
        address: Address of the emitting node (empty for root, valid and fatal).
        text: Free text carried by node messages.
        shape: Tree shape carried by "valid" messages.
        error: Error value carried by "fatal" messages.
    """

    timestamp: int
    code: str
    address: Address = ()
    text: str = ""
    shape: Optional[ShapeDescriptor] = None
    error: Any = None

    def __post_init__(self) -> None:
        if self.code not in MESSAGE_CODES:
            raise ValueError(f"Unknown message code: {self.code!r}")

    @classmethod
    def valid(cls, shape: ShapeDescriptor, timestamp: Optional[int] = None) -> "Message":
        """Create the message announcing the tree shape."""
        return cls(now_millis() if timestamp is None else timestamp, "valid", shape=shape)

    @classmethod
    def fatal(cls, error: Any, timestamp: Optional[int] = None) -> "Message":
        """Create a message reporting that the run itself broke."""
        return cls(now_millis() if timestamp is None else timestamp, "fatal", error=error)

    @classmethod
    def for_node(cls, code: str, address: Address, text: str = "") -> "Message":
        """Create a message addressed to a node, stamped with the current time."""
        return cls(now_millis(), code, tuple(address), text or "")

    @property
    def is_root(self) -> bool:
        """Whether the message is addressed to the root node."""
        return self.address == ()

    def to_wire(self) -> list[Any]:
        """Convert to the positional wire form.

        Returns:
            ``[timestamp, code, *address, text]`` for node messages,
            ``[timestamp, "valid", shape]`` and ``[timestamp, "fatal", error]``
            otherwise.
        """
        if self.code == "valid":
            return [self.timestamp, self.code, self.shape.to_dict() if self.shape else {}]
        if self.code == "fatal":
            return [self.timestamp, self.code, self.error]
        return [self.timestamp, self.code, *self.address, self.text]

    @classmethod
    def from_wire(cls, wire: list[Any]) -> "Message":
        """Parse the positional wire form produced by to_wire.

        Args:
            wire: List starting with timestamp and code.

        Returns:
            The parsed message.

        Raises:
            ValueError: If the list is too short or the code is unknown.
        """
        if len(wire) < 2:
            raise ValueError(f"Message needs a timestamp and a code: {wire!r}")
        timestamp, code, *rest = wire
        if code == "valid":
            return cls(timestamp, code, shape=ShapeDescriptor.from_dict(rest[0] if rest else {}))
        if code == "fatal":
            return cls(timestamp, code, error=rest[0] if rest else None)
        text = ""
        if rest and isinstance(rest[-1], str):
            text = rest.pop()
        return cls(timestamp, code, tuple(int(index) for index in rest), text)


class LogChannel:
    """Per-node emitter that is bound to the run's sink when the node starts.

    A built tree is run once; binding a channel a second time raises.
    """

    def __init__(self, address: Address):
        self.address = address
        self._sink: Optional[MessageSink] = None

    @property
    def bound(self) -> bool:
        return self._sink is not None

    def bind(self, sink: MessageSink) -> None:
        """Attach the run's sink. A channel belongs to a single run."""
        if self._sink is not None:
            raise RuntimeError(f"Node {self.address} already belongs to a run")
        self._sink = sink

    def log(self, code: str, text: str = "") -> None:
        if code not in NODE_CODES:
            raise ValueError(f"Nodes cannot log messages with code {code!r}")
        if self._sink is None:
            _log.debug("Dropped %s message from %s before run: %s", code, self.address, text)
            return
        self._sink(Message.for_node(code, self.address, text))


@dataclass(frozen=True)
class TaskNode:
    """A built, immutable node of the task tree.

    Attributes:
        address: Position of the node in the tree.
        description: Human-readable description, if the setup gave one.
        children: Child nodes in the order they were added.
        run_before: Hook run first.
        run: Hook run after run_before, before the children.
        run_after: Hook run once every child succeeded.
    """

    address: Address
    description: Optional[str] = None
    children: tuple["TaskNode", ...] = ()
    run_before: HookFunction = noop
    run: HookFunction = noop
    run_after: HookFunction = noop
    channel: LogChannel = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.channel is None:
            object.__setattr__(self, "channel", LogChannel(self.address))

    def log(self, code: str, text: str = "") -> None:
        """Emit a message addressed to this node.

        Args:
            code: One of begin, done, info, warn, error.
            text: Message text.
        """
        self.channel.log(code, text)

    def shape(self) -> ShapeDescriptor:
        """Get the static shape of this subtree."""
        return ShapeDescriptor(
            description=self.description,
            children=tuple(child.shape() for child in self.children),
        )

    def get_depth(self) -> int:
        """Get the depth of this node in the tree (root = 0)."""
        return len(self.address)

    def is_leaf(self) -> bool:
        """Check if this node has no children."""
        return len(self.children) == 0

    def walk(self) -> Iterator["TaskNode"]:
        """Iterate over this node and all descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def __repr__(self) -> str:
        return f"TaskNode(address={self.address!r}, description={self.description!r})"
