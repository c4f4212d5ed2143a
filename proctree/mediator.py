"""Rendezvous between a run's message stream and an asynchronous consumer."""

import logging
import math
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

import anyio

from .core import Message, MessageSink, ShapeDescriptor, call_hook
from .errors import FatalMediatorError
from .progress import ProgressTree

_log = logging.getLogger("proctree.mediator")

# Type alias for message consumers
Consumer = Callable[[ProgressTree, Message], Union[Any, Awaitable[Any]]]


class ResultSlot:
    """Oneshot result: written once, awaited by any number of readers.

    Later writes are ignored, so several producers may race to settle it.
    Must be created inside a running event loop.
    """

    def __init__(self) -> None:
        self._event = anyio.Event()
        self._value: Any = None
        self._error: Optional[BaseException] = None

    def is_set(self) -> bool:
        return self._event.is_set()

    def set(self, value: Any = None) -> bool:
        """Settle the slot with a value.

        Returns:
            True if this call settled the slot.
        """
        if self._event.is_set():
            return False
        self._value = value
        self._event.set()
        return True

    def fail(self, error: BaseException) -> bool:
        """Settle the slot with an error that readers will raise.

        Returns:
            True if this call settled the slot.
        """
        if self._event.is_set():
            return False
        self._error = error
        self._event.set()
        return True

    async def wait(self) -> Any:
        """Wait for the slot to settle and return its value or raise its error."""
        await self._event.wait()
        if self._error is not None:
            raise self._error
        return self._value


def _as_exception(error: Any) -> BaseException:
    if isinstance(error, BaseException):
        return error
    return FatalMediatorError(error)


class LogMediator:
    """Couples a run's message stream to a consumer and a ProgressTree.

    Messages are queued by ``log`` in emission order and handed to the
    consumer one at a time. The first message must be "valid": it carries
    the tree shape and creates the ProgressTree. A "fatal" message settles
    the outcome with its error at once. Every other message goes to the
    consumer, "done" messages being applied to the ProgressTree first; once
    the consumer settles a "done" message and the root is complete, the
    outcome succeeds.

    Use ``open_mediator`` to create one with its pump running.
    """

    def __init__(self, consumer: Consumer):
        """Initialize the mediator.

        Args:
            consumer: Called as ``consumer(progress_tree, message)`` for every
                node message; may return an awaitable.
        """
        self.consumer = consumer
        self._send, self._receive = anyio.create_memory_object_stream(math.inf)
        self._shape_known = ResultSlot()
        self._terminal = ResultSlot()
        self.progress: Optional[ProgressTree] = None

    def log(self, message: Message) -> None:
        """Queue a message for the consumer. Safe for any number of callers.

        A "fatal" message is not queued: it settles the outcome at once,
        even while the consumer is still busy with earlier messages.
        """
        if message.code == "fatal":
            error = _as_exception(message.error)
            self._terminal.fail(error)
            self._shape_known.fail(error)
            return
        self._send.send_nowait(message)

    @property
    def settled(self) -> bool:
        """Whether the outcome has settled."""
        return self._terminal.is_set()

    async def outcome(self) -> None:
        """Wait until the root completes or the pipeline fails.

        Raises:
            Exception: The error carried by a "fatal" message, or the
                consumer's error.
            FatalMediatorError: If the stream closed before the run completed
                or the first message did not carry the tree shape.
        """
        await self._terminal.wait()

    async def wait_for_shape(self) -> ProgressTree:
        """Wait for the "valid" message and return the ProgressTree it created."""
        return await self._shape_known.wait()

    def close(self) -> None:
        """Stop accepting messages. The pump drains what is already queued."""
        self._send.close()

    async def pump(self) -> None:
        """Deliver queued messages until the stream is closed and drained."""
        async with self._receive:
            async for message in self._receive:
                if self._terminal.is_set():
                    continue
                await self._handle(message)

        error = FatalMediatorError("Message stream closed before the run completed")
        self._terminal.fail(error)
        self._shape_known.fail(error)

    async def _handle(self, message: Message) -> None:
        if self.progress is None:
            if message.code != "valid" or message.shape is None:
                error = FatalMediatorError(
                    f"First message must carry the tree shape, got {message.code!r}"
                )
                self._shape_known.fail(error)
                self._terminal.fail(error)
                return
            self.progress = ProgressTree(message.shape)
            self._shape_known.set(self.progress)
            return

        if message.code == "valid":
            self._terminal.fail(FatalMediatorError("Tree shape announced twice"))
            return

        try:
            self.progress.apply_message(message)
            await call_hook(self.consumer, self.progress, message)
        except Exception as exc:
            self._terminal.fail(exc)
            return

        if message.code == "done" and self.progress.is_complete():
            self._terminal.set(None)


@asynccontextmanager
async def open_mediator(consumer: Consumer) -> AsyncIterator[LogMediator]:
    """Create a LogMediator and run its pump for the duration of the block.

    On exit the mediator stops accepting messages, delivers the ones already
    queued and, if it has not settled yet, fails its outcome. If it has
    already settled, the pump is cancelled instead, so a consumer stuck on a
    message nobody waits for any more does not block the exit.

    Example:
        >>> async with open_mediator(display) as mediator:
        ...     async with anyio.create_task_group() as tg:
        ...         logger = await process_tree(RunLogger.factory(mediator.log), setup, tg)
        ...     await mediator.outcome()
    """
    mediator = LogMediator(consumer)
    async with anyio.create_task_group() as tg:
        tg.start_soon(mediator.pump)
        try:
            yield mediator
        finally:
            mediator.close()
            if mediator.settled:
                tg.cancel_scope.cancel()


class RunLogger:
    """Wraps a raw emitter for one run.

    Creating it emits the "valid" message carrying the tree shape. The run's
    overall outcome is attached with ``store_process``; a failed run is
    reported as a "fatal" message so a listener always sees the failure.

    Attributes:
        shape: Shape of the tree being run.
    """

    def __init__(self, emit: MessageSink, shape: ShapeDescriptor):
        """Initialize the logger and announce the tree shape.

        Args:
            emit: Raw emitter receiving every message.
            shape: Shape of the tree about to run.
        """
        self._emit = emit
        self.shape = shape
        self._outcome = ResultSlot()
        self.log(Message.valid(shape))

    @classmethod
    def factory(cls, emit: MessageSink) -> Callable[[ShapeDescriptor], "RunLogger"]:
        """Get a callable creating a RunLogger on ``emit`` for a given shape."""

        def create(shape: ShapeDescriptor) -> "RunLogger":
            return cls(emit, shape)

        return create

    def log(self, message: Message) -> None:
        """Pass a message to the raw emitter."""
        self._emit(message)

    async def store_process(self, process: Callable[[], Awaitable[Any]]) -> None:
        """Run the process and record its outcome.

        A failure is kept for ``wait`` and emitted as a "fatal" message. If
        the emitter itself is broken, that is logged and ``wait`` still
        raises the run's failure.

        Args:
            process: Zero-argument async callable running the tree.
        """
        try:
            result = await process()
        except Exception as error:
            self._outcome.fail(error)
            try:
                self.log(Message.fatal(error))
            except Exception:
                _log.warning("Could not emit fatal message for %r", error, exc_info=True)
        else:
            self._outcome.set(result)

    async def wait(self) -> Any:
        """Wait for the stored process and return its result or raise its error."""
        return await self._outcome.wait()

    @property
    def finished(self) -> bool:
        """Whether the stored process has settled."""
        return self._outcome.is_set()
