"""Wiring of builder, runner and logger into a single process."""

from os import PathLike
from typing import Callable, Optional, TextIO, Union

import anyio
from anyio.abc import TaskGroup

from .builder import SetupFunction, TaskTreeBuilder
from .config import ProcTreeConfig
from .core import Message, ShapeDescriptor
from .display import BulletedDisplay
from .errors import ErrorTree
from .executor import TaskTreeRunner
from .mediator import RunLogger, open_mediator
from .serialization import JsonLinesSink

# Creates the logger for a run once the tree shape is known
LoggerFactory = Callable[[ShapeDescriptor], RunLogger]


async def process_tree(
    new_logger: LoggerFactory,
    setup: SetupFunction,
    task_group: TaskGroup,
    *,
    builder: Optional[TaskTreeBuilder] = None,
    runner: Optional[TaskTreeRunner] = None,
) -> RunLogger:
    """Build a task tree and start running it.

    Args:
        new_logger: Creates the run's logger from the tree shape.
        setup: Root setup callback.
        task_group: Task group the run is started in.
        builder: Builder to use. A default one is created if not provided.
        runner: Runner to use. A default one is created if not provided.

    Returns:
        The run's logger. Await ``logger.wait()`` for the run outcome.

    Raises:
        ErrorTree: If the tree failed to build. Nothing has run in that case.
    """
    builder = builder or TaskTreeBuilder()
    runner = runner or TaskTreeRunner()

    root = await builder.build(setup)
    logger = new_logger(root.shape())

    async def run() -> None:
        await runner.run(root, logger.log)

    task_group.start_soon(logger.store_process, run)
    return logger


async def run_with_console(
    setup: SetupFunction,
    output: Optional[TextIO] = None,
    config: Optional[ProcTreeConfig] = None,
) -> Optional[Exception]:
    """Build and run a tree, reporting progress as bulleted console lines.

    Args:
        setup: Root setup callback.
        output: Output stream. Defaults to sys.stdout.
        config: Configuration for display and logging.

    Returns:
        None on success, otherwise the failure, which has already been printed.
    """
    config = config or ProcTreeConfig()
    display = BulletedDisplay(config=config, output=output)
    display.announce()

    async with open_mediator(display) as mediator:
        async with anyio.create_task_group() as tg:
            try:
                await process_tree(
                    RunLogger.factory(mediator.log),
                    setup,
                    tg,
                    builder=TaskTreeBuilder(config),
                    runner=TaskTreeRunner(config),
                )
            except ErrorTree as error:
                display.show_failure(error)
                return error

            try:
                await mediator.outcome()
            except Exception as error:
                display.show_failure(error)
                return error

    return None


async def run_to_file(
    path: Union[str, PathLike],
    setup: SetupFunction,
    config: Optional[ProcTreeConfig] = None,
) -> Optional[ErrorTree]:
    """Build and run a tree, appending every message to a JSON lines file.

    Args:
        path: File the messages are appended to.
        setup: Root setup callback.
        config: Configuration for logging.

    Returns:
        None on success, otherwise the error tree, which has also been
        written to the file as a "fatal" message.
    """
    config = config or ProcTreeConfig()
    sink = JsonLinesSink(path)

    async with anyio.create_task_group() as tg:
        try:
            logger = await process_tree(
                RunLogger.factory(sink),
                setup,
                tg,
                builder=TaskTreeBuilder(config),
                runner=TaskTreeRunner(config),
            )
        except ErrorTree as error:
            sink(Message.fatal(error))
            return error

    try:
        await logger.wait()
    except ErrorTree as error:
        return error
    return None
