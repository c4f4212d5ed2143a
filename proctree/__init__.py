"""
ProcTree - Hierarchical setup and validation steps with structured failure reports.

Each step is described by a setup callback that may add child steps at any
time while it sets up. The built tree then runs node by node: run_before,
run, all children concurrently, run_after. Failures never stop siblings;
they are gathered into an ErrorTree shaped like the part of the tree that
failed. A ProgressTree turns the run's message stream into a live
completed/total fraction.

Features:
- Dynamic, concurrent tree construction
- Three-phase hooks per node
- Non-fail-fast error aggregation at every level
- Ordered message stream with live progress counting
- Bulleted console display and JSON lines file sink
- Hooks and structured logging

Example usage:
    >>> from proctree import run_with_console
    >>>
    >>> async def check_disk(task):
    ...     task.description = "Check disk"
    ...     task.run = verify_free_space
    >>>
    >>> async def setup(task):
    ...     task.description = "Bootstrap"
    ...     task.add(check_disk)
    >>>
    >>> anyio.run(run_with_console, setup)
"""

# Core classes
from .config import ProcTreeConfig
from .core import (
    Address,
    HookFunction,
    Message,
    MessageSink,
    MESSAGE_CODES,
    ShapeDescriptor,
    TaskNode,
)
from .builder import Payload, SetupFunction, TaskTreeBuilder
from .executor import TaskTreeRunner
from .progress import ProgressTree

# Errors
from .errors import (
    ProcTreeError,
    ErrorTree,
    BuildError,
    ChildBuildError,
    RunPhaseError,
    ChildRunError,
    FatalMediatorError,
    ProgressError,
    DuplicateCompletionError,
    InvalidAddressError,
)

# Message mediation
from .mediator import Consumer, LogMediator, ResultSlot, RunLogger, open_mediator
from .process import process_tree, run_to_file, run_with_console

# Display
from .renderer import TreeRenderer
from .display import BulletedDisplay

# Hooks and events
from .hooks import HookDispatcher, TaskHooks

# Serialization
from .serialization import JsonLinesSink, MessageSerializer

# Logging
from .logging_integration import (
    ProcTreeLogger,
    StructuredFormatter,
    configure_proctree_logging,
)

__all__ = [
    # Core
    "ProcTreeConfig",
    "Address",
    "HookFunction",
    "Message",
    "MessageSink",
    "MESSAGE_CODES",
    "ShapeDescriptor",
    "TaskNode",
    "Payload",
    "SetupFunction",
    "TaskTreeBuilder",
    "TaskTreeRunner",
    "ProgressTree",
    # Errors
    "ProcTreeError",
    "ErrorTree",
    "BuildError",
    "ChildBuildError",
    "RunPhaseError",
    "ChildRunError",
    "FatalMediatorError",
    "ProgressError",
    "DuplicateCompletionError",
    "InvalidAddressError",
    # Mediation
    "Consumer",
    "LogMediator",
    "ResultSlot",
    "RunLogger",
    "open_mediator",
    "process_tree",
    "run_to_file",
    "run_with_console",
    # Display
    "TreeRenderer",
    "BulletedDisplay",
    # Hooks
    "HookDispatcher",
    "TaskHooks",
    # Serialization
    "JsonLinesSink",
    "MessageSerializer",
    # Logging
    "ProcTreeLogger",
    "StructuredFormatter",
    "configure_proctree_logging",
]

__version__ = "0.1.0"
