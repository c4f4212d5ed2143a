"""Structured logging integration for building and running task trees."""

import logging
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .core import Address, TaskNode
    from .errors import ErrorTree


@dataclass
class ProcTreeLogger:
    """Logs build and run events through the standard logging module.

    Register it on a HookDispatcher, or set ``ProcTreeConfig.enable_logging``
    to have builders and runners do so. Node details travel as ``extra``
    fields, which StructuredFormatter prints.

    Example:
        >>> import logging
        >>> logging.basicConfig(level=logging.INFO)
        >>>
        >>> logger = ProcTreeLogger(logger_name="bootstrap", level="DEBUG")
        >>> runner = TaskTreeRunner()
        >>> runner.hooks.register(logger)
        >>>
        >>> # INFO bootstrap: Node begun address=(0,) description=Check disk depth=1
        >>> # INFO bootstrap: Node done address=(0,) description=Check disk
    """

    logger_name: str = "proctree"
    level: str = "INFO"
    _logger: Optional[logging.Logger] = None

    def __post_init__(self) -> None:
        """Initialize the logger."""
        self._logger = logging.getLogger(self.logger_name)
        self._logger.setLevel(getattr(logging, self.level.upper()))

    @property
    def logger(self) -> logging.Logger:
        """Get the underlying logger."""
        if self._logger is None:
            self._logger = logging.getLogger(self.logger_name)
        return self._logger

    def _format_extra(self, **kwargs: Any) -> dict[str, Any]:
        # Unset fields are left out of the record
        return {key: value for key, value in kwargs.items() if value is not None}

    def on_child_added(self, parent: "Address", child: "Address") -> None:
        """Log dynamic child addition (debug level)."""
        self.logger.debug(
            "Child node added",
            extra=self._format_extra(parent_address=parent, child_address=child),
        )

    def on_build_failed(self, address: "Address", error: "ErrorTree") -> None:
        """Log a node that failed to build."""
        self.logger.warning(
            "Node build failed",
            extra=self._format_extra(
                address=address,
                description=error.description,
                error_messages=error.messages or None,
                failed_children=len(error.children) or None,
            ),
        )

    def on_build_complete(self, node: "TaskNode") -> None:
        """Log a fully built tree."""
        self.logger.info(
            "Tree built",
            extra=self._format_extra(
                description=node.description,
                total_nodes=sum(1 for _ in node.walk()),
            ),
        )

    def on_tree_start(self, node: "TaskNode") -> None:
        """Log tree run start."""
        self.logger.info(
            "Tree run started",
            extra=self._format_extra(description=node.description),
        )

    def on_tree_complete(self, node: "TaskNode", error: Optional["ErrorTree"]) -> None:
        """Log tree run completion."""
        log_level = logging.INFO if error is None else logging.ERROR
        self.logger.log(
            log_level,
            "Tree run completed",
            extra=self._format_extra(
                description=node.description,
                succeeded=error is None,
            ),
        )

    def on_node_begin(self, node: "TaskNode") -> None:
        """Log node start."""
        self.logger.info(
            "Node begun",
            extra=self._format_extra(
                address=node.address,
                description=node.description,
                depth=node.get_depth(),
            ),
        )

    def on_node_done(self, node: "TaskNode") -> None:
        """Log node completion."""
        self.logger.info(
            "Node done",
            extra=self._format_extra(address=node.address, description=node.description),
        )

    def on_node_failed(self, node: "TaskNode", error: "ErrorTree") -> None:
        """Log node failure."""
        self.logger.warning(
            f"Node failed: {type(error).__name__}",
            extra=self._format_extra(
                address=node.address,
                description=node.description,
                error_messages=error.messages or None,
                failed_children=len(error.children) or None,
            ),
        )


# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


class StructuredFormatter(logging.Formatter):
    """Formatter appending a record's ``extra`` fields as ``key=value`` pairs.

    Example output:
        2024-01-15 10:30:45 INFO proctree: Node begun [address=(0,) depth=1]
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = [
            f"{key}={value}"
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        ]
        if not fields:
            return message
        return f"{message} [{' '.join(fields)}]"


def configure_proctree_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    structured: bool = True,
) -> logging.Logger:
    """Send proctree's log records to stderr.

    Replaces any handlers previously installed on the "proctree" logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format_string: Custom format string. Disables structured output.
        structured: Whether to append extra fields to each line.

    Returns:
        The configured "proctree" logger.
    """
    numeric_level = getattr(logging, level.upper())
    logger = logging.getLogger("proctree")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if format_string:
        formatter = logging.Formatter(format_string)
    else:
        formatter_class = StructuredFormatter if structured else logging.Formatter
        formatter = formatter_class(_DEFAULT_FORMAT, datefmt=_DEFAULT_DATEFMT)

    handler = logging.StreamHandler()
    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
