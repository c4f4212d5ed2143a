"""Bulleted terminal display for task tree runs."""

import sys
from typing import Optional, TextIO

from .config import ProcTreeConfig
from .core import Message
from .errors import ErrorTree
from .progress import ProgressTree
from .renderer import TreeRenderer
from .serialization import MessageSerializer


class BulletedDisplay:
    """Prints a run as a list of colored bullets.

    Instances are message consumers: pass one to ``open_mediator`` and it is
    called with the progress tree and every node message.

    Example:
        >>> display = BulletedDisplay()
        >>> display.announce()
        >>> async with open_mediator(display) as mediator:
        ...     ...
    """

    def __init__(
        self,
        renderer: Optional[TreeRenderer] = None,
        config: Optional[ProcTreeConfig] = None,
        output: Optional[TextIO] = None,
    ):
        """Initialize the display.

        Args:
            renderer: TreeRenderer instance. Created if not provided.
            config: Configuration. Used if renderer not provided.
            output: Output stream. Defaults to sys.stdout.
        """
        self.config = config or ProcTreeConfig()
        self.renderer = renderer or TreeRenderer(self.config)
        self.output = output or sys.stdout

    def __call__(self, tree: ProgressTree, message: Message) -> None:
        for line in self.renderer.render_message(tree, message):
            self.print_message(line)

    def announce(self) -> None:
        """Print the line opening a run."""
        self.print_message(self.renderer.bullet("Beginning setup and validation ..."))

    def show_failure(self, error: BaseException) -> None:
        """Print a failure, walking it if it is an error tree.

        Args:
            error: The error tree or other exception that ended the run.
        """
        self.print_message(
            self.renderer.bullet(
                "Full JSON: " + MessageSerializer.error_to_json(error, indent=None), "red"
            )
        )
        if isinstance(error, ErrorTree):
            self.print_message(self.renderer.render_error(error))
        else:
            self.print_message(self.renderer.bullet(str(error), "red"))

    def print_message(self, message: str) -> None:
        """Write a line to the output.

        Args:
            message: The line to print.
        """
        self.output.write(message + "\n")
        self.output.flush()
