"""Rendering of run messages and error trees for terminal display."""

from typing import Optional

from .config import ProcTreeConfig
from .core import Message
from .errors import ErrorTree
from .progress import ProgressTree

# Console color for each informational message code
CODE_COLORS = {
    "info": "green",
    "warn": "yellow",
    "error": "red",
}


class TreeRenderer:
    """Renders run messages and error trees to bulleted lines.

    Example:
        >>> renderer = TreeRenderer(ProcTreeConfig(use_color=False))
        >>> print(renderer.render_error(error))
         * Install:
         *   Check disk:
         *     not enough space
    """

    def __init__(self, config: Optional[ProcTreeConfig] = None):
        """Initialize the renderer.

        Args:
            config: Configuration for bullets, colors and indentation.
        """
        self.config = config or ProcTreeConfig()

    def bullet(self, text: str, color: str = "green") -> str:
        """Prefix text with a (colored) bullet.

        Args:
            text: Line text.
            color: Color name from the config's colors.

        Returns:
            The bulleted line.
        """
        if self.config.use_color:
            code = self.config.colors.get(color, self.config.colors["green"])
            return f"\x1b[{code}m {self.config.bullet}\x1b[0m {text}"
        return f" {self.config.bullet} {text}"

    def render_progress(self, text: str, tree: ProgressTree) -> str:
        """Render a line followed by the root's completion fraction."""
        return f"{self.bullet(text)} ({tree.completed()}/{tree.total()}) ..."

    def render_message(self, tree: ProgressTree, message: Message) -> list[str]:
        """Render the console lines for one run message.

        Args:
            tree: Root of the progress tree, already updated for the message.
            message: The message to render.

        Returns:
            Lines to print, possibly none.
        """
        lines = []

        if message.code == "begin":
            # The root begins running once every node has been set up
            if message.is_root:
                lines.append(self.render_progress("Finished setup and validation", tree))

        elif message.code == "done":
            lines.append(self.render_progress(message.text, tree))
            if message.is_root:
                lines.append(self.bullet("Done."))

        elif message.code in CODE_COLORS:
            lines.append(self.bullet(message.text, CODE_COLORS[message.code]))

        return lines

    def render_error(self, error: ErrorTree, indent: str = "") -> str:
        """Render an error tree depth first, one bulleted line per entry.

        Args:
            error: The error tree to render.
            indent: Indent of the top-level entry.

        Returns:
            Formatted error tree string.
        """
        lines: list[str] = []
        self._render_error_node(error, indent, lines)
        return "\n".join(lines)

    def _render_error_node(self, error: ErrorTree, indent: str, lines: list[str]) -> None:
        step = self.config.error_indent
        lines.append(self.bullet(f"{indent}{error.description or ''}:", "red"))

        for message in error.messages:
            lines.append(self.bullet(f"{indent}{step}{message}", "red"))

        for child in error.children:
            self._render_error_node(child, indent + step, lines)
