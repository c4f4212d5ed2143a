"""Configuration for ProcTree."""

from dataclasses import dataclass, field


@dataclass
class ProcTreeConfig:
    """Configuration for task tree display and logging.

    Attributes:
        bullet: Character printed in front of every console line.
        colors: ANSI color codes keyed by color name.
        use_color: Whether console output carries ANSI escapes.
        error_indent: Indent added per level when rendering error trees.
        enable_logging: Whether builder and runner log lifecycle events.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        logger_name: Name for the logger.
    """

    # Display settings
    bullet: str = "*"
    colors: dict[str, str] = field(
        default_factory=lambda: {
            "green": "1;32",
            "yellow": "1;33",
            "red": "1;31",
        }
    )
    use_color: bool = True
    error_indent: str = "  "

    # Logging settings
    enable_logging: bool = False
    log_level: str = "INFO"
    logger_name: str = "proctree"

    def merge_with(self, other: "ProcTreeConfig") -> "ProcTreeConfig":
        """Combine two configs into a new one.

        Non-empty strings of `other` win and its flags always win; colors are
        merged key by key.

        Args:
            other: Config to merge with.

        Returns:
            New merged config.
        """
        return ProcTreeConfig(
            bullet=other.bullet or self.bullet,
            colors={**self.colors, **other.colors},
            use_color=other.use_color,
            error_indent=other.error_indent or self.error_indent,
            enable_logging=other.enable_logging,
            log_level=other.log_level or self.log_level,
            logger_name=other.logger_name or self.logger_name,
        )
