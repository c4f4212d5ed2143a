"""Tests for ProcTreeConfig."""

from proctree.config import ProcTreeConfig


class TestProcTreeConfig:
    def test_defaults(self):
        config = ProcTreeConfig()

        assert config.bullet == "*"
        assert config.colors == {"green": "1;32", "yellow": "1;33", "red": "1;31"}
        assert config.use_color is True
        assert config.error_indent == "  "
        assert config.enable_logging is False
        assert config.log_level == "INFO"
        assert config.logger_name == "proctree"

    def test_colors_not_shared(self):
        first = ProcTreeConfig()
        second = ProcTreeConfig()

        first.colors["green"] = "0;32"

        assert second.colors["green"] == "1;32"

    def test_merge_with_prefers_other(self):
        base = ProcTreeConfig(bullet="-", log_level="DEBUG")
        other = ProcTreeConfig(bullet=">", use_color=False)

        merged = base.merge_with(other)

        assert merged.bullet == ">"
        assert merged.use_color is False
        # Empty strings fall back to the base value
        assert ProcTreeConfig(log_level="DEBUG").merge_with(ProcTreeConfig(log_level="")).log_level == "DEBUG"

    def test_merge_with_takes_flags_from_other(self):
        base = ProcTreeConfig(use_color=False, enable_logging=True)

        merged = base.merge_with(ProcTreeConfig())

        assert merged.use_color is True
        assert merged.enable_logging is False

    def test_merge_with_combines_colors(self):
        base = ProcTreeConfig(colors={"blue": "1;34"})
        other = ProcTreeConfig(colors={"red": "0;31"})

        merged = base.merge_with(other)

        assert merged.colors == {"blue": "1;34", "red": "0;31"}

    def test_merge_returns_new_config(self):
        base = ProcTreeConfig()

        merged = base.merge_with(ProcTreeConfig())

        assert merged is not base
        assert merged == base
