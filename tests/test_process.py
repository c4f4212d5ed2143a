"""Tests for process wiring and the convenience runners."""

import io

import pytest
import anyio
from proctree.config import ProcTreeConfig
from proctree.errors import BuildError, ChildBuildError, ChildRunError
from proctree.mediator import RunLogger, open_mediator
from proctree.process import process_tree, run_to_file, run_with_console
from proctree.serialization import JsonLinesSink


def make_tree(fail_build=False, fail_run=False):
    async def child_a(task):
        task.description = "A"
        task.run = lambda node: node.log("info", "A is fine")

    async def child_b(task):
        task.description = "B"
        if fail_build:
            raise ValueError("X")

        async def before():
            if fail_run:
                raise ValueError("bad")

        task.run_before = before

    async def setup(task):
        task.description = "Root"
        task.add(child_a)
        task.add(child_b)

    return setup


class Collector:
    def __init__(self):
        self.seen = []

    def __call__(self, tree, message):
        self.seen.append((message.code, message.address, tree.completed(), tree.total()))


@pytest.mark.anyio
class TestProcessTree:
    async def test_success_through_mediator(self):
        collector = Collector()

        async with open_mediator(collector) as mediator:
            async with anyio.create_task_group() as tg:
                logger = await process_tree(RunLogger.factory(mediator.log), make_tree(), tg)
                await mediator.outcome()

            await logger.wait()

        assert collector.seen[-1] == ("done", (), 3, 3)
        assert [entry[0] for entry in collector.seen].count("done") == 3

    async def test_build_failure_raises_before_run(self):
        emitted = []

        async with anyio.create_task_group() as tg:
            with pytest.raises(ChildBuildError) as exc_info:
                await process_tree(RunLogger.factory(emitted.append), make_tree(fail_build=True), tg)

        assert emitted == []
        assert exc_info.value.to_dict() == {
            "description": "Root",
            "messages": [],
            "children": [{"description": "B", "messages": ["X"], "children": []}],
        }

    async def test_run_failure_reaches_mediator_as_fatal(self):
        async with open_mediator(Collector()) as mediator:
            async with anyio.create_task_group() as tg:
                logger = await process_tree(
                    RunLogger.factory(mediator.log), make_tree(fail_run=True), tg
                )

                with pytest.raises(ChildRunError) as exc_info:
                    await mediator.outcome()

        assert exc_info.value.to_dict() == {
            "description": "Root",
            "messages": [],
            "children": [{"description": "B", "messages": ["bad"], "children": []}],
        }
        with pytest.raises(ChildRunError):
            await logger.wait()


@pytest.mark.anyio
class TestRunWithConsole:
    async def test_success_output(self):
        output = io.StringIO()

        error = await run_with_console(
            make_tree(), output=output, config=ProcTreeConfig(use_color=False)
        )

        text = output.getvalue()
        assert error is None
        assert text.startswith(" * Beginning setup and validation ...")
        assert " * Finished setup and validation (0/3) ..." in text
        assert " * A is fine" in text
        assert " * Root (3/3) ..." in text
        assert text.rstrip().endswith(" * Done.")

    async def test_run_failure_output(self):
        output = io.StringIO()

        error = await run_with_console(
            make_tree(fail_run=True), output=output, config=ProcTreeConfig(use_color=False)
        )

        text = output.getvalue()
        assert isinstance(error, ChildRunError)
        assert "Full JSON:" in text
        assert " * Root:" in text
        assert " *   B:" in text
        assert " *     bad" in text

    async def test_build_failure_output(self):
        output = io.StringIO()

        error = await run_with_console(
            make_tree(fail_build=True), output=output, config=ProcTreeConfig(use_color=False)
        )

        assert isinstance(error, ChildBuildError)
        assert " *     X" in output.getvalue()
        assert "Finished setup" not in output.getvalue()

    async def test_consumer_uses_color_by_default(self):
        output = io.StringIO()

        await run_with_console(make_tree(), output=output)

        assert "\x1b[1;32m *\x1b[0m" in output.getvalue()


@pytest.mark.anyio
class TestRunToFile:
    async def test_success_writes_every_message(self, tmp_path):
        path = tmp_path / "setup.log"

        error = await run_to_file(path, make_tree())

        messages = JsonLinesSink(path).read()
        assert error is None
        assert messages[0].code == "valid"
        assert messages[0].shape.count() == 3
        assert [m.code for m in messages].count("done") == 3
        assert messages[-1].code == "done" and messages[-1].address == ()

    async def test_run_failure_written_as_fatal(self, tmp_path):
        path = tmp_path / "setup.log"

        error = await run_to_file(path, make_tree(fail_run=True))

        messages = JsonLinesSink(path).read()
        assert isinstance(error, ChildRunError)
        assert messages[-1].code == "fatal"
        assert messages[-1].error["children"][0]["messages"] == ["bad"]

    async def test_build_failure_written_as_fatal(self, tmp_path):
        path = tmp_path / "setup.log"

        async def setup(task):
            raise RuntimeError("cannot start")

        error = await run_to_file(path, setup)

        messages = JsonLinesSink(path).read()
        assert isinstance(error, BuildError)
        assert [m.code for m in messages] == ["fatal"]
        assert messages[0].error["messages"] == ["cannot start"]
