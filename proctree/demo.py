"""Demo of a bootstrap procedure reported on the console.

Run with ``python -m proctree.demo``. Pass ``--fail`` to see an error tree.
"""

import random
import sys

import anyio

from .config import ProcTreeConfig
from .process import run_with_console


async def simulate_work(task):
    """Pretend to do something for a short while."""
    await anyio.sleep(random.uniform(0.05, 0.3))


def make_check(description, fail=False):
    """Create the setup callback of a leaf check."""

    async def setup(task):
        task.description = description

        async def run(node):
            await simulate_work(node)
            if fail:
                raise RuntimeError(f"{description} is not available")
            node.log("info", f"{description} looks fine")

        async def run_after(node):
            node.log("info", f"{description} verified")

        task.run = run
        task.run_after = run_after

    return setup


def make_root(fail=False):
    """Create the root setup callback of the demo bootstrap tree."""

    async def setup_tools(task):
        task.description = "Check tools"
        task.add(make_check("git"))
        task.add(make_check("compiler", fail=fail))

    async def setup_storage(task):
        task.description = "Check storage"
        # Children can be added after the setup suspends
        await anyio.sleep(0)
        task.add(make_check("scratch directory"))

    async def setup(task):
        task.description = "Bootstrap"
        task.add(setup_tools)
        task.add(setup_storage)

    return setup


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    fail = "--fail" in argv
    error = anyio.run(run_with_console, make_root(fail), None, ProcTreeConfig())
    return 1 if error is not None else 0


if __name__ == "__main__":
    sys.exit(main())
