"""Tests for core data structures."""

import pytest
from proctree.core import (
    LogChannel,
    Message,
    ShapeDescriptor,
    TaskNode,
    call_hook,
)


class TestShapeDescriptor:
    def test_to_dict_without_description(self):
        shape = ShapeDescriptor(children=(ShapeDescriptor(),))

        assert shape.to_dict() == {"c": [{"c": []}]}

    def test_to_dict_with_description(self):
        shape = ShapeDescriptor(description="Install")

        assert shape.to_dict() == {"d": "Install", "c": []}

    def test_from_dict_defaults(self):
        shape = ShapeDescriptor.from_dict({})

        assert shape.description is None
        assert shape.children == ()

    def test_from_dict_nested(self):
        shape = ShapeDescriptor.from_dict({"c": [{}, {"d": "b", "c": [{}]}]})

        assert len(shape.children) == 2
        assert shape.children[1].description == "b"
        assert len(shape.children[1].children) == 1

    def test_count(self):
        shape = ShapeDescriptor.from_dict({"c": [{}, {"c": [{}]}]})

        assert shape.count() == 4


class TestMessage:
    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError):
            Message(0, "bogus")

    def test_node_message_wire(self):
        message = Message(1496756029, "done", (1, 0), "it finished")

        assert message.to_wire() == [1496756029, "done", 1, 0, "it finished"]

    def test_root_message_wire(self):
        message = Message(5, "begin")

        assert message.to_wire() == [5, "begin", ""]
        assert message.is_root

    def test_valid_message_wire(self):
        shape = ShapeDescriptor(children=(ShapeDescriptor(),))
        message = Message.valid(shape, timestamp=7)

        assert message.to_wire() == [7, "valid", {"c": [{"c": []}]}]

    def test_fatal_message_wire(self):
        error = RuntimeError("boom")
        message = Message.fatal(error, timestamp=7)

        assert message.to_wire() == [7, "fatal", error]

    def test_from_wire_node_message(self):
        message = Message.from_wire([1496756029, "done", 0, "it finished"])

        assert message.code == "done"
        assert message.address == (0,)
        assert message.text == "it finished"

    def test_from_wire_valid_message(self):
        message = Message.from_wire([1, "valid", {"d": "root", "c": [{}]}])

        assert message.shape.description == "root"
        assert len(message.shape.children) == 1

    def test_from_wire_too_short(self):
        with pytest.raises(ValueError):
            Message.from_wire([1])

    def test_for_node_stamps_time(self):
        message = Message.for_node("info", [2, 3], "hello")

        assert message.timestamp > 0
        assert message.address == (2, 3)
        assert message.text == "hello"


class TestLogChannel:
    def test_drops_messages_before_bind(self):
        channel = LogChannel((0,))

        channel.log("info", "too early")

    def test_emits_after_bind(self):
        received = []
        channel = LogChannel((0, 1))
        channel.bind(received.append)

        channel.log("warn", "careful")

        assert len(received) == 1
        assert received[0].code == "warn"
        assert received[0].address == (0, 1)
        assert received[0].text == "careful"

    def test_binds_once(self):
        channel = LogChannel((0,))
        assert not channel.bound

        channel.bind(lambda message: None)

        assert channel.bound
        with pytest.raises(RuntimeError):
            channel.bind(lambda message: None)

    def test_rejects_stream_codes(self):
        channel = LogChannel(())
        channel.bind(lambda message: None)

        with pytest.raises(ValueError):
            channel.log("valid")
        with pytest.raises(ValueError):
            channel.log("fatal")


class TestTaskNode:
    def test_defaults(self):
        node = TaskNode(address=())

        assert node.description is None
        assert node.children == ()
        assert node.is_leaf()
        assert node.get_depth() == 0

    def test_shape(self):
        grandchild = TaskNode(address=(1, 0))
        root = TaskNode(
            address=(),
            description="root",
            children=(TaskNode(address=(0,)), TaskNode(address=(1,), children=(grandchild,))),
        )

        assert root.shape().to_dict() == {"d": "root", "c": [{"c": []}, {"c": [{"c": []}]}]}

    def test_walk(self):
        child = TaskNode(address=(0,))
        root = TaskNode(address=(), children=(child,))

        assert list(root.walk()) == [root, child]

    def test_log_uses_channel(self):
        received = []
        node = TaskNode(address=(3,))
        node.channel.bind(received.append)

        node.log("info", "hi")

        assert received[0].address == (3,)

    def test_is_immutable(self):
        node = TaskNode(address=())

        with pytest.raises(AttributeError):
            node.description = "changed"


@pytest.mark.anyio
class TestCallHook:
    async def test_sync_zero_arg(self):
        assert await call_hook(lambda: 5, "ignored") == 5

    async def test_sync_one_arg(self):
        assert await call_hook(lambda value: value * 2, 21) == 42

    async def test_async_hook(self):
        async def hook(value):
            return value + 1

        assert await call_hook(hook, 1) == 2

    async def test_sync_raise_propagates(self):
        def hook():
            raise ValueError("sync")

        with pytest.raises(ValueError, match="sync"):
            await call_hook(hook)

    async def test_async_raise_propagates(self):
        async def hook():
            raise ValueError("async")

        with pytest.raises(ValueError, match="async"):
            await call_hook(hook)
