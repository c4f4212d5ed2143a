"""JSON serialization of run messages, shapes and error trees."""

import json
from os import PathLike
from typing import Any, Optional, Union

from .core import Message
from .errors import ErrorTree


class MessageSerializer:
    """Serialize run messages to and from their JSON wire form.

    Messages are written positionally, e.g. ``[1496756029000, "done", 0, "ok"]``.
    Error values that would otherwise become ``{}`` in JSON are written as
    their text; error trees are written as nested dictionaries.

    Example:
        >>> line = MessageSerializer.message_to_json(message)
        >>> MessageSerializer.message_from_json(line) == message
        True
    """

    @staticmethod
    def encode_value(value: Any) -> Any:
        """Convert values json cannot serialize by itself.

        Args:
            value: A value found while encoding.

        Returns:
            A JSON-compatible replacement.

        Raises:
            TypeError: If the value has no JSON replacement.
        """
        if isinstance(value, ErrorTree):
            return value.to_dict()
        if isinstance(value, BaseException):
            return str(value) or type(value).__name__
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    @staticmethod
    def message_to_json(message: Message) -> str:
        """Serialize a message to a single JSON line.

        Args:
            message: The message to serialize.

        Returns:
            Compact JSON string without a trailing newline.
        """
        return json.dumps(
            message.to_wire(),
            default=MessageSerializer.encode_value,
            separators=(",", ":"),
        )

    @staticmethod
    def message_from_json(line: str) -> Message:
        """Parse a message written by message_to_json.

        Errors carried by "fatal" messages come back as plain JSON values.
        """
        return Message.from_wire(json.loads(line))

    @staticmethod
    def error_to_json(error: BaseException, indent: Optional[int] = 2) -> str:
        """Serialize an error, expanding error trees into their full structure."""
        return json.dumps(error, default=MessageSerializer.encode_value, indent=indent)


class JsonLinesSink:
    """Message sink appending one JSON line per message to a file.

    Example:
        >>> sink = JsonLinesSink("setup.log")
        >>> await runner.run(root, sink)
    """

    def __init__(self, path: Union[str, PathLike]):
        """Initialize the sink.

        Args:
            path: File messages are appended to. Created on first write.
        """
        self.path = path

    def __call__(self, message: Message) -> None:
        line = MessageSerializer.message_to_json(message)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def read(self) -> list[Message]:
        """Read back every message written to the file so far."""
        with open(self.path, encoding="utf-8") as f:
            return [MessageSerializer.message_from_json(line) for line in f if line.strip()]
