"""Live completion counting over the static shape of a task tree."""

from typing import Iterator, Optional, Sequence

from .core import Message, ShapeDescriptor
from .errors import DuplicateCompletionError, InvalidAddressError


class ProgressTree:
    """Address-addressable completion counter built from a tree shape.

    ``total()`` is the number of nodes in the subtree and never changes.
    ``completed()`` counts the nodes of the subtree that reported "done"; it
    only grows and never exceeds ``total()``.

    Example:
        >>> tree = ProgressTree(ShapeDescriptor.from_dict({"c": [{}, {"c": [{}]}]}))
        >>> tree.total()
        4
        >>> tree.apply_completion((1, 0))
        >>> tree.completed()
        1
    """

    def __init__(self, shape: ShapeDescriptor):
        """Build the counter tree.

        Args:
            shape: Static shape of the task tree.
        """
        self.description = shape.description or ""
        self._children = tuple(ProgressTree(child) for child in shape.children)
        self._total = 1 + sum(child.total() for child in self._children)
        self._completed = 0
        self._done = False

    def total(self) -> int:
        """Number of nodes in this subtree, itself included."""
        return self._total

    def completed(self) -> int:
        """Number of nodes in this subtree that have completed."""
        return self._completed

    def is_done(self) -> bool:
        """Whether this node itself has completed."""
        return self._done

    def is_complete(self) -> bool:
        """Whether every node of this subtree has completed."""
        return self._completed == self._total

    def children(self) -> tuple["ProgressTree", ...]:
        """Child handles in child order. Every call yields the same handles."""
        return self._children

    def __iter__(self) -> Iterator["ProgressTree"]:
        return iter(self._children)

    def __len__(self) -> int:
        return len(self._children)

    def find(self, address: Sequence[int]) -> "ProgressTree":
        """Get the node at ``address`` relative to this node.

        Raises:
            InvalidAddressError: If the address is not part of the shape.
        """
        node = self
        for index in address:
            if not 0 <= index < len(node._children):
                raise InvalidAddressError(f"No node at address {tuple(address)}")
            node = node._children[index]
        return node

    def apply_completion(self, address: Sequence[int]) -> None:
        """Mark the node at ``address`` complete.

        Increments ``completed()`` by one on that node and on every ancestor
        up to this node.

        Args:
            address: Address of the completed node, relative to this node.

        Raises:
            InvalidAddressError: If the address is not part of the shape.
            DuplicateCompletionError: If the node was already complete.
        """
        path = [self]
        for index in address:
            node = path[-1]
            if not 0 <= index < len(node._children):
                raise InvalidAddressError(f"No node at address {tuple(address)}")
            path.append(node._children[index])

        target = path[-1]
        if target._done:
            raise DuplicateCompletionError(f"Node {tuple(address)} already completed")

        target._done = True
        for node in path:
            node._completed += 1

    def apply_message(self, message: Message) -> Optional[str]:
        """Apply a message to the tree.

        Only "done" messages change the counts; every other message leaves
        the tree untouched.

        Args:
            message: A node message from the run.

        Returns:
            The message text.
        """
        if message.code == "done":
            self.apply_completion(message.address)
        return message.text

    def __repr__(self) -> str:
        return (
            f"ProgressTree(description={self.description!r}, "
            f"completed={self._completed}, total={self._total})"
        )
