from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from ..errors import BadBackReference
from .model import Node


@dataclass
class SubstitutionTable:
    # components eligible for back references, in order of first appearance
    # entries are shared with the tree, never copied
    inner: list[Node] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.inner)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.inner)

    def append(self, node: Node) -> int:
        self.inner.append(node)
        return len(self.inner) - 1

    def resolve(self, index: int, offset: int) -> Node:
        if not 0 <= index < len(self.inner):
            raise BadBackReference(index, len(self.inner), offset)

        return self.inner[index]

    def checkpoint(self) -> int:
        return len(self.inner)

    def restore(self, checkpoint: int) -> None:
        # drops entries appended by an abandoned trial parse, committed entries are never touched
        assert 0 <= checkpoint <= len(self.inner)

        del self.inner[checkpoint:]

    def snapshot(self) -> Sequence[Node]:
        return tuple(self.inner)
