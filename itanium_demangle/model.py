from collections.abc import Sequence
from dataclasses import dataclass

from .grammar.model import MangledName, Node


@dataclass(frozen=True, kw_only=True)
class Symbol:
    raw: str
    tree: MangledName

    # final state of back reference table, in index order
    substitutions: Sequence[Node]

    def __post_init__(self) -> None:
        # must be mangled
        assert self.raw.startswith(("_Z", "__Z"))
