from collections.abc import Collection, Mapping
from dataclasses import dataclass
from functools import cached_property

from more_itertools import is_sorted

type Address = int


def symbol_format(address: Address, name: str) -> str:
    return f"0x{address:08X} (`{name}`)"


@dataclass(frozen=True, kw_only=True)
class SymbolEntry:
    # as read from the symbol table, before demangling
    section: str  # .symtab or .dynsym
    name: str
    address: Address
    size: int
    type: str  # STT_FUNC, STT_OBJECT, ...

    def __post_init__(self) -> None:
        # nameless entries are skipped while reading
        assert self.name

        assert self.address >= 0
        assert self.size >= 0


@dataclass(frozen=True, kw_only=True)
class Symbol:
    entry: SymbolEntry
    demangled: str | None  # None - not mangled, or failed to demangle

    @property
    def name(self) -> str:
        return self.demangled if self.demangled is not None else self.entry.name


@dataclass(frozen=True)
class Symbols:
    inner: Collection[Symbol]

    def __post_init__(self) -> None:
        # must be sorted
        assert is_sorted((symbol.entry.address, symbol.entry.name) for symbol in self.inner)

    @cached_property
    def by_raw_name(self) -> Mapping[str, Symbol]:
        # same symbol may be present in both tables, first occurrence wins
        by_raw_name = dict[str, Symbol]()
        for symbol in self.inner:
            by_raw_name.setdefault(symbol.entry.name, symbol)
        return by_raw_name

    @cached_property
    def demangled_count(self) -> int:
        return sum(1 for symbol in self.inner if symbol.demangled is not None)
