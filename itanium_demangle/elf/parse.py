from collections.abc import Iterable, Iterator, Mapping
from logging import getLogger
from pathlib import Path
from typing import Any, cast

from elftools.elf.elffile import ELFFile
from elftools.elf.sections import Symbol as ElfSymbol
from elftools.elf.sections import SymbolTableSection

from ..config import Config
from ..config import load as config_load
from ..errors import DemangleError, NotMangled
from ..parse import demangle
from .model import Symbol, SymbolEntry, Symbols, symbol_format

_logger = getLogger(__name__)

_SYMBOL_TABLE_SECTION_NAMES = (".symtab", ".dynsym")


def parse_path(elf_path: Path, config_path: Path | None) -> Symbols:
    with elf_path.open("rb") as elf_file:
        elffile = ELFFile(elf_file)  # type: ignore

        config = config_load(config_path) if config_path is not None else None

        symbols = parse(elffile, config)

    return symbols


def parse(elffile: ELFFile, config: Config | None) -> Symbols:
    entries = list(entries_read(elffile))
    if not entries:
        _logger.warning(
            "No symbols found. Most likely the elf was stripped, both `%s` sections are missing or empty.",
            "` and `".join(_SYMBOL_TABLE_SECTION_NAMES),
        )

    return entries_demangle(entries, config)


def entries_read(elffile: ELFFile) -> Iterator[SymbolEntry]:
    for section_name in _SYMBOL_TABLE_SECTION_NAMES:
        section = cast(
            SymbolTableSection | None,
            elffile.get_section_by_name(section_name),  # type: ignore
        )
        if section is None:
            continue

        for symbol in cast(Iterator[ElfSymbol], section.iter_symbols()):  # type: ignore
            name = cast(str, symbol.name)

            # null symbol, section symbols etc
            if not name:
                continue

            entry = cast(Mapping[str, Any], symbol.entry)
            info = cast(Mapping[str, Any], entry["st_info"])

            yield SymbolEntry(
                section=section_name,
                name=name,
                address=cast(int, entry["st_value"]),
                size=cast(int, entry["st_size"]),
                type=cast(str, info["type"]),
            )


def entries_demangle(entries: Iterable[SymbolEntry], config: Config | None) -> Symbols:
    if config is None:
        config = Config.default()

    symbols = list[Symbol]()
    failures = 0

    for entry in entries:
        demangled: str | None
        try:
            demangled = demangle(entry.name, config)
        except NotMangled:
            # plain c symbols, labels, etc
            demangled = None
        except DemangleError as exception:
            _logger.debug("Unable to demangle %s: %s", symbol_format(entry.address, entry.name), exception)
            failures += 1
            demangled = None

        symbols.append(Symbol(entry=entry, demangled=demangled))

    if failures:
        _logger.warning("%d symbols look mangled, but could not be demangled.", failures)

    symbols.sort(key=lambda symbol: (symbol.entry.address, symbol.entry.name))

    return Symbols(symbols)
