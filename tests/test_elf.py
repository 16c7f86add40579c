import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from itanium_demangle.elf.__main__ import app
from itanium_demangle.elf.model import SymbolEntry, Symbols, symbol_format
from itanium_demangle.elf.parse import entries_demangle, entries_read, parse


# duck-typed stand-ins for pyelftools objects, only the parts being read
@dataclass
class _ElfSymbol:
    name: str
    entry: Mapping[str, Any]


@dataclass
class _ElfSymbolTableSection:
    symbols: list[_ElfSymbol]

    def iter_symbols(self) -> Iterator[_ElfSymbol]:
        return iter(self.symbols)


@dataclass
class _ElfFile:
    sections: dict[str, _ElfSymbolTableSection] = field(default_factory=dict)

    def get_section_by_name(self, name: str) -> _ElfSymbolTableSection | None:
        return self.sections.get(name)


def _elf_symbol(name: str, address: int, size: int = 0, type_: str = "STT_FUNC") -> _ElfSymbol:
    return _ElfSymbol(
        name=name,
        entry={"st_value": address, "st_size": size, "st_info": {"type": type_, "bind": "STB_GLOBAL"}},
    )


def _entry(name: str, address: int, section: str = ".symtab") -> SymbolEntry:
    return SymbolEntry(section=section, name=name, address=address, size=4, type="STT_FUNC")


def test_symbol_format():
    assert symbol_format(0x1234, "main") == "0x00001234 (`main`)"


def test_entries_read():
    elffile = _ElfFile(
        sections={
            ".symtab": _ElfSymbolTableSection([_elf_symbol("", 0), _elf_symbol("_Z1fv", 0x100, 8)]),
            ".dynsym": _ElfSymbolTableSection([_elf_symbol("counter", 0x200, 4, "STT_OBJECT")]),
        }
    )

    entries = list(entries_read(elffile))  # type: ignore

    assert entries == [
        SymbolEntry(section=".symtab", name="_Z1fv", address=0x100, size=8, type="STT_FUNC"),
        SymbolEntry(section=".dynsym", name="counter", address=0x200, size=4, type="STT_OBJECT"),
    ]


def test_entries_demangle():
    symbols = entries_demangle(
        [
            _entry("main", 0x1000),
            _entry("_ZN3Foo3barEv", 0x0800),
            _entry("_Z1fP1AS1_", 0x2000),
        ],
        None,
    )

    assert [symbol.entry.name for symbol in symbols.inner] == ["_ZN3Foo3barEv", "main", "_Z1fP1AS1_"]
    assert [symbol.demangled for symbol in symbols.inner] == ["Foo::bar()", None, None]
    assert [symbol.name for symbol in symbols.inner] == ["Foo::bar()", "main", "_Z1fP1AS1_"]
    assert symbols.demangled_count == 1


def test_entries_demangle_warns_about_failures(caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING):
        entries_demangle([_entry("_Z1fP1AS1_", 0x10), _entry("_Z", 0x20)], None)

    assert "2 symbols look mangled" in caplog.text


def test_by_raw_name_keeps_first_occurrence():
    symbols = entries_demangle(
        [
            _entry("_Z1fv", 0x10, ".symtab"),
            _entry("_Z1fv", 0x10, ".dynsym"),
        ],
        None,
    )

    assert len(symbols.inner) == 2
    assert symbols.by_raw_name["_Z1fv"].entry.section == ".symtab"
    assert symbols.by_raw_name["_Z1fv"].name == "f()"


def test_parse_without_symbol_tables(caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING):
        symbols = parse(_ElfFile(), None)  # type: ignore

    assert not symbols.inner
    assert "No symbols found" in caplog.text


def test_lookup(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture):
    def parse_path(elf_path: Path, config_path: Path | None) -> Symbols:
        return entries_demangle([_entry("_Z1fv", 0x10), _entry("main", 0x20)], None)

    monkeypatch.setattr("itanium_demangle.elf.__main__.parse_path", parse_path)

    with caplog.at_level(logging.WARNING):
        result = CliRunner().invoke(app, ["lookup", "a.out", "_Z1fv", "main", "_Z1gv"])

    assert result.exit_code == 1
    lines = result.stdout.splitlines()
    assert "0x00000010 (`f()`)" in lines
    assert "0x00000020 (`main`)" in lines
    assert "Symbol `_Z1gv` not found." in caplog.text
