from logging import getLogger
from pathlib import Path
from typing import Annotated

from rich.panel import Panel
from rich.table import Column, Table
from rich.text import Text
from typer import Argument, Exit, Option, Typer

from .._cli import console, symbol_name_format
from .model import symbol_format
from .parse import parse_path

_logger = getLogger(__name__)

app = Typer()


@app.command()
def symbols(elf_path: Path, config_path: Annotated[Path | None, Argument()] = None) -> None:
    with console.status("Parsing..."):
        symbols_ = parse_path(elf_path, config_path)

    table = Table(
        Column("Address"),
        Column("Size"),
        Column("Type"),
        Column("Section"),
        Column(
            "Name",
            overflow="fold",
            no_wrap=False,
        ),
        title="Symbols",
    )

    for symbol in symbols_.inner:
        table.add_row(
            Text(f"0x{symbol.entry.address:08X}"),
            Text(f"{symbol.entry.size}"),
            Text(symbol.entry.type),
            Text(symbol.entry.section),
            symbol_name_format(symbol.entry.name, symbol.demangled),
        )

    console.print(table)

    console.print(
        Panel(
            Text(f"{symbols_.demangled_count} / {len(symbols_.inner)}"),
            title="Demangled symbols",
            style="green",
        )
    )


@app.command()
def lookup(
    elf_path: Path,
    names: Annotated[list[str], Argument(help="Raw symbol table names.")],
    config_path: Annotated[Path | None, Option("--config")] = None,
) -> None:
    symbols_ = parse_path(elf_path, config_path)

    missing = 0
    for name in names:
        symbol = symbols_.by_raw_name.get(name)
        if symbol is None:
            _logger.warning("Symbol `%s` not found.", name)
            missing += 1
            continue

        console.print(Text(symbol_format(symbol.entry.address, symbol.name)), soft_wrap=True)

    if missing:
        raise Exit(1)


if __name__ == "__main__":
    app()
