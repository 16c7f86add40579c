import sys
from collections.abc import Iterable
from dataclasses import fields
from importlib import metadata
from logging import getLogger
from pathlib import Path
from typing import Annotated, Any

from rich.style import Style
from rich.text import Text
from rich.tree import Tree
from typer import Argument, Exit, Option, Typer

from . import _cli as _  # noqa: F401
from ._cli import console
from .config import Config
from .config import load as config_load
from .elf.__main__ import app as elf
from .errors import DemangleError, NotMangled
from .grammar import model
from .parse import demangle as demangle_
from .parse import parse

_logger = getLogger(__name__)

app = Typer()

app.add_typer(
    elf,
    name="elf",
)


def _config(config_path: Path | None, **overrides: Any) -> Config:
    config = config_load(config_path) if config_path is not None else Config.default()

    # only options given on command line override the file
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if not overrides:
        return config

    return Config.model_validate(config.model_dump() | overrides)


@app.command()
def demangle(
    symbols: Annotated[list[str] | None, Argument(help="Symbols to demangle, read from stdin lines if none given.")] = None,
    config_path: Annotated[Path | None, Option("--config")] = None,
    no_params: Annotated[bool, Option("--no-params", "-p")] = False,
    no_return_type: Annotated[bool, Option("--no-return-type")] = False,
    upper_literals: Annotated[bool, Option("--upper-literals")] = False,
    recursion_limit: Annotated[int | None, Option("--recursion-limit")] = None,
    output_size_limit: Annotated[int | None, Option("--output-size-limit")] = None,
) -> None:
    config = _config(
        config_path,
        omit_parameter_list=True if no_params else None,
        omit_return_type=True if no_return_type else None,
        literal_case="upper" if upper_literals else None,
        recursion_limit=recursion_limit,
        output_size_limit=output_size_limit,
    )

    symbols_: Iterable[str] = symbols if symbols else (line.rstrip("\r\n") for line in sys.stdin)
    for symbol in symbols_:
        print(_demangle_or_raw(symbol.strip(), config))


def _demangle_or_raw(symbol: str, config: Config) -> str:
    try:
        return demangle_(symbol, config)
    except NotMangled:
        return symbol
    except DemangleError as exception:
        _logger.warning("Unable to demangle `%s`: %s", symbol, exception)
        return symbol


@app.command()
def tree(
    symbol: str,
    config_path: Annotated[Path | None, Option("--config")] = None,
    nodes_max: Annotated[int, Option("--nodes-max")] = 256,
) -> None:
    config = _config(config_path)

    try:
        symbol_ = parse(symbol, config)
    except DemangleError as exception:
        _logger.error("Unable to parse `%s`: %s", symbol, exception)
        raise Exit(1) from exception

    # back references make the tree a dag, shared nodes are printed at every use
    nodes_left = nodes_max

    def handle_node(parent: Tree, label: str, node: model.Node) -> None:
        nonlocal nodes_left

        if nodes_left <= 0:
            parent.add(Text("...", style=Style(dim=True)))
            return
        nodes_left -= 1

        attributes = list[str]()
        children = list[tuple[str, model.Node]]()
        for field in fields(node):
            value = getattr(node, field.name)
            if isinstance(value, model.Node):
                children.append((field.name, value))
            elif isinstance(value, tuple) and any(isinstance(item, model.Node) for item in value):
                children.extend((f"{field.name}[{index}]", item) for index, item in enumerate(value))
            else:
                attributes.append(f"{field.name}={value!r}")

        node_tree = parent.add(
            Text(f"{label}: ", style=Style(dim=True))
            + Text(type(node).__name__, style=Style(color="blue", bold=True))
            + Text(f" {" ".join(attributes)}" if attributes else "")
        )
        for child_label, child in children:
            handle_node(node_tree, child_label, child)

    root = Tree(Text(symbol_.raw, style="yellow"))
    handle_node(root, "tree", symbol_.tree)
    console.print(root)

    try:
        console.print(Text(demangle_(symbol, config), style=Style(color="green")))
    except DemangleError as exception:
        _logger.error("Unable to print `%s`: %s", symbol, exception)
        raise Exit(1) from exception


@app.command()
def version() -> None:
    version_ = metadata.version("itanium-demangle")

    print(version_)


if __name__ == "__main__":
    app()
