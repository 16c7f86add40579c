# side-effect module to be used within __main__.py

import logging
from functools import cache

from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.text import Text
from rich.traceback import install

console = Console()

install(
    console=console,
)

logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            markup=False,
        )
    ],
)
logging.getLogger("itanium_demangle").setLevel(logging.INFO)
logging.getLogger("__main__").setLevel(logging.DEBUG)


@cache
def symbol_name_format(raw: str, demangled: str | None) -> Text:
    # names left as is (plain c, or failed to demangle) are dimmed
    if demangled is None:
        return Text(
            raw,
            style=Style(
                dim=True,
            ),
        )

    # highlight everything before the parameter list, it's what people search for
    # NOTE: operator() and function pointer return types make this a guess, it's cosmetic only
    head, parenthesis, tail = demangled.partition("(")
    return Text(
        head,
        style=Style(
            bold=True,
        ),
    ) + Text(parenthesis + tail)
