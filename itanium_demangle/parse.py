import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from logging import getLogger
from threading import Lock

from .config import Config
from .errors import InputTooLarge, NotMangledName, RecursionLimitExceeded
from .grammar.cursor import Cursor
from .grammar.parse import Context, parse_mangled_name
from .grammar.parse import parse as grammar_parse
from .grammar.substitutions import SubstitutionTable
from .model import Symbol
from .printer.render import render

_logger = getLogger(__name__)

# longest first, `__Z` comes from platforms adding underscore to c symbols
_PREFIXES = ("__Z", "_Z")

# interpreter frames a single level of nesting may take, parser and printer alike
_FRAMES_PER_LEVEL = 6


@dataclass
class _StackReservation:
    # interpreter recursion limit is process wide, raised while any call is running
    lock: Lock = field(default_factory=Lock)
    users: int = 0
    saved: int = 0


_stack_reservation = _StackReservation()


@contextmanager
def _stack_reserved(config: Config) -> Iterator[None]:
    # configured limit must trip before the interpreter one, printing nests up to twice as deep
    with _stack_reservation.lock:
        if _stack_reservation.users == 0:
            _stack_reservation.saved = sys.getrecursionlimit()
        _stack_reservation.users += 1
        sys.setrecursionlimit(
            max(
                sys.getrecursionlimit(),
                _stack_reservation.saved + _FRAMES_PER_LEVEL * 2 * config.recursion_limit,
            )
        )
    try:
        yield
    except RecursionError as exception:
        raise RecursionLimitExceeded(config.recursion_limit) from exception
    finally:
        with _stack_reservation.lock:
            _stack_reservation.users -= 1
            if _stack_reservation.users == 0:
                sys.setrecursionlimit(_stack_reservation.saved)


def _raw(symbol: str | bytes, config: Config) -> tuple[str, str]:
    # byte preserving, symbol tables carry no encoding
    raw = symbol.decode("latin-1") if isinstance(symbol, bytes) else symbol

    if len(raw) > config.input_size_limit:
        raise InputTooLarge(len(raw), config.input_size_limit)

    prefix = next((prefix for prefix in _PREFIXES if raw.startswith(prefix)), None)
    if prefix is None:
        raise NotMangledName(raw)

    return raw, prefix


def parse(symbol: str | bytes, config: Config | None = None) -> Symbol:
    if config is None:
        config = Config.default()

    raw, prefix = _raw(symbol, config)

    context = Context(
        cursor=Cursor(raw=raw, position=len(prefix)),
        substitutions=SubstitutionTable(),
        recursion_limit=config.recursion_limit,
    )
    with _stack_reserved(config):
        tree = grammar_parse(context)

    _logger.debug("Parsed `%s`, %d back reference candidates.", raw, len(context.substitutions))

    return Symbol(raw=raw, tree=tree, substitutions=context.substitutions.snapshot())


def parse_with_tail(symbol: str | bytes, config: Config | None = None) -> tuple[Symbol, str]:
    # for symbols embedded in text, returns the symbol and everything after it
    if config is None:
        config = Config.default()

    raw, prefix = _raw(symbol, config)

    context = Context(
        cursor=Cursor(raw=raw, position=len(prefix)),
        substitutions=SubstitutionTable(),
        recursion_limit=config.recursion_limit,
    )
    with _stack_reserved(config):
        tree = parse_mangled_name(context)

    end = context.cursor.position
    _logger.debug("Parsed `%s`, %d characters left.", raw[:end], len(raw) - end)

    return Symbol(raw=raw[:end], tree=tree, substitutions=context.substitutions.snapshot()), raw[end:]


def demangle(symbol: str | bytes, config: Config | None = None) -> str:
    if config is None:
        config = Config.default()

    symbol_ = parse(symbol, config)

    with _stack_reserved(config):
        demangled = render(symbol_.tree, config)

    return demangled
