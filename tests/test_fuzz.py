import random

import pytest

from itanium_demangle.errors import DemangleError
from itanium_demangle.parse import demangle

# letters the grammar cares about, random bytes would mostly fail on the first one
_ALPHABET = "_0123456789ENIJLSTXDZKVROPFAMCGUBYabcdefghijklmnopqrstuvwxyz."

_SEEDS = [
    "_ZNSt6vectorIiSaIiEE9push_backERKi",
    "_ZZ4mainENKUlvE_clEv",
    "_Z1fIiEDTcl1gfp_EET_",
    "_Z1fIJidEEvDpT_",
    "_ZN2n11fEPNS_1bEPNS_2n21cEPNS2_2n31dE",
    "_ZTv0_n24_N3Foo3barEv",
    "_Z1fIiEvDTsr1A1BE1xE",
    "_Z1fM3FooFviE",
    "_ZN1AcvT_IiEEv",
]


def _check(symbol: str) -> None:
    # must terminate with text or a categorized error, nothing else
    try:
        demangled = demangle(symbol)
    except DemangleError:
        return

    assert isinstance(demangled, str)


@pytest.mark.parametrize("seed", range(4))
def test_random_symbols(seed: int):
    random_ = random.Random(seed)

    for _ in range(500):
        length = random_.randint(0, 48)
        _check("_Z" + "".join(random_.choice(_ALPHABET) for _ in range(length)))


@pytest.mark.parametrize("seed", range(4))
def test_mutated_symbols(seed: int):
    random_ = random.Random(seed)

    for _ in range(500):
        symbol = list(random_.choice(_SEEDS))
        for _ in range(random_.randint(1, 3)):
            position = random_.randrange(2, len(symbol) + 1)
            match random_.randrange(3):
                case 0:
                    symbol.insert(position, random_.choice(_ALPHABET))
                case 1 if position < len(symbol):
                    del symbol[position]
                case _ if position < len(symbol):
                    symbol[position] = random_.choice(_ALPHABET)
        _check("".join(symbol))


def test_truncated_symbols():
    for symbol in _SEEDS:
        for end in range(2, len(symbol)):
            _check(symbol[:end])
