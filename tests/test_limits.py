import sys
from concurrent.futures import ThreadPoolExecutor

import pytest

from itanium_demangle.config import Config
from itanium_demangle.errors import InputTooLarge, OutputTooLarge, RecursionLimitExceeded
from itanium_demangle.parse import demangle, parse

_SEQ_ID_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _substitution(index: int) -> str:
    # back reference to table entry `index`
    if index == 0:
        return "S_"

    index -= 1
    seq_id = ""
    while True:
        seq_id = _SEQ_ID_DIGITS[index % 36] + seq_id
        index //= 36
        if index == 0:
            break
    return f"S{seq_id}_"


def test_substitution_helper():
    assert _substitution(0) == "S_"
    assert _substitution(1) == "S0_"
    assert _substitution(11) == "SA_"
    assert _substitution(37) == "S10_"


class TestRecursionLimit:
    def test_deep_pointers(self):
        with pytest.raises(RecursionLimitExceeded):
            demangle("_Z1f" + "P" * 1000 + "i")

    def test_deep_templates(self):
        with pytest.raises(RecursionLimitExceeded):
            demangle("_Z1f" + "1AI" * 300 + "i" + "E" * 300 + "v")

    def test_configured_limit(self):
        symbol = "_Z1fPPPPPi"

        assert demangle(symbol) == "f(int*****)"
        with pytest.raises(RecursionLimitExceeded) as exception_info:
            demangle(symbol, Config(recursion_limit=4))

        assert exception_info.value.limit == 4

    def test_largest_configured_limit(self):
        config = Config(recursion_limit=1024)
        interpreter_limit = sys.getrecursionlimit()

        assert demangle("_Z1f" + "P" * 1000 + "i", config) == "f(int" + "*" * 1000 + ")"
        with pytest.raises(RecursionLimitExceeded) as exception_info:
            demangle("_Z1f" + "P" * 1100 + "i", config)

        assert exception_info.value.limit == 1024
        assert sys.getrecursionlimit() == interpreter_limit

    def test_interpreter_limit_restored_after_concurrent_calls(self):
        interpreter_limit = sys.getrecursionlimit()
        symbols = ["_Z1f" + "P" * depth + "i" for depth in range(0, 600, 10)]

        with ThreadPoolExecutor(max_workers=8) as executor:
            demangled = list(executor.map(lambda symbol: demangle(symbol, Config(recursion_limit=1024)), symbols))

        assert demangled == [f"f(int{"*" * depth})" for depth in range(0, 600, 10)]
        assert sys.getrecursionlimit() == interpreter_limit

    def test_printing_depth_through_back_references(self):
        # every parameter is a pointer to the previous one, shallow to parse, deep to print
        symbol = "_Z1fPi" + "".join("P" + _substitution(index) for index in range(40))
        config = Config(recursion_limit=16)

        parse(symbol, config)
        with pytest.raises(RecursionLimitExceeded):
            demangle(symbol, config)


class TestOutputLimit:
    def test_exponential_expansion(self):
        # every parameter is a template over two copies of the previous one
        symbol = "_Z1f1AIS_S_E" + "".join(
            f"S_I{_substitution(index - 1)}{_substitution(index - 1)}E" for index in range(2, 13)
        )
        config = Config(output_size_limit=1000)

        parse(symbol, config)
        with pytest.raises(OutputTooLarge) as exception_info:
            demangle(symbol, config)

        assert exception_info.value.limit == 1000

    def test_within_limit(self):
        assert demangle("_Z3fooi", Config(output_size_limit=64)) == "foo(int)"

        with pytest.raises(OutputTooLarge):
            demangle("_Z3fooi", Config(output_size_limit=4))


class TestInputLimit:
    def test_too_long(self):
        with pytest.raises(InputTooLarge) as exception_info:
            demangle("_Z3foobar", Config(input_size_limit=8))

        assert exception_info.value.size == 9
        assert exception_info.value.limit == 8

    def test_checked_before_prefix(self):
        with pytest.raises(InputTooLarge):
            demangle("x" * 20, Config(input_size_limit=8))
