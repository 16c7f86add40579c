import pytest

from itanium_demangle.errors import NotMangledName, UnexpectedToken
from itanium_demangle.grammar import model
from itanium_demangle.parse import parse, parse_with_tail
from itanium_demangle.printer.render import render


def test_function():
    symbol = parse("_Z1fv")

    assert symbol.raw == "_Z1fv"
    assert symbol.tree == model.MangledName(
        encoding=model.Encoding(
            name=model.SourceName("f"),
            signature=model.Signature(return_type=None, parameters=()),
        ),
    )


def test_data():
    symbol = parse("_ZSt4cout")

    assert symbol.tree.encoding == model.Encoding(
        name=model.NestedName(prefix=model.SourceName("std"), name=model.SourceName("cout")),
        signature=None,
    )
    # `St` prefixed names are not substitution candidates
    assert symbol.substitutions == ()


def test_member_function_qualifiers():
    encoding = parse("_ZNKR3Foo3barEv").tree.encoding

    assert isinstance(encoding, model.Encoding)
    assert encoding.signature is not None
    assert encoding.signature.cv == model.CvQualifiers.CONST
    assert encoding.signature.ref == model.ReferenceKind.LVALUE


def test_thunk_offsets():
    special_name = parse("_ZTv0_n24_N3Foo3barEv").tree.encoding

    assert isinstance(special_name, model.SpecialName)
    assert special_name.kind == model.SpecialNameKind.VIRTUAL_THUNK
    assert special_name.offsets == (model.CallOffset(offset=0, virtual_offset=-24),)


def test_clone_suffix():
    assert parse("_Z3foov.constprop.0").tree.clone_suffix == ".constprop.0"
    assert parse("_Z3foov").tree.clone_suffix is None


def test_bytes_are_decoded_byte_for_byte():
    assert parse(b"_Z1fv").raw == "_Z1fv"
    assert parse(b"__Z1fv").raw == "__Z1fv"


class TestTail:
    def test_trailing_text(self):
        symbol, tail = parse_with_tail("_ZN5space3fooEibc and some trailing junk")

        assert tail == " and some trailing junk"
        assert symbol.raw == "_ZN5space3fooEibc"
        assert render(symbol.tree) == "space::foo(int, bool, char)"

    def test_clone_suffix_before_tail(self):
        symbol, tail = parse_with_tail("_Z3foov.constprop.0 tail")

        assert symbol.tree.clone_suffix == ".constprop.0"
        assert tail == " tail"

    def test_no_tail(self):
        symbol, tail = parse_with_tail(b"_Z3fooi")

        assert tail == ""
        assert symbol.raw == "_Z3fooi"

    def test_whole_symbol_still_required_by_parse(self):
        with pytest.raises(UnexpectedToken):
            parse("_ZN5space3fooEibc and some trailing junk")

    def test_not_mangled(self):
        with pytest.raises(NotMangledName):
            parse_with_tail("main and more")


class TestSubstitutions:
    def test_order(self):
        symbol = parse("_ZN2n11fEPNS_1bEPNS_2n21cEPNS2_2n31dE")

        assert [render(node) for node in symbol.substitutions] == [
            "n1",
            "n1::b",
            "n1::b*",
            "n1::n2",
            "n1::n2::c",
            "n1::n2::c*",
            "n1::n2::n3",
            "n1::n2::n3::d",
            "n1::n2::n3::d*",
        ]

    def test_entries_are_shared(self):
        symbol = parse("_ZN2n11fEPNS_1bE")

        assert len(symbol.substitutions) == 3
        pointer = symbol.substitutions[2]
        assert isinstance(pointer, model.PointerType)
        assert pointer.pointee is symbol.substitutions[1]

    def test_back_reference_is_same_node(self):
        encoding = parse("_Z1fP1AS0_").tree.encoding

        assert isinstance(encoding, model.Encoding)
        assert encoding.signature is not None
        first, second = encoding.signature.parameters
        assert first is second

    def test_template_name_and_param(self):
        symbol = parse("_Z1fIiEvT_")

        # builtins are never entries
        assert symbol.substitutions == (model.SourceName("f"), model.TemplateParam(0))

    def test_abbreviations_are_not_entries(self):
        symbol = parse("_ZNSsC1Ev")

        assert symbol.substitutions == ()
        encoding = symbol.tree.encoding
        assert isinstance(encoding, model.Encoding)
        assert isinstance(encoding.name, model.NestedName)
        assert encoding.name.prefix == model.SpecialSubstitution(kind=model.StdSubstitution.STRING, expanded=True)

    def test_abandoned_trial_leaves_no_entries(self):
        # `A<int*>` is first read as a qualifier level, that trial fails and is parsed again
        symbol = parse("_Z1fIiEvDTsr1AIPiE1xE")

        assert [render(node) for node in symbol.substitutions] == [
            "f",
            "int*",
            "decltype(A<int*>::x)",
        ]
