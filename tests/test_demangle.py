import pytest

from itanium_demangle.config import Config
from itanium_demangle.errors import (
    BadBackReference,
    BadTemplateParamReference,
    DemangleError,
    MalformedMangledName,
    NotMangled,
    NotMangledName,
    UnexpectedEnd,
    UnexpectedToken,
    UnsupportedExtension,
)
from itanium_demangle.parse import demangle, parse


@pytest.mark.parametrize(
    ("mangled", "demangled"),
    [
        # plain functions and data
        ("_Z1fv", "f()"),
        ("_Z3fooi", "foo(int)"),
        ("_Z1fiz", "f(int, ...)"),
        ("_ZSt4cout", "std::cout"),
        ("_Z1fDiDsDu", "f(char32_t, char16_t, char8_t)"),
        ("_Z1fDF16_", "f(_Float16)"),
        ("_Z1fCd", "f(double _Complex)"),
        ("_Z1fTs1A", "f(struct A)"),
        ("_Z1fDv4_f", "f(float vector[4])"),
        # nested names, members, constructors
        ("_ZN3FooC1Ev", "Foo::Foo()"),
        ("_ZN3FooD0Ev", "Foo::~Foo()"),
        ("_ZNK3Foo3barEv", "Foo::bar() const"),
        ("_ZNO3Foo3barEv", "Foo::bar() &&"),
        ("_ZNKR3Foo3barEv", "Foo::bar() const &"),
        ("_ZN3FooaSERKS_", "Foo::operator=(Foo const&)"),
        ("_ZN3FoonwEm", "Foo::operator new(unsigned long)"),
        ("_Zdlv", "operator delete()"),
        ("_Zli2_xPKc", 'operator"" _x(char const*)'),
        ("_ZN1AcviEv", "A::operator int()"),
        ("_ZN1AcvT_IiEEv", "A::operator int<int>()"),
        ("_ZN12_GLOBAL__N_13fooEv", "(anonymous namespace)::foo()"),
        ("_Z3fooB5cxx11v", "foo[abi:cxx11]()"),
        ("_ZN1AUt_E", "A::{unnamed type#1}"),
        ("_ZDC1a1bE", "[a, b]"),
        # declarators
        ("_Z1fPKc", "f(char const*)"),
        ("_Z1fPFviE", "f(void (*)(int))"),
        ("_Z1fPDoFvvE", "f(void (*)() noexcept)"),
        ("_Z1fPFPFivEvE", "f(int (*(*)())())"),
        ("_Z1fRA3_i", "f(int (&) [3])"),
        ("_Z1fPA10_i", "f(int (*) [10])"),
        ("_Z1fM3FooFviE", "f(void (Foo::*)(int))"),
        ("_Z1fM1AKFvvE", "f(void (A::*)() const)"),
        ("_Z1fM3Fooi", "f(int Foo::*)"),
        # back references
        ("_Z1fP1AS0_", "f(A*, A*)"),
        ("_ZN2n11fEPNS_1bEPNS_2n21cEPNS2_2n31dE", "n1::f(n1::b*, n1::n2::c*, n1::n2::n3::d*)"),
        ("_Z1fSs", "f(std::string)"),
        ("_ZNSt6vectorIiSaIiEE9push_backERKi", "std::vector<int, std::allocator<int> >::push_back(int const&)"),
        ("_ZNSsC1Ev", "std::basic_string<char, std::char_traits<char>, std::allocator<char> >::basic_string()"),
        # templates
        ("_Z1fIiEvT_", "void f<int>(int)"),
        ("_Z1fIRiEvOT_", "void f<int&>(int&)"),
        ("_Z1fIJidEEvDpT_", "void f<int, double>(int, double)"),
        ("_Z1fIJEEvDpT_", "void f<>()"),
        ("_Z1fDpPi", "f((int*)...)"),
        ("_Z1fISt6vectorIiEEvv", "void f<std::vector<int> >()"),
        # local names and closures
        ("_ZZ4mainE5local", "main::local"),
        ("_ZZ1fvE1x", "f()::x"),
        ("_ZZ1fvEs", "f()::string literal"),
        ("_ZZ4mainENKUlvE_clEv", "main::{lambda()#1}::operator()() const"),
        ("_ZZ4mainENKUliE0_clEi", "main::{lambda(int)#2}::operator()(int) const"),
        # special names
        ("_ZTV3Foo", "vtable for Foo"),
        ("_ZTT3Foo", "VTT for Foo"),
        ("_ZTI3Foo", "typeinfo for Foo"),
        ("_ZTS3Foo", "typeinfo name for Foo"),
        ("_ZTH1x", "TLS init function for x"),
        ("_ZTW1x", "TLS wrapper function for x"),
        ("_ZThn8_N3Foo3barEv", "non-virtual thunk to Foo::bar()"),
        ("_ZTv0_n24_N3Foo3barEv", "virtual thunk to Foo::bar()"),
        ("_ZTcv0_n12_h8_N1A1fEv", "covariant return thunk to A::f()"),
        ("_ZGVZ4mainE1x", "guard variable for main::x"),
        ("_ZGR1x_", "reference temporary #0 for x"),
        ("_ZTCN1A1BE0_1C", "construction vtable for C-in-A::B"),
        ("_ZGTt3foov", "transaction clone for foo()"),
        # clone suffixes
        ("_Z3foov.constprop.0", "foo() (.constprop.0)"),
        ("_Z3foov.isra.0.cold", "foo() (.isra.0.cold)"),
        ("__Z1fv", "f()"),
    ],
)
def test_demangle(mangled: str, demangled: str):
    assert demangle(mangled) == demangled


@pytest.mark.parametrize(
    ("mangled", "demangled"),
    [
        ("_Z1fILi5EEvv", "void f<5>()"),
        ("_Z1fILj5EEvv", "void f<5u>()"),
        ("_Z1fILy5EEvv", "void f<5ull>()"),
        ("_Z1fILin5EEvv", "void f<-5>()"),
        ("_Z1fILb1EEvv", "void f<true>()"),
        ("_Z1fILb0EEvv", "void f<false>()"),
        ("_Z1fILc97EEvv", "void f<(char)97>()"),
        ("_Z1fILDnEEvv", "void f<nullptr>()"),
        ("_Z1fILDn0EEvv", "void f<nullptr>()"),
        ("_Z1fILf3fc00000EEvv", "void f<0x1.8p+0f>()"),
        ("_Z1fILd3ff8000000000000EEvv", "void f<0x1.8p+0>()"),
    ],
)
def test_literals(mangled: str, demangled: str):
    assert demangle(mangled) == demangled


@pytest.mark.parametrize(
    ("mangled", "demangled"),
    [
        ("_Z1fIXplLi1ELi2EEEvv", "void f<(1) + (2)>()"),
        ("_Z1fIXgtLi1ELi2EEEvv", "void f<((1) > (2))>()"),
        ("_Z1fIXngLi1EEEvv", "void f<-(1)>()"),
        ("_Z1fIiEDTcl1gfp_EET_", "decltype(g(fp)) f<int>(int)"),
        ("_Z1fIiEvDTsr1A1xE", "void f<int>(decltype(A::x))"),
        ("_Z1fIiEvDTsr1A1BE1xE", "void f<int>(decltype(A::B::x))"),
        ("_Z1fIiEvDTsr1AIPiE1xE", "void f<int>(decltype(A<int*>::x))"),
    ],
)
def test_expressions(mangled: str, demangled: str):
    assert demangle(mangled) == demangled


class TestConfig:
    def test_omit_parameter_list(self):
        config = Config(omit_parameter_list=True)

        assert demangle("_Z1fIiEvT_", config) == "void f<int>"
        assert demangle("_ZNK3Foo3barEv", config) == "Foo::bar"

    def test_omit_return_type(self):
        assert demangle("_Z1fIiEvT_", Config(omit_return_type=True)) == "f<int>(int)"

    def test_upper_literals(self):
        config = Config(literal_case="upper")

        assert demangle("_Z1fILm5EEvv", config) == "void f<5UL>()"
        assert demangle("_Z1fILf3fc00000EEvv", config) == "void f<0X1.8P+0F>()"

    def test_closing_angle_space(self):
        config = Config(closing_angle_space=False)

        assert demangle("_Z1fISt6vectorIiEEvv", config) == "void f<std::vector<int>>()"
        assert (
            demangle("_ZNSsC1Ev", config)
            == "std::basic_string<char, std::char_traits<char>, std::allocator<char>>::basic_string()"
        )


def test_bytes_input():
    assert demangle(b"_Z3fooi") == "foo(int)"


def test_deterministic():
    symbol = "_ZNSt6vectorIiSaIiEE9push_backERKi"

    assert demangle(symbol) == demangle(symbol)


class TestErrors:
    @pytest.mark.parametrize("symbol", ["main", "", "_", "Z1fv", "_z1fv"])
    def test_not_mangled(self, symbol: str):
        with pytest.raises(NotMangledName):
            demangle(symbol)

    @pytest.mark.parametrize("symbol", ["_Z", "_Z1", "_Z3fo", "_ZN3foo"])
    def test_truncated(self, symbol: str):
        with pytest.raises(UnexpectedEnd):
            demangle(symbol)

    @pytest.mark.parametrize("symbol", ["_Z1fv!", "_Z1fv.", "_Z1f.!"])
    def test_trailing_garbage(self, symbol: str):
        with pytest.raises(UnexpectedToken):
            demangle(symbol)

    def test_back_reference_outside_table(self):
        with pytest.raises(BadBackReference) as exception_info:
            demangle("_Z1fP1AS1_")

        assert exception_info.value.index == 2
        assert exception_info.value.size == 2

    def test_back_reference_to_empty_table(self):
        with pytest.raises(BadBackReference):
            demangle("_Z1fS_")

    def test_template_param_without_arguments(self):
        # grammatically fine, only printing needs the argument
        parse("_Z1fT_")

        with pytest.raises(BadTemplateParamReference):
            demangle("_Z1fT_")

    @pytest.mark.parametrize("symbol", ["_Z1fIiEvTL0__", "_Z1fUa9enable_ifIXLi1EEEv"])
    def test_unsupported_extensions(self, symbol: str):
        with pytest.raises(UnsupportedExtension):
            demangle(symbol)

    def test_categories(self):
        with pytest.raises(NotMangled):
            demangle("main")

        with pytest.raises(MalformedMangledName):
            demangle("_Z1fP1AS1_")

        with pytest.raises(DemangleError):
            demangle("_Z")
