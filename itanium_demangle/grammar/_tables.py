# fixed-code tables of the itanium c++ abi mangling grammar

from collections.abc import Mapping

from .model import BuiltinType, CtorDtorKind, Operator, OperatorKind, SpecialNameKind, StdSubstitution


def _operators(*operators: tuple[str, str, OperatorKind]) -> Mapping[str, Operator]:
    return {code: Operator(code=code, symbol=symbol, kind=kind) for code, symbol, kind in operators}


OPERATORS = _operators(
    ("nw", "new", OperatorKind.NEW),
    ("na", "new[]", OperatorKind.NEW),
    ("dl", "delete", OperatorKind.DELETE),
    ("da", "delete[]", OperatorKind.DELETE),
    ("aw", "co_await", OperatorKind.PREFIX),
    ("ps", "+", OperatorKind.PREFIX),
    ("ng", "-", OperatorKind.PREFIX),
    ("ad", "&", OperatorKind.PREFIX),
    ("de", "*", OperatorKind.PREFIX),
    ("co", "~", OperatorKind.PREFIX),
    ("nt", "!", OperatorKind.PREFIX),
    ("pl", "+", OperatorKind.BINARY),
    ("mi", "-", OperatorKind.BINARY),
    ("ml", "*", OperatorKind.BINARY),
    ("dv", "/", OperatorKind.BINARY),
    ("rm", "%", OperatorKind.BINARY),
    ("an", "&", OperatorKind.BINARY),
    ("or", "|", OperatorKind.BINARY),
    ("eo", "^", OperatorKind.BINARY),
    ("aS", "=", OperatorKind.BINARY),
    ("pL", "+=", OperatorKind.BINARY),
    ("mI", "-=", OperatorKind.BINARY),
    ("mL", "*=", OperatorKind.BINARY),
    ("dV", "/=", OperatorKind.BINARY),
    ("rM", "%=", OperatorKind.BINARY),
    ("aN", "&=", OperatorKind.BINARY),
    ("oR", "|=", OperatorKind.BINARY),
    ("eO", "^=", OperatorKind.BINARY),
    ("ls", "<<", OperatorKind.BINARY),
    ("rs", ">>", OperatorKind.BINARY),
    ("lS", "<<=", OperatorKind.BINARY),
    ("rS", ">>=", OperatorKind.BINARY),
    ("eq", "==", OperatorKind.BINARY),
    ("ne", "!=", OperatorKind.BINARY),
    ("lt", "<", OperatorKind.BINARY),
    ("gt", ">", OperatorKind.BINARY),
    ("le", "<=", OperatorKind.BINARY),
    ("ge", ">=", OperatorKind.BINARY),
    ("ss", "<=>", OperatorKind.BINARY),
    ("aa", "&&", OperatorKind.BINARY),
    ("oo", "||", OperatorKind.BINARY),
    ("cm", ",", OperatorKind.BINARY),
    ("pm", "->*", OperatorKind.BINARY),
    ("pp", "++", OperatorKind.POSTFIX),
    ("mm", "--", OperatorKind.POSTFIX),
    ("pt", "->", OperatorKind.MEMBER),
    ("cl", "()", OperatorKind.CALL),
    ("ix", "[]", OperatorKind.INDEX),
    ("qu", "?", OperatorKind.CONDITIONAL),
)

BUILTIN_TYPES: Mapping[str, BuiltinType] = {
    code: BuiltinType(name)
    for code, name in (
        ("v", "void"),
        ("w", "wchar_t"),
        ("b", "bool"),
        ("c", "char"),
        ("a", "signed char"),
        ("h", "unsigned char"),
        ("s", "short"),
        ("t", "unsigned short"),
        ("i", "int"),
        ("j", "unsigned int"),
        ("l", "long"),
        ("m", "unsigned long"),
        ("x", "long long"),
        ("y", "unsigned long long"),
        ("n", "__int128"),
        ("o", "unsigned __int128"),
        ("f", "float"),
        ("d", "double"),
        ("e", "long double"),
        ("g", "__float128"),
        ("z", "..."),
        ("Dd", "decimal64"),
        ("De", "decimal128"),
        ("Df", "decimal32"),
        ("Dh", "half"),
        ("Di", "char32_t"),
        ("Ds", "char16_t"),
        ("Du", "char8_t"),
        ("Da", "auto"),
        ("Dc", "decltype(auto)"),
        ("Dn", "std::nullptr_t"),
    )
}

CTOR_DTOR_KINDS: Mapping[str, CtorDtorKind] = {kind.value: kind for kind in CtorDtorKind}

STD_SUBSTITUTIONS: Mapping[str, StdSubstitution] = {kind.value: kind for kind in StdSubstitution}

SPECIAL_NAME_KINDS: Mapping[str, SpecialNameKind] = {kind.value: kind for kind in SpecialNameKind}

ELABORATED_TYPE_KEYWORDS: Mapping[str, str] = {
    "s": "struct",
    "u": "union",
    "e": "enum",
}

CAST_KEYWORDS: Mapping[str, str] = {
    "dc": "dynamic_cast",
    "sc": "static_cast",
    "cc": "const_cast",
    "rc": "reinterpret_cast",
}

# operators on types and on expressions, keyed by code
TYPE_OPERATOR_KEYWORDS: Mapping[str, str] = {
    "st": "sizeof",
    "at": "alignof",
    "ti": "typeid",
}
EXPRESSION_OPERATOR_KEYWORDS: Mapping[str, str] = {
    "sz": "sizeof",
    "az": "alignof",
    "te": "typeid",
    "nx": "noexcept",
}

# class names used by constructors and destructors declared right in an abbreviated scope
STD_SUBSTITUTION_CLASS_NAMES: Mapping[StdSubstitution, str] = {
    StdSubstitution.ALLOCATOR: "allocator",
    StdSubstitution.BASIC_STRING: "basic_string",
    StdSubstitution.STRING: "basic_string",
    StdSubstitution.ISTREAM: "basic_istream",
    StdSubstitution.OSTREAM: "basic_ostream",
    StdSubstitution.IOSTREAM: "basic_iostream",
}
