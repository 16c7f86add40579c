# recursive descent over the itanium c++ abi mangling grammar
# https://itanium-cxx-abi.github.io/cxx-abi/abi.html#mangling

import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace

from ..errors import MalformedMangledName, RecursionLimitExceeded, UnexpectedEnd, UnexpectedToken, UnsupportedExtension
from . import model
from ._tables import (
    BUILTIN_TYPES,
    CAST_KEYWORDS,
    CTOR_DTOR_KINDS,
    ELABORATED_TYPE_KEYWORDS,
    EXPRESSION_OPERATOR_KEYWORDS,
    OPERATORS,
    SPECIAL_NAME_KINDS,
    STD_SUBSTITUTION_CLASS_NAMES,
    STD_SUBSTITUTIONS,
    TYPE_OPERATOR_KEYWORDS,
)
from .cursor import Cursor, is_digit, is_lower
from .substitutions import SubstitutionTable

# `.constprop.0`, `.isra.1`, `.cold`, `.llvm.1234`, ...
_CLONE_SUFFIX_REGEX = re.compile(r"(?:\.[A-Za-z_][A-Za-z0-9_]*|\.[0-9]+)+")

_ANONYMOUS_NAMESPACE_REGEX = re.compile(r"_GLOBAL_[._$]N")
_ANONYMOUS_NAMESPACE = model.SourceName("(anonymous namespace)")

_INTEGER_LITERAL_REGEX = re.compile(r"n?[0-9]+")
_FLOAT_LITERAL_REGEX = re.compile(r"[0-9a-fA-F]+(?:_[0-9a-fA-F]+)?")
_FLOATING_TYPE_NAMES = frozenset(("float", "double", "long double", "__float128", "half"))

_STD = model.SourceName("std")

_TYPE_START_CHARACTERS = frozenset("rVKUPROCGFAMTDuSNZ0123456789") | frozenset(
    code for code in BUILTIN_TYPES if len(code) == 1
)


@dataclass(kw_only=True)
class Context:
    cursor: Cursor
    substitutions: SubstitutionTable
    recursion_limit: int

    depth: int = 0

    # cleared while parsing conversion operator type, trailing template arguments belong to the operator
    template_args_allowed: bool = True

    # set during trial parse, trials never nest
    speculative: bool = False

    def __post_init__(self) -> None:
        assert self.recursion_limit >= 1


@dataclass(kw_only=True)
class _NameState:
    # collected while parsing the name of an encoding, decides how its signature is read
    cv: model.CvQualifiers = model.CvQualifiers.NONE
    ref: model.ReferenceKind | None = None
    ends_with_template_args: bool = False
    ctor_dtor_conversion: bool = False


@contextmanager
def _nested(context: Context) -> Iterator[None]:
    context.depth += 1
    try:
        if context.depth > context.recursion_limit:
            raise RecursionLimitExceeded(context.recursion_limit)
        yield
    finally:
        context.depth -= 1


def _join(prefix: model.Node | None, name: model.Node) -> model.Node:
    if prefix is None:
        return name

    return model.NestedName(prefix=prefix, name=name)


def _is_end_of_encoding(cursor: Cursor) -> bool:
    # parameter lists end where no type can start (`E`, `.`, trailing text)
    return cursor.peek() not in _TYPE_START_CHARACTERS


def parse(context: Context) -> model.MangledName:
    # cursor is expected right after the `_Z` prefix, the whole input must be consumed
    cursor = context.cursor

    mangled_name = parse_mangled_name(context)

    if not cursor.at_end():
        raise cursor.unexpected("end of symbol")

    return mangled_name


def parse_mangled_name(context: Context) -> model.MangledName:
    # stops right after the symbol, whatever follows is left to the caller
    cursor = context.cursor

    encoding = parse_encoding(context)

    clone_suffix: str | None = None
    match_ = _CLONE_SUFFIX_REGEX.match(cursor.raw, cursor.position)
    if match_ is not None:
        clone_suffix = cursor.take(len(match_.group(0)), "clone suffix")

    return model.MangledName(encoding=encoding, clone_suffix=clone_suffix)


# encodings


def parse_encoding(context: Context) -> model.Node:
    # <encoding> ::= <function name> <bare-function-type>
    #            ::= <data name>
    #            ::= <special-name>
    with _nested(context):
        cursor = context.cursor

        if cursor.peek() in ("T", "G"):
            return parse_special_name(context)

        state = _NameState()
        name = parse_name(context, state)

        if _is_end_of_encoding(cursor):
            return model.Encoding(name=name, signature=None)

        if cursor.startswith("Ua9enable_ifI"):
            raise UnsupportedExtension("enable_if attribute", cursor.position)

        # template functions, except constructors, destructors and conversions, encode return type
        return_type: model.Node | None = None
        if state.ends_with_template_args and not state.ctor_dtor_conversion:
            return_type = parse_type(context)

        parameters: list[model.Node] = []
        if not cursor.consume("v"):
            while True:
                parameters.append(parse_type(context))
                if _is_end_of_encoding(cursor):
                    break

        signature = model.Signature(
            return_type=return_type,
            parameters=tuple(parameters),
            cv=state.cv,
            ref=state.ref,
        )
        return model.Encoding(name=name, signature=signature)


def parse_special_name(context: Context) -> model.Node:
    with _nested(context):
        cursor = context.cursor
        start = cursor.position

        if cursor.consume("GR"):
            # GR <object name> [<seq-id>] _
            name = parse_name(context)
            number = 0
            if not cursor.consume("_"):
                number = _parse_seq_id(context, "reference temporary number") + 1
                cursor.expect("_", "reference temporary number")
            return model.ReferenceTemporary(name=name, number=number)

        if cursor.consume("TC"):
            # TC <complete type> <offset number> _ <base type>
            complete = parse_type(context)
            cursor.number("construction vtable offset")
            cursor.expect("_", "construction vtable offset")
            base = parse_type(context)
            return model.ConstructionVtable(complete=complete, base=base)

        code = cursor.raw[start : start + 3]
        kind = SPECIAL_NAME_KINDS.get(code)
        if kind is None:
            code = code[:2]
            kind = SPECIAL_NAME_KINDS.get(code)
        if kind is None:
            if len(code) < 2:
                raise UnexpectedEnd("special name", len(cursor.raw))
            raise UnexpectedToken("special name", start, code)
        cursor.take(len(code), "special name")

        target: model.Node
        offsets: tuple[model.CallOffset, ...] = ()
        match kind:
            case (
                model.SpecialNameKind.VTABLE
                | model.SpecialNameKind.VTT
                | model.SpecialNameKind.TYPEINFO
                | model.SpecialNameKind.TYPEINFO_NAME
            ):
                target = parse_type(context)
            case model.SpecialNameKind.TLS_INIT | model.SpecialNameKind.TLS_WRAPPER | model.SpecialNameKind.GUARD_VARIABLE:
                target = parse_name(context)
            case model.SpecialNameKind.TEMPLATE_PARAM_OBJECT:
                target = parse_template_arg(context)
            case (
                model.SpecialNameKind.HIDDEN_ALIAS
                | model.SpecialNameKind.TRANSACTION_CLONE
                | model.SpecialNameKind.NON_TRANSACTION_CLONE
            ):
                target = parse_encoding(context)
            case model.SpecialNameKind.NON_VIRTUAL_THUNK:
                offsets = (_parse_call_offset(context, "h"),)
                target = parse_encoding(context)
            case model.SpecialNameKind.VIRTUAL_THUNK:
                offsets = (_parse_call_offset(context, "v"),)
                target = parse_encoding(context)
            case model.SpecialNameKind.COVARIANT_THUNK:
                offsets = (
                    _parse_call_offset(context, cursor.next("call offset")),
                    _parse_call_offset(context, cursor.next("call offset")),
                )
                target = parse_encoding(context)

        return model.SpecialName(kind=kind, target=target, offsets=offsets)


def _parse_call_offset(context: Context, kind: str) -> model.CallOffset:
    # h <nv-offset> _
    # v <offset> _ <virtual offset> _
    cursor = context.cursor

    match kind:
        case "h":
            offset = cursor.number("call offset")
            cursor.expect("_", "call offset")
            return model.CallOffset(offset=offset)
        case "v":
            offset = cursor.number("call offset")
            cursor.expect("_", "call offset")
            virtual_offset = cursor.number("virtual call offset")
            cursor.expect("_", "virtual call offset")
            return model.CallOffset(offset=offset, virtual_offset=virtual_offset)

    raise UnexpectedToken("call offset", cursor.position - 1, kind)


def _parse_seq_id(context: Context, production: str) -> int:
    # base 36, digits and upper case letters
    cursor = context.cursor
    start = cursor.position

    value = 0
    while (character := cursor.peek()) is not None and (is_digit(character) or "A" <= character <= "Z"):
        value = value * 36 + int(character, 36)
        cursor.position += 1

    if cursor.position == start:
        raise cursor.unexpected(production)

    return value


def _parse_discriminator(context: Context) -> None:
    # _ <digit> or __ <number> _, optional
    cursor = context.cursor

    if cursor.peek() == "_" and is_digit(cursor.peek(1)):
        cursor.take(2, "discriminator")
    elif cursor.startswith("__") and is_digit(cursor.peek(2)):
        cursor.take(2, "discriminator")
        cursor.digits("discriminator")
        cursor.expect("_", "discriminator")


def _parse_number_suffix(context: Context, production: str) -> int:
    # [<nonnegative number>] _, 1-based as printed
    cursor = context.cursor

    if cursor.consume("_"):
        return 1

    number = cursor.unsigned(production)
    cursor.expect("_", production)
    return number + 2


def _parse_identifier(context: Context) -> str:
    cursor = context.cursor
    start = cursor.position

    length = cursor.unsigned("identifier length")
    if length == 0:
        raise UnexpectedToken("identifier length", start, "0")

    return cursor.take(length, "identifier")


# names


def parse_name(context: Context, state: _NameState | None = None) -> model.Node:
    # <name> ::= <nested-name>
    #        ::= <unscoped-name>
    #        ::= <unscoped-template-name> <template-args>
    #        ::= <local-name>
    with _nested(context):
        cursor = context.cursor

        match cursor.peek():
            case "N":
                return parse_nested_name(context, state)
            case "Z":
                return parse_local_name(context, state)
            case "S" if cursor.peek(1) != "t":
                substitution = parse_substitution(context)
                if cursor.peek() != "I":
                    # only abbreviations are names on their own, other entries need template arguments
                    if not isinstance(substitution, model.SpecialSubstitution):
                        raise cursor.unexpected("template arguments")
                    return substitution
                arguments = parse_template_args(context)
                if state is not None:
                    state.ends_with_template_args = True
                return model.TemplateName(name=substitution, arguments=arguments)

        name = parse_unscoped_name(context, state)
        if cursor.peek() == "I":
            context.substitutions.append(name)
            arguments = parse_template_args(context)
            if state is not None:
                state.ends_with_template_args = True
            return model.TemplateName(name=name, arguments=arguments)

        return name


def parse_unscoped_name(context: Context, state: _NameState | None) -> model.Node:
    # <unscoped-name> ::= [St] [L] <unqualified-name>
    cursor = context.cursor

    if cursor.consume("St"):
        cursor.consume("L")
        return model.NestedName(prefix=_STD, name=parse_unqualified_name(context, state))

    cursor.consume("L")
    return parse_unqualified_name(context, state)


def parse_nested_name(context: Context, state: _NameState | None) -> model.Node:
    # N [<CV-qualifiers>] [<ref-qualifier>] <prefix> <unqualified-name> E
    # N [<CV-qualifiers>] [<ref-qualifier>] <template-prefix> <template-args> E
    with _nested(context):
        cursor = context.cursor
        cursor.expect("N", "nested name")

        cv = parse_cv_qualifiers(context)
        ref: model.ReferenceKind | None = None
        if cursor.consume("R"):
            ref = model.ReferenceKind.LVALUE
        elif cursor.consume("O"):
            ref = model.ReferenceKind.RVALUE
        if state is not None:
            state.cv = cv
            state.ref = ref

        so_far: model.Node | None = None
        if cursor.consume("St"):
            so_far = _STD

        while not cursor.consume("E"):
            cursor.consume("L")

            # data member initializer scope of a closure, nothing to print
            if cursor.consume("M"):
                if so_far is None:
                    raise UnexpectedToken("nested name prefix", cursor.position - 1, "M")
                continue

            if state is not None:
                state.ends_with_template_args = False

            match cursor.peek():
                case "I":
                    if so_far is None:
                        raise cursor.unexpected("nested name prefix")
                    so_far = model.TemplateName(name=so_far, arguments=parse_template_args(context))
                    if state is not None:
                        state.ends_with_template_args = True
                case "T":
                    so_far = _join(so_far, parse_template_param(context))
                case "D" if cursor.peek(1) in ("t", "T"):
                    so_far = _join(so_far, parse_decltype(context))
                case "S":
                    if so_far is not None:
                        raise cursor.unexpected("nested name component")
                    # already a table entry
                    so_far = parse_substitution(context)
                    continue
                case "C" | "D" if so_far is not None and not cursor.startswith("DC"):
                    name = parse_abi_tags(context, parse_ctor_dtor_name(context, so_far, state))
                    if isinstance(so_far, model.SpecialSubstitution):
                        so_far = replace(so_far, expanded=True)
                    so_far = _join(so_far, name)
                case _:
                    so_far = _join(so_far, parse_unqualified_name(context, state))

            # the complete name is not a prefix of anything
            if cursor.peek() != "E":
                context.substitutions.append(so_far)

        if so_far is None:
            raise UnexpectedToken("nested name", cursor.position - 1, "E")

        return so_far


def parse_local_name(context: Context, state: _NameState | None) -> model.Node:
    # Z <function encoding> E <entity name> [<discriminator>]
    # Z <function encoding> E s [<discriminator>]
    # Z <function encoding> Ed [<parameter number>] _ <entity name>
    with _nested(context):
        cursor = context.cursor
        cursor.expect("Z", "local name")

        if cursor.peek() in ("T", "G"):
            raise cursor.unexpected("function encoding")
        encoding = parse_encoding(context)
        assert isinstance(encoding, model.Encoding)
        cursor.expect("E", "local name")

        if cursor.consume("s"):
            _parse_discriminator(context)
            return model.LocalName(encoding=encoding, entity=model.StringLiteralName())

        if cursor.consume("d"):
            if not cursor.consume("_"):
                cursor.digits("default argument number")
                cursor.expect("_", "default argument number")
            return model.LocalName(encoding=encoding, entity=parse_name(context, state))

        entity = parse_name(context, state)
        _parse_discriminator(context)
        return model.LocalName(encoding=encoding, entity=entity)


def parse_unqualified_name(context: Context, state: _NameState | None) -> model.Node:
    # <unqualified-name> ::= <operator-name> [<abi-tags>]
    #                    ::= <source-name> [<abi-tags>]
    #                    ::= <unnamed-type-name> [<abi-tags>]
    #                    ::= DC <source-name>+ E
    with _nested(context):
        cursor = context.cursor
        character = cursor.peek()

        name: model.Node
        if is_digit(character):
            name = parse_source_name(context)
        elif character == "U":
            name = parse_unnamed_type_name(context)
        elif cursor.startswith("DC"):
            name = parse_structured_binding_name(context)
        elif is_lower(character):
            name = parse_operator_name(context, state)
        else:
            raise cursor.unexpected("unqualified name")

        return parse_abi_tags(context, name)


def parse_source_name(context: Context) -> model.SourceName:
    identifier = _parse_identifier(context)
    if _ANONYMOUS_NAMESPACE_REGEX.match(identifier):
        return _ANONYMOUS_NAMESPACE

    return model.SourceName(identifier)


def parse_abi_tags(context: Context, name: model.Node) -> model.Node:
    # <abi-tag>* ::= B <source-name>
    tags: list[str] = []
    while context.cursor.consume("B"):
        tags.append(_parse_identifier(context))

    if not tags:
        return name

    return model.AbiTaggedName(name=name, tags=tuple(tags))


def parse_structured_binding_name(context: Context) -> model.StructuredBindingName:
    cursor = context.cursor
    cursor.expect("DC", "structured binding")

    names = [parse_source_name(context)]
    while not cursor.consume("E"):
        names.append(parse_source_name(context))

    return model.StructuredBindingName(tuple(names))


def parse_operator_name(context: Context, state: _NameState | None) -> model.Node:
    cursor = context.cursor
    start = cursor.position

    code = cursor.take(2, "operator name")
    match code:
        case "cv":
            template_args_allowed = context.template_args_allowed
            context.template_args_allowed = False
            try:
                type_ = parse_type(context)
            finally:
                context.template_args_allowed = template_args_allowed
            if state is not None:
                state.ctor_dtor_conversion = True
            return model.ConversionOperatorName(type_)
        case "li":
            return model.LiteralOperatorName(parse_source_name(context))
        case _ if code[0] == "v" and is_digit(code[1]):
            return model.VendorOperatorName(arity=int(code[1]), name=parse_source_name(context))

    operator = OPERATORS.get(code)
    if operator is None:
        raise UnexpectedToken("operator name", start, code)

    return model.OperatorName(operator)


def _class_name(scope: model.Node) -> model.Node:
    # class name, as spelled by its constructors
    while True:
        match scope:
            case model.NestedName(name=name) | model.TemplateName(name=name) | model.AbiTaggedName(name=name):
                scope = name
            case model.SpecialSubstitution(kind=kind):
                return model.SourceName(STD_SUBSTITUTION_CLASS_NAMES[kind])
            case _:
                return scope


def parse_ctor_dtor_name(context: Context, scope: model.Node, state: _NameState | None) -> model.CtorDtorName:
    # C1..C5, D0..D5, CI1 / CI2 <base class type>
    cursor = context.cursor
    start = cursor.position

    inheriting = cursor.consume("CI")
    if inheriting:
        code = "C" + cursor.next("constructor kind")
    else:
        code = cursor.take(2, "constructor or destructor")

    kind = CTOR_DTOR_KINDS.get(code)
    if kind is None:
        raise UnexpectedToken("constructor or destructor", start, code)

    base: model.Node | None = None
    if inheriting:
        base = parse_type(context)

    if state is not None:
        state.ctor_dtor_conversion = True

    return model.CtorDtorName(kind=kind, name=_class_name(scope), inheriting=base)


def parse_unnamed_type_name(context: Context) -> model.Node:
    # Ut [<number>] _
    # Ul <lambda-sig> E [<number>] _
    cursor = context.cursor
    start = cursor.position
    cursor.expect("U", "unnamed type")

    if cursor.consume("t"):
        return model.UnnamedTypeName(_parse_number_suffix(context, "unnamed type number"))

    if cursor.consume("l"):
        if cursor.peek() == "T" and cursor.peek(1) in ("y", "n", "t", "p"):
            raise UnsupportedExtension("lambda template parameter declaration", cursor.position)

        parameters: list[model.Node] = []
        if not cursor.consume("vE"):
            while not cursor.consume("E"):
                parameters.append(parse_type(context))

        number = _parse_number_suffix(context, "closure number")
        return model.ClosureTypeName(parameters=tuple(parameters), number=number)

    if cursor.peek() == "b":
        raise UnsupportedExtension("block literal", start)

    raise cursor.unexpected("unnamed type")


# substitutions and template parameters


def parse_substitution(context: Context) -> model.Node:
    # S_, S <seq-id> _, Sa, Sb, Ss, Si, So, Sd
    cursor = context.cursor
    start = cursor.position
    cursor.expect("S", "substitution")

    if is_lower(cursor.peek()):
        kind = STD_SUBSTITUTIONS.get(cursor.next("substitution"))
        if kind is None:
            raise UnexpectedToken("substitution", start, cursor.raw[start : cursor.position])
        return model.SpecialSubstitution(kind=kind)

    index = 0
    if not cursor.consume("_"):
        index = _parse_seq_id(context, "substitution") + 1
        cursor.expect("_", "substitution")

    return context.substitutions.resolve(index, start)


def parse_template_param(context: Context) -> model.TemplateParam:
    # T_, T <number> _
    cursor = context.cursor
    start = cursor.position
    cursor.expect("T", "template parameter")

    if cursor.peek() == "L":
        raise UnsupportedExtension("template parameter level", start)
    if cursor.peek() in ("y", "n", "t", "p"):
        raise UnsupportedExtension("template parameter declaration", start)

    if cursor.consume("_"):
        return model.TemplateParam(0)

    index = cursor.unsigned("template parameter")
    cursor.expect("_", "template parameter")
    return model.TemplateParam(index + 1)


def parse_template_args(context: Context) -> model.TemplateArgs:
    # I <template-arg>+ E
    with _nested(context):
        cursor = context.cursor
        cursor.expect("I", "template arguments")

        # arguments of a conversion operator type may again be templates
        template_args_allowed = context.template_args_allowed
        context.template_args_allowed = True
        try:
            arguments: list[model.Node] = []
            while not cursor.consume("E"):
                arguments.append(parse_template_arg(context))
        finally:
            context.template_args_allowed = template_args_allowed

        return model.TemplateArgs(tuple(arguments))


def parse_template_arg(context: Context) -> model.Node:
    # <type>, X <expression> E, <expr-primary>, J <template-arg>* E
    with _nested(context):
        cursor = context.cursor

        match cursor.peek():
            case "X":
                cursor.expect("X", "template argument")
                expression = parse_expression(context)
                cursor.expect("E", "template argument expression")
                return expression
            case "J":
                cursor.expect("J", "template argument pack")
                arguments: list[model.Node] = []
                while not cursor.consume("E"):
                    arguments.append(parse_template_arg(context))
                return model.TemplateArgPack(tuple(arguments))
            case "I":
                # pre abi-4 spelling of argument packs
                return model.TemplateArgPack(parse_template_args(context).arguments)
            case "L":
                return parse_expr_primary(context)

        return parse_type(context)


# types


def parse_cv_qualifiers(context: Context) -> model.CvQualifiers:
    # [r] [V] [K], in this order
    cursor = context.cursor

    cv = model.CvQualifiers.NONE
    if cursor.consume("r"):
        cv |= model.CvQualifiers.RESTRICT
    if cursor.consume("V"):
        cv |= model.CvQualifiers.VOLATILE
    if cursor.consume("K"):
        cv |= model.CvQualifiers.CONST
    return cv


def parse_type(context: Context) -> model.Node:
    with _nested(context):
        cursor = context.cursor
        start = cursor.position
        character = cursor.peek()

        type_: model.Node
        match character:
            case None:
                raise cursor.unexpected("type")
            case "r" | "V" | "K":
                cv = parse_cv_qualifiers(context)
                inner = parse_type(context)
                if isinstance(inner, model.FunctionType):
                    type_ = replace(inner, cv=inner.cv | cv)
                else:
                    type_ = model.QualifiedType(inner=inner, cv=cv)
            case "U":
                cursor.expect("U", "vendor qualifier")
                qualifier = _parse_identifier(context)
                qualifier_arguments = parse_template_args(context) if cursor.peek() == "I" else None
                type_ = model.VendorQualifiedType(
                    inner=parse_type(context),
                    qualifier=qualifier,
                    arguments=qualifier_arguments,
                )
            case "P":
                cursor.expect("P", "pointer")
                type_ = model.PointerType(parse_type(context))
            case "R":
                cursor.expect("R", "reference")
                type_ = model.ReferenceType(referent=parse_type(context), kind=model.ReferenceKind.LVALUE)
            case "O":
                cursor.expect("O", "reference")
                type_ = model.ReferenceType(referent=parse_type(context), kind=model.ReferenceKind.RVALUE)
            case "C":
                cursor.expect("C", "complex type")
                type_ = model.ComplexType(parse_type(context))
            case "G":
                cursor.expect("G", "imaginary type")
                type_ = model.ImaginaryType(parse_type(context))
            case "F":
                type_ = parse_function_type(context)
            case "A":
                type_ = parse_array_type(context)
            case "M":
                cursor.expect("M", "pointer to member")
                class_type = parse_type(context)
                type_ = model.PointerToMemberType(class_type=class_type, member_type=parse_type(context))
            case "T":
                keyword = ELABORATED_TYPE_KEYWORDS.get(cursor.peek(1) or "")
                if keyword is not None:
                    cursor.take(2, "elaborated type")
                    type_ = model.ElaboratedType(keyword=keyword, name=parse_name(context))
                else:
                    type_ = parse_template_param(context)
                    if context.template_args_allowed and cursor.peek() == "I":
                        context.substitutions.append(type_)
                        type_ = model.TemplateName(name=type_, arguments=parse_template_args(context))
            case "D":
                match cursor.peek(1):
                    case "p":
                        cursor.take(2, "pack expansion")
                        type_ = model.PackExpansion(parse_type(context))
                    case "t" | "T":
                        type_ = parse_decltype(context)
                    case "v":
                        type_ = parse_vector_type(context)
                    case "o" | "O" | "w" | "x":
                        type_ = parse_function_type(context)
                    case "F":
                        cursor.take(2, "_FloatN type")
                        bits = cursor.digits("_FloatN width")
                        cursor.expect("_", "_FloatN type")
                        return model.BuiltinType(f"_Float{bits}")
                    case _:
                        builtin = BUILTIN_TYPES.get(cursor.raw[start : start + 2])
                        if builtin is None:
                            if cursor.peek(1) is None:
                                raise UnexpectedEnd("type", len(cursor.raw))
                            raise UnexpectedToken("type", start, cursor.raw[start : start + 2])
                        cursor.take(2, "type")
                        return builtin
            case "u":
                cursor.expect("u", "vendor extended type")
                name = _parse_identifier(context)
                type_arguments = parse_template_args(context) if cursor.peek() == "I" else None
                type_ = model.VendorExtendedType(name=name, arguments=type_arguments)
            case "S":
                if cursor.peek(1) == "t":
                    type_ = parse_name(context)
                else:
                    substitution = parse_substitution(context)
                    if not (context.template_args_allowed and cursor.peek() == "I"):
                        return substitution
                    type_ = model.TemplateName(name=substitution, arguments=parse_template_args(context))
            case "N" | "Z":
                type_ = parse_name(context)
            case _ if is_digit(character):
                type_ = parse_name(context)
            case _:
                builtin = BUILTIN_TYPES.get(character)
                if builtin is None:
                    raise cursor.unexpected("type")
                cursor.take(1, "type")
                return builtin

        context.substitutions.append(type_)
        return type_


def parse_function_type(context: Context) -> model.FunctionType:
    # [<exception-spec>] [Dx] F [Y] <return type> <parameter types> [<ref-qualifier>] E
    cursor = context.cursor

    exception_spec: model.NoexceptSpec | model.DynamicExceptionSpec | None = None
    if cursor.consume("Do"):
        exception_spec = model.NoexceptSpec()
    elif cursor.consume("DO"):
        exception_spec = model.NoexceptSpec(parse_expression(context))
        cursor.expect("E", "exception specification")
    elif cursor.consume("Dw"):
        types: list[model.Node] = []
        while not cursor.consume("E"):
            types.append(parse_type(context))
        exception_spec = model.DynamicExceptionSpec(tuple(types))

    transaction_safe = cursor.consume("Dx")
    cursor.expect("F", "function type")
    extern_c = cursor.consume("Y")

    return_type = parse_type(context)

    parameters: list[model.Node] = []
    ref: model.ReferenceKind | None = None
    while not cursor.consume("E"):
        if cursor.consume("v"):
            continue
        if cursor.consume("RE"):
            ref = model.ReferenceKind.LVALUE
            break
        if cursor.consume("OE"):
            ref = model.ReferenceKind.RVALUE
            break
        parameters.append(parse_type(context))

    return model.FunctionType(
        return_type=return_type,
        parameters=tuple(parameters),
        ref=ref,
        exception_spec=exception_spec,
        extern_c=extern_c,
        transaction_safe=transaction_safe,
    )


def parse_array_type(context: Context) -> model.ArrayType:
    # A [<dimension number>] _ <element type>
    # A <dimension expression> _ <element type>
    cursor = context.cursor
    cursor.expect("A", "array type")

    dimension: int | model.Node | None
    if cursor.consume("_"):
        dimension = None
    elif is_digit(cursor.peek()):
        dimension = cursor.unsigned("array dimension")
        cursor.expect("_", "array dimension")
    else:
        dimension = parse_expression(context)
        cursor.expect("_", "array dimension")

    return model.ArrayType(element=parse_type(context), dimension=dimension)


def parse_vector_type(context: Context) -> model.VectorType:
    # Dv <number> _ <element type>
    # Dv _ <expression> _ <element type>
    cursor = context.cursor
    cursor.expect("Dv", "vector type")

    dimension: int | model.Node
    if cursor.consume("_"):
        dimension = parse_expression(context)
    else:
        dimension = cursor.unsigned("vector dimension")
    cursor.expect("_", "vector dimension")

    return model.VectorType(element=parse_type(context), dimension=dimension)


def parse_decltype(context: Context) -> model.DecltypeType:
    # Dt <expression> E, DT <expression> E
    cursor = context.cursor

    if not (cursor.consume("Dt") or cursor.consume("DT")):
        raise cursor.unexpected("decltype")
    expression = parse_expression(context)
    cursor.expect("E", "decltype")

    return model.DecltypeType(expression)


# expressions


def parse_expression(context: Context) -> model.Node:
    with _nested(context):
        cursor = context.cursor
        start = cursor.position
        character = cursor.peek()

        if character is None:
            raise cursor.unexpected("expression")
        if character == "L":
            return parse_expr_primary(context)
        if character == "T":
            return parse_template_param(context)

        if cursor.consume("gs"):
            if cursor.startswith("nw") or cursor.startswith("na"):
                return _parse_new_expression(context, global_scope=True)
            if cursor.startswith("dl") or cursor.startswith("da"):
                return _parse_delete_expression(context, global_scope=True)
            return parse_unresolved_name(context, global_scope=True)

        code = cursor.raw[start : start + 2]
        if is_digit(character) or code in ("sr", "on", "dn"):
            return parse_unresolved_name(context)

        if len(code) < 2:
            raise UnexpectedEnd("expression", len(cursor.raw))

        if code in CAST_KEYWORDS:
            cursor.take(2, "cast")
            cast_type = parse_type(context)
            return model.CastExpression(keyword=CAST_KEYWORDS[code], type=cast_type, operand=parse_expression(context))
        if code in TYPE_OPERATOR_KEYWORDS:
            cursor.take(2, "type operator")
            return model.TypeOperatorExpression(keyword=TYPE_OPERATOR_KEYWORDS[code], type=parse_type(context))
        if code in EXPRESSION_OPERATOR_KEYWORDS:
            cursor.take(2, "expression operator")
            return model.ExpressionOperatorExpression(
                keyword=EXPRESSION_OPERATOR_KEYWORDS[code],
                operand=parse_expression(context),
            )

        match code:
            case "fp" | "fL":
                return _parse_function_param(context)
            case "cl":
                cursor.take(2, "call")
                callee = parse_expression(context)
                return model.CallExpression(callee=callee, arguments=_parse_expressions(context))
            case "cv":
                cursor.take(2, "conversion")
                conversion_type = parse_type(context)
                if cursor.consume("_"):
                    arguments = _parse_expressions(context)
                else:
                    arguments = (parse_expression(context),)
                return model.ConversionExpression(type=conversion_type, arguments=arguments)
            case "tl":
                cursor.take(2, "initializer list")
                list_type = parse_type(context)
                return model.InitListExpression(type=list_type, elements=_parse_expressions(context))
            case "il":
                cursor.take(2, "initializer list")
                return model.InitListExpression(type=None, elements=_parse_expressions(context))
            case "nw" | "na":
                return _parse_new_expression(context, global_scope=False)
            case "dl" | "da":
                return _parse_delete_expression(context, global_scope=False)
            case "sZ":
                cursor.take(2, "sizeof pack")
                if cursor.peek() == "T":
                    return model.SizeofPackExpression(parse_template_param(context))
                if cursor.startswith("fp") or cursor.startswith("fL"):
                    return model.SizeofPackExpression(_parse_function_param(context))
                raise cursor.unexpected("sizeof pack")
            case "sP":
                cursor.take(2, "sizeof pack")
                pack: list[model.Node] = []
                while not cursor.consume("E"):
                    pack.append(parse_template_arg(context))
                return model.SizeofPackExpression(model.TemplateArgPack(tuple(pack)))
            case "dt" | "pt":
                cursor.take(2, "member access")
                object_ = parse_expression(context)
                return model.MemberExpression(
                    object=object_,
                    operator="." if code == "dt" else "->",
                    member=parse_unresolved_name(context),
                )
            case "ds":
                cursor.take(2, "pointer to member access")
                object_ = parse_expression(context)
                return model.MemberExpression(object=object_, operator=".*", member=parse_expression(context))
            case "sp":
                cursor.take(2, "pack expansion")
                return model.PackExpansionExpression(parse_expression(context))
            case "tw":
                cursor.take(2, "throw")
                return model.ThrowExpression(parse_expression(context))
            case "tr":
                cursor.take(2, "rethrow")
                return model.ThrowExpression(None)

        operator = OPERATORS.get(code)
        if operator is None:
            raise UnexpectedToken("expression", start, code)
        cursor.take(2, "operator")

        match operator.kind:
            case model.OperatorKind.PREFIX:
                return model.UnaryExpression(operator=operator, operand=parse_expression(context))
            case model.OperatorKind.POSTFIX:
                # trailing `_` marks the prefix form
                if cursor.consume("_"):
                    return model.UnaryExpression(operator=operator, operand=parse_expression(context))
                return model.UnaryExpression(operator=operator, operand=parse_expression(context), postfix=True)
            case model.OperatorKind.BINARY | model.OperatorKind.INDEX:
                left = parse_expression(context)
                return model.BinaryExpression(operator=operator, left=left, right=parse_expression(context))
            case model.OperatorKind.CONDITIONAL:
                condition = parse_expression(context)
                then = parse_expression(context)
                return model.ConditionalExpression(
                    condition=condition,
                    then=then,
                    otherwise=parse_expression(context),
                )

        raise UnexpectedToken("expression", start, code)


def _parse_expressions(context: Context) -> tuple[model.Node, ...]:
    # <expression>* E
    cursor = context.cursor

    expressions: list[model.Node] = []
    while not cursor.consume("E"):
        expressions.append(parse_expression(context))
    return tuple(expressions)


def _parse_function_param(context: Context) -> model.FunctionParam:
    # fp <CV-qualifiers> [<number>] _
    # fL <level number> p <CV-qualifiers> [<number>] _
    cursor = context.cursor

    if cursor.consume("fL"):
        cursor.unsigned("function parameter level")
        cursor.expect("p", "function parameter")
    else:
        cursor.expect("fp", "function parameter")
    parse_cv_qualifiers(context)

    if cursor.consume("_"):
        return model.FunctionParam(None)

    number = cursor.unsigned("function parameter")
    cursor.expect("_", "function parameter")
    return model.FunctionParam(number)


def _parse_new_expression(context: Context, global_scope: bool) -> model.NewExpression:
    # nw <expression>* _ <type> E
    # nw <expression>* _ <type> <initializer>
    cursor = context.cursor

    array = cursor.startswith("na")
    cursor.take(2, "new expression")

    placement: list[model.Node] = []
    while not cursor.consume("_"):
        placement.append(parse_expression(context))
    new_type = parse_type(context)

    initializer: tuple[model.Node, ...] | None = None
    if cursor.consume("pi"):
        initializer = _parse_expressions(context)
    elif cursor.startswith("il"):
        initializer = (parse_expression(context),)
    else:
        cursor.expect("E", "new expression")

    return model.NewExpression(
        placement=tuple(placement),
        type=new_type,
        initializer=initializer,
        array=array,
        global_scope=global_scope,
    )


def _parse_delete_expression(context: Context, global_scope: bool) -> model.DeleteExpression:
    cursor = context.cursor

    array = cursor.startswith("da")
    cursor.take(2, "delete expression")

    return model.DeleteExpression(operand=parse_expression(context), array=array, global_scope=global_scope)


def _is_floating(type_: model.Node) -> bool:
    match type_:
        case model.BuiltinType(name=name):
            return name in _FLOATING_TYPE_NAMES or name.startswith("_Float")
        case model.ComplexType(inner=inner) | model.ImaginaryType(inner=inner):
            return _is_floating(inner)
    return False


def parse_expr_primary(context: Context) -> model.Node:
    # L <type> <value> E
    # L <string type> E
    # L <mangled-name> E
    # LDnE, LDn0E
    with _nested(context):
        cursor = context.cursor
        cursor.expect("L", "literal")

        if cursor.consume("_Z") or cursor.consume("Z"):
            encoding = parse_encoding(context)
            cursor.expect("E", "external name")
            return model.ExternalName(encoding)

        if cursor.consume("DnE") or cursor.consume("Dn0E"):
            return model.NullptrLiteral()

        literal_type = parse_type(context)
        start = cursor.position
        value = cursor.take_until("E", "literal value")

        if value == "":
            if isinstance(literal_type, model.ArrayType):
                return model.StringLiteral(literal_type)
            raise UnexpectedToken("literal value", start, "E")

        if literal_type == model.BuiltinType("bool") and value in ("0", "1"):
            return model.BoolLiteral(value == "1")

        if _is_floating(literal_type):
            if _FLOAT_LITERAL_REGEX.fullmatch(value) is None:
                raise UnexpectedToken("floating literal value", start, value[0])
            return model.FloatLiteral(type=literal_type, value=value.lower())

        if _INTEGER_LITERAL_REGEX.fullmatch(value) is None:
            raise UnexpectedToken("integer literal value", start, value[0])
        if value.startswith("n"):
            value = "-" + value[1:]
        return model.IntegerLiteral(type=literal_type, value=value)


# unresolved names, in dependent expressions


def parse_unresolved_name(context: Context, global_scope: bool = False) -> model.UnresolvedName:
    # [gs] <base-unresolved-name>
    # sr <unresolved-type> <base-unresolved-name>
    # srN <unresolved-type> <unresolved-qualifier-level>* E <base-unresolved-name>
    # [gs] sr <unresolved-qualifier-level>+ E <base-unresolved-name>
    with _nested(context):
        cursor = context.cursor

        name: model.Node
        if cursor.consume("srN"):
            qualifier = _parse_unresolved_qualifier_type(context)
            while not cursor.consume("E"):
                qualifier = model.NestedName(prefix=qualifier, name=parse_simple_id(context))
            name = model.NestedName(prefix=qualifier, name=parse_base_unresolved_name(context))
        elif cursor.consume("sr"):
            if is_digit(cursor.peek()):
                name = _parse_unresolved_qualifier_levels(context)
            else:
                qualifier = _parse_unresolved_qualifier_type(context)
                name = model.NestedName(prefix=qualifier, name=parse_base_unresolved_name(context))
        else:
            name = parse_base_unresolved_name(context)

        return model.UnresolvedName(name=name, global_scope=global_scope)


def _parse_unresolved_qualifier_type(context: Context) -> model.Node:
    qualifier = parse_unresolved_type(context)
    if context.cursor.peek() == "I":
        qualifier = model.TemplateName(name=qualifier, arguments=parse_template_args(context))
    return qualifier


def _parse_unresolved_qualifier_levels(context: Context) -> model.Node:
    # abi form terminates levels with `E`, older gcc emits a single level without it
    if context.speculative:
        return _parse_terminated_qualifier_levels(context)

    cursor = context.cursor
    cursor_checkpoint = cursor.checkpoint()
    substitutions_checkpoint = context.substitutions.checkpoint()

    context.speculative = True
    try:
        return _parse_terminated_qualifier_levels(context)
    except MalformedMangledName:
        cursor.restore(cursor_checkpoint)
        context.substitutions.restore(substitutions_checkpoint)
    finally:
        context.speculative = False

    qualifier = parse_simple_id(context)
    return model.NestedName(prefix=qualifier, name=parse_base_unresolved_name(context))


def _parse_terminated_qualifier_levels(context: Context) -> model.Node:
    cursor = context.cursor

    qualifier = parse_simple_id(context)
    while not cursor.consume("E"):
        qualifier = model.NestedName(prefix=qualifier, name=parse_simple_id(context))

    return model.NestedName(prefix=qualifier, name=parse_base_unresolved_name(context))


def parse_unresolved_type(context: Context) -> model.Node:
    # <template-param>, <decltype>, <substitution>
    cursor = context.cursor

    type_: model.Node
    match cursor.peek():
        case "T":
            type_ = parse_template_param(context)
        case "D":
            type_ = parse_decltype(context)
        case "S":
            return parse_substitution(context)
        case _:
            raise cursor.unexpected("unresolved type")

    context.substitutions.append(type_)
    return type_


def parse_simple_id(context: Context) -> model.Node:
    # <source-name> [<template-args>]
    name = parse_source_name(context)
    if context.cursor.peek() == "I":
        return model.TemplateName(name=name, arguments=parse_template_args(context))
    return name


def parse_base_unresolved_name(context: Context) -> model.Node:
    # <simple-id>
    # on <operator-name> [<template-args>]
    # dn <destructor-name>
    cursor = context.cursor

    if is_digit(cursor.peek()):
        return parse_simple_id(context)

    if cursor.consume("on"):
        name = parse_operator_name(context, None)
        if cursor.peek() == "I":
            return model.TemplateName(name=name, arguments=parse_template_args(context))
        return name

    if cursor.consume("dn"):
        if is_digit(cursor.peek()):
            return model.DestructorName(parse_simple_id(context))
        return model.DestructorName(parse_unresolved_type(context))

    raise cursor.unexpected("unresolved name")
