# pretty-printer for grammar trees
# types are printed in two halves (left and right of the declared name) so that
# pointers to functions and arrays come out as `void (*)(int)` and `int (&) [3]`

import math
import struct
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from ..config import Config
from ..errors import BadTemplateParamReference, OutputTooLarge, RecursionLimitExceeded
from ..grammar import model
from .output import Output

type Scopes = tuple[model.TemplateArgs, ...]

_SPECIAL_NAME_PREFIXES: Mapping[model.SpecialNameKind, str] = {
    model.SpecialNameKind.VTABLE: "vtable for ",
    model.SpecialNameKind.VTT: "VTT for ",
    model.SpecialNameKind.TYPEINFO: "typeinfo for ",
    model.SpecialNameKind.TYPEINFO_NAME: "typeinfo name for ",
    model.SpecialNameKind.TLS_INIT: "TLS init function for ",
    model.SpecialNameKind.TLS_WRAPPER: "TLS wrapper function for ",
    model.SpecialNameKind.TEMPLATE_PARAM_OBJECT: "template parameter object for ",
    model.SpecialNameKind.GUARD_VARIABLE: "guard variable for ",
    model.SpecialNameKind.HIDDEN_ALIAS: "hidden alias for ",
    model.SpecialNameKind.TRANSACTION_CLONE: "transaction clone for ",
    model.SpecialNameKind.NON_TRANSACTION_CLONE: "non-transaction clone for ",
    model.SpecialNameKind.NON_VIRTUAL_THUNK: "non-virtual thunk to ",
    model.SpecialNameKind.VIRTUAL_THUNK: "virtual thunk to ",
    model.SpecialNameKind.COVARIANT_THUNK: "covariant return thunk to ",
}

_STD_SUBSTITUTION_NAMES: Mapping[model.StdSubstitution, str] = {
    model.StdSubstitution.ALLOCATOR: "std::allocator",
    model.StdSubstitution.BASIC_STRING: "std::basic_string",
    model.StdSubstitution.STRING: "std::string",
    model.StdSubstitution.ISTREAM: "std::istream",
    model.StdSubstitution.OSTREAM: "std::ostream",
    model.StdSubstitution.IOSTREAM: "std::iostream",
}

# spelled out when used as scope of constructors and destructors
_STD_SUBSTITUTION_EXPANDED_NAMES: Mapping[model.StdSubstitution, str] = {
    model.StdSubstitution.ALLOCATOR: "std::allocator",
    model.StdSubstitution.BASIC_STRING: "std::basic_string",
    model.StdSubstitution.STRING: "std::basic_string<char, std::char_traits<char>, std::allocator<char>>",
    model.StdSubstitution.ISTREAM: "std::basic_istream<char, std::char_traits<char>>",
    model.StdSubstitution.OSTREAM: "std::basic_ostream<char, std::char_traits<char>>",
    model.StdSubstitution.IOSTREAM: "std::basic_iostream<char, std::char_traits<char>>",
}

_INTEGER_LITERAL_SUFFIXES: Mapping[str, str] = {
    "int": "",
    "unsigned int": "u",
    "long": "l",
    "unsigned long": "ul",
    "long long": "ll",
    "unsigned long long": "ull",
}

# struct format, hex digits
_FLOAT_LITERAL_FORMATS: Mapping[str, tuple[str, int]] = {
    "float": (">f", 8),
    "double": (">d", 16),
}


def _hex_float(value: float) -> str:
    # same spelling as printf %a
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "-inf" if value < 0 else "inf"

    mantissa, exponent = value.hex().split("p")
    if "." in mantissa:
        mantissa = mantissa.rstrip("0").removesuffix(".")
    return f"{mantissa}p{exponent}"


def _template_args_of(name: model.Node) -> model.TemplateArgs | None:
    # innermost argument list template parameters of a function signature refer to
    while True:
        match name:
            case model.TemplateName(arguments=arguments):
                return arguments
            case model.NestedName(name=inner) | model.AbiTaggedName(name=inner):
                name = inner
            case model.LocalName(encoding=encoding, entity=entity):
                arguments = _template_args_of(entity)
                if arguments is not None:
                    return arguments
                name = encoding.name
            case _:
                return None


@dataclass(kw_only=True)
class _Printer:
    config: Config
    output: Output

    depth: int = 0
    visits: int = 0

    # enclosing template argument lists, innermost last
    scopes: Scopes = ()

    # element of pack being expanded
    pack_index: int | None = None

    # unresolvable template parameters of closure parameter lists are generic lambda `auto`
    closure_parameters: bool = False

    # budget

    def _step(self) -> None:
        self.visits += 1
        if self.visits > self.config.output_size_limit:
            raise OutputTooLarge(self.config.output_size_limit)

    @contextmanager
    def _visit(self) -> Iterator[None]:
        self._step()

        self.depth += 1
        try:
            if self.depth > 2 * self.config.recursion_limit:
                raise RecursionLimitExceeded(self.config.recursion_limit)
            yield
        finally:
            self.depth -= 1

    # state

    @contextmanager
    def _with_scopes(self, scopes: Scopes, pack_index: int | None = None) -> Iterator[None]:
        saved = self.scopes, self.pack_index
        self.scopes, self.pack_index = scopes, pack_index
        try:
            yield
        finally:
            self.scopes, self.pack_index = saved

    def _push_scope(self, arguments: model.TemplateArgs | None) -> Scopes:
        if arguments is None:
            return self.scopes
        return (*self.scopes, arguments)

    def _resolve(self, param: model.TemplateParam, scopes: Scopes) -> tuple[model.Node, Scopes]:
        if not scopes:
            raise BadTemplateParamReference(param.index)

        arguments = scopes[-1].arguments
        if param.index >= len(arguments):
            raise BadTemplateParamReference(param.index)

        argument = arguments[param.index]
        if isinstance(argument, model.TemplateArgPack) and self.pack_index is not None:
            if self.pack_index >= len(argument.arguments):
                raise BadTemplateParamReference(param.index)
            argument = argument.arguments[self.pack_index]

        # arguments are spelled in the scope they were written in
        return argument, scopes[:-1]

    def _resolvable(self, param: model.TemplateParam) -> bool:
        return bool(self.scopes) and param.index < len(self.scopes[-1].arguments)

    def _syntax_node(self, node: model.Node, scopes: Scopes) -> tuple[model.Node, Scopes]:
        # looks through qualifiers and template parameters
        while True:
            match node:
                case model.TemplateParam():
                    if not scopes or node.index >= len(scopes[-1].arguments):
                        return node, scopes
                    node, scopes = self._resolve(node, scopes)
                case model.QualifiedType(inner=inner) | model.VendorQualifiedType(inner=inner):
                    node = inner
                case _:
                    return node, scopes

    def _has_array(self, node: model.Node) -> bool:
        node, _ = self._syntax_node(node, self.scopes)
        return isinstance(node, model.ArrayType)

    def _has_function(self, node: model.Node) -> bool:
        node, _ = self._syntax_node(node, self.scopes)
        return isinstance(node, model.FunctionType)

    def _has_right_side(self, node: model.Node) -> bool:
        scopes = self.scopes
        while True:
            self._step()
            node, scopes = self._syntax_node(node, scopes)
            match node:
                case model.ArrayType() | model.FunctionType():
                    return True
                case model.PointerType(pointee=inner) | model.ReferenceType(referent=inner):
                    node = inner
                case model.PointerToMemberType(member_type=inner):
                    node = inner
                case _:
                    return False

    def _collapse(self, reference: model.ReferenceType) -> tuple[model.ReferenceKind, model.Node, Scopes]:
        # `T&&` with T = `int&` is `int&`, references to references keep the smaller kind
        kind = reference.kind
        node = reference.referent
        scopes = self.scopes
        while True:
            self._step()
            match node:
                case model.TemplateParam() if scopes and node.index < len(scopes[-1].arguments):
                    resolved, resolved_scopes = self._resolve(node, scopes)
                    if not isinstance(resolved, model.ReferenceType):
                        return kind, node, scopes
                    node, scopes = resolved, resolved_scopes
                case model.ReferenceType():
                    kind = min(kind, node.kind)
                    node = node.referent
                case _:
                    return kind, node, scopes

    # output helpers

    def _write(self, text: str) -> None:
        self.output.write(text)

    def _case(self, text: str) -> str:
        if self.config.literal_case == "upper":
            return text.upper()
        return text

    def _comma_list(self, items: Sequence[model.Node]) -> None:
        # items printing nothing (empty packs) leave no separator behind
        printed = False
        for item in items:
            mark = self.output.mark()
            if printed:
                self._write(", ")
            content = self.output.mark()
            self.print(item)
            if self.output.mark() == content:
                self.output.rollback(mark)
            else:
                printed = True

    def _template_args(self, arguments: model.TemplateArgs) -> None:
        self._write("<")
        self._comma_list(arguments.arguments)
        if self.config.closing_angle_space and self.output.last() == ">":
            self._write(" ")
        self._write(">")

    def _cv(self, cv: model.CvQualifiers) -> None:
        if model.CvQualifiers.CONST in cv:
            self._write(" const")
        if model.CvQualifiers.VOLATILE in cv:
            self._write(" volatile")
        if model.CvQualifiers.RESTRICT in cv:
            self._write(" restrict")

    def _ref(self, ref: model.ReferenceKind | None) -> None:
        match ref:
            case model.ReferenceKind.LVALUE:
                self._write(" &")
            case model.ReferenceKind.RVALUE:
                self._write(" &&")

    def _parenthesized(self, node: model.Node) -> None:
        self._write("(")
        self.print(node)
        self._write(")")

    # entry

    def print(self, node: model.Node) -> None:
        self._left(node)
        self._right(node)

    def _left(self, node: model.Node) -> None:
        with self._visit():
            match node:
                case model.MangledName():
                    self.print(node.encoding)
                    if node.clone_suffix is not None:
                        self._write(f" ({node.clone_suffix})")
                case model.Encoding():
                    self._encoding(node)
                case model.SpecialName():
                    self._write(_SPECIAL_NAME_PREFIXES[node.kind])
                    self.print(node.target)
                case model.ReferenceTemporary():
                    self._write(f"reference temporary #{node.number} for ")
                    self.print(node.name)
                case model.ConstructionVtable():
                    self._write("construction vtable for ")
                    self.print(node.base)
                    self._write("-in-")
                    self.print(node.complete)

                case model.SourceName():
                    self._write(node.value)
                case model.NestedName():
                    self.print(node.prefix)
                    self._write("::")
                    self.print(node.name)
                case model.TemplateName():
                    self.print(node.name)
                    self._template_args(node.arguments)
                case model.OperatorName():
                    symbol = node.operator.symbol
                    self._write(f"operator {symbol}" if symbol[0].isalpha() else f"operator{symbol}")
                case model.ConversionOperatorName():
                    self._write("operator ")
                    self.print(node.type)
                case model.LiteralOperatorName():
                    self._write('operator"" ')
                    self.print(node.name)
                case model.VendorOperatorName():
                    self._write("operator ")
                    self.print(node.name)
                case model.CtorDtorName():
                    if node.kind.destructor:
                        self._write("~")
                    self.print(node.name)
                case model.AbiTaggedName():
                    self.print(node.name)
                    for tag in node.tags:
                        self._write(f"[abi:{tag}]")
                case model.UnnamedTypeName():
                    self._write(f"{{unnamed type#{node.number}}}")
                case model.ClosureTypeName():
                    self._closure(node)
                case model.StructuredBindingName():
                    self._write("[")
                    self._comma_list(node.names)
                    self._write("]")
                case model.LocalName():
                    self.print(node.encoding)
                    self._write("::")
                    with self._with_scopes(self._push_scope(_template_args_of(node.encoding.name)), self.pack_index):
                        self.print(node.entity)
                case model.StringLiteralName():
                    self._write("string literal")
                case model.SpecialSubstitution():
                    if node.expanded:
                        name = _STD_SUBSTITUTION_EXPANDED_NAMES[node.kind]
                        self._write(name.replace(">>", "> >") if self.config.closing_angle_space else name)
                    else:
                        self._write(_STD_SUBSTITUTION_NAMES[node.kind])
                case model.UnresolvedName():
                    if node.global_scope:
                        self._write("::")
                    self.print(node.name)
                case model.DestructorName():
                    self._write("~")
                    self.print(node.name)

                case model.BuiltinType():
                    self._write(node.name)
                case model.VendorExtendedType():
                    self._write(node.name)
                    if node.arguments is not None:
                        self._template_args(node.arguments)
                case model.QualifiedType():
                    self._left(node.inner)
                    self._cv(node.cv)
                case model.VendorQualifiedType():
                    self._left(node.inner)
                    self._write(f" {node.qualifier}")
                    if node.arguments is not None:
                        self._template_args(node.arguments)
                case model.PointerType():
                    self._indirection_left(node.pointee, "*")
                case model.ReferenceType():
                    kind, referent, scopes = self._collapse(node)
                    with self._with_scopes(scopes, self.pack_index):
                        self._indirection_left(referent, "&" if kind == model.ReferenceKind.LVALUE else "&&")
                case model.ComplexType():
                    self._left(node.inner)
                    self._write(" _Complex")
                case model.ImaginaryType():
                    self._left(node.inner)
                    self._write(" _Imaginary")
                case model.ArrayType():
                    self._left(node.element)
                case model.VectorType():
                    self.print(node.element)
                    self._write(" vector[")
                    if isinstance(node.dimension, int):
                        self._write(str(node.dimension))
                    else:
                        self.print(node.dimension)
                    self._write("]")
                case model.PointerToMemberType():
                    self._left(node.member_type)
                    if self._has_array(node.member_type) or self._has_function(node.member_type):
                        self._write("(")
                    else:
                        self._write(" ")
                    self.print(node.class_type)
                    self._write("::*")
                case model.FunctionType():
                    self._left(node.return_type)
                    if not self._has_right_side(node.return_type):
                        self._write(" ")
                case model.TemplateParam():
                    self._template_param(node, left=True)
                case model.PackExpansion():
                    self._pack_expansion(node.pattern)
                case model.DecltypeType():
                    self._write("decltype(")
                    self.print(node.expression)
                    self._write(")")
                case model.ElaboratedType():
                    self._write(f"{node.keyword} ")
                    self.print(node.name)

                case model.TemplateArgs():
                    self._template_args(node)
                case model.TemplateArgPack():
                    self._comma_list(node.arguments)

                case model.IntegerLiteral():
                    self._integer_literal(node)
                case model.FloatLiteral():
                    self._float_literal(node)
                case model.BoolLiteral():
                    self._write("true" if node.value else "false")
                case model.NullptrLiteral():
                    self._write("nullptr")
                case model.StringLiteral():
                    self._write('"<')
                    self.print(node.type)
                    self._write('>"')
                case model.ExternalName():
                    self.print(node.encoding)
                case model.FunctionParam():
                    self._write("fp" if node.number is None else f"fp{node.number}")
                case model.UnaryExpression():
                    if node.postfix:
                        self._parenthesized(node.operand)
                        self._write(node.operator.symbol)
                    else:
                        self._write(node.operator.symbol)
                        self._parenthesized(node.operand)
                case model.BinaryExpression():
                    self._binary_expression(node)
                case model.ConditionalExpression():
                    self._parenthesized(node.condition)
                    self._write(" ? ")
                    self._parenthesized(node.then)
                    self._write(" : ")
                    self._parenthesized(node.otherwise)
                case model.CallExpression():
                    self.print(node.callee)
                    self._write("(")
                    self._comma_list(node.arguments)
                    self._write(")")
                case model.CastExpression():
                    self._write(f"{node.keyword}<")
                    self.print(node.type)
                    self._write(">")
                    self._parenthesized(node.operand)
                case model.ConversionExpression():
                    self._parenthesized(node.type)
                    self._write("(")
                    self._comma_list(node.arguments)
                    self._write(")")
                case model.InitListExpression():
                    if node.type is not None:
                        self.print(node.type)
                    self._write("{")
                    self._comma_list(node.elements)
                    self._write("}")
                case model.NewExpression():
                    self._new_expression(node)
                case model.DeleteExpression():
                    if node.global_scope:
                        self._write("::")
                    self._write("delete[] " if node.array else "delete ")
                    self.print(node.operand)
                case model.TypeOperatorExpression():
                    self._write(node.keyword)
                    self._write(" ")
                    self._parenthesized(node.type)
                case model.ExpressionOperatorExpression():
                    self._write(node.keyword)
                    self._write(" ")
                    self._parenthesized(node.operand)
                case model.SizeofPackExpression():
                    self._write("sizeof...")
                    self._parenthesized(node.pattern)
                case model.MemberExpression():
                    self.print(node.object)
                    self._write(node.operator)
                    self.print(node.member)
                case model.ThrowExpression():
                    self._write("throw")
                    if node.operand is not None:
                        self._write(" ")
                        self.print(node.operand)
                case model.PackExpansionExpression():
                    self._pack_expansion(node.pattern)

                case _:
                    assert False, type(node).__name__

    def _right(self, node: model.Node) -> None:
        with self._visit():
            match node:
                case model.QualifiedType(inner=inner) | model.VendorQualifiedType(inner=inner):
                    self._right(inner)
                case model.PointerType():
                    self._indirection_right(node.pointee)
                case model.ReferenceType():
                    _, referent, scopes = self._collapse(node)
                    with self._with_scopes(scopes, self.pack_index):
                        self._indirection_right(referent)
                case model.ArrayType():
                    if self.output.last() != "]":
                        self._write(" ")
                    self._write("[")
                    match node.dimension:
                        case int():
                            self._write(str(node.dimension))
                        case model.Node():
                            self.print(node.dimension)
                    self._write("]")
                    self._right(node.element)
                case model.PointerToMemberType():
                    if self._has_array(node.member_type) or self._has_function(node.member_type):
                        self._write(")")
                    self._right(node.member_type)
                case model.FunctionType():
                    self._function_type_right(node)
                case model.TemplateParam():
                    self._template_param(node, left=False)

    # declarators

    def _indirection_left(self, pointee: model.Node, symbol: str) -> None:
        self._left(pointee)
        array = self._has_array(pointee)
        if array:
            self._write(" ")
        if array or self._has_function(pointee):
            self._write("(")
        self._write(symbol)

    def _indirection_right(self, pointee: model.Node) -> None:
        if self._has_array(pointee) or self._has_function(pointee):
            self._write(")")
        self._right(pointee)

    def _function_type_right(self, function: model.FunctionType) -> None:
        self._write("(")
        self._comma_list(function.parameters)
        self._write(")")
        self._right(function.return_type)
        self._cv(function.cv)
        self._ref(function.ref)

        match function.exception_spec:
            case model.NoexceptSpec(expression=None):
                self._write(" noexcept")
            case model.NoexceptSpec(expression=expression):
                self._write(" noexcept")
                self._parenthesized(expression)
            case model.DynamicExceptionSpec(types=types):
                self._write(" throw(")
                self._comma_list(types)
                self._write(")")

        if function.transaction_safe:
            self._write(" transaction_safe")

    def _template_param(self, param: model.TemplateParam, left: bool) -> None:
        if self.closure_parameters and not self._resolvable(param):
            if left:
                self._write(f"auto:{param.index + 1}")
            return

        argument, scopes = self._resolve(param, self.scopes)
        with self._with_scopes(scopes):
            if left:
                self._left(argument)
            else:
                self._right(argument)

    def _pack_size(self, pattern: model.Node) -> int | None:
        # size of first pack referenced by pattern, nested expansions are on their own
        stack = [pattern]
        while stack:
            self._step()
            node = stack.pop()
            match node:
                case model.TemplateParam() if self._resolvable(node):
                    argument = self.scopes[-1].arguments[node.index]
                    if isinstance(argument, model.TemplateArgPack):
                        return len(argument.arguments)
                case model.PackExpansion() | model.PackExpansionExpression():
                    pass
                case _:
                    stack.extend(node.children())
        return None

    def _pack_expansion(self, pattern: model.Node) -> None:
        size = self._pack_size(pattern)
        if size is None:
            # nothing to expand in scope, keep it symbolic
            self._parenthesized(pattern)
            self._write("...")
            return

        for index in range(size):
            if index:
                self._write(", ")
            with self._with_scopes(self.scopes, index):
                self.print(pattern)

    # compound

    def _encoding(self, encoding: model.Encoding) -> None:
        with self._with_scopes(self._push_scope(_template_args_of(encoding.name)), self.pack_index):
            signature = encoding.signature
            if signature is None:
                self.print(encoding.name)
                return

            return_type = None if self.config.omit_return_type else signature.return_type
            if return_type is not None:
                self._left(return_type)
                if not self._has_right_side(return_type):
                    self._write(" ")

            self.print(encoding.name)

            if not self.config.omit_parameter_list:
                self._write("(")
                self._comma_list(signature.parameters)
                self._write(")")

            if return_type is not None:
                self._right(return_type)

            if not self.config.omit_parameter_list:
                self._cv(signature.cv)
                self._ref(signature.ref)

    def _closure(self, closure: model.ClosureTypeName) -> None:
        self._write("{lambda(")
        saved = self.closure_parameters
        self.closure_parameters = True
        try:
            self._comma_list(closure.parameters)
        finally:
            self.closure_parameters = saved
        self._write(f")#{closure.number}}}")

    def _binary_expression(self, expression: model.BinaryExpression) -> None:
        if expression.operator.kind == model.OperatorKind.INDEX:
            self._parenthesized(expression.left)
            self._write("[")
            self.print(expression.right)
            self._write("]")
            return

        # `>` would close template argument list otherwise
        greater = expression.operator.symbol == ">"
        if greater:
            self._write("(")
        self._parenthesized(expression.left)
        self._write(f" {expression.operator.symbol} ")
        self._parenthesized(expression.right)
        if greater:
            self._write(")")

    def _new_expression(self, expression: model.NewExpression) -> None:
        if expression.global_scope:
            self._write("::")
        self._write("new[]" if expression.array else "new")
        if expression.placement:
            self._write(" (")
            self._comma_list(expression.placement)
            self._write(")")
        self._write(" ")
        self.print(expression.type)
        if expression.initializer is not None:
            self._write("(")
            self._comma_list(expression.initializer)
            self._write(")")

    def _integer_literal(self, literal: model.IntegerLiteral) -> None:
        match literal.type:
            case model.BuiltinType(name=name) if name in _INTEGER_LITERAL_SUFFIXES:
                self._write(literal.value + self._case(_INTEGER_LITERAL_SUFFIXES[name]))
            case _:
                self._parenthesized(literal.type)
                self._write(literal.value)

    def _float_literal(self, literal: model.FloatLiteral) -> None:
        match literal.type:
            case model.BuiltinType(name=name) if name in _FLOAT_LITERAL_FORMATS:
                format_, digits = _FLOAT_LITERAL_FORMATS[name]
                # complex values carry two parts joined by `_`
                if len(literal.value) == digits and "_" not in literal.value:
                    (value,) = struct.unpack(format_, bytes.fromhex(literal.value))
                    suffix = "f" if name == "float" else ""
                    self._write(self._case(_hex_float(value) + suffix))
                    return

        # other widths are kept as encoded
        self._parenthesized(literal.type)
        self._write(f"[{literal.value}]")


def render(tree: model.Node, config: Config | None = None) -> str:
    if config is None:
        config = Config.default()

    printer = _Printer(config=config, output=Output(limit=config.output_size_limit))
    printer.print(tree)
    return printer.output.text()
