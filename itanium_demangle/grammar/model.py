from collections.abc import Iterator
from dataclasses import dataclass, fields
from enum import Enum, Flag, IntEnum, auto


class CvQualifiers(Flag):
    NONE = 0
    RESTRICT = auto()
    VOLATILE = auto()
    CONST = auto()


class ReferenceKind(IntEnum):
    # ordered, collapsing keeps the smaller one
    LVALUE = 0
    RVALUE = 1


class CtorDtorKind(Enum):
    COMPLETE_CTOR = "C1"
    BASE_CTOR = "C2"
    ALLOCATING_CTOR = "C3"
    UNIFIED_CTOR = "C4"
    COMDAT_CTOR = "C5"
    DELETING_DTOR = "D0"
    COMPLETE_DTOR = "D1"
    BASE_DTOR = "D2"
    UNIFIED_DTOR = "D4"
    COMDAT_DTOR = "D5"

    @property
    def destructor(self) -> bool:
        return self.value[0] == "D"


class StdSubstitution(Enum):
    ALLOCATOR = "a"
    BASIC_STRING = "b"
    STRING = "s"
    ISTREAM = "i"
    OSTREAM = "o"
    IOSTREAM = "d"


class SpecialNameKind(Enum):
    VTABLE = "TV"
    VTT = "TT"
    TYPEINFO = "TI"
    TYPEINFO_NAME = "TS"
    TLS_INIT = "TH"
    TLS_WRAPPER = "TW"
    TEMPLATE_PARAM_OBJECT = "TA"
    GUARD_VARIABLE = "GV"
    HIDDEN_ALIAS = "GA"
    TRANSACTION_CLONE = "GTt"
    NON_TRANSACTION_CLONE = "GTn"
    NON_VIRTUAL_THUNK = "Th"
    VIRTUAL_THUNK = "Tv"
    COVARIANT_THUNK = "Tc"


class OperatorKind(Enum):
    PREFIX = auto()
    POSTFIX = auto()  # pp/mm, prefix form is marked with trailing `_` in expressions
    BINARY = auto()
    CONDITIONAL = auto()
    CALL = auto()
    INDEX = auto()
    MEMBER = auto()
    NEW = auto()
    DELETE = auto()


@dataclass(frozen=True, kw_only=True)
class Operator:
    code: str
    symbol: str
    kind: OperatorKind

    def __post_init__(self) -> None:
        # two letter codes only
        assert len(self.code) == 2

        # must have a spelling
        assert self.symbol


@dataclass(frozen=True)
class Node:
    def children(self) -> Iterator["Node"]:
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, Node):
                yield value
            elif isinstance(value, tuple):
                yield from (item for item in value if isinstance(item, Node))


# names


@dataclass(frozen=True)
class SourceName(Node):
    value: str

    def __post_init__(self) -> None:
        # identifiers are never empty
        assert self.value


@dataclass(frozen=True)
class OperatorName(Node):
    operator: Operator


@dataclass(frozen=True)
class ConversionOperatorName(Node):
    type: Node


@dataclass(frozen=True)
class LiteralOperatorName(Node):
    name: SourceName


@dataclass(frozen=True, kw_only=True)
class VendorOperatorName(Node):
    arity: int
    name: SourceName

    def __post_init__(self) -> None:
        # encoded as single digit
        assert 0 <= self.arity <= 9


@dataclass(frozen=True, kw_only=True)
class CtorDtorName(Node):
    kind: CtorDtorKind
    name: Node  # class name, without scope and template arguments
    inheriting: Node | None = None  # base class for inheriting constructors

    def __post_init__(self) -> None:
        # only constructors may inherit
        assert self.inheriting is None or not self.kind.destructor


@dataclass(frozen=True, kw_only=True)
class AbiTaggedName(Node):
    name: Node
    tags: tuple[str, ...]

    def __post_init__(self) -> None:
        # at least one tag
        assert self.tags


@dataclass(frozen=True)
class UnnamedTypeName(Node):
    number: int  # 1-based, as printed

    def __post_init__(self) -> None:
        assert self.number >= 1


@dataclass(frozen=True, kw_only=True)
class ClosureTypeName(Node):
    parameters: tuple[Node, ...]
    number: int  # 1-based, as printed

    def __post_init__(self) -> None:
        assert self.number >= 1


@dataclass(frozen=True)
class StructuredBindingName(Node):
    names: tuple[SourceName, ...]

    def __post_init__(self) -> None:
        # binds at least one name
        assert self.names


@dataclass(frozen=True, kw_only=True)
class NestedName(Node):
    prefix: Node
    name: Node


@dataclass(frozen=True, kw_only=True)
class TemplateName(Node):
    name: Node
    arguments: "TemplateArgs"


@dataclass(frozen=True, kw_only=True)
class LocalName(Node):
    encoding: "Encoding"
    entity: Node


@dataclass(frozen=True)
class StringLiteralName(Node):
    pass


@dataclass(frozen=True, kw_only=True)
class SpecialSubstitution(Node):
    kind: StdSubstitution
    expanded: bool = False  # full template spelling, used as constructor / destructor scope


@dataclass(frozen=True, kw_only=True)
class UnresolvedName(Node):
    name: Node
    global_scope: bool = False


@dataclass(frozen=True)
class DestructorName(Node):
    name: Node


# types


@dataclass(frozen=True)
class BuiltinType(Node):
    name: str


@dataclass(frozen=True, kw_only=True)
class VendorExtendedType(Node):
    name: str
    arguments: "TemplateArgs | None" = None


@dataclass(frozen=True, kw_only=True)
class QualifiedType(Node):
    inner: Node
    cv: CvQualifiers

    def __post_init__(self) -> None:
        # qualifies with something
        assert self.cv != CvQualifiers.NONE


@dataclass(frozen=True, kw_only=True)
class VendorQualifiedType(Node):
    inner: Node
    qualifier: str
    arguments: "TemplateArgs | None" = None


@dataclass(frozen=True)
class PointerType(Node):
    pointee: Node


@dataclass(frozen=True, kw_only=True)
class ReferenceType(Node):
    referent: Node
    kind: ReferenceKind


@dataclass(frozen=True)
class ComplexType(Node):
    inner: Node


@dataclass(frozen=True)
class ImaginaryType(Node):
    inner: Node


@dataclass(frozen=True, kw_only=True)
class ArrayType(Node):
    element: Node
    dimension: int | Node | None  # None for unknown bound

    def __post_init__(self) -> None:
        assert not isinstance(self.dimension, int) or self.dimension >= 0


@dataclass(frozen=True, kw_only=True)
class PointerToMemberType(Node):
    class_type: Node
    member_type: Node


@dataclass(frozen=True)
class NoexceptSpec(Node):
    expression: Node | None = None  # None for plain `noexcept`


@dataclass(frozen=True)
class DynamicExceptionSpec(Node):
    types: tuple[Node, ...]


@dataclass(frozen=True, kw_only=True)
class FunctionType(Node):
    return_type: Node
    parameters: tuple[Node, ...]
    cv: CvQualifiers = CvQualifiers.NONE
    ref: ReferenceKind | None = None
    exception_spec: NoexceptSpec | DynamicExceptionSpec | None = None
    extern_c: bool = False
    transaction_safe: bool = False


@dataclass(frozen=True)
class TemplateParam(Node):
    index: int

    def __post_init__(self) -> None:
        assert self.index >= 0


@dataclass(frozen=True)
class PackExpansion(Node):
    pattern: Node


@dataclass(frozen=True)
class DecltypeType(Node):
    expression: Node


@dataclass(frozen=True, kw_only=True)
class VectorType(Node):
    element: Node
    dimension: int | Node


@dataclass(frozen=True, kw_only=True)
class ElaboratedType(Node):
    keyword: str  # struct, union or enum
    name: Node


# template arguments


@dataclass(frozen=True)
class TemplateArgs(Node):
    arguments: tuple[Node, ...]


@dataclass(frozen=True)
class TemplateArgPack(Node):
    arguments: tuple[Node, ...]


# expressions


@dataclass(frozen=True, kw_only=True)
class IntegerLiteral(Node):
    type: Node
    value: str  # decimal digits, with leading `-` if negative

    def __post_init__(self) -> None:
        assert self.value.removeprefix("-").isdigit()


@dataclass(frozen=True, kw_only=True)
class FloatLiteral(Node):
    type: Node
    value: str  # lowercase hex digits of target representation, big-endian


@dataclass(frozen=True)
class BoolLiteral(Node):
    value: bool


@dataclass(frozen=True)
class NullptrLiteral(Node):
    pass


@dataclass(frozen=True)
class StringLiteral(Node):
    type: Node


@dataclass(frozen=True)
class ExternalName(Node):
    encoding: Node


@dataclass(frozen=True)
class FunctionParam(Node):
    number: int | None  # None for the first parameter (`fp_`)


@dataclass(frozen=True, kw_only=True)
class UnaryExpression(Node):
    operator: Operator
    operand: Node
    postfix: bool = False


@dataclass(frozen=True, kw_only=True)
class BinaryExpression(Node):
    operator: Operator
    left: Node
    right: Node


@dataclass(frozen=True, kw_only=True)
class ConditionalExpression(Node):
    condition: Node
    then: Node
    otherwise: Node


@dataclass(frozen=True, kw_only=True)
class CallExpression(Node):
    callee: Node
    arguments: tuple[Node, ...]


@dataclass(frozen=True, kw_only=True)
class CastExpression(Node):
    keyword: str  # static_cast, dynamic_cast, ...
    type: Node
    operand: Node


@dataclass(frozen=True, kw_only=True)
class ConversionExpression(Node):
    type: Node
    arguments: tuple[Node, ...]


@dataclass(frozen=True, kw_only=True)
class InitListExpression(Node):
    type: Node | None
    elements: tuple[Node, ...]


@dataclass(frozen=True, kw_only=True)
class NewExpression(Node):
    placement: tuple[Node, ...]
    type: Node
    initializer: tuple[Node, ...] | None
    array: bool = False
    global_scope: bool = False


@dataclass(frozen=True, kw_only=True)
class DeleteExpression(Node):
    operand: Node
    array: bool = False
    global_scope: bool = False


@dataclass(frozen=True, kw_only=True)
class TypeOperatorExpression(Node):
    keyword: str  # sizeof, alignof, typeid
    type: Node


@dataclass(frozen=True, kw_only=True)
class ExpressionOperatorExpression(Node):
    keyword: str  # sizeof, alignof, typeid, noexcept
    operand: Node


@dataclass(frozen=True)
class SizeofPackExpression(Node):
    pattern: Node


@dataclass(frozen=True, kw_only=True)
class MemberExpression(Node):
    object: Node
    operator: str  # `.`, `->` or `.*`
    member: Node


@dataclass(frozen=True)
class ThrowExpression(Node):
    operand: Node | None  # None for rethrow


@dataclass(frozen=True)
class PackExpansionExpression(Node):
    pattern: Node


# encodings


@dataclass(frozen=True, kw_only=True)
class Signature(Node):
    return_type: Node | None  # only template functions carry one
    parameters: tuple[Node, ...]
    cv: CvQualifiers = CvQualifiers.NONE
    ref: ReferenceKind | None = None


@dataclass(frozen=True, kw_only=True)
class Encoding(Node):
    name: Node
    signature: Signature | None  # None for data


@dataclass(frozen=True, kw_only=True)
class CallOffset:
    offset: int
    virtual_offset: int | None = None  # set for virtual call offsets


@dataclass(frozen=True, kw_only=True)
class SpecialName(Node):
    kind: SpecialNameKind
    target: Node
    offsets: tuple[CallOffset, ...] = ()

    def __post_init__(self) -> None:
        # thunks carry their this-adjustments, nothing else does
        match self.kind:
            case SpecialNameKind.NON_VIRTUAL_THUNK | SpecialNameKind.VIRTUAL_THUNK:
                assert len(self.offsets) == 1
            case SpecialNameKind.COVARIANT_THUNK:
                assert len(self.offsets) == 2
            case _:
                assert not self.offsets


@dataclass(frozen=True, kw_only=True)
class ReferenceTemporary(Node):
    name: Node
    number: int  # 0-based


@dataclass(frozen=True, kw_only=True)
class ConstructionVtable(Node):
    complete: Node
    base: Node


@dataclass(frozen=True, kw_only=True)
class MangledName(Node):
    encoding: Node
    clone_suffix: str | None = None

    def __post_init__(self) -> None:
        # suffixes always start with a dot
        assert self.clone_suffix is None or self.clone_suffix.startswith(".")
