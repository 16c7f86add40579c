class DemangleError(Exception):
    pass


# categories, callers usually branch on these


class NotMangled(DemangleError):
    # not a mangled name at all, show the original string
    pass


class MalformedMangledName(DemangleError):
    # looks like a mangled name, but violates the grammar
    pass


class ResourceLimitExceeded(DemangleError):
    # defensive cutoff
    pass


# not mangled


class NotMangledName(NotMangled):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"`{symbol[:32]}` does not start with a mangled name prefix")

        self.symbol = symbol


# malformed


class UnexpectedEnd(MalformedMangledName):
    def __init__(self, production: str, offset: int) -> None:
        super().__init__(f"unexpected end of input at offset {offset}, expecting {production}")

        self.production = production
        self.offset = offset


class UnexpectedToken(MalformedMangledName):
    def __init__(self, production: str, offset: int, token: str) -> None:
        super().__init__(f"unexpected `{token}` at offset {offset}, expecting {production}")

        self.production = production
        self.offset = offset
        self.token = token


class BadBackReference(MalformedMangledName):
    def __init__(self, index: int, size: int, offset: int) -> None:
        super().__init__(
            f"back reference #{index} at offset {offset} points outside substitution table of size {size}"
        )

        self.index = index
        self.size = size
        self.offset = offset


class BadTemplateParamReference(MalformedMangledName):
    def __init__(self, index: int) -> None:
        super().__init__(f"template parameter #{index} does not refer to any template argument")

        self.index = index


class UnsupportedExtension(MalformedMangledName):
    def __init__(self, extension: str, offset: int) -> None:
        super().__init__(f"unsupported grammar extension ({extension}) at offset {offset}")

        self.extension = extension
        self.offset = offset


# resource limits


class RecursionLimitExceeded(ResourceLimitExceeded):
    def __init__(self, limit: int) -> None:
        super().__init__(f"nesting deeper than recursion limit ({limit})")

        self.limit = limit


class OutputTooLarge(ResourceLimitExceeded):
    def __init__(self, limit: int) -> None:
        super().__init__(f"demangled output exceeds output size limit ({limit})")

        self.limit = limit


class InputTooLarge(ResourceLimitExceeded):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"symbol of length {size} exceeds input size limit ({limit})")

        self.size = size
        self.limit = limit
