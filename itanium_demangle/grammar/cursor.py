from dataclasses import dataclass

from ..errors import UnexpectedEnd, UnexpectedToken

# longer numbers are never legitimate, and would be slow to convert
_NUMBER_DIGITS_MAX = 20


def is_digit(character: str | None) -> bool:
    # ascii only, str.isdigit accepts superscripts and others
    return character is not None and "0" <= character <= "9"


def is_lower(character: str | None) -> bool:
    return character is not None and "a" <= character <= "z"


@dataclass(kw_only=True)
class Cursor:
    raw: str
    position: int = 0

    def __post_init__(self) -> None:
        # must point inside the input (or right after it)
        assert 0 <= self.position <= len(self.raw)

    def at_end(self) -> bool:
        return self.position >= len(self.raw)

    def peek(self, offset: int = 0) -> str | None:
        position = self.position + offset
        if position >= len(self.raw):
            return None

        return self.raw[position]

    def startswith(self, literal: str) -> bool:
        return self.raw.startswith(literal, self.position)

    def consume(self, literal: str) -> bool:
        if not self.raw.startswith(literal, self.position):
            return False

        self.position += len(literal)
        return True

    def expect(self, literal: str, production: str) -> None:
        if not self.consume(literal):
            raise self.unexpected(production)

    def next(self, production: str) -> str:
        if self.at_end():
            raise UnexpectedEnd(production, self.position)

        character = self.raw[self.position]
        self.position += 1
        return character

    def take(self, count: int, production: str) -> str:
        assert count >= 0

        if self.position + count > len(self.raw):
            raise UnexpectedEnd(production, len(self.raw))

        value = self.raw[self.position : self.position + count]
        self.position += count
        return value

    def take_until(self, delimiter: str, production: str) -> str:
        # consumes the delimiter too, but does not return it
        end = self.raw.find(delimiter, self.position)
        if end == -1:
            raise UnexpectedEnd(production, len(self.raw))

        value = self.raw[self.position : end]
        self.position = end + len(delimiter)
        return value

    def digits(self, production: str) -> str:
        start = self.position
        while is_digit(self.peek()):
            self.position += 1

        if start == self.position:
            raise self.unexpected(production)

        return self.raw[start : self.position]

    def unsigned(self, production: str) -> int:
        start = self.position
        digits = self.digits(production)
        if len(digits) > _NUMBER_DIGITS_MAX:
            raise UnexpectedToken(f"{production} (at most {_NUMBER_DIGITS_MAX} digits)", start, digits[0])

        return int(digits)

    def number(self, production: str) -> int:
        # <number> ::= [n] <non-negative decimal integer>
        negative = self.consume("n")
        value = self.unsigned(production)
        return -value if negative else value

    def checkpoint(self) -> int:
        return self.position

    def restore(self, checkpoint: int) -> None:
        # only backwards, trial parses never skip input
        assert 0 <= checkpoint <= self.position

        self.position = checkpoint

    def unexpected(self, production: str) -> UnexpectedEnd | UnexpectedToken:
        if self.at_end():
            return UnexpectedEnd(production, self.position)

        return UnexpectedToken(production, self.position, self.raw[self.position])
