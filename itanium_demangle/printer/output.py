from dataclasses import dataclass, field

from ..errors import OutputTooLarge


@dataclass(kw_only=True)
class Output:
    limit: int

    chunks: list[str] = field(default_factory=list)
    size: int = 0

    def __post_init__(self) -> None:
        assert self.limit >= 1

    def write(self, text: str) -> None:
        # empty writes leave no chunk, so marks detect "nothing printed"
        if not text:
            return

        self.size += len(text)
        if self.size > self.limit:
            raise OutputTooLarge(self.limit)

        self.chunks.append(text)

    def last(self) -> str | None:
        if not self.chunks:
            return None

        return self.chunks[-1][-1]

    def mark(self) -> int:
        return len(self.chunks)

    def rollback(self, mark: int) -> None:
        assert 0 <= mark <= len(self.chunks)

        self.size -= sum(len(chunk) for chunk in self.chunks[mark:])
        del self.chunks[mark:]

    def text(self) -> str:
        return "".join(self.chunks)
