"""In-memory navigation history."""


class InMemoryHistory:
    """Browser-style history stack.

    Pushing after going back discards the forward entries; ``back`` and
    ``forward`` stop at the ends.
    """

    def __init__(self, initial_path: str = "/") -> None:
        self._entries: list[str] = [initial_path]
        self._index = 0

    @property
    def current_path(self) -> str:
        return self._entries[self._index]

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def index(self) -> int:
        return self._index

    def push(self, path: str) -> None:
        del self._entries[self._index + 1 :]
        self._entries.append(path)
        self._index += 1

    def replace(self, path: str) -> None:
        self._entries[self._index] = path

    def back(self) -> str:
        if self._index > 0:
            self._index -= 1
        return self.current_path

    def forward(self) -> str:
        if self._index < len(self._entries) - 1:
            self._index += 1
        return self.current_path
