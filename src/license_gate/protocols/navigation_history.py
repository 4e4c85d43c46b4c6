"""Navigation history protocol."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class NavigationHistory(Protocol):
    """The browser-history operations the navigation interceptor needs."""

    @property
    def current_path(self) -> str:
        """The path of the current history entry."""
        ...

    def push(self, path: str) -> None:
        """Add a new entry after the current one."""
        ...

    def replace(self, path: str) -> None:
        """Overwrite the current entry."""
        ...

    def back(self) -> str:
        """Move one entry back and return the new current path."""
        ...

    def forward(self) -> str:
        """Move one entry forward and return the new current path."""
        ...
