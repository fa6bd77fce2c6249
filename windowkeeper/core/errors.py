"""Exceptions raised by WindowKeeper operations."""

from __future__ import annotations


class WindowNotFoundError(LookupError):
    """Raised when an operation names a saved window that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Window not found: {name}")
        self.name = name


class UnsupportedHostOperation(RuntimeError):
    """Raised by a host for a command its browser API cannot carry out."""
