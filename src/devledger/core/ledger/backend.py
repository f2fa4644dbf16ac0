"""
Storage backend protocol and registry.

This module defines the StorageBackend protocol that both entry stores
(git notes and JSON files) implement, so the Ledger can swap one for the
other without changing its logic.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from devledger.core.ledger.models import Entry


@dataclass
class ListStats:
    """Statistics about a listing pass over a backend.

    Attributes:
        total: Records found (files or notes)
        parsed: Successfully decoded as ledger entries
        skipped: Records that were not returned
        not_ledger: Valid JSON carrying a foreign schema
        parse_errors: Records that failed to decode
    """

    total: int = 0
    parsed: int = 0
    skipped: int = 0
    not_ledger: int = 0
    parse_errors: int = 0


@runtime_checkable
class StorageBackend(Protocol):
    """
    Protocol for entry storage implementations.

    Backends are responsible for:
    - Persisting whole records atomically, keyed by entry ID
    - Loading a single record or signalling that it does not exist
    - Listing every record they hold, in no particular order

    Backends do not validate entries or enforce overwrite rules; the Ledger
    does that before calling ``store``.
    """

    @property
    def backend_name(self) -> str:
        """Registered name of this backend (e.g. 'files', 'notes')."""
        ...

    @property
    def location(self) -> str:
        """Where records live: the ledger directory or the notes ref."""
        ...

    def store(self, entry: Entry) -> None:
        """
        Persist an entry, replacing any record with the same ID.

        Args:
            entry: Entry to write

        Raises:
            LedgerSystemError: If the write fails
            ConflictError: If the backend cannot hold this record alongside
                an existing one (e.g. a different entry on the same anchor)
        """
        ...

    def load(self, entry_id: str) -> Entry:
        """
        Load an entry by ID.

        Raises:
            EntryNotFoundError: If no record exists for the ID
        """
        ...

    def exists(self, entry_id: str) -> bool:
        """Whether a record exists for the ID."""
        ...

    def list_entries(self) -> list[Entry]:
        """All entries held by the backend, unordered. Unreadable records are skipped."""
        ...

    def list_entries_with_stats(self) -> tuple[list[Entry], ListStats]:
        """Like ``list_entries`` but also reports what was skipped."""
        ...

    def delete(self, entry_id: str) -> None:
        """
        Remove an entry. Used only by explicit ledger cleanup.

        Raises:
            EntryNotFoundError: If no record exists for the ID
        """
        ...


# Backend registry
_backends: dict[str, Callable[..., StorageBackend]] = {}


def register_backend(name: str) -> Callable[[type[Any]], type[Any]]:
    """
    Decorator to register a storage backend implementation.

    Usage:
        @register_backend("files")
        class FileBackend:
            def store(self, entry): ...
    """

    def decorator(backend_class: type[Any]) -> type[Any]:
        _backends[name] = backend_class
        return backend_class

    return decorator


def get_backend(name: str, **kwargs: Any) -> StorageBackend:
    """
    Instantiate a registered backend.

    Args:
        name: Backend name ('files' or 'notes')
        **kwargs: Constructor arguments for the backend

    Raises:
        ValueError: If the backend name is not registered
    """
    backend_class = _backends.get(name)
    if backend_class is None:
        raise ValueError(
            f"Backend '{name}' not registered. Available backends: {', '.join(_backends.keys())}"
        )
    return backend_class(**kwargs)


def list_backends() -> list[str]:
    """List all registered backend names."""
    return list(_backends.keys())
