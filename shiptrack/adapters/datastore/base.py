"""Datastore interface.

Routes talk to persistence only through this abstraction. Every operation
is scoped by owner: a row whose ``user_id`` differs from the caller's is
invisible, exactly as if it did not exist. Rows with no ``user_id`` (e.g.
carriers) are shared reference data, readable by anyone and writable by
no one through the owner-scoped calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

Row = dict[str, Any]


class AbstractDatastore(ABC):
    """Row CRUD with row-level authorization by owner."""

    @abstractmethod
    async def insert(self, table: str, row: Mapping[str, Any], *, owner_id: str | None) -> Row:
        """Insert a row owned by ``owner_id`` and return it with ``id`` and ``created_at``."""
        ...

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        owner_id: str | None,
        filters: Mapping[str, Any] | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[Row], int]:
        """Return ``(page, total)`` of matching rows, newest first.

        Args:
            table: Table name.
            owner_id: Caller id; None selects shared rows only.
            filters: Equality filters applied to row columns.
            offset: Rows to skip.
            limit: Maximum rows to return (None for all).
        """
        ...

    @abstractmethod
    async def get(self, table: str, row_id: str, *, owner_id: str | None) -> Row | None:
        """Return a row visible to ``owner_id`` (owned or shared), else None."""
        ...

    @abstractmethod
    async def update(
        self,
        table: str,
        row_id: str,
        changes: Mapping[str, Any],
        *,
        owner_id: str,
    ) -> Row | None:
        """Apply ``changes`` to a row owned by ``owner_id``; None if not found."""
        ...

    @abstractmethod
    async def delete(self, table: str, row_id: str, *, owner_id: str) -> bool:
        """Delete a row owned by ``owner_id``; return whether it existed."""
        ...
