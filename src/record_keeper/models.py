"""Domain model for record-keeper.

A record is the only entity the system manages. Its identity is assigned once
and never changes; a store persists it as a row keyed by that identity.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Record:
    """A uniquely identified, named record.

    This dataclass is immutable (frozen=True) and uses slots for memory efficiency.

    Attributes:
        id: Opaque unique identifier, assigned at creation and never reused.
        name: Display name. Not required to be unique.
    """

    id: uuid.UUID
    name: str

    @classmethod
    def create(cls, name: str) -> Record:
        """Build a new record with a freshly generated id.

        Args:
            name: Name for the new record.

        Returns:
            A record whose id has never been handed out before.
        """
        return cls(id=uuid.uuid4(), name=name)

    def to_row(self) -> dict[str, Any]:
        """Persisted form of this record."""
        return {"id": str(self.id), "name": self.name}

    @classmethod
    def from_row(cls, row: Any) -> Record:
        """Rebuild a record from its persisted form.

        Args:
            row: A mapping (or sqlite row) with ``id`` and ``name`` keys.

        Returns:
            The record the row represents.

        Raises:
            ValueError: If the id is not a valid UUID or the name is not a string.
        """
        name = row["name"]
        if not isinstance(name, str):
            raise ValueError(f"Record name must be a string, got {type(name).__name__}")
        return cls(id=uuid.UUID(str(row["id"])), name=name)
