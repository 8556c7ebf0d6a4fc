"""Pydantic schemas for storage requests."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core.models import Target


class FetchRequest(BaseModel):
    """A validated bulk fetch of ``target`` entities by primary key."""

    model_config = ConfigDict(frozen=True)

    target: Target
    ids: frozenset[Any] = Field(min_length=1)

    def sorted_ids(self) -> list[Any]:
        """Ids in a stable order (by type name, then value)."""
        return sorted(self.ids, key=lambda v: (type(v).__name__, v))


class SelectRequest(BaseModel):
    """A validated whole-table read used to load root records."""

    model_config = ConfigDict(str_strip_whitespace=True)

    table: str = Field(min_length=1)
    where: dict[str, Any] = Field(default_factory=dict)
    limit: int | None = Field(default=None, ge=1)
