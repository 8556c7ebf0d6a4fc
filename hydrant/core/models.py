"""Pydantic models describing where related entities live."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(value: str) -> str:
    if not _IDENTIFIER_RE.match(value):
        raise ValueError(f"Invalid identifier: {value!r}")
    return value


class Target(BaseModel):
    """Where the relation strategy fetches entities from.

    ``name`` is the table (or collection) holding the entities and
    ``primary_key`` the column that foreign keys such as ``user_id`` refer to.
    ``columns`` restricts the columns fetched (``None`` fetches every column).
    ``hydration_keys`` lists the keys this target hydrates when it is picked up
    by ``ResolverRegistry.discover``, e.g. a ``users`` target might hydrate
    both ``user`` and ``creator``.

    Example:
        users = Target(name="users", hydration_keys=("user", "creator"))
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    primary_key: str = "id"
    columns: tuple[str, ...] | None = None
    hydration_keys: tuple[str, ...] = ()

    @field_validator("name", "primary_key")
    @classmethod
    def check_name(cls, value: str) -> str:
        return _check_identifier(value)

    @field_validator("columns")
    @classmethod
    def check_columns(
        cls, value: tuple[str, ...] | None
    ) -> tuple[str, ...] | None:
        if value is None:
            return None
        if not value:
            raise ValueError("columns must be None or non-empty")
        return tuple(_check_identifier(f) for f in value)

    def select_columns(self) -> list[str]:
        """Columns to fetch, always including the primary key."""
        if self.columns is None:
            return ["*"]
        columns = list(self.columns)
        if self.primary_key not in columns:
            columns.insert(0, self.primary_key)
        return columns
