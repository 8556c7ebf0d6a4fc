"""Flatten a collection of records by a key and put it back together.

Nested hydration needs to run a function over *all* the values found under a
key across a collection, even though each record may hold a list of values, a
single value, ``None``, or nothing at all. This module captures that nesting
as a shape descriptor, flattens the values into one list, and restructures a
(modified) flat list back into the original nesting.

    records ──┬─► shape_of ─────────────────────────┐
              │                                     ├─► restructure ─► merge
              └─► flatten ─► f(flat) ───────────────┘

``apply_by_key`` runs the whole pipeline:

    >>> apply_by_key([{"a": [{"b": 1}, {"b": 2}]}, {"a": {"b": 3}}], "a", f)

calls ``f`` once with ``[{"b": 1}, {"b": 2}, {"b": 3}]`` and routes the first
two results back to the first record and the third to the second.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence, Union

from ..errors import ShapeMismatchError


@dataclass(frozen=True)
class Count:
    """The value is a sequence of ``n`` items."""

    n: int
    as_tuple: bool = False


@dataclass(frozen=True)
class Atom:
    """The value is present, non-None and not a sequence."""


@dataclass(frozen=True)
class Nil:
    """The key is present with a ``None`` value."""


@dataclass(frozen=True)
class Absent:
    """The key is missing, or the record itself is ``None``/not a mapping."""


ShapeTag = Union[Count, Atom, Nil, Absent]

ATOM = Atom()
NIL = Nil()


class _AbsentMarker:
    """Sentinel yielded by ``restructure`` where no value should be written."""

    _instance: "_AbsentMarker | None" = None

    def __new__(cls) -> "_AbsentMarker":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _AbsentMarker()


def is_sequence(value: Any) -> bool:
    """Whether a value counts as a sequence of nested values.

    Strings and bytes are atoms.
    """
    return isinstance(value, (list, tuple))


def tag_for(record: Any, key: str) -> ShapeTag:
    """Describe the value of one record at ``key``."""
    if not isinstance(record, Mapping) or key not in record:
        return Absent()
    value = record[key]
    if value is None:
        return NIL
    if is_sequence(value):
        return Count(len(value), as_tuple=isinstance(value, tuple))
    return ATOM


def shape_of(records: Sequence[Any], key: str) -> list[ShapeTag]:
    """Return the shape descriptor needed to restructure ``records`` later.

        shape_of([{"a": [1, 2]}, {"a": 3}, {"a": None}, {}], "a")
          -> [Count(2), Atom(), Nil(), Absent()]
    """
    return [tag_for(record, key) for record in records]


def flatten(records: Sequence[Any], key: str) -> list[Any]:
    """Flatten ``records`` by ``key``.

        flatten([{"a": [{"b": 1}, {"b": 2}]}, {"a": {"b": 3}}], "a")
          -> [{"b": 1}, {"b": 2}, {"b": 3}]
    """
    flat: list[Any] = []
    for record in records:
        tag = tag_for(record, key)
        if isinstance(tag, Count):
            flat.extend(record[key])
        elif isinstance(tag, Atom):
            flat.append(record[key])
    return flat


def restructure(flat: Sequence[Any], key: str, shape: Sequence[ShapeTag]) -> list[Any]:
    """Rebuild one value per original record from a flat sequence.

    ``Absent`` positions yield ``ABSENT``; ``Nil`` positions yield ``None``.

        restructure([{"b": 2}, {"b": 4}, {"b": 6}], "a", [Count(2), Atom()])
          -> [[{"b": 2}, {"b": 4}], {"b": 6}]

    Raises:
        ShapeMismatchError: If ``flat`` is shorter or longer than ``shape``
            requires.
    """
    values: list[Any] = []
    pos = 0
    for tag in shape:
        if isinstance(tag, Count):
            end = pos + tag.n
            if end > len(flat):
                raise ShapeMismatchError(
                    f"Shape for key {key!r} needs {end} values but only "
                    f"{len(flat)} were given"
                )
            chunk = flat[pos:end]
            values.append(tuple(chunk) if tag.as_tuple else list(chunk))
            pos = end
        elif isinstance(tag, Atom):
            if pos >= len(flat):
                raise ShapeMismatchError(
                    f"Shape for key {key!r} needs more than the {len(flat)} "
                    f"values given"
                )
            values.append(flat[pos])
            pos += 1
        elif isinstance(tag, Nil):
            values.append(None)
        elif isinstance(tag, Absent):
            values.append(ABSENT)
        else:
            raise TypeError(f"Unknown shape tag: {tag!r}")

    if pos != len(flat):
        raise ShapeMismatchError(
            f"Shape for key {key!r} consumed {pos} values but {len(flat)} were given"
        )
    return values


def merge_values(records: Sequence[Any], key: str, values: Sequence[Any]) -> list[Any]:
    """Write ``values`` into ``records`` under ``key`` by position.

    Returns new records; the inputs are not modified.
    """
    if len(records) != len(values):
        raise ShapeMismatchError(
            f"Cannot merge {len(values)} values for key {key!r} into "
            f"{len(records)} records"
        )
    merged = []
    for record, value in zip(records, values):
        if value is ABSENT or not isinstance(record, Mapping):
            merged.append(record)
        else:
            merged.append({**record, key: value})
    return merged


def apply_by_key(
    records: Sequence[Any],
    key: str,
    f: Callable[[list[Any]], Sequence[Any]],
) -> list[Any]:
    """Apply ``f`` to the values of ``records`` flattened by ``key``.

    ``f`` is called exactly once, with every value found under ``key`` across
    the whole collection, and must return a sequence of the same length.

        apply_by_key([{"a": [1, 2], "c": 2}, {"a": 3, "c": 4}], "a",
                     lambda xs: [x * 10 for x in xs])
          -> [{"a": [10, 20], "c": 2}, {"a": 30, "c": 4}]
    """
    shape = shape_of(records, key)
    flat = flatten(records, key)
    updated = list(f(flat))
    if len(updated) != len(flat):
        raise ShapeMismatchError(
            f"Function applied to key {key!r} returned {len(updated)} values "
            f"for {len(flat)} inputs"
        )
    return merge_values(records, key, restructure(updated, key, shape))
