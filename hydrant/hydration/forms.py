"""Parsing and validation of hydration forms.

A hydration form is either a key:

    "user"

or a list whose first item is a key and whose remaining items are forms to
hydrate *inside* the value produced by that key:

    ["venue", "category", ["owner", "address"]]
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

from ..errors import HydrationSpecError


@dataclass(frozen=True)
class HydrationForm:
    """A validated hydration form."""

    key: str
    nested: tuple["HydrationForm", ...] = ()

    @property
    def is_nested(self) -> bool:
        return bool(self.nested)

    def to_raw(self) -> str | list[Any]:
        """Convert back to the plain ``str``/``list`` notation."""
        if not self.nested:
            return self.key
        return [self.key, *(form.to_raw() for form in self.nested)]


def is_key(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def is_valid_form(form: Any) -> bool:
    """Is this a valid argument to ``hydrate``?"""
    try:
        parse_form(form)
    except HydrationSpecError:
        return False
    return True


def parse_form(form: Any) -> HydrationForm:
    """Validate a raw hydration form and return its parsed representation.

    Raises:
        HydrationSpecError: If the form, or any form nested in it, is invalid.
    """
    if isinstance(form, HydrationForm):
        return form
    if is_key(form):
        return HydrationForm(form)
    if isinstance(form, (list, tuple)):
        if len(form) == 1 and is_key(form[0]):
            raise HydrationSpecError(
                f"Invalid hydration form: replace {list(form)!r} with {form[0]!r}. "
                f"Lists are for nested hydration. There's no need to use one "
                f"when you only have a single key."
            )
        if not form:
            raise HydrationSpecError("Invalid hydration form: empty list")
        head, *rest = form
        if not is_key(head):
            raise HydrationSpecError(
                f"Invalid hydration form: {list(form)!r}. The first item of a "
                f"nested form must be a key, got {head!r}"
            )
        if not rest:
            raise HydrationSpecError(f"Invalid hydration form: {list(form)!r}")
        return HydrationForm(head, tuple(parse_form(inner) for inner in rest))
    raise HydrationSpecError(
        f"Invalid hydration form: {form!r}. Expected a non-empty string key "
        f"or a list of the form [key, form, ...]"
    )


def parse_forms(forms: Iterable[Any]) -> tuple[HydrationForm, ...]:
    """Parse every form, failing on the first invalid one."""
    parsed = tuple(parse_form(form) for form in forms)
    if not parsed:
        raise HydrationSpecError("At least one hydration form is required")
    return parsed


def parse_form_string(text: str) -> HydrationForm:
    """Parse a form written on the command line.

    A plain word is a key; anything starting with ``[`` is read as JSON.

        parse_form_string("user")                  -> HydrationForm("user")
        parse_form_string('["venue", "category"]') -> nested form
    """
    text = text.strip()
    if text.startswith("["):
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise HydrationSpecError(
                f"Invalid hydration form {text!r}: {exc.msg}"
            ) from exc
        return parse_form(raw)
    return parse_form(text)
