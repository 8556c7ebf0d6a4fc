"""Batch hydration engine.

Pipeline:
    parse_forms() - validate hydration forms before any I/O
    hydrate_key() - hydrate one key across a collection with one strategy
    apply_by_key() - run nested forms over values flattened by key
    hydrate() - drive the above for every form, recursively
"""

from .engine import Hydrator, hydrate
from .forms import HydrationForm, is_valid_form, parse_form, parse_form_string, parse_forms
from .registry import (
    ResolverRegistry,
    batched_hydrates,
    get_registry,
    hydrates,
    register_batch_resolver,
    register_relation,
    register_simple_resolver,
    reset_registry,
    reset_registry_caches,
)
from .resolver import hydrate_key
from .shape import ABSENT, Absent, Atom, Count, Nil, apply_by_key, flatten, restructure, shape_of
from .strategies import StrategyDecision, choose_strategy

__all__ = [
    "Hydrator",
    "hydrate",
    "HydrationForm",
    "is_valid_form",
    "parse_form",
    "parse_form_string",
    "parse_forms",
    "ResolverRegistry",
    "batched_hydrates",
    "hydrates",
    "get_registry",
    "reset_registry",
    "register_relation",
    "register_batch_resolver",
    "register_simple_resolver",
    "reset_registry_caches",
    "hydrate_key",
    "ABSENT",
    "Absent",
    "Atom",
    "Count",
    "Nil",
    "apply_by_key",
    "flatten",
    "restructure",
    "shape_of",
    "StrategyDecision",
    "choose_strategy",
]
