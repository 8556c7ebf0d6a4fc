"""hydrant: batch hydration of related data into records.

    from hydrant import Target, hydrate, register_relation

    register_relation("user", Target(name="users"))
    hydrate([{"user_id": 100}, {"user_id": 101}], "user")
    # one fetch for users 100 and 101, attached under "user"
"""

__version__ = "0.1.0"

from .core.models import Target
from .errors import (
    DuplicateResolverError,
    HydrantError,
    HydrationSpecError,
    ResolverContractError,
    ShapeMismatchError,
)
from .hydration import (
    Hydrator,
    ResolverRegistry,
    batched_hydrates,
    get_registry,
    hydrate,
    hydrates,
    register_batch_resolver,
    register_relation,
    register_simple_resolver,
    reset_registry,
    reset_registry_caches,
)

__all__ = [
    "__version__",
    "Target",
    "HydrantError",
    "HydrationSpecError",
    "DuplicateResolverError",
    "ResolverContractError",
    "ShapeMismatchError",
    "Hydrator",
    "ResolverRegistry",
    "batched_hydrates",
    "hydrates",
    "get_registry",
    "hydrate",
    "register_relation",
    "register_batch_resolver",
    "register_simple_resolver",
    "reset_registry",
    "reset_registry_caches",
]
