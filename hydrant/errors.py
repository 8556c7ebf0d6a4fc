"""Exception types raised by hydrant."""


class HydrantError(Exception):
    """Base class for every error raised by hydrant."""


class HydrationSpecError(HydrantError, ValueError):
    """A hydration form passed to ``hydrate`` is malformed.

    Always raised before any resolver or backend is called.
    """


class DuplicateResolverError(HydrantError):
    """A second, different resolver was registered for the same key and kind."""

    def __init__(self, kind: str, key: str, existing: object, new: object):
        self.kind = kind
        self.key = key
        self.existing = existing
        self.new = new
        super().__init__(
            f"Duplicate {kind} resolvers for key {key!r}: {existing!r} and {new!r}. "
            f"Pass replace=True to overwrite."
        )


class ShapeMismatchError(HydrantError):
    """A flattened sequence does not line up with its shape descriptor."""


class ResolverContractError(HydrantError):
    """A batch resolver returned something that cannot be merged back."""
