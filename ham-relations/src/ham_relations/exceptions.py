class RelationError(RuntimeError):
    """Base class for relation resolution failures."""


class InstantiationError(RelationError):
    """The related or through entity could not be constructed."""

    def __init__(self, related, reason: str):
        self.related = related
        self.reason = reason
        name = getattr(related, "__name__", None) or repr(related)
        super().__init__(f"Cannot instantiate related entity {name}: {reason}")


class NamingInferenceError(RelationError, ValueError):
    """A relation name or a conventional identifier could not be inferred."""
