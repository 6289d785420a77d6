"""Domain errors raised by the study engine and the services built on it."""

from typing import Any, Optional


class InvalidRating(ValueError):
    """Rating outside the accepted quality scale. Never clamped."""

    def __init__(self, value: Any, message: Optional[str] = None):
        self.value = value
        super().__init__(message or f"Invalid rating: {value!r} (expected 0-5 or again/hard/good/easy)")


class NotFound(KeyError):
    """
    Referenced entity does not exist or is not owned by the caller.

    Ownership failures use this too, so a foreign id is indistinguishable
    from a missing one.
    """

    def __init__(self, kind: str, entity_id: Any = None):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(kind)

    def __str__(self) -> str:
        return f"{self.kind.capitalize()} not found"
