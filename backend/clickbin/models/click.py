from typing import Any

from pydantic import BaseModel

EventId = str | int

RESERVED_FIELDS = ("event_id", "species")


class ClickRecord(BaseModel):
    """One detected click. Numeric measurements ride along as extra fields."""

    event_id: EventId
    species: str | None = None

    model_config = {"extra": "allow", "frozen": True}

    @property
    def features(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def with_features(self, features: dict[str, Any]) -> "ClickRecord":
        """Return a copy carrying exactly the given feature fields."""
        return ClickRecord(event_id=self.event_id, species=self.species, **features)
