"""
Domain models for episode journaling.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation but could be swapped to dataclasses if needed.
Wire names are camelCase (as written by the journaling app), Python names are snake_case.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class Medication(BaseModel):
    """A single remediation taken for an episode."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1)
    dose_mg: float | None = Field(default=None, gt=0.0, description="Dose in milligrams")

    @field_validator("name")
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Medication name must not be blank")
        return v


class Episode(BaseModel):
    """One logged health event."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    occurred_at: datetime = Field(alias="datetime", description="When the episode started")
    intensity: int = Field(default=0, ge=0, le=10)
    duration_minutes: int | None = Field(default=None, gt=0)
    triggers: tuple[str, ...] = ()
    medications: tuple[Medication, ...] = ()
    notes: str = ""

    @field_validator("id", mode="before")
    def coerce_id(cls, v: Any) -> Any:
        if v is None or v == "":
            return uuid4().hex
        return str(v) if isinstance(v, int | float) else v

    @field_validator("intensity", mode="before")
    def missing_intensity_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("triggers", "medications", mode="before")
    def missing_collection_is_empty(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("notes", mode="before")
    def missing_notes_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("occurred_at")
    def ensure_aware(cls, v: datetime) -> datetime:
        """Naive timestamps are wall time of the host; attach its offset."""
        return v if v.tzinfo is not None else v.astimezone()


class Finding(BaseModel):
    """One observation emitted by a pattern rule, rendered verbatim by the UI."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str


class Settings(BaseModel):
    """App preferences carried inside backup files. The engine never reads them."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reminder_enabled: bool = False
    reminder_time: str = Field(default="20:30", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    theme: Literal["system", "light", "dark"] = "system"
    reduced_motion: bool = False
