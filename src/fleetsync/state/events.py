"""Feed-level value types.

Every delivery from a remote subscription is wrapped into a
:class:`FeedSnapshot` before it touches the document store.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleetsync._constants import DATE_FIELD
from fleetsync.models._base import parse_day


class FeedState(StrEnum):
    INITIALIZING = "initializing"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class FieldFilter(BaseModel):
    """Single equality predicate evaluated server-side."""

    model_config = ConfigDict(frozen=True)

    field: str
    value: str

    @field_validator("field")
    @classmethod
    def _non_empty_field(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("filter field must be non-empty")
        return name

    @classmethod
    def for_day(cls, day: date | datetime | str) -> FieldFilter:
        """Filter on the denormalized ``date`` string of a dated collection."""
        return cls(field=DATE_FIELD, value=parse_day(day))

    def matches(self, document: Mapping[str, Any]) -> bool:
        return document.get(self.field) == self.value


class FeedSnapshot(BaseModel):
    """Complete result set of one subscription at one point in time."""

    model_config = ConfigDict(frozen=True)

    collection: str
    filter: FieldFilter | None = None
    sequence: int = Field(..., ge=1, description="Per-feed delivery counter")
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    records: list[dict[str, Any]] = Field(default_factory=list)
