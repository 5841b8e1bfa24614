"""Base model for fleet documents.

Every document model inherits from :class:`FleetBaseModel` which
provides:

* ``alias_generator=to_camel`` so snake_case fields map to the camelCase
  keys stored in the remote collections.
* ``extra="allow"`` so fields written by other clients survive a
  validate/dump round trip (documents are loosely typed on the wire).
* :meth:`FleetBaseModel.to_document` producing the plain dict that the
  store and the mutation gateway work with.

Drafts are validated here, at the staging boundary; pydantic errors are
converted into :class:`fleetsync.exceptions.FleetValidationError` by
:func:`validate_draft` so nothing invalid ever reaches the gateway.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from fleetsync._constants import DATE_FORMAT, UPDATED_AT_FIELD
from fleetsync.exceptions import FleetValidationError

TModel = TypeVar("TModel", bound="FleetBaseModel")


def parse_day(value: Any) -> str:
    """Normalize a day to the denormalized ``YYYY-MM-DD`` string used for filtering."""
    if isinstance(value, datetime):
        return value.date().strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    text = str(value).strip()
    try:
        datetime.strptime(text, DATE_FORMAT)
    except ValueError as exc:
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}") from exc
    return text


def require_text(value: Any) -> str:
    """Reject blank strings (required name/plate fields)."""
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValueError("must be non-empty")
    return text


DayString = Annotated[str, BeforeValidator(parse_day)]
"""Annotated type coercing ``date``/``datetime``/strings to ``YYYY-MM-DD``."""

RequiredText = Annotated[str, BeforeValidator(require_text)]
"""Annotated type for fields that must hold non-blank text."""


class FleetBaseModel(BaseModel):
    """Base for fleet document models."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    def to_document(self) -> dict[str, Any]:
        """Dump to the wire representation (camelCase keys, no ``updatedAt``)."""
        dumped = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        dumped.pop(UPDATED_AT_FIELD, None)
        return dumped


def validate_draft(model_cls: type[TModel], draft: Mapping[str, Any]) -> TModel:
    """Validate a draft mapping, raising :class:`FleetValidationError` on failure."""
    try:
        return model_cls.model_validate(dict(draft))
    except ValidationError as exc:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = first.get("loc", ())
        field = ".".join(str(part) for part in loc)
        message = first.get("msg", str(exc))
        raise FleetValidationError(
            f"Invalid {model_cls.__name__}: {field or 'document'}: {message}",
            field=field,
        ) from exc
