"""
Turns pydantic validation failures into dashboard ``ValidationError``s.
"""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel

from src.errors import BackendError, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_payload(model: type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` against ``model``, raising ``ValidationError`` with per-field messages."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(field_errors=field_errors(e)) from e


def field_errors(error: pydantic.ValidationError) -> dict[str, str]:
    """Flatten pydantic errors to ``{field: message}``, first message per field wins."""
    errors: dict[str, str] = {}
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "__all__"
        if field in errors:
            continue
        if item["type"] == "missing":
            message = f"{field.replace('_', ' ').capitalize()} is required"
        else:
            message = item["msg"].removeprefix("Value error, ")
        errors[field] = message
    return errors


def malformed_row(table: str, row: Any, error: pydantic.ValidationError) -> BackendError:
    """A stored row that no longer fits its model is a backend fault, not a caller one."""
    record_id = row.get("id") if isinstance(row, dict) else None
    return BackendError(
        f"Malformed {table} row",
        details={"table": table, "id": record_id, "fields": field_errors(error)},
        cause=error,
    )


def parse_row(model: type[ModelT], table: str, row: Any) -> ModelT:
    """Validate a backend row, raising ``BackendError`` when it does not fit ``model``."""
    try:
        return model.model_validate(row)
    except pydantic.ValidationError as e:
        raise malformed_row(table, row, e) from e
