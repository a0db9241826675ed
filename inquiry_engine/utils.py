"""Shared utilities used across the inquiry engine."""

import math
import re
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake

from inquiry_engine.errors import ValidationError

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# pydantic error types that mean "the caller left this out"
_MISSING_ERROR_TYPES = {"missing", "string_too_short", "too_short"}

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_email(value: str) -> str:
    """Normalize an email address by trimming whitespace and lowercasing it.

    Examples:
        >>> normalize_email("  Emma@Example.COM ")
        'emma@example.com'
    """
    return value.strip().lower()


def is_valid_email(value: str) -> bool:
    """Loose shape check: one @, no whitespace, a dot in the domain.

    Examples:
        >>> is_valid_email("emma@example.com")
        True
        >>> is_valid_email("emma@example")
        False
    """
    return bool(_EMAIL_PATTERN.match(value.strip()))


def round_half_up(value: float) -> int:
    """Round to the nearest whole currency unit, halves rounding up.

    Examples:
        >>> round_half_up(2.5)
        3
    """
    return int(math.floor(value + 0.5))


def parse_model(model_cls: type[ModelT], data: Any, label: str) -> ModelT:
    """
    Coerce ``data`` (a model instance or a mapping) into ``model_cls``.

    Raises:
        ValidationError: Naming every missing or invalid field in snake_case.
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        missing: list[str] = []
        invalid: list[str] = []
        for err in exc.errors():
            name = to_snake(str(err["loc"][0])) if err["loc"] else label
            bucket = missing if err["type"] in _MISSING_ERROR_TYPES else invalid
            if name not in bucket:
                bucket.append(name)
        parts = []
        if missing:
            parts.append(f"missing required fields: {', '.join(missing)}")
        if invalid:
            parts.append(f"invalid fields: {', '.join(invalid)}")
        raise ValidationError(
            f"Invalid {label} - {'; '.join(parts)}.",
            fields=missing + [f for f in invalid if f not in missing],
        ) from None
