"""
Validation and sanitization utilities.

Upstream payloads and persisted blobs are both checked against the pydantic
shapes in ``storm_alert_filter.schemas``. Upstream failures propagate to the
caller; persisted failures are self-healing: the corrupt entry is removed
and a fallback is returned.
"""

import json
import math
import re
from typing import TYPE_CHECKING, Any, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .error_handling import StorageError, ValidationError
from .logging import get_logger

if TYPE_CHECKING:
    from ..interfaces import IStateStorage

logger = get_logger("validation")

ModelT = TypeVar("ModelT", bound=BaseModel)
FallbackT = TypeVar("FallbackT")

_SCRIPT_BLOCK = re.compile(
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE
)
_JAVASCRIPT_URI = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+=", re.IGNORECASE)


def sanitize_string(value: Any, max_length: int = 1000) -> str:
    """
    Strip markup injection patterns from text and cap its length.

    Args:
        value: Candidate text; anything that is not a string yields ""
        max_length: Maximum length of the result

    Returns:
        Sanitized string
    """
    if not value or not isinstance(value, str):
        return ""

    cleaned = _SCRIPT_BLOCK.sub("", value)
    cleaned = _JAVASCRIPT_URI.sub("", cleaned)
    cleaned = _EVENT_HANDLER.sub("", cleaned)

    return cleaned.strip()[:max_length].strip()


def sanitize_number(
    value: Any,
    fallback: float = 0,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    """
    Coerce value to a finite number within [min_value, max_value].

    Returns fallback when the value cannot be coerced, is NaN or infinite,
    or lies outside the bounds. Booleans are not treated as numbers.
    """
    if isinstance(value, bool) or value is None:
        return fallback

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return fallback

    if math.isnan(number) or math.isinf(number):
        return fallback

    if min_value is not None and number < min_value:
        return fallback

    if max_value is not None and number > max_value:
        return fallback

    return number


def validate(raw: Any, schema: Type[ModelT]) -> ModelT:
    """
    Validate raw data against a declared shape.

    Raises:
        ValidationError: If raw does not match schema
    """
    try:
        return schema.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(
            f"{schema.__name__} validation failed with {e.error_count()} error(s)",
            errors=e.errors(include_url=False),
        ) from e


def validate_and_sanitize_stored_data(
    storage: "IStateStorage",
    key: str,
    schema: Type[ModelT],
    fallback: FallbackT,
) -> "ModelT | FallbackT":
    """
    Read and validate a persisted JSON blob.

    A missing key yields fallback. An unreadable, unparseable or invalid
    entry is removed from storage and fallback is returned.
    """
    try:
        stored = storage.get_item(key)
    except StorageError as e:
        logger.warning(
            f"Could not read stored data for {key}, using fallback",
            extra={"key": key, "error": str(e)},
        )
        return fallback

    if stored is None:
        return fallback

    try:
        return validate(json.loads(stored), schema)
    except (ValueError, TypeError, ValidationError) as e:
        logger.warning(
            f"Invalid stored data for {key}, using fallback",
            extra={"key": key, "error": str(e)},
        )

    try:
        storage.remove_item(key)
    except StorageError as e:
        logger.error(
            f"Could not purge invalid stored data for {key}",
            extra={"key": key, "error": str(e)},
        )

    return fallback
