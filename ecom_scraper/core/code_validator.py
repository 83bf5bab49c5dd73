"""
Code Validator
Structural acceptance test for the product arrays produced by generated code

This is a cheap heuristic, not a correctness check: it catches the common
failure of a syntactically valid extractor that returns nothing useful, so
that such code is retried before it is cached.
"""

import logging
from typing import Any

from .errors import ValidationFailed
from .models import KEY_PRODUCT_FIELDS

logger = logging.getLogger(__name__)


def validate_products(result: Any) -> None:
    """
    Accept or reject the output of a generated extractor.

    Args:
        result: Value returned by extractProducts

    Raises:
        ValidationFailed: with a human-readable reason when the result is not
            a list, is empty, or has no element with a populated key field
    """
    if not isinstance(result, list):
        raise ValidationFailed(
            f"extractProducts must return an array, got {type(result).__name__}"
        )

    if not result:
        raise ValidationFailed(
            "extractProducts returned an empty array; no products were found in the sample"
        )

    if not any(_has_key_field(item) for item in result):
        raise ValidationFailed(
            f"extractProducts returned {len(result)} items but none has a non-empty "
            f"{', '.join(KEY_PRODUCT_FIELDS)}; the selectors or patterns are probably wrong"
        )

    logger.debug(f" Validation passed ({len(result)} items)")


def _has_key_field(item: Any) -> bool:
    return isinstance(item, dict) and any(item.get(field) for field in KEY_PRODUCT_FIELDS)
