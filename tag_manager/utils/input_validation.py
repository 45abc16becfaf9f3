# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Input validation utilities for tag operations.

Validation happens before any call to Azure Resource Manager so that
malformed caller input never produces a partial write.
"""

import logging
from typing import Any, Iterable

from pydantic import ValidationError as PydanticValidationError

from ..models.enums import TagOperation

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, field: str, message: str, value: Any = None):
        """
        Initialize validation error.

        Args:
            field: The field that failed validation
            message: Human-readable error message
            value: The invalid value (optional, for logging)
        """
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"Validation error for '{field}': {message}")

    @classmethod
    def from_pydantic(cls, error: PydanticValidationError) -> "ValidationError":
        """Convert the first error of a pydantic ValidationError."""
        first = error.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or error.title
        return cls(field, first.get("msg", str(error)), first.get("input"))


class InputValidator:
    """
    Input validator for tag mutation requests.

    Limits follow what Azure Resource Manager accepts for tags.
    """

    MAX_TAGS_PER_RESOURCE = 50
    MAX_TAG_KEY_LENGTH = 512
    MAX_TAG_VALUE_LENGTH = 256
    FORBIDDEN_KEY_CHARACTERS = set('<>%&\\?/')

    @classmethod
    def validate_resource_ids(
        cls,
        resource_ids: Any,
        max_items: int,
        field_name: str = "resource_ids",
    ) -> list[str]:
        """
        Validate a list of fully-qualified resource IDs.

        Args:
            resource_ids: The value to validate
            max_items: Maximum number of IDs accepted
            field_name: Name of the field (for error messages)

        Returns:
            Validated list of resource IDs

        Raises:
            ValidationError: If validation fails
        """
        if resource_ids is None:
            raise ValidationError(field_name, "Field is required")

        if not isinstance(resource_ids, list):
            raise ValidationError(
                field_name,
                f"Must be an array, got {type(resource_ids).__name__}",
            )

        if not resource_ids:
            raise ValidationError(field_name, "Cannot be empty")

        if len(resource_ids) > max_items:
            raise ValidationError(
                field_name,
                f"Too many resource IDs (max: {max_items})",
                len(resource_ids),
            )

        invalid_ids = [
            rid for rid in resource_ids
            if not isinstance(rid, str) or not rid.lower().startswith("/subscriptions/")
        ]
        if invalid_ids:
            raise ValidationError(
                field_name,
                f"Resource IDs must start with /subscriptions/. "
                f"Invalid IDs: {invalid_ids[:3]}{'...' if len(invalid_ids) > 3 else ''}",
                invalid_ids,
            )

        return resource_ids

    @classmethod
    def validate_tags(
        cls,
        tags: Any,
        field_name: str = "tags",
        allow_empty: bool = False,
        check_values: bool = True,
    ) -> dict[str, str]:
        """
        Validate a tag map.

        Args:
            tags: The value to validate
            field_name: Name of the field (for error messages)
            allow_empty: Whether an empty map is accepted
            check_values: Whether values are checked; a delete only uses the keys

        Returns:
            Validated tag map

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(tags, dict):
            raise ValidationError(
                field_name,
                f"Must be an object, got {type(tags).__name__}",
            )

        if not tags and not allow_empty:
            raise ValidationError(field_name, "Cannot be empty")

        if len(tags) > cls.MAX_TAGS_PER_RESOURCE:
            raise ValidationError(
                field_name,
                f"Too many tags (max: {cls.MAX_TAGS_PER_RESOURCE})",
                len(tags),
            )

        for key, value in tags.items():
            if not isinstance(key, str) or not key.strip():
                raise ValidationError(field_name, "Tag keys must be non-empty strings", key)
            if len(key) > cls.MAX_TAG_KEY_LENGTH:
                raise ValidationError(
                    field_name,
                    f"Tag key too long (max: {cls.MAX_TAG_KEY_LENGTH} chars)",
                    key,
                )
            if cls.FORBIDDEN_KEY_CHARACTERS.intersection(key):
                raise ValidationError(
                    field_name,
                    f"Tag key '{key}' contains a forbidden character (<>%&\\?/)",
                    key,
                )
            if not check_values:
                continue
            if not isinstance(value, str):
                raise ValidationError(
                    field_name,
                    f"Value of tag '{key}' must be a string, got {type(value).__name__}",
                    value,
                )
            if len(value) > cls.MAX_TAG_VALUE_LENGTH:
                raise ValidationError(
                    field_name,
                    f"Value of tag '{key}' too long (max: {cls.MAX_TAG_VALUE_LENGTH} chars)",
                    value,
                )

        return tags

    @classmethod
    def validate_operation(
        cls,
        operation: Any,
        allowed: Iterable[TagOperation] = tuple(TagOperation),
        field_name: str = "operation",
    ) -> TagOperation:
        """
        Validate a tag operation name.

        Args:
            operation: A TagOperation or its string value
            allowed: Operations accepted in this context
            field_name: Name of the field (for error messages)

        Returns:
            The operation as a TagOperation

        Raises:
            ValidationError: If the operation is unknown or not allowed
        """
        allowed = list(allowed)
        try:
            op = TagOperation(operation)
        except ValueError:
            raise ValidationError(
                field_name,
                f"Invalid operation. Valid operations: {sorted(o.value for o in allowed)}",
                operation,
            )

        if op not in allowed:
            raise ValidationError(
                field_name,
                f"Operation '{op.value}' is not allowed here. "
                f"Valid operations: {sorted(o.value for o in allowed)}",
                operation,
            )
        return op
