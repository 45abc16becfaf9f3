"""Utility modules for the Azure tag manager."""

from .correlation import (
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    get_correlation_id_for_logging,
)
from .input_validation import InputValidator, ValidationError
from .resource_utils import (
    extract_resource_group_from_id,
    extract_subscription_id_from_id,
)

__all__ = [
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "get_correlation_id_for_logging",
    "InputValidator",
    "ValidationError",
    "extract_resource_group_from_id",
    "extract_subscription_id_from_id",
]
