"""Enumerations shared across the tag manager models."""

from enum import Enum


class TagOperation(str, Enum):
    """How a tag set is applied to a resource's existing tags."""

    REPLACE = "replace"
    MERGE = "merge"
    DELETE = "delete"


class PolicyScope(str, Enum):
    """Reach of a tag policy."""

    GLOBAL = "global"
    SUBSCRIPTION = "subscription"
    RESOURCE_GROUP = "resourceGroup"


class ViolationType(str, Enum):
    """Types of required-tag policy violations."""

    MISSING_TAG = "missing_tag"
    INVALID_VALUE = "invalid_value"


class AlertFrequency(str, Enum):
    """How often an alert rule is checked by the scheduler."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ConditionType(str, Enum):
    """Alert condition variants."""

    MISSING_TAG = "missing_tag"
    INVALID_TAG_VALUE = "invalid_tag_value"
    RESOURCE_TYPE = "resource_type"
    COST_THRESHOLD = "cost_threshold"
