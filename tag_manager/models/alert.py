# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Alert rule, condition and violation data models."""

import re
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import AlertFrequency
from .record import StoredRecord

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


class MissingTagCondition(BaseModel):
    """Flags resources that do not carry ``tag_key``."""

    type: Literal["missing_tag"] = "missing_tag"
    tag_key: str = Field(..., min_length=1)


class InvalidTagValueCondition(BaseModel):
    """Flags resources whose ``tag_key`` value is outside ``allowed_values``.

    Resources without the tag are not flagged by this condition.
    """

    type: Literal["invalid_tag_value"] = "invalid_tag_value"
    tag_key: str = Field(..., min_length=1)
    allowed_values: list[str] = Field(default_factory=list)


class ResourceTypeCondition(BaseModel):
    """Flags resources whose type equals ``resource_type``."""

    type: Literal["resource_type"] = "resource_type"
    resource_type: str = Field(..., min_length=1)


class CostThresholdCondition(BaseModel):
    """Reserved for cost-based alerts; never produces violations."""

    type: Literal["cost_threshold"] = "cost_threshold"
    threshold: float = Field(..., ge=0.0)


AlertCondition = Annotated[
    Union[
        MissingTagCondition,
        InvalidTagValueCondition,
        ResourceTypeCondition,
        CostThresholdCondition,
    ],
    Field(discriminator="type"),
]


class AlertScope(BaseModel):
    """Limits an alert to subscriptions and/or resource groups."""

    subscriptions: list[str] | None = None
    resource_groups: list[str] | None = None


class AlertRule(StoredRecord):
    """A scheduled check that notifies recipients about violations."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Missing Environment Tag",
                "description": "Alert when resources are missing the Environment tag",
                "enabled": True,
                "frequency": "daily",
                "conditions": [{"type": "missing_tag", "tag_key": "Environment"}],
                "recipients": ["finops@company.com"],
                "scope": {},
            }
        }
    )

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    enabled: bool = True
    frequency: AlertFrequency
    conditions: list[AlertCondition] = Field(..., min_length=1)
    recipients: list[str] = Field(..., min_length=1)
    scope: AlertScope = Field(default_factory=AlertScope)
    last_triggered: datetime | None = None

    @field_validator("recipients")
    @classmethod
    def validate_recipients(cls, v: list[str]) -> list[str]:
        """Ensure every recipient looks like an email address."""
        for recipient in v:
            if not EMAIL_PATTERN.match(recipient):
                raise ValueError(f"Invalid recipient email address: {recipient}")
        return v


class AlertViolation(BaseModel):
    """A resource that matched one alert condition."""

    resource_id: str
    resource_name: str
    resource_type: str
    resource_group: str
    subscription_id: str
    location: str
    condition: AlertCondition
    reason: str
    tags: dict[str, str] = Field(default_factory=dict)


class AlertRunSummary(BaseModel):
    """Counts for a single alert run."""

    total_resources_checked: int = Field(..., ge=0)
    violations_found: int = Field(..., ge=0)
    alert_conditions: int = Field(..., ge=0)


class AlertRunResult(BaseModel):
    """Violations and summary produced by running one alert."""

    violations: list[AlertViolation] = Field(default_factory=list)
    summary: AlertRunSummary
    failed_subscriptions: list[str] = Field(default_factory=list)
    notification_sent: bool = False


class AlertOutcome(BaseModel):
    """Per-alert result of running all enabled alerts.

    Either ``error`` is set, or the counts are.
    """

    alert_id: str
    alert_name: str
    violations_found: int | None = None
    notification_sent: bool | None = None
    error: str | None = None
