# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Tagging policy data models."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import PolicyScope
from .record import StoredRecord
from .resource import Resource


class RequiredTag(BaseModel):
    """Definition of a required tag in a policy.

    When both ``allowed_values`` and ``pattern`` are set, a value must
    satisfy both to be compliant.
    """

    key: str = Field(..., min_length=1, description="Name of the required tag")
    description: str = Field("", description="Description of what this tag is for")
    allowed_values: list[str] | None = Field(
        None, description="List of allowed values (if restricted)"
    )
    pattern: str | None = Field(
        None, description="Regex the tag value must match (searched, not anchored)"
    )

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str | None) -> str | None:
        """Reject patterns that do not compile."""
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid regex pattern '{v}': {e}") from e
        return v


class TagPolicy(StoredRecord):
    """A named set of required tags used for compliance scoring."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Global Required Tags",
                "description": "Tags required for all resources",
                "scope": "global",
                "required_tags": [
                    {
                        "key": "Environment",
                        "description": "Environment classification",
                        "allowed_values": ["Development", "Staging", "Production"],
                    },
                    {
                        "key": "Owner",
                        "description": "Resource owner email",
                        "pattern": r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$",
                    },
                ],
                "enabled": True,
            }
        }
    )

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    scope: PolicyScope = Field(PolicyScope.GLOBAL)
    scope_id: str | None = Field(
        None, description="Subscription ID or resource group name the policy is limited to"
    )
    required_tags: list[RequiredTag] = Field(default_factory=list)
    enabled: bool = True

    def applies_to(self, resource: Resource) -> bool:
        """Check whether this policy covers a resource.

        Global policies, and scoped policies without a ``scope_id``, apply
        to every resource.
        """
        if self.scope == PolicyScope.GLOBAL or not self.scope_id:
            return True
        if self.scope == PolicyScope.SUBSCRIPTION:
            return resource.subscription_id.lower() == self.scope_id.lower()
        return resource.resource_group.lower() == self.scope_id.lower()
