# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Report data models."""

from datetime import datetime, UTC

from pydantic import BaseModel, Field


class CoverageBreakdown(BaseModel):
    """Tagged/untagged counts for one group of resources."""

    total: int = Field(..., description="Resources in this group", ge=0)
    tagged: int = Field(..., description="Resources carrying at least one tag", ge=0)
    untagged: int = Field(..., description="Resources without any tag", ge=0)
    percentage: int = Field(
        ..., description="Tagged share of the group, whole percent", ge=0, le=100
    )


class CommonTag(BaseModel):
    """A frequently used tag key."""

    key: str
    count: int = Field(..., description="Resources carrying this key", ge=0)
    percentage: int = Field(
        ..., description="Share of all resources, whole percent", ge=0, le=100
    )


class ResourceSummary(BaseModel):
    """A single resource row in a report."""

    id: str
    name: str
    type: str
    location: str
    resource_group: str
    subscription_id: str
    tag_count: int = Field(..., ge=0)
    tags: dict[str, str] = Field(default_factory=dict)


class TagCoverageReport(BaseModel):
    """How well resources are tagged, overall and per group."""

    total_resources: int = Field(..., ge=0)
    tagged_resources: int = Field(..., ge=0)
    untagged_resources: int = Field(..., ge=0)
    coverage_percentage: int = Field(..., ge=0, le=100)
    by_resource_type: dict[str, CoverageBreakdown] = Field(default_factory=dict)
    by_subscription: dict[str, CoverageBreakdown] = Field(default_factory=dict)
    common_tags: list[CommonTag] = Field(
        default_factory=list, description="Top 10 tag keys by resource count"
    )
    subscription_filter: list[str] | None = None
    details: list[ResourceSummary] | None = Field(
        None, description="Per-resource rows, only when requested"
    )
    failed_subscriptions: list[str] = Field(
        default_factory=list, description="Subscriptions that could not be listed"
    )
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class InventoryReport(BaseModel):
    """Resource counts grouped by type, location and subscription."""

    total_resources: int = Field(..., ge=0)
    unique_resource_types: int = Field(..., ge=0)
    unique_locations: int = Field(..., ge=0)
    unique_resource_groups: int = Field(..., ge=0)
    by_resource_type: dict[str, int] = Field(default_factory=dict)
    by_location: dict[str, int] = Field(default_factory=dict)
    by_subscription: dict[str, int] = Field(default_factory=dict)
    resources: list[ResourceSummary] = Field(default_factory=list)
    filters: dict[str, str] = Field(default_factory=dict)
    failed_subscriptions: list[str] = Field(
        default_factory=list, description="Subscriptions that could not be listed"
    )
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TagInventory(BaseModel):
    """Every tag key in use with its distinct values."""

    tags: dict[str, list[str]] = Field(default_factory=dict)
    total_keys: int = Field(0, ge=0)
    resources_with_tags: int = Field(0, ge=0)
    resources_without_tags: int = Field(0, ge=0)
    failed_subscriptions: list[str] = Field(
        default_factory=list, description="Subscriptions that could not be listed"
    )


class CostGroup(BaseModel):
    """Cost attributed to one tag value or resource type."""

    name: str
    cost: float = Field(..., ge=0.0)
    resource_count: int = Field(..., ge=0)
    percentage: float = Field(..., description="Share of total cost, one decimal", ge=0.0)


class CostBreakdownReport(BaseModel):
    """Cost split by tagging state, tag values and resource type."""

    total_cost: float = Field(..., ge=0.0)
    tagged_cost: float = Field(..., ge=0.0)
    untagged_cost: float = Field(..., ge=0.0)
    tagged_percentage: float = Field(..., ge=0.0)
    untagged_percentage: float = Field(..., ge=0.0)
    by_tag: dict[str, list[CostGroup]] = Field(
        default_factory=dict, description="Cost groups per requested tag key"
    )
    by_resource_type: list[CostGroup] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
