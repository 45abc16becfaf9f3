# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Report generation: tag coverage, inventory, tag usage and cost splits.

The builders are pure functions of a resource list. The ``generate_*``
methods fetch the resources first through the inventory service.
"""

import logging
from collections import Counter, defaultdict
from typing import Optional

from ..models.report import (
    CommonTag,
    CostBreakdownReport,
    CostGroup,
    CoverageBreakdown,
    InventoryReport,
    ResourceSummary,
    TagCoverageReport,
    TagInventory,
)
from ..models.resource import FanOutResult, Resource, ResourceFilters
from ..services.inventory_service import InventoryService
from ..services.policy_service import compliance_percentage

logger = logging.getLogger(__name__)

UNTAGGED = "Untagged"
TOP_TAGS_LIMIT = 10


def _cost_share(part: float, total: float) -> float:
    """Share of ``part`` in ``total`` as a percentage with one decimal."""
    if total == 0:
        return 0.0
    return round(part / total * 100, 1)


def _summarize(resource: Resource) -> ResourceSummary:
    return ResourceSummary(
        id=resource.id,
        name=resource.name,
        type=resource.type,
        location=resource.location,
        resource_group=resource.resource_group,
        subscription_id=resource.subscription_id,
        tag_count=len(resource.tags),
        tags=dict(resource.tags),
    )


def _coverage_by(resources: list[Resource], key) -> dict[str, CoverageBreakdown]:
    groups: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for resource in resources:
        groups[key(resource)][0 if resource.tags else 1] += 1

    return {
        name: CoverageBreakdown(
            total=tagged + untagged,
            tagged=tagged,
            untagged=untagged,
            percentage=compliance_percentage(tagged, tagged + untagged),
        )
        for name, (tagged, untagged) in sorted(groups.items())
    }


def _cost_groups(
    resources: list[Resource],
    cost_of: dict[str, float],
    key,
    total_cost: float,
) -> list[CostGroup]:
    costs: dict[str, float] = defaultdict(float)
    counts: Counter = Counter()
    for resource in resources:
        name = key(resource)
        costs[name] += cost_of.get(resource.id.lower(), 0.0)
        counts[name] += 1

    groups = [
        CostGroup(
            name=name,
            cost=round(cost, 2),
            resource_count=counts[name],
            percentage=_cost_share(cost, total_cost),
        )
        for name, cost in costs.items()
    ]
    return sorted(groups, key=lambda g: (-g.cost, g.name))


class ReportService:
    """
    Service for generating tag governance reports.

    Coverage here means "carries at least one tag"; policy compliance is
    handled by the compliance service.
    """

    def __init__(self, inventory_service: Optional[InventoryService] = None):
        """
        Initialize the report service.

        Args:
            inventory_service: Needed only by the generate_* methods
        """
        self.inventory_service = inventory_service

    def tag_coverage_report(
        self,
        resources: list[Resource],
        subscription_filter: Optional[list[str]] = None,
        include_details: bool = False,
    ) -> TagCoverageReport:
        """
        Build a tag coverage report.

        Args:
            resources: Resources to report on
            subscription_filter: Subscriptions the resources were limited to,
                recorded in the report
            include_details: Add one row per resource

        Returns:
            TagCoverageReport
        """
        total = len(resources)
        tagged = sum(1 for r in resources if r.tags)

        key_counts = Counter(key for r in resources for key in r.tags)
        common_tags = [
            CommonTag(key=key, count=count, percentage=compliance_percentage(count, total))
            for key, count in sorted(key_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ][:TOP_TAGS_LIMIT]

        return TagCoverageReport(
            total_resources=total,
            tagged_resources=tagged,
            untagged_resources=total - tagged,
            coverage_percentage=compliance_percentage(tagged, total),
            by_resource_type=_coverage_by(resources, lambda r: r.type),
            by_subscription=_coverage_by(resources, lambda r: r.subscription_id),
            common_tags=common_tags,
            subscription_filter=subscription_filter,
            details=[_summarize(r) for r in resources] if include_details else None,
        )

    def inventory_report(
        self,
        resources: list[Resource],
        filters: Optional[dict[str, str]] = None,
    ) -> InventoryReport:
        """
        Build a resource inventory report.

        Args:
            resources: Resources to report on
            filters: Filters the resources were selected with, recorded in
                the report

        Returns:
            InventoryReport
        """
        return InventoryReport(
            total_resources=len(resources),
            unique_resource_types=len({r.type for r in resources}),
            unique_locations=len({r.location for r in resources}),
            unique_resource_groups=len({r.resource_group for r in resources}),
            by_resource_type=dict(Counter(r.type for r in resources)),
            by_location=dict(Counter(r.location for r in resources)),
            by_subscription=dict(Counter(r.subscription_id for r in resources)),
            resources=[_summarize(r) for r in resources],
            filters=filters or {},
        )

    def tag_inventory(self, resources: list[Resource]) -> TagInventory:
        """List every tag key in use with its distinct values."""
        values: dict[str, set[str]] = defaultdict(set)
        for resource in resources:
            for key, value in resource.tags.items():
                values[key].add(value)

        with_tags = sum(1 for r in resources if r.tags)
        return TagInventory(
            tags={key: sorted(vals) for key, vals in sorted(values.items())},
            total_keys=len(values),
            resources_with_tags=with_tags,
            resources_without_tags=len(resources) - with_tags,
        )

    def cost_breakdown(
        self,
        resources: list[Resource],
        costs: dict[str, float],
        tag_keys: list[str],
    ) -> CostBreakdownReport:
        """
        Split resource costs by tagging state, tag value and resource type.

        Args:
            resources: Resources to report on
            costs: Cost per resource ID (IDs compared case-insensitively;
                resources without an entry cost nothing)
            tag_keys: Tag keys to break the cost down by; resources without
                the key are grouped as "Untagged"

        Returns:
            CostBreakdownReport with percentages rounded to one decimal
        """
        cost_of = {resource_id.lower(): cost for resource_id, cost in costs.items()}

        total_cost = 0.0
        tagged_cost = 0.0
        for resource in resources:
            cost = cost_of.get(resource.id.lower(), 0.0)
            total_cost += cost
            if resource.tags:
                tagged_cost += cost
        untagged_cost = total_cost - tagged_cost

        by_tag = {
            tag_key: _cost_groups(
                resources,
                cost_of,
                lambda r, k=tag_key: r.tags.get(k, UNTAGGED),
                total_cost,
            )
            for tag_key in tag_keys
        }

        return CostBreakdownReport(
            total_cost=round(total_cost, 2),
            tagged_cost=round(tagged_cost, 2),
            untagged_cost=round(untagged_cost, 2),
            tagged_percentage=_cost_share(tagged_cost, total_cost),
            untagged_percentage=_cost_share(untagged_cost, total_cost),
            by_tag=by_tag,
            by_resource_type=_cost_groups(resources, cost_of, lambda r: r.type, total_cost),
        )

    # Fetch-and-build helpers

    def _require_inventory(self) -> InventoryService:
        if self.inventory_service is None:
            raise RuntimeError("ReportService was created without an inventory service")
        return self.inventory_service

    async def _fetch(
        self,
        token: str,
        subscription_id: Optional[str],
        filters: Optional[ResourceFilters] = None,
    ) -> FanOutResult:
        inventory = self._require_inventory()
        if subscription_id:
            resources = await inventory.arm_client.list_resources(subscription_id, token, filters)
            return FanOutResult(resources=resources)
        return await inventory.collect_resources(token, filters=filters)

    async def generate_tag_coverage_report(
        self,
        token: str,
        subscription_id: Optional[str] = None,
        include_details: bool = False,
    ) -> TagCoverageReport:
        """Fetch resources and build a tag coverage report."""
        fetched = await self._fetch(token, subscription_id)
        report = self.tag_coverage_report(
            fetched.resources,
            [subscription_id] if subscription_id else None,
            include_details,
        )
        report.failed_subscriptions = fetched.failed_subscriptions
        logger.info(
            f"Tag coverage report: {report.tagged_resources}/{report.total_resources} "
            f"resources tagged ({report.coverage_percentage}%)"
        )
        return report

    async def generate_inventory_report(
        self,
        token: str,
        subscription_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        location: Optional[str] = None,
    ) -> InventoryReport:
        """Fetch resources and build an inventory report."""
        fetched = await self._fetch(
            token, subscription_id, ResourceFilters(resource_type=resource_type)
        )
        resources = fetched.resources
        if location:
            resources = [r for r in resources if r.location == location]

        report = self.inventory_report(
            resources,
            {
                "subscription_id": subscription_id or "all",
                "resource_type": resource_type or "all",
                "location": location or "all",
            },
        )
        report.failed_subscriptions = fetched.failed_subscriptions
        return report

    async def get_tag_inventory(
        self,
        token: str,
        subscription_id: Optional[str] = None,
    ) -> TagInventory:
        """Fetch resources and list the tags they use."""
        fetched = await self._fetch(token, subscription_id)
        inventory = self.tag_inventory(fetched.resources)
        inventory.failed_subscriptions = fetched.failed_subscriptions
        return inventory
