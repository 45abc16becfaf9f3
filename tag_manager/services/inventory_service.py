# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Inventory service: resource collection across subscriptions and search."""

import logging

from ..clients.arm_client import ArmClient, NotFoundError
from ..models.resource import (
    FanOutResult,
    Pagination,
    Resource,
    ResourceFilters,
    ResourceGroup,
    ResourcePage,
    SearchCriteria,
    Subscription,
)

logger = logging.getLogger(__name__)


def matches_criteria(resource: Resource, criteria: SearchCriteria) -> bool:
    """
    Check a resource against every search criterion that is set.

    Args:
        resource: Resource to check
        criteria: Search criteria

    Returns:
        True if the resource satisfies all criteria
    """
    if criteria.query:
        query = criteria.query.lower()
        if query not in resource.name.lower() and query not in resource.type.lower():
            return False

    if criteria.resource_type and resource.type != criteria.resource_type:
        return False

    if criteria.location and resource.location != criteria.location:
        return False

    if criteria.has_tag and criteria.has_tag not in resource.tags:
        return False

    if criteria.missing_tag and criteria.missing_tag in resource.tags:
        return False

    if criteria.missing_tags:
        if all(key in resource.tags for key in criteria.missing_tags):
            return False

    if criteria.tag_key and criteria.tag_value is not None:
        if resource.tags.get(criteria.tag_key) != criteria.tag_value:
            return False

    return True


class InventoryService:
    """
    Gathers resources from Azure Resource Manager.

    Every feature that needs "all resources" goes through
    ``collect_resources`` so that partial subscription failures are
    handled the same way everywhere.
    """

    def __init__(self, arm_client: ArmClient):
        self.arm_client = arm_client

    async def list_subscriptions(self, token: str) -> list[Subscription]:
        """List subscriptions visible to the caller."""
        return await self.arm_client.list_subscriptions(token)

    async def list_resource_groups(self, subscription_id: str, token: str) -> list[ResourceGroup]:
        """List resource groups of one subscription."""
        return await self.arm_client.list_resource_groups(subscription_id, token)

    async def get_resource(self, resource_id: str, token: str) -> Resource:
        """
        Fetch one resource.

        Raises:
            NotFoundError: If the resource does not exist
            UpstreamError: If the provider call fails
        """
        resource = await self.arm_client.get_resource(resource_id, token)
        if resource is None:
            raise NotFoundError(f"Resource not found: {resource_id}")
        return resource

    async def collect_resources(
        self,
        token: str,
        subscription_ids: list[str] | None = None,
        filters: ResourceFilters | None = None,
    ) -> FanOutResult:
        """
        List resources across subscriptions, one subscription at a time.

        A subscription whose listing fails is logged and skipped; the
        others are still returned.

        Args:
            token: Caller's bearer token
            subscription_ids: Subscriptions to scan (all visible ones if None)
            filters: Filters passed to each listing

        Returns:
            FanOutResult with the resources and the failed subscriptions

        Raises:
            UpstreamError: If subscriptions must be listed and that fails
        """
        if subscription_ids is None:
            subscriptions = await self.arm_client.list_subscriptions(token)
            subscription_ids = [s.subscription_id for s in subscriptions]

        resources: list[Resource] = []
        failed_subscriptions: list[str] = []

        for subscription_id in subscription_ids:
            try:
                resources.extend(
                    await self.arm_client.list_resources(subscription_id, token, filters)
                )
            except Exception as e:
                logger.warning(
                    f"Failed to fetch resources from subscription {subscription_id}: {str(e)}"
                )
                failed_subscriptions.append(subscription_id)

        logger.info(
            f"Collected {len(resources)} resources from "
            f"{len(subscription_ids) - len(failed_subscriptions)}/{len(subscription_ids)} subscriptions"
        )
        return FanOutResult(resources=resources, failed_subscriptions=failed_subscriptions)

    async def search_resources(self, token: str, criteria: SearchCriteria) -> ResourcePage:
        """
        Search resources and return one page of matches.

        With ``criteria.subscription_id`` only that subscription is listed
        and a failure propagates; otherwise all subscriptions are scanned
        and failures are reported in the page.

        Args:
            token: Caller's bearer token
            criteria: Search criteria and pagination

        Returns:
            ResourcePage with the requested slice of matches
        """
        if criteria.subscription_id:
            resources = await self.arm_client.list_resources(criteria.subscription_id, token)
            failed_subscriptions: list[str] = []
        else:
            fan_out = await self.collect_resources(token)
            resources = fan_out.resources
            failed_subscriptions = fan_out.failed_subscriptions

        matches = [r for r in resources if matches_criteria(r, criteria)]
        page = matches[criteria.offset:criteria.offset + criteria.limit]

        return ResourcePage(
            resources=page,
            pagination=Pagination(
                total=len(matches),
                limit=criteria.limit,
                offset=criteria.offset,
                has_more=criteria.offset + criteria.limit < len(matches),
            ),
            failed_subscriptions=failed_subscriptions,
        )
