# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Compliance service: fetches resources and scores them against policies."""

import logging
from typing import Optional

from ..models.compliance import ComplianceReport, TagValidationResult
from ..models.policy import TagPolicy
from ..services.inventory_service import InventoryService
from ..services.policy_service import PolicyEvaluator, PolicyService

logger = logging.getLogger(__name__)


class ComplianceService:
    """
    Service for checking tag compliance.

    Orchestrates resource collection and policy evaluation.
    """

    def __init__(
        self,
        inventory_service: InventoryService,
        policy_service: PolicyService,
        evaluator: Optional[PolicyEvaluator] = None,
    ):
        """
        Initialize compliance service.

        Args:
            inventory_service: Source of resources
            policy_service: Source of policies
            evaluator: Policy evaluator (a default one is created if omitted)
        """
        self.inventory_service = inventory_service
        self.policy_service = policy_service
        self.evaluator = evaluator or PolicyEvaluator()

    async def _policies(self, policy_id: Optional[str]) -> list[TagPolicy]:
        if policy_id:
            return [await self.policy_service.get_policy(policy_id)]
        return await self.policy_service.list_policies(enabled=True)

    async def check_compliance(
        self,
        token: str,
        subscription_id: Optional[str] = None,
        policy_id: Optional[str] = None,
    ) -> ComplianceReport:
        """
        Check tag compliance of live resources.

        Args:
            token: Caller's bearer token
            subscription_id: Only evaluate this subscription; a listing
                failure then propagates
            policy_id: Only evaluate this policy

        Returns:
            ComplianceReport, listing subscriptions that could not be read

        Raises:
            NotFoundError: If policy_id is unknown
            UpstreamError: If the resources cannot be listed at all
        """
        policies = await self._policies(policy_id)

        if subscription_id:
            resources = await self.inventory_service.arm_client.list_resources(
                subscription_id, token
            )
            failed_subscriptions: list[str] = []
        else:
            fan_out = await self.inventory_service.collect_resources(token)
            resources = fan_out.resources
            failed_subscriptions = fan_out.failed_subscriptions

        report = self.evaluator.evaluate_compliance(resources, policies)
        report.failed_subscriptions = failed_subscriptions

        logger.info(
            f"Compliance check: {report.compliant_resources}/{report.total_resources} "
            f"resources compliant ({report.compliance_percentage}%)"
        )
        return report

    async def validate_tags(
        self,
        tags: dict[str, str],
        policy_id: Optional[str] = None,
    ) -> TagValidationResult:
        """
        Validate a proposed tag map against stored policies.

        Args:
            tags: Tags to validate
            policy_id: Only validate against this policy

        Returns:
            TagValidationResult
        """
        policies = await self._policies(policy_id)
        return self.evaluator.validate_tags(tags, policies)
