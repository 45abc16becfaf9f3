# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Policy evaluation and policy storage.

``PolicyEvaluator`` is pure: it scores resources against policies and
never talks to Azure. ``PolicyService`` manages the stored policies.
"""

import logging
import re
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from ..clients.arm_client import NotFoundError
from ..clients.repository import Repository
from ..models.compliance import (
    ComplianceReport,
    InvalidTag,
    PolicyComplianceSummary,
    PolicyViolation,
    ResourceComplianceViolation,
    TagValidationResult,
)
from ..models.enums import PolicyScope, ViolationType
from ..models.policy import RequiredTag, TagPolicy
from ..models.resource import Resource
from ..utils.input_validation import ValidationError

logger = logging.getLogger(__name__)


def compliance_percentage(compliant: int, total: int) -> int:
    """
    Percentage of compliant items, rounded half up.

    An empty set is fully compliant.
    """
    if total == 0:
        return 100
    # Integer form of floor(compliant / total * 100 + 0.5)
    return (200 * compliant + total) // (2 * total)


def check_required_tag(
    required_tag: RequiredTag,
    tags: dict[str, str],
) -> tuple[ViolationType, str] | None:
    """
    Check one required tag against a tag map.

    Only the first failing check is reported: absence, then the allowed
    values, then the pattern.

    Args:
        required_tag: Requirement to check
        tags: Tags to check

    Returns:
        (violation type, reason), or None if the requirement is met
    """
    if required_tag.key not in tags:
        return ViolationType.MISSING_TAG, f"Missing required tag: {required_tag.key}"

    value = tags[required_tag.key]

    if required_tag.allowed_values is not None and value not in required_tag.allowed_values:
        return (
            ViolationType.INVALID_VALUE,
            f"Value not in allowed list: {', '.join(required_tag.allowed_values)}",
        )

    if required_tag.pattern is not None and not re.search(required_tag.pattern, value):
        return (
            ViolationType.INVALID_VALUE,
            f"Value does not match required pattern: {required_tag.pattern}",
        )

    return None


class PolicyEvaluator:
    """Evaluates resources and tag maps against required-tag policies."""

    def check_resource(self, resource: Resource, policy: TagPolicy) -> list[PolicyViolation]:
        """
        List the violations of one policy by one resource.

        Args:
            resource: Resource to check
            policy: Policy to check against (applicability is not checked)

        Returns:
            List of violations (empty if compliant)
        """
        violations: list[PolicyViolation] = []
        for required_tag in policy.required_tags:
            failure = check_required_tag(required_tag, resource.tags)
            if failure is None:
                continue
            violation_type, reason = failure
            violations.append(
                PolicyViolation(
                    policy_id=policy.id,
                    key=required_tag.key,
                    violation_type=violation_type,
                    value=resource.tags.get(required_tag.key),
                    reason=reason,
                )
            )
        return violations

    def evaluate_compliance(
        self,
        resources: list[Resource],
        policies: list[TagPolicy],
    ) -> ComplianceReport:
        """
        Score a set of resources against the enabled policies.

        A resource is compliant when it violates none of the enabled
        policies that apply to it.

        Args:
            resources: Resources to evaluate
            policies: Candidate policies; disabled ones are ignored

        Returns:
            ComplianceReport with overall and per-policy figures
        """
        active = [p for p in policies if p.enabled]
        per_policy = {p.id: [0, 0] for p in active}
        violations: list[ResourceComplianceViolation] = []
        compliant_resources = 0

        for resource in resources:
            missing: list[str] = []
            invalid: list[InvalidTag] = []

            for policy in active:
                if not policy.applies_to(resource):
                    continue
                found = self.check_resource(resource, policy)
                per_policy[policy.id][0 if not found else 1] += 1

                for violation in found:
                    if violation.violation_type == ViolationType.MISSING_TAG:
                        missing.append(violation.key)
                    else:
                        invalid.append(
                            InvalidTag(
                                key=violation.key,
                                value=violation.value or "",
                                reason=violation.reason,
                            )
                        )

            if missing or invalid:
                violations.append(
                    ResourceComplianceViolation(
                        resource_id=resource.id,
                        resource_name=resource.name,
                        missing_tags=missing,
                        invalid_tags=invalid,
                    )
                )
            else:
                compliant_resources += 1

        by_policy = [
            PolicyComplianceSummary(
                policy_id=p.id,
                policy_name=p.name,
                compliant=per_policy[p.id][0],
                non_compliant=per_policy[p.id][1],
                percentage=compliance_percentage(per_policy[p.id][0], sum(per_policy[p.id])),
            )
            for p in active
        ]

        total = len(resources)
        logger.debug(
            f"Evaluated {total} resources against {len(active)} policies: "
            f"{compliant_resources} compliant"
        )
        return ComplianceReport(
            total_resources=total,
            compliant_resources=compliant_resources,
            non_compliant_resources=total - compliant_resources,
            compliance_percentage=compliance_percentage(compliant_resources, total),
            violations=violations,
            compliance_by_policy=by_policy,
        )

    def validate_tags(
        self,
        tags: dict[str, str],
        policies: list[TagPolicy],
    ) -> TagValidationResult:
        """
        Validate a proposed tag map against the enabled policies.

        Args:
            tags: Tags to validate
            policies: Candidate policies; disabled ones are ignored

        Returns:
            TagValidationResult with errors for violations and warnings for
            keys no policy knows about
        """
        active = [p for p in policies if p.enabled]
        errors: list[str] = []
        known_keys: set[str] = set()

        for policy in active:
            for required_tag in policy.required_tags:
                known_keys.add(required_tag.key)
                failure = check_required_tag(required_tag, tags)
                if failure is None:
                    continue
                violation_type, reason = failure
                if violation_type == ViolationType.MISSING_TAG:
                    errors.append(reason)
                else:
                    errors.append(
                        f'Tag "{required_tag.key}" has invalid value '
                        f'"{tags[required_tag.key]}". {reason}'
                    )

        warnings = [
            f'Tag "{key}" is not defined by any enabled policy'
            for key in tags
            if active and key not in known_keys
        ]

        return TagValidationResult(valid=not errors, errors=errors, warnings=warnings)


class PolicyService:
    """CRUD for stored tag policies."""

    def __init__(self, repository: Repository[TagPolicy]):
        self.repository = repository

    async def list_policies(
        self,
        scope: Optional[PolicyScope] = None,
        enabled: Optional[bool] = None,
    ) -> list[TagPolicy]:
        """List policies, optionally filtered by scope and enabled flag."""
        policies = await self.repository.list()
        if scope is not None:
            policies = [p for p in policies if p.scope == PolicyScope(scope)]
        if enabled is not None:
            policies = [p for p in policies if p.enabled == enabled]
        return sorted(policies, key=lambda p: p.created_at)

    async def get_policy(self, policy_id: str) -> TagPolicy:
        policy = await self.repository.get(policy_id)
        if policy is None:
            raise NotFoundError(f"Policy not found: {policy_id}")
        return policy

    async def create_policy(self, policy: TagPolicy) -> TagPolicy:
        stored = await self.repository.put(policy, expected_version=0)
        logger.info(f"Created policy '{stored.name}' ({stored.id})")
        return stored

    async def update_policy(
        self,
        policy_id: str,
        updates: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> TagPolicy:
        """
        Apply a partial update to a policy.

        Raises:
            NotFoundError: If the policy does not exist
            ValidationError: If the updated policy is invalid
            VersionConflictError: If the policy changed meanwhile
        """
        existing = await self.get_policy(policy_id)
        try:
            updated = existing.with_updates(updates)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        version = existing.version if expected_version is None else expected_version
        stored = await self.repository.put(updated, expected_version=version)
        logger.info(f"Updated policy '{stored.name}' to version {stored.version}")
        return stored

    async def delete_policy(self, policy_id: str) -> None:
        if not await self.repository.delete(policy_id):
            raise NotFoundError(f"Policy not found: {policy_id}")
        logger.info(f"Deleted policy {policy_id}")
