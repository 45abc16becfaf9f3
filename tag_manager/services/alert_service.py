# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Alert rules: condition evaluation, runs and storage."""

import logging
from datetime import datetime, UTC
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from ..clients.arm_client import NotFoundError
from ..clients.repository import Repository, VersionConflictError
from ..models.alert import (
    AlertCondition,
    AlertOutcome,
    AlertRule,
    AlertRunResult,
    AlertRunSummary,
    AlertViolation,
    CostThresholdCondition,
    InvalidTagValueCondition,
    MissingTagCondition,
    ResourceTypeCondition,
)
from ..models.enums import AlertFrequency
from ..models.resource import Resource
from ..services.inventory_service import InventoryService
from ..services.notification_service import NotificationService
from ..utils.input_validation import ValidationError

logger = logging.getLogger(__name__)


def _condition_reason(resource: Resource, condition: AlertCondition) -> str | None:
    """Return why the resource matches the condition, or None if it does not."""
    if isinstance(condition, MissingTagCondition):
        if condition.tag_key not in resource.tags:
            return f"Missing required tag: {condition.tag_key}"

    elif isinstance(condition, InvalidTagValueCondition):
        # Absent keys are not flagged here
        if condition.tag_key in resource.tags:
            value = resource.tags[condition.tag_key]
            if value not in condition.allowed_values:
                return (
                    f'Invalid tag value for {condition.tag_key}: "{value}". '
                    f"Allowed values: {', '.join(condition.allowed_values)}"
                )

    elif isinstance(condition, ResourceTypeCondition):
        if resource.type == condition.resource_type:
            return f"Resource type {condition.resource_type} matches alert condition"

    elif isinstance(condition, CostThresholdCondition):
        # TODO: evaluate once per-resource cost data is passed to alert runs
        return None

    return None


def evaluate_conditions(
    resource: Resource,
    conditions: list[AlertCondition],
) -> list[AlertViolation]:
    """
    Evaluate alert conditions against one resource.

    Args:
        resource: Resource to check
        conditions: Conditions of an alert rule

    Returns:
        One violation per matching condition
    """
    violations = []
    for condition in conditions:
        reason = _condition_reason(resource, condition)
        if reason is None:
            continue
        violations.append(
            AlertViolation(
                resource_id=resource.id,
                resource_name=resource.name,
                resource_type=resource.type,
                resource_group=resource.resource_group,
                subscription_id=resource.subscription_id,
                location=resource.location,
                condition=condition,
                reason=reason,
                tags=dict(resource.tags),
            )
        )
    return violations


class AlertService:
    """
    Runs alert rules against live resources and notifies recipients.

    Alerts are always run one after another; a failing alert is reported
    in its outcome and does not stop the others.
    """

    def __init__(
        self,
        repository: Repository[AlertRule],
        inventory_service: InventoryService,
        notification_service: NotificationService,
    ):
        self.repository = repository
        self.inventory_service = inventory_service
        self.notification_service = notification_service

    # CRUD

    async def list_alerts(self, enabled: Optional[bool] = None) -> list[AlertRule]:
        alerts = await self.repository.list()
        if enabled is not None:
            alerts = [a for a in alerts if a.enabled == enabled]
        return sorted(alerts, key=lambda a: a.created_at)

    async def get_alert(self, alert_id: str) -> AlertRule:
        alert = await self.repository.get(alert_id)
        if alert is None:
            raise NotFoundError(f"Alert not found: {alert_id}")
        return alert

    async def create_alert(self, alert: AlertRule) -> AlertRule:
        stored = await self.repository.put(alert, expected_version=0)
        logger.info(f"Created alert '{stored.name}' ({stored.id})")
        return stored

    async def update_alert(
        self,
        alert_id: str,
        updates: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> AlertRule:
        """
        Apply a partial update to an alert rule.

        Raises:
            NotFoundError: If the alert does not exist
            ValidationError: If the updated alert is invalid
            VersionConflictError: If the alert changed meanwhile
        """
        existing = await self.get_alert(alert_id)
        try:
            updated = existing.with_updates(updates)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        version = existing.version if expected_version is None else expected_version
        stored = await self.repository.put(updated, expected_version=version)
        logger.info(f"Updated alert '{stored.name}' to version {stored.version}")
        return stored

    async def delete_alert(self, alert_id: str) -> None:
        if not await self.repository.delete(alert_id):
            raise NotFoundError(f"Alert not found: {alert_id}")
        logger.info(f"Deleted alert {alert_id}")

    # Runs

    async def _scoped_resources(
        self, alert: AlertRule, token: str
    ) -> tuple[list[Resource], list[str]]:
        subscription_ids = alert.scope.subscriptions or None
        fan_out = await self.inventory_service.collect_resources(token, subscription_ids)
        resources = fan_out.resources

        if alert.scope.resource_groups:
            wanted = {rg.lower() for rg in alert.scope.resource_groups}
            resources = [r for r in resources if r.resource_group.lower() in wanted]

        return resources, fan_out.failed_subscriptions

    async def run_alert(
        self,
        alert: AlertRule,
        token: str,
        is_test: bool = False,
    ) -> AlertRunResult:
        """
        Evaluate an alert and notify its recipients if anything matched.

        Args:
            alert: Alert rule to run
            token: Caller's bearer token
            is_test: Mark the notification as a test

        Returns:
            AlertRunResult with violations and summary counts

        Raises:
            UpstreamError: If subscriptions cannot be listed
            EmailDeliveryError: If the notification could not be sent
        """
        resources, failed_subscriptions = await self._scoped_resources(alert, token)

        violations: list[AlertViolation] = []
        for resource in resources:
            violations.extend(evaluate_conditions(resource, alert.conditions))

        notification_sent = False
        if violations:
            notification_sent = await self.notification_service.send_violation_notification(
                alert, violations, is_test
            )

        logger.info(
            f"Alert '{alert.name}' checked {len(resources)} resources: "
            f"{len(violations)} violations"
        )
        return AlertRunResult(
            violations=violations,
            summary=AlertRunSummary(
                total_resources_checked=len(resources),
                violations_found=len(violations),
                alert_conditions=len(alert.conditions),
            ),
            failed_subscriptions=failed_subscriptions,
            notification_sent=notification_sent,
        )

    async def test_alert(self, alert_id: str, token: str) -> AlertRunResult:
        """
        Run a stored alert now, sending a test notification.

        Raises:
            NotFoundError: If the alert does not exist
        """
        alert = await self.get_alert(alert_id)
        return await self.run_alert(alert, token, is_test=True)

    async def _mark_triggered(self, alert: AlertRule) -> None:
        now = datetime.now(UTC)
        try:
            await self.repository.put(
                alert.model_copy(update={"last_triggered": now}),
                expected_version=alert.version,
            )
        except VersionConflictError:
            # Edited during the run: keep the edit, only stamp the time
            try:
                latest = await self.get_alert(alert.id)
            except NotFoundError:
                logger.warning(
                    f"Alert {alert.id} was deleted during its run, not stamping last_triggered"
                )
                return
            await self.repository.put(latest.model_copy(update={"last_triggered": now}))

    async def run_all_enabled(
        self,
        token: str,
        frequency: Optional[AlertFrequency] = None,
    ) -> list[AlertOutcome]:
        """
        Run every enabled alert, optionally only those of one frequency.

        Args:
            token: Caller's bearer token
            frequency: Restrict to daily, weekly or monthly alerts

        Returns:
            One outcome per alert, in the order they ran
        """
        alerts = await self.list_alerts(enabled=True)
        if frequency is not None:
            frequency = AlertFrequency(frequency)
            alerts = [a for a in alerts if a.frequency == frequency]

        logger.info(
            f"Running {len(alerts)} enabled "
            f"{frequency.value + ' ' if frequency else ''}alert(s)"
        )

        outcomes: list[AlertOutcome] = []
        for alert in alerts:
            try:
                result = await self.run_alert(alert, token)
                if result.violations:
                    await self._mark_triggered(alert)
                outcomes.append(
                    AlertOutcome(
                        alert_id=alert.id,
                        alert_name=alert.name,
                        violations_found=len(result.violations),
                        notification_sent=result.notification_sent,
                    )
                )
            except Exception as e:
                logger.error(f"Alert '{alert.name}' ({alert.id}) failed: {str(e)}")
                outcomes.append(
                    AlertOutcome(alert_id=alert.id, alert_name=alert.name, error=str(e))
                )

        return outcomes
