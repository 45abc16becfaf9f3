# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Tag mutation engine: single and bulk tag updates on Azure resources.

Merge and delete are read-modify-write without any concurrency check, so
two writers touching the same resource race and the last PATCH wins.
"""

import asyncio
import logging
from typing import Optional

from ..clients.arm_client import ArmClient, NotFoundError
from ..models.enums import TagOperation
from ..models.resource import Resource
from ..models.tags import BulkFailure, BulkOperationResult
from ..services.audit_service import AuditService
from ..utils.correlation import correlation_scope, get_correlation_id_for_logging
from ..utils.input_validation import InputValidator

logger = logging.getLogger(__name__)


def apply_tag_operation(
    current: dict[str, str],
    tags: dict[str, str],
    operation: TagOperation,
) -> dict[str, str]:
    """
    Compute the tag set that results from applying an operation.

    Args:
        current: Tags currently on the resource
        tags: Tags supplied by the caller
        operation: replace, merge or delete

    Returns:
        The new tag set. For delete only the keys of ``tags`` matter.
    """
    operation = TagOperation(operation)
    if operation == TagOperation.REPLACE:
        return dict(tags)
    if operation == TagOperation.MERGE:
        return {**current, **tags}
    return {key: value for key, value in current.items() if key not in tags}


class TagService:
    """
    Applies tag changes to resources through Azure Resource Manager.

    Bulk updates run in fixed-size batches: resources within a batch are
    updated concurrently and batches are separated by a short pause to
    stay under provider rate limits.
    """

    def __init__(
        self,
        arm_client: ArmClient,
        audit_service: Optional[AuditService] = None,
        batch_size: int = 10,
        batch_delay_seconds: float = 0.1,
        max_resources: int = 1000,
    ):
        """
        Initialize the tag service.

        Args:
            arm_client: Resource Manager client
            audit_service: Where tag mutation calls are recorded (optional)
            batch_size: Resources updated concurrently per batch
            batch_delay_seconds: Pause between two batches
            max_resources: Maximum resource IDs in one bulk call
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.arm_client = arm_client
        self.audit_service = audit_service
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.max_resources = max_resources

    def _validate_request(self, tags, operation) -> TagOperation:
        op = InputValidator.validate_operation(operation)
        # An empty replace clears every tag
        InputValidator.validate_tags(
            tags,
            allow_empty=op == TagOperation.REPLACE,
            check_values=op != TagOperation.DELETE,
        )
        return op

    async def _apply(
        self,
        resource_id: str,
        tags: dict[str, str],
        operation: TagOperation,
        token: str,
    ) -> Resource:
        if operation == TagOperation.REPLACE:
            new_tags = apply_tag_operation({}, tags, operation)
        else:
            current = await self.arm_client.get_resource(resource_id, token)
            if current is None:
                raise NotFoundError(f"Resource not found: {resource_id}")
            new_tags = apply_tag_operation(current.tags, tags, operation)

        return await self.arm_client.patch_resource_tags(resource_id, new_tags, token)

    def _audit(
        self,
        operation: TagOperation,
        requested: int,
        successful: int,
        failed: int,
        correlation_id: str,
        error_message: Optional[str] = None,
    ) -> None:
        if self.audit_service is None:
            return
        try:
            self.audit_service.log_mutation(
                operation=operation.value,
                requested=requested,
                successful=successful,
                failed=failed,
                correlation_id=correlation_id,
                error_message=error_message,
            )
        except Exception as e:
            # Audit failures never fail the tag change
            logger.error(
                f"Failed to record audit entry: {str(e)}",
                extra={"correlation_id": correlation_id},
            )

    async def update_tags(
        self,
        resource_id: str,
        tags: dict[str, str],
        operation: TagOperation,
        token: str,
    ) -> Resource:
        """
        Update the tags of one resource.

        Args:
            resource_id: Fully-qualified resource ID
            tags: Tags to apply
            operation: replace, merge or delete
            token: Caller's bearer token

        Returns:
            The updated resource

        Raises:
            ValidationError: If the request is malformed
            NotFoundError: If merge/delete reads a resource that does not
                exist (404); other read failures raise UpstreamError
            UpstreamError: If a provider call fails
        """
        op = self._validate_request(tags, operation)
        InputValidator.validate_resource_ids([resource_id], 1, field_name="resource_id")

        with correlation_scope() as correlation_id:
            try:
                resource = await self._apply(resource_id, tags, op, token)
            except Exception as e:
                self._audit(op, 1, 0, 1, correlation_id, str(e))
                raise

            self._audit(op, 1, 1, 0, correlation_id)
            logger.info(
                f"Applied {op.value} of {len(tags)} tag(s) to {resource_id}",
                extra=get_correlation_id_for_logging(),
            )
            return resource

    async def bulk_update_tags(
        self,
        resource_ids: list[str],
        tags: dict[str, str],
        operation: TagOperation,
        token: str,
    ) -> BulkOperationResult:
        """
        Update the tags of many resources.

        Failures are collected per resource and never abort the call.
        Outcomes are recorded in the order they complete.

        Args:
            resource_ids: Fully-qualified resource IDs
            tags: Tags to apply to every resource
            operation: replace, merge or delete
            token: Caller's bearer token

        Returns:
            BulkOperationResult listing successes and failures

        Raises:
            ValidationError: If the request is malformed (nothing is written)
        """
        op = self._validate_request(tags, operation)
        InputValidator.validate_resource_ids(resource_ids, self.max_resources)

        with correlation_scope() as correlation_id:
            log_extra = get_correlation_id_for_logging()
            logger.info(
                f"Starting bulk {op.value} on {len(resource_ids)} resource(s)",
                extra=log_extra,
            )

            successful: list[str] = []
            failed: list[BulkFailure] = []

            async def update_one(resource_id: str) -> None:
                try:
                    await self._apply(resource_id, tags, op, token)
                except Exception as e:
                    logger.warning(
                        f"Tag update failed for {resource_id}: {str(e)}",
                        extra=log_extra,
                    )
                    failed.append(BulkFailure(resource_id=resource_id, error=str(e)))
                else:
                    successful.append(resource_id)

            for start in range(0, len(resource_ids), self.batch_size):
                batch = resource_ids[start:start + self.batch_size]
                await asyncio.gather(*(update_one(resource_id) for resource_id in batch))

                if start + self.batch_size < len(resource_ids):
                    await asyncio.sleep(self.batch_delay_seconds)

            result = BulkOperationResult(successful=successful, failed=failed)

            error_message = None
            if failed:
                error_message = "; ".join(f"{f.resource_id}: {f.error}" for f in failed[:5])
            self._audit(
                op,
                len(resource_ids),
                len(successful),
                len(failed),
                correlation_id,
                error_message,
            )

            logger.info(
                f"Bulk {op.value} finished: {len(successful)} succeeded, {len(failed)} failed",
                extra=log_extra,
            )
            return result
