"""Tag template storage and application."""

import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from ..clients.arm_client import NotFoundError
from ..clients.repository import Repository
from ..models.enums import TagOperation
from ..models.tags import TagTemplate, TemplateApplicationResult
from ..services.tag_service import TagService
from ..utils.correlation import correlation_scope, get_correlation_id_for_logging
from ..utils.input_validation import InputValidator, ValidationError

logger = logging.getLogger(__name__)

# Operations a template can be applied with
TEMPLATE_OPERATIONS = (TagOperation.REPLACE, TagOperation.MERGE)


class TemplateService:
    """CRUD for tag templates and bulk application of a template's tags."""

    def __init__(self, repository: Repository[TagTemplate], tag_service: TagService):
        self.repository = repository
        self.tag_service = tag_service

    async def list_templates(self, category: Optional[str] = None) -> list[TagTemplate]:
        """List templates, optionally restricted to one category (case-insensitive)."""
        templates = await self.repository.list()
        if category:
            templates = [t for t in templates if t.category.lower() == category.lower()]
        return sorted(templates, key=lambda t: t.created_at)

    async def get_template(self, template_id: str) -> TagTemplate:
        template = await self.repository.get(template_id)
        if template is None:
            raise NotFoundError(f"Template not found: {template_id}")
        return template

    async def create_template(self, template: TagTemplate) -> TagTemplate:
        InputValidator.validate_tags(template.tags)
        stored = await self.repository.put(template, expected_version=0)
        logger.info(f"Created template '{stored.name}' ({stored.id})")
        return stored

    async def update_template(
        self,
        template_id: str,
        updates: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> TagTemplate:
        """
        Apply a partial update to a template.

        Args:
            template_id: Template to update
            updates: Fields to change
            expected_version: Version the caller last read, if it wants a
                conflict check

        Raises:
            NotFoundError: If the template does not exist
            ValidationError: If the updated template is invalid
            VersionConflictError: If the template changed meanwhile
        """
        existing = await self.get_template(template_id)
        try:
            updated = existing.with_updates(updates)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e
        InputValidator.validate_tags(updated.tags)

        version = existing.version if expected_version is None else expected_version
        stored = await self.repository.put(updated, expected_version=version)
        logger.info(f"Updated template '{stored.name}' to version {stored.version}")
        return stored

    async def delete_template(self, template_id: str) -> None:
        if not await self.repository.delete(template_id):
            raise NotFoundError(f"Template not found: {template_id}")
        logger.info(f"Deleted template {template_id}")

    async def apply_template(
        self,
        template_id: str,
        resource_ids: list[str],
        token: str,
        operation: TagOperation = TagOperation.MERGE,
    ) -> TemplateApplicationResult:
        """
        Apply a template's tags to many resources.

        Args:
            template_id: Template to apply
            resource_ids: Resources to tag
            token: Caller's bearer token
            operation: replace or merge

        Returns:
            TemplateApplicationResult with the bulk outcome

        Raises:
            ValidationError: If the operation or resource IDs are invalid
            NotFoundError: If the template does not exist
        """
        op = InputValidator.validate_operation(operation, allowed=TEMPLATE_OPERATIONS)
        template = await self.get_template(template_id)

        with correlation_scope():
            result = await self.tag_service.bulk_update_tags(
                resource_ids, template.tags, op, token
            )
            logger.info(
                f"Applied template '{template.name}' to {len(resource_ids)} resource(s): "
                f"{result.summary.successful} succeeded, {result.summary.failed} failed",
                extra=get_correlation_id_for_logging(),
            )
        return TemplateApplicationResult(template=template.name, result=result)
