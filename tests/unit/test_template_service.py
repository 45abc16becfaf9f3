"""Unit tests for TemplateService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tag_manager.clients.arm_client import NotFoundError
from tag_manager.clients.repository import InMemoryRepository, VersionConflictError
from tag_manager.models.enums import TagOperation
from tag_manager.models.tags import BulkOperationResult, TagTemplate
from tag_manager.services.tag_service import TagService
from tag_manager.services.template_service import TemplateService
from tag_manager.utils.input_validation import ValidationError

from helpers import make_resource


@pytest.fixture
def mock_tag_service():
    service = MagicMock(spec=TagService)
    service.bulk_update_tags = AsyncMock(
        return_value=BulkOperationResult(successful=[make_resource("vm").id])
    )
    return service


@pytest.fixture
def template_service(mock_tag_service):
    return TemplateService(InMemoryRepository(), mock_tag_service)


def _template(**overrides) -> TagTemplate:
    data = {
        "name": "Production Environment",
        "category": "Environment",
        "tags": {"Environment": "Production", "Criticality": "High"},
    }
    data.update(overrides)
    return TagTemplate(**data)


class TestTemplateCrud:
    """Test template storage."""

    async def test_create_and_filter_by_category(self, template_service):
        await template_service.create_template(_template())
        await template_service.create_template(
            _template(name="Finance", category="CostCenter", tags={"CostCenter": "CC-1"})
        )

        environment = await template_service.list_templates(category="environment")

        assert [t.name for t in environment] == ["Production Environment"]
        assert len(await template_service.list_templates()) == 2

    async def test_create_rejects_invalid_tags(self, template_service):
        with pytest.raises(ValidationError):
            await template_service.create_template(_template(tags={"bad/key": "x"}))
        with pytest.raises(ValidationError):
            await template_service.create_template(_template(tags={}))

    async def test_update_with_stale_version_conflicts(self, template_service):
        created = await template_service.create_template(_template())
        await template_service.update_template(created.id, {"description": "v2"})

        with pytest.raises(VersionConflictError):
            await template_service.update_template(
                created.id, {"description": "v3"}, expected_version=1
            )

    async def test_update_validates_fields(self, template_service):
        created = await template_service.create_template(_template())

        with pytest.raises(ValidationError) as exc_info:
            await template_service.update_template(created.id, {"name": ""})

        assert exc_info.value.field == "name"

    async def test_delete(self, template_service):
        created = await template_service.create_template(_template())

        await template_service.delete_template(created.id)

        with pytest.raises(NotFoundError):
            await template_service.get_template(created.id)
        with pytest.raises(NotFoundError):
            await template_service.delete_template(created.id)


class TestApplyTemplate:
    """Test applying templates to resources."""

    async def test_apply_merges_template_tags(self, template_service, mock_tag_service):
        created = await template_service.create_template(_template())
        resource_ids = [make_resource("vm").id]

        result = await template_service.apply_template(created.id, resource_ids, "tok")

        mock_tag_service.bulk_update_tags.assert_awaited_once_with(
            resource_ids, created.tags, TagOperation.MERGE, "tok"
        )
        assert result.template == "Production Environment"
        assert result.result.summary.successful == 1

    async def test_delete_operation_not_allowed(self, template_service, mock_tag_service):
        created = await template_service.create_template(_template())

        with pytest.raises(ValidationError):
            await template_service.apply_template(
                created.id, [make_resource("vm").id], "tok", operation="delete"
            )

        mock_tag_service.bulk_update_tags.assert_not_awaited()

    async def test_unknown_template(self, template_service):
        with pytest.raises(NotFoundError):
            await template_service.apply_template("missing", [make_resource("vm").id], "tok")
