"""Unit tests for TagService."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tag_manager.clients.arm_client import NotFoundError, UpstreamError
from tag_manager.models.audit import AuditStatus
from tag_manager.models.enums import TagOperation
from tag_manager.services.audit_service import AuditService
from tag_manager.services.tag_service import TagService, apply_tag_operation
from tag_manager.utils.input_validation import ValidationError

from helpers import make_resource


def _ids(count: int) -> list[str]:
    return [make_resource(f"vm-{i}").id for i in range(count)]


@pytest.fixture
def tag_service(mock_arm_client):
    """TagService without batch pauses."""
    return TagService(mock_arm_client, batch_size=2, batch_delay_seconds=0)


class TestApplyTagOperation:
    """Test the pure tag set computation."""

    def test_replace_discards_current_tags(self):
        assert apply_tag_operation({"A": "1"}, {"B": "2"}, TagOperation.REPLACE) == {"B": "2"}

    def test_merge_overwrites_existing_keys(self):
        result = apply_tag_operation({"A": "1", "B": "old"}, {"B": "new"}, TagOperation.MERGE)
        assert result == {"A": "1", "B": "new"}

    def test_delete_ignores_supplied_values(self):
        result = apply_tag_operation({"A": "1", "B": "2"}, {"A": "anything"}, "delete")
        assert result == {"B": "2"}


class TestUpdateTags:
    """Test single resource updates."""

    async def test_replace_does_not_read_resource(self, tag_service, mock_arm_client):
        resource = make_resource("vm-1")
        mock_arm_client.patch_resource_tags.return_value = resource

        await tag_service.update_tags(resource.id, {"Env": "Prod"}, TagOperation.REPLACE, "tok")

        mock_arm_client.get_resource.assert_not_awaited()
        mock_arm_client.patch_resource_tags.assert_awaited_once_with(
            resource.id, {"Env": "Prod"}, "tok"
        )

    async def test_merge_reads_then_patches(self, tag_service, mock_arm_client):
        resource = make_resource("vm-1", {"Owner": "ops@contoso.com", "Env": "Dev"})
        mock_arm_client.get_resource.return_value = resource
        mock_arm_client.patch_resource_tags.return_value = resource

        await tag_service.update_tags(resource.id, {"Env": "Prod"}, "merge", "tok")

        mock_arm_client.patch_resource_tags.assert_awaited_once_with(
            resource.id, {"Owner": "ops@contoso.com", "Env": "Prod"}, "tok"
        )

    async def test_merge_on_missing_resource_raises_not_found(self, tag_service, mock_arm_client):
        mock_arm_client.get_resource.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            await tag_service.update_tags(_ids(1)[0], {"Env": "Prod"}, "merge", "tok")

        # A 404 is reported as missing, not as a provider failure
        assert not isinstance(exc_info.value, UpstreamError)
        mock_arm_client.patch_resource_tags.assert_not_awaited()

    async def test_delete_only_checks_keys(self, tag_service, mock_arm_client):
        resource = make_resource("vm-1", {"Env": "Dev", "Owner": "ops@contoso.com"})
        mock_arm_client.get_resource.return_value = resource
        mock_arm_client.patch_resource_tags.return_value = resource

        await tag_service.update_tags(resource.id, {"Env": "x" * 300}, "delete", "tok")
        await tag_service.update_tags(resource.id, {"Owner": None}, "delete", "tok")

        assert mock_arm_client.patch_resource_tags.await_count == 2
        first_call = mock_arm_client.patch_resource_tags.await_args_list[0]
        assert first_call.args[1] == {"Owner": "ops@contoso.com"}

    async def test_merge_still_checks_values(self, tag_service, mock_arm_client):
        with pytest.raises(ValidationError):
            await tag_service.update_tags(_ids(1)[0], {"Env": "x" * 300}, "merge", "tok")

        mock_arm_client.patch_resource_tags.assert_not_awaited()

    async def test_empty_tags_allowed_only_for_replace(self, tag_service, mock_arm_client):
        resource_id = _ids(1)[0]
        mock_arm_client.patch_resource_tags.return_value = make_resource("vm-0")

        await tag_service.update_tags(resource_id, {}, "replace", "tok")
        mock_arm_client.patch_resource_tags.assert_awaited_once_with(resource_id, {}, "tok")

        with pytest.raises(ValidationError):
            await tag_service.update_tags(resource_id, {}, "merge", "tok")

    async def test_invalid_resource_id_rejected(self, tag_service, mock_arm_client):
        with pytest.raises(ValidationError) as exc_info:
            await tag_service.update_tags("vm-1", {"Env": "Prod"}, "replace", "tok")

        assert exc_info.value.field == "resource_id"
        mock_arm_client.patch_resource_tags.assert_not_awaited()

    async def test_upstream_failure_is_audited_and_raised(self, mock_arm_client):
        audit = MagicMock(spec=AuditService)
        service = TagService(mock_arm_client, audit_service=audit, batch_delay_seconds=0)
        mock_arm_client.patch_resource_tags.side_effect = UpstreamError("throttled", status=429)

        with pytest.raises(UpstreamError):
            await service.update_tags(_ids(1)[0], {"Env": "Prod"}, "replace", "tok")

        kwargs = audit.log_mutation.call_args.kwargs
        assert kwargs["successful"] == 0
        assert kwargs["failed"] == 1
        assert kwargs["error_message"] == "throttled"


class TestBulkUpdateTags:
    """Test bulk updates."""

    async def test_partial_failure_is_reported_per_resource(self, tag_service, mock_arm_client):
        resource_ids = _ids(3)

        async def patch(resource_id, tags, token):
            if resource_id == resource_ids[1]:
                raise UpstreamError("Failed to update resource tags: HTTP 409", status=409)
            return make_resource("ok", tags)

        mock_arm_client.patch_resource_tags.side_effect = patch

        result = await tag_service.bulk_update_tags(
            resource_ids, {"CostCenter": "CC-1"}, "replace", "tok"
        )

        assert sorted(result.successful) == sorted([resource_ids[0], resource_ids[2]])
        assert [f.resource_id for f in result.failed] == [resource_ids[1]]
        assert "409" in result.failed[0].error
        assert result.summary.total_requested == 3
        assert result.summary.successful == 2
        assert result.summary.failed == 1

    async def test_batches_are_separated_by_delay(self, mock_arm_client):
        service = TagService(mock_arm_client, batch_size=2, batch_delay_seconds=0.5)
        mock_arm_client.patch_resource_tags.return_value = make_resource("vm")

        with patch(
            "tag_manager.services.tag_service.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            result = await service.bulk_update_tags(_ids(5), {"A": "1"}, "replace", "tok")

        # 3 batches -> 2 pauses, none after the last batch
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.5)
        assert result.summary.successful == 5
        assert mock_arm_client.patch_resource_tags.await_count == 5

    async def test_validation_happens_before_any_call(self, tag_service, mock_arm_client):
        with pytest.raises(ValidationError):
            await tag_service.bulk_update_tags(
                [_ids(1)[0], "not-an-id"], {"A": "1"}, "replace", "tok"
            )
        with pytest.raises(ValidationError):
            await tag_service.bulk_update_tags(_ids(2), {"A": "1"}, "rename", "tok")
        with pytest.raises(ValidationError):
            await tag_service.bulk_update_tags([], {"A": "1"}, "replace", "tok")

        mock_arm_client.get_resource.assert_not_awaited()
        mock_arm_client.patch_resource_tags.assert_not_awaited()

    async def test_too_many_resources_rejected(self, mock_arm_client):
        service = TagService(mock_arm_client, max_resources=3, batch_delay_seconds=0)

        with pytest.raises(ValidationError) as exc_info:
            await service.bulk_update_tags(_ids(4), {"A": "1"}, "replace", "tok")

        assert "max: 3" in exc_info.value.message
        mock_arm_client.patch_resource_tags.assert_not_awaited()

    async def test_missing_resource_in_merge_is_a_failure(self, tag_service, mock_arm_client):
        resource_ids = _ids(2)
        existing = make_resource("vm-0", {"Env": "Dev"})

        async def get(resource_id, token):
            return existing if resource_id == resource_ids[0] else None

        mock_arm_client.get_resource.side_effect = get
        mock_arm_client.patch_resource_tags.return_value = existing

        result = await tag_service.bulk_update_tags(resource_ids, {"Owner": "me"}, "merge", "tok")

        assert result.successful == [resource_ids[0]]
        assert result.failed[0].resource_id == resource_ids[1]
        assert "not found" in result.failed[0].error.lower()

    async def test_bulk_is_audited_once(self, tmp_path, mock_arm_client):
        audit = AuditService(db_path=str(tmp_path / "audit.db"))
        service = TagService(mock_arm_client, audit_service=audit, batch_delay_seconds=0)
        mock_arm_client.patch_resource_tags.side_effect = [
            make_resource("vm"),
            UpstreamError("boom"),
        ]

        await service.bulk_update_tags(_ids(2), {"A": "1"}, "replace", "tok")

        logs = audit.get_logs()
        assert len(logs) == 1
        assert logs[0].operation == "replace"
        assert logs[0].requested == 2
        assert logs[0].successful == 1
        assert logs[0].failed == 1
        assert logs[0].status == AuditStatus.PARTIAL

    async def test_each_call_gets_its_own_correlation_id(self, tmp_path, mock_arm_client):
        audit = AuditService(db_path=str(tmp_path / "audit.db"))
        service = TagService(mock_arm_client, audit_service=audit, batch_delay_seconds=0)
        mock_arm_client.patch_resource_tags.return_value = make_resource("vm")

        await service.bulk_update_tags(_ids(2), {"A": "1"}, "replace", "tok")
        await service.bulk_update_tags(_ids(2), {"A": "2"}, "replace", "tok")
        await service.update_tags(_ids(1)[0], {"A": "3"}, "replace", "tok")

        logs = audit.get_logs()
        assert len(logs) == 3
        assert all(entry.correlation_id for entry in logs)
        assert len({entry.correlation_id for entry in logs}) == 3

    async def test_audit_failure_does_not_fail_update(self, mock_arm_client):
        audit = MagicMock(spec=AuditService)
        audit.log_mutation.side_effect = RuntimeError("disk full")
        service = TagService(mock_arm_client, audit_service=audit, batch_delay_seconds=0)
        mock_arm_client.patch_resource_tags.return_value = make_resource("vm")

        result = await service.bulk_update_tags(_ids(1), {"A": "1"}, "replace", "tok")

        assert result.summary.successful == 1
