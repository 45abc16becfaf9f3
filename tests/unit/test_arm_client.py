"""Unit tests for ArmClient."""

import json

import httpx
import pytest

from tag_manager.clients.arm_client import ArmClient, UpstreamError
from tag_manager.models.resource import ResourceFilters

from helpers import SUB_1

BASE_URL = "https://management.azure.com"
VM_ID = (
    f"/subscriptions/{SUB_1}/resourceGroups/rg-app"
    "/providers/Microsoft.Compute/virtualMachines/vm-1"
)


def _resource_payload(name: str, type: str = "Microsoft.Compute/virtualMachines", tags=None):
    return {
        "id": f"/subscriptions/{SUB_1}/resourceGroups/rg-app/providers/{type}/{name}",
        "name": name,
        "type": type,
        "location": "westeurope",
        "tags": tags,
    }


def make_client(handler) -> tuple[ArmClient, list[httpx.Request]]:
    """Build an ArmClient whose requests are answered by ``handler``."""
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = ArmClient(base_url=BASE_URL, transport=httpx.MockTransport(record))
    return client, requests


class TestListSubscriptions:
    """Test subscription listing."""

    async def test_parses_subscriptions_and_sends_token(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "value": [
                        {
                            "subscriptionId": SUB_1,
                            "displayName": "Production",
                            "state": "Enabled",
                            "tenantId": "tenant-1",
                        }
                    ]
                },
            )

        client, requests = make_client(handler)
        async with client:
            subscriptions = await client.list_subscriptions("token-abc")

        assert len(subscriptions) == 1
        assert subscriptions[0].subscription_id == SUB_1
        assert subscriptions[0].display_name == "Production"
        assert requests[0].headers["Authorization"] == "Bearer token-abc"
        assert requests[0].url.path == "/subscriptions"
        assert requests[0].url.params["api-version"] == "2020-01-01"


class TestListResources:
    """Test resource listing, paging and filters."""

    async def test_follows_next_link(self):
        next_link = (
            f"{BASE_URL}/subscriptions/{SUB_1}/resources"
            "?api-version=2021-04-01&$skiptoken=page2"
        )

        def handler(request):
            if "$skiptoken" in request.url.params:
                return httpx.Response(200, json={"value": [_resource_payload("vm-2")]})
            return httpx.Response(
                200, json={"value": [_resource_payload("vm-1")], "nextLink": next_link}
            )

        client, requests = make_client(handler)
        async with client:
            resources = await client.list_resources(SUB_1, "token")

        assert [r.name for r in resources] == ["vm-1", "vm-2"]
        assert len(requests) == 2
        assert requests[1].url.params["$skiptoken"] == "page2"

    async def test_derives_resource_group_and_subscription_from_id(self):
        def handler(request):
            return httpx.Response(200, json={"value": [_resource_payload("vm-1")]})

        client, _ = make_client(handler)
        async with client:
            resources = await client.list_resources(SUB_1, "token")

        assert resources[0].resource_group == "rg-app"
        assert resources[0].subscription_id == SUB_1
        # null tags become an empty map
        assert resources[0].tags == {}

    async def test_resource_group_filter_changes_scope(self):
        def handler(request):
            return httpx.Response(200, json={"value": []})

        client, requests = make_client(handler)
        async with client:
            await client.list_resources(
                SUB_1, "token", ResourceFilters(resource_group_name="rg-app")
            )

        assert requests[0].url.path == f"/subscriptions/{SUB_1}/resourceGroups/rg-app/resources"

    async def test_resource_type_filter_is_sent_and_reapplied(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "value": [
                        _resource_payload("vm-1"),
                        _resource_payload("st-1", type="Microsoft.Storage/storageAccounts"),
                    ]
                },
            )

        client, requests = make_client(handler)
        async with client:
            resources = await client.list_resources(
                SUB_1,
                "token",
                ResourceFilters(resource_type="microsoft.compute/virtualmachines"),
            )

        assert requests[0].url.params["$filter"] == (
            "resourceType eq 'microsoft.compute/virtualmachines'"
        )
        assert [r.name for r in resources] == ["vm-1"]

    async def test_tag_filters(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "value": [
                        _resource_payload("vm-1", tags={"Environment": "Production"}),
                        _resource_payload("vm-2", tags={"Environment": "Dev"}),
                        _resource_payload("vm-3", tags={}),
                    ]
                },
            )

        client, _ = make_client(handler)
        async with client:
            with_key = await client.list_resources(
                SUB_1, "token", ResourceFilters(tag_name="Environment")
            )
            with_value = await client.list_resources(
                SUB_1, "token", ResourceFilters(tag_name="Environment", tag_value="Dev")
            )

        assert [r.name for r in with_key] == ["vm-1", "vm-2"]
        assert [r.name for r in with_value] == ["vm-2"]


class TestErrors:
    """Test error translation."""

    async def test_non_2xx_raises_upstream_error_with_detail(self):
        def handler(request):
            return httpx.Response(
                403,
                json={"error": {"code": "AuthorizationFailed", "message": "No access"}},
            )

        client, _ = make_client(handler)
        async with client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.list_resources(SUB_1, "token")

        assert exc_info.value.status == 403
        assert "No access" in str(exc_info.value)

    async def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad gateway")

        client, _ = make_client(handler)
        async with client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.list_subscriptions("token")

        assert exc_info.value.status == 502
        assert "Bad gateway" in str(exc_info.value)

    async def test_transport_failure_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(handler)
        async with client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.list_subscriptions("token")

        assert exc_info.value.status is None
        assert "ConnectError" in str(exc_info.value)


class TestSingleResource:
    """Test get and patch of one resource."""

    async def test_get_resource_returns_none_on_404(self):
        def handler(request):
            return httpx.Response(404, json={"error": {"code": "ResourceNotFound"}})

        client, requests = make_client(handler)
        async with client:
            assert await client.get_resource(VM_ID, "token") is None

        assert requests[0].url.path == VM_ID

    async def test_get_resource_raises_on_server_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "Internal error"}})

        client, _ = make_client(handler)
        async with client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.get_resource(VM_ID, "token")

        assert exc_info.value.status == 500

    async def test_patch_sends_complete_tag_set(self):
        def handler(request):
            body = json.loads(request.content)
            return httpx.Response(200, json=_resource_payload("vm-1", tags=body["tags"]))

        client, requests = make_client(handler)
        async with client:
            resource = await client.patch_resource_tags(
                VM_ID, {"Environment": "Production"}, "token"
            )

        assert requests[0].method == "PATCH"
        assert json.loads(requests[0].content) == {"tags": {"Environment": "Production"}}
        assert resource.tags == {"Environment": "Production"}

    async def test_list_resource_groups(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"value": [{"name": "rg-app", "location": "westeurope", "tags": None}]},
            )

        client, requests = make_client(handler)
        async with client:
            groups = await client.list_resource_groups(SUB_1, "token")

        assert groups[0].name == "rg-app"
        assert groups[0].tags == {}
        assert requests[0].url.path == f"/subscriptions/{SUB_1}/resourcegroups"
