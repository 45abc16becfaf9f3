"""Azure Resource Manager REST client.

Every call is made on behalf of the caller with the bearer token it
passes in; the client never acquires tokens itself.
"""

import logging
from typing import Any

import httpx

from ..models.resource import Resource, ResourceFilters, ResourceGroup, Subscription
from ..utils.resource_utils import (
    extract_resource_group_from_id,
    extract_subscription_id_from_id,
)

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Raised when an Azure Resource Manager call fails.

    ``status`` is the HTTP status code, or None when the request never got
    a response (connection failure, timeout).
    """

    def __init__(self, message: str, status: int | None = None):
        self.message = message
        self.status = status
        super().__init__(message)


class NotFoundError(Exception):
    """Raised when a resource or stored record does not exist."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ArmClient:
    """
    Async wrapper around the Azure Resource Manager REST API.

    Listing calls follow ``nextLink`` until the provider has returned every
    page.
    """

    def __init__(
        self,
        base_url: str = "https://management.azure.com",
        subscriptions_api_version: str = "2020-01-01",
        resources_api_version: str = "2021-04-01",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the HTTP client.

        Args:
            base_url: Resource Manager endpoint
            subscriptions_api_version: api-version for subscription listing
            resources_api_version: api-version for resource calls
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.subscriptions_api_version = subscriptions_api_version
        self.resources_api_version = resources_api_version
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "ArmClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        url: str,
        token: str,
        action: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send a request, translating transport failures to UpstreamError.

        Args:
            method: HTTP method
            url: Path relative to the base URL, or an absolute nextLink
            token: Caller's bearer token
            action: Short description used in error messages
            params: Query string parameters
            json: JSON body

        Returns:
            The response, whatever its status

        Raises:
            UpstreamError: If no response was received
        """
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        try:
            return await self._client.request(
                method, url, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to {action}: {type(e).__name__}: {e}")
            raise UpstreamError(f"Failed to {action}: {type(e).__name__}: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        """Raise UpstreamError for any non-2xx response."""
        if response.is_success:
            return

        detail = ""
        try:
            error = response.json().get("error", {})
            detail = error.get("message") or error.get("code") or ""
        except (ValueError, AttributeError):
            detail = response.text[:200]

        message = f"Failed to {action}: HTTP {response.status_code}"
        if detail:
            message = f"{message} - {detail}"
        logger.error(message)
        raise UpstreamError(message, status=response.status_code)

    async def _get_all(
        self,
        url: str,
        token: str,
        action: str,
        params: dict[str, str],
    ) -> list[dict[str, Any]]:
        """
        Collect the ``value`` arrays of every page of a listing.

        Returns:
            Raw item dictionaries from all pages
        """
        items: list[dict[str, Any]] = []
        next_url: str | None = url
        next_params: dict[str, str] | None = params

        while next_url:
            response = await self._request("GET", next_url, token, action, params=next_params)
            self._raise_for_status(response, action)
            payload = response.json()
            items.extend(payload.get("value", []))
            # nextLink already carries the query string
            next_url = payload.get("nextLink")
            next_params = None

        return items

    @staticmethod
    def _parse_resource(item: dict[str, Any]) -> Resource:
        """Convert a Resource Manager payload into a Resource."""
        resource_id = item.get("id", "")
        return Resource(
            id=resource_id,
            name=item.get("name", ""),
            type=item.get("type", ""),
            kind=item.get("kind"),
            location=item.get("location", ""),
            resource_group=extract_resource_group_from_id(resource_id),
            subscription_id=extract_subscription_id_from_id(resource_id),
            tags=item.get("tags") or {},
        )

    async def list_subscriptions(self, token: str) -> list[Subscription]:
        """
        List the subscriptions the caller can see.

        Args:
            token: Caller's bearer token

        Returns:
            List of subscriptions

        Raises:
            UpstreamError: If the listing fails
        """
        items = await self._get_all(
            "/subscriptions",
            token,
            "fetch subscriptions",
            {"api-version": self.subscriptions_api_version},
        )
        return [
            Subscription(
                subscription_id=item.get("subscriptionId", ""),
                display_name=item.get("displayName", ""),
                state=item.get("state", ""),
                tenant_id=item.get("tenantId", ""),
            )
            for item in items
        ]

    async def list_resources(
        self,
        subscription_id: str,
        token: str,
        filters: ResourceFilters | None = None,
    ) -> list[Resource]:
        """
        List resources in a subscription or one of its resource groups.

        Args:
            subscription_id: Subscription to list
            token: Caller's bearer token
            filters: Optional resource group, type and tag filters

        Returns:
            List of resources matching the filters

        Raises:
            UpstreamError: If the listing fails
        """
        filters = filters or ResourceFilters()

        if filters.resource_group_name:
            url = (
                f"/subscriptions/{subscription_id}"
                f"/resourceGroups/{filters.resource_group_name}/resources"
            )
        else:
            url = f"/subscriptions/{subscription_id}/resources"

        params = {"api-version": self.resources_api_version}
        if filters.resource_type:
            params["$filter"] = f"resourceType eq '{filters.resource_type}'"

        items = await self._get_all(url, token, "fetch resources", params)
        resources = [self._parse_resource(item) for item in items]

        for resource in resources:
            if not resource.subscription_id:
                resource.subscription_id = subscription_id

        if filters.resource_type:
            wanted = filters.resource_type.lower()
            resources = [r for r in resources if r.type.lower() == wanted]

        if filters.tag_name:
            resources = [r for r in resources if filters.tag_name in r.tags]
            if filters.tag_value is not None:
                resources = [
                    r for r in resources if r.tags[filters.tag_name] == filters.tag_value
                ]

        logger.debug(f"Fetched {len(resources)} resources from subscription {subscription_id}")
        return resources

    async def get_resource(self, resource_id: str, token: str) -> Resource | None:
        """
        Fetch a single resource.

        Args:
            resource_id: Fully-qualified resource ID
            token: Caller's bearer token

        Returns:
            The resource, or None if it does not exist

        Raises:
            UpstreamError: For any failure other than 404
        """
        response = await self._request(
            "GET",
            resource_id,
            token,
            "fetch resource",
            params={"api-version": self.resources_api_version},
        )
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "fetch resource")
        return self._parse_resource(response.json())

    async def list_resource_groups(self, subscription_id: str, token: str) -> list[ResourceGroup]:
        """
        List resource groups in a subscription.

        Args:
            subscription_id: Subscription to list
            token: Caller's bearer token

        Returns:
            List of resource groups

        Raises:
            UpstreamError: If the listing fails
        """
        items = await self._get_all(
            f"/subscriptions/{subscription_id}/resourcegroups",
            token,
            "fetch resource groups",
            {"api-version": self.resources_api_version},
        )
        return [
            ResourceGroup(
                name=item.get("name", ""),
                location=item.get("location", ""),
                tags=item.get("tags") or {},
            )
            for item in items
        ]

    async def patch_resource_tags(
        self,
        resource_id: str,
        tags: dict[str, str],
        token: str,
    ) -> Resource:
        """
        Overwrite the tag set of a resource.

        Args:
            resource_id: Fully-qualified resource ID
            tags: Complete tag set to store
            token: Caller's bearer token

        Returns:
            The updated resource as returned by the provider

        Raises:
            UpstreamError: If the update fails
        """
        response = await self._request(
            "PATCH",
            resource_id,
            token,
            "update resource tags",
            params={"api-version": self.resources_api_version},
            json={"tags": tags},
        )
        self._raise_for_status(response, "update resource tags")
        return self._parse_resource(response.json())
