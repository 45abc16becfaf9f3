"""Azure resource directory data models."""

from pydantic import BaseModel, Field


class Resource(BaseModel):
    """Represents an Azure resource with its tags."""

    id: str = Field(..., description="Fully-qualified Azure resource ID")
    name: str = Field(..., description="Resource name")
    type: str = Field(..., description="Resource type (e.g., Microsoft.Compute/virtualMachines)")
    kind: str | None = Field(None, description="Resource kind, when the provider reports one")
    location: str = Field("", description="Azure region of the resource")
    resource_group: str = Field("", description="Resource group name")
    subscription_id: str = Field("", description="Subscription the resource belongs to")
    tags: dict[str, str] = Field(
        default_factory=dict,
        description="Tags associated with the resource"
    )


class Subscription(BaseModel):
    """An Azure subscription visible to the caller."""

    subscription_id: str = Field(..., description="Subscription GUID")
    display_name: str = Field("", description="Human readable subscription name")
    state: str = Field("", description="Subscription state (Enabled, Disabled, ...)")
    tenant_id: str = Field("", description="Tenant that owns the subscription")


class ResourceGroup(BaseModel):
    """An Azure resource group."""

    name: str
    location: str = ""
    tags: dict[str, str] = Field(default_factory=dict)


class ResourceFilters(BaseModel):
    """Filters accepted by resource listings.

    ``resource_group_name`` changes the queried scope, ``resource_type`` is
    sent to the provider, and the tag filters are always applied after the
    fetch. ``tag_value`` is ignored unless ``tag_name`` is also set.
    """

    resource_group_name: str | None = None
    resource_type: str | None = None
    tag_name: str | None = None
    tag_value: str | None = None


class FanOutResult(BaseModel):
    """Resources gathered across subscriptions, with the ones that failed."""

    resources: list[Resource] = Field(default_factory=list)
    failed_subscriptions: list[str] = Field(
        default_factory=list,
        description="Subscriptions whose listing failed and were skipped"
    )


class SearchCriteria(BaseModel):
    """Criteria for searching resources across subscriptions."""

    query: str | None = Field(None, description="Substring of resource name or type")
    subscription_id: str | None = None
    resource_type: str | None = None
    location: str | None = None
    has_tag: str | None = None
    missing_tag: str | None = None
    missing_tags: list[str] | None = Field(
        None, description="Match resources missing at least one of these keys"
    )
    tag_key: str | None = None
    tag_value: str | None = None
    limit: int = Field(100, ge=1, le=1000)
    offset: int = Field(0, ge=0)


class Pagination(BaseModel):
    """Pagination metadata for a page of results."""

    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    has_more: bool


class ResourcePage(BaseModel):
    """A page of resources."""

    resources: list[Resource] = Field(default_factory=list)
    pagination: Pagination
    failed_subscriptions: list[str] = Field(default_factory=list)
