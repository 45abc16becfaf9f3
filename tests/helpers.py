"""Builders shared by the unit and property tests."""

from tag_manager.models.resource import Resource

SUB_1 = "11111111-1111-1111-1111-111111111111"
SUB_2 = "22222222-2222-2222-2222-222222222222"
SUB_3 = "33333333-3333-3333-3333-333333333333"


def make_resource(
    name: str,
    tags: dict[str, str] | None = None,
    subscription_id: str = SUB_1,
    resource_group: str = "rg-app",
    type: str = "Microsoft.Compute/virtualMachines",
    location: str = "westeurope",
) -> Resource:
    """Build a Resource whose ID is consistent with its other fields."""
    return Resource(
        id=(
            f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
            f"/providers/{type}/{name}"
        ),
        name=name,
        type=type,
        location=location,
        resource_group=resource_group,
        subscription_id=subscription_id,
        tags=tags or {},
    )
