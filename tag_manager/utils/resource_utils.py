"""
Shared utilities for Azure resource IDs.

Resource IDs have the form
``/subscriptions/{sub}/resourceGroups/{rg}/providers/{namespace}/{type}/{name}``.
"""

import re

_SUBSCRIPTION_RE = re.compile(r"/subscriptions/([^/]+)", re.IGNORECASE)
_RESOURCE_GROUP_RE = re.compile(r"/resourceGroups/([^/]+)", re.IGNORECASE)


def extract_subscription_id_from_id(resource_id: str) -> str:
    """
    Extract the subscription ID from an Azure resource ID.

    Args:
        resource_id: Fully-qualified Azure resource ID

    Returns:
        Subscription ID or an empty string if not found
    """
    if not resource_id:
        return ""
    match = _SUBSCRIPTION_RE.search(resource_id)
    return match.group(1) if match else ""


def extract_resource_group_from_id(resource_id: str) -> str:
    """
    Extract the resource group name from an Azure resource ID.

    Args:
        resource_id: Fully-qualified Azure resource ID

    Returns:
        Resource group name or an empty string if not found
    """
    if not resource_id:
        return ""
    match = _RESOURCE_GROUP_RE.search(resource_id)
    return match.group(1) if match else ""
