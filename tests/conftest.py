"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tag_manager.clients.arm_client import ArmClient
from tag_manager.clients.email_client import EmailSender

from helpers import SUB_2, make_resource


@pytest.fixture
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


# =============================================================================
# Environment and Configuration Fixtures
# =============================================================================

@pytest.fixture
def test_env(monkeypatch, tmp_path):
    """Set up test environment variables."""
    test_vars = {
        "REPOSITORY_BACKEND": "memory",
        "AUDIT_DB_PATH": str(tmp_path / "audit.db"),
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
    }
    for key, value in test_vars.items():
        monkeypatch.setenv(key, value)
    for key in ("SMTP_USER", "SMTP_PASSWORD"):
        monkeypatch.delenv(key, raising=False)
    return test_vars


# =============================================================================
# Azure and External Service Mocks
# =============================================================================

@pytest.fixture
def mock_arm_client():
    """Create a mock Resource Manager client."""
    client = MagicMock(spec=ArmClient)
    client.list_subscriptions = AsyncMock(return_value=[])
    client.list_resources = AsyncMock(return_value=[])
    client.get_resource = AsyncMock(return_value=None)
    client.list_resource_groups = AsyncMock(return_value=[])
    client.patch_resource_tags = AsyncMock()
    return client


@pytest.fixture
def mock_redis_client():
    """Create a mock Redis client for testing."""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.mget = AsyncMock(return_value=[])
    return client


@pytest.fixture
def mock_email_sender():
    """Create an email sender that records calls and reports success."""
    sender = MagicMock(spec=EmailSender)
    sender.send = AsyncMock(return_value=True)
    return sender


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def sample_resources():
    """Three resources with different tagging states."""
    return [
        make_resource("vm-prod", {"Environment": "Production", "Owner": "ops@contoso.com"}),
        make_resource(
            "st-dev",
            {"Environment": "Dev"},
            type="Microsoft.Storage/storageAccounts",
        ),
        make_resource("vm-untagged", subscription_id=SUB_2, resource_group="rg-data"),
    ]


@pytest.fixture
def sample_policy_data():
    """Provide a sample tag policy payload."""
    return {
        "name": "Global Required Tags",
        "description": "Tags required for all resources",
        "scope": "global",
        "required_tags": [
            {
                "key": "Environment",
                "allowed_values": ["Development", "Staging", "Production"],
            },
            {
                "key": "Owner",
                "pattern": r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$",
            },
        ],
    }
