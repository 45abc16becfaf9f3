"""Clients for Azure Resource Manager, record storage and email."""

from .arm_client import ArmClient, NotFoundError, UpstreamError
from .email_client import EmailDeliveryError, EmailSender, SmtpEmailClient
from .repository import (
    InMemoryRepository,
    RedisRepository,
    Repository,
    RepositoryError,
    VersionConflictError,
)

__all__ = [
    "ArmClient",
    "NotFoundError",
    "UpstreamError",
    "EmailDeliveryError",
    "EmailSender",
    "SmtpEmailClient",
    "InMemoryRepository",
    "RedisRepository",
    "Repository",
    "RepositoryError",
    "VersionConflictError",
]
