"""Configuration management for the Azure tag manager.

This module handles loading and validating configuration from environment
variables with sensible defaults.
"""

from typing import Literal, Optional
from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    In production, these should be set via environment variables
    or a .env file.
    """

    # General
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="LOG_LEVEL"
    )
    environment: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
        validation_alias=AliasChoices("ENVIRONMENT", "ENV")
    )

    # Azure Resource Manager
    arm_base_url: str = Field(
        default="https://management.azure.com",
        description="Base URL of the Azure Resource Manager REST API",
        validation_alias=AliasChoices("ARM_BASE_URL", "AZURE_MANAGEMENT_URL")
    )
    arm_subscriptions_api_version: str = Field(
        default="2020-01-01",
        description="api-version used when listing subscriptions",
        validation_alias="ARM_SUBSCRIPTIONS_API_VERSION"
    )
    arm_resources_api_version: str = Field(
        default="2021-04-01",
        description="api-version used for resource and resource group calls",
        validation_alias="ARM_RESOURCES_API_VERSION"
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for each Resource Manager request",
        gt=0,
        validation_alias="HTTP_TIMEOUT_SECONDS"
    )

    # Bulk tag updates
    bulk_batch_size: int = Field(
        default=10,
        description="Resources updated concurrently in one batch",
        ge=1,
        validation_alias="BULK_BATCH_SIZE"
    )
    bulk_batch_delay_seconds: float = Field(
        default=0.1,
        description="Pause between batches of a bulk update",
        ge=0,
        validation_alias="BULK_BATCH_DELAY_SECONDS"
    )
    bulk_max_resources: int = Field(
        default=1000,
        description="Maximum number of resource IDs accepted by a bulk update",
        ge=1,
        validation_alias="BULK_MAX_RESOURCES"
    )

    # Repository
    repository_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Where templates, policies and alerts are stored",
        validation_alias="REPOSITORY_BACKEND"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
        validation_alias="REDIS_URL"
    )
    redis_password: Optional[str] = Field(
        default=None,
        description="Redis password (optional)",
        validation_alias="REDIS_PASSWORD"
    )
    defaults_path: str = Field(
        default="policies/defaults.json",
        description="JSON file with the default templates, policies and alerts",
        validation_alias=AliasChoices("DEFAULTS_PATH", "POLICY_PATH")
    )

    # Database Configuration
    audit_db_path: str = Field(
        default="tag_audit.db",
        description="Path to the audit logs SQLite database",
        validation_alias="AUDIT_DB_PATH"
    )

    # SMTP
    smtp_host: str = Field(
        default="smtp.office365.com",
        description="SMTP server host",
        validation_alias="SMTP_HOST"
    )
    smtp_port: int = Field(
        default=587,
        description="SMTP server port",
        validation_alias="SMTP_PORT"
    )
    smtp_user: Optional[str] = Field(
        default=None,
        description="SMTP user name; email is skipped when user or password is unset",
        validation_alias="SMTP_USER"
    )
    smtp_password: Optional[str] = Field(
        default=None,
        description="SMTP password",
        validation_alias="SMTP_PASSWORD"
    )
    smtp_from: Optional[str] = Field(
        default=None,
        description="Sender address (defaults to the SMTP user)",
        validation_alias=AliasChoices("SMTP_FROM", "EMAIL_FROM")
    )

    # Alert scheduling
    alert_schedule_hour: int = Field(
        default=9,
        description="Hour of day the alert cron jobs fire",
        ge=0,
        le=23,
        validation_alias="ALERT_SCHEDULE_HOUR"
    )
    alert_schedule_minute: int = Field(
        default=0,
        description="Minute the alert cron jobs fire",
        ge=0,
        le=59,
        validation_alias="ALERT_SCHEDULE_MINUTE"
    )
    alert_schedule_timezone: str = Field(
        default="UTC",
        description="Timezone for the alert cron jobs",
        validation_alias="ALERT_SCHEDULE_TIMEZONE"
    )
    scheduler_enabled: bool = Field(
        default=True,
        description="Start the alert scheduler with the application",
        validation_alias="SCHEDULER_ENABLED"
    )

    model_config = SettingsConfigDict(
        env_prefix="",  # No prefix for environment variables
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """
    Get application settings.

    Loads settings from environment variables and .env file.

    Returns:
        Settings instance with all configuration values
    """
    return Settings()


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def settings() -> Settings:
    """
    Get the global settings instance.

    Creates the settings instance on first call and caches it.

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings
