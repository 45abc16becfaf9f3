# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Service container for dependency wiring and lifecycle management.

The container builds every client and service from ``Settings`` and
seeds the default templates, policies and alert rules into empty
repositories. It is entry-point agnostic; the CLI is one user.
"""

import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis
from pydantic import ValidationError as PydanticValidationError

from .clients.arm_client import ArmClient
from .clients.email_client import SmtpEmailClient
from .clients.repository import InMemoryRepository, RedisRepository, Repository
from .config import Settings, settings as get_default_settings
from .models.alert import AlertRule
from .models.policy import TagPolicy
from .models.record import StoredRecord
from .models.tags import TagTemplate
from .services.alert_service import AlertService
from .services.audit_service import AuditService
from .services.compliance_service import ComplianceService
from .services.inventory_service import InventoryService
from .services.notification_service import NotificationService
from .services.policy_service import PolicyService
from .services.report_service import ReportService
from .services.scheduler_service import AlertSchedulerService
from .services.tag_service import TagService
from .services.template_service import TemplateService

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Section of the defaults file -> (repository attribute, model)
DEFAULT_SECTIONS: dict[str, tuple[str, type[StoredRecord]]] = {
    "templates": ("template_repository", TagTemplate),
    "policies": ("policy_repository", TagPolicy),
    "alerts": ("alert_repository", AlertRule),
}


def resolve_defaults_path(path: str) -> Path:
    """Resolve a relative defaults path against the working directory, then the project root."""
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return PROJECT_ROOT / candidate


class ServiceContainer:
    """
    Wires together all services with proper dependency injection.

    Usage::

        container = ServiceContainer()          # uses default settings
        await container.initialize()

        report = await container.compliance_service.check_compliance(token)

        await container.shutdown()

    The alert scheduler needs a token provider, because scheduled runs have
    no caller to take a token from::

        container = ServiceContainer(token_provider=get_service_token)
        await container.initialize(start_scheduler=True)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        token_provider: Optional[Callable[[], Awaitable[str]]] = None,
    ) -> None:
        """
        Create a ServiceContainer.

        Args:
            settings: Application settings. If None, loads from environment
                      variables / .env file via the default ``settings()``
                      helper.
            token_provider: Async function returning a bearer token for
                      scheduled alert runs
        """
        self._settings: Settings = settings or get_default_settings()
        self._token_provider = token_provider
        self._initialized = False

        self._redis_client: Optional[redis.Redis] = None
        self._arm_client: Optional[ArmClient] = None
        self.template_repository: Optional[Repository[TagTemplate]] = None
        self.policy_repository: Optional[Repository[TagPolicy]] = None
        self.alert_repository: Optional[Repository[AlertRule]] = None
        self._audit_service: Optional[AuditService] = None
        self._inventory_service: Optional[InventoryService] = None
        self._tag_service: Optional[TagService] = None
        self._template_service: Optional[TemplateService] = None
        self._policy_service: Optional[PolicyService] = None
        self._compliance_service: Optional[ComplianceService] = None
        self._notification_service: Optional[NotificationService] = None
        self._alert_service: Optional[AlertService] = None
        self._report_service: Optional[ReportService] = None
        self._scheduler_service: Optional[AlertSchedulerService] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _build_repositories(self) -> None:
        s = self._settings
        if s.repository_backend == "redis":
            self._redis_client = redis.from_url(
                s.redis_url,
                password=s.redis_password,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            self.template_repository = RedisRepository(self._redis_client, "templates", TagTemplate)
            self.policy_repository = RedisRepository(self._redis_client, "policies", TagPolicy)
            self.alert_repository = RedisRepository(self._redis_client, "alerts", AlertRule)
            logger.info("ServiceContainer: Redis repositories initialized")
        else:
            self.template_repository = InMemoryRepository()
            self.policy_repository = InMemoryRepository()
            self.alert_repository = InMemoryRepository()
            logger.info("ServiceContainer: in-memory repositories initialized")

    async def initialize(self, start_scheduler: bool = False) -> None:
        """
        Initialize all services.

        Services are initialized in dependency order. The audit trail and
        the default records are optional: a failure there is logged and
        startup continues.

        Args:
            start_scheduler: Also start the alert scheduler
        """
        if self._initialized:
            logger.warning("ServiceContainer.initialize() called more than once")
            return

        s = self._settings
        logger.info("ServiceContainer: initializing services")

        # 1. Resource Manager client
        self._arm_client = ArmClient(
            base_url=s.arm_base_url,
            subscriptions_api_version=s.arm_subscriptions_api_version,
            resources_api_version=s.arm_resources_api_version,
            timeout=s.http_timeout_seconds,
        )

        # 2. Repositories
        self._build_repositories()

        # 3. Audit service (SQLite)
        try:
            self._audit_service = AuditService(db_path=s.audit_db_path)
            logger.info("ServiceContainer: audit service initialized")
        except Exception as e:
            logger.error(f"ServiceContainer: failed to initialize audit service: {e}")
            self._audit_service = None

        # 4. Domain services
        self._inventory_service = InventoryService(self._arm_client)
        self._tag_service = TagService(
            arm_client=self._arm_client,
            audit_service=self._audit_service,
            batch_size=s.bulk_batch_size,
            batch_delay_seconds=s.bulk_batch_delay_seconds,
            max_resources=s.bulk_max_resources,
        )
        self._template_service = TemplateService(self.template_repository, self._tag_service)
        self._policy_service = PolicyService(self.policy_repository)
        self._compliance_service = ComplianceService(
            self._inventory_service, self._policy_service
        )
        self._report_service = ReportService(self._inventory_service)

        # 5. Notifications
        email_client = SmtpEmailClient(
            host=s.smtp_host,
            port=s.smtp_port,
            user=s.smtp_user,
            password=s.smtp_password,
            from_address=s.smtp_from,
            timeout=s.http_timeout_seconds,
        )
        if not email_client.is_configured:
            logger.warning("ServiceContainer: SMTP not configured, alert emails will be skipped")
        self._notification_service = NotificationService(email_client)
        self._alert_service = AlertService(
            self.alert_repository, self._inventory_service, self._notification_service
        )

        # 6. Default records
        try:
            await self.seed_defaults()
        except Exception as e:
            logger.warning(f"ServiceContainer: failed to load default records: {e}")

        # 7. Scheduler
        if start_scheduler:
            await self._start_scheduler()

        self._initialized = True
        logger.info("ServiceContainer: all services initialized")

    async def _start_scheduler(self) -> None:
        s = self._settings
        if not s.scheduler_enabled:
            logger.info("ServiceContainer: scheduler is disabled")
            return
        if self._token_provider is None:
            logger.warning("ServiceContainer: scheduler enabled but no token provider given")
            return

        self._scheduler_service = AlertSchedulerService(
            alert_service=self._alert_service,
            token_provider=self._token_provider,
            schedule_hour=s.alert_schedule_hour,
            schedule_minute=s.alert_schedule_minute,
            schedule_timezone=s.alert_schedule_timezone,
            enabled=True,
        )
        if not await self._scheduler_service.start():
            logger.warning("ServiceContainer: scheduler service failed to start")

    async def seed_defaults(self) -> dict[str, int]:
        """
        Store the default records of each kind whose repository is empty.

        Returns:
            Number of records stored per section
        """
        path = resolve_defaults_path(self._settings.defaults_path)
        if not path.exists():
            logger.info(f"ServiceContainer: no defaults file at {path}")
            return {}

        with open(path, "r", encoding="utf-8") as f:
            defaults = json.load(f)

        seeded: dict[str, int] = {}
        for section, (attribute, model_cls) in DEFAULT_SECTIONS.items():
            repository: Repository = getattr(self, attribute)
            if await repository.list():
                continue

            count = 0
            for data in defaults.get(section, []):
                try:
                    record = model_cls.model_validate(data)
                except PydanticValidationError as e:
                    logger.warning(
                        f"ServiceContainer: skipping invalid default in {section}: {e}"
                    )
                    continue
                await repository.put(record, expected_version=0)
                count += 1
            seeded[section] = count

        if seeded:
            logger.info(f"ServiceContainer: loaded default records from {path}: {seeded}")
        return seeded

    async def shutdown(self) -> None:
        """Clean up connections and resources."""
        logger.info("ServiceContainer: shutting down")
        if self._scheduler_service:
            try:
                await self._scheduler_service.stop()
            except Exception as e:
                logger.warning(f"ServiceContainer: error stopping scheduler: {e}")
        if self._arm_client:
            try:
                await self._arm_client.close()
            except Exception as e:
                logger.warning(f"ServiceContainer: error closing HTTP client: {e}")
        if self._redis_client:
            try:
                await self._redis_client.aclose()
            except Exception as e:
                logger.warning(f"ServiceContainer: error closing Redis: {e}")
        self._initialized = False
        logger.info("ServiceContainer: shutdown complete")

    # ------------------------------------------------------------------
    # Accessor properties
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def arm_client(self) -> Optional[ArmClient]:
        return self._arm_client

    @property
    def audit_service(self) -> Optional[AuditService]:
        return self._audit_service

    @property
    def inventory_service(self) -> Optional[InventoryService]:
        return self._inventory_service

    @property
    def tag_service(self) -> Optional[TagService]:
        return self._tag_service

    @property
    def template_service(self) -> Optional[TemplateService]:
        return self._template_service

    @property
    def policy_service(self) -> Optional[PolicyService]:
        return self._policy_service

    @property
    def compliance_service(self) -> Optional[ComplianceService]:
        return self._compliance_service

    @property
    def notification_service(self) -> Optional[NotificationService]:
        return self._notification_service

    @property
    def alert_service(self) -> Optional[AlertService]:
        return self._alert_service

    @property
    def report_service(self) -> Optional[ReportService]:
        return self._report_service

    @property
    def scheduler_service(self) -> Optional[AlertSchedulerService]:
        return self._scheduler_service
