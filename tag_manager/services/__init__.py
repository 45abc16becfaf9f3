"""Service layer for the Azure tag manager."""

from .alert_service import AlertService, evaluate_conditions
from .audit_service import AuditService
from .compliance_service import ComplianceService
from .inventory_service import InventoryService
from .notification_service import NotificationService
from .policy_service import PolicyEvaluator, PolicyService
from .report_service import ReportService
from .scheduler_service import AlertSchedulerService
from .tag_service import TagService, apply_tag_operation
from .template_service import TemplateService

__all__ = [
    "AlertService",
    "evaluate_conditions",
    "AuditService",
    "ComplianceService",
    "InventoryService",
    "NotificationService",
    "PolicyEvaluator",
    "PolicyService",
    "ReportService",
    "AlertSchedulerService",
    "TagService",
    "apply_tag_operation",
    "TemplateService",
]
