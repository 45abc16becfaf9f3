"""Data models for the Azure tag manager."""

from .enums import (
    AlertFrequency,
    ConditionType,
    PolicyScope,
    TagOperation,
    ViolationType,
)
from .record import StoredRecord, new_record_id
from .resource import (
    FanOutResult,
    Pagination,
    Resource,
    ResourceFilters,
    ResourceGroup,
    ResourcePage,
    SearchCriteria,
    Subscription,
)
from .tags import (
    BulkFailure,
    BulkOperationResult,
    BulkSummary,
    TagTemplate,
    TemplateApplicationResult,
)
from .policy import RequiredTag, TagPolicy
from .compliance import (
    ComplianceReport,
    InvalidTag,
    PolicyComplianceSummary,
    PolicyViolation,
    ResourceComplianceViolation,
    TagValidationResult,
)
from .alert import (
    AlertCondition,
    AlertOutcome,
    AlertRule,
    AlertRunResult,
    AlertRunSummary,
    AlertScope,
    AlertViolation,
    CostThresholdCondition,
    InvalidTagValueCondition,
    MissingTagCondition,
    ResourceTypeCondition,
)
from .report import (
    CommonTag,
    CostBreakdownReport,
    CostGroup,
    CoverageBreakdown,
    InventoryReport,
    ResourceSummary,
    TagCoverageReport,
    TagInventory,
)
from .audit import AuditLogEntry, AuditStatus

__all__ = [
    "AlertFrequency",
    "ConditionType",
    "PolicyScope",
    "TagOperation",
    "ViolationType",
    "StoredRecord",
    "new_record_id",
    "FanOutResult",
    "Pagination",
    "Resource",
    "ResourceFilters",
    "ResourceGroup",
    "ResourcePage",
    "SearchCriteria",
    "Subscription",
    "BulkFailure",
    "BulkOperationResult",
    "BulkSummary",
    "TagTemplate",
    "TemplateApplicationResult",
    "RequiredTag",
    "TagPolicy",
    "ComplianceReport",
    "InvalidTag",
    "PolicyComplianceSummary",
    "PolicyViolation",
    "ResourceComplianceViolation",
    "TagValidationResult",
    "AlertCondition",
    "AlertOutcome",
    "AlertRule",
    "AlertRunResult",
    "AlertRunSummary",
    "AlertScope",
    "AlertViolation",
    "CostThresholdCondition",
    "InvalidTagValueCondition",
    "MissingTagCondition",
    "ResourceTypeCondition",
    "CommonTag",
    "CostBreakdownReport",
    "CostGroup",
    "CoverageBreakdown",
    "InventoryReport",
    "ResourceSummary",
    "TagCoverageReport",
    "TagInventory",
    "AuditLogEntry",
    "AuditStatus",
]
