"""Compliance evaluation data models."""

from datetime import datetime, UTC

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import ViolationType


class PolicyViolation(BaseModel):
    """A single required-tag violation found on a resource."""

    policy_id: str
    key: str = Field(..., description="Tag key that violated the policy")
    violation_type: ViolationType
    value: str | None = Field(None, description="Current value of the tag (if present)")
    reason: str


class InvalidTag(BaseModel):
    """A present tag whose value failed validation."""

    key: str
    value: str
    reason: str


class ResourceComplianceViolation(BaseModel):
    """All violations for one non-compliant resource."""

    resource_id: str
    resource_name: str
    missing_tags: list[str] = Field(default_factory=list)
    invalid_tags: list[InvalidTag] = Field(default_factory=list)


class PolicyComplianceSummary(BaseModel):
    """Compliance counts for a single policy."""

    policy_id: str
    policy_name: str
    compliant: int = Field(..., ge=0)
    non_compliant: int = Field(..., ge=0)
    percentage: int = Field(..., ge=0, le=100)


class ComplianceReport(BaseModel):
    """Result of evaluating policies against a set of resources."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_resources": 4,
                "compliant_resources": 3,
                "non_compliant_resources": 1,
                "compliance_percentage": 75,
                "violations": [
                    {
                        "resource_id": "/subscriptions/s1/resourceGroups/rg/providers/Microsoft.Web/sites/app",
                        "resource_name": "app",
                        "missing_tags": ["Owner"],
                        "invalid_tags": [],
                    }
                ],
                "compliance_by_policy": [],
                "failed_subscriptions": [],
            }
        }
    )

    total_resources: int = Field(..., ge=0)
    compliant_resources: int = Field(..., ge=0)
    non_compliant_resources: int = Field(..., ge=0)
    compliance_percentage: int = Field(..., ge=0, le=100)
    violations: list[ResourceComplianceViolation] = Field(default_factory=list)
    compliance_by_policy: list[PolicyComplianceSummary] = Field(default_factory=list)
    failed_subscriptions: list[str] = Field(
        default_factory=list,
        description="Subscriptions skipped because their resource listing failed",
    )
    evaluated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("compliant_resources")
    @classmethod
    def validate_compliant_count(cls, v: int, info) -> int:
        """Ensure compliant resources doesn't exceed total resources."""
        if "total_resources" in info.data and v > info.data["total_resources"]:
            raise ValueError("compliant_resources cannot exceed total_resources")
        return v


class TagValidationResult(BaseModel):
    """Result of validating a bare tag map against enabled policies."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
