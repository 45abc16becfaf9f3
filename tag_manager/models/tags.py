# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Tag template and bulk mutation data models."""

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .record import StoredRecord


class TagTemplate(StoredRecord):
    """A named, reusable tag set."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Production Environment",
                "description": "Standard tags for production resources",
                "category": "Environment",
                "tags": {
                    "Environment": "Production",
                    "Criticality": "High",
                },
            }
        }
    )

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    category: str = Field(..., min_length=1, max_length=50)
    tags: dict[str, str] = Field(default_factory=dict)


class BulkFailure(BaseModel):
    """A resource whose tag update failed during a bulk operation."""

    resource_id: str
    error: str


class BulkSummary(BaseModel):
    """Counts for a bulk operation."""

    total_requested: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class BulkOperationResult(BaseModel):
    """Outcome of a bulk tag mutation.

    Entries are recorded in completion order, which is not deterministic
    across resources updated in the same batch.
    """

    successful: list[str] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)

    @computed_field
    @property
    def summary(self) -> BulkSummary:
        return BulkSummary(
            total_requested=len(self.successful) + len(self.failed),
            successful=len(self.successful),
            failed=len(self.failed),
        )


class TemplateApplicationResult(BaseModel):
    """Outcome of applying a tag template to a set of resources."""

    template: str = Field(..., description="Name of the applied template")
    result: BulkOperationResult
