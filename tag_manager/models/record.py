# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Base model for user-managed records kept in a repository."""

import uuid
from datetime import datetime, UTC
from typing import Any

from pydantic import BaseModel, Field

# Fields owned by the repository, never changed by a partial update
BOOKKEEPING_FIELDS = frozenset({"id", "version", "created_by", "created_at", "updated_at"})


def new_record_id() -> str:
    """Generate a unique record identifier."""
    return uuid.uuid4().hex


class StoredRecord(BaseModel):
    """Fields shared by templates, policies and alert rules.

    ``version`` is managed by the repository: it starts at 0 for a record
    that has never been stored and is incremented on every write.
    """

    id: str = Field(default_factory=new_record_id, description="Record identifier")
    version: int = Field(0, ge=0, description="Optimistic concurrency version")
    created_by: str = Field("unknown", description="Who created the record")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def with_updates(self, updates: dict[str, Any]):
        """
        Return a validated copy of this record with ``updates`` applied.

        Bookkeeping fields in ``updates`` are ignored.

        Raises:
            pydantic.ValidationError: If the updated record is invalid
        """
        data = self.model_dump()
        data.update({k: v for k, v in updates.items() if k not in BOOKKEEPING_FIELDS})
        return type(self).model_validate(data)
