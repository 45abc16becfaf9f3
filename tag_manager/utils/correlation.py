# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Correlation IDs for tag mutation calls.

A correlation ID ties together the log lines and the audit record of a
single tag mutation call. It lives in a context variable, so concurrent
tasks each see their own.
"""

import contextvars
import logging
import uuid
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

_current_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tag_manager_correlation_id", default=None
)


def generate_correlation_id() -> str:
    """Return a new random (UUID4) correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """Return the active correlation ID, or None outside a tracked call."""
    return _current_id.get()


@contextmanager
def correlation_scope() -> Iterator[str]:
    """
    Track one call under a correlation ID.

    A new ID is started for the duration of the block and the previous
    state is restored on exit. Inside an already tracked call the outer
    ID is reused, so a template application and the bulk update it runs
    share one ID.

    Yields:
        The correlation ID active inside the block
    """
    outer_id = get_correlation_id()
    if outer_id is not None:
        yield outer_id
        return

    correlation_id = generate_correlation_id()
    token = _current_id.set(correlation_id)
    logger.debug(
        f"Started correlation ID {correlation_id}",
        extra={"correlation_id": correlation_id},
    )
    try:
        yield correlation_id
    finally:
        _current_id.reset(token)


def get_correlation_id_for_logging() -> dict:
    """``extra=`` mapping for log calls; empty when no ID is active."""
    correlation_id = get_correlation_id()
    return {"correlation_id": correlation_id} if correlation_id else {}
