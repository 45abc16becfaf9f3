# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Record repositories for templates, policies and alert rules.

Every write bumps the record's ``version``. Passing ``expected_version``
to ``put`` turns the write into a compare-and-set: it only succeeds when
the stored version still matches.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, UTC
from typing import Generic, Optional, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from ..models.record import StoredRecord

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=StoredRecord)


class RepositoryError(Exception):
    """Raised when the backing store fails."""

    pass


class VersionConflictError(RepositoryError):
    """Raised when a record changed since the caller last read it."""

    def __init__(self, record_id: str, expected: int, actual: int):
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict for record {record_id}: expected {expected}, found {actual}"
        )


class Repository(ABC, Generic[T]):
    """Abstract store of versioned records keyed by id."""

    @abstractmethod
    async def list(self) -> list[T]:
        """Return every stored record."""

    @abstractmethod
    async def get(self, record_id: str) -> Optional[T]:
        """Return a record, or None if it does not exist."""

    @abstractmethod
    async def put(self, record: T, expected_version: Optional[int] = None) -> T:
        """
        Store a record.

        Args:
            record: Record to store
            expected_version: Version the caller believes is stored (0 for
                a record that must not exist yet). None skips the check.

        Returns:
            The stored record, with its new version

        Raises:
            VersionConflictError: If expected_version does not match
            RepositoryError: If the backing store fails
        """

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""


def _next_revision(record: T, current_version: int, expected_version: Optional[int]) -> T:
    if expected_version is not None and expected_version != current_version:
        raise VersionConflictError(record.id, expected_version, current_version)
    return record.model_copy(
        update={"version": current_version + 1, "updated_at": datetime.now(UTC)},
        deep=True,
    )


class InMemoryRepository(Repository[T]):
    """Process-local repository, the default backend."""

    def __init__(self):
        self._records: dict[str, T] = {}
        self._lock = asyncio.Lock()

    async def list(self) -> list[T]:
        async with self._lock:
            return [r.model_copy(deep=True) for r in self._records.values()]

    async def get(self, record_id: str) -> Optional[T]:
        async with self._lock:
            record = self._records.get(record_id)
            return record.model_copy(deep=True) if record is not None else None

    async def put(self, record: T, expected_version: Optional[int] = None) -> T:
        async with self._lock:
            existing = self._records.get(record.id)
            current_version = existing.version if existing is not None else 0
            stored = _next_revision(record, current_version, expected_version)
            self._records[record.id] = stored
            return stored.model_copy(deep=True)

    async def delete(self, record_id: str) -> bool:
        async with self._lock:
            return self._records.pop(record_id, None) is not None


class RedisRepository(Repository[T]):
    """
    Repository storing records as JSON strings in Redis.

    Keys are ``<namespace>:<id>``. Writes use WATCH/MULTI so that two
    concurrent writers cannot both succeed against the same version.
    """

    def __init__(self, client: redis.Redis, namespace: str, model_cls: type[T]):
        """
        Initialize the repository.

        Args:
            client: redis.asyncio client created with decode_responses=True
            namespace: Key prefix for this record type
            model_cls: Pydantic model used to decode stored records
        """
        if not namespace:
            raise RepositoryError("namespace cannot be empty")
        self._client = client
        self.namespace = namespace
        self.model_cls = model_cls

    def _key(self, record_id: str) -> str:
        return f"{self.namespace}:{record_id}"

    def _decode(self, raw: str) -> T:
        return self.model_cls.model_validate_json(raw)

    async def list(self) -> list[T]:
        try:
            keys = [key async for key in self._client.scan_iter(match=f"{self.namespace}:*")]
            if not keys:
                return []
            values = await self._client.mget(keys)
        except RedisError as e:
            logger.error(f"Failed to list {self.namespace} records: {str(e)}")
            raise RepositoryError(f"Failed to list {self.namespace} records: {str(e)}") from e
        return [self._decode(v) for v in values if v is not None]

    async def get(self, record_id: str) -> Optional[T]:
        try:
            raw = await self._client.get(self._key(record_id))
        except RedisError as e:
            logger.error(f"Failed to read {self._key(record_id)}: {str(e)}")
            raise RepositoryError(f"Failed to read record {record_id}: {str(e)}") from e
        return self._decode(raw) if raw is not None else None

    async def put(self, record: T, expected_version: Optional[int] = None) -> T:
        key = self._key(record.id)
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                raw = await pipe.get(key)
                current_version = self._decode(raw).version if raw is not None else 0
                stored = _next_revision(record, current_version, expected_version)
                pipe.multi()
                pipe.set(key, stored.model_dump_json())
                await pipe.execute()
        except WatchError as e:
            # Another writer committed between WATCH and EXEC
            raise VersionConflictError(
                record.id,
                expected_version if expected_version is not None else current_version,
                current_version + 1,
            ) from e
        except RedisError as e:
            logger.error(f"Failed to write {key}: {str(e)}")
            raise RepositoryError(f"Failed to write record {record.id}: {str(e)}") from e

        logger.debug(f"Stored {key} at version {stored.version}")
        return stored

    async def delete(self, record_id: str) -> bool:
        try:
            return await self._client.delete(self._key(record_id)) > 0
        except RedisError as e:
            logger.error(f"Failed to delete {self._key(record_id)}: {str(e)}")
            raise RepositoryError(f"Failed to delete record {record_id}: {str(e)}") from e
