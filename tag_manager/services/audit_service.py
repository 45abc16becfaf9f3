"""Audit logging service for tracking tag mutation calls."""

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from ..models.audit import AuditLogEntry, AuditStatus


def status_for_counts(successful: int, failed: int) -> AuditStatus:
    """Derive the audit status of a call from its success and failure counts."""
    if failed == 0:
        return AuditStatus.SUCCESS
    if successful == 0:
        return AuditStatus.FAILURE
    return AuditStatus.PARTIAL


class AuditService:
    """Records tag mutation calls in SQLite and reads them back."""

    def __init__(self, db_path: str = "tag_audit.db"):
        """
        Initialize the audit service.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self) -> None:
        """Create the tag_mutations table and its timestamp index if missing."""
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS tag_mutations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    correlation_id TEXT,
                    operation TEXT NOT NULL,
                    requested INTEGER NOT NULL,
                    successful INTEGER NOT NULL,
                    failed INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    error_message TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_tag_mutations_timestamp
                ON tag_mutations(timestamp)
                """
            )
            conn.commit()
        finally:
            conn.close()

    def log_mutation(
        self,
        operation: str,
        requested: int,
        successful: int,
        failed: int,
        correlation_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> AuditLogEntry:
        """
        Log a tag mutation call to the audit database.

        Args:
            operation: Tag operation that was applied (replace, merge, delete)
            requested: Number of resources in the request
            successful: Number of resources updated
            failed: Number of resources that failed
            correlation_id: Correlation ID of the call
            error_message: Summary of the failures, if any

        Returns:
            AuditLogEntry with the logged data including generated ID
        """
        timestamp = datetime.now(timezone.utc)
        status = status_for_counts(successful, failed)

        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO tag_mutations
                (timestamp, correlation_id, operation, requested, successful,
                 failed, status, error_message)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    timestamp.isoformat(),
                    correlation_id,
                    operation,
                    requested,
                    successful,
                    failed,
                    status.value,
                    error_message,
                ),
            )
            conn.commit()
            entry_id = cursor.lastrowid
        finally:
            conn.close()

        return AuditLogEntry(
            id=entry_id,
            timestamp=timestamp,
            correlation_id=correlation_id,
            operation=operation,
            requested=requested,
            successful=successful,
            failed=failed,
            status=status,
            error_message=error_message,
        )

    def get_logs(
        self,
        operation: Optional[str] = None,
        limit: int = 100,
    ) -> list[AuditLogEntry]:
        """
        Retrieve audit logs, newest first.

        Args:
            operation: Filter by tag operation
            limit: Maximum number of logs to return

        Returns:
            List of audit log entries
        """
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()

            query = (
                "SELECT id, timestamp, correlation_id, operation, requested, "
                "successful, failed, status, error_message FROM tag_mutations WHERE 1=1"
            )
            params = []

            if operation:
                query += " AND operation = ?"
                params.append(operation)

            query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
            params.append(limit)

            cursor.execute(query, params)
            rows = cursor.fetchall()

            logs = []
            for row in rows:
                logs.append(
                    AuditLogEntry(
                        id=row[0],
                        timestamp=datetime.fromisoformat(row[1]),
                        correlation_id=row[2],
                        operation=row[3],
                        requested=row[4],
                        successful=row[5],
                        failed=row[6],
                        status=AuditStatus(row[7]),
                        error_message=row[8],
                    )
                )

            return logs
        finally:
            conn.close()
