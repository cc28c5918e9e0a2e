"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of who did what to which expense
2. Debugging capability
3. The real reason behind a generic "not authenticated" answer

The audit logger:
- Is async so it fits the flows that call it
- Gracefully handles failures (doesn't break a request if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from spendwise.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from spendwise.services.storage import AuditStorageInterface


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog for JSON output.

    Safe to call more than once; the last level wins.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("spendwise.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_user_registered(
        self,
        user_id: int,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_registered(
            user_id=user_id,
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_registration_rejected(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.registration_rejected(
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_login_succeeded(
        self,
        user_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.login_succeeded(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_login_failed(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.login_failed(correlation_id=correlation_id))

    async def log_session_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Record why a session was refused. The client only sees a 401."""
        await self.log(AuditEventBuilder.session_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_session_revoked(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.session_revoked(correlation_id=correlation_id))

    async def log_expense_created(
        self,
        expense_id: int,
        user_id: int,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_created(
            expense_id=expense_id,
            user_id=user_id,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        expense_id: int,
        user_id: int,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            user_id=user_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: int,
        user_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_expense_not_found(
        self,
        expense_id: int,
        user_id: int,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_not_found(
            expense_id=expense_id,
            user_id=user_id,
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_query_executed(
        self,
        query_type: str,
        user_id: int,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.query_executed(
            query_type=query_type,
            user_id=user_id,
            result_count=result_count,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        path: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Record an unexpected failure. The client only sees a generic 500."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            path=path,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one HTTP request).
    Pass it through all subsequent operations.
    """
    return uuid4()
