"""
Audit Models for SpendWise

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of registrations, logins and expense changes
2. Debugging information when things go wrong
3. A place to record why a session was rejected without telling the client

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from spendwise.models.base import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Identity
    USER_REGISTERED = "user_registered"
    REGISTRATION_REJECTED = "registration_rejected"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"

    # Sessions
    SESSION_REJECTED = "session_rejected"
    SESSION_REVOKED = "session_revoked"

    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_NOT_FOUND = "expense_not_found"

    # Reads
    QUERY_EXECUTED = "query_executed"

    # System
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'expense', 'session')"
    )
    entity_id: Optional[int] = None
    user_id: Optional[int] = Field(
        default=None,
        description="Acting user, when known"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.user_registered(user_id, username)
        event = AuditEventBuilder.expense_created(expense_id, user_id, ...)
    """

    @staticmethod
    def user_registered(
        user_id: int,
        username: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"User registered: {username}",
            is_user_action=True,
        )

    @staticmethod
    def registration_rejected(
        username: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            correlation_id=correlation_id,
            description="Registration rejected: identity already taken",
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded(
        user_id: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Login succeeded",
            is_user_action=True,
        )

    @staticmethod
    def login_failed(
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        # Deliberately no email: failed logins must not build an address book
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            correlation_id=correlation_id,
            description="Login failed: invalid credentials",
            is_user_action=True,
        )

    @staticmethod
    def session_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            correlation_id=correlation_id,
            description=f"Session rejected: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def session_revoked(
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_REVOKED,
            entity_type="session",
            correlation_id=correlation_id,
            description="Session cookie cleared on logout",
            is_user_action=True,
        )

    @staticmethod
    def expense_created(
        expense_id: int,
        user_id: int,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Expense created: {category} - {amount}",
            details={
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        expense_id: int,
        user_id: int,
        fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Expense updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: int,
        user_id: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def expense_not_found(
        expense_id: int,
        user_id: int,
        operation: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Expense not found for {operation}",
            details={"operation": operation},
        )

    @staticmethod
    def query_executed(
        query_type: str,
        user_id: int,
        result_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            entity_type="query",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Query executed: {query_type} returned {result_count} results",
            details={
                "query_type": query_type,
                "result_count": result_count,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        path: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="request",
            correlation_id=correlation_id,
            description=f"Unhandled error: {error_type}",
            details={"path": path} if path else {},
            error_message=error_message[:1000],
        )
