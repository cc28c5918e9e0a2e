"""
Data Models Package

This package contains all Pydantic models used in SpendWise.
All data flowing through the system must conform to these schemas.
"""

from spendwise.models.base import Money, Total, WireModel, utcnow
from spendwise.models.expense import (
    CategoryBreakdown,
    CategoryTotal,
    Expense,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseFilter,
    ExpensePage,
    ExpenseUpdate,
    MonthlyTotal,
)
from spendwise.models.user import (
    LoginRequest,
    PublicUser,
    RegisterRequest,
    SessionCookie,
    SessionToken,
    User,
)
from spendwise.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Shared
    "Money",
    "Total",
    "WireModel",
    "utcnow",
    # Expense models
    "CategoryBreakdown",
    "CategoryTotal",
    "Expense",
    "ExpenseCategory",
    "ExpenseCreate",
    "ExpenseFilter",
    "ExpensePage",
    "ExpenseUpdate",
    "MonthlyTotal",
    # User models
    "LoginRequest",
    "PublicUser",
    "RegisterRequest",
    "SessionCookie",
    "SessionToken",
    "User",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
