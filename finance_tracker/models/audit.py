"""
Audit Models for Finance Tracker

Every budget mutation, raised alert and persisted transaction produces an
audit event. Audit logs are append-only.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"

    # Alerts
    ALERT_RAISED = "alert_raised"
    ALERT_SEEN = "alert_seen"
    ALERTS_CLEARED = "alerts_cleared"

    # Transactions
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_DELETED = "transaction_deleted"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context
    user_id: Optional[str] = Field(
        default=None,
        description="Authenticated user the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'budget', 'alert', 'transaction')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one alert check)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

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
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
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
        event = AuditEventBuilder.budget_created(budget_id, user_id, ...)
        event = AuditEventBuilder.alert_raised(alert_id, budget_id, ...)
    """

    @staticmethod
    def budget_created(
        budget_id: UUID,
        user_id: str,
        category_id: str,
        amount: str,
        period: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget created: {period} {amount} for category {category_id}",
            details={
                "category_id": category_id,
                "amount": amount,
                "period": period,
            },
            is_user_action=True,
        )

    @staticmethod
    def budget_updated(
        budget_id: UUID,
        user_id: str,
        amount: str,
        period: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_UPDATED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            description=f"Budget updated: {period} {amount}",
            details={
                "amount": amount,
                "period": period,
            },
            is_user_action=True,
        )

    @staticmethod
    def budget_deleted(
        budget_id: UUID,
        user_id: str,
        alerts_deleted: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DELETED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            description="Budget deleted",
            details={
                "alerts_deleted": alerts_deleted,
            },
            is_user_action=True,
        )

    @staticmethod
    def alert_raised(
        alert_id: UUID,
        budget_id: UUID,
        user_id: str,
        threshold: int,
        percentage: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_RAISED,
            severity=(
                AuditSeverity.WARNING if threshold >= 100 else AuditSeverity.INFO
            ),
            user_id=user_id,
            entity_type="alert",
            entity_id=alert_id,
            correlation_id=correlation_id,
            description=f"Budget alert raised at {threshold}% threshold",
            details={
                "budget_id": str(budget_id),
                "threshold": threshold,
                "percentage": round(percentage, 2),
            },
        )

    @staticmethod
    def alert_seen(alert_id: UUID, user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_SEEN,
            user_id=user_id,
            entity_type="alert",
            entity_id=alert_id,
            description="Alert marked as seen",
            is_user_action=True,
        )

    @staticmethod
    def alerts_cleared(user_id: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERTS_CLEARED,
            user_id=user_id,
            entity_type="alert",
            description=f"{count} unseen alerts cleared",
            details={"count": count},
            is_user_action=True,
        )

    @staticmethod
    def transaction_saved(
        transaction_id: UUID,
        user_id: str,
        category_id: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction saved: {amount}",
            details={
                "category_id": category_id,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(transaction_id: UUID, user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Storage operation failed: {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

