"""
Audit Logger

Every budget mutation, raised alert and saved transaction is logged.
The audit logger:
- Is async so callers can await it next to their storage calls
- Never raises: a failing audit backend is logged and ignored
- Supports correlation IDs to trace all alerts of one check
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.config import get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventBuilder
from finance_tracker.services.storage import AuditStorageInterface


def configure_logging(level: Optional[str] = None) -> None:
    """Configure stdlib logging and structlog for JSON output."""
    level = level or get_settings().app.log_level
    logging.basicConfig(format="%(message)s", level=getattr(logging, level))

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
    2. Audit storage, when one is configured
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
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_budget_created(
        self,
        budget_id: UUID,
        user_id: str,
        category_id: str,
        amount: str,
        period: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.budget_created(
                budget_id=budget_id,
                user_id=user_id,
                category_id=category_id,
                amount=amount,
                period=period,
            )
        )

    async def log_budget_updated(
        self,
        budget_id: UUID,
        user_id: str,
        amount: str,
        period: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.budget_updated(
                budget_id=budget_id,
                user_id=user_id,
                amount=amount,
                period=period,
            )
        )

    async def log_budget_deleted(
        self,
        budget_id: UUID,
        user_id: str,
        alerts_deleted: bool,
    ) -> None:
        await self.log(
            AuditEventBuilder.budget_deleted(
                budget_id=budget_id,
                user_id=user_id,
                alerts_deleted=alerts_deleted,
            )
        )

    async def log_alert_raised(
        self,
        alert_id: UUID,
        budget_id: UUID,
        user_id: str,
        threshold: int,
        percentage: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.alert_raised(
                alert_id=alert_id,
                budget_id=budget_id,
                user_id=user_id,
                threshold=threshold,
                percentage=percentage,
                correlation_id=correlation_id,
            )
        )

    async def log_alert_seen(self, alert_id: UUID, user_id: str) -> None:
        await self.log(AuditEventBuilder.alert_seen(alert_id=alert_id, user_id=user_id))

    async def log_alerts_cleared(self, user_id: str, count: int) -> None:
        await self.log(AuditEventBuilder.alerts_cleared(user_id=user_id, count=count))

    async def log_transaction_saved(
        self,
        transaction_id: UUID,
        user_id: str,
        category_id: str,
        amount: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.transaction_saved(
                transaction_id=transaction_id,
                user_id=user_id,
                category_id=category_id,
                amount=amount,
            )
        )

    async def log_transaction_deleted(self, transaction_id: UUID, user_id: str) -> None:
        await self.log(
            AuditEventBuilder.transaction_deleted(
                transaction_id=transaction_id,
                user_id=user_id,
            )
        )

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed storage call."""
        await self.log(
            AuditEventBuilder.storage_error(
                operation=operation,
                error_message=error_message,
                user_id=user_id,
                entity_id=entity_id,
                correlation_id=correlation_id,
            )
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new check or user action and pass it
    through all subsequent operations.
    """
    return uuid4()
