"""Budget alerting package."""

from finance_tracker.alerts.engine import (
    BudgetAlertEngine,
    ThresholdMemory,
    build_alert_message,
    threshold_level,
)

__all__ = [
    "BudgetAlertEngine",
    "ThresholdMemory",
    "build_alert_message",
    "threshold_level",
]
