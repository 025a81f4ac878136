"""Shared fixtures for Finance Tracker tests."""

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config import AlertSettings
from finance_tracker.services.storage import InMemoryAuditStorage, InMemoryStorage

from tests.factories import FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def alert_settings():
    return AlertSettings(duplicate_tolerance=5.0)
