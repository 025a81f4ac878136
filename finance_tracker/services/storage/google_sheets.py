"""
Google Sheets Storage Implementation

Each table (transactions, budgets, budget alerts, audit log) is one
worksheet with a header row and one record per row. Every row carries
the owning user_id; all reads and writes filter on it.

TRADEOFFS:
- Not suitable for high-volume data (fine for personal use)
- No transactions: deletes that must cascade are ordered by the caller
- Filtering happens in Python after reading the whole sheet

Connection setup and reads are retried with exponential backoff.
Alert inserts are not retried: a failed insert is dropped
for the current check and may be regenerated by the next one.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.models.finance import (
    Budget,
    BudgetAlert,
    BudgetPeriod,
    Category,
    Transaction,
    TransactionType,
)
from finance_tracker.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    IntegrityError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)


TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "amount",
    "description",
    "category_id",
    "category_name",
    "category_icon",
    "category_color",
    "date",
    "type",
    "tags_json",
    "currency",
    "original_amount",
]

BUDGET_COLUMNS = [
    "id",
    "user_id",
    "category_id",
    "amount",
    "period",
    "created_at",
    "updated_at",
]

ALERT_COLUMNS = [
    "id",
    "user_id",
    "budget_id",
    "message",
    "date",
    "seen",
    "category_id",
    "category_name",
    "budget_amount",
    "spent_amount",
    "percentage",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _safe_getter(row: list):
    """Index into a row, treating missing trailing cells as empty."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @_read_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.transactions_sheet_name, TRANSACTION_COLUMNS)

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.budgets_sheet_name, BUDGET_COLUMNS)

    def get_alerts_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.alerts_sheet_name, ALERT_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS)


def _delete_row_indices(sheet: gspread.Worksheet, indices: list[int]) -> None:
    # Bottom-up so earlier deletions don't shift later indices
    for idx in sorted(indices, reverse=True):
        sheet.delete_rows(idx)


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """Transactions stored one per row; tags are JSON-serialized."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction, user_id: str) -> list:
        return [
            str(transaction.id),
            user_id,
            str(transaction.amount),
            transaction.description,
            transaction.category.id,
            transaction.category.name,
            transaction.category.icon,
            transaction.category.color_tag,
            transaction.date.isoformat(),
            transaction.type.value,
            json.dumps(transaction.tags),
            transaction.currency or "",
            str(transaction.original_amount) if transaction.original_amount is not None else "",
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        safe_get = _safe_getter(row)
        return Transaction(
            id=UUID(safe_get(0)),
            amount=Decimal(safe_get(2)),
            description=safe_get(3),
            category=Category(
                id=safe_get(4),
                name=safe_get(5),
                icon=safe_get(6),
                color_tag=safe_get(7),
            ),
            date=datetime.fromisoformat(safe_get(8)),
            type=TransactionType(safe_get(9)),
            tags=json.loads(safe_get(10, "[]")),
            currency=safe_get(11) or None,
            original_amount=Decimal(safe_get(12)) if safe_get(12) else None,
        )

    async def add_transaction(self, transaction: Transaction, user_id: str) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(
                self._transaction_to_row(transaction, user_id),
                value_input_option="RAW",
            )
            return transaction
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def delete_transaction(self, transaction_id: UUID, user_id: str) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if row and row[0] == str(transaction_id) and row[1] == user_id:
                    sheet.delete_rows(idx)
                    return True

            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    @_read_retry
    async def list_transactions(self, user_id: str) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]

            transactions = []
            for row in all_rows:
                if not row or not row[0] or len(row) < 2 or row[1] != user_id:
                    continue
                try:
                    transactions.append(self._row_to_transaction(row))
                except Exception:
                    continue  # Skip malformed rows

            transactions.sort(key=lambda t: t.date, reverse=True)
            return transactions
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")


class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """
    Budgets stored one per row.

    Deleting a budget that alerts still reference raises IntegrityError,
    matching the hosted backend's foreign key.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _budget_to_row(self, budget: Budget) -> list:
        return [
            str(budget.id),
            budget.user_id or "",
            budget.category_id,
            str(budget.amount),
            budget.period.value,
            budget.created_at.isoformat(),
            budget.updated_at.isoformat(),
        ]

    def _row_to_budget(self, row: list) -> Budget:
        safe_get = _safe_getter(row)
        return Budget(
            id=UUID(safe_get(0)),
            user_id=safe_get(1) or None,
            category_id=safe_get(2),
            amount=Decimal(safe_get(3)),
            period=BudgetPeriod(safe_get(4)),
            created_at=datetime.fromisoformat(safe_get(5)),
            updated_at=datetime.fromisoformat(safe_get(6)),
        )

    @_read_retry
    async def list_budgets(self, user_id: str) -> list[Budget]:
        try:
            sheet = self._client.get_budgets_sheet()
            budgets = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0] or len(row) < 2 or row[1] != user_id:
                    continue
                try:
                    budgets.append(self._row_to_budget(row))
                except Exception:
                    continue
            return budgets
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list budgets: {e}")

    async def get_budget(self, budget_id: UUID, user_id: str) -> Optional[Budget]:
        for budget in await self.list_budgets(user_id):
            if budget.id == budget_id:
                return budget
        return None

    async def insert_budget(self, budget: Budget) -> Budget:
        try:
            sheet = self._client.get_budgets_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(budget.id):
                    raise DuplicateError(f"Budget already exists: {budget.id}")
            sheet.append_row(self._budget_to_row(budget), value_input_option="RAW")
            return budget
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")

    async def update_budget(
        self,
        budget_id: UUID,
        user_id: str,
        amount: Decimal,
        period: BudgetPeriod,
    ) -> Budget:
        try:
            sheet = self._client.get_budgets_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(budget_id) and row[1] == user_id:
                    current = self._row_to_budget(row)
                    updated = current.model_copy(
                        update={
                            "amount": amount,
                            "period": period,
                            "updated_at": max(datetime.now(), current.created_at),
                        }
                    )
                    for col_idx, value in enumerate(self._budget_to_row(updated), start=1):
                        sheet.update_cell(idx, col_idx, value)
                    return updated

            raise NotFoundError(f"Budget not found: {budget_id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update budget: {e}")

    async def delete_budget(self, budget_id: UUID, user_id: str) -> bool:
        try:
            alerts_sheet = self._client.get_alerts_sheet()
            for row in alerts_sheet.get_all_values()[1:]:
                if len(row) > 2 and row[2] == str(budget_id):
                    raise IntegrityError(
                        f"Budget {budget_id} is still referenced by alerts"
                    )

            sheet = self._client.get_budgets_sheet()
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] == str(budget_id) and row[1] == user_id:
                    sheet.delete_rows(idx)
                    return True
            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete budget: {e}")


class GoogleSheetsAlertStorage(AlertStorageInterface):
    """Budget alerts stored one per row."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _alert_to_row(self, alert: BudgetAlert) -> list:
        return [
            str(alert.id),
            alert.user_id or "",
            str(alert.budget_id),
            alert.message,
            alert.date.isoformat(),
            str(alert.seen),
            alert.category_id,
            alert.category_name,
            str(alert.budget_amount),
            str(alert.spent_amount),
            repr(alert.percentage),
        ]

    def _row_to_alert(self, row: list) -> BudgetAlert:
        safe_get = _safe_getter(row)
        return BudgetAlert(
            id=UUID(safe_get(0)),
            user_id=safe_get(1) or None,
            budget_id=UUID(safe_get(2)),
            message=safe_get(3),
            date=datetime.fromisoformat(safe_get(4)),
            seen=safe_get(5).lower() == "true",
            category_id=safe_get(6),
            category_name=safe_get(7),
            budget_amount=Decimal(safe_get(8)),
            spent_amount=Decimal(safe_get(9)),
            percentage=float(safe_get(10, "0")),
        )

    def _owned_rows(self, sheet: gspread.Worksheet, user_id: str):
        """(sheet_row_index, row) pairs belonging to the user."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0] and len(row) > 1 and row[1] == user_id:
                yield idx, row

    @_read_retry
    async def list_alerts(
        self,
        user_id: str,
        budget_id: Optional[UUID] = None,
        unseen_only: bool = False,
    ) -> list[BudgetAlert]:
        try:
            sheet = self._client.get_alerts_sheet()
            alerts = []
            for _, row in self._owned_rows(sheet, user_id):
                try:
                    alert = self._row_to_alert(row)
                except Exception:
                    continue
                if budget_id is not None and alert.budget_id != budget_id:
                    continue
                if unseen_only and alert.seen:
                    continue
                alerts.append(alert)

            alerts.sort(key=lambda a: a.date, reverse=True)
            return alerts
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list alerts: {e}")

    async def insert_alert(self, alert: BudgetAlert) -> BudgetAlert:
        try:
            sheet = self._client.get_alerts_sheet()
            sheet.append_row(self._alert_to_row(alert), value_input_option="RAW")
            return alert
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save alert: {e}")

    async def mark_seen(self, alert_id: UUID, user_id: str) -> bool:
        try:
            sheet = self._client.get_alerts_sheet()
            seen_col = ALERT_COLUMNS.index("seen") + 1
            for idx, row in self._owned_rows(sheet, user_id):
                if row[0] == str(alert_id):
                    sheet.update_cell(idx, seen_col, "True")
                    return True
            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to mark alert as seen: {e}")

    async def mark_all_seen(self, user_id: str) -> int:
        try:
            sheet = self._client.get_alerts_sheet()
            seen_col = ALERT_COLUMNS.index("seen") + 1
            count = 0
            for idx, row in list(self._owned_rows(sheet, user_id)):
                if _safe_getter(row)(5).lower() != "true":
                    sheet.update_cell(idx, seen_col, "True")
                    count += 1
            return count
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to clear alerts: {e}")

    async def delete_alerts_for_budget(self, budget_id: UUID, user_id: str) -> int:
        try:
            sheet = self._client.get_alerts_sheet()
            indices = [
                idx
                for idx, row in self._owned_rows(sheet, user_id)
                if len(row) > 2 and row[2] == str(budget_id)
            ]
            _delete_row_indices(sheet, indices)
            return len(indices)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete alerts: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _event_to_row(self, event: AuditEvent) -> list:
        return [
            str(event.event_id),
            event.timestamp.isoformat(),
            event.event_type.value,
            event.severity.value,
            event.user_id or "",
            event.entity_type or "",
            str(event.entity_id) if event.entity_id else "",
            str(event.correlation_id) if event.correlation_id else "",
            event.description,
            json.dumps(event.details) if event.details else "",
            event.error_message or "",
            str(event.is_user_action),
        ]

    def _row_to_event(self, row: list) -> AuditEvent:
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(self._event_to_row(event), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    @_read_retry
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            events = []
            for row in sheet.get_all_values()[1:]:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except Exception:
                        continue

            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
