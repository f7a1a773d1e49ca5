"""
Wallet and audit stores backed by one Google spreadsheet

DESIGN DECISION: Google Sheets is used as the hosted store because:
1. Users can view and export their own data directly in Sheets
2. No database setup required
3. Version history comes with the spreadsheet

TRADEOFFS:
- Not suitable for high-volume data (fine for one household's wallet)
- No transactions and no native upsert: `ensure_profile` is a
  find-then-append, so two devices signing in at the same instant
  could both insert. Readers take the first matching row.
- Whole-sheet reads; date and owner filters run in Python

The implementation follows the abstract interface, so the store can be
swapped without changing business logic.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from wallet.config import get_settings
from wallet.models.audit import AuditEvent, AuditEventType, AuditSeverity
from wallet.models.finance import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryCreate,
    CategoryIcon,
    ProfileUpdate,
    Transaction,
    TransactionCreate,
    TransactionType,
    UserProfile,
)
from wallet.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    StorageError,
    WalletStorageInterface,
)


PROFILE_COLUMNS = [
    "id",
    "email",
    "full_name",
    "avatar_url",
    "billing_start_day",
]

CATEGORY_COLUMNS = [
    "id",
    "name",
    "type",
    "icon",
    "color",
    "owner",
]

TRANSACTION_COLUMNS = [
    "id",
    "owner",
    "category_id",
    "amount",
    "note",
    "date",
    "created_at",
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


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Authenticated handle on the wallet spreadsheet.

    Missing worksheets are created, with their header row, on first use.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authorize with the service account key file."""
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
        """Open the spreadsheet named by GOOGLE_SHEETS_SPREADSHEET_ID."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
        seed: Optional[list[list]] = None,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
            if seed:
                sheet.append_rows(seed, value_input_option="RAW")
        return sheet

    def get_profiles_sheet(self) -> gspread.Worksheet:
        """Get or create the Profiles worksheet."""
        return self._get_or_create(self._settings.profiles_sheet_name, PROFILE_COLUMNS)

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the Categories worksheet, seeded with system defaults."""
        return self._get_or_create(
            self._settings.categories_sheet_name,
            CATEGORY_COLUMNS,
            seed=[_category_to_row(c) for c in DEFAULT_CATEGORIES],
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=5000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Audit worksheet, created on first use."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,
        )


# =============================================================================
# ROW CONVERSION
# =============================================================================

def _profile_to_row(profile: UserProfile) -> list:
    return [
        profile.id,
        profile.email,
        profile.full_name,
        profile.avatar_url or "",
        str(profile.billing_start_day),
    ]


def _row_to_profile(row: list) -> UserProfile:
    return UserProfile(
        id=_safe_get(row, 0),
        email=_safe_get(row, 1),
        full_name=_safe_get(row, 2),
        avatar_url=_safe_get(row, 3) or None,
        billing_start_day=int(_safe_get(row, 4, "1")),
    )


def _category_to_row(category: Category) -> list:
    return [
        category.id,
        category.name,
        category.type.value,
        category.icon.value,
        category.color or "",
        category.owner or "",
    ]


def _row_to_category(row: list) -> Category:
    return Category(
        id=_safe_get(row, 0),
        name=_safe_get(row, 1),
        type=TransactionType(_safe_get(row, 2)),
        icon=CategoryIcon(_safe_get(row, 3, CategoryIcon.TAG.value)),
        color=_safe_get(row, 4) or None,
        owner=_safe_get(row, 5) or None,
    )


def _transaction_to_row(tx: Transaction) -> list:
    return [
        tx.id,
        tx.owner,
        tx.category_id,
        str(tx.amount),
        tx.note,
        tx.date.isoformat(),
        tx.created_at.isoformat(),
    ]


def _row_to_transaction(row: list) -> Transaction:
    return Transaction(
        id=_safe_get(row, 0),
        owner=_safe_get(row, 1),
        category_id=_safe_get(row, 2),
        amount=Decimal(_safe_get(row, 3, "0")),
        note=_safe_get(row, 4),
        date=datetime.fromisoformat(_safe_get(row, 5)),
        created_at=datetime.fromisoformat(_safe_get(row, 6)),
    )


class GoogleSheetsWalletStorage(WalletStorageInterface):
    """
    Google Sheets implementation of the wallet store.

    One worksheet per record type, one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, record_id: str) -> Optional[tuple[int, list]]:
        """Locate a record by id. Returns (1-based row number, row)."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == record_id:
                return idx, row
        return None

    # -- profiles --------------------------------------------------------

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            found = self._find_row(self._client.get_profiles_sheet(), user_id)
            return _row_to_profile(found[1]) if found else None
        except Exception as e:
            raise StorageError(f"Failed to get profile: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def ensure_profile(self, profile: UserProfile) -> tuple[UserProfile, bool]:
        try:
            sheet = self._client.get_profiles_sheet()
            found = self._find_row(sheet, profile.id)
            if found:
                return _row_to_profile(found[1]), False
            sheet.append_row(_profile_to_row(profile), value_input_option="RAW")
            return profile, True
        except Exception as e:
            raise StorageError(f"Failed to ensure profile: {e}")

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> UserProfile:
        try:
            sheet = self._client.get_profiles_sheet()
            found = self._find_row(sheet, user_id)
            if not found:
                raise NotFoundError(f"Profile not found: {user_id}")

            idx, row = found
            updated = update.apply_to(_row_to_profile(row))
            for col_idx, value in enumerate(_profile_to_row(updated), start=1):
                sheet.update_cell(idx, col_idx, value)
            return updated
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update profile: {e}")

    # -- transactions ----------------------------------------------------

    async def list_transactions(
        self,
        owner: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header

            transactions = []
            for row in all_rows:
                if not row or not row[0]:
                    continue
                if _safe_get(row, 1) != owner:
                    continue

                try:
                    tx = _row_to_transaction(row)
                except Exception:
                    continue  # Skip malformed rows

                if date_from and tx.date < date_from:
                    continue
                if date_to and tx.date > date_to:
                    continue
                transactions.append(tx)

            # Newest first
            transactions.sort(key=lambda t: t.date, reverse=True)
            return transactions
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create_transaction(self, owner: str, data: TransactionCreate) -> Transaction:
        tx = Transaction(
            id=str(uuid4()),
            owner=owner,
            created_at=datetime.now(),
            **data.model_dump(),
        )
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(_transaction_to_row(tx), value_input_option="RAW")
            return tx
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def delete_transaction(self, owner: str, transaction_id: str) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            found = self._find_row(sheet, transaction_id)
            if not found or _safe_get(found[1], 1) != owner:
                return False
            sheet.delete_rows(found[0])
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    # -- categories ------------------------------------------------------

    async def list_categories(self, owner: Optional[str]) -> list[Category]:
        try:
            sheet = self._client.get_categories_sheet()
            all_rows = sheet.get_all_values()[1:]

            categories = []
            for row in all_rows:
                if not row or not row[0]:
                    continue
                row_owner = _safe_get(row, 5)
                if row_owner and row_owner != owner:
                    continue
                try:
                    categories.append(_row_to_category(row))
                except Exception:
                    continue
            return categories
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create_category(self, owner: str, data: CategoryCreate) -> Category:
        category = Category(id=str(uuid4()), owner=owner, **data.model_dump())
        try:
            sheet = self._client.get_categories_sheet()
            sheet.append_row(_category_to_row(category), value_input_option="RAW")
            return category
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")

    async def delete_category(self, owner: str, category_id: str) -> bool:
        try:
            sheet = self._client.get_categories_sheet()
            found = self._find_row(sheet, category_id)
            # Rows without an owner are system defaults
            if not found or not _safe_get(found[1], 5) or _safe_get(found[1], 5) != owner:
                return False
            sheet.delete_rows(found[0])
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete category: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit trail rows in the AuditLog worksheet.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Rebuild an event from its AUDIT_COLUMNS row."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            user_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=_safe_get(row, 6) or None,
            correlation_id=UUID(_safe_get(row, 7)) if _safe_get(row, 7) else None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and _safe_get(row, 7) == str(correlation_id):
                    try:
                        events.append(self._row_to_event(row))
                    except Exception:
                        continue

            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except Exception:
                        continue

            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
