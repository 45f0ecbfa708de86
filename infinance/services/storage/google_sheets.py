"""
Google Sheets Storage Implementation

DESIGN DECISION: The cloud store is a Google Sheets spreadsheet, treated as
an opaque document collection per entity type and per user:

    <user_id>_transactions, <user_id>_categories,
    <user_id>_investments,  <user_id>_backups

Authentication of the user happens elsewhere; this backend only receives
the identity it scopes every worksheet by.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: a balance check followed by a write can race with a
  second session of the same user. This is accepted, not locked.
- Limited query capabilities (we filter in Python)
"""

import json
from datetime import datetime
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from infinance.config import get_settings
from infinance.models.ledger import (
    DEFAULT_CATEGORIES,
    Category,
    Investment,
    LedgerSnapshot,
    Transaction,
)
from infinance.models.validation import ImportReport
from infinance.services.storage.interface import (
    BackupStorageInterface,
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from infinance.validation.snapshot import SnapshotImporter, export_snapshot


# Column mappings, one worksheet per collection
TRANSACTION_COLUMNS = [
    "id",
    "date",
    "description",
    "value",
    "type",
    "categoryId",
    "investmentId",
    "isWithdrawal",
    "updatedAt",
]

CATEGORY_COLUMNS = [
    "id",
    "name",
    "color",
    "type",
    "updatedAt",
]

INVESTMENT_COLUMNS = [
    "id",
    "name",
    "description",
    "color",
    "goalValue",
    "updatedAt",
]

BACKUP_COLUMNS = [
    "name",
    "createdAt",
    "snapshotJson",
]

COLLECTIONS = {
    "transactions": TRANSACTION_COLUMNS,
    "categories": CATEGORY_COLUMNS,
    "investments": INVESTMENT_COLUMNS,
}

# Writes are retried; a duplicate or missing id will not change on retry.
remote_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
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
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
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


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _record_to_row(record, columns: list[str]) -> list[str]:
    """Flatten a model into cells following `columns`."""
    document = record.to_document()
    document["updatedAt"] = datetime.utcnow().isoformat()
    return [_cell(document.get(column)) for column in columns]


def _row_to_document(row: list[str], columns: list[str]) -> dict:
    """Rebuild a document from cells; empty cells are unset fields."""
    return {
        column: value
        for column, value in zip(columns, row)
        if value != ""
    }


class GoogleSheetsLedgerStorage(LedgerStorageInterface, BackupStorageInterface):
    """
    Google Sheets implementation of ledger storage for one user.

    Records are stored as rows, one record per row, with the camelCase
    snapshot keys as the header row. Rows are read back through the
    snapshot importer, so a hand-edited row that no longer validates is
    skipped and reported in `last_report` instead of failing the load.
    """

    source_name = "cloud"

    def __init__(
        self,
        user_id: str,
        client: Optional[GoogleSheetsClient] = None,
        importer: Optional[SnapshotImporter] = None,
        backups_suffix: str = "backups",
    ):
        if not user_id:
            raise ValueError("Cloud storage requires an authenticated user id")
        self._user_id = user_id
        self._client = client or GoogleSheetsClient()
        self._importer = importer or SnapshotImporter()
        self._backups_suffix = backups_suffix
        self.last_report: Optional[ImportReport] = None

    @property
    def user_id(self) -> str:
        return self._user_id

    def _sheet(self, collection: str, columns: list[str]):
        return self._client.get_worksheet(f"{self._user_id}_{collection}", columns)

    def _read_documents(self, collection: str) -> list[dict]:
        columns = COLLECTIONS[collection]
        sheet = self._sheet(collection, columns)
        rows = sheet.get_all_values()[1:]  # Skip header
        return [
            _row_to_document(row, columns)
            for row in rows
            if row and row[0]  # Skip empty rows
        ]

    def _find_row(self, sheet, record_id: str) -> Optional[int]:
        """1-based row index of a record, None when absent."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # Row 1 is header
            if row and row[0] == record_id:
                return idx
        return None

    def _insert(self, collection: str, record) -> bool:
        columns = COLLECTIONS[collection]
        try:
            sheet = self._sheet(collection, columns)
            if self._find_row(sheet, record.id) is not None:
                raise DuplicateError(f"{collection}: id already exists: {record.id}")
            sheet.append_row(_record_to_row(record, columns), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {collection} record: {e}")

    def _replace(self, collection: str, record) -> bool:
        columns = COLLECTIONS[collection]
        try:
            sheet = self._sheet(collection, columns)
            idx = self._find_row(sheet, record.id)
            if idx is None:
                raise NotFoundError(f"{collection}: not found: {record.id}")
            # Update each cell in the row
            for col_idx, value in enumerate(_record_to_row(record, columns), start=1):
                sheet.update_cell(idx, col_idx, value)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection} record: {e}")

    def _remove(self, collection: str, record_id: str) -> bool:
        try:
            sheet = self._sheet(collection, COLLECTIONS[collection])
            idx = self._find_row(sheet, record_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete {collection} record: {e}")

    async def load_all(self) -> LedgerSnapshot:
        """
        Load every collection of this user.

        Transactions come back newest first. A user without categories
        gets the default set.
        """
        try:
            raw = {
                collection: self._read_documents(collection)
                for collection in COLLECTIONS
            }
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load ledger: {e}")

        if not raw["categories"]:
            raw["categories"] = [category.to_document() for category in DEFAULT_CATEGORIES]

        self.last_report = self._importer.load(raw)
        snapshot = self.last_report.snapshot
        transactions = sorted(snapshot.transactions, key=lambda t: t.date, reverse=True)
        return snapshot.model_copy(update={"transactions": transactions})

    @remote_retry
    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        """Replace every collection of this user with the snapshot's records."""
        try:
            for collection, columns in COLLECTIONS.items():
                sheet = self._sheet(collection, columns)
                sheet.clear()
                sheet.append_row(columns)
                rows = [_record_to_row(record, columns) for record in getattr(snapshot, collection)]
                if rows:
                    sheet.append_rows(rows, value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save snapshot: {e}")

    @remote_retry
    async def save_transaction(self, transaction: Transaction) -> bool:
        return self._insert("transactions", transaction)

    async def update_transaction(self, transaction: Transaction) -> bool:
        return self._replace("transactions", transaction)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._remove("transactions", transaction_id)

    @remote_retry
    async def save_category(self, category: Category) -> bool:
        return self._insert("categories", category)

    async def update_category(self, category: Category) -> bool:
        return self._replace("categories", category)

    async def delete_category(self, category_id: str) -> bool:
        return self._remove("categories", category_id)

    @remote_retry
    async def save_investment(self, investment: Investment) -> bool:
        return self._insert("investments", investment)

    async def update_investment(self, investment: Investment) -> bool:
        return self._replace("investments", investment)

    async def delete_investment(self, investment_id: str) -> bool:
        return self._remove("investments", investment_id)

    # -- backups --------------------------------------------------------------

    def _backups_sheet(self):
        return self._client.get_worksheet(
            f"{self._user_id}_{self._backups_suffix}", BACKUP_COLUMNS
        )

    @remote_retry
    async def save_backup(self, name: str, snapshot: LedgerSnapshot) -> bool:
        """Store a full copy of the snapshot under `name`."""
        try:
            sheet = self._backups_sheet()
            sheet.append_row(
                [
                    name,
                    datetime.utcnow().isoformat(),
                    json.dumps(export_snapshot(snapshot), ensure_ascii=False),
                ],
                value_input_option="RAW",
            )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save backup: {e}")

    async def get_backup(self, name: str) -> Optional[LedgerSnapshot]:
        try:
            rows = self._backups_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read backups: {e}")

        for row in rows:
            if row and row[0] == name:
                payload = row[2] if len(row) > 2 else ""
                return self._importer.loads(payload).snapshot
        return None

    async def list_backups(self) -> list[str]:
        try:
            rows = self._backups_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list backups: {e}")

        named = [(row[1] if len(row) > 1 else "", row[0]) for row in rows if row and row[0]]
        named.sort(reverse=True)
        return [name for _, name in named]
