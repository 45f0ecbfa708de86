"""
Tests for storage backends.

The Google Sheets backend runs against FakeSheetsClient (see conftest).
"""

import json
import pytest
from decimal import Decimal

from conftest import BrokenSheetsClient, contribution, expense, income, withdrawal

from infinance.models.ledger import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryType,
    LedgerSnapshot,
    Theme,
)
from infinance.services.storage import (
    DuplicateError,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LocalSnapshotStorage,
    NotFoundError,
    StorageError,
)
from infinance.services.storage.google_sheets import TRANSACTION_COLUMNS


class TestInMemoryStorage:
    """Tests for InMemoryLedgerStorage."""

    @pytest.mark.asyncio
    async def test_starts_empty_with_default_categories(self):
        snapshot = await InMemoryLedgerStorage().load_all()
        assert snapshot.transactions == []
        assert list(snapshot.categories) == list(DEFAULT_CATEGORIES)

    @pytest.mark.asyncio
    async def test_transaction_crud(self):
        storage = InMemoryLedgerStorage()
        await storage.save_transaction(income(100, txn_id="t1"))
        await storage.update_transaction(income(120, txn_id="t1"))

        snapshot = await storage.load_all()
        assert [t.value for t in snapshot.transactions] == [Decimal("120")]

        assert await storage.delete_transaction("t1") is True
        assert await storage.delete_transaction("t1") is False

    @pytest.mark.asyncio
    async def test_duplicate_id_is_rejected(self):
        storage = InMemoryLedgerStorage()
        await storage.save_transaction(income(100, txn_id="t1"))
        with pytest.raises(DuplicateError):
            await storage.save_transaction(income(5, txn_id="t1"))

    @pytest.mark.asyncio
    async def test_update_missing_is_not_found(self):
        with pytest.raises(NotFoundError):
            await InMemoryLedgerStorage().update_transaction(income(5, txn_id="nope"))

    @pytest.mark.asyncio
    async def test_category_and_investment_crud(self, car_goal):
        storage = InMemoryLedgerStorage()
        pets = Category(id="cat_x", name="Pets", type=CategoryType.EXPENSE)
        await storage.save_category(pets)
        await storage.save_investment(car_goal)
        await storage.delete_category("cat_3")

        snapshot = await storage.load_all()
        ids = {c.id for c in snapshot.categories}
        assert "cat_x" in ids and "cat_3" not in ids
        assert snapshot.investments == [car_goal]


class TestLocalSnapshotStorage:
    """Tests for LocalSnapshotStorage."""

    @pytest.mark.asyncio
    async def test_missing_file_is_empty_ledger(self, tmp_path):
        storage = LocalSnapshotStorage(tmp_path / "ledger.json", default_theme=Theme.DARK)
        snapshot = await storage.load_all()
        assert snapshot.transactions == []
        assert snapshot.theme == Theme.DARK
        assert not storage.path.exists()

    @pytest.mark.asyncio
    async def test_writes_survive_reopen(self, tmp_path, car_goal):
        path = tmp_path / "nested" / "ledger.json"
        storage = LocalSnapshotStorage(path)
        await storage.save_investment(car_goal)
        await storage.save_transaction(income(1000, txn_id="t1"))
        await storage.save_transaction(contribution(300, car_goal.id, txn_id="t2"))

        reopened = await LocalSnapshotStorage(path).load_all()
        assert [t.id for t in reopened.transactions] == ["t1", "t2"]
        assert reopened.investments[0].id == car_goal.id

        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["transactions"][1]["investmentId"] == car_goal.id

    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, tmp_path):
        storage = LocalSnapshotStorage(tmp_path / "ledger.json")
        await storage.save_transaction(income(10, txn_id="t1"))
        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]

    @pytest.mark.asyncio
    async def test_corrupt_file_loads_defaults_and_reports(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{broken", encoding="utf-8")
        storage = LocalSnapshotStorage(path)

        snapshot = await storage.load_all()
        assert snapshot.transactions == []
        assert storage.last_report.has_errors is True

    @pytest.mark.asyncio
    async def test_non_utf8_file_loads_defaults_and_reports(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_bytes(b'{"transactions": [], "theme": "\xff\xfe"}')
        storage = LocalSnapshotStorage(path, default_theme=Theme.DARK)

        snapshot = await storage.load_all()
        assert snapshot.transactions == []
        assert snapshot.theme == Theme.DARK
        assert storage.last_report.has_errors is True
        assert storage.last_report.issues[0].issue_type == "invalid_format"

    @pytest.mark.asyncio
    async def test_partially_bad_file_keeps_good_records(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({
            "transactions": [
                {"id": "t1", "date": "2024-01-01", "value": 50, "type": "income", "categoryId": "cat_1"},
                {"id": "t2", "date": "not a date", "value": 50, "type": "income", "categoryId": "cat_1"},
            ],
            "categories": {"oops": True},
            "theme": "dark",
        }), encoding="utf-8")
        storage = LocalSnapshotStorage(path)

        snapshot = await storage.load_all()
        assert [t.id for t in snapshot.transactions] == ["t1"]
        assert list(snapshot.categories) == list(DEFAULT_CATEGORIES)
        assert snapshot.theme == Theme.DARK
        assert storage.last_report.dropped_records == 1

    @pytest.mark.asyncio
    async def test_unwritable_path_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        storage = LocalSnapshotStorage(blocker / "ledger.json")
        with pytest.raises(StorageError):
            await storage.save_snapshot(LedgerSnapshot())


class TestGoogleSheetsStorage:
    """Tests for GoogleSheetsLedgerStorage against a fake client."""

    def test_requires_user_id(self, sheets_client):
        with pytest.raises(ValueError):
            GoogleSheetsLedgerStorage("", client=sheets_client)

    @pytest.mark.asyncio
    async def test_new_user_gets_default_categories(self, sheets_client):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client)
        snapshot = await storage.load_all()
        assert snapshot.transactions == []
        assert [c.id for c in snapshot.categories] == [c.id for c in DEFAULT_CATEGORIES]

    @pytest.mark.asyncio
    async def test_worksheets_are_scoped_by_user(self, sheets_client):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client)
        await storage.save_transaction(income(10, txn_id="t1"))
        assert "user1_transactions" in sheets_client.sheets
        assert sheets_client.sheets["user1_transactions"].rows[0] == TRANSACTION_COLUMNS

        other = await GoogleSheetsLedgerStorage("user2", client=sheets_client).load_all()
        assert other.transactions == []

    @pytest.mark.asyncio
    async def test_rows_round_trip(self, sheets_client, car_goal):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client)
        await storage.save_investment(car_goal)
        await storage.save_transaction(income(1000, txn_id="t1"))
        await storage.save_transaction(expense(80, txn_id="t2"))
        await storage.save_transaction(withdrawal(30, car_goal.id, txn_id="t3"))

        snapshot = await storage.load_all()
        by_id = {t.id: t for t in snapshot.transactions}
        assert by_id["t1"].value == Decimal("1000")
        assert by_id["t2"].category_id == "cat_3"
        assert by_id["t3"].is_withdrawal is True
        assert by_id["t3"].category_id is None
        assert snapshot.investments[0].goal_value == Decimal("1000")
        assert storage.last_report.dropped_records == 0

    @pytest.mark.asyncio
    async def test_transactions_load_newest_first(self, sheets_client):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client)
        await storage.save_transaction(income(10, txn_id="old"))
        await storage.save_transaction(contribution(5, "inv_1", txn_id="new"))
        snapshot = await storage.load_all()
        assert [t.id for t in snapshot.transactions] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, sheets_client):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client)
        await storage.save_transaction(income(10, txn_id="t1"))
        await storage.update_transaction(income(25, txn_id="t1"))
        snapshot = await storage.load_all()
        assert snapshot.transactions[0].value == Decimal("25")

        assert await storage.delete_transaction("t1") is True
        assert await storage.delete_transaction("t1") is False
        assert (await storage.load_all()).transactions == []

    @pytest.mark.asyncio
    async def test_duplicate_and_missing(self, sheets_client):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client)
        await storage.save_transaction(income(10, txn_id="t1"))
        with pytest.raises(DuplicateError):
            await storage.save_transaction(income(10, txn_id="t1"))
        with pytest.raises(NotFoundError):
            await storage.update_transaction(income(10, txn_id="t2"))

    @pytest.mark.asyncio
    async def test_hand_edited_row_is_skipped(self, sheets_client):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client)
        await storage.save_transaction(income(10, txn_id="t1"))
        sheets_client.sheets["user1_transactions"].append_row(
            ["t2", "yesterday", "", "abc", "income", "cat_1", "", "", ""]
        )
        snapshot = await storage.load_all()
        assert [t.id for t in snapshot.transactions] == ["t1"]
        assert storage.last_report.dropped_records == 1

    @pytest.mark.asyncio
    async def test_save_snapshot_replaces_everything(self, sheets_client, car_goal):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client)
        await storage.save_transaction(income(10, txn_id="stale"))

        await storage.save_snapshot(LedgerSnapshot(
            transactions=[income(99, txn_id="fresh")],
            investments=[car_goal],
        ))
        snapshot = await storage.load_all()
        assert [t.id for t in snapshot.transactions] == ["fresh"]
        assert [i.id for i in snapshot.investments] == [car_goal.id]

    @pytest.mark.asyncio
    async def test_backups(self, sheets_client):
        storage = GoogleSheetsLedgerStorage("user1", client=sheets_client, backups_suffix="bk")
        first = LedgerSnapshot(transactions=[income(10, txn_id="t1")])
        await storage.save_backup("backup_a", first)
        await storage.save_backup("backup_b", LedgerSnapshot(theme=Theme.DARK))

        assert "user1_bk" in sheets_client.sheets
        assert set(await storage.list_backups()) == {"backup_a", "backup_b"}

        restored = await storage.get_backup("backup_a")
        assert [t.id for t in restored.transactions] == ["t1"]
        assert await storage.get_backup("missing") is None

    @pytest.mark.asyncio
    async def test_unreachable_store_raises_storage_error(self):
        storage = GoogleSheetsLedgerStorage("user1", client=BrokenSheetsClient())
        with pytest.raises(StorageError):
            await storage.load_all()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
