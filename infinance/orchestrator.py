"""
Ledger Store for InFinance

This module owns the only mutable state of the application: the current
transaction, category and investment lists of one ledger. It ties the pure
ledger engine to a storage backend and defines the write flows:

1. Add / edit a transaction (draft → admit → persist → notify)
2. Delete a transaction (no business rule applies to removal)
3. Manage categories and savings goals
4. Import / export / back up snapshots

DESIGN DECISION: The store enforces the boundaries:
- Every transaction write goes through the admission controller
- Nothing changes in memory unless the storage write succeeded
- Every derived number is recomputed from the current lists on read

KNOWN LIMITATION: With a cloud backend the balance check and the write are
two separate steps. Two sessions of the same user writing at the same time
can both pass the check. There is no distributed lock.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from pydantic import ValidationError

from infinance.config import Settings, get_settings
from infinance.events import EventLogger, LedgerEventBuilder, get_logger
from infinance.ledger import (
    AdmissionContractError,
    AdmissionResult,
    GoalCompleted,
    GoalProgress,
    GoalStats,
    LedgerTotals,
    admit,
    aggregate,
    current_balance,
    find_goal,
    orphaned_goal_stats,
    project_goal,
    project_goals,
)
from infinance.models.ledger import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryType,
    IncomeTransaction,
    Investment,
    InvestmentDraft,
    LedgerSnapshot,
    Theme,
    is_withdrawal,
    new_id,
    parse_transaction,
)
from infinance.models.validation import ImportReport
from infinance.queries import ChartQuery, ChartSlice, ReportBuilder, ReportQuery, ReportResult
from infinance.services.storage import (
    BackupStorageInterface,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    LedgerStorageInterface,
    LocalSnapshotStorage,
    SnapshotStorage,
    StorageError,
)
from infinance.validation.snapshot import SnapshotImporter, export_snapshot


GoalListener = Callable[[GoalCompleted], None]

# Fields every transaction variant has; kept when an edit changes the type.
_SHARED_FIELDS = ("id", "date", "description", "value")


class LedgerStoreError(Exception):
    """An operation referred to state the store does not have."""
    pass


def _find(records, record_id: Optional[str]):
    if not record_id:
        return None
    for record in records:
        if record.id == record_id:
            return record
    return None


class LedgerStore:
    """
    The ledger of one identity (or of one local-only session).

    Flow for a transaction write:
    1. Check the draft's category kind (caller contract)
    2. Admit → balance check + goal-completion detection
    3. Persist to storage (PAUSE - nothing changes if this fails)
    4. Update the in-memory list
    5. Log, and notify goal-completion listeners

    Reads never touch storage: they derive from the in-memory lists.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        fallback_storage: Optional[SnapshotStorage] = None,
        event_logger: Optional[EventLogger] = None,
        importer: Optional[SnapshotImporter] = None,
    ):
        self._storage = storage
        self._fallback = fallback_storage
        self._events = event_logger or EventLogger()
        self._importer = importer or SnapshotImporter()

        self._transactions: list = []
        self._categories: list[Category] = list(DEFAULT_CATEGORIES)
        self._investments: list[Investment] = []
        self._theme = Theme.LIGHT

        self._goal_listeners: list[GoalListener] = []
        self.loaded_from: Optional[str] = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def storage(self) -> LedgerStorageInterface:
        return self._storage

    @property
    def transactions(self) -> list:
        return list(self._transactions)

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    @property
    def investments(self) -> list[Investment]:
        return list(self._investments)

    @property
    def theme(self) -> Theme:
        return self._theme

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            transactions=self._transactions,
            categories=self._categories,
            investments=self._investments,
            theme=self._theme,
        )

    def _apply(self, snapshot: LedgerSnapshot) -> None:
        self._transactions = list(snapshot.transactions)
        self._categories = list(snapshot.categories)
        self._investments = list(snapshot.investments)
        self._theme = snapshot.theme

    async def load(self) -> LedgerSnapshot:
        """
        Replace the in-memory ledger with what storage holds.

        If the primary storage cannot be read and a local fallback is
        configured, the local snapshot is used instead.
        """
        storage = self._storage
        try:
            snapshot = await storage.load_all()
        except StorageError as e:
            self._events.log(LedgerEventBuilder.storage_failed("load", str(e)))
            if self._fallback is None:
                raise
            storage = self._fallback
            snapshot = await storage.load_all()

        if storage is self._storage and self._fallback is not None:
            # The theme is a device preference; only the local snapshot keeps it.
            local = await self._fallback.load_all()
            snapshot = snapshot.model_copy(update={"theme": local.theme})

        self._apply(snapshot)
        self.loaded_from = storage.source_name

        report = getattr(storage, "last_report", None)
        self._events.log(LedgerEventBuilder.snapshot_loaded(
            source=storage.source_name,
            transactions=len(snapshot.transactions),
            issues=len(report.issues) if report else 0,
        ))
        return snapshot

    async def _mirror(self) -> None:
        """Keep the local snapshot in step with a remote primary storage."""
        if self._fallback is None or self._fallback is self._storage:
            return
        try:
            await self._fallback.save_snapshot(self.snapshot())
        except StorageError as e:
            # The primary write already succeeded; a stale mirror is not fatal.
            self._events.log(LedgerEventBuilder.storage_failed("mirror", str(e)))

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    def totals(self) -> LedgerTotals:
        return aggregate(self._transactions)

    def current_balance(self) -> Decimal:
        return current_balance(self.totals())

    def goal_progress(self) -> list[GoalProgress]:
        return project_goals(self._investments, self.totals())

    def goal(self, investment_id: str) -> Optional[GoalProgress]:
        investment = find_goal(self._investments, investment_id)
        if investment is None:
            return None
        return project_goal(investment, self.totals())

    def orphaned_goal_stats(self) -> dict[str, GoalStats]:
        return orphaned_goal_stats(self._investments, self.totals())

    def category_for(self, transaction) -> Optional[Category]:
        """The category a transaction is filed under, None if unset or deleted."""
        return _find(self._categories, getattr(transaction, "category_id", None))

    def report(self, query: ReportQuery) -> ReportResult:
        builder = ReportBuilder(self._categories, self._investments)
        return builder.build_report(query, self._transactions)

    def chart(self, query: ChartQuery) -> list[ChartSlice]:
        builder = ReportBuilder(self._categories, self._investments)
        return builder.chart_data(query, self._transactions)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def on_goal_completed(self, listener: GoalListener) -> None:
        """Register a callback run after a goal-completing transaction is saved."""
        self._goal_listeners.append(listener)

    def _check_category_kind(self, candidate) -> None:
        """
        An income must not be filed under an expense category and vice versa.

        A category id that resolves to nothing is allowed (dangling).
        """
        category = self.category_for(candidate)
        if category is None:
            return
        expected = (
            CategoryType.INCOME
            if isinstance(candidate, IncomeTransaction)
            else CategoryType.EXPENSE
        )
        if category.type != expected:
            raise AdmissionContractError(
                f"Category '{category.name}' is a {category.type.value} category, "
                f"it cannot be used for a {candidate.type} transaction"
            )

    async def _admit_and_save(self, candidate, editing_id: Optional[str]) -> AdmissionResult:
        self._check_category_kind(candidate)

        result = admit(
            candidate,
            self._transactions,
            self._investments,
            editing_id=editing_id,
        )

        if not result.success:
            self._events.log(LedgerEventBuilder.transaction_rejected(
                transaction_type=candidate.type,
                value=str(candidate.value),
                available_balance=str(result.error.available_balance),
                reason=result.error.kind.value,
            ))
            return result

        transaction = result.transaction
        try:
            if editing_id is None:
                await self._storage.save_transaction(transaction)
            else:
                await self._storage.update_transaction(transaction)
        except StorageError as e:
            self._events.log(LedgerEventBuilder.storage_failed(
                "save_transaction", str(e), entity_id=transaction.id,
            ))
            raise

        if editing_id is None:
            self._transactions = [*self._transactions, transaction]
        else:
            self._transactions = [
                transaction if txn.id == editing_id else txn
                for txn in self._transactions
            ]
        await self._mirror()

        self._events.log(LedgerEventBuilder.transaction_admitted(
            transaction_id=transaction.id,
            transaction_type=transaction.type,
            value=str(transaction.value),
            updated=editing_id is not None,
        ))

        if result.goal_completed is not None:
            signal = result.goal_completed
            self._events.log(LedgerEventBuilder.goal_completed(
                investment_id=signal.investment_id,
                goal_name=signal.goal_name,
                goal_value=str(signal.goal_value),
            ))
            for listener in self._goal_listeners:
                listener(signal)

        return result

    async def add_transaction(self, draft) -> AdmissionResult:
        """
        Admit and persist a new transaction.

        Returns:
            The admission result. A rejected result means nothing was saved.

        Raises:
            AdmissionContractError: If the draft breaks the input contract
            StorageError: If the storage write fails
        """
        return await self._admit_and_save(draft, editing_id=None)

    async def replace_transaction(self, transaction_id: str, draft) -> AdmissionResult:
        """Replace every field of an existing transaction, keeping its id."""
        if _find(self._transactions, transaction_id) is None:
            raise LedgerStoreError(f"Transaction not found: {transaction_id}")
        return await self._admit_and_save(draft, editing_id=transaction_id)

    async def update_transaction(self, transaction_id: str, **changes: Any) -> AdmissionResult:
        """
        Replace some fields of an existing transaction.

        When `type` changes, only the fields shared by all variants are
        carried over from the current record. Toggling `is_withdrawal`
        drops the old category and goal references.
        """
        current = _find(self._transactions, transaction_id)
        if current is None:
            raise LedgerStoreError(f"Transaction not found: {transaction_id}")

        data = current.model_dump()
        if "type" in changes and changes["type"] != current.type:
            data = {field: data[field] for field in _SHARED_FIELDS}
        elif "is_withdrawal" in changes and bool(changes["is_withdrawal"]) != is_withdrawal(current):
            data.pop("category_id", None)
            data.pop("investment_id", None)
        data.update(changes)

        try:
            candidate = parse_transaction(data)
        except ValidationError as e:
            raise AdmissionContractError(f"Invalid transaction fields: {e}") from e

        return await self._admit_and_save(candidate, editing_id=transaction_id)

    async def delete_transaction(self, transaction_id: str) -> bool:
        """Remove a transaction. Removal is never blocked by a business rule."""
        deleted = await self._storage.delete_transaction(transaction_id)
        before = len(self._transactions)
        self._transactions = [txn for txn in self._transactions if txn.id != transaction_id]
        if len(self._transactions) != before:
            deleted = True
            await self._mirror()
        if deleted:
            self._events.log(LedgerEventBuilder.transaction_deleted(transaction_id))
        return deleted

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def add_category(self, name: str, type: CategoryType, color: str = "#9CA3AF") -> Category:
        category = Category(id=new_id("category"), name=name, type=type, color=color)
        await self._storage.save_category(category)
        self._categories = [*self._categories, category]
        await self._mirror()
        self._events.log(LedgerEventBuilder.entity_saved("category", category.id, category.name))
        return category

    async def update_category(self, category_id: str, **changes: Any) -> Category:
        current = _find(self._categories, category_id)
        if current is None:
            raise LedgerStoreError(f"Category not found: {category_id}")
        updated = Category.model_validate({**current.model_dump(), **changes, "id": category_id})
        await self._storage.update_category(updated)
        self._categories = [updated if c.id == category_id else c for c in self._categories]
        await self._mirror()
        self._events.log(LedgerEventBuilder.entity_saved("category", updated.id, updated.name))
        return updated

    async def delete_category(self, category_id: str) -> bool:
        """
        Delete a category.

        Transactions filed under it are left alone and keep the dangling id.
        """
        if _find(self._categories, category_id) is None:
            raise LedgerStoreError(f"Category not found: {category_id}")
        await self._storage.delete_category(category_id)
        self._categories = [c for c in self._categories if c.id != category_id]
        await self._mirror()
        referencing = sum(
            1 for txn in self._transactions
            if getattr(txn, "category_id", None) == category_id
        )
        self._events.log(LedgerEventBuilder.entity_deleted("category", category_id, referencing))
        return True

    # =========================================================================
    # INVESTMENTS (SAVINGS GOALS)
    # =========================================================================

    async def add_investment(self, draft: InvestmentDraft) -> Investment:
        investment = draft.to_investment()
        await self._storage.save_investment(investment)
        self._investments = [*self._investments, investment]
        await self._mirror()
        self._events.log(LedgerEventBuilder.entity_saved("investment", investment.id, investment.name))
        return investment

    async def update_investment(self, investment_id: str, **changes: Any) -> Investment:
        """Edit a goal. The new target must still be positive."""
        current = _find(self._investments, investment_id)
        if current is None:
            raise LedgerStoreError(f"Investment not found: {investment_id}")
        fields = current.model_dump(exclude={"id"})
        draft = InvestmentDraft.model_validate({**fields, **changes})
        updated = draft.to_investment(investment_id)
        await self._storage.update_investment(updated)
        self._investments = [updated if i.id == investment_id else i for i in self._investments]
        await self._mirror()
        self._events.log(LedgerEventBuilder.entity_saved("investment", updated.id, updated.name))
        return updated

    async def delete_investment(self, investment_id: str) -> bool:
        """
        Delete a goal.

        Contributions and withdrawals referencing it stay in the ledger;
        contributions still count against the balance.
        """
        if _find(self._investments, investment_id) is None:
            raise LedgerStoreError(f"Investment not found: {investment_id}")
        await self._storage.delete_investment(investment_id)
        self._investments = [i for i in self._investments if i.id != investment_id]
        await self._mirror()
        referencing = sum(
            1 for txn in self._transactions
            if getattr(txn, "investment_id", None) == investment_id
        )
        self._events.log(LedgerEventBuilder.entity_deleted("investment", investment_id, referencing))
        return True

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    def export_snapshot(self) -> dict:
        """The whole ledger as a JSON-compatible backup document."""
        return export_snapshot(self.snapshot())

    async def import_snapshot(self, raw: Any) -> ImportReport:
        """
        Replace the ledger with an imported backup.

        `raw` is JSON text, raw file bytes or an already decoded object.
        Missing or malformed fields fall back to defaults, and unreadable
        input gives an empty ledger; see the returned report.
        """
        if isinstance(raw, (str, bytes)):
            report = self._importer.loads(raw)
        else:
            report = self._importer.load(raw)

        try:
            await self._storage.save_snapshot(report.snapshot)
        except StorageError as e:
            self._events.log(LedgerEventBuilder.storage_failed("import", str(e)))
            raise

        self._apply(report.snapshot)
        await self._mirror()
        self._events.log(LedgerEventBuilder.snapshot_loaded(
            source="import",
            transactions=len(report.snapshot.transactions),
            issues=len(report.issues),
            imported=True,
        ))
        return report

    async def set_theme(self, theme: Theme) -> None:
        self._theme = Theme(theme)
        if isinstance(self._storage, SnapshotStorage):
            await self._storage.save_snapshot(self.snapshot())
        else:
            await self._mirror()

    async def backup_to_cloud(self, now: Optional[datetime] = None) -> str:
        """
        Store a named copy of the whole ledger in the cloud.

        Returns:
            The backup name (``backup_<ISO timestamp>``)

        Raises:
            LedgerStoreError: If the storage backend keeps no backups
        """
        if not isinstance(self._storage, BackupStorageInterface):
            raise LedgerStoreError("Backups require cloud storage and a signed-in user")
        name = f"backup_{(now or datetime.utcnow()).isoformat()}"
        await self._storage.save_backup(name, self.snapshot())
        self._events.log(LedgerEventBuilder.backup_saved(name))
        return name


def create_ledger_store(
    user_id: Optional[str] = None,
    settings: Optional[Settings] = None,
    event_logger: Optional[EventLogger] = None,
) -> LedgerStore:
    """
    Factory function to create the ledger store.

    Args:
        user_id: Identity of the signed-in user, None for a local-only session
        settings: Settings to use, defaults to the cached environment settings
        event_logger: Logger for ledger events

    Returns:
        A store backed by the cloud when configured and a user is signed in,
        by the local snapshot file otherwise. Call ``await store.load()``.
    """
    settings = settings or get_settings()
    app = settings.app
    local = LocalSnapshotStorage(app.snapshot_path, default_theme=Theme(app.default_theme))
    importer = SnapshotImporter(default_theme=Theme(app.default_theme))

    if app.use_cloud and user_id:
        try:
            sheets = settings.google_sheets
            cloud = GoogleSheetsLedgerStorage(
                user_id,
                client=GoogleSheetsClient(),
                importer=importer,
                backups_suffix=sheets.backups_sheet_suffix,
            )
            return LedgerStore(
                cloud,
                fallback_storage=local if app.cloud_fallback_to_local else None,
                event_logger=event_logger,
                importer=importer,
            )
        except Exception as e:
            # Cloud not configured - continue with the local snapshot
            get_logger("infinance").warning("cloud_storage_unavailable", error=str(e))

    return LedgerStore(local, event_logger=event_logger, importer=importer)
