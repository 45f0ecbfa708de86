"""
Tests for InFinance

Test strategy:
1. Unit tests for individual components (models, ledger functions)
2. Integration tests for flows (with in-memory or fake storage)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from infinance.events import (
    EventLogger,
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)
from infinance.models import (
    DEFAULT_CATEGORIES,
    DEFAULT_EXPENSE_CATEGORY_ID,
    CategoryType,
    ExpenseTransaction,
    ImportReport,
    IncomeTransaction,
    Investment,
    InvestmentDraft,
    InvestmentTransaction,
    LedgerSnapshot,
    Theme,
    ValidationIssue,
    is_withdrawal,
    new_id,
    parse_transaction,
)


class TestTransactionModels:
    """Tests for the transaction variants."""

    def test_income_creation(self):
        txn = IncomeTransaction(
            date=date(2024, 3, 1),
            description="March salary",
            value=Decimal("2500.00"),
            category_id="cat_1",
        )
        assert txn.type == "income"
        assert txn.value == Decimal("2500.00")
        assert txn.is_draft is True

    def test_income_requires_category(self):
        with pytest.raises(ValidationError):
            IncomeTransaction(date=date(2024, 3, 1), value=Decimal("10"))

    def test_value_must_be_positive(self):
        with pytest.raises(ValidationError):
            IncomeTransaction(date=date(2024, 3, 1), value=Decimal("0"), category_id="cat_1")
        with pytest.raises(ValidationError):
            IncomeTransaction(date=date(2024, 3, 1), value=Decimal("-5"), category_id="cat_1")

    def test_description_is_limited(self):
        with pytest.raises(ValidationError):
            IncomeTransaction(
                date=date(2024, 3, 1),
                description="x" * 201,
                value=Decimal("1"),
                category_id="cat_1",
            )

    def test_regular_expense_requires_category(self):
        with pytest.raises(ValueError, match="must reference a category"):
            ExpenseTransaction(date=date(2024, 3, 1), value=Decimal("10"))

    def test_regular_expense_cannot_reference_goal(self):
        with pytest.raises(ValueError, match="Only withdrawals"):
            ExpenseTransaction(
                date=date(2024, 3, 1),
                value=Decimal("10"),
                category_id="cat_3",
                investment_id="inv_1",
            )

    def test_withdrawal_requires_goal(self):
        with pytest.raises(ValueError, match="must reference an investment"):
            ExpenseTransaction(date=date(2024, 3, 1), value=Decimal("10"), is_withdrawal=True)

    def test_withdrawal_cannot_carry_category(self):
        with pytest.raises(ValueError, match="cannot carry a category"):
            ExpenseTransaction(
                date=date(2024, 3, 1),
                value=Decimal("10"),
                is_withdrawal=True,
                investment_id="inv_1",
                category_id="cat_3",
            )

    def test_blank_category_on_withdrawal_is_unset(self):
        """Forms send an empty string for an unselected category."""
        txn = ExpenseTransaction(
            date=date(2024, 3, 1),
            value=Decimal("10"),
            is_withdrawal=True,
            investment_id="inv_1",
            category_id="",
        )
        assert txn.category_id is None
        assert is_withdrawal(txn) is True

    def test_investment_requires_goal(self):
        with pytest.raises(ValidationError):
            InvestmentTransaction(date=date(2024, 3, 1), value=Decimal("10"))

    def test_parse_camel_case_document(self):
        txn = parse_transaction({
            "id": "t1",
            "date": "2024-03-05",
            "description": "Rescue",
            "value": 300,
            "type": "expense",
            "isWithdrawal": True,
            "investmentId": "inv_1",
        })
        assert isinstance(txn, ExpenseTransaction)
        assert txn.is_withdrawal is True
        assert txn.investment_id == "inv_1"
        assert txn.date == date(2024, 3, 5)

    def test_parse_legacy_withdrawal_flag(self):
        txn = parse_transaction({
            "date": "2024-03-05",
            "value": 300,
            "type": "expense",
            "isResgate": True,
            "investmentId": "inv_1",
        })
        assert txn.is_withdrawal is True

    def test_parse_unknown_type_fails(self):
        with pytest.raises(ValidationError):
            parse_transaction({"date": "2024-03-05", "value": 1, "type": "transfer"})

    def test_to_document_is_camel_case(self):
        txn = ExpenseTransaction(
            id="t1",
            date=date(2024, 3, 1),
            value=Decimal("12.50"),
            category_id="cat_3",
        )
        document = txn.to_document()
        assert document["categoryId"] == "cat_3"
        assert document["isWithdrawal"] is False
        assert document["value"] == 12.5
        assert document["date"] == "2024-03-01"
        assert "investmentId" not in document

    def test_transactions_are_immutable(self):
        txn = IncomeTransaction(date=date(2024, 3, 1), value=Decimal("1"), category_id="cat_1")
        with pytest.raises(ValidationError):
            txn.value = Decimal("2")

    def test_with_id(self):
        txn = IncomeTransaction(date=date(2024, 3, 1), value=Decimal("1"), category_id="cat_1")
        stored = txn.with_id("t9")
        assert stored.id == "t9"
        assert stored.is_draft is False
        assert txn.id is None


class TestInvestmentModels:
    """Tests for savings goals."""

    def test_draft_requires_positive_goal(self):
        with pytest.raises(ValidationError):
            InvestmentDraft(name="Trip", goal_value=Decimal("0"))

    def test_draft_to_investment(self):
        investment = InvestmentDraft(name="Trip", goal_value=Decimal("5000")).to_investment()
        assert investment.id.startswith("investment_")
        assert investment.goal_value == Decimal("5000")
        assert investment.color == "#10B981"

    def test_loaded_goal_accepts_zero_target(self):
        investment = Investment(id="inv_1", name="Broken", goal_value=Decimal("0"))
        assert investment.goal_value == Decimal("0")

    def test_stored_current_value_is_dropped(self):
        investment = Investment.model_validate({
            "id": "inv_1",
            "name": "Car",
            "goalValue": 1000,
            "currentValue": 999,
        })
        assert "currentValue" not in investment.to_document()
        assert not hasattr(investment, "current_value")

    def test_new_id_prefix_and_uniqueness(self):
        assert new_id("category").startswith("category_")
        assert new_id("x") != new_id("x")


class TestSnapshotModel:
    """Tests for LedgerSnapshot defaults."""

    def test_defaults(self):
        snapshot = LedgerSnapshot()
        assert snapshot.transactions == []
        assert snapshot.investments == []
        assert snapshot.theme == Theme.LIGHT
        assert len(snapshot.categories) == len(DEFAULT_CATEGORIES)

    def test_default_categories_cover_both_kinds(self):
        kinds = {category.type for category in DEFAULT_CATEGORIES}
        assert kinds == {CategoryType.INCOME, CategoryType.EXPENSE}
        fallback = [c for c in DEFAULT_CATEGORIES if c.id == DEFAULT_EXPENSE_CATEGORY_ID]
        assert fallback[0].type == CategoryType.EXPENSE

    def test_mixed_transactions_are_discriminated(self):
        snapshot = LedgerSnapshot.model_validate({
            "transactions": [
                {"date": "2024-01-01", "value": 10, "type": "income", "categoryId": "cat_1"},
                {"date": "2024-01-02", "value": 5, "type": "investment", "investmentId": "inv_1"},
            ],
        })
        assert isinstance(snapshot.transactions[0], IncomeTransaction)
        assert isinstance(snapshot.transactions[1], InvestmentTransaction)


class TestEventModels:
    """Tests for ledger event models."""

    def test_event_to_log_dict(self):
        event = LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_DELETED,
            description="Transaction deleted",
            entity_id="t1",
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_deleted"
        assert log_dict["entity_id"] == "t1"

    def test_builder_rejected_is_warning(self):
        event = LedgerEventBuilder.transaction_rejected(
            transaction_type="expense",
            value="150",
            available_balance="100",
            reason="insufficient_balance",
        )
        assert event.severity == EventSeverity.WARNING
        assert event.details["available_balance"] == "100"

    def test_builder_update_event_type(self):
        event = LedgerEventBuilder.transaction_admitted("t1", "income", "10", updated=True)
        assert event.event_type == LedgerEventType.TRANSACTION_UPDATED

    def test_builder_dangling_delete_is_warning(self):
        event = LedgerEventBuilder.entity_deleted("category", "cat_3", referencing=2)
        assert event.event_type == LedgerEventType.CATEGORY_DELETED
        assert event.severity == EventSeverity.WARNING
        assert event.details["dangling_references"] == 2

    def test_event_logger_uses_severity_level(self):
        calls = []

        class FakeLogger:
            def info(self, message, **fields):
                calls.append(("info", fields["event_type"]))

            def error(self, message, **fields):
                calls.append(("error", fields["event_type"]))

        events = EventLogger(logger=FakeLogger())
        events.log(LedgerEventBuilder.transaction_deleted("t1"))
        events.log(LedgerEventBuilder.storage_failed("load", "timeout"))
        assert calls == [("info", "transaction_deleted"), ("error", "storage_failed")]


class TestImportReport:
    """Tests for ImportReport."""

    def test_has_errors(self):
        report = ImportReport(
            snapshot=LedgerSnapshot(),
            issues=[
                ValidationIssue(
                    field="snapshot",
                    issue_type="invalid_format",
                    message="Not JSON",
                    severity="error",
                ),
            ],
        )
        assert report.has_errors is True
        assert report.is_clean is False

    def test_warnings_are_not_errors(self):
        report = ImportReport(
            snapshot=LedgerSnapshot(),
            issues=[
                ValidationIssue(
                    field="theme",
                    issue_type="invalid_value",
                    message="Unknown theme",
                    severity="warning",
                ),
            ],
        )
        assert report.has_errors is False

    def test_severity_is_checked(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
