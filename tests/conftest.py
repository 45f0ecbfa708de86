"""
Shared fixtures for InFinance tests.

No real API calls in tests: the Google Sheets client is replaced by an
in-memory fake with the same worksheet methods.
"""

import pytest
from datetime import date
from decimal import Decimal

from infinance.models.ledger import (
    ExpenseTransaction,
    IncomeTransaction,
    Investment,
    InvestmentTransaction,
)


def income(value, txn_id=None, day=date(2024, 1, 1), category_id="cat_1", description="Salary"):
    return IncomeTransaction(
        id=txn_id,
        date=day,
        description=description,
        value=Decimal(str(value)),
        category_id=category_id,
    )


def expense(value, txn_id=None, day=date(2024, 1, 2), category_id="cat_3", description="Groceries"):
    return ExpenseTransaction(
        id=txn_id,
        date=day,
        description=description,
        value=Decimal(str(value)),
        category_id=category_id,
    )


def withdrawal(value, investment_id, txn_id=None, day=date(2024, 1, 3)):
    return ExpenseTransaction(
        id=txn_id,
        date=day,
        description="Withdrawal",
        value=Decimal(str(value)),
        is_withdrawal=True,
        investment_id=investment_id,
    )


def contribution(value, investment_id, txn_id=None, day=date(2024, 1, 4)):
    return InvestmentTransaction(
        id=txn_id,
        date=day,
        value=Decimal(str(value)),
        investment_id=investment_id,
    )


@pytest.fixture
def car_goal() -> Investment:
    return Investment(id="inv_car", name="Car", goal_value=Decimal("1000"), color="#3B82F6")


class FakeWorksheet:
    """Rows held in a list; row 1 is the header, as in a real sheet."""

    def __init__(self, columns):
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(cell) for cell in row])

    def append_rows(self, rows, value_input_option=None):
        for row in rows:
            self.append_row(row)

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]

    def clear(self):
        self.rows = []


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; creates worksheets on first use."""

    def __init__(self):
        self.sheets: dict[str, FakeWorksheet] = {}

    def get_worksheet(self, title, columns):
        if title not in self.sheets:
            self.sheets[title] = FakeWorksheet(columns)
        return self.sheets[title]


class BrokenSheetsClient:
    """Every call fails, like a cloud store that is unreachable."""

    def get_worksheet(self, title, columns):
        raise RuntimeError("network unreachable")


@pytest.fixture
def sheets_client() -> FakeSheetsClient:
    return FakeSheetsClient()
