"""
Report and Chart Queries

DESIGN DECISION: Reports are computed here, rendered elsewhere.
This module turns a query (date range, filter, sort order) into plain rows
and totals. Whatever draws the chart or lays out the PDF only formats what
it gets back; it never computes a number itself.

References to deleted categories or goals are not errors here: the row is
kept and labelled so the user can still see the money.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field, model_validator

from infinance.ledger.aggregator import aggregate
from infinance.models.ledger import (
    Category,
    ExpenseTransaction,
    Investment,
    InvestmentTransaction,
    Money,
    TransactionType,
    is_withdrawal,
)


# Row labels when a reference no longer resolves
MISSING_CATEGORY_LABEL = "N/A"
MISSING_INVESTMENT_LABEL = "Inv."
NO_REFERENCE_LABEL = "-"

UNCATEGORIZED_LABEL = "Uncategorized"
UNKNOWN_GOAL_LABEL = "Unknown goal"
FALLBACK_COLOR = "#9CA3AF"


class ReportQuery(BaseModel):
    """What goes into a transaction report."""

    title: str = Field(default="Financial Report", max_length=200)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    filter_type: str = Field(
        default="all",
        pattern="^(all|income|expense|investment)$",
    )
    sort_by: str = Field(
        default="date",
        pattern="^(date|value|name|category)$",
    )

    @model_validator(mode='after')
    def validate_dates(self) -> 'ReportQuery':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Report end date cannot be before start date")
        return self


class ReportRow(BaseModel):
    """One transaction as it appears in a report."""

    transaction_id: Optional[str] = None
    date: date
    description: str
    type: TransactionType
    label: str = Field(..., description="Category or goal name")
    value: Money
    is_withdrawal: bool = False


class ReportResult(BaseModel):
    """Rows and totals of a report."""

    title: str
    period_description: str
    rows: list[ReportRow] = Field(default_factory=list)
    total_income: Money = Decimal("0")
    total_expenses: Money = Decimal("0")
    total_invested: Money = Decimal("0")

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expenses - self.total_invested


class ChartQuery(BaseModel):
    """What goes into a breakdown chart."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    data_type: str = Field(
        default="expense",
        pattern="^(expense|investment|both)$",
    )


class ChartSlice(BaseModel):
    label: str
    color: str
    value: Money


def _in_range(day: date, start: Optional[date], end: Optional[date]) -> bool:
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def _date_range_str(start: Optional[date], end: Optional[date]) -> str:
    if start and end:
        return f"{start.isoformat()} to {end.isoformat()}"
    if start:
        return f"from {start.isoformat()}"
    if end:
        return f"until {end.isoformat()}"
    return "all dates"


class ReportBuilder:
    """
    Builds report rows and chart slices from the ledger lists.

    GUARANTEES:
    - Only transactions inside the (inclusive) date range are used
    - Totals are computed by the ledger aggregator, not summed here
    """

    def __init__(
        self,
        categories: Iterable[Category],
        investments: Iterable[Investment],
    ):
        self._categories = {category.id: category for category in categories}
        self._investments = {investment.id: investment for investment in investments}

    def label_for(self, transaction) -> str:
        """Name of the category or goal a transaction is filed under."""
        category_id = getattr(transaction, "category_id", None)
        investment_id = getattr(transaction, "investment_id", None)
        if category_id:
            category = self._categories.get(category_id)
            return category.name if category else MISSING_CATEGORY_LABEL
        if investment_id:
            investment = self._investments.get(investment_id)
            return investment.name if investment else MISSING_INVESTMENT_LABEL
        return NO_REFERENCE_LABEL

    def build_report(self, query: ReportQuery, transactions: Iterable) -> ReportResult:
        selected = [
            txn for txn in transactions
            if _in_range(txn.date, query.start_date, query.end_date)
            and (query.filter_type == "all" or txn.type == query.filter_type)
        ]

        rows = [
            ReportRow(
                transaction_id=txn.id,
                date=txn.date,
                description=txn.description,
                type=txn.type,
                label=self.label_for(txn),
                value=txn.value,
                is_withdrawal=is_withdrawal(txn),
            )
            for txn in selected
        ]

        if query.sort_by == "date":
            rows.sort(key=lambda row: row.date)
        elif query.sort_by == "value":
            rows.sort(key=lambda row: row.value, reverse=True)
        elif query.sort_by == "name":
            rows.sort(key=lambda row: row.description.lower())
        elif query.sort_by == "category":
            rows.sort(key=lambda row: (row.label.lower(), row.date))

        totals = aggregate(selected)

        return ReportResult(
            title=query.title,
            period_description=_date_range_str(query.start_date, query.end_date),
            rows=rows,
            total_income=totals.total_income,
            total_expenses=totals.total_expenses,
            total_invested=totals.total_invested_flow,
        )

    def chart_data(self, query: ChartQuery, transactions: Iterable) -> list[ChartSlice]:
        """
        Breakdown for a pie/bar chart.

        Regular expenses are grouped by category; investment contributions
        by goal. Withdrawals are not spending and are left out.
        """
        buckets: dict[tuple[str, str], Decimal] = {}

        def add(label: str, color: str, value: Decimal) -> None:
            key = (label, color)
            buckets[key] = buckets.get(key, Decimal("0")) + value

        include_expenses = query.data_type in ("expense", "both")
        include_investments = query.data_type in ("investment", "both")

        for txn in transactions:
            if not _in_range(txn.date, query.start_date, query.end_date):
                continue
            if include_expenses and isinstance(txn, ExpenseTransaction) and not is_withdrawal(txn):
                category = self._categories.get(txn.category_id)
                if category:
                    add(category.name, category.color, txn.value)
                else:
                    add(UNCATEGORIZED_LABEL, FALLBACK_COLOR, txn.value)
            elif include_investments and isinstance(txn, InvestmentTransaction):
                investment = self._investments.get(txn.investment_id)
                if investment:
                    add(investment.name, investment.color, txn.value)
                else:
                    add(UNKNOWN_GOAL_LABEL, FALLBACK_COLOR, txn.value)

        slices = [
            ChartSlice(label=label, color=color, value=value)
            for (label, color), value in buckets.items()
        ]
        slices.sort(key=lambda s: s.value, reverse=True)
        return slices
