"""
Ledger Aggregator

Folds the raw transaction log into the totals every other part of the
system reads: income, expenses, invested flow and per-goal sub-totals.

GUARANTEES:
- Pure function of the list it is given (no storage, no caching)
- Order of the input does not matter
- A goal reference that points nowhere is still counted under its id;
  it is the projector's job to decide which ids are real goals
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from infinance.models.ledger import (
    ExpenseTransaction,
    IncomeTransaction,
    InvestmentTransaction,
    Money,
)


ZERO = Decimal("0")


class GoalStats(BaseModel):
    """Money put into and taken out of one savings goal."""

    model_config = ConfigDict(frozen=True)

    invested: Money = ZERO
    rescued: Money = ZERO

    @property
    def net(self) -> Decimal:
        return self.invested - self.rescued


class LedgerTotals(BaseModel):
    """Aggregates derived from one transaction list."""

    model_config = ConfigDict(frozen=True)

    total_income: Money = ZERO
    total_expenses: Money = ZERO
    total_invested_flow: Money = ZERO
    per_goal_stats: dict[str, GoalStats] = Field(default_factory=dict)
    transaction_count: int = 0

    @property
    def current_balance(self) -> Decimal:
        """Income minus regular expenses minus money moved into goals."""
        return self.total_income - self.total_expenses - self.total_invested_flow

    def stats_for(self, investment_id: str) -> GoalStats:
        """Stats for one goal, zero when it has no transactions."""
        return self.per_goal_stats.get(investment_id, GoalStats())


def aggregate(transactions: Iterable) -> LedgerTotals:
    """
    Fold a transaction list into `LedgerTotals`.

    - income adds to `total_income`
    - a regular expense adds to `total_expenses`
    - an investment adds to `total_invested_flow` and to its goal's `invested`
    - a withdrawal adds to its goal's `rescued` and touches no balance total
    """
    income = ZERO
    expenses = ZERO
    invested_flow = ZERO
    invested: dict[str, Decimal] = defaultdict(Decimal)
    rescued: dict[str, Decimal] = defaultdict(Decimal)
    count = 0

    for txn in transactions:
        count += 1
        if isinstance(txn, IncomeTransaction):
            income += txn.value
        elif isinstance(txn, ExpenseTransaction):
            if txn.is_withdrawal:
                if txn.investment_id:
                    rescued[txn.investment_id] += txn.value
            else:
                expenses += txn.value
        elif isinstance(txn, InvestmentTransaction):
            invested_flow += txn.value
            if txn.investment_id:
                invested[txn.investment_id] += txn.value
        else:
            raise TypeError(f"Not a ledger transaction: {txn!r}")

    per_goal = {
        goal_id: GoalStats(
            invested=invested.get(goal_id, ZERO),
            rescued=rescued.get(goal_id, ZERO),
        )
        for goal_id in set(invested) | set(rescued)
    }

    return LedgerTotals(
        total_income=income,
        total_expenses=expenses,
        total_invested_flow=invested_flow,
        per_goal_stats=per_goal,
        transaction_count=count,
    )
