"""
Goal Balance Projector

Turns aggregator output into what the user actually looks at: the current
balance and, for every savings goal, how much is in it and how close it is
to the target.

Nothing here is stored. Every number is recomputed from `LedgerTotals`.
"""

from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from infinance.ledger.aggregator import ZERO, GoalStats, LedgerTotals
from infinance.models.ledger import Investment, Money


HUNDRED = Decimal("100")


class GoalProgress(BaseModel):
    """Derived state of one savings goal."""

    model_config = ConfigDict(frozen=True)

    investment_id: str
    name: str
    color: str
    goal_value: Money
    invested: Money
    rescued: Money
    calculated_value: Money
    completion_percent: Decimal

    @property
    def is_complete(self) -> bool:
        return self.completion_percent >= HUNDRED

    @property
    def remaining(self) -> Decimal:
        """How much is still missing to reach the goal (never negative)."""
        return max(ZERO, self.goal_value - self.calculated_value)


def current_balance(totals: LedgerTotals) -> Decimal:
    """Money available to spend: income - expenses - invested flow."""
    return totals.total_income - totals.total_expenses - totals.total_invested_flow


def calculated_value(investment_id: str, totals: LedgerTotals) -> Decimal:
    """Current value of a goal: invested minus rescued."""
    return totals.stats_for(investment_id).net


def completion_percent(value: Decimal, goal_value: Decimal) -> Decimal:
    """
    Progress toward a goal, clamped to [0, 100].

    A goal with a zero or negative target is a configuration error; it reads
    as complete once anything is in it, and empty otherwise.
    """
    if goal_value <= 0:
        return HUNDRED if value > 0 else ZERO
    percent = HUNDRED * value / goal_value
    return min(HUNDRED, max(ZERO, percent))


def project_goal(investment: Investment, totals: LedgerTotals) -> GoalProgress:
    stats = totals.stats_for(investment.id)
    value = stats.net
    return GoalProgress(
        investment_id=investment.id,
        name=investment.name,
        color=investment.color,
        goal_value=investment.goal_value,
        invested=stats.invested,
        rescued=stats.rescued,
        calculated_value=value,
        completion_percent=completion_percent(value, investment.goal_value),
    )


def project_goals(
    investments: Iterable[Investment],
    totals: LedgerTotals,
) -> list[GoalProgress]:
    """Progress for every goal, in the order the goals were given."""
    return [project_goal(investment, totals) for investment in investments]


def find_goal(
    investments: Iterable[Investment],
    investment_id: Optional[str],
) -> Optional[Investment]:
    if not investment_id:
        return None
    for investment in investments:
        if investment.id == investment_id:
            return investment
    return None


def orphaned_goal_stats(
    investments: Iterable[Investment],
    totals: LedgerTotals,
) -> dict[str, GoalStats]:
    """
    Per-goal stats whose id matches no known goal.

    These come from transactions that still point at a deleted goal. They
    are left out of every projection but reported here so callers can show
    them.
    """
    known = {investment.id for investment in investments}
    return {
        goal_id: stats
        for goal_id, stats in totals.per_goal_stats.items()
        if goal_id not in known
    }
