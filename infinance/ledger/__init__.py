"""
Ledger computation engine.

Pure functions over transaction, category and investment lists.
Nothing in this package holds state or touches storage.
"""

from infinance.ledger.admission import (
    AdmissionContractError,
    AdmissionError,
    AdmissionErrorKind,
    AdmissionResult,
    GoalCompleted,
    admit,
)
from infinance.ledger.aggregator import GoalStats, LedgerTotals, aggregate
from infinance.ledger.projector import (
    GoalProgress,
    calculated_value,
    completion_percent,
    current_balance,
    find_goal,
    orphaned_goal_stats,
    project_goal,
    project_goals,
)

__all__ = [
    # Aggregator
    "GoalStats",
    "LedgerTotals",
    "aggregate",
    # Projector
    "GoalProgress",
    "calculated_value",
    "completion_percent",
    "current_balance",
    "find_goal",
    "orphaned_goal_stats",
    "project_goal",
    "project_goals",
    # Admission
    "AdmissionContractError",
    "AdmissionError",
    "AdmissionErrorKind",
    "AdmissionResult",
    "GoalCompleted",
    "admit",
]
