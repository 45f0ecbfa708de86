"""
Transaction Admission Controller

Every create and every edit of a transaction passes through `admit`.

It enforces the one hard business rule of the ledger:
    a regular expense can never be larger than the balance it is paid from.

It also watches savings goals and reports the moment a contribution takes
a goal from incomplete to complete, so the caller can celebrate.

IMPORTANT: An overspend is a normal, expected outcome. It is returned as a
failed `AdmissionResult`, never raised. Exceptions are reserved for callers
that break the input contract.
"""

from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from infinance.ledger.aggregator import aggregate
from infinance.ledger.projector import calculated_value, current_balance, find_goal
from infinance.models.ledger import (
    ExpenseTransaction,
    IncomeTransaction,
    Investment,
    InvestmentTransaction,
    Money,
    Transaction,
    new_id,
)


TRANSACTION_TYPES = (IncomeTransaction, ExpenseTransaction, InvestmentTransaction)


class AdmissionContractError(ValueError):
    """The caller passed input that `admit` does not accept."""
    pass


class AdmissionErrorKind(str, Enum):
    INSUFFICIENT_BALANCE = "insufficient_balance"


class AdmissionError(BaseModel):
    """Why a transaction was rejected."""

    model_config = ConfigDict(frozen=True)

    kind: AdmissionErrorKind
    message: str
    available_balance: Money
    requested_value: Money


class GoalCompleted(BaseModel):
    """Signal: a savings goal just reached its target."""

    model_config = ConfigDict(frozen=True)

    investment_id: str
    goal_name: str
    goal_value: Money


class AdmissionResult(BaseModel):
    """
    Outcome of `admit`.

    On success `transaction` holds the record to persist (with its id) and
    `goal_completed` is set when this transaction completed a goal.
    On failure `error` explains why and nothing must be persisted.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    transaction: Optional[Transaction] = None
    goal_completed: Optional[GoalCompleted] = None
    error: Optional[AdmissionError] = None

    @property
    def rejected(self) -> bool:
        return not self.success


def _without(transactions: Iterable, editing_id: Optional[str]) -> list:
    if editing_id is None:
        return list(transactions)
    return [txn for txn in transactions if txn.id != editing_id]


def _check_balance(candidate, base: Sequence) -> Optional[AdmissionError]:
    """Reject a regular expense larger than the balance of `base`."""
    if not isinstance(candidate, ExpenseTransaction) or candidate.is_withdrawal:
        return None

    available = current_balance(aggregate(base))
    if candidate.value > available:
        return AdmissionError(
            kind=AdmissionErrorKind.INSUFFICIENT_BALANCE,
            message=(
                f"Insufficient balance: expense of {candidate.value} "
                f"exceeds available {available}"
            ),
            available_balance=available,
            requested_value=candidate.value,
        )
    return None


def _detect_goal_completion(
    candidate,
    existing: Sequence,
    base: Sequence,
    investments: Iterable[Investment],
) -> Optional[GoalCompleted]:
    """
    Edge-triggered: fires only when the goal goes from below its target
    to at or above it. Before is the ledger as it stands; after is the
    ledger with the candidate applied (replacing the edited record).
    """
    if not isinstance(candidate, InvestmentTransaction):
        return None

    goal = find_goal(investments, candidate.investment_id)
    if goal is None or goal.goal_value <= 0:
        return None

    before = calculated_value(goal.id, aggregate(existing))
    after = calculated_value(goal.id, aggregate([*base, candidate]))

    if before < goal.goal_value <= after:
        return GoalCompleted(
            investment_id=goal.id,
            goal_name=goal.name,
            goal_value=goal.goal_value,
        )
    return None


def admit(
    candidate,
    existing_transactions: Sequence,
    investments: Iterable[Investment],
    editing_id: Optional[str] = None,
    id_factory: Callable[[], str] = lambda: new_id("transaction"),
) -> AdmissionResult:
    """
    Validate a proposed transaction against the current ledger.

    Args:
        candidate: The transaction draft (any transaction variant)
        existing_transactions: The current ledger
        investments: Known savings goals
        editing_id: Id of the record being replaced, None when creating
        id_factory: Produces the id of a newly created record

    Returns:
        AdmissionResult, successful or carrying an InsufficientBalance error

    Raises:
        AdmissionContractError: If the candidate is not a transaction or
            `editing_id` matches nothing in the ledger
    """
    if not isinstance(candidate, TRANSACTION_TYPES):
        raise AdmissionContractError(f"Not a transaction draft: {candidate!r}")

    existing = list(existing_transactions)
    investments = list(investments)

    if editing_id is not None and not any(t.id == editing_id for t in existing):
        raise AdmissionContractError(f"Transaction not found: {editing_id}")

    base = _without(existing, editing_id)

    error = _check_balance(candidate, base)
    if error is not None:
        return AdmissionResult(success=False, error=error)

    goal_completed = _detect_goal_completion(candidate, existing, base, investments)

    transaction_id = editing_id if editing_id is not None else id_factory()
    admitted = candidate.model_copy(update={"id": transaction_id})

    return AdmissionResult(
        success=True,
        transaction=admitted,
        goal_completed=goal_completed,
    )
