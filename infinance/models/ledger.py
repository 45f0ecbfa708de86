"""
Core Data Models for InFinance

These models define the strict schemas for every record in the ledger.
They are designed to:
1. Enforce the per-type field rules of a transaction at construction time
2. Serialize to the flat camelCase JSON used by snapshots and backups
3. Stay immutable, so derived values can never drift from the log

DESIGN DECISION: A transaction is a tagged union discriminated on `type`.
Each variant only carries the fields that are valid for it, so the ledger
code never has to check whether an optional field happens to be set.

DESIGN DECISION: An investment never stores its current value. Any
`currentValue` key found in persisted data is dropped on load; the value is
always recomputed from the transaction log.
"""

import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _money_to_json(value: Decimal) -> Union[float, str]:
    """A JSON number when a float holds the amount exactly, else a decimal string."""
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return str(value)


# Monetary amounts are fixed point in memory and JSON numbers on disk.
# Input accepts numbers and decimal strings alike.
Money = Annotated[
    Decimal,
    PlainSerializer(_money_to_json, return_type=Union[float, str], when_used="json"),
]

MAX_DESCRIPTION_LENGTH = 200


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Kind of ledger entry."""
    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"


class CategoryType(str, Enum):
    """
    Which transactions may reference a category.

    Investment transactions never carry a category.
    """
    INCOME = "income"
    EXPENSE = "expense"


class Theme(str, Enum):
    """UI theme stored alongside the ledger in a snapshot."""
    LIGHT = "light"
    DARK = "dark"


def new_id(kind: str) -> str:
    """Generate a record identifier such as ``transaction_3f2a...``."""
    return f"{kind}_{uuid4().hex}"


class LedgerModel(BaseModel):
    """Base for every persisted record: camelCase on the wire, frozen in memory."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        frozen=True,
    )

    def to_document(self) -> dict:
        """JSON-compatible dict with camelCase keys, unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# CATEGORIES AND GOALS
# =============================================================================

class Category(LedgerModel):
    """A user-defined label for income or expense transactions."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default="#9CA3AF")
    type: CategoryType


class Investment(LedgerModel):
    """
    A savings goal.

    `goal_value` is not range-checked here: a goal loaded from storage with
    a zero or negative target is still a goal, and the projector knows how
    to report its progress. New goals go through `InvestmentDraft`.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    color: str = Field(default="#10B981")
    goal_value: Money


class InvestmentDraft(LedgerModel):
    """A goal as entered by the user, before it has an id."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    color: str = Field(default="#10B981")
    goal_value: Money = Field(..., gt=0)

    def to_investment(self, investment_id: Optional[str] = None) -> Investment:
        return Investment(
            id=investment_id or new_id("investment"),
            **self.model_dump(),
        )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class _TransactionBase(LedgerModel):
    """
    Fields shared by every transaction variant.

    A transaction without an id is a draft that has not been admitted yet.
    """

    id: Optional[str] = None
    date: datetime.date = Field(..., description="Calendar date (YYYY-MM-DD)")
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    value: Money = Field(..., gt=0)

    @property
    def is_draft(self) -> bool:
        return self.id is None

    def with_id(self, transaction_id: str) -> "_TransactionBase":
        return self.model_copy(update={"id": transaction_id})


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class IncomeTransaction(_TransactionBase):
    """Money coming in, filed under an income category."""

    type: Literal["income"] = "income"
    category_id: str = Field(..., min_length=1)


class ExpenseTransaction(_TransactionBase):
    """
    Money going out.

    A regular expense is filed under an expense category and is paid from
    the general balance. A withdrawal (`is_withdrawal=True`) draws down a
    savings goal instead and references that goal.
    """

    type: Literal["expense"] = "expense"
    is_withdrawal: bool = Field(
        default=False,
        validation_alias=AliasChoices("isWithdrawal", "is_withdrawal", "isResgate"),
        serialization_alias="isWithdrawal",
    )
    category_id: Optional[str] = None
    investment_id: Optional[str] = None

    @field_validator("category_id", "investment_id", mode="before")
    @classmethod
    def blank_reference_is_unset(cls, v):
        return _blank_to_none(v)

    @model_validator(mode="after")
    def validate_references(self) -> "ExpenseTransaction":
        """Exactly one of category/investment, chosen by the withdrawal flag."""
        if self.is_withdrawal:
            if not self.investment_id:
                raise ValueError("A withdrawal must reference an investment")
            if self.category_id:
                raise ValueError("A withdrawal cannot carry a category")
        else:
            if not self.category_id:
                raise ValueError("An expense must reference a category")
            if self.investment_id:
                raise ValueError("Only withdrawals may reference an investment")
        return self


class InvestmentTransaction(_TransactionBase):
    """A contribution to a savings goal. The description is optional."""

    type: Literal["investment"] = "investment"
    investment_id: str = Field(..., min_length=1)


Transaction = Annotated[
    Union[IncomeTransaction, ExpenseTransaction, InvestmentTransaction],
    Field(discriminator="type"),
]

TransactionAdapter: TypeAdapter = TypeAdapter(Transaction)


def parse_transaction(data: dict):
    """Validate a raw dict (camelCase or snake_case keys) into a transaction variant."""
    return TransactionAdapter.validate_python(data)


def is_withdrawal(transaction) -> bool:
    return isinstance(transaction, ExpenseTransaction) and transaction.is_withdrawal


# =============================================================================
# SNAPSHOT
# =============================================================================

# Colors offered when the user creates a category or a goal.
COLORS = [
    "#3B82F6",  # Blue
    "#EF4444",  # Red
    "#10B981",  # Emerald
    "#F59E0B",  # Amber
    "#8B5CF6",  # Violet
    "#EC4899",  # Pink
    "#06B6D4",  # Cyan
    "#6366F1",  # Indigo
    "#84CC16",  # Lime
    "#F97316",  # Orange
    "#14B8A6",  # Teal
    "#D946EF",  # Fuchsia
]

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="cat_1", name="Salary", color="#10B981", type=CategoryType.INCOME),
    Category(id="cat_2", name="Freelance", color="#34D399", type=CategoryType.INCOME),
    Category(id="cat_3", name="Food", color="#EF4444", type=CategoryType.EXPENSE),
    Category(id="cat_4", name="Transport", color="#F59E0B", type=CategoryType.EXPENSE),
    Category(id="cat_5", name="Housing", color="#6366F1", type=CategoryType.EXPENSE),
    Category(id="cat_6", name="Leisure", color="#EC4899", type=CategoryType.EXPENSE),
    Category(id="cat_7", name="Other Expenses", color="#9CA3AF", type=CategoryType.EXPENSE),
)

DEFAULT_EXPENSE_CATEGORY_ID = "cat_7"


class LedgerSnapshot(LedgerModel):
    """
    The complete exportable state of one ledger.

    Produced and consumed atomically by the storage adapters.
    """

    transactions: list[Transaction] = Field(default_factory=list)
    categories: list[Category] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORIES)
    )
    investments: list[Investment] = Field(default_factory=list)
    theme: Theme = Theme.LIGHT
