"""
Data Models Package

This package contains all Pydantic models used in InFinance.
Every record read from or written to storage conforms to these schemas.
"""

from infinance.models.ledger import (
    COLORS,
    DEFAULT_CATEGORIES,
    DEFAULT_EXPENSE_CATEGORY_ID,
    MAX_DESCRIPTION_LENGTH,
    Category,
    CategoryType,
    ExpenseTransaction,
    IncomeTransaction,
    Investment,
    InvestmentDraft,
    InvestmentTransaction,
    LedgerModel,
    LedgerSnapshot,
    Money,
    Theme,
    Transaction,
    TransactionAdapter,
    TransactionType,
    is_withdrawal,
    new_id,
    parse_transaction,
)
from infinance.models.validation import ImportReport, ValidationIssue

__all__ = [
    "COLORS",
    "DEFAULT_CATEGORIES",
    "DEFAULT_EXPENSE_CATEGORY_ID",
    "MAX_DESCRIPTION_LENGTH",
    "ImportReport",
    "ValidationIssue",
    "Category",
    "CategoryType",
    "ExpenseTransaction",
    "IncomeTransaction",
    "Investment",
    "InvestmentDraft",
    "InvestmentTransaction",
    "LedgerModel",
    "LedgerSnapshot",
    "Money",
    "Theme",
    "Transaction",
    "TransactionAdapter",
    "TransactionType",
    "is_withdrawal",
    "new_id",
    "parse_transaction",
]
