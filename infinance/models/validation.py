"""
Validation Models

Results of checking data that comes from outside the process: snapshot
files, backup imports and cloud documents.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from infinance.models.ledger import LedgerSnapshot


class ValidationIssue(BaseModel):
    """A single problem found while reading external data."""

    field: str = Field(
        ...,
        description="Field (or record path) with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_type', 'invalid_record')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="What was done instead, or what the user can do"
    )


class ImportReport(BaseModel):
    """
    Result of reading a snapshot.

    The snapshot is always usable: every problem was recovered by
    falling back to a per-field default and is listed in `issues`.
    """

    snapshot: LedgerSnapshot
    imported_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="Everything that had to be defaulted or dropped"
    )
    dropped_records: int = Field(
        default=0,
        ge=0,
        description="Records skipped because they failed validation"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_clean(self) -> bool:
        """True when nothing had to be defaulted or dropped."""
        return not self.issues
