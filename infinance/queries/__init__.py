"""Report and chart queries over the ledger."""

from infinance.queries.report import (
    ChartQuery,
    ChartSlice,
    ReportBuilder,
    ReportQuery,
    ReportResult,
    ReportRow,
)

__all__ = [
    "ChartQuery",
    "ChartSlice",
    "ReportBuilder",
    "ReportQuery",
    "ReportResult",
    "ReportRow",
]
