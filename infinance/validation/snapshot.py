"""
Snapshot Import and Export

DESIGN DECISION: Loading a snapshot never fails as a whole.

Snapshots come from places we do not control: a local file that may have
been edited by hand, a backup exported by an older version of the app, a
cloud document written by another client. Each top-level field is read on
its own and falls back to its default when missing or of the wrong type:

    transactions -> []
    categories   -> DEFAULT_CATEGORIES
    investments  -> []
    theme        -> light

Individual records that fail validation are dropped, never repaired. The
one exception is an overlong description, which is cut to the limit.
Every fallback and every dropped record is reported as a ValidationIssue.

Backups produced by the earlier (Portuguese) version of the app are read
as well: their transaction and category types and the `isResgate` flag
are mapped onto the current schema.
"""

import json
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from infinance.models.ledger import (
    DEFAULT_CATEGORIES,
    MAX_DESCRIPTION_LENGTH,
    Category,
    Investment,
    LedgerSnapshot,
    Theme,
    parse_transaction,
)
from infinance.models.validation import ImportReport, ValidationIssue


LEGACY_TRANSACTION_TYPES = {
    "entrada": "income",
    "gasto": "expense",
    "investimento": "investment",
}

LEGACY_CATEGORY_TYPES = {
    "entrada": "income",
    "gasto": "expense",
}


def export_snapshot(snapshot: LedgerSnapshot) -> dict:
    """Snapshot as the flat JSON-compatible dict used for storage and backups."""
    return snapshot.to_document()


def dumps(snapshot: LedgerSnapshot) -> str:
    return json.dumps(export_snapshot(snapshot), ensure_ascii=False, indent=2)


def _map_type(data: dict, legacy: dict[str, str]) -> dict:
    """Map legacy type names onto the current ones."""
    record_type = data.get("type")
    if isinstance(record_type, str) and record_type in legacy:
        data = {**data, "type": legacy[record_type]}
    return data


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else first.get("msg", str(error))


def _parse_category(item: dict, field: str, issues: list[ValidationIssue]) -> Category:
    return Category.model_validate(_map_type(item, LEGACY_CATEGORY_TYPES))


def _parse_investment(item: dict, field: str, issues: list[ValidationIssue]) -> Investment:
    return Investment.model_validate(item)


def _parse_transaction(item: dict, field: str, issues: list[ValidationIssue]):
    """
    Validate one transaction record.

    A description over the length limit is cut and reported; the record
    is kept.
    """
    data = _map_type(item, LEGACY_TRANSACTION_TYPES)
    description = data.get("description")
    if isinstance(description, str) and len(description) > MAX_DESCRIPTION_LENGTH:
        data = {**data, "description": description[:MAX_DESCRIPTION_LENGTH]}
        issues.append(ValidationIssue(
            field=f"{field}.description",
            issue_type="truncated",
            message=f"Description longer than {MAX_DESCRIPTION_LENGTH} characters",
            severity="warning",
            suggested_fix=f"Kept the first {MAX_DESCRIPTION_LENGTH} characters",
        ))
    return parse_transaction(data)


class SnapshotImporter:
    """
    Reads raw snapshot data into a LedgerSnapshot.

    Usage:
        report = SnapshotImporter().load(json.loads(text))
        snapshot = report.snapshot
    """

    def __init__(self, default_theme: Theme = Theme.LIGHT):
        self._default_theme = Theme(default_theme)

    def load(self, raw: Any) -> ImportReport:
        """Read a decoded JSON value, defaulting per field."""
        issues: list[ValidationIssue] = []

        if not isinstance(raw, dict):
            issues.append(ValidationIssue(
                field="snapshot",
                issue_type="invalid_type",
                message=f"Snapshot must be an object, got {type(raw).__name__}",
                severity="error",
                suggested_fix="Started from an empty ledger",
            ))
            return ImportReport(
                snapshot=LedgerSnapshot(theme=self._default_theme),
                issues=issues,
            )

        dropped = 0

        transactions, count = self._load_records(
            raw, "transactions", _parse_transaction,
            default=list, issues=issues,
        )
        dropped += count

        categories, count = self._load_records(
            raw, "categories", _parse_category,
            default=lambda: list(DEFAULT_CATEGORIES), issues=issues,
        )
        dropped += count

        investments, count = self._load_records(
            raw, "investments", _parse_investment,
            default=list, issues=issues,
        )
        dropped += count

        theme = self._load_theme(raw.get("theme"), issues)

        snapshot = LedgerSnapshot(
            transactions=transactions,
            categories=categories,
            investments=investments,
            theme=theme,
        )
        return ImportReport(snapshot=snapshot, issues=issues, dropped_records=dropped)

    def loads(self, text: Optional[Union[str, bytes]]) -> ImportReport:
        """Read JSON text or UTF-8 bytes. Undecodable input yields an empty ledger."""
        if not text:
            return self.load({})
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as e:
                return self._unreadable(f"Snapshot is not valid UTF-8: {e}")
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            return self._unreadable(f"Snapshot is not valid JSON: {e}")
        return self.load(raw)

    def _unreadable(self, message: str) -> ImportReport:
        return ImportReport(
            snapshot=LedgerSnapshot(theme=self._default_theme),
            issues=[ValidationIssue(
                field="snapshot",
                issue_type="invalid_format",
                message=message,
                severity="error",
                suggested_fix="Started from an empty ledger",
            )],
        )

    def _load_records(
        self,
        raw: dict,
        key: str,
        parse: Callable[[dict, str, list[ValidationIssue]], Any],
        default: Callable[[], list],
        issues: list[ValidationIssue],
    ) -> tuple[list, int]:
        """Parse one top-level list, dropping the records that do not validate."""
        if key not in raw or raw[key] is None:
            issues.append(ValidationIssue(
                field=key,
                issue_type="missing",
                message=f"'{key}' is missing",
                severity="info",
                suggested_fix="Used the default value",
            ))
            return default(), 0

        items = raw[key]
        if not isinstance(items, list):
            issues.append(ValidationIssue(
                field=key,
                issue_type="invalid_type",
                message=f"'{key}' must be a list, got {type(items).__name__}",
                severity="warning",
                suggested_fix="Used the default value",
            ))
            return default(), 0

        records = []
        dropped = 0
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                message = f"Record is not an object: {item!r}"
            else:
                try:
                    records.append(parse(item, f"{key}[{index}]", issues))
                    continue
                except ValidationError as e:
                    message = _describe(e)
            dropped += 1
            issues.append(ValidationIssue(
                field=f"{key}[{index}]",
                issue_type="invalid_record",
                message=message,
                severity="warning",
                suggested_fix="Record skipped",
            ))
        return records, dropped

    def _load_theme(self, value: Any, issues: list[ValidationIssue]) -> Theme:
        if value is None:
            return self._default_theme
        try:
            return Theme(value)
        except ValueError:
            issues.append(ValidationIssue(
                field="theme",
                issue_type="invalid_value",
                message=f"Unknown theme: {value!r}",
                severity="warning",
                suggested_fix=f"Used '{self._default_theme.value}'",
            ))
            return self._default_theme
