"""Validation of data read from outside the process."""

from infinance.validation.snapshot import (
    LEGACY_CATEGORY_TYPES,
    LEGACY_TRANSACTION_TYPES,
    SnapshotImporter,
    dumps,
    export_snapshot,
)

__all__ = [
    "LEGACY_CATEGORY_TYPES",
    "LEGACY_TRANSACTION_TYPES",
    "SnapshotImporter",
    "dumps",
    "export_snapshot",
]
