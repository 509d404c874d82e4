"""Pending edits and their reconciliation with the dataset store.

An edit is keyed by (region, year) and moves through::

    CLEAN -> STAGED -> COMMITTING -> CLEAN
                          |
                          +-> FAILED (retryable, behaves like STAGED)

A validation failure sends it back to STAGED. Commit is a read-modify-write
of the whole region document and is not transactional: a concurrent writer
between the read and the write is overwritten.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from core.aggregate import AggregateView, aggregate_frame
from core.data import year_frame, year_record
from core.errors import PersistFailure, StoreUnavailable, ValidationFailure
from core.models import EDITABLE_FIELDS, INTEGER_FIELDS, RATE_FIELDS, Region, YearRecord, normalize_field
from core.store import RegionStore

if TYPE_CHECKING:
    from core.session import RegionSnapshot

logger = logging.getLogger(__name__)

EditKey = Tuple[str, int]

FIELD_LABELS = {
    "taxpayers": "Taxpayers",
    "average_tax": "Average Tax",
    "total_tax": "Total Tax",
    "salary_taxpayers": "Salary Taxpayers",
    "e_vat_taxpayers": "E-VAT Taxpayers",
    "other_taxpayers": "Other Taxpayers",
}

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")
_LEADING_FLOAT = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class EditStatus(str, Enum):
    CLEAN = "clean"
    STAGED = "staged"
    COMMITTING = "committing"
    FAILED = "failed"


@dataclass
class PendingEdit:
    region: str
    year: int
    changes: Dict[str, Any] = field(default_factory=dict)
    status: EditStatus = EditStatus.STAGED
    error: Optional[str] = None

    @property
    def key(self) -> EditKey:
        return (self.region, self.year)


@dataclass(frozen=True)
class CommitResult:
    region: Region
    record: YearRecord
    aggregate: AggregateView


# ---------------- Parsing ----------------
def _strip_separators(raw: Any) -> str:
    return str(raw).replace(",", "").strip()


def parse_int(raw: Any) -> int:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return int(raw) if math.isfinite(raw) else 0
    match = _LEADING_INT.match(_strip_separators(raw))
    return int(match.group(0)) if match else 0


def parse_decimal(raw: Any) -> float:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw) if math.isfinite(raw) else 0.0
    match = _LEADING_FLOAT.match(_strip_separators(raw))
    if not match:
        return 0.0
    value = float(match.group(0))
    return value if math.isfinite(value) else 0.0


def parse_field_value(field_name: str, raw: Any) -> Any:
    """Parse user input for one field.

    Compliance is typed as a percentage (``"85"``) and stored as a fraction
    (``0.85``). Counts drop thousand separators and keep the leading integer.
    Anything unparseable becomes 0.
    """
    attr = normalize_field(field_name)
    if attr in RATE_FIELDS:
        return parse_decimal(raw) / 100
    if attr in INTEGER_FIELDS:
        return parse_int(raw)
    return parse_decimal(raw)


def coerce_record_values(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Whole-form values: numbers as entered, compliance already a fraction."""
    out: Dict[str, Any] = {}
    for name, raw in values.items():
        attr = normalize_field(name)
        out[attr] = parse_int(raw) if attr in INTEGER_FIELDS else parse_decimal(raw)
    return out


# ---------------- Validation ----------------
def validate(record: YearRecord) -> List[str]:
    """Every violated rule, in a fixed order, so all of them can be shown at once."""
    errors: List[str] = []
    for attr, label in FIELD_LABELS.items():
        if not math.isfinite(getattr(record, attr)):
            errors.append(f"{label} must be a finite number.")
    if not math.isfinite(record.compliance_rate):
        errors.append("Compliance Rate must be a finite number.")
    for attr, label in FIELD_LABELS.items():
        if getattr(record, attr) < 0:
            errors.append(f"{label} cannot be negative.")
    if record.compliance_rate < 0 or record.compliance_rate > 1:
        errors.append("Compliance Rate must be between 0 and 100%.")
    if record.salary_taxpayers + record.e_vat_taxpayers + record.other_taxpayers > record.taxpayers:
        errors.append("Sum of Salary, E-VAT, and Other Taxpayers cannot exceed Total Taxpayers.")
    return errors


class EditReconciler:
    def __init__(self, store: RegionStore, snapshot: "RegionSnapshot") -> None:
        self.store = store
        self.snapshot = snapshot
        self._pending: Dict[EditKey, PendingEdit] = {}

    # ----- reads -----
    def pending(self, year: Optional[int] = None) -> List[PendingEdit]:
        return [e for e in self._pending.values() if year is None or e.year == year]

    def get(self, region: str, year: int) -> Optional[PendingEdit]:
        return self._pending.get((region, int(year)))

    def status(self, region: str, year: int) -> EditStatus:
        edit = self.get(region, year)
        return edit.status if edit else EditStatus.CLEAN

    def base_record(self, region: str, year: int) -> YearRecord:
        current = self.snapshot.get(region)
        if current is None:
            raise KeyError(f"Unknown region: {region}")
        return year_record(current, int(year))

    def merged_record(self, region: str, year: int) -> YearRecord:
        base = self.base_record(region, year)
        edit = self.get(region, year)
        return base.overlay(edit.changes) if edit else base

    def overrides(self, year: int) -> Dict[str, YearRecord]:
        """Region name -> merged record for every pending edit of ``year``."""
        return {e.region: self.merged_record(e.region, e.year) for e in self.pending(int(year))}

    # ----- writes to pending state -----
    def _edit_for(self, region: str, year: int) -> PendingEdit:
        self.base_record(region, year)
        key = (region, int(year))
        edit = self._pending.get(key)
        if edit is None:
            edit = PendingEdit(region=region, year=int(year))
            self._pending[key] = edit
        edit.status = EditStatus.STAGED
        edit.error = None
        return edit

    def begin(self, region: str, year: int) -> PendingEdit:
        """Start editing a record: seed the edit with every current value."""
        merged = self.merged_record(region, year)
        edit = self._edit_for(region, year)
        edit.changes = {f: getattr(merged, f) for f in EDITABLE_FIELDS}
        return edit

    def stage(self, region: str, year: int, field_name: str, raw_value: Any) -> PendingEdit:
        value = parse_field_value(field_name, raw_value)
        edit = self._edit_for(region, year)
        edit.changes[normalize_field(field_name)] = value
        return edit

    def stage_record(self, region: str, year: int, values: Mapping[str, Any]) -> PendingEdit:
        changes = coerce_record_values(values)
        edit = self._edit_for(region, year)
        edit.changes.update(changes)
        return edit

    def discard(self, region: str, year: int) -> bool:
        return self._pending.pop((region, int(year)), None) is not None

    # ----- persistence -----
    def commit(self, region: str, year: int) -> CommitResult:
        year = int(year)
        edit = self.get(region, year)
        if edit is None:
            raise KeyError(f"No pending edit for {region} {year}")

        candidate = self.merged_record(region, year)
        errors = validate(candidate)
        if errors:
            edit.status = EditStatus.STAGED
            edit.error = " ".join(errors)
            logger.warning("Rejected edit for %s %s: %s", region, year, edit.error)
            raise ValidationFailure(errors)

        edit.status = EditStatus.COMMITTING
        try:
            remote = self.store.fetch_region(region) or Region(name=region)
            updated = remote.with_record(candidate)
            self.store.put_region(updated)
        except StoreUnavailable as exc:
            edit.status = EditStatus.FAILED
            edit.error = "Failed to save changes. Please try again."
            logger.error("Saving %s %s failed: %s", region, year, exc)
            raise PersistFailure(edit.error) from exc
        except Exception:
            edit.status = EditStatus.FAILED
            edit.error = "Failed to save changes. Please try again."
            logger.exception("Unexpected error saving %s %s", region, year)
            raise

        self.snapshot.replace(updated)
        del self._pending[(region, year)]
        logger.info("Committed %s %s", region, year)

        view = aggregate_frame(year_frame(self.snapshot.all(), year, self.overrides(year)), year)
        return CommitResult(region=updated, record=candidate, aggregate=view)
