from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional


# Document (camelCase) key -> Python attribute
DOCUMENT_FIELDS = {
    "year": "year",
    "taxpayers": "taxpayers",
    "averageTax": "average_tax",
    "totalTax": "total_tax",
    "salaryTaxpayers": "salary_taxpayers",
    "eVatTaxpayers": "e_vat_taxpayers",
    "otherTaxpayers": "other_taxpayers",
    "complianceRate": "compliance_rate",
}
ATTRIBUTE_FIELDS = {v: k for k, v in DOCUMENT_FIELDS.items()}

INTEGER_FIELDS = ("taxpayers", "salary_taxpayers", "e_vat_taxpayers", "other_taxpayers")
DECIMAL_FIELDS = ("average_tax", "total_tax")
RATE_FIELDS = ("compliance_rate",)
EDITABLE_FIELDS = (
    "taxpayers",
    "average_tax",
    "total_tax",
    "salary_taxpayers",
    "e_vat_taxpayers",
    "other_taxpayers",
    "compliance_rate",
)
SOURCE_FIELDS = ("salary_taxpayers", "e_vat_taxpayers", "other_taxpayers")


def normalize_field(name: str) -> str:
    """Accept either the document key (``eVatTaxpayers``) or the attribute name."""
    attr = DOCUMENT_FIELDS.get(name, name)
    if attr not in EDITABLE_FIELDS:
        raise ValueError(f"Unknown editable field: {name!r}")
    return attr


def _as_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    return int(float(value))


def _as_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


@dataclass(frozen=True)
class YearRecord:
    year: int
    taxpayers: int = 0
    average_tax: float = 0.0
    total_tax: float = 0.0
    salary_taxpayers: int = 0
    e_vat_taxpayers: int = 0
    other_taxpayers: int = 0
    compliance_rate: float = 0.0

    @classmethod
    def zero(cls, year: int) -> "YearRecord":
        return cls(year=int(year))

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "YearRecord":
        values: Dict[str, Any] = {}
        for key, attr in DOCUMENT_FIELDS.items():
            raw = doc.get(key, doc.get(attr))
            if attr == "year" or attr in INTEGER_FIELDS:
                values[attr] = _as_int(raw)
            else:
                values[attr] = _as_float(raw)
        return cls(**values)

    def to_document(self) -> Dict[str, Any]:
        return {ATTRIBUTE_FIELDS[k]: v for k, v in asdict(self).items()}

    def overlay(self, changes: Mapping[str, Any]) -> "YearRecord":
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in changes.items() if k in known and k != "year"})


@dataclass(frozen=True)
class Region:
    name: str
    yearly_data: List[YearRecord] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], *, key: Optional[str] = None) -> "Region":
        name = doc.get("region") or key
        if not name:
            raise ValueError("Region document has no 'region' name")
        records = [YearRecord.from_document(d) for d in (doc.get("yearlyData") or [])]
        return cls(name=str(name), yearly_data=records)

    def to_document(self) -> Dict[str, Any]:
        return {"region": self.name, "yearlyData": [r.to_document() for r in self.yearly_data]}

    @property
    def years(self) -> List[int]:
        return [r.year for r in self.yearly_data]

    def record_for(self, year: int) -> Optional[YearRecord]:
        for record in self.yearly_data:
            if record.year == year:
                return record
        return None

    def with_record(self, record: YearRecord) -> "Region":
        """Replace the record for ``record.year`` in place, or append it when the year is new."""
        updated = [record if r.year == record.year else r for r in self.yearly_data]
        if record.year not in self.years:
            updated.append(record)
        return Region(name=self.name, yearly_data=updated)


def regions_from_documents(docs: List[Mapping[str, Any]]) -> List[Region]:
    return [Region.from_document(d) for d in docs]
