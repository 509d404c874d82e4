"""CSV export of the filtered region tables.

This is a report writer, not a general CSV encoder: region names are wrapped
in double quotes and nothing else is escaped.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from core.data import format_percent_1, format_plain_number
from core.errors import EmptyExportFailure


Row = Mapping[str, Any]


@dataclass(frozen=True)
class Column:
    header: str
    accessor: Callable[[Row], str]


def quoted(key: str) -> Callable[[Row], str]:
    return lambda row: f'"{row[key]}"'


def number(key: str) -> Callable[[Row], str]:
    return lambda row: format_plain_number(row[key])


def percent(key: str) -> Callable[[Row], str]:
    return lambda row: format_percent_1(row[key])


def plain(key: str) -> Callable[[Row], str]:
    return lambda row: str(row[key])


TAXPAYER_COLUMNS = [
    Column("Region", quoted("region")),
    Column("Year", plain("year")),
    Column("Taxpayers", number("taxpayers")),
    Column("Avg. Tax (GHS)", number("average_tax")),
    Column("Total Tax (GHS)", number("total_tax")),
    Column("Salary Taxpayers", number("salary_taxpayers")),
    Column("eVAT Taxpayers", number("e_vat_taxpayers")),
    Column("Other Taxpayers", number("other_taxpayers")),
    Column("Compliance (%)", percent("compliance_rate")),
]

REGIONAL_COLUMNS = [
    Column("Region", quoted("region")),
    Column("Year", plain("year")),
    Column("Taxpayers", number("taxpayers")),
    Column("Avg. Tax (GHS)", number("average_tax")),
    Column("Total Tax (GHS)", number("total_tax")),
    Column("Compliance (%)", percent("compliance_rate")),
    Column("Salary (%)", percent("salary_share")),
    Column("E-VAT (%)", percent("e_vat_share")),
]

SOURCE_COLUMNS = [
    Column("Region", quoted("region")),
    Column("Salary Taxpayers", number("salary_taxpayers")),
    Column("E-VAT Taxpayers", number("e_vat_taxpayers")),
    Column("Other Taxpayers", number("other_taxpayers")),
]

# report name -> (columns, whether the filename carries the selected year)
REPORTS: Dict[str, Tuple[List[Column], bool]] = {
    "taxpayer_data": (TAXPAYER_COLUMNS, True),
    "regional_tax_data": (REGIONAL_COLUMNS, True),
    "tax_source_breakdown": (SOURCE_COLUMNS, False),
}


def _records(rows: pd.DataFrame | Sequence[Row]) -> List[Row]:
    if isinstance(rows, pd.DataFrame):
        return rows.to_dict(orient="records")
    return list(rows)


def to_csv(rows: pd.DataFrame | Sequence[Row], columns: Sequence[Column]) -> str:
    records = _records(rows)
    if not records:
        raise EmptyExportFailure()
    lines = [",".join(c.header for c in columns)]
    lines.extend(",".join(c.accessor(r) for c in columns) for r in records)
    return "\n".join(lines)


def export_filename(report: str, year: Optional[int] = None, today: Optional[dt.date] = None) -> str:
    today = today or dt.date.today()
    parts = [report] + ([str(year)] if year is not None else []) + [today.isoformat()]
    return "_".join(parts) + ".csv"


def export_report(
    report: str,
    rows: pd.DataFrame | Sequence[Row],
    *,
    year: Optional[int] = None,
    today: Optional[dt.date] = None,
) -> Tuple[str, str]:
    """Return ``(filename, csv_text)`` for one of the named reports."""
    if report not in REPORTS:
        raise KeyError(f"Unknown report: {report}")
    columns, with_year = REPORTS[report]
    content = to_csv(rows, columns)
    return export_filename(report, year if with_year else None, today), content
