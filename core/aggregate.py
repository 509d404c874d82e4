from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from core.data import source_frame, year_frame
from core.models import Region


@dataclass(frozen=True)
class AggregateView:
    year: int
    total_taxpayers: int = 0
    total_tax: float = 0.0
    average_tax: float = 0.0
    compliance_rate: float = 0.0


@dataclass(frozen=True)
class SourceBreakdown:
    salary: int = 0
    e_vat: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.salary + self.e_vat + self.other


def aggregate_frame(frame: pd.DataFrame, year: int) -> AggregateView:
    """National totals for one year's rows.

    The compliance rate is weighted by taxpayer count so regions with few
    taxpayers cannot dominate the headline figure.
    """
    if frame.empty:
        return AggregateView(year=year)
    total_taxpayers = int(frame["taxpayers"].sum())
    total_tax = float(frame["total_tax"].sum())
    if total_taxpayers <= 0:
        return AggregateView(year=year, total_taxpayers=total_taxpayers, total_tax=total_tax)
    weighted = float((frame["compliance_rate"] * frame["taxpayers"]).sum())
    return AggregateView(
        year=year,
        total_taxpayers=total_taxpayers,
        total_tax=total_tax,
        average_tax=total_tax / total_taxpayers,
        compliance_rate=weighted / total_taxpayers,
    )


def aggregate(regions: Iterable[Region], year: int) -> AggregateView:
    return aggregate_frame(year_frame(regions, year), year)


def aggregate_by_source(regions: Iterable[Region]) -> SourceBreakdown:
    # Cumulative over every year of every region, not the selected year.
    frame = source_frame(regions)
    if frame.empty:
        return SourceBreakdown()
    return SourceBreakdown(
        salary=int(frame["salary_taxpayers"].sum()),
        e_vat=int(frame["e_vat_taxpayers"].sum()),
        other=int(frame["other_taxpayers"].sum()),
    )
