from __future__ import annotations

import datetime as dt

import pytest

from core.data import format_plain_number, year_frame
from core.errors import EmptyExportFailure
from core.export import SOURCE_COLUMNS, export_filename, export_report, to_csv

TODAY = dt.date(2025, 3, 14)


def test_plain_number_formatting():
    assert format_plain_number(1470000.0) == "1470000"
    assert format_plain_number(250.5) == "250.5"
    assert format_plain_number(1.23456) == "1.235"
    assert format_plain_number(None) == "0"


def test_taxpayer_report(store):
    rows = year_frame(store.fetch_all(), 2025)
    filename, content = export_report("taxpayer_data", rows, year=2025, today=TODAY)
    lines = content.split("\n")
    assert filename == "taxpayer_data_2025_2025-03-14.csv"
    assert lines[0] == (
        "Region,Year,Taxpayers,Avg. Tax (GHS),Total Tax (GHS),Salary Taxpayers,"
        "eVAT Taxpayers,Other Taxpayers,Compliance (%)"
    )
    assert lines[1] == '"Ashanti",2025,1000,250,250000,500,300,200,90.0'
    assert len(lines) == 4


def test_regional_report_has_shares(store):
    rows = year_frame(store.fetch_all(), 2025)
    _, content = export_report("regional_tax_data", rows, year=2025, today=TODAY)
    assert content.split("\n")[3] == '"Volta",2025,200,100,20000,40.0,50.0,25.0'


def test_source_report_filename_has_no_year():
    rows = [{"region": "Volta", "salary_taxpayers": 150, "e_vat_taxpayers": 100, "other_taxpayers": 70}]
    filename, content = export_report("tax_source_breakdown", rows, year=2025, today=TODAY)
    assert filename == "tax_source_breakdown_2025-03-14.csv"
    assert content == 'Region,Salary Taxpayers,E-VAT Taxpayers,Other Taxpayers\n"Volta",150,100,70'


def test_empty_export_fails():
    with pytest.raises(EmptyExportFailure, match="No data to export!"):
        to_csv([], SOURCE_COLUMNS)


def test_unknown_report():
    with pytest.raises(KeyError):
        export_report("nope", [{"region": "x"}])


def test_export_filename_defaults_to_today():
    assert export_filename("taxpayer_data", 2024).endswith(dt.date.today().isoformat() + ".csv")
