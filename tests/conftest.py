"""Shared pytest configuration and fixtures for gridbook tests."""

import openpyxl
import pytest
from openpyxl.styles import Font, PatternFill

from gridbook import SpreadsheetDocument, Workbook


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Include tests marked @pytest.mark.slow (e.g. large grids)",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow (skipped unless --run-slow)")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-slow"):
        return
    skip = pytest.mark.skip(reason="slow test, pass --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def workbook() -> Workbook:
    book = Workbook()
    book.add_sheet("Sheet1")
    book.add_sheet("Sheet2")
    return book


@pytest.fixture
def grid(workbook):
    return workbook.current


@pytest.fixture
def doc() -> SpreadsheetDocument:
    document = SpreadsheetDocument.new("Data", "Summary")
    yield document
    document.dispose()


@pytest.fixture
def sample_xlsx(tmp_path):
    """An xlsx package with two sheets, styles, a merge and a print area."""
    book = openpyxl.Workbook()
    data = book.active
    data.title = "Data"
    data["A1"] = "name"
    data["B1"] = "amount"
    data["A2"] = "alpha"
    data["B2"] = 10
    data["A3"] = "beta"
    data["B3"] = 2.5
    data["C2"] = True
    data["A1"].font = Font(bold=True, color="FFFF0000")
    data["B1"].fill = PatternFill(fill_type="solid", fgColor="FFFFFF00")
    data.merge_cells("D1:E1")
    data.print_area = "A1:C3"

    other = book.create_sheet("It's")
    other["A1"] = "x"

    path = tmp_path / "sample.xlsx"
    book.save(path)
    return path
