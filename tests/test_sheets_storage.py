"""
Tests for SheetsClient and SheetsStorage.

The Google Sheets API is never contacted: gspread objects are replaced with
Mock(spec=...) instances.
"""

from unittest.mock import Mock, call, patch

import gspread
import pytest
from gspread.exceptions import APIError
from gspread.utils import ValueRenderOption

from gridbook import SpreadsheetDocument
from gridbook.exceptions import StorageError
from gridbook.spreadsheet.address import Address
from gridbook.spreadsheet.model import FormulaKind
from gridbook.spreadsheet.workbook import Workbook
from gridbook.storage.sheets_client import SheetsClient
from gridbook.storage.sheets_storage import MIN_COLS, MIN_ROWS, SheetsStorage


def _api_error(message="Quota exceeded", code=429):
    response = Mock()
    response.json.return_value = {
        "error": {"code": code, "message": message, "status": "RESOURCE_EXHAUSTED"}
    }
    return APIError(response)


class TestSheetsClient:
    """Test Suite for SheetsClient."""

    def test_create_spreadsheet(self):
        """Test create delegates to the gspread client."""
        gc = Mock(spec=gspread.Client)
        spreadsheet = Mock(spec=gspread.Spreadsheet)
        gc.create.return_value = spreadsheet

        assert SheetsClient(gc).create_spreadsheet("Report") is spreadsheet
        gc.create.assert_called_once_with("Report")

    def test_create_spreadsheet_api_error(self):
        """Test APIError is re-raised as StorageError with context."""
        gc = Mock(spec=gspread.Client)
        gc.create.side_effect = _api_error()

        with pytest.raises(StorageError) as exc_info:
            SheetsClient(gc).create_spreadsheet("Report")

        assert "Failed to create spreadsheet" in str(exc_info.value)
        assert "Report" in str(exc_info.value)
        assert "Quota exceeded" in str(exc_info.value)

    def test_open_spreadsheet(self):
        """Test spreadsheets are opened by key."""
        gc = Mock(spec=gspread.Client)
        SheetsClient(gc).open_spreadsheet("abc123")
        gc.open_by_key.assert_called_once_with("abc123")

    def test_add_sheet(self):
        """Test add_sheet passes the size through."""
        gc = Mock(spec=gspread.Client)
        spreadsheet = Mock(spec=gspread.Spreadsheet)
        SheetsClient(gc).add_sheet(spreadsheet, "Data", rows=200, cols=30)
        spreadsheet.add_worksheet.assert_called_once_with(title="Data", rows=200, cols=30)

    def test_batch_updates(self):
        """Test values are written raw and formulas as user input."""
        gc = Mock(spec=gspread.Client)
        worksheet = Mock(spec=gspread.Worksheet)
        client = SheetsClient(gc)

        values = [{"range": "A1:B1", "values": [[1, 2]]}]
        formulas = [{"range": "C1", "values": [["=A1+B1"]]}]
        client.batch_update_values(worksheet, values)
        client.batch_update_formulas(worksheet, formulas)

        assert worksheet.batch_update.call_args_list == [
            call(values),
            call(formulas, raw=False),
        ]

    def test_empty_batches_skip_the_api(self):
        """Test empty update lists make no API call."""
        gc = Mock(spec=gspread.Client)
        worksheet = Mock(spec=gspread.Worksheet)
        client = SheetsClient(gc)
        client.batch_update_values(worksheet, [])
        client.batch_update_formulas(worksheet, [])
        worksheet.batch_update.assert_not_called()

    def test_reads_use_render_options(self):
        """Test values are read unformatted and formulas in formula view."""
        gc = Mock(spec=gspread.Client)
        worksheet = Mock(spec=gspread.Worksheet)
        client = SheetsClient(gc)
        client.read_values(worksheet)
        client.read_formulas(worksheet)

        assert worksheet.get_values.call_args_list == [
            call(value_render_option=ValueRenderOption.unformatted),
            call(value_render_option=ValueRenderOption.formula),
        ]

    def test_merge_api_error(self):
        """Test merge failures are wrapped."""
        gc = Mock(spec=gspread.Client)
        worksheet = Mock(spec=gspread.Worksheet)
        worksheet.merge_cells.side_effect = _api_error("bad range", 400)
        with pytest.raises(StorageError, match="A1:B2"):
            SheetsClient(gc).merge_cells(worksheet, "A1:B2")


@pytest.fixture
def client():
    mock = Mock(spec=SheetsClient)
    spreadsheet = Mock(spec=gspread.Spreadsheet)
    first = Mock(spec=gspread.Worksheet)
    second = Mock(spec=gspread.Worksheet)
    mock.create_spreadsheet.return_value = spreadsheet
    mock.worksheets.return_value = [first]
    mock.add_sheet.return_value = second
    mock.spreadsheet, mock.first, mock.second = spreadsheet, first, second
    return mock


class TestSave:
    """Test Suite for SheetsStorage.save."""

    def _workbook(self):
        workbook = Workbook()
        data = workbook.add_sheet("Data")
        data.set_range("A1", "name")
        data.set_range("B1", 10)
        data.set_formula("C1", "B1*2")
        data.set_range("B3", True)
        data.merge("A5:B5")
        workbook.add_sheet("Empty")
        return workbook

    def test_publishes_sheets(self, client):
        """Test sheet creation, values, formulas and merges."""
        workbook = self._workbook()
        result = SheetsStorage(client, base_delay=0).save(workbook, "Report")

        assert result is client.spreadsheet
        assert workbook.source is client.spreadsheet
        client.create_spreadsheet.assert_called_once_with("Report")
        client.rename_sheet.assert_called_once_with(client.first, "Data")
        client.resize_sheet.assert_called_once_with(client.first, MIN_ROWS, MIN_COLS)
        client.add_sheet.assert_called_once_with(client.spreadsheet, "Empty", MIN_ROWS, MIN_COLS)

        assert client.batch_update_values.call_args_list[0] == call(client.first, [
            {"range": "A1:C1", "values": [["name", 10, None]]},
            {"range": "B3", "values": [[True]]},
        ])
        assert client.batch_update_formulas.call_args_list[0] == call(client.first, [
            {"range": "C1", "values": [["=B1*2"]]},
        ])
        client.merge_cells.assert_called_once_with(client.first, "A5:B5")

    def test_large_sheets_are_sized_to_fit(self, client):
        """Test the first sheet grows to the used range."""
        workbook = Workbook()
        workbook.add_sheet("Big").set_range("AD150", 1)
        SheetsStorage(client, base_delay=0).save(workbook, "Big")
        client.resize_sheet.assert_called_once_with(client.first, 150, 30)

    def test_retry_then_succeed(self, client):
        """Test transient failures are retried."""
        client.create_spreadsheet.side_effect = [StorageError("rate limited"), client.spreadsheet]
        workbook = Workbook()
        workbook.add_sheet("S")

        SheetsStorage(client, max_retries=3, base_delay=0).save(workbook, "T")
        assert client.create_spreadsheet.call_count == 2

    def test_raw_api_errors_are_retried(self, client):
        """Test APIError raised directly is retried too."""
        client.worksheets.side_effect = [_api_error(), [client.first]]
        workbook = Workbook()
        workbook.add_sheet("S")

        SheetsStorage(client, base_delay=0).save(workbook, "T")
        assert client.worksheets.call_count == 2

    def test_retry_exhaustion(self, client):
        """Test persistent failures raise StorageError after max_retries + 1 attempts."""
        cause = StorageError("still failing")
        client.create_spreadsheet.side_effect = cause
        workbook = Workbook()
        workbook.add_sheet("S")

        with pytest.raises(StorageError, match="after 3 attempts") as exc_info:
            SheetsStorage(client, max_retries=2, base_delay=0).save(workbook, "T")

        assert client.create_spreadsheet.call_count == 3
        assert exc_info.value.__cause__ is cause

    def test_backoff_delays(self, client):
        """Test the delay doubles on every retry."""
        client.create_spreadsheet.side_effect = StorageError("down")
        workbook = Workbook()
        workbook.add_sheet("S")

        with patch("gridbook.storage.sheets_storage.time.sleep") as sleep:
            with pytest.raises(StorageError):
                SheetsStorage(client, max_retries=3, base_delay=0.5).save(workbook, "T")

        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0, 2.0]

    def test_other_errors_are_not_retried(self, client):
        """Test programming errors propagate immediately."""
        client.create_spreadsheet.side_effect = TypeError("bad call")
        workbook = Workbook()
        workbook.add_sheet("S")

        with pytest.raises(TypeError):
            SheetsStorage(client, base_delay=0).save(workbook, "T")
        assert client.create_spreadsheet.call_count == 1


class TestLoad:
    """Test Suite for SheetsStorage.load."""

    def _client(self):
        mock = Mock(spec=SheetsClient)
        worksheet = Mock(spec=gspread.Worksheet)
        worksheet.title = "Data"
        mock.open_spreadsheet.return_value = Mock(spec=gspread.Spreadsheet)
        mock.worksheets.return_value = [worksheet]
        mock.read_values.return_value = [["name", 10, 20], ["", 2.5, True]]
        mock.read_formulas.return_value = [["name", 10, "=B1*2"], ["", 2.5, True]]
        return mock

    def test_values_and_formulas(self):
        """Test values keep their type and formulas are detected."""
        workbook = SheetsStorage(self._client(), base_delay=0).load("key123")

        grid = workbook.grid("Data")
        assert grid.get("A1") == "name"
        assert grid.get("B1") == 10
        assert grid.get("B2") == 2.5
        assert grid.get("C2") is True
        assert grid.find_cell(Address(1, 2)) is None

        formula = grid.get_formula("C1")
        assert formula.text == "B1*2"
        assert formula.kind is FormulaKind.NORMAL

    def test_open_through_document(self):
        """Test SpreadsheetDocument can open through SheetsStorage."""
        client = self._client()
        storage = SheetsStorage(client, base_delay=0)
        with SpreadsheetDocument.open("key123", storage=storage) as doc:
            assert doc.sheet_names == ["Data"]
            assert doc.get_value("A1") == "name"
        client.open_spreadsheet.assert_called_once_with("key123")
