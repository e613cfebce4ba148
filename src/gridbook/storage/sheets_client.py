"""
Google Sheets API client wrapper.

This module provides a thin interface to the Google Sheets API via gspread,
wrapping API failures in StorageError for the operations SheetsStorage needs.
"""

from typing import Any, Dict, List

import gspread
from gspread.exceptions import APIError
from gspread.utils import ValueRenderOption

from gridbook.exceptions import StorageError


class SheetsClient:
    """
    A wrapper around an authenticated gspread client.

    Attributes:
        gc: The authenticated gspread client instance
    """

    def __init__(self, gc: gspread.Client) -> None:
        """
        Initialize the client.

        Args:
            gc: An authenticated gspread client, e.g. from ``gspread.service_account()``
                or ``gspread.oauth()``.
        """
        self.gc = gc

    def create_spreadsheet(self, title: str) -> gspread.Spreadsheet:
        try:
            return self.gc.create(title)
        except APIError as e:
            raise StorageError(f"Failed to create spreadsheet '{title}': {e}") from e

    def open_spreadsheet(self, key: str) -> gspread.Spreadsheet:
        try:
            return self.gc.open_by_key(key)
        except APIError as e:
            raise StorageError(f"Failed to open spreadsheet '{key}': {e}") from e

    def worksheets(self, spreadsheet: gspread.Spreadsheet) -> List[gspread.Worksheet]:
        try:
            return spreadsheet.worksheets()
        except APIError as e:
            raise StorageError(f"Failed to list worksheets: {e}") from e

    def add_sheet(
        self,
        spreadsheet: gspread.Spreadsheet,
        name: str,
        rows: int = 1000,
        cols: int = 26
    ) -> gspread.Worksheet:
        """
        Add a new worksheet (tab) to an existing spreadsheet.

        Raises:
            StorageError: If the API call fails
        """
        try:
            return spreadsheet.add_worksheet(title=name, rows=rows, cols=cols)
        except APIError as e:
            raise StorageError(
                f"Failed to add worksheet '{name}' to spreadsheet: {e}"
            ) from e

    def rename_sheet(self, worksheet: gspread.Worksheet, name: str) -> None:
        try:
            worksheet.update_title(name)
        except APIError as e:
            raise StorageError(f"Failed to rename worksheet to '{name}': {e}") from e

    def resize_sheet(self, worksheet: gspread.Worksheet, rows: int, cols: int) -> None:
        try:
            worksheet.resize(rows=rows, cols=cols)
        except APIError as e:
            raise StorageError(f"Failed to resize worksheet to {rows}x{cols}: {e}") from e

    def batch_update_values(
        self,
        worksheet: gspread.Worksheet,
        updates: List[Dict[str, Any]]
    ) -> None:
        """
        Write several value ranges as raw values (no parsing of text).

        Args:
            worksheet: The worksheet to write to
            updates: List of dictionaries with 'range' and 'values' keys

        Raises:
            StorageError: If the API call fails
        """
        if not updates:
            return

        try:
            worksheet.batch_update(updates)
        except APIError as e:
            raise StorageError(
                f"Failed to batch update {len(updates)} value ranges: {e}"
            ) from e

    def batch_update_formulas(
        self,
        worksheet: gspread.Worksheet,
        updates: List[Dict[str, Any]]
    ) -> None:
        """
        Write several formulas as user-entered input.

        Raises:
            StorageError: If the API call fails
        """
        if not updates:
            return

        try:
            worksheet.batch_update(updates, raw=False)
        except APIError as e:
            raise StorageError(
                f"Failed to batch update {len(updates)} formulas: {e}"
            ) from e

    def merge_cells(self, worksheet: gspread.Worksheet, range_name: str) -> None:
        try:
            worksheet.merge_cells(range_name)
        except APIError as e:
            raise StorageError(f"Failed to merge range '{range_name}': {e}") from e

    def read_values(self, worksheet: gspread.Worksheet) -> List[List[Any]]:
        """Read the whole sheet as unformatted values (numbers stay numbers)."""
        try:
            return worksheet.get_values(value_render_option=ValueRenderOption.unformatted)
        except APIError as e:
            raise StorageError(f"Failed to read worksheet '{worksheet.title}': {e}") from e

    def read_formulas(self, worksheet: gspread.Worksheet) -> List[List[Any]]:
        """Read the whole sheet with formulas in place of their results."""
        try:
            return worksheet.get_values(value_render_option=ValueRenderOption.formula)
        except APIError as e:
            raise StorageError(
                f"Failed to read formulas of worksheet '{worksheet.title}': {e}"
            ) from e
