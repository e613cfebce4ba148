"""
Tests for SpreadsheetDocument, Pos and PosAttr.

Tests cover:
- Target forms accepted by set_value/get_value
- open/save/dispose lifecycle and use-after-dispose errors
- Range handles: values, text, appearance, copy/paste, merge
- Pass-through operations (print area, row deletion, shared formulas)
"""

from unittest.mock import Mock

import pytest

from gridbook import DocumentOptions, SpreadsheetDocument
from gridbook.exceptions import (
    InvalidAddressError,
    InvalidArgumentError,
    OpenFailedError,
    SheetNotFoundError,
    StorageError,
    UseAfterDisposeError,
)
from gridbook.spreadsheet.address import Address, decode
from gridbook.spreadsheet.styles import Alignment, Border, BorderLine
from gridbook.spreadsheet.workbook import CalculationMode, Workbook


class TestTargets:
    """Test Suite for the set_value/get_value target forms."""

    def test_column_row(self, doc):
        """Test set_value(col, row, value)."""
        doc.set_value(2, 3, "x")
        assert doc.get_value("B3") == "x"
        assert doc.get_value(2, 3) == "x"

    def test_block_coordinates(self, doc):
        """Test set_value(sx, sy, ex, ey, value) fills the block."""
        doc.set_value(1, 1, 2, 2, 5)
        assert [doc.get_value(a) for a in ("A1", "B1", "A2", "B2")] == [5, 5, 5, 5]
        assert doc.get_value("C1") is None

    def test_address_text(self, doc):
        """Test single addresses and range text."""
        doc.set_value("B2", 7)
        doc.set_value("D1:D3", "y")
        assert doc.get_value("B2") == 7
        assert doc.get_value("D3") == "y"

    def test_address_with_offset(self, doc):
        """Test set_value(address, cx, cy, value) moves the target."""
        doc.set_value("B2", 1, 2, 9)
        assert doc.get_value("C4") == 9
        assert doc.get_value("B2", 1, 2) == 9

    def test_offset_outside_sheet(self, doc):
        """Test offsets that leave the sheet are rejected."""
        with pytest.raises(InvalidAddressError):
            doc.set_value("A1", -1, 0, 1)

    def test_as_text(self, doc):
        """Test as_text keeps number-like text."""
        doc.set_value("A1", "00123", as_text=True)
        doc.set_value("A2", 123, as_text=True)
        assert doc.get_value("A1") == "00123"
        assert doc.get_value("A2") == "123"

    @pytest.mark.parametrize("args", [("A1",), (1.5, 2, "x"), (1, 2, 3, "x")])
    def test_unrecognised_forms(self, doc, args):
        """Test target forms that cannot be interpreted."""
        with pytest.raises(InvalidArgumentError):
            doc.set_value(*args)

    def test_writes_go_to_active_sheet(self, doc):
        """Test values land on the selected sheet."""
        doc.select_sheet("Summary")
        doc.set_value("A1", "total")
        assert doc.workbook.grid("Summary").get("A1") == "total"
        assert doc.workbook.grid("Data").get("A1") is None

    def test_select_unknown_sheet(self, doc):
        """Test selecting a missing sheet fails."""
        with pytest.raises(SheetNotFoundError):
            doc.select_sheet("summary")
        assert doc.sheet_names == ["Data", "Summary"]


class TestLifecycle:
    """Test Suite for open/save/dispose."""

    def test_new_uses_default_sheet_name(self):
        """Test new() without names creates one default sheet."""
        document = SpreadsheetDocument.new(options=DocumentOptions(default_sheet_name="Main"))
        assert document.sheet_names == ["Main"]
        document.dispose()

    def test_dispose_is_idempotent(self, doc):
        """Test dispose can be called repeatedly."""
        doc.dispose()
        doc.dispose()
        assert doc.disposed

    @pytest.mark.parametrize("call", [
        lambda d: d.set_value("A1", 1),
        lambda d: d.get_value("A1"),
        lambda d: d.select_sheet(0),
        lambda d: d.pos(1, 1),
        lambda d: d.workbook,
        lambda d: d.load("anything.xlsx"),
        lambda d: d.save(save=False),
    ])
    def test_use_after_dispose(self, doc, call):
        """Test every operation fails once the document is released."""
        doc.dispose()
        with pytest.raises(UseAfterDisposeError):
            call(doc)

    def test_pos_handle_fails_after_dispose(self, doc):
        """Test a handle taken before dispose cannot be used afterwards."""
        handle = doc.pos(1, 1)
        doc.dispose()
        with pytest.raises(UseAfterDisposeError):
            handle.value = 3

    def test_save_without_destination(self, doc):
        """Test saving with no path fails but still releases the document."""
        with pytest.raises(InvalidArgumentError):
            doc.save()
        assert doc.disposed

    def test_save_false_does_not_write(self):
        """Test save(save=False) releases without touching storage."""
        storage = Mock()
        document = SpreadsheetDocument.new("S", storage=storage)
        document.save(save=False)
        storage.save.assert_not_called()
        assert document.disposed

    def test_save_passes_workbook_and_target(self):
        """Test save writes through the storage backend."""
        storage = Mock()
        document = SpreadsheetDocument.new("S", storage=storage)
        workbook = document.workbook
        document.save(target="out.xlsx")
        storage.save.assert_called_once_with(workbook, "out.xlsx")

    def test_save_failure_still_disposes(self):
        """Test storage errors propagate after the document is released."""
        storage = Mock()
        storage.save.side_effect = StorageError("disk full")
        document = SpreadsheetDocument.new("S", storage=storage)
        with pytest.raises(StorageError):
            document.save(target="out.xlsx")
        assert document.disposed

    def test_finalize_alias(self):
        """Test finalize behaves like save."""
        storage = Mock()
        document = SpreadsheetDocument.new("S", storage=storage)
        document.finalize(target="x.xlsx")
        storage.save.assert_called_once()
        assert document.disposed

    def test_context_manager_disposes(self):
        """Test leaving a with block releases the document."""
        with SpreadsheetDocument.new("S") as document:
            document.set_value("A1", 1)
        assert document.disposed

    def test_open_failure_is_wrapped(self):
        """Test storage errors on open become OpenFailedError."""
        storage = Mock()
        storage.load.side_effect = StorageError("bad package")
        with pytest.raises(OpenFailedError, match="bad package"):
            SpreadsheetDocument.open("broken.xlsx", storage=storage)

    def test_open_missing_file(self, tmp_path):
        """Test opening a file that does not exist."""
        with pytest.raises(OpenFailedError):
            SpreadsheetDocument.open(tmp_path / "missing.xlsx")

    def test_open_non_package(self, tmp_path):
        """Test opening a file that is not an xlsx package."""
        path = tmp_path / "junk.xlsx"
        path.write_bytes(b"this is not a zip file")
        with pytest.raises(OpenFailedError):
            SpreadsheetDocument.open(path)

    def test_save_and_reopen(self, tmp_path):
        """Test values survive a save through the default storage."""
        path = tmp_path / "book.xlsx"
        document = SpreadsheetDocument.new("Data")
        document.set_value("A1", "hello")
        document.set_value("B2", 3.5)
        document.save(target=path)

        with SpreadsheetDocument.open(path) as reopened:
            assert reopened.sheet_names == ["Data"]
            assert reopened.get_value("A1") == "hello"
            assert reopened.get_value("B2") == 3.5
            assert reopened.path == path

    def test_load_replaces_workbook(self):
        """Test load swaps in the storage's workbook and clears the clipboard."""
        loaded = Workbook()
        loaded.add_sheet("Loaded")
        storage = Mock()
        storage.load.return_value = loaded

        document = SpreadsheetDocument.new("S", storage=storage)
        document.pos(1, 1).copy()
        document.load("other.xlsx")

        assert document.workbook is loaded
        assert document.clipboard is None
        assert document.path == "other.xlsx"


class TestPos:
    """Test Suite for Pos handles."""

    def test_value_reads_top_left_writes_all(self, doc):
        """Test block reads and writes."""
        block = doc.pos(1, 1, 2, 2)
        block.value = 10
        doc.set_value("A1", 1)
        assert block.value == 1
        assert doc.get_value("B2") == 10

    def test_str_stores_text(self, doc):
        """Test str assignments are stored as text."""
        handle = doc.pos(1, 1)
        handle.str = 42
        assert handle.value == "42"
        assert handle.str == "42"

    def test_cell_with_offset(self, doc):
        """Test cell() moves the address."""
        doc.cell("A1", 1, 1).value = 3
        assert doc.get_value("B2") == 3

    def test_repr(self, doc):
        """Test the handle shows its range."""
        assert repr(doc.pos(1, 1, 2, 3)) == "Pos('A1:B3')"

    def test_copy_paste(self, doc):
        """Test copy then paste reproduces value and format."""
        source = doc.pos(1, 1)
        source.str = "007"
        source.attr.back_color = "#FF0000"

        source.copy()
        doc.pos(3, 3, 4, 4).paste()

        grid = doc.workbook.current
        src_cell = grid.find_cell(Address(1, 1))
        for ref in ("C3", "D3", "C4", "D4"):
            assert doc.get_value(ref) == "007"
            assert grid.find_cell(decode(ref)).format_id == src_cell.format_id

    def test_paste_without_copy(self, doc):
        """Test paste with an empty clipboard changes nothing."""
        doc.pos(1, 1).paste()
        assert doc.workbook.current.rows == ()

    def test_merge(self, doc):
        """Test merging through a handle."""
        assert doc.pos(1, 1, 2, 1).merge() is True
        assert doc.pos(1, 1, 2, 1).merge() is False
        assert doc.pos(3, 3).merge() is False

    def test_handle_stays_on_its_sheet(self, doc):
        """Test a handle keeps writing to the sheet it was created on."""
        handle = doc.pos(1, 1)
        doc.select_sheet("Summary")
        handle.value = 5
        handle.attr.back_color = "FF0000"

        assert doc.get_value("A1") is None
        doc.select_sheet("Data")
        assert doc.get_value("A1") == 5
        assert doc.pos(1, 1).attr.back_color == "FFFF0000"


class TestPosAttr:
    """Test Suite for PosAttr appearance properties."""

    def test_back_color(self, doc):
        """Test background colour is applied to every cell."""
        block = doc.pos(1, 1, 2, 1)
        assert block.attr.back_color is None
        block.attr.back_color = "#FFFF00"
        assert doc.pos(2, 1).attr.back_color == "FFFFFF00"

    def test_painting_twice_does_not_grow_styles(self, doc):
        """Test repeated identical paints reuse one format."""
        doc.pos(1, 1).attr.back_color = "FFFF00"
        size = len(doc.workbook.styles.formats)
        doc.pos(5, 5).attr.back_color = "#ffff00"
        assert len(doc.workbook.styles.formats) == size

    def test_font_color_keeps_background(self, doc):
        """Test font colour and background combine."""
        handle = doc.pos(1, 1)
        handle.attr.back_color = "00FF00"
        handle.attr.font_color = (255, 0, 0)
        assert handle.attr.back_color == "FF00FF00"
        assert handle.attr.font_color == "FFFF0000"

    def test_number_format(self, doc):
        """Test number format changes and empty codes are ignored."""
        handle = doc.pos(1, 1)
        assert handle.attr.number_format == "General"
        handle.attr.number_format = "0.00"
        size = len(doc.workbook.styles.formats)
        handle.attr.number_format = ""
        assert handle.attr.number_format == "0.00"
        assert len(doc.workbook.styles.formats) == size

    def test_alignment_and_border(self, doc):
        """Test alignment and border properties."""
        handle = doc.pos(2, 2)
        handle.attr.alignment = Alignment(horizontal="center")
        handle.attr.border = Border.outline(BorderLine.THIN)
        assert handle.attr.alignment.horizontal == "center"
        assert handle.attr.border.bottom.line is BorderLine.THIN

    def test_invalid_color(self, doc):
        """Test malformed colours are rejected."""
        with pytest.raises(InvalidArgumentError):
            doc.pos(1, 1).attr.back_color = "not a colour"


class TestPassThrough:
    """Test Suite for workbook operations exposed on the document."""

    def test_print_area(self, doc):
        """Test print area from coordinates."""
        defined = doc.set_print_area(1, 1, 4, 20)
        assert defined.text == "'Data'!$A$1:$D$20"

    def test_delete_rows(self, doc):
        """Test row deletion on the active sheet."""
        for row in range(1, 6):
            doc.set_value(1, row, row)
        doc.delete_rows(1, 2)
        assert [doc.get_value(1, r) for r in (1, 2, 3, 4)] == [1, 4, 5, None]
        assert doc.workbook.calculation.full_calc_on_load

    def test_calculation_mode(self, doc):
        """Test switching the calculation mode."""
        doc.set_calculation_mode(CalculationMode.MANUAL)
        assert doc.workbook.calculation.mode is CalculationMode.MANUAL

    def test_shared_formula_export(self, doc, tmp_path):
        """Test shared-formula listing and CSV export."""
        doc.workbook.current.set_formula("B1", "A1*2", share_id=0, reference="B1:B2")
        assert [r.cell for r in doc.shared_formulas()] == ["B1"]
        assert doc.export_shared_formulas_csv(tmp_path / "out.csv") == 1
