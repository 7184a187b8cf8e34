"""Pin the sheet payload contract: padding, placeholders, record counts, determinism."""

import json
import re
from datetime import datetime

import pytest

from bconfig.errors import SheetNotFoundError, WorkbookNotFoundError, WorkbookReadError
from bconfig.utils import cell_text, has_value, json_cell, truncate
from bconfig.workbook_reader import WorkbookStore

from conftest import write_workbook


def _store_for(tmp_path, sheets):
    write_workbook(tmp_path / "CS.xlsx", sheets)
    return WorkbookStore(tmp_path, files={"CS": "CS.xlsx"})


# =============================================================================
# COLUMNS
# =============================================================================

class TestColumns:
    def test_columns_padded_by_three(self, store):
        data = store.read_sheet("CS", "Limits")
        assert data.columns == [
            "Screen Label", "Description", "Destination",
            "Column 4", "Column 5", "Column 6",
        ]

    def test_blank_header_synthesized_by_position(self, tmp_path):
        store = _store_for(tmp_path, {"S": [["Name", None, "Value"], ["a", "b", "c"]]})
        columns = store.read_sheet("CS", "S").columns
        assert columns[:3] == ["Name", "Column 2", "Value"]
        assert len(columns) == 6

    def test_whitespace_header_counts_as_blank(self, tmp_path):
        store = _store_for(tmp_path, {"S": [["  ", "Value"], ["a", "b"]]})
        assert store.read_sheet("CS", "S").columns[0] == "Column 1"

    def test_duplicate_headers_made_unique(self, tmp_path):
        store = _store_for(tmp_path, {"S": [["Label", "Label"], ["a", "b"]]})
        columns = store.read_sheet("CS", "S").columns
        assert columns == ["Label", "Label (2)", "Column 3", "Column 4", "Column 5"]
        assert len(set(columns)) == len(columns)

    def test_empty_sheet_has_four_columns(self, tmp_path):
        store = _store_for(tmp_path, {"Empty": []})
        data = store.read_sheet("CS", "Empty")
        assert data.columns == ["Column 1", "Column 2", "Column 3", "Column 4"]
        assert data.records == 0


# =============================================================================
# ROWS & RECORDS
# =============================================================================

class TestRows:
    def test_rows_padded_by_three(self, store):
        data = store.read_sheet("CS", "Limits")
        assert len(data.rows) == 4
        assert data.records == 1

    def test_every_row_has_every_column(self, store):
        data = store.read_sheet("BC", "Accounts")
        for row in data.rows:
            assert list(row.keys()) == data.columns

    def test_blank_cells_become_placeholder(self, store):
        data = store.read_sheet("CS", "Limits")
        first = data.rows[0]
        assert first["Screen Label"] == "Daily Withdrawal Limit"
        assert first["Column 4"] == "-"
        assert all(value == "-" for value in data.rows[-1].values())

    def test_whitespace_only_row_is_not_a_record(self, tmp_path):
        store = _store_for(tmp_path, {"S": [["A", "B"], ["a", "b"], ["   ", None], ["c", "d"]]})
        data = store.read_sheet("CS", "S")
        assert data.records == 2
        assert len(data.rows) == 6
        assert data.rows[1]["A"] == "-"

    def test_numbers_stay_numbers(self, tmp_path):
        store = _store_for(tmp_path, {"S": [["Amount", "Flag"], [42, True]]})
        row = store.read_sheet("CS", "S").rows[0]
        assert row["Amount"] == 42
        assert row["Flag"] is True

    def test_dates_render_as_iso_strings(self, tmp_path):
        store = _store_for(tmp_path, {"S": [["When"], [datetime(2024, 1, 2, 9, 30)]]})
        row = store.read_sheet("CS", "S").rows[0]
        assert row["When"] == "2024-01-02T09:30:00"

    def test_two_reads_are_identical(self, store):
        first = store.read_sheet("BC", "Accounts").to_dict()
        second = store.read_sheet("BC", "Accounts").to_dict()
        assert json.dumps(first) == json.dumps(second)


# =============================================================================
# FAILURES
# =============================================================================

class TestFailures:
    def test_unknown_sheet_raises(self, store):
        with pytest.raises(SheetNotFoundError, match="Sheet not found"):
            store.read_sheet("CS", "DoesNotExist")

    def test_missing_workbook_raises(self, tmp_path):
        store = WorkbookStore(tmp_path)
        with pytest.raises(WorkbookNotFoundError):
            store.open("BC")

    def test_corrupt_workbook_raises(self, tmp_path):
        (tmp_path / "CS.xlsx").write_bytes(b"not a spreadsheet")
        store = WorkbookStore(tmp_path, files={"CS": "CS.xlsx"})
        with pytest.raises(WorkbookReadError):
            store.open("CS")


# =============================================================================
# INDEX
# =============================================================================

class TestIndex:
    def test_index_lists_sheets_in_workbook_order(self, store):
        items = store.index("BC")
        assert [item.name for item in items] == ["Accounts", "Fees"]
        assert [item.id for item in items] == ["BC:Accounts", "BC:Fees"]
        assert all(item.type == "BC" for item in items)

    def test_index_record_counts(self, store):
        records = {item.name: item.records for item in store.index("BC")}
        assert records == {"Accounts": 2, "Fees": 1}

    def test_index_last_modified_is_a_date(self, store):
        item = store.index("CS")[0]
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", item.lastModified)


# =============================================================================
# CELL HELPERS
# =============================================================================

class TestCellHelpers:
    @pytest.mark.parametrize("value,expected", [
        (None, False), ("", False), ("   ", False), (0, True), (False, True), ("x", True),
    ])
    def test_has_value(self, value, expected):
        assert has_value(value) is expected

    def test_cell_text_drops_integral_float_suffix(self):
        assert cell_text(2024.0) == "2024"
        assert cell_text(1.5) == "1.5"

    def test_json_cell_keeps_scalars(self):
        assert json_cell(3) == 3
        assert json_cell("a") == "a"

    def test_truncate_appends_ellipsis_within_limit(self):
        assert truncate("abc", 3) == "abc"
        assert truncate("abcdef", 4) == "abc…"
        assert len(truncate("x" * 500, 300)) == 300
