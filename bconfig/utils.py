from datetime import date, datetime, time
from typing import Any

PLACEHOLDER = "-"
ELLIPSIS = "…"


def has_value(value: Any) -> bool:
    """Purpose: Decide whether a spreadsheet cell holds a usable value.
    Inputs/Outputs: Input is any cell value; output is True when it is not None and
        its text form is not blank.
    Side Effects / State: None; pure function.
    Dependencies: Used by the workbook reader for header synthesis and record counting.
    Failure Modes: None.
    If Removed: Blank cells leak into rows and record counts drift.
    Testing Notes: None, "", "   " are blank; 0 and False are values.
    """
    # Blank means missing or whitespace-only text.
    if value is None:
        return False
    return str(value).strip() != ""


def cell_text(value: Any) -> str:
    """Render a cell value as text for headers and matching."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def json_cell(value: Any) -> Any:
    """Purpose: Convert a raw cell value into a JSON-safe scalar.
    Inputs/Outputs: Input is an openpyxl cell value; output is str/int/float/bool.
    Side Effects / State: None; pure function.
    Dependencies: cell_text for date and time values.
    Failure Modes: Unknown types fall back to their string form.
    If Removed: Date cells break JSON serialization of sheet payloads.
    Testing Notes: datetime(2024, 1, 2) becomes "2024-01-02T00:00:00".
    """
    # Keep numbers and booleans native, stringify everything else.
    if isinstance(value, (bool, int, float, str)):
        return value
    return cell_text(value)


def truncate(text: str, limit: int) -> str:
    # Result never exceeds limit characters, ellipsis included.
    if len(text) <= limit:
        return text
    return text[: limit - 1] + ELLIPSIS


def lowered(text: Any) -> str:
    return cell_text(text).lower()
