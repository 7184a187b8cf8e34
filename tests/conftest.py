"""Shared fixtures for the workbook API test suite.

Builds REAL .xlsx files with openpyxl in tmp_path so the reader, retrieval, and HTTP
layers run against genuine spreadsheets. The completion endpoint is always mocked.
"""

from pathlib import Path
from typing import Dict, List
from unittest.mock import MagicMock

import pytest
from openpyxl import Workbook

from bconfig.completion_client import CompletionClient
from bconfig.config import BASE_DIR, PRODUCT_FILES, Settings
from bconfig.workbook_reader import WorkbookStore

PROMPTS_DIR = BASE_DIR / "prompts"


def write_workbook(path: Path, sheets: Dict[str, List[list]]) -> Path:
    """Write one .xlsx file with the given sheets (first row of each is the header)."""
    book = Workbook()
    book.remove(book.active)
    for name, rows in sheets.items():
        sheet = book.create_sheet(title=name)
        for row in rows:
            sheet.append(row)
    path.parent.mkdir(parents=True, exist_ok=True)
    book.save(path)
    return path


# =============================================================================
# WORKBOOK FIXTURES
# =============================================================================

BC_SHEETS = {
    "Accounts": [
        ["Label", "Additional Field Description", "Screen Destination"],
        ["Account Nickname", "Friendly name shown on statements", "Profile>Accounts"],
        ["Overdraft Protection", "Links savings to cover overdrafts", "Accounts>Overdraft"],
    ],
    "Fees": [
        ["Fee Name", "Notes"],
        ["Monthly maintenance fee", "Waived with minimum balance"],
    ],
}

CC_SHEETS = {
    "Alerts": [
        ["Screen Label", "Field Description", "Destination"],
        ["Low Balance Alert", "Notify when balance drops below threshold", "Alerts>Balance"],
    ],
}

CS_SHEETS = {
    "Limits": [
        ["Screen Label", "Description", "Destination"],
        ["Daily Withdrawal Limit", "Max ATM withdrawal", "Settings>Limits"],
    ],
}


@pytest.fixture
def data_dir(tmp_path):
    """Directory holding the three product workbooks."""
    root = tmp_path / "excel-data"
    write_workbook(root / PRODUCT_FILES["BC"], BC_SHEETS)
    write_workbook(root / PRODUCT_FILES["CC"], CC_SHEETS)
    write_workbook(root / PRODUCT_FILES["CS"], CS_SHEETS)
    return root


@pytest.fixture
def store(data_dir):
    return WorkbookStore(data_dir)


# =============================================================================
# SETTINGS / CLIENT FIXTURES
# =============================================================================

@pytest.fixture
def settings(data_dir):
    return Settings(
        api_token="test-token",
        model="gpt-4.1",
        api_url="https://llm.test/v1/chat/completions",
        data_dir=data_dir,
        prompts_dir=PROMPTS_DIR,
        log_level="INFO",
    )


@pytest.fixture
def fake_client():
    """Mocked CompletionClient that is configured and replies with one match."""
    client = MagicMock(spec=CompletionClient)
    client.configured = True
    client.complete.return_value = (
        "Here's what you might be looking for:\n"
        "Workbook: Consumer Savings\n"
        "Title: Limits\n"
        "Label: Daily Withdrawal Limit\n"
        "Description: Max ATM withdrawal"
    )
    return client
