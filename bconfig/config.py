from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

BASE_DIR = Path(__file__).resolve().parent

PRODUCT_TYPES: List[str] = ["BC", "CC", "CS"]
ALL_PRODUCTS = "ALL"

PRODUCT_FILES: Dict[str, str] = {
    "BC": "BS-8WW.xlsx",
    "CC": "CC-LO7.xlsx",
    "CS": "CS.xlsx",
}

PRODUCT_LABELS: Dict[str, str] = {
    "BC": "Business Checking",
    "CC": "Consumer Checking",
    "CS": "Consumer Savings",
}

DEFAULT_MODEL = "gpt-4.1"
DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"


@dataclass(frozen=True)
class Settings:
    """Configuration container for the completion API, workbook location, and logging."""
    api_token: str
    model: str
    api_url: str
    data_dir: Path
    prompts_dir: Path
    log_level: str


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and resolves filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for the prompts directory.
    Failure Modes: None; a missing LLM_API_TOKEN is kept empty and reported per request.
    If Removed: App cannot locate workbooks or reach the completion API.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve the workbook directory relative to the working directory unless overridden.
    data_dir = os.getenv("EXCEL_DATA_DIR")
    if data_dir:
        data_path = Path(data_dir)
    else:
        data_path = (Path.cwd() / "excel-data").resolve()

    return Settings(
        api_token=os.getenv("LLM_API_TOKEN", "").strip(),
        model=os.getenv("AI_MODEL", "").strip() or DEFAULT_MODEL,
        api_url=os.getenv("LLM_API_URL", "").strip() or DEFAULT_API_URL,
        data_dir=data_path,
        prompts_dir=(BASE_DIR / "prompts").resolve(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def product_label(product: str) -> str:
    return PRODUCT_LABELS.get(product, product)
