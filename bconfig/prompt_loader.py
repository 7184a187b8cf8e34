from __future__ import annotations

from pathlib import Path


def load_prompt(prompt_path: Path) -> str:
    """Purpose: Load an instruction file as UTF-8 text without BOM or trailing newline.
    Inputs/Outputs: Input is the instruction file path; output is the text sent to the model.
    Side Effects / State: None; reads the filesystem only.
    Dependencies: Path.read_text/read_bytes; called by prompt_builder.load_answer_prompt.
    Failure Modes: Missing files raise FileNotFoundError; undecodable bytes are dropped.
    If Removed: The answer-format instruction cannot be sent to the model.
    Testing Notes: A BOM-prefixed file with trailing blank lines loads as bare text.
    """
    # Editors may add a BOM or a final newline; neither belongs in the instruction.
    try:
        text = prompt_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        text = prompt_path.read_bytes().decode("utf-8", errors="ignore")
    return text.lstrip("\ufeff").rstrip("\n")
