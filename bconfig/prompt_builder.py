from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, List, Sequence

from .prompt_loader import load_prompt
from .retrieval import Candidate

ANSWER_FORMAT_PROMPT = "answer_format.txt"
CHAT_ROLES = ("user", "assistant")

CONTEXT_HEADER = (
    "Top matches (pre-filtered context). Use for reference only; do not invent values. "
    "Each item: {workbook, title, label, description, destination}."
)

MULTIPLE_RE = re.compile(r"^I found \*\*(\d+) results\*\* that match", re.MULTILINE)
FIELD_LINE_RE = re.compile(r"^\s*(?:\d+\.\s*)?(Workbook|Title|Label|Description):", re.MULTILINE)
SINGLE_FIELDS = {"Workbook", "Title", "Label", "Description"}


def load_answer_prompt(prompts_dir: Path) -> str:
    return load_prompt(prompts_dir / ANSWER_FORMAT_PROMPT)


def filter_history(messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """Keep only user/assistant turns, verbatim and in order."""
    return [
        {"role": message["role"], "content": message.get("content", "")}
        for message in messages
        if message.get("role") in CHAT_ROLES
    ]


def last_user_query(messages: Sequence[Dict[str, str]]) -> str:
    # Most recent user turn, case-folded and trimmed.
    for message in reversed(messages):
        if message.get("role") == "user":
            return (message.get("content") or "").lower().strip()
    return ""


def build_context_message(candidates: Sequence[Candidate]) -> str:
    """Purpose: Serialize the top candidates into the reference block for the model.
    Inputs/Outputs: Input is the ranked candidate list; output is the header line plus
        one numbered compact JSON object per candidate.
    Side Effects / State: None; pure function.
    Dependencies: Candidate.to_context and json.dumps.
    Failure Modes: An empty list yields only the header line.
    If Removed: The model answers without grounded rows and invents values.
    Testing Notes: Line 2 starts with "1. {" and omits the score.
    """
    # Keep field order stable so identical candidates serialize identically.
    lines = [CONTEXT_HEADER]
    for position, candidate in enumerate(candidates, start=1):
        payload = json.dumps(candidate.to_context(), ensure_ascii=False, separators=(",", ":"))
        lines.append(f"{position}. {payload}")
    return "\n".join(lines)


def build_messages(
    system_prompt: str,
    candidates: Sequence[Candidate],
    history: Sequence[Dict[str, str]],
) -> List[Dict[str, str]]:
    """Purpose: Assemble the full chat message list for one completion request.
    Inputs/Outputs: Inputs are the format instruction, ranked candidates, and caller
        history; output is [system instruction, system context, *history].
    Side Effects / State: None.
    Dependencies: build_context_message and filter_history.
    Failure Modes: None.
    If Removed: The completion request has no instruction or context.
    Testing Notes: Order must be instruction, context, then history; system turns in
        the caller history are dropped.
    """
    # Instruction, then reference rows, then the conversation.
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "system", "content": build_context_message(candidates)},
    ]
    messages.extend(filter_history(history))
    return messages


def classify_answer_format(text: str) -> str:
    """Purpose: Label which response shape the model reply follows.
    Inputs/Outputs: Input is the reply text; output is "multiple", "single", "clarify",
        or "unrecognized".
    Side Effects / State: None; the reply itself is never modified.
    Dependencies: MULTIPLE_RE and FIELD_LINE_RE.
    Failure Modes: Heuristic only; unusual but valid replies become "unrecognized".
    If Removed: Responses lose the format hint in their metadata.
    Testing Notes: "I found **2 results** that match..." is "multiple".
    """
    # Multiple-results header wins, then the four labeled lines, then a question.
    stripped = (text or "").strip()
    if not stripped:
        return "unrecognized"
    if MULTIPLE_RE.search(stripped):
        return "multiple"
    fields = {match.group(1) for match in FIELD_LINE_RE.finditer(stripped)}
    if SINGLE_FIELDS.issubset(fields):
        return "single"
    if stripped.endswith("?"):
        return "clarify"
    return "unrecognized"
