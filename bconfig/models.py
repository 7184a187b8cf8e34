from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ChatMessage(BaseModel):
    """Single conversation turn supplied by the caller."""
    role: str
    content: str = ""


class AskRequest(BaseModel):
    """Request payload for the question endpoint."""
    messages: Optional[List[ChatMessage]] = None
    product: Optional[str] = None


class AssistantMessage(BaseModel):
    role: str = "assistant"
    content: str


class AnswerMeta(BaseModel):
    """Retrieval facts reported alongside the model reply."""
    product: str
    widened: bool
    candidates: int
    format: str


class AskResponse(BaseModel):
    """Response payload returned by the question endpoint."""
    message: AssistantMessage
    meta: AnswerMeta


class SheetIndexItem(BaseModel):
    """One sheet of a product workbook as listed by the index endpoint."""
    id: str
    name: str
    type: str
    records: int
    lastModified: str


class SheetData(BaseModel):
    """Columns, padded rows, and record count of one sheet."""
    columns: List[str]
    rows: List[Dict[str, Any]]
    records: int
