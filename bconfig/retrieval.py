"""Candidate retrieval across product workbooks.

Rows are scored by token containment against a few semantic fields whose physical
columns are resolved per sheet from header synonyms, then ranked and trimmed into the
short candidate list handed to the prompt builder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import ALL_PRODUCTS, PRODUCT_TYPES, product_label
from .utils import cell_text, lowered, truncate
from .workbook_reader import LoadedWorkbook, WorkbookStore

logger = logging.getLogger("bconfig.retrieval")

LABEL_KEYS = ["Screen Label", "Label"]
DESC_KEYS = ["Additional Field Description", "Description", "Field Description"]
DEST_KEYS = ["Destination", "Screen Destination"]

LABEL_WEIGHT = 3
DESC_WEIGHT = 2
DEST_WEIGHT = 2
ANY_CELL_WEIGHT = 1

MAX_CANDIDATES = 8
LABEL_LIMIT = 300
DESC_LIMIT = 400
DEST_LIMIT = 200


@dataclass
class Candidate:
    """A scored row considered relevant to the query."""
    workbook: str
    sheet: str
    label: str
    description: str
    destination: str
    score: int

    def to_context(self) -> Dict[str, str]:
        return {
            "workbook": self.workbook,
            "title": self.sheet,
            "label": self.label,
            "description": self.description,
            "destination": self.destination,
        }


@dataclass
class SearchResult:
    """Ranked candidates plus whether the search had to leave the requested product."""
    candidates: List[Candidate] = field(default_factory=list)
    widened: bool = False
    sheets_scanned: int = 0
    sheets_skipped: int = 0


def tokenize(query: str) -> List[str]:
    return query.lower().strip().split()


def pick_column(columns: Sequence[str], names: Sequence[str]) -> Optional[str]:
    """Purpose: Resolve a semantic field to a physical column by header synonyms.
    Inputs/Outputs: Inputs are the sheet's columns and candidate names (preferred first);
        output is the matching column name or None.
    Side Effects / State: None; pure function.
    Dependencies: None beyond built-ins.
    Failure Modes: Returns None when no header equals or contains any candidate.
    If Removed: Label/description/destination scoring falls back to the catch-all only.
    Testing Notes: ["Label Text", "Label"] with ["Screen Label", "Label"] resolves to
        "Label" because every exact match beats every substring match.
    """
    # Exact pass for all candidates before any substring pass.
    normalized = [cell_text(column).strip().lower() for column in columns]
    for name in names:
        target = name.lower()
        for index, column in enumerate(normalized):
            if column == target:
                return columns[index]
    for name in names:
        target = name.lower()
        for index, column in enumerate(normalized):
            if target in column:
                return columns[index]
    return None


def field_text(row: Dict[str, Any], column: Optional[str]) -> str:
    if not column:
        return ""
    return cell_text(row.get(column))


def score_row(
    tokens: Iterable[str],
    row: Dict[str, Any],
    label_col: Optional[str] = None,
    desc_col: Optional[str] = None,
    dest_col: Optional[str] = None,
) -> int:
    """Purpose: Score one row for a tokenized query.
    Inputs/Outputs: Inputs are lower-cased tokens, the row mapping, and resolved field
        columns; output is a non-negative integer.
    Side Effects / State: None; pure function.
    Dependencies: field_text and lowered.
    Failure Modes: Absent columns contribute nothing.
    If Removed: Aggregation has no ranking signal.
    Testing Notes: A token found in the label and nowhere else scores 3 + 1 (the
        label cell is also part of the all-cells text).
    """
    # Field hits first, then a light catch-all over every cell.
    tokens = [token for token in tokens if token]
    label = field_text(row, label_col).lower()
    desc = field_text(row, desc_col).lower()
    dest = field_text(row, dest_col).lower()
    score = 0
    for token in tokens:
        if token in label:
            score += LABEL_WEIGHT
        if token in desc:
            score += DESC_WEIGHT
        if token in dest:
            score += DEST_WEIGHT
    all_cells = "\n".join(lowered(value) for value in row.values())
    for token in tokens:
        if token in all_cells:
            score += ANY_CELL_WEIGHT
    return score


def resolve_target_products(product: str) -> List[str]:
    if product == ALL_PRODUCTS:
        return list(PRODUCT_TYPES)
    return [product]


class CandidateCollector:
    """Walks product workbooks and gathers scored rows for one query."""

    def __init__(self, store: WorkbookStore) -> None:
        self._store = store

    def collect(self, query: str, product: str) -> SearchResult:
        """Purpose: Produce the ranked, trimmed candidate list for a query and scope.
        Inputs/Outputs: Inputs are the raw query and a product scope (BC/CC/CS/ALL);
            output is a SearchResult with at most 8 candidates.
        Side Effects / State: Reads workbooks from disk; logs skipped sheets.
        Dependencies: WorkbookStore, pick_column, score_row.
        Failure Modes: Per-sheet and per-workbook read errors are logged and skipped.
        If Removed: Questions reach the model with no grounded context.
        Testing Notes: Empty query returns no candidates; an empty single-product
            search widens to the other two products, never for ALL.
        """
        # Score the requested scope, widen if a single product found nothing.
        tokens = tokenize(query)
        result = SearchResult()
        found: List[Candidate] = []
        for ptype in resolve_target_products(product):
            found.extend(self._scan_product(ptype, tokens, result))

        if product != ALL_PRODUCTS and not found:
            for ptype in PRODUCT_TYPES:
                if ptype == product:
                    continue
                found.extend(self._scan_product(ptype, tokens, result))
            result.widened = True
            logger.info("product=%s widened=true found=%d", product, len(found))

        ranked = sorted(found, key=lambda candidate: candidate.score, reverse=True)
        result.candidates = [_trim(candidate) for candidate in ranked[:MAX_CANDIDATES]]
        logger.info(
            "product=%s tokens=%d matched=%d kept=%d scanned_sheets=%d skipped_sheets=%d",
            product,
            len(tokens),
            len(found),
            len(result.candidates),
            result.sheets_scanned,
            result.sheets_skipped,
        )
        return result

    def _scan_product(self, ptype: str, tokens: List[str], result: SearchResult) -> List[Candidate]:
        try:
            workbook = self._store.open(ptype)
        except Exception as exc:
            logger.warning("product=%s workbook skipped: %s", ptype, exc)
            result.sheets_skipped += 1
            return []
        found: List[Candidate] = []
        for sheet_name in workbook.sheet_names:
            try:
                found.extend(_scan_sheet(workbook, sheet_name, tokens))
                result.sheets_scanned += 1
            except Exception as exc:
                logger.warning("product=%s sheet=%s skipped: %s", ptype, sheet_name, exc)
                result.sheets_skipped += 1
        return found


def _scan_sheet(workbook: LoadedWorkbook, sheet_name: str, tokens: List[str]) -> List[Candidate]:
    snapshot = workbook.read_sheet(sheet_name)
    label_col = pick_column(snapshot.columns, LABEL_KEYS)
    desc_col = pick_column(snapshot.columns, DESC_KEYS)
    dest_col = pick_column(snapshot.columns, DEST_KEYS)
    logger.debug(
        "product=%s sheet=%s label=%s description=%s destination=%s",
        workbook.product,
        sheet_name,
        label_col,
        desc_col,
        dest_col,
    )
    candidates: List[Candidate] = []
    if not tokens:
        return candidates
    workbook_label = product_label(workbook.product)
    for row in snapshot.rows:
        score = score_row(tokens, row, label_col, desc_col, dest_col)
        if score <= 0:
            continue
        candidates.append(
            Candidate(
                workbook=workbook_label,
                sheet=sheet_name,
                label=field_text(row, label_col),
                description=field_text(row, desc_col),
                destination=field_text(row, dest_col),
                score=score,
            )
        )
    return candidates


def _trim(candidate: Candidate) -> Candidate:
    return Candidate(
        workbook=candidate.workbook,
        sheet=candidate.sheet,
        label=truncate(candidate.label, LABEL_LIMIT),
        description=truncate(candidate.description, DESC_LIMIT),
        destination=truncate(candidate.destination, DEST_LIMIT),
        score=candidate.score,
    )
