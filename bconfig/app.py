from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .answer_service import AnswerService
from .completion_client import CompletionClient
from .config import PRODUCT_TYPES, load_settings
from .errors import BConfigError, ValidationError
from .models import AnswerMeta, AskRequest, AskResponse, AssistantMessage, SheetData, SheetIndexItem
from .workbook_reader import WorkbookStore

BASE_DIR = Path(__file__).resolve().parent
VERSION = "1.0.0"

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

settings = load_settings()

log_level = getattr(logging, settings.log_level, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logging.getLogger("bconfig").setLevel(log_level)
logger = logging.getLogger("bconfig.api")

app = FastAPI(title="BConfig Workbook Dashboard API", version=VERSION)

workbooks = WorkbookStore(settings.data_dir)
completion = CompletionClient(settings)
answer_service = AnswerService(
    client=completion,
    store=workbooks,
    prompts_dir=settings.prompts_dir,
)

_startup_time = time.time()


@app.exception_handler(BConfigError)
async def handle_bconfig_error(request: Request, exc: BConfigError) -> JSONResponse:
    """Purpose: Convert handled failures into a JSON error body.
    Inputs/Outputs: Input is the request and raised error; output is {error} with the
        error's status code.
    Side Effects / State: Logs the failure.
    Dependencies: BConfigError.status_code.
    Failure Modes: None.
    If Removed: Handled errors surface as opaque 500 responses.
    Testing Notes: A missing sheet must return 500 with "Sheet not found".
    """
    # Client errors log at INFO, server-side failures at WARNING.
    level = logging.INFO if exc.status_code < 500 else logging.WARNING
    logger.log(level, "path=%s status=%s error=%s", request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("path=%s status=400 invalid body", request.url.path)
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {_first_error(exc)}"})


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("path=%s unexpected failure", request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})


def _first_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "malformed body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def _require_type(value: Optional[str]) -> str:
    if not value or value not in PRODUCT_TYPES:
        raise ValidationError("Invalid type")
    return value


@app.post("/ai", response_model=AskResponse)
def ask(request: AskRequest) -> AskResponse:
    """Purpose: Answer a question about the workbooks for a product scope.
    Inputs/Outputs: Input is AskRequest; output is AskResponse with the assistant
        message and retrieval metadata.
    Side Effects / State: Reads workbooks and makes one upstream completion call.
    Dependencies: AnswerService.
    Failure Modes: 500 without a credential; 400 for a bad product or empty history;
        500 with upstream status and body on completion errors.
    If Removed: The dashboard's assistant panel stops working.
    Testing Notes: Mock the completion client and verify message and meta.
    """
    # Delegate validation, retrieval, prompting, and completion to the service.
    messages = [message.model_dump() for message in request.messages or []]
    context = answer_service.answer(messages, request.product)
    return AskResponse(
        message=AssistantMessage(content=context.answer_text),
        meta=AnswerMeta(
            product=context.product,
            widened=context.search.widened,
            candidates=len(context.search.candidates),
            format=context.answer_format,
        ),
    )


@app.get("/index", response_model=List[SheetIndexItem])
def sheet_index(product_type: Optional[str] = Query(default=None, alias="type")) -> List[SheetIndexItem]:
    """List every sheet of a product workbook with its record count."""
    product = _require_type(product_type)
    return [SheetIndexItem(**entry.to_dict()) for entry in workbooks.index(product)]


@app.get("/sheet", response_model=SheetData)
def sheet_data(
    product_type: Optional[str] = Query(default=None, alias="type"),
    sheet: Optional[str] = None,
) -> SheetData:
    """Return columns, padded rows, and record count for one sheet."""
    product = _require_type(product_type)
    if not sheet:
        raise ValidationError("Missing sheet")
    return SheetData(**workbooks.read_sheet(product, sheet).to_dict())


@app.get("/health")
def health() -> dict:
    return {
        "status": "healthy",
        "version": VERSION,
        "uptime_seconds": round(time.time() - _startup_time, 2),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
