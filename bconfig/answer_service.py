"""Question answering over the product workbooks.

Role:
    Turns a caller's conversation and product scope into one grounded model reply.

Pipeline data contract (fields passed across steps on AnswerContext):
    - product, history: validated request inputs (history holds user/assistant turns).
    - query: most recent user turn, lower-cased and trimmed.
    - search: SearchResult with at most 8 trimmed candidates and the widened flag.
    - prompt_messages: [format instruction, reference context, *history].
    - answer_text: model reply, passed through unmodified.
    - answer_format: shape detected in the reply (never used to alter it).

Step contracts:
    retrieve:      query + product -> search
    build_prompt:  search + history -> prompt_messages
    complete:      prompt_messages -> answer_text (exactly one upstream call)
    classify:      answer_text -> answer_format
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .completion_client import CompletionClient
from .config import ALL_PRODUCTS, PRODUCT_TYPES
from .errors import ConfigurationError, ValidationError
from .pipeline_runner import PipelineRunner, PipelineStep
from .prompt_builder import (
    build_messages,
    classify_answer_format,
    filter_history,
    last_user_query,
    load_answer_prompt,
)
from .retrieval import CandidateCollector, SearchResult
from .workbook_reader import WorkbookStore

logger = logging.getLogger("bconfig.answer")

VALID_SCOPES = set(PRODUCT_TYPES) | {ALL_PRODUCTS}


@dataclass
class AnswerContext:
    """Mutable context passed through each answer step."""
    product: str
    history: List[Dict[str, str]]
    query: str = ""
    search: SearchResult = field(default_factory=SearchResult)
    prompt_messages: List[Dict[str, str]] = field(default_factory=list)
    answer_text: str = ""
    answer_format: str = "unrecognized"
    trace: List[Dict[str, object]] = field(default_factory=list)

    def log(self, step: str, status: str, elapsed_ms: float) -> None:
        self.trace.append({"step": step, "status": status, "elapsed_ms": elapsed_ms})


class AnswerService:
    def __init__(
        self,
        client: CompletionClient,
        store: WorkbookStore,
        prompts_dir: Path,
    ) -> None:
        """Purpose: Wire the completion client, workbook store, and prompt directory.
        Inputs/Outputs: Inputs are the collaborators; no return value.
        Side Effects / State: Builds the ordered step runner.
        Dependencies: PipelineRunner/PipelineStep and the step methods on this class.
        Failure Modes: None at init; the prompt file is read on each build_prompt step.
        If Removed: The question endpoint has nothing to delegate to.
        Testing Notes: Construct with a mocked client and a tmp WorkbookStore.
        """
        # Store collaborators and register the steps in execution order.
        self._client = client
        self._collector = CandidateCollector(store)
        self._prompts_dir = prompts_dir
        self._runner: PipelineRunner[AnswerContext] = PipelineRunner(
            steps=[
                PipelineStep("retrieve", self._step_retrieve),
                PipelineStep("build_prompt", self._step_build_prompt),
                PipelineStep("complete", self._step_complete),
                PipelineStep("classify", self._step_classify),
            ]
        )

    def validate(
        self,
        messages: Optional[Sequence[Dict[str, str]]],
        product: Optional[str],
    ) -> List[Dict[str, str]]:
        """Purpose: Reject requests before any workbook is touched.
        Inputs/Outputs: Inputs are raw messages and product; output is the filtered history.
        Side Effects / State: None.
        Dependencies: filter_history and VALID_SCOPES.
        Failure Modes: ConfigurationError (checked first), then ValidationError for a bad
            product or an empty user/assistant history.
        If Removed: Bad requests would reach retrieval and the upstream API.
        Testing Notes: None or a history holding only system turns is "Missing messages".
        """
        # Credential, then product, then messages.
        if not self._client.configured:
            raise ConfigurationError("Missing LLM_API_TOKEN")
        if not product or product not in VALID_SCOPES:
            raise ValidationError("Invalid or missing product")
        history = filter_history(messages or [])
        if not history:
            raise ValidationError("Missing messages")
        return history

    def answer(self, messages: Optional[Sequence[Dict[str, str]]], product: Optional[str]) -> AnswerContext:
        history = self.validate(messages, product)
        context = AnswerContext(product=product, history=history)
        context.query = last_user_query(history)
        logger.info("product=%s question=%s", product, context.query)
        self._runner.run(context, trace=context.log)
        logger.info(
            "product=%s candidates=%d widened=%s format=%s",
            product,
            len(context.search.candidates),
            context.search.widened,
            context.answer_format,
        )
        logger.debug("product=%s trace=%s", product, context.trace)
        return context

    def _step_retrieve(self, context: AnswerContext) -> None:
        context.search = self._collector.collect(context.query, context.product)

    def _step_build_prompt(self, context: AnswerContext) -> None:
        system_prompt = load_answer_prompt(self._prompts_dir)
        context.prompt_messages = build_messages(system_prompt, context.search.candidates, context.history)

    def _step_complete(self, context: AnswerContext) -> None:
        context.answer_text = self._client.complete(context.prompt_messages)

    def _step_classify(self, context: AnswerContext) -> None:
        context.answer_format = classify_answer_format(context.answer_text)
