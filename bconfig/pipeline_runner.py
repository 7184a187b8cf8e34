from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

ContextT = TypeVar("ContextT")


@dataclass
class PipelineStep(Generic[ContextT]):
    """Named step of the answer pipeline."""
    name: str
    fn: Callable[[ContextT], None]


class PipelineRunner(Generic[ContextT]):
    """Runs steps in order against one mutable context."""

    def __init__(self, steps: List[PipelineStep[ContextT]]) -> None:
        self._steps = steps

    def run(self, context: ContextT, trace: Optional[Callable[[str, str, float], None]] = None) -> None:
        """Purpose: Execute steps in order.
        Inputs/Outputs: Input is a mutable context and an optional trace callback that
            receives (step name, status, elapsed ms); no return value.
        Side Effects / State: Step functions mutate the context.
        Dependencies: PipelineStep.fn.
        Failure Modes: Exceptions from a step stop the run and propagate to the caller
            after the failure is traced.
        If Removed: The answer service cannot sequence retrieval, prompt, and completion.
        Testing Notes: A failing step is traced as "failed" and later steps never run.
        """
        # Time each step and report its outcome before moving on.
        for step in self._steps:
            started = time.perf_counter()
            try:
                step.fn(context)
            except Exception:
                if trace:
                    trace(step.name, "failed", _elapsed_ms(started))
                raise
            if trace:
                trace(step.name, "success", _elapsed_ms(started))


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
