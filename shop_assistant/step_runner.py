from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

C = TypeVar("C")
R = TypeVar("R")


@dataclass
class Step(Generic[C, R]):
    """Named handler in a priority chain; skip_if guards it per turn."""
    name: str
    fn: Callable[[C], Optional[R]]
    skip_if: Optional[Callable[[C], bool]] = None


class StepRunner(Generic[C, R]):
    """Ordered first-answer-wins step runner for deterministic turn handling."""

    def __init__(self, steps: List[Step[C, R]]) -> None:
        """Purpose: Initialize the runner with an ordered list of steps.
        Inputs/Outputs: Input is a list of Step; no return value.
        Side Effects / State: Stores the step list for later execution.
        Dependencies: None beyond Step definitions.
        Failure Modes: None; assumes valid callables in steps.
        If Removed: The orchestrator loses its priority chain and answers nothing.
        Testing Notes: Provide a minimal step list and ensure order is preserved.
        """
        self._steps = steps

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self._steps]

    def run(self, context: C) -> Optional[Tuple[str, R]]:
        """Purpose: Execute steps in order until one produces a result.
        Inputs/Outputs: Input is a mutable context object; output is (step_name, result)
            for the first step returning non-None, or None when every step declines.
        Side Effects / State: Invokes step functions that may mutate context.
        Dependencies: Depends on Step.fn and Step.skip_if semantics.
        Failure Modes: Exceptions in step functions propagate to the caller.
        If Removed: The orchestrator cannot run its steps, breaking message handling.
        Testing Notes: Verify skip_if and first-result-wins logic with simple steps.
        """
        # Iterate steps, honoring skip_if guards; the first non-None result ends the turn.
        for step in self._steps:
            if step.skip_if and step.skip_if(context):
                continue
            result = step.fn(context)
            if result is not None:
                return step.name, result
        return None
