from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger("gearguide.runtime")

ContextT = TypeVar("ContextT")


@dataclass
class TurnStep(Generic[ContextT]):
    """One named stage of a turn."""
    name: str
    fn: Callable[[ContextT], None]
    skip_if: Optional[Callable[[ContextT], bool]] = None


class TurnRunner(Generic[ContextT]):
    """Run turn stages in a fixed order over a shared mutable context."""

    def __init__(self, steps: List[TurnStep[ContextT]]) -> None:
        """Purpose: Initialize the runner with an ordered list of steps.
        Inputs/Outputs: Input is a list of TurnStep; no return value.
        Side Effects / State: Stores the step list for later execution.
        Dependencies: None beyond TurnStep definitions.
        Failure Modes: Raises ValueError on duplicate step names.
        If Removed: The orchestration loop has no ordered stage execution.
        Testing Notes: Provide a minimal step list and ensure order is preserved.
        """
        names = [step.name for step in steps]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate turn step names: {names}")
        self._steps = list(steps)

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self._steps]

    def run(self, context: ContextT) -> List[str]:
        """Purpose: Execute steps in order, honoring skip_if guards.
        Inputs/Outputs: Input is the mutable turn context; returns the names of the
            steps that actually ran.
        Side Effects / State: Step functions mutate the context.
        Dependencies: TurnStep.fn and TurnStep.skip_if.
        Failure Modes: Exceptions in step functions propagate to the caller.
        If Removed: Turns cannot execute.
        Testing Notes: Verify skip_if is evaluated after earlier steps ran.
        """
        executed: List[str] = []
        for step in self._steps:
            if step.skip_if and step.skip_if(context):
                logger.debug("step=%s skipped", step.name)
                continue
            step.fn(context)
            executed.append(step.name)
            logger.debug("step=%s done", step.name)
        return executed
