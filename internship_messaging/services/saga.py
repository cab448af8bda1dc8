"""Ordered steps with compensations, for operations too large for one transaction."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from internship_messaging.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class SagaStep:
    name: str
    action: Callable[[], Awaitable[Any]]
    compensation: Optional[Callable[[], Awaitable[None]]] = None


@dataclass
class Saga:
    """Runs steps in order; on failure, compensates completed steps in reverse.

    The original error is always re-raised. A compensation that fails is
    logged and recorded but never masks it.
    """

    name: str
    steps: List[SagaStep] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    compensation_errors: List[Exception] = field(default_factory=list)
    compensated: bool = False

    def add_step(
        self,
        name: str,
        action: Callable[[], Awaitable[Any]],
        compensation: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> "Saga":
        self.steps.append(SagaStep(name=name, action=action, compensation=compensation))
        return self

    async def run(self) -> Dict[str, Any]:
        results: Dict[str, Any] = {}
        done: List[SagaStep] = []
        for step in self.steps:
            try:
                results[step.name] = await step.action()
            except Exception as e:
                logger.error("Saga %s failed at step %s: %s", self.name, step.name, e)
                await self._compensate(done)
                raise
            done.append(step)
            self.completed.append(step.name)
        return results

    async def _compensate(self, done: List[SagaStep]) -> None:
        for step in reversed(done):
            if step.compensation is None:
                continue
            try:
                await step.compensation()
                logger.info("Saga %s compensated step %s", self.name, step.name)
            except Exception as e:
                logger.exception(
                    "Saga %s failed to compensate step %s", self.name, step.name
                )
                self.compensation_errors.append(e)
        self.compensated = not self.compensation_errors
