"""Ordered filesystem + catalog mutations with compensating actions.

There is no transaction spanning the filesystem and the catalog. A saga runs
its steps in order; when one fails, the compensations of the steps that
already completed run in reverse order and the original error is re-raised.
A compensation can fail as well, in which case CompensationError reports
what was left behind.
"""

from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger

from modcatalog.utils.exception import CompensationError


@dataclass
class SagaStep:
    name: str
    action: Callable[[], Any]
    compensation: Callable[[], Any] | None = None


class Saga:
    def __init__(self, name: str) -> None:
        self.name = name
        self._steps: list[SagaStep] = []

    def add_step(
        self,
        name: str,
        action: Callable[[], Any],
        compensation: Callable[[], Any] | None = None,
    ) -> "Saga":
        self._steps.append(SagaStep(name, action, compensation))
        return self

    @property
    def steps(self) -> list[SagaStep]:
        return list(self._steps)

    def run(self) -> list[Any]:
        """
        Run every step in order.

        :return: The results of each step's action, in order.
        :raises CompensationError: If a step failed and a compensation failed too.
        :raises Exception: The failing step's own exception otherwise.
        """
        completed: list[SagaStep] = []
        results: list[Any] = []
        for step in self._steps:
            try:
                logger.debug(f"[{self.name}] Running step: {step.name}")
                results.append(step.action())
            except Exception as e:
                logger.error(f"[{self.name}] Step '{step.name}' failed: {e}")
                self._compensate(completed, e)
                raise
            completed.append(step)
        return results

    def _compensate(self, completed: list[SagaStep], error: Exception) -> None:
        failures: list[tuple[str, BaseException]] = []
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                logger.info(f"[{self.name}] Compensating step: {step.name}")
                step.compensation()
            except Exception as e:
                logger.error(
                    f"[{self.name}] Compensation for step '{step.name}' failed: {e}"
                )
                failures.append((step.name, e))

        if failures:
            raise CompensationError(
                f"{self.name} failed: {error}", original=error, failures=failures
            ) from error
