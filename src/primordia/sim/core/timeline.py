from __future__ import annotations

import logging
from typing import List, Optional

from ..systems.metrics import PerformanceMonitor
from ..types.metrics import PerformanceMetrics, StepMetrics
from ..types.snapshot import SimulationStep
from .world import World

logger = logging.getLogger("primordia.timeline")


class Timeline:
    """Retained step history with a movable cursor.

    Moving the cursor over known steps never recomputes; only stepping forward from the
    newest retained step calls the orchestrator.
    """

    def __init__(self, world: World, initial_step: SimulationStep):
        self._world = world
        self._steps: List[SimulationStep] = [initial_step]
        self._index = 0
        self._last_metrics: Optional[StepMetrics] = None
        self._monitor = PerformanceMonitor()

    @property
    def world(self) -> World:
        return self._world

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current(self) -> SimulationStep:
        return self._steps[self._index]

    @property
    def latest_index(self) -> int:
        return len(self._steps) - 1

    @property
    def latest(self) -> SimulationStep:
        return self._steps[-1]

    @property
    def last_metrics(self) -> Optional[StepMetrics]:
        return self._last_metrics

    @property
    def performance(self) -> PerformanceMetrics:
        return self._monitor.metrics

    def __len__(self) -> int:
        return len(self._steps)

    def step_at(self, index: int) -> SimulationStep:
        return self._steps[index]

    def step_forward(self) -> SimulationStep:
        if self._index < self.latest_index:
            self._index += 1
            return self.current
        result = self._world.calculate_next_step(self.latest, tick=len(self._steps))
        self._steps.append(result.step)
        self._index = self.latest_index
        self._last_metrics = result.metrics
        self._monitor.record(result.metrics)
        return self.current

    def step_backward(self) -> SimulationStep:
        if self._index > 0:
            self._index -= 1
        return self.current

    def seek(self, index: int) -> SimulationStep:
        if not 0 <= index <= self.latest_index:
            raise IndexError(f"Step {index} is outside retained history 0..{self.latest_index}")
        self._index = index
        return self.current

    def reset(self, initial_step: SimulationStep) -> None:
        logger.info("Resetting timeline (discarding %d retained steps)", len(self._steps))
        self._steps = [initial_step]
        self._index = 0
        self._last_metrics = None
        self._monitor = PerformanceMonitor()
