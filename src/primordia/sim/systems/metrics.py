from __future__ import annotations

from collections import deque
from dataclasses import replace
from typing import Deque, List, Sequence

from ..core.entity import Entity
from ..core.entity_type import EntityType
from ..types.metrics import PerformanceMetrics, StepMetrics

FRAME_HISTORY = 30


def create_metrics(
    tick: int,
    previous: Sequence[Entity],
    current: Sequence[Entity],
    repaired: int,
    dropped: int,
    duration_ms: float,
    organism_times_ms: List[float],
) -> StepMetrics:
    previous_ids = {entity.id for entity in previous}
    current_ids = {entity.id for entity in current}
    population = len(current)
    organisms = sum(1 for entity in current if entity.entity_type == EntityType.ORGANISM)
    energy_sum = sum(entity.energy for entity in current)
    return StepMetrics(
        tick=tick,
        population=population,
        organisms=organisms,
        nutrients=population - organisms,
        births=len(current_ids - previous_ids),
        deaths=len(previous_ids - current_ids),
        repaired=repaired,
        dropped=dropped,
        average_energy=energy_sum / population if population else 0.0,
        frame_duration_ms=duration_ms,
        organism_calculation_times_ms=list(organism_times_ms),
    )


class PerformanceMonitor:
    """Rolling view of recent frame timings. Observational only."""

    def __init__(self, history: int = FRAME_HISTORY):
        self._frame_durations: Deque[float] = deque(maxlen=history)
        self._metrics = PerformanceMetrics()

    @property
    def metrics(self) -> PerformanceMetrics:
        return replace(
            self._metrics,
            frame_durations=list(self._metrics.frame_durations),
            organism_calculation_times=list(self._metrics.organism_calculation_times),
        )

    def record(self, step_metrics: StepMetrics) -> PerformanceMetrics:
        frame_time = step_metrics.frame_duration_ms
        # Newest first, matching how the history table reads.
        self._frame_durations.appendleft(frame_time)
        organism_times = list(step_metrics.organism_calculation_times_ms)
        total = sum(organism_times)
        self._metrics = PerformanceMetrics(
            last_frame_duration=frame_time,
            frame_durations=list(self._frame_durations),
            fps=1000.0 / frame_time if frame_time > 0 else 0.0,
            total_organism_calculation_time=total,
            organism_calculation_times=organism_times,
            avg_organism_calculation_time=total / len(organism_times) if organism_times else 0.0,
        )
        return self.metrics
