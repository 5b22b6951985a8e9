from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(slots=True)
class StepMetrics:
    tick: int
    population: int
    organisms: int
    nutrients: int
    births: int
    deaths: int
    repaired: int
    dropped: int
    average_energy: float
    frame_duration_ms: float = 0.0
    organism_calculation_times_ms: List[float] = field(default_factory=list)


@dataclass(slots=True)
class PerformanceMetrics:
    last_frame_duration: float = 0.0
    frame_durations: List[float] = field(default_factory=list)
    fps: float = 0.0
    total_organism_calculation_time: float = 0.0
    organism_calculation_times: List[float] = field(default_factory=list)
    avg_organism_calculation_time: float = 0.0
