from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Callable, List, Optional, Sequence

from .config import SimulationConfig
from .dna import DNA, HERBIVORE_DNA_TEMPLATE
from .entity import Entity
from .entity_type import EntityType
from .errors import SimulationInvariantError
from .ledger import TickLedger
from .rng import DeterministicRng
from ..systems import lifecycle, metrics as metrics_system, nutrient, organism, physics, safety
from ..types.metrics import StepMetrics
from ..types.snapshot import SimulationStep

logger = logging.getLogger("primordia.world")

Diagnostics = Callable[[str, Sequence[Entity]], None]


@dataclass(frozen=True, slots=True)
class StepResult:
    step: SimulationStep
    metrics: StepMetrics


class World:
    STAGES = ("isolate", "physics", "reisolate", "behavior", "safety")

    def __init__(self, config: SimulationConfig, rng: Optional[DeterministicRng] = None):
        self._config = config
        self._rng = rng if rng is not None else DeterministicRng(config.seed)

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    def reset(self) -> None:
        self._rng.reset()

    def initial_step(
        self,
        organisms: Optional[int] = None,
        nutrients: Optional[int] = None,
        dna: DNA = HERBIVORE_DNA_TEMPLATE,
    ) -> SimulationStep:
        organisms = self._config.initial_organisms if organisms is None else organisms
        nutrients = self._config.initial_nutrients if nutrients is None else nutrients
        objects: List[Entity] = [nutrient.create_new_nutrient(self) for _ in range(nutrients)]
        objects.extend(lifecycle.create_new_organism(self, dna) for _ in range(organisms))
        return SimulationStep(objects=tuple(objects))

    def calculate_next_step(
        self,
        step: SimulationStep,
        tick: int = 0,
        diagnostics: Optional[Diagnostics] = None,
    ) -> StepResult:
        start = perf_counter()
        organism_times: List[float] = []

        entities = safety.isolate_all(step.objects)
        self._emit(diagnostics, "isolate", entities)

        entities = [physics.advance_physics(self, entity) for entity in entities]
        self._emit(diagnostics, "physics", entities)

        entities = safety.isolate_all(entities)
        self._emit(diagnostics, "reisolate", entities)

        entities, dropped = self._run_behaviors(entities, tick, organism_times)
        self._emit(diagnostics, "behavior", entities)

        entities, repaired = safety.restore_invariants(self, entities)
        self._emit(diagnostics, "safety", entities)

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick, step.objects, entities, repaired, dropped, elapsed_ms, organism_times
        )
        logger.debug(
            "tick=%d population=%d organisms=%d births=%d deaths=%d repaired=%d frame_ms=%.3f",
            tick,
            metrics.population,
            metrics.organisms,
            metrics.births,
            metrics.deaths,
            metrics.repaired,
            elapsed_ms,
        )
        return StepResult(step=SimulationStep(objects=tuple(entities)), metrics=metrics)

    def _run_behaviors(
        self, entities: List[Entity], tick: int, organism_times: List[float]
    ) -> tuple[List[Entity], int]:
        ledger = TickLedger(entities)
        dropped = 0
        for entity in entities:
            try:
                if entity.entity_type == EntityType.ORGANISM:
                    emitted = organism.process_organism(self, entity, entities, ledger, tick, organism_times)
                else:
                    emitted = nutrient.process_nutrient(self, entity, entities, ledger, tick)
            except SimulationInvariantError:
                dropped += 1
                ledger.drop(entity.id)
                logger.exception("Dropping entity %s at tick %d", entity.id, tick)
                continue
            ledger.emit(emitted)
        return ledger.emitted, dropped

    @staticmethod
    def _emit(diagnostics: Optional[Diagnostics], stage: str, entities: Sequence[Entity]) -> None:
        if diagnostics is not None:
            diagnostics(stage, tuple(entities))
