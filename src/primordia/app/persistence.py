from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..sim.core.errors import PersistenceError, SimulationNotFoundError
from ..sim.core.rng import DeterministicRng

logger = logging.getLogger("primordia.persistence")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SimulationRecord:
    id: str
    name: Optional[str]
    configuration: Dict[str, Any] = field(default_factory=dict)
    last_step: int = 0
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "configuration": copy.deepcopy(self.configuration),
            "lastStep": self.last_step,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class StepRecord:
    simulation_id: str
    step_number: int
    step_data: Dict[str, Any]
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "simulationId": self.simulation_id,
            "stepNumber": self.step_number,
            "stepData": copy.deepcopy(self.step_data),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class StepStore:
    """In-memory store keyed by (simulation id, step number).

    Stored payloads are deep copies of the wire form, so callers can keep mutating their
    own dictionaries.
    """

    def __init__(self, rng: Optional[DeterministicRng] = None):
        self._rng = rng if rng is not None else DeterministicRng(0)
        self._simulations: Dict[str, SimulationRecord] = {}
        self._steps: Dict[str, Dict[int, StepRecord]] = {}

    def create_simulation(
        self, name: Optional[str] = None, configuration: Optional[Dict[str, Any]] = None
    ) -> SimulationRecord:
        record = SimulationRecord(
            id=self._rng.next_uuid(), name=name, configuration=copy.deepcopy(configuration or {})
        )
        self._simulations[record.id] = record
        self._steps[record.id] = {}
        logger.info("Created simulation %s (%s)", record.id, name)
        return record

    def get_simulation(self, simulation_id: str) -> SimulationRecord:
        record = self._simulations.get(simulation_id)
        if record is None:
            raise SimulationNotFoundError(f"Simulation {simulation_id} not found")
        return record

    def list_simulations(self) -> List[SimulationRecord]:
        return sorted(self._simulations.values(), key=lambda record: record.created_at, reverse=True)

    def save_step(self, simulation_id: str, step_number: int, step_data: Dict[str, Any]) -> StepRecord:
        simulation = self.get_simulation(simulation_id)
        if step_number < 0:
            raise PersistenceError(f"Step number must be non-negative, got {step_number}")
        steps = self._steps[simulation_id]
        existing = steps.get(step_number)
        if existing is not None:
            existing.step_data = copy.deepcopy(step_data)
            existing.updated_at = _now()
            record = existing
        else:
            record = StepRecord(simulation_id, step_number, copy.deepcopy(step_data))
            steps[step_number] = record
        simulation.last_step = max(simulation.last_step, step_number)
        simulation.updated_at = _now()
        return record

    def get_step(self, simulation_id: str, step_number: int) -> Optional[StepRecord]:
        self.get_simulation(simulation_id)
        return self._steps[simulation_id].get(step_number)

    def list_steps(
        self,
        simulation_id: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        limit: Optional[int] = 10,
    ) -> List[StepRecord]:
        """Steps in ``[start, end]``, newest first, capped at ``limit``."""
        self.get_simulation(simulation_id)
        records = [
            record
            for number, record in self._steps[simulation_id].items()
            if (start is None or number >= start) and (end is None or number <= end)
        ]
        records.sort(key=lambda record: record.step_number, reverse=True)
        return records if limit is None else records[:limit]


SaveFunction = Callable[[int], Awaitable[None]]


class SaveQueue:
    """Pending step numbers waiting to be persisted.

    Draining never raises: a failed save is logged and the step stays queued until it has
    failed ``max_attempts`` times, after which it is dropped and reported in ``failed``.
    """

    def __init__(self, save: SaveFunction, max_attempts: int = 3):
        self._save = save
        self._max_attempts = max(1, max_attempts)
        self._pending: List[int] = []
        self._attempts: Dict[int, int] = {}
        self._lock = asyncio.Lock()
        self.last_saved_step = 0
        self.failed: List[int] = []
        self.is_saving = False

    @property
    def pending(self) -> List[int]:
        return list(self._pending)

    def request(self, step_number: int) -> None:
        if step_number not in self._pending:
            self._pending.append(step_number)

    async def drain(self) -> int:
        saved = 0
        async with self._lock:
            self.is_saving = bool(self._pending)
            for step_number in list(self._pending):
                try:
                    await self._save(step_number)
                except Exception as exc:
                    attempts = self._attempts.get(step_number, 0) + 1
                    self._attempts[step_number] = attempts
                    logger.warning(
                        "Failed to save step %d (attempt %d/%d): %s",
                        step_number,
                        attempts,
                        self._max_attempts,
                        exc,
                    )
                    if attempts >= self._max_attempts:
                        self._pending.remove(step_number)
                        self._attempts.pop(step_number, None)
                        self.failed.append(step_number)
                        logger.error("Giving up on step %d after %d attempts", step_number, attempts)
                    continue
                self._pending.remove(step_number)
                self._attempts.pop(step_number, None)
                self.last_saved_step = max(self.last_saved_step, step_number)
                saved += 1
            self.is_saving = False
        return saved

    def clear(self) -> None:
        self._pending.clear()
        self._attempts.clear()
        self.failed.clear()
        self.last_saved_step = 0
