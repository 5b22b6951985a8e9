from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set

from .entity import Entity


class TickLedger:
    """Working entity map for one tick.

    Holds the entities emitted so far plus energy debits against entities that have not
    been processed yet, so a bite taken from a sibling is never lost whichever of the two
    is processed first.
    """

    def __init__(self, working: Iterable[Entity]):
        self._working: Dict[str, Entity] = {entity.id: entity for entity in working}
        self._emitted: Dict[str, Entity] = {}
        self._pending_energy: Dict[str, float] = {}
        self._processed: Set[str] = set()

    def begin(self, entity: Entity) -> Entity:
        """Mark ``entity`` as being processed and apply any debits recorded against it."""
        self._processed.add(entity.id)
        debit = self._pending_energy.pop(entity.id, 0.0)
        if debit:
            entity.energy -= debit
        return entity

    def drop(self, entity_id: str) -> None:
        """Retire an entity that failed processing; debits against it are discarded."""
        self._processed.add(entity_id)
        self._pending_energy.pop(entity_id, None)

    def emit(self, entities: Iterable[Entity]) -> None:
        for entity in entities:
            self._emitted[entity.id] = entity

    def is_alive(self, entity_id: str) -> bool:
        if entity_id in self._emitted:
            return True
        return entity_id in self._working and entity_id not in self._processed

    def energy_of(self, entity_id: str) -> Optional[float]:
        emitted = self._emitted.get(entity_id)
        if emitted is not None:
            return emitted.energy
        if not self.is_alive(entity_id):
            return None
        return self._working[entity_id].energy - self._pending_energy.get(entity_id, 0.0)

    def debit(self, entity_id: str, amount: float) -> None:
        emitted = self._emitted.get(entity_id)
        if emitted is not None:
            emitted.energy -= amount
        elif self.is_alive(entity_id):
            self._pending_energy[entity_id] = self._pending_energy.get(entity_id, 0.0) + amount

    @property
    def emitted(self) -> List[Entity]:
        return list(self._emitted.values())
