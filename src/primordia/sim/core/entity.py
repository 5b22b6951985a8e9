from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional

from pygame.math import Vector2

from ..utils.math2d import _clone
from .dna import DNA
from .entity_type import ActionType, EntityType


@dataclass(frozen=True, slots=True)
class ActionRecord:
    action: ActionType
    step_number: int
    ref: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Engram:
    entity_id: str
    entity_type: EntityType
    position: Vector2
    energy: float
    distance: float
    created_at: int
    updated_at: int

    def isolated(self) -> "Engram":
        return replace(self, position=_clone(self.position))


@dataclass(slots=True)
class Entity:
    id: str
    entity_type: EntityType
    position: Vector2
    velocity: Vector2 = field(default_factory=Vector2)
    force_input: Vector2 = field(default_factory=Vector2)
    age: int = 0
    energy: float = 100.0
    parent_id: Optional[str] = None
    generation: int = 0
    color: str = "green"
    size: float = 10.0
    action_history: List[ActionRecord] = field(default_factory=list)
    dna: Optional[DNA] = None
    working_memory: List[Engram] = field(default_factory=list)

    @property
    def radius(self) -> float:
        return self.size / 2.0

    @property
    def is_organism(self) -> bool:
        return self.entity_type == EntityType.ORGANISM

    def isolated(self, **changes) -> "Entity":
        """Structurally independent copy; keyword arguments override fields on the copy."""
        clone = replace(
            self,
            position=_clone(self.position),
            velocity=_clone(self.velocity),
            force_input=_clone(self.force_input),
            action_history=list(self.action_history),
            dna=self.dna.copy() if self.dna is not None else None,
            working_memory=[engram.isolated() for engram in self.working_memory],
        )
        for name, value in changes.items():
            if isinstance(value, Vector2):
                value = _clone(value)
            setattr(clone, name, value)
        return clone

    def record(self, action: ActionType, step_number: int, ref: Optional[str], limit: Optional[int]) -> None:
        self.action_history.append(ActionRecord(action=action, step_number=step_number, ref=ref))
        if limit is not None and len(self.action_history) > limit:
            del self.action_history[: len(self.action_history) - limit]
