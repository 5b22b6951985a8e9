from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from pygame.math import Vector2

from ..core.dna import DNA
from ..core.entity import ActionRecord, Engram, Entity
from ..core.entity_type import ActionType, EntityType
from ..core.errors import InvalidDNAError, WireFormatError


@dataclass(frozen=True, slots=True)
class SimulationStep:
    objects: Tuple[Entity, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "objects", tuple(self.objects))

    def __len__(self) -> int:
        return len(self.objects)


def _vector_to_wire(vector: Vector2) -> Dict[str, float]:
    return {"x": float(vector.x), "y": float(vector.y)}


def _vector_from_wire(raw: Any, name: str) -> Vector2:
    if not isinstance(raw, Mapping) or "x" not in raw or "y" not in raw:
        raise WireFormatError(f"{name} must be an object with x and y")
    try:
        return Vector2(float(raw["x"]), float(raw["y"]))
    except (TypeError, ValueError) as exc:
        raise WireFormatError(f"{name} has non-numeric components") from exc


def _engram_to_wire(engram: Engram) -> Dict[str, Any]:
    return {
        "objectId": engram.entity_id,
        "objectType": engram.entity_type.value,
        "vector": _vector_to_wire(engram.position),
        "energy": engram.energy,
        "distance": engram.distance,
        "createdAt": engram.created_at,
        "updatedAt": engram.updated_at,
    }


def _engram_from_wire(raw: Mapping[str, Any]) -> Engram:
    return Engram(
        entity_id=str(raw["objectId"]),
        entity_type=EntityType(raw["objectType"]),
        position=_vector_from_wire(raw["vector"], "workingMemory.vector"),
        energy=float(raw["energy"]),
        distance=float(raw["distance"]),
        created_at=int(raw["createdAt"]),
        updated_at=int(raw["updatedAt"]),
    )


def entity_to_wire(entity: Entity) -> Dict[str, Any]:
    return {
        "id": entity.id,
        "objectType": entity.entity_type.value,
        "vector": _vector_to_wire(entity.position),
        "velocity": _vector_to_wire(entity.velocity),
        "forceInput": _vector_to_wire(entity.force_input),
        "age": entity.age,
        "energy": entity.energy,
        "parentId": entity.parent_id,
        "generation": entity.generation,
        "color": entity.color,
        "size": entity.size,
        "actionHistory": [
            {"action": record.action.value, "stepNumber": record.step_number, "ref": record.ref}
            for record in entity.action_history
        ],
        "dna": entity.dna.to_dict() if entity.dna is not None else None,
        "workingMemory": [_engram_to_wire(engram) for engram in entity.working_memory],
    }


def entity_from_wire(raw: Mapping[str, Any]) -> Entity:
    if not isinstance(raw, Mapping):
        raise WireFormatError("Entity payload must be an object")
    try:
        dna_raw = raw.get("dna")
        return Entity(
            id=str(raw["id"]),
            entity_type=EntityType(raw["objectType"]),
            position=_vector_from_wire(raw["vector"], "vector"),
            velocity=_vector_from_wire(raw["velocity"], "velocity"),
            force_input=_vector_from_wire(raw["forceInput"], "forceInput"),
            age=int(raw["age"]),
            energy=float(raw["energy"]),
            parent_id=raw.get("parentId"),
            generation=int(raw.get("generation", 0)),
            color=str(raw.get("color", "green")),
            size=float(raw.get("size", 10.0)),
            action_history=[
                ActionRecord(
                    action=ActionType(item["action"]),
                    step_number=int(item["stepNumber"]),
                    ref=item.get("ref"),
                )
                for item in raw.get("actionHistory", [])
            ],
            dna=DNA.from_dict(dna_raw) if dna_raw is not None else None,
            working_memory=[_engram_from_wire(item) for item in raw.get("workingMemory", [])],
        )
    except InvalidDNAError as exc:
        raise WireFormatError(f"Invalid dna: {exc}") from exc
    except (KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, WireFormatError):
            raise
        raise WireFormatError(f"Malformed entity payload: {exc!r}") from exc


def step_to_wire(step: SimulationStep) -> Dict[str, List[Dict[str, Any]]]:
    return {"objects": [entity_to_wire(entity) for entity in step.objects]}


def step_from_wire(raw: Mapping[str, Any]) -> SimulationStep:
    if not isinstance(raw, Mapping) or not isinstance(raw.get("objects"), list):
        raise WireFormatError("Step payload must be an object with an objects list")
    return SimulationStep(objects=tuple(entity_from_wire(item) for item in raw["objects"]))
