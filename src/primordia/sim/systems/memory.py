from __future__ import annotations

from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

from ..core.entity import Engram, Entity
from ..core.entity_type import EntityType
from ..utils.math2d import _clone

if TYPE_CHECKING:
    from ..core.world import World

RANDOM_SAMPLE_SIZE = 5
WORKING_MEMORY_SIZE = 3


def get_random_sample(
    world: World,
    current: Entity,
    entities: Sequence[Entity],
    intended_size: int = RANDOM_SAMPLE_SIZE,
) -> List[Entity]:
    # One extra slot is drawn on top of the requested size; the fallback threshold
    # compares that enlarged size against the whole population, self included.
    sample_size = intended_size + 1
    others = [entity for entity in entities if entity.id != current.id]
    if sample_size >= len(entities):
        return others
    return world.rng.sample(others, min(sample_size, len(others)))


def get_new_working_memory(
    current: Entity,
    sample: Sequence[Entity],
    tick: int,
    size: int = WORKING_MEMORY_SIZE,
) -> List[Engram]:
    merged: Dict[str, Engram] = {}
    for entity in sample:
        merged[entity.id] = Engram(
            entity_id=entity.id,
            entity_type=entity.entity_type,
            position=_clone(entity.position),
            energy=entity.energy,
            distance=0.0,
            created_at=tick,
            updated_at=tick,
        )
    for engram in current.working_memory:
        fresh = merged.get(engram.entity_id)
        if fresh is not None:
            merged[engram.entity_id] = Engram(
                entity_id=engram.entity_id,
                entity_type=engram.entity_type,
                position=fresh.position,
                energy=fresh.energy,
                distance=0.0,
                created_at=engram.created_at,
                updated_at=tick,
            )
        else:
            merged[engram.entity_id] = engram.isolated()

    origin = current.position
    ranked = [
        Engram(
            entity_id=engram.entity_id,
            entity_type=engram.entity_type,
            position=engram.position,
            energy=engram.energy,
            distance=origin.distance_to(engram.position),
            created_at=engram.created_at,
            updated_at=engram.updated_at,
        )
        for engram in merged.values()
    ]
    ranked.sort(key=lambda engram: engram.distance)
    return ranked[:size]


def find_nearest_entity(
    current: Entity, entities: Sequence[Entity], entity_type: EntityType
) -> Optional[Entity]:
    nearest = None
    nearest_dist_sq = 0.0
    for other in entities:
        if other.id == current.id or other.entity_type != entity_type:
            continue
        dist_sq = current.position.distance_squared_to(other.position)
        if nearest is None or dist_sq < nearest_dist_sq:
            nearest = other
            nearest_dist_sq = dist_sq
    return nearest
