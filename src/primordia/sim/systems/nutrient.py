from __future__ import annotations

from typing import List, Optional, Sequence, TYPE_CHECKING

from pygame.math import Vector2

from ..core.entity import Entity
from ..core.entity_type import ActionType, EntityType
from ..core.ledger import TickLedger
from . import safety
from .lifecycle import count_type, should_die

if TYPE_CHECKING:
    from ..core.world import World


def create_new_nutrient(world: World, parent: Optional[Entity] = None) -> Entity:
    nutrient = world.config.nutrient
    if parent is None:
        return Entity(
            id=world.rng.next_uuid(),
            entity_type=EntityType.NUTRIENT,
            position=safety.random_safe_position(world),
            energy=nutrient.energy,
            color=nutrient.color,
            size=nutrient.size,
        )

    offset = world.rng.next_vector(-nutrient.spawn_offset, nutrient.spawn_offset)
    position = parent.position + offset
    return Entity(
        id=world.rng.next_uuid(),
        entity_type=EntityType.NUTRIENT,
        position=position,
        velocity=Vector2(parent.velocity),
        force_input=offset * nutrient.spawn_force_scale,
        energy=nutrient.energy,
        parent_id=parent.id,
        generation=parent.generation + 1,
        color=parent.color,
        size=parent.size,
    )


def should_spawn(world: World, entity: Entity, population: Sequence[Entity]) -> bool:
    nutrient = world.config.nutrient
    if count_type(population, EntityType.NUTRIENT) >= nutrient.max_nutrients:
        return False
    if entity.age <= nutrient.reproduction_min_age:
        return False
    return world.rng.next_float() < nutrient.reproduction_chance


def should_survive(world: World, entity: Entity) -> bool:
    nutrient = world.config.nutrient
    if entity.age <= nutrient.guaranteed_survival_age:
        return True
    return world.rng.next_float() < nutrient.survival_chance


def process_nutrient(
    world: World,
    entity: Entity,
    population: Sequence[Entity],
    ledger: TickLedger,
    tick: int,
) -> List[Entity]:
    if entity.entity_type != EntityType.NUTRIENT:
        return [entity.isolated()]
    ledger.begin(entity)
    # Eaten-out nutrients leave through the same death check as organisms.
    if should_die(world, entity):
        return []

    emitted: List[Entity] = []
    if should_spawn(world, entity, population):
        child = create_new_nutrient(world, entity)
        entity.record(ActionType.REPRODUCE, tick, child.id, world.config.max_action_history)
        emitted.append(child)
    if should_survive(world, entity):
        emitted.insert(0, entity.isolated())
    return emitted
