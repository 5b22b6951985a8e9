from __future__ import annotations

import logging
from typing import Dict, List, Sequence, TYPE_CHECKING

from pygame.math import Vector2

from ..core.entity import Entity
from ..utils.math2d import _clamp_value, _clone, _is_finite

if TYPE_CHECKING:
    from ..core.world import World

logger = logging.getLogger("primordia.safety")


def safe_bounds(world: World) -> tuple[float, float, float, float]:
    """(min_x, max_x, min_y, max_y) a position must lie within to leave a tick."""
    safety = world.config.safety
    arena = world.config.arena
    low = safety.min_position_value
    max_x = min(safety.max_position_value, arena.width - low)
    max_y = min(safety.max_position_value, arena.height - low)
    return low, max(low, max_x), low, max(low, max_y)


def random_safe_position(world: World) -> Vector2:
    min_x, max_x, min_y, max_y = safe_bounds(world)
    return Vector2(world.rng.next_range(min_x, max_x), world.rng.next_range(min_y, max_y))


def isolate_all(entities: Sequence[Entity]) -> List[Entity]:
    return [entity.isolated() for entity in entities]


def needs_repair(world: World, entity: Entity) -> bool:
    if not (_is_finite(entity.position) and _is_finite(entity.velocity) and _is_finite(entity.force_input)):
        return True
    if entity.position.length_squared() == 0.0:
        return True
    min_x, max_x, min_y, max_y = safe_bounds(world)
    return not (min_x <= entity.position.x <= max_x and min_y <= entity.position.y <= max_y)


def _damped(world: World, vector: Vector2) -> Vector2:
    if not _is_finite(vector):
        return Vector2()
    return _clone(vector) * world.config.safety.repair_vector_scale


def _respawn_position(world: World, entity: Entity, by_id: Dict[str, Entity]) -> Vector2:
    min_x, max_x, min_y, max_y = safe_bounds(world)
    position = entity.position
    if _is_finite(position) and position.length_squared() > 0.0:
        # Finite but out of range: pull back to the nearest safe point.
        return Vector2(_clamp_value(position.x, min_x, max_x), _clamp_value(position.y, min_y, max_y))
    parent = by_id.get(entity.parent_id) if entity.parent_id is not None else None
    if parent is not None and parent is not entity and not needs_repair(world, parent):
        offset = world.config.safety.parent_respawn_offset
        anchor = _clone(parent.position)
        return Vector2(
            _clamp_value(anchor.x + world.rng.next_range(-offset, offset), min_x, max_x),
            _clamp_value(anchor.y + world.rng.next_range(-offset, offset), min_y, max_y),
        )
    return random_safe_position(world)


def restore_invariants(world: World, entities: Sequence[Entity]) -> tuple[List[Entity], int]:
    """Repair numerically corrupt entities in one pass.

    Returns the repaired list and how many entities needed repair. Out-of-range positions
    are clamped into the safe box. Missing, non-finite or zero positions are respawned near
    the parent when the parent is present and healthy, otherwise at a random safe position.
    Velocity and force of a repaired entity are damped, or zeroed when not finite.
    """
    by_id = {entity.id: entity for entity in entities}
    repaired: List[Entity] = []
    count = 0
    for entity in entities:
        if not needs_repair(world, entity):
            repaired.append(entity)
            continue
        count += 1
        corrupt = not _is_finite(entity.position) or entity.position.length_squared() == 0.0
        logger.log(
            logging.WARNING if corrupt else logging.DEBUG,
            "Repairing entity %s (%s): position=%s velocity=%s force=%s",
            entity.id,
            entity.entity_type.value,
            entity.position,
            entity.velocity,
            entity.force_input,
        )
        fixed = entity.isolated(
            position=_respawn_position(world, entity, by_id),
            velocity=_damped(world, entity.velocity),
            force_input=_damped(world, entity.force_input),
        )
        by_id[fixed.id] = fixed
        repaired.append(fixed)
    return repaired, count
