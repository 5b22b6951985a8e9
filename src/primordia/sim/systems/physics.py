from __future__ import annotations

from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..core.entity import Entity

if TYPE_CHECKING:
    from ..core.world import World


def _bounce(position: float, velocity: float, radius: float, extent: float) -> tuple[float, float]:
    if position - radius <= 0.0:
        return radius, -velocity
    if position + radius >= extent:
        return extent - radius, -velocity
    return position, velocity


def advance_physics(world: World, entity: Entity) -> Entity:
    """Integrate one tick of motion; returns a new entity and leaves ``entity`` untouched."""
    arena = world.config.arena
    friction = arena.friction
    vel_x = entity.velocity.x * friction + entity.force_input.x
    vel_y = entity.velocity.y * friction + entity.force_input.y
    pos_x = entity.position.x + vel_x
    pos_y = entity.position.y + vel_y
    radius = entity.radius
    pos_x, vel_x = _bounce(pos_x, vel_x, radius, arena.width)
    pos_y, vel_y = _bounce(pos_y, vel_y, radius, arena.height)
    return entity.isolated(
        position=Vector2(pos_x, pos_y),
        velocity=Vector2(vel_x, vel_y),
        force_input=Vector2(),
        age=entity.age + 1,
    )
