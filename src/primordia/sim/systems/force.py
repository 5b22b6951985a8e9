from __future__ import annotations

from typing import Iterable, Optional, TYPE_CHECKING

from pygame.math import Vector2

from ..core.dna import AFFINITY_TRAITS
from ..core.entity import Entity
from ..core.errors import MissingDNAError
from ..utils.math2d import _clone, _safe_normalize_xy
from .genes import express_gene

if TYPE_CHECKING:
    from ..core.world import World

AFFINITY_FORCE_MULTIPLIER = 100.0
MAX_FORCE = 2.0


def calc_force_with_affinity(
    cur_position: Vector2,
    target_position: Vector2,
    affinity: float,
    force_multiplier: float = AFFINITY_FORCE_MULTIPLIER,
    max_force: Optional[float] = MAX_FORCE,
) -> Vector2:
    # Coincident positions have no direction; they exert no force.
    dx = target_position.x - cur_position.x
    dy = target_position.y - cur_position.y
    distance_sq = dx * dx + dy * dy
    if distance_sq == 0.0:
        return Vector2()
    direction = _safe_normalize_xy(dx, dy)
    magnitude = force_multiplier * affinity / distance_sq
    if max_force is not None:
        # Caps attraction only; strong repulsion passes through.
        magnitude = min(max_force, magnitude)
    return direction * magnitude


def calc_force(world: World, observer: Entity, target: Entity) -> Vector2:
    if observer.dna is None:
        raise MissingDNAError(f"Organism {observer.id} has no DNA")
    organism = world.config.organism
    affinity = express_gene(observer.dna, AFFINITY_TRAITS[target.entity_type], world.rng)
    return calc_force_with_affinity(
        _clone(observer.position),
        _clone(target.position),
        affinity,
        organism.affinity_force_multiplier,
        organism.max_force,
    )


def calc_force_from_sample(world: World, observer: Entity, sample: Iterable[Entity]) -> Vector2:
    force = Vector2()
    for other in sample:
        force += calc_force(world, observer, other)
    return force
