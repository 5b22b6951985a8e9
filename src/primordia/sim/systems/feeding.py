from __future__ import annotations

from typing import Callable, Optional, Sequence, TYPE_CHECKING

from ..core.dna import EATING_TRAITS
from ..core.entity import Engram, Entity
from ..core.errors import MissingDNAError
from .genes import express_gene

if TYPE_CHECKING:
    from ..core.world import World

EPSILON_DISTANCE = 1e-6


def should_eat(
    world: World,
    observer: Entity,
    engrams: Sequence[Engram],
    is_alive: Optional[Callable[[str], bool]] = None,
    energy_of: Optional[Callable[[str], Optional[float]]] = None,
) -> Optional[Engram]:
    """Pick the remembered entity with the highest eating priority within reach.

    Priority is the eating gene divided by distance. Negative priorities are not filtered
    out, so an organism surrounded only by things it dislikes eating still picks one.
    Targets with no energy left this tick are never picked.
    """
    if observer.dna is None:
        raise MissingDNAError(f"Organism {observer.id} has no DNA")
    max_distance = world.config.organism.min_eating_distance
    best: Optional[Engram] = None
    best_priority = 0.0
    for engram in engrams:
        if engram.distance > max_distance:
            continue
        if is_alive is not None and not is_alive(engram.entity_id):
            continue
        if energy_of is not None:
            remaining = energy_of(engram.entity_id)
            if remaining is None or remaining <= 0.0:
                continue
        expression = express_gene(observer.dna, EATING_TRAITS[engram.entity_type], world.rng)
        priority = expression / max(engram.distance, EPSILON_DISTANCE)
        if best is None or priority > best_priority:
            best = engram
            best_priority = priority
    return best


def get_bite_size(world: World, target_energy: float) -> float:
    return max(0.0, min(world.config.organism.max_bite_size, target_energy))
