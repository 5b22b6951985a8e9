from __future__ import annotations

from time import perf_counter
from typing import List, Optional, Sequence, TYPE_CHECKING

from pygame.math import Vector2

from ..core.entity import Entity
from ..core.entity_type import ActionType
from ..core.errors import MissingDNAError
from ..core.ledger import TickLedger
from .feeding import get_bite_size, should_eat
from .force import calc_force_from_sample
from .lifecycle import create_new_organism, should_die, should_reproduce
from .memory import get_new_working_memory, get_random_sample

if TYPE_CHECKING:
    from ..core.world import World


def process_organism(
    world: World,
    entity: Entity,
    population: Sequence[Entity],
    ledger: TickLedger,
    tick: int,
    timings: Optional[List[float]] = None,
) -> List[Entity]:
    """Run one organism through a tick: die, or sense, move, eat and maybe reproduce.

    Returns the surviving organism and any offspring, each with its own vectors.
    """
    if not entity.is_organism:
        return [entity.isolated()]
    start = perf_counter()
    try:
        return _process(world, entity, population, ledger, tick)
    finally:
        if timings is not None:
            timings.append((perf_counter() - start) * 1000.0)


def _process(
    world: World,
    entity: Entity,
    population: Sequence[Entity],
    ledger: TickLedger,
    tick: int,
) -> List[Entity]:
    if entity.dna is None:
        raise MissingDNAError(f"Organism {entity.id} has no DNA")
    config = world.config
    organism = config.organism
    ledger.begin(entity)

    if should_die(world, entity):
        return []

    sample = get_random_sample(world, entity, population, organism.random_sample_size)
    if entity.energy > organism.low_energy_threshold:
        force = calc_force_from_sample(world, entity, sample)
    else:
        force = Vector2()
    memory = get_new_working_memory(entity, sample, tick, organism.working_memory_size)
    updated = entity.isolated(
        force_input=force,
        working_memory=memory,
        energy=entity.energy - (force.length_squared() + organism.base_metabolic_cost),
    )

    target = should_eat(
        world, updated, updated.working_memory, is_alive=ledger.is_alive, energy_of=ledger.energy_of
    )
    if target is not None:
        target_energy = ledger.energy_of(target.entity_id)
        bite = get_bite_size(world, target_energy if target_energy is not None else 0.0)
        if bite > 0.0:
            updated.energy += bite
            ledger.debit(target.entity_id, bite)
            updated.record(ActionType.EAT, tick, target.entity_id, config.max_action_history)

    emitted = [updated]
    if should_reproduce(world, updated, population):
        child = create_new_organism(world, updated)
        updated.energy -= child.energy
        updated.record(ActionType.REPRODUCE, tick, child.id, config.max_action_history)
        emitted.append(child)
    return emitted
