from __future__ import annotations

from typing import Optional, Sequence, TYPE_CHECKING, Union

from ..core.dna import DNA
from ..core.entity import Entity
from ..core.entity_type import EntityType
from ..core.errors import MissingDNAError
from . import safety
from .genes import express_gene, mutate_dna

if TYPE_CHECKING:
    from ..core.world import World


def should_die(world: World, entity: Entity) -> bool:
    return entity.age >= world.config.organism.max_age or entity.energy <= 0


def count_type(population: Sequence[Entity], entity_type: EntityType) -> int:
    return sum(1 for entity in population if entity.entity_type == entity_type)


def should_reproduce(world: World, observer: Entity, population: Sequence[Entity]) -> bool:
    organism = world.config.organism
    if observer.dna is None:
        raise MissingDNAError(f"Organism {observer.id} has no DNA")
    if count_type(population, EntityType.ORGANISM) >= organism.max_organisms:
        return False
    if observer.energy < express_gene(observer.dna, "minimum_energy_to_reproduce", world.rng):
        return False
    if observer.age <= organism.reproduction_min_age:
        return False
    # Higher gene value means more likely to reproduce.
    return world.rng.next_float() < express_gene(observer.dna, "reproduction_probability", world.rng)


def create_new_organism(
    world: World,
    source: Union[DNA, Entity],
    mutation_rate: Optional[float] = None,
) -> Entity:
    config = world.config
    genetics = config.genetics
    organism = config.organism
    parent = source if isinstance(source, Entity) else None
    if parent is not None and parent.dna is None:
        raise MissingDNAError(f"Organism {parent.id} has no DNA")
    parent_dna = parent.dna if parent is not None else source
    rate = genetics.mutation_rate if mutation_rate is None else mutation_rate
    dna = mutate_dna(
        parent_dna,
        world.rng,
        mutation_rate=rate,
        mutation_magnitude=genetics.mutation_magnitude,
        copy_gene_rate=genetics.copy_gene_rate,
    )
    position = safety.random_safe_position(world)
    force_input = world.rng.next_vector(-organism.spawn_force_range, organism.spawn_force_range)
    force_input *= organism.spawn_force_scale
    if parent is None:
        energy = organism.default_energy_gift
    else:
        energy = parent.energy * express_gene(dna, "energy_gift_to_offspring", world.rng)
    return Entity(
        id=world.rng.next_uuid(),
        entity_type=EntityType.ORGANISM,
        position=position,
        force_input=force_input,
        age=0,
        energy=energy,
        parent_id=parent.id if parent is not None else None,
        generation=parent.generation + 1 if parent is not None else 0,
        color=parent.color if parent is not None else organism.color,
        size=parent.size if parent is not None else organism.size,
        dna=dna,
    )
