from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from .entity_type import EntityType
from .errors import InvalidDNAError

LINEAGE_NAME = "lineage_name"

# Valid allele range for every array-valued trait. Mutation clamps into these bounds.
TRAIT_RANGES: Dict[str, tuple[float, float]] = {
    "visual_search": (0.0, 1.0),
    "organism_affinity": (-1.0, 1.0),
    "nutrient_affinity": (-1.0, 1.0),
    "organism_eating": (-1.0, 1.0),
    "nutrient_eating": (-1.0, 1.0),
    "stay_earning_multiplier": (0.0, 2.0),
    "eat_earning_multiplier": (0.0, 2.0),
    "energy_gift_to_offspring": (0.0, 1.0),
    "reproduction_probability": (0.00001, 0.1),
    "minimum_energy_to_reproduce": (0.0, 1000.0),
}

AFFINITY_TRAITS: Dict[EntityType, str] = {
    EntityType.ORGANISM: "organism_affinity",
    EntityType.NUTRIENT: "nutrient_affinity",
}

EATING_TRAITS: Dict[EntityType, str] = {
    EntityType.ORGANISM: "organism_eating",
    EntityType.NUTRIENT: "nutrient_eating",
}


@dataclass(slots=True)
class DNA:
    lineage_name: str
    genes: Dict[str, List[float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        validate_genes(self.genes)

    def copy(self) -> "DNA":
        return DNA(lineage_name=self.lineage_name, genes={k: list(v) for k, v in self.genes.items()})

    def to_dict(self) -> dict:
        payload: dict = {LINEAGE_NAME: self.lineage_name}
        payload.update({k: list(v) for k, v in self.genes.items()})
        return payload

    @staticmethod
    def from_dict(raw: Mapping) -> "DNA":
        if LINEAGE_NAME not in raw:
            raise InvalidDNAError("DNA is missing lineage_name")
        genes = {}
        for trait, alleles in raw.items():
            if trait == LINEAGE_NAME:
                continue
            if not isinstance(alleles, (list, tuple)):
                raise InvalidDNAError(f"Trait {trait!r} must be a list of alleles")
            genes[trait] = [float(value) for value in alleles]
        return DNA(lineage_name=str(raw[LINEAGE_NAME]), genes=genes)


def validate_genes(genes: Mapping[str, List[float]]) -> None:
    unknown = set(genes) - set(TRAIT_RANGES)
    if unknown:
        raise InvalidDNAError(f"Unknown traits: {sorted(unknown)}")
    missing = set(TRAIT_RANGES) - set(genes)
    if missing:
        raise InvalidDNAError(f"Missing traits: {sorted(missing)}")
    for trait, alleles in genes.items():
        if len(alleles) == 0:
            raise InvalidDNAError(f"Trait {trait!r} has an empty allele list")


def make_dna(lineage_name: str, **overrides: List[float]) -> DNA:
    """Build DNA from the herbivore baseline, replacing the given traits."""
    genes = {k: list(v) for k, v in HERBIVORE_DNA_TEMPLATE.genes.items()}
    for trait, alleles in overrides.items():
        genes[trait] = list(alleles)
    return DNA(lineage_name=lineage_name, genes=genes)


HERBIVORE_DNA_TEMPLATE = DNA(
    lineage_name="Herbivore",
    genes={
        "visual_search": [0.5],
        "organism_affinity": [-0.1],
        "nutrient_affinity": [0.8],
        "organism_eating": [-1.0],
        "nutrient_eating": [1.0],
        "stay_earning_multiplier": [1.0],
        "eat_earning_multiplier": [1.0],
        "energy_gift_to_offspring": [0.3],
        "reproduction_probability": [0.01],
        "minimum_energy_to_reproduce": [200.0],
    },
)

CARNIVORE_DNA_TEMPLATE = DNA(
    lineage_name="Carnivore",
    genes={
        "visual_search": [0.7],
        "organism_affinity": [0.6],
        "nutrient_affinity": [-0.2],
        "organism_eating": [1.0],
        "nutrient_eating": [-1.0],
        "stay_earning_multiplier": [0.5],
        "eat_earning_multiplier": [1.5],
        "energy_gift_to_offspring": [0.4],
        "reproduction_probability": [0.005],
        "minimum_energy_to_reproduce": [300.0],
    },
)
