from __future__ import annotations

from ..core.dna import DNA, LINEAGE_NAME, TRAIT_RANGES
from ..core.errors import GeneExpressionError
from ..core.rng import DeterministicRng
from ..utils.math2d import _clamp_value

MUTATION_RATE = 0.5
MUTATION_MAGNITUDE = 0.2
COPY_GENE_RATE = 0.025


def express_gene(dna: DNA, trait: str, rng: DeterministicRng) -> float:
    """Resolve a trait to one allele, drawn uniformly on every call.

    Allele lists longer than one make the phenotype vary from tick to tick.
    """
    if trait == LINEAGE_NAME:
        raise GeneExpressionError("lineage_name is a label, not an expressible trait")
    alleles = dna.genes.get(trait)
    if alleles is None:
        raise GeneExpressionError(f"Unknown trait {trait!r}")
    if not alleles:
        raise GeneExpressionError(f"Trait {trait!r} has no alleles")
    return alleles[rng.next_int(len(alleles))]


def mutate_dna(
    parent: DNA,
    rng: DeterministicRng,
    mutation_rate: float = MUTATION_RATE,
    mutation_magnitude: float = MUTATION_MAGNITUDE,
    copy_gene_rate: float = COPY_GENE_RATE,
) -> DNA:
    """Return a child genome; point mutation and gene copy fire independently per trait."""
    child = parent.copy()
    half = mutation_magnitude / 2.0
    for trait, alleles in child.genes.items():
        if rng.next_float() < mutation_rate:
            index = rng.next_int(len(alleles))
            low, high = TRAIT_RANGES[trait]
            alleles[index] = _clamp_value(alleles[index] + rng.next_range(-half, half), low, high)
        if rng.next_float() < copy_gene_rate:
            alleles.append(alleles[rng.next_int(len(alleles))])
    return child
