from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class ArenaConfig:
    width: float = 1000.0
    height: float = 1000.0
    friction: float = 0.9


@dataclass
class OrganismConfig:
    max_organisms: int = 50
    max_age: int = 2_000
    default_energy_gift: float = 100.0
    random_sample_size: int = 5
    affinity_force_multiplier: float = 100.0
    max_force: Optional[float] = 2.0
    working_memory_size: int = 3
    max_bite_size: float = 10.0
    min_eating_distance: float = 10.0
    low_energy_threshold: float = 10.0
    base_metabolic_cost: float = 0.2
    reproduction_min_age: int = 20
    spawn_force_range: float = 10.0
    spawn_force_scale: float = 0.2
    size: float = 10.0
    color: str = "green"


@dataclass
class NutrientConfig:
    max_nutrients: int = 50
    energy: float = 100.0
    reproduction_min_age: int = 20
    reproduction_chance: float = 0.05
    guaranteed_survival_age: int = 200
    survival_chance: float = 0.995
    spawn_offset: float = 10.0
    spawn_force_scale: float = 0.2
    size: float = 10.0
    color: str = "green"


@dataclass
class GeneticsConfig:
    mutation_rate: float = 0.5
    mutation_magnitude: float = 0.2
    copy_gene_rate: float = 0.025


@dataclass
class SafetyConfig:
    min_position_value: float = 10.0
    max_position_value: float = 1000.0
    parent_respawn_offset: float = 50.0
    repair_vector_scale: float = 0.1


@dataclass
class SimulationConfig:
    seed: int = 42
    initial_organisms: int = 25
    initial_nutrients: int = 50
    max_action_history: Optional[int] = 50
    arena: ArenaConfig = field(default_factory=ArenaConfig)
    organism: OrganismConfig = field(default_factory=OrganismConfig)
    nutrient: NutrientConfig = field(default_factory=NutrientConfig)
    genetics: GeneticsConfig = field(default_factory=GeneticsConfig)
    safety: SafetyConfig = field(default_factory=SafetyConfig)

    @property
    def width(self) -> float:
        return self.arena.width

    @property
    def height(self) -> float:
        return self.arena.height

    @property
    def friction(self) -> float:
        return self.arena.friction

    @property
    def max_organisms(self) -> int:
        return self.organism.max_organisms

    @property
    def max_nutrients(self) -> int:
        return self.nutrient.max_nutrients

    @property
    def max_age(self) -> int:
        return self.organism.max_age

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    tick_interval: float = 0.1
    save_interval: int = 100
    max_save_attempts: int = 3
    log_level: str = "INFO"

    @staticmethod
    def from_yaml(path: Path) -> "AppConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        app_values = {k: v for k, v in data.items() if k != "simulation"}
        return AppConfig(simulation=load_config(data.get("simulation", {})), **app_values)


def load_config(raw: dict) -> SimulationConfig:
    arena = ArenaConfig(**raw.get("arena", {}))
    organism = OrganismConfig(**raw.get("organism", {}))
    nutrient = NutrientConfig(**raw.get("nutrient", {}))
    genetics = GeneticsConfig(**raw.get("genetics", {}))
    safety = SafetyConfig(**raw.get("safety", {}))
    sim_values = {
        k: v for k, v in raw.items() if k not in {"arena", "organism", "nutrient", "genetics", "safety"}
    }
    return SimulationConfig(
        arena=arena,
        organism=organism,
        nutrient=nutrient,
        genetics=genetics,
        safety=safety,
        **sim_values,
    )
