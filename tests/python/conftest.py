import itertools
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-config-tests",
        action="store_true",
        default=False,
        help="run tests that are intended only for configuration changes",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "config_change: marks tests that should only run when configuration files change",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-config-tests"):
        return

    skip_marker = pytest.mark.skip(
        reason="Run only when configuration is modified (use --run-config-tests)",
    )

    for item in items:
        if "config_change" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def world():
    from primordia.sim.core.config import SimulationConfig
    from primordia.sim.core.world import World

    return World(SimulationConfig(seed=1234))


@pytest.fixture
def make_entity():
    """Factory for hand-placed entities; organisms get herbivore DNA unless ``dna`` is given."""
    from pygame.math import Vector2

    from primordia.sim.core.dna import HERBIVORE_DNA_TEMPLATE
    from primordia.sim.core.entity import Entity
    from primordia.sim.core.entity_type import EntityType

    counter = itertools.count()

    def _make(entity_type=EntityType.ORGANISM, x=100.0, y=100.0, **fields):
        entity_type = EntityType(entity_type)
        fields.setdefault("id", f"{entity_type.value}-{next(counter)}")
        if "dna" not in fields and entity_type == EntityType.ORGANISM:
            fields["dna"] = HERBIVORE_DNA_TEMPLATE.copy()
        return Entity(entity_type=entity_type, position=Vector2(x, y), **fields)

    return _make
