import logging
import math

from pygame.math import Vector2
from pytest import approx

from primordia.sim.core.config import ArenaConfig, SimulationConfig
from primordia.sim.core.entity_type import EntityType
from primordia.sim.core.world import World
from primordia.sim.systems.safety import restore_invariants, safe_bounds


def test_healthy_entities_pass_untouched(world, make_entity):
    entity = make_entity(x=500.0, y=500.0, velocity=Vector2(3, 3))
    repaired, count = restore_invariants(world, [entity])
    assert count == 0
    assert repaired[0].position == Vector2(500, 500)
    assert repaired[0].velocity == Vector2(3, 3)


def test_nan_position_respawns_near_parent(world, make_entity, caplog):
    parent = make_entity(x=500.0, y=500.0, id="parent")
    child = make_entity(
        x=math.nan,
        y=200.0,
        parent_id="parent",
        velocity=Vector2(math.inf, 0),
        force_input=Vector2(4, 4),
    )
    with caplog.at_level(logging.WARNING, logger="primordia.safety"):
        repaired, count = restore_invariants(world, [parent, child])

    fixed = repaired[1]
    assert count == 1
    assert 450.0 <= fixed.position.x <= 550.0
    assert 450.0 <= fixed.position.y <= 550.0
    assert fixed.velocity == Vector2(0, 0)
    assert fixed.force_input.x == approx(0.4)
    assert fixed.force_input.y == approx(0.4)
    assert any("Repairing entity" in record.getMessage() for record in caplog.records)


def test_zero_position_without_parent_respawns_in_safe_box(world, make_entity):
    lost = make_entity(EntityType.NUTRIENT, x=0.0, y=0.0)
    repaired, count = restore_invariants(world, [lost])
    min_x, max_x, min_y, max_y = safe_bounds(world)
    assert count == 1
    assert min_x <= repaired[0].position.x <= max_x
    assert min_y <= repaired[0].position.y <= max_y
    assert repaired[0].position.length_squared() > 0.0


def test_out_of_range_positions_are_clamped(world, make_entity):
    hugging = make_entity(x=5.0, y=500.0)
    escaped = make_entity(x=2000.0, y=20.0)
    repaired, count = restore_invariants(world, [hugging, escaped])
    assert count == 2
    assert repaired[0].position == Vector2(10, 500)
    assert repaired[1].position == Vector2(990, 20)


def test_safe_box_respects_small_arena():
    world = World(SimulationConfig(arena=ArenaConfig(width=300.0, height=200.0)))
    assert safe_bounds(world) == (10.0, 290.0, 10.0, 190.0)
