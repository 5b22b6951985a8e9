from pygame.math import Vector2

from primordia.sim.core.entity import Engram
from primordia.sim.core.entity_type import EntityType
from primordia.sim.systems.memory import find_nearest_entity, get_new_working_memory, get_random_sample


def test_sample_draws_one_more_than_requested(world, make_entity):
    current = make_entity()
    population = [current] + [make_entity(EntityType.NUTRIENT, x=50.0 + i, y=50.0) for i in range(10)]
    sample = get_random_sample(world, current, population, 5)
    ids = [entity.id for entity in sample]
    assert len(sample) == 6
    assert len(set(ids)) == 6
    assert current.id not in ids


def test_small_population_returns_everyone_else(world, make_entity):
    current = make_entity()
    others = [make_entity(EntityType.NUTRIENT, x=50.0 + i, y=50.0) for i in range(5)]
    sample = get_random_sample(world, current, [current] + others, 5)
    assert sorted(entity.id for entity in sample) == sorted(entity.id for entity in others)
    assert get_random_sample(world, current, [current], 5) == []


def test_working_memory_keeps_nearest_three(make_entity):
    current = make_entity(x=100.0, y=100.0)
    sample = [make_entity(EntityType.NUTRIENT, x=100.0 + d, y=100.0, id=f"n{d}") for d in (5, 1, 3, 4, 2)]
    memory = get_new_working_memory(current, sample, tick=4)
    assert [engram.entity_id for engram in memory] == ["n1", "n2", "n3"]
    assert [engram.distance for engram in memory] == [1.0, 2.0, 3.0]
    assert all(engram.created_at == 4 and engram.updated_at == 4 for engram in memory)
    assert memory[0].position is not sample[1].position


def test_working_memory_refreshes_and_keeps_stale_engrams(make_entity):
    current = make_entity(x=100.0, y=100.0)
    current.working_memory = [
        Engram("a", EntityType.NUTRIENT, Vector2(150, 100), 80.0, 50.0, created_at=2, updated_at=2),
        Engram("z", EntityType.ORGANISM, Vector2(101, 100), 40.0, 1.0, created_at=3, updated_at=3),
    ]
    moved = make_entity(EntityType.NUTRIENT, x=102.0, y=100.0, id="a", energy=70.0)
    memory = get_new_working_memory(current, [moved], tick=7)
    by_id = {engram.entity_id: engram for engram in memory}

    assert [engram.entity_id for engram in memory] == ["z", "a"]
    assert by_id["a"].created_at == 2
    assert by_id["a"].updated_at == 7
    assert by_id["a"].position == Vector2(102, 100)
    assert by_id["a"].energy == 70.0
    assert by_id["z"].updated_at == 3
    assert by_id["z"].position is not current.working_memory[1].position


def test_find_nearest_entity_filters_by_type(make_entity):
    current = make_entity(x=0.0, y=0.0)
    near_organism = make_entity(x=1.0, y=0.0)
    far_food = make_entity(EntityType.NUTRIENT, x=30.0, y=0.0)
    near_food = make_entity(EntityType.NUTRIENT, x=10.0, y=0.0)
    population = [current, near_organism, far_food, near_food]
    assert find_nearest_entity(current, population, EntityType.NUTRIENT) is near_food
    assert find_nearest_entity(current, population, EntityType.ORGANISM) is near_organism
    assert find_nearest_entity(current, [current], EntityType.ORGANISM) is None
