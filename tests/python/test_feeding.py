from pygame.math import Vector2

from primordia.sim.core.dna import CARNIVORE_DNA_TEMPLATE
from primordia.sim.core.entity import Engram
from primordia.sim.core.entity_type import EntityType
from primordia.sim.systems.feeding import get_bite_size, should_eat


def _engram(entity_id, entity_type, distance):
    return Engram(entity_id, entity_type, Vector2(distance, 0), 50.0, distance, created_at=0, updated_at=0)


def test_highest_priority_within_reach_wins(world, make_entity):
    observer = make_entity()
    engrams = [
        _engram("far", EntityType.NUTRIENT, 20.0),
        _engram("mid", EntityType.NUTRIENT, 5.0),
        _engram("close", EntityType.NUTRIENT, 2.0),
    ]
    target = should_eat(world, observer, engrams)
    assert target is not None
    assert target.entity_id == "close"


def test_nothing_within_reach(world, make_entity):
    observer = make_entity()
    assert should_eat(world, observer, [_engram("far", EntityType.NUTRIENT, 10.5)]) is None
    assert should_eat(world, observer, []) is None


def test_negative_priority_target_is_still_chosen(world, make_entity):
    # Herbivores carry organism_eating -1.0, so both candidates score below zero.
    observer = make_entity()
    engrams = [_engram("near", EntityType.ORGANISM, 2.0), _engram("farther", EntityType.ORGANISM, 8.0)]
    target = should_eat(world, observer, engrams)
    assert target is not None
    assert target.entity_id == "farther"


def test_dead_targets_are_skipped(world, make_entity):
    observer = make_entity()
    engrams = [_engram("gone", EntityType.NUTRIENT, 1.0), _engram("alive", EntityType.NUTRIENT, 4.0)]
    target = should_eat(world, observer, engrams, is_alive=lambda entity_id: entity_id != "gone")
    assert target.entity_id == "alive"


def test_zero_distance_does_not_divide_by_zero(world, make_entity):
    observer = make_entity()
    target = should_eat(world, observer, [_engram("here", EntityType.NUTRIENT, 0.0)])
    assert target.entity_id == "here"


def test_bite_size_is_capped_and_non_negative(world):
    assert get_bite_size(world, 100.0) == 10.0
    assert get_bite_size(world, 3.5) == 3.5
    assert get_bite_size(world, -2.0) == 0.0


def test_carnivore_prefers_organisms(world, make_entity):
    hunter = make_entity(dna=CARNIVORE_DNA_TEMPLATE.copy())
    engrams = [_engram("food", EntityType.NUTRIENT, 1.0), _engram("prey", EntityType.ORGANISM, 6.0)]
    assert should_eat(world, hunter, engrams).entity_id == "prey"


def test_eaten_out_targets_are_skipped(world, make_entity):
    observer = make_entity()
    engrams = [_engram("empty", EntityType.NUTRIENT, 1.0), _engram("full", EntityType.NUTRIENT, 6.0)]
    remaining = {"empty": 0.0, "full": 40.0}
    target = should_eat(world, observer, engrams, energy_of=remaining.get)
    assert target.entity_id == "full"
    assert should_eat(world, observer, engrams[:1], energy_of=remaining.get) is None
