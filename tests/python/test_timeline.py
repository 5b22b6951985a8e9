import pytest

from primordia.sim.core.timeline import Timeline


def test_step_forward_only_computes_past_newest(world, monkeypatch):
    calls = []
    compute = world.calculate_next_step

    def counting(step, tick=0, diagnostics=None):
        calls.append(tick)
        return compute(step, tick, diagnostics)

    monkeypatch.setattr(world, "calculate_next_step", counting)
    timeline = Timeline(world, world.initial_step())

    timeline.step_forward()
    timeline.step_forward()
    assert calls == [1, 2]
    assert timeline.current_index == 2

    timeline.step_backward()
    timeline.step_backward()
    assert timeline.current_index == 0
    timeline.step_backward()
    assert timeline.current_index == 0

    replayed = timeline.step_forward()
    assert replayed is timeline.step_at(1)
    assert calls == [1, 2]

    timeline.seek(2)
    timeline.step_forward()
    assert calls == [1, 2, 3]
    assert timeline.last_metrics.tick == 3
    assert len(timeline) == 4


def test_seek_outside_history_raises(world):
    timeline = Timeline(world, world.initial_step())
    with pytest.raises(IndexError):
        timeline.seek(1)
    with pytest.raises(IndexError):
        timeline.seek(-1)


def test_performance_tracks_computed_steps(world):
    timeline = Timeline(world, world.initial_step())
    for _ in range(3):
        timeline.step_forward()
    performance = timeline.performance
    assert len(performance.frame_durations) == 3
    assert performance.frame_durations[0] == timeline.last_metrics.frame_duration_ms
    assert performance.organism_calculation_times == timeline.last_metrics.organism_calculation_times_ms


def test_reset_discards_history(world):
    timeline = Timeline(world, world.initial_step())
    timeline.step_forward()
    fresh = world.initial_step()
    timeline.reset(fresh)
    assert len(timeline) == 1
    assert timeline.current is fresh
    assert timeline.last_metrics is None
    assert timeline.performance.frame_durations == []
