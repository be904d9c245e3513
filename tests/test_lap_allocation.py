import random

import pytest

from lap_allocation import Lap, allocate_laps, round_ms


def _concat(laps):
    return [rr for lap in laps for rr in lap.assigned_rrs]


def test_round_ms():
    assert round_ms(0.1) == 100
    assert round_ms(300) == 300000
    assert round_ms(0.0996) == 100
    assert round_ms(12.3456) == 12346
    assert round_ms(0) == 0


def test_one_lap_per_duration():
    laps = allocate_laps([1, 2, 3], [500] * 12)
    assert len(laps) == 3
    assert all(isinstance(lap, Lap) for lap in laps)


def test_contiguity_and_duration():
    laps = allocate_laps([0.1, 10, 300, 10, 300], [900] * 700)
    assert laps[0].start == 0
    for i, lap in enumerate(laps):
        assert lap.finish - lap.start == lap.duration
        if i > 0:
            assert lap.start == laps[i - 1].finish
    assert [lap.duration for lap in laps] == [100, 10000, 300000, 10000, 300000]


def test_end_to_end_constant_beats():
    durations = [0.1, 10, 300, 10, 300]
    rrs = [900] * 700  # 630 s of beats, more than the 620.1 s of laps
    laps = allocate_laps(durations, rrs)

    assert laps[0].assigned_rrs == ()
    # 11 * 900 = 9900 <= 10100, 12 * 900 = 10800 > 10100
    assert len(laps[1].assigned_rrs) == 11
    assert sum(laps[1].assigned_rrs) <= 10100

    cumulative = 0
    rr_total = 0
    for lap in laps:
        cumulative += lap.duration
        rr_total += sum(lap.assigned_rrs)
        assert rr_total <= cumulative
        assert lap.average_hr == pytest.approx(len(lap.assigned_rrs) / (lap.duration / 60000))
        assert lap.rmssd == 0.0

    assert rr_total <= sum(lap.duration for lap in laps)
    # trailing beats past the last boundary are dropped
    assert len(_concat(laps)) == 620100 // 900


def test_greedy_boundary_is_inclusive():
    # 500 + 500 lands exactly on the 1000 ms boundary and stays in lap 0
    laps = allocate_laps([1, 1], [500, 500, 500, 500])
    assert laps[0].assigned_rrs == (500, 500)
    assert laps[1].assigned_rrs == (500, 500)


def test_interval_is_assigned_by_end_time():
    # the 800 ms beat starts in lap 0 but ends at 1400 ms, inside lap 1
    laps = allocate_laps([1, 1], [600, 800, 700])
    assert laps[0].assigned_rrs == (600,)
    assert laps[1].assigned_rrs == (800,)
    assert _concat(laps) == [600, 800]


def test_zero_duration_lap_gets_nothing():
    laps = allocate_laps([1, 0, 1], [400, 400, 400, 400, 400])
    assert laps[1].duration == 0
    assert laps[1].assigned_rrs == ()
    assert laps[1].average_hr == 0.0
    assert laps[1].rmssd == 0.0
    assert laps[1].start == laps[1].finish == 1000


def test_starved_laps_are_empty():
    laps = allocate_laps([1, 1, 1], [500, 500])
    assert laps[0].assigned_rrs == (500, 500)
    assert laps[1].assigned_rrs == ()
    assert laps[2].assigned_rrs == ()
    assert laps[2].average_hr == 0.0


def test_surplus_rrs_are_dropped():
    laps = allocate_laps([1], [400, 400, 400, 400])
    assert laps[0].assigned_rrs == (400, 400)


def test_empty_inputs():
    assert allocate_laps([], [800, 800]) == []
    laps = allocate_laps([5, 5], [])
    assert [lap.assigned_rrs for lap in laps] == [(), ()]


def test_rmssd_per_lap():
    laps = allocate_laps([3], [800, 810, 790])
    assert laps[0].rmssd == pytest.approx(250 ** 0.5)
    assert laps[0].average_hr == pytest.approx(60.0)


def test_negative_inputs_rejected():
    with pytest.raises(ValueError):
        allocate_laps([-1], [800])
    with pytest.raises(ValueError):
        allocate_laps([1], [-800])


def test_laps_are_immutable():
    lap = allocate_laps([1], [500])[0]
    with pytest.raises(AttributeError):
        lap.duration = 5


def test_conservation_and_boundary_on_random_inputs():
    rng = random.Random(1234)
    for _ in range(200):
        durations = [rng.choice([0, rng.uniform(0, 30)]) for _ in range(rng.randint(1, 6))]
        rrs = [rng.randint(0, 1500) for _ in range(rng.randint(0, 120))]
        laps = allocate_laps(durations, rrs)

        assigned = _concat(laps)
        assert assigned == rrs[:len(assigned)]

        cumulative = 0
        consumed = 0
        for lap in laps:
            cumulative += lap.duration
            consumed += len(lap.assigned_rrs)
            assert sum(rrs[:consumed]) <= cumulative
            if consumed < len(rrs):
                assert sum(rrs[:consumed + 1]) > cumulative
