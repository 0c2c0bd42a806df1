import pytest

from dogtrails.models import Difficulty, DogFilter, DogPolicy, Effort, Length, TrailQuery
from dogtrails.ranking import distance_range, filter_and_rank, score_trail

from conftest import make_trail


def test_filters_dog_allowed_by_default(sample_trails):
    results = filter_and_rank(sample_trails, TrailQuery(length=Length.SHORT))
    assert [t.id for t in results] == ['t1']


def test_any_dog_policy_when_requested(sample_trails):
    query = TrailQuery(dog=DogFilter.ANY, min_km=0.0, max_km=20.0)
    results = filter_and_rank(sample_trails, query)
    # t1: |5-10| + 2*0.5 + 120/600 = 6.2, t2: |12-10| + 2*0.5 + 520/600 ~ 3.87
    assert [t.id for t in results] == ['t2', 't1']


def test_allowed_only_excludes_partial():
    trails = [
        make_trail('a', dog_policy=DogPolicy.PARTIAL),
        make_trail('b', dog_policy=DogPolicy.ALLOWED),
        make_trail('c', dog_policy=DogPolicy.UNKNOWN),
    ]
    results = filter_and_rank(trails, TrailQuery(dog=DogFilter.ALLOWED_ONLY, length=Length.SHORT))
    assert [t.id for t in results] == ['b']
    results = filter_and_rank(trails, TrailQuery(length=Length.SHORT))
    assert [t.id for t in results] == ['a', 'b']


def test_unknown_distance_always_passes_range():
    trails = [make_trail('unknown', distance_km=0.0), make_trail('short', distance_km=3.0)]
    results = filter_and_rank(trails, TrailQuery(min_km=10.0, max_km=20.0))
    assert [t.id for t in results] == ['unknown']


def test_difficulty_exact_match():
    trails = [
        make_trail('easy', distance_km=8.0, difficulty=Difficulty.EASY),
        make_trail('moderate', distance_km=8.0, difficulty=Difficulty.MODERATE),
    ]
    results = filter_and_rank(trails, TrailQuery(difficulty=Difficulty.MODERATE))
    assert [t.id for t in results] == ['moderate']


def test_effort_prefers_matching_difficulty():
    trails = [
        make_trail('easy', distance_km=9.0, difficulty=Difficulty.EASY),
        make_trail('hard', distance_km=9.0, difficulty=Difficulty.HARD),
    ]
    results = filter_and_rank(trails, TrailQuery(effort=Effort.HARD))
    assert [t.id for t in results] == ['hard', 'easy']


def test_ties_keep_input_order():
    trails = [make_trail(f't{i}', distance_km=9.0) for i in range(5)]
    results = filter_and_rank(trails, TrailQuery())
    assert [t.id for t in results] == ['t0', 't1', 't2', 't3', 't4']


def test_no_result_cap():
    trails = [make_trail(f't{i}', distance_km=9.0) for i in range(60)]
    assert len(filter_and_rank(trails, TrailQuery())) == 60


@pytest.mark.parametrize('query,expected', [
    (TrailQuery(length=Length.SHORT), (2.0, 6.0, 4.0)),
    (TrailQuery(length=Length.MEDIUM), (6.0, 12.0, 9.0)),
    (TrailQuery(length=Length.LONG), (12.0, 24.0, 18.0)),
    (TrailQuery(), (6.0, 12.0, 9.0)),
    (TrailQuery(min_km=4.0, max_km=8.0, length=Length.LONG), (4.0, 8.0, 6.0)),
    (TrailQuery(min_km=4.0), (4.0, None, None)),
])
def test_distance_range(query, expected):
    assert distance_range(query) == expected


def test_score_formula():
    trail = make_trail(distance_km=7.0, difficulty=Difficulty.HARD, elevation_gain_m=300.0)
    range_ = (6.0, 12.0, 9.0)
    assert score_trail(trail, range_, Effort.EASY) == pytest.approx(2.0 + 2 * 2 + 0.5)
    assert score_trail(trail, range_, None) == pytest.approx(2.0 + 1.0 + 0.5)
    assert score_trail(trail, (4.0, None, None), Effort.HARD) == pytest.approx(0.5)
