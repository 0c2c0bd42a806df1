from dogtrails.models import Difficulty, DogFilter, DogPolicy, Effort, Length

# (min_km, max_km, target_km)
LENGTH_BUCKETS = {
    Length.SHORT: (2.0, 6.0, 4.0),
    Length.MEDIUM: (6.0, 12.0, 9.0),
    Length.LONG: (12.0, 24.0, 18.0),
}

DIFFICULTY_RANK = {
    Difficulty.EASY: 1,
    Difficulty.MODERATE: 2,
    Difficulty.HARD: 3,
}

EFFORT_DIFFICULTY = {
    Effort.EASY: Difficulty.EASY,
    Effort.STEADY: Difficulty.MODERATE,
    Effort.HARD: Difficulty.HARD,
}

NO_EFFORT_MISMATCH = 0.5
DIFFICULTY_WEIGHT = 2.0
ELEVATION_DIVISOR = 600.0


def dog_policy_allows(trail, dog_filter):
    if dog_filter == DogFilter.ALLOWED_ONLY:
        return trail.dog_policy == DogPolicy.ALLOWED
    if dog_filter == DogFilter.ANY:
        return True
    return trail.dog_policy in (DogPolicy.ALLOWED, DogPolicy.PARTIAL)


def distance_range(query):
    """(min_km, max_km, target_km) from explicit bounds, else the length bucket."""
    if query.min_km is not None or query.max_km is not None:
        target = None
        if query.min_km is not None and query.max_km is not None:
            target = (query.min_km + query.max_km) / 2
        return query.min_km, query.max_km, target
    return LENGTH_BUCKETS[query.length or Length.MEDIUM]


def within_distance(distance_km, range_):
    # 0.0 means the length is unknown
    if distance_km == 0.0:
        return True
    min_km, max_km, _ = range_
    if min_km is not None and distance_km < min_km:
        return False
    if max_km is not None and distance_km > max_km:
        return False
    return True


def difficulty_mismatch(difficulty, effort):
    if effort is None:
        return NO_EFFORT_MISMATCH
    return abs(DIFFICULTY_RANK[difficulty] - DIFFICULTY_RANK[EFFORT_DIFFICULTY[effort]])


def score_trail(trail, range_, effort):
    """Lower is better."""
    target = range_[2]
    distance_penalty = abs(trail.distance_km - target) if target is not None else 0.0
    elevation_penalty = (trail.elevation_gain_m or 0.0) / ELEVATION_DIVISOR
    return (distance_penalty
            + DIFFICULTY_WEIGHT * difficulty_mismatch(trail.difficulty, effort)
            + elevation_penalty)


def filter_and_rank(trails, query):
    """Trails matching the query's dog, difficulty and distance filters, best first."""
    dog_filter = query.dog or DogFilter.ALLOWED_OR_PARTIAL
    range_ = distance_range(query)

    matches = [
        t for t in trails
        if dog_policy_allows(t, dog_filter)
        and (query.difficulty is None or t.difficulty == query.difficulty)
        and within_distance(t.distance_km, range_)
    ]
    # stable: ties keep input order
    return sorted(matches, key=lambda t: score_trail(t, range_, query.effort))
