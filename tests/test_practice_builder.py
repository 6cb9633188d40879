import random
from collections import Counter

import pytest

from studycore.session_builders.pool_types import Exercise, MasteryRecord
from studycore.session_builders.pool_utils import (
    avoid_consecutive_same_type,
    fisher_yates_shuffle,
    split_counts,
)
from studycore.session_builders.practice_builder import (
    build_fire_practice_session,
    build_practice_session,
    calculate_exercise_reach,
    categorize_by_fire,
    categorize_by_strength,
    get_due_items_from_exercise,
    rank_exercises_by_reach,
)


def _has_triple(session):
    return any(
        session[i].type == session[i + 1].type == session[i + 2].type
        for i in range(len(session) - 2)
    )


@pytest.fixture
def balanced_exercises(make_exercise):
    types = ["translate", "cloze", "listen", "match"]
    return [
        make_exercise(f"e{t}{i}", t, [f"w{t}{i}"])
        for t in types
        for i in range(3)
    ]


@pytest.fixture
def bucketed(make_exercise):
    """Ten exercises per strength bucket, with matching mastery records."""
    exercises = []
    mastery = []
    for bucket, strength in (("weak", 10), ("learning", 60), ("mastered", 90)):
        for i in range(10):
            item_id = f"{bucket}-item-{i}"
            exercises.append(make_exercise(f"{bucket}-{i}", ["a", "b", "c"][i % 3], [item_id]))
            mastery.append(MasteryRecord(item_id=item_id, strength=strength))
    return exercises, mastery


class TestPoolUtils:

    def test_fisher_yates_returns_permutation_copy(self):
        items = list(range(20))
        shuffled = fisher_yates_shuffle(items, random.Random(3))

        assert sorted(shuffled) == items
        assert items == list(range(20))

    def test_fisher_yates_is_reproducible_with_seed(self):
        assert fisher_yates_shuffle(range(10), random.Random(7)) == fisher_yates_shuffle(range(10), random.Random(7))

    def test_split_counts_rounds_half_up(self):
        assert split_counts(10, 0.4, 0.2) == (4, 4, 2)
        assert split_counts(5, 0.4, 0.2) == (2, 2, 1)
        assert split_counts(1, 0.4, 0.2) == (0, 1, 0)

    def test_reorder_breaks_triples(self, make_exercise):
        exercises = [
            make_exercise("1", "a", []), make_exercise("2", "a", []), make_exercise("3", "a", []),
            make_exercise("4", "b", []), make_exercise("5", "b", []), make_exercise("6", "c", []),
        ]
        reordered = avoid_consecutive_same_type(exercises)

        assert not _has_triple(reordered)
        assert sorted(e.id for e in reordered) == ["1", "2", "3", "4", "5", "6"]

    def test_equal_scores_prefer_the_most_remaining_type(self, make_exercise):
        exercises = [make_exercise("1", "b", []), make_exercise("2", "a", []), make_exercise("3", "a", [])]
        assert [e.id for e in avoid_consecutive_same_type(exercises)] == ["2", "1", "3"]

    def test_short_lists_are_returned_as_is(self, make_exercise):
        exercises = [make_exercise("1", "a", []), make_exercise("2", "a", [])]
        assert avoid_consecutive_same_type(exercises) == exercises


class TestCategorize:

    def test_by_strength_thresholds(self, make_exercise):
        exercises = [
            make_exercise("weak", "t", ["w1", "missing"]),
            make_exercise("learning", "t", ["w40"]),
            make_exercise("mastered", "t", ["w80"]),
            make_exercise("empty", "t", []),
        ]
        mastery = [
            MasteryRecord("w1", 70),
            MasteryRecord("w40", 40),
            MasteryRecord("w80", 80),
        ]
        result = categorize_by_strength(exercises, mastery)

        assert [e.id for e in result.weak] == ["weak", "empty"]
        assert [e.id for e in result.learning] == ["learning"]
        assert [e.id for e in result.mastered] == ["mastered"]

    def test_by_fire_state(self, make_exercise, make_state, now):
        exercises = [
            make_exercise("weak", "t", ["new"]),
            make_exercise("learning", "t", ["faded"]),
            make_exercise("mastered", "t", ["solid"]),
            make_exercise("unknown", "t", ["no-state"]),
        ]
        mastery = [
            MasteryRecord("new", state=make_state(0.5, 0.3)),
            MasteryRecord("faded", state=make_state(3, 0.2)),
            MasteryRecord("solid", state=make_state(3, 0.9)),
            MasteryRecord("no-state", strength=95),
        ]
        result = categorize_by_fire(exercises, mastery, now)

        assert [e.id for e in result.weak] == ["weak", "unknown"]
        assert [e.id for e in result.learning] == ["learning"]
        assert [e.id for e in result.mastered] == ["mastered"]


class TestBuildPracticeSession:

    @pytest.mark.parametrize("seed", range(25))
    @pytest.mark.parametrize("count", [6, 8, 12])
    def test_never_three_of_a_type_in_a_row(self, balanced_exercises, seed, count):
        session = build_practice_session(balanced_exercises, [], count, random.Random(seed))

        assert len(session) == count
        assert not _has_triple(session)

    def test_bucket_ratios(self, bucketed):
        exercises, mastery = bucketed
        session = build_practice_session(exercises, mastery, 10, random.Random(1))
        buckets = Counter(e.id.split("-")[0] for e in session)

        assert buckets == {"weak": 4, "learning": 4, "mastered": 2}

    def test_short_bucket_is_backfilled(self, make_exercise):
        exercises = [make_exercise(f"e{i}", ["a", "b", "c"][i % 3], [f"w{i}"]) for i in range(5)]
        session = build_practice_session(exercises, [], 4, random.Random(2))

        assert len(session) == 4
        assert len({e.id for e in session}) == 4

    def test_count_larger_than_pool_returns_everything(self, balanced_exercises):
        session = build_practice_session(balanced_exercises, [], 50, random.Random(0))
        assert sorted(e.id for e in session) == sorted(e.id for e in balanced_exercises)

    def test_empty_inputs(self, balanced_exercises):
        assert build_practice_session([], [], 10) == []
        assert build_practice_session(balanced_exercises, [], 0) == []
        assert build_practice_session(balanced_exercises, [], -3) == []

    def test_same_seed_same_session(self, bucketed):
        exercises, mastery = bucketed
        first = build_practice_session(exercises, mastery, 8, random.Random(42))
        second = build_practice_session(exercises, mastery, 8, random.Random(42))
        assert [e.id for e in first] == [e.id for e in second]


class TestBuildFirePracticeSession:

    @pytest.fixture
    def due_mastery(self, make_state):
        # All four items overdue; D has the lowest memory
        return [
            MasteryRecord("A", state=make_state(0, 0.2, days_ago=2)),
            MasteryRecord("B", state=make_state(0, 0.3, days_ago=2)),
            MasteryRecord("C", state=make_state(0, 0.4, days_ago=2)),
            MasteryRecord("D", state=make_state(0, 0.1, days_ago=2)),
        ]

    @pytest.fixture
    def item_exercises(self, make_exercise):
        return [
            make_exercise("ex-B", "cloze", ["B"]),
            make_exercise("ex-C", "listen", ["C"]),
            make_exercise("ex-A", "translate", ["A"]),
            make_exercise("ex-D", "match", ["D"]),
            make_exercise("ex-X", "translate", ["X"]),
            make_exercise("ex-Y", "cloze", ["Y"]),
        ]

    def test_compression_picks_covering_exercises(self, item_exercises, due_mastery, knockout_graph, now):
        session = build_fire_practice_session(
            item_exercises, due_mastery, 2, knockout_graph, rng=random.Random(0), now=now
        )
        assert {e.id for e in session} == {"ex-A", "ex-D"}

    def test_without_graph_lowest_memory_first(self, item_exercises, due_mastery, now):
        session = build_fire_practice_session(item_exercises, due_mastery, 1, rng=random.Random(0), now=now)
        assert [e.id for e in session] == ["ex-D"]

    def test_each_priority_item_takes_its_first_unselected_exercise(self, make_exercise, due_mastery, now):
        exercises = [
            make_exercise("ex-DA", "translate", ["D", "A"]),
            make_exercise("ex-A", "cloze", ["A"]),
            make_exercise("ex-B", "listen", ["B"]),
        ]
        # D picks ex-DA; A still gets its own exercise even though ex-DA contains it
        session = build_fire_practice_session(exercises, due_mastery, 2, rng=random.Random(0), now=now)
        assert {e.id for e in session} == {"ex-DA", "ex-A"}

    def test_remaining_slots_are_filled(self, item_exercises, due_mastery, knockout_graph, now):
        session = build_fire_practice_session(
            item_exercises, due_mastery, 5, knockout_graph, rng=random.Random(3), now=now
        )
        ids = [e.id for e in session]

        assert len(ids) == 5
        assert len(set(ids)) == 5
        assert {"ex-A", "ex-D"} <= set(ids)

    def test_count_larger_than_pool(self, item_exercises, due_mastery, now):
        session = build_fire_practice_session(item_exercises, due_mastery, 20, now=now)
        assert len(session) == len(item_exercises)

    def test_empty_inputs(self, item_exercises, now):
        assert build_fire_practice_session([], [], 5, now=now) == []
        assert build_fire_practice_session(item_exercises, [], 0, now=now) == []
        assert len(build_fire_practice_session(item_exercises, [], 3, now=now)) == 3


def test_due_items_from_exercise(make_exercise, make_state, now):
    exercise = make_exercise("e1", "t", ["due", "fresh", "unknown"])
    mastery_map = {
        "due": MasteryRecord("due", state=make_state(0, 0.2, days_ago=3)),
        "fresh": MasteryRecord("fresh", state=make_state(2, 1.0)),
    }
    assert get_due_items_from_exercise(exercise, mastery_map, now=now) == ["due"]


def test_exercise_reach(make_exercise, knockout_graph):
    exercise = make_exercise("e1", "t", ["A", "X"])
    assert calculate_exercise_reach(exercise, knockout_graph, {"A", "B", "C"}) == pytest.approx(2.8)


def test_rank_exercises_by_reach(make_exercise, knockout_graph):
    low = make_exercise("low", "t", ["C"])
    high = make_exercise("high", "t", ["A"])
    ranked = rank_exercises_by_reach([low, high], knockout_graph, {"A", "B", "C"})
    assert [e.id for e in ranked] == ["high", "low"]


def test_exercise_accepts_camel_case_payload():
    exercise = Exercise.model_validate({"id": "e1", "lessonId": "l1", "type": "cloze", "itemIds": ["w1"]})
    assert exercise.lesson_id == "l1"
    assert exercise.item_ids == ["w1"]
