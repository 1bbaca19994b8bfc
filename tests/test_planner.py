import itertools
import random
from collections import Counter

from carpatch_core.planner import build_plan


def test_plain_plan_keeps_order():
    plan = build_plan(3, ["a", "b"])

    assert plan.fragments == ("a", "b")
    assert plan.decoy_count == 0
    assert len(plan) == 2


def test_decoy_count_matches_marker_count():
    for markers in (0, 1, 4, 9):
        plan = build_plan(markers, ["real"], add_fake_patches=True, rng=random.Random(markers))
        assert plan.decoy_count == markers
        assert len(plan) == 1 + markers
        assert plan.fragments[0] == "real"


def test_shuffle_preserves_fragments():
    fragments = [f"f{i}" for i in range(10)]
    plan = build_plan(10, fragments, randomize_order=True, rng=random.Random(3))

    assert sorted(plan.fragments) == sorted(fragments)


def test_shuffle_with_decoys_keeps_real_fragments():
    plan = build_plan(4, ["r1", "r2"], randomize_order=True, add_fake_patches=True, rng=random.Random(8))

    assert len(plan) == 6
    assert {"r1", "r2"} <= set(plan.fragments)


def test_seeded_shuffle_is_reproducible():
    fragments = ["a", "b", "c", "d", "e"]
    first = build_plan(5, fragments, randomize_order=True, rng=random.Random(42))
    second = build_plan(5, fragments, randomize_order=True, rng=random.Random(42))

    assert first == second


def test_shuffle_reaches_every_permutation_evenly():
    rng = random.Random(2024)
    counts = Counter(
        build_plan(3, ["a", "b", "c"], randomize_order=True, rng=rng).fragments
        for _ in range(6000)
    )

    assert set(counts) == set(itertools.permutations(["a", "b", "c"]))
    for count in counts.values():
        assert 850 < count < 1150


def test_input_list_is_not_mutated():
    fragments = ["a", "b", "c"]
    build_plan(3, fragments, randomize_order=True, add_fake_patches=True, rng=random.Random(0))

    assert fragments == ["a", "b", "c"]
