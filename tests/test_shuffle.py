"""Tests for the portable seeded shuffle.

The reference vectors pin the exact generator and traversal order, so any
reimplementation (in this or another language) must reproduce them.
"""

from __future__ import annotations

import pytest

from mocktest_trainer.shuffle import Mulberry32, seeded_shuffle


def test_generator_reference_outputs() -> None:
    rng = Mulberry32(0)
    assert [rng.next_u32() for _ in range(3)] == [1144304738, 1416247, 958946056]

    rng = Mulberry32(42)
    assert [rng.next_u32() for _ in range(3)] == [2581720956, 1925393290, 3661312704]


def test_seed_is_taken_modulo_2_32() -> None:
    assert seeded_shuffle(list(range(10)), 2**32 + 42) == seeded_shuffle(list(range(10)), 42)


def test_below_rejects_empty_range() -> None:
    with pytest.raises(ValueError):
        Mulberry32(1).below(0)


def test_shuffle_reference_vectors() -> None:
    assert seeded_shuffle(list(range(10)), 42) == [0, 7, 3, 5, 2, 1, 8, 9, 4, 6]
    assert seeded_shuffle(list(range(10)), 7) == [6, 5, 8, 1, 2, 3, 4, 7, 9, 0]
    assert seeded_shuffle(["a", "b"], 0) == ["b", "a"]


def test_shuffle_is_a_permutation() -> None:
    items = ["q1", "q2", "q3", "q3", "q4", "q5", "q6"]
    for seed in range(50):
        out = seeded_shuffle(items, seed)
        assert len(out) == len(items)
        assert sorted(out) == sorted(items)


def test_shuffle_is_deterministic() -> None:
    items = list(range(25))
    assert seeded_shuffle(items, 123456) == seeded_shuffle(items, 123456)


def test_shuffle_does_not_mutate_input() -> None:
    items = [1, 2, 3, 4, 5]
    seq = tuple(items)
    out = seeded_shuffle(items, 99)
    assert items == [1, 2, 3, 4, 5]
    assert out is not items
    assert seeded_shuffle(seq, 99) == out


def test_degenerate_inputs_come_back_unchanged() -> None:
    assert seeded_shuffle([], 5) == []
    single = ["only"]
    out = seeded_shuffle(single, 5)
    assert out == ["only"]
    assert out is not single


def test_distinct_seeds_give_distinct_orders() -> None:
    items = list(range(10))
    orders = {tuple(seeded_shuffle(items, seed)) for seed in range(100)}
    assert len(orders) == 100
