import math

import numpy as np
import pytest

from hic_expected.accumulator import AccumulatorFinalizedError, ExpectedValueAccumulator
from hic_expected.chromosomes import ChromosomeLengthError, ChromosomeMeta


def _genome():
    return [
        ChromosomeMeta(index=0, name="All", length=3000),
        ChromosomeMeta(index=1, name="chr1", length=1000),
        ChromosomeMeta(index=2, name="chr2", length=2000),
    ]


def test_number_of_bins_ignores_whole_genome():
    acc = ExpectedValueAccumulator(_genome(), 100)
    assert acc.number_of_bins == 21
    assert acc.lengths == {1: 1000, 2: 2000}
    assert acc.histogram.shape == (21,)
    assert not acc.is_frag


def test_grid_size_must_be_positive():
    with pytest.raises(ValueError):
        ExpectedValueAccumulator(_genome(), 0)


def test_add_observation_updates_histogram_and_totals():
    acc = ExpectedValueAccumulator(_genome(), 100)
    acc.add_observation(1, 3, 5, 2.0)
    acc.add_observation(1, 5, 3, 1.5)
    acc.add_observation(2, 7, 7, 4.0)

    h = acc.histogram
    assert h[2] == 3.5
    assert h[0] == 4.0
    assert h.sum() == 7.5
    assert acc.chromosome_totals == {1: 3.5, 2: 4.0}


def test_nan_and_unknown_chromosome_are_ignored():
    acc = ExpectedValueAccumulator(_genome(), 100)
    acc.add_observation(1, 0, 4, 1.0)
    before_h = acc.histogram
    before_t = acc.chromosome_totals

    acc.add_observation(1, 0, 4, float("nan"))
    acc.add_observation(2, 1, 1, math.inf)
    acc.add_observation(9, 0, 4, 5.0)
    acc.add_observation(0, 0, 4, 5.0)  # whole-genome entry is not a chromosome

    np.testing.assert_array_equal(acc.histogram, before_h)
    assert acc.chromosome_totals == before_t


def test_distance_beyond_histogram_raises():
    acc = ExpectedValueAccumulator(_genome(), 100)
    with pytest.raises(IndexError):
        acc.add_observation(2, 0, 21, 1.0)
    assert acc.chromosome_totals == {}


def test_fragment_mode_uses_fragment_counts():
    acc = ExpectedValueAccumulator(_genome(), 10, fragment_counts={"chr1": 55, "chr2": 95})
    assert acc.is_frag
    assert acc.number_of_bins == 10
    assert acc.lengths == {1: 55, 2: 95}


def test_fragment_mode_missing_chromosome_is_a_config_error():
    with pytest.raises(ChromosomeLengthError, match="chr2"):
        ExpectedValueAccumulator(_genome(), 10, fragment_counts={"chr1": 55})


def test_finalize_freezes_accumulator():
    acc = ExpectedValueAccumulator(_genome(), 100)
    acc.add_observation(1, 0, 0, 500.0)
    acc.finalize()
    assert acc.finalized

    with pytest.raises(AccumulatorFinalizedError):
        acc.add_observation(1, 0, 0, 1.0)
    with pytest.raises(AccumulatorFinalizedError):
        acc.add_observations([1], [0], [0], [1.0])
    with pytest.raises(AccumulatorFinalizedError):
        acc.finalize()


def test_add_observations_matches_scalar_calls():
    rng = np.random.default_rng(1)
    n = 500
    chrom = rng.choice([1, 2, 7], size=n)
    b1 = rng.integers(0, 10, size=n)
    b2 = rng.integers(0, 10, size=n)
    w = rng.integers(1, 5, size=n).astype(np.float64)
    w[::17] = np.nan

    a = ExpectedValueAccumulator(_genome(), 100)
    for c, x, y, v in zip(chrom, b1, b2, w):
        a.add_observation(int(c), int(x), int(y), float(v))

    b = ExpectedValueAccumulator(_genome(), 100)
    kept = b.add_observations(chrom, b1, b2, w)

    assert kept == int(np.sum(np.isfinite(w) & (chrom != 7)))
    np.testing.assert_allclose(b.histogram, a.histogram)
    assert b.chromosome_totals.keys() == a.chromosome_totals.keys()
    for k, v in a.chromosome_totals.items():
        assert b.chromosome_totals[k] == pytest.approx(v)


def test_add_observations_out_of_range_adds_nothing():
    acc = ExpectedValueAccumulator(_genome(), 100)
    with pytest.raises(IndexError):
        acc.add_observations([1, 2], [0, 0], [1, 30], 1.0)
    assert acc.histogram.sum() == 0
    assert acc.chromosome_totals == {}


def test_merge_partial_accumulators():
    obs = [(1, 0, 2, 3.0), (2, 4, 1, 2.0), (2, 0, 0, 7.0), (1, 5, 5, 1.0)]

    whole = ExpectedValueAccumulator(_genome(), 100)
    for o in obs:
        whole.add_observation(*o)

    left = ExpectedValueAccumulator(_genome(), 100)
    right = ExpectedValueAccumulator(_genome(), 100)
    for o in obs[:2]:
        left.add_observation(*o)
    for o in obs[2:]:
        right.add_observation(*o)
    left.merge(right)

    np.testing.assert_array_equal(left.histogram, whole.histogram)
    assert left.chromosome_totals == whole.chromosome_totals


def test_merge_rejects_different_grid():
    a = ExpectedValueAccumulator(_genome(), 100)
    b = ExpectedValueAccumulator(_genome(), 50)
    with pytest.raises(ValueError):
        a.merge(b)


def test_order_of_observations_does_not_matter():
    rng = np.random.default_rng(7)
    obs = [
        (int(rng.choice([1, 2])), int(rng.integers(0, 10)), int(rng.integers(0, 10)), float(rng.integers(1, 50)))
        for _ in range(2000)
    ]

    results = []
    for perm in (np.arange(len(obs)), rng.permutation(len(obs)), rng.permutation(len(obs))):
        acc = ExpectedValueAccumulator(_genome(), 100)
        for i in perm:
            acc.add_observation(*obs[i])
        results.append(acc.finalize())

    for r in results[1:]:
        np.testing.assert_array_equal(r.density, results[0].density)
        assert dict(r.scale_factors) == dict(results[0].scale_factors)
