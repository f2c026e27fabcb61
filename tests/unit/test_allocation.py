import numpy as np
import pytest

from sedlaunch.core.errors import ConfigurationError
from sedlaunch.examples.synthetic import power_law_luminosities
from sedlaunch.source.allocation import Allocation, largest_remainder


def _fractions(lum) -> np.ndarray:
    lum = np.asarray(lum, dtype=np.float64)
    return lum / lum.sum()


def test_unbiased_allocation_follows_luminosity() -> None:
    alloc = Allocation.prepare(_fractions([10.0, 20.0, 70.0]), 0.0, 0, 100)
    np.testing.assert_array_equal(alloc.counts, [10, 20, 70])
    np.testing.assert_allclose([alloc.weight(m) for m in range(3)], [1.0, 1.0, 1.0])


def test_fully_biased_allocation_is_uniform() -> None:
    alloc = Allocation.prepare(_fractions([10.0, 20.0, 70.0]), 1.0, 0, 100)
    np.testing.assert_array_equal(alloc.counts, [34, 33, 33])
    np.testing.assert_allclose([alloc.weight(m) for m in range(3)], [0.3, 0.6, 2.1])


def test_partial_bias_counts_are_close_to_quotas() -> None:
    Lv = _fractions([10.0, 20.0, 70.0])
    alloc = Allocation.prepare(Lv, 0.5, 0, 100)
    quotas = (0.5 * Lv + 0.5 / 3.0) * 100
    assert alloc.counts.sum() == 100
    assert np.all(np.abs(alloc.counts - quotas) < 1.0)


def test_boundaries_start_at_first_index() -> None:
    alloc = Allocation.prepare(_fractions([1.0, 2.0, 3.0, 4.0]), 0.25, 500, 37)
    assert alloc.first_index == 500
    assert alloc.num_indices == 37
    assert alloc.boundaries[0] == 500 and alloc.boundaries[-1] == 537
    assert np.all(np.diff(alloc.boundaries) >= 0)


def test_largest_remainder_breaks_ties_by_index() -> None:
    third = np.full(3, 1.0 / 3.0)
    np.testing.assert_array_equal(largest_remainder(third, 100), [34, 33, 33])
    np.testing.assert_array_equal(largest_remainder(third, 2), [1, 1, 0])
    np.testing.assert_array_equal(largest_remainder(third, 0), [0, 0, 0])


def test_locate_agrees_with_linear_scan() -> None:
    alloc = Allocation.prepare(_fractions([5.0, 0.0, 1.0, 0.0, 0.0, 9.0, 3.0]), 0.0, 20, 250)
    Iv = alloc.boundaries
    for h in range(20, 270):
        m = alloc.locate(h)
        assert Iv[m] <= h < Iv[m + 1]
        expected = next(k for k in range(alloc.count) if Iv[k] <= h < Iv[k + 1])
        assert m == expected


def test_zero_count_entities_are_never_located() -> None:
    alloc = Allocation.prepare(_fractions([1.0, 0.0, 1.0]), 0.0, 0, 10)
    assert alloc.counts[1] == 0
    assert {alloc.locate(h) for h in range(10)} == {0, 2}
    assert alloc.weight(1) == 0.0


def test_locate_outside_segment_raises() -> None:
    alloc = Allocation.prepare(_fractions([1.0, 1.0]), 0.5, 10, 5)
    with pytest.raises(IndexError):
        alloc.locate(9)
    with pytest.raises(IndexError):
        alloc.locate(15)


def test_invalid_inputs_raise() -> None:
    with pytest.raises(ValueError):
        Allocation.prepare(np.zeros(0), 0.5, 0, 10)
    with pytest.raises(ValueError):
        Allocation.prepare(_fractions([1.0, 1.0]), 1.5, 0, 10)
    with pytest.raises(ValueError):
        Allocation.prepare(_fractions([1.0, 1.0]), -0.1, 0, 10)


def test_zero_luminosity_spreads_indices_evenly() -> None:
    alloc = Allocation.prepare(np.zeros(4), 0.0, 0, 8)
    np.testing.assert_array_equal(alloc.counts, [2, 2, 2, 2])
    assert all(alloc.weight(m) == 0.0 for m in range(4))


def test_bias_weights_replace_uniform_term() -> None:
    alloc = Allocation.prepare(_fractions([10.0, 20.0, 70.0]), 1.0, 0, 100, bias_weights=np.array([1.0, 1.0, 2.0]))
    np.testing.assert_array_equal(alloc.counts, [25, 25, 50])
    with pytest.raises(ValueError):
        Allocation.prepare(_fractions([1.0, 1.0]), 0.5, 0, 10, bias_weights=np.array([0.0, 0.0]))


def test_zero_bias_weight_on_emitting_entity_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="zero launch weight"):
        Allocation.prepare(_fractions([1.0, 1.0]), 1.0, 0, 100, bias_weights=np.array([0.0, 1.0]))
    # below full bias the luminosity term keeps every emitter reachable
    alloc = Allocation.prepare(_fractions([1.0, 1.0]), 0.5, 0, 100, bias_weights=np.array([0.0, 1.0]))
    np.testing.assert_array_equal(alloc.counts, [25, 75])
    carried = alloc.counts * np.array([alloc.weight(m) for m in range(2)]) / 100
    np.testing.assert_allclose(carried, [0.5, 0.5])
    # a dark entity may have zero bias weight
    alloc = Allocation.prepare(np.array([0.0, 1.0]), 1.0, 0, 10, bias_weights=np.array([0.0, 1.0]))
    np.testing.assert_array_equal(alloc.counts, [0, 10])

def test_biased_allocation_preserves_expected_luminosity() -> None:
    lum = power_law_luminosities(1000, slope=-2.0, seed=11)
    L = lum.sum()
    N = 1_000_000
    alloc = Allocation.prepare(lum / L, 0.3, 0, N)
    # with enough indices every entity gets its share of the uniform term
    assert np.all(alloc.counts > 0)
    carried = np.array([alloc.counts[m] * alloc.weight(m) for m in range(alloc.count)]) * (L / N)
    bound = L / (0.7 * N)
    assert np.all(np.abs(carried - lum) <= bound * (1.0 + 1e-9))
    assert carried.sum() == pytest.approx(L, rel=2e-3)
