from __future__ import annotations

import numpy as np
import pytest

from cfrmodels.delay import DelayDistribution
from cfrmodels.errors import DomainError
from cfrmodels.expected_deaths import (
    ExpectedDeathsModel,
    delay_kernel,
    expected_deaths,
    expected_deaths_per_case,
)


def _double_loop(cfr: float, delay: DelayDistribution, onsets) -> np.ndarray:
    n = len(onsets)
    out = np.zeros(n)
    for i in range(n):
        for j in range(n):
            d = i - j
            if d >= 0 and onsets[j] > 0:
                out[i] += onsets[j] * cfr * (delay.cdf(d + 0.5) - delay.cdf(max(d - 0.5, 0.0)))
    return out


class TestExpectedDeaths:
    def test_zero_cfr_gives_zero(self, delay):
        onsets = [3, 0, 12, 40, 7]
        np.testing.assert_array_equal(expected_deaths(0.0, delay, onsets), np.zeros(5))
        other = DelayDistribution(1.5, 0.1)
        np.testing.assert_array_equal(expected_deaths(0.0, other, onsets), np.zeros(5))

    def test_nondecreasing_in_cfr(self, delay):
        onsets = [5, 8, 0, 13, 21, 34, 0, 0]
        previous = expected_deaths(0.0, delay, onsets)
        for cfr in np.linspace(0.05, 0.95, 19):
            current = expected_deaths(cfr, delay, onsets)
            assert np.all(current >= previous)
            previous = current

    def test_total_matches_cfr_times_cases(self, delay):
        onsets = np.array([10] * 7 + [0] * 53, dtype=float)
        model = ExpectedDeathsModel(delay)
        assert model.coverage(60 - 6) >= 0.999
        total = expected_deaths(0.05, delay, onsets).sum()
        assert total == pytest.approx(0.05 * onsets.sum(), rel=1e-3)

    def test_matches_double_loop(self, delay):
        onsets = [2, 0, 5, 9, 14, 3, 0, 1, 0, 6, 0, 0]
        np.testing.assert_allclose(
            expected_deaths(0.2, delay, onsets), _double_loop(0.2, delay, onsets), rtol=1e-12
        )

    def test_same_day_mass(self, delay):
        out = expected_deaths(0.3, delay, [5])
        assert out[0] == pytest.approx(5 * 0.3 * delay.cdf(0.5))

    def test_no_deaths_before_first_onset(self, delay):
        out = expected_deaths(0.5, delay, [0, 0, 0, 10, 10])
        np.testing.assert_array_equal(out[:3], 0.0)
        assert np.all(out[3:] > 0)

    def test_returns_fresh_array(self, delay):
        onsets = np.array([4.0, 4.0, 4.0])
        first = expected_deaths(0.1, delay, onsets)
        first[:] = -1
        second = expected_deaths(0.1, delay, onsets)
        assert np.all(second >= 0)
        np.testing.assert_array_equal(onsets, [4.0, 4.0, 4.0])

    def test_empty_series(self, delay):
        assert expected_deaths(0.1, delay, []).size == 0

    @pytest.mark.parametrize("cfr", [-0.01, 1.0, 1.01, np.nan])
    def test_cfr_out_of_range(self, delay, cfr):
        with pytest.raises(DomainError):
            expected_deaths(cfr, delay, [1, 2, 3])

    def test_negative_counts(self, delay):
        with pytest.raises(DomainError):
            expected_deaths(0.1, delay, [1, -2, 3])


class TestExpectedDeathsModel:
    def test_wraps_function(self, delay):
        model = ExpectedDeathsModel(delay)
        onsets = [1, 2, 3, 4]
        np.testing.assert_array_equal(
            model.expected_deaths(0.1, onsets), expected_deaths(0.1, delay, onsets)
        )
        np.testing.assert_array_equal(model.kernel(4), delay_kernel(delay, 4))

    def test_coverage_grows_with_window(self, delay):
        model = ExpectedDeathsModel(delay)
        assert model.coverage(5) < model.coverage(10) < model.coverage(40) <= 1.0

    def test_summary(self, delay):
        expected = np.array([0.5, 1.0, 1.5])
        s = ExpectedDeathsModel.summary(expected, [0, 1, 2])
        assert s["expected_total"] == pytest.approx(3.0)
        assert s["observed_total"] == pytest.approx(3.0)
        assert s["max_abs_residual"] == pytest.approx(0.5)

    def test_per_case_profile(self, delay):
        onsets = [2, 0, 5, 9, 14, 3]
        per_case = expected_deaths_per_case(delay, onsets)
        np.testing.assert_allclose(expected_deaths(0.25, delay, onsets), 0.25 * per_case)
        np.testing.assert_allclose(per_case, _double_loop(1.0, delay, onsets), rtol=1e-12)
