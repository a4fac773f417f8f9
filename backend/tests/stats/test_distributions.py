"""
Tests for the special functions and the F distribution.
"""
import math

import pytest

from ihs_validity.core.stats import (
    erf,
    f_cdf,
    f_survival,
    log_gamma,
    normal_cdf,
    regularized_beta,
)


class TestNormal:
    def test_cdf_at_zero(self):
        assert normal_cdf(0.0) == pytest.approx(0.5, abs=1e-7)

    def test_cdf_at_critical_value(self):
        assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-4)

    def test_cdf_symmetry(self):
        for x in (0.3, 1.0, 2.5):
            assert normal_cdf(-x) == pytest.approx(1.0 - normal_cdf(x), abs=1e-7)

    def test_erf_matches_math(self):
        for x in (-2.0, -0.5, 0.0, 0.7, 1.5):
            assert erf(x) == pytest.approx(math.erf(x), abs=1e-6)


class TestLogGamma:
    @pytest.mark.parametrize("z", [0.5, 1.0, 2.5, 7.0, 30.0])
    def test_matches_math_lgamma(self, z):
        assert log_gamma(z) == pytest.approx(math.lgamma(z), rel=1e-8, abs=1e-8)


class TestRegularizedBeta:
    def test_endpoints(self):
        assert regularized_beta(0.0, 2.0, 3.0) == 0.0
        assert regularized_beta(1.0, 2.0, 3.0) == 1.0

    def test_uniform_case(self):
        """Test that I_x(1, 1) = x."""
        assert regularized_beta(0.3, 1.0, 1.0) == pytest.approx(0.3, abs=1e-8)

    def test_symmetry(self):
        x, a, b = 0.35, 2.5, 4.0
        assert regularized_beta(x, a, b) == pytest.approx(
            1.0 - regularized_beta(1.0 - x, b, a), abs=1e-8
        )

    def test_invalid_shape_raises(self):
        with pytest.raises(ValueError):
            regularized_beta(0.5, 0.0, 1.0)


class TestFDistribution:
    def test_survival_at_zero_is_one(self):
        assert f_survival(0.0, 1, 10) == pytest.approx(1.0)

    def test_critical_value(self):
        """Test that F(1, 10) = 4.965 sits at the 5% upper tail."""
        assert f_survival(4.965, 1, 10) == pytest.approx(0.05, abs=1e-3)

    def test_cdf_and_survival_sum_to_one(self):
        assert f_cdf(2.3, 4, 40) + f_survival(2.3, 4, 40) == pytest.approx(1.0)

    def test_survival_decreases_in_f(self):
        assert f_survival(5.0, 2, 30) < f_survival(1.0, 2, 30)

    def test_invalid_degrees_of_freedom(self):
        assert f_cdf(1.0, 0, 10) is None
        assert f_survival(1.0, 1, -2) is None
        assert f_survival(math.inf, 1, 10) is None
