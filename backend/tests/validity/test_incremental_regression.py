"""
Tests for the nested-model incremental validity regression.
"""
import random

import pytest

from ihs_validity.core.validity import AnalysisConfig
from ihs_validity.core.validity.context import ComputationContext
from ihs_validity.core.validity.join_filter import join_records
from ihs_validity.core.validity.regression import incremental_validity, nested_regression


class TestNestedRegression:
    def test_informative_predictor_is_significant(self):
        rng = random.Random(17)
        x1 = [rng.gauss(0, 1) for _ in range(100)]
        x2 = [rng.gauss(0, 1) for _ in range(100)]
        y = [a + b + rng.gauss(0, 0.5) for a, b in zip(x1, x2)]
        result = nested_regression(y, [[a] for a in x1], [[a, b] for a, b in zip(x1, x2)])
        assert result["df1"] == 1
        assert result["df2"] == 97
        assert result["delta_r2"] > 0.2
        assert result["p"] < 1e-6

    def test_noise_predictor_adds_little(self):
        rng = random.Random(23)
        x1 = [rng.gauss(0, 1) for _ in range(200)]
        noise = [rng.gauss(0, 1) for _ in range(200)]
        y = [a + rng.gauss(0, 1) for a in x1]
        result = nested_regression(y, [[a] for a in x1], [[a, b] for a, b in zip(x1, noise)])
        assert 0.0 <= result["delta_r2"] < 0.05
        assert 0.0 <= result["p"] <= 1.0

    def test_noise_p_values_are_roughly_uniform(self):
        """Test that p-values for a pure-noise predictor spread evenly over [0, 1]."""
        rng = random.Random(41)
        p_values = []
        for _ in range(200):
            x1 = [rng.gauss(0, 1) for _ in range(40)]
            noise = [rng.gauss(0, 1) for _ in range(40)]
            y = [a + rng.gauss(0, 1) for a in x1]
            result = nested_regression(y, [[a] for a in x1], [[a, b] for a, b in zip(x1, noise)])
            p_values.append(result["p"])

        below_alpha = sum(1 for p in p_values if p < 0.05) / len(p_values)
        below_half = sum(1 for p in p_values if p < 0.5) / len(p_values)
        assert 0.01 <= below_alpha <= 0.10
        assert below_half == pytest.approx(0.5, abs=0.1)
        assert sum(p_values) / len(p_values) == pytest.approx(0.5, abs=0.08)

    def test_perfect_fit_leaves_f_undefined(self):
        x1 = [float(i) for i in range(10)]
        x2 = [float((i * 7) % 5) for i in range(10)]
        y = [2 * a - b for a, b in zip(x1, x2)]
        result = nested_regression(y, [[a] for a in x1], [[a, b] for a, b in zip(x1, x2)])
        assert result["r2_full"] == pytest.approx(1.0)
        assert result["f"] is None
        assert result["p"] is None

    def test_no_added_predictor(self):
        result = nested_regression([1.0, 2.0], [[1.0], [2.0]], [[1.0], [2.0]])
        assert result["df1"] == 0
        assert result["r2_base"] is None


class TestIncrementalValidity:
    def _context(self, records):
        return ComputationContext.build(
            records,
            AnalysisConfig(),
            bootstrap_replicates=20,
            fold_seed=1234,
            non_inferiority_margin=0.05,
            rng=random.Random(0),
        )

    def test_base_model_reproduces_benchmark(self, make_population):
        records = join_records(*make_population(80, seed=4))
        ctx = self._context(records)
        result = incremental_validity(records, {r.session_id: r.ihs for r in records}, ctx)
        assert result["n"] == 80
        assert result["r2_base"] == pytest.approx(1.0)
        assert result["f"] is None
        assert result["insufficient_data"] is False
        assert "internal-consistency" in result["note"]

    def test_insufficient_rows(self, make_population):
        records = join_records(*make_population(10, seed=4))
        ctx = self._context(records)
        result = incremental_validity(records, {r.session_id: r.ihs for r in records}, ctx)
        assert result["insufficient_data"] is True
        assert result["df1"] == 1
        assert result["r2_full"] is None
