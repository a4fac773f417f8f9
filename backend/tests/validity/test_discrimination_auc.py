"""
Tests for rank-based AUC, ROC curves and the discrimination analysis.
"""
import math
import random

import pytest

from ihs_validity.core.validity import AnalysisConfig
from ihs_validity.core.validity.context import ComputationContext
from ihs_validity.core.validity.discrimination import (
    auc,
    discrimination_analysis,
    high_benchmark_labels,
    roc_curve,
)
from ihs_validity.core.validity.join_filter import join_records


class TestAuc:
    def test_perfect_separation(self):
        assert auc([1.0, 2.0, 3.0, 4.0], [0, 0, 1, 1]) == pytest.approx(1.0)

    def test_perfect_inversion(self):
        assert auc([4.0, 3.0, 2.0, 1.0], [0, 0, 1, 1]) == pytest.approx(0.0)

    def test_all_ties_is_one_half(self):
        assert auc([5.0] * 6, [0, 1, 0, 1, 0, 1]) == pytest.approx(0.5)

    def test_invariant_under_monotone_transform(self):
        """Test that AUC depends only on the ordering of scores."""
        rng = random.Random(8)
        scores = [rng.gauss(0, 1) for _ in range(60)]
        labels = [1 if rng.random() < 0.3 else 0 for _ in scores]
        transformed = [math.exp(3 * s) for s in scores]
        assert auc(transformed, labels) == pytest.approx(auc(scores, labels))

    def test_random_scores_near_one_half(self):
        rng = random.Random(99)
        scores = [rng.random() for _ in range(400)]
        labels = [1 if rng.random() < 0.25 else 0 for _ in scores]
        assert abs(auc(scores, labels) - 0.5) < 0.15

    def test_single_class_is_none(self):
        assert auc([1.0, 2.0], [1, 1]) is None
        assert auc([1.0, 2.0], [0, 0]) is None


class TestLabels:
    def test_top_quartile(self):
        labels, threshold = high_benchmark_labels([float(i) for i in range(1, 9)])
        assert threshold == pytest.approx(6.25)
        assert labels == [0, 0, 0, 0, 0, 0, 1, 1]

    def test_empty(self):
        assert high_benchmark_labels([]) == ([], None)


class TestRocCurve:
    def test_endpoints(self):
        points = roc_curve([0.1, 0.4, 0.35, 0.8], [0, 0, 1, 1])
        assert (points[0]["fpr"], points[0]["tpr"]) == (0.0, 0.0)
        assert points[-1]["fpr"] == pytest.approx(1.0)
        assert points[-1]["tpr"] == pytest.approx(1.0)

    def test_monotone(self):
        rng = random.Random(4)
        scores = [rng.random() for _ in range(50)]
        labels = [1 if s + rng.gauss(0, 0.3) > 0.6 else 0 for s in scores]
        points = roc_curve(scores, labels)
        fprs = [p["fpr"] for p in points]
        tprs = [p["tpr"] for p in points]
        assert fprs == sorted(fprs)
        assert tprs == sorted(tprs)

    def test_downsampled(self):
        scores = [float(i) for i in range(200)]
        labels = [i % 2 for i in range(200)]
        points = roc_curve(scores, labels, max_points=60)
        assert len(points) == 60
        assert points[-1]["tpr"] == pytest.approx(1.0)

    def test_single_class_is_empty(self):
        assert roc_curve([1.0, 2.0], [0, 0]) == []


class TestDiscriminationAnalysis:
    def _context(self, records):
        return ComputationContext.build(
            records,
            AnalysisConfig(),
            bootstrap_replicates=50,
            fold_seed=1234,
            non_inferiority_margin=0.05,
            rng=random.Random(5),
        )

    def test_informative_score(self, make_population):
        records = join_records(*make_population(150, seed=13))
        ctx = self._context(records)
        scores = {r.session_id: r.ihs for r in records}
        result = discrimination_analysis(records, scores, ctx)
        assert result["n"] == 150
        assert result["auc"] > 0.75
        lo, hi = result["ci95"]
        assert lo <= hi
        assert result["best_name"] in ("who5", "swls", "cantril")
        assert result["points"][0]["tpr"] == 0.0

    def test_too_few_rows(self, make_population):
        records = join_records(*make_population(12, seed=2))
        ctx = self._context(records)
        result = discrimination_analysis(records, {r.session_id: r.ihs for r in records}, ctx)
        assert result["insufficient_data"] is True
        assert result["auc"] is None

    def test_independent_scores_centre_on_one_half(self, make_population):
        """Test that unrelated scores give AUCs averaging 0.5, inside their CIs."""
        records = join_records(*make_population(120, seed=3))
        ctx = self._context(records)
        aucs = []
        covered = 0
        for seed in range(10):
            rng = random.Random(seed)
            scores = {r.session_id: rng.random() for r in records}
            result = discrimination_analysis(records, scores, ctx)
            aucs.append(result["auc"])
            lo, hi = result["ci95"]
            if lo <= 0.5 <= hi:
                covered += 1

        assert sum(aucs) / len(aucs) == pytest.approx(0.5, abs=0.06)
        assert covered >= 8
