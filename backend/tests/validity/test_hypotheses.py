"""
Tests for the supplementary analyses: H1-H3, yes-rate, ceiling and robustness.
"""
import random

import pytest

from ihs_validity.core.validity import AnalysisConfig
from ihs_validity.core.validity._constants import DOMAINS
from ihs_validity.core.validity.context import ComputationContext
from ihs_validity.core.validity.hypotheses import (
    ceiling_analysis,
    evaluate_hypotheses,
    robustness_summary,
    yes_rate_analysis,
)
from ihs_validity.core.validity.join_filter import join_records


def _context(records, method="pearson"):
    return ComputationContext.build(
        records,
        AnalysisConfig(method=method),
        bootstrap_replicates=20,
        fold_seed=1234,
        non_inferiority_margin=0.05,
        rng=random.Random(0),
    )


@pytest.fixture
def records(make_population):
    return join_records(*make_population(150, seed=44))


class TestHypotheses:
    def test_h1_passes_for_informative_score(self, records):
        result = evaluate_hypotheses(records, {r.session_id: r.ihs for r in records}, _context(records))
        assert result["h1"]["pass"] is True
        assert result["h1"]["n"] == 150
        assert result["h1"]["r"] > 0.3

    def test_h2_covers_every_domain(self, records):
        result = evaluate_hypotheses(records, {r.session_id: r.ihs for r in records}, _context(records))
        domains = result["h2"]["domains"]
        assert set(domains) == set(DOMAINS)
        assert result["h2"]["all_pass"] == all(d["pass"] for d in domains.values())

    def test_h3_reports_four_added_predictors(self, records):
        result = evaluate_hypotheses(records, {r.session_id: r.ihs for r in records}, _context(records))
        h3 = result["h3"]
        assert h3["df1"] == 4
        assert h3["n"] == 150
        assert isinstance(h3["pass"], bool)

    def test_without_trials(self, three_session_scenario):
        rows = join_records(*three_session_scenario)
        result = evaluate_hypotheses(rows, {r.session_id: r.ihs for r in rows}, _context(rows))
        assert result["h1"]["r"] == pytest.approx(1.0)
        assert result["h1"]["pass"] is False  # no interval at n = 3
        assert result["h2"]["all_pass"] is False
        assert result["h3"] is None


class TestYesRate:
    def test_yes_rate_tracks_benchmark(self, records):
        result = yes_rate_analysis(records, _context(records))
        assert result["n"] == 150
        assert result["r"] > 0.2
        assert result["auc"] > 0.5
        assert result["partial_given_n1"]["n"] == 150

    def test_no_trials(self, three_session_scenario):
        rows = join_records(*three_session_scenario)
        assert yes_rate_analysis(rows, _context(rows)) is None


class TestCeiling:
    def test_shape_statistics(self, three_session_scenario):
        result = ceiling_analysis(join_records(*three_session_scenario))
        assert result["ihs"]["n"] == 3
        assert result["ihs"]["mean"] == pytest.approx(50.0)
        assert result["ihs"]["skew"] == pytest.approx(0.0)
        assert result["ihs"]["kurtosis"] is None


class TestRobustness:
    def test_summary(self, three_session_scenario):
        summary = robustness_summary(join_records(*three_session_scenario), "spearman")
        assert summary["r"] == pytest.approx(1.0)
        assert summary["n"] == 3

    def test_empty(self):
        assert robustness_summary([], "pearson") == {"r": None, "n": 0, "ci95": None}
