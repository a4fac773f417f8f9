"""
Tests for bootstrap and k-fold partitioning.
"""
import random

import pytest

from ihs_validity.core.stats import (
    bootstrap,
    kfold_partition,
    mean,
    percentile_interval,
    quantile,
    sample_sd,
    skewness,
    standardize,
)


class TestBootstrap:
    def test_replicate_count(self):
        values = bootstrap([1.0, 2.0, 3.0], mean, 50, random.Random(1))
        assert len(values) == 50

    def test_undefined_replicates_dropped(self):
        values = bootstrap([1.0, 2.0], lambda sample: None, 20, random.Random(1))
        assert values == []

    def test_seeded_generator_is_reproducible(self):
        data = [float(i) for i in range(30)]
        a = bootstrap(data, mean, 25, random.Random(42))
        b = bootstrap(data, mean, 25, random.Random(42))
        assert a == b

    def test_empty_items(self):
        assert bootstrap([], mean, 10, random.Random(1)) == []


class TestPercentileInterval:
    def test_interval_bounds(self):
        values = [float(i) for i in range(101)]
        lo, hi = percentile_interval(values)
        assert lo == pytest.approx(2.5)
        assert hi == pytest.approx(97.5)

    def test_too_few_replicates(self):
        assert percentile_interval([1.0] * 9) is None


class TestKFoldPartition:
    def test_every_index_in_exactly_one_fold(self):
        folds = kfold_partition(53, 5, random.Random(7))
        flat = sorted(i for fold in folds for i in fold)
        assert flat == list(range(53))

    def test_fold_sizes_balanced(self):
        folds = kfold_partition(53, 5, random.Random(7))
        sizes = [len(f) for f in folds]
        assert max(sizes) - min(sizes) <= 1

    def test_deterministic_under_seed(self):
        assert kfold_partition(40, 4, random.Random(1234)) == kfold_partition(
            40, 4, random.Random(1234)
        )

    def test_folds_sorted(self):
        for fold in kfold_partition(30, 3, random.Random(9)):
            assert fold == sorted(fold)

    @pytest.mark.parametrize("n,k", [(10, 1), (2, 3)])
    def test_invalid_split_raises(self, n, k):
        with pytest.raises(ValueError):
            kfold_partition(n, k, random.Random(0))


class TestDescriptive:
    def test_quantile_interpolates(self):
        assert quantile([1.0, 2.0, 3.0, 4.0], 0.5) == pytest.approx(2.5)
        assert quantile([5.0, 1.0, 3.0], 0.0) == pytest.approx(1.0)
        assert quantile([], 0.5) is None

    def test_sample_sd(self):
        assert sample_sd([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]) == pytest.approx(
            2.138089935, rel=1e-6
        )
        assert sample_sd([1.0]) is None

    def test_skewness_of_symmetric_sample(self):
        assert skewness([1.0, 2.0, 3.0, 4.0, 5.0]) == pytest.approx(0.0)

    def test_standardize_degenerate_scale(self):
        assert standardize(3.0, 1.0, 2.0) == pytest.approx(1.0)
        assert standardize(3.0, 1.0, 0.0) is None
        assert standardize(None, 1.0, 2.0) is None
