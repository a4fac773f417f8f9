"""
First-principles statistics toolkit for the validity engine.

Every routine here is pure: it takes plain numeric sequences and returns plain
floats, lists or None. None always means "not computable" (too few values or a
degenerate input) and is never used to stand in for zero.
"""
from .correlation import (
    average_ranks,
    correlate,
    fisher_ci,
    fisher_z_difference,
    partial_correlation,
    pearson,
    spearman,
    spearman_brown,
)
from .descriptive import (
    excess_kurtosis,
    finite_values,
    mean,
    quantile,
    sample_sd,
    sample_variance,
    skewness,
    standardize,
)
from .distributions import erf, f_cdf, f_survival, log_gamma, normal_cdf, regularized_beta
from .linalg import (
    gauss_jordan_inverse,
    mat_vec,
    ols_fit,
    power_iteration,
    predict,
    ridge_fit,
)
from .resampling import bootstrap, kfold_partition, percentile_interval

__all__ = [
    "average_ranks",
    "bootstrap",
    "correlate",
    "erf",
    "excess_kurtosis",
    "f_cdf",
    "f_survival",
    "finite_values",
    "fisher_ci",
    "fisher_z_difference",
    "gauss_jordan_inverse",
    "kfold_partition",
    "log_gamma",
    "mat_vec",
    "mean",
    "normal_cdf",
    "ols_fit",
    "partial_correlation",
    "pearson",
    "percentile_interval",
    "power_iteration",
    "predict",
    "quantile",
    "regularized_beta",
    "ridge_fit",
    "sample_sd",
    "sample_variance",
    "skewness",
    "spearman",
    "spearman_brown",
    "standardize",
]
