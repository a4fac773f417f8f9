"""
Shared constants for the validity engine.

Every threshold the engine or the evidence grader compares against lives here
so it can be audited and changed in one place.
"""

from typing import Dict, Literal, Tuple


# =============================================================================
# TYPE ALIASES
# =============================================================================

CorrelationMethod = Literal["pearson", "spearman"]
ScoreMode = Literal["raw", "tuned", "cv", "cv_domain", "cv_card", "n1", "n12"]
DeviceClass = Literal["mobile", "desktop", "any"]
Modality = Literal["click", "swipe", "arrow"]

QUESTIONNAIRES: Tuple[str, ...] = ("who5", "swls", "cantril")
COMPONENTS: Tuple[str, ...] = ("n1", "n2", "n3")
CV_SCORE_MODES = {"cv", "cv_domain", "cv_card"}


# =============================================================================
# SCAN STRUCTURE
# =============================================================================

DOMAINS: Tuple[str, ...] = (
    "Basics",
    "Self-development",
    "Ambition",
    "Vitality",
    "Attraction",
)

# A complete scan presents exactly this many cards
TRIALS_PER_SESSION = 24

# Input modality families and the raw trial values that belong to each
MODALITY_MATCHERS: Dict[str, Tuple[str, ...]] = {
    "click": ("click",),
    "swipe": ("swipe-touch", "swipe-mouse"),
    "arrow": ("keyboard-arrow",),
}

# User agents matching this pattern are classified as mobile
MOBILE_UA_PATTERN = r"(Mobi|Android|iPhone|iPad|iPod)"


# =============================================================================
# TRIAL SCORING
# =============================================================================

# Affirmation value of a fast "yes"; decays with response time
AFFIRMATION_MAX = 4.0
# Response times are clamped to [0, RT_CEILING_MS] before decay
RT_CEILING_MS = 4000.0
# Default decay exponent: multiplier = ((ceiling - t) / ceiling) ** exponent
DEFAULT_RT_EXPONENT = 0.5
# Candidate exponents for learned RT decay
RT_EXPONENT_GRID: Tuple[float, ...] = (0.25, 0.35, 0.5, 0.65, 0.75)

# Plausible response window for the IAT gate and RT denoising (ms)
IAT_WINDOW_MS: Tuple[float, float] = (300.0, 2000.0)
# Maximum share of invalid trials tolerated by the IAT gate
IAT_MAX_INVALID_FRACTION = 0.10

# Per-person winsorizing quantiles for RT denoising
RT_WINSOR_QUANTILES: Tuple[float, float] = (0.10, 0.90)
# Minimum finite response times required before denoising a session
RT_DENOISE_MIN_TRIALS = 5


# =============================================================================
# QUESTIONNAIRE CEILINGS
# =============================================================================

WHO5_MAX_TOTAL = 25
SWLS_ITEM_MAX = 7
CANTRIL_MAX = 10


# =============================================================================
# FILTERING
# =============================================================================

# Trim fraction used when a trim flag is passed as a bare boolean
DEFAULT_TRIM_FRACTION = 0.10
# Trim fractions are clamped to this range
MAX_TRIM_FRACTION = 0.5
# Columns with fewer values than this are never trimmed
MIN_VALUES_FOR_TRIM = 10


# =============================================================================
# MINIMUM SAMPLE SIZES
# =============================================================================

MIN_SAMPLE_CORRELATION = 2
MIN_SAMPLE_FISHER_CI = 4
MIN_TRIALS_SPLIT_HALF = 10
MIN_SESSIONS_SPLIT_HALF = 10
MIN_SAMPLE_OMEGA = 20
MIN_SAMPLE_REGRESSION = 20
MIN_SAMPLE_ROC = 20
MIN_SAMPLE_CV = 20
MIN_SAMPLE_YESRATE_AUC = 10
MIN_SAMPLE_PARTIAL = 3
MIN_ROWS_H3 = 12
# Benchmark requires at least this many questionnaire z-scores
MIN_BENCHMARK_COMPONENTS = 2


# =============================================================================
# RELIABILITY / DISCRIMINATION
# =============================================================================

POWER_ITERATIONS = 200
# Sessions at or above this benchmark quantile are labelled "high"
HIGH_BENCHMARK_QUANTILE = 0.75
# ROC curves are downsampled to at most this many points
ROC_MAX_POINTS = 60
# Bootstrap intervals need at least this many defined replicates
MIN_BOOTSTRAP_REPLICATES = 10


# =============================================================================
# SCORING MODES
# =============================================================================

TUNED_WEIGHTS: Dict[str, float] = {"n1": 0.5, "n2": 0.3, "n3": 0.2}
N12_WEIGHTS: Dict[str, float] = {"n1": 0.5, "n2": 0.5}

CV_MIN_FOLDS = 3
CV_MAX_FOLDS = 5
# Cards must be presented in at least this share of training sessions
CARD_SUPPORT_FRACTION = 0.25
# Upper bound on card features kept for cv_card
CARD_FEATURE_CAP = 24


# =============================================================================
# SIGNIFICANCE
# =============================================================================

SIGNIFICANCE_ALPHA = 0.05
H3_DF1 = 4


# =============================================================================
# EVIDENCE GRADER THRESHOLDS
# =============================================================================

GRADE_CLEARLY_BETTER = "Clearly better"
GRADE_AT_LEAST_AS_GOOD = "At least as good"
GRADE_PROMISING = "Promising but needs more data"
GRADE_NOT_COMPETITIVE = "Not yet competitive"
GRADE_INCONCLUSIVE = "Inconclusive"

# Below this n no verdict is attempted
GRADER_MIN_SAMPLE = 30
# Below this n a positive verdict is capped at "Promising"
GRADER_ADEQUATE_SAMPLE = 200
# Reliability below this triggers a warning and caps the verdict
GRADER_MIN_RELIABILITY = 0.75
# Correlation magnitude bands
GRADER_STRONG_R = 0.50
GRADER_MODERATE_R = 0.35
# Confidence intervals wider than this are flagged
GRADER_MAX_CI_WIDTH = 0.30
# AUC must be within this distance of the best questionnaire to count as comparable
GRADER_AUC_TOLERANCE = 0.02
