"""
Tests for Settings configuration validation in config.py.
"""
import pytest
from pydantic import ValidationError

from ihs_validity.core.config import Settings


class TestDefaults:
    def test_analytics_defaults(self):
        settings = Settings()
        assert settings.BOOTSTRAP_REPLICATES == 200
        assert settings.CV_SEED == 1234
        assert settings.NON_INFERIORITY_MARGIN == pytest.approx(0.05)
        assert settings.VALIDITY_CACHE_TTL_SECONDS == pytest.approx(5.0)
        assert settings.VALIDITY_DEFAULT_LIMIT <= settings.VALIDITY_ROW_LIMIT_MAX

    def test_research_url_falls_back_to_scan_url(self):
        settings = Settings(DATABASE_URL="sqlite:///./a.db", RESEARCH_DATABASE_URL="")
        assert settings.research_database_url == "sqlite:///./a.db"

    def test_research_url_override(self):
        settings = Settings(
            DATABASE_URL="sqlite:///./a.db",
            RESEARCH_DATABASE_URL="postgresql://research/db",
        )
        assert settings.research_database_url == "postgresql://research/db"


class TestSentryTracesSampleRateValidation:
    """Tests for SENTRY_TRACES_SAMPLE_RATE validation."""

    @pytest.mark.parametrize("rate", [0.0, 0.5, 1.0])
    def test_valid_sample_rates(self, rate):
        assert Settings(SENTRY_TRACES_SAMPLE_RATE=rate).SENTRY_TRACES_SAMPLE_RATE == pytest.approx(rate)

    def test_invalid_sample_rate_negative(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(SENTRY_TRACES_SAMPLE_RATE=-0.1)
        errors = exc_info.value.errors()
        assert len(errors) == 1
        assert errors[0]["loc"] == ("SENTRY_TRACES_SAMPLE_RATE",)
        assert "greater than or equal to 0" in errors[0]["msg"]

    def test_invalid_sample_rate_greater_than_one(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(SENTRY_TRACES_SAMPLE_RATE=1.5)
        assert "less than or equal to 1" in exc_info.value.errors()[0]["msg"]


class TestAnalyticsSettingsValidation:
    """Tests for the bounds on analytics tuning parameters."""

    @pytest.mark.parametrize("replicates", [99, 2001])
    def test_bootstrap_replicates_bounds(self, replicates):
        with pytest.raises(ValidationError):
            Settings(BOOTSTRAP_REPLICATES=replicates)

    def test_cache_ttl_bounds(self):
        assert Settings(VALIDITY_CACHE_TTL_SECONDS=0).VALIDITY_CACHE_TTL_SECONDS == 0
        with pytest.raises(ValidationError):
            Settings(VALIDITY_CACHE_TTL_SECONDS=61)

    def test_margin_bounds(self):
        with pytest.raises(ValidationError):
            Settings(NON_INFERIORITY_MARGIN=-0.01)

    def test_negative_ridge_lambda_rejected(self):
        with pytest.raises(ValidationError):
            Settings(RIDGE_LAMBDA=-1.0)

    def test_default_limit_must_fit_under_maximum(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(VALIDITY_DEFAULT_LIMIT=600, VALIDITY_ROW_LIMIT_MAX=500)
        assert "must not exceed" in str(exc_info.value)

    def test_equal_limits_allowed(self):
        settings = Settings(VALIDITY_DEFAULT_LIMIT=500, VALIDITY_ROW_LIMIT_MAX=500)
        assert settings.VALIDITY_DEFAULT_LIMIT == 500
