"""
Tests for the session join and the inclusion/exclusion filters.
"""
import pytest

from ihs_validity.core.validity import FilterConfig, Trial
from ihs_validity.core.validity.join_filter import (
    join_and_filter,
    join_records,
    resolve_trim_fraction,
    trim_bounds,
)

MOBILE_UA = "Mozilla/5.0 (Linux; Android 14; Pixel 8) Mobile Safari/537.36"
DESKTOP_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) Safari/605.1.15"


def _ids(records):
    return [r.session_id for r in records]


def _split(sessions):
    return [q for q, _ in sessions], [s for _, s in sessions]


class TestResolveTrimFraction:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, None),
            (False, None),
            (0, None),
            (-0.2, None),
            (True, 0.10),
            (0.05, 0.05),
            (0.9, 0.5),
        ],
    )
    def test_resolution(self, value, expected):
        result = resolve_trim_fraction(value)
        if expected is None:
            assert result is None
        else:
            assert result == pytest.approx(expected)


class TestJoinRecords:
    """Tests for join_records()."""

    def test_inner_join_drops_unmatched(self, make_session):
        q1, s1 = make_session("a", 40.0, who5=(3,) * 5)
        q2, _ = make_session("b", 50.0, who5=(3,) * 5)
        _, s3 = make_session("c", 60.0, who5=(3,) * 5)
        joined = join_records([q1, q2], [s1, s3])
        assert _ids(joined) == ["a"]

    def test_first_questionnaire_entry_wins(self, make_session):
        newest, scan = make_session("a", 40.0, who5=(5,) * 5)
        older, _ = make_session("a", 40.0, who5=(1,) * 5)
        joined = join_records([newest, older], [scan])
        assert len(joined) == 1
        assert joined[0].who5_total == pytest.approx(25.0)

    def test_first_scan_wins(self, make_session):
        q, first = make_session("a", 70.0)
        _, second = make_session("a", 20.0)
        joined = join_records([q], [first, second])
        assert joined[0].ihs == pytest.approx(70.0)

    def test_scan_without_ihs_skipped(self, make_session):
        q, scan = make_session("a", None)
        assert join_records([q], [scan]) == []

    def test_output_follows_questionnaire_order(self, make_session):
        sessions = [make_session(sid, 50.0) for sid in ("z", "m", "a")]
        questionnaires, scans = _split(sessions)
        joined = join_records(questionnaires, list(reversed(scans)))
        assert _ids(joined) == ["z", "m", "a"]

    def test_n1_prefers_stored_scaled_value(self, make_session, make_trials):
        trials = make_trials([True] * 24, response_time_ms=0.0)
        q1, stored = make_session("a", 50.0, trials=trials, n1_scaled=42.0)
        q2, computed = make_session("b", 50.0, trials=trials)
        joined = {r.session_id: r for r in join_records([q1, q2], [stored, computed])}
        assert joined["a"].n1 == pytest.approx(42.0)
        assert joined["b"].n1 == pytest.approx(100.0)

    def test_questionnaire_totals(self, make_session):
        q, scan = make_session("a", 50.0, who5=(1, 2, 3, 4, 5), swls=(7, 7, 7), cantril=6)
        record = join_records([q], [scan])[0]
        assert record.who5_total == pytest.approx(15.0)
        assert record.swls_total == pytest.approx(21.0)
        assert record.swls_max_total == pytest.approx(21.0)
        assert record.cantril == pytest.approx(6.0)


class TestJoinAndFilter:
    def test_empty_source(self, make_session):
        _, scan = make_session("a", 50.0)
        result = join_and_filter([], [scan], FilterConfig())
        assert result.is_empty_source
        assert result.records == []
        assert result.scan_count == 1

    def test_no_filters_keeps_everything(self, three_session_scenario):
        questionnaires, scans = three_session_scenario
        result = join_and_filter(questionnaires, scans, FilterConfig())
        assert _ids(result.records) == ["low", "mid", "high"]
        assert _ids(result.base) == _ids(result.records)


class TestDeviceFilter:
    @pytest.mark.parametrize(
        "device,expected",
        [("mobile", ["phone"]), ("desktop", ["laptop"]), ("any", ["phone", "laptop"])],
    )
    def test_device_classes(self, make_session, device, expected):
        sessions = [
            make_session("phone", 50.0, user_agent=MOBILE_UA),
            make_session("laptop", 50.0, user_agent=DESKTOP_UA),
        ]
        result = join_and_filter(*_split(sessions), FilterConfig(device=device))
        assert _ids(result.records) == expected

    def test_missing_user_agent_counts_as_desktop(self, make_session):
        sessions = [make_session("x", 50.0, user_agent=None)]
        result = join_and_filter(*_split(sessions), FilterConfig(device="desktop"))
        assert _ids(result.records) == ["x"]


class TestDemographicFilter:
    @pytest.fixture
    def sessions(self, make_session):
        return _split(
            [
                make_session("uk-f-30", 50.0, sex="Female", age=30, country="United Kingdom"),
                make_session("us-m-45", 50.0, sex="Male", age=45, country="United States"),
                make_session("unknown", 50.0),
            ]
        )

    def test_sex_is_case_insensitive(self, sessions):
        result = join_and_filter(*sessions, FilterConfig(sex="female"))
        assert _ids(result.records) == ["uk-f-30"]

    def test_country_allow_list(self, sessions):
        config = FilterConfig(countries=("united states", "Canada"))
        assert _ids(join_and_filter(*sessions, config).records) == ["us-m-45"]

    def test_exclude_countries_drops_missing_country(self, sessions):
        config = FilterConfig(exclude_countries=("United States",))
        assert _ids(join_and_filter(*sessions, config).records) == ["uk-f-30"]

    def test_age_range_requires_known_age(self, sessions):
        config = FilterConfig(age_min=25, age_max=40)
        assert _ids(join_and_filter(*sessions, config).records) == ["uk-f-30"]


class TestSessionFilters:
    """Tests for modality, timeout, IAT and ceiling gates."""

    def test_single_modality_beats_modalities_list(self, make_session, make_trials):
        sessions = [
            make_session("click", 50.0, trials=make_trials([True] * 24, modality="click")),
            make_session("arrow", 50.0, trials=make_trials([True] * 24, modality="keyboard-arrow")),
        ]
        config = FilterConfig(modality="arrow", modalities=("click",))
        assert _ids(join_and_filter(*_split(sessions), config).records) == ["arrow"]

    def test_modalities_any_of(self, make_session, make_trials):
        sessions = [
            make_session("click", 50.0, trials=make_trials([True] * 24, modality="click")),
            make_session("swipe", 50.0, trials=make_trials([True] * 24, modality="swipe-touch")),
            make_session("arrow", 50.0, trials=make_trials([True] * 24, modality="keyboard-arrow")),
        ]
        config = FilterConfig(modalities=("click", "swipe"))
        assert _ids(join_and_filter(*_split(sessions), config).records) == ["click", "swipe"]

    def test_exclusive_drops_mixed_sessions(self, make_session, make_trials):
        mixed = make_trials([True] * 20, modality="click") + make_trials(
            [True] * 4, modality="swipe-mouse"
        )
        sessions = [
            make_session("pure", 50.0, trials=make_trials([True] * 24)),
            make_session("mixed", 50.0, trials=mixed),
        ]
        config = FilterConfig(exclusive=True)
        assert _ids(join_and_filter(*_split(sessions), config).records) == ["pure"]

    def test_threshold_share(self, make_session, make_trials):
        mostly_click = make_trials([True] * 20) + make_trials([True] * 4, modality="swipe-touch")
        less_click = make_trials([True] * 18) + make_trials([True] * 6, modality="swipe-touch")
        sessions = [
            make_session("83pct", 50.0, trials=mostly_click),
            make_session("75pct", 50.0, trials=less_click),
        ]
        config = FilterConfig(modality="click", threshold=80.0)
        assert _ids(join_and_filter(*_split(sessions), config).records) == ["83pct"]

    def test_exclude_swipe(self, make_session, make_trials):
        sessions = [
            make_session("click", 50.0, trials=make_trials([True] * 24)),
            make_session(
                "one-swipe",
                50.0,
                trials=make_trials([True] * 23) + make_trials([True], modality="swipe-touch"),
            ),
        ]
        config = FilterConfig(exclude_swipe=True)
        assert _ids(join_and_filter(*_split(sessions), config).records) == ["click"]

    def test_timeout_gates(self, make_session, make_trials):
        sessions = [
            make_session("none", 50.0, trials=make_trials([True] * 24)),
            make_session("two", 50.0, trials=make_trials([True] * 22 + [None] * 2)),
            make_session("five", 50.0, trials=make_trials([True] * 19 + [None] * 5)),
        ]
        questionnaires, scans = _split(sessions)
        assert _ids(join_and_filter(questionnaires, scans, FilterConfig(exclude_timeouts=True)).records) == ["none"]
        assert _ids(join_and_filter(questionnaires, scans, FilterConfig(timeouts_max=2)).records) == ["none", "two"]
        frac = FilterConfig(timeouts_frac_max=0.1)
        assert _ids(join_and_filter(questionnaires, scans, frac).records) == ["none", "two"]

    def test_iat_gate(self, make_session, make_trials):
        fast = [Trial(response=True, response_time_ms=250.0)]
        sessions = [
            make_session("clean", 50.0, trials=make_trials([True] * 24)),
            make_session("short", 50.0, trials=make_trials([True] * 23)),
            make_session("two-fast", 50.0, trials=make_trials([True] * 22) + tuple(fast * 2)),
            make_session("three-fast", 50.0, trials=make_trials([True] * 21) + tuple(fast * 3)),
        ]
        result = join_and_filter(*_split(sessions), FilterConfig(iat=True))
        assert _ids(result.records) == ["clean", "two-fast"]

    def test_sensitivity_drops_ceiling_respondents(self, make_session):
        sessions = [
            make_session("ceiling", 50.0, who5=(5,) * 5, swls=(7,) * 5, cantril=10),
            make_session("near", 50.0, who5=(5,) * 5, swls=(7,) * 5, cantril=9),
            make_session("blank", 50.0),
        ]
        config = FilterConfig(sensitivity_all_max=True)
        assert _ids(join_and_filter(*_split(sessions), config).records) == ["near", "blank"]


class TestTrimming:
    @pytest.fixture
    def twenty(self, make_session):
        return _split([make_session(f"s{i:02d}", float(i)) for i in range(1, 21)])

    def test_trim_ihs_drops_tails(self, twenty):
        result = join_and_filter(*twenty, FilterConfig(trim_ihs=0.1))
        assert len(result.base) == 20
        assert [r.ihs for r in result.records] == pytest.approx([float(i) for i in range(3, 19)])

    def test_trim_true_uses_default_fraction(self, twenty):
        explicit = join_and_filter(*twenty, FilterConfig(trim_ihs=0.1))
        flag = join_and_filter(*twenty, FilterConfig(trim_ihs=True))
        assert _ids(flag.records) == _ids(explicit.records)

    def test_small_population_not_trimmed(self, make_session):
        sessions = _split([make_session(f"s{i}", float(i)) for i in range(9)])
        result = join_and_filter(*sessions, FilterConfig(trim_ihs=0.2))
        assert len(result.records) == 9

    def test_bounds_computed_on_pre_trim_population(self, twenty):
        questionnaires, scans = twenty
        base = join_records(questionnaires, scans)
        bounds = trim_bounds(base, FilterConfig(trim_ihs=0.1))
        assert bounds["ihs"] == pytest.approx((2.9, 18.1))
        assert "who5" not in bounds
