#!/usr/bin/env python3
"""
Tests for hunter_core.py — scoring, aggregation and screening.

Coverage:
- Record construction and category parsing
- Founder conviction scorer
- AI disruption scorer
- White-space scorer
- Asymmetry scorer
- Aggregation and rounding
- Screening and ranking
- Data quality and staleness
- Normalization helpers

Run: pytest test_hunter_core.py -v
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from hunter_core import (
    # Constants
    EXCLUDED_TICKERS,
    CATEGORY_BASE_SCORES,
    DATA_QUALITY_WEIGHTS,
    SENTINEL_FOUNDER,
    SENTINEL_AI,
    SENTINEL_WHITE_SPACE,
    SENTINEL_ASYMMETRY,
    # Data classes
    CompanyRecord,
    FactorScore,
    FutureCategory,
    InvalidCategory,
    ScoreWeights,
    ScreeningCriteria,
    # Functions
    aggregate_scores,
    calculate_asymmetry_score,
    calculate_data_quality,
    check_staleness,
    data_quality_label,
    derive_tam_multiple,
    effective_tam_multiple,
    missing_inputs,
    normalize_fraction,
    parse_category,
    rank_companies,
    round1,
    score_ai_disruption,
    score_asymmetry,
    score_company,
    score_founder_conviction,
    score_to_band,
    score_white_space,
    screen_companies,
    screening_failures,
)


# ============================================================
# HELPERS
# ============================================================

def make_company(**kwargs) -> CompanyRecord:
    """Shorthand for creating CompanyRecord with defaults."""
    defaults = {
        'ticker': 'TEST',
        'name': 'Test Company',
    }
    defaults.update(kwargs)
    return CompanyRecord(**defaults)


def make_strong_company(**kwargs) -> CompanyRecord:
    """A record that clears every default screen (total 8.3)."""
    defaults = {
        'ticker': 'GOOD',
        'future_category': 'intelligence-infrastructure',
        'insider_ownership': 35,
        'insider_buying_90d': 2_000_000,
        'founder_active': True,
        'current_tam': 500_000_000,
        'future_tam': 50_000_000_000,
        'market_cap': 200_000_000,
        'cash_position': 100_000_000,
        'debt_to_equity': 0.1,
        'gross_margin': 0.7,
        'revenue_growth': 0.5,
    }
    defaults.update(kwargs)
    return make_company(**defaults)


# ============================================================
# RECORD CONSTRUCTION
# ============================================================

class TestCompanyRecord:

    def test_ticker_normalized(self):
        assert make_company(ticker=' rklb ').ticker == 'RKLB'

    def test_name_defaults_to_ticker(self):
        assert CompanyRecord(ticker='OKLO').name == 'OKLO'

    def test_default_category_other(self):
        assert make_company().future_category is FutureCategory.OTHER

    def test_category_string_coerced(self):
        c = make_company(future_category='advanced-energy')
        assert c.future_category is FutureCategory.ADVANCED_ENERGY

    def test_underscore_category_accepted(self):
        assert parse_category('materials_simulation') is FutureCategory.MATERIALS_SIMULATION

    def test_unknown_category_raises(self):
        with pytest.raises(InvalidCategory):
            make_company(future_category='quantum-computing')

    def test_invalid_category_is_value_error(self):
        with pytest.raises(ValueError):
            parse_category(42)

    def test_nan_becomes_unknown(self):
        c = make_company(market_cap=float('nan'), revenue_growth=float('inf'))
        assert c.market_cap is None
        assert c.revenue_growth is None

    def test_numeric_strings_converted(self):
        assert make_company(market_cap='1500000000').market_cap == 1_500_000_000.0

    def test_known_zero_preserved(self):
        assert make_company(current_tam=0).current_tam == 0.0


# ============================================================
# FACTOR 1: FOUNDER CONVICTION
# ============================================================

class TestFounderConviction:

    def test_example_maxes_out(self):
        """35% ownership + $2M buying + founder = 4+3+3 = 10."""
        result = score_founder_conviction(make_company(
            insider_ownership=35, insider_buying_90d=2_000_000, founder_active=True))
        assert result.score == 10
        assert 'High insider ownership' in result.rationale
        assert 'Significant insider buying' in result.rationale
        assert 'Founder-led company' in result.rationale

    @pytest.mark.parametrize('ownership,expected', [
        (31, 4), (25, 3), (15, 2), (6, 1), (5, 0), (0, 0),
    ])
    def test_ownership_tiers(self, ownership, expected):
        assert score_founder_conviction(make_company(insider_ownership=ownership)).score == expected

    def test_low_ownership_noted(self):
        result = score_founder_conviction(make_company(insider_ownership=2))
        assert result.score == 0
        assert 'Low insider ownership' in result.rationale

    def test_notable_buying(self):
        result = score_founder_conviction(make_company(insider_buying_90d=500_000))
        assert result.score == 2
        assert 'Notable insider buying' in result.rationale

    def test_some_buying(self):
        assert score_founder_conviction(make_company(insider_buying_90d=50_000)).score == 1

    def test_selling_warns_without_penalty(self):
        result = score_founder_conviction(make_company(
            insider_ownership=25, insider_buying_90d=-500_000))
        assert result.score == 3
        assert 'Insider selling' in result.rationale

    def test_small_selling_ignored(self):
        result = score_founder_conviction(make_company(insider_buying_90d=-50_000))
        assert result.score == 0
        assert result.rationale == SENTINEL_FOUNDER

    def test_founder_inactive(self):
        assert score_founder_conviction(make_company(founder_active=False)).score == 0

    def test_no_data_sentinel(self):
        result = score_founder_conviction(make_company())
        assert result == FactorScore(0.0, SENTINEL_FOUNDER)


# ============================================================
# FACTOR 2: AI DISRUPTION
# ============================================================

class TestAIDisruption:

    def test_example_intelligence_infrastructure(self):
        """3 base + 4 TAM tier + 2 enablement = 9."""
        result = score_ai_disruption(make_company(
            future_category='intelligence-infrastructure', tam_multiple=120, current_tam=0))
        assert result.score == 9
        assert 'Extreme TAM expansion potential (120x)' in result.rationale
        assert 'Direct AI compute/automation beneficiary' in result.rationale

    def test_multiple_derived_from_tams(self):
        result = score_ai_disruption(make_company(current_tam=1e9, future_tam=150e9))
        assert result.score == 4

    def test_precomputed_multiple_wins(self):
        c = make_company(current_tam=1e9, future_tam=150e9, tam_multiple=15)
        assert effective_tam_multiple(c) == 15
        assert score_ai_disruption(c).score == 1

    @pytest.mark.parametrize('multiple,expected', [
        (101, 4), (100, 3), (51, 3), (50, 2), (21, 2), (20, 1), (11, 1), (10, 0),
    ])
    def test_tam_tiers_strict(self, multiple, expected):
        assert score_ai_disruption(make_company(tam_multiple=multiple)).score == expected

    def test_materials_simulation_base_is_three(self):
        assert CATEGORY_BASE_SCORES[FutureCategory.MATERIALS_SIMULATION] == 3
        assert score_ai_disruption(make_company(future_category='materials-simulation')).score == 5

    def test_synthetic_biology(self):
        result = score_ai_disruption(make_company(future_category='synthetic-biology'))
        assert result.score == 3
        assert 'AI-enabled R&D acceleration' in result.rationale

    def test_national_security_no_bonus(self):
        assert score_ai_disruption(make_company(future_category='national-security-space')).score == 2

    def test_other_sentinel(self):
        result = score_ai_disruption(make_company())
        assert result == FactorScore(0.0, SENTINEL_AI)


# ============================================================
# FACTOR 3: WHITE SPACE
# ============================================================

class TestWhiteSpace:

    def test_example(self):
        """<1B TAM +4, capture 0.004 +2, small cap +2 = 8."""
        result = score_white_space(make_company(
            current_tam=500_000_000, future_tam=50_000_000_000, market_cap=200_000_000))
        assert result.score == 8
        assert 'Very small current TAM' in result.rationale
        assert 'Market cap is <1% of future TAM' in result.rationale

    def test_zero_current_tam_is_emerging(self):
        result = score_white_space(make_company(current_tam=0))
        assert result.score == 3
        assert 'Undefined/emerging market' in result.rationale

    def test_unknown_current_with_future_is_emerging(self):
        assert score_white_space(make_company(future_tam=10e9)).score == 3

    def test_established_market(self):
        result = score_white_space(make_company(current_tam=20e9))
        assert result.score == 1
        assert 'Established market' in result.rationale

    @pytest.mark.parametrize('current_tam,expected', [
        (999e6, 4), (1e9, 3), (4.9e9, 3), (5e9, 2), (9.9e9, 2), (10e9, 1),
    ])
    def test_current_tam_tiers(self, current_tam, expected):
        assert score_white_space(make_company(current_tam=current_tam)).score == expected

    def test_room_for_capture(self):
        # 6B cap is not small; capture ratio 0.03
        result = score_white_space(make_company(future_tam=200e9, market_cap=6e9, current_tam=20e9))
        assert result.score == 2
        assert 'Significant room for market capture' in result.rationale

    def test_small_mid_cap(self):
        assert score_white_space(make_company(market_cap=2e9)).score == 1

    def test_no_tam_data_only_cap_counts(self):
        assert score_white_space(make_company(market_cap=500e6)).score == 2

    def test_no_data_sentinel(self):
        assert score_white_space(make_company()) == FactorScore(0.0, SENTINEL_WHITE_SPACE)


# ============================================================
# FACTOR 4: ASYMMETRY
# ============================================================

class TestAsymmetry:

    def test_best_case(self):
        """4 potential + 2 cash + 1 debt + 1 margin + 1 growth = 9."""
        result = score_asymmetry(make_company(
            future_tam=100e9, market_cap=50e6, cash_position=20e6,
            debt_to_equity=0.1, gross_margin=0.7, revenue_growth=0.5))
        assert result.score == 9
        assert '100x+ potential at 10% market capture' in result.rationale
        assert 'High gross margins (70%)' in result.rationale
        assert 'Strong revenue growth (50%)' in result.rationale

    @pytest.mark.parametrize('market_cap,expected', [
        (50e6, 4),     # 200x
        (150e6, 3),    # 66x
        (400e6, 2),    # 25x
        (800e6, 1),    # 12.5x
        (2e9, 0),      # 5x
    ])
    def test_potential_multiple_tiers(self, market_cap, expected):
        assert score_asymmetry(make_company(future_tam=100e9, market_cap=market_cap)).score == expected

    def test_adequate_cash(self):
        result = score_asymmetry(make_company(market_cap=1e9, cash_position=150e6))
        assert result.score == 1
        assert 'Adequate cash runway' in result.rationale

    def test_cash_without_market_cap_ignored(self):
        assert score_asymmetry(make_company(cash_position=1e9)).score == 0

    def test_known_zero_debt_is_low(self):
        assert score_asymmetry(make_company(debt_to_equity=0)).score == 1

    def test_unknown_debt_not_rewarded(self):
        result = score_asymmetry(make_company())
        assert result.score == 0
        assert result.rationale == SENTINEL_ASYMMETRY

    def test_high_debt_warning(self):
        result = score_asymmetry(make_company(debt_to_equity=2.0))
        assert result.score == 0
        assert 'Warning: High debt levels' in result.rationale

    def test_solid_growth_half_point(self):
        result = score_asymmetry(make_company(revenue_growth=0.2))
        assert result.score == 0.5
        assert 'Solid revenue growth' in result.rationale

    def test_margin_is_fraction(self):
        assert score_asymmetry(make_company(gross_margin=0.55)).score == 0


# ============================================================
# AGGREGATION
# ============================================================

class TestAggregation:

    def test_equal_weights_mean(self):
        score = aggregate_scores(
            FactorScore(10, 'a'), FactorScore(8, 'b'), FactorScore(6, 'c'), FactorScore(5, 'd'))
        assert score.total == 7.3      # 7.25 rounds half up
        assert score.rationale.white_space == 'c'

    def test_custom_weights(self):
        weights = ScoreWeights(founder_conviction=2, ai_disruption=1, white_space=1, asymmetry=0)
        score = aggregate_scores(
            FactorScore(10, ''), FactorScore(8, ''), FactorScore(6, ''), FactorScore(5, ''), weights)
        assert score.total == 8.5

    def test_zero_weights_total_zero(self):
        weights = ScoreWeights(0, 0, 0, 0)
        score = aggregate_scores(
            FactorScore(10, ''), FactorScore(10, ''), FactorScore(10, ''), FactorScore(10, ''), weights)
        assert score.total == 0.0

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            ScoreWeights(founder_conviction=-1)

    @pytest.mark.parametrize('weight', [float('inf'), float('nan')])
    def test_non_finite_weight_rejected(self, weight):
        with pytest.raises(ValueError):
            ScoreWeights(founder_conviction=weight)

    def test_total_within_bounds(self):
        for values in [(0, 0, 0, 0), (10, 10, 10, 10), (10, 0, 3.5, 9.5), (0.5, 0.5, 0.5, 0.5)]:
            score = aggregate_scores(*[FactorScore(v, '') for v in values])
            assert 0 <= score.total <= 10

    def test_all_absent_scores_zero(self):
        score = calculate_asymmetry_score(make_company())
        assert score.founder_conviction == 0
        assert score.ai_disruption == 0
        assert score.white_space == 0
        assert score.asymmetry == 0
        assert score.total == 0
        assert score.rationale.founder_conviction == SENTINEL_FOUNDER
        assert score.rationale.ai_disruption == SENTINEL_AI
        assert score.rationale.white_space == SENTINEL_WHITE_SPACE
        assert score.rationale.asymmetry == SENTINEL_ASYMMETRY

    def test_score_company_returns_copy(self):
        original = make_strong_company()
        scored = score_company(original)
        assert original.scores is None
        assert scored.scores.total == 8.3


class TestRounding:

    @pytest.mark.parametrize('value,expected', [
        (2.25, 2.3), (2.35, 2.4), (0.05, 0.1), (7.249, 7.2), (-2.25, -2.3), (10.0, 10.0),
    ])
    def test_half_away_from_zero(self, value, expected):
        assert round1(value) == expected

    @pytest.mark.parametrize('value', [0.0, 1.15, 3.333333, 6.66, 9.95, 7.25])
    def test_idempotent(self, value):
        assert round1(round1(value)) == round1(value)


class TestScoreBands:

    @pytest.mark.parametrize('total,band', [
        (10, 'STRONG'), (8.0, 'STRONG'), (7.9, 'GOOD'), (6.0, 'GOOD'),
        (5.9, 'FAIR'), (4.0, 'FAIR'), (3.9, 'WEAK'), (0, 'WEAK'),
    ])
    def test_bands(self, total, band):
        assert score_to_band(total) == band


# ============================================================
# SCREENING & RANKING
# ============================================================

def _varied_universe():
    return [
        make_strong_company(ticker='AAA'),
        make_strong_company(ticker='BBB', founder_active=False),
        make_company(ticker='CCC', future_category='advanced-energy', current_tam=0, future_tam=400e9),
        make_company(ticker='DDD', insider_ownership=12, market_cap=900e6),
        make_company(ticker='EEE'),
        make_strong_company(ticker='FFF', market_cap=20e9),
    ]


class TestScreening:

    def test_strong_company_passes_defaults(self):
        assert [c.ticker for c in screen_companies([make_strong_company()])] == ['GOOD']

    def test_excluded_ticker(self):
        result = screen_companies([make_strong_company(ticker='NVDA')])
        assert result == []

    def test_exclude_case_insensitive(self):
        criteria = replace(ScreeningCriteria(), exclude_tickers=('good',))
        assert screen_companies([make_strong_company()], criteria) == []

    def test_default_excludes(self):
        assert 'NVDA' in EXCLUDED_TICKERS
        assert len(EXCLUDED_TICKERS) == 14

    def test_market_cap_above_max_fails(self):
        failures = screening_failures(make_strong_company(market_cap=20e9), ScreeningCriteria())
        assert any('market cap' in f for f in failures)

    def test_unknown_market_cap_passes_cap_filters(self):
        criteria = replace(ScreeningCriteria.unfiltered(), max_market_cap=5e9, min_market_cap=1e8)
        assert len(screen_companies([make_company()], criteria)) == 1

    def test_min_market_cap(self):
        criteria = replace(ScreeningCriteria.unfiltered(), min_market_cap=1e9)
        assert screen_companies([make_company(market_cap=5e8)], criteria) == []

    def test_unknown_insider_counts_as_zero(self):
        criteria = replace(ScreeningCriteria.unfiltered(), min_insider_ownership=5)
        assert screen_companies([make_company()], criteria) == []

    def test_unknown_tam_multiple_counts_as_zero(self):
        criteria = replace(ScreeningCriteria.unfiltered(), min_tam_multiple=10)
        assert screen_companies([make_company(current_tam=0, future_tam=10e9)], criteria) == []

    def test_min_score(self):
        criteria = replace(ScreeningCriteria.unfiltered(), min_asymmetry_score=9)
        failures = screening_failures(make_strong_company(), criteria)
        assert failures == ['score 8.3 below 9']

    def test_category_allow_list(self):
        criteria = replace(ScreeningCriteria.unfiltered(), categories=('advanced-energy',))
        result = screen_companies(_varied_universe(), criteria)
        assert [c.ticker for c in result] == ['CCC']

    def test_empty_categories_is_identity(self):
        universe = _varied_universe()
        with_empty = screen_companies(universe, replace(ScreeningCriteria.unfiltered(), categories=()))
        without = screen_companies(universe, ScreeningCriteria.unfiltered())
        assert [c.ticker for c in with_empty] == [c.ticker for c in without]

    def test_output_is_subset_without_duplicates(self):
        universe = _varied_universe()
        result = screen_companies(universe, ScreeningCriteria.unfiltered())
        tickers = [c.ticker for c in result]
        assert len(tickers) == len(set(tickers))
        assert set(tickers) <= {c.ticker for c in universe}
        assert len(result) == len(universe)

    def test_output_sorted(self):
        result = screen_companies(_varied_universe(), ScreeningCriteria.unfiltered())
        for a, b in zip(result, result[1:]):
            assert (a.scores.total > b.scores.total
                    or (a.scores.total == b.scores.total and a.ticker <= b.ticker))

    def test_inputs_not_mutated(self):
        universe = _varied_universe()
        screen_companies(universe)
        assert all(c.scores is None for c in universe)

    def test_tie_broken_by_ticker(self):
        """Equal 7.0 totals rank AAA before ZZZ."""
        weights = ScoreWeights(founder_conviction=1, ai_disruption=0, white_space=0, asymmetry=0)
        zzz = make_company(ticker='ZZZ', insider_ownership=35, insider_buying_90d=2_000_000)
        aaa = make_company(ticker='AAA', insider_ownership=35, insider_buying_90d=2_000_000)
        ranked = rank_companies([zzz, aaa], weights)
        assert [c.ticker for c in ranked] == ['AAA', 'ZZZ']
        assert ranked[0].scores.total == ranked[1].scores.total == 7.0

    def test_rank_does_not_filter(self):
        assert len(rank_companies(_varied_universe())) == 6


# ============================================================
# DATA QUALITY & STALENESS
# ============================================================

class TestDataQuality:

    def test_weights_sum_to_100(self):
        assert sum(DATA_QUALITY_WEIGHTS.values()) == 100

    def test_empty_record(self):
        c = make_company()
        assert calculate_data_quality(c) == 0
        assert data_quality_label(0) == 'INSUFFICIENT'
        assert set(missing_inputs(c)) == set(DATA_QUALITY_WEIGHTS)

    def test_known_zero_earns_credit(self):
        assert calculate_data_quality(make_company(insider_ownership=0)) == 15

    def test_strong_company(self):
        c = make_strong_company(price=5.0)
        assert calculate_data_quality(c) == 95
        assert missing_inputs(c) == ['revenue']

    @pytest.mark.parametrize('quality,label', [
        (None, 'UNKNOWN'), (100, 'EXCELLENT'), (80, 'EXCELLENT'), (60, 'GOOD'),
        (45, 'FAIR'), (20, 'POOR'), (19, 'INSUFFICIENT'),
    ])
    def test_labels(self, quality, label):
        assert data_quality_label(quality) == label


class TestStaleness:

    def test_fresh_data(self):
        now = datetime(2026, 1, 31)
        c = make_company(last_updated=now - timedelta(days=5))
        assert check_staleness(c, now) == (False, 5)

    def test_stale_data(self):
        now = datetime(2026, 1, 31)
        c = make_company(last_updated=now - timedelta(days=40))
        assert check_staleness(c, now) == (True, 40)

    def test_never_updated(self):
        assert check_staleness(make_company()) == (True, None)


# ============================================================
# NORMALIZATION HELPERS
# ============================================================

class TestNormalization:

    def test_percent_to_fraction(self):
        assert normalize_fraction(25) == 0.25

    def test_fraction_unchanged(self):
        assert normalize_fraction(0.25) == 0.25

    def test_negative_percent(self):
        assert normalize_fraction(-50) == -0.5

    def test_unknown_and_nan(self):
        assert normalize_fraction(None) is None
        assert normalize_fraction(float('nan')) is None

    def test_derive_tam_multiple(self):
        assert derive_tam_multiple(2e9, 10e9) == 5.0
        assert derive_tam_multiple(0, 10e9) is None
        assert derive_tam_multiple(None, 10e9) is None

    def test_no_nan_leaks_into_scores(self):
        c = make_company(market_cap=0, future_tam=0, current_tam=0, cash_position=0)
        score = calculate_asymmetry_score(c)
        assert not math.isnan(score.total)
