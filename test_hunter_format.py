#!/usr/bin/env python3
"""
Tests for hunter_format.py — display strings.

Run: pytest test_hunter_format.py -v
"""

import pytest

from hunter_core import AsymmetryScore, FutureCategory, ScoreRationale
from hunter_format import (
    CATEGORY_INFO,
    band_color,
    category_label,
    format_fraction_pct,
    format_market_cap,
    format_multiple,
    format_percent,
    format_score,
    format_tam,
    get_scoring_summary,
)


class TestNumbers:

    @pytest.mark.parametrize('value,expected', [
        (1.5e12, '$1.50T'),
        (2.5e9, '$2.50B'),
        (750e6, '$750.00M'),
        (12_345, '$12,345'),
        (None, 'N/A'),
        (0, 'N/A'),
    ])
    def test_market_cap(self, value, expected):
        assert format_market_cap(value) == expected

    @pytest.mark.parametrize('value,expected', [
        (1.2e12, '$1.2T'),
        (50e9, '$50B'),
        (400e6, '$400M'),
        (None, 'TBD'),
    ])
    def test_tam(self, value, expected):
        assert format_tam(value) == expected

    def test_percent_signed(self):
        assert format_percent(12.5) == '+12.50%'
        assert format_percent(-3.0) == '-3.00%'

    def test_percent_unsigned(self):
        assert format_percent(35, signed=False) == '35.00%'

    def test_percent_unknown(self):
        assert format_percent(None) == 'N/A'

    def test_fraction_pct(self):
        assert format_fraction_pct(0.3) == '30%'
        assert format_fraction_pct(None) == 'N/A'

    def test_multiple_and_score(self):
        assert format_multiple(120) == '120x'
        assert format_score(7.0) == '7.0'
        assert format_score(None) == '-'


class TestLabels:

    def test_every_category_has_info(self):
        for category in FutureCategory:
            assert set(CATEGORY_INFO[category]) == {'label', 'color', 'description'}

    def test_category_label(self):
        assert category_label(FutureCategory.ADVANCED_ENERGY) == 'Advanced Energy'

    @pytest.mark.parametrize('total,color', [
        (9.0, 'green'), (6.5, 'yellow'), (4.0, 'dark_orange'), (1.0, 'red'),
    ])
    def test_band_color(self, total, color):
        assert band_color(total) == color


class TestScoringSummary:

    def test_summary_line(self):
        score = AsymmetryScore(
            founder_conviction=10.0, ai_disruption=8.0, white_space=8.0, asymmetry=7.0, total=8.3,
            rationale=ScoreRationale('a', 'b', 'c', 'd'),
        )
        assert get_scoring_summary(score) == (
            'Founder Conviction: 10.0/10 | AI Disruption: 8.0/10 | White Space: 8.0/10 | '
            'Asymmetry: 7.0/10 | Total: 8.3/10'
        )
