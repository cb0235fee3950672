"""
Hunter Format — display strings for the CLI and dashboard.

The scoring engine never formats numbers for people; everything that
turns a value into a label, colour or currency string lives here.
"""

from typing import Optional, Dict

from hunter_core import AsymmetryScore, FutureCategory, score_to_band


# ============================================================
# CATEGORY METADATA
# ============================================================

CATEGORY_INFO: Dict[FutureCategory, Dict[str, str]] = {
    FutureCategory.INTELLIGENCE_INFRASTRUCTURE: {
        'label': 'Intelligence Infrastructure',
        'color': '#6366f1',
        'description': 'Compute, chips, photonics, data centers, energy for AI',
    },
    FutureCategory.ROBOTICS_AUTONOMOUS: {
        'label': 'Robotics & Autonomous',
        'color': '#8b5cf6',
        'description': 'Physical AI, autonomous systems, industrial automation',
    },
    FutureCategory.SYNTHETIC_BIOLOGY: {
        'label': 'Synthetic Biology',
        'color': '#10b981',
        'description': 'DNA synthesis, cell programming, precision biotech',
    },
    FutureCategory.MATERIALS_SIMULATION: {
        'label': 'Materials & Simulation',
        'color': '#f59e0b',
        'description': 'Physics simulation, computational materials, digital twins',
    },
    FutureCategory.ADVANCED_ENERGY: {
        'label': 'Advanced Energy',
        'color': '#ef4444',
        'description': 'Fusion, geothermal, micro-nuclear, next-gen batteries',
    },
    FutureCategory.NATIONAL_SECURITY_SPACE: {
        'label': 'Defense & Space',
        'color': '#3b82f6',
        'description': 'National security AI, space infrastructure, defense tech',
    },
    FutureCategory.OTHER: {
        'label': 'Other',
        'color': '#6b7280',
        'description': 'Other emerging technology categories',
    },
}

BAND_COLORS = {
    'STRONG': 'green',
    'GOOD': 'yellow',
    'FAIR': 'dark_orange',
    'WEAK': 'red',
}

BAND_HEX = {
    'STRONG': '#22c55e',
    'GOOD': '#eab308',
    'FAIR': '#f97316',
    'WEAK': '#ef4444',
}


def category_label(category: FutureCategory) -> str:
    return CATEGORY_INFO[category]['label']


def category_color(category: FutureCategory) -> str:
    return CATEGORY_INFO[category]['color']


# ============================================================
# NUMBERS
# ============================================================

def format_market_cap(value: Optional[float]) -> str:
    """$1.23T / $4.56B / $7.89M."""
    if not value:
        return 'N/A'
    if value >= 1_000_000_000_000:
        return f"${value / 1_000_000_000_000:.2f}T"
    if value >= 1_000_000_000:
        return f"${value / 1_000_000_000:.2f}B"
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    return f"${value:,.0f}"


def format_tam(value: Optional[float]) -> str:
    """Coarser than market cap; unknown TAM reads 'TBD'."""
    if not value:
        return 'TBD'
    if value >= 1_000_000_000_000:
        return f"${value / 1_000_000_000_000:.1f}T"
    if value >= 1_000_000_000:
        return f"${value / 1_000_000_000:.0f}B"
    if value >= 1_000_000:
        return f"${value / 1_000_000:.0f}M"
    return f"${value:,.0f}"


def format_percent(value: Optional[float], signed: bool = True) -> str:
    """Format a value already on the percent scale."""
    if value is None:
        return 'N/A'
    sign = '+' if signed and value >= 0 else ''
    return f"{sign}{value:.2f}%"


def format_fraction_pct(value: Optional[float]) -> str:
    """Format a fraction (0.3) as a percentage ('30%')."""
    if value is None:
        return 'N/A'
    return f"{value * 100:.0f}%"


def format_multiple(value: Optional[float]) -> str:
    if value is None:
        return 'N/A'
    return f"{value:.0f}x"


def format_score(value: Optional[float]) -> str:
    if value is None:
        return '-'
    return f"{value:.1f}"


def band_color(total: float) -> str:
    """Rich colour name for a 0-10 score."""
    return BAND_COLORS[score_to_band(total)]


def get_scoring_summary(score: AsymmetryScore) -> str:
    """One-line breakdown for logs and the CLI."""
    ratings = [
        ('Founder Conviction', score.founder_conviction),
        ('AI Disruption', score.ai_disruption),
        ('White Space', score.white_space),
        ('Asymmetry', score.asymmetry),
    ]
    parts = [f"{name}: {value:.1f}/10" for name, value in ratings]
    return ' | '.join(parts) + f" | Total: {score.total:.1f}/10"
