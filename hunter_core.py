#!/usr/bin/env python3
"""
Hunter Core — Scoring and ranking engine for the asymmetry screener.

Single source of truth for:
- Threshold constants and the canonical category tables
- Data classes (CompanyRecord, AsymmetryScore, ScreeningCriteria)
- The four factor scorers (founder conviction, AI disruption,
  white space, asymmetry)
- Score aggregation (weighted average, one-decimal rounding)
- Screening and ranking
- Data-quality and staleness metrics

Everything here is a pure function of its inputs. Fetching, persistence
and rendering live in hunter_data, hunter_store and the CLI/dashboard.

Conventions:
- Growth and margin fields are fractions (0.30 = 30%).
- Insider ownership is a percentage (0-100).
- None always means "unknown", never zero.
"""

import logging
import math
from dataclasses import dataclass, replace, fields
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, List, Dict, Tuple, Iterable, Any

logger = logging.getLogger(__name__)

# ============================================================
# THRESHOLD CONSTANTS
# ============================================================

MAX_FACTOR_SCORE = 10.0

# --- Screening defaults ---
DEFAULT_MAX_MARKET_CAP = 10_000_000_000    # $10B hard filter
PREFERRED_MAX_MARKET_CAP = 3_000_000_000   # $3B highlight only, never filters
DEFAULT_MIN_INSIDER_OWNERSHIP = 5          # 5%
DEFAULT_MIN_TAM_MULTIPLE = 10              # 10x
DEFAULT_MIN_ASYMMETRY_SCORE = 6

# Popular stocks to exclude (too obvious, fully priced)
EXCLUDED_TICKERS = (
    'NVDA', 'AAPL', 'MSFT', 'GOOGL', 'GOOG', 'AMZN', 'META', 'TSLA',
    'AMD', 'INTC', 'AVGO', 'QCOM', 'TXN', 'MU',
)

# --- Founder conviction ---
INSIDER_OWNERSHIP_HIGH = 30       # > 30% = +4
INSIDER_OWNERSHIP_STRONG = 20     # > 20% = +3
INSIDER_OWNERSHIP_MODERATE = 10   # > 10% = +2
INSIDER_OWNERSHIP_SOME = 5        # > 5%  = +1
INSIDER_BUYING_SIGNIFICANT = 1_000_000
INSIDER_BUYING_NOTABLE = 100_000
INSIDER_SELLING_WARNING = -100_000

# --- AI disruption: TAM multiple tiers ---
TAM_MULTIPLE_EXTREME = 100
TAM_MULTIPLE_LARGE = 50
TAM_MULTIPLE_STRONG = 20
TAM_MULTIPLE_MODERATE = 10

# --- White space ---
CURRENT_TAM_VERY_SMALL = 1_000_000_000
CURRENT_TAM_SMALL = 5_000_000_000
CURRENT_TAM_MODERATE = 10_000_000_000
CAPTURE_RATIO_TINY = 0.001
CAPTURE_RATIO_SMALL = 0.01
CAPTURE_RATIO_ROOM = 0.05
SMALL_CAP = 1_000_000_000
SMALL_MID_CAP = 3_000_000_000

# --- Asymmetry ---
TERMINAL_MARKET_SHARE = 0.10      # assumed share of future TAM captured at maturity
POTENTIAL_MULTIPLE_TIERS = (100, 50, 20, 10)
CASH_STRONG_RATIO = 0.2           # cash > 20% of market cap
CASH_ADEQUATE_RATIO = 0.1
DEBT_LOW = 0.3
DEBT_HIGH = 1.5
GROSS_MARGIN_HIGH = 0.6
REVENUE_GROWTH_STRONG = 0.30
REVENUE_GROWTH_SOLID = 0.15

# --- Score bands ---
SCORE_BAND_STRONG = 8
SCORE_BAND_GOOD = 6
SCORE_BAND_FAIR = 4

# --- Data quality ---
DATA_QUALITY_EXCELLENT = 80
DATA_QUALITY_GOOD = 60
DATA_QUALITY_FAIR = 40
DATA_QUALITY_POOR = 20

DATA_QUALITY_WEIGHTS = {
    # Market data (20)
    'market_cap': 15,
    'price': 5,
    # Fundamentals (30)
    'revenue': 5,
    'revenue_growth': 10,
    'gross_margin': 5,
    'cash_position': 5,
    'debt_to_equity': 5,
    # Insider data (25)
    'insider_ownership': 15,
    'insider_buying_90d': 5,
    'founder_active': 5,
    # TAM research (25)
    'current_tam': 10,
    'future_tam': 15,
}

STALENESS_DAYS = 30               # record older than this gets a warning

# Rationale sentinels
SENTINEL_FOUNDER = 'Insufficient data'
SENTINEL_AI = 'Limited AI disruption potential'
SENTINEL_WHITE_SPACE = 'Market positioning unclear'
SENTINEL_ASYMMETRY = 'Risk/reward profile unclear'


# ============================================================
# CATEGORIES
# ============================================================

class FutureCategory(str, Enum):
    INTELLIGENCE_INFRASTRUCTURE = 'intelligence-infrastructure'
    ROBOTICS_AUTONOMOUS = 'robotics-autonomous'
    SYNTHETIC_BIOLOGY = 'synthetic-biology'
    MATERIALS_SIMULATION = 'materials-simulation'
    ADVANCED_ENERGY = 'advanced-energy'
    NATIONAL_SECURITY_SPACE = 'national-security-space'
    OTHER = 'other'


class InvalidCategory(ValueError):
    """Raised when a future category is outside the closed enumeration."""

    def __init__(self, value: Any):
        self.value = value
        allowed = ', '.join(c.value for c in FutureCategory)
        super().__init__(f"Unknown future category {value!r} (expected one of: {allowed})")


# Canonical base scores; display labels live in hunter_format
CATEGORY_BASE_SCORES: Dict[FutureCategory, int] = {
    FutureCategory.INTELLIGENCE_INFRASTRUCTURE: 3,
    FutureCategory.ROBOTICS_AUTONOMOUS: 3,
    FutureCategory.SYNTHETIC_BIOLOGY: 2,
    FutureCategory.MATERIALS_SIMULATION: 3,
    FutureCategory.ADVANCED_ENERGY: 2,
    FutureCategory.NATIONAL_SECURITY_SPACE: 2,
    FutureCategory.OTHER: 0,
}

CATEGORY_ENABLEMENT_BONUS: Dict[FutureCategory, int] = {
    FutureCategory.INTELLIGENCE_INFRASTRUCTURE: 2,
    FutureCategory.ROBOTICS_AUTONOMOUS: 2,
    FutureCategory.MATERIALS_SIMULATION: 2,
    FutureCategory.SYNTHETIC_BIOLOGY: 1,
    FutureCategory.ADVANCED_ENERGY: 1,
    FutureCategory.NATIONAL_SECURITY_SPACE: 0,
    FutureCategory.OTHER: 0,
}


def parse_category(value: Any) -> FutureCategory:
    """Coerce a string (or FutureCategory) into a FutureCategory.

    Accepts 'materials_simulation' as well as 'materials-simulation'.
    Raises InvalidCategory for anything else.
    """
    if isinstance(value, FutureCategory):
        return value
    if not isinstance(value, str):
        raise InvalidCategory(value)
    key = value.strip().lower().replace('_', '-')
    try:
        return FutureCategory(key)
    except ValueError:
        raise InvalidCategory(value) from None


# ============================================================
# DATA CLASSES
# ============================================================

@dataclass(frozen=True)
class FactorScore:
    """Output of one factor scorer."""
    score: float          # 0.0 - 10.0
    rationale: str


@dataclass
class ScoreRationale:
    founder_conviction: str
    ai_disruption: str
    white_space: str
    asymmetry: str


@dataclass
class AsymmetryScore:
    """Composite score for one company."""
    founder_conviction: float      # 0-10
    ai_disruption: float           # 0-10
    white_space: float             # 0-10
    asymmetry: float               # 0-10
    total: float                   # weighted average, one decimal
    rationale: ScoreRationale

    def to_dict(self) -> Dict[str, Any]:
        return {
            'founder_conviction': self.founder_conviction,
            'ai_disruption': self.ai_disruption,
            'white_space': self.white_space,
            'asymmetry': self.asymmetry,
            'total': self.total,
            'rationale': {
                'founder_conviction': self.rationale.founder_conviction,
                'ai_disruption': self.rationale.ai_disruption,
                'white_space': self.rationale.white_space,
                'asymmetry': self.rationale.asymmetry,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AsymmetryScore':
        rationale = data.get('rationale') or {}
        return cls(
            founder_conviction=float(data['founder_conviction']),
            ai_disruption=float(data['ai_disruption']),
            white_space=float(data['white_space']),
            asymmetry=float(data['asymmetry']),
            total=float(data['total']),
            rationale=ScoreRationale(
                founder_conviction=rationale.get('founder_conviction', SENTINEL_FOUNDER),
                ai_disruption=rationale.get('ai_disruption', SENTINEL_AI),
                white_space=rationale.get('white_space', SENTINEL_WHITE_SPACE),
                asymmetry=rationale.get('asymmetry', SENTINEL_ASYMMETRY),
            ),
        )


@dataclass(frozen=True)
class ScoreWeights:
    founder_conviction: float = 1.0
    ai_disruption: float = 1.0
    white_space: float = 1.0
    asymmetry: float = 1.0

    def __post_init__(self):
        for f in fields(self):
            weight = getattr(self, f.name)
            if not math.isfinite(weight) or weight < 0:
                raise ValueError(f"Score weight '{f.name}' must be finite and non-negative, got {weight}")


def _finite_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


# Numeric fields that must never carry NaN/inf into scoring
_NUMERIC_FIELDS = (
    'market_cap', 'price', 'price_change_30d', 'volume',
    'revenue', 'revenue_growth', 'gross_margin', 'cash_position', 'debt_to_equity',
    'insider_ownership', 'insider_buying_90d', 'founder_shares',
    'current_tam', 'future_tam', 'tam_multiple',
)


@dataclass
class CompanyRecord:
    """Everything the engine knows about one tracked security."""
    ticker: str
    name: str = ''
    future_category: FutureCategory = FutureCategory.OTHER
    cik: Optional[str] = None

    # --- Market data ---
    market_cap: Optional[float] = None
    price: Optional[float] = None
    price_change_30d: Optional[float] = None   # percent
    volume: Optional[float] = None

    # --- Classification (informational) ---
    sector: Optional[str] = None
    industry: Optional[str] = None

    # --- Fundamentals (fractions) ---
    revenue: Optional[float] = None
    revenue_growth: Optional[float] = None
    gross_margin: Optional[float] = None
    cash_position: Optional[float] = None
    debt_to_equity: Optional[float] = None

    # --- Insider data ---
    insider_ownership: Optional[float] = None  # percent 0-100
    insider_buying_90d: Optional[float] = None # signed dollars
    founder_shares: Optional[float] = None
    founder_active: Optional[bool] = None

    # --- TAM data ---
    current_tam: Optional[float] = None
    future_tam: Optional[float] = None
    tam_multiple: Optional[float] = None
    tam_rationale: str = ''

    # --- Derived ---
    scores: Optional[AsymmetryScore] = None
    data_quality: Optional[int] = None         # 0-100
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        self.ticker = self.ticker.strip().upper()
        if not self.name:
            self.name = self.ticker
        self.future_category = parse_category(self.future_category)
        for name in _NUMERIC_FIELDS:
            setattr(self, name, _finite_or_none(getattr(self, name)))


@dataclass(frozen=True)
class ScreeningCriteria:
    """Screening thresholds. A threshold of None disables that filter."""
    max_market_cap: Optional[float] = DEFAULT_MAX_MARKET_CAP
    min_market_cap: Optional[float] = None
    min_insider_ownership: Optional[float] = DEFAULT_MIN_INSIDER_OWNERSHIP
    min_tam_multiple: Optional[float] = DEFAULT_MIN_TAM_MULTIPLE
    min_asymmetry_score: Optional[float] = DEFAULT_MIN_ASYMMETRY_SCORE
    categories: Tuple[FutureCategory, ...] = ()
    exclude_tickers: Tuple[str, ...] = EXCLUDED_TICKERS

    def __post_init__(self):
        object.__setattr__(self, 'categories', tuple(parse_category(c) for c in self.categories or ()))
        object.__setattr__(self, 'exclude_tickers', tuple(t.strip().upper() for t in self.exclude_tickers or ()))

    @classmethod
    def unfiltered(cls) -> 'ScreeningCriteria':
        """Criteria that let every record through."""
        return cls(
            max_market_cap=None, min_market_cap=None,
            min_insider_ownership=None, min_tam_multiple=None,
            min_asymmetry_score=None, categories=(), exclude_tickers=(),
        )


# ============================================================
# NORMALIZATION HELPERS
# ============================================================

def normalize_fraction(value: Optional[float]) -> Optional[float]:
    """Normalize a growth/margin value to fraction form.

    Handles both decimal (0.25) and percent (25) representations.
    Anything with magnitude above 2 is treated as a percentage.
    """
    if value is None:
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    if abs(value) > 2:
        return value / 100
    return value


def derive_tam_multiple(current_tam: Optional[float], future_tam: Optional[float]) -> Optional[float]:
    """future / current, or None when the ratio is undefined."""
    if current_tam is None or future_tam is None or current_tam <= 0:
        return None
    return future_tam / current_tam


def effective_tam_multiple(company: CompanyRecord) -> Optional[float]:
    """Precomputed multiple if present, else derived from the two TAMs."""
    if company.tam_multiple is not None:
        return company.tam_multiple
    return derive_tam_multiple(company.current_tam, company.future_tam)


def round1(value: float) -> float:
    """Round to one decimal, halves away from zero."""
    return float(Decimal(repr(float(value))).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def _clamp(score: float) -> float:
    return min(max(score, 0.0), MAX_FACTOR_SCORE)


def _finish(score: float, factors: List[str], sentinel: str) -> FactorScore:
    return FactorScore(
        score=_clamp(score),
        rationale='. '.join(factors) if factors else sentinel,
    )


# ============================================================
# FACTOR 1: FOUNDER CONVICTION
# ============================================================

def score_founder_conviction(company: CompanyRecord) -> FactorScore:
    """Insider ownership (0-4) + insider buying (0-3) + founder active (0-3)."""
    score = 0.0
    factors: List[str] = []

    ownership = company.insider_ownership
    if ownership is not None:
        if ownership > INSIDER_OWNERSHIP_HIGH:
            score += 4
            factors.append(f"High insider ownership ({ownership:.1f}%)")
        elif ownership > INSIDER_OWNERSHIP_STRONG:
            score += 3
            factors.append(f"Strong insider ownership ({ownership:.1f}%)")
        elif ownership > INSIDER_OWNERSHIP_MODERATE:
            score += 2
            factors.append(f"Moderate insider ownership ({ownership:.1f}%)")
        elif ownership > INSIDER_OWNERSHIP_SOME:
            score += 1
            factors.append(f"Some insider ownership ({ownership:.1f}%)")
        else:
            factors.append(f"Low insider ownership ({ownership:.1f}%)")

    buying = company.insider_buying_90d
    if buying is not None:
        if buying > INSIDER_BUYING_SIGNIFICANT:
            score += 3
            factors.append('Significant insider buying >$1M in 90d')
        elif buying > INSIDER_BUYING_NOTABLE:
            score += 2
            factors.append('Notable insider buying in 90d')
        elif buying > 0:
            score += 1
            factors.append('Some insider buying in 90d')
        elif buying < INSIDER_SELLING_WARNING:
            factors.append('Warning: Insider selling detected')

    if company.founder_active:
        score += 3
        factors.append('Founder-led company')

    return _finish(score, factors, SENTINEL_FOUNDER)


# ============================================================
# FACTOR 2: AI-ACCELERATED DISRUPTION
# ============================================================

def score_ai_disruption(company: CompanyRecord) -> FactorScore:
    """Category base (0-3) + TAM multiple (0-4) + enablement (0-2)."""
    score = 0.0
    factors: List[str] = []

    category = parse_category(company.future_category)

    base = CATEGORY_BASE_SCORES[category]
    score += base
    if base > 0:
        factors.append(f"Core AI-adjacent sector ({category.value})")

    multiple = effective_tam_multiple(company)
    if multiple is None:
        multiple = 1.0
    if multiple > TAM_MULTIPLE_EXTREME:
        score += 4
        factors.append(f"Extreme TAM expansion potential ({multiple:.0f}x)")
    elif multiple > TAM_MULTIPLE_LARGE:
        score += 3
        factors.append(f"Large TAM expansion potential ({multiple:.0f}x)")
    elif multiple > TAM_MULTIPLE_STRONG:
        score += 2
        factors.append(f"Strong TAM expansion potential ({multiple:.0f}x)")
    elif multiple > TAM_MULTIPLE_MODERATE:
        score += 1
        factors.append(f"Moderate TAM expansion ({multiple:.0f}x)")

    bonus = CATEGORY_ENABLEMENT_BONUS[category]
    score += bonus
    if bonus == 2:
        factors.append('Direct AI compute/automation beneficiary')
    elif bonus == 1:
        factors.append('AI-enabled R&D acceleration')

    return _finish(score, factors, SENTINEL_AI)


# ============================================================
# FACTOR 3: MARKET WHITE-SPACE
# ============================================================

def score_white_space(company: CompanyRecord) -> FactorScore:
    """Current TAM size (0-4) + capture ratio (0-3) + small cap (0-2).

    A current TAM of zero, or an unknown current TAM alongside a future
    TAM estimate, is an undefined/emerging market worth 3 points. With no
    TAM research at all the tiering awards nothing.
    """
    score = 0.0
    factors: List[str] = []

    current_tam = company.current_tam
    future_tam = company.future_tam
    market_cap = company.market_cap

    if current_tam is not None and current_tam > 0:
        if current_tam < CURRENT_TAM_VERY_SMALL:
            score += 4
            factors.append('Very small current TAM (<$1B)')
        elif current_tam < CURRENT_TAM_SMALL:
            score += 3
            factors.append('Small current TAM (<$5B)')
        elif current_tam < CURRENT_TAM_MODERATE:
            score += 2
            factors.append('Moderate current TAM (<$10B)')
        else:
            score += 1
            factors.append('Established market')
    elif current_tam is not None or future_tam is not None:
        score += 3
        factors.append('Undefined/emerging market')

    if future_tam is not None and future_tam > 0 and market_cap is not None and market_cap > 0:
        capture_ratio = market_cap / future_tam
        if capture_ratio < CAPTURE_RATIO_TINY:
            score += 3
            factors.append('Market cap is <0.1% of future TAM')
        elif capture_ratio < CAPTURE_RATIO_SMALL:
            score += 2
            factors.append('Market cap is <1% of future TAM')
        elif capture_ratio < CAPTURE_RATIO_ROOM:
            score += 1
            factors.append('Significant room for market capture')

    if market_cap is not None and market_cap > 0:
        if market_cap < SMALL_CAP:
            score += 2
            factors.append('Small cap (<$1B) - less institutional attention')
        elif market_cap < SMALL_MID_CAP:
            score += 1
            factors.append('Small-mid cap - emerging from obscurity')

    return _finish(score, factors, SENTINEL_WHITE_SPACE)


# ============================================================
# FACTOR 4: ASYMMETRY & CONVEXITY
# ============================================================

def score_asymmetry(company: CompanyRecord) -> FactorScore:
    """Potential multiple (0-4) + balance sheet (0-3) + quality (0-2)."""
    score = 0.0
    factors: List[str] = []

    future_tam = company.future_tam
    market_cap = company.market_cap
    has_cap = market_cap is not None and market_cap > 0

    if future_tam is not None and future_tam > 0 and has_cap:
        potential_multiple = (future_tam * TERMINAL_MARKET_SHARE) / market_cap
        extreme, large, strong, moderate = POTENTIAL_MULTIPLE_TIERS
        if potential_multiple > extreme:
            score += 4
            factors.append('100x+ potential at 10% market capture')
        elif potential_multiple > large:
            score += 3
            factors.append('50x+ potential at 10% market capture')
        elif potential_multiple > strong:
            score += 2
            factors.append('20x+ potential at 10% market capture')
        elif potential_multiple > moderate:
            score += 1
            factors.append('10x+ potential')

    # Survivability
    cash = company.cash_position
    if cash is not None and has_cap:
        if cash > market_cap * CASH_STRONG_RATIO:
            score += 2
            factors.append('Strong cash position (>20% of market cap)')
        elif cash > market_cap * CASH_ADEQUATE_RATIO:
            score += 1
            factors.append('Adequate cash runway')

    debt_to_equity = company.debt_to_equity
    if debt_to_equity is not None:
        if debt_to_equity < DEBT_LOW:
            score += 1
            factors.append('Low debt burden')
        elif debt_to_equity > DEBT_HIGH:
            factors.append('Warning: High debt levels')

    # Business quality
    gross_margin = company.gross_margin
    if gross_margin is not None and gross_margin > GROSS_MARGIN_HIGH:
        score += 1
        factors.append(f"High gross margins ({gross_margin * 100:.0f}%)")

    growth = company.revenue_growth
    if growth is not None:
        if growth > REVENUE_GROWTH_STRONG:
            score += 1
            factors.append(f"Strong revenue growth ({growth * 100:.0f}%)")
        elif growth > REVENUE_GROWTH_SOLID:
            score += 0.5
            factors.append('Solid revenue growth')

    return _finish(score, factors, SENTINEL_ASYMMETRY)


# ============================================================
# AGGREGATION
# ============================================================

def aggregate_scores(
    founder: FactorScore,
    ai: FactorScore,
    white_space: FactorScore,
    asymmetry: FactorScore,
    weights: Optional[ScoreWeights] = None,
) -> AsymmetryScore:
    """Weighted average of the four factors, rounded to one decimal.

    All-zero weights give a total of 0.
    """
    weights = weights or ScoreWeights()
    pairs = (
        (founder.score, weights.founder_conviction),
        (ai.score, weights.ai_disruption),
        (white_space.score, weights.white_space),
        (asymmetry.score, weights.asymmetry),
    )
    weight_sum = sum(w for _, w in pairs)
    if weight_sum > 0:
        total = sum(s * w for s, w in pairs) / weight_sum
    else:
        total = 0.0

    return AsymmetryScore(
        founder_conviction=founder.score,
        ai_disruption=ai.score,
        white_space=white_space.score,
        asymmetry=asymmetry.score,
        total=round1(_clamp(total)),
        rationale=ScoreRationale(
            founder_conviction=founder.rationale,
            ai_disruption=ai.rationale,
            white_space=white_space.rationale,
            asymmetry=asymmetry.rationale,
        ),
    )


def calculate_asymmetry_score(company: CompanyRecord, weights: Optional[ScoreWeights] = None) -> AsymmetryScore:
    """Run all four factor scorers and aggregate."""
    return aggregate_scores(
        score_founder_conviction(company),
        score_ai_disruption(company),
        score_white_space(company),
        score_asymmetry(company),
        weights,
    )


def score_company(company: CompanyRecord, weights: Optional[ScoreWeights] = None) -> CompanyRecord:
    """Return a copy of the record with scores attached."""
    return replace(company, scores=calculate_asymmetry_score(company, weights))


def score_to_band(total: float) -> str:
    """Convert a 0-10 score to its display band."""
    if total >= SCORE_BAND_STRONG:
        return 'STRONG'
    elif total >= SCORE_BAND_GOOD:
        return 'GOOD'
    elif total >= SCORE_BAND_FAIR:
        return 'FAIR'
    else:
        return 'WEAK'


# ============================================================
# SCREENING & RANKING
# ============================================================

def screening_failures(company: CompanyRecord, criteria: ScreeningCriteria) -> List[str]:
    """List every criterion the (scored) record fails. Empty = passes.

    An unknown market cap never fails the cap filters. Unknown insider
    ownership or TAM multiple count as zero.
    """
    failures: List[str] = []

    market_cap = company.market_cap
    if market_cap is not None:
        if criteria.max_market_cap is not None and market_cap > criteria.max_market_cap:
            failures.append(f"market cap ${market_cap:,.0f} above ${criteria.max_market_cap:,.0f}")
        if criteria.min_market_cap is not None and market_cap < criteria.min_market_cap:
            failures.append(f"market cap ${market_cap:,.0f} below ${criteria.min_market_cap:,.0f}")

    if criteria.min_insider_ownership is not None:
        ownership = company.insider_ownership or 0.0
        if ownership < criteria.min_insider_ownership:
            failures.append(f"insider ownership {ownership:.1f}% below {criteria.min_insider_ownership}%")

    if criteria.min_tam_multiple is not None:
        multiple = effective_tam_multiple(company) or 0.0
        if multiple < criteria.min_tam_multiple:
            failures.append(f"TAM multiple {multiple:.1f}x below {criteria.min_tam_multiple}x")

    if criteria.categories and company.future_category not in criteria.categories:
        failures.append(f"category {company.future_category.value} not selected")

    if company.ticker in criteria.exclude_tickers:
        failures.append(f"{company.ticker} is excluded")

    if criteria.min_asymmetry_score is not None:
        scores = company.scores or calculate_asymmetry_score(company)
        if scores.total < criteria.min_asymmetry_score:
            failures.append(f"score {scores.total:.1f} below {criteria.min_asymmetry_score}")

    return failures


def passes_criteria(company: CompanyRecord, criteria: ScreeningCriteria) -> bool:
    return not screening_failures(company, criteria)


def _rank_key(company: CompanyRecord) -> Tuple[float, str]:
    total = company.scores.total if company.scores is not None else 0.0
    return (-total, company.ticker)


def rank_companies(
    companies: Iterable[CompanyRecord],
    weights: Optional[ScoreWeights] = None,
) -> List[CompanyRecord]:
    """Score every record and sort by total desc, ticker asc."""
    scored = [score_company(c, weights) for c in companies]
    return sorted(scored, key=_rank_key)


def screen_companies(
    companies: Iterable[CompanyRecord],
    criteria: Optional[ScreeningCriteria] = None,
    weights: Optional[ScoreWeights] = None,
) -> List[CompanyRecord]:
    """Score, filter and rank a candidate set.

    Returns new records (inputs are never mutated); the output is always
    a subset of the input ordered by total desc, ticker asc.
    """
    criteria = criteria or ScreeningCriteria()
    ranked = rank_companies(companies, weights)
    passed = [c for c in ranked if passes_criteria(c, criteria)]
    logger.debug("Screened %d companies: %d passed", len(ranked), len(passed))
    return passed


# ============================================================
# DATA QUALITY & STALENESS
# ============================================================

def calculate_data_quality(company: CompanyRecord) -> int:
    """Weighted share of populated inputs, 0-100.

    Only known values earn credit; a known zero counts, None does not.
    """
    score = 0
    for name, weight in DATA_QUALITY_WEIGHTS.items():
        if getattr(company, name) is not None:
            score += weight
    return min(score, 100)


def data_quality_label(quality: Optional[int]) -> str:
    if quality is None:
        return 'UNKNOWN'
    if quality >= DATA_QUALITY_EXCELLENT:
        return 'EXCELLENT'
    elif quality >= DATA_QUALITY_GOOD:
        return 'GOOD'
    elif quality >= DATA_QUALITY_FAIR:
        return 'FAIR'
    elif quality >= DATA_QUALITY_POOR:
        return 'POOR'
    else:
        return 'INSUFFICIENT'


def missing_inputs(company: CompanyRecord) -> List[str]:
    """Names of the data-quality inputs that are still unknown."""
    return [name for name in DATA_QUALITY_WEIGHTS if getattr(company, name) is None]


def check_staleness(
    company: CompanyRecord,
    now: Optional[datetime] = None,
    max_age_days: int = STALENESS_DAYS,
) -> Tuple[bool, Optional[int]]:
    """Return (is_stale, age_in_days). A record with no timestamp is stale."""
    if company.last_updated is None:
        return True, None
    now = now or datetime.now()
    days_old = (now - company.last_updated).days
    return days_old > max_age_days, days_old
