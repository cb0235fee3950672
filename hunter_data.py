"""
Hunter Data — market data and SEC EDGAR retrieval.

Produces fully merged CompanyRecord values for the scoring engine:
- Yahoo Finance (yfinance): price, market cap, 30-day change, key stats
- SEC EDGAR (requests): ticker -> CIK map, company facts, filings
- company_database.json: manual research (TAM estimates, founder status)

Unit conventions are fixed here, at ingestion: growth and margins become
fractions, insider ownership becomes a 0-100 percentage, Yahoo's
debt-to-equity percentage becomes a ratio. Fetch failures are logged and
come back as an empty dict / None / empty list; they never reach scoring.
"""

import json
import logging
import math
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Callable, Any, Iterable

import requests
import yfinance as yf

from hunter_core import (
    CompanyRecord,
    calculate_data_quality,
    derive_tam_multiple,
    normalize_fraction,
)

logger = logging.getLogger(__name__)

SEC_EDGAR_BASE = 'https://data.sec.gov'
SEC_COMPANY_TICKERS = 'https://www.sec.gov/files/company_tickers.json'
SEC_ARCHIVES = 'https://www.sec.gov/Archives/edgar/data'

DEFAULT_USER_AGENT = 'AsymmetryHunter/1.0 (contact@example.com)'

# us-gaap concepts -> financials key, first match wins
FINANCIAL_CONCEPTS = {
    'revenue': ('Revenues', 'RevenueFromContractWithCustomerExcludingAssessedTax'),
    'net_income': ('NetIncomeLoss',),
    'total_assets': ('Assets',),
    'total_liabilities': ('Liabilities',),
    'stockholders_equity': ('StockholdersEquity',),
    'cash': ('CashAndCashEquivalentsAtCarryingValue',),
    'shares_outstanding': ('CommonStockSharesOutstanding',),
}


def _clean_number(value: Any) -> Optional[float]:
    """float(value), or None for missing/NaN/non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


# ============================================================
# TICKER -> CIK CACHE
# ============================================================

def load_sec_ticker_map(
    session: Optional[requests.Session] = None,
    user_agent: str = DEFAULT_USER_AGENT,
    timeout: float = 10.0,
) -> Dict[str, str]:
    """Download SEC's ticker list as {TICKER: zero-padded CIK}.

    Returns an empty map on failure.
    """
    session = session or requests.Session()
    try:
        response = session.get(
            SEC_COMPANY_TICKERS,
            headers={'User-Agent': user_agent, 'Accept': 'application/json'},
            timeout=timeout,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning("Failed to load SEC ticker map: %s", e)
        return {}

    mapping = {}
    for entry in data.values():
        try:
            mapping[str(entry['ticker']).upper()] = str(entry['cik_str']).zfill(10)
        except (KeyError, TypeError):
            continue
    return mapping


class TickerCikCache:
    """Lazily loaded ticker -> CIK map with explicit invalidation.

    The loader is injected so callers (and tests) decide where the map
    comes from; nothing is held at module level.
    """

    def __init__(self, loader: Callable[[], Dict[str, str]]):
        self._loader = loader
        self._map: Optional[Dict[str, str]] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._map is not None

    def load(self) -> None:
        """(Re)load the map from the loader."""
        mapping = self._loader() or {}
        with self._lock:
            self._map = {k.strip().upper(): v for k, v in mapping.items()}
        logger.debug("Loaded %d ticker -> CIK entries", len(self._map))

    def invalidate(self) -> None:
        with self._lock:
            self._map = None

    def get(self, ticker: str) -> Optional[str]:
        if self._map is None:
            self.load()
        return self._map.get(ticker.strip().upper())

    def __contains__(self, ticker: str) -> bool:
        return self.get(ticker) is not None

    def __len__(self) -> int:
        if self._map is None:
            self.load()
        return len(self._map)


# ============================================================
# SEC EDGAR CLIENT
# ============================================================

@dataclass
class Filing:
    accession_number: str
    filing_date: str
    form: str
    description: str
    document_url: str


@dataclass
class SecCompanyInfo:
    cik: str
    name: str
    ticker: str
    sic: str
    sic_description: str
    filings: List[Filing]


class SecEdgarClient:
    """Client for SEC EDGAR's free JSON endpoints.

    SEC requires a User-Agent with contact details. Requests are spaced
    to respect the configured requests-per-minute budget. An optional
    response cache (anything with cache_get/cache_set, e.g. HunterStore)
    short-circuits repeat lookups.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
        cik_cache: Optional[TickerCikCache] = None,
        requests_per_minute: int = 10,
        timeout: float = 10.0,
        cache: Any = None,
        cache_ttl: int = 86400,
        max_retries: int = 3,
        retry_delay: float = 2.0,
    ):
        self.user_agent = user_agent
        self.session = session or requests.Session()
        self.timeout = timeout
        self.cik_cache = cik_cache or TickerCikCache(
            lambda: load_sec_ticker_map(self.session, self.user_agent, self.timeout)
        )
        self.min_interval = 60.0 / requests_per_minute if requests_per_minute > 0 else 0.0
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._last_request = 0.0

    def _throttle(self):
        wait = self.min_interval - (time.monotonic() - self._last_request)
        if wait > 0:
            time.sleep(wait)
        self._last_request = time.monotonic()

    def _get_json(self, url: str) -> Optional[Dict]:
        """GET a JSON document with retry logic, None on failure.

        Network errors, 429 and 5xx responses are retried with exponential
        backoff; other HTTP errors and undecodable bodies are not.
        """
        cache_key = f"sec:{url}"
        if self.cache is not None:
            cached = self.cache.cache_get(cache_key)
            if cached is not None:
                return cached

        for attempt in range(self.max_retries):
            self._throttle()
            try:
                response = self.session.get(
                    url,
                    headers={'User-Agent': self.user_agent, 'Accept': 'application/json'},
                    timeout=self.timeout,
                )
                if response.ok:
                    data = response.json()
                    break
                if response.status_code != 429 and response.status_code < 500:
                    logger.warning("SEC EDGAR returned %s for %s", response.status_code, url)
                    return None
                logger.warning("SEC EDGAR returned %s for %s (attempt %d)",
                               response.status_code, url, attempt + 1)
            except ValueError as e:
                logger.warning("SEC EDGAR sent invalid JSON for %s: %s", url, e)
                return None
            except requests.exceptions.RequestException as e:
                logger.warning("SEC EDGAR request failed for %s (attempt %d): %s", url, attempt + 1, e)

            if attempt < self.max_retries - 1:
                time.sleep(self.retry_delay * (2 ** attempt))
        else:
            logger.error("All SEC EDGAR attempts failed for %s", url)
            return None

        if self.cache is not None:
            self.cache.cache_set(cache_key, data, source='sec-edgar', ttl_seconds=self.cache_ttl)
        return data

    def get_cik(self, ticker: str) -> Optional[str]:
        return self.cik_cache.get(ticker)

    def get_company_facts(self, cik: str) -> Optional[Dict]:
        return self._get_json(f"{SEC_EDGAR_BASE}/api/xbrl/companyfacts/CIK{cik.zfill(10)}.json")

    def _get_submissions(self, cik: str) -> Optional[Dict]:
        return self._get_json(f"{SEC_EDGAR_BASE}/submissions/CIK{cik.zfill(10)}.json")

    def get_filings(self, cik: str, count: int = 40) -> List[Filing]:
        """Most recent filings, newest first."""
        data = self._get_submissions(cik)
        if not data:
            return []
        return parse_recent_filings(data, cik, count)

    def get_company_info(self, ticker: str) -> Optional[SecCompanyInfo]:
        cik = self.get_cik(ticker)
        if not cik:
            return None
        data = self._get_submissions(cik)
        if not data:
            return None
        tickers = data.get('tickers') or []
        return SecCompanyInfo(
            cik=cik,
            name=data.get('name', ticker),
            ticker=tickers[0] if tickers else ticker.upper(),
            sic=str(data.get('sic') or ''),
            sic_description=data.get('sicDescription') or '',
            filings=parse_recent_filings(data, cik, 10),
        )

    def get_insider_filings(self, ticker: str, days: int = 90, now: Optional[datetime] = None) -> List[Filing]:
        """Form 4 filings in the trailing window.

        Only filing metadata is available here; transaction values have to
        be entered from the filing itself (see HunterStore.record_insider_transaction).
        """
        cik = self.get_cik(ticker)
        if not cik:
            return []
        cutoff = ((now or datetime.now()) - timedelta(days=days)).strftime('%Y-%m-%d')
        return [
            f for f in self.get_filings(cik, 100)
            if f.form == '4' and f.filing_date >= cutoff
        ]

    def get_financials(self, ticker: str) -> Dict[str, Optional[float]]:
        """Latest 10-K/10-Q values for the FINANCIAL_CONCEPTS. Empty on failure."""
        cik = self.get_cik(ticker)
        if not cik:
            return {}
        facts = self.get_company_facts(cik)
        if not facts:
            return {}
        return extract_financials(facts)


def parse_recent_filings(submissions: Dict, cik: str, count: int) -> List[Filing]:
    """Turn the column-oriented 'filings.recent' block into Filing rows."""
    recent = (submissions.get('filings') or {}).get('recent') or {}
    accessions = recent.get('accessionNumber') or []
    dates = recent.get('filingDate') or []
    forms = recent.get('form') or []
    documents = recent.get('primaryDocument') or []
    cik_plain = str(int(cik)) if str(cik).isdigit() else str(cik)

    filings = []
    for i in range(min(count, len(accessions))):
        accession = accessions[i]
        document = documents[i] if i < len(documents) else ''
        filings.append(Filing(
            accession_number=accession,
            filing_date=dates[i] if i < len(dates) else '',
            form=forms[i] if i < len(forms) else '',
            description=document or '',
            document_url=f"{SEC_ARCHIVES}/{cik_plain}/{accession.replace('-', '')}/{document}",
        ))
    return filings


def _latest_fact_value(us_gaap: Dict, concept: str) -> Optional[float]:
    units = (us_gaap.get(concept) or {}).get('units') or {}
    data = units.get('USD') or units.get('shares') or []
    periodic = [d for d in data if d.get('form') in ('10-K', '10-Q')]
    if not periodic:
        return None
    latest = max(periodic, key=lambda d: d.get('end', ''))
    return _clean_number(latest.get('val'))


def extract_financials(facts: Dict) -> Dict[str, Optional[float]]:
    us_gaap = (facts.get('facts') or {}).get('us-gaap') or {}
    result = {}
    for key, concepts in FINANCIAL_CONCEPTS.items():
        value = None
        for concept in concepts:
            value = _latest_fact_value(us_gaap, concept)
            if value is not None:
                break
        result[key] = value
    return result


# ============================================================
# YAHOO FINANCE
# ============================================================

def fetch_market_data(ticker: str) -> Dict[str, Any]:
    """Fetch quote + key statistics from Yahoo Finance.

    Returns a dict keyed by CompanyRecord field names, already in the
    engine's units. Empty dict on failure.
    """
    try:
        stock = yf.Ticker(ticker)
        info = stock.info or {}
        hist = stock.history(period='1mo')
    except Exception as e:
        logger.warning("Could not fetch Yahoo Finance data for %s: %s", ticker, e)
        return {}

    price = _clean_number(info.get('currentPrice') or info.get('regularMarketPrice'))
    change_30d = None
    if hist is not None and not hist.empty:
        closes = hist['Close']
        first = _clean_number(closes.iloc[0])
        last = _clean_number(closes.iloc[-1])
        if price is None:
            price = last
        if first and price is not None:
            change_30d = (price - first) / first * 100

    insider_fraction = _clean_number(info.get('heldPercentInsiders'))
    debt_to_equity = _clean_number(info.get('debtToEquity'))

    return {
        'name': info.get('longName') or info.get('shortName'),
        'sector': info.get('sector'),
        'industry': info.get('industry'),
        'market_cap': _clean_number(info.get('marketCap')),
        'price': price,
        'price_change_30d': change_30d,
        'volume': _clean_number(info.get('averageVolume') or info.get('volume')),
        'revenue': _clean_number(info.get('totalRevenue')),
        # Yahoo growth and margins are always fractions (2.5 = 250%)
        'revenue_growth': _clean_number(info.get('revenueGrowth')),
        'gross_margin': _clean_number(info.get('grossMargins')),
        'cash_position': _clean_number(info.get('totalCash')),
        # Yahoo reports D/E as a percentage (45.3 = 0.453)
        'debt_to_equity': debt_to_equity / 100 if debt_to_equity is not None else None,
        'insider_ownership': insider_fraction * 100 if insider_fraction is not None else None,
    }


def fetch_market_data_batch(
    tickers: Iterable[str],
    batch_size: int = 5,
    delay: float = 0.2,
    fetcher: Callable[[str], Dict[str, Any]] = fetch_market_data,
) -> Dict[str, Dict[str, Any]]:
    """Fetch several tickers in small parallel batches.

    Tickers whose fetch came back empty are left out of the result.
    """
    tickers = list(tickers)
    results: Dict[str, Dict[str, Any]] = {}

    for start in range(0, len(tickers), batch_size):
        batch = tickers[start:start + batch_size]
        with ThreadPoolExecutor(max_workers=len(batch)) as pool:
            for ticker, data in zip(batch, pool.map(fetcher, batch)):
                if data:
                    results[ticker] = data
        if start + batch_size < len(tickers) and delay > 0:
            time.sleep(delay)

    logger.info("Fetched market data for %d of %d tickers", len(results), len(tickers))
    return results


# ============================================================
# COMPANY DATABASE I/O
# ============================================================

def _default_database_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), 'company_database.json')


def load_company_database(path: Optional[str] = None) -> Dict[str, dict]:
    """Load the manual research database (ticker -> info dict)."""
    with open(path or _default_database_path(), 'r') as f:
        return json.load(f)


def save_company_database(db: Dict[str, dict], path: Optional[str] = None) -> None:
    with open(path or _default_database_path(), 'w') as f:
        json.dump(db, f, indent=2, sort_keys=True)


# ============================================================
# RECORD ASSEMBLY
# ============================================================

def _first_known(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def build_company_record(
    ticker: str,
    info: dict,
    market_data: Optional[dict] = None,
    financials: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> CompanyRecord:
    """Merge manual research with live market data and SEC financials.

    Live data wins for market fields; manual research wins for TAM,
    founder and insider fields (curated by hand); fundamentals fall back
    from Yahoo to manual to SEC.
    """
    market_data = market_data or {}
    financials = financials or {}

    current_tam = _clean_number(info.get('current_tam'))
    future_tam = _clean_number(info.get('future_tam'))
    tam_multiple = _first_known(
        _clean_number(info.get('tam_multiple')),
        derive_tam_multiple(current_tam, future_tam),
    )

    record = CompanyRecord(
        ticker=ticker,
        name=_first_known(info.get('name'), market_data.get('name'), ticker),
        cik=info.get('cik'),
        future_category=info.get('future_category') or info.get('category') or 'other',

        # Market data
        market_cap=_first_known(market_data.get('market_cap'), _clean_number(info.get('market_cap'))),
        price=_first_known(market_data.get('price'), _clean_number(info.get('price'))),
        price_change_30d=market_data.get('price_change_30d'),
        volume=market_data.get('volume'),

        # Classification
        sector=_first_known(info.get('sector'), market_data.get('sector')),
        industry=_first_known(info.get('industry'), market_data.get('industry')),

        # Fundamentals
        revenue=_first_known(market_data.get('revenue'), _clean_number(info.get('revenue')),
                             financials.get('revenue')),
        revenue_growth=_first_known(market_data.get('revenue_growth'),
                                    normalize_fraction(_clean_number(info.get('revenue_growth')))),
        gross_margin=_first_known(market_data.get('gross_margin'),
                                  normalize_fraction(_clean_number(info.get('gross_margin')))),
        cash_position=_first_known(market_data.get('cash_position'),
                                   _clean_number(info.get('cash_position')), financials.get('cash')),
        debt_to_equity=_first_known(market_data.get('debt_to_equity'),
                                    _clean_number(info.get('debt_to_equity'))),

        # Insider data (manual first)
        insider_ownership=_first_known(_clean_number(info.get('insider_ownership')),
                                       market_data.get('insider_ownership')),
        insider_buying_90d=_clean_number(info.get('insider_buying_90d')),
        founder_shares=_clean_number(info.get('founder_shares')),
        founder_active=info.get('founder_active'),

        # TAM data
        current_tam=current_tam,
        future_tam=future_tam,
        tam_multiple=tam_multiple,
        tam_rationale=info.get('tam_rationale', ''),

        last_updated=now or datetime.now(),
    )
    record.data_quality = calculate_data_quality(record)
    return record
