"""
Hunter Store — SQLite persistence for companies, scores and research.

Tables:
- companies            one row per ticker, record fields + last computed scores
- watchlist            tickers under active research
- tam_research         dated current/future TAM estimates with sources
- insider_transactions Form 4 transactions entered from filings
- catalysts            expected events per ticker
- data_cache           JSON API responses with expiry

Scores are stored for display only; they are recomputed whenever the
inputs change and are never read back as a source of truth for scoring.
"""

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List, Any

from hunter_core import (
    AsymmetryScore,
    CompanyRecord,
    FutureCategory,
)

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = {
    'P': 'buy',
    'S': 'sell',
    'M': 'option_exercise',
    'A': 'award',
    'D': 'disposition',
}

CATALYST_STATUSES = ('pending', 'occurred', 'missed')

# Initial company universe
SEED_UNIVERSE = [
    # Intelligence Infrastructure
    ('SMCI', 'Super Micro Computer', FutureCategory.INTELLIGENCE_INFRASTRUCTURE),
    ('ANET', 'Arista Networks', FutureCategory.INTELLIGENCE_INFRASTRUCTURE),
    ('COHR', 'Coherent Corp', FutureCategory.INTELLIGENCE_INFRASTRUCTURE),
    ('ONTO', 'Onto Innovation', FutureCategory.INTELLIGENCE_INFRASTRUCTURE),
    ('CIEN', 'Ciena Corporation', FutureCategory.INTELLIGENCE_INFRASTRUCTURE),
    # Robotics & Autonomous
    ('AMBA', 'Ambarella Inc', FutureCategory.ROBOTICS_AUTONOMOUS),
    ('PATH', 'UiPath Inc', FutureCategory.ROBOTICS_AUTONOMOUS),
    ('OUST', 'Ouster Inc', FutureCategory.ROBOTICS_AUTONOMOUS),
    ('LUNR', 'Intuitive Machines', FutureCategory.ROBOTICS_AUTONOMOUS),
    # Synthetic Biology
    ('TWST', 'Twist Bioscience', FutureCategory.SYNTHETIC_BIOLOGY),
    ('DNA', 'Ginkgo Bioworks', FutureCategory.SYNTHETIC_BIOLOGY),
    ('CDNA', 'CareDx Inc', FutureCategory.SYNTHETIC_BIOLOGY),
    ('BEAM', 'Beam Therapeutics', FutureCategory.SYNTHETIC_BIOLOGY),
    # Advanced Energy
    ('OKLO', 'Oklo Inc', FutureCategory.ADVANCED_ENERGY),
    ('SMR', 'NuScale Power', FutureCategory.ADVANCED_ENERGY),
    ('FREY', 'Freyr Battery', FutureCategory.ADVANCED_ENERGY),
    ('STEM', 'Stem Inc', FutureCategory.ADVANCED_ENERGY),
    # National Security & Space
    ('RKLB', 'Rocket Lab USA', FutureCategory.NATIONAL_SECURITY_SPACE),
    ('PL', 'Planet Labs', FutureCategory.NATIONAL_SECURITY_SPACE),
    ('ASTS', 'AST SpaceMobile', FutureCategory.NATIONAL_SECURITY_SPACE),
    ('RDW', 'Redwire Corporation', FutureCategory.NATIONAL_SECURITY_SPACE),
    ('MNTS', 'Momentus Inc', FutureCategory.NATIONAL_SECURITY_SPACE),
]

# CompanyRecord fields stored as plain columns (name in record == column name)
_RECORD_COLUMNS = (
    'name', 'cik',
    'market_cap', 'price', 'price_change_30d', 'volume',
    'sector', 'industry',
    'revenue', 'revenue_growth', 'gross_margin', 'cash_position', 'debt_to_equity',
    'insider_ownership', 'insider_buying_90d', 'founder_shares',
    'current_tam', 'future_tam', 'tam_multiple', 'tam_rationale',
    'data_quality',
)


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass
class WatchlistItem:
    ticker: str
    notes: str = ''
    target_price: Optional[float] = None
    thesis: str = ''
    added_at: str = ''


@dataclass
class TAMResearch:
    """One dated TAM estimate."""
    ticker: str
    current_tam: Optional[float]
    future_tam: Optional[float]
    time_horizon_years: int = 10
    rationale: str = ''
    sources: List[str] = field(default_factory=list)
    confidence: int = 50               # 0-100
    id: Optional[int] = None
    created_at: str = ''
    updated_at: str = ''


@dataclass
class InsiderTransaction:
    ticker: str
    insider_name: str
    transaction_type: str              # buy, sell, option_exercise, award, disposition
    shares: float
    price: float
    value: float
    transaction_date: str              # YYYY-MM-DD
    filing_date: str = ''
    insider_title: str = ''
    form_url: str = ''


@dataclass
class Catalyst:
    ticker: str
    catalyst_type: str                 # product_launch, fda_approval, earnings, contract, ...
    description: str
    expected_date: Optional[str] = None
    impact_score: int = 5              # 1-10
    status: str = 'pending'            # pending, occurred, missed
    notes: str = ''
    id: Optional[int] = None


def transaction_type_from_code(code: str) -> str:
    """Map a Form 4 transaction code (P, S, M, A, D) to its type name."""
    try:
        return TRANSACTION_TYPES[code.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown Form 4 transaction code: {code!r}") from None


# ============================================================
# STORE
# ============================================================

class HunterStore:
    """SQLite database for companies, scores and research notes."""

    def __init__(self, db_path: str = 'hunter.db'):
        self.db_path = db_path
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_database(self):
        """Initialize database tables."""
        conn = self._connect()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS companies (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ticker TEXT UNIQUE NOT NULL,
                name TEXT NOT NULL,
                cik TEXT,

                market_cap REAL,
                price REAL,
                price_change_30d REAL,
                volume REAL,

                sector TEXT,
                industry TEXT,
                future_category TEXT NOT NULL DEFAULT 'other',

                revenue REAL,
                revenue_growth REAL,
                gross_margin REAL,
                cash_position REAL,
                debt_to_equity REAL,

                insider_ownership REAL,
                insider_buying_90d REAL,
                founder_shares REAL,
                founder_active INTEGER,

                current_tam REAL,
                future_tam REAL,
                tam_multiple REAL,
                tam_rationale TEXT,

                score_founder_conviction REAL,
                score_ai_disruption REAL,
                score_white_space REAL,
                score_asymmetry REAL,
                score_total REAL,
                score_rationale TEXT,

                data_quality INTEGER,
                last_updated DATETIME,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS watchlist (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ticker TEXT NOT NULL UNIQUE,
                notes TEXT,
                target_price REAL,
                thesis TEXT,
                added_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (ticker) REFERENCES companies(ticker)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tam_research (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ticker TEXT NOT NULL,
                current_tam REAL,
                future_tam REAL,
                time_horizon_years INTEGER DEFAULT 10,
                rationale TEXT,
                sources TEXT,
                confidence INTEGER DEFAULT 50,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (ticker) REFERENCES companies(ticker)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS insider_transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ticker TEXT NOT NULL,
                insider_name TEXT,
                insider_title TEXT,
                transaction_type TEXT,
                shares REAL,
                price REAL,
                value REAL,
                transaction_date DATE,
                filing_date DATE,
                form_url TEXT,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS catalysts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ticker TEXT NOT NULL,
                catalyst_type TEXT,
                description TEXT,
                expected_date DATE,
                impact_score INTEGER,
                status TEXT DEFAULT 'pending',
                notes TEXT,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (ticker) REFERENCES companies(ticker)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS data_cache (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                cache_key TEXT UNIQUE NOT NULL,
                data TEXT NOT NULL,
                source TEXT,
                expires_at DATETIME,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_companies_market_cap ON companies(market_cap)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_companies_score ON companies(score_total DESC)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_companies_category ON companies(future_category)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_insider_ticker ON insider_transactions(ticker)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_insider_date ON insider_transactions(transaction_date DESC)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_cache_expires ON data_cache(expires_at)")

        conn.commit()
        conn.close()

    # --------------------------------------------------------
    # Companies
    # --------------------------------------------------------

    def upsert_company(self, company: CompanyRecord) -> None:
        """Insert or replace the row for company.ticker."""
        values = {name: getattr(company, name) for name in _RECORD_COLUMNS}
        values['ticker'] = company.ticker
        values['future_category'] = company.future_category.value
        values['founder_active'] = None if company.founder_active is None else int(bool(company.founder_active))
        values['last_updated'] = company.last_updated.isoformat() if company.last_updated else None

        scores = company.scores
        values['score_founder_conviction'] = scores.founder_conviction if scores else None
        values['score_ai_disruption'] = scores.ai_disruption if scores else None
        values['score_white_space'] = scores.white_space if scores else None
        values['score_asymmetry'] = scores.asymmetry if scores else None
        values['score_total'] = scores.total if scores else None
        values['score_rationale'] = json.dumps(scores.to_dict()['rationale']) if scores else None

        columns = list(values)
        placeholders = ', '.join('?' for _ in columns)
        updates = ', '.join(f"{c} = excluded.{c}" for c in columns if c != 'ticker')

        conn = self._connect()
        conn.execute(
            f"INSERT INTO companies ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT(ticker) DO UPDATE SET {updates}",
            [values[c] for c in columns],
        )
        conn.commit()
        conn.close()

    @staticmethod
    def _row_to_company(row: sqlite3.Row) -> CompanyRecord:
        kwargs = {name: row[name] for name in _RECORD_COLUMNS}
        kwargs['tam_rationale'] = kwargs['tam_rationale'] or ''
        founder_active = row['founder_active']
        last_updated = row['last_updated']

        scores = None
        if row['score_total'] is not None:
            scores = AsymmetryScore.from_dict({
                'founder_conviction': row['score_founder_conviction'],
                'ai_disruption': row['score_ai_disruption'],
                'white_space': row['score_white_space'],
                'asymmetry': row['score_asymmetry'],
                'total': row['score_total'],
                'rationale': json.loads(row['score_rationale']) if row['score_rationale'] else {},
            })

        return CompanyRecord(
            ticker=row['ticker'],
            future_category=row['future_category'],
            founder_active=None if founder_active is None else bool(founder_active),
            last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
            scores=scores,
            **kwargs,
        )

    def get_company(self, ticker: str) -> Optional[CompanyRecord]:
        conn = self._connect()
        row = conn.execute(
            "SELECT * FROM companies WHERE ticker = ?", (ticker.strip().upper(),)
        ).fetchone()
        conn.close()
        return self._row_to_company(row) if row else None

    def list_companies(self, category: Optional[FutureCategory] = None) -> List[CompanyRecord]:
        """All companies, best stored score first."""
        query = "SELECT * FROM companies"
        params: tuple = ()
        if category is not None:
            query += " WHERE future_category = ?"
            params = (FutureCategory(category).value,)
        query += " ORDER BY score_total IS NULL, score_total DESC, ticker"

        conn = self._connect()
        rows = conn.execute(query, params).fetchall()
        conn.close()
        return [self._row_to_company(r) for r in rows]

    def delete_company(self, ticker: str) -> bool:
        conn = self._connect()
        cursor = conn.execute("DELETE FROM companies WHERE ticker = ?", (ticker.strip().upper(),))
        conn.commit()
        conn.close()
        return cursor.rowcount > 0

    def seed_universe(self) -> int:
        """Insert the starter universe. Returns number of new rows."""
        conn = self._connect()
        inserted = 0
        for ticker, name, category in SEED_UNIVERSE:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO companies (ticker, name, future_category) VALUES (?, ?, ?)",
                (ticker, name, category.value),
            )
            inserted += cursor.rowcount
        conn.commit()
        conn.close()
        if inserted:
            logger.info("Seeded %d companies", inserted)
        return inserted

    # --------------------------------------------------------
    # Watchlist
    # --------------------------------------------------------

    def add_to_watchlist(self, ticker: str, notes: str = '', target_price: Optional[float] = None,
                         thesis: str = '') -> bool:
        """Add a ticker. Returns True if new, False if already watched."""
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO watchlist (ticker, notes, target_price, thesis, added_at) VALUES (?, ?, ?, ?, ?)",
                (ticker.strip().upper(), notes, target_price, thesis, datetime.now().isoformat()),
            )
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            return False
        finally:
            conn.close()

    def remove_from_watchlist(self, ticker: str) -> bool:
        conn = self._connect()
        cursor = conn.execute("DELETE FROM watchlist WHERE ticker = ?", (ticker.strip().upper(),))
        conn.commit()
        conn.close()
        return cursor.rowcount > 0

    def get_watchlist(self) -> List[WatchlistItem]:
        conn = self._connect()
        rows = conn.execute(
            "SELECT ticker, notes, target_price, thesis, added_at FROM watchlist ORDER BY added_at, ticker"
        ).fetchall()
        conn.close()
        return [
            WatchlistItem(
                ticker=r['ticker'], notes=r['notes'] or '', target_price=r['target_price'],
                thesis=r['thesis'] or '', added_at=r['added_at'] or '',
            )
            for r in rows
        ]

    # --------------------------------------------------------
    # TAM research
    # --------------------------------------------------------

    def add_tam_research(self, research: TAMResearch) -> int:
        if not 0 <= research.confidence <= 100:
            raise ValueError(f"confidence must be 0-100, got {research.confidence}")
        now = datetime.now().isoformat()
        conn = self._connect()
        cursor = conn.execute("""
            INSERT INTO tam_research
            (ticker, current_tam, future_tam, time_horizon_years, rationale, sources, confidence,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (research.ticker.strip().upper(), research.current_tam, research.future_tam,
              research.time_horizon_years, research.rationale, json.dumps(research.sources),
              research.confidence, now, now))
        conn.commit()
        conn.close()
        return cursor.lastrowid

    def get_tam_research(self, ticker: str) -> List[TAMResearch]:
        """All estimates for a ticker, newest first."""
        conn = self._connect()
        rows = conn.execute(
            "SELECT * FROM tam_research WHERE ticker = ? ORDER BY created_at DESC, id DESC",
            (ticker.strip().upper(),),
        ).fetchall()
        conn.close()
        return [
            TAMResearch(
                ticker=r['ticker'], current_tam=r['current_tam'], future_tam=r['future_tam'],
                time_horizon_years=r['time_horizon_years'], rationale=r['rationale'] or '',
                sources=json.loads(r['sources']) if r['sources'] else [],
                confidence=r['confidence'], id=r['id'],
                created_at=r['created_at'] or '', updated_at=r['updated_at'] or '',
            )
            for r in rows
        ]

    def latest_tam_research(self, ticker: str) -> Optional[TAMResearch]:
        research = self.get_tam_research(ticker)
        return research[0] if research else None

    # --------------------------------------------------------
    # Insider transactions
    # --------------------------------------------------------

    def record_insider_transaction(self, tx: InsiderTransaction) -> None:
        if tx.transaction_type not in TRANSACTION_TYPES.values():
            raise ValueError(f"Unknown transaction type: {tx.transaction_type!r}")
        conn = self._connect()
        conn.execute("""
            INSERT INTO insider_transactions
            (ticker, insider_name, insider_title, transaction_type, shares, price, value,
             transaction_date, filing_date, form_url)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (tx.ticker.strip().upper(), tx.insider_name, tx.insider_title, tx.transaction_type,
              tx.shares, tx.price, tx.value, tx.transaction_date, tx.filing_date, tx.form_url))
        conn.commit()
        conn.close()

    def get_insider_transactions(self, ticker: str, days: int = 90,
                                 now: Optional[datetime] = None) -> List[InsiderTransaction]:
        cutoff = ((now or datetime.now()) - timedelta(days=days)).strftime('%Y-%m-%d')
        conn = self._connect()
        rows = conn.execute("""
            SELECT * FROM insider_transactions
            WHERE ticker = ? AND transaction_date >= ?
            ORDER BY transaction_date DESC
        """, (ticker.strip().upper(), cutoff)).fetchall()
        conn.close()
        return [
            InsiderTransaction(
                ticker=r['ticker'], insider_name=r['insider_name'] or '',
                transaction_type=r['transaction_type'], shares=r['shares'], price=r['price'],
                value=r['value'], transaction_date=r['transaction_date'],
                filing_date=r['filing_date'] or '', insider_title=r['insider_title'] or '',
                form_url=r['form_url'] or '',
            )
            for r in rows
        ]

    def net_insider_buying(self, ticker: str, days: int = 90,
                           now: Optional[datetime] = None) -> Optional[float]:
        """Buys minus sells (dollars) over the window; None if nothing recorded."""
        transactions = self.get_insider_transactions(ticker, days, now)
        if not transactions:
            return None
        net = 0.0
        for tx in transactions:
            if tx.transaction_type == 'buy':
                net += abs(tx.value)
            elif tx.transaction_type == 'sell':
                net -= abs(tx.value)
        return net

    # --------------------------------------------------------
    # Catalysts
    # --------------------------------------------------------

    def add_catalyst(self, catalyst: Catalyst) -> int:
        if not 1 <= catalyst.impact_score <= 10:
            raise ValueError(f"impact_score must be 1-10, got {catalyst.impact_score}")
        if catalyst.status not in CATALYST_STATUSES:
            raise ValueError(f"Unknown catalyst status: {catalyst.status!r}")
        conn = self._connect()
        cursor = conn.execute("""
            INSERT INTO catalysts (ticker, catalyst_type, description, expected_date, impact_score, status, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (catalyst.ticker.strip().upper(), catalyst.catalyst_type, catalyst.description,
              catalyst.expected_date, catalyst.impact_score, catalyst.status, catalyst.notes))
        conn.commit()
        conn.close()
        return cursor.lastrowid

    def get_catalysts(self, ticker: Optional[str] = None, status: Optional[str] = None) -> List[Catalyst]:
        query = "SELECT * FROM catalysts WHERE 1 = 1"
        params: List[Any] = []
        if ticker:
            query += " AND ticker = ?"
            params.append(ticker.strip().upper())
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY expected_date IS NULL, expected_date, id"

        conn = self._connect()
        rows = conn.execute(query, params).fetchall()
        conn.close()
        return [
            Catalyst(
                ticker=r['ticker'], catalyst_type=r['catalyst_type'] or '',
                description=r['description'] or '', expected_date=r['expected_date'],
                impact_score=r['impact_score'], status=r['status'], notes=r['notes'] or '',
                id=r['id'],
            )
            for r in rows
        ]

    def update_catalyst_status(self, catalyst_id: int, status: str) -> bool:
        if status not in CATALYST_STATUSES:
            raise ValueError(f"Unknown catalyst status: {status!r}")
        conn = self._connect()
        cursor = conn.execute("UPDATE catalysts SET status = ? WHERE id = ?", (status, catalyst_id))
        conn.commit()
        conn.close()
        return cursor.rowcount > 0

    # --------------------------------------------------------
    # Response cache
    # --------------------------------------------------------

    def cache_get(self, key: str, now: Optional[datetime] = None) -> Optional[Any]:
        """Cached JSON value, or None if missing or expired."""
        conn = self._connect()
        row = conn.execute(
            "SELECT data, expires_at FROM data_cache WHERE cache_key = ?", (key,)
        ).fetchone()
        conn.close()
        if row is None:
            return None
        if row['expires_at'] and datetime.fromisoformat(row['expires_at']) <= (now or datetime.now()):
            return None
        return json.loads(row['data'])

    def cache_set(self, key: str, data: Any, source: str = '', ttl_seconds: int = 300,
                  now: Optional[datetime] = None) -> None:
        expires_at = ((now or datetime.now()) + timedelta(seconds=ttl_seconds)).isoformat()
        conn = self._connect()
        conn.execute("""
            INSERT INTO data_cache (cache_key, data, source, expires_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(cache_key) DO UPDATE SET
                data = excluded.data, source = excluded.source, expires_at = excluded.expires_at
        """, (key, json.dumps(data), source, expires_at))
        conn.commit()
        conn.close()

    def cache_purge_expired(self, now: Optional[datetime] = None) -> int:
        conn = self._connect()
        cursor = conn.execute(
            "DELETE FROM data_cache WHERE expires_at <= ?", ((now or datetime.now()).isoformat(),)
        )
        conn.commit()
        conn.close()
        return cursor.rowcount
