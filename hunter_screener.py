#!/usr/bin/env python3
"""
Asymmetry Hunter CLI
Score and rank small-cap companies for asymmetric upside.

Universe comes from the SQLite store (seeded with the starter universe)
merged with manual research in company_database.json. Live market data
is fetched only with --refresh.

Features:
- Four-factor scoring (founder conviction, AI disruption, white space, asymmetry)
- Screening with config defaults and command-line overrides
- Per-factor rationale
- JSON / CSV export
- Watchlist management
- Research entry: TAM estimates, insider transactions, catalysts
"""

import argparse
import csv
import json
import logging
import sys
from dataclasses import asdict, replace
from datetime import datetime
from typing import Dict, List, Optional, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

from hunter_config import ConfigError, HunterConfig, load_config, DEFAULT_CONFIG_PATH
from hunter_core import (
    CompanyRecord,
    FutureCategory,
    InvalidCategory,
    PREFERRED_MAX_MARKET_CAP,
    ScreeningCriteria,
    check_staleness,
    effective_tam_multiple,
    parse_category,
    rank_companies,
    score_company,
    screen_companies,
)
from hunter_data import (
    SecEdgarClient,
    build_company_record,
    fetch_market_data_batch,
    load_company_database,
)
from hunter_format import (
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
from hunter_store import (
    CATALYST_STATUSES,
    Catalyst,
    HunterStore,
    InsiderTransaction,
    TAMResearch,
    transaction_type_from_code,
)

logger = logging.getLogger(__name__)

console = Console()

EXPORT_FORMATS = ('json', 'csv')
EXPORT_FIELDS = [
    'ticker', 'name', 'future_category', 'market_cap', 'price', 'insider_ownership',
    'current_tam', 'future_tam', 'tam_multiple',
    'score_founder_conviction', 'score_ai_disruption', 'score_white_space', 'score_asymmetry',
    'score_total', 'data_quality',
]

# Stored record fields already in engine units; carried into the next merge as market data
_MARKET_FIELDS = ('market_cap', 'price', 'price_change_30d', 'volume', 'sector', 'industry',
                  'revenue', 'revenue_growth', 'gross_margin', 'cash_position', 'debt_to_equity')


def setup_logging(level: str = 'INFO', log_file: Optional[str] = None) -> None:
    """Route log records to the rich console and, optionally, a file."""
    handlers: List[logging.Handler] = [RichHandler(console=console, show_path=False)]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter('%(asctime)s|%(levelname)s|%(name)s|%(message)s'))
        handlers.append(file_handler)
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO),
                        format='%(message)s', datefmt='[%X]', handlers=handlers, force=True)


# ============================================================
# UNIVERSE ASSEMBLY
# ============================================================

def _stored_info(record: CompanyRecord) -> Dict[str, Any]:
    info = asdict(record)
    # tam_multiple is re-derived from the current TAMs unless research pins it
    for key in ('scores', 'data_quality', 'last_updated', 'tam_multiple'):
        info.pop(key)
    info['future_category'] = record.future_category.value
    return info


def _carried_market_data(stored: Dict[str, Any], manual: Dict[str, Any]) -> Dict[str, Any]:
    """Stored market fields that hand-entered research does not replace.

    Research values stay in the info dict so build_company_record
    normalizes their units; stored values are already normalized.
    """
    return {k: stored.get(k) for k in _MARKET_FIELDS if manual.get(k) is None}


def _read_research(path: Optional[str]) -> Dict[str, dict]:
    try:
        return {t.upper(): v for t, v in load_company_database(path).items()}
    except FileNotFoundError:
        logger.warning("Company database not found: %s", path or 'company_database.json')
        return {}


def load_universe(
    store: HunterStore,
    config: HunterConfig,
    refresh: bool = False,
    sec_client: Optional[SecEdgarClient] = None,
) -> List[CompanyRecord]:
    """Merge stored records, manual research and (optionally) live data.

    Every merged record is scored and written back to the store.
    """
    if not store.list_companies():
        store.seed_universe()

    stored = {c.ticker: c for c in store.list_companies()}
    research = _read_research(config.company_database)
    tickers = sorted(set(stored) | set(research))

    market: Dict[str, Dict[str, Any]] = {}
    if refresh:
        market = fetch_market_data_batch(tickers, batch_size=config.batch_size, delay=config.batch_delay)
        if sec_client is None:
            sec_client = SecEdgarClient(
                user_agent=config.user_agent,
                requests_per_minute=config.rate_limits.get('sec-edgar', 10),
                timeout=config.request_timeout,
                cache=store,
                cache_ttl=config.cache_ttl.get('fundamentals', 86400),
                max_retries=config.max_retries,
                retry_delay=config.retry_delay,
            )

    records = []
    for ticker in tickers:
        previous = stored.get(ticker)
        manual = research.get(ticker, {})
        info: Dict[str, Any] = _stored_info(previous) if previous else {}
        carried = _carried_market_data(info, manual)
        info.update({k: v for k, v in manual.items() if v is not None})

        tam = store.latest_tam_research(ticker)
        if tam is not None:
            info['current_tam'] = tam.current_tam
            info['future_tam'] = tam.future_tam
            info['tam_multiple'] = None
            if tam.rationale:
                info['tam_rationale'] = tam.rationale

        net_buying = store.net_insider_buying(ticker)
        if net_buying is not None:
            info['insider_buying_90d'] = net_buying

        if refresh:
            live = market.get(ticker, {})
            market_data = dict(carried)
            market_data.update({k: v for k, v in live.items() if v is not None})
            financials = None
            if sec_client is not None and (live.get('revenue') is None
                                           or live.get('cash_position') is None):
                financials = sec_client.get_financials(ticker)
                if not info.get('cik'):
                    info['cik'] = sec_client.get_cik(ticker)
            record = build_company_record(ticker, info, market_data, financials)
        else:
            record = build_company_record(ticker, info, carried)
            record = replace(record, last_updated=previous.last_updated if previous else None)

        record = score_company(record, config.weights)
        store.upsert_company(record)
        records.append(record)

    logger.info("Loaded %d companies%s", len(records), ' (refreshed)' if refresh else '')
    return records


def build_criteria(config: HunterConfig, args: argparse.Namespace) -> ScreeningCriteria:
    """Config criteria with command-line overrides applied."""
    overrides: Dict[str, Any] = {}
    if args.max_market_cap is not None:
        overrides['max_market_cap'] = args.max_market_cap
    if args.min_insider is not None:
        overrides['min_insider_ownership'] = args.min_insider
    if args.min_tam_multiple is not None:
        overrides['min_tam_multiple'] = args.min_tam_multiple
    if args.min_score is not None:
        overrides['min_asymmetry_score'] = args.min_score
    if args.category:
        overrides['categories'] = tuple(args.category)
    if args.exclude:
        overrides['exclude_tickers'] = tuple(config.screening.exclude_tickers) + tuple(args.exclude)
    return replace(config.screening, **overrides)


# ============================================================
# OUTPUT
# ============================================================

def print_ranking(records: List[CompanyRecord], title: str, show_rationale: bool = False) -> None:
    """Print ranked companies as a rich table."""
    table = Table(title=title, box=box.ROUNDED)

    table.add_column("#", justify="right", style="dim")
    table.add_column("Ticker", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Category", style="dim")
    table.add_column("Mkt Cap", justify="right")
    table.add_column("30d", justify="right")
    table.add_column("Insider", justify="right")
    table.add_column("TAM", justify="right")
    table.add_column("TAM x", justify="right")
    table.add_column("Founder", justify="right")
    table.add_column("AI", justify="right")
    table.add_column("White", justify="right")
    table.add_column("Asym", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("DQ", justify="right", style="dim")

    for rank, company in enumerate(records, 1):
        scores = company.scores
        total = scores.total if scores else 0.0
        color = band_color(total)
        stale, _ = check_staleness(company)

        ticker = company.ticker
        if company.market_cap is not None and company.market_cap <= PREFERRED_MAX_MARKET_CAP:
            ticker = f"[bold]{ticker}[/bold]"
        if stale:
            ticker += " [yellow]*[/yellow]"

        table.add_row(
            str(rank),
            ticker,
            company.name[:24],
            category_label(company.future_category),
            format_market_cap(company.market_cap),
            format_percent(company.price_change_30d),
            format_percent(company.insider_ownership, signed=False),
            format_tam(company.future_tam),
            format_multiple(effective_tam_multiple(company)),
            format_score(scores.founder_conviction if scores else None),
            format_score(scores.ai_disruption if scores else None),
            format_score(scores.white_space if scores else None),
            format_score(scores.asymmetry if scores else None),
            f"[{color}]{format_score(total)}[/{color}]",
            str(company.data_quality) if company.data_quality is not None else '-',
        )

    console.print()
    console.print(table)
    console.print("[dim]Bold ticker = under $3B preferred cap | * = data older than 30 days[/dim]")

    if show_rationale:
        for company in records:
            if company.scores is None:
                continue
            r = company.scores.rationale
            console.print()
            console.print(f"[bold cyan]{company.ticker}[/bold cyan] {company.name}")
            console.print(f"  Founder:     {r.founder_conviction}")
            console.print(f"  AI:          {r.ai_disruption}")
            console.print(f"  White space: {r.white_space}")
            console.print(f"  Asymmetry:   {r.asymmetry}")
    console.print()


def _export_row(company: CompanyRecord) -> Dict[str, Any]:
    scores = company.scores
    return {
        'ticker': company.ticker,
        'name': company.name,
        'future_category': company.future_category.value,
        'market_cap': company.market_cap,
        'price': company.price,
        'insider_ownership': company.insider_ownership,
        'current_tam': company.current_tam,
        'future_tam': company.future_tam,
        'tam_multiple': effective_tam_multiple(company),
        'score_founder_conviction': scores.founder_conviction if scores else None,
        'score_ai_disruption': scores.ai_disruption if scores else None,
        'score_white_space': scores.white_space if scores else None,
        'score_asymmetry': scores.asymmetry if scores else None,
        'score_total': scores.total if scores else None,
        'data_quality': company.data_quality,
    }


def export_results(records: List[CompanyRecord], fmt: str, path: str,
                   criteria: Optional[ScreeningCriteria] = None) -> None:
    """Save ranked results to JSON (full data) or CSV (spreadsheet view)."""
    if fmt == 'json':
        results = []
        for company in records:
            row = _export_row(company)
            row['rationale'] = company.scores.to_dict()['rationale'] if company.scores else None
            row['last_updated'] = company.last_updated.isoformat() if company.last_updated else None
            results.append(row)
        with open(path, 'w') as f:
            json.dump({
                'generated_at': datetime.now().isoformat(),
                'criteria': asdict(criteria) if criteria else None,
                'results': results,
            }, f, indent=2, default=str)
    elif fmt == 'csv':
        rows = [_export_row(c) for c in records]
        with open(path, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=EXPORT_FIELDS)
            writer.writeheader()
            writer.writerows(rows)
    else:
        raise ValueError(f"Unknown export format: {fmt}")

    console.print(f"[green]Saved {len(records)} companies to {path}[/green]")


def print_watchlist(store: HunterStore) -> None:
    items = store.get_watchlist()
    if not items:
        console.print("[yellow]Watchlist is empty.[/yellow]")
        return

    table = Table(title="Watchlist", box=box.SIMPLE)
    table.add_column("Ticker", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Mkt Cap", justify="right")
    table.add_column("Added", style="dim")
    table.add_column("Notes")

    for item in items:
        company = store.get_company(item.ticker)
        total = company.scores.total if company and company.scores else None
        color = band_color(total) if total is not None else 'white'
        table.add_row(
            item.ticker,
            f"[{color}]{format_score(total)}[/{color}]",
            format_market_cap(company.market_cap if company else None),
            item.added_at[:10],
            item.notes,
        )
    console.print()
    console.print(table)
    console.print()


def print_summary(company: CompanyRecord) -> None:
    stale, days_old = check_staleness(company)
    console.print()
    console.print(Panel.fit(
        f"[bold cyan]{company.ticker}[/bold cyan] {company.name}\n"
        f"{category_label(company.future_category)} | "
        f"Mkt cap {format_market_cap(company.market_cap)} | "
        f"TAM {format_tam(company.current_tam)} -> {format_tam(company.future_tam)} | "
        f"Gross margin {format_fraction_pct(company.gross_margin)}",
        border_style="cyan",
    ))
    console.print(get_scoring_summary(company.scores))
    if stale:
        age = f"{days_old} days old" if days_old is not None else "never refreshed"
        console.print(f"[yellow]Warning: data is {age}[/yellow]")
    console.print()


def print_catalysts(store: HunterStore, ticker: Optional[str] = None) -> None:
    catalysts = store.get_catalysts(ticker or None)
    if not catalysts:
        console.print("[yellow]No catalysts recorded.[/yellow]")
        return

    table = Table(title="Catalysts", box=box.SIMPLE)
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Ticker", style="cyan")
    table.add_column("Type")
    table.add_column("Expected")
    table.add_column("Impact", justify="right")
    table.add_column("Status")
    table.add_column("Description")

    for c in catalysts:
        table.add_row(str(c.id), c.ticker, c.catalyst_type, c.expected_date or 'TBD',
                      str(c.impact_score), c.status, c.description)
    console.print()
    console.print(table)
    console.print()


# ============================================================
# RESEARCH ENTRY
# ============================================================

def run_research_command(store: HunterStore, args: argparse.Namespace) -> Optional[int]:
    """Handle the research-entry options.

    Returns an exit code when one of them was given, None otherwise.
    Recorded TAM estimates and insider transactions feed the next load.
    """
    try:
        if args.add_tam:
            ticker, current, future = args.add_tam
            store.add_tam_research(TAMResearch(ticker, float(current), float(future), rationale=args.note))
            console.print(f"[green]Recorded TAM estimate for {ticker.upper()}[/green]")
            return 0

        if args.add_insider:
            ticker, name, code, shares, price, date = args.add_insider
            datetime.strptime(date, '%Y-%m-%d')
            shares, price = float(shares), float(price)
            store.record_insider_transaction(InsiderTransaction(
                ticker=ticker, insider_name=name, transaction_type=transaction_type_from_code(code),
                shares=shares, price=price, value=shares * price, transaction_date=date,
            ))
            console.print(f"[green]Recorded insider transaction for {ticker.upper()}[/green]")
            return 0

        if args.add_catalyst:
            ticker, catalyst_type, description = args.add_catalyst
            if args.date:
                datetime.strptime(args.date, '%Y-%m-%d')
            catalyst_id = store.add_catalyst(Catalyst(
                ticker=ticker, catalyst_type=catalyst_type, description=description,
                expected_date=args.date, impact_score=args.impact, notes=args.note,
            ))
            console.print(f"[green]Recorded catalyst {catalyst_id} for {ticker.upper()}[/green]")
            return 0

        if args.catalyst_status:
            catalyst_id, status = args.catalyst_status
            if not store.update_catalyst_status(int(catalyst_id), status.lower()):
                console.print(f"[yellow]No catalyst with id {catalyst_id}[/yellow]")
                return 2
            console.print(f"[green]Catalyst {catalyst_id} marked {status.lower()}[/green]")
            return 0
    except ValueError as e:
        console.print(f"[red]Invalid research entry: {e}[/red]")
        return 2

    if args.catalysts is not None:
        print_catalysts(store, args.catalysts)
        return 0
    return None


# ============================================================
# CLI ENTRY POINT
# ============================================================

def _category_arg(value: str) -> FutureCategory:
    try:
        return parse_category(value)
    except InvalidCategory as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Asymmetry Hunter - score and rank companies for asymmetric upside",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python hunter_screener.py                          # Screen with config defaults
  python hunter_screener.py --refresh                # Fetch live data first
  python hunter_screener.py --all --rationale        # Rank everything, explain scores
  python hunter_screener.py --max-market-cap 3e9 --min-score 7
  python hunter_screener.py --category advanced-energy --category synthetic-biology
  python hunter_screener.py --export csv picks.csv
  python hunter_screener.py --watch RKLB "launch cadence thesis"
  python hunter_screener.py --summary OKLO
  python hunter_screener.py --add-tam OKLO 0 4e11 --note "Advanced reactors"
  python hunter_screener.py --add-insider OKLO "Jacob DeWitte" P 10000 15.20 2026-09-01
  python hunter_screener.py --add-catalyst OKLO contract "First plant licence" --date 2027-03-01

Score bands:
  8-10  Strong asymmetric opportunity
  6-8   Good potential
  4-6   Fair, needs more research
  0-4   Weak asymmetry signal
        """
    )

    parser.add_argument('--config', '-c', default=DEFAULT_CONFIG_PATH,
                        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})')
    parser.add_argument('--db', help='Override the SQLite database path')
    parser.add_argument('--refresh', '-r', action='store_true',
                        help='Fetch live market data and SEC financials before scoring')

    screening = parser.add_argument_group('screening overrides')
    screening.add_argument('--max-market-cap', type=float, metavar='USD')
    screening.add_argument('--min-insider', type=float, metavar='PCT',
                           help='Minimum insider ownership percentage')
    screening.add_argument('--min-tam-multiple', type=float, metavar='X')
    screening.add_argument('--min-score', type=float, metavar='SCORE')
    screening.add_argument('--category', type=_category_arg, action='append',
                           help='Restrict to a future category (repeatable)')
    screening.add_argument('--exclude', action='append', metavar='TICKER',
                           help='Exclude a ticker (repeatable)')
    screening.add_argument('--all', '-a', action='store_true',
                           help='Rank every company without filtering')

    parser.add_argument('--rationale', action='store_true', help='Print per-factor rationale')
    parser.add_argument('--export', nargs=2, metavar=('FORMAT', 'PATH'),
                        help='Export results as json or csv')

    parser.add_argument('--watch', nargs='+', metavar='TICKER',
                        help='Add TICKER to the watchlist, remaining words are notes')
    parser.add_argument('--unwatch', metavar='TICKER', help='Remove TICKER from the watchlist')
    parser.add_argument('--watchlist', action='store_true', help='Show the watchlist')
    parser.add_argument('--summary', metavar='TICKER', help='One-line scoring summary for TICKER')

    research = parser.add_argument_group('research entry')
    research.add_argument('--add-tam', nargs=3, metavar=('TICKER', 'CURRENT', 'FUTURE'),
                          help='Record a TAM estimate in USD (overrides company_database.json)')
    research.add_argument('--add-insider', nargs=6,
                          metavar=('TICKER', 'NAME', 'CODE', 'SHARES', 'PRICE', 'DATE'),
                          help='Record a Form 4 transaction (CODE: P, S, M, A or D; DATE: YYYY-MM-DD)')
    research.add_argument('--add-catalyst', nargs=3, metavar=('TICKER', 'TYPE', 'DESCRIPTION'),
                          help='Record an upcoming catalyst')
    research.add_argument('--catalyst-status', nargs=2, metavar=('ID', 'STATUS'),
                          help=f"Set a catalyst's status ({', '.join(CATALYST_STATUSES)})")
    research.add_argument('--catalysts', nargs='?', const='', metavar='TICKER',
                          help='List catalysts, optionally for one ticker')
    research.add_argument('--date', metavar='YYYY-MM-DD', help='Expected date for --add-catalyst')
    research.add_argument('--impact', type=int, default=5, metavar='1-10',
                          help='Impact score for --add-catalyst (default: 5)')
    research.add_argument('--note', default='', metavar='TEXT',
                          help='Rationale for --add-tam, notes for --add-catalyst')

    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.export and args.export[0].lower() not in EXPORT_FORMATS:
        parser.error(f"--export format must be one of: {', '.join(EXPORT_FORMATS)}")

    try:
        config = load_config(args.config)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 2

    setup_logging('DEBUG' if args.verbose else config.log_level, config.log_file)
    if args.db:
        config.db_path = args.db

    store = HunterStore(config.db_path)

    if args.watch:
        ticker, notes = args.watch[0].upper(), ' '.join(args.watch[1:])
        if store.add_to_watchlist(ticker, notes):
            console.print(f"[green]Added {ticker} to watchlist[/green]")
        else:
            console.print(f"[yellow]{ticker} is already on the watchlist[/yellow]")
        return 0
    if args.unwatch:
        ticker = args.unwatch.upper()
        if store.remove_from_watchlist(ticker):
            console.print(f"[green]Removed {ticker} from watchlist[/green]")
        else:
            console.print(f"[yellow]{ticker} is not on the watchlist[/yellow]")
        return 0
    if args.watchlist:
        print_watchlist(store)
        return 0

    exit_code = run_research_command(store, args)
    if exit_code is not None:
        return exit_code

    criteria = build_criteria(config, args)
    records = load_universe(store, config, refresh=args.refresh)

    if args.summary:
        ticker = args.summary.upper()
        match = next((c for c in records if c.ticker == ticker), None)
        if match is None:
            console.print(f"[red]{ticker} is not in the universe[/red]")
            return 2
        print_summary(match)
        return 0

    if args.all:
        results = rank_companies(records, config.weights)
        title = f"All Companies ({len(results)})"
    else:
        results = screen_companies(records, criteria, config.weights)
        title = f"Screened Opportunities ({len(results)} of {len(records)})"

    if results:
        print_ranking(results, title, show_rationale=args.rationale)
    else:
        console.print("[yellow]No companies passed the screen.[/yellow]")
        console.print("[dim]Try --all, or loosen --min-score / --min-insider / --min-tam-multiple.[/dim]")

    if args.export:
        export_results(results, args.export[0].lower(), args.export[1],
                       None if args.all else criteria)

    return 0


if __name__ == "__main__":
    sys.exit(main())
