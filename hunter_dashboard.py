#!/usr/bin/env python3
"""
Asymmetry Hunter Dashboard — Streamlit Application

Interactive dashboard for exploring the scored company universe.

Usage:
    streamlit run hunter_dashboard.py
    streamlit run hunter_dashboard.py -- --config my_config.yaml

Imports all business logic from hunter_core; the dashboard is purely
presentation.
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from hunter_config import ConfigError, HunterConfig, load_config, DEFAULT_CONFIG_PATH
from hunter_core import (
    CompanyRecord,
    FutureCategory,
    ScreeningCriteria,
    EXCLUDED_TICKERS,
    DEFAULT_MAX_MARKET_CAP,
    check_staleness,
    data_quality_label,
    effective_tam_multiple,
    missing_inputs,
    rank_companies,
    score_to_band,
    screen_companies,
    screening_failures,
)
from hunter_format import (
    BAND_HEX,
    CATEGORY_INFO,
    category_label,
    format_fraction_pct,
    format_market_cap,
    format_multiple,
    format_percent,
    format_tam,
)
from hunter_screener import load_universe, setup_logging
from hunter_store import HunterStore

logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS & THEME
# ============================================================

BAND_ORDER = ['STRONG', 'GOOD', 'FAIR', 'WEAK']

BAND_DESCRIPTIONS = {
    'STRONG': 'Strong asymmetric opportunity',
    'GOOD': 'Good potential',
    'FAIR': 'Needs more research',
    'WEAK': 'Weak asymmetry signal',
}

CATEGORY_COLORS = {info['label']: info['color'] for info in CATEGORY_INFO.values()}

FACTOR_LABELS = [
    ('founder_conviction', 'Founder Conviction'),
    ('ai_disruption', 'AI Disruption'),
    ('white_space', 'White Space'),
    ('asymmetry', 'Asymmetry'),
]


# ============================================================
# CACHED DATA LOADERS
# ============================================================

def _config_path() -> str:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH)
    args, _ = parser.parse_known_args(sys.argv[1:])
    return args.config


@st.cache_data
def get_config(config_path: str) -> HunterConfig:
    return load_config(config_path)


@st.cache_data(ttl=3600)
def load_records(config_path: str, refresh: bool = False) -> List[CompanyRecord]:
    """Scored universe. Offline unless refresh is set."""
    config = get_config(config_path)
    store = HunterStore(config.db_path)
    return load_universe(store, config, refresh=refresh)


# ============================================================
# HELPERS
# ============================================================

def build_dataframe(records: List[CompanyRecord]) -> pd.DataFrame:
    """Convert scored records into a pandas DataFrame (one row per company)."""
    rows = []
    for c in records:
        s = c.scores
        stale, days_old = check_staleness(c)
        rows.append({
            'Ticker': c.ticker,
            'Name': c.name,
            'Category': category_label(c.future_category),
            'Market Cap': c.market_cap,
            '30d (%)': c.price_change_30d,
            'Insider (%)': c.insider_ownership,
            'Current TAM': c.current_tam,
            'Future TAM': c.future_tam,
            'TAM Multiple': effective_tam_multiple(c),
            'Founder': s.founder_conviction if s else None,
            'AI': s.ai_disruption if s else None,
            'White Space': s.white_space if s else None,
            'Asymmetry': s.asymmetry if s else None,
            'Total': s.total if s else 0.0,
            'Band': score_to_band(s.total if s else 0.0),
            'Data Quality': c.data_quality,
            'Stale': stale,
            'Age (days)': days_old,
        })
    return pd.DataFrame(rows)


def format_display(df: pd.DataFrame) -> pd.DataFrame:
    display_df = df.copy()
    display_df['Market Cap'] = display_df['Market Cap'].apply(
        lambda x: format_market_cap(x) if pd.notna(x) else 'N/A')
    display_df['Future TAM'] = display_df['Future TAM'].apply(
        lambda x: format_tam(x) if pd.notna(x) else 'TBD')
    display_df['TAM Multiple'] = display_df['TAM Multiple'].apply(
        lambda x: format_multiple(x) if pd.notna(x) else 'N/A')
    display_df['Insider (%)'] = display_df['Insider (%)'].apply(
        lambda x: f"{x:.1f}%" if pd.notna(x) else 'N/A')
    display_df['Stale'] = display_df['Stale'].apply(lambda x: 'Yes' if x else 'No')
    return display_df[[
        'Ticker', 'Name', 'Category', 'Market Cap', 'Insider (%)', 'Future TAM',
        'TAM Multiple', 'Founder', 'AI', 'White Space', 'Asymmetry', 'Total', 'Band', 'Stale',
    ]]


def show_table(df: pd.DataFrame):
    st.dataframe(
        format_display(df),
        use_container_width=True,
        height=min(35 * len(df) + 38, 800),
        hide_index=True,
        column_config={
            'Ticker': st.column_config.TextColumn('Ticker', width='small'),
            'Name': st.column_config.TextColumn('Name', width='medium'),
            'Total': st.column_config.ProgressColumn('Total', min_value=0, max_value=10, format='%.1f'),
        },
    )


# ============================================================
# SIDEBAR
# ============================================================

def render_sidebar(records: List[CompanyRecord], config: HunterConfig) -> Tuple[str, dict]:
    """Render sidebar: navigation + screener controls. Returns (view_name, options)."""

    st.sidebar.title("Asymmetry Hunter")
    st.sidebar.caption("Small caps with outsized upside")
    st.sidebar.markdown("---")

    nav = st.sidebar.radio(
        "View",
        ["Overview", "Screener", "Company Deep Dive", "Watchlist", "Data Quality"],
        index=0,
    )

    options: dict = {}

    if nav == "Screener":
        st.sidebar.markdown("---")
        st.sidebar.subheader("Criteria")
        defaults = config.screening

        max_cap_b = st.sidebar.slider(
            "Max market cap ($B)", 0.5, 50.0,
            float((defaults.max_market_cap or DEFAULT_MAX_MARKET_CAP) / 1e9), 0.5,
        )
        min_insider = st.sidebar.slider(
            "Min insider ownership (%)", 0.0, 50.0, float(defaults.min_insider_ownership or 0), 1.0)
        min_tam = st.sidebar.slider(
            "Min TAM multiple (x)", 0.0, 100.0, float(defaults.min_tam_multiple or 0), 1.0)
        min_score = st.sidebar.slider(
            "Min asymmetry score", 0.0, 10.0, float(defaults.min_asymmetry_score or 0), 0.5)
        categories = st.sidebar.multiselect(
            "Categories",
            options=list(FutureCategory),
            default=list(defaults.categories),
            format_func=category_label,
        )
        hide_popular = st.sidebar.checkbox("Exclude mega-cap favourites", value=True)

        options['criteria'] = ScreeningCriteria(
            max_market_cap=max_cap_b * 1e9,
            min_market_cap=defaults.min_market_cap,
            min_insider_ownership=min_insider,
            min_tam_multiple=min_tam,
            min_asymmetry_score=min_score,
            categories=tuple(categories),
            exclude_tickers=(defaults.exclude_tickers or EXCLUDED_TICKERS) if hide_popular else (),
        )

    if nav == "Company Deep Dive":
        st.sidebar.markdown("---")
        names = {c.ticker: c.name for c in records}
        options['selected_ticker'] = st.sidebar.selectbox(
            "Select Company",
            options=sorted(names),
            format_func=lambda t: f"{t} — {names[t]}",
        )

    st.sidebar.markdown("---")
    options['refresh'] = st.sidebar.button("Refresh live data")
    st.sidebar.caption(f"Universe: {len(records)} companies")

    return nav, options


# ============================================================
# VIEW 1: OVERVIEW
# ============================================================

def render_overview(df: pd.DataFrame):
    st.header("Overview")

    total = len(df)
    strong = len(df[df['Band'] == 'STRONG'])
    avg_score = df['Total'].mean() if total > 0 else 0
    stale_count = len(df[df['Stale'] == True])

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Companies", total)
    col2.metric("Strong (8+)", strong)
    col3.metric("Avg Score", f"{avg_score:.1f}")
    col4.metric("Stale Data Alerts", stale_count)

    st.markdown("---")

    chart_left, chart_right = st.columns(2)

    with chart_left:
        category_counts = df['Category'].value_counts()
        fig_cat = px.pie(
            names=category_counts.index,
            values=category_counts.values,
            color=category_counts.index,
            color_discrete_map=CATEGORY_COLORS,
            title="Category Distribution",
        )
        fig_cat.update_traces(textposition='inside', textinfo='value+label')
        fig_cat.update_layout(showlegend=False, margin=dict(t=40, b=0, l=0, r=0))
        st.plotly_chart(fig_cat, use_container_width=True)

    with chart_right:
        band_counts = df['Band'].value_counts().reindex(BAND_ORDER).fillna(0).astype(int)
        fig_band = px.bar(
            x=band_counts.values,
            y=band_counts.index,
            orientation='h',
            title="Score Bands",
            labels={'x': 'Companies', 'y': ''},
            color=band_counts.index,
            color_discrete_map=BAND_HEX,
        )
        fig_band.update_layout(showlegend=False, margin=dict(t=40, b=0, l=0, r=0))
        st.plotly_chart(fig_band, use_container_width=True)

    st.markdown("---")
    st.subheader("Ranked Universe")
    show_table(df.sort_values(['Total', 'Ticker'], ascending=[False, True]))


# ============================================================
# VIEW 2: SCREENER
# ============================================================

def render_screener(records: List[CompanyRecord], criteria: ScreeningCriteria, config: HunterConfig):
    st.header("Screener")

    passed = screen_companies(records, criteria, config.weights)
    st.markdown(f"**{len(passed)}** of {len(records)} companies pass the current criteria.")

    if passed:
        show_table(build_dataframe(passed))
    else:
        st.warning("No companies pass. Loosen the criteria in the sidebar.")

    passed_tickers = {c.ticker for c in passed}
    rejected = [c for c in rank_companies(records, config.weights) if c.ticker not in passed_tickers]
    with st.expander(f"Rejected ({len(rejected)})", expanded=False):
        for c in rejected:
            reasons = '; '.join(screening_failures(c, criteria))
            st.markdown(f"- **{c.ticker}** ({c.scores.total:.1f}): {reasons}")


# ============================================================
# VIEW 3: COMPANY DEEP DIVE
# ============================================================

def render_score_card(company: CompanyRecord):
    s = company.scores
    values = [getattr(s, key) for key, _ in FACTOR_LABELS]
    labels = [label for _, label in FACTOR_LABELS]
    colors = [BAND_HEX[score_to_band(v)] for v in values]

    fig = go.Figure(go.Bar(
        x=values, y=labels, orientation='h', marker_color=colors,
        text=[f"{v:.1f}" for v in values], textposition='outside',
    ))
    fig.update_layout(
        title=f"Score card: {s.total:.1f}/10 ({BAND_DESCRIPTIONS[score_to_band(s.total)]})",
        xaxis=dict(range=[0, 10]), margin=dict(t=40, b=0, l=0, r=0), height=260,
    )
    st.plotly_chart(fig, use_container_width=True)


def render_company_deep_dive(records: List[CompanyRecord], ticker: Optional[str], store: HunterStore):
    company = next((c for c in records if c.ticker == ticker), None)
    if company is None:
        st.warning("Select a company in the sidebar.")
        return

    st.header(f"{company.ticker} — {company.name}")
    st.caption(CATEGORY_INFO[company.future_category]['description'])

    stale, days_old = check_staleness(company)
    if stale:
        st.warning(f"Data is {days_old} days old." if days_old is not None else "Data has never been refreshed.")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Market Cap", format_market_cap(company.market_cap))
    col2.metric("30d Change", format_percent(company.price_change_30d))
    col3.metric("Insider Ownership", format_percent(company.insider_ownership, signed=False))
    col4.metric("Gross Margin", format_fraction_pct(company.gross_margin))

    render_score_card(company)

    st.subheader("Rationale")
    r = company.scores.rationale
    for key, label in FACTOR_LABELS:
        st.markdown(f"**{label}:** {getattr(r, key)}")

    st.subheader("Market Size")
    if company.current_tam is not None or company.future_tam is not None:
        fig_tam = px.bar(
            x=['Current TAM', 'Future TAM', 'Market Cap'],
            y=[company.current_tam or 0, company.future_tam or 0, company.market_cap or 0],
            labels={'x': '', 'y': 'USD'},
            title=f"TAM {format_tam(company.current_tam)} → {format_tam(company.future_tam)} "
                  f"({format_multiple(effective_tam_multiple(company))})",
        )
        fig_tam.update_layout(margin=dict(t=40, b=0, l=0, r=0))
        st.plotly_chart(fig_tam, use_container_width=True)
    else:
        st.write("No TAM research yet.")
    if company.tam_rationale:
        st.caption(company.tam_rationale)

    catalysts = store.get_catalysts(company.ticker)
    with st.expander(f"Catalysts ({len(catalysts)})", expanded=bool(catalysts)):
        for cat in catalysts:
            st.markdown(f"- {cat.expected_date or 'TBD'} **{cat.catalyst_type}** "
                        f"({cat.status}, impact {cat.impact_score}/10): {cat.description}")
        if not catalysts:
            st.write("No catalysts recorded.")

    if st.button("Add to watchlist"):
        if store.add_to_watchlist(company.ticker):
            st.success(f"Added {company.ticker} to watchlist")
        else:
            st.info(f"{company.ticker} is already on the watchlist")


# ============================================================
# VIEW 4: WATCHLIST
# ============================================================

def render_watchlist(records: List[CompanyRecord], store: HunterStore):
    st.header("Watchlist")

    by_ticker = {c.ticker: c for c in records}
    items = store.get_watchlist()
    if not items:
        st.info("Watchlist is empty. Add companies from the deep dive view.")
        return

    rows = []
    for item in items:
        c = by_ticker.get(item.ticker)
        rows.append({
            'Ticker': item.ticker,
            'Name': c.name if c else item.ticker,
            'Score': c.scores.total if c and c.scores else None,
            'Market Cap': format_market_cap(c.market_cap if c else None),
            'Added': item.added_at[:10],
            'Notes': item.notes,
        })
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    to_remove = st.selectbox("Remove from watchlist", options=[''] + [i.ticker for i in items])
    if to_remove and st.button(f"Remove {to_remove}"):
        store.remove_from_watchlist(to_remove)
        st.success(f"Removed {to_remove}")


# ============================================================
# VIEW 5: DATA QUALITY
# ============================================================

def render_data_quality(records: List[CompanyRecord], df: pd.DataFrame):
    st.header("Data Quality")

    dq = df[['Ticker', 'Data Quality']].fillna(0).sort_values('Data Quality')
    fig = px.bar(
        dq, x='Data Quality', y='Ticker', orientation='h',
        title="Populated inputs (weighted, 0-100)",
        range_x=[0, 100],
    )
    fig.update_layout(margin=dict(t=40, b=0, l=0, r=0), height=max(300, 22 * len(dq)))
    st.plotly_chart(fig, use_container_width=True)

    rows = []
    for c in records:
        rows.append({
            'Ticker': c.ticker,
            'Quality': c.data_quality,
            'Label': data_quality_label(c.data_quality),
            'Missing': ', '.join(missing_inputs(c)),
        })
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


# ============================================================
# MAIN
# ============================================================

def main():
    st.set_page_config(
        page_title="Asymmetry Hunter",
        page_icon=":dart:",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    config_path = _config_path()
    try:
        config = get_config(config_path)
    except ConfigError as e:
        st.error(f"Configuration error: {e}")
        return
    setup_logging(config.log_level, config.log_file)

    store = HunterStore(config.db_path)
    records = load_records(config_path)

    nav, options = render_sidebar(records, config)
    if options.get('refresh'):
        load_records.clear()
        with st.spinner("Fetching live market data..."):
            records = load_records(config_path, refresh=True)

    if not records:
        st.warning("No companies in the universe yet.")
        return

    df = build_dataframe(records)

    if nav == "Overview":
        render_overview(df)
    elif nav == "Screener":
        render_screener(records, options['criteria'], config)
    elif nav == "Company Deep Dive":
        render_company_deep_dive(records, options.get('selected_ticker'), store)
    elif nav == "Watchlist":
        render_watchlist(records, store)
    elif nav == "Data Quality":
        render_data_quality(records, df)


if __name__ == "__main__":
    main()
