#!/usr/bin/env python3
"""Market basket report: which pages get visited together within a session.

Fetches pageviews per (page, session id, landing page), turns each session into
a transaction of entrance-tagged pages, mines frequent itemsets and association
rules, drops rules that would recommend a landing page, and renders a
support/confidence scatter plus the ranked rules table.

CLI:
    sk-basket --preset l30 --config config/sessionkit/basket.yaml
    sk-basket --start 2025-08-01 --end 2025-08-31 \\
        --min-support 0.01 --min-confidence 0.3 --min-size 2 --min-items 2
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd

from sessionkit.basket.mining import filter_rules, frequent_itemsets, itemsets_table, rules_table
from sessionkit.basket.transactions import (
    PAGEVIEW_COLUMNS,
    Transactions,
    build_session_items,
    build_transactions,
    drop_unset_sessions,
    tag_entrances,
)
from sessionkit.config import BasketSettings, Theme
from sessionkit.connectors.ga4 import DEFAULT_SESSION_DIMENSION, GA4Client
from sessionkit.reports import render
from sessionkit.utils.dates import add_date_args, resolve_range
from sessionkit.utils.logs import report
from sessionkit.utils.paths import reports_dir

logger = report.settings(__file__)


@dataclass
class BasketResult:
    transactions: Transactions
    itemsets: pd.DataFrame
    rules: pd.DataFrame
    dropped_sessions: int


def fetch_pageviews(client: GA4Client, start: date, end: date,
                    session_dimension: str = DEFAULT_SESSION_DIMENSION) -> pd.DataFrame:
    rows = client.run_pageviews(start, end, session_dimension=session_dimension)
    pageviews = pd.DataFrame(rows, columns=[*PAGEVIEW_COLUMNS, "pageviews"])
    logger.info("Fetched %d pageview rows for %s → %s", len(pageviews), start, end)
    if pageviews.empty:
        raise ValueError(f"no pageview rows for {start} → {end}")
    return pageviews


def shape_transactions(pageviews: pd.DataFrame, settings: BasketSettings) -> tuple[Transactions, int]:
    """Pageviews → transactions; also returns how many sessions were too small."""
    attributed = drop_unset_sessions(pageviews)
    if len(attributed) < len(pageviews):
        logger.warning("Ignoring %d pageview row(s) without a session id", len(pageviews) - len(attributed))
    pairs = build_session_items(tag_entrances(attributed, marker=settings.marker))
    transactions = build_transactions(pairs, min_items=settings.min_items)
    dropped = pairs["session_id"].nunique() - len(transactions)
    logger.info("%d transactions kept, %d session(s) below min_items=%d",
                len(transactions), dropped, settings.min_items)
    if not transactions:
        raise ValueError(f"no sessions with at least {settings.min_items} distinct pages")
    return transactions, dropped


def analyze(transactions: Transactions, settings: BasketSettings, dropped_sessions: int = 0) -> BasketResult:
    frequent = frequent_itemsets(transactions, settings.min_support)
    itemsets = itemsets_table(frequent, min_size=settings.min_size)
    rules = filter_rules(
        rules_table(frequent, settings.min_confidence),
        marker=settings.marker,
        min_lift=settings.min_lift,
        max_rules=settings.max_rules,
    )
    if rules.empty:
        logger.warning("No rules met support>=%s and confidence>=%s",
                       settings.min_support, settings.min_confidence)
    return BasketResult(transactions=transactions, itemsets=itemsets, rules=rules,
                        dropped_sessions=dropped_sessions)


def render_basket(result: BasketResult, settings: BasketSettings, start: date, end: date,
                  theme: Theme) -> str:
    kpis = [
        ("Transactions", f"{len(result.transactions):,}"),
        ("Sessions skipped", f"{result.dropped_sessions:,}"),
        ("Itemsets", f"{len(result.itemsets):,}"),
        ("Rules", f"{len(result.rules):,}"),
    ]
    thresholds = (
        f"min support {settings.min_support:g} · min confidence {settings.min_confidence:g} · "
        f"min itemset size {settings.min_size} · min pages/session {settings.min_items}"
    )
    sections: list[render.Section] = [("Overview", render.kpi_cards(kpis) + f"<p>{thresholds}</p>")]
    if result.rules.empty:
        sections.append(("Association rules", "<p>No rules met the thresholds.</p>"))
    else:
        sections.append(("Support vs confidence", render.rules_scatter(result.rules, theme)))
        sections.append(("Association rules", render.rules_table(result.rules, theme)))
    if result.itemsets.empty:
        sections.append(("Frequent itemsets", "<p>No itemsets met the thresholds.</p>"))
    else:
        sections.append(("Frequent itemsets", render.itemsets_table(result.itemsets, theme)))
    return render.html_document("Page Market Basket", sections, theme, subtitle=f"{start} → {end}")


def run(start: date, end: date, settings: BasketSettings, *, client: Optional[GA4Client] = None,
        session_dimension: str = DEFAULT_SESSION_DIMENSION, out_dir: str | Path | None = None,
        theme: Optional[Theme] = None) -> Path:
    """Fetch → shape → mine → render → write; return the HTML path."""
    theme = theme or Theme()
    client = client or GA4Client()
    pageviews = fetch_pageviews(client, start, end, session_dimension=session_dimension)
    transactions, dropped = shape_transactions(pageviews, settings)
    result = analyze(transactions, settings, dropped_sessions=dropped)
    doc = render_basket(result, settings, start, end, theme)
    out = reports_dir("basket", out_dir) / f"basket-{start}_{end}.html"
    out.write_text(doc, encoding="utf-8")
    logger.info("Saved market basket report: %s", out)
    return out


def main(argv: Optional[list[str]] = None) -> None:
    p = argparse.ArgumentParser(description="GA4 page market basket report (HTML)")
    add_date_args(p)
    p.add_argument("--config", default=None, help="YAML file with basket thresholds")
    p.add_argument("--min-support", type=float, default=None, help="Minimum itemset support (0-1]")
    p.add_argument("--min-confidence", type=float, default=None, help="Minimum rule confidence (0-1]")
    p.add_argument("--min-size", type=int, default=None, help="Smallest itemset listed")
    p.add_argument("--min-items", type=int, default=None, help="Drop sessions with fewer distinct pages")
    p.add_argument("--min-lift", type=float, default=None, help="Optional minimum lift")
    p.add_argument("--top", type=int, default=None, help="Keep only the top N rules")
    p.add_argument("--marker", default=None, help="Entrance marker prefix (default: ENTRANCE-)")
    p.add_argument("--session-dimension", default=DEFAULT_SESSION_DIMENSION,
                   help="GA4 custom dimension holding the session id")
    p.add_argument("--out-dir", default=None, help="Output directory (default: data/reports/basket)")
    p.add_argument("--template", default=None, help="Plotly template (e.g. plotly_white, plotly_dark)")
    args = p.parse_args(argv)

    try:
        start, end = resolve_range(args.start, args.end, args.preset)
        settings = BasketSettings.from_yaml(
            args.config,
            min_support=args.min_support,
            min_confidence=args.min_confidence,
            min_size=args.min_size,
            min_items=args.min_items,
            min_lift=args.min_lift,
            max_rules=args.top,
            marker=args.marker,
        )
        client = GA4Client()
    except (ValueError, RuntimeError) as e:
        raise SystemExit(str(e))
    out = run(start, end, settings, client=client, session_dimension=args.session_dimension,
              out_dir=args.out_dir, theme=Theme().with_overrides(template=args.template))
    print("Saved:", out)


if __name__ == "__main__":
    main()
