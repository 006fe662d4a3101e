#!/usr/bin/env python3
"""Traffic dashboard: daily sessions/users chart plus a channel summary table.

CLI:
    python -m sessionkit.reports.traffic --preset l30
    sk-traffic --start 2025-08-01 --end 2025-08-31
"""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from sessionkit.config import Theme
from sessionkit.connectors.ga4 import GA4Client
from sessionkit.reports import render
from sessionkit.utils.dates import add_date_args, resolve_range
from sessionkit.utils.frames import assert_columns
from sessionkit.utils.logs import report
from sessionkit.utils.paths import reports_dir

logger = report.settings(__file__)

DAILY_COLUMNS = ["date", "sessions", "users"]
CHANNEL_COLUMNS = [
    "channel", "sessions", "users", "engaged_sessions",
    "engagement_rate", "avg_session_duration", "pageviews_per_session",
]


# ------------------------------------------------------------------
# Fetch
# ------------------------------------------------------------------

def fetch_traffic(client: GA4Client, start: date, end: date) -> Tuple[pd.DataFrame, pd.DataFrame]:
    daily = pd.DataFrame(client.run_daily_traffic(start, end), columns=DAILY_COLUMNS)
    channels = pd.DataFrame(client.run_channels_report(start, end), columns=CHANNEL_COLUMNS)
    logger.info("Fetched %d daily rows and %d channels for %s → %s", len(daily), len(channels), start, end)
    if daily.empty:
        raise ValueError(f"no daily traffic rows for {start} → {end}")
    return daily, channels


# ------------------------------------------------------------------
# Reshape
# ------------------------------------------------------------------

def fill_calendar(daily: pd.DataFrame, start: date, end: date) -> pd.DataFrame:
    """One row per calendar day; GA omits days without sessions, those become 0."""
    assert_columns(daily, DAILY_COLUMNS, "daily traffic")
    out = daily.copy()
    out["date"] = pd.to_datetime(out["date"])
    out = out.groupby("date", as_index=True)[["sessions", "users"]].sum()
    out = out.reindex(pd.date_range(start, end, freq="D", name="date"), fill_value=0)
    return out.reset_index()


def summarize_channels(channels: pd.DataFrame) -> pd.DataFrame:
    """Channel table sorted by sessions with a share column and a Total row.

    Rates in the Total row are session-weighted; ``users`` is a plain sum so a
    visitor arriving through two channels is counted twice.
    """
    assert_columns(channels, CHANNEL_COLUMNS, "channel metrics")
    out = channels.sort_values(["sessions", "channel"], ascending=[False, True]).reset_index(drop=True)
    total_sessions = out["sessions"].sum()
    out["session_share"] = out["sessions"] / total_sessions if total_sessions else 0.0

    def _weighted(col: str) -> float:
        return float((out[col] * out["sessions"]).sum() / total_sessions) if total_sessions else 0.0

    total = {
        "channel": "Total",
        "sessions": total_sessions,
        "users": out["users"].sum(),
        "engaged_sessions": out["engaged_sessions"].sum(),
        "engagement_rate": (out["engaged_sessions"].sum() / total_sessions) if total_sessions else 0.0,
        "avg_session_duration": _weighted("avg_session_duration"),
        "pageviews_per_session": _weighted("pageviews_per_session"),
        "session_share": 1.0 if total_sessions else 0.0,
    }
    return pd.concat([out, pd.DataFrame([total])], ignore_index=True)


def daily_kpis(daily: pd.DataFrame) -> List[Tuple[str, str]]:
    peak = daily.loc[daily["sessions"].idxmax()]
    return [
        ("Sessions", f"{daily['sessions'].sum():,.0f}"),
        ("Avg. daily sessions", f"{daily['sessions'].mean():,.1f}"),
        ("Avg. daily users", f"{daily['users'].mean():,.1f}"),
        ("Peak day", f"{peak['date']:%b %d} ({peak['sessions']:,.0f})"),
    ]


def merge_traffic(daily: pd.DataFrame, channels: pd.DataFrame, start: date, end: date):
    """Combine the two fetches into everything the dashboard renders."""
    filled = fill_calendar(daily, start, end)
    return filled, summarize_channels(channels), daily_kpis(filled)


# ------------------------------------------------------------------
# Render
# ------------------------------------------------------------------

def render_traffic(daily: pd.DataFrame, summary: pd.DataFrame, kpis, start: date, end: date,
                   theme: Theme) -> str:
    sections = [
        ("Overview", render.kpi_cards(kpis)),
        ("Daily sessions & users", render.traffic_chart(daily, theme)),
        ("Channel performance", render.channel_table(summary, theme)),
    ]
    return render.html_document("Traffic Dashboard", sections, theme, subtitle=f"{start} → {end}")


def run(start: date, end: date, *, client: Optional[GA4Client] = None,
        out_dir: str | Path | None = None, theme: Optional[Theme] = None) -> Path:
    """Fetch, reshape, render and write the dashboard; return the HTML path."""
    theme = theme or Theme()
    client = client or GA4Client()
    daily, channels = fetch_traffic(client, start, end)
    filled, summary, kpis = merge_traffic(daily, channels, start, end)
    doc = render_traffic(filled, summary, kpis, start, end, theme)
    out = reports_dir("traffic", out_dir) / f"traffic-{start}_{end}.html"
    out.write_text(doc, encoding="utf-8")
    logger.info("Saved traffic dashboard: %s", out)
    return out


def main(argv: Optional[list[str]] = None) -> None:
    p = argparse.ArgumentParser(description="GA4 traffic dashboard (HTML)")
    add_date_args(p)
    p.add_argument("--out-dir", default=None, help="Output directory (default: data/reports/traffic)")
    p.add_argument("--template", default=None, help="Plotly template (e.g. plotly_white, plotly_dark)")
    args = p.parse_args(argv)

    try:
        start, end = resolve_range(args.start, args.end, args.preset)
    except ValueError as e:
        raise SystemExit(str(e))
    try:
        client = GA4Client()
    except RuntimeError as e:
        raise SystemExit(str(e))
    out = run(start, end, client=client, out_dir=args.out_dir,
              theme=Theme().with_overrides(template=args.template))
    print("Saved:", out)


if __name__ == "__main__":
    main()
