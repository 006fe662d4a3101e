"""Presentation helpers: plotly figures, pandas Stylers and the HTML shell.

Nothing here changes the numbers; every function takes the frames produced by
the pipelines plus a ``Theme`` and returns something displayable.
"""

from __future__ import annotations

import html
from datetime import datetime
from typing import Iterable, Sequence, Tuple, Union

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from pandas.io.formats.style import Styler
from plotly.offline import get_plotlyjs_version

from sessionkit.config import Theme

Section = Tuple[str, Union[str, go.Figure, Styler]]

CHANNEL_GROUPS = {
    "sessions": ("Acquisition", "Sessions"),
    "session_share": ("Acquisition", "Share"),
    "users": ("Acquisition", "Users"),
    "engaged_sessions": ("Engagement", "Engaged sessions"),
    "engagement_rate": ("Engagement", "Engagement rate"),
    "avg_session_duration": ("Engagement", "Avg. session (s)"),
    "pageviews_per_session": ("Behaviour", "Pages / session"),
}


def traffic_chart(daily: pd.DataFrame, theme: Theme) -> go.Figure:
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=daily["date"],
            y=daily["sessions"],
            name="Sessions",
            mode="lines",
            line=dict(color=theme.primary, width=2),
            hovertemplate='<b>%{x|%b %d, %Y}</b><br>Sessions: %{y:,.0f}<extra></extra>',
        )
    )
    fig.add_trace(
        go.Scatter(
            x=daily["date"],
            y=daily["users"],
            name="Users",
            mode="lines",
            line=dict(color=theme.secondary, width=2, dash="dot"),
            hovertemplate='<b>%{x|%b %d, %Y}</b><br>Users: %{y:,.0f}<extra></extra>',
        )
    )
    fig.update_layout(
        template=theme.template,
        xaxis_title="Date",
        yaxis_title="Count",
        height=theme.height,
        hovermode='x unified',
        font=dict(family=theme.font_family),
        legend=dict(
            orientation="h",
            yanchor="bottom",
            y=1.02,
            xanchor="right",
            x=1
        )
    )
    return fig


def channel_table(channels: pd.DataFrame, theme: Theme) -> Styler:
    """Channel summary with grouped headers (Acquisition / Engagement / Behaviour)."""
    cols = [c for c in CHANNEL_GROUPS if c in channels.columns]
    table = channels.set_index("channel")[cols]
    table.index.name = "Channel"
    table.columns = pd.MultiIndex.from_tuples([CHANNEL_GROUPS[c] for c in cols])

    formats = {
        ("Acquisition", "Sessions"): "{:,.0f}",
        ("Acquisition", "Share"): "{:.1%}",
        ("Acquisition", "Users"): "{:,.0f}",
        ("Engagement", "Engaged sessions"): "{:,.0f}",
        ("Engagement", "Engagement rate"): "{:.1%}",
        ("Engagement", "Avg. session (s)"): "{:,.1f}",
        ("Behaviour", "Pages / session"): "{:.2f}",
    }
    present = [c for c in table.columns if c in formats]
    # the totals row would always win the highlight
    body = [i for i in table.index if i != "Total"]
    styler = (
        table.style
        .format({c: formats[c] for c in present}, na_rep="–")
        .highlight_max(subset=(body, present), props=f"background-color: {theme.highlight}; font-weight: bold")
    )
    if ("Acquisition", "Sessions") in table.columns:
        styler = styler.bar(subset=(body, [("Acquisition", "Sessions")]), color=theme.primary, height=60, width=90)
    if ("Engagement", "Engagement rate") in table.columns:
        styler = styler.map(
            lambda v: "color: #B91C1C" if pd.notna(v) and v < 0.5 else "",
            subset=[("Engagement", "Engagement rate")],
        )
    return styler.set_table_styles([
        {"selector": "th.col_heading.level0", "props": "text-align: center; border-bottom: 1px solid #999"},
        {"selector": "td, th", "props": "padding: 4px 10px"},
    ])


def rules_scatter(rules: pd.DataFrame, theme: Theme) -> go.Figure:
    """Support vs confidence, coloured by lift; points labelled by rule rank."""
    fig = px.scatter(
        rules,
        x="support",
        y="confidence",
        color="lift",
        text="rank",
        hover_name="rule",
        hover_data={"rank": True, "support": ":.3f", "confidence": ":.1%", "lift": ":.2f"},
        color_continuous_scale=theme.color_scale,
        template=theme.template,
        height=theme.height,
    )
    fig.update_traces(textposition="top center", marker=dict(size=10))
    fig.update_layout(
        xaxis_title="Support",
        yaxis_title="Confidence",
        font=dict(family=theme.font_family),
    )
    fig.update_yaxes(tickformat=".0%")
    return fig


def rules_table(rules: pd.DataFrame, theme: Theme) -> Styler:
    table = rules[["rank", "rule", "support", "confidence", "lift"]].rename(columns=str.capitalize)
    return (
        table.style
        .hide(axis="index")
        .format({"Support": "{:.3f}", "Confidence": "{:.1%}", "Lift": "{:.2f}"})
        .bar(subset=["Lift"], color=theme.secondary, height=60, width=90)
        .set_properties(subset=["Rule"], **{"text-align": "left", "font-family": "monospace"})
        .set_table_styles([{"selector": "td, th", "props": "padding: 4px 10px"}])
    )


def itemsets_table(itemsets: pd.DataFrame, theme: Theme) -> Styler:
    table = itemsets[["label", "size", "support"]].rename(
        columns={"label": "Itemset", "size": "Size", "support": "Support"}
    )
    return (
        table.style
        .hide(axis="index")
        .format({"Support": "{:.3f}"})
        .bar(subset=["Support"], color=theme.primary, height=60, width=90)
        .set_table_styles([{"selector": "td, th", "props": "padding: 4px 10px"}])
    )


def kpi_cards(kpis: Sequence[Tuple[str, str]]) -> str:
    cards = "".join(
        f'<div class="kpi"><div class="kpi-label">{html.escape(label)}</div>'
        f'<div class="kpi-value">{html.escape(value)}</div></div>'
        for label, value in kpis
    )
    return f'<div class="kpis">{cards}</div>'


def _section_body(body: Union[str, go.Figure, Styler]) -> str:
    if isinstance(body, go.Figure):
        return body.to_html(full_html=False, include_plotlyjs=False)
    if isinstance(body, Styler):
        return body.to_html()
    return body


def html_document(title: str, sections: Iterable[Section], theme: Theme,
                  subtitle: str | None = None) -> str:
    """Assemble a standalone HTML page; plotly.js is loaded once from the CDN."""
    js = f"https://cdn.plot.ly/plotly-{get_plotlyjs_version()}.min.js"
    parts = []
    for heading, body in sections:
        parts.append(f"<section><h2>{html.escape(heading)}</h2>\n{_section_body(body)}\n</section>")
    generated = datetime.now().strftime("%Y-%m-%d %H:%M")
    sub = f"<p class=\"subtitle\">{html.escape(subtitle)}</p>" if subtitle else ""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{html.escape(title)}</title>
<script src="{js}"></script>
<style>
body {{ font-family: {theme.font_family}; margin: 2rem auto; max-width: 1200px; color: #111827; }}
h1 {{ margin-bottom: 0.2rem; }}
.subtitle, footer {{ color: #6B7280; }}
table {{ border-collapse: collapse; font-size: 0.9rem; }}
.kpis {{ display: flex; gap: 1rem; }}
.kpi {{ border: 1px solid #E5E7EB; border-radius: 6px; padding: 0.6rem 1rem; }}
.kpi-label {{ font-size: 0.8rem; color: #6B7280; }}
.kpi-value {{ font-size: 1.4rem; font-weight: bold; }}
{theme.extra_css}
</style>
</head>
<body>
<h1>{html.escape(title)}</h1>
{sub}
{chr(10).join(parts)}
<footer>Generated {generated}</footer>
</body>
</html>
"""
