"""Turn GA pageview rows into per-session transactions.

Pipeline::

    pageviews ─▶ tag_entrances ─▶ build_session_items ─▶ build_transactions

Each session becomes one transaction: the set of (tagged) pages it visited.
The landing page of a session is prefixed with an entrance marker so that it
is a different item from the same page reached mid-session.
"""

from __future__ import annotations

from typing import Dict, FrozenSet

import pandas as pd

from sessionkit.config import DEFAULT_MARKER
from sessionkit.utils.frames import assert_columns

PAGEVIEW_COLUMNS = ("page_path", "session_id", "landing_page")
UNSET_SESSION_VALUES = ("", "(not set)")

Transactions = Dict[str, FrozenSet[str]]


def is_entrance(item: str, marker: str = DEFAULT_MARKER) -> bool:
    return item.startswith(marker)


def drop_unset_sessions(pageviews: pd.DataFrame) -> pd.DataFrame:
    """Remove rows GA could not attribute to a session id."""
    assert_columns(pageviews, ["session_id"], "pageviews")
    sid = pageviews["session_id"].fillna("").astype(str).str.strip()
    return pageviews.loc[~sid.isin(UNSET_SESSION_VALUES)].reset_index(drop=True)


def tag_entrances(pageviews: pd.DataFrame, marker: str = DEFAULT_MARKER) -> pd.DataFrame:
    """Return a copy of *pageviews* with an ``item`` column.

    ``item`` is ``marker + page_path`` on rows where the page is the session's
    landing page, and the plain page path everywhere else.

    Raises ``ValueError`` if a raw page path already starts with *marker*:
    such a page could not be told apart from a tagged landing page.
    """
    assert_columns(pageviews, PAGEVIEW_COLUMNS, "pageviews")
    out = pageviews.copy()
    page = out["page_path"].astype(str)
    clashes = sorted(set(page[page.str.startswith(marker)]))
    if clashes:
        raise ValueError(
            f"page path(s) already start with entrance marker {marker!r}: "
            f"{', '.join(clashes[:5])}; choose a different marker"
        )
    entrance = page == out["landing_page"].astype(str)
    out["item"] = page.where(~entrance, marker + page)
    out["is_entrance"] = entrance
    return out


def build_session_items(tagged: pd.DataFrame) -> pd.DataFrame:
    """Unique ``(session_id, item)`` pairs, sorted for determinism."""
    assert_columns(tagged, ["session_id", "item"], "tagged pageviews")
    pairs = tagged[["session_id", "item"]].astype(str).drop_duplicates()
    return pairs.sort_values(["session_id", "item"], kind="mergesort").reset_index(drop=True)


def build_transactions(pairs: pd.DataFrame, min_items: int) -> Transactions:
    """Group session/item pairs into one frozenset per session.

    Sessions with fewer than *min_items* distinct items are dropped: a
    single-page session cannot support a multi-item itemset.
    """
    if min_items < 1:
        raise ValueError(f"min_items must be >= 1, got {min_items}")
    assert_columns(pairs, ["session_id", "item"], "session items")
    out: Transactions = {}
    for sid, items in pairs.groupby("session_id", sort=True)["item"]:
        basket = frozenset(items)
        if len(basket) >= min_items:
            out[str(sid)] = basket
    return out


def transactions_from_pageviews(pageviews: pd.DataFrame, min_items: int,
                                marker: str = DEFAULT_MARKER) -> Transactions:
    """Convenience wrapper running the whole shaping step."""
    tagged = tag_entrances(drop_unset_sessions(pageviews), marker=marker)
    return build_transactions(build_session_items(tagged), min_items=min_items)
