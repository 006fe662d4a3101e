"""Frequent itemsets and association rules over session transactions.

The mining itself is done by ``mlxtend``; this module only shapes the
transactions into its one-hot format and flattens the results into tables the
renderers can use directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

import pandas as pd
from mlxtend.frequent_patterns import apriori, association_rules
from mlxtend.preprocessing import TransactionEncoder

from sessionkit.basket.transactions import Transactions, is_entrance
from sessionkit.config import DEFAULT_MARKER
from sessionkit.utils.logs import report

logger = report.settings(__file__)

ITEMSET_COLUMNS = ["label", "support", "size", "itemset"]
RULE_COLUMNS = ["rank", "rule", "antecedents", "consequent", "support", "confidence", "lift"]


def itemset_label(items: Iterable[str]) -> str:
    return ", ".join(sorted(items))


def rule_label(antecedents: Iterable[str], consequent: str) -> str:
    return f"{{{itemset_label(antecedents)}}} => {consequent}"


def encode_transactions(transactions: Mapping[str, frozenset]) -> pd.DataFrame:
    """One-hot encode transactions (rows: sessions, columns: items)."""
    if not transactions:
        raise ValueError("no transactions to mine")
    baskets = [sorted(items) for items in transactions.values()]
    te = TransactionEncoder()
    onehot = te.fit(baskets).transform(baskets)
    return pd.DataFrame(onehot, columns=te.columns_, index=list(transactions.keys()))


@dataclass
class FrequentItemsets:
    """Raw ``apriori`` output plus the transaction count it was mined from."""
    frame: pd.DataFrame
    num_transactions: int


def frequent_itemsets(transactions: Transactions, min_support: float) -> FrequentItemsets:
    """Encode *transactions* once and run ``apriori`` over the full lattice."""
    onehot = encode_transactions(transactions)
    freq = apriori(onehot, min_support=min_support, use_colnames=True)
    logger.info("apriori(min_support=%s): %d itemsets from %d transactions",
                min_support, len(freq), len(onehot))
    return FrequentItemsets(frame=freq, num_transactions=len(onehot))


def itemsets_table(frequent: FrequentItemsets, min_size: int = 1) -> pd.DataFrame:
    """Itemsets with at least *min_size* items.

    Returns columns ``label``, ``support``, ``size`` and ``itemset`` sorted by
    support (descending) then label.
    """
    freq = frequent.frame
    if freq.empty:
        return pd.DataFrame(columns=ITEMSET_COLUMNS)
    out = pd.DataFrame({
        "itemset": freq["itemsets"].apply(frozenset),
        "support": freq["support"].astype(float),
    })
    out["size"] = out["itemset"].apply(len)
    out["label"] = out["itemset"].apply(itemset_label)
    out = out.loc[out["size"] >= min_size]
    out = out.sort_values(["support", "label"], ascending=[False, True], kind="mergesort")
    return out[ITEMSET_COLUMNS].reset_index(drop=True)


def rules_table(frequent: FrequentItemsets, min_confidence: float) -> pd.DataFrame:
    """Single-consequent rules meeting *min_confidence*, unfiltered and unranked."""
    freq = frequent.frame
    if freq.empty:
        return pd.DataFrame(columns=RULE_COLUMNS[1:])
    rules = association_rules(
        freq,
        num_itemsets=frequent.num_transactions,
        metric="confidence",
        min_threshold=min_confidence,
    )
    if rules.empty:
        return pd.DataFrame(columns=RULE_COLUMNS[1:])
    rules = rules.loc[rules["consequents"].apply(len) == 1]
    out = pd.DataFrame({
        "antecedents": rules["antecedents"].apply(frozenset),
        "consequent": rules["consequents"].apply(lambda s: next(iter(s))),
        "support": rules["support"].astype(float),
        "confidence": rules["confidence"].astype(float),
        "lift": rules["lift"].astype(float),
    })
    out.insert(0, "rule", [rule_label(a, c) for a, c in zip(out["antecedents"], out["consequent"])])
    out = out.sort_values(
        ["confidence", "lift", "rule"], ascending=[False, False, True], kind="mergesort"
    )
    logger.info("association_rules(min_confidence=%s): %d single-consequent rules",
                min_confidence, len(out))
    return out.reset_index(drop=True)


def filter_rules(rules: pd.DataFrame, marker: str = DEFAULT_MARKER,
                 min_lift: Optional[float] = None, max_rules: Optional[int] = None) -> pd.DataFrame:
    """Drop rules recommending an entrance page, then rank what is left.

    ``rank`` is 1-based and follows the incoming row order, so it is stable
    across the scatter plot and the rules table.
    """
    if rules.empty:
        return pd.DataFrame(columns=RULE_COLUMNS)
    keep = ~rules["consequent"].apply(lambda c: is_entrance(c, marker))
    dropped = int((~keep).sum())
    out = rules.loc[keep]
    if min_lift is not None:
        out = out.loc[out["lift"] >= min_lift]
    if max_rules is not None:
        out = out.head(max_rules)
    out = out.reset_index(drop=True)
    out.insert(0, "rank", range(1, len(out) + 1))
    logger.info("Dropped %d rule(s) with an entrance consequent; %d remain", dropped, len(out))
    return out[RULE_COLUMNS]


def mine_itemsets(transactions: Transactions, min_support: float, min_size: int = 1) -> pd.DataFrame:
    return itemsets_table(frequent_itemsets(transactions, min_support), min_size=min_size)


def mine_rules(transactions: Transactions, min_support: float, min_confidence: float) -> pd.DataFrame:
    return rules_table(frequent_itemsets(transactions, min_support), min_confidence)
