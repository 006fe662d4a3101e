"""Small DataFrame guards shared by the pipelines."""

from __future__ import annotations

from typing import Iterable

import pandas as pd


def assert_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    """Validate *df* has *required* columns; raise ValueError if any are missing."""
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(
            f"{source} is missing required column(s): {', '.join(missing)}"
        )
