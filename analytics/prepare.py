from __future__ import annotations

"""Prepare history frames for analytics."""

import pandas as pd


def load_and_prepare(history: pd.DataFrame) -> pd.DataFrame:
    """Add calendar columns to a history frame.

    - 'day': UTC calendar date of the attempt (timezone-naive Timestamp)
    - 'day_idx': stable 0-based index over practice days
    - 'quiz_type' kept categorical
    """
    df = history.copy()
    if "quiz_type" in df.columns:
        df["quiz_type"] = df["quiz_type"].astype("category")
    ts = df["timestamp"]
    if getattr(ts.dt, "tz", None) is not None:
        ts = ts.dt.tz_convert(None)
    df["day"] = ts.dt.normalize()
    df = df.sort_values(["timestamp"], kind="stable").reset_index(drop=True)
    df["day_idx"] = pd.factorize(df["day"])[0]
    return df
