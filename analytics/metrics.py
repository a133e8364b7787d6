from __future__ import annotations

"""Metric computations over prepared history frames."""

import numpy as np
import pandas as pd

from .config import AnalyticsConfig


def compute_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """Aggregate attempts per (day, quiz_type).

    Returns one row per group with:
    - Q (attempts), C (fully correct), T_ms (total time)
    - acc: float32 = C / Q
    - rt_mean_ms: float32 = T_ms / Q
    """
    if df.empty:
        return pd.DataFrame(columns=["day", "day_idx", "quiz_type", "Q", "C", "T_ms", "acc", "rt_mean_ms"])
    g = df.assign(C=df["is_correct"].astype("int64"), T_ms=df["time_spent_ms"].astype("int64"))
    out = (
        g.groupby(["day", "day_idx", "quiz_type"], observed=True)
        .agg(Q=("record_id", "count"), C=("C", "sum"), T_ms=("T_ms", "sum"))
        .reset_index()
    )
    # Q >= 1 by construction of the groupby
    q = out["Q"].astype("float32")
    out["acc"] = (out["C"].astype("float32") / q).astype("float32")
    out["rt_mean_ms"] = (out["T_ms"].astype("float32") / q).astype("float32")
    return out


def word_difficulty(df: pd.DataFrame, cfg: AnalyticsConfig) -> pd.DataFrame:
    """Rank words by accuracy (hardest first) among words with enough attempts."""
    if df.empty:
        return pd.DataFrame(columns=["word_id", "word_native", "Q", "C", "acc", "rt_mean_ms"])
    g = df.assign(C=df["is_correct"].astype("int64"), T_ms=df["time_spent_ms"].astype("int64"))
    out = (
        g.groupby(["word_id", "word_native"], observed=True)
        .agg(Q=("record_id", "count"), C=("C", "sum"), T_ms=("T_ms", "sum"))
        .reset_index()
    )
    out = out[out["Q"] >= cfg.min_attempts].copy()
    q = out["Q"].astype("float32")
    out["acc"] = (out["C"].astype("float32") / q).astype("float32")
    out["rt_mean_ms"] = np.round(out["T_ms"].astype("float64") / q.astype("float64")).astype("float32")
    out = out.sort_values(["acc", "Q"], ascending=[True, False], kind="stable")
    return out[["word_id", "word_native", "Q", "C", "acc", "rt_mean_ms"]].head(cfg.top_n).reset_index(drop=True)
