from __future__ import annotations

"""Matplotlib plots for accuracy trends and per-type accuracy."""

import os
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402


def plot_trend(
    df: pd.DataFrame,
    *,
    quiz_type: Optional[str] = None,
    value_col: str = "acc",
    save_path: Optional[str | os.PathLike[str]] = None,
) -> None:
    g = df.copy()
    if quiz_type is not None:
        g = g[g["quiz_type"].astype("string") == quiz_type]
    if g.empty:
        return
    g = g.sort_values("day_idx")
    plt.figure()
    plt.plot(g["day_idx"], g[value_col], marker="o", linestyle="", label=value_col)
    smooth_col = f"{value_col}_smooth"
    if smooth_col in g.columns:
        plt.plot(g["day_idx"], g[smooth_col], linewidth=2, label=f"{value_col} (EWMA)")
    plt.xlabel("Practice day")
    plt.ylabel(value_col)
    plt.title(f"Trend: {quiz_type}" if quiz_type else "Trend")
    plt.legend()
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()


def plot_type_accuracy(
    df: pd.DataFrame,
    *,
    save_path: Optional[str | os.PathLike[str]] = None,
) -> None:
    """Bar chart of overall accuracy per quiz type from a metrics frame."""
    if df.empty:
        return
    agg = df.groupby("quiz_type", observed=True)[["Q", "C"]].sum()
    agg = agg[agg["Q"] > 0]
    if agg.empty:
        return
    acc = (agg["C"] / agg["Q"]).to_numpy(dtype="float64")
    labels = agg.index.astype(str).tolist()
    x = np.arange(len(labels))
    plt.figure()
    plt.bar(x, acc)
    plt.xticks(ticks=x, labels=labels)
    plt.ylim(0, 1)
    plt.ylabel("Accuracy")
    plt.title("Accuracy by quiz type")
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()
