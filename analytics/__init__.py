from .config import AnalyticsConfig
from .metrics import compute_metrics, word_difficulty
from .prepare import load_and_prepare
from .smoothing import ewma_by_day
from .plots import plot_trend, plot_type_accuracy

__all__ = [
    "AnalyticsConfig",
    "compute_metrics",
    "word_difficulty",
    "load_and_prepare",
    "ewma_by_day",
    "plot_trend",
    "plot_type_accuracy",
]
