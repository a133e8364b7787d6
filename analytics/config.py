from __future__ import annotations

"""Analytics configuration (hyperparameters) using Pydantic."""

from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Hyperparameters for analytics computations and smoothing.

    - smoothing_span: EWMA span in practice days (>1)
    - min_attempts: attempts a word needs before it is ranked by difficulty
    - top_n: number of hardest words to report
    """

    smoothing_span: int = Field(7, gt=1)
    min_attempts: int = Field(2, ge=1)
    top_n: int = Field(10, ge=1)
