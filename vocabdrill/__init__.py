"""vocabdrill package initialization.

Vocabulary drill engine: draws words, hides one representation, scores the
learner's answer and records the attempt.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
