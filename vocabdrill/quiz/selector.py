from __future__ import annotations

"""Quiz type selection honoring the enabled-type toggles."""

import random
from typing import List, Optional

from .errors import NoEnabledTypes
from .types import QuizType


class QuizTypeSelector:
    """Choose which representation a card reveals.

    Args:
        settings: Object exposing ``get()`` that returns a snapshot with an
            ``enabled_types`` mapping of QuizType -> bool.
        rng: Random source; pass a seeded ``random.Random`` for reproducible draws.
    """

    def __init__(self, settings, rng: Optional[random.Random] = None) -> None:
        self.settings = settings
        self.rng = rng or random.Random()

    def enabled_types(self) -> List[QuizType]:
        enabled = self.settings.get().enabled_types
        return [t for t in QuizType if enabled.get(t, False)]

    def select(self, forced_default: Optional[QuizType] = None) -> QuizType:
        enabled = self.enabled_types()
        if not enabled:
            raise NoEnabledTypes()
        if forced_default is not None and forced_default in enabled:
            return forced_default
        return self.rng.choice(enabled)
