from __future__ import annotations

"""Error taxonomy for the quiz engine and its stores."""


class QuizError(Exception):
    """Base class for every condition the engine surfaces to callers."""


class GameNotActive(QuizError):
    def __init__(self, message: str = "No active session; start a game first") -> None:
        super().__init__(message)


class NoActiveCard(QuizError):
    def __init__(self, message: str = "No card is currently drawn") -> None:
        super().__init__(message)


class NoWordsAvailable(QuizError):
    def __init__(self, message: str = "The word store is empty; add words first") -> None:
        super().__init__(message)


class NoEnabledTypes(QuizError):
    def __init__(self, message: str = "No quiz type is enabled; enable at least one in settings") -> None:
        super().__init__(message)


class PlaybackError(QuizError):
    """Audio could not be loaded or played. Never fatal to a session."""


class WordNotFound(QuizError, KeyError):
    def __init__(self, word_id: int) -> None:
        self.word_id = word_id
        super().__init__(f"Word not found: {word_id}")

    def __str__(self) -> str:
        return str(self.args[0])


class InvalidWord(QuizError, ValueError):
    pass


class ImportFormatError(QuizError, ValueError):
    pass
