from .errors import (
    QuizError,
    GameNotActive,
    NoActiveCard,
    NoWordsAvailable,
    NoEnabledTypes,
    PlaybackError,
    WordNotFound,
    InvalidWord,
    ImportFormatError,
)
from .types import (
    AnswerField,
    AnswerRecord,
    CardPrompt,
    DrawResult,
    EvaluationResult,
    FieldCheck,
    QuizType,
    UserAnswer,
    Word,
)
from .evaluator import AnswerEvaluator, evaluate
from .selector import QuizTypeSelector

__all__ = [
    "QuizError",
    "GameNotActive",
    "NoActiveCard",
    "NoWordsAvailable",
    "NoEnabledTypes",
    "PlaybackError",
    "WordNotFound",
    "InvalidWord",
    "ImportFormatError",
    "AnswerField",
    "AnswerRecord",
    "CardPrompt",
    "DrawResult",
    "EvaluationResult",
    "FieldCheck",
    "QuizType",
    "UserAnswer",
    "Word",
    "AnswerEvaluator",
    "evaluate",
    "QuizTypeSelector",
]
