from ._main import build_arg_parser
from .controller import SessionController, SessionPhase, SessionState
from .errors import (
    FetchError,
    InvalidTransitionError,
    MalformedContentError,
    QuizConfigError,
    QuizError,
    StorageError,
)
from .loader import fallback_banks, load_banks, parse_bank, sort_banks
from .models import (
    COMPREHENSIVE_QUIZ_ID,
    ProcessedQuestion,
    QuizBank,
    QuizQuestion,
    extract_chapter_number,
)
from .normalizer import normalize, process_questions
from .persistence import (
    JsonFileStore,
    MemoryStore,
    PersistenceAdapter,
    SessionSnapshot,
)
from .review import apply_order, build_comprehensive, shuffle, shuffled_order
from .session import QuizSessionResult, run_quiz_session
from .sources import DirectoryFetcher, HttpFetcher, build_fetcher

__all__ = [
    "build_arg_parser",
    "SessionController",
    "SessionPhase",
    "SessionState",
    "QuizError",
    "FetchError",
    "MalformedContentError",
    "StorageError",
    "InvalidTransitionError",
    "QuizConfigError",
    "load_banks",
    "parse_bank",
    "sort_banks",
    "fallback_banks",
    "COMPREHENSIVE_QUIZ_ID",
    "QuizQuestion",
    "QuizBank",
    "ProcessedQuestion",
    "extract_chapter_number",
    "normalize",
    "process_questions",
    "SessionSnapshot",
    "MemoryStore",
    "JsonFileStore",
    "PersistenceAdapter",
    "shuffle",
    "shuffled_order",
    "apply_order",
    "build_comprehensive",
    "run_quiz_session",
    "QuizSessionResult",
    "HttpFetcher",
    "DirectoryFetcher",
    "build_fetcher",
]
