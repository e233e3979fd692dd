"""Local question bank: storage, grading, progress and topic browsing."""

from .config import (  # noqa: F401
    CONFIG_PATH_ENV,
    BankConfig,
    BankConfigError,
    load_config,
)
from .errors import (  # noqa: F401
    InvalidArgument,
    NotFound,
    QuestionBankError,
    StorageUnavailable,
)
from .grading import (  # noqa: F401
    DEFAULT_VOCABULARY,
    YesNoVocabulary,
    correct_option_index,
    grade,
)
from .ingest import (  # noqa: F401
    ingest_payload,
    iter_question_payloads,
    mirror_rating,
    parse_records,
)
from .models import (  # noqa: F401
    UNTITLED_TOPIC,
    AnswerState,
    Citation,
    QuestionKind,
    QuestionRecord,
    RatingState,
)
from .normalize import (  # noqa: F401
    index_for_letter,
    letter_for_index,
    normalize_answer,
)
from .notifier import ChangeNotifier, default_notifier  # noqa: F401
from .progress import ProgressTracker, TopicProgress  # noqa: F401
from .store import RecordStore  # noqa: F401
from .topics import TopicSummary, summarize  # noqa: F401

__all__ = [
    "CONFIG_PATH_ENV",
    "BankConfig",
    "BankConfigError",
    "load_config",
    "QuestionBankError",
    "StorageUnavailable",
    "NotFound",
    "InvalidArgument",
    "YesNoVocabulary",
    "DEFAULT_VOCABULARY",
    "grade",
    "correct_option_index",
    "iter_question_payloads",
    "parse_records",
    "ingest_payload",
    "mirror_rating",
    "UNTITLED_TOPIC",
    "QuestionKind",
    "Citation",
    "AnswerState",
    "RatingState",
    "QuestionRecord",
    "normalize_answer",
    "letter_for_index",
    "index_for_letter",
    "ChangeNotifier",
    "default_notifier",
    "ProgressTracker",
    "TopicProgress",
    "RecordStore",
    "TopicSummary",
    "summarize",
]
