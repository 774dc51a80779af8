# util/enums.py
from enum import Enum, IntEnum
from typing import NamedTuple


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class EmbedProvider(str, Enum):
    OLLAMA = "ollama"
    LOCAL = "local"


class GeneratorProvider(str, Enum):
    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"


class SessionState(str, Enum):
    INDEXING = "indexing"
    READY = "ready"
    AWAITING_QUESTION = "awaiting_question"
    ANSWERING = "answering"
    CLOSED = "closed"


class ExitCode(IntEnum):
    OK = 0
    SETTINGS = 1
    CONFIG = 2
    SOURCE_UNAVAILABLE = 3
    EMBEDDING = 4
    DIMENSION_MISMATCH = 5
    EMPTY_INDEX = 6
    GENERATION = 7


class ErrorInfo(NamedTuple):
    message: str
    exit_code: ExitCode


class ErrorMessage(Enum):
    EMPTY_DOCUMENT = ErrorInfo(
        "Document produced no segments to index", ExitCode.EMPTY_INDEX
    )
    NO_LOCATOR = ErrorInfo("No document locator given", ExitCode.CONFIG)
