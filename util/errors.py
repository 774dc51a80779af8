# util/errors.py
from util.enums import ErrorMessage, ExitCode


class AppError(Exception):
    # Flow: raise AppError subclasses; main maps them to an exit status.
    exit_code: ExitCode = ExitCode.SETTINGS

    def __init__(self, message: str, exit_code: ExitCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code

    @classmethod
    def of(cls, info: ErrorMessage) -> "AppError":
        return cls(info.value.message, info.value.exit_code)


class ConfigError(AppError):
    """Invalid chunker or retrieval parameters."""

    exit_code = ExitCode.CONFIG


class SourceUnavailable(AppError):
    """The document could not be fetched or read."""

    exit_code = ExitCode.SOURCE_UNAVAILABLE


class EmbeddingError(AppError):
    exit_code = ExitCode.EMBEDDING


class DimensionMismatch(AppError):
    exit_code = ExitCode.DIMENSION_MISMATCH


class EmptyIndex(AppError):
    exit_code = ExitCode.EMPTY_INDEX


class GenerationError(AppError):
    exit_code = ExitCode.GENERATION
