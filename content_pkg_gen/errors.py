"""
Error types raised while generating the dot package.

Every failure that can abort a generation cycle is a subclass of
GenerationError. The pipeline turns these into per-cycle outcomes, so a
watch loop keeps running after one of them.
"""

from __future__ import annotations

from typing import Any


class GenerationError(Exception):
    """Base class for all generation failures.

    Attributes:
        error: The underlying exception (if any)
    """

    tag = "GenerationError"

    def __init__(self, message: str, error: BaseException | None = None):
        super().__init__(message)
        self.error = error

    def to_json(self) -> dict[str, Any]:
        """Serialize the error for the worker message contract."""
        data: dict[str, Any] = {"_tag": self.tag, "message": str(self)}
        if self.error is not None:
            data["cause"] = repr(self.error)
        return data


class ArtifactsDirError(GenerationError):
    """Raised when the target directory cannot be created."""

    tag = "ArtifactsDirError"


class SourceProvideSchemaError(GenerationError):
    """Raised by a source plugin when the schema cannot be resolved."""

    tag = "SourceProvideSchemaError"


class SourceFetchDataError(GenerationError):
    """Raised (or emitted) by a source plugin when content cannot be fetched."""

    tag = "SourceFetchDataError"


class FileSystemError(GenerationError):
    """Base class for filesystem failures.

    Attributes:
        file_path: The path the failing operation targeted
    """

    tag = "FileSystemError"

    def __init__(self, file_path: str, error: BaseException | None = None):
        super().__init__(f"{self.tag}: {file_path}: {error}", error)
        self.file_path = file_path


class WriteFileError(FileSystemError):
    tag = "WriteFileError"


class MkdirError(FileSystemError):
    tag = "MkdirError"


class RmError(FileSystemError):
    tag = "RmError"


class JsonStringifyError(FileSystemError):
    tag = "JsonStringifyError"


class EsbuildError(GenerationError):
    """Raised when the bundler run fails.

    Attributes:
        errors: Error messages reported by the bundler
    """

    tag = "EsbuildError"

    def __init__(self, message: str, errors: list[str] | None = None, error: BaseException | None = None):
        super().__init__(message, error)
        self.errors = errors or []


class GetVersionError(GenerationError):
    """Raised when the installed tool version cannot be determined."""

    tag = "GetVersionError"


class SuccessCallbackError(GenerationError):
    """Wraps any exception raised by the user-supplied success callback."""

    tag = "SuccessCallbackError"


class DuplicateArtifactError(GenerationError):
    """Raised when two artifacts of one cycle target the same file."""

    tag = "DuplicateArtifactError"
