"""
Error taxonomy for file imports.

File-level errors abort the whole import and reach the caller. Row-level
errors (MalformedDate, MalformedNumber, RowError) are raised by the
extractors for a single record and are turned into warnings by whoever is
iterating the rows.
"""
from typing import Optional


class ImportFailure(Exception):
    """Base class for every error raised while importing a file."""
    pass


class UnsupportedFormat(ImportFailure):
    """Raised when the file extension maps to no known format."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(f"Unsupported file type: '{file_name}'")


class UndecodableEncoding(ImportFailure):
    """Raised when the bytes are neither UTF-8 nor the fallback encoding."""

    def __init__(self, tried: str):
        self.tried = tried
        super().__init__(f"The file encoding is not supported (tried {tried})")


class EmptyInput(ImportFailure):
    """Raised when the file has no content to parse."""

    def __init__(self, message: str = "The file is empty"):
        super().__init__(message)


class MissingRequiredField(ImportFailure):
    """Raised when a structural precondition (required column or block) is unmet."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Required field '{name}' is missing")


class MalformedDate(ImportFailure):
    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Invalid date format: '{raw}'")


class MalformedNumber(ImportFailure):
    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Invalid number format: '{raw}'")


class RowError(ImportFailure):
    """A single row or leaf record could not be turned into a record."""

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Error parsing row {index}: {reason}")


class TargetContainerUnresolvable(ImportFailure):
    def __init__(self, account_id: Optional[object] = None):
        self.account_id = account_id
        super().__init__(f"Target account not found: {account_id}")


class PersistenceCommitFailed(ImportFailure):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Failed to save data: {cause}")


class ImportCanceled(ImportFailure):
    """Raised to indicate a caller-initiated cancel should stop processing."""
    pass
