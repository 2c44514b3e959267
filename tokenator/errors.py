"""Error types raised by the token-accounting pipeline."""


class TokenatorError(Exception):
    """Base class for all tokenator errors."""


class UnsupportedFormatError(TokenatorError, ValueError):
    """Raised when a file's extension is not one of the supported formats."""

    def __init__(self, file_name: str, extension: str) -> None:
        self.file_name = file_name
        self.extension = extension
        if extension:
            message = f"Unsupported file type '.{extension}' for '{file_name}'"
        else:
            message = f"Unsupported file type for '{file_name}' (no extension)"
        super().__init__(message)


class ExtractionError(TokenatorError):
    """Raised when a supported file cannot be read or parsed."""


class CountingFailure(TokenatorError):
    """A remote token count attempt that did not produce a count.

    Never raised to callers of the counter; carried inside a `RemoteCountResult` instead.
    """
