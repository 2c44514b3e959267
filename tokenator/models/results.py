"""Per-file result and batch total data models."""

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator


@dataclass(frozen=True)
class InputFile:
    """A file submitted for counting: a display name plus its bytes.

    Content is either given up front or read lazily from `path`, so that
    unsupported files can be rejected without touching the disk.
    """

    name: str
    content: bytes | None = None
    path: Path | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> "InputFile":
        path = Path(path)
        return cls(name=path.name, path=path)

    @property
    def extension(self) -> str:
        """Lower-cased extension without the leading dot, or "" if there is none."""
        _, dot, extension = self.name.rpartition(".")
        return extension.lower() if dot else ""

    def read_bytes(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.path is None:
            raise ValueError(f"InputFile '{self.name}' has neither content nor a path")
        return self.path.read_bytes()


class FileResult(BaseModel):
    """Token accounting outcome for a single file."""

    model_config = ConfigDict(frozen=True)

    file_name: str = Field(description="File name as supplied (not necessarily unique)")
    char_count: int = Field(default=0, ge=0, description="Length of the extracted text in code points")
    token_count: int = Field(default=0, ge=0, description="Exact or estimated token count")
    is_exact: bool = Field(default=False, description="True only if a remote count succeeded")
    error: str | None = Field(default=None, description="Failure message, set iff processing failed")
    is_loading: bool = Field(default=False, description="Placeholder state while the batch is running")

    @model_validator(mode="after")
    def _check_failure_has_zero_counts(self) -> "FileResult":
        if self.error is not None and (self.char_count or self.token_count or self.is_exact):
            raise ValueError("A failed FileResult must have zero counts and is_exact=False")
        if self.is_loading and self.error is not None:
            raise ValueError("A loading FileResult cannot carry an error")
        return self

    @classmethod
    def pending(cls, file_name: str) -> "FileResult":
        return cls(file_name=file_name, is_loading=True)

    @classmethod
    def succeeded(cls, file_name: str, char_count: int, token_count: int, is_exact: bool) -> "FileResult":
        return cls(file_name=file_name, char_count=char_count, token_count=token_count, is_exact=is_exact)

    @classmethod
    def failed(cls, file_name: str, error: str) -> "FileResult":
        return cls(file_name=file_name, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.is_loading

    def __str__(self) -> str:
        if self.error is not None:
            return f"FileResult('{self.file_name}', error='{self.error}')"
        return (
            f"FileResult('{self.file_name}', chars={self.char_count}, tokens={self.token_count}, "
            f"exact={self.is_exact})"
        )


class BatchTotals(BaseModel):
    """Totals derived from a complete set of file results."""

    model_config = ConfigDict(frozen=True)

    total_tokens: int = Field(default=0, ge=0)
    total_chars: int = Field(default=0, ge=0)

    @classmethod
    def from_results(cls, results: Iterable[FileResult]) -> "BatchTotals":
        """Recompute totals from scratch over the successful results."""
        completed = [result for result in results if result.ok]
        return cls(
            total_tokens=sum(result.token_count for result in completed),
            total_chars=sum(result.char_count for result in completed),
        )
