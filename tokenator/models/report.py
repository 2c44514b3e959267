"""Report data models produced by the report formatter."""

from pydantic import BaseModel, Field


class ReportRow(BaseModel):
    """A single file row of the per-file breakdown."""

    file_name: str = Field(description="File name as supplied")
    char_count: int = Field(description="Characters extracted from the file")
    token_count: int = Field(description="Tokens counted or estimated for the file")
    is_exact: bool = Field(default=False, description="Whether the token count is remote-verified")
    error: str | None = Field(default=None, description="Failure message, if processing failed")


class DistributionSlice(BaseModel):
    """A share of the total tokens, either a single file or the grouped remainder."""

    label: str = Field(description="File name, or 'Others' for the grouped remainder")
    token_count: int = Field(description="Tokens in this slice")
    share_percent: float = Field(description="Percentage of total tokens in this slice")
    is_grouped: bool = Field(default=False, description="True for the grouped 'Others' slice")


class Report(BaseModel):
    """Export-ready summary of a finished batch."""

    total_files: int
    total_tokens: int
    total_chars: int
    context_window: int = Field(description="Token budget the batch is measured against")
    usage_percent: float = Field(description="Share of the context window used, clamped to 100 for display")
    raw_usage_percent: float = Field(description="Unclamped share of the context window used")
    is_over_limit: bool = Field(description="True if total tokens exceed the context window")
    rows: list[ReportRow] = Field(default_factory=list, description="Per-file breakdown in input order")
    distribution: list[DistributionSlice] = Field(
        default_factory=list,
        description="Largest files by tokens, with the remainder grouped into 'Others'",
    )
    comparison: list[ReportRow] = Field(
        default_factory=list,
        description="Leading rows used for the tokens vs characters comparison chart",
    )

    def summary(self) -> str:
        """Return a human-readable summary of the report."""
        lines = [
            "Tokenator Report:",
            f"  Files: {self.total_files}",
            f"  Total tokens: {self.total_tokens:,}",
            f"  Total characters: {self.total_chars:,}",
            f"  Context usage: {self.usage_percent:.1f}% of {self.context_window:,}",
        ]
        if self.is_over_limit:
            lines.append("  Context window exceeded!")
        return "\n".join(lines)
