"""Turns finished batch results into a report data artifact."""

from collections.abc import Sequence

from tokenator.models.report import DistributionSlice, Report, ReportRow
from tokenator.models.results import BatchTotals, FileResult
from tokenator.tokens import CONTEXT_WINDOW_TOKENS


# Files shown individually in the token distribution before grouping into "Others"
DISTRIBUTION_TOP_N = 5

# Files drawn in the tokens vs characters comparison chart
COMPARISON_MAX_FILES = 10

OTHERS_LABEL = "Others"


def format_report(
    results: Sequence[FileResult],
    totals: BatchTotals,
    context_window: int = CONTEXT_WINDOW_TOKENS,
) -> Report:
    """Build a report from a finished batch. Pure: inputs are not modified.

    Args:
        results: Terminal file results in input order.
        totals: Totals recomputed from `results`.
        context_window: Token budget to measure usage against.

    Returns:
        A Report. Empty input yields a valid report with zero totals.
    """
    rows = [
        ReportRow(
            file_name=result.file_name,
            char_count=result.char_count,
            token_count=result.token_count,
            is_exact=result.is_exact,
            error=result.error,
        )
        for result in results
    ]

    raw_usage_percent = totals.total_tokens / context_window * 100

    return Report(
        total_files=len(rows),
        total_tokens=totals.total_tokens,
        total_chars=totals.total_chars,
        context_window=context_window,
        usage_percent=min(raw_usage_percent, 100.0),
        raw_usage_percent=raw_usage_percent,
        is_over_limit=totals.total_tokens > context_window,
        rows=rows,
        distribution=_token_distribution(rows, totals.total_tokens),
        comparison=rows[:COMPARISON_MAX_FILES],
    )


def _token_distribution(rows: list[ReportRow], total_tokens: int) -> list[DistributionSlice]:
    """Largest files by token count, with the remainder grouped into one slice."""
    # Avoid division by zero for empty or all-failed batches
    total = total_tokens or 1
    ranked = sorted(rows, key=lambda row: row.token_count, reverse=True)

    slices = [
        DistributionSlice(
            label=row.file_name,
            token_count=row.token_count,
            share_percent=row.token_count / total * 100,
        )
        for row in ranked[:DISTRIBUTION_TOP_N]
    ]

    remainder = ranked[DISTRIBUTION_TOP_N:]
    if remainder:
        others_tokens = sum(row.token_count for row in remainder)
        slices.append(
            DistributionSlice(
                label=OTHERS_LABEL,
                token_count=others_tokens,
                share_percent=others_tokens / total * 100,
                is_grouped=True,
            )
        )

    return slices
