"""Concurrent token accounting over a batch of files."""

import asyncio
from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from tqdm.asyncio import tqdm_asyncio

from tokenator.models.results import BatchTotals, FileResult, InputFile
from tokenator.processors.text_extractor import extract_text
from tokenator.tokens import TokenCounter


console = Console(stderr=True)


class BatchProcessor:
    """Runs extraction and counting for every file of a batch concurrently.

    Results come back in input order. `totals` is recomputed once per completed
    batch, so while a batch is running it still holds the previous batch's totals.
    """

    def __init__(self, counter: TokenCounter | None = None, show_progress: bool = False) -> None:
        """Initialize the batch processor.

        Args:
            counter: Token counter to use. Defaults to a `TokenCounter` with default settings.
            show_progress: Display a tqdm progress bar while files are processed.
        """
        self.counter = counter or TokenCounter()
        self.show_progress = show_progress

        self.files: list[InputFile] = []
        self.credential: str | None = None
        self.results: list[FileResult] = []
        self.totals = BatchTotals()
        self._generation = 0

    async def process(self, files: Sequence[InputFile], credential: str | None = None) -> list[FileResult]:
        """Process a new batch of files.

        Args:
            files: Files to process, in display order.
            credential: API key snapshot used for every file of this batch.

        Returns:
            One terminal FileResult per input file, in input order.
        """
        self._generation += 1
        generation = self._generation

        self.files = list(files)
        self.credential = credential
        self.results = [FileResult.pending(file.name) for file in self.files]

        results = await self._run(self.files, credential)

        if generation != self._generation:
            # A newer batch started while this one was in flight
            console.print(f"[dim]Discarding results of superseded batch ({len(results)} file(s)).[/dim]")
            return results

        self.results = results
        self.totals = BatchTotals.from_results(results)
        return results

    async def update_credential(self, credential: str | None) -> list[FileResult]:
        """Re-run the previous file set if the credential changed.

        The whole batch is re-processed and all prior results are replaced, since
        remote counts may differ from the estimates shown before.
        """
        if credential == self.credential or not self.files:
            self.credential = credential
            return self.results

        console.print(f"[cyan]Credential changed. Re-processing {len(self.files)} file(s)...[/cyan]")
        return await self.process(self.files, credential)

    def reset(self) -> None:
        """Forget the current batch and supersede any batch still in flight."""
        self._generation += 1
        self.files = []
        self.results = []
        self.totals = BatchTotals()

    async def _run(self, files: list[InputFile], credential: str | None) -> list[FileResult]:
        tasks = [self._process_file(index, file, credential) for index, file in enumerate(files)]
        completed = await tqdm_asyncio.gather(
            *tasks,
            desc="Counting tokens...",
            total=len(tasks),
            disable=not self.show_progress,
        )

        # Assemble by original index, not by completion order
        by_index = dict(completed)
        return [by_index[index] for index in range(len(files))]

    async def _process_file(self, index: int, file: InputFile, credential: str | None) -> tuple[int, FileResult]:
        """Extract then count a single file. Failures become an error result."""
        try:
            text = await asyncio.to_thread(extract_text, file)
            count, is_exact = await self.counter.count(text, credential)
        except Exception as e:
            console.print(f"[red]Failed to process {escape(file.name)}: {escape(str(e))}[/red]")
            return index, FileResult.failed(file.name, str(e) or type(e).__name__)

        return index, FileResult.succeeded(file.name, char_count=len(text), token_count=count, is_exact=is_exact)
