"""Token counting and estimation utilities."""

import asyncio
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

from langchain.chat_models import init_chat_model
from langchain.chat_models.base import BaseChatModel
from rich.console import Console
from rich.markup import escape

from tokenator.errors import CountingFailure


# Diagnostics go to stderr so tables printed on stdout stay clean
console = Console(stderr=True)

# Fixed heuristic used whenever an exact count is unavailable.
# Intentionally crude: ceil(chars / 4). Do not tune.
CHARS_PER_TOKEN = 4

# Context window of the target model
CONTEXT_WINDOW_TOKENS = 1_000_000

# Model whose tokenizer is used for exact counts
DEFAULT_MODEL_IDENTIFIER = "gemini-2.5-flash"
DEFAULT_MODEL_PROVIDER = "google_genai"


def estimate_tokens(text: str) -> int:
    """Estimate the number of tokens in a text string.

    Character length is measured in Unicode code points (Python `len`), not UTF-16 units.
    """
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class TokenCount(NamedTuple):
    """A token count and whether it came from the remote tokenizer."""

    count: int
    is_exact: bool


@dataclass(frozen=True)
class RemoteCountResult:
    """Outcome of a single remote count attempt: either a count or a failure."""

    count: int | None = None
    failure: CountingFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.count is not None


def init_counting_model(model_identifier: str, credential: str) -> BaseChatModel:
    """Create the chat model used for remote token counting."""
    return init_chat_model(
        model=model_identifier,
        model_provider=DEFAULT_MODEL_PROVIDER,
        google_api_key=credential,
    )


class TokenCounter:
    """Counts tokens remotely when a credential is given, otherwise estimates.

    Counting never raises: any remote failure degrades to `estimate_tokens`.
    """

    def __init__(
        self,
        model_identifier: str = DEFAULT_MODEL_IDENTIFIER,
        llm_factory: Callable[[str, str], BaseChatModel] = init_counting_model,
        timeout: float | None = None,
    ) -> None:
        """Initialize the counter.

        Args:
            model_identifier: Model whose tokenizer is used for exact counts.
            llm_factory: Callable building a chat model from (model_identifier, credential).
            timeout: Optional limit in seconds for the remote call. Expiry counts as a failure.
        """
        self.model_identifier = model_identifier
        self.llm_factory = llm_factory
        self.timeout = timeout

    async def count(self, text: str, credential: str | None = None) -> TokenCount:
        """Count tokens in `text`, exactly if possible."""
        if not credential:
            return TokenCount(estimate_tokens(text), False)

        result = await self._request_remote_count(text, credential)
        if result.ok:
            return TokenCount(result.count, True)

        console.print(
            f"[yellow]Remote token count failed: {escape(str(result.failure))}. Falling back to estimate.[/yellow]"
        )
        return TokenCount(estimate_tokens(text), False)

    async def _request_remote_count(self, text: str, credential: str) -> RemoteCountResult:
        """Make exactly one remote count attempt. No retries."""

        def _invoke() -> int:
            llm = self.llm_factory(self.model_identifier, credential)
            return llm.get_num_tokens(text)

        try:
            if self.timeout is not None:
                count = await asyncio.wait_for(asyncio.to_thread(_invoke), timeout=self.timeout)
            else:
                count = await asyncio.to_thread(_invoke)
        except asyncio.TimeoutError:
            return RemoteCountResult(failure=CountingFailure(f"timed out after {self.timeout:.1f}s"))
        except Exception as e:
            return RemoteCountResult(failure=CountingFailure(f"{type(e).__name__}: {e}"))

        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            return RemoteCountResult(failure=CountingFailure(f"malformed count in response: {count!r}"))

        return RemoteCountResult(count=count)
