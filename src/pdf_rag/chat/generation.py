"""Streaming generation with a deadline.

A call moves Idle → Streaming → Completed or TimedOut.  Fragments are
handed to the caller as they arrive; when the deadline fires the partial
answer is kept and marked with :data:`TIMEOUT_SENTINEL`.  The underlying
stream is closed on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

from pdf_rag.chat.prompts import WARMUP_PROMPT
from pdf_rag.config import settings
from pdf_rag.exceptions import GenerationUnavailable

logger = logging.getLogger(__name__)

TIMEOUT_SENTINEL = " [Timed out]"

FragmentCallback = Callable[[str], None]


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation call.

    Attributes
    ----------
    answer:
        Accumulated text; ends with :data:`TIMEOUT_SENTINEL` when cut off.
    timed_out:
        ``True`` when the deadline elapsed before the stream finished.
    """

    answer: str
    timed_out: bool = False


def _fragment_text(chunk: Any) -> str:
    content = getattr(chunk, "content", chunk)
    if isinstance(content, str):
        return content
    # Multi-part content blocks: keep the text parts only.
    if isinstance(content, list):
        return "".join(
            part if isinstance(part, str) else str(part.get("text", ""))
            for part in content
            if isinstance(part, (str, dict))
        )
    return ""


class GenerationController:
    """Drives a chat model's token stream under a deadline.

    Parameters
    ----------
    llm:
        Any LangChain chat model supporting ``astream``.
    timeout:
        Default deadline in seconds for :meth:`generate`.
    """

    def __init__(self, llm: BaseChatModel, *, timeout: float = settings.generation_timeout) -> None:
        self._llm = llm
        self.timeout = timeout

    async def generate(
        self,
        prompt: str,
        *,
        timeout: float | None = None,
        on_fragment: FragmentCallback | None = None,
    ) -> GenerationResult:
        """Stream an answer to *prompt*.

        Parameters
        ----------
        prompt:
            Fully assembled prompt text.
        timeout:
            Deadline in seconds; defaults to ``self.timeout``.
        on_fragment:
            Called with every non-empty fragment as soon as it arrives.

        Raises
        ------
        GenerationUnavailable
            When the chat service fails for any reason other than the
            deadline.
        """
        deadline = self.timeout if timeout is None else timeout
        parts: list[str] = []
        timed_out = False

        try:
            async with aclosing(self._llm.astream([HumanMessage(content=prompt)])) as stream:
                try:
                    async with asyncio.timeout(deadline):
                        async for chunk in stream:
                            text = _fragment_text(chunk)
                            if not text:
                                continue
                            parts.append(text)
                            if on_fragment is not None:
                                on_fragment(text)
                except TimeoutError:
                    timed_out = True
        except Exception as exc:
            raise GenerationUnavailable(f"Chat stream failed: {exc}") from exc

        answer = "".join(parts)
        if timed_out:
            logger.warning("Generation timed out after %.1fs with %d chars", deadline, len(answer))
            answer += TIMEOUT_SENTINEL
        return GenerationResult(answer=answer, timed_out=timed_out)

    def start_warm_up(self, timeout: float = settings.warmup_timeout) -> asyncio.Task[None]:
        """Spawn a background request that loads the model ahead of the first query.

        Must be called from a running event loop.  The task never raises:
        failures and timeouts are logged at debug level and discarded.
        Cancel the returned task to abandon it.
        """
        return asyncio.create_task(self._warm_up(timeout), name="llm-warm-up")

    async def _warm_up(self, timeout: float) -> None:
        try:
            result = await self.generate(WARMUP_PROMPT, timeout=timeout)
            logger.debug("Warm-up finished (timed_out=%s)", result.timed_out)
        except Exception:
            logger.debug("Warm-up request failed", exc_info=True)
