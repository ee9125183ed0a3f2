"""Token-budgeted context assembly and generative answers."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Literal, Protocol, Sequence

import tiktoken

from notefinder.config import AppConfig
from notefinder.index.search import Searcher, SearchResult

LOGGER = logging.getLogger(__name__)

DEFAULT_TOKEN_BUDGET = 1500
SECTION_DELIMITER = "\n---\n"


class _NoAnswer(enum.Enum):
    NO_ANSWER = "no_answer"


NO_ANSWER = _NoAnswer.NO_ANSWER
"""Returned by Answerer.ask when the provider produced no completion."""


class ChatProvider(Protocol):
    def complete(self, messages: Sequence[dict[str, str]]) -> List[str]: ...


class TokenCounter:
    """Counts tokens with tiktoken; the encoding is loaded on first use."""

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        self.encoding_name = encoding_name
        self._encoding: tiktoken.Encoding | None = None

    def __call__(self, text: str) -> int:
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self.encoding_name)
        return len(self._encoding.encode(text))


@dataclass(slots=True)
class ContextBlock:
    text: str
    token_count: int
    sections: List[SearchResult] = field(default_factory=list)


def assemble_context(
    sections: Sequence[SearchResult],
    *,
    count_tokens: Callable[[str], int],
    token_budget: int = DEFAULT_TOKEN_BUDGET,
) -> ContextBlock:
    """Admit ranked sections until the running token total reaches the budget.

    The section that makes the total reach or cross the budget is left out,
    as is everything ranked after it.
    """
    token_count = 0
    admitted: List[SearchResult] = []
    parts: List[str] = []
    for section in sections:
        tokens = count_tokens(section.content)
        if token_count + tokens >= token_budget:
            break
        token_count += tokens
        admitted.append(section)
        parts.append(section.content.strip() + SECTION_DELIMITER)
    return ContextBlock(text="".join(parts), token_count=token_count, sections=admitted)


def build_prompt(preamble: str, context: str, query: str) -> str:
    return (
        f"{preamble.strip()}\n"
        "\n"
        "Context sections:\n"
        f"{context.strip()}\n"
        "\n"
        'Question: """\n'
        f"{query}\n"
        '"""\n'
        "\n"
        "Answer:"
    )


class Answerer:
    """Answers a question from the notes through a chat-completion provider."""

    def __init__(
        self,
        searcher: Searcher,
        chat: ChatProvider,
        *,
        count_tokens: Callable[[str], int] | None = None,
    ) -> None:
        self.searcher = searcher
        self.chat = chat
        self.count_tokens = count_tokens or TokenCounter()

    def ask(
        self, query: str, config: AppConfig, *, public_only: bool = False
    ) -> str | Literal[_NoAnswer.NO_ANSWER]:
        query = query.strip()
        matches = self.searcher.search(query, config.generative_search, public_only=public_only)
        context = assemble_context(
            matches, count_tokens=self.count_tokens, token_budget=config.token_budget
        )
        LOGGER.info(
            "Answering with %d of %d section(s) (%d tokens)",
            len(context.sections),
            len(matches),
            context.token_count,
        )
        prompt = build_prompt(config.prompt_preamble, context.text, query)
        choices = self.chat.complete([{"role": "user", "content": prompt}])
        if not choices or not choices[0].strip():
            return NO_ANSWER
        return choices[0].strip()
