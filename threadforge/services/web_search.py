"""
Web research for thread generation.

``research(topic)`` chains three steps:

1. the light model turns the topic into 2-3 Google queries,
2. the queries run against Serper in parallel,
3. the light model condenses the de-duplicated results into plain-text
   research notes that are pasted into the generation prompt.

Research is best-effort: search failures yield no results and any other
failure yields an empty context, so generation never fails because of it.
"""

import asyncio
import json
import logging
from typing import Iterable, List, Optional, Sequence

from threadforge.config import XaiConfig
from threadforge.exceptions import ChatCompletionError, RetryExhaustedError, WebSearchError
from threadforge.logging import ComponentLogger, LogComponent
from threadforge.models import ChatOptions, SearchResult
from threadforge.tools.serper import SerperClient
from threadforge.tools.xai_client import XaiChatClient, system_and_user
from threadforge.utils import strip_code_fences

logger = logging.getLogger(__name__)

MAX_QUERIES = 3
MAX_RESULTS = 15

QUERY_SYSTEM_PROMPT = """You are a search query optimizer. Given a topic, generate 2-3 Google search queries
that will find the most relevant, recent, and factual information about the topic.

Focus on queries that will surface:
- Recent statistics and data
- Expert opinions and analysis
- Trends and developments
- Concrete examples and case studies

OUTPUT FORMAT: Return ONLY valid JSON:
{"queries":["query1","query2","query3"]}

No markdown, no explanations outside the JSON."""

SYNTHESIS_SYSTEM_PROMPT = """You are a research analyst. Given a topic and a set of web search results (titles + snippets),
extract and organize the most useful information for writing a compelling Twitter thread.

Your synthesis must include (when available):
- KEY FACTS & STATISTICS: Specific numbers, percentages, dates
- TRENDS & INSIGHTS: What's changing, emerging patterns
- CONTRARIAN VIEWS: Debates, opposing perspectives
- CONCRETE EXAMPLES: Real companies, people, case studies
- NOTABLE SOURCES: Which sources are most authoritative

Be concise and factual. Organize with clear headings.
Do NOT write a thread, just provide structured raw material.
Output plain text with clear section headings."""


class WebSearchService:
    """Query generation, Serper search and synthesis.

    Args:
        chat_client: Anything with ``create_chat_completion`` (normally
            ``XaiChatClient``).
        search_client: Anything with ``search`` and ``is_configured``
            (normally ``SerperClient``).
        config: Supplies the light model name.
    """

    def __init__(
        self,
        chat_client: XaiChatClient,
        search_client: SerperClient,
        config: Optional[XaiConfig] = None,
    ) -> None:
        self.chat = chat_client
        self.search_client = search_client
        self.config = config or XaiConfig()
        self.log = ComponentLogger(LogComponent.WEB_SEARCH)

    @property
    def is_available(self) -> bool:
        return self.search_client.is_configured

    async def generate_search_queries(self, topic: str) -> List[str]:
        """Ask the light model for up to three queries; falls back to ``[topic]``."""
        result = await self.chat.create_chat_completion(
            self.config.effective_light_model,
            system_and_user(
                QUERY_SYSTEM_PROMPT,
                f"Generate optimized Google search queries for this topic: {topic}",
            ),
            ChatOptions(temperature=0.3, max_tokens=200, json_mode=True),
        )

        queries = _parse_queries(result.content)
        if queries:
            await self.log.info(
                "Generated search queries",
                data={"count": len(queries), "topic_chars": len(topic)},
            )
            return queries

        await self.log.warning("Falling back to raw topic as search query")
        return [topic]

    async def search(self, query: str) -> List[SearchResult]:
        """Organic results for one query; ``[]`` on any search failure."""
        if not self.search_client.is_configured:
            await self.log.warning("Serper API key is not configured. Skipping web search.")
            return []

        try:
            results = await self.search_client.search(query, num=10)
        except WebSearchError as exc:
            await self.log.warning(
                "Web search failed", error=exc, data={"query_chars": len(query)}
            )
            return []

        await self.log.info(
            "Web search completed", data={"query_chars": len(query), "results": len(results)}
        )
        return results

    async def synthesize(self, topic: str, results: Sequence[SearchResult]) -> str:
        """Condense results into research notes; ``""`` when there are none."""
        if not results:
            return ""

        lines = [f"Topic: {topic}", "", "SEARCH RESULTS:", ""]
        for item in results:
            lines.extend(
                [f"Title: {item.title}", f"Snippet: {item.snippet}", f"Source: {item.link}", ""]
            )
        lines.append(
            "Please synthesize the above search results into structured research context."
        )

        result = await self.chat.create_chat_completion(
            self.config.effective_light_model,
            system_and_user(SYNTHESIS_SYSTEM_PROMPT, "\n".join(lines)),
            ChatOptions(temperature=0.3, max_tokens=1500, json_mode=False),
        )

        await self.log.info(
            "Research synthesis completed",
            data={"chars": len(result.content), "total_tokens": result.total_tokens},
        )
        return result.content.strip()

    async def research(self, topic: str) -> str:
        """Run the whole pipeline. Any failure is logged and gives ``""``."""
        try:
            queries = await self.generate_search_queries(topic)
            batches = await asyncio.gather(*(self.search(q) for q in queries))
            results = dedupe_results(r for batch in batches for r in batch)
            return await self.synthesize(topic, results)
        except (ChatCompletionError, RetryExhaustedError) as exc:
            await self.log.warning("Web research failed; continuing without it", error=exc)
            return ""


def _parse_queries(raw: str) -> List[str]:
    try:
        data = json.loads(strip_code_fences(raw))
    except (json.JSONDecodeError, TypeError):
        logger.warning("Failed to parse search queries from model response")
        return []

    queries = data.get("queries") if isinstance(data, dict) else None
    if not isinstance(queries, list):
        return []
    return [q.strip() for q in queries if isinstance(q, str) and q.strip()][:MAX_QUERIES]


def dedupe_results(results: Iterable[SearchResult], limit: int = MAX_RESULTS) -> List[SearchResult]:
    """Keep the first result per link (results without a link are kept), up to *limit*."""
    seen = set()
    unique: List[SearchResult] = []
    for item in results:
        key = item.link.strip().lower()
        if key and key in seen:
            continue
        if key:
            seen.add(key)
        unique.append(item)
        if len(unique) >= limit:
            break
    return unique
