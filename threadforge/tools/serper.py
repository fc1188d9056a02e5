"""
Async Serper (Google search) client.

Posts ``{"q": query, "num": n}`` to ``{base_url}/search`` with the
``X-API-KEY`` header and returns the organic results that carry both a
title and a snippet.  Every failure (timeout, network error, non-2xx
status, malformed body) is raised as ``WebSearchError``; callers decide
whether search is best-effort.
"""

from typing import Any, List, Optional

import httpx

from threadforge.config import SerperConfig
from threadforge.exceptions import WebSearchError
from threadforge.logging import ComponentLogger, LogComponent
from threadforge.models import SearchResult


class SerperClient:
    """Thin wrapper around the Serper ``/search`` endpoint.

    Args:
        config: Serper settings. Search is unavailable without an API key.
        transport: Optional ``httpx`` transport (tests).
    """

    def __init__(
        self,
        config: Optional[SerperConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or SerperConfig()
        self._transport = transport
        self.log = ComponentLogger(LogComponent.SERPER)

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key.strip())

    @property
    def endpoint(self) -> str:
        base_url = self.config.base_url.strip() or "https://google.serper.dev"
        return base_url.rstrip("/") + "/search"

    async def search(self, query: str, num: int = 10) -> List[SearchResult]:
        """Run one Google search.

        Raises:
            WebSearchError: When the key is missing or the request fails.
        """
        if not self.is_configured:
            raise WebSearchError("Serper API key is not configured")

        async with self.log.timed(
            "Serper search", data={"query_chars": len(query), "num": num}
        ) as op:
            body = await self._post(query, num)
            results = self._parse_organic(body)
            op.data["results"] = len(results)
        return results

    async def _post(self, query: str, num: int) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self.endpoint,
                    headers={
                        "X-API-KEY": self.config.api_key,
                        "Content-Type": "application/json",
                    },
                    json={"q": query, "num": num},
                )
        except httpx.TimeoutException as exc:
            raise WebSearchError("Serper request timed out") from exc
        except httpx.TransportError as exc:
            raise WebSearchError(f"Serper network error: {exc}") from exc

        if response.is_error:
            raise WebSearchError(
                f"Serper API error {response.status_code}: {response.text[:300]}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise WebSearchError("Serper returned a non-JSON body") from exc

    @staticmethod
    def _parse_organic(body: Any) -> List[SearchResult]:
        organic = body.get("organic") if isinstance(body, dict) else None
        if not isinstance(organic, list):
            return []

        results: List[SearchResult] = []
        for item in organic:
            if not isinstance(item, dict):
                continue
            title = str(item.get("title") or "").strip()
            snippet = str(item.get("snippet") or "").strip()
            if title and snippet:
                results.append(SearchResult(title, snippet, str(item.get("link") or "")))
        return results
