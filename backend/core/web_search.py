"""Firecrawl web search client."""
from typing import Any, Dict, List

import requests
from fastapi.concurrency import run_in_threadpool

from core.config import settings
from core.exceptions import WebSearchError
from core.logger import get_logger

logger = get_logger("web_search")


def _search(query: str, limit: int) -> List[Dict[str, Any]]:
    if not settings.firecrawl_api_key:
        raise WebSearchError("FIRECRAWL_API_KEY is not configured", status_code=500)

    try:
        resp = requests.post(
            settings.firecrawl_search_url,
            json={
                "query": query,
                "limit": limit,
                "scrapeOptions": {"formats": ["markdown"]},
            },
            headers={
                "Authorization": f"Bearer {settings.firecrawl_api_key}",
                "Content-Type": "application/json",
            },
            timeout=settings.http_timeout_seconds,
        )
    except requests.RequestException as e:
        logger.error("Search request failed: %s", e)
        raise WebSearchError("Search service unreachable", status_code=502) from e

    if resp.status_code >= 400:
        logger.error("Search error %s: %s", resp.status_code, resp.text)
        raise WebSearchError(f"Search failed: {resp.status_code}", status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError as e:
        raise WebSearchError("Search service returned invalid JSON", status_code=502) from e
    return list(data.get("data") or [])


async def search(query: str, limit: int = 5) -> List[Dict[str, Any]]:
    """Run a web search and return result dicts (url, title, description, markdown)."""
    logger.info("Searching: %s", query)
    return await run_in_threadpool(_search, query, limit)
