"""Resource discovery outside the local catalog.

Uses the DuckDuckGo instant-answer API and pads the answer with links to
well-known learning sites, so a query always yields ``MAX_RESULTS`` items.
"""

import logging
from urllib.parse import quote, quote_plus

import httpx

from edulearn.config import settings
from edulearn.schemas.resource import WebSearchResult

logger = logging.getLogger(__name__)

MAX_RESULTS = 5
RELATED_TOPICS = 3


def curated_results(query: str) -> list[WebSearchResult]:
    q = quote_plus(query)
    slug = quote(query.lower())
    return [
        WebSearchResult(
            title=f"{query} - Free Online Course",
            link=f"https://www.coursera.org/search?query={q}",
            snippet=f"Find free and paid courses on {query} from top universities and companies worldwide.",
        ),
        WebSearchResult(
            title=f"{query} Tutorial for Beginners",
            link=f"https://www.udemy.com/topic/{slug}/",
            snippet=f"Step-by-step tutorials and courses on {query} for all skill levels.",
        ),
        WebSearchResult(
            title=f"{query} Documentation",
            link=f"https://developer.mozilla.org/en-US/search?q={q}",
            snippet=f"Official documentation and learning resources for {query} from MDN Web Docs.",
        ),
        WebSearchResult(
            title=f"{query} on GitHub",
            link=f"https://github.com/topics/{slug}",
            snippet=f"Explore open-source projects and code examples related to {query} on GitHub.",
        ),
        WebSearchResult(
            title=f"{query} Community Resources",
            link=f"https://stackoverflow.com/search?q={q}",
            snippet=f"Find answers, discussions, and community resources for {query} on Stack Overflow.",
        ),
    ]


def parse_instant_answer(query: str, data: dict) -> list[WebSearchResult]:
    results = []
    if data.get("Abstract"):
        results.append(WebSearchResult(
            title=data.get("Heading") or query,
            link=data.get("AbstractURL") or f"https://duckduckgo.com/?q={quote_plus(query)}",
            snippet=data["Abstract"],
        ))
    topics = data.get("RelatedTopics") if isinstance(data.get("RelatedTopics"), list) else []
    for topic in topics[:RELATED_TOPICS]:
        if not isinstance(topic, dict) or not topic.get("Text"):
            continue
        text = topic["Text"]
        results.append(WebSearchResult(
            title=text.split(" - ")[0] or text,
            link=topic.get("FirstURL") or f"https://duckduckgo.com/?q={quote_plus(text)}",
            snippet=text,
        ))
    return results


async def fetch_instant_answer(query: str, transport: httpx.AsyncBaseTransport | None = None) -> list[WebSearchResult]:
    params = {"q": query, "format": "json", "no_html": "1", "skip_disambig": "1"}
    try:
        async with httpx.AsyncClient(timeout=settings.web_search_timeout_seconds, transport=transport) as client:
            resp = await client.get(settings.web_search_url, params=params)
        if not resp.is_success:
            logger.warning("Web search returned %s", resp.status_code)
            return []
        data = resp.json()
    except (httpx.HTTPError, ValueError):
        logger.warning("Web search failed, using curated results", exc_info=True)
        return []
    return parse_instant_answer(query, data) if isinstance(data, dict) else []


async def search_web(query: str, transport: httpx.AsyncBaseTransport | None = None) -> dict:
    found = await fetch_instant_answer(query, transport)
    results = found + curated_results(query)[: max(0, MAX_RESULTS - len(found))]
    return {
        "success": True,
        "results": [r.model_dump() for r in results[:MAX_RESULTS]],
        "query": query,
        "source": "DuckDuckGo + Curated" if found else "Curated",
    }
