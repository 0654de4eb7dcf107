"""Legal citation lookup through the AI gateway."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List

from pydantic import ValidationError

from casedeck.slides.gateway import AIGateway
from casedeck.slides.schemas import CITATION_DETAILS, CITATION_SEARCH, WireCitation

logger = logging.getLogger(__name__)

MIN_QUERY_CHARS = 2

CITATION_SYSTEM_PROMPT = """You are a research assistant for Indian law.
Find constitutional articles, statutory sections, Acts and reported cases that
match the query. Prefer Supreme Court and High Court authorities and cite cases
as "Party v. Party, (Year) Volume Reporter Page". Give each result a relevance
score from 0 to 100. Use an empty string for unknown years or URLs; never
invent reporter citations."""

DETAILS_SYSTEM_PROMPT = """You are a research assistant for Indian law.
Explain the named authority: its full title, year, a short summary, why it
matters and the key legal principles it lays down. Be precise and concise."""


class CitationFinder:
    """Searches for and explains legal authorities."""

    def __init__(self, gateway: AIGateway) -> None:
        self.gateway = gateway

    async def search(self, query: str) -> Dict[str, Any]:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_CHARS:
            return {"query": query, "citations": [], "totalFound": 0, "searchTime": "0ms"}

        started = time.perf_counter()
        result = await self.gateway.invoke(
            f"Find legal citations for: {query}",
            system_prompt=CITATION_SYSTEM_PROMPT,
            schema=CITATION_SEARCH,
            temperature=0.3,
        )
        citations = self._valid_citations(result.get("citations", []))
        search_time = f"{int((time.perf_counter() - started) * 1000)}ms"
        logger.info(f"Found {len(citations)} citations for {query!r} in {search_time}")
        return {
            "query": result.get("query") or query,
            "citations": citations,
            "totalFound": len(citations),
            "searchTime": search_time,
        }

    async def details(self, name: str) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise ValueError("A citation name is required")
        return await self.gateway.invoke(
            f"Explain this legal authority: {name}",
            system_prompt=DETAILS_SYSTEM_PROMPT,
            schema=CITATION_DETAILS,
            temperature=0.3,
        )

    async def related(self, citation: str) -> Dict[str, Any]:
        return await self.search(f"related citations for {citation}")

    @staticmethod
    def _valid_citations(raw: List[Any]) -> List[Dict[str, Any]]:
        valid = []
        for item in raw:
            try:
                citation = WireCitation.model_validate(item)
            except ValidationError:
                continue
            if citation.name and citation.fullTitle and citation.summary:
                valid.append(citation.model_dump())
        return valid
