"""Tests for citation lookup."""

import pytest

from casedeck.slides.citations import CitationFinder
from casedeck.slides.errors import SchemaViolation
from casedeck.slides.gateway import AIGateway

from conftest import FakeProvider, make_settings

PUTTASWAMY = {
    "type": "case",
    "name": "Puttaswamy",
    "year": "2017",
    "fullTitle": "K.S. Puttaswamy v. Union of India, (2017) 10 SCC 1",
    "summary": "Recognised privacy as a fundamental right.",
    "relevance": 97,
    "url": "",
}


def _finder(*replies):
    provider = FakeProvider(*replies)
    return CitationFinder(AIGateway(provider, make_settings())), provider


@pytest.mark.anyio
@pytest.mark.parametrize("query", ["", " ", "a"])
async def test_short_query_skips_the_model(query):
    finder, provider = _finder()

    result = await finder.search(query)

    assert result["citations"] == []
    assert result["totalFound"] == 0
    assert provider.calls == []


@pytest.mark.anyio
async def test_search_filters_incomplete_entries():
    reply = {
        "query": "right to privacy",
        "citations": [
            PUTTASWAMY,
            {**PUTTASWAMY, "type": "statute"},
            {**PUTTASWAMY, "summary": ""},
            {"name": "Article 21"},
        ],
        "totalFound": 4,
    }
    finder, provider = _finder(reply)

    result = await finder.search("  right to privacy ")

    assert result["query"] == "right to privacy"
    assert result["totalFound"] == 1
    assert result["citations"][0]["fullTitle"].startswith("K.S. Puttaswamy")
    assert result["searchTime"].endswith("ms")
    assert provider.calls[0]["temperature"] == 0.3
    assert provider.calls[0]["schema"] == "citation_search_results"


@pytest.mark.anyio
async def test_related_searches_by_citation():
    finder, provider = _finder({"citations": [], "totalFound": 0})

    result = await finder.related("Article 21")

    assert "Article 21" in provider.calls[0]["user_prompt"]
    assert result["totalFound"] == 0


@pytest.mark.anyio
async def test_details():
    reply = {
        "name": "Article 21",
        "fullTitle": "Protection of life and personal liberty",
        "year": "1950",
        "summary": "No person shall be deprived of life or liberty except by law.",
        "significance": "Foundation of due process jurisprudence.",
        "keyPrinciples": ["Procedure must be fair, just and reasonable"],
    }
    finder, provider = _finder(reply)

    result = await finder.details("Article 21")

    assert result["significance"].startswith("Foundation")
    assert provider.calls[0]["schema"] == "citation_details"


@pytest.mark.anyio
async def test_details_requires_a_name():
    finder, _ = _finder()
    with pytest.raises(ValueError):
        await finder.details("  ")


@pytest.mark.anyio
async def test_details_reply_must_conform():
    finder, _ = _finder({"name": "Article 21"})
    with pytest.raises(SchemaViolation):
        await finder.details("Article 21")
