"""Structured-output schemas exchanged with the language model.

Each descriptor pairs the JSON schema handed to the provider with a pydantic
model the gateway uses to confirm the reply conforms. Block payloads stay an
opaque object on the wire; the pipeline re-validates them per variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from casedeck.slides.models import BLOCK_TYPES


@dataclass(frozen=True)
class SchemaDescriptor:
    name: str
    json_schema: Dict[str, Any]
    model: Type[BaseModel]


# --- Slide deck -------------------------------------------------------------

SLIDE_BLOCK_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {
            "type": "string",
            "enum": list(BLOCK_TYPES),
            "description": "Block type",
        },
        "data": {"type": "object", "description": "Block-specific data"},
    },
    "required": ["type", "data"],
}

SLIDE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Slide title, no markdown"},
        "subtitle": {"type": "string", "description": "Slide subtitle"},
        "suggestedImages": {
            "type": "array",
            "description": "Up to two image search keywords",
            "items": {"type": "string"},
        },
        "blocks": {
            "type": "array",
            "description": "Content blocks on the slide",
            "items": SLIDE_BLOCK_SCHEMA,
        },
    },
    "required": ["title", "blocks"],
}

SLIDE_DECK_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Presentation title"},
        "totalSlides": {"type": "number", "description": "Total number of slides"},
        "slides": {
            "type": "array",
            "description": "Array of slides",
            "items": SLIDE_SCHEMA,
        },
    },
    "required": ["slides", "title", "totalSlides"],
}


class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore")


class WireBlock(_Wire):
    type: Literal["text", "quote", "callout", "timeline", "evidence", "twoColumn"]
    data: Dict[str, Any]


class WireSlide(_Wire):
    title: str
    subtitle: Optional[str] = None
    suggestedImages: List[str] = Field(default_factory=list)
    blocks: List[WireBlock]


class WireDeck(_Wire):
    title: str = ""
    totalSlides: Optional[float] = None
    slides: List[WireSlide]


# --- Citations --------------------------------------------------------------

CITATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"type": "string", "enum": ["article", "case", "act", "section"]},
        "name": {"type": "string", "description": "Short name, e.g. Article 21"},
        "year": {"type": "string", "description": "Year or empty string"},
        "fullTitle": {"type": "string", "description": "Full name or title"},
        "summary": {"type": "string", "description": "2-3 sentence summary"},
        "relevance": {"type": "number", "description": "Relevance score (0-100)"},
        "url": {"type": "string", "description": "URL or empty string"},
    },
    "required": ["type", "name", "fullTitle", "summary", "relevance"],
}

CITATION_SEARCH_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {"type": "string"},
        "citations": {"type": "array", "items": CITATION_SCHEMA},
        "totalFound": {"type": "number"},
    },
    "required": ["query", "citations", "totalFound"],
}

CITATION_DETAILS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "fullTitle": {"type": "string"},
        "year": {"type": "string"},
        "summary": {"type": "string"},
        "significance": {"type": "string"},
        "keyPrinciples": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["name", "fullTitle", "summary", "significance", "keyPrinciples"],
}


class WireCitation(_Wire):
    type: Literal["article", "case", "act", "section"]
    name: str = ""
    year: str = ""
    fullTitle: str = ""
    summary: str = ""
    relevance: float = 0
    url: str = ""


class WireCitationSearch(_Wire):
    query: str = ""
    citations: List[Dict[str, Any]]
    totalFound: Optional[float] = None


class WireCitationDetails(_Wire):
    name: str
    fullTitle: str
    year: str = ""
    summary: str
    significance: str
    keyPrinciples: List[str] = Field(default_factory=list)


SLIDE_DECK = SchemaDescriptor("slide_deck", SLIDE_DECK_SCHEMA, WireDeck)
CITATION_SEARCH = SchemaDescriptor(
    "citation_search_results", CITATION_SEARCH_SCHEMA, WireCitationSearch
)
CITATION_DETAILS = SchemaDescriptor(
    "citation_details", CITATION_DETAILS_SCHEMA, WireCitationDetails
)

REGISTRY: Dict[str, SchemaDescriptor] = {
    descriptor.name: descriptor
    for descriptor in (SLIDE_DECK, CITATION_SEARCH, CITATION_DETAILS)
}


def get_schema(name: str) -> SchemaDescriptor:
    return REGISTRY[name]
