"""Heuristic analysis of free-text case descriptions.

Everything here is pure and deterministic: the same text always yields the
same profile, and malformed or empty text yields a well-formed empty one.
"""

from __future__ import annotations

import math
import re
from typing import Dict, List, Optional

from casedeck.config import Settings, get_settings
from casedeck.slides.models import (
    CaseProfile,
    CaseType,
    DetectedEntities,
    ElementFlags,
    InputCheck,
)


CASE_TYPE_KEYWORDS: Dict[str, List[str]] = {
    "constitutional": [
        "article",
        "constitution",
        "constitutional",
        "fundamental right",
        "constitutional validity",
        "judicial review",
        "writ",
        "habeas corpus",
        "mandamus",
        "certiorari",
        "basic structure",
        "unconstitutional",
        "right to privacy",
    ],
    "criminal": [
        "ipc",
        "crpc",
        "murder",
        "section 302",
        "section 307",
        "section 375",
        "accused",
        "prosecution",
        "witness",
        "eyewitness",
        "testimony",
        "forensic",
        "conviction",
        "acquittal",
        "bail",
        "fir",
        "charge sheet",
        "guilty",
    ],
    "civil": [
        "cpc",
        "contract",
        "breach",
        "damages",
        "specific performance",
        "injunction",
        "plaintiff",
        "defendant",
        "tort",
        "negligence",
        "property",
        "suit",
        "decree",
        "compensation",
        "liability",
    ],
    "procedural": [
        "jurisdiction",
        "appeal",
        "revision",
        "review petition",
        "limitation",
        "procedure",
        "pleading",
        "interim order",
        "stay",
    ],
}

# Completeness weight per element; sums to 100.
ELEMENT_WEIGHTS = {
    "has_facts": 20,
    "has_legal_issues": 20,
    "has_statutes": 20,
    "has_arguments": 15,
    "has_evidence": 10,
    "has_citations": 15,
}

SHORT_INPUT_CHARS = 200
SHORT_INPUT_PENALTY = 20

MOOT_KEYWORDS = ("moot", "submission", "prayer")

_ACTS = r"IPC|CrPC|CPC|IT Act|Evidence Act|Contract Act|Companies Act|NDPS Act|BNS|BNSS"

ARTICLE_RE = re.compile(
    r"\bArticles?\s+\d+[A-Z]?(?:\(\w+\))*(?:\s+of\s+the\s+Constitution)?",
    re.IGNORECASE,
)
SECTION_RE = re.compile(
    rf"\bSections?\s+\d+[A-Z]?(?:\(\w+\))*(?:\s*(?:-|to|and|/)\s*\d+[A-Z]?)?"
    rf"(?:\s*,?\s+(?:of\s+the\s+)?(?:{_ACTS})\b)?",
    re.IGNORECASE,
)
_PARTY = r"[A-Z][\w.&']*(?:\s+(?:of|and|the|for)\s+[A-Z][\w.&']*|\s+[A-Z][\w.&']*)*"
CASE_RE = re.compile(
    rf"\b{_PARTY}\s+(?:v\.?|vs\.?|versus)\s+{_PARTY}(?:\s*,?\s*\(\d{{4}}\)(?:\s+\d+\s+[A-Z]+\s+\d+)?)?"
)
YEAR_RE = re.compile(r"\((?:19|20)\d{2}\)")
DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")
TIME_RE = re.compile(r"\b\d{1,2}[:.]\d{2}\s*(?:am|pm)?\b", re.IGNORECASE)
PARTY_RE = re.compile(
    r"\b(?:petitioner|respondent|plaintiff|defendant|accused)[:\s]+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)"
)

FACTS_RE = re.compile(
    r"\b(?:facts?|events?|happened|occurred|incident|timeline|dated?|when|where|found|footage)\b",
    re.IGNORECASE,
)
ISSUES_RE = re.compile(
    r"\b(?:issues?|questions?|whether|challeng\w*|disputes?|matter|contentions?|grounds?"
    r"|violat\w*|breach\w*|infring\w*|unconstitutional|right to \w+)\b",
    re.IGNORECASE,
)
ARGUMENTS_RE = re.compile(
    r"\b(?:argu\w*|contentions?|submissions?|claim\w*|assert\w*|maintain\w*|plead\w*|contend\w*)\b",
    re.IGNORECASE,
)
EVIDENCE_RE = re.compile(
    r"\b(?:evidence|witness(?:es)?|eyewitness(?:es)?|testimony|forensic|documents?|exhibits?"
    r"|proof|cctv|fingerprints?|dna|post-?mortem|recover(?:y|ed))\b",
    re.IGNORECASE,
)
CITATION_WORDS_RE = re.compile(
    r"\b(?:judgments?|precedents?|landmark|held|ruled|decided|bench|scc|air)\b",
    re.IGNORECASE,
)


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(keyword)}(?:s|es)?\b")


_KEYWORD_PATTERNS = {
    case_type: [_keyword_pattern(keyword) for keyword in keywords]
    for case_type, keywords in CASE_TYPE_KEYWORDS.items()
}


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(item.strip() for item in items if item.strip()))


def detect_case_type(text: str) -> CaseType:
    """Pick the case type with the most keyword hits; ties and zero are general."""
    lowered = text.lower()
    scores = {
        case_type: sum(len(pattern.findall(lowered)) for pattern in patterns)
        for case_type, patterns in _KEYWORD_PATTERNS.items()
    }
    best = max(scores.values())
    if best == 0:
        return "general"
    leaders = [case_type for case_type, score in scores.items() if score == best]
    if len(leaders) > 1:
        return "general"
    return leaders[0]  # type: ignore[return-value]


def extract_entities(text: str) -> DetectedEntities:
    return DetectedEntities(
        articles=_unique(ARTICLE_RE.findall(text)),
        sections=_unique(SECTION_RE.findall(text)),
        cases=_unique(CASE_RE.findall(text)),
        years=_unique(YEAR_RE.findall(text)),
        parties=_unique(PARTY_RE.findall(text)),
    )


def analyze_elements(text: str, entities: DetectedEntities) -> ElementFlags:
    return ElementFlags(
        has_facts=bool(
            FACTS_RE.search(text)
            or entities.years
            or DATE_RE.search(text)
            or TIME_RE.search(text)
        ),
        has_legal_issues=bool(ISSUES_RE.search(text)),
        has_statutes=bool(entities.articles or entities.sections),
        has_arguments=bool(ARGUMENTS_RE.search(text)),
        has_evidence=bool(EVIDENCE_RE.search(text)),
        has_citations=bool(entities.cases or CITATION_WORDS_RE.search(text)),
    )


def completeness_score(elements: ElementFlags, length: int) -> int:
    score = sum(
        weight for name, weight in ELEMENT_WEIGHTS.items() if getattr(elements, name)
    )
    if length < SHORT_INPUT_CHARS:
        shortfall = (SHORT_INPUT_CHARS - length) / SHORT_INPUT_CHARS
        score -= math.ceil(SHORT_INPUT_PENALTY * shortfall)
    return max(0, min(100, score))


def _band(completeness: int, low: int, high: int, first: int, last: int) -> int:
    width = high - low + 1
    steps = last - first + 1
    return first + (completeness - low) * steps // width


def estimate_slide_count(completeness: int) -> int:
    if completeness < 40:
        count = 3
    elif completeness < 70:
        count = _band(completeness, 40, 69, 4, 5)
    elif completeness < 90:
        count = _band(completeness, 70, 89, 5, 7)
    else:
        count = _band(min(completeness, 100), 90, 100, 6, 8)
    return max(3, min(8, count))


def suggest_improvements(
    case_type: CaseType, elements: ElementFlags, completeness: int, length: int
) -> List[str]:
    suggestions: List[str] = []
    if not elements.has_facts:
        suggestions.append("Add the key facts: parties, events and dates")
    if not elements.has_legal_issues:
        suggestions.append("State the legal issues the court must decide")
    if not elements.has_statutes:
        if case_type == "criminal":
            suggestions.append("Add specific IPC sections")
        elif case_type == "constitutional":
            suggestions.append("Name the constitutional articles involved")
        else:
            suggestions.append("Reference the statutory provisions relied on")
    if not elements.has_arguments:
        suggestions.append("Include arguments from both sides")
    if not elements.has_evidence:
        suggestions.append("Describe the evidence on record")
    if not elements.has_citations:
        suggestions.append("Include at least one landmark citation")
    if completeness < 40 and length >= 100:
        suggestions.append("Provide more detail for a fuller presentation")
    return suggestions


def analyze(text: Optional[str]) -> CaseProfile:
    """Build a :class:`CaseProfile` for ``text``. Never raises."""
    if not isinstance(text, str) or not text.strip():
        return CaseProfile(
            suggestions=["Start by describing the case facts and legal issues"]
        )

    trimmed = text.strip()
    case_type = detect_case_type(trimmed)
    entities = extract_entities(trimmed)
    elements = analyze_elements(trimmed, entities)
    completeness = completeness_score(elements, len(trimmed))
    lowered = trimmed.lower()

    return CaseProfile(
        case_type=case_type,
        elements=elements,
        completeness=completeness,
        estimated_slide_count=estimate_slide_count(completeness),
        suggestions=suggest_improvements(case_type, elements, completeness, len(trimmed)),
        detected_entities=entities,
        input_length=len(trimmed),
        moot_signals=[word for word in MOOT_KEYWORDS if word in lowered],
    )


def validate_input(text: Optional[str], settings: Optional[Settings] = None) -> InputCheck:
    """Check ``text`` against the generation bounds without raising."""
    settings = settings or get_settings()
    profile = analyze(text)
    errors: List[str] = []
    warnings: List[str] = []

    length = profile.input_length
    if length < settings.input_min_chars:
        errors.append(
            f"Input too short (minimum {settings.input_min_chars} characters)"
        )
    if length > settings.input_max_chars:
        errors.append(f"Input too long (maximum {settings.input_max_chars} characters)")

    if length and profile.completeness < 30:
        warnings.append("Input lacks sufficient legal detail for quality slides")

    entities = profile.detected_entities
    if length and not (
        entities.articles
        or entities.sections
        or entities.cases
        or profile.elements.has_legal_issues
    ):
        warnings.append(
            "Consider adding legal references (articles, sections or case names)"
        )

    return InputCheck(
        valid=not errors, errors=errors, warnings=warnings, profile=profile
    )
