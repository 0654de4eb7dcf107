"""
Quality validation for generated legal slide decks.

Four weighted sub-scores (structure, legal accuracy, formatting, relevance)
combine into an overall score. Template compliance, per-variant block checks
and citation-format checks add issues without moving any score.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Iterable, List, Optional, Tuple

from casedeck.config import Settings, get_settings
from casedeck.slides.analyzer import CASE_RE
from casedeck.slides.markup import Span, Tone, parse_spans, strip_markup
from casedeck.slides.models import (
    Block,
    QualityMetrics,
    QualityScores,
    Slide,
    SlideDeck,
    TextBlock,
    ValidationIssue,
    ValidationReport,
)
from casedeck.templates.models import Template

logger = logging.getLogger(__name__)

WEIGHTS = {"structure": 25, "legal_accuracy": 30, "formatting": 20, "relevance": 25}

DOCTRINE_RE = re.compile(
    r"\b(?:fundamental rights?|basic structure|natural justice|due process|judicial review"
    r"|writ jurisdiction|habeas corpus|mandamus|certiorari|quo warranto|mens rea|actus reus"
    r"|res judicata|stare decisis|ultra vires|bona fide|prima facie|ratio decidendi"
    r"|obiter dicta|audi alteram partem|burden of proof|beyond reasonable doubt"
    r"|right to privacy|right to life|equality before law|rule of law)\b",
    re.IGNORECASE,
)
OFFENCE_RE = re.compile(
    r"\b(?:murder|culpable homicide|rape|theft|robbery|dacoity|cheating|forgery"
    r"|defamation|contempt|kidnapping|extortion|criminal conspiracy|criminal breach of trust)\b",
    re.IGNORECASE,
)
VIOLATION_RE = re.compile(
    r"\b(?:violat\w*|breach\w*|illegal\w*|unconstitutional\w*|offences?|crimes?|infring\w*)\b",
    re.IGNORECASE,
)
ARTICLE_REF_RE = re.compile(r"\bArticles?\s+(\d+)[A-Z]?(?:\(\w+\))*", re.IGNORECASE)
SECTION_REF_RE = re.compile(
    r"\bSections?\s+(\d+)[A-Z]?(?:\(\w+\))*"
    r"(?:\s+(?:of\s+the\s+)?(IPC|CrPC|CPC|IT Act|Companies Act|Evidence Act|Contract Act|NDPS Act))?",
    re.IGNORECASE,
)
VALID_ARTICLE_RE = re.compile(
    r"^Articles?\s+\d{1,3}[A-Z]?(?:\(\d+\))?(?:\([a-z]+\))?$", re.IGNORECASE
)
VALID_SECTION_RE = re.compile(
    r"^Sections?\s+\d{1,3}[A-Z]?(?:\(\d+\))?(?:\([a-z]+\))?(?:\s+(?:of\s+the\s+)?[A-Z][A-Za-z ]+)?$",
    re.IGNORECASE,
)
YEAR_IN_CITATION_RE = re.compile(r"\b(?:18|19|20)\d{2}\b")

OVERVIEW_TITLE_RE = re.compile(r"overview|introduction|case", re.IGNORECASE)
FACTS_TITLE_RE = re.compile(r"facts?|background|events?", re.IGNORECASE)
ISSUES_TITLE_RE = re.compile(r"issues?|questions?|legal|law", re.IGNORECASE)

MAX_ARTICLE = 395
MAX_IPC_SECTION = 511
MAX_SECTION = 999

_ROLE_STOPWORDS = {"case", "and", "the", "for", "of"}
_PUNCTUATION_RE = re.compile(r"[^\w]+")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _issue(
    severity: str,
    kind: str,
    message: str,
    suggestion: str = "",
    slide_index: Optional[int] = None,
    block_index: Optional[int] = None,
) -> ValidationIssue:
    return ValidationIssue(
        severity=severity,
        type=kind,
        message=message,
        slide_index=slide_index,
        block_index=block_index,
        suggestion=suggestion,
    )


def _block_spans(block: Block) -> List[Span]:
    spans: List[Span] = []
    for part in block.strings():
        if part:
            spans.extend(parse_spans(part))
            spans.append(Span(Tone.PLAIN, " "))
    return spans


def _plain_text(block: Block) -> str:
    return " ".join(strip_markup(part) for part in block.strings() if part)


def _blocks(deck: SlideDeck) -> Iterable[Tuple[int, int, Block]]:
    for slide_index, slide in enumerate(deck.slides):
        for block_index, block in enumerate(slide.blocks):
            yield slide_index, block_index, block


def _role_words(role: str) -> List[str]:
    return [
        word
        for word in _PUNCTUATION_RE.split(role.lower())
        if len(word) > 2 and word not in _ROLE_STOPWORDS
    ] or [role.lower()]


def find_role_slide(deck: SlideDeck, role: str) -> Optional[int]:
    """Index of the first slide whose title names ``role``, if any."""
    words = _role_words(role)
    for index, slide in enumerate(deck.slides):
        title = strip_markup(slide.title).lower()
        if role.lower() in title or any(word in title for word in words):
            return index
    return None


class QualityValidator:
    """Scores a deck and lists what a reviewer would flag."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def validate(
        self,
        deck: SlideDeck,
        input_text: Optional[str] = None,
        desired_slide_count: Optional[int] = None,
        template: Optional[Template] = None,
    ) -> ValidationReport:
        if not deck.slides:
            return ValidationReport(
                valid=False,
                overall_score=0,
                issues=[
                    _issue(
                        "error",
                        "structure",
                        "Invalid slide deck: no slides",
                        "Regenerate the slide deck",
                    )
                ],
            )

        structure, structure_issues = self._score_structure(deck)
        legal, legal_issues = self._score_legal_accuracy(deck)
        formatting, formatting_issues = self._score_formatting(deck)
        relevance, relevance_issues = self._score_relevance(deck, input_text)

        scores = QualityScores(
            structure=round_half_up(structure),
            legal_accuracy=round_half_up(legal),
            formatting=round_half_up(formatting),
            relevance=round_half_up(relevance),
        )
        overall = round_half_up(
            (
                scores.structure * WEIGHTS["structure"]
                + scores.legal_accuracy * WEIGHTS["legal_accuracy"]
                + scores.formatting * WEIGHTS["formatting"]
                + scores.relevance * WEIGHTS["relevance"]
            )
            / 100
        )

        issues = [
            *structure_issues,
            *self._check_blocks(deck),
            *self._check_slide_count(deck, desired_slide_count),
            *self._check_template(deck, template),
            *legal_issues,
            *self._check_citations(deck),
            *formatting_issues,
            *relevance_issues,
        ]
        has_errors = any(issue.severity == "error" for issue in issues)

        report = ValidationReport(
            valid=overall >= self.settings.quality_threshold and not has_errors,
            overall_score=overall,
            scores=scores,
            issues=issues,
            metrics=self._metrics(deck),
        )
        logger.debug(
            f"Validated deck of {len(deck.slides)} slides: score={overall} "
            f"issues={len(issues)} valid={report.valid}"
        )
        return report

    # --- scored checks ----------------------------------------------------

    def _score_structure(self, deck: SlideDeck) -> Tuple[float, List[ValidationIssue]]:
        issues: List[ValidationIssue] = []
        score = 100.0
        count = len(deck.slides)
        min_slides, max_slides = self.settings.min_slides, self.settings.max_slides

        if count < min_slides:
            issues.append(
                _issue(
                    "error",
                    "structure",
                    f"Too few slides: {count} (minimum {min_slides})",
                    "Add more slides to cover all legal aspects",
                )
            )
            score -= 30
        elif count > max_slides:
            issues.append(
                _issue(
                    "warning",
                    "structure",
                    f"Too many slides: {count} (maximum {max_slides})",
                    "Consolidate content into fewer slides",
                )
            )
            score -= 15

        for index, slide in enumerate(deck.slides):
            if not slide.title.strip():
                issues.append(
                    _issue(
                        "error",
                        "structure",
                        f"Slide {index + 1}: Missing title",
                        "Add a clear, descriptive title",
                        slide_index=index,
                    )
                )
                score -= 10

            if not slide.blocks:
                issues.append(
                    _issue(
                        "error",
                        "structure",
                        f"Slide {index + 1}: No content blocks",
                        "Add at least one content block",
                        slide_index=index,
                    )
                )
                score -= 15
            elif len(slide.blocks) > 2:
                issues.append(
                    _issue(
                        "warning",
                        "structure",
                        f"Slide {index + 1}: Too many blocks ({len(slide.blocks)}, max 2)",
                        "Consolidate content into 1-2 blocks for clarity",
                        slide_index=index,
                    )
                )
                score -= 10

            for block_index, block in enumerate(slide.blocks):
                if not isinstance(block, TextBlock):
                    continue
                points = len(block.data.points)
                if points < 2 or points > 4:
                    bound = "few" if points < 2 else "many"
                    issues.append(
                        _issue(
                            "warning",
                            "structure",
                            f"Slide {index + 1}, Block {block_index + 1}: "
                            f"Too {bound} points ({points}, expected 2-4)",
                            "Keep text blocks to 2-4 concise points",
                            slide_index=index,
                            block_index=block_index,
                        )
                    )
                    score -= 5

        return max(0.0, score), issues

    def _score_legal_accuracy(self, deck: SlideDeck) -> Tuple[float, List[ValidationIssue]]:
        issues: List[ValidationIssue] = []
        term_count = 0
        formatted = 0

        for slide_index, block_index, block in _blocks(deck):
            spans = _block_spans(block)
            plain = "".join(span.text for span in spans)
            gold = [span.text.lower() for span in spans if span.tone is Tone.GOLD]
            red = [span.text.lower() for span in spans if span.tone is Tone.RED]

            for term in DOCTRINE_RE.findall(plain):
                term_count += 1
                if any(term.lower() in text for text in gold):
                    formatted += 1
                else:
                    issues.append(
                        _issue(
                            "info",
                            "legal",
                            f'Legal term "{term}" should be formatted in gold',
                            f"Use *{term}* for legal concepts",
                            slide_index,
                            block_index,
                        )
                    )

            for term in OFFENCE_RE.findall(plain):
                term_count += 1
                if any(term.lower() in text for text in red):
                    formatted += 1
                else:
                    issues.append(
                        _issue(
                            "info",
                            "legal",
                            f'Offence "{term}" should be formatted in red',
                            f"Use ~{term}~ for offences and violations",
                            slide_index,
                            block_index,
                        )
                    )

            issues.extend(self._absurd_references(plain, slide_index, block_index))

        score = 100.0
        if term_count:
            score = min(score, formatted / term_count * 100 + 20)
        errors = sum(1 for issue in issues if issue.severity == "error")
        score -= errors * 20
        return max(0.0, score), issues

    @staticmethod
    def _absurd_references(
        text: str, slide_index: int, block_index: int
    ) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for match in ARTICLE_REF_RE.finditer(text):
            number = int(match.group(1))
            if number == 0 or number > MAX_ARTICLE:
                issues.append(
                    _issue(
                        "error",
                        "legal",
                        f'Invalid article number: "{match.group(0)}"',
                        f"Verify article numbers (Constitution has Articles 1-{MAX_ARTICLE})",
                        slide_index,
                        block_index,
                    )
                )
        for match in SECTION_REF_RE.finditer(text):
            number = int(match.group(1))
            act = (match.group(2) or "").upper()
            if number == 0 or number > MAX_SECTION or (act == "IPC" and number > MAX_IPC_SECTION):
                issues.append(
                    _issue(
                        "error",
                        "legal",
                        f'Implausible section number: "{match.group(0)}"',
                        f"Verify section numbers (IPC runs 1-{MAX_IPC_SECTION})",
                        slide_index,
                        block_index,
                    )
                )
        return issues

    def _score_formatting(self, deck: SlideDeck) -> Tuple[float, List[ValidationIssue]]:
        issues: List[ValidationIssue] = []
        score = 100.0
        total_spans = 0
        correct_spans = 0

        for slide_index, block_index, block in _blocks(deck):
            for span in _block_spans(block):
                # Provisions belong in blue whatever colour they were given.
                if span.tone is not Tone.BLUE:
                    for match in (
                        *ARTICLE_REF_RE.finditer(span.text),
                        *SECTION_REF_RE.finditer(span.text),
                    ):
                        reference = match.group(0)
                        issues.append(
                            _issue(
                                "warning",
                                "formatting",
                                f'Reference "{reference}" should be formatted in blue',
                                f"Use _{reference}_ for statutory provisions",
                                slide_index,
                                block_index,
                            )
                        )
                        score -= 5
                if span.tone is Tone.PLAIN:
                    continue

                total_spans += 1
                if self._span_is_correct(span):
                    correct_spans += 1
                else:
                    issues.append(
                        _issue(
                            "info",
                            "formatting",
                            f'"{span.text}" may not need {span.tone.value} formatting',
                            _SPAN_HINTS[span.tone],
                            slide_index,
                            block_index,
                        )
                    )

        if total_spans:
            score = min(score, correct_spans / total_spans * 100)
        return max(0.0, score), issues

    @staticmethod
    def _span_is_correct(span: Span) -> bool:
        text = span.text
        if span.tone is Tone.GOLD:
            return bool(DOCTRINE_RE.search(text) or CASE_RE.search(text))
        if span.tone is Tone.RED:
            return bool(OFFENCE_RE.search(text) or VIOLATION_RE.search(text))
        return bool(ARTICLE_REF_RE.search(text) or SECTION_REF_RE.search(text))

    def _score_relevance(
        self, deck: SlideDeck, input_text: Optional[str]
    ) -> Tuple[float, List[ValidationIssue]]:
        issues: List[ValidationIssue] = []
        if not input_text:
            return 80.0, issues

        score = 100.0
        deck_text = strip_markup(" ".join(slide.text() for slide in deck.slides)).lower()
        words = [
            word
            for word in (
                _PUNCTUATION_RE.sub("", raw) for raw in input_text.lower().split()
            )
            if len(word) > 3
        ]
        if words:
            ratio = sum(1 for word in words if word in deck_text) / len(words)
            if ratio < 0.3:
                issues.append(
                    _issue(
                        "warning",
                        "relevance",
                        "Slides may not be closely related to input description",
                        "Ensure slides address the specific case details provided",
                    )
                )
                score -= 20

        titles = [strip_markup(slide.title) for slide in deck.slides]
        if not any(OVERVIEW_TITLE_RE.search(title) for title in titles):
            issues.append(
                _issue(
                    "warning",
                    "relevance",
                    "Missing case overview slide",
                    "Add a slide introducing the case and parties",
                )
            )
            score -= 15
        if not any(FACTS_TITLE_RE.search(title) for title in titles):
            issues.append(
                _issue(
                    "warning",
                    "relevance",
                    "Missing facts slide",
                    "Add a slide covering material facts",
                )
            )
            score -= 15
        if not any(ISSUES_TITLE_RE.search(title) for title in titles):
            issues.append(
                _issue(
                    "info",
                    "relevance",
                    "Consider adding legal issues slide",
                    "Add a slide framing the legal questions",
                )
            )
            score -= 5

        return max(0.0, score), issues

    # --- unscored checks --------------------------------------------------

    @staticmethod
    def _check_blocks(deck: SlideDeck) -> List[ValidationIssue]:
        issues = []
        for slide_index, block_index, block in _blocks(deck):
            for problem in block.check():
                issues.append(
                    _issue(
                        "warning",
                        "structure",
                        f"Slide {slide_index + 1}, Block {block_index + 1}: {problem}",
                        "Follow the block's size limits",
                        slide_index,
                        block_index,
                    )
                )
        return issues

    @staticmethod
    def _check_slide_count(
        deck: SlideDeck, desired_slide_count: Optional[int]
    ) -> List[ValidationIssue]:
        if desired_slide_count is None or len(deck.slides) == desired_slide_count:
            return []
        return [
            _issue(
                "warning",
                "structure",
                f"Requested {desired_slide_count} slides but deck has {len(deck.slides)}",
                "Regenerate or adjust the slide count",
            )
        ]

    @staticmethod
    def _check_template(deck: SlideDeck, template: Optional[Template]) -> List[ValidationIssue]:
        if template is None:
            return []
        issues = []
        for role in template.mandatory_slides:
            index = find_role_slide(deck, role)
            if index is None:
                issues.append(
                    _issue(
                        "info",
                        "structure",
                        f'Template "{template.type}" expects a "{role}" slide',
                        f"Add a slide titled {role}",
                    )
                )
                continue
            allowed = template.slide_structure[role].allowed_block_types
            slide: Slide = deck.slides[index]
            for block_index, block in enumerate(slide.blocks):
                if block.type not in allowed:
                    issues.append(
                        _issue(
                            "info",
                            "structure",
                            f'"{role}" slide uses a {block.type} block',
                            f"Use one of: {', '.join(allowed)}",
                            index,
                            block_index,
                        )
                    )
        return issues

    @staticmethod
    def _check_citations(deck: SlideDeck) -> List[ValidationIssue]:
        issues = []
        for slide_index, block_index, block in _blocks(deck):
            text = _plain_text(block)
            for match in ARTICLE_REF_RE.finditer(text):
                if not VALID_ARTICLE_RE.match(match.group(0).strip()):
                    issues.append(
                        _issue(
                            "warning",
                            "citation",
                            f'Invalid article citation format: "{match.group(0)}"',
                            'Use format: "Article 21" or "Article 19(1)(a)"',
                            slide_index,
                            block_index,
                        )
                    )
            for match in SECTION_REF_RE.finditer(text):
                if not VALID_SECTION_RE.match(match.group(0).strip()):
                    issues.append(
                        _issue(
                            "warning",
                            "citation",
                            f'Invalid section citation format: "{match.group(0)}"',
                            'Use format: "Section 302 IPC" or "Section 154 CrPC"',
                            slide_index,
                            block_index,
                        )
                    )
            for reference in CASE_RE.findall(text):
                if not YEAR_IN_CITATION_RE.search(reference):
                    issues.append(
                        _issue(
                            "info",
                            "citation",
                            f'Case citation missing year: "{reference}"',
                            'Include year and reporter: "Case v. Case, (2023) 1 SCC 1"',
                            slide_index,
                            block_index,
                        )
                    )
        return issues

    @staticmethod
    def _metrics(deck: SlideDeck) -> QualityMetrics:
        slides = len(deck.slides)
        blocks = 0
        points = 0
        citations = 0
        terms = 0
        spans = 0
        for _, _, block in _blocks(deck):
            blocks += 1
            if isinstance(block, TextBlock):
                points += len(block.data.points)
            text = _plain_text(block)
            citations += (
                len(ARTICLE_REF_RE.findall(text))
                + len(SECTION_REF_RE.findall(text))
                + len(CASE_RE.findall(text))
            )
            terms += len(DOCTRINE_RE.findall(text)) + len(OFFENCE_RE.findall(text))
            spans += sum(1 for span in _block_spans(block) if span.tone is not Tone.PLAIN)

        compliance = 0.0
        if spans and citations + terms:
            compliance = min(100.0, spans / (citations + terms) * 100)
        return QualityMetrics(
            avg_blocks_per_slide=round(blocks / slides, 2) if slides else 0.0,
            avg_points_per_block=round(points / blocks, 2) if points else 0.0,
            citation_count=citations,
            legal_term_density=round(terms / slides, 2) if slides else 0.0,
            formatting_compliance=round(compliance, 2),
        )


_SPAN_HINTS = {
    Tone.GOLD: "Use gold (*text*) only for legal concepts and case names",
    Tone.RED: "Use red (~text~) only for violations and offences",
    Tone.BLUE: "Use blue (_text_) only for statutory provisions",
}


def deck_stats(deck: SlideDeck) -> dict:
    """Summary counts for a deck, as shown alongside the editor."""
    histogram: dict = {}
    block_count = 0
    for _, _, block in _blocks(deck):
        block_count += 1
        histogram[block.type] = histogram.get(block.type, 0) + 1
    slides = len(deck.slides)
    return {
        "totalSlides": slides,
        "totalBlocks": block_count,
        "blockTypes": histogram,
        "avgBlocksPerSlide": round(block_count / slides, 2) if slides else 0.0,
        "generationTime": deck.generation_time,
        "inputLength": deck.input_length,
        "fromCache": deck.from_cache,
    }
