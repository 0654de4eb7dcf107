from __future__ import annotations

"""Domain models shared across the slide pipeline."""

from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


CaseType = Literal["constitutional", "criminal", "civil", "procedural", "general"]
TemplateType = Literal[
    "constitutional_challenge",
    "criminal_prosecution",
    "civil_dispute",
    "moot_court",
    "case_brief",
]
BlockType = Literal["text", "quote", "callout", "timeline", "evidence", "twoColumn"]
CalloutKind = Literal["info", "warning", "success", "error"]
Severity = Literal["error", "warning", "info"]
IssueType = Literal["structure", "legal", "formatting", "relevance", "citation", "system"]

BLOCK_TYPES = ("text", "quote", "callout", "timeline", "evidence", "twoColumn")


class DeckModel(BaseModel):
    """Base for everything that travels as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class SlideContentModel(DeckModel):
    """Slide content; unknown fields from clients are carried through untouched."""

    model_config = ConfigDict(extra="allow")


# --- Blocks -----------------------------------------------------------------


class TextData(SlideContentModel):
    points: List[str] = Field(default_factory=list)


class TextBlock(SlideContentModel):
    type: Literal["text"] = "text"
    data: TextData = Field(default_factory=TextData)

    @classmethod
    def of(cls, *points: str) -> "TextBlock":
        return cls(data=TextData(points=list(points)))

    def strings(self) -> List[str]:
        return list(self.data.points)

    def is_empty(self) -> bool:
        return not any(point.strip() for point in self.data.points)

    def check(self) -> List[str]:
        # Point-count limits are scored by the validator directly.
        return []


class QuoteData(SlideContentModel):
    quote: str = ""
    citation: str = ""


class QuoteBlock(SlideContentModel):
    type: Literal["quote"] = "quote"
    data: QuoteData = Field(default_factory=QuoteData)

    @classmethod
    def of(cls, quote: str, citation: str) -> "QuoteBlock":
        return cls(data=QuoteData(quote=quote, citation=citation))

    def strings(self) -> List[str]:
        return [self.data.quote, self.data.citation]

    def is_empty(self) -> bool:
        return not self.data.quote.strip()

    def check(self) -> List[str]:
        problems = []
        if not self.data.quote.strip():
            problems.append("Quote block has no quoted text")
        if not self.data.citation.strip():
            problems.append("Quote block is missing its citation")
        return problems


class CalloutData(SlideContentModel):
    text: str = ""
    type: CalloutKind = "info"

    @field_validator("type", mode="before")
    @classmethod
    def coerce_kind(cls, value: Any) -> str:
        if value in ("info", "warning", "success", "error"):
            return value
        return "info"


class CalloutBlock(SlideContentModel):
    type: Literal["callout"] = "callout"
    data: CalloutData = Field(default_factory=CalloutData)

    @classmethod
    def of(cls, text: str, kind: str = "info") -> "CalloutBlock":
        return cls(data=CalloutData(text=text, type=kind))

    def strings(self) -> List[str]:
        return [self.data.text]

    def is_empty(self) -> bool:
        return not self.data.text.strip()

    def check(self) -> List[str]:
        return []


class TimelineEvent(SlideContentModel):
    date: str = ""
    title: str = ""
    description: Optional[str] = None


class TimelineData(SlideContentModel):
    events: List[TimelineEvent] = Field(default_factory=list)


class TimelineBlock(SlideContentModel):
    type: Literal["timeline"] = "timeline"
    data: TimelineData = Field(default_factory=TimelineData)

    @classmethod
    def of(cls, *events: tuple) -> "TimelineBlock":
        return cls(
            data=TimelineData(
                events=[
                    TimelineEvent(
                        date=event[0],
                        title=event[1],
                        description=event[2] if len(event) > 2 else None,
                    )
                    for event in events
                ]
            )
        )

    def strings(self) -> List[str]:
        parts = []
        for event in self.data.events:
            parts.extend([event.date, event.title, event.description or ""])
        return parts

    def is_empty(self) -> bool:
        return not self.data.events

    def check(self) -> List[str]:
        count = len(self.data.events)
        if count < 2 or count > 8:
            return [f"Timeline has {count} events (expected 2-8)"]
        return []


class EvidenceItem(SlideContentModel):
    label: str = ""
    description: str = ""


class EvidenceData(SlideContentModel):
    items: List[EvidenceItem] = Field(default_factory=list)


class EvidenceBlock(SlideContentModel):
    type: Literal["evidence"] = "evidence"
    data: EvidenceData = Field(default_factory=EvidenceData)

    @classmethod
    def of(cls, *items: tuple) -> "EvidenceBlock":
        return cls(
            data=EvidenceData(
                items=[EvidenceItem(label=label, description=desc) for label, desc in items]
            )
        )

    def strings(self) -> List[str]:
        parts = []
        for item in self.data.items:
            parts.extend([item.label, item.description])
        return parts

    def is_empty(self) -> bool:
        return not self.data.items

    def check(self) -> List[str]:
        count = len(self.data.items)
        if count < 1 or count > 6:
            return [f"Evidence block has {count} items (expected 1-6)"]
        return []


class TwoColumnData(SlideContentModel):
    left_title: str = ""
    left_points: List[str] = Field(default_factory=list)
    right_title: str = ""
    right_points: List[str] = Field(default_factory=list)


class TwoColumnBlock(SlideContentModel):
    type: Literal["twoColumn"] = "twoColumn"
    data: TwoColumnData = Field(default_factory=TwoColumnData)

    @classmethod
    def of(
        cls,
        left_title: str,
        left_points: List[str],
        right_title: str,
        right_points: List[str],
    ) -> "TwoColumnBlock":
        return cls(
            data=TwoColumnData(
                left_title=left_title,
                left_points=left_points,
                right_title=right_title,
                right_points=right_points,
            )
        )

    def strings(self) -> List[str]:
        data = self.data
        return [data.left_title, *data.left_points, data.right_title, *data.right_points]

    def is_empty(self) -> bool:
        return not (self.data.left_points or self.data.right_points)

    def check(self) -> List[str]:
        problems = []
        for side, points in (
            ("left", self.data.left_points),
            ("right", self.data.right_points),
        ):
            if len(points) < 1 or len(points) > 5:
                problems.append(
                    f"Two-column {side} side has {len(points)} points (expected 1-5)"
                )
        return problems


Block = Annotated[
    Union[TextBlock, QuoteBlock, CalloutBlock, TimelineBlock, EvidenceBlock, TwoColumnBlock],
    Field(discriminator="type"),
]


def block_text(block: Block) -> str:
    return " ".join(part for part in block.strings() if part)


# --- Slides and decks ---------------------------------------------------------


class Slide(SlideContentModel):
    title: str = ""
    subtitle: Optional[str] = None
    suggested_images: List[str] = Field(default_factory=list)
    blocks: List[Block] = Field(default_factory=list)
    modified: Optional[bool] = Field(default=None, alias="_modified")
    modified_at: Optional[str] = Field(default=None, alias="_modifiedAt")

    def text(self) -> str:
        return " ".join([self.title, *(block_text(block) for block in self.blocks)])


class ValidationIssue(DeckModel):
    severity: Severity
    type: IssueType
    message: str
    slide_index: Optional[int] = None
    block_index: Optional[int] = None
    suggestion: str = ""


class QualityScores(DeckModel):
    structure: int = 0
    legal_accuracy: int = 0
    formatting: int = 0
    relevance: int = 0


class QualityMetrics(DeckModel):
    avg_blocks_per_slide: float = 0.0
    avg_points_per_block: float = 0.0
    citation_count: int = 0
    legal_term_density: float = 0.0
    formatting_compliance: float = 0.0


class ValidationReport(DeckModel):
    valid: bool = False
    overall_score: int = 0
    scores: QualityScores = Field(default_factory=QualityScores)
    issues: List[ValidationIssue] = Field(default_factory=list)
    metrics: QualityMetrics = Field(default_factory=QualityMetrics)

    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]


class RefinementEntry(DeckModel):
    timestamp: str
    instructions: str
    target_slides: List[int] = Field(default_factory=list)
    preserved_slides: List[int] = Field(default_factory=list)
    duration: int = 0
    action: str = "general"
    changes_count: int = 0


class SlideDeck(DeckModel):
    title: str = "Untitled Presentation"
    total_slides: int = 0
    slides: List[Slide] = Field(default_factory=list)
    generated_at: Optional[str] = None
    input_length: Optional[int] = None
    generation_time: Optional[int] = None
    from_cache: bool = False
    requested_slide_count: Optional[int] = None
    template: Optional[str] = None
    validation: Optional[ValidationReport] = None
    refinement_history: Optional[List[RefinementEntry]] = None
    last_modified: Optional[str] = None

    @model_validator(mode="after")
    def sync_total(self) -> "SlideDeck":
        self.total_slides = len(self.slides)
        return self

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CacheRecord(DeckModel):
    fingerprint: int
    data: SlideDeck
    timestamp: int
    input_length: int


# --- Input analysis and request options ---------------------------------------


@dataclass(slots=True)
class ElementFlags:
    has_facts: bool = False
    has_legal_issues: bool = False
    has_statutes: bool = False
    has_arguments: bool = False
    has_evidence: bool = False
    has_citations: bool = False

    def present(self) -> int:
        return sum(
            [
                self.has_facts,
                self.has_legal_issues,
                self.has_statutes,
                self.has_arguments,
                self.has_evidence,
                self.has_citations,
            ]
        )


@dataclass(slots=True)
class DetectedEntities:
    articles: List[str] = field(default_factory=list)
    sections: List[str] = field(default_factory=list)
    cases: List[str] = field(default_factory=list)
    years: List[str] = field(default_factory=list)
    parties: List[str] = field(default_factory=list)


@dataclass(slots=True)
class CaseProfile:
    case_type: CaseType = "general"
    elements: ElementFlags = field(default_factory=ElementFlags)
    completeness: int = 0
    estimated_slide_count: int = 3
    suggestions: List[str] = field(default_factory=list)
    detected_entities: DetectedEntities = field(default_factory=DetectedEntities)
    input_length: int = 0
    moot_signals: List[str] = field(default_factory=list)


@dataclass(slots=True)
class InputCheck:
    valid: bool
    errors: List[str]
    warnings: List[str]
    profile: CaseProfile


@dataclass(slots=True)
class GenerationOptions:
    desired_slide_count: Optional[int] = None
    template: Optional[str] = None
    use_cache: bool = True
    temperature: Optional[float] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = None


@dataclass(slots=True)
class RefineOptions:
    preserve_slides: List[int] = field(default_factory=list)
    target_slides: Optional[List[int]] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
