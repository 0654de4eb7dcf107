"""
Targeted refinement of an existing deck.

The model rewrites the whole deck but only slides in the effective target
set are copied back; preserved slides are never touched. The deck cache is
not consulted.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from casedeck.config import Settings, get_settings
from casedeck.slides.errors import EmptyInstructions, InvalidExistingDeck
from casedeck.slides.gateway import AIGateway
from casedeck.slides.generator import normalise_slide, reply_slides, utc_now
from casedeck.slides.models import RefineOptions, RefinementEntry, Slide, SlideDeck
from casedeck.slides.prompts import REFINEMENT_SYSTEM_PROMPT, build_refinement_prompt
from casedeck.slides.schemas import SLIDE_DECK
from casedeck.slides.validator import QualityValidator

logger = logging.getLogger(__name__)

# First match wins.
ACTION_PATTERNS = (
    ("add_detail", re.compile(r"add more|more detail|elaborate|expand on", re.IGNORECASE)),
    ("expand", re.compile(r"expand|make longer|more content", re.IGNORECASE)),
    ("condense", re.compile(r"condense|shorten|make shorter|reduce|simplify", re.IGNORECASE)),
    ("change_focus", re.compile(r"focus on|emphasi[sz]e|highlight|prioriti[sz]e", re.IGNORECASE)),
    ("add_missing", re.compile(r"\badd\b|include|missing", re.IGNORECASE)),
    ("reorder", re.compile(r"reorder|rearrange|\bmove\b|swap", re.IGNORECASE)),
    ("adjust_format", re.compile(r"format|style|colou?r|markdown", re.IGNORECASE)),
)
QUOTED_RE = re.compile(r'"([^"]+)"')
LEGAL_REFERENCE_RE = re.compile(r"Article \d+\w*|Section \d+\w*|[A-Z][a-z]+ v\. [A-Z][a-z]+")


@dataclass(slots=True)
class ParsedInstructions:
    action: str = "general"
    focus_keywords: List[str] = field(default_factory=list)


@dataclass(slots=True)
class SlideChange:
    type: str
    description: str
    slide_index: Optional[int] = None
    severity: str = "minor"


def parse_instructions(instructions: str) -> ParsedInstructions:
    action = next(
        (name for name, pattern in ACTION_PATTERNS if pattern.search(instructions)),
        "general",
    )
    keywords = QUOTED_RE.findall(instructions) + LEGAL_REFERENCE_RE.findall(instructions)
    return ParsedInstructions(action=action, focus_keywords=list(dict.fromkeys(keywords)))


def _content(slide: Slide) -> str:
    return slide.text()


def _difference_percent(before: str, after: str) -> int:
    before_words, after_words = set(before.lower().split()), set(after.lower().split())
    union = before_words | after_words
    if not union:
        return 0
    return round(len(before_words ^ after_words) / len(union) * 100)


def track_changes(original: SlideDeck, refined: SlideDeck) -> List[SlideChange]:
    """List what differs between two decks, slide by slide."""
    changes: List[SlideChange] = []
    if len(original.slides) != len(refined.slides):
        changes.append(
            SlideChange(
                "slide_count",
                f"Slide count changed from {len(original.slides)} to {len(refined.slides)}",
                severity="major",
            )
        )

    for index, (before, after) in enumerate(zip(original.slides, refined.slides)):
        if not after.modified:
            continue
        if before.title != after.title:
            changes.append(SlideChange("title", f"Slide {index + 1} title changed", index))
        if len(before.blocks) != len(after.blocks):
            changes.append(
                SlideChange(
                    "block_count",
                    f"Slide {index + 1} block count changed from "
                    f"{len(before.blocks)} to {len(after.blocks)}",
                    index,
                    "moderate",
                )
            )
        before_text, after_text = _content(before), _content(after)
        if before_text != after_text:
            percent = _difference_percent(before_text, after_text)
            changes.append(
                SlideChange(
                    "content",
                    f"Slide {index + 1} content modified ({percent}% changed)",
                    index,
                    "major" if percent > 50 else "moderate",
                )
            )
        if len(before.suggested_images) != len(after.suggested_images):
            changes.append(
                SlideChange("images", f"Slide {index + 1} image suggestions changed", index)
            )
    return changes


def _coerce_deck(existing: Any) -> SlideDeck:
    if isinstance(existing, SlideDeck):
        deck = existing
    else:
        try:
            deck = SlideDeck.model_validate(existing)
        except ValidationError as exc:
            raise InvalidExistingDeck(
                "Existing deck could not be read", problems=exc.error_count()
            ) from exc
    if not deck.slides:
        raise InvalidExistingDeck("Existing deck has no slides")
    return deck


def _indices(values: Optional[Sequence[int]], size: int) -> List[int]:
    if values is None:
        return list(range(size))
    return sorted({index for index in values if isinstance(index, int) and 0 <= index < size})


class Refiner:
    """Applies natural-language instructions to selected slides."""

    def __init__(
        self,
        gateway: AIGateway,
        validator: Optional[QualityValidator] = None,
        settings: Settings | None = None,
    ) -> None:
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.validator = validator or QualityValidator(self.settings)

    async def refine(
        self,
        existing: SlideDeck | Dict[str, Any],
        instructions: str,
        options: Optional[RefineOptions] = None,
    ) -> SlideDeck:
        options = options or RefineOptions()
        if not isinstance(instructions, str) or not instructions.strip():
            raise EmptyInstructions("Refinement instructions are required")
        original = _coerce_deck(existing)
        size = len(original.slides)

        preserved = _indices(options.preserve_slides, size)
        targets = [
            index
            for index in _indices(options.target_slides, size)
            if index not in preserved
        ]
        parsed = parse_instructions(instructions)
        logger.info(
            f"Refining deck ({parsed.action}): targets={targets} preserved={preserved}"
        )

        started = time.perf_counter()
        prompt = build_refinement_prompt(
            original, instructions, parsed.action, parsed.focus_keywords, targets, preserved
        )
        raw = await self.gateway.invoke(
            prompt,
            system_prompt=REFINEMENT_SYSTEM_PROMPT,
            schema=SLIDE_DECK,
            model=options.model,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
        )
        proposed = reply_slides(raw)

        refined = original.model_copy(deep=True)
        modified_at = utc_now()
        # Reply slot i replaces deck slot i; unusable slots keep the original.
        for index in targets:
            if index >= len(proposed):
                continue
            replacement = normalise_slide(proposed[index], self.settings)
            if replacement is None:
                logger.warning(f"Reply slide {index + 1} unusable, keeping original")
                continue
            replacement.modified = True
            replacement.modified_at = modified_at
            refined.slides[index] = replacement

        changes = track_changes(original, refined)
        duration = int((time.perf_counter() - started) * 1000)
        history = list(original.refinement_history or [])
        history.append(
            RefinementEntry(
                timestamp=modified_at,
                instructions=instructions,
                target_slides=targets,
                preserved_slides=preserved,
                duration=duration,
                action=parsed.action,
                changes_count=len(changes),
            )
        )
        refined.refinement_history = history
        refined.last_modified = modified_at
        refined.total_slides = len(refined.slides)
        refined.validation = self.validator.validate(refined)
        logger.info(f"Refinement applied {len(changes)} changes in {duration}ms")
        return refined
