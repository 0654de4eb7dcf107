"""
Slide generation pipeline.

One ``generate`` call runs strictly in order: input checks, cache lookup,
prompt assembly, gateway call, normalisation, validation, at most one
quality regeneration, metadata, cache write. The only suspension points
are the cache and the gateway.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import anyio
from pydantic import TypeAdapter, ValidationError

from casedeck.config import Settings, get_settings
from casedeck.slides.cache import DeckCache
from casedeck.slides.errors import (
    InputTooLong,
    InputTooShort,
    InvalidSlideCount,
    NoSlidesGenerated,
    RETRYABLE_ERRORS,
    SchemaViolation,
    TemplateNotFound,
)
from casedeck.slides.gateway import AIGateway
from casedeck.slides.markup import strip_markup
from casedeck.slides.models import (
    Block,
    GenerationOptions,
    Slide,
    SlideDeck,
    TextBlock,
    ValidationReport,
)
from casedeck.slides.prompts import build_system_prompt, build_user_prompt
from casedeck.slides.schemas import SLIDE_DECK
from casedeck.slides.validator import QualityValidator
from casedeck.templates.loader import TemplateRegistry
from casedeck.templates.models import Template

logger = logging.getLogger(__name__)

_BLOCK_ADAPTER: TypeAdapter[Block] = TypeAdapter(Block)
_TITLE_MARKERS_RE = re.compile(r"[*_~#`]+")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def clean_title(title: Any) -> str:
    if not isinstance(title, str):
        return ""
    return " ".join(_TITLE_MARKERS_RE.sub("", strip_markup(title)).split())


def _normalise_block(raw: Any, max_points: int) -> Optional[Block]:
    try:
        block = _BLOCK_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        logger.debug(f"Dropping malformed block: {exc.error_count()} problems")
        return None
    if isinstance(block, TextBlock):
        points = [point.strip() for point in block.data.points if point.strip()]
        block.data.points = points[:max_points]
    if block.is_empty():
        return None
    return block


def reply_slides(raw: Any) -> List[Any]:
    raw_slides = raw.get("slides") if isinstance(raw, dict) else None
    if not raw_slides:
        raise NoSlidesGenerated("The model returned no slides")
    return list(raw_slides)


def normalise_slide(raw_slide: Any, settings: Settings) -> Optional[Slide]:
    """Clean one reply slide; None when it has no title or no usable blocks."""
    if not isinstance(raw_slide, dict):
        return None
    title = clean_title(raw_slide.get("title"))
    blocks = [
        block
        for block in (
            _normalise_block(item, settings.max_text_points)
            for item in raw_slide.get("blocks") or []
        )
        if block is not None
    ]
    if not title or not blocks:
        logger.debug(f"Unusable slide {title!r}")
        return None
    subtitle = raw_slide.get("subtitle")
    images = raw_slide.get("suggestedImages") or []
    return Slide(
        title=title,
        subtitle=subtitle.strip() if isinstance(subtitle, str) and subtitle.strip() else None,
        suggested_images=[str(image) for image in images][:2],
        blocks=blocks,
    )


def build_deck(raw: Dict[str, Any], settings: Settings) -> SlideDeck:
    """
    Turn a schema-conforming gateway reply into a clean deck.

    Titles lose any markdown, text blocks are capped, empty blocks and
    slides are dropped and the deck is truncated to the slide ceiling.
    """
    slides = [
        slide
        for slide in (normalise_slide(item, settings) for item in reply_slides(raw))
        if slide is not None
    ]

    if not slides:
        raise NoSlidesGenerated("The model returned no usable slides")

    if len(slides) > settings.max_slides:
        logger.warning(
            f"Generated {len(slides)} slides, truncating to {settings.max_slides}"
        )
        slides = slides[: settings.max_slides]

    return SlideDeck(
        title=clean_title(raw.get("title")) or "Untitled Presentation",
        slides=slides,
    )


class SlideGenerator:
    """Produces validated decks from case descriptions."""

    def __init__(
        self,
        gateway: AIGateway,
        cache: DeckCache,
        templates: TemplateRegistry,
        validator: Optional[QualityValidator] = None,
        settings: Settings | None = None,
    ) -> None:
        self.gateway = gateway
        self.cache = cache
        self.templates = templates
        self.settings = settings or get_settings()
        self.validator = validator or QualityValidator(self.settings)

    def check_request(
        self, text: Any, options: GenerationOptions
    ) -> Tuple[str, Optional[Template]]:
        """Validate inputs before any I/O; returns trimmed text and template."""
        settings = self.settings
        trimmed = text.strip() if isinstance(text, str) else ""
        if len(trimmed) < settings.input_min_chars:
            raise InputTooShort(
                f"Input too short (minimum {settings.input_min_chars} characters). "
                "Please provide more details.",
                length=len(trimmed),
                minimum=settings.input_min_chars,
            )
        if len(trimmed) > settings.input_max_chars:
            raise InputTooLong(
                f"Input too long (maximum {settings.input_max_chars} characters). "
                "Please summarize.",
                length=len(trimmed),
                maximum=settings.input_max_chars,
            )

        count = options.desired_slide_count
        if count is not None and not (
            isinstance(count, int)
            and not isinstance(count, bool)
            and settings.min_slides <= count <= settings.max_slides
        ):
            raise InvalidSlideCount(
                f"Slide count must be between {settings.min_slides} and {settings.max_slides}",
                requested=count,
            )

        template = None
        if options.template:
            template = self.templates.get(options.template)
            if template is None:
                raise TemplateNotFound(
                    f"Unknown template: {options.template}",
                    available=self.templates.get_available_types(),
                )
        return trimmed, template

    async def generate(
        self, text: str, options: Optional[GenerationOptions] = None
    ) -> SlideDeck:
        options = options or GenerationOptions()
        trimmed, template = self.check_request(text, options)

        if options.use_cache:
            cached = await self.cache.lookup(trimmed)
            if cached is not None:
                return cached

        started = time.perf_counter()
        temperature = (
            self.settings.llm_temperature
            if options.temperature is None
            else options.temperature
        )
        user_prompt = build_user_prompt(trimmed, options.desired_slide_count, template)

        deck = await self._draft(user_prompt, template, options, temperature, retry=False)
        report = self._validate(deck, trimmed, options, template)

        if report.overall_score < self.settings.quality_threshold:
            deck, report = await self._regenerate(
                deck, report, trimmed, user_prompt, template, options, temperature
            )

        if (
            options.desired_slide_count is not None
            and len(deck.slides) != options.desired_slide_count
        ):
            logger.warning(
                f"Requested {options.desired_slide_count} slides, "
                f"received {len(deck.slides)}"
            )

        deck.generated_at = utc_now()
        deck.input_length = len(trimmed)
        deck.generation_time = int((time.perf_counter() - started) * 1000)
        deck.from_cache = False
        deck.requested_slide_count = options.desired_slide_count
        deck.template = template.type if template else None
        deck.validation = report

        if options.use_cache:
            await self.cache.store(trimmed, deck)
        logger.info(
            f"Generated {deck.total_slides} slides in {deck.generation_time}ms "
            f"(score {report.overall_score})"
        )
        return deck

    async def generate_with_retry(
        self,
        text: str,
        options: Optional[GenerationOptions] = None,
        attempts: Optional[int] = None,
        backoff: Optional[float] = None,
    ) -> SlideDeck:
        """Retry transport failures and empty decks with linear backoff."""
        attempts = attempts or self.settings.transport_retry_attempts
        backoff = (
            self.settings.transport_retry_backoff_seconds if backoff is None else backoff
        )
        for attempt in range(1, attempts + 1):
            try:
                return await self.generate(text, options)
            except RETRYABLE_ERRORS as exc:
                if attempt == attempts:
                    raise
                logger.warning(
                    f"Attempt {attempt}/{attempts} failed ({exc.kind}), "
                    f"retrying in {attempt * backoff:.1f}s"
                )
                await anyio.sleep(attempt * backoff)
        raise AssertionError("unreachable")

    async def _draft(
        self,
        user_prompt: str,
        template: Optional[Template],
        options: GenerationOptions,
        temperature: float,
        retry: bool,
    ) -> SlideDeck:
        raw = await self.gateway.invoke(
            user_prompt,
            system_prompt=build_system_prompt(template, retry=retry),
            schema=SLIDE_DECK,
            model=options.model,
            temperature=temperature,
            max_tokens=options.max_tokens,
        )
        return build_deck(raw, self.settings)

    def _validate(
        self,
        deck: SlideDeck,
        trimmed: str,
        options: GenerationOptions,
        template: Optional[Template],
    ) -> ValidationReport:
        return self.validator.validate(
            deck,
            input_text=trimmed,
            desired_slide_count=options.desired_slide_count,
            template=template,
        )

    async def _regenerate(
        self,
        deck: SlideDeck,
        report: ValidationReport,
        trimmed: str,
        user_prompt: str,
        template: Optional[Template],
        options: GenerationOptions,
        temperature: float,
    ) -> Tuple[SlideDeck, ValidationReport]:
        retry_temperature = max(
            self.settings.retry_temperature_floor,
            temperature - self.settings.retry_temperature_step,
        )
        logger.info(
            f"Score {report.overall_score} below {self.settings.quality_threshold}, "
            f"regenerating at temperature {retry_temperature:.2f}"
        )
        try:
            retry_deck = await self._draft(
                user_prompt, template, options, retry_temperature, retry=True
            )
        except (SchemaViolation, NoSlidesGenerated) as exc:
            logger.warning(f"Regeneration unusable ({exc.kind}), keeping first draft")
            return deck, report

        retry_report = self._validate(retry_deck, trimmed, options, template)
        if retry_report.overall_score > report.overall_score:
            logger.info(
                f"Keeping regenerated deck ({retry_report.overall_score} > {report.overall_score})"
            )
            return retry_deck, retry_report
        logger.info(
            f"Keeping first draft ({report.overall_score} >= {retry_report.overall_score})"
        )
        return deck, report
