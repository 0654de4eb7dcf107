"""Pipeline wiring and the operations exposed to the UI layer."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from casedeck.config import Settings, get_settings
from casedeck.slides import analyzer
from casedeck.slides.cache import DeckCache, build_store
from casedeck.slides.citations import CitationFinder
from casedeck.slides.errors import TemplateNotFound
from casedeck.slides.gateway import AIGateway, build_gateway
from casedeck.slides.generator import SlideGenerator
from casedeck.slides.models import (
    CaseProfile,
    GenerationOptions,
    RefineOptions,
    SlideDeck,
    ValidationReport,
)
from casedeck.slides.refiner import Refiner
from casedeck.slides.validator import QualityValidator
from casedeck.templates.loader import TemplateRegistry, get_template_registry
from casedeck.templates.models import TemplateSummary

logger = logging.getLogger(__name__)


class SlidePipeline:
    """Composes analyzer, templates, cache, gateway, generator and refiner."""

    def __init__(
        self,
        settings: Settings | None = None,
        gateway: Optional[AIGateway] = None,
        cache: Optional[DeckCache] = None,
        templates: Optional[TemplateRegistry] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.templates = templates or get_template_registry(self.settings.templates_dir)
        self.cache = cache or DeckCache(build_store(self.settings), self.settings)
        self.validator = QualityValidator(self.settings)
        self._gateway = gateway

    @property
    def gateway(self) -> AIGateway:
        # Built on first use so analysis works without credentials.
        if self._gateway is None:
            self._gateway = build_gateway(self.settings)
        return self._gateway

    @property
    def generator(self) -> SlideGenerator:
        return SlideGenerator(
            self.gateway, self.cache, self.templates, self.validator, self.settings
        )

    @property
    def refiner(self) -> Refiner:
        return Refiner(self.gateway, self.validator, self.settings)

    @property
    def citations(self) -> CitationFinder:
        return CitationFinder(self.gateway)

    def analyze(self, text: str) -> CaseProfile:
        return analyzer.analyze(text)

    def list_templates(self) -> List[TemplateSummary]:
        return self.templates.list_summaries()

    def suggest_template(self, profile: CaseProfile) -> Optional[str]:
        return self.templates.suggest(profile)

    async def generate(
        self, text: str, options: Optional[GenerationOptions] = None
    ) -> SlideDeck:
        return await self.generator.generate_with_retry(text, options)

    async def refine(
        self,
        deck: SlideDeck | Dict[str, Any],
        instructions: str,
        options: Optional[RefineOptions] = None,
    ) -> SlideDeck:
        return await self.refiner.refine(deck, instructions, options)

    def validate(
        self,
        deck: SlideDeck,
        input_text: Optional[str] = None,
        desired_slide_count: Optional[int] = None,
        template: Optional[str] = None,
    ) -> ValidationReport:
        resolved = self.templates.get(template) if template else None
        if template and resolved is None:
            raise TemplateNotFound(
                f"Unknown template: {template}",
                available=self.templates.get_available_types(),
            )
        return self.validator.validate(deck, input_text, desired_slide_count, resolved)

    async def clear_cache(self) -> int:
        return await self.cache.clear()


_pipeline: Optional[SlidePipeline] = None


def get_pipeline() -> SlidePipeline:
    """Process-wide pipeline used as a FastAPI dependency."""
    global _pipeline
    if _pipeline is None:
        _pipeline = SlidePipeline()
        logger.info("Slide pipeline initialised")
    return _pipeline
