# casedeck/api/schemas.py
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from casedeck.slides.models import (
    CaseProfile,
    GenerationOptions,
    InputCheck,
    RefineOptions,
    SlideDeck,
)


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        protected_namespaces=(), populate_by_name=True, extra="forbid"
    )


class TextRequestModel(_RequestModel):
    text: str = Field(..., description="Free-text case description.")


class GenerateRequestModel(_RequestModel):
    text: str = Field(..., description="Case description to turn into slides.")
    slide_count: Optional[int] = Field(default=None, alias="slideCount")
    template: Optional[str] = Field(default=None)
    use_cache: bool = Field(default=True, alias="useCache")
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    model: Optional[str] = Field(default=None)
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens", ge=100, le=8000)

    @field_validator("template", mode="before")
    @classmethod
    def blank_template_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_options(self) -> GenerationOptions:
        return GenerationOptions(
            desired_slide_count=self.slide_count,
            template=self.template,
            use_cache=self.use_cache,
            temperature=self.temperature,
            model=self.model,
            max_tokens=self.max_tokens,
        )


class RefineRequestModel(_RequestModel):
    # Kept loose so a malformed deck surfaces as invalid_existing_deck.
    deck: Any = Field(...)
    instructions: str = Field(default="")
    preserve_slides: List[int] = Field(default_factory=list, alias="preserveSlides")
    target_slides: Optional[List[int]] = Field(default=None, alias="targetSlides")
    model: Optional[str] = Field(default=None)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens", ge=100, le=8000)

    def to_options(self) -> RefineOptions:
        return RefineOptions(
            preserve_slides=list(self.preserve_slides),
            target_slides=None if self.target_slides is None else list(self.target_slides),
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )


class ValidateRequestModel(_RequestModel):
    deck: SlideDeck
    input: Optional[str] = Field(default=None)
    desired_slide_count: Optional[int] = Field(default=None, alias="desiredSlideCount")
    template: Optional[str] = Field(default=None)


class StatsRequestModel(_RequestModel):
    deck: SlideDeck


class CitationSearchRequestModel(_RequestModel):
    query: str = Field(default="")


class CitationDetailsRequestModel(_RequestModel):
    name: str = Field(..., min_length=1)


class CitationRelatedRequestModel(_RequestModel):
    citation: str = Field(..., min_length=1)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(key): _camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_camelize(item) for item in value]
    return value


def dataclass_payload(value: Any) -> Dict[str, Any]:
    """Render an analysis dataclass with the camelCase keys the UI expects."""
    if not is_dataclass(value):
        raise TypeError(f"Expected a dataclass instance, got {type(value).__name__}")
    return _camelize(asdict(value))


def analysis_payload(check: InputCheck) -> Dict[str, Any]:
    return {
        "profile": dataclass_payload(check.profile),
        "validation": {
            "valid": check.valid,
            "errors": list(check.errors),
            "warnings": list(check.warnings),
        },
    }


def profile_payload(profile: CaseProfile) -> Dict[str, Any]:
    return dataclass_payload(profile)
