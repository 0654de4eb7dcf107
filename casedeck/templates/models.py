"""Template data models for legal presentation scenarios."""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
import re


BlockTypeLiteral = Literal["text", "quote", "callout", "timeline", "evidence", "twoColumn"]
CaseTypeLiteral = Literal["constitutional", "criminal", "civil", "procedural", "general"]


class _TemplateModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class SlideRole(_TemplateModel):
    """Constraints for one mandatory slide in a template."""

    allowed_block_types: List[BlockTypeLiteral] = Field(
        ..., min_length=1, description="Block types this slide may use"
    )
    max_points: Optional[int] = Field(default=None, ge=1, le=6)
    require_citation: bool = Field(default=False)
    purpose: str = Field(default="", description="What the slide should convey")


class Template(_TemplateModel):
    """Complete template definition."""

    type: str = Field(..., description="Unique template identifier")
    version: str = Field(default="1.0.0", description="Semantic version")
    name: str = Field(..., description="Human-readable title")
    description: str = Field(..., description="Template description")
    icon: str = Field(default="")
    mandatory_slides: List[str] = Field(..., min_length=1)
    slide_structure: Dict[str, SlideRole] = Field(default_factory=dict)
    prompt_addendum: str = Field(..., description="Text appended to the system prompt")
    suggested_slide_count: int = Field(..., ge=3, le=8)
    expected_case_types: List[CaseTypeLiteral] = Field(default_factory=list)
    example_keywords: List[str] = Field(default_factory=list)
    use_cases: List[str] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def validate_semver(cls, v: str) -> str:
        """Validate semantic versioning format."""
        semver_pattern = r"^\d+\.\d+\.\d+(?:-[a-zA-Z0-9.-]+)?(?:\+[a-zA-Z0-9.-]+)?$"
        if not re.match(semver_pattern, v):
            raise ValueError(f"Invalid semantic version: {v}")
        return v

    @model_validator(mode="after")
    def structure_covers_mandatory_slides(self) -> "Template":
        missing = [
            role for role in self.mandatory_slides if role not in self.slide_structure
        ]
        if missing:
            raise ValueError(f"slideStructure missing roles: {', '.join(missing)}")
        return self


class TemplateSummary(_TemplateModel):
    """Summary information about a template for discovery."""

    type: str
    name: str
    description: str
    icon: str
    suggested_slide_count: int
    use_cases: List[str]
    example_keywords: List[str]


class TemplateMatch(_TemplateModel):
    """How well an analysed case fits a template."""

    template: str
    match_score: int = Field(..., ge=0, le=100)
    warnings: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
