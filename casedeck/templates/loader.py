"""Template loading and registry management."""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError

from casedeck.slides.models import CaseProfile
from casedeck.templates.models import Template, TemplateMatch, TemplateSummary

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "data"

CASE_TYPE_TEMPLATES: Mapping[str, Optional[str]] = MappingProxyType(
    {
        "constitutional": "constitutional_challenge",
        "criminal": "criminal_prosecution",
        "civil": "civil_dispute",
        "procedural": "civil_dispute",
        "general": None,
    }
)


class TemplateRegistry:
    """Registry for managing loaded templates."""

    def __init__(self) -> None:
        self._templates: Dict[str, Template] = {}
        self._loaded = False

    def load_from_directory(self, templates_dir: str | Path) -> None:
        """
        Load all YAML templates from the specified directory.

        Args:
            templates_dir: Path to directory containing template YAML files

        Raises:
            ValidationError: If a template fails validation
        """
        templates_path = Path(templates_dir)
        if not templates_path.exists():
            logger.warning(f"Templates directory not found: {templates_dir}")
            return

        if not templates_path.is_dir():
            logger.error(f"Templates path is not a directory: {templates_dir}")
            return

        loaded_templates = []
        for yaml_file in sorted(templates_path.glob("*.yaml")):
            try:
                with open(yaml_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)

                if not data:
                    logger.warning(f"Empty template file: {yaml_file}")
                    continue

                template = Template.model_validate(data)
                self._templates[template.type] = template
                loaded_templates.append(f"{template.type}@{template.version}")
                logger.debug(f"Loaded template: {template.type} from {yaml_file}")

            except yaml.YAMLError as e:
                logger.error(f"YAML parse error in {yaml_file}: {e}")
                raise
            except ValidationError as e:
                logger.error(f"Validation error in {yaml_file}: {e}")
                raise

        self._loaded = True
        if loaded_templates:
            logger.info(f"Templates loaded: {', '.join(loaded_templates)}")
        else:
            logger.info("No templates loaded")

    def get(self, template_type: str) -> Optional[Template]:
        """Get a template by type, or None when unknown."""
        return self._templates.get(template_type)

    def list(self) -> List[Template]:
        """All templates, ordered by type name."""
        return [self._templates[key] for key in sorted(self._templates)]

    def list_summaries(self) -> List[TemplateSummary]:
        """
        Get summary information about all loaded templates.

        Returns:
            List of template summaries
        """
        return [self.metadata(key) for key in self.get_available_types()]

    def metadata(self, template_type: str) -> Optional[TemplateSummary]:
        """Display metadata for one template, or None when unknown."""
        template = self.get(template_type)
        if template is None:
            return None
        return TemplateSummary(
            type=template.type,
            name=template.name,
            description=template.description,
            icon=template.icon,
            suggested_slide_count=template.suggested_slide_count,
            use_cases=list(template.use_cases),
            example_keywords=list(template.example_keywords),
        )

    def get_available_types(self) -> List[str]:
        """Get list of available template types."""
        return sorted(self._templates)

    def suggest(self, profile: CaseProfile) -> Optional[str]:
        """
        Recommend a template type for an analysed case.

        Strong case-type signals map straight to their template. Otherwise a
        cited judgment suggests a case brief, and moot vocabulary suggests the
        moot court format.
        """
        suggested = CASE_TYPE_TEMPLATES.get(profile.case_type)
        if suggested is not None:
            return suggested if suggested in self._templates else None

        if profile.detected_entities.cases and "case_brief" in self._templates:
            return "case_brief"
        if profile.moot_signals and "moot_court" in self._templates:
            return "moot_court"
        return None

    def validate_match(self, template_type: str, profile: CaseProfile) -> Optional[TemplateMatch]:
        """Score how well ``profile`` fits a template; None if the type is unknown."""
        template = self.get(template_type)
        if template is None:
            return None

        warnings: List[str] = []
        suggestions: List[str] = []
        expected = template.expected_case_types
        type_matches = profile.case_type in expected

        if expected and not type_matches:
            warnings.append(
                f"This template is designed for {'/'.join(expected)} cases, "
                f"but your input appears to be a {profile.case_type} case."
            )

        elements = profile.elements
        if template_type == "constitutional_challenge":
            if not elements.has_statutes:
                suggestions.append(
                    "Include constitutional articles (e.g., Article 14, Article 21)"
                )
            if not elements.has_arguments:
                suggestions.append("Add grounds of challenge and legal arguments")
        elif template_type == "criminal_prosecution":
            if not elements.has_evidence:
                suggestions.append(
                    "Include evidence details (forensic, eyewitness, documentary)"
                )
            if not elements.has_statutes:
                suggestions.append("Mention IPC sections and charges")
        elif template_type == "civil_dispute":
            if not elements.has_arguments:
                suggestions.append("Set out the plaintiff's and defendant's positions")
        elif template_type == "moot_court":
            if not elements.has_legal_issues:
                suggestions.append("Frame the issues raised for the moot")
        elif template_type == "case_brief":
            if not elements.has_citations:
                suggestions.append("Include case citation and court details")
            if not elements.has_legal_issues:
                suggestions.append("Frame the legal issue(s) clearly")

        score = 50
        if type_matches:
            score += 20
        score += min(elements.present() * 5, 30)

        return TemplateMatch(
            template=template_type,
            match_score=min(score, 100),
            warnings=warnings,
            suggestions=suggestions,
        )

    def is_loaded(self) -> bool:
        """Check if templates have been loaded."""
        return self._loaded

    def clear(self) -> None:
        """Clear all loaded templates."""
        self._templates.clear()
        self._loaded = False


# Global registry instance
_registry: Optional[TemplateRegistry] = None


def get_template_registry(templates_dir: str | Path | None = None) -> TemplateRegistry:
    """Get the global template registry, loading the bundled templates on first use."""
    global _registry
    if _registry is None:
        _registry = TemplateRegistry()
        _registry.load_from_directory(templates_dir or DEFAULT_TEMPLATES_DIR)
    return _registry


def reload_templates(templates_dir: str | Path) -> None:
    """
    Reload templates from directory.

    Args:
        templates_dir: Path to templates directory
    """
    registry = get_template_registry()
    registry.clear()
    registry.load_from_directory(templates_dir)
