"""Presentation templates for common legal scenarios."""

from casedeck.templates.loader import TemplateRegistry, get_template_registry
from casedeck.templates.models import SlideRole, Template, TemplateMatch, TemplateSummary

__all__ = [
    "SlideRole",
    "Template",
    "TemplateMatch",
    "TemplateSummary",
    "TemplateRegistry",
    "get_template_registry",
]
