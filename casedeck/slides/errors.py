"""Typed failures raised by the slide pipeline.

Every error carries a stable ``kind`` string that the HTTP layer and any
telemetry can rely on, plus the status code the API answers with.
"""

from __future__ import annotations

from typing import Any, Dict


class CaseDeckError(Exception):
    kind = "casedeck_error"
    status_code = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.kind, "details": self.message, **self.details}


class InputTooShort(CaseDeckError):
    kind = "input_too_short"
    status_code = 400


class InputTooLong(CaseDeckError):
    kind = "input_too_long"
    status_code = 400


class InvalidSlideCount(CaseDeckError):
    kind = "invalid_slide_count"
    status_code = 400


class EmptyInstructions(CaseDeckError):
    kind = "empty_instructions"
    status_code = 400


class InvalidExistingDeck(CaseDeckError):
    kind = "invalid_existing_deck"
    status_code = 400


class TemplateNotFound(CaseDeckError):
    kind = "unknown_template"
    status_code = 400


class NoSlidesGenerated(CaseDeckError):
    kind = "no_slides_generated"
    status_code = 502


class SchemaViolation(CaseDeckError):
    kind = "schema_violation"
    status_code = 502


class TransportFailure(CaseDeckError):
    kind = "transport_failure"
    status_code = 502


class BudgetExceeded(CaseDeckError):
    kind = "budget_exceeded"
    status_code = 429


class RateLimited(CaseDeckError):
    kind = "rate_limited"
    status_code = 429


class MisconfiguredCredentials(CaseDeckError):
    kind = "misconfigured"
    status_code = 503


INPUT_ERRORS = (
    InputTooShort,
    InputTooLong,
    InvalidSlideCount,
    EmptyInstructions,
    InvalidExistingDeck,
    TemplateNotFound,
)

UPSTREAM_ERRORS = (
    BudgetExceeded,
    RateLimited,
    MisconfiguredCredentials,
    TransportFailure,
    SchemaViolation,
)

# Failures the outer retry helper may try again.
RETRYABLE_ERRORS = (TransportFailure, NoSlidesGenerated)
