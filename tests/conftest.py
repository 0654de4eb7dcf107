"""Pytest configuration and shared fixtures for tests."""

from typing import Any, Dict, List, Optional

import orjson
import pytest

from casedeck.config import Settings
from casedeck.slides.cache import DeckCache, MemoryStore, wall_clock_ms
from casedeck.slides.gateway import AIGateway, LLMProvider
from casedeck.slides.models import SlideDeck
from casedeck.slides.service import SlidePipeline
from casedeck.templates.loader import DEFAULT_TEMPLATES_DIR, TemplateRegistry

MURDER_CASE = (
    "Murder case under Section 302 IPC with 15 witnesses, CCTV footage at 11:45 PM, "
    "eyewitnesses identifying accused. Court found guilty."
)
PRIVACY_CASE = (
    "Article 21 right to privacy. K.S. Puttaswamy v. Union of India (2017). "
    "Nine-judge bench."
)


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


class FakeProvider(LLMProvider):
    """Replays scripted replies; exceptions in the script are raised."""

    name = "fake"
    default_model = "fake-model"

    def __init__(self, *replies: Any) -> None:
        self.model = self.default_model
        self.replies: List[Any] = list(replies)
        self.calls: List[Dict[str, Any]] = []

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        response_format=None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "schema": response_format.name if response_format else None,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if not self.replies:
            raise AssertionError("Provider called more often than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, (dict, list)):
            return orjson.dumps(reply).decode()
        return reply


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "cache_dir": None,
        "templates_dir": None,
        "llm_provider": "none",
        "transport_retry_backoff_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


def load_templates() -> TemplateRegistry:
    registry = TemplateRegistry()
    registry.load_from_directory(DEFAULT_TEMPLATES_DIR)
    return registry


def make_pipeline(
    provider: LLMProvider,
    settings: Optional[Settings] = None,
    clock=wall_clock_ms,
) -> SlidePipeline:
    settings = settings or make_settings()
    return SlidePipeline(
        settings=settings,
        gateway=AIGateway(provider, settings),
        cache=DeckCache(MemoryStore(), settings, clock=clock),
        templates=load_templates(),
    )


# --- deck payloads as the model would return them ----------------------------


def text_slide(title: str, *points: str) -> Dict[str, Any]:
    return {"title": title, "blocks": [{"type": "text", "data": {"points": list(points)}}]}


def deck_payload(slides: List[Dict[str, Any]], title: str = "State v. Sharma") -> Dict[str, Any]:
    return {"title": title, "totalSlides": len(slides), "slides": slides}


def good_slides() -> List[Dict[str, Any]]:
    return [
        text_slide(
            "Case Overview",
            "Petitioner challenges the order under _Article 21_",
            "The court examines *natural justice* in the hearing",
        ),
        text_slide(
            "Material Facts",
            "The accused was charged with ~murder~ under _Section 302 IPC_",
            "Police recovered the weapon from the scene",
        ),
        text_slide(
            "Legal Issues",
            "Whether the *burden of proof* was discharged",
            "Whether _Article 14_ was breached by the procedure",
        ),
        {
            "title": "Court Ruling",
            "blocks": [
                {
                    "type": "callout",
                    "data": {
                        "text": "The conviction under _Section 302 IPC_ was upheld",
                        "type": "success",
                    },
                }
            ],
        },
    ]


def precedent_slide(number: int) -> Dict[str, Any]:
    return {
        "title": f"Precedent {number}",
        "blocks": [
            {
                "type": "quote",
                "data": {
                    "quote": "Personal liberty cannot be curtailed without a fair procedure.",
                    "citation": "Maneka Gandhi v. Union of India, (1978) 1 SCC 248",
                },
            }
        ],
    }


def good_deck_payload(count: int = 4, title: str = "State v. Sharma") -> Dict[str, Any]:
    slides = good_slides()[:count]
    slides += [precedent_slide(number) for number in range(1, count - len(slides) + 1)]
    return deck_payload(slides, title)


def weak_deck_payload(title: str = "Weak Draft") -> Dict[str, Any]:
    """Three untitled-looking slides with unformatted terms; scores well below 60."""
    point = "The murder violated Article 21 and natural justice"
    slides = [
        {
            "title": name,
            "blocks": [{"type": "text", "data": {"points": [point]}} for _ in range(3)],
        }
        for name in ("Alpha", "Beta", "Gamma")
    ]
    return deck_payload(slides, title)


def criminal_deck_payload() -> Dict[str, Any]:
    return deck_payload(
        [
            text_slide(
                "Case Overview",
                "The State prosecuted the accused for ~murder~ in the sessions court",
                "Fifteen witnesses and CCTV footage formed the record",
            ),
            text_slide(
                "Charges and Offences",
                "Charged under _Section 302 IPC_ for ~murder~",
                "Prosecution must prove guilt *beyond reasonable doubt*",
            ),
            {
                "title": "Material Facts",
                "blocks": [
                    {
                        "type": "timeline",
                        "data": {
                            "events": [
                                {
                                    "date": "11:45 PM",
                                    "title": "CCTV footage",
                                    "description": "Camera captured the accused near the scene",
                                },
                                {
                                    "date": "Next day",
                                    "title": "Arrest",
                                    "description": "Eyewitnesses identified the accused",
                                },
                            ]
                        },
                    }
                ],
            },
            {
                "title": "Evidence Presented",
                "suggestedImages": ["courtroom", "cctv camera"],
                "blocks": [
                    {
                        "type": "evidence",
                        "data": {
                            "items": [
                                {"label": "CCTV footage", "description": "Recording at 11:45 PM"},
                                {"label": "Eyewitnesses", "description": "Identified the accused"},
                                {"label": "Witnesses", "description": "15 witnesses examined"},
                            ]
                        },
                    }
                ],
            },
            {
                "title": "Court Ruling",
                "blocks": [
                    {
                        "type": "callout",
                        "data": {
                            "text": "Court found the accused guilty of ~murder~ under _Section 302 IPC_",
                            "type": "success",
                        },
                    }
                ],
            },
        ],
        title="State v. Accused",
    )


def privacy_deck_payload() -> Dict[str, Any]:
    return deck_payload(
        [
            text_slide(
                "Case Overview",
                "_Article 21_ guarantees the *right to privacy*",
                "Challenge decided by a nine-judge bench",
            ),
            {
                "title": "Constitutional Provisions",
                "blocks": [
                    {
                        "type": "quote",
                        "data": {
                            "quote": "No person shall be deprived of his life or personal liberty "
                            "except according to procedure established by law.",
                            "citation": "Constitution of India, Art. 21",
                        },
                    }
                ],
            },
            text_slide(
                "Background Facts",
                "The Aadhaar scheme collected biometric data of residents",
                "Petitioners said the scheme exposed private life to the State",
            ),
            text_slide(
                "Legal Issues",
                "Whether privacy is a *fundamental right* under _Article 21_",
                "Whether earlier rulings on privacy require reconsideration",
            ),
        ],
        title="K.S. Puttaswamy v. Union of India",
    )


def as_deck(payload: Dict[str, Any]) -> SlideDeck:
    return SlideDeck.model_validate(payload)
