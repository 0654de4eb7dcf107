"""Tests for the AI gateway and provider selection."""

import anyio
import pytest

from casedeck.slides.errors import (
    BudgetExceeded,
    MisconfiguredCredentials,
    RateLimited,
    SchemaViolation,
    TransportFailure,
)
from casedeck.slides.gateway import (
    AIGateway,
    OllamaProvider,
    build_gateway,
    build_provider,
    extract_json,
)
from casedeck.slides.schemas import SLIDE_DECK

from conftest import FakeProvider, good_deck_payload, make_settings

DAY = 24 * 60 * 60


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class SlowProvider(FakeProvider):
    async def generate(self, *args, **kwargs) -> str:
        await anyio.sleep(5)
        return "{}"


@pytest.mark.anyio
async def test_schema_reply_is_parsed():
    provider = FakeProvider(good_deck_payload())
    gateway = AIGateway(provider, make_settings())

    result = await gateway.invoke("prompt", system_prompt="system", schema=SLIDE_DECK)

    assert result["slides"][0]["title"] == "Case Overview"
    call = provider.calls[0]
    assert call["schema"] == "slide_deck"
    assert call["system_prompt"] == "system"
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 3000


@pytest.mark.anyio
async def test_schema_can_be_named():
    gateway = AIGateway(FakeProvider(good_deck_payload()), make_settings())
    result = await gateway.invoke("prompt", schema="slide_deck")
    assert len(result["slides"]) == 4


@pytest.mark.anyio
async def test_plain_text_reply_without_schema():
    gateway = AIGateway(FakeProvider("just words"), make_settings())
    assert await gateway.invoke("prompt") == "just words"


@pytest.mark.anyio
async def test_fenced_json_is_accepted():
    reply = '```json\n{"title": "T", "totalSlides": 0, "slides": []}\n```'
    gateway = AIGateway(FakeProvider(reply), make_settings())

    result = await gateway.invoke("prompt", schema=SLIDE_DECK)

    assert result == {"title": "T", "totalSlides": 0, "slides": []}


def test_extract_json_plain_fence():
    assert extract_json('```\n{"a": 1}\n```') == {"a": 1}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "reply",
    [
        "not json at all",
        {"title": "No slides here"},
        {"title": "T", "slides": [{"title": "S", "blocks": [{"type": "chart", "data": {}}]}]},
    ],
)
async def test_nonconforming_reply_is_a_schema_violation(reply):
    gateway = AIGateway(FakeProvider(reply), make_settings())

    with pytest.raises(SchemaViolation) as info:
        await gateway.invoke("prompt", schema=SLIDE_DECK)
    assert info.value.kind == "schema_violation"


@pytest.mark.anyio
async def test_daily_budget_resets_next_utc_day():
    clock = FakeClock()
    provider = FakeProvider("a", "b", "c")
    gateway = AIGateway(provider, make_settings(daily_request_limit=2), clock=clock)

    await gateway.invoke("one")
    clock.now += 61
    await gateway.invoke("two")
    clock.now += 61
    with pytest.raises(BudgetExceeded) as info:
        await gateway.invoke("three")

    assert info.value.status_code == 429
    assert gateway.calls_today == 2
    assert len(provider.calls) == 2

    clock.now += DAY
    assert await gateway.invoke("tomorrow") == "c"


@pytest.mark.anyio
async def test_per_minute_rate_limit():
    clock = FakeClock()
    gateway = AIGateway(
        FakeProvider("a", "b", "c"), make_settings(requests_per_minute=2), clock=clock
    )

    await gateway.invoke("one")
    await gateway.invoke("two")
    with pytest.raises(RateLimited):
        await gateway.invoke("three")

    clock.now += 60
    assert await gateway.invoke("later") == "c"


@pytest.mark.anyio
async def test_timeout_becomes_transport_failure():
    gateway = AIGateway(SlowProvider(), make_settings(llm_timeout_seconds=0.05))

    with pytest.raises(TransportFailure):
        await gateway.invoke("prompt")


@pytest.mark.anyio
async def test_unexpected_provider_error_becomes_transport_failure():
    gateway = AIGateway(FakeProvider(ConnectionResetError("reset")), make_settings())

    with pytest.raises(TransportFailure):
        await gateway.invoke("prompt")


@pytest.mark.anyio
async def test_typed_provider_errors_pass_through():
    gateway = AIGateway(FakeProvider(RateLimited("slow down")), make_settings())

    with pytest.raises(RateLimited):
        await gateway.invoke("prompt")


def test_no_provider_is_misconfigured():
    with pytest.raises(MisconfiguredCredentials) as info:
        build_gateway(make_settings(llm_provider="none"))
    assert info.value.kind == "misconfigured"


def test_unknown_provider_is_misconfigured():
    with pytest.raises(MisconfiguredCredentials):
        build_provider(make_settings(llm_provider="telepathy"))


def test_missing_api_key_is_misconfigured(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    for provider in ("openai", "anthropic"):
        settings = make_settings(llm_provider=provider, _env_file=None)
        with pytest.raises(MisconfiguredCredentials):
            build_provider(settings)


def test_ollama_needs_no_key():
    provider = build_provider(make_settings(llm_provider="ollama", llm_model="mistral"))

    assert isinstance(provider, OllamaProvider)
    assert provider.model == "mistral"
    assert provider.base_url.startswith("http")
