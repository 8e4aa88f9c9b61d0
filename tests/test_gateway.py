"""Tests for the Gemini gateway (network calls replaced)."""

import asyncio
from types import SimpleNamespace

import pytest

from promptdash.config import GeminiSettings
from promptdash.core.gemini import PROMPT_ENDPOINT, GeminiGateway
from promptdash.exceptions import ConfigurationMissingException, UpstreamUnavailableException
from promptdash.observability.usage_ledger import UsageLedger


def make_gateway(api_key="test-key", timeout_seconds=5.0):
    ledger = UsageLedger()
    settings = GeminiSettings(api_key=api_key, timeout_seconds=timeout_seconds)
    return GeminiGateway(settings=settings, ledger=ledger), ledger


@pytest.mark.asyncio
async def test_missing_key_fails_before_calling(monkeypatch):
    gateway, ledger = make_gateway(api_key="")
    calls = []

    async def fake_call(prompt):
        calls.append(prompt)

    monkeypatch.setattr(gateway, "_call", fake_call)

    with pytest.raises(ConfigurationMissingException) as exc_info:
        await gateway.generate("hello")

    assert exc_info.value.message == "Missing GEMINI_API_KEY"
    assert calls == []
    assert ledger.get_stats()["totalRequests"] == 0


@pytest.mark.asyncio
async def test_success_uses_reported_usage(monkeypatch):
    gateway, ledger = make_gateway()

    async def fake_call(prompt):
        return SimpleNamespace(
            text='{"action":"reject","message":"no"}',
            usage_metadata=SimpleNamespace(prompt_token_count=120, candidates_token_count=9),
        )

    monkeypatch.setattr(gateway, "_call", fake_call)
    result = await gateway.generate("hello")

    assert result.text == '{"action":"reject","message":"no"}'
    assert (result.input_tokens, result.output_tokens) == (120, 9)
    record = ledger.records()[-1]
    assert record.endpoint == PROMPT_ENDPOINT
    assert record.status == "ok"
    assert record.total_tokens == 129


@pytest.mark.asyncio
async def test_success_without_usage_metadata_estimates(monkeypatch):
    gateway, ledger = make_gateway()

    async def fake_call(prompt):
        return SimpleNamespace(text="abcdefgh", usage_metadata=None)

    monkeypatch.setattr(gateway, "_call", fake_call)
    result = await gateway.generate("abcd")

    assert (result.input_tokens, result.output_tokens) == (1, 2)


@pytest.mark.asyncio
async def test_timeout_is_upstream_failure(monkeypatch):
    gateway, ledger = make_gateway(timeout_seconds=0.05)

    async def slow_call(prompt):
        await asyncio.sleep(1)

    monkeypatch.setattr(gateway, "_call", slow_call)

    with pytest.raises(UpstreamUnavailableException) as exc_info:
        await gateway.generate("hello")

    assert "timed out" in exc_info.value.reason
    assert exc_info.value.status_code == 502
    assert ledger.get_stats()["errorCount"] == 1


@pytest.mark.asyncio
async def test_api_error_is_upstream_failure(monkeypatch):
    gateway, ledger = make_gateway()

    async def failing_call(prompt):
        raise RuntimeError("503 model overloaded")

    monkeypatch.setattr(gateway, "_call", failing_call)

    with pytest.raises(UpstreamUnavailableException) as exc_info:
        await gateway.generate("hello")

    assert exc_info.value.reason == "503 model overloaded"
    records = ledger.records()
    assert len(records) == 1
    assert records[0].status == "error"
    assert records[0].output_tokens == 0
