"""Tests for the interpretation pipeline with a scripted gateway."""

import pytest

from promptdash.core.pipeline import CommandInterpreter
from promptdash.exceptions import (
    ConfigurationMissingException,
    DuplicateIdentifierException,
    ExtractionFailedException,
    UpstreamUnavailableException,
    ValidationFailedException,
)
from promptdash.observability.usage_ledger import UsageLedger

from conftest import ScriptedGateway


THEME_DARK = '{"action": "update_theme", "themeUpdate": "dark", "message": "Switched to dark mode"}'


def upstream_error():
    return UpstreamUnavailableException("Gemini", "503 model overloaded")


@pytest.mark.asyncio
async def test_applies_command(dashboard, schema):
    gateway = ScriptedGateway(THEME_DARK)
    result = await CommandInterpreter(gateway).interpret("use dark mode", dashboard, schema)

    assert result.applied
    assert result.command.action == "update_theme"
    assert result.dashboard.theme == "dark"
    assert dashboard.theme == "light"
    assert result.attempts == 1
    assert result.prompt_tokens > 0
    assert 'User Request: "use dark mode"' in gateway.prompts[0]


@pytest.mark.asyncio
async def test_payload_shape(dashboard, schema):
    gateway = ScriptedGateway(THEME_DARK)
    payload = (await CommandInterpreter(gateway).interpret("dark", dashboard, schema)).to_payload()

    assert payload["action"] == "update_theme"
    assert payload["themeUpdate"] == "dark"
    assert payload["message"] == "Switched to dark mode"
    assert payload["applied"] is True
    assert payload["dashboard"]["theme"] == "dark"
    assert payload["dashboard"]["currentPageId"] == "page-overview"


@pytest.mark.asyncio
async def test_fenced_output_accepted(dashboard, schema):
    gateway = ScriptedGateway(f"Here you go:\n```json\n{THEME_DARK}\n```")
    result = await CommandInterpreter(gateway).interpret("dark", dashboard, schema)
    assert result.dashboard.theme == "dark"


@pytest.mark.asyncio
async def test_retries_once_with_same_prompt(dashboard, schema):
    gateway = ScriptedGateway(upstream_error(), THEME_DARK)
    result = await CommandInterpreter(gateway).interpret("dark", dashboard, schema)

    assert result.attempts == 2
    assert len(gateway.prompts) == 2
    assert gateway.prompts[0] == gateway.prompts[1]


@pytest.mark.asyncio
async def test_second_failure_propagates(dashboard, schema):
    gateway = ScriptedGateway(upstream_error(), upstream_error(), THEME_DARK)

    with pytest.raises(UpstreamUnavailableException):
        await CommandInterpreter(gateway).interpret("dark", dashboard, schema)

    assert len(gateway.prompts) == 2


@pytest.mark.asyncio
async def test_no_retry_when_disabled(dashboard, schema):
    gateway = ScriptedGateway(upstream_error(), THEME_DARK)

    with pytest.raises(UpstreamUnavailableException):
        await CommandInterpreter(gateway, max_retries=0).interpret("dark", dashboard, schema)

    assert len(gateway.prompts) == 1


def test_retries_capped_at_one():
    assert CommandInterpreter(ScriptedGateway(), max_retries=5).max_retries == 1


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_prompting(dashboard, schema):
    gateway = ScriptedGateway(THEME_DARK, configured=False)
    ledger = UsageLedger()

    with pytest.raises(ConfigurationMissingException):
        await CommandInterpreter(gateway, ledger=ledger).interpret("dark", dashboard, schema)

    assert gateway.prompts == []
    # Nothing was compressed either.
    assert ledger.cache.stats()["misses"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("output", ["   ", "I'm not sure what you mean", "```json\n```"])
async def test_unparseable_output(dashboard, schema, output):
    gateway = ScriptedGateway(output)
    with pytest.raises(ExtractionFailedException) as exc_info:
        await CommandInterpreter(gateway).interpret("???", dashboard, schema)
    assert exc_info.value.message == "Failed to process"


@pytest.mark.asyncio
async def test_grammar_violation_translated(dashboard, schema):
    output = (
        '{"action": "update_chart", "targetChartId": "bar-sales", '
        '"chartUpdate": {"titlePosition": "middle"}, "message": "ok"}'
    )
    gateway = ScriptedGateway(output)

    with pytest.raises(ValidationFailedException) as exc_info:
        await CommandInterpreter(gateway).interpret("move the title to the middle", dashboard, schema)

    sentence = exc_info.value.details
    assert '"middle"' in sentence
    assert "chartUpdate" not in sentence
    assert exc_info.value.failures[0].kind == "invalid_enum"


@pytest.mark.asyncio
async def test_numeric_string_rejected(dashboard, schema):
    output = (
        '{"action": "update_chart", "targetChartId": "bar-sales", '
        '"chartUpdate": {"width": "3"}, "message": "ok"}'
    )
    with pytest.raises(ValidationFailedException):
        await CommandInterpreter(ScriptedGateway(output)).interpret("wider", dashboard, schema)


@pytest.mark.asyncio
async def test_missing_target_becomes_reject(dashboard, schema):
    output = (
        '{"action": "update_chart", "targetChartId": "chart-ghost", '
        '"chartUpdate": {"title": "Boo"}, "message": "Renamed"}'
    )
    result = await CommandInterpreter(ScriptedGateway(output)).interpret("rename the ghost chart", dashboard, schema)

    assert result.applied is False
    assert result.command.action == "reject"
    assert result.command.reject_reason == "no_matching_chart"
    assert result.dashboard.to_wire() == dashboard.to_wire()


@pytest.mark.asyncio
async def test_model_reject_passes_through(dashboard, schema):
    output = '{"action": "reject", "rejectReason": "data_manipulation", "message": "I can only change how data looks."}'
    result = await CommandInterpreter(ScriptedGateway(output)).interpret("set Sales to 0", dashboard, schema)

    payload = result.to_payload()
    assert payload["rejectReason"] == "data_manipulation"
    assert payload["applied"] is False


@pytest.mark.asyncio
async def test_duplicate_id_propagates(dashboard, schema):
    output = '{"action": "add_chart", "newChart": {"id": "bar-sales", "type": "bar"}, "message": "Added"}'
    with pytest.raises(DuplicateIdentifierException):
        await CommandInterpreter(ScriptedGateway(output)).interpret("add a bar chart", dashboard, schema)


@pytest.mark.asyncio
async def test_schema_context_cached_between_requests(dashboard, schema):
    ledger = UsageLedger()
    interpreter = CommandInterpreter(ScriptedGateway(THEME_DARK, THEME_DARK), ledger=ledger)

    await interpreter.interpret("dark", dashboard, schema)
    await interpreter.interpret("dark again", dashboard, schema)

    stats = ledger.cache.stats()
    assert (stats["misses"], stats["hits"]) == (1, 1)
