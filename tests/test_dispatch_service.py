import json

import httpx
import pytest

from app.llm.entity.dispatch import SECONDARY_SYSTEM_PROMPT, DispatchConfig, ProviderAttempt
from app.llm.service.dispatch_service import FallbackDispatcher
from app.llm.service.provider.base_provider import BaseProvider
from app.llm.service.provider.openai_compatible import OpenAICompatibleProvider
from app.usage.repository.usage_repository import UsageRepository
from conftest import (
    InMemoryUsageRepository,
    ScriptedProviders,
    completion,
    dispatch_config,
    primary_config,
    secondary_config,
)

PRIMARY = "primary.test"
SECONDARY = "secondary.test"


@pytest.mark.asyncio
async def test_primary_transient_error_is_retried_once(make_dispatcher, sleeps):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(503, text="Model is loading"), httpx.Response(200, json=completion("Hi from HF"))],
    })
    usage = InMemoryUsageRepository()
    dispatcher = make_dispatcher(scripted, usage_repository=usage)

    result = await dispatcher.dispatch("Hello", "user-1", client_ip="10.0.0.1", user_agent="pytest")

    assert result.text == "Hi from HF"
    assert result.provider == "huggingface"
    assert result.api_used is True
    assert [a.status_code for a in result.attempts] == [503, 200]
    assert [a.attempt_number for a in result.attempts] == [1, 2]
    assert result.final_attempt is result.attempts[1]
    assert sleeps == [3.0]
    assert scripted.calls_to(SECONDARY) == []

    assert len(usage.records) == 2
    failed, succeeded = usage.records
    assert failed.success is False
    assert failed.status_code == 503
    assert failed.error_message == "Model is loading"
    assert succeeded.success is True
    assert succeeded.total_tokens == 30
    assert succeeded.cost is None
    assert succeeded.ip_address == "10.0.0.1"
    assert succeeded.user_agent == "pytest"


@pytest.mark.asyncio
async def test_non_transient_error_skips_retry_and_uses_secondary(make_dispatcher, sleeps):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(500, text="internal error")],
        SECONDARY: [httpx.Response(200, json=completion("From OpenAI", prompt_tokens=1000, completion_tokens=1000))],
    })
    usage = InMemoryUsageRepository()
    dispatcher = make_dispatcher(scripted, usage_repository=usage)

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.text == "From OpenAI"
    assert result.provider == "openai"
    assert sleeps == []
    assert len(scripted.calls_to(PRIMARY)) == 1
    assert [r.api_provider for r in usage.records] == ["huggingface", "openai"]
    assert usage.records[1].cost == pytest.approx(0.0035)


@pytest.mark.asyncio
async def test_retry_exhausted_moves_to_secondary(make_dispatcher, sleeps):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(503, text="busy"), httpx.Response(503, text="still busy")],
        SECONDARY: [httpx.Response(200, json=completion("Secondary reply"))],
    })
    dispatcher = make_dispatcher(scripted, usage_repository=InMemoryUsageRepository())

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.text == "Secondary reply"
    assert len(scripted.calls_to(PRIMARY)) == 2
    assert sleeps == [3.0]
    assert [a.provider for a in result.attempts] == ["huggingface", "huggingface", "openai"]


@pytest.mark.asyncio
async def test_secondary_is_never_retried(make_dispatcher, sleeps):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(401, text="bad token")],
        SECONDARY: [httpx.Response(429, text="rate limited")],
    })
    dispatcher = make_dispatcher(scripted, usage_repository=InMemoryUsageRepository())

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.api_used is False
    assert len(scripted.calls_to(SECONDARY)) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_everything_failing_returns_fallback_text(make_dispatcher, sleeps):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(429, text="slow down"), httpx.Response(429, text="slow down")],
        SECONDARY: [httpx.Response(500, text="boom")],
    })
    usage = InMemoryUsageRepository()
    dispatcher = make_dispatcher(scripted, usage_repository=usage)

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.text == (
        'You said: "Hello". The AI service is temporarily unavailable. Please try again later.'
    )
    assert result.provider is None
    assert result.api_used is False
    assert result.final_attempt is None
    assert len(result.attempts) == 3
    assert len(usage.records) == 3
    assert not any(r.success for r in usage.records)
    assert sleeps == [3.0]


@pytest.mark.asyncio
async def test_network_errors_become_failed_attempts(make_dispatcher, sleeps):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.ConnectError("connection refused")],
        SECONDARY: [httpx.ReadTimeout("timed out")],
    })
    usage = InMemoryUsageRepository()
    dispatcher = make_dispatcher(scripted, usage_repository=usage)

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.api_used is False
    assert [a.status_code for a in result.attempts] == [None, None]
    assert result.attempts[0].error_message == "connection refused"
    assert result.attempts[1].error_message == "timed out"
    assert [r.status_code for r in usage.records] == [None, None]
    # No status code, so nothing to retry
    assert sleeps == []


@pytest.mark.asyncio
async def test_malformed_success_payload_is_a_failure(make_dispatcher):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(200, json={"unexpected": True})],
        SECONDARY: [httpx.Response(200, text="<html>not json</html>")],
    })
    dispatcher = make_dispatcher(scripted, usage_repository=InMemoryUsageRepository())

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.api_used is False
    primary_attempt, secondary_attempt = result.attempts
    assert primary_attempt.status_code == 200
    assert primary_attempt.success is False
    assert primary_attempt.error_message.startswith("Malformed completion payload")
    assert secondary_attempt.success is False
    assert len(scripted.calls_to(PRIMARY)) == 1


@pytest.mark.asyncio
async def test_usage_write_failure_does_not_break_dispatch(make_dispatcher):
    scripted = ScriptedProviders({PRIMARY: [httpx.Response(200, json=completion("Still works"))]})
    dispatcher = make_dispatcher(scripted, usage_repository=InMemoryUsageRepository(fail=True))

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.text == "Still works"
    assert result.api_used is True


@pytest.mark.asyncio
async def test_no_configured_providers_goes_straight_to_fallback(make_dispatcher):
    scripted = ScriptedProviders()
    dispatcher = make_dispatcher(scripted, config=DispatchConfig(providers=()))

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.api_used is False
    assert result.attempts == []
    assert scripted.requests == []


@pytest.mark.asyncio
async def test_request_shapes(make_dispatcher):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(503, text="busy"), httpx.Response(500, text="down")],
        SECONDARY: [httpx.Response(200, json=completion("ok"))],
    })
    dispatcher = make_dispatcher(scripted)

    await dispatcher.dispatch("What is XSS?", "user-1")

    primary_request = scripted.calls_to(PRIMARY)[0]
    assert primary_request.headers["Authorization"] == "Bearer hf-test"
    body = json.loads(primary_request.content)
    assert body == {
        "model": "DeepHat/DeepHat-V1-7B:featherless-ai",
        "messages": [{"role": "user", "content": "What is XSS?"}],
        "stream": False,
        "temperature": 0.7,
        "max_tokens": 500,
    }

    secondary_request = scripted.calls_to(SECONDARY)[0]
    assert secondary_request.headers["Authorization"] == "Bearer sk-test"
    secondary_body = json.loads(secondary_request.content)
    assert secondary_body["model"] == "gpt-3.5-turbo"
    assert secondary_body["messages"] == [
        {"role": "system", "content": SECONDARY_SYSTEM_PROMPT},
        {"role": "user", "content": "What is XSS?"},
    ]


@pytest.mark.asyncio
async def test_response_snapshot_is_truncated(make_dispatcher):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(400, text="e" * 5000)],
        SECONDARY: [httpx.Response(200, json=completion("ok"))],
    })
    usage = InMemoryUsageRepository()
    dispatcher = make_dispatcher(scripted, usage_repository=usage)

    await dispatcher.dispatch("Hello", "user-1")

    assert len(usage.records[0].response_data) == 1000
    assert json.loads(usage.records[0].request_data)["model"] == "DeepHat/DeepHat-V1-7B:featherless-ai"


class ExplodingProvider(BaseProvider):
    async def complete(self, message: str, attempt_number: int = 1) -> ProviderAttempt:
        raise RuntimeError("kaboom")


@pytest.mark.asyncio
async def test_unexpected_provider_exception_is_contained(fake_sleep):
    scripted = ScriptedProviders({SECONDARY: [httpx.Response(200, json=completion("rescued"))]})
    usage = InMemoryUsageRepository()
    dispatcher = FallbackDispatcher(
        dispatch_config(),
        usage_repository=usage,
        providers=[
            ExplodingProvider(primary_config()),
            OpenAICompatibleProvider(secondary_config(), transport=scripted.transport),
        ],
        sleep=fake_sleep,
    )

    result = await dispatcher.dispatch("Hello", "user-1")

    assert result.text == "rescued"
    assert result.attempts[0].success is False
    assert result.attempts[0].error_message == "kaboom"
    assert len(usage.records) == 2


@pytest.mark.asyncio
async def test_attempts_are_persisted_one_row_each(make_dispatcher, sql_conn):
    scripted = ScriptedProviders({
        PRIMARY: [httpx.Response(503, text="busy"), httpx.Response(500, text="down")],
        SECONDARY: [httpx.Response(200, json=completion("ok", prompt_tokens=500, completion_tokens=100))],
    })
    repo = UsageRepository(sql_conn)
    dispatcher = make_dispatcher(scripted, usage_repository=repo)

    await dispatcher.dispatch("Hello", "user-9", client_ip="10.1.1.1")

    assert await repo.count("user-9") == 3
    assert await repo.count("someone-else") == 0
    records = await repo.list_for_user("user-9")
    assert [r.api_provider for r in records] == ["huggingface", "huggingface", "openai"]
    assert [r.status_code for r in records] == [503, 500, 200]
    assert records[2].success is True
    assert records[2].cost == pytest.approx(0.00095)
    assert records[0].cost is None
    assert all(r.ip_address == "10.1.1.1" for r in records)
    assert all(r.created_at is not None for r in records)
