import os
import random
from typing import Callable, Dict, List, Optional, Union

import httpx
import pytest
import pytest_asyncio

# Set test environment variables BEFORE any app imports
os.environ["JWT_SUPER_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
for key in ("HF_TOKEN", "OPENAI_API_KEY", "POSTGRES_HOST"):
    os.environ.pop(key, None)

from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.llm.entity.dispatch import (  # noqa: E402
    SECONDARY_SYSTEM_PROMPT,
    DispatchConfig,
    ProviderConfig,
    TokenPricing,
)
from app.llm.service.dispatch_service import FallbackDispatcher  # noqa: E402
from app.usage.entity.usage import ApiUsageRecord  # noqa: E402
from app.usage.repository.usage_repository import UsageRepository  # noqa: E402
from app.usage.service.service import IUsageRepository  # noqa: E402
from main import app, wire_services  # noqa: E402
from pkg.auth_token_client.client import TokenClient, TokenPayload  # noqa: E402
from pkg.db_util.sql_conn import SqlConnection  # noqa: E402
from pkg.db_util.types import SqlConfig  # noqa: E402
from pkg.log.logger import get_logger  # noqa: E402

DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PRIMARY_URL = "https://primary.test/v1/chat/completions"
SECONDARY_URL = "https://secondary.test/v1/chat/completions"

ScriptItem = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


def completion(content: str, prompt_tokens: int = 10, completion_tokens: int = 20) -> dict:
    """An OpenAI-style chat completion body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


class ScriptedProviders:
    """
    httpx transport that answers each provider host from a script of
    responses, in order. Every request is kept for inspection.
    """

    def __init__(self, script: Optional[Dict[str, List[ScriptItem]]] = None):
        self.script = {host: list(items) for host, items in (script or {}).items()}
        self.requests: List[httpx.Request] = []

    def calls_to(self, host: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.script.get(request.url.host)
        if not queue:
            raise AssertionError(f"Unexpected call to {request.url}")
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


class InMemoryUsageRepository(IUsageRepository):
    def __init__(self, fail: bool = False):
        self.records: List[ApiUsageRecord] = []
        self.fail = fail

    async def record(self, record: ApiUsageRecord) -> int:
        if self.fail:
            raise RuntimeError("usage table unavailable")
        self.records.append(record)
        return len(self.records)

    async def list_for_user(self, user_id: str, limit: int = 100) -> List[ApiUsageRecord]:
        return [r for r in self.records if r.user_id == user_id][:limit]

    async def count(self, user_id: Optional[str] = None) -> int:
        return len([r for r in self.records if user_id is None or r.user_id == user_id])


def primary_config(**overrides) -> ProviderConfig:
    values = dict(
        name="huggingface",
        endpoint=PRIMARY_URL,
        api_key="hf-test",
        model="DeepHat/DeepHat-V1-7B:featherless-ai",
        timeout_seconds=90.0,
        max_retries=1,
    )
    values.update(overrides)
    return ProviderConfig(**values)


def secondary_config(**overrides) -> ProviderConfig:
    values = dict(
        name="openai",
        endpoint=SECONDARY_URL,
        api_key="sk-test",
        model="gpt-3.5-turbo",
        timeout_seconds=30.0,
        max_retries=0,
        system_prompt=SECONDARY_SYSTEM_PROMPT,
        pricing=TokenPricing(input_per_1k=0.0015, output_per_1k=0.002),
    )
    values.update(overrides)
    return ProviderConfig(**values)


def dispatch_config(*providers: ProviderConfig, retry_delay_seconds: float = 3.0) -> DispatchConfig:
    if not providers:
        providers = (primary_config(), secondary_config())
    return DispatchConfig(providers=tuple(providers), retry_delay_seconds=retry_delay_seconds)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)
    return _sleep


@pytest.fixture
def make_dispatcher(fake_sleep):
    def _make(scripted: ScriptedProviders, usage_repository=None, config: Optional[DispatchConfig] = None,
              seed: int = 7) -> FallbackDispatcher:
        return FallbackDispatcher(
            config or dispatch_config(),
            usage_repository=usage_repository,
            rng=random.Random(seed),
            sleep=fake_sleep,
            transport=scripted.transport,
        )
    return _make


@pytest_asyncio.fixture
async def sql_conn():
    conn = SqlConnection(SqlConfig(url=DATABASE_URL), get_logger("tests.db"))
    await conn.create_all()
    yield conn
    await conn.close_engine()


@pytest.fixture
def scripted() -> ScriptedProviders:
    return ScriptedProviders()


@pytest_asyncio.fixture
async def client(sql_conn, scripted, make_dispatcher):
    """API client over a freshly wired app; providers are answered by ``scripted``."""
    dispatcher = make_dispatcher(scripted, usage_repository=UsageRepository(sql_conn))
    wire_services(app, sql_conn, dispatcher=dispatcher)
    app.state.startup_complete = True
    app.state.startup_error = None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.state.startup_complete = False


@pytest.fixture
def token_client() -> TokenClient:
    return TokenClient("test-secret")


@pytest.fixture
def auth_headers(token_client):
    def _headers(user_id: str = "user-1", role: str = "user") -> dict:
        token = token_client.create_access_token(TokenPayload(user_id=user_id, role=role))
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def admin_headers(auth_headers) -> dict:
    return auth_headers("admin-1", role="admin")
