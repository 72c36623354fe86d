"""
Unit Tests: AI Summary Service

Тестирует:
- Формирование запроса к chat completions
- Успешный ответ
- Fallback при отсутствии ключа, таймауте, HTTP ошибке и кривом ответе
"""

import json
import pytest
import httpx

from subject_bot.ai import SummaryService
from subject_bot.ai.summary import GENERIC_FALLBACK
from subject_bot.messages import ChainCatalog
from systems.survey import QAPair

from conftest import make_chain

ANSWERS = [QAPair("A?", "first"), QAPair("B?", "second")]


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def catalog():
    return ChainCatalog.from_dict({
        "ru": {"chains": {
            "1": make_chain(["A?", "B?"], fallback="ru fallback"),
            "2": make_chain(["C?"], fallback="ru fallback 2"),
        }},
        "en": {"chains": {"1": make_chain(["One?"], fallback="en fallback")}},
    })


def make_service(catalog, handler, api_key="test-key", **kwargs):
    client = httpx.AsyncClient(
        base_url="https://openrouter.test/api/v1",
        transport=httpx.MockTransport(handler)
    )
    return SummaryService(catalog=catalog, api_key=api_key, http_client=client, **kwargs)


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


# ============================================================================
# SUCCESS PATH
# ============================================================================

@pytest.mark.asyncio
async def test_successful_summary(catalog):
    """
    Тест: ответ модели возвращается обрезанным
    """
    requests = []

    def handler(request):
        requests.append(request)
        return completion("  Глубокий анализ  \n")

    service = make_service(catalog, handler)

    result = await service.generate_summary(ANSWERS, "ru", "1")

    assert result == "Глубокий анализ"
    assert len(requests) == 1

    request = requests[0]
    assert request.url.path.endswith("/chat/completions")
    assert request.headers["Authorization"] == "Bearer test-key"

    body = json.loads(request.content)
    assert body["model"] == "deepseek/deepseek-chat"
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 1500
    assert body["messages"][0] == {"role": "system", "content": "You are a coach."}
    assert "1) A? -> first" in body["messages"][1]["content"]
    assert "2) B? -> second" in body["messages"][1]["content"]


def test_build_messages_without_system_prompt():
    catalog = ChainCatalog.from_dict({
        "ru": {"chains": {"1": {"questions": ["A?"], "prompts": {"user": "{{ qa_text }}"}}}}
    })
    service = SummaryService(catalog=catalog, api_key=None)

    messages = service.build_messages([QAPair("A?", "yes")], catalog.get_chain_config("ru", "1"))

    assert messages == [{"role": "user", "content": "1. A?\nyes"}]


# ============================================================================
# FALLBACK PATHS
# ============================================================================

@pytest.mark.asyncio
async def test_no_api_key_returns_fallback_without_request(catalog):
    def handler(request):
        raise AssertionError("no request expected")

    service = make_service(catalog, handler, api_key=None)

    assert await service.generate_summary(ANSWERS, "ru", "2") == "ru fallback 2"


@pytest.mark.asyncio
async def test_timeout_returns_fallback(catalog):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    service = make_service(catalog, handler)

    assert await service.generate_summary(ANSWERS, "en", "1") == "en fallback"


@pytest.mark.asyncio
async def test_http_error_status_returns_fallback(catalog):
    service = make_service(catalog, lambda request: httpx.Response(502, text="bad gateway"))

    assert await service.generate_summary(ANSWERS, "ru", "1") == "ru fallback"


@pytest.mark.asyncio
async def test_network_error_returns_fallback(catalog):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    service = make_service(catalog, handler)

    assert await service.generate_summary(ANSWERS, "ru", "1") == "ru fallback"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"choices": []},
    {"choices": [{"message": {"content": "   "}}]},
    {"error": "oops"},
])
async def test_malformed_response_returns_fallback(catalog, payload):
    service = make_service(catalog, lambda request: httpx.Response(200, json=payload))

    assert await service.generate_summary(ANSWERS, "ru", "1") == "ru fallback"


@pytest.mark.asyncio
async def test_invalid_json_returns_fallback(catalog):
    service = make_service(catalog, lambda request: httpx.Response(200, text="<html>"))

    assert await service.generate_summary(ANSWERS, "ru", "1") == "ru fallback"


@pytest.mark.asyncio
async def test_imported_session_uses_default_chain(catalog):
    """
    Тест: chain=None → промпты первой цепочки языка
    """
    service = make_service(catalog, lambda request: httpx.Response(500))

    assert await service.generate_summary(ANSWERS, "ru", None) == "ru fallback"


@pytest.mark.asyncio
async def test_unknown_language_falls_back_to_default_language(catalog):
    service = make_service(catalog, lambda request: httpx.Response(500), default_language="en")

    assert await service.generate_summary(ANSWERS, "de", None) == "en fallback"


def test_generic_fallback_without_chain(catalog):
    service = SummaryService(catalog=catalog, api_key=None)

    assert service.get_fallback_summary(None) == GENERIC_FALLBACK


@pytest.mark.asyncio
async def test_start_and_close_manage_client(catalog):
    service = SummaryService(catalog=catalog, api_key=None)

    await service.start()
    assert isinstance(service.http_client, httpx.AsyncClient)

    await service.close()
    assert service.http_client is None
