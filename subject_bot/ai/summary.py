"""
AI Summary Service - глубокий анализ ответов пользователя

Отправляет упорядоченный список (вопрос, ответ) в OpenAI-совместимый
chat completions endpoint (по умолчанию OpenRouter) и возвращает текст анализа.

Контракт: generate_summary никогда не бросает исключение наружу.
Любая ошибка (нет ключа, таймаут, сетевая ошибка, кривой ответ)
превращается в fallback текст для языка/цепочки.
"""

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import httpx
from jinja2 import Environment

from ..core.exceptions import ChainNotFoundError
from ..messages.catalog import ChainCatalog, ChainConfig

if TYPE_CHECKING:
    from systems.survey.session_store import QAPair

logger = logging.getLogger(__name__)

GENERIC_FALLBACK = (
    "📊 *Analysis*\n\n"
    "Unfortunately, the AI analysis is temporarily unavailable. "
    "Please try again later."
)


class SummaryService:
    """
    Генерация глубокого анализа по ответам

    Features:
    - Промпты на языке и для цепочки пользователя
    - Таймаут на весь запрос (120 секунд по умолчанию)
    - Fallback вместо ошибок
    """

    def __init__(
        self,
        catalog: ChainCatalog,
        api_key: Optional[str],
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = "deepseek/deepseek-chat",
        temperature: float = 0.7,
        max_tokens: int = 1500,
        timeout: float = 120.0,
        default_language: str = "ru",
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.catalog = catalog
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.default_language = default_language

        self.jinja_env = Environment(autoescape=False)

        # HTTP client для AI API
        self.http_client = http_client

    async def start(self):
        """Создает HTTP client"""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"}
            )
            logger.info(f"✅ SummaryService HTTP client ready ({self.base_url}, model={self.model})")

    async def close(self):
        """Закрывает HTTP client"""
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
            logger.info("✅ SummaryService HTTP client closed")

    async def generate_summary(
        self,
        answers: Sequence["QAPair"],
        language: str,
        chain: Optional[str] = None
    ) -> str:
        """
        Generates a deep summary based on all user answers.

        Args:
            answers: Упорядоченные пары (question, answer)
            language: Язык сессии
            chain: ID цепочки (None для импортированных транскриптов)

        Returns:
            Текст анализа или fallback
        """
        chain_config = self._resolve_chain(language, chain)

        logger.info(
            f"🔍 AI: Starting summary generation "
            f"(lang={language}, chain={chain}, pairs={len(answers)}, key={'yes' if self.api_key else 'no'})"
        )

        if not self.api_key:
            logger.warning("❌ AI: No API key - returning fallback")
            return self.get_fallback_summary(chain_config)

        if chain_config is None:
            logger.error(f"❌ AI: No prompts for lang={language}, chain={chain} - returning fallback")
            return self.get_fallback_summary(None)

        start_time = time.monotonic()

        try:
            await self.start()

            response = await self.http_client.post(
                "/chat/completions",
                json={
                    "model": self.model,
                    "messages": self.build_messages(answers, chain_config),
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout
            )
            response.raise_for_status()

            content = self._extract_content(response.json())

            logger.info(f"✅ AI: Response received in {time.monotonic() - start_time:.1f}s ({len(content)} chars)")
            return content

        except httpx.TimeoutException as e:
            logger.error(f"❌ AI Timeout after {time.monotonic() - start_time:.1f}s: {e}")
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ AI Response Status: {e.response.status_code}, body: {e.response.text[:500]}")
        except httpx.HTTPError as e:
            logger.error(f"❌ AI Error: {type(e).__name__}: {e}")
        except ValueError as e:
            logger.error(f"❌ AI malformed response: {e}")
        except Exception as e:
            logger.error(f"❌ AI unexpected error: {e}", exc_info=True)

        return self.get_fallback_summary(chain_config)

    def build_messages(self, answers: Sequence["QAPair"], chain_config: ChainConfig) -> List[Dict[str, str]]:
        """System + user сообщения для chat completions"""
        prompts = chain_config.prompts

        qa_line = self.jinja_env.from_string(prompts.qa_line)
        qa_text = "\n\n".join(
            qa_line.render(number=i, question=qa.question, answer=qa.answer)
            for i, qa in enumerate(answers, start=1)
        )

        user_content = self.jinja_env.from_string(prompts.user).render(qa_text=qa_text)

        messages = []
        if prompts.system:
            messages.append({"role": "system", "content": prompts.system})
        messages.append({"role": "user", "content": user_content})
        return messages

    def get_fallback_summary(self, chain_config: Optional[ChainConfig]) -> str:
        if chain_config and chain_config.fallback:
            return chain_config.fallback
        return GENERIC_FALLBACK

    def _resolve_chain(self, language: str, chain: Optional[str]) -> Optional[ChainConfig]:
        """Цепочка сессии, либо первая цепочка языка, либо языка по умолчанию"""
        candidates = []
        if chain is not None:
            candidates.append((language, chain))

        for lang in (language, self.default_language):
            try:
                candidates.append((lang, self.catalog.default_chain(lang)))
            except ChainNotFoundError:
                continue

        for lang, chain_id in candidates:
            if self.catalog.has_chain(lang, chain_id):
                return self.catalog.get_chain_config(lang, chain_id)

        return None

    @staticmethod
    def _extract_content(data: Dict[str, Any]) -> str:
        """choices[0].message.content, иначе ValueError"""
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Malformed completion response: {e}")

        if not isinstance(content, str) or not content.strip():
            raise ValueError("Empty completion content")

        return content.strip()
