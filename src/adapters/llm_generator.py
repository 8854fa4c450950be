"""Adaptador de generación (proveedor compatible OpenAI vía SDK oficial).

Responsabilidad:
- Enviar los mensajes ya ensamblados al proveedor (Groq por defecto).
- Traducir cualquier fallo del SDK a `GenerationUnavailable`.

Por qué `max_retries=0`:
- El orquestador del turno es el único dueño de los reintentos (uno como
  máximo); reintentos ocultos del SDK romperían el límite de dos llamadas.
"""

from __future__ import annotations

import logging

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    OpenAIError,
    RateLimitError,
)

from core.config import AppSettings
from core.contract_registry import ContractRegistry, load_registry
from core.domain.categories import Variant
from core.errors import GenerationUnavailable
from core.interfaces.generator import PromptMessages
from core.services.corrective import corrected_messages

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 5.0


def _is_local_base_url(url: str) -> bool:
    url_l = (url or "").strip().lower()
    return url_l.startswith(("http://localhost", "http://127.0.0.1", "http://0.0.0.0"))


def build_client(settings: AppSettings) -> AsyncOpenAI:
    """Cliente AsyncOpenAI sin reintentos propios.

    Sin API key solo se admite un proveedor local (Ollama, LM Studio...), que
    recibe una key ficticia.
    """

    api_key = (settings.ai_api_key or "").strip()
    if not api_key:
        if not _is_local_base_url(settings.ai_base_url):
            raise GenerationUnavailable("missing_ai_api_key", "CLARA_AI_API_KEY is not configured")
        api_key = "local"

    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.ai_base_url,
        timeout=httpx.Timeout(settings.extended_generation_timeout_seconds, connect=CONNECT_TIMEOUT_SECONDS),
        max_retries=0,
    )


class OpenAIReplyGenerator:
    """`ReplyGenerator` sobre chat completions."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        client: AsyncOpenAI | None = None,
        registry: ContractRegistry | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._client = client
        self._registry = registry or load_registry()

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = build_client(self._settings)
        return self._client

    def _regeneration_size(self, variant: Variant) -> int:
        sizes = [contract.max_generation_size for (_, v), contract in self._registry.items() if v is variant]
        return max(sizes)

    async def generate(self, messages: PromptMessages, max_size: int, variant: Variant) -> str:
        return await self._complete(messages, max_size)

    async def regenerate(self, messages: PromptMessages, rejection_reason: str, variant: Variant) -> str:
        return await self._complete(
            corrected_messages(messages, rejection_reason, variant),
            self._regeneration_size(variant),
        )

    async def _complete(self, messages: PromptMessages, max_tokens: int) -> str:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self._settings.ai_model,
                messages=list(messages),  # type: ignore[arg-type]
                temperature=self._settings.ai_temperature,
                top_p=self._settings.ai_top_p,
                max_tokens=max_tokens,
            )
        except APITimeoutError as exc:
            raise GenerationUnavailable("timeout", str(exc)) from exc
        except RateLimitError as exc:
            raise GenerationUnavailable("rate_limited", str(exc)) from exc
        except APIConnectionError as exc:
            raise GenerationUnavailable("transport", str(exc)) from exc
        except APIStatusError as exc:
            raise GenerationUnavailable(f"http_{exc.status_code}", str(exc)) from exc
        except OpenAIError as exc:
            raise GenerationUnavailable("provider_error", str(exc)) from exc

        content = ""
        if response.choices:
            content = (response.choices[0].message.content or "").strip()
        if not content:
            logger.warning("Empty completion from %s", self._settings.ai_model)
            raise GenerationUnavailable("empty_output")
        return content
