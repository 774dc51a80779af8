# core/generator.py
from typing import Any, Dict, List, Optional, Protocol
import httpx
from config.settings import settings
from util.constants import OllamaURIs
from util.enums import GeneratorProvider
from util.errors import ConfigError, GenerationError
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


class Generator(Protocol):
    async def generate(self, system_instructions: str, context: str, question: str) -> str: ...


def system_message(system_instructions: str, context: str) -> str:
    """
    Build the system message: instructions followed by the retrieved context.
    """
    return f"{system_instructions}\n\nContext:\n{context}"


async def _post_json(
    url: str,
    headers: Dict[str, str],
    payload: Dict[str, Any],
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    Make a JSON POST to `url`. Raises GenerationError for transport errors,
    non-2xx responses and bodies that are not a JSON object.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            r = await client.post(url, headers=headers, json=payload)
            r.raise_for_status()
            data = r.json()
    except httpx.HTTPError as e:
        logger.error("ai.request_error url=%s err=%s", url, e)
        raise GenerationError(f"Generation request failed: {e}") from e
    except ValueError as e:
        raise GenerationError("Generation response was not valid JSON") from e
    if not isinstance(data, dict):
        raise GenerationError("Generation response was not a JSON object")
    return data


class OllamaGenerator:
    """
    Chat completion through a running Ollama server (`/api/chat`, non-streaming).
    """

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        temperature: float = 0.1,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = base_url.rstrip("/") + OllamaURIs.CHAT
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._transport = transport

    async def generate(self, system_instructions: str, context: str, question: str) -> str:
        payload = {
            "model": self.model,
            "stream": False,
            "options": {"temperature": self.temperature},
            "messages": [
                {"role": "system", "content": system_message(system_instructions, context)},
                {"role": "user", "content": question},
            ],
        }
        with timed(logger, "ai.generate", provider="ollama", model=self.model):
            data = await _post_json(
                self.url,
                {"content-type": "application/json"},
                payload,
                self.timeout,
                self._transport,
            )

        message = data.get("message") or {}
        text = message.get("content") if isinstance(message, dict) else None
        if not isinstance(text, str):
            raise GenerationError("Ollama response did not contain a message")
        return text.strip()


class AnthropicGenerator:
    """
    Chat completion through the Anthropic Messages API.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        api_url: str,
        version: str,
        max_tokens: int = 1024,
        temperature: float = 0.1,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.version = version
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self._transport = transport

    async def generate(self, system_instructions: str, context: str, question: str) -> str:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.version,
            "content-type": "application/json",
        }
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_message(system_instructions, context),
            "messages": [{"role": "user", "content": question}],
            "temperature": self.temperature,
        }
        with timed(logger, "ai.generate", provider="anthropic", model=self.model):
            data = await _post_json(
                self.api_url, headers, payload, self.timeout, self._transport
            )

        content = data.get("content")
        if not isinstance(content, list):
            raise GenerationError("Anthropic response content was not a list of blocks")
        parts: List[str] = []
        for node in content:
            if isinstance(node, dict) and node.get("type") == "text":
                parts.append(str(node.get("text") or ""))
        if not parts:
            raise GenerationError("Anthropic response did not contain text content")
        return "".join(parts).strip()


def make_generator(provider: Optional[GeneratorProvider] = None) -> Generator:
    provider = provider or settings.GENERATOR_PROVIDER
    if provider == GeneratorProvider.ANTHROPIC:
        if not settings.ANTHROPIC_API_KEY:
            raise ConfigError("GENERATOR_PROVIDER=anthropic requires ANTHROPIC_API_KEY")
        return AnthropicGenerator(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            api_url=settings.ANTHROPIC_API_URL,
            version=settings.ANTHROPIC_VERSION,
            max_tokens=settings.ANTHROPIC_MAX_TOKENS,
            temperature=settings.CHAT_TEMPERATURE,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    return OllamaGenerator(
        base_url=settings.OLLAMA_BASE_URL,
        model=settings.OLLAMA_CHAT_MODEL,
        temperature=settings.CHAT_TEMPERATURE,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
