# core/embedder.py
import asyncio
from functools import lru_cache
from typing import List, Optional, Protocol, Sequence
import httpx
import numpy as np
from config.settings import settings
from core.entities import Segment, Vector
from util.constants import OllamaURIs
from util.enums import EmbedProvider
from util.errors import EmbeddingError
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    async def embed(self, text: str) -> Vector: ...


class OllamaEmbedder:
    """
    Embeds text through a running Ollama server (`/api/embed`).
    """

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = base_url.rstrip("/") + OllamaURIs.EMBED
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def embed(self, text: str) -> Vector:
        payload = {"model": self.model, "input": text}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                r = await client.post(self.url, json=payload)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            logger.error("embed.request_error model=%s err=%s", self.model, e)
            raise EmbeddingError(f"Ollama embedding request failed: {e}") from e
        except ValueError as e:
            raise EmbeddingError("Ollama returned a non-JSON embedding response") from e

        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not embeddings or not isinstance(embeddings, list) or not embeddings[0]:
            raise EmbeddingError("Ollama response did not contain an embedding")
        try:
            return [float(x) for x in embeddings[0]]
        except (TypeError, ValueError) as e:
            logger.error("embed.bad_payload model=%s err=%s", self.model, e)
            raise EmbeddingError(f"Ollama returned a malformed embedding: {e}") from e


@lru_cache(maxsize=4)
def _load_model(name: str):
    """
    Lazy-load the sentence embedding model, once per name.

    Model is kept CPU-friendly; pick a larger one through LOCAL_EMBED_MODEL.
    """
    from sentence_transformers import SentenceTransformer

    with timed(logger, "embed.model.load", model=name):
        model = SentenceTransformer(name, device="cpu")
    return model


class SentenceTransformerEmbedder:
    """
    Embeds text locally with sentence-transformers; no server needed.
    """

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name

    def _encode(self, text: str) -> np.ndarray:
        model = _load_model(self.model_name)
        vecs = model.encode([text], convert_to_numpy=True, normalize_embeddings=False)
        return vecs.astype(np.float32, copy=False)[0]

    async def embed(self, text: str) -> Vector:
        try:
            return await asyncio.to_thread(self._encode, text)
        except Exception as e:
            logger.error("embed.local_error model=%s", self.model_name, exc_info=True)
            raise EmbeddingError(f"Local embedding failed: {e}") from e


async def embed_segments(embedder: Embedder, segments: Sequence[Segment]) -> List[Vector]:
    """
    Embed every segment, one request at a time, preserving order.
    """
    vectors: List[Vector] = []
    with timed(logger, "embed.segments", n=len(segments)):
        for seg in segments:
            vectors.append(await embedder.embed(seg.text))
    return vectors


def make_embedder(provider: Optional[EmbedProvider] = None) -> Embedder:
    provider = provider or settings.EMBED_PROVIDER
    if provider == EmbedProvider.LOCAL:
        return SentenceTransformerEmbedder(settings.LOCAL_EMBED_MODEL)
    return OllamaEmbedder(
        base_url=settings.OLLAMA_BASE_URL,
        model=settings.OLLAMA_EMBED_MODEL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
