"""
Shared fixtures: deterministic fake adapters and async question streams.
"""

from typing import AsyncIterator, Dict, Iterable, List

import pytest

from util.errors import EmbeddingError, GenerationError


class KeywordEmbedder:
    """Maps text onto a fixed vocabulary of keyword counts."""

    VOCAB = ("install", "config", "error", "deploy")

    def __init__(self, fail_on: Iterable[str] = ()) -> None:
        self.calls: List[str] = []
        self.fail_on = set(fail_on)

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise EmbeddingError(f"cannot embed {text!r}")
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.VOCAB]


class RecordingGenerator:
    def __init__(self, fail_on: Iterable[str] = ()) -> None:
        self.calls: List[Dict[str, str]] = []
        self.fail_on = set(fail_on)

    async def generate(self, system_instructions: str, context: str, question: str) -> str:
        self.calls.append(
            {"system": system_instructions, "context": context, "question": question}
        )
        if question in self.fail_on:
            raise GenerationError("model unavailable")
        return f"answer to: {question}"


async def questions_from(lines: Iterable[str]) -> AsyncIterator[str]:
    for line in lines:
        yield line


@pytest.fixture
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def generator() -> RecordingGenerator:
    return RecordingGenerator()


@pytest.fixture
def document() -> str:
    return (
        "To install the tool run pip install docqa.\n\n"
        "The config file lives in your home directory. Every config key is optional.\n\n"
        "If you see an error, check the logs. Each error has a code.\n\n"
        "To deploy, build the image and push it."
    )
