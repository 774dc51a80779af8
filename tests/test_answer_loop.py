"""Tests for core.answer_loop.AnswerSession with fake embedder/generator adapters."""

import json
from typing import List
from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import KeywordEmbedder, RecordingGenerator, questions_from
from core.answer_loop import AnswerSession, build_context
from core.embedder import OllamaEmbedder
from core.entities import ScoredSegment, Segment
from model.answer import AnswerRecord
from util.enums import SessionState
from util.errors import (
    ConfigError,
    DimensionMismatch,
    EmbeddingError,
    EmptyIndex,
    SourceUnavailable,
)


async def _open(document: str, embedder, generator, **kwargs) -> AnswerSession:
    return await AnswerSession.open(
        text=document,
        locator="docs/guide.md",
        embedder=embedder,
        generator=generator,
        max_size=90,
        overlap=10,
        **kwargs,
    )


class TestIndexing:
    @pytest.mark.asyncio
    async def test_open_indexes_every_segment_once(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        session = await _open(document, embedder, generator)

        assert session.state == SessionState.READY
        assert len(session.index) == len(embedder.calls) == 4
        assert session.turns == 0
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_empty_document_is_fatal(
        self, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        with pytest.raises(EmptyIndex):
            await _open("   \n\n  ", embedder, generator)
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_embedding_failure_during_indexing_is_fatal(
        self, generator: RecordingGenerator
    ) -> None:
        embedder = AsyncMock()
        embedder.embed.side_effect = EmbeddingError("connection refused")

        with pytest.raises(EmbeddingError):
            await _open("some document text", embedder, generator)

    @pytest.mark.asyncio
    async def test_inconsistent_dimensions_are_fatal(
        self, document: str, generator: RecordingGenerator
    ) -> None:
        embedder = AsyncMock()
        embedder.embed.side_effect = [[1.0, 0.0], [1.0, 0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]

        with pytest.raises(DimensionMismatch):
            await _open(document, embedder, generator)

    @pytest.mark.asyncio
    async def test_invalid_chunk_config_fails_before_embedding(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        with pytest.raises(ConfigError):
            await AnswerSession.open(
                text=document,
                locator="doc",
                embedder=embedder,
                generator=generator,
                max_size=100,
                overlap=100,
            )
        assert embedder.calls == []


class TestRun:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("sentinel", ["exit", "EXIT", "  Exit  "])
    async def test_exit_sentinel_closes_without_adapter_calls(
        self,
        sentinel: str,
        document: str,
        embedder: KeywordEmbedder,
        generator: RecordingGenerator,
    ) -> None:
        session = await _open(document, embedder, generator)
        indexing_calls = len(embedder.calls)

        turns = await session.run(questions_from([sentinel, "how do I install it?"]))

        assert turns == 0
        assert session.state == SessionState.CLOSED
        assert len(embedder.calls) == indexing_calls
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_answers_until_exit(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        answers: List[AnswerRecord] = []
        session = await _open(document, embedder, generator, on_answer=answers.append)

        turns = await session.run(
            questions_from(["how do I install?", "", "   ", "where is the config?", "exit"])
        )

        assert turns == 2
        assert [a.question for a in answers] == ["how do I install?", "where is the config?"]
        assert [a.turn for a in answers] == [1, 2]
        assert answers[0].answer == "answer to: how do I install?"
        assert session.closed

    @pytest.mark.asyncio
    async def test_end_of_input_closes_session(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        session = await _open(document, embedder, generator)

        turns = await session.run(questions_from(["what about errors?"]))

        assert turns == 1
        assert session.state == SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_generation_error_does_not_end_session(
        self, document: str, embedder: KeywordEmbedder
    ) -> None:
        generator = RecordingGenerator(fail_on=["first question"])
        answers: List[AnswerRecord] = []
        errors = []
        session = await _open(
            document,
            embedder,
            generator,
            on_answer=answers.append,
            on_error=lambda q, e: errors.append((q, e)),
        )

        turns = await session.run(
            questions_from(["first question", "how to deploy?", "exit"])
        )

        assert turns == 1
        assert [a.question for a in answers] == ["how to deploy?"]
        assert len(errors) == 1
        assert errors[0][0] == "first question"
        assert session.closed

    @pytest.mark.asyncio
    async def test_embedding_error_on_question_is_reported(
        self, document: str, generator: RecordingGenerator
    ) -> None:
        embedder = KeywordEmbedder(fail_on=["bad one"])
        errors = []
        session = await _open(
            document, embedder, generator, on_error=lambda q, e: errors.append(e)
        )

        turns = await session.run(questions_from(["bad one", "install?", "exit"]))

        assert turns == 1
        assert isinstance(errors[0], EmbeddingError)
        assert len(generator.calls) == 1

    @pytest.mark.asyncio
    async def test_query_dimension_mismatch_is_fatal(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        session = await _open(document, embedder, generator)
        session.embedder = AsyncMock()
        session.embedder.embed.return_value = [1.0, 2.0]

        with pytest.raises(DimensionMismatch):
            await session.run(questions_from(["install?"]))
        assert session.closed

    @pytest.mark.asyncio
    async def test_other_failures_propagate(
        self, document: str, embedder: KeywordEmbedder
    ) -> None:
        generator = AsyncMock()
        generator.generate.side_effect = SourceUnavailable("unexpected")
        session = await _open(document, embedder, generator)

        with pytest.raises(SourceUnavailable):
            await session.run(questions_from(["install?"]))

    @pytest.mark.asyncio
    async def test_closed_session_cannot_run_again(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        session = await _open(document, embedder, generator)
        await session.run(questions_from(["exit"]))

        with pytest.raises(RuntimeError):
            await session.run(questions_from(["install?"]))


class TestAnswer:
    @pytest.mark.asyncio
    async def test_context_is_ranked_segments_joined_by_blank_lines(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        session = await _open(document, embedder, generator, k=2)

        record = await session.answer("config config")

        call = generator.calls[0]
        assert call["question"] == "config config"
        assert call["system"] == session.system_instructions
        first, second = call["context"].split("\n\n")
        assert "config" in first
        assert [m.sequenceIndex for m in record.matches][0] == 1
        assert len(record.matches) == 2
        assert record.matches[0].score == pytest.approx(1.0)
        assert record.matches[0].source == "docs/guide.md"
        assert session.state == SessionState.AWAITING_QUESTION

    @pytest.mark.asyncio
    async def test_default_instructions_describe_documentation_assistant(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        session = await _open(document, embedder, generator)

        assert session.system_instructions.startswith(
            "You are an expert documentation assistant."
        )
        assert "not in the context" in session.system_instructions

    @pytest.mark.asyncio
    async def test_k_must_be_positive(
        self, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        with pytest.raises(ConfigError):
            await _open(document, embedder, generator, k=0)


def test_build_context_uses_only_segment_text() -> None:
    hits = [
        ScoredSegment(Segment("beta", "doc", 1), 0.9),
        ScoredSegment(Segment("alpha", "doc", 0), 0.5),
    ]

    assert build_context(hits) == "beta\n\nalpha"


class TestAdapterFaults:
    @pytest.mark.asyncio
    async def test_malformed_embedding_reply_only_fails_that_question(
        self, document: str, generator: RecordingGenerator
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            text = json.loads(request.content)["input"]
            if text == "bad question":
                return httpx.Response(200, json={"embeddings": [["oops"]]})
            return httpx.Response(200, json={"embeddings": [[float(len(text)), 1.0]]})

        embedder = OllamaEmbedder(
            base_url="http://ollama:11434", model="m", transport=httpx.MockTransport(handler)
        )
        answers: List[AnswerRecord] = []
        errors = []
        session = await _open(
            document,
            embedder,
            generator,
            on_answer=answers.append,
            on_error=lambda q, e: errors.append(e),
        )

        turns = await session.run(questions_from(["bad question", "good question", "exit"]))

        assert turns == 1
        assert [a.question for a in answers] == ["good question"]
        assert len(errors) == 1 and isinstance(errors[0], EmbeddingError)
        assert session.closed

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [0, -3])
    async def test_invalid_k_fails_before_chunking_or_embedding(
        self, k: int, document: str, embedder: KeywordEmbedder, generator: RecordingGenerator
    ) -> None:
        with pytest.raises(ConfigError):
            await _open(document, embedder, generator, k=k)
        assert embedder.calls == []
