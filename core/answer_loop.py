# core/answer_loop.py
from typing import AsyncIterable, Callable, List, Optional, Sequence
from config.settings import settings
from core.chunker import chunk, validate_chunk_config
from core.embedder import Embedder, embed_segments
from core.entities import ScoredSegment
from core.generator import Generator
from core.query_source import is_exit
from core.vector_index import VectorIndex
from model.answer import AnswerRecord, Match
from util import functions
from util.constants import CONTEXT_JOINER, DEFAULT_SEPARATORS
from util.enums import ErrorMessage, SessionState
from util.errors import ConfigError, EmbeddingError, EmptyIndex, GenerationError
from util.timing import timed
import logging

logger = logging.getLogger(__name__)

AnswerHandler = Callable[[AnswerRecord], None]
ErrorHandler = Callable[[str, Exception], None]


def build_context(hits: Sequence[ScoredSegment]) -> str:
    """
    Join retrieved segment texts in ranked order, separated by a blank line.
    """
    return CONTEXT_JOINER.join(h.segment.text for h in hits)


def _matches(hits: Sequence[ScoredSegment]) -> List[Match]:
    return [
        Match(
            source=h.segment.source_locator,
            sequenceIndex=h.segment.sequence_index,
            score=h.score,
            excerpt=functions.clip_words(functions.one_line(h.segment.text), max_words=20),
        )
        for h in hits
    ]


def _validate_k(k: int) -> None:
    if k < 1:
        raise ConfigError(f"retrieval k must be at least 1 (got {k})")


def _log_answer(record: AnswerRecord) -> None:
    logger.info("loop.answer turn=%d chars=%d", record.turn, len(record.answer))


def _log_error(question: str, err: Exception) -> None:
    logger.warning("loop.turn.error question=%r err=%s", question, err)


class AnswerSession:
    """
    Question/answer loop over one indexed document.

    INDEXING -> READY -> (AWAITING_QUESTION <-> ANSWERING) -> CLOSED.
    Questions are handled strictly one at a time.
    """

    def __init__(
        self,
        *,
        index: VectorIndex,
        embedder: Embedder,
        generator: Generator,
        k: int = 5,
        system_instructions: Optional[str] = None,
        on_answer: AnswerHandler = _log_answer,
        on_error: ErrorHandler = _log_error,
    ) -> None:
        _validate_k(k)
        self.index = index
        self.embedder = embedder
        self.generator = generator
        self.k = k
        self.system_instructions = system_instructions or settings.SYSTEM_INSTRUCTIONS
        self.on_answer = on_answer
        self.on_error = on_error
        self.turns = 0
        self.state = SessionState.READY

    @classmethod
    async def open(
        cls,
        *,
        text: str,
        locator: str,
        embedder: Embedder,
        generator: Generator,
        max_size: int = 1000,
        overlap: int = 200,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
        k: int = 5,
        **kwargs,
    ) -> "AnswerSession":
        """
        Run the one-time INDEXING phase: chunk, embed, build the index.

        Every failure here is fatal and propagates to the caller; no session
        exists until the index is fully built.
        """
        _validate_k(k)
        validate_chunk_config(max_size, overlap, separators)
        logger.info("loop.state %s", SessionState.INDEXING.value)
        with timed(logger, "loop.indexing", locator=locator):
            with timed(logger, "loop.chunk"):
                segments = chunk(
                    text,
                    max_size=max_size,
                    overlap=overlap,
                    separators=separators,
                    source_locator=locator,
                )
            if not segments:
                raise EmptyIndex.of(ErrorMessage.EMPTY_DOCUMENT)

            vectors = await embed_segments(embedder, segments)
            index = VectorIndex.build(zip(vectors, segments))

        session = cls(index=index, embedder=embedder, generator=generator, k=k, **kwargs)
        logger.info("loop.state %s segments=%d", session.state.value, len(index))
        return session

    @property
    def closed(self) -> bool:
        return self.state == SessionState.CLOSED

    def close(self) -> None:
        if not self.closed:
            self.state = SessionState.CLOSED
            logger.info("loop.state %s turns=%d", self.state.value, self.turns)

    async def answer(self, question: str) -> AnswerRecord:
        """
        Answer one question: embed it, retrieve top-k, generate from context.
        Adapter failures propagate; `run` decides which ones are fatal.
        """
        self.state = SessionState.ANSWERING
        try:
            with timed(logger, "loop.retrieve", k=self.k):
                qvec = await self.embedder.embed(question)
                hits = self.index.query(qvec, self.k)
            logger.info(
                "loop.retrieve.top count=%d best=%.3f",
                len(hits),
                hits[0].score if hits else 0.0,
            )

            context = build_context(hits)
            with timed(logger, "loop.generate"):
                text = await self.generator.generate(
                    self.system_instructions, context, question
                )

            self.turns += 1
            return AnswerRecord(
                turn=self.turns, question=question, answer=text, matches=_matches(hits)
            )
        finally:
            if not self.closed:
                self.state = SessionState.AWAITING_QUESTION

    async def run(self, questions: AsyncIterable[str]) -> int:
        """
        Pull questions until the exit sentinel (or end of input) and return the
        number of answered turns. Embedding and generation errors are reported
        through `on_error` and the loop carries on.
        """
        if self.closed:
            raise RuntimeError("session is closed")
        self.state = SessionState.AWAITING_QUESTION
        try:
            async for raw in questions:
                if is_exit(raw):
                    break
                question = raw.strip()
                if not question:
                    continue
                try:
                    record = await self.answer(question)
                except (EmbeddingError, GenerationError) as e:
                    self.on_error(question, e)
                    continue
                self.on_answer(record)
        finally:
            self.close()
        return self.turns
