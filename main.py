# main.py
import argparse
import asyncio
import sys
from typing import List, Optional
from config.settings import settings
from core.answer_loop import AnswerSession
from core.embedder import make_embedder
from core.generator import make_generator
from core.query_source import read_line, stdin_questions
from core.source import fetch_source
from model.answer import AnswerRecord
from util.enums import Color, ErrorMessage, ExitCode
from util.errors import AppError, ConfigError
from util.logger import init_logger
import logging

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Ask questions about a single document (URL, PDF or text file)."
    )
    p.add_argument("locator", nargs="?", help="URL or path of the document")
    p.add_argument("--chunk-size", type=int, default=settings.CHUNK_SIZE)
    p.add_argument("--chunk-overlap", type=int, default=settings.CHUNK_OVERLAP)
    p.add_argument("-k", type=int, default=settings.RETRIEVAL_K, help="segments per answer")
    p.add_argument("--json", action="store_true", help="print one JSON line per answer")
    p.add_argument("--log-level", default=None)
    return p.parse_args(argv)


def _print_answer(record: AnswerRecord) -> None:
    print(f"\n📝 Answer:\n{record.answer}\n")
    for m in record.matches:
        print(f"  score={m.score:.3f}  {m.source}  chunk={m.sequenceIndex}")
    print()


def _print_json(record: AnswerRecord) -> None:
    print(record.model_dump_json(), flush=True)


def _print_error(question: str, err: Exception) -> None:
    print(f"{Color.RED}❌ Error during processing:{Color.RESET} {err}", file=sys.stderr)


async def run(args: argparse.Namespace) -> int:
    locator = args.locator
    if not locator:
        locator = ((await read_line("Enter the URL or path of your document: ")) or "").strip()
    if not locator:
        raise ConfigError.of(ErrorMessage.NO_LOCATOR)
    print(f"\n📥 Loading document: {locator}")

    text = await fetch_source(locator, timeout=settings.HTTP_TIMEOUT_SECONDS)
    session = await AnswerSession.open(
        text=text,
        locator=locator,
        embedder=make_embedder(),
        generator=make_generator(),
        max_size=args.chunk_size,
        overlap=args.chunk_overlap,
        separators=settings.CHUNK_SEPARATORS,
        k=args.k,
        on_answer=_print_json if args.json else _print_answer,
        on_error=_print_error,
    )
    print(f"🧩 Indexed {len(session.index)} chunks")
    print(
        f'\n{Color.GREEN}💬 Ready! Ask your questions about the document. Type "exit" to quit.{Color.RESET}'
    )

    turns = await session.run(stdin_questions())
    print("👋 Exiting assistant. Goodbye!")
    logger.info("session.end turns=%d", turns)
    return ExitCode.OK


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    init_logger(args.log_level)
    try:
        return asyncio.run(run(args))
    except AppError as e:
        logger.error("session.fatal kind=%s err=%s", type(e).__name__, e.message)
        print(f"{Color.RED}❌ {e.message}{Color.RESET}", file=sys.stderr)
        return int(e.exit_code)
    except KeyboardInterrupt:
        print("\n👋 Exiting assistant. Goodbye!")
        return ExitCode.OK


if __name__ == "__main__":
    sys.exit(main())
