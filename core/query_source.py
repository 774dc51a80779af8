# core/query_source.py
import asyncio
import threading
from typing import AsyncIterator, Optional
from util.constants import EXIT_SENTINEL, PROMPT


def is_exit(question: str) -> bool:
    return question.strip().lower() == EXIT_SENTINEL


def _resolve(fut: "asyncio.Future[Optional[str]]", line: Optional[str], err: Optional[BaseException]) -> None:
    if fut.done():
        return
    if err is not None:
        fut.set_exception(err)
    else:
        fut.set_result(line)


def _read_into(loop: asyncio.AbstractEventLoop, fut: "asyncio.Future[Optional[str]]", prompt: str) -> None:
    line: Optional[str] = None
    err: Optional[BaseException] = None
    try:
        line = input(prompt)
    except EOFError:
        line = None
    except Exception as e:
        err = e
    try:
        loop.call_soon_threadsafe(_resolve, fut, line, err)
    except RuntimeError:
        # Loop already closed: the reader was abandoned on shutdown.
        pass


async def read_line(prompt: str = PROMPT) -> Optional[str]:
    """
    Read one line from stdin without blocking the event loop; None on end of input.

    The blocking `input` call runs on a daemon thread that nothing waits for,
    so cancelling (e.g. Ctrl-C) returns immediately even while a read is pending.
    """
    loop = asyncio.get_running_loop()
    fut: "asyncio.Future[Optional[str]]" = loop.create_future()
    threading.Thread(
        target=_read_into, args=(loop, fut, prompt), name="stdin-reader", daemon=True
    ).start()
    return await fut


async def stdin_questions(prompt: str = PROMPT) -> AsyncIterator[str]:
    """
    Yield raw lines typed by the operator until end of input.

    The next line is only read after the caller has handled the previous one.
    """
    while True:
        line = await read_line(prompt)
        if line is None:
            return
        yield line
