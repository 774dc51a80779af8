# core/source.py
from pathlib import Path
from typing import List, Optional
import fitz
import httpx
from util.errors import SourceUnavailable
from util.timing import timed
import logging

logger = logging.getLogger(__name__)

PAGE_JOINER = "\n\n"


def _is_url(locator: str) -> bool:
    return locator.lower().startswith(("http://", "https://"))


def extract_pdf_text(file_bytes: bytes) -> str:
    """
    Return the text of every page of a PDF, pages separated by a blank line.
    Raises SourceUnavailable when PyMuPDF cannot open or parse the file.
    """
    pages: List[str] = []
    try:
        with fitz.open(stream=file_bytes, filetype="pdf") as doc:
            with timed(logger, "source.pdf.parse", pages=doc.page_count):
                for i in range(doc.page_count):
                    txt = (doc.load_page(i).get_text("text") or "").strip()
                    if txt:
                        pages.append(txt)
    except Exception as e:
        # do not log payloads
        logger.error("source.pdf.error", exc_info=True)
        raise SourceUnavailable(f"Could not parse PDF: {e}") from e
    logger.info("source.pdf.pages count=%d", len(pages))
    return PAGE_JOINER.join(pages)


async def _fetch_url(
    url: str, timeout: float, transport: Optional[httpx.AsyncBaseTransport]
) -> str:
    try:
        async with httpx.AsyncClient(
            timeout=timeout, transport=transport, follow_redirects=True
        ) as client:
            res = await client.get(url)
    except httpx.RequestError as e:
        logger.error("source.request_error url=%s err=%s", url, e)
        raise SourceUnavailable(f"Failed to download {url}: {e}") from e

    if res.status_code != 200:
        logger.error("source.bad_status url=%s status=%d", url, res.status_code)
        raise SourceUnavailable(
            f"Failed to download {url}: {res.status_code} {res.reason_phrase}"
        )
    if url.lower().split("?", 1)[0].endswith(".pdf"):
        return extract_pdf_text(res.content)
    return res.text


def _read_path(locator: str) -> str:
    path = Path(locator).expanduser()
    try:
        if path.suffix.lower() == ".pdf":
            return extract_pdf_text(path.read_bytes())
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error("source.read_error path=%s err=%s", path, e)
        raise SourceUnavailable(f"Could not read {path}: {e}") from e


async def fetch_source(
    locator: str,
    *,
    timeout: float = 60.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Return the raw text behind `locator`: an http(s) URL, a PDF or a text file.
    Raises SourceUnavailable on any transport, status or read failure.
    """
    locator = locator.strip()
    if not locator:
        raise SourceUnavailable("No document locator given")
    with timed(logger, "source.fetch", remote=_is_url(locator)):
        if _is_url(locator):
            text = await _fetch_url(locator, timeout, transport)
        else:
            text = _read_path(locator)
    logger.info("source.chars n=%d", len(text))
    return text
