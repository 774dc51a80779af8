# core/chunker.py
from collections import deque
from typing import List, Sequence
from core.entities import Segment
from util.constants import DEFAULT_SEPARATORS
from util.errors import ConfigError
import logging

logger = logging.getLogger(__name__)


def validate_chunk_config(
    max_size: int, overlap: int, separators: Sequence[str]
) -> None:
    """
    Raise ConfigError unless 0 <= overlap < max_size and the separator list is usable.
    """
    if max_size <= 0:
        raise ConfigError(f"chunk size must be positive (got {max_size})")
    if overlap < 0:
        raise ConfigError(f"chunk overlap must not be negative (got {overlap})")
    if overlap >= max_size:
        raise ConfigError(
            f"chunk overlap ({overlap}) must be smaller than chunk size ({max_size})"
        )
    if not separators:
        raise ConfigError("at least one separator is required")
    if "" in separators[:-1]:
        raise ConfigError("the empty separator may only appear as the last entry")


def _split_on(text: str, separator: str) -> List[str]:
    pieces = list(text) if separator == "" else text.split(separator)
    return [p for p in pieces if p]


def _merge(pieces: Sequence[str], separator: str, max_size: int, overlap: int) -> List[str]:
    """
    Greedily pack `pieces` into windows of at most `max_size` characters.

    When a window closes, its trailing pieces (at most `overlap` characters,
    and no more than still fit next to the incoming piece) seed the next one.
    """
    sep_len = len(separator)
    windows: List[str] = []
    current: deque = deque()
    total = 0
    for piece in pieces:
        size = len(piece)
        if current and total + sep_len + size > max_size:
            windows.append(separator.join(current))
            while current and (total > overlap or total + sep_len + size > max_size):
                total -= len(current[0]) + (sep_len if len(current) > 1 else 0)
                current.popleft()
        current.append(piece)
        total += size + (sep_len if len(current) > 1 else 0)
    if current:
        windows.append(separator.join(current))
    return windows


def _split(text: str, separators: Sequence[str], max_size: int, overlap: int) -> List[str]:
    separator, finer = separators[-1], []
    for i, sep in enumerate(separators):
        if sep == "" or sep in text:
            separator, finer = sep, list(separators[i + 1 :])
            break

    out: List[str] = []
    pending: List[str] = []
    for piece in _split_on(text, separator):
        if len(piece) <= max_size:
            pending.append(piece)
            continue
        if pending:
            out.extend(_merge(pending, separator, max_size, overlap))
            pending = []
        if finer:
            out.extend(_split(piece, finer, max_size, overlap))
        else:
            # Nothing finer to split on: keep the unit whole rather than truncate it.
            logger.warning("chunk.oversized len=%d max_size=%d", len(piece), max_size)
            out.append(piece)
    if pending:
        out.extend(_merge(pending, separator, max_size, overlap))
    return out


def chunk(
    text: str,
    max_size: int = 1000,
    overlap: int = 200,
    separators: Sequence[str] = DEFAULT_SEPARATORS,
    source_locator: str = "",
) -> List[Segment]:
    """
    Split `text` into ordered, overlapping Segments of at most `max_size` characters.

    Separators are tried coarsest first; a piece that is still too large is
    split again with the finer ones. Empty or whitespace-only text yields [].
    """
    validate_chunk_config(max_size, overlap, separators)
    if not text or not text.strip():
        return []

    if len(text) <= max_size:
        parts = [text]
    else:
        parts = _split(text, list(separators), max_size, overlap)
        # Blank windows carry nothing to retrieve.
        parts = [p for p in parts if p.strip()]

    segments = [
        Segment(text=p, source_locator=source_locator, sequence_index=i)
        for i, p in enumerate(parts)
    ]
    logger.info(
        "chunk.segments count=%d max_size=%d overlap=%d",
        len(segments),
        max_size,
        overlap,
    )
    return segments
