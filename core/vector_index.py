# core/vector_index.py
from typing import Iterable, List, Sequence, Tuple
import numpy as np
from core.entities import IndexEntry, ScoredSegment, Segment, Vector
from util.errors import DimensionMismatch, EmptyIndex
import logging

logger = logging.getLogger(__name__)


def _as_row(vector: Vector) -> np.ndarray:
    arr = np.asarray(vector, dtype=np.float64)
    if arr.ndim != 1:
        raise DimensionMismatch(f"expected a flat vector, got shape {arr.shape}")
    return arr


def _normalize_rows(mat: np.ndarray) -> np.ndarray:
    # Zero rows stay zero, so their cosine against anything is 0.
    norms = np.linalg.norm(mat, axis=1, keepdims=True)
    norms[norms == 0] = 1
    return mat / norms


class VectorIndex:
    """
    In-memory cosine-similarity index over a single document's segments.

    Built once via `build`; read-only afterwards, so it can be shared
    between readers without locking. Search is a linear scan over a
    row-normalized matrix, hidden behind `query`.
    """

    def __init__(self, entries: Sequence[IndexEntry], matrix: np.ndarray) -> None:
        self._entries: Tuple[IndexEntry, ...] = tuple(entries)
        self._unit = _normalize_rows(matrix)
        self._unit.setflags(write=False)
        self._order = np.array(
            [e.segment.sequence_index for e in self._entries], dtype=np.int64
        )

    @classmethod
    def build(cls, entries: Iterable[Tuple[Vector, Segment]]) -> "VectorIndex":
        """
        Load (vector, segment) pairs. Raises EmptyIndex for no entries and
        DimensionMismatch when vectors differ in length.
        """
        built: List[IndexEntry] = []
        dim = None
        for vector, segment in entries:
            row = _as_row(vector)
            if dim is None:
                if row.shape[0] == 0:
                    raise DimensionMismatch("embedding vectors must not be empty")
                dim = row.shape[0]
            elif row.shape[0] != dim:
                raise DimensionMismatch(
                    f"segment {segment.sequence_index} has dimension {row.shape[0]}, expected {dim}"
                )
            built.append(IndexEntry(vector=row, segment=segment))

        if not built:
            raise EmptyIndex("cannot build an index without any segments")

        matrix = np.vstack([e.vector for e in built])
        logger.info("index.build n=%d d=%d", matrix.shape[0], matrix.shape[1])
        return cls(built, matrix)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def dimension(self) -> int:
        return int(self._unit.shape[1])

    def query(self, vector: Vector, k: int) -> List[ScoredSegment]:
        """
        Return up to `k` segments ranked by cosine similarity to `vector`,
        highest first; equal scores keep document order.
        """
        q = _as_row(vector)
        if q.shape[0] != self.dimension:
            raise DimensionMismatch(
                f"query has dimension {q.shape[0]}, index has {self.dimension}"
            )
        kk = min(k, len(self._entries))
        if kk <= 0:
            return []

        norm = float(np.linalg.norm(q))
        if norm == 0:
            sims = np.zeros(len(self._entries), dtype=np.float64)
        else:
            sims = np.clip(self._unit @ (q / norm), -1.0, 1.0)

        # lexsort: last key is primary -> score desc, then sequence_index asc
        ranked = np.lexsort((self._order, -sims))[:kk]
        out = [
            ScoredSegment(segment=self._entries[int(i)].segment, score=float(sims[int(i)]))
            for i in ranked
        ]
        logger.debug("index.query k=%d top=%.3f", len(out), out[0].score)
        return out
