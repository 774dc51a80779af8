# core/entities.py
from dataclasses import dataclass
from typing import Sequence, Union
import numpy as np

# Dense embedding; adapters may hand back lists or numpy arrays.
Vector = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class Segment:
    """
    Contiguous slice of the source document, sized for embedding.
    """

    text: str
    source_locator: str
    sequence_index: int  # position in chunker output, used for tie-breaks


@dataclass(frozen=True)
class IndexEntry:
    vector: np.ndarray  # (d,) float64, as given (not normalized)
    segment: Segment


@dataclass(frozen=True)
class ScoredSegment:
    segment: Segment
    score: float  # cosine similarity in [-1, 1]
