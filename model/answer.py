from typing import List
from pydantic import BaseModel, Field


class Match(BaseModel):
    source: str
    sequenceIndex: int
    score: float
    excerpt: str


class AnswerRecord(BaseModel):
    turn: int
    question: str
    answer: str
    matches: List[Match] = Field(default_factory=list)
