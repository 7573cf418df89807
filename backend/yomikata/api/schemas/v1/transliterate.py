from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


ProcessingStatusValue = Literal[
    "preserved",
    "transliterated_irregular",
    "transliterated_infrequent",
    "transliterated_unmappable",
    "preserved_non_kanji",
]


class TransliterateRequest(BaseModel):
    text: str = Field(...)
    frequency_threshold: int | None = Field(default=None, ge=0)


class ProcessingDecisionItem(BaseModel):
    original: str
    result: str
    status: ProcessingStatusValue
    label: str


class TransliterateResponse(BaseModel):
    text: str
    transliterated: str
    frequency_threshold: int
    decisions: list[ProcessingDecisionItem]
