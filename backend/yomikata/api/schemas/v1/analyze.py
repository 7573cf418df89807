from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class AnalyzeRequest(BaseModel):
    text: str = Field(...)
    include_morphemes: bool = False


class GlossItem(BaseModel):
    pos: str
    gloss: str
    info: str = ""


class ConjugationPropertyItem(BaseModel):
    pos: str
    type: str
    negative: bool


class ConjugationItem(BaseModel):
    properties: list[ConjugationPropertyItem] = Field(default_factory=list)
    reading: str
    glosses: list[GlossItem] = Field(default_factory=list)
    reading_ok: bool


class ReadingEntryItem(BaseModel):
    kind: Literal["kanji", "text"]
    text: str
    reading: str = ""
    reading_type: str = ""
    linked: bool = False
    geminated: str = ""
    grade: int = 0


class TokenItem(BaseModel):
    surface: str
    is_lexical: bool
    reading: str = ""
    kana: str = ""
    romanized: str = ""
    score: int = 0
    seq: int = 0
    glosses: list[GlossItem] = Field(default_factory=list)
    conjugations: list[ConjugationItem] = Field(default_factory=list)
    alternatives: list[TokenItem] = Field(default_factory=list)
    compound: list[str] = Field(default_factory=list)
    components: list[TokenItem] = Field(default_factory=list)
    kanji_readings: list[ReadingEntryItem] = Field(default_factory=list)


class AnalyzeResponse(BaseModel):
    tokens: list[TokenItem]
    morphemes: list[TokenItem] | None = None
    tokenized: str
    kana: str
    roman: str
    gloss: str
    spaced: str
