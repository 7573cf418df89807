from __future__ import annotations

from typing import Protocol

from yomikata.analyzer.tokens import TokenSequence


class Analyzer(Protocol):
    @property
    def ready(self) -> bool:
        ...

    def analyze(self, text: str) -> TokenSequence:
        ...

    def ensure_ready(self) -> None:
        ...

    def metadata(self) -> dict[str, str]:
        ...

    def close(self) -> None:
        ...
