from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from yomikata.analyzer.errors import AnalyzerError
from yomikata.api.errors import analyzer_http_exception
from yomikata.api.routes.analyze import require_analyzer
from yomikata.api.schemas.v1.transliterate import TransliterateRequest, TransliterateResponse
from yomikata.services.use_cases.transliterate import TransliterateTextUseCase

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/transliterate", response_model=TransliterateResponse)
def transliterate_text(payload: TransliterateRequest, request: Request) -> TransliterateResponse:
    analyzer = require_analyzer(request)
    frequency_table = getattr(request.app.state, "frequency_table", None)
    if frequency_table is None:
        raise HTTPException(
            status_code=503,
            detail="Frequency table unavailable. Check backend logs and YOMIKATA_FREQUENCY_TABLE_PATH.",
        )

    settings = request.app.state.settings
    use_case = TransliterateTextUseCase(
        analyzer,
        frequency_table,
        default_threshold=settings.default_frequency_threshold,
    )
    try:
        return use_case.execute(payload.text, frequency_threshold=payload.frequency_threshold)
    except AnalyzerError as exc:
        logger.warning("transliterate_analyzer_error", extra={"stage": exc.stage, "error": str(exc)})
        raise analyzer_http_exception(exc) from exc
