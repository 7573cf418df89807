from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from yomikata.analyzer.adapter import Analyzer
from yomikata.analyzer.errors import AnalyzerError
from yomikata.api.errors import analyzer_http_exception
from yomikata.api.schemas.v1.analyze import AnalyzeRequest, AnalyzeResponse
from yomikata.services.use_cases.analyze import AnalyzeTextUseCase

router = APIRouter()
logger = logging.getLogger(__name__)


def require_analyzer(request: Request) -> Analyzer:
    analyzer = getattr(request.app.state, "analyzer", None)
    if analyzer is None:
        raise HTTPException(
            status_code=503,
            detail="Analyzer unavailable. Check backend logs and the Docker socket configuration.",
        )
    return analyzer


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze_text(payload: AnalyzeRequest, request: Request) -> AnalyzeResponse:
    analyzer = require_analyzer(request)
    try:
        return AnalyzeTextUseCase(analyzer).execute(
            payload.text,
            include_morphemes=payload.include_morphemes,
        )
    except AnalyzerError as exc:
        logger.warning("analyze_analyzer_error", extra={"stage": exc.stage, "error": str(exc)})
        raise analyzer_http_exception(exc) from exc
