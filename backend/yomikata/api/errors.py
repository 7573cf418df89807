from __future__ import annotations

from fastapi import HTTPException

from yomikata.analyzer.errors import AnalyzerError, AnalyzerTimeoutError, ProvisioningError


def analyzer_status_code(exc: AnalyzerError) -> int:
    if isinstance(exc, AnalyzerTimeoutError):
        return 504
    if isinstance(exc, ProvisioningError):
        return 503
    return 502


def analyzer_http_exception(exc: AnalyzerError) -> HTTPException:
    detail: dict[str, object] = {
        "message": exc.args[0] if exc.args else str(exc),
        "stage": exc.stage,
    }
    if exc.payload:
        detail["payload"] = exc.payload
    if isinstance(exc, AnalyzerTimeoutError):
        detail["message"] = f"Analyzer timed out: {detail['message']}"
    elif isinstance(exc, ProvisioningError):
        detail["message"] = f"Analyzer unavailable: {detail['message']}"
    else:
        detail["message"] = f"Analyzer returned an unusable answer: {detail['message']}"
    return HTTPException(status_code=analyzer_status_code(exc), detail=detail)
