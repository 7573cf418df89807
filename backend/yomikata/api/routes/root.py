from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/")
def api_root() -> dict[str, str]:
    return {"status": "ok", "message": "yomikata backend"}


@router.get("/health")
def health(request: Request) -> dict[str, object]:
    state = request.app.state
    analyzer = getattr(state, "analyzer", None)
    # A request after a failed startup may have brought the analyzer up since.
    analyzer_ready = bool(getattr(state, "analyzer_ready", False)) or bool(getattr(analyzer, "ready", False))
    table_ready = bool(getattr(state, "frequency_table_ready", False))
    status = "ok" if analyzer_ready and table_ready else "degraded"
    payload: dict[str, object] = {
        "status": status,
        "service": "backend",
        "components": {
            "analyzer": "ok" if analyzer_ready else "degraded",
            "frequency_table": "ok" if table_ready else "degraded",
        },
    }

    analyzer_error = getattr(state, "analyzer_error", None)
    table_error = getattr(state, "frequency_table_error", None)
    if analyzer_error and not analyzer_ready:
        payload["analyzer_error"] = str(analyzer_error)
    if table_error:
        payload["frequency_table_error"] = str(table_error)

    return payload
