from __future__ import annotations


PAYLOAD_PREVIEW_LIMIT = 1000


def truncate_payload(text: str, limit: int = PAYLOAD_PREVIEW_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: max(limit, 0)] + "…"


class AnalyzerError(RuntimeError):
    """Base class for every failure surfaced by the analyzer bridge.

    `stage` names the pipeline step that failed (readiness, inspect, exec,
    demux, extract, decode, ...) so callers can tell "the analyzer is not
    usable" apart from "the analyzer answered in an unexpected shape".
    """

    def __init__(self, message: str, *, stage: str, payload: str | None = None):
        super().__init__(message)
        self.stage = stage
        self.payload = truncate_payload(payload) if payload is not None else None

    def __str__(self) -> str:
        message = super().__str__()
        if self.payload:
            return f"[{self.stage}] {message}: {self.payload}"
        return f"[{self.stage}] {message}"


class ProvisioningError(AnalyzerError):
    """The analyzer container is not ready or cannot be reached."""


class InspectError(ProvisioningError):
    """The container identity is unknown to the Docker daemon."""


class AttachError(ProvisioningError):
    """An exec instance could not be created or attached to."""


class AnalyzerTimeoutError(AnalyzerError, TimeoutError):
    """The caller's deadline expired while waiting on the analyzer."""


class ProtocolError(AnalyzerError):
    """The analyzer produced no recognizable answer."""


class NoJSONFoundError(ProtocolError):
    def __init__(self, *, payload: str | None = None):
        super().__init__(
            "no valid JSON line found in analyzer output; the analyzer may not be "
            "emitting structured output at all (check network/DNS access of the "
            "container during first-run provisioning)",
            stage="extract",
            payload=payload,
        )


class DecodeError(AnalyzerError):
    """The extracted answer is not valid JSON or has the wrong top-level shape."""


class ExecutionError(AnalyzerError):
    def __init__(self, exit_code: int, *, stage: str = "exec", payload: str | None = None):
        super().__init__(f"command failed with exit code {exit_code}", stage=stage, payload=payload)
        self.exit_code = exit_code


class PartialDecodeWarning(UserWarning):
    """A single analyzer entry had an unexpected shape and was skipped."""
