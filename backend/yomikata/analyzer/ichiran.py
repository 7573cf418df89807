from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field, replace
import logging
import threading
import time
from typing import Callable, Iterable

from yomikata.analyzer.command import (
    CommandResult,
    CommandRunner,
    build_analyze_command,
    build_kanji_match_command,
)
from yomikata.analyzer.container import ContainerHandle
from yomikata.analyzer.decoder import decode_kanji_match_batch, decode_response
from yomikata.analyzer.docker_api import DockerEngineClient
from yomikata.analyzer.errors import (
    AnalyzerTimeoutError,
    DecodeError,
    ExecutionError,
    ProtocolError,
    ProvisioningError,
)
from yomikata.analyzer.extract import extract_json_line
from yomikata.analyzer.readiness import (
    ReadinessController,
    ReadinessOutcome,
    ReadinessState,
    SupervisedProcess,
)
from yomikata.analyzer.tokens import ReadingEntry, Token, TokenSequence
from yomikata.core.config import DEFAULT_READY_SENTINEL, Settings
from yomikata.services.frequency import contains_kanji

logger = logging.getLogger(__name__)

ReadingKey = tuple[str, str]


def _reading_key(token: Token) -> ReadingKey | None:
    if not token.is_lexical or not token.kana or not contains_kanji(token.surface):
        return None
    # Spaced kana (e.g. "だ から") breaks the reading match.
    return token.surface, token.kana.replace(" ", "")


def _collect_reading_keys(tokens: Iterable[Token]) -> list[ReadingKey]:
    keys: dict[ReadingKey, None] = {}

    def visit(token: Token) -> None:
        key = _reading_key(token)
        if key is not None:
            keys.setdefault(key, None)
        for nested in (*token.components, *token.alternatives):
            visit(nested)

    for token in tokens:
        visit(token)
    return list(keys)


def _with_readings(token: Token, readings: dict[ReadingKey, tuple[ReadingEntry, ...]]) -> Token:
    key = _reading_key(token)
    return replace(
        token,
        kanji_readings=readings.get(key, ()) if key is not None else (),
        components=tuple(_with_readings(component, readings) for component in token.components),
        alternatives=tuple(_with_readings(alternative, readings) for alternative in token.alternatives),
    )


@dataclass
class IchiranAnalyzer:
    """Japanese morphological analysis through the ichiran container."""

    handle: ContainerHandle
    runner: CommandRunner
    sentinel: str = DEFAULT_READY_SENTINEL
    startup_timeout_seconds: float = 25 * 60.0
    query_timeout_seconds: float = 45 * 60.0
    kanji_readings_enabled: bool = True
    controller_factory: Callable[[SupervisedProcess], ReadinessController] | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _attempt: Future[ReadinessOutcome] | None = field(default=None, init=False, repr=False)
    _ready: bool = field(default=False, init=False, repr=False)

    @property
    def ready(self) -> bool:
        return self._ready

    def _new_controller(self) -> ReadinessController:
        if self.controller_factory is not None:
            return self.controller_factory(self.handle)
        return ReadinessController(self.handle, sentinel=self.sentinel)

    def ensure_ready(self) -> None:
        """Bring the container up once; concurrent callers share the running attempt."""
        with self._lock:
            if self._ready:
                return
            attempt = self._attempt
            owner = attempt is None
            if owner:
                attempt = self._attempt = Future()

        if owner:
            try:
                outcome = self._new_controller().bring_up(self.startup_timeout_seconds)
            except BaseException as exc:
                with self._lock:
                    self._attempt = None
                # Waiters get an ordinary error even when the owner was interrupted.
                failure = exc
                if not isinstance(exc, Exception):
                    failure = ProvisioningError(f"readiness attempt interrupted: {exc!r}", stage="readiness")
                attempt.set_exception(failure)
                raise
            with self._lock:
                # Failed attempts are not cached; the next call retries with a fresh controller.
                self._ready = outcome.ok
                self._attempt = None
            attempt.set_result(outcome)

        outcome = attempt.result()
        if outcome.ok:
            return
        if outcome.state is ReadinessState.TIMED_OUT:
            raise AnalyzerTimeoutError(
                f"analyzer {self.handle.name!r} did not become ready: {outcome.reason}",
                stage="readiness",
            )
        raise ProvisioningError(
            f"analyzer {self.handle.name!r} failed to start: {outcome.reason}",
            stage="readiness",
        ) from outcome.error

    def _run(self, command: list[str], deadline: float, stage: str) -> CommandResult:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise AnalyzerTimeoutError("deadline exceeded", stage=stage)
        try:
            result = self.runner.run(self.handle, command, remaining)
        except ProvisioningError:
            # The container went away under us; readiness has to be established again.
            with self._lock:
                self._ready = False
            raise
        if result.exit_code != 0:
            raise ExecutionError(result.exit_code, stage=stage, payload=result.text)
        return result

    def analyze(self, text: str) -> TokenSequence:
        if not text.strip():
            return TokenSequence()

        self.ensure_ready()
        deadline = time.monotonic() + self.query_timeout_seconds
        result = self._run(build_analyze_command(text), deadline, "exec")
        tokens = decode_response(extract_json_line(result.output))
        logger.info("analyzer_analyze", extra={"chars": len(text), "tokens": len(tokens)})

        if not self.kanji_readings_enabled:
            return tokens
        return self._attach_kanji_readings(tokens, deadline)

    def _attach_kanji_readings(self, tokens: TokenSequence, deadline: float) -> TokenSequence:
        keys = _collect_reading_keys(tokens)
        if not keys:
            return tokens

        try:
            result = self._run(build_kanji_match_command(keys), deadline, "kanji_match")
            batch = decode_kanji_match_batch(extract_json_line(result.output), len(keys))
        except (ProtocolError, DecodeError, ExecutionError) as exc:
            # Tokens stay usable without kanji detail; transliteration then falls back to kana.
            logger.warning("kanji_readings_unavailable", extra={"error": str(exc), "pairs": len(keys)})
            return tokens

        readings = dict(zip(keys, batch))
        return TokenSequence(tuple(_with_readings(token, readings) for token in tokens))

    def stop(self) -> None:
        with self._lock:
            self._ready = False
        self.handle.stop()

    def metadata(self) -> dict[str, str]:
        return {
            "analyzer": "ichiran",
            "container": self.handle.name,
            "kanji_readings": "enabled" if self.kanji_readings_enabled else "disabled",
        }

    def close(self) -> None:
        self.handle.client.close()


def load_ichiran_analyzer(settings: Settings) -> IchiranAnalyzer:
    client = DockerEngineClient(
        socket_path=settings.docker_socket,
        api_version=settings.docker_api_version,
    )
    handle = ContainerHandle(
        client=client,
        name=settings.container_name,
        dependencies=settings.dependency_containers,
    )
    return IchiranAnalyzer(
        handle=handle,
        runner=CommandRunner(client),
        sentinel=settings.ready_sentinel,
        startup_timeout_seconds=settings.startup_timeout_seconds,
        query_timeout_seconds=settings.query_timeout_seconds,
        kanji_readings_enabled=settings.kanji_readings_enabled,
    )
