from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, InvalidStateError, wait
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
import logging
import threading
import time
from typing import Callable, Iterator, Protocol

from yomikata.analyzer.demux import LogLine
from yomikata.analyzer.errors import AnalyzerError
from yomikata.core.config import DEFAULT_READY_SENTINEL

logger = logging.getLogger(__name__)


class ReadinessState(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ReadinessOutcome:
    state: ReadinessState
    reason: str | None = None
    error: BaseException | None = None
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is ReadinessState.READY


class LogStream(Protocol):
    def lines(self) -> Iterator[LogLine]:
        ...

    def close(self) -> None:
        ...


class SupervisedProcess(Protocol):
    name: str

    def is_running(self) -> bool:
        ...

    def start(self) -> None:
        ...

    def follow_logs(self, since: int = 0) -> LogStream:
        ...


class OneShot:
    """A signal that resolves at most once; later resolutions are ignored."""

    def __init__(self) -> None:
        self.future: Future[None] = Future()

    def resolve(self) -> bool:
        try:
            self.future.set_result(None)
        except InvalidStateError:
            return False
        return True

    def fail(self, error: BaseException) -> bool:
        try:
            self.future.set_exception(error)
        except InvalidStateError:
            return False
        return True

    @property
    def fired(self) -> bool:
        return self.future.done()


class ReadinessController:
    """Brings one analyzer process to a queryable state, or reports why it could not.

    A listener thread follows the process logs and fires the ready signal on
    the first line containing `sentinel`; a starter thread issues the start
    command and fires the failed signal if that raises. The caller waits for
    whichever comes first, bounded by the timeout. A controller runs once: its
    outcome is final and returned again by later calls. Retry with a new
    controller.
    """

    def __init__(
        self,
        process: SupervisedProcess,
        *,
        sentinel: str = DEFAULT_READY_SENTINEL,
        poll_interval_seconds: float = 1.0,
        join_timeout_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._process = process
        self._sentinel = sentinel
        self._poll_interval = poll_interval_seconds
        self._join_timeout = join_timeout_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._state = ReadinessState.NOT_STARTED
        self._outcome: ReadinessOutcome | None = None

    @property
    def state(self) -> ReadinessState:
        return self._state

    @property
    def outcome(self) -> ReadinessOutcome | None:
        return self._outcome

    def bring_up(self, timeout_seconds: float) -> ReadinessOutcome:
        with self._lock:
            if self._outcome is not None:
                return self._outcome

            self._state = ReadinessState.STARTING
            started_at = self._clock()
            outcome = self._bring_up(timeout_seconds, started_at)
            self._outcome = outcome
            self._state = outcome.state

        logger.info(
            "analyzer_readiness",
            extra={
                "process": self._process.name,
                "state": outcome.state.value,
                "reason": outcome.reason,
                "elapsed_seconds": round(outcome.elapsed_seconds, 3),
            },
        )
        return outcome

    def _finish(self, state: ReadinessState, started_at: float, **details) -> ReadinessOutcome:
        return ReadinessOutcome(state=state, elapsed_seconds=self._clock() - started_at, **details)

    def _bring_up(self, timeout_seconds: float, started_at: float) -> ReadinessOutcome:
        try:
            already_running = self._process.is_running()
        except AnalyzerError as exc:
            return self._finish(ReadinessState.FAILED, started_at, reason=str(exc), error=exc)

        # A running process may have announced readiness long ago: read its whole history.
        since = 0 if already_running else int(time.time()) - 1

        ready = OneShot()
        failed = OneShot()
        stop = threading.Event()
        streams: list[LogStream] = []
        streams_lock = threading.Lock()

        listener = threading.Thread(
            target=self._listen,
            args=(since, ready, stop, streams, streams_lock),
            name=f"readiness-listener-{self._process.name}",
            daemon=True,
        )
        starter = threading.Thread(
            target=self._start,
            args=(failed,),
            name=f"readiness-starter-{self._process.name}",
            daemon=True,
        )

        with ExitStack() as cleanup:
            # Callbacks unwind in reverse: stop, close streams, then join.
            cleanup.callback(self._join, starter)
            cleanup.callback(self._join, listener)
            cleanup.callback(self._close_streams, streams, streams_lock)
            cleanup.callback(stop.set)

            listener.start()
            starter.start()

            remaining = max(timeout_seconds - (self._clock() - started_at), 0.0)
            done, _ = wait([ready.future, failed.future], timeout=remaining, return_when=FIRST_COMPLETED)

            if ready.future in done:
                return self._check_liveness(started_at)
            if failed.future in done:
                error = failed.future.exception()
                return self._finish(ReadinessState.FAILED, started_at, reason=str(error), error=error)
            return self._finish(
                ReadinessState.TIMED_OUT,
                started_at,
                reason=f"no {self._sentinel!r} line within {timeout_seconds:g}s",
            )

    def _check_liveness(self, started_at: float) -> ReadinessOutcome:
        try:
            running = self._process.is_running()
        except AnalyzerError as exc:
            return self._finish(ReadinessState.FAILED, started_at, reason=str(exc), error=exc)
        if not running:
            return self._finish(
                ReadinessState.FAILED,
                started_at,
                reason="ready line seen but the process is no longer running",
            )
        return self._finish(ReadinessState.READY, started_at)

    def _start(self, failed: OneShot) -> None:
        try:
            self._process.start()
        except Exception as exc:
            logger.exception("analyzer_start_failed", extra={"process": self._process.name})
            failed.fail(exc)

    def _listen(
        self,
        since: int,
        ready: OneShot,
        stop: threading.Event,
        streams: list[LogStream],
        streams_lock: threading.Lock,
    ) -> None:
        while not stop.is_set() and not ready.fired:
            try:
                stream = self._process.follow_logs(since)
            except AnalyzerError as exc:
                logger.debug("analyzer_log_follow_retry", extra={"reason": str(exc)})
                stop.wait(self._poll_interval)
                continue

            with streams_lock:
                if stop.is_set():
                    stream.close()
                    return
                streams.append(stream)

            try:
                for line in stream.lines():
                    logger.info(
                        "analyzer_log",
                        extra={"process": self._process.name, "stream": line.stream, "line": line.text},
                    )
                    if self._sentinel in line.text and ready.resolve():
                        logger.info("analyzer_ready_line_seen", extra={"process": self._process.name})
                    if stop.is_set() or ready.fired:
                        return
            except AnalyzerError as exc:
                if stop.is_set():
                    return
                logger.debug("analyzer_log_stream_interrupted", extra={"reason": str(exc)})
            finally:
                stream.close()

            # The stream ends when the process is not (yet) running; follow again.
            stop.wait(self._poll_interval)

    @staticmethod
    def _close_streams(streams: list[LogStream], streams_lock: threading.Lock) -> None:
        with streams_lock:
            for stream in streams:
                stream.close()

    def _join(self, thread: threading.Thread) -> None:
        if thread.ident is None:
            return
        thread.join(self._join_timeout)
        if thread.is_alive():
            logger.warning("readiness_thread_still_running", extra={"thread": thread.name})
