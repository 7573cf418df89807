from __future__ import annotations

from dataclasses import dataclass
import logging
import shlex
import time
from typing import Iterable

from yomikata.analyzer.container import ContainerHandle, ContainerState
from yomikata.analyzer.demux import ChunkReader, demux
from yomikata.analyzer.docker_api import DockerEngineClient, translate_transport_errors
from yomikata.analyzer.errors import AnalyzerTimeoutError, ProtocolError, ProvisioningError

logger = logging.getLogger(__name__)

ANALYZE_PROGRAM = "ichiran-cli -f"
EVALUATE_PROGRAM = "ichiran-cli -e"
EXIT_CODE_POLL_SECONDS = 0.05


def shell_quote_argument(text: str) -> str:
    """POSIX-quote one argument for `bash -c`.

    `ichiran-cli` parses an argument that starts with `-` as a cluster of short
    options, so a leading hyphen left unquoted by `shlex.quote` is dropped.
    """
    quoted = shlex.quote(text)
    if quoted.startswith("-"):
        return quoted[1:]
    return quoted


def lisp_string(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_analyze_command(text: str) -> list[str]:
    return ["bash", "-c", f"{ANALYZE_PROGRAM} {shell_quote_argument(text)}"]


def build_kanji_match_expression(pairs: Iterable[tuple[str, str]]) -> str:
    calls = " ".join(
        f"(ichiran/kanji:match-readings-json {lisp_string(surface)} {lisp_string(kana)})"
        for surface, kana in pairs
    )
    return f"(jsown:to-json (list {calls}))"


def build_kanji_match_command(pairs: Iterable[tuple[str, str]]) -> list[str]:
    expression = build_kanji_match_expression(pairs)
    return ["bash", "-c", f"{EVALUATE_PROGRAM} {shlex.quote(expression)}"]


@dataclass(frozen=True)
class CommandResult:
    output: bytes
    exit_code: int

    @property
    def text(self) -> str:
        return self.output.decode("utf-8", errors="replace")


def _remaining(deadline: float, stage: str) -> float:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise AnalyzerTimeoutError("deadline exceeded", stage=stage)
    return remaining


class CommandRunner:
    """Runs one shell command per call inside the analyzer container."""

    def __init__(self, client: DockerEngineClient):
        self._client = client

    def run(self, handle: ContainerHandle, command: list[str], timeout_seconds: float) -> CommandResult:
        deadline = time.monotonic() + timeout_seconds

        state = handle.state(timeout=_remaining(deadline, "inspect"))
        if state is not ContainerState.RUNNING:
            raise ProvisioningError(
                f"container {handle.name!r} is {state.value}, not running",
                stage="exec",
            )

        exec_id = self._client.create_exec(handle.name, command, timeout=_remaining(deadline, "exec_create"))
        with self._client.start_exec(exec_id, timeout=_remaining(deadline, "exec_start")) as response:
            with translate_transport_errors("demux"):
                output = demux(ChunkReader(response.iter_bytes(), deadline=deadline))

        exit_code = self._wait_for_exit_code(exec_id, deadline)
        logger.debug(
            "analyzer_command_finished",
            extra={"exec_id": exec_id, "exit_code": exit_code, "output_bytes": len(output)},
        )
        return CommandResult(output=output, exit_code=exit_code)

    def _wait_for_exit_code(self, exec_id: str, deadline: float) -> int:
        # The attach stream can close a moment before the daemon records the exit.
        while True:
            details = self._client.inspect_exec(exec_id, timeout=_remaining(deadline, "exec_inspect"))
            exit_code = details.get("ExitCode")
            if not details.get("Running") and exit_code is not None:
                if not isinstance(exit_code, int):
                    raise ProtocolError(
                        "exec reported a non-integer exit code",
                        stage="exec_inspect",
                        payload=repr(exit_code),
                    )
                return exit_code
            time.sleep(min(EXIT_CODE_POLL_SECONDS, _remaining(deadline, "exec_inspect")))
