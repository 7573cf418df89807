from __future__ import annotations

import json
from pathlib import Path
import struct
import threading
from typing import Callable

import httpx
import pytest

from yomikata.analyzer.decoder import decode_value
from yomikata.analyzer.docker_api import DockerEngineClient
from yomikata.analyzer.tokens import TokenSequence
from yomikata.core.config import Settings
from yomikata.services.frequency import KanjiFrequencyTable


FIXTURES_DIR = Path(__file__).resolve().parents[2] / "test-data" / "fixtures" / "ichiran"
MAIN_CONTAINER = "ichiran-main-1"
DATABASE_CONTAINER = "ichiran-pg-1"


def load_fixture(name: str):
    return json.loads((FIXTURES_DIR / name).read_text(encoding="utf-8"))


def frame(payload: bytes | str, stream: int = 1) -> bytes:
    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    return struct.pack(">BxxxI", stream, len(data)) + data


class StubAnalyzer:
    def __init__(self, tokens: TokenSequence | None = None, *, ready: bool = True):
        self._tokens = tokens if tokens is not None else TokenSequence()
        self._ready = ready
        self.analyzed: list[str] = []
        self.closed = False

    @property
    def ready(self) -> bool:
        return self._ready

    def analyze(self, text: str) -> TokenSequence:
        self.analyzed.append(text)
        return self._tokens

    def ensure_ready(self) -> None:
        self._ready = True

    def metadata(self) -> dict[str, str]:
        return {"analyzer": "StubAnalyzer"}

    def close(self) -> None:
        self.closed = True


class FakeDockerDaemon:
    """Just enough of the Docker Engine API, served through `httpx.MockTransport`.

    `exec_handler` maps an exec command to `(stdout text, exit code)`.
    """

    def __init__(
        self,
        *,
        states: dict[str, str] | None = None,
        log_lines: tuple[str, ...] = (),
        exec_handler: Callable[[list[str]], tuple[str, int]] | None = None,
        running_polls: int = 0,
    ):
        self.states = dict(states or {MAIN_CONTAINER: "running", DATABASE_CONTAINER: "running"})
        self.log_lines = log_lines
        self.exec_handler = exec_handler or (lambda command: ("", 0))
        self.running_polls = running_polls
        self.commands: list[list[str]] = []
        self.requests: list[tuple[str, str]] = []
        self.log_params: list[dict[str, str]] = []
        self._execs: dict[str, tuple[str, int]] = {}
        self._polls: dict[str, int] = {}
        self._lock = threading.Lock()

    def client(self, **kwargs) -> DockerEngineClient:
        return DockerEngineClient(transport=httpx.MockTransport(self.handle), **kwargs)

    def paths(self, method: str) -> list[str]:
        return [path for verb, path in self.requests if verb == method]

    def handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append((request.method, request.url.path))
            return self._route(request)

    def _route(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")
        if parts and parts[0].startswith("v") and parts[0][1:2].isdigit():
            parts = parts[1:]

        if parts[0] == "containers" and len(parts) == 3:
            name, action = parts[1], parts[2]
            if name not in self.states:
                return httpx.Response(404, json={"message": f"No such container: {name}"})
            if action == "json":
                return httpx.Response(200, json={"Name": f"/{name}", "State": {"Status": self.states[name]}})
            if action == "start":
                if self.states[name] == "running":
                    return httpx.Response(304)
                self.states[name] = "running"
                return httpx.Response(204)
            if action == "stop":
                if self.states[name] != "running":
                    return httpx.Response(304)
                self.states[name] = "exited"
                return httpx.Response(204)
            if action == "exec":
                command = json.loads(request.content)["Cmd"]
                self.commands.append(command)
                exec_id = f"exec-{len(self.commands)}"
                self._execs[exec_id] = self.exec_handler(command)
                return httpx.Response(201, json={"Id": exec_id})
            if action == "logs":
                self.log_params.append(dict(request.url.params))
                body = b"".join(frame(line + "\n") for line in self.log_lines)
                return httpx.Response(200, content=body)

        if parts[0] == "exec" and len(parts) == 3 and parts[1] in self._execs:
            exec_id, action = parts[1], parts[2]
            output, exit_code = self._execs[exec_id]
            if action == "start":
                return httpx.Response(200, content=frame(output) if output else b"")
            if action == "json":
                polls = self._polls.get(exec_id, 0)
                self._polls[exec_id] = polls + 1
                if polls < self.running_polls:
                    return httpx.Response(200, json={"Running": True, "ExitCode": None})
                return httpx.Response(200, json={"Running": False, "ExitCode": exit_code})

        return httpx.Response(404, json={"message": "page not found"})


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def fixture_json():
    return load_fixture


@pytest.fixture
def sentence_tokens() -> TokenSequence:
    return decode_value(load_fixture("sentence.json"))


@pytest.fixture
def stub_analyzer_factory():
    return lambda _settings: StubAnalyzer()


@pytest.fixture
def frequency_table_file(tmp_path) -> Path:
    path = tmp_path / "kanji_frequency.txt"
    path.write_text("# test table\n日本人語私\n勉強食\n", encoding="utf-8")
    return path


@pytest.fixture
def small_table() -> KanjiFrequencyTable:
    return KanjiFrequencyTable.from_sequence("日本人語私勉強食")


@pytest.fixture
def test_settings(frequency_table_file) -> Settings:
    return Settings(
        environment="test",
        app_name="yomikata-backend-test",
        host="127.0.0.1",
        port=8001,
        frequency_table_path=frequency_table_file,
        default_frequency_threshold=5,
    )


@pytest.fixture
def docker_frame():
    return frame


@pytest.fixture
def docker_daemon():
    return FakeDockerDaemon


@pytest.fixture
def stub_analyzer():
    return StubAnalyzer
