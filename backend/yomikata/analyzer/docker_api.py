from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
import threading
from typing import Any, Iterator

import httpx

from yomikata.analyzer.errors import (
    AnalyzerTimeoutError,
    AttachError,
    InspectError,
    ProvisioningError,
)

# Host part is ignored when talking over the unix socket.
DOCKER_BASE_URL = "http://docker"


@contextmanager
def translate_transport_errors(stage: str) -> Iterator[None]:
    """Map httpx transport failures onto the analyzer error hierarchy."""
    try:
        yield
    except httpx.TimeoutException as exc:
        raise AnalyzerTimeoutError(f"Docker API timed out: {exc}", stage=stage) from exc
    except httpx.TransportError as exc:
        raise ProvisioningError(f"Docker API unreachable: {exc}", stage=stage) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return response.text.strip()


@dataclass
class DockerEngineClient:
    """Minimal Docker Engine API client over the daemon's unix socket."""

    socket_path: Path = Path("/var/run/docker.sock")
    api_version: str | None = None
    timeout_seconds: float = 30.0
    transport: httpx.BaseTransport | None = None
    _client: httpx.Client | None = field(default=None, init=False, repr=False, compare=False)
    _client_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @property
    def base_url(self) -> str:
        if self.api_version:
            return f"{DOCKER_BASE_URL}/v{self.api_version.lstrip('v')}"
        return DOCKER_BASE_URL

    def _ensure_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                transport = self.transport or httpx.HTTPTransport(uds=str(self.socket_path))
                self._client = httpx.Client(
                    base_url=self.base_url,
                    transport=transport,
                    timeout=self.timeout_seconds,
                )
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def _timeout(self, timeout: float | None) -> float:
        return self.timeout_seconds if timeout is None else timeout

    def inspect_container(self, name: str, *, timeout: float | None = None) -> dict[str, Any]:
        with translate_transport_errors("inspect"):
            response = self._ensure_client().get(f"/containers/{name}/json", timeout=self._timeout(timeout))
        if response.status_code == 404:
            raise InspectError(f"container {name!r} does not exist", stage="inspect")
        if response.status_code != 200:
            raise ProvisioningError(
                f"inspecting container {name!r} failed with status {response.status_code}",
                stage="inspect",
                payload=_error_message(response),
            )
        return response.json()

    def start_container(self, name: str, *, timeout: float | None = None) -> bool:
        """Start a container; False when it was already running."""
        with translate_transport_errors("start"):
            response = self._ensure_client().post(f"/containers/{name}/start", timeout=self._timeout(timeout))
        if response.status_code == 304:
            return False
        if response.status_code == 404:
            raise InspectError(f"container {name!r} does not exist", stage="start")
        if response.status_code != 204:
            raise ProvisioningError(
                f"starting container {name!r} failed with status {response.status_code}",
                stage="start",
                payload=_error_message(response),
            )
        return True

    def stop_container(self, name: str, *, timeout: float | None = None) -> bool:
        """Stop a container; False when it was not running."""
        with translate_transport_errors("stop"):
            response = self._ensure_client().post(f"/containers/{name}/stop", timeout=self._timeout(timeout))
        if response.status_code == 304:
            return False
        if response.status_code == 404:
            raise InspectError(f"container {name!r} does not exist", stage="stop")
        if response.status_code != 204:
            raise ProvisioningError(
                f"stopping container {name!r} failed with status {response.status_code}",
                stage="stop",
                payload=_error_message(response),
            )
        return True

    def create_exec(self, name: str, command: list[str], *, timeout: float | None = None) -> str:
        payload = {
            "AttachStdout": True,
            "AttachStderr": True,
            "Tty": False,
            "Cmd": command,
        }
        with translate_transport_errors("exec_create"):
            response = self._ensure_client().post(
                f"/containers/{name}/exec",
                json=payload,
                timeout=self._timeout(timeout),
            )
        if response.status_code != 201:
            raise AttachError(
                f"creating exec in {name!r} failed with status {response.status_code}",
                stage="exec_create",
                payload=_error_message(response),
            )
        exec_id = response.json().get("Id")
        if not isinstance(exec_id, str) or not exec_id:
            raise AttachError("Docker returned no exec id", stage="exec_create", payload=response.text)
        return exec_id

    @contextmanager
    def start_exec(self, exec_id: str, *, timeout: float | None = None) -> Iterator[httpx.Response]:
        """Attach to an exec instance; the response body is its multiplexed output."""
        with translate_transport_errors("exec_start"):
            with self._ensure_client().stream(
                "POST",
                f"/exec/{exec_id}/start",
                json={"Detach": False, "Tty": False},
                timeout=self._timeout(timeout),
            ) as response:
                if response.status_code != 200:
                    response.read()
                    raise AttachError(
                        f"attaching to exec {exec_id} failed with status {response.status_code}",
                        stage="exec_start",
                        payload=_error_message(response),
                    )
                yield response

    def inspect_exec(self, exec_id: str, *, timeout: float | None = None) -> dict[str, Any]:
        with translate_transport_errors("exec_inspect"):
            response = self._ensure_client().get(f"/exec/{exec_id}/json", timeout=self._timeout(timeout))
        if response.status_code != 200:
            raise ProvisioningError(
                f"inspecting exec {exec_id} failed with status {response.status_code}",
                stage="exec_inspect",
                payload=_error_message(response),
            )
        return response.json()

    @contextmanager
    def follow_logs(self, name: str, *, since: int = 0) -> Iterator[httpx.Response]:
        params = {"follow": "1", "stdout": "1", "stderr": "1", "since": str(since)}
        # Following blocks between log lines, so only connecting is bounded.
        timeout = httpx.Timeout(self.timeout_seconds, read=None)
        with translate_transport_errors("logs"):
            with self._ensure_client().stream(
                "GET",
                f"/containers/{name}/logs",
                params=params,
                timeout=timeout,
            ) as response:
                if response.status_code == 404:
                    raise InspectError(f"container {name!r} does not exist", stage="logs")
                if response.status_code != 200:
                    response.read()
                    raise ProvisioningError(
                        f"following logs of {name!r} failed with status {response.status_code}",
                        stage="logs",
                        payload=_error_message(response),
                    )
                yield response
