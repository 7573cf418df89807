from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Iterator

import httpx

from yomikata.analyzer.demux import ChunkReader, LogLine, iter_frames, iter_lines
from yomikata.analyzer.docker_api import DockerEngineClient, translate_transport_errors

logger = logging.getLogger(__name__)


class ContainerState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    RESTARTING = "restarting"
    REMOVING = "removing"
    EXITED = "exited"
    DEAD = "dead"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> ContainerState:
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


class ContainerLogStream:
    """A followed log stream; `close()` may be called from another thread to stop `lines()`."""

    def __init__(self, client: DockerEngineClient, name: str, since: int):
        self._stack = ExitStack()
        self._response: httpx.Response = self._stack.enter_context(client.follow_logs(name, since=since))
        self._closed = threading.Event()

    def lines(self) -> Iterator[LogLine]:
        reader = ChunkReader(self._response.iter_bytes())
        try:
            with translate_transport_errors("logs"):
                yield from iter_lines(iter_frames(reader))
        except httpx.StreamError:
            if not self._closed.is_set():
                raise

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._stack.close()


@dataclass
class ContainerHandle:
    """One analyzer container plus the containers it needs started first."""

    client: DockerEngineClient
    name: str
    dependencies: tuple[str, ...] = ()

    def inspect(self, *, timeout: float | None = None) -> dict[str, object]:
        return self.client.inspect_container(self.name, timeout=timeout)

    def state(self, *, timeout: float | None = None) -> ContainerState:
        details = self.inspect(timeout=timeout)
        container_state = details.get("State")
        if not isinstance(container_state, dict):
            return ContainerState.UNKNOWN
        return ContainerState.parse(container_state.get("Status"))

    def is_running(self) -> bool:
        return self.state() is ContainerState.RUNNING

    def start(self) -> None:
        for dependency in self.dependencies:
            started = self.client.start_container(dependency)
            logger.info(
                "container_dependency_start",
                extra={"container": dependency, "already_running": not started},
            )
        started = self.client.start_container(self.name)
        logger.info("container_start", extra={"container": self.name, "already_running": not started})

    def stop(self) -> None:
        stopped = self.client.stop_container(self.name)
        logger.info("container_stop", extra={"container": self.name, "was_running": stopped})

    def follow_logs(self, since: int = 0) -> ContainerLogStream:
        return ContainerLogStream(self.client, self.name, since)
