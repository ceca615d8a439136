"""Watcher daemon consuming the Docker event stream."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import docker
import requests
import structlog
from docker.types import CancellableStream

from healthcheck_watcher.errors import ConfigError, EventStreamError, WatcherError
from healthcheck_watcher.metrics import set_ready

from .dispatcher import EventDispatcher
from .events import ATTR_CONTAINER_ID, ATTR_SERVICE_NAME, LifecycleEvent
from .framing import Framing
from .logwatch import LogStream, LogWatchManager
from .notifier import Notifier
from .teams import TeamsClient, TeamsNotifier

if TYPE_CHECKING:
    from healthcheck_watcher.config import Config

log = structlog.get_logger()


class DockerLogSource:
    """Opens follow-mode stderr streams for containers, starting from now."""

    def __init__(self, client: docker.DockerClient, framing: Framing = Framing.LINES):
        self.client = client
        self.framing = framing

    def __call__(self, container_id: str) -> LogStream:
        since = int(time.time())

        if self.framing is Framing.MULTIPLEXED:
            return self._open_raw(container_id, since)

        # docker-py demultiplexes non-TTY streams and yields raw payloads
        container = self.client.containers.get(container_id)
        return container.logs(
            stream=True, follow=True, stdout=False, stderr=True, since=since, timestamps=False
        )

    def _open_raw(self, container_id: str, since: int) -> LogStream:
        """Request the undecoded multiplexed stream from the Engine API."""
        api = self.client.api
        response = api.get(
            f"{api.base_url}/v{api.api_version}/containers/{container_id}/logs",
            params={"follow": 1, "stdout": 0, "stderr": 1, "since": since, "timestamps": 0},
            stream=True,
            timeout=None,
        )
        response.raise_for_status()
        return CancellableStream(response.iter_content(chunk_size=None), response)


class WatcherDaemon:
    """Feeds Docker lifecycle events to the dispatcher until the stream fails."""

    def __init__(
        self,
        config: Config,
        notifier: Notifier | None = None,
        docker_client: docker.DockerClient | None = None,
    ):
        """Initialize the daemon.

        Args:
            config: Watcher configuration
            notifier: Alert sink (default: Teams webhook from config)
            docker_client: Docker client (default: connect from environment on run)
        """
        self.config = config

        if notifier is None:
            if not config.teams.webhook_url:
                raise ConfigError("MS_TEAMS_WEBHOOK is not set")
            notifier = TeamsNotifier(
                TeamsClient(config.teams.webhook_url, timeout=config.teams.timeout_seconds),
                summary=config.teams.card_subject,
                max_workers=config.watch.notify_workers,
            )
        self.notifier = notifier
        self.docker_client = docker_client

        self.log_watches: LogWatchManager | None = None
        self.dispatcher: EventDispatcher | None = None
        self._event_stream: Any = None
        self._stopping = False

    def _connect_docker(self) -> docker.DockerClient:
        if self.docker_client is None:
            try:
                self.docker_client = docker.from_env()
                self.docker_client.ping()
            except docker.errors.DockerException as e:
                raise WatcherError(f"Failed to connect to Docker: {e}") from e
            log.info("Connected to Docker daemon")
        return self.docker_client

    def _build(self, client: docker.DockerClient) -> EventDispatcher:
        watch = self.config.watch
        self.log_watches = LogWatchManager(
            self.notifier,
            DockerLogSource(client, watch.log_framing),
            framing=watch.log_framing,
        )
        self.dispatcher = EventDispatcher(
            self.notifier,
            self.log_watches,
            stderr_service=watch.stderr_service,
            update_aware=watch.update_aware,
            debounce_window=watch.debounce_window,
            update_window=watch.update_window,
        )
        return self.dispatcher

    def seed_log_watches(self) -> int:
        """Start watches for already-running containers of the stderr service.

        Returns:
            Number of containers watched
        """
        service = self.config.watch.stderr_service
        if not service or self.docker_client is None or self.log_watches is None:
            return 0

        containers = self.docker_client.containers.list(
            filters={"label": f"{ATTR_SERVICE_NAME}={service}"}
        )
        for container in containers:
            attributes = {str(k): str(v) for k, v in (container.labels or {}).items()}
            attributes[ATTR_CONTAINER_ID] = container.id
            self.log_watches.start_watch(container.id, attributes)

        log.info("Seeded log watches", service=service, count=len(containers))
        return len(containers)

    def run(self) -> None:
        """Consume events until the stream fails.

        Raises:
            WatcherError: if Docker is unreachable at start-up
            EventStreamError: when the event stream errors or ends

        Errors raised while dispatching an event propagate unchanged.
        """
        client = self._connect_docker()
        dispatcher = self._build(client)

        log.info(
            "Starting watcher",
            stderr_service=self.config.watch.stderr_service,
            update_aware=self.config.watch.update_aware,
            log_framing=self.config.watch.log_framing.value,
        )

        # Subscribe before seeding so no start event falls between the two
        try:
            self._event_stream = client.events(decode=True)
        except (docker.errors.DockerException, requests.RequestException) as e:
            raise EventStreamError(f"Cannot open Docker event stream: {e}") from e

        self.seed_log_watches()
        set_ready(True)

        try:
            for message in self._event_stream:
                dispatcher.dispatch(LifecycleEvent.from_docker(message))
        except KeyboardInterrupt:
            log.info("Received shutdown signal")
            self.stop()
            return
        except (docker.errors.DockerException, requests.RequestException, OSError) as e:
            if self._stopping:
                return
            raise EventStreamError(f"Docker event stream failed: {e}") from e
        finally:
            set_ready(False)

        if not self._stopping:
            raise EventStreamError("Docker event stream ended")

    def stop(self) -> None:
        """Close the event stream and cancel every log watch."""
        log.info("Stopping watcher")
        self._stopping = True

        if self._event_stream is not None:
            try:
                self._event_stream.close()
            except Exception as e:
                log.debug("Error closing event stream", error=str(e))

        if self.log_watches is not None:
            self.log_watches.stop_all()

        close = getattr(self.notifier, "close", None)
        if close is not None:
            close(wait=True)


def run_watcher(config: Config) -> None:
    """Run the watcher until the event stream fails.

    Raises:
        ConfigError: if the Teams webhook is not configured
        WatcherError: on a fatal Docker failure
    """
    daemon = WatcherDaemon(config)
    daemon.run()
