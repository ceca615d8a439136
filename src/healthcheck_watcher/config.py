"""Configuration loading for healthcheck-watcher."""

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

import yaml
from dotenv import dotenv_values

from healthcheck_watcher.errors import ConfigError
from healthcheck_watcher.watcher.framing import Framing

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _parse_framing(name: str, value: str) -> Framing:
    try:
        return Framing(value.strip().lower())
    except ValueError:
        choices = ", ".join(f.value for f in Framing)
        raise ConfigError(f"{name} must be one of {choices}, got {value!r}") from None


@dataclass
class TeamsConfig:
    """Microsoft Teams incoming webhook settings."""

    webhook_url: str | None = None
    card_subject: str = ""
    timeout_seconds: float = 5.0


@dataclass
class WatchConfig:
    """Event interpretation and log watch settings."""

    stderr_service: str | None = None
    log_framing: Framing = Framing.LINES
    update_aware: bool = True
    debounce_seconds: int = 120
    update_window_seconds: int = 120
    notify_workers: int = 4

    @property
    def debounce_window(self) -> timedelta:
        return timedelta(seconds=self.debounce_seconds)

    @property
    def update_window(self) -> timedelta:
        return timedelta(seconds=self.update_window_seconds)


@dataclass
class Config:
    """Application configuration."""

    teams: TeamsConfig = field(default_factory=TeamsConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    metrics_port: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        env = os.environ

        teams = TeamsConfig(
            webhook_url=env.get("MS_TEAMS_WEBHOOK") or None,
            card_subject=env.get("MS_TEAMS_CARD_SUBJECT", ""),
        )
        watch = WatchConfig(
            stderr_service=env.get("STDERR_SERVICE") or None,
            log_framing=_parse_framing("LOG_FRAMING", env.get("LOG_FRAMING", "lines")),
            update_aware=_parse_bool("UPDATE_AWARE", env.get("UPDATE_AWARE", "true")),
            debounce_seconds=_parse_int("DEBOUNCE_SECONDS", env.get("DEBOUNCE_SECONDS", "120")),
            update_window_seconds=_parse_int(
                "UPDATE_WINDOW_SECONDS", env.get("UPDATE_WINDOW_SECONDS", "120")
            ),
            notify_workers=_parse_int("NOTIFY_WORKERS", env.get("NOTIFY_WORKERS", "4")),
        )

        metrics_port = env.get("METRICS_PORT")
        config = cls(
            teams=teams,
            watch=watch,
            metrics_port=_parse_int("METRICS_PORT", metrics_port) if metrics_port else None,
            log_level=env.get("LOG_LEVEL", "INFO"),
        )
        config.validate()
        return config

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from YAML file, with env var overrides."""
        config = cls.from_env()

        if not path.exists():
            return config

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        env = os.environ

        if "teams" in data:
            teams = data["teams"] or {}
            if "MS_TEAMS_WEBHOOK" not in env:
                config.teams.webhook_url = teams.get("webhook_url", config.teams.webhook_url)
            if "MS_TEAMS_CARD_SUBJECT" not in env:
                config.teams.card_subject = teams.get("card_subject", config.teams.card_subject)
            config.teams.timeout_seconds = float(
                teams.get("timeout_seconds", config.teams.timeout_seconds)
            )

        if "watch" in data:
            watch = data["watch"] or {}
            if "STDERR_SERVICE" not in env:
                config.watch.stderr_service = watch.get(
                    "stderr_service", config.watch.stderr_service
                )
            if "LOG_FRAMING" not in env and "log_framing" in watch:
                config.watch.log_framing = _parse_framing("log_framing", str(watch["log_framing"]))
            if "UPDATE_AWARE" not in env and "update_aware" in watch:
                config.watch.update_aware = _parse_bool(
                    "update_aware", str(watch["update_aware"])
                )
            if "DEBOUNCE_SECONDS" not in env:
                config.watch.debounce_seconds = int(
                    watch.get("debounce_seconds", config.watch.debounce_seconds)
                )
            if "UPDATE_WINDOW_SECONDS" not in env:
                config.watch.update_window_seconds = int(
                    watch.get("update_window_seconds", config.watch.update_window_seconds)
                )
            if "NOTIFY_WORKERS" not in env:
                config.watch.notify_workers = int(
                    watch.get("notify_workers", config.watch.notify_workers)
                )

        if "metrics" in data and "METRICS_PORT" not in env:
            metrics = data["metrics"] or {}
            if metrics.get("port") is not None:
                config.metrics_port = _parse_int("metrics.port", str(metrics["port"]))

        config.validate()
        return config

    def validate(self) -> None:
        """Check value ranges. Raises ConfigError."""
        if self.watch.debounce_seconds < 0:
            raise ConfigError("debounce_seconds must not be negative")
        if self.watch.update_window_seconds < 0:
            raise ConfigError("update_window_seconds must not be negative")
        if self.watch.notify_workers < 1:
            raise ConfigError("notify_workers must be at least 1")


def load_env_files(paths: Iterable[Path]) -> dict[str, str]:
    """Read dotenv files into os.environ.

    Later files override earlier ones, and file values override variables
    already set in the environment. Returns the merged values.
    """
    values: dict[str, str] = {}
    for path in paths:
        for key, value in dotenv_values(path).items():
            if value is None:
                raise ConfigError(f"{path}: {key} has no value, expected KEY=VALUE")
            values[key] = value

    os.environ.update(values)
    return values
