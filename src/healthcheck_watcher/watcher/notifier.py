"""Alert sink interface consumed by the dispatcher and log watches."""

from enum import Enum
from typing import Protocol


class Severity(Enum):
    """Alert severity, valued by its Teams card theme colour."""

    ALERT = "ff5864"
    OK = "90ee90"

    @property
    def color(self) -> str:
        return self.value


class Notifier(Protocol):
    """Accepts alerts without blocking the caller.

    Implementations deliver in the background and report their own failures.
    Callers ignore the return value and never learn whether an alert arrived.
    """

    def notify(
        self,
        severity: Severity,
        title: str,
        subtitle: str,
        attributes: dict[str, str],
    ) -> object: ...
