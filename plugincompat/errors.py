from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Optional


class PluginCompatError(Exception):
    """Base class for failures that are scoped to a single plugin or repository."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.suppressed: List[BaseException] = []

    def add_suppressed(self, exc: BaseException) -> None:
        if exc is self:
            raise ValueError("An exception cannot suppress itself")
        self.suppressed.append(exc)


class SourcesUnavailableError(PluginCompatError):
    """Raised when the sources of a plugin cannot be resolved or checked out."""


class ExecutionFailure(PluginCompatError):
    """Raised when the external build tool exits with a non-zero status."""

    def __init__(self, message: str, log_file: Optional[Path] = None) -> None:
        super().__init__(message)
        self.log_file = log_file


class HookFailure(PluginCompatError):
    """Raised by a hook to abort the current phase of a plugin."""


class PluginCompatFailures(PluginCompatError):
    """Raised once at the end of a run that recorded at least one failure."""

    def __init__(self, failures: List[PluginCompatError]) -> None:
        lines = [f"{len(failures)} failure(s) while testing plugins:"]
        lines.extend(f"  - {type(failure).__name__}: {failure}" for failure in failures)
        super().__init__("\n".join(lines))
        self.suppressed = list(failures)


class StructuralError(RuntimeError):
    """Raised when an archive does not have the expected layout."""


class ConfigError(RuntimeError):
    """Raised when the run configuration cannot be parsed."""


class FailureList:
    """Accumulates failures in discovery order.

    Each recorded failure also carries the previously recorded one as a
    suppressed exception, so the most recent failure still reports the whole
    run when it is re-raised on its own.
    """

    def __init__(self) -> None:
        self._failures: List[PluginCompatError] = []

    @property
    def last(self) -> Optional[PluginCompatError]:
        return self._failures[-1] if self._failures else None

    def record(self, exc: PluginCompatError) -> None:
        if self._failures:
            exc.add_suppressed(self._failures[-1])
        self._failures.append(exc)

    def __iter__(self) -> Iterator[PluginCompatError]:
        return iter(list(self._failures))

    def __len__(self) -> int:
        return len(self._failures)

    def __bool__(self) -> bool:
        return bool(self._failures)

    def raise_if_any(self) -> None:
        if not self._failures:
            return
        raise PluginCompatFailures(list(self._failures)) from self._failures[-1]
