from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
from pathlib import Path
from typing import IO, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when a subprocess exits with a non-zero status code."""

    def __init__(self, command: Sequence[str], returncode: int, output: str) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"{' '.join(command)} failed with exit status {returncode}: {output}"
        )


class OutputGobbler(threading.Thread):
    """Drains a process output stream so the process never blocks on a full pipe.

    Lines are kept in memory and, when ``sink`` is given, copied to it as they
    arrive.
    """

    def __init__(self, stream: IO[str], sink: Optional[IO[str]] = None) -> None:
        super().__init__(daemon=True)
        self.stream = stream
        self.sink = sink
        self._lines: List[str] = []

    def run(self) -> None:
        for line in self.stream:
            self._lines.append(line)
            if self.sink is not None:
                self.sink.write(line)
                self.sink.flush()

    @property
    def output(self) -> str:
        return "".join(self._lines)


def run_command(
    command: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    log_file: str | Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run a command with stderr folded into stdout and return the completed process.

    When ``log_file`` is given the combined output is appended to it while the
    process runs.
    """

    process_env = os.environ.copy()
    if env:
        process_env.update(env)

    logger.debug("Running %s in %s", " ".join(command), cwd or os.getcwd())
    sink: Optional[IO[str]] = None
    if log_file is not None:
        sink = open(log_file, "a", encoding="utf-8")
    try:
        process = subprocess.Popen(
            list(command),
            cwd=str(cwd) if cwd else None,
            env=process_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
        gobbler = OutputGobbler(process.stdout, sink)
        gobbler.start()
        try:
            process.wait()
        finally:
            gobbler.join()
            process.stdout.close()
    finally:
        if sink is not None:
            sink.close()

    output = gobbler.output
    if check and process.returncode != 0:
        raise CommandError(command, process.returncode, output.strip())
    return subprocess.CompletedProcess(list(command), process.returncode, output, None)


def ensure_directory(path: str | Path) -> Path:
    """Create a directory and return its Path object."""

    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def recreate_directory(path: str | Path) -> Path:
    """Delete a directory tree if present and create it again, empty."""

    path = Path(path)
    if path.is_dir():
        shutil.rmtree(path)
    return ensure_directory(path)


def recreate_file(path: str | Path) -> Path:
    """Create an empty file, truncating any previous content and creating parents."""

    path = Path(path)
    ensure_directory(path.parent)
    if path.exists():
        path.unlink()
    path.touch()
    return path
