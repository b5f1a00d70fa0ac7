from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Optional, Protocol, Sequence

from .errors import ExecutionFailure
from .utils import CommandError, run_command

logger = logging.getLogger(__name__)


class MavenRunner(Protocol):
    def run(
        self,
        properties: Mapping[str, str],
        directory: Path,
        module_path: Optional[str],
        log_file: Optional[Path],
        *goals: str,
    ) -> None:
        ...


class ExternalMavenRunner:
    """Runs goals through an external ``mvn`` executable."""

    def __init__(
        self,
        executable: str = "mvn",
        settings: Optional[str | Path] = None,
        args: Sequence[str] = (),
    ) -> None:
        self.executable = str(executable)
        self.settings = settings
        self.args = list(args)

    def build_command(
        self, properties: Mapping[str, str], module_path: Optional[str], goals: Sequence[str]
    ) -> List[str]:
        command = [
            self.executable,
            "--show-version",
            "--batch-mode",
            "--errors",
            "--no-transfer-progress",
        ]
        if self.settings:
            command.append(f"--settings={self.settings}")
        command.extend(self.args)
        command.extend(f"-D{key}={value}" for key, value in properties.items())
        if module_path:
            command.extend(["--projects", module_path])
        command.extend(goals)
        return command

    def run(
        self,
        properties: Mapping[str, str],
        directory: Path,
        module_path: Optional[str],
        log_file: Optional[Path],
        *goals: str,
    ) -> None:
        command = self.build_command(properties, module_path, goals)
        logger.info("Running %s in %s >> %s", " ".join(command), directory, log_file)
        try:
            run_command(command, cwd=directory, log_file=log_file)
        except CommandError as exc:
            message = f"Command {' '.join(command)} failed with exit status {exc.returncode}"
            if log_file is None:
                message = f"{message}: {exc.output}"
            else:
                message = f"{message}; see {log_file}"
            raise ExecutionFailure(message, log_file) from exc
