from __future__ import annotations

import sys
from pathlib import Path

import pytest

from plugincompat.errors import (
    ExecutionFailure,
    FailureList,
    PluginCompatFailures,
    SourcesUnavailableError,
)
from plugincompat.utils import CommandError, recreate_directory, recreate_file, run_command

PRINT_BOTH_STREAMS = "import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)"


def test_run_command_combines_output() -> None:
    result = run_command([sys.executable, "-c", PRINT_BOTH_STREAMS])
    assert result.returncode == 0
    assert "out" in result.stdout
    assert "err" in result.stdout


def test_run_command_drains_large_output() -> None:
    result = run_command([sys.executable, "-c", "print('x' * 1000000)"])
    assert len(result.stdout.strip()) == 1000000


def test_run_command_failure(tmp_path: Path) -> None:
    with pytest.raises(CommandError) as info:
        run_command([sys.executable, "-c", "import sys; print('boom'); sys.exit(3)"], cwd=tmp_path)
    assert info.value.returncode == 3
    assert info.value.output == "boom"
    unchecked = run_command([sys.executable, "-c", "import sys; sys.exit(2)"], check=False)
    assert unchecked.returncode == 2


def test_run_command_appends_to_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "build.log"
    log_file.write_text("previous\n")
    run_command([sys.executable, "-c", PRINT_BOTH_STREAMS], log_file=log_file)
    content = log_file.read_text()
    assert content.startswith("previous\n")
    assert "out" in content and "err" in content


def test_recreate_helpers(tmp_path: Path) -> None:
    directory = tmp_path / "dir"
    (directory / "nested").mkdir(parents=True)
    assert recreate_directory(directory) == directory
    assert list(directory.iterdir()) == []

    log_file = tmp_path / "logs" / "demo" / "v1_against_jenkins_2.log"
    recreate_file(log_file).write_text("old run")
    assert recreate_file(log_file).read_text() == ""


def test_failure_list_keeps_discovery_order() -> None:
    failures = FailureList()
    assert not failures
    failures.raise_if_any()

    first = SourcesUnavailableError("clone failed")
    second = ExecutionFailure("tests failed", Path("build.log"))
    failures.record(first)
    failures.record(second)
    assert list(failures) == [first, second]
    assert len(failures) == 2
    assert failures.last is second
    assert second.suppressed == [first]

    with pytest.raises(PluginCompatFailures) as info:
        failures.raise_if_any()
    assert info.value.suppressed == [first, second]
    assert "2 failure(s)" in str(info.value)
    assert "SourcesUnavailableError: clone failed" in str(info.value)


def test_exception_cannot_suppress_itself() -> None:
    failure = SourcesUnavailableError("x")
    with pytest.raises(ValueError):
        failure.add_suppressed(failure)
