"""Unit tests for cancellable subprocess execution."""

from __future__ import annotations

import signal
import sys
import threading
import time

import pytest

from chainbuild.utils.cancellation import CancellationToken
from chainbuild.utils.exceptions import CancellationError, CommandError, CompileError
from chainbuild.utils.process import merge_env, run_command


def python(code: str) -> list:
    return [sys.executable, "-c", code]


def test_run_command_returns_output():
    assert run_command(CancellationToken(), python("print('hello')")).strip() == "hello"


def test_run_command_captures_stderr():
    output = run_command(CancellationToken(), python("import sys; sys.stderr.write('warn')"))
    assert "warn" in output


def test_run_command_env_and_cwd(tmp_path):
    """Test that overrides reach the child and the working directory is applied."""
    code = "import os; print(os.environ['GOOS'], os.getcwd())"
    output = run_command(CancellationToken(), python(code), cwd=tmp_path, env={"GOOS": "plan9"})
    goos, cwd = output.split()
    assert goos == "plan9"
    assert cwd == str(tmp_path.resolve())


def test_run_command_non_zero_exit():
    with pytest.raises(CommandError) as exc_info:
        run_command(CancellationToken(), python("import sys; print('boom'); sys.exit(3)"))

    assert exc_info.value.returncode == 3
    assert "boom" in exc_info.value.output
    assert "boom" in str(exc_info.value)


def test_run_command_error_class():
    with pytest.raises(CompileError):
        run_command(CancellationToken(), python("raise SystemExit(1)"), error_class=CompileError)


def test_run_command_missing_executable(tmp_path):
    with pytest.raises(CommandError) as exc_info:
        run_command(CancellationToken(), [str(tmp_path / "missing")])
    assert exc_info.value.returncode is None


def test_run_command_already_cancelled():
    token = CancellationToken()
    token.cancel()
    with pytest.raises(CancellationError):
        run_command(token, python("print('never')"))


def test_run_command_cancel_stops_child():
    """Test that cancelling while the child runs terminates it promptly."""
    token = CancellationToken()
    timer = threading.Timer(0.3, token.cancel, args=("stop",))
    timer.start()
    started = time.monotonic()
    try:
        with pytest.raises(CancellationError) as exc_info:
            run_command(token, python("import time; time.sleep(30)"))
    finally:
        timer.cancel()

    assert time.monotonic() - started < 10
    assert str(exc_info.value) == "stop"


@pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX signals")
def test_run_command_cancel_when_child_exits_on_same_interrupt():
    """Test that a child dying from the interrupt that cancelled us reports cancellation."""
    token = CancellationToken()
    previous = signal.signal(signal.SIGUSR1, lambda signum, frame: token.cancel("interrupted"))
    code = "import os, signal; os.kill(os.getppid(), signal.SIGUSR1); os._exit(130)"
    try:
        with pytest.raises(CancellationError) as exc_info:
            run_command(token, python(code), error_class=CompileError)
    finally:
        signal.signal(signal.SIGUSR1, previous)

    assert str(exc_info.value) == "interrupted"


@pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX signals")
def test_run_command_child_killed_by_signal():
    """Test that an unexpected termination is reported as a failure of the command."""
    code = "import os, signal; print('partial', flush=True); os.kill(os.getpid(), signal.SIGKILL)"
    with pytest.raises(CompileError) as exc_info:
        run_command(CancellationToken(), python(code), error_class=CompileError)

    assert exc_info.value.returncode == -signal.SIGKILL
    assert "terminated by signal" in str(exc_info.value)
    assert "partial" in exc_info.value.output


def test_merge_env_overrides(monkeypatch):
    monkeypatch.setenv("GOOS", "linux")
    env = merge_env({"GOOS": "darwin"})
    assert env["GOOS"] == "darwin"
    assert "PATH" in env
