import logging
import subprocess

import pytest

from trine.engine.errors import EngineError
from trine.execution.runner import CommandRunner


class DummyCP:
    def __init__(self, rc=0, out="", err=""):
        self.returncode = rc
        self.stdout = out
        self.stderr = err


def test_run_passes_input_and_logs(monkeypatch, caplog):
    seen = {}

    def fake_run(argv, **kw):
        seen.update(kw, argv=argv)
        return DummyCP(0, out="ok\n")

    monkeypatch.setattr(subprocess, "run", fake_run)
    runner = CommandRunner(logger=logging.getLogger("test-runner"), label="docker", timeout=30)

    with caplog.at_level(logging.DEBUG, logger="test-runner"):
        cp = runner.run(["docker", "ps"], input="x")

    assert cp.stdout == "ok\n"
    assert seen["argv"] == ["docker", "ps"]
    assert seen["input"] == "x"
    assert seen["timeout"] == 30
    assert seen["capture_output"] is True
    messages = [r.getMessage() for r in caplog.records]
    assert "[docker] $ docker ps" in messages
    assert any(m.startswith("[docker][exit 0]") for m in messages)


def test_non_zero_exit_raises_with_details(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda argv, **kw: DummyCP(125, err="Unable to find image"))

    with pytest.raises(EngineError) as info:
        CommandRunner(label="docker").run(["docker", "run", "missing:tag"])

    assert info.value.returncode == 125
    assert info.value.argv == ["docker", "run", "missing:tag"]
    assert "Unable to find image" in info.value.stderr


def test_check_false_returns_result(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda argv, **kw: DummyCP(1))
    assert CommandRunner().run(["false"], check=False).returncode == 1


def test_missing_binary_is_engine_error(monkeypatch):
    def fake_run(argv, **kw):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(EngineError, match="command not found: docker"):
        CommandRunner().run(["docker", "ps"])


def test_timeout_is_engine_error(monkeypatch):
    def fake_run(argv, **kw):
        raise subprocess.TimeoutExpired(argv, kw["timeout"])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(EngineError, match="timed out after 5s"):
        CommandRunner(timeout=5).run(["docker", "save"])


def test_dry_run_skips_subprocess(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda *a, **k: pytest.fail("subprocess.run called"))

    cp = CommandRunner(dry_run=True).run(["docker", "commit", "c", "t"], text=False)

    assert cp.returncode == 0
    assert cp.stdout == b""


def test_non_executable_binary_is_engine_error(monkeypatch):
    def fake_run(argv, **kw):
        raise PermissionError(13, "Permission denied", argv[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(EngineError, match="cannot execute ./helper-image.sh: Permission denied"):
        CommandRunner(label="builder").run(["./helper-image.sh", "--hostname", "localhost", "--identity", "1"])
