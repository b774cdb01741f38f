import subprocess
import types
from pathlib import Path

import pytest

from trine.engine.errors import EngineError
from trine.execution.runner import CommandRunner
from trine.images.tagger import ImageTagger, resolve_revision


def test_tag_format():
    t = ImageTagger(namespace="private-attribution", project="ipa", revision="abcdef0123")
    assert t.tag(1) == "private-attribution/ipa:abcdef0123-h1"
    assert t.tag(3) == "private-attribution/ipa:abcdef0123-h3"


def test_tag_is_pure():
    a = ImageTagger("ns", "proj", "rev")
    b = ImageTagger("ns", "proj", "rev")
    assert a.tag(2) == a.tag(2) == b.tag(2)
    assert a.tag(2) != ImageTagger("ns", "proj", "other").tag(2)


def test_tag_rejects_zero_identity():
    with pytest.raises(ValueError):
        ImageTagger("ns", "proj", "rev").tag(0)


def test_resolve_revision_truncates_git_hash(monkeypatch, tmp_path: Path):
    calls = []

    def fake_run(argv, **kw):
        calls.append((argv, kw.get("cwd")))
        return types.SimpleNamespace(returncode=0, stdout="0123456789abcdef0123\n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    rev = resolve_revision(tmp_path, CommandRunner(label="git"))
    assert rev == "0123456789"
    assert calls[0][0] == ["git", "log", "-n", "1", "--format=format:%H"]
    assert calls[0][1] == str(tmp_path)


def test_resolve_revision_outside_git_fails(monkeypatch, tmp_path: Path):
    def fake_run(argv, **kw):
        return types.SimpleNamespace(returncode=128, stdout="", stderr="fatal: not a git repository")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(EngineError, match="rc=128"):
        resolve_revision(tmp_path, CommandRunner(label="git"))
