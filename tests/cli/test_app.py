import logging
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

import trine.cli.app as cli
from trine.cli.app import app, resolve_phases
from trine.images.tagger import ImageTagger

runner = CliRunner()
REVISION = "0123456789"


@pytest.fixture(autouse=True)
def _isolated(monkeypatch):
    monkeypatch.delenv("TRINE_CONFIG", raising=False)
    yield
    logger = logging.getLogger("trine")
    for h in list(logger.handlers):
        h.close()
    logger.handlers.clear()


@pytest.fixture
def patched_engine(monkeypatch, fake_engine):
    created = []

    def factory(cfg, ctx, **kw):
        created.append((cfg, ctx, kw))
        # the fake builder has to tag images the way this run names them
        fake_engine.tagger = ImageTagger(cfg.namespace, cfg.project, REVISION)
        return fake_engine

    monkeypatch.setattr(cli, "DockerCliEngine", factory)
    return created


def _build(tmp_path: Path, *args):
    return runner.invoke(
        app,
        [
            "build",
            *args,
            "--revision", REVISION,
            "--output-dir", str(tmp_path / "out"),
            "--log-dir", str(tmp_path / "logs"),
        ],
    )


@pytest.mark.parametrize("helpers", [["h1:80"], ["h1:80", "h2:80"], ["a:1", "b:2", "c:3", "d:4"]])
def test_wrong_helper_count_exits_with_usage_error(tmp_path, patched_engine, fake_engine, helpers):
    result = _build(tmp_path, *helpers)

    assert result.exit_code == 2
    assert patched_engine == []
    assert fake_engine.calls == []
    assert not (tmp_path / "logs").exists()


def test_malformed_helper_exits_with_usage_error(tmp_path, patched_engine):
    result = _build(tmp_path, "h1", "h2:80", "h3:80")
    assert result.exit_code == 2
    assert patched_engine == []


def test_build_three_helpers_writes_three_archives(tmp_path, patched_engine, fake_engine):
    result = _build(tmp_path, "h1:80", "h2:80", "h3:80")

    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in (tmp_path / "out").iterdir()) == ["ipa-1.tar", "ipa-2.tar", "ipa-3.tar"]
    assert "Bootstrap complete" in result.output
    assert [c[1] for c in fake_engine.ops("build")] == ["h1", "h2", "h3"]

    _, ctx, kw = patched_engine[0]
    assert ctx.output_dir == tmp_path / "out"
    assert ctx.dry_run is False
    assert len(kw["run_token"]) == 8


def test_build_without_helpers_uses_localhost(tmp_path, patched_engine, fake_engine):
    result = _build(tmp_path)

    assert result.exit_code == 0, result.output
    argv = fake_engine.ops("run")[0][2]
    assert argv[argv.index("--hosts") + 1: argv.index("--ports")] == ["localhost"] * 3
    assert argv[argv.index("--ports") + 1:] == ["443", "443", "443"]


def test_engine_failure_exits_non_zero(tmp_path, monkeypatch, make_engine):
    engine = make_engine(fail_on=("inject", 2))
    monkeypatch.setattr(cli, "DockerCliEngine", lambda cfg, ctx, **kw: engine)

    result = _build(tmp_path)

    assert result.exit_code == 1
    assert "simulated inject failure" in result.output
    assert engine.containers == set()
    assert not (tmp_path / "out").exists()


def test_unknown_phase_is_usage_error(tmp_path, patched_engine):
    result = _build(tmp_path, "--phases", "build,deploy")
    assert result.exit_code == 2
    assert patched_engine == []


def test_legacy_hostname_shift_flag(tmp_path, patched_engine, fake_engine):
    result = _build(tmp_path, "a:1", "b:2", "c:3", "--legacy-hostname-shift", "--phases", "build")

    assert result.exit_code == 0, result.output
    assert [c[1] for c in fake_engine.ops("build")] == ["c", "a", "b"]


def test_resolve_phases():
    assert resolve_phases(None) == ["build", "exchange", "confgen", "package"]
    assert resolve_phases("all") == ["build", "exchange", "confgen", "package"]
    assert resolve_phases("package, exchange") == ["exchange", "package"]


@pytest.mark.parametrize("value", [" , ", ",", "confgen,bogus"])
def test_resolve_phases_rejects_bad_selection(value):
    with pytest.raises(typer.BadParameter):
        resolve_phases(value)


def test_empty_phase_selection_is_usage_error(tmp_path, patched_engine, fake_engine):
    result = _build(tmp_path, "--phases", " , ")

    assert result.exit_code == 2
    assert fake_engine.calls == []
    assert "Bootstrap complete" not in result.output


def test_plan_lists_transfers_without_docker(patched_engine):
    result = runner.invoke(app, ["plan", "h1:80", "h2:80", "h3:80", "--revision", "abc"])

    assert result.exit_code == 0, result.output
    assert "private-attribution/ipa:abc-h2" in result.output
    assert "/etc/ipa/pub/h1.pem: 1 -> 2" in result.output
    assert "/etc/ipa/pub/h3_mk.pub: 3 -> 2" in result.output
    assert "ports: 443 443 443" in result.output
    assert patched_engine == []


def test_config_file_changes_naming(tmp_path, patched_engine, fake_engine):
    cfg_file = tmp_path / "trine.yaml"
    cfg_file.write_text("namespace: acme\nproject: helper\narchive_prefix: helper\n")

    result = _build(tmp_path, "--config", str(cfg_file))

    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in (tmp_path / "out").iterdir()) == [
        "helper-1.tar", "helper-2.tar", "helper-3.tar",
    ]
    assert "acme/helper:0123456789-h1" in result.output


def test_invalid_config_is_usage_error(tmp_path, patched_engine):
    cfg_file = tmp_path / "trine.yaml"
    cfg_file.write_text("confgen_ports: [443]\n")

    result = _build(tmp_path, "--config", str(cfg_file))

    assert result.exit_code == 2
    assert patched_engine == []


def test_event_stream_written_next_to_run_log(tmp_path, patched_engine):
    result = _build(tmp_path)

    assert result.exit_code == 0, result.output
    logs = sorted(p.suffix for p in (tmp_path / "logs").iterdir())
    assert logs == [".jsonl", ".log"]
