# src/trine/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from trine.bootstrap.cleanup import exit_on_sigterm
from trine.bootstrap.exchange import CredentialExchange
from trine.bootstrap.pipeline import PHASES, BootstrapPipeline
from trine.config.loader import ConfigError, load_config
from trine.config.models import BootstrapConfig
from trine.engine.docker_cli import DockerCliEngine
from trine.engine.errors import EngineError
from trine.execution.runner import CommandRunner
from trine.images.tagger import ImageTagger, resolve_revision
from trine.logging.log import init_logging
from trine.observers.console import ConsoleObserver
from trine.observers.jsonfile import JsonFileObserver
from trine.observers.logger import LoggerObserver
from trine.topology.models import Topology
from trine.topology.resolver import TopologyUsageError, resolve_topology
from trine.utils.execution import ExecutionContext


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Build, cross-trust and package the helper images of a three-party deployment")

HELPERS_HELP = (
    "Optional hostname:port pairs, one per helper. hostname is the public DNS name "
    "or IP address of the helper party, port the open port on that instance. "
    "Without arguments 'localhost' and 1443, 1444, 1445 are used. "
    "Supplying any other number of pairs than 0 or 3 is an error."
)


def resolve_phases(phases: Optional[str]) -> List[str]:
    """
    Resolve phase plan from --phases flag.

    Rules:
    - No --phases → run every phase
    - --phases all → run every phase
    - Otherwise → run only the listed phases, still in pipeline order
    """
    if not phases:
        return list(PHASES)

    items = {i.strip() for i in phases.split(",") if i.strip()}
    if not items:
        raise typer.BadParameter("no phases selected", param_hint="--phases")
    if "all" in items:
        return list(PHASES)

    unknown = items - set(PHASES)
    if unknown:
        raise typer.BadParameter(
            f"Unknown phases: {', '.join(sorted(unknown))}\n"
            f"Valid phases: {', '.join(PHASES)}"
        )

    return [p for p in PHASES if p in items]


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _load(config: Optional[Path]) -> BootstrapConfig:
    try:
        return load_config(config)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config")


def _topology(helpers: Optional[List[str]], cfg: BootstrapConfig) -> Topology:
    try:
        return resolve_topology(
            helpers or [],
            default_hostname=cfg.default_hostname,
            base_port=cfg.base_port,
            size=cfg.size,
        )
    except TopologyUsageError as exc:
        raise typer.BadParameter(f"{exc}\n{HELPERS_HELP}", param_hint="HELPERS")


def _revision(revision: Optional[str], source_dir: Path, cfg: BootstrapConfig, logger=None) -> str:
    if revision:
        return revision
    # git is read-only, so it runs even in dry-run mode
    runner = CommandRunner(logger=logger, label="git")
    try:
        return resolve_revision(source_dir, runner, length=cfg.revision_length)
    except EngineError as exc:
        typer.secho(f"Cannot determine revision: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def build(
    helpers: Optional[List[str]] = typer.Argument(None, help=HELPERS_HELP, show_default=False),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML config (defaults to $TRINE_CONFIG, then built-in defaults)"
    ),
    source_dir: Path = typer.Option(
        Path("."), "--source-dir", help="Checkout the builder runs in and the revision is read from"
    ),
    output_dir: Path = typer.Option(
        Path("."), "--output-dir", "-o", help="Where the per-helper tar files are written"
    ),
    revision: Optional[str] = typer.Option(
        None, "--revision", help="Image tag revision (default: short hash of the last commit)"
    ),
    phases: Optional[str] = typer.Option(
        None,
        "--phases",
        help="Comma-separated subset of phases to run (build,exchange,confgen,package). Default: all.",
    ),
    legacy_hostname_shift: bool = typer.Option(
        False,
        "--legacy-hostname-shift",
        help="Pass helper i-1's hostname to the builder of helper i, like the old shell script did",
    ),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory for run logs"),
    events: bool = typer.Option(False, "--events", help="Print lifecycle events to the console"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log docker commands without running them"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Show every command on the console"),
):
    """
    Full bootstrap workflow:
      1) build one image per helper with the external builder
      2) copy TLS certificates and match key public keys between all helpers
      3) generate network.toml inside every image
      4) save the three images as tar files
    """
    # usage errors surface before anything touches docker
    cfg = _load(config)
    topology = _topology(helpers, cfg)
    phase_plan = resolve_phases(phases)

    logs = init_logging(base_dir=log_dir, verbose=debug)
    logger, run_id = logs.logger, logs.run_id

    typer.echo("")
    typer.secho("trine bootstrap started", bold=True)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {logs.log_path}")
    typer.echo("")

    ctx = ExecutionContext(
        dry_run=dry_run,
        source_dir=source_dir,
        output_dir=output_dir,
        timeout_seconds=cfg.command_timeout_seconds,
    )
    rev = _revision(revision, source_dir, cfg, logger)
    tagger = ImageTagger(namespace=cfg.namespace, project=cfg.project, revision=rev)
    engine = DockerCliEngine(cfg, ctx, logger=logger, run_token=run_id[:8])

    observers = [LoggerObserver(logger), JsonFileObserver(logs.events_path)]
    if events:
        observers.append(ConsoleObserver())

    pipeline = BootstrapPipeline(
        cfg,
        engine,
        tagger,
        output_dir=output_dir,
        observers=observers,
        run_id=run_id,
        shift_hostnames=legacy_hostname_shift,
    )

    try:
        with exit_on_sigterm():
            report = pipeline.run(topology, phase_plan)
    except EngineError as exc:
        logger.error("bootstrap failed: %s", exc)
        typer.secho(f"Bootstrap failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho("Bootstrap complete", fg=typer.colors.GREEN, bold=True)
    for tag in report.images:
        typer.echo(f"  image   : {tag}")
    for archive in report.archives:
        typer.echo(f"  archive : {archive}")


@app.command()
def plan(
    helpers: Optional[List[str]] = typer.Argument(None, help=HELPERS_HELP, show_default=False),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config"),
    source_dir: Path = typer.Option(Path("."), "--source-dir", help="Checkout the revision is read from"),
    revision: Optional[str] = typer.Option(None, "--revision", help="Image tag revision"),
):
    """
    Print helpers, image tags and the ordered key transfers without touching docker.
    """
    cfg = _load(config)
    topology = _topology(helpers, cfg)
    rev = _revision(revision, source_dir, cfg)
    tagger = ImageTagger(namespace=cfg.namespace, project=cfg.project, revision=rev)

    typer.secho("Helpers", bold=True)
    for node in topology:
        typer.echo(f"  #{node.identity}  {node.hostname}:{node.port}  {tagger.tag(node.identity)}")

    typer.secho("Transfers", bold=True)
    for t in CredentialExchange.plan(topology, cfg.artifact_kinds):
        typer.echo(f"  {t.path}: {t.source.identity} -> {t.destination.identity}")

    typer.secho("Confgen", bold=True)
    typer.echo(f"  hosts: {' '.join(topology.hostnames)}")
    typer.echo(f"  ports: {' '.join(str(p) for p in cfg.confgen_ports)}")


if __name__ == "__main__":
    app()
