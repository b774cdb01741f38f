from __future__ import annotations

import itertools
import logging
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Set

from trine.config.models import BootstrapConfig
from trine.execution.runner import CommandRunner
from trine.utils.execution import ExecutionContext

from .errors import EngineError

log = logging.getLogger("trine")

TRANSIENT_LABEL = "trine.transient"

# containers that are not running; a running transient may belong to a concurrent run
STOPPED = ("created", "exited", "dead")


class DockerCliEngine:
    """
    A pragmatic wrapper around the `docker` CLI.
    - Mirrors the manual workflow: 'run --rm ... cat', 'run -i', 'commit', 'rm', 'save'.
    - Every container it starts for a commit is a transient handle, removed on
      every exit path of ``transient()``.
    - Testable by mocking subprocess.run.
    """

    def __init__(
        self,
        cfg: BootstrapConfig,
        ctx: ExecutionContext | None = None,
        *,
        logger: Optional[logging.Logger] = None,
        run_token: Optional[str] = None,
    ):
        self.cfg = cfg
        self.ctx = ctx or ExecutionContext()
        self.run_token = run_token or uuid.uuid4().hex[:8]
        self._seq = itertools.count(1)
        self._live: Set[str] = set()
        self.runner = CommandRunner(
            logger=logger or log,
            dry_run=self.ctx.dry_run,
            label="docker",
            timeout=self.ctx.timeout_seconds or cfg.command_timeout_seconds,
        )

    # ------------------------- internal helpers -------------------------

    def _docker(self, *args: str) -> list[str]:
        return [self.cfg.docker_binary, *args]

    def _next_name(self) -> str:
        return f"{self.cfg.transient_prefix}-{self.run_token}-{next(self._seq)}"

    def _remove(self, name: str, *, quiet: bool) -> None:
        try:
            self.runner.run(self._docker("rm", "-f", name))
        except EngineError as exc:
            if "No such container" in exc.stderr:
                self._live.discard(name)
                return
            if not quiet:
                raise
            log.warning("could not remove transient container %s: %s", name, exc)
            return
        self._live.discard(name)

    def _commit(self, name: str, tag: str) -> None:
        self.runner.run(self._docker("commit", name, tag))

    @contextmanager
    def transient(
        self,
        tag: str,
        argv: Sequence[str],
        *,
        input: Optional[bytes] = None,
    ) -> Iterator[str]:
        """
        Run ``argv`` in a fresh named container of ``tag`` and yield its name.

        The container is removed when the block exits. On the error path the
        removal is best effort so the original exception is the one that
        propagates.
        """
        name = self._next_name()
        run_args = ["run"]
        if input is not None:
            run_args.append("-i")
        run_args += ["--name", name, "--label", f"{TRANSIENT_LABEL}={self.run_token}", tag]

        # registered before `docker run`: the container can exist even if the command fails
        self._live.add(name)
        try:
            self.runner.run(self._docker(*run_args, *argv), text=False, input=input)
            yield name
        except BaseException:
            self._remove(name, quiet=True)
            raise
        else:
            self._remove(name, quiet=False)

    # ------------------------- ContainerEngine methods -------------------------

    def build(self, hostname: str, identity: int) -> None:
        argv = [*self.cfg.builder_command, "--hostname", hostname, "--identity", str(identity)]
        self.runner.run(argv, cwd=self.ctx.source_dir)

    def image_exists(self, tag: str) -> bool:
        cp = self.runner.run(self._docker("image", "inspect", "--format", "{{.Id}}", tag), check=False)
        return cp.returncode == 0

    def extract(self, tag: str, path: str) -> bytes:
        cp = self.runner.run(self._docker("run", "--rm", tag, "cat", path), text=False)
        return cp.stdout or b""

    def inject(self, tag: str, path: str, data: bytes) -> str:
        with self.transient(tag, ["sh", "-c", 'cat > "$0"', path], input=data) as name:
            self._commit(name, tag)
        return tag

    def run_in_container(self, tag: str, argv: Sequence[str]) -> str:
        with self.transient(tag, list(argv)) as name:
            self._commit(name, tag)
        return tag

    def save(self, tag: str, archive: Path) -> Path:
        archive = Path(archive)
        if not self.ctx.dry_run:
            archive.parent.mkdir(parents=True, exist_ok=True)
        self.runner.run(self._docker("save", "-o", str(archive), tag))
        return archive

    def live_transients(self) -> List[str]:
        return sorted(self._live)

    def release_transients(self) -> List[str]:
        released = []
        for name in self.live_transients():
            self._remove(name, quiet=True)
            if name not in self._live:
                released.append(name)
        return released

    def sweep_transients(self) -> List[str]:
        """
        Remove this run's transients in any state and stopped leftovers of
        other runs, including the fixed-name container older tooling used.
        """
        stopped = [arg for s in STOPPED for arg in ("--filter", f"status={s}")]
        queries = [["--filter", f"label={TRANSIENT_LABEL}={self.run_token}"]]
        queries.append(["--filter", f"label={TRANSIENT_LABEL}", *stopped])
        if self.cfg.legacy_container_name:
            queries.append(["--filter", f"name={self.cfg.legacy_container_name}", *stopped])

        ids: List[str] = []
        for query in queries:
            cp = self.runner.run(self._docker("ps", "-aq", *query))
            for cid in (cp.stdout or "").split():
                if cid not in ids:
                    ids.append(cid)

        if ids:
            self.runner.run(self._docker("rm", "-f", *ids))
        return ids
