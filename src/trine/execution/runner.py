from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from trine.engine.errors import EngineError

Cmd = Sequence[Union[str, "os.PathLike[str]"]]


def _preview(data: Union[str, bytes, None], limit: int = 2000) -> str:
    if not data:
        return ""
    if isinstance(data, bytes):
        data = data.decode("utf-8", "replace")
    data = data.rstrip()
    if len(data) > limit:
        return data[:limit] + f"... ({len(data) - limit} more chars)"
    return data


@dataclass
class CommandRunner:
    logger: Optional[logging.Logger] = None
    dry_run: bool = False
    label: Optional[str] = None
    timeout: Optional[int] = None

    def _log(self, msg: str, *args) -> None:
        if self.logger:
            self.logger.debug(msg, *args)

    def run(
        self,
        cmd: Cmd,
        *,
        check: bool = True,
        text: bool = True,
        cwd: str | os.PathLike | None = None,
        env: dict[str, str] | None = None,
        input: Union[str, bytes, None] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run ``cmd`` capturing its output.

        With ``check=True`` a non-zero exit raises EngineError carrying argv,
        return code and stderr. ``text=False`` keeps stdout as bytes, which is
        what artifact extraction needs.
        """
        label = self.label or "cmd"
        argv = [str(c) for c in cmd]
        cmd_str = " ".join(argv)

        self._log("[%s] $ %s", label, cmd_str)

        if self.dry_run:
            self._log("[%s] dry-run: skipped execution", label)
            empty = "" if text else b""
            return subprocess.CompletedProcess(
                args=argv,
                returncode=0,
                stdout=empty,
                stderr=empty,
            )

        start = time.time()

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                check=False,
                text=text,
                cwd=str(cwd) if cwd else None,
                env=env,
                input=input,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise EngineError(f"[{label}] command not found: {argv[0]}", argv=argv) from e
        except subprocess.TimeoutExpired as e:
            raise EngineError(
                f"[{label}] command timed out after {self.timeout}s: {cmd_str}", argv=argv
            ) from e
        except OSError as e:
            raise EngineError(f"[{label}] cannot execute {argv[0]}: {e.strerror or e}", argv=argv) from e

        duration = time.time() - start

        out = _preview(result.stdout)
        err = _preview(result.stderr)
        if out and text:
            self._log("[%s][stdout]\n%s", label, out)
        elif result.stdout and not text:
            self._log("[%s][stdout] %d bytes", label, len(result.stdout))
        if err:
            self._log("[%s][stderr]\n%s", label, err)
        self._log("[%s][exit %s] (%.2fs)", label, result.returncode, duration)

        if check and result.returncode != 0:
            raise EngineError(
                f"[{label}] failed (rc={result.returncode}): {cmd_str}\n{err}",
                argv=argv,
                returncode=result.returncode,
                stderr=err,
            )

        return result
