# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/trine/logging/log.py

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

LOG_DIR_ENV = "TRINE_LOG_DIR"

FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class RunLogs:
    """Where one bootstrap run writes its command trace and its event stream."""
    logger: logging.Logger
    run_id: str
    log_path: Path
    events_path: Path


def resolve_log_dir(base_dir: Path | None = None) -> Path:
    """--log-dir wins, then $TRINE_LOG_DIR, then ~/.trine/logs."""
    if base_dir is not None:
        return Path(base_dir)
    env = os.environ.get(LOG_DIR_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".trine" / "logs"


def _reset(logger: logging.Logger) -> None:
    # a second run in the same process must not write into the previous file
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "trine",
    verbose: bool = False,
) -> RunLogs:
    """
    Set up the ``trine`` logger for one run.

    Every docker and git command is traced with its output into
    ``<name>-<stamp>-<run_id>.log``; the console only shows INFO unless
    ``verbose``. The JSON-lines event file for the same run sits next to it.
    """
    run_id = str(uuid.uuid4())
    log_dir = resolve_log_dir(base_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    stem = f"{name}-{datetime.now(timezone.utc):%Y%m%d-%H%M%S}-{run_id}"
    log_path = log_dir / f"{stem}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    _reset(logger)
    logger.propagate = False

    formatter = logging.Formatter(FORMAT, datefmt=DATEFMT)

    trace = logging.FileHandler(log_path, encoding="utf-8")
    trace.setLevel(logging.DEBUG)
    trace.setFormatter(formatter)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(formatter)

    logger.addHandler(trace)
    logger.addHandler(console)

    logger.debug("run_id=%s log_file=%s", run_id, log_path)

    return RunLogs(
        logger=logger,
        run_id=run_id,
        log_path=log_path,
        events_path=log_dir / f"{stem}.jsonl",
    )
