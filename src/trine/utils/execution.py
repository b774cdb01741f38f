# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

@dataclass(frozen=True)
class ExecutionContext:
    """
    controls where and how engine commands are executed
    """

    dry_run: bool = False
    source_dir: Path = Path(".")
    output_dir: Path = Path(".")
    timeout_seconds: Optional[int] = None
