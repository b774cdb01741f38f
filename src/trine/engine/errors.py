# src/trine/engine/errors.py
from typing import Optional, Sequence


class EngineError(RuntimeError):
    """Base class for container engine (and other external command) failures."""

    def __init__(
        self,
        message: str,
        *,
        argv: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.argv = list(argv) if argv is not None else None
        self.returncode = returncode
        self.stderr = stderr


class ImageMissingError(EngineError):
    """Raised when an image expected under a tag is not in the image store."""
