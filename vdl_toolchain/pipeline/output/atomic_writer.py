"""
Atomic file writer for generated output.

Ensures that file writes are atomic so an interrupted generation never leaves
a half-written file behind.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from ...errors import OutputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedFile:
    """A file produced by a generator, relative to the target output directory."""

    path: str
    content: str


def check_relative_path(path: str) -> PurePosixPath:
    """
    Validate a generated file path.

    Returns:
        The path as a relative POSIX path

    Raises:
        ValueError: If the path is empty, absolute or escapes the output root
    """
    if not path or "\\" in path or "\0" in path:
        raise ValueError(f"invalid output path {path!r}")
    relative = PurePosixPath(path)
    if relative.is_absolute() or relative.drive or ".." in relative.parts:
        raise ValueError(f"output path {path!r} must stay inside the output directory")
    return relative


class AtomicWriter:
    """Handles atomic file writes under one output root.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Atomically replace the target file
    """

    def __init__(self, root: Path, target: str | None = None):
        """
        Initialize the atomic writer.

        Args:
            root: Output directory every file is written under
            target: Target name, attached to OutputError for reporting
        """
        self.root = Path(root)
        self.target = target

    def write(self, relative: str, content: str) -> Path:
        """
        Write content to ``root / relative`` atomically, creating parents.

        Raises:
            OutputError: If the path is unsafe or file operations fail
        """
        try:
            path = self.root / check_relative_path(relative)
        except ValueError as e:
            raise OutputError(str(e), self.root / relative, self.target) from e

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Same directory ensures atomic rename on the same filesystem
            temp_fd, temp_path_str = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        except OSError as e:
            raise OutputError(f"cannot create output directory ({e.strerror or e})", path.parent, self.target) from e

        temp_path = Path(temp_path_str)
        try:
            with open(temp_fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            temp_path.replace(path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise OutputError(f"cannot write file ({e.strerror or e})", path, self.target) from e

        logger.info("Wrote %s", path)
        return path

    def write_all(self, files: Iterable[GeneratedFile], clean: bool = False) -> list[Path]:
        """
        Write every file of a generation result.

        Args:
            files: Files to write, with paths relative to the root
            clean: Empty the root first so no stale files remain

        Returns:
            The absolute paths written, in input order
        """
        files = list(files)
        # Validate everything before touching the filesystem
        for generated in files:
            try:
                check_relative_path(generated.path)
            except ValueError as e:
                raise OutputError(str(e), self.root / generated.path, self.target) from e

        if clean:
            self.clean()
        elif self.root.exists():
            logger.debug("Writing into existing %s; files from earlier runs are kept", self.root)

        return [self.write(generated.path, generated.content) for generated in files]

    def clean(self) -> None:
        """Remove the contents of the output root."""
        if not self.root.exists():
            return
        try:
            for child in self.root.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        except OSError as e:
            raise OutputError(f"cannot clean output directory ({e.strerror or e})", self.root, self.target) from e
        logger.debug("Cleaned %s", self.root)
