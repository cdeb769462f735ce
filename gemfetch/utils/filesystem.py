"""Filesystem utilities for gemfetch."""

import logging
import os
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class FilesystemError(Exception):
    """Error moving or creating files."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def requires_sudo(path: Path) -> bool:
    """Check whether writing under a directory needs elevated privileges.

    The closest existing ancestor is checked, so a directory that does not
    exist yet is judged by where it would be created.

    Args:
        path: Directory that will be written to

    Returns:
        True if the current process cannot write there
    """
    candidate = path
    while not candidate.exists() and candidate != candidate.parent:
        candidate = candidate.parent
    return not os.access(candidate, os.W_OK)


def _run_sudo(args: list[str]) -> None:
    """Run a command through sudo."""
    cmd = ["sudo", *args]
    logger.debug("Running: %s", " ".join(cmd))
    try:
        subprocess.run(cmd, capture_output=True, text=True, check=True)
    except subprocess.CalledProcessError as e:
        logger.error("Command failed: %s - %s", " ".join(cmd), e.stderr.strip())
        raise FilesystemError(f"Command failed: {' '.join(cmd)}\n{e.stderr}") from e
    except FileNotFoundError as e:
        raise FilesystemError("sudo is not installed or not in PATH") from e


def move_file(src: Path, dest: Path, use_sudo: bool = False) -> Path:
    """Move a file, optionally escalating privileges.

    Args:
        src: Source file path
        dest: Destination file path
        use_sudo: Create the destination directory and move with sudo

    Returns:
        Path to the moved file
    """
    if use_sudo:
        _run_sudo(["mkdir", "-p", str(dest.parent)])
        _run_sudo(["mv", str(src), str(dest)])
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dest))
    return dest
