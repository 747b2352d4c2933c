"""Shared helpers: path checks, directory copying and removal, running commands."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess
from collections.abc import Callable, Iterable
from pathlib import Path

log = logging.getLogger(__name__)

BUILDING = "📦 "
SUCCESS = "✅ "
ERROR = "❌ "
SERVER = "📡 "
LOCAL = "🏠 "
NETWORK = "💻 "
STARTING = "🚀 "


class CommandError(RuntimeError):
    """An external command could not be started or finished with a bad status."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


def parse_public_url(val: str) -> str:
    """Normalise a ``--public-url`` value so it starts and ends with a slash."""
    prefix = "" if val.startswith("/") or val.startswith("./") else "/"
    suffix = "" if val.endswith("/") else "/"
    return f"{prefix}{val}{suffix}"


def copy_dir_recursive(from_dir: str | os.PathLike, to_dir: str | os.PathLike) -> set[Path]:
    """Copy a directory tree, overwriting files; return the paths of all copied files."""
    source = Path(from_dir)
    target = Path(to_dir)

    try:
        source_stat = source.stat()
    except OSError as err:
        raise FileNotFoundError(
            f"Unable to retrieve metadata of {str(source)!r}. Path does probably not exist."
        ) from err
    if not stat.S_ISDIR(source_stat.st_mode):
        raise NotADirectoryError(
            f"Path {str(source)!r} can not be copied as it is not a directory!"
        )

    if not target.exists():
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise OSError(f"Unable to create target directory {str(target)!r}.") from err

    copied: set[Path] = set()
    with os.scandir(source) as entries:
        for entry in entries:
            destination = target / entry.name
            if entry.is_dir(follow_symlinks=False):
                copied |= copy_dir_recursive(entry.path, destination)
            else:
                shutil.copy(entry.path, destination)
                copied.add(destination)
    return copied


def remove_dir_all(from_dir: str | os.PathLike) -> None:
    """Remove a directory and everything below it; a missing directory is not an error."""
    path = Path(from_dir)
    if not path_exists(path):
        return

    def _retry_writable(func, failed_path, _exc_info):
        os.chmod(failed_path, stat.S_IWRITE)
        func(failed_path)

    shutil.rmtree(path, onerror=_retry_writable)


def path_exists(path: str | os.PathLike) -> bool:
    """Return whether ``path`` exists."""
    return path_exists_and(path, lambda _meta: True)


def path_exists_and(
    path: str | os.PathLike, predicate: Callable[[os.stat_result], bool]
) -> bool:
    """Return whether ``path`` exists and its metadata satisfies ``predicate``."""
    try:
        meta = os.stat(path)
    except FileNotFoundError:
        return False
    except OSError as err:
        raise OSError(f"error checking for existence of path at {str(path)!r}") from err
    return bool(predicate(meta))


def is_executable(path: str | os.PathLike) -> bool:
    """Return whether ``path`` is an existing regular file marked executable by its owner."""
    try:
        meta = os.stat(path)
    except FileNotFoundError:
        return False
    except OSError as err:
        raise OSError(f"error checking file mode for file {str(path)!r}") from err
    if not stat.S_ISREG(meta.st_mode):
        return False
    if os.name != "posix":
        return True
    return bool(meta.st_mode & stat.S_IXUSR)


def strip_prefix(target: str | os.PathLike) -> Path:
    """Make ``target`` relative to the working directory, or return it unchanged."""
    path = Path(target)
    try:
        return path.relative_to(Path.cwd())
    except ValueError:
        return path


def run_command(
    name: str, path: str | os.PathLike, args: Iterable[str | os.PathLike]
) -> None:
    """Run an executable with inherited output, raising CommandError unless it succeeds."""
    arguments = [os.fspath(arg) for arg in args]
    executable = os.fspath(path)
    log.debug("%s args: %r", name, arguments)
    try:
        completed = subprocess.run([executable, *arguments], check=False)
    except OSError as err:
        raise CommandError(
            f"error running {name} using executable '{executable}' with args: '{arguments!r}'"
        ) from err
    if completed.returncode != 0:
        raise CommandError(
            f"{name} call to executable '{executable}' with args: '{arguments!r}' "
            f"returned a bad status: exit status: {completed.returncode}",
            completed.returncode,
        )