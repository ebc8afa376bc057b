"""Guarded access to the Markdown document being converted.

A document is read once and may be replaced once. `DocumentGuard` keeps a
`FileSnapshot` of the file taken when it was read and refuses to replace a
file that changed in between. Paths given on the command line are checked by
`resolve_document_path` before a guard is created for them.
"""

from __future__ import annotations

import os
import stat
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .constants import DEFAULT_MAX_FILE_SIZE, MARKDOWN_EXTENSIONS

MAX_FILE_SIZE_ENV_VAR = "PANDOC_DIRECTIVES_MAX_FILE_SIZE"


def resolve_size_limit(configured: int = DEFAULT_MAX_FILE_SIZE) -> int:
    """Apply the `PANDOC_DIRECTIVES_MAX_FILE_SIZE` override to a configured limit.

    Raises:
        ValueError: If the environment value is not a positive integer.

    Examples:
        resolve_size_limit(1024)  # 1024 unless the environment overrides it
    """
    raw_limit = os.environ.get(MAX_FILE_SIZE_ENV_VAR)
    if raw_limit is None:
        return configured

    error_message = f"{MAX_FILE_SIZE_ENV_VAR} must be a positive integer, got {raw_limit!r}."
    try:
        limit = int(raw_limit)
    except ValueError as error:
        raise ValueError(error_message) from error
    if limit <= 0:
        raise ValueError(error_message)
    return limit


def resolve_document_path(raw_path: str, base_dir: Path) -> Path:
    """Turn a user-supplied path into the absolute path of a Markdown document.

    Args:
        raw_path: Absolute or relative path to the document.
        base_dir: Resolved directory the document must live under.

    Returns:
        Path: Resolved path of a regular Markdown file under `base_dir`.

    Raises:
        ValueError: If the path or one of its parents is a symlink, the file
            is missing or not a regular file, lies outside `base_dir`, or has
            an extension other than those in `MARKDOWN_EXTENSIONS`.
    """
    path = Path(raw_path).expanduser()
    if any(candidate.is_symlink() for candidate in (path, *path.parents)):
        raise ValueError(f"Symlinks are not supported for security reasons: {path}")

    try:
        resolved = path.resolve(strict=True)
    except FileNotFoundError as error:
        raise ValueError(f"{path} does not exist.") from error
    except OSError as error:
        raise ValueError(f"Cannot resolve {path}: {error}") from error

    if not resolved.is_file():
        raise ValueError(f"{resolved} is not a regular file.")
    if not resolved.is_relative_to(base_dir):
        raise ValueError(f"{resolved} is outside of the working directory {base_dir}.")
    if resolved.suffix.lower() not in MARKDOWN_EXTENSIONS:
        error_message = (
            f"{resolved} is not a Markdown file. "
            f"Supported extensions are: {', '.join(MARKDOWN_EXTENSIONS)}"
        )
        raise ValueError(error_message)

    return resolved


@dataclass(frozen=True)
class FileSnapshot:
    """Identity, size, and ownership of a regular file at one moment.

    Attributes:
        device: Device the file lives on.
        inode: Inode number.
        size: Size in bytes.
        mtime_ns: Modification time in nanoseconds.
        mode: Permission bits.
        uid: Owning user.
        gid: Owning group.
    """

    device: int
    inode: int
    size: int
    mtime_ns: int
    mode: int
    uid: int
    gid: int

    @classmethod
    def take(cls, filepath: Path) -> FileSnapshot:
        """Snapshot `filepath` without following symlinks.

        Raises:
            IOError: If the path is inaccessible, a symlink, or not a regular
                file.
        """
        try:
            result = os.lstat(filepath)
        except OSError as error:
            raise IOError(f"Error accessing {filepath}: {error}") from error

        if stat.S_ISLNK(result.st_mode):
            raise IOError(f"Symlinks are not supported: {filepath}.")
        if not stat.S_ISREG(result.st_mode):
            raise IOError(f"{filepath} is not a regular file.")

        return cls(
            device=result.st_dev,
            inode=result.st_ino,
            size=result.st_size,
            mtime_ns=result.st_mtime_ns,
            mode=stat.S_IMODE(result.st_mode),
            uid=result.st_uid,
            gid=result.st_gid,
        )

    def same_content_as(self, other: FileSnapshot) -> bool:
        """Whether both snapshots describe the same, unmodified file."""
        return (self.device, self.inode, self.size, self.mtime_ns) == (
            other.device,
            other.inode,
            other.size,
            other.mtime_ns,
        )


class DocumentGuard:
    """Read a Markdown document and replace it only if nobody else touched it.

    Attributes:
        filepath: Path of the guarded document.
        max_size: Largest file size in bytes that will be read.
        snapshot: State of the file when it was read, or None before `read`.

    Examples:
        document = DocumentGuard(Path("index.qmd"))
        text = document.read()
        document.replace(text.upper())
    """

    def __init__(self, filepath: Path, max_size: int = DEFAULT_MAX_FILE_SIZE):
        self.filepath = filepath
        self.max_size = max_size
        self.snapshot: FileSnapshot | None = None

    def read(self) -> str:
        """Return the document text with its line endings untouched.

        Raises:
            IOError: If the file is inaccessible, not a regular file, or
                larger than `max_size`.
            UnicodeDecodeError: If the file is not valid UTF-8.
        """
        snapshot = FileSnapshot.take(self.filepath)
        if snapshot.size > self.max_size:
            error_message = (
                f"{self.filepath} exceeds the maximum allowed size of {self.max_size} bytes."
            )
            raise IOError(error_message)

        try:
            with open(self.filepath, encoding="UTF-8", newline="") as handle:
                text = handle.read()
        except OSError as error:
            raise IOError(f"Error accessing {self.filepath}: {error}") from error

        self.snapshot = snapshot
        return text

    def replace(self, content: str, warn: Callable[[str], None] | None = None):
        """Atomically write `content` over the document read earlier.

        The new file keeps the permission bits, and where allowed the
        ownership, of the one it replaces.

        Args:
            content: Full replacement text, written without newline translation.
            warn: Optional callback for non-fatal problems.

        Raises:
            IOError: If the document was not read first, changed since it was
                read, or cannot be replaced.
        """
        if self.snapshot is None:
            raise IOError(f"{self.filepath} must be read before it is replaced.")
        if not FileSnapshot.take(self.filepath).same_content_as(self.snapshot):
            raise IOError(f"{self.filepath} changed during processing; refusing to overwrite.")

        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self.filepath.name}.", suffix=".tmp", dir=self.filepath.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="UTF-8", newline="") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(temp_name, self.snapshot.mode)
            self._copy_ownership(temp_name, warn)
            os.replace(temp_name, self.filepath)
        except OSError as error:
            raise IOError(f"Could not replace {self.filepath}: {error}") from error
        finally:
            Path(temp_name).unlink(missing_ok=True)

    def _copy_ownership(self, temp_name: str, warn: Callable[[str], None] | None):
        if not hasattr(os, "chown"):
            return
        try:
            os.chown(temp_name, self.snapshot.uid, self.snapshot.gid)
        except PermissionError:
            # Changing ownership needs elevated privileges
            if warn is not None:
                warn(f"Warning: could not preserve ownership of {self.filepath.name}")
