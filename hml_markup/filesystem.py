"""Filesystem and network helpers for hml-markup."""

from __future__ import annotations

import os
import stat
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import TextIO

from .constants import DEFAULT_MAX_FILE_SIZE

MAX_FILE_SIZE_ENV_VAR = "HML_MAX_FILE_SIZE"
URL_TIMEOUT_SECONDS = 10


def get_max_file_size(default: int = DEFAULT_MAX_FILE_SIZE) -> int:
    """Resolve the maximum allowed file size.

    Args:
        default: Fallback value in bytes when the environment variable is unset.

    Returns:
        int: Maximum allowed file size in bytes.

    Raises:
        ValueError: If the environment value is not a positive integer.

    Examples:
        os.environ["HML_MAX_FILE_SIZE"] = "204800"
        limit = get_max_file_size(default=102400)
    """
    env_value = os.environ.get(MAX_FILE_SIZE_ENV_VAR)
    if env_value is None:
        return default

    try:
        max_size = int(env_value)
    except ValueError as error:
        error_message = (
            f"Invalid value for {MAX_FILE_SIZE_ENV_VAR}: {env_value} (expected positive integer)"
        )
        raise ValueError(error_message) from error

    if max_size <= 0:
        error_message = f"{MAX_FILE_SIZE_ENV_VAR} must be a positive integer, got {max_size}."
        raise ValueError(error_message)

    return max_size


def collect_file_stat(filepath: Path) -> os.stat_result:
    """Return stat information for a regular file.

    Args:
        filepath: Path to the file.

    Returns:
        os.stat_result: File metadata.

    Raises:
        IOError: If the path is inaccessible or not a regular file.
    """
    try:
        stat_result = os.stat(filepath)
    except OSError as error:
        error_message = f"Error accessing {filepath}: {error}"
        raise IOError(error_message) from error

    if not stat.S_ISREG(stat_result.st_mode):
        error_message = f"{filepath} is not a regular file."
        raise IOError(error_message)

    return stat_result


def enforce_file_size(stat_result: os.stat_result, max_size: int, filepath: Path):
    """Guard against files that exceed the configured maximum size.

    Raises:
        IOError: If `stat_result.st_size` exceeds `max_size`.
    """
    if stat_result.st_size > max_size:
        error_message = f"{filepath} exceeds the maximum allowed size of {max_size} bytes."
        raise IOError(error_message)


def safe_read(filepath: Path) -> TextIO:
    """Open a file for reading with consistent error handling.

    Args:
        filepath: Path to the file.

    Returns:
        TextIO: File handle opened for reading in UTF-8.

    Raises:
        IOError: If the path is missing, inaccessible, or not a file.

    Examples:
        with safe_read(Path("chapter.hml")) as handle:
            text = handle.read()
    """
    try:
        return open(filepath, "r", encoding="UTF-8")
    except (
        FileNotFoundError,
        PermissionError,
        IsADirectoryError,
        NotADirectoryError,
    ) as error:
        error_message = f"Error accessing {filepath}: {error}"
        raise IOError(error_message) from error


def read_document(filepath: Path, max_size: int = DEFAULT_MAX_FILE_SIZE) -> str:
    """Read a UTF-8 text file after checking its size.

    Raises:
        IOError: If the file is missing, too large, or not valid UTF-8.
    """
    enforce_file_size(collect_file_stat(filepath), max_size, filepath)
    try:
        with safe_read(filepath) as handle:
            return handle.read()
    except UnicodeDecodeError as error:
        error_message = f"{filepath} is not valid UTF-8: {error}"
        raise IOError(error_message) from error


def resolve_reference(reference: str, base_dir: Path | None = None) -> Path:
    """Turn an include reference into a path.

    ``~`` expands to the home directory; relative references are resolved
    against `base_dir` (the current directory when None).

    Examples:
        resolve_reference("~/src/Main.java")
        resolve_reference("code/Main.java", Path("book"))
    """
    path = Path(reference).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def read_url(url: str, max_size: int = DEFAULT_MAX_FILE_SIZE) -> str:
    """Fetch a URL and decode it as UTF-8.

    Raises:
        IOError: If the resource cannot be fetched, is too large, or is not UTF-8.
    """
    try:
        with urllib.request.urlopen(url, timeout=URL_TIMEOUT_SECONDS) as response:
            data = response.read(max_size + 1)
    except (urllib.error.URLError, ValueError, OSError) as error:
        error_message = f"Error fetching {url}: {error}"
        raise IOError(error_message) from error

    if len(data) > max_size:
        error_message = f"{url} exceeds the maximum allowed size of {max_size} bytes."
        raise IOError(error_message)

    try:
        return data.decode("UTF-8")
    except UnicodeDecodeError as error:
        error_message = f"{url} is not valid UTF-8: {error}"
        raise IOError(error_message) from error


def write_output(filepath: Path, text: str):
    """Write `text` to `filepath` atomically.

    The content goes to a temporary file in the target directory which then
    replaces the destination. Existing permissions are kept.

    Raises:
        IOError: If the file cannot be written.

    Examples:
        write_output(Path("book.html"), html)
    """
    try:
        permissions = stat.S_IMODE(os.stat(filepath).st_mode)
    except FileNotFoundError:
        permissions = None
    except OSError as error:
        error_message = f"Error accessing {filepath}: {error}"
        raise IOError(error_message) from error

    directory = filepath.parent if str(filepath.parent) else Path(".")
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", encoding="UTF-8", delete=False, dir=directory
        ) as tmp_file:
            temp_path = Path(tmp_file.name)
            tmp_file.write(text)

            # Ensure the temporary file is flushed and synced before the swap
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
            if permissions is not None:
                os.chmod(tmp_file.name, permissions)
            else:
                umask = os.umask(0)
                os.umask(umask)
                os.chmod(tmp_file.name, 0o666 & ~umask)

        os.replace(temp_path, filepath)
    except OSError as error:
        error_message = f"Error writing {filepath}: {error}"
        raise IOError(error_message) from error
    finally:
        if temp_path is not None:
            try:
                Path(temp_path).unlink(missing_ok=True)
            except OSError:
                pass
