"""File copying helpers that control the permissions of what they create."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from typing import BinaryIO

logger = logging.getLogger(__name__)

EXECUTABLE_PERMS = 0o744
"""Permissions (rwxr--r--) for executable files such as scripts and binaries."""

NON_EXECUTABLE_PERMS = 0o644
"""Permissions (rw-r--r--) for non-executable files such as configs and RPMs."""


def _open_with_perms(dest: str | os.PathLike[str], perms: int) -> BinaryIO:
    """Create (or truncate) ``dest`` for writing and give it ``perms``."""
    handle = open(dest, "wb")  # noqa: SIM115 - returned to the caller
    try:
        os.chmod(dest, perms)
    except OSError:
        handle.close()
        raise
    return handle


def copy_file(src: str | os.PathLike[str], dest: str | os.PathLike[str], perms: int) -> None:
    """Copy the file ``src`` to ``dest`` and set ``perms`` on the copy."""
    with open(src, "rb") as source, _open_with_perms(dest, perms) as target:
        shutil.copyfileobj(source, target)


def copy_file_n(src: BinaryIO, dest: str | os.PathLike[str], perms: int, n: int) -> None:
    """Copy everything readable from ``src`` into ``dest`` in chunks of ``n`` bytes."""
    with _open_with_perms(dest, perms) as target:
        while chunk := src.read(n):
            target.write(chunk)


def _extension(name: str) -> str:
    """Return the extension of ``name`` including its leading dot, or ''."""
    dot = name.rfind(".")
    return name[dot:] if dot != -1 else ""


def copy_files(
    src: str | os.PathLike[str],
    dest: str | os.PathLike[str],
    ext: str = "",
    copy_sub_dir: bool = False,
    override_perms: int | None = None,
) -> None:
    """Copy the files in ``src`` into ``dest``.

    A non-empty ``ext`` restricts copying to files with that extension.
    With ``copy_sub_dir`` the directory tree is copied recursively,
    otherwise sub-directories are skipped. ``override_perms`` replaces the
    permissions of every copied file; without it the originals are kept.
    """
    entries = sorted(os.scandir(src), key=lambda entry: entry.name)
    os.makedirs(dest, exist_ok=True)

    for entry in entries:
        source_path = os.path.join(src, entry.name)
        dest_path = os.path.join(dest, entry.name)

        if entry.is_dir():
            if not copy_sub_dir:
                logger.warning("Skipping copy, '%s' is a directory", entry.name)
                continue
            copy_files(source_path, dest_path, ext, True, override_perms)
            continue

        if ext and _extension(entry.name) != ext:
            logger.debug("Skipping %s as it is not a '%s' file", entry.name, ext)
            continue

        if override_perms is not None:
            perms = override_perms
        else:
            perms = stat.S_IMODE(entry.stat(follow_symlinks=False).st_mode)

        copy_file(source_path, dest_path, perms)


def file_exists(file_path: str | os.PathLike[str]) -> bool:
    """Tell whether ``file_path`` exists; lookup failures count as absent."""
    try:
        os.stat(file_path)
    except FileNotFoundError:
        return False
    except OSError as err:
        logger.warning("Searching for file at (%s) failed: %s", file_path, err)
        return False
    return True