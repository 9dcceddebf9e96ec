"""Creation of the directories a build works in."""

from __future__ import annotations

import os
from datetime import datetime

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _timestamp(moment: datetime) -> str:
    """Format ``moment`` as e.g. ``Jan02_15-04-05``, independent of locale."""
    return f"{_MONTHS[moment.month - 1]}{moment:%d_%H-%M-%S}"


def setup_build_directory(root_dir: str | os.PathLike[str]) -> str:
    """Create a timestamped build directory under ``root_dir`` and return its path."""
    build_dir = os.path.join(root_dir, f"build-{_timestamp(datetime.now())}")
    os.makedirs(build_dir, exist_ok=True)
    return build_dir


def setup_combustion_directory(build_dir: str | os.PathLike[str]) -> tuple[str, str]:
    """Create the combustion and artefacts directories; return both paths."""
    combustion_dir = os.path.join(build_dir, "combustion")
    os.makedirs(combustion_dir, exist_ok=True)

    artefacts_dir = os.path.join(build_dir, "artefacts")
    os.makedirs(artefacts_dir, exist_ok=True)

    return combustion_dir, artefacts_dir