"""
.env file support.

DEVLEDGER_* settings (and anything else a team wants) may live in .env
files next to the shell environment. Layers, lowest to highest:

    ~/.config/devledger/.env  <  <project>/.env  <  <project>/.env.local

Variables already present in the process environment always win; the files
only fill in what the shell did not export.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

from .loader import get_xdg_config_home

logger = logging.getLogger(__name__)


def default_user_env_path() -> Path:
    return get_xdg_config_home() / "devledger" / ".env"


def default_project_env_paths(project_dir: Path) -> list[Path]:
    return [project_dir / ".env", project_dir / ".env.local"]


def read_env_layers(paths: Iterable[Path]) -> dict[str, str]:
    """
    Merge .env files in order; later files override earlier ones.

    Missing files are skipped, as are keys declared without a value.
    """
    merged: dict[str, str] = {}
    for path in paths:
        path = Path(path)
        if not path.is_file():
            continue
        values = {k: v for k, v in dotenv_values(path).items() if k and v is not None}
        logger.debug("Read %d variable(s) from %s", len(values), path)
        merged.update(values)
    return merged


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """
    Export variables from the user and project .env files.

    Args:
        project_dir: Directory holding the project .env files (defaults to cwd)
        user_env_paths: Override the user-level files
        project_env_paths: Override the project-level files

    Returns:
        The variables that were exported (keys already set are not included)

    Example:
        >>> load_layered_env()
        {'DEVLEDGER_MODEL': 'sonnet'}
    """
    project_dir = project_dir or Path.cwd()
    if user_env_paths is None:
        user_env_paths = [default_user_env_path()]
    if project_env_paths is None:
        project_env_paths = default_project_env_paths(project_dir)

    layers = [*user_env_paths, *project_env_paths]

    exported = {k: v for k, v in read_env_layers(layers).items() if k not in os.environ}
    os.environ.update(exported)
    return exported
