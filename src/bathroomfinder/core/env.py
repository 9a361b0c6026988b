"""
Project root and `.env` handling.

Feed URLs and auth tokens usually live in a repo-local `.env`, and the memory feed's
`seed_path` is written relative to the checkout. Both break when the API or CLI is
started from another working directory, so paths are anchored to the project root:

1. `BATHROOMFINDER_PROJECT_ROOT`, if set
2. the directory holding `BATHROOMFINDER_ENV_FILE`, if set
3. the nearest parent of the cwd that looks like a checkout
4. the cwd
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_MARKERS = (".env", ".git", "data/seed.json")


def _is_checkout(path: Path) -> bool:
    if any((path / marker).exists() for marker in _ROOT_MARKERS):
        return True
    return (path / "pyproject.toml").is_file() and (path / "src" / "bathroomfinder").is_dir()


def find_project_root(start: Path) -> Path | None:
    """Walk up from `start` and return the first directory that looks like a checkout."""
    start = start.resolve()
    for candidate in (start, *start.parents):
        if _is_checkout(candidate):
            return candidate
    return None


@lru_cache
def get_project_root() -> Path:
    """Return the project root (cached for the process lifetime)."""
    override = os.getenv("BATHROOMFINDER_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    env_file = os.getenv("BATHROOMFINDER_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    return find_project_root(Path.cwd()) or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project's `.env` once; variables already in the environment win."""
    explicit = os.getenv("BATHROOMFINDER_ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve `path` against the project root unless it is already absolute."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
