"""
Environment + repo-root helpers.

Supabase credentials usually live in a repo-local `.env`, and the offline backend reads
`data/catalogs/*.json` by relative path. Both must work whether the API, the CLI or
pytest is launched from the repo root, a subdirectory, or an editable install.

- `get_project_root()`: where `.env` and `data/catalogs/` are looked up
- `load_dotenv_if_present()`: load `.env` once, never clobbering real env vars
- `resolve_project_path()`: anchor relative catalog paths at the project root
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

CATALOG_DIR = Path("data") / "catalogs"


def _is_repo_root(path: Path) -> bool:
    return (path / ".env").is_file() or (path / "pyproject.toml").is_file() or (path / CATALOG_DIR).is_dir()


def _search_upwards(start: Path) -> Path | None:
    start = start.resolve()
    return next((p for p in (start, *start.parents) if _is_repo_root(p)), None)


@lru_cache
def get_project_root() -> Path:
    """Best-guess repo root (cached).

    `WINEMATCH_PROJECT_ROOT` wins, then the directory of `WINEMATCH_ENV_FILE`, then the
    first ancestor of the cwd (or of this package) holding `.env`, `pyproject.toml` or
    `data/catalogs/`.
    """
    explicit_root = os.getenv("WINEMATCH_PROJECT_ROOT")
    if explicit_root:
        return Path(explicit_root).expanduser().resolve()

    env_file = os.getenv("WINEMATCH_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent

    found = _search_upwards(Path.cwd()) or _search_upwards(Path(__file__).parent)
    return found or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the `.env` file once; returns its path, or None when there is none."""
    env_file = os.getenv("WINEMATCH_ENV_FILE")
    env_path = Path(env_file).expanduser().resolve() if env_file else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
