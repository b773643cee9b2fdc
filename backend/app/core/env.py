"""Minimal `.env` support for local runs and cron jobs.

Values already present in the process environment win unless `override` is
set, so a deployment's real environment is never shadowed by a stray file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple


_QUOTES = ("'", '"')


def _parse_env_line(line: str) -> Optional[Tuple[str, str]]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    stripped = stripped.removeprefix("export ").lstrip()
    key, sep, value = stripped.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        value = value[1:-1]
    return key, value


def read_env_file(path: Path) -> Dict[str, str]:
    pairs = (_parse_env_line(raw) for raw in path.read_text(encoding="utf-8").splitlines())
    return dict(p for p in pairs if p is not None)


def default_env_files() -> list[Path]:
    backend_dir = Path(__file__).resolve().parents[2]
    return [backend_dir.parent / ".env", backend_dir / ".env"]


def load_env_if_present(
    *, override: bool = False, paths: Optional[Iterable[Path]] = None
) -> list[Path]:
    """Apply `.env` files to os.environ; returns the files that were read.

    Defaults to the repo-root `.env` followed by `backend/.env`. Missing or
    unreadable files are ignored.
    """
    loaded: list[Path] = []
    for path in default_env_files() if paths is None else paths:
        if not path.is_file():
            continue
        try:
            values = read_env_file(path)
        except OSError:
            continue
        loaded.append(path)
        for key, value in values.items():
            if override or key not in os.environ:
                os.environ[key] = value
    return loaded
