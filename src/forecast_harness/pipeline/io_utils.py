"""
Output writers for pipeline artifacts.

Every artifact is written to a temp file beside its target and moved into
place with os.replace, so a crashed run never leaves a half-written CSV or
metadata file that a later run would mistake for finished output.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable

import numpy as np
import pandas as pd


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _replace_into(path: Path, write: Callable[[Path], None]) -> None:
    ensure_dir(path.parent)
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        write(tmp)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def _json_default(value: Any) -> Any:
    # numpy scalars and pandas periods show up in partition info and params
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    return str(value)


def atomic_write_csv(df: pd.DataFrame, path: Path, index: bool = False) -> None:
    _replace_into(path, lambda tmp: df.to_csv(tmp, index=index))


def atomic_write_json(payload: Dict[str, Any], path: Path) -> None:
    def write(tmp: Path) -> None:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=_json_default)

    _replace_into(path, write)


def outputs_exist(paths: Iterable[Path]) -> bool:
    """True only when every path is already on disk."""
    return all(Path(p).exists() for p in paths)
