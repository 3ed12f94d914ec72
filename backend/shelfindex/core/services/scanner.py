from __future__ import annotations
import os
from pathlib import Path
from typing import Iterable, List

from shelfindex.core.entities import ScannedFile


def _raise(err: OSError) -> None:
    raise err


def scan_library(root: str | Path, extensions: Iterable[str] = (".pdf",)) -> List[ScannedFile]:
    """
    Recursively list files under `root` whose extension matches (case-insensitive).

    Entries are sorted by filename, then path, so passes see a stable order.
    Raises OSError when the root (or a directory below it) cannot be read.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise NotADirectoryError(f"Library root is not a readable directory: {root_path}")

    wanted = tuple(e.lower() for e in extensions)
    out: List[ScannedFile] = []
    for dirpath, _, filenames in os.walk(root_path, onerror=_raise):
        for name in filenames:
            full = Path(dirpath) / name
            if not full.is_file():
                continue
            if name.lower().endswith(wanted):
                out.append(ScannedFile(filename=name, path=str(full.resolve())))

    out.sort(key=lambda f: (f.filename, f.path))
    return out
